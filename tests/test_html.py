"""Tests for HTML to text conversion."""

from gospel_library_mcp.utils.html import (
    child_links,
    clean_snippet,
    html_to_text,
    preview,
)


class TestHtmlToText:
    """Tests for html_to_text."""

    def test_strips_tags_and_collapses_whitespace(self) -> None:
        html = "<div><h1>Alma 32</h1>\n  <p>Faith is   not to have</p></div>"
        assert html_to_text(html) == "Alma 32 Faith is not to have"

    def test_drops_script_and_style(self) -> None:
        html = (
            "<div><style>p { color: red; }</style><p>Hello</p>"
            "<script>var x = 1;</script></div>"
        )
        assert html_to_text(html) == "Hello"

    def test_decodes_entities(self) -> None:
        assert html_to_text("<p>Faith &amp; works&nbsp;together</p>") == (
            "Faith & works together"
        )

    def test_malformed_markup(self) -> None:
        assert html_to_text("<p>unclosed <b>bold") == "unclosed bold"

    def test_empty_input(self) -> None:
        assert html_to_text("") == ""
        assert html_to_text(None) == ""
        assert html_to_text("   ") == ""


class TestCleanSnippet:
    """Tests for clean_snippet."""

    def test_bold_becomes_markdown(self) -> None:
        assert clean_snippet("the <b>faith</b> of <i>Abraham</i>") == (
            "the **faith** of Abraham"
        )

    def test_plain_text_unchanged(self) -> None:
        assert clean_snippet("no markup here") == "no markup here"

    def test_empty_stays_empty(self) -> None:
        assert clean_snippet("") == ""


class TestPreview:
    """Tests for preview."""

    def test_short_text_unchanged(self) -> None:
        assert preview("short", 500) == "short"

    def test_exact_limit_unchanged(self) -> None:
        text = "a" * 500
        assert preview(text, 500) == text

    def test_long_text_truncated(self) -> None:
        result = preview("a" * 501, 500)
        assert result == "a" * 500 + "..."
        assert len(result) == 503


class TestChildLinks:
    """Tests for child_links."""

    def test_direct_children_in_page_order(self) -> None:
        html = (
            '<nav><a href="/study/scriptures/bofm/1-ne?lang=eng">'
            "<p>1 Nephi</p></a>"
            '<a href="https://www.churchofjesuschrist.org/study/scriptures/bofm/2-ne">'
            "2 Nephi</a>"
            '<a href="/study/scriptures/bofm/1-ne/1">1 Nephi 1</a>'
            '<a href="/study/scriptures/dc-testament">D&amp;C</a>'
            '<a href="/study/scriptures/bofm/1-ne#title">again</a>'
            "<a>no href</a></nav>"
        )
        assert child_links(html, "/scriptures/bofm") == [
            ("/scriptures/bofm/1-ne", "1 Nephi"),
            ("/scriptures/bofm/2-ne", "2 Nephi"),
        ]

    def test_link_without_text_uses_path(self) -> None:
        html = '<div><a href="/study/general-conference/2024/10/13nelson"></a></div>'
        path = "/general-conference/2024/10/13nelson"
        assert child_links(html, "/general-conference/2024/10") == [(path, path)]

    def test_empty_body(self) -> None:
        assert child_links(None, "/scriptures") == []
        assert child_links("   ", "/scriptures") == []
