"""Tests for the content resource catalog."""

from datetime import date

import httpx
import pytest

from gospel_library_mcp.servers.gospel_library.resources.content import (
    CATALOG,
    ConferenceTarget,
    list_resources,
    read_resource,
    resolve_latest_conference,
)


def _page(body_html: str) -> dict:
    return {"meta": {"title": "Page"}, "content": {"body": body_html}}


class TestResolveLatestConference:
    """Tests for resolve_latest_conference."""

    @pytest.mark.parametrize(
        ("today", "expected"),
        [
            (date(2024, 2, 15), ConferenceTarget(2023, "10")),
            (date(2024, 4, 1), ConferenceTarget(2024, "04")),
            (date(2024, 10, 1), ConferenceTarget(2024, "10")),
            (date(2024, 12, 31), ConferenceTarget(2024, "10")),
        ],
    )
    def test_reference_dates(self, today: date, expected: ConferenceTarget) -> None:
        assert resolve_latest_conference(today) == expected

    @pytest.mark.parametrize("month", range(1, 13))
    def test_every_month(self, month: int) -> None:
        target = resolve_latest_conference(date(2025, month, 15))
        if month < 4:
            assert target == ConferenceTarget(2024, "10")
        elif month < 10:
            assert target == ConferenceTarget(2025, "04")
        else:
            assert target == ConferenceTarget(2025, "10")

    def test_target_path_and_label(self) -> None:
        target = ConferenceTarget(2023, "10")
        assert target.path == "/general-conference/2023/10"
        assert target.label == "October 2023"
        assert ConferenceTarget(2024, "04").label == "April 2024"


class TestListResources:
    """Tests for list_resources."""

    def test_stable_catalog(self) -> None:
        assert [r.uri for r in list_resources()] == [
            "gospel-library://conference/latest",
            "gospel-library://scriptures/bofm",
            "gospel-library://scriptures/dc-testament",
            "gospel-library://manual/come-follow-me",
        ]
        assert list_resources() == list_resources()
        assert all(r.mime_type == "text/plain" for r in list_resources())

    def test_catalog_is_immutable(self) -> None:
        assert isinstance(CATALOG, tuple)


class TestReadResource:
    """Tests for read_resource."""

    async def test_unknown_uri(self, make_executor, json_handler, sent) -> None:
        executor = make_executor(json_handler({}))
        result = await read_resource(executor, "gospel-library://unknown")

        assert len(result.contents) == 1
        assert result.contents[0].uri == "gospel-library://unknown"
        assert result.contents[0].text == "Resource not found: gospel-library://unknown"
        assert sent == []

    async def test_scripture_preview_is_truncated(
        self, make_executor, json_handler, sent
    ) -> None:
        body = "<p>" + "word " * 400 + "</p>"
        executor = make_executor(json_handler(_page(body)))
        result = await read_resource(executor, "gospel-library://scriptures/bofm")
        text = result.contents[0].text

        assert text.startswith("# Book of Mormon\n\n")
        assert "/scriptures/bofm/1-ne/1 (1 Nephi 1)" in text
        preview_text = text.split("\n\n")[-1]
        assert len(preview_text) <= 503
        assert preview_text.endswith("...")
        assert sent[0].url.params["uri"] == "/scriptures/bofm"

    async def test_short_body_unchanged(self, make_executor, json_handler) -> None:
        executor = make_executor(json_handler(_page("<p>Section 76</p>")))
        result = await read_resource(
            executor, "gospel-library://scriptures/dc-testament"
        )
        text = result.contents[0].text

        assert text.endswith("\n\nSection 76")
        assert not text.endswith("...")

    async def test_manual_preview_limit(self, make_executor, json_handler) -> None:
        body = "<p>" + "x" * 1500 + "</p>"
        executor = make_executor(json_handler(_page(body)))
        result = await read_resource(executor, "gospel-library://manual/come-follow-me")
        text = result.contents[0].text

        assert text.startswith("# Come, Follow Me\n\n")
        assert text.split("\n\n")[-1] == "x" * 1000 + "..."

    async def test_latest_conference(self, make_executor, json_handler, sent) -> None:
        executor = make_executor(json_handler(_page("<p>Talks</p>")))
        result = await read_resource(
            executor, "gospel-library://conference/latest", today=date(2024, 2, 15)
        )

        assert sent[0].url.params["uri"] == "/general-conference/2023/10"
        assert result.contents[0].text == (
            "# Latest General Conference (October 2023)\n\nTalks"
        )

    async def test_fetch_failure(self, make_executor, json_handler) -> None:
        executor = make_executor(json_handler({}, status_code=500))
        result = await read_resource(executor, "gospel-library://scriptures/bofm")
        assert result.contents[0].text == "Error loading content for Book of Mormon"

    async def test_transport_failure(self, make_executor) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        executor = make_executor(handler)
        result = await read_resource(executor, "gospel-library://manual/come-follow-me")
        assert result.contents[0].text == "Error loading content for Come, Follow Me"

    async def test_empty_body(self, make_executor, json_handler) -> None:
        executor = make_executor(json_handler({"meta": {}, "content": {}}))
        result = await read_resource(executor, "gospel-library://scriptures/bofm")
        assert result.contents[0].text == "Error loading content for Book of Mormon"

    async def test_redirect_loop(self, make_executor, redirect_loop) -> None:
        executor = make_executor(redirect_loop, follow_redirects=True)
        result = await read_resource(executor, "gospel-library://scriptures/bofm")
        assert result.contents[0].text == "Error loading content for Book of Mormon"

    async def test_undecodable_body(self, make_executor, broken_gzip) -> None:
        executor = make_executor(broken_gzip)
        result = await read_resource(executor, "gospel-library://scriptures/bofm")
        assert result.contents[0].text == "Error loading content for Book of Mormon"
