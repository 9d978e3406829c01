"""HTML to plain text conversion for content bodies and snippets."""

import re

import httpx
from lxml import etree
import lxml.html

_TAG_RE = re.compile(r"<[^>]+>")
_BOLD_RE = re.compile(r"</?b\s*>", re.IGNORECASE)
_WHITESPACE_RE = re.compile(r"\s+")

ELLIPSIS = "..."
STUDY_PREFIX = "/study"


def _collapse(text: str) -> str:
    return _WHITESPACE_RE.sub(" ", text).strip()


def html_to_text(html: str | None) -> str:
    """Convert an HTML body or fragment to plain text.

    Scripts and styles are dropped, block and inline boundaries become single
    spaces. Never fails: input lxml cannot parse falls back to stripping tags.

    Args:
        html: HTML document or fragment

    Returns:
        Plain text with collapsed whitespace ("" for empty input)
    """
    if not html or not html.strip():
        return ""

    try:
        root = lxml.html.fromstring(html)
    except (etree.ParserError, ValueError):
        return _collapse(_TAG_RE.sub(" ", html))

    for element in list(root.iter("script", "style")):
        if element.getparent() is not None:
            element.drop_tree()

    if root.tag in ("script", "style"):
        return ""
    return _collapse(" ".join(root.itertext()))


def clean_snippet(snippet: str) -> str:
    """Turn a backend snippet into plain text, keeping <b> highlights as **."""
    return html_to_text(_BOLD_RE.sub("**", snippet))


def preview(text: str, limit: int) -> str:
    """Truncate text to ``limit`` characters plus an ellipsis marker.

    Text of at most ``limit`` characters is returned unchanged, without marker.
    """
    if len(text) <= limit:
        return text
    return text[:limit] + ELLIPSIS


def _content_path(href: str) -> str | None:
    """Content path of a link, without ``/study`` prefix, query or fragment."""
    try:
        path = httpx.URL(href).path
    except httpx.InvalidURL:
        return None
    if path.startswith(STUDY_PREFIX + "/"):
        path = path[len(STUDY_PREFIX) :]
    return path.rstrip("/") or None


def child_links(html: str | None, parent: str) -> list[tuple[str, str]]:
    """Links to the direct children of ``parent`` found in a page body.

    Hrefs may be absolute, relative to the site or carry the ``/study``
    prefix; all are reduced to content paths. The first link to a path
    provides its title.

    Args:
        html: Page body
        parent: Content path of the page, e.g. "/scriptures/bofm"

    Returns:
        (path, title) pairs in page order
    """
    if not html or not html.strip():
        return []
    try:
        root = lxml.html.fromstring(html)
    except (etree.ParserError, ValueError):
        return []

    prefix = parent.rstrip("/") + "/"
    links: dict[str, str] = {}
    for anchor in root.iter("a"):
        href = anchor.get("href")
        path = _content_path(href) if href else None
        if path is None or not path.startswith(prefix) or path in links:
            continue
        if "/" in path[len(prefix) :]:
            continue
        links[path] = _collapse(" ".join(anchor.itertext())) or path
    return list(links.items())
