"""
Gospel Library content resources.

A small static catalog of logical resources (``gospel-library://...``) that
resolve at read time to content pages: the latest General Conference, two
scripture volumes and the current Come, Follow Me manual.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from datetime import date
import logging
from types import MappingProxyType
from typing import Protocol

from fastmcp import FastMCP

from gospel_library_mcp.schemas.base.content import (
    ContentResource,
    ResourceContents,
    ResourceText,
)
from gospel_library_mcp.utils.errors import GospelLibraryError
from gospel_library_mcp.utils.executor import SearchExecutor
from gospel_library_mcp.utils.html import html_to_text, preview
from gospel_library_mcp.utils.search import fetch_content_page

logger = logging.getLogger(__name__)

LATEST_CONFERENCE_URI = "gospel-library://conference/latest"
SCRIPTURE_PREVIEW_LIMIT = 500
MANUAL_PREVIEW_LIMIT = 1000


class ExecutorGetter(Protocol):
    """Protocol for sync executor getter function."""

    def __call__(self) -> SearchExecutor: ...


@dataclass(frozen=True)
class CatalogEntry:
    """A catalog resource and how its text is assembled.

    Attributes:
        resource: The listed resource
        path: Content path; None for resources resolved at read time
        heading: Markdown heading of the text
        hints: Example URIs listed below the heading
        preview_limit: Maximum characters of page text; None keeps it all
    """

    resource: ContentResource
    path: str | None
    heading: str
    hints: tuple[str, ...] = ()
    preview_limit: int | None = None


@dataclass(frozen=True)
class ConferenceTarget:
    """A General Conference session, identified by year and month."""

    year: int
    month: str

    @property
    def label(self) -> str:
        return f"{'April' if self.month == '04' else 'October'} {self.year}"

    @property
    def path(self) -> str:
        return f"/general-conference/{self.year}/{self.month}"


CATALOG: tuple[CatalogEntry, ...] = (
    CatalogEntry(
        resource=ContentResource(
            uri=LATEST_CONFERENCE_URI,
            name="Latest General Conference",
            description="Most recent General Conference talks",
        ),
        path=None,
        heading="Latest General Conference",
    ),
    CatalogEntry(
        resource=ContentResource(
            uri="gospel-library://scriptures/bofm",
            name="Book of Mormon",
            description="The Book of Mormon: Another Testament of Jesus Christ",
        ),
        path="/scriptures/bofm",
        heading="Book of Mormon",
        hints=(
            "Access specific chapters using URIs like:",
            "- /scriptures/bofm/1-ne/1 (1 Nephi 1)",
            "- /scriptures/bofm/alma/32 (Alma 32)",
            "- /scriptures/bofm/moro/10 (Moroni 10)",
        ),
        preview_limit=SCRIPTURE_PREVIEW_LIMIT,
    ),
    CatalogEntry(
        resource=ContentResource(
            uri="gospel-library://scriptures/dc-testament",
            name="Doctrine and Covenants",
            description=(
                "Doctrine and Covenants of The Church of Jesus Christ "
                "of Latter-day Saints"
            ),
        ),
        path="/scriptures/dc-testament",
        heading="Doctrine and Covenants",
        hints=(
            "Access specific sections using URIs like:",
            "- /scriptures/dc-testament/dc/1 (Section 1)",
            "- /scriptures/dc-testament/dc/76 (Section 76)",
            "- /scriptures/dc-testament/dc/121 (Section 121)",
        ),
        preview_limit=SCRIPTURE_PREVIEW_LIMIT,
    ),
    CatalogEntry(
        resource=ContentResource(
            uri="gospel-library://manual/come-follow-me",
            name="Come, Follow Me",
            description="Come, Follow Me study materials",
        ),
        path="/manual/come-follow-me-for-individuals-and-families-book-of-mormon-2024",
        heading="Come, Follow Me",
        preview_limit=MANUAL_PREVIEW_LIMIT,
    ),
)

_CATALOG_BY_URI = MappingProxyType({entry.resource.uri: entry for entry in CATALOG})


def resolve_latest_conference(today: date) -> ConferenceTarget:
    """Most recent General Conference held on or before ``today``'s month.

    Conferences take place in April and October: January to March map to the
    previous October, April to September to April, October to December to
    October.
    """
    if today.month < 4:
        return ConferenceTarget(year=today.year - 1, month="10")
    if today.month < 10:
        return ConferenceTarget(year=today.year, month="04")
    return ConferenceTarget(year=today.year, month="10")


def list_resources() -> list[ContentResource]:
    """The resource catalog in stable order."""
    return [entry.resource for entry in CATALOG]


def _single(uri: str, text: str) -> ResourceContents:
    return ResourceContents(contents=[ResourceText(uri=uri, text=text)])


async def read_resource(
    executor: SearchExecutor, uri: str, today: date | None = None
) -> ResourceContents:
    """Read a catalog resource as plain text.

    Never raises: unknown URIs and failed fetches are reported in the text.

    Args:
        executor: Executor used for the content fetch
        uri: Logical resource identifier
        today: Reference date for the latest conference (default: today)

    Returns:
        ResourceContents with exactly one text entry
    """
    entry = _CATALOG_BY_URI.get(uri)
    if entry is None:
        return _single(uri, f"Resource not found: {uri}")

    heading = entry.heading
    path = entry.path
    if path is None:
        target = resolve_latest_conference(today or date.today())
        heading = f"{heading} ({target.label})"
        path = target.path

    try:
        page = await fetch_content_page(executor, path)
    except GospelLibraryError as e:
        logger.warning(f"Loading {entry.resource.name} failed: {e}")
        return _single(uri, f"Error loading content for {entry.resource.name}")

    text = html_to_text(page.body_html)
    if not text:
        return _single(uri, f"Error loading content for {entry.resource.name}")
    if entry.preview_limit is not None:
        text = preview(text, entry.preview_limit)

    parts = [f"# {heading}"]
    if entry.hints:
        parts.append("\n".join(entry.hints))
    parts.append(text)
    return _single(uri, "\n\n".join(parts))


def register_content_resources(
    mcp: FastMCP,
    get_executor: ExecutorGetter,
) -> None:
    """Register one MCP resource per catalog entry.

    Args:
        mcp: The FastMCP server instance to register resources on
        get_executor: Function that returns the shared SearchExecutor
    """

    def make_reader(uri: str) -> Callable[[], Awaitable[str]]:
        async def read() -> str:
            contents = await read_resource(get_executor(), uri)
            return contents.contents[0].text

        return read

    for entry in CATALOG:
        resource = entry.resource
        mcp.resource(
            resource.uri,
            name=resource.name,
            description=resource.description,
            mime_type=resource.mime_type,
        )(make_reader(resource.uri))
