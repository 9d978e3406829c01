"""Content tools for the Gospel Library.

Fetch a content page (scripture chapter, conference talk, manual lesson) by
its path, list the pages below a path, or read one of the catalog resources.
"""

import logging
from typing import Protocol

from fastmcp import Context, FastMCP
from fastmcp.exceptions import ToolError

from gospel_library_mcp.schemas.base.content import (
    ContentPage,
    ContentResource,
    StructureListing,
)
from gospel_library_mcp.servers.gospel_library.resources.content import (
    list_resources,
    read_resource,
)
from gospel_library_mcp.utils.errors import BuildError, ExecutionError, InvalidUriError
from gospel_library_mcp.utils.executor import SearchExecutor
from gospel_library_mcp.utils.html import html_to_text
from gospel_library_mcp.utils.search import (
    browse_structure as browse,
    fetch_content_page,
)

logger = logging.getLogger(__name__)


class ExecutorGetter(Protocol):
    """Protocol for sync executor getter function."""

    def __call__(self) -> SearchExecutor: ...


def register_content_tools(
    mcp: FastMCP,
    get_executor: ExecutorGetter,
) -> None:
    """Register content tools on the given MCP server.

    Args:
        mcp: The FastMCP server instance to register tools on
        get_executor: Function that returns the shared SearchExecutor
    """

    @mcp.tool
    async def fetch_content(
        uri: str,
        lang: str | None = None,
        include_html: bool = False,
        ctx: Context | None = None,
    ) -> ContentPage:
        """Fetch a content page by its path.

        PURPOSE: Read the full text of a chapter, talk or lesson

        WHEN TO USE:
        - After a search, to read a hit in full
        - User names a chapter directly (e.g. Alma 32)

        Args:
            uri: Content path, e.g. "/scriptures/bofm/alma/32" or
                "/general-conference/2024/04/13nelson"
            lang: Language code (default "eng")
            include_html: Also return the raw HTML body
            ctx: FastMCP Context

        Returns:
            ContentPage with plain text, metadata (publication, audio/video
            links) and footnotes
        """
        if ctx:
            await ctx.info(f"Loading content: {uri}")

        try:
            page = await fetch_content_page(get_executor(), uri, lang)
        except InvalidUriError as e:
            raise ToolError(str(e)) from e
        except ExecutionError as e:
            raise ToolError(f"Content not available: {e}") from e

        page.text = html_to_text(page.body_html)
        if not include_html:
            page.body_html = None
        return page

    @mcp.tool
    async def browse_structure(
        uri: str,
        lang: str | None = None,
        depth: int = 1,
        ctx: Context | None = None,
    ) -> StructureListing:
        """List the chapters, sections or talks below a content path.

        PURPOSE: Navigate the hierarchy of books, chapters and sessions

        WHEN TO USE:
        - Find the chapters of a book or the talks of a conference session
        - Before fetch_content(), when the exact path is unknown

        Args:
            uri: Content path, e.g. "/scriptures/bofm" or
                "/general-conference/2024/10"
            lang: Language code (default "eng")
            depth: Levels to list (1 to 3); deeper levels keep up to ten
                children per entry
            ctx: FastMCP Context

        Returns:
            StructureListing with the child paths and their titles
        """
        if ctx:
            await ctx.info(f"Browsing: {uri} (depth {depth})")

        try:
            listing = await browse(get_executor(), uri, lang, depth)
        except BuildError as e:
            raise ToolError(str(e)) from e
        except ExecutionError as e:
            raise ToolError(f"Content not available: {e}") from e

        if ctx:
            await ctx.info(f"Found {len(listing.entries)} entries")
        return listing

    @mcp.tool
    def list_content_resources() -> list[ContentResource]:
        """List the predefined content resources (latest conference, ...)."""
        return list_resources()

    @mcp.tool
    async def read_content_resource(uri: str) -> str:
        """Read a predefined content resource as text.

        Args:
            uri: Resource identifier from list_content_resources(), e.g.
                "gospel-library://conference/latest"

        Returns:
            Resource text; unknown identifiers and load failures are
            reported in the text
        """
        contents = await read_resource(get_executor(), uri)
        return contents.contents[0].text
