"""Entry point for gospel-library-mcp Server.

MCP Server for search and content access on the Gospel Library
(churchofjesuschrist.org), mounted into an aggregator via FastMCP mount().
"""

import logging

from fastmcp import FastMCP

from gospel_library_mcp.config.base import settings
from gospel_library_mcp.servers.gospel_library import server as gospel_library

# Setup logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

logger = logging.getLogger(__name__)

# Main aggregator server
app = FastMCP(
    name=settings.server_name,
    instructions="""
    MCP Server for searching and reading the Gospel Library of
    The Church of Jesus Christ of Latter-day Saints.

    Available tools (prefix gl_):
    - gl_search_gospel_library: Start here; routes the query to the best search
    - gl_search_vertex: Whole website by type (web, image, video, music, pdf)
    - gl_search_content_domain: One content area (gospel-topics, liahona, ...)
    - gl_search_general_conference: Conference talks by date and speaker
    - gl_search_scriptures: Verses in the standard works
    - gl_search_book_of_mormon / gl_search_doctrine_covenants / gl_search_bible
    - gl_search_archive / gl_search_newsroom: Archive and press releases
    - gl_search_scriptures_archive / gl_search_magazines_archive: Archive presets
    - gl_browse_structure: Chapters, sections or talks below a path
    - gl_fetch_content: Full text of a page by its path

    Typical workflow:
    1. gl_search_gospel_library → Find pages in the best-fitting collection
    2. gl_search_* → Narrow down with filters (check "error" before "items")
    3. gl_browse_structure / gl_fetch_content → Navigate and read a hit
    """,
)

# Mount the Gospel Library server with prefix
app.mount(server=gospel_library.mcp, prefix="gl")


# For direct execution
def main() -> None:
    """Run the MCP server."""
    logger.info("Starting Gospel Library MCP Server...")
    logger.info(f"Server name: {settings.server_name}")
    logger.info(f"Content platform: {settings.base_url}")
    app.run()


if __name__ == "__main__":
    main()
