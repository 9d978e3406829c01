"""FastMCP Server for the Gospel Library.

This server provides search tools for the heterogeneous search endpoints of
churchofjesuschrist.org (multi-type search, content domains, General
Conference, scriptures, archive, newsroom) and content resources.
"""

import logging

from fastmcp import FastMCP
import httpx

from gospel_library_mcp.config.base import settings
from gospel_library_mcp.servers.gospel_library.resources.content import (
    register_content_resources,
)
from gospel_library_mcp.servers.gospel_library.tools.content import (
    register_content_tools,
)
from gospel_library_mcp.servers.gospel_library.tools.search import (
    register_search_tools,
)
from gospel_library_mcp.utils.executor import SearchExecutor

logger = logging.getLogger(__name__)

# FastMCP Server Instance
mcp = FastMCP(settings.server_name)


# HTTP Client (singleton)
def _create_client() -> httpx.AsyncClient:
    """Create HTTP client for API requests."""
    return httpx.AsyncClient(
        timeout=settings.timeout,
        headers={"User-Agent": settings.user_agent},
        follow_redirects=True,
    )


_client: httpx.AsyncClient = _create_client()
_executor = SearchExecutor(_client)


def get_executor() -> SearchExecutor:
    """Get the executor wrapping the shared HTTP client."""
    return _executor


# Register tools and resources
register_search_tools(mcp, get_executor)
register_content_tools(mcp, get_executor)
register_content_resources(mcp, get_executor)
