"""Pytest configuration and fixtures for gospel-library-mcp.

Network calls go through httpx.MockTransport; no test talks to the live
backend.
"""

from collections.abc import AsyncIterator, Callable

import httpx
import pytest

from gospel_library_mcp.utils.executor import SearchExecutor

Handler = Callable[[httpx.Request], httpx.Response]
ExecutorFactory = Callable[..., SearchExecutor]


@pytest.fixture
async def make_executor() -> AsyncIterator[ExecutorFactory]:
    """Factory for executors whose client answers through a mock handler."""
    clients: list[httpx.AsyncClient] = []

    def factory(
        handler: Handler,
        deadline: float | None = None,
        follow_redirects: bool = False,
    ) -> SearchExecutor:
        client = httpx.AsyncClient(
            transport=httpx.MockTransport(handler),
            follow_redirects=follow_redirects,
        )
        clients.append(client)
        return SearchExecutor(client, deadline=deadline)

    yield factory

    for client in clients:
        await client.aclose()


@pytest.fixture
def sent() -> list[httpx.Request]:
    """Requests recorded by ``json_handler`` handlers."""
    return []


@pytest.fixture
def json_handler(sent: list[httpx.Request]) -> Callable[..., Handler]:
    """Build a handler that records each request and answers with JSON."""

    def build(payload: object, status_code: int = 200) -> Handler:
        def handler(request: httpx.Request) -> httpx.Response:
            sent.append(request)
            return httpx.Response(status_code, json=payload)

        return handler

    return build


@pytest.fixture
def redirect_loop() -> Handler:
    """Handler that redirects every request to itself."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(302, headers={"Location": str(request.url)})

    return handler


@pytest.fixture
def broken_gzip() -> Handler:
    """Handler that declares a gzip body it does not send."""

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200,
            headers={"Content-Encoding": "gzip", "Content-Type": "application/json"},
            content=b'{"items": []}',
        )

    return handler
