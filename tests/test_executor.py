"""Tests for the search executor."""

import asyncio
import json

import httpx
import pytest

from gospel_library_mcp.schemas.base.search import Domain
from gospel_library_mcp.utils.builders import (
    build_conference_request,
    build_newsroom_request,
)
from gospel_library_mcp.utils.errors import (
    ErrorKind,
    HttpStatusError,
    MalformedResponseError,
    RequestCancelledError,
    TransportFailureError,
)


class TestExecute:
    """Tests for SearchExecutor.execute."""

    async def test_json_response(self, make_executor, json_handler, sent) -> None:
        executor = make_executor(json_handler({"items": []}))
        raw = await executor.execute(build_newsroom_request("temples"))

        assert raw.status_code == 200
        assert raw.body == {"items": []}
        assert "application/json" in raw.content_type
        assert sent[0].method == "GET"
        assert sent[0].headers["Accept"] == "application/json"

    async def test_post_sends_json_body(
        self, make_executor, json_handler, sent
    ) -> None:
        executor = make_executor(json_handler({"items": []}))
        await executor.execute(build_conference_request("hope", start=21))

        request = sent[0]
        assert request.method == "POST"
        assert request.headers["Content-Type"] == "application/json"
        assert json.loads(request.content)["start"] == 20

    async def test_http_error_status(self, make_executor, json_handler) -> None:
        executor = make_executor(json_handler({"error": "boom"}, status_code=500))

        with pytest.raises(HttpStatusError) as exc_info:
            await executor.execute(build_newsroom_request("temples"))

        error = exc_info.value
        assert error.status == 500
        assert error.kind is ErrorKind.HTTP
        assert error.domain == Domain.NEWSROOM.value
        assert "churchofjesuschrist.org" not in str(error)
        assert "500" in str(error)

    async def test_not_found_status(self, make_executor, json_handler) -> None:
        executor = make_executor(json_handler({}, status_code=404))

        with pytest.raises(HttpStatusError) as exc_info:
            await executor.execute(build_newsroom_request("temples"))
        assert exc_info.value.status == 404

    async def test_malformed_json(self, make_executor) -> None:
        executor = make_executor(
            lambda request: httpx.Response(200, text="<html>not json</html>")
        )

        with pytest.raises(MalformedResponseError) as exc_info:
            await executor.execute(build_newsroom_request("temples"))
        assert exc_info.value.kind is ErrorKind.MALFORMED

    async def test_connection_failure(self, make_executor) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        executor = make_executor(handler)

        with pytest.raises(TransportFailureError) as exc_info:
            await executor.execute(build_newsroom_request("temples"))
        assert exc_info.value.kind is ErrorKind.TRANSPORT
        assert exc_info.value.status is None

    async def test_timeout_is_transport_failure(self, make_executor) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("timed out", request=request)

        executor = make_executor(handler)

        with pytest.raises(TransportFailureError):
            await executor.execute(build_newsroom_request("temples"))

    async def test_deadline_cancels_call(self, make_executor) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(5)
            return httpx.Response(200, json={})

        executor = make_executor(handler, deadline=0.01)

        with pytest.raises(RequestCancelledError) as exc_info:
            await executor.execute(build_newsroom_request("temples"))
        assert exc_info.value.kind is ErrorKind.CANCELLED

    async def test_per_call_deadline_overrides(self, make_executor) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(5)
            return httpx.Response(200, json={})

        executor = make_executor(handler)

        with pytest.raises(RequestCancelledError):
            await executor.execute(build_newsroom_request("temples"), deadline=0.01)

    async def test_redirect_loop_is_transport_failure(
        self, make_executor, redirect_loop
    ) -> None:
        executor = make_executor(redirect_loop, follow_redirects=True)

        with pytest.raises(TransportFailureError) as exc_info:
            await executor.execute(build_newsroom_request("temples"))
        assert "TooManyRedirects" in str(exc_info.value)

    async def test_undecodable_body_is_transport_failure(
        self, make_executor, broken_gzip
    ) -> None:
        executor = make_executor(broken_gzip)

        with pytest.raises(TransportFailureError) as exc_info:
            await executor.execute(build_newsroom_request("temples"))
        assert "DecodingError" in str(exc_info.value)
