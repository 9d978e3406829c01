"""Execution of prepared requests against the Gospel Library backends.

Example:
    ```python
    async with httpx.AsyncClient(timeout=30.0) as client:
        executor = SearchExecutor(client)
        raw = await executor.execute(build_newsroom_request("temples"))
    ```
"""

import asyncio
from http import HTTPStatus
import logging

import httpx

from gospel_library_mcp.schemas.base.search import PreparedRequest, RawResponse
from gospel_library_mcp.utils.errors import (
    HttpStatusError,
    MalformedResponseError,
    RequestCancelledError,
    TransportFailureError,
)

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"


class SearchExecutor:
    """Sends ``PreparedRequest`` objects and classifies the outcome.

    The executor never retries; callers wanting resilience wrap ``execute``.
    Error messages carry the domain and the HTTP status only, never the URL.
    """

    def __init__(
        self, client: httpx.AsyncClient, deadline: float | None = None
    ) -> None:
        """Initialize the executor.

        Args:
            client: Shared HTTP client (owned by the caller)
            deadline: Optional per-call deadline in seconds; exceeding it
                abandons the call with ``RequestCancelledError``
        """
        self.client = client
        self.deadline = deadline

    async def _send(self, request: PreparedRequest) -> httpx.Response:
        headers = {"Accept": request.accept}
        if request.method == "POST":
            headers["Content-Type"] = JSON_CONTENT_TYPE
            return await self.client.post(
                request.url, content=request.body, headers=headers
            )
        return await self.client.get(request.url, headers=headers)

    async def execute(
        self, request: PreparedRequest, deadline: float | None = None
    ) -> RawResponse:
        """Send a request and return its parsed payload.

        Args:
            request: The prepared request
            deadline: Overrides the executor's deadline for this call

        Returns:
            RawResponse with the parsed JSON body (or text if not JSON)

        Raises:
            TransportFailureError: Timeout, DNS or connection failure,
                redirect loop or undecodable body
            HttpStatusError: Backend answered 4xx/5xx
            MalformedResponseError: Body does not parse as JSON
            RequestCancelledError: Deadline exceeded
        """
        domain = request.domain.value
        limit = deadline if deadline is not None else self.deadline

        try:
            if limit is not None:
                response = await asyncio.wait_for(self._send(request), timeout=limit)
            else:
                response = await self._send(request)
        except httpx.TimeoutException as e:
            logger.warning(f"{domain}: request timed out")
            raise TransportFailureError(f"{domain}: request timed out", domain) from e
        except httpx.TransportError as e:
            logger.warning(f"{domain}: transport failure ({type(e).__name__})")
            raise TransportFailureError(
                f"{domain}: transport failure ({type(e).__name__})", domain
            ) from e
        except httpx.HTTPError as e:
            logger.warning(f"{domain}: request failed ({type(e).__name__})")
            raise TransportFailureError(
                f"{domain}: request failed ({type(e).__name__})", domain
            ) from e
        except TimeoutError as e:
            logger.warning(f"{domain}: deadline of {limit}s exceeded")
            raise RequestCancelledError(
                f"{domain}: request cancelled after {limit}s", domain
            ) from e

        status = response.status_code
        if status >= HTTPStatus.BAD_REQUEST:
            logger.warning(f"{domain}: HTTP {status}")
            raise HttpStatusError(f"{domain}: HTTP {status}", domain, status)

        content_type = response.headers.get("content-type", "")
        if request.accept != JSON_CONTENT_TYPE:
            return RawResponse(
                status_code=status, body=response.text, content_type=content_type
            )

        try:
            body = response.json()
        except ValueError as e:
            logger.warning(f"{domain}: response is not valid JSON")
            raise MalformedResponseError(
                f"{domain}: response is not valid JSON", domain, status
            ) from e

        return RawResponse(status_code=status, body=body, content_type=content_type)
