"""Exceptions for request building and search execution.

Two families:

- ``BuildError``: caller input rejected while building a request. Raised
  before any network call.
- ``ExecutionError``: the outbound call failed. ``search()`` turns these into
  ``SearchResult.error`` so batch callers keep their other results.

Messages name the domain and status only, never URLs or credentials.
"""

from enum import Enum


class ErrorKind(str, Enum):
    """Category of an execution failure."""

    TRANSPORT = "transport"
    HTTP = "http"
    MALFORMED = "malformed"
    CANCELLED = "cancelled"


class GospelLibraryError(Exception):
    """Base exception for gospel-library-mcp."""

    pass


class BuildError(GospelLibraryError, ValueError):
    """Caller input rejected at request-build time."""

    pass


class UnknownDomainError(BuildError):
    """Domain has no filter template."""

    def __init__(self, domain: object) -> None:
        super().__init__(f"Unknown search domain: {domain}")
        self.domain = domain


class UnknownCollectionError(BuildError):
    """Scripture collection name is not one of the known volumes."""

    def __init__(self, collection: str) -> None:
        super().__init__(f"Unknown scripture collection: {collection}")
        self.collection = collection


class InvalidDateRangeError(BuildError):
    """Range start lies after range end."""

    pass


class InvalidQueryError(BuildError):
    """Empty query text, start index below 1 or an unsupported option."""

    pass


class InvalidUriError(BuildError):
    """Content URI does not match the allowed path format."""

    pass


class ExecutionError(GospelLibraryError):
    """Base exception for failures of the outbound call."""

    kind: ErrorKind

    def __init__(self, message: str, domain: str, status: int | None = None) -> None:
        super().__init__(message)
        self.domain = domain
        self.status = status


class TransportFailureError(ExecutionError):
    """Network-level failure (timeout, DNS, connection reset)."""

    kind = ErrorKind.TRANSPORT


class HttpStatusError(ExecutionError):
    """Backend answered with a 4xx/5xx status."""

    kind = ErrorKind.HTTP


class MalformedResponseError(ExecutionError):
    """Body does not parse as the declared content type."""

    kind = ErrorKind.MALFORMED


class RequestCancelledError(ExecutionError):
    """Call abandoned because its deadline expired."""

    kind = ErrorKind.CANCELLED
