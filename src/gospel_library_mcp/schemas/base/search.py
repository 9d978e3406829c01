"""Schemas for search requests and normalized search results."""

from datetime import date
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from gospel_library_mcp.utils.errors import ErrorKind


class Domain(str, Enum):
    """Content domains and endpoint families a search can target."""

    # Site-scoped variants of the vertex-search endpoint
    WEB = "web"
    GOSPEL_TOPICS = "gospel-topics"
    COME_FOLLOW_ME = "come-follow-me"
    GENERAL_HANDBOOK = "general-handbook"
    LIAHONA = "liahona"
    FOR_THE_STRENGTH_OF_YOUTH = "for-the-strength-of-youth"
    CHILDREN = "children"
    YA_WEEKLY = "ya-weekly"
    CHURCH_HISTORY = "church-history"
    BASIC_BELIEFS = "basic-beliefs"
    BYU_SPEECHES = "byu-speeches"
    SEMINARY = "seminary"
    MUSIC = "music"
    MEDIA_LIBRARY = "media-library"

    # Domains with a dedicated endpoint (and a vertex filter template)
    GENERAL_CONFERENCE = "general-conference"
    SCRIPTURES = "scriptures"
    NEWSROOM = "newsroom"

    # Endpoint families without a filter template
    ARCHIVE = "archive"
    VIDEO_METADATA = "video-metadata"
    SCRIPTURE_BOOKS = "scripture-books"
    SEARCH_STRINGS = "search-strings"
    CONTENT = "content"


class Endpoint(str, Enum):
    """Backend endpoint families, each with its own builder and normalizer."""

    VERTEX = "vertex-search"
    CONFERENCE = "general-conference-search"
    SCRIPTURE = "vertex-scripture-search"
    ARCHIVE = "content-search-service"
    NEWSROOM = "newsroom-search"
    VIDEO_METADATA = "video-metadata"
    SCRIPTURE_BOOKS = "scripture-books"
    SEARCH_STRINGS = "search-strings"
    CONTENT = "content"


class MediaType(str, Enum):
    """Result types of the multi-type search endpoint (``searchType``)."""

    WEB = "web"
    IMAGE = "image"
    VIDEO = "video"
    MUSIC = "music"
    PDF = "pdf"


class DateRange(BaseModel):
    """Inclusive date range; either end may be open."""

    start: date | None = Field(default=None, description="First day of the range")
    end: date | None = Field(default=None, description="Last day of the range")


class SearchQuery(BaseModel):
    """A caller's search intent, independent of the backend wire format.

    ``filters`` carries the family-specific options, e.g. ``search_type`` and
    ``language`` for vertex domains, ``collection`` for scriptures, ``source``
    or ``date_range`` for the archive, ``dates`` (a ``DateRange``) and
    ``speaker`` for conference search.
    """

    text: str = Field(description="Query text, must not be blank")
    domain: Domain = Field(description="Domain or endpoint family to search")
    start: int = Field(default=1, description="1-based index of the first hit")
    page_size: int | None = Field(
        default=None, description="Maximum number of hits to keep"
    )
    filters: dict[str, str | int | DateRange] = Field(
        default_factory=dict, description="Domain-specific options"
    )


class PreparedRequest(BaseModel):
    """A fully built outbound call. Immutable once built."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(description="Absolute URL including the query string")
    method: Literal["GET", "POST"] = Field(default="GET")
    body: str | None = Field(default=None, description="Serialized JSON body")
    domain: Domain = Field(description="Domain the request was built for")
    endpoint: Endpoint = Field(description="Endpoint family, selects the normalizer")
    accept: str = Field(default="application/json", description="Expected type")


class RawResponse(BaseModel):
    """Parsed response payload handed from the executor to a normalizer."""

    status_code: int
    body: Any = Field(description="Parsed JSON, or text for non-JSON responses")
    content_type: str = Field(default="")


class SearchHit(BaseModel):
    """One normalized search hit."""

    title: str = Field(description="Display title")
    snippet: str | None = Field(
        default=None,
        description="Snippet with highlight markers; None when the backend sent none",
    )
    url: str = Field(description="Link to the content")
    media_type: MediaType = Field(default=MediaType.WEB)
    metadata: dict[str, str] = Field(
        default_factory=dict, description="Backend-specific extra fields"
    )


class ErrorInfo(BaseModel):
    """Why a search produced no hits."""

    kind: ErrorKind
    message: str
    status: int | None = Field(default=None, description="HTTP status, if any")


class SearchResult(BaseModel):
    """Normalized result of any search endpoint.

    Check ``error`` before reading ``items``: a legitimate zero-hit result has
    ``items == []`` and ``error is None``.
    """

    domain: Domain
    items: list[SearchHit] = Field(
        default_factory=list, description="Hits in backend ranking order"
    )
    next_start: str | None = Field(
        default=None,
        description="Opaque cursor for the next page; None means no further pages",
    )
    total_estimate: int | None = Field(
        default=None, description="Backend's estimate of the total hit count"
    )
    corrected_query: str | None = Field(
        default=None, description="Spelling correction applied by the backend"
    )
    error: ErrorInfo | None = Field(default=None)

    @property
    def ok(self) -> bool:
        """True when the search completed without an execution error."""
        return self.error is None


class RoutedSearch(BaseModel):
    """Result of a routed search together with the routing decision."""

    query: str
    mode: str = Field(description="smart, comprehensive or specific")
    content_type: str = Field(description="Content type detected in the query")
    routed_to: Domain = Field(description="Domain of the primary search")
    confidence: float = Field(description="Confidence of the routing (0 to 1)")
    reasoning: str
    fallback_used: Domain | None = Field(
        default=None,
        description="Domain that answered after the primary came back empty",
    )
    results: list[SearchResult] = Field(
        default_factory=list,
        description="One result per searched domain; primary first",
    )
    suggestions: list[str] = Field(
        default_factory=list, description="Rewording hints when nothing was found"
    )
