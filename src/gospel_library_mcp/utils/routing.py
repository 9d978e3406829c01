"""Routed search: pick the endpoint that fits a free-text query.

``route_query`` reads the wording of a query (scripture references, speaker
names, conference, manual, media or magazine terms) and decides which
endpoint answers it best, with fallback queries for when the first choice
comes back empty. ``routed_search`` runs the decision in one of three modes:

- ``smart``: primary search, then the fallbacks in order until one has hits
- ``comprehensive``: primary and fallbacks concurrently
- ``specific``: one caller-chosen endpoint, no routing
"""

from dataclasses import dataclass
from datetime import date
from enum import Enum
import logging
import re
from typing import Any

from gospel_library_mcp.schemas.base.search import (
    Domain,
    RoutedSearch,
    SearchQuery,
    SearchResult,
)
from gospel_library_mcp.utils.builders import ARCHIVE_DATE_RANGES
from gospel_library_mcp.utils.errors import InvalidQueryError
from gospel_library_mcp.utils.executor import SearchExecutor
from gospel_library_mcp.utils.filters import SITE
from gospel_library_mcp.utils.search import search, search_many

logger = logging.getLogger(__name__)

SEARCH_MODES = ("smart", "comprehensive", "specific")


class ContentType(str, Enum):
    """Kind of content a query asks for."""

    CONFERENCE = "conference"
    SCRIPTURE = "scripture"
    MANUAL = "manual"
    MAGAZINE = "magazine"
    MEDIA = "media"
    HANDBOOK = "handbook"
    UNKNOWN = "unknown"


SCRIPTURE_BOOKS = (
    "genesis",
    "exodus",
    "leviticus",
    "numbers",
    "deuteronomy",
    "matthew",
    "mark",
    "luke",
    "john",
    "acts",
    "romans",
    "1 nephi",
    "2 nephi",
    "jacob",
    "enos",
    "jarom",
    "omni",
    "mosiah",
    "alma",
    "helaman",
    "mormon",
    "ether",
    "moroni",
    "doctrine and covenants",
    "d&c",
    "pearl of great price",
    "moses",
    "abraham",
    "joseph smith",
)

# Books that appear in references like "Alma 32" or "John 3:16"
REFERENCE_BOOKS = (
    "genesis",
    "exodus",
    "leviticus",
    "numbers",
    "deuteronomy",
    "matthew",
    "mark",
    "luke",
    "john",
    "acts",
    "romans",
    "jacob",
    "enos",
    "jarom",
    "omni",
    "mosiah",
    "alma",
    "helaman",
    "mormon",
    "ether",
    "moroni",
)

# Full names first: the first match is the detected speaker
SPEAKERS = (
    "russell m. nelson",
    "russell m nelson",
    "dallin h. oaks",
    "dallin h oaks",
    "henry b. eyring",
    "henry b eyring",
    "jeffrey r. holland",
    "jeffrey r holland",
    "dieter f. uchtdorf",
    "dieter f uchtdorf",
    "david a. bednar",
    "david a bednar",
    "quentin l. cook",
    "quentin l cook",
    "d. todd christofferson",
    "d todd christofferson",
    "president nelson",
    "elder nelson",
    "president oaks",
    "elder oaks",
    "nelson",
    "oaks",
    "eyring",
    "holland",
    "uchtdorf",
    "bednar",
    "cook",
    "christofferson",
)

MANUAL_TERMS = (
    "come follow me",
    "come, follow me",
    "general handbook",
    "for the strength of youth",
    "handbook",
    "lesson",
    "manual",
    "curriculum",
    "teaching",
    "study guide",
)
DATE_TERMS = (
    "recent",
    "latest",
    "current",
    "this year",
    "last year",
    "april",
    "october",
    "conference",
)
MEDIA_TERMS = ("video", "audio", "music", "hymn", "song", "image", "picture", "pdf")
MAGAZINE_TERMS = ("liahona", "friend", "ensign", "magazine", "article")
POLICY_TERMS = ("policy", "procedure")

# Archive collection per content type
ARCHIVE_SOURCE_BY_TYPE = {
    ContentType.CONFERENCE: 47,
    ContentType.SCRIPTURE: 48,
    ContentType.MAGAZINE: 46,
    ContentType.MEDIA: 44,
    ContentType.HANDBOOK: 43,
    ContentType.MANUAL: 45,
}

# Endpoint names accepted in specific mode
FORCED_ENDPOINTS = {
    "conference": Domain.GENERAL_CONFERENCE,
    "scriptures": Domain.SCRIPTURES,
    "archive": Domain.ARCHIVE,
    "vertex": Domain.WEB,
    "come-follow-me": Domain.COME_FOLLOW_ME,
    "handbook": Domain.GENERAL_HANDBOOK,
    "seminary": Domain.SEMINARY,
}

MANUAL_FILTER = f'siteSearch:"{SITE}/study/manual*"'

_YEAR_RE = re.compile(r"\b(20\d{2})\b")
_REFERENCE_PATTERNS = (
    re.compile(r"\d+\s+nephi\s+\d+"),
    re.compile(r"d&c\s+\d+"),
    re.compile(rf"\b({'|'.join(REFERENCE_BOOKS)})\s+\d+"),
    re.compile(r"doctrine\s+and\s+covenants\s+\d+"),
)


def _contains(text: str, term: str) -> bool:
    """Whole-word containment; ``term`` may contain spaces or punctuation."""
    return re.search(rf"(?<![a-z0-9]){re.escape(term)}(?![a-z0-9])", text) is not None


def _any(text: str, terms: tuple[str, ...]) -> bool:
    return any(_contains(text, term) for term in terms)


@dataclass(frozen=True)
class QueryAnalysis:
    """What the wording of a query reveals.

    Attributes:
        content_type: Detected kind of content
        has_quotes: Whether the query contains an exact phrase
        has_date_terms: Years, months or relative terms like "recent"
        speaker: First known speaker name found, lower-cased
        has_scripture_reference: References like "Alma 32" or "D&C 76"
        has_book_names: Scripture book names anywhere in the query
        year: First year (20xx) found
    """

    content_type: ContentType
    has_quotes: bool
    has_date_terms: bool
    speaker: str | None
    has_scripture_reference: bool
    has_book_names: bool
    year: int | None


@dataclass(frozen=True)
class Route:
    """A routing decision: the primary query and its fallbacks."""

    query: SearchQuery
    confidence: float
    reasoning: str
    fallbacks: tuple[SearchQuery, ...] = ()


def _content_type(
    text: str, speaker: str | None, has_reference: bool, has_books: bool
) -> ContentType:
    # Speakers win over book names ("Elder Holland on Alma 32" is a talk)
    if speaker or _any(text, ("conference", "talk")):
        return ContentType.CONFERENCE
    if has_books or has_reference:
        return ContentType.SCRIPTURE
    if _any(text, MANUAL_TERMS):
        return ContentType.MANUAL
    if _any(text, MEDIA_TERMS):
        return ContentType.MEDIA
    if _any(text, ("liahona", "friend", "magazine")):
        return ContentType.MAGAZINE
    if _any(text, POLICY_TERMS):
        return ContentType.HANDBOOK
    return ContentType.UNKNOWN


def analyze_query(text: str) -> QueryAnalysis:
    """Classify a query by its wording."""
    lower = text.lower()
    speaker = next((s for s in SPEAKERS if _contains(lower, s)), None)
    has_reference = any(p.search(lower) for p in _REFERENCE_PATTERNS)
    has_books = _any(lower, SCRIPTURE_BOOKS)
    year_match = _YEAR_RE.search(lower)

    return QueryAnalysis(
        content_type=_content_type(lower, speaker, has_reference, has_books),
        has_quotes='"' in text,
        has_date_terms=year_match is not None or _any(lower, DATE_TERMS),
        speaker=speaker,
        has_scripture_reference=has_reference,
        has_book_names=has_books,
        year=int(year_match.group(1)) if year_match else None,
    )


def scripture_collection(text: str) -> tuple[str | None, str | None]:
    """Collection and testament a scripture query points at."""
    lower = text.lower()
    if _contains(lower, "book of mormon") or _any(
        lower, ("nephi", "alma", "mosiah", "helaman")
    ):
        return "The Book of Mormon", None
    if _any(lower, ("doctrine and covenants", "d&c")):
        return "The Doctrine and Covenants", None

    testament = None
    if _any(lower, ("genesis", "exodus", "psalms", "isaiah", "jeremiah")):
        testament = "Old Testament"
    elif _any(lower, ("matthew", "mark", "luke", "john", "romans", "revelation")):
        testament = "New Testament"
    if testament or _contains(lower, "bible"):
        return "The Holy Bible", testament

    if _any(lower, ("pearl of great price", "moses", "abraham")):
        return "The Pearl of Great Price", None
    return None, None


def year_range(text: str, today: date) -> tuple[int, int] | None:
    """Conference years a query refers to."""
    lower = text.lower()
    match = _YEAR_RE.search(lower)
    if match:
        year = int(match.group(1))
        return year, year
    if _any(lower, ("recent", "latest", "current")):
        return today.year - 2, today.year
    if _contains(lower, "last year"):
        return today.year - 1, today.year - 1
    if _contains(lower, "this year"):
        return today.year, today.year
    return None


def archive_date_range(text: str, today: date) -> str | None:
    """Archive ``dateRange`` token a query refers to."""
    lower = text.lower()
    match = _YEAR_RE.search(lower)
    if match:
        age = today.year - int(match.group(1))
        if age < 0:
            return None
        if age == 0:
            return "past-6-months"
        if age == 1:
            return "past-12-months"
        if age <= 5:
            return "past-5-years"
        if age <= 10:
            return "past-10-years"
        decade = int(match.group(1)) // 10 * 10
        token = f"{decade}-{decade + 9}"
        return token if token in ARCHIVE_DATE_RANGES else None

    if _any(lower, ("last conference", "previous conference")):
        return "past-6-months"
    if _any(lower, ("recent", "latest", "current", "last year", "past year")):
        return "past-12-months"
    if _contains(lower, "past 5 years"):
        return "past-5-years"
    if _contains(lower, "past 10 years"):
        return "past-10-years"
    return None


def _media_type(text: str) -> str:
    lower = text.lower()
    if _contains(lower, "video"):
        return "video"
    if _any(lower, ("audio", "music", "hymn", "song")):
        return "music"
    if _any(lower, ("image", "picture")):
        return "image"
    if _contains(lower, "pdf"):
        return "pdf"
    return "web"


def _query(text: str, domain: Domain, **filters: Any) -> SearchQuery:
    return SearchQuery(
        text=text,
        domain=domain,
        filters={key: value for key, value in filters.items() if value is not None},
    )


def _archive(text: str, content_type: ContentType, **filters: Any) -> SearchQuery:
    """Archive query restricted to the collection of a content type."""
    return _query(
        text, Domain.ARCHIVE, source=ARCHIVE_SOURCE_BY_TYPE[content_type], **filters
    )


def route_query(
    text: str, content_hint: str | None = None, today: date | None = None
) -> Route:
    """Decide which endpoint answers a query best.

    Args:
        text: Free-text query
        content_hint: Content type to assume when the wording is inconclusive
            ("conference", "scripture", "manual", "magazine" or "media")
        today: Reference date for relative terms like "recent"

    Returns:
        Route with the primary query and its fallbacks

    Raises:
        InvalidQueryError: If the content hint is unknown
    """
    today = today or date.today()
    analysis = analyze_query(text)
    content_type = analysis.content_type
    if content_type is ContentType.UNKNOWN and content_hint:
        try:
            content_type = ContentType(content_hint)
        except ValueError as e:
            raise InvalidQueryError(f"Unknown content hint: {content_hint}") from e
    lower = text.lower()

    if content_type is ContentType.SCRIPTURE:
        collection, testament = scripture_collection(text)
        return Route(
            query=_query(
                text, Domain.SCRIPTURES, collection=collection, testament=testament
            ),
            confidence=0.9,
            reasoning="Query contains scripture references or book names",
            fallbacks=(_archive(text, ContentType.SCRIPTURE),),
        )

    if content_type is ContentType.CONFERENCE:
        if analysis.speaker:
            return Route(
                query=_archive(
                    text,
                    ContentType.CONFERENCE,
                    author=analysis.speaker,
                    date_range=archive_date_range(text, today) or "past-12-months",
                ),
                confidence=0.9,
                reasoning="Query names a speaker; archive search filters by author",
                fallbacks=(
                    _query(text, Domain.GENERAL_CONFERENCE, speaker=analysis.speaker),
                    _query(text, Domain.WEB),
                ),
            )
        years = year_range(text, today)
        return Route(
            query=_query(
                text,
                Domain.GENERAL_CONFERENCE,
                start_year=years[0] if years else None,
                end_year=years[1] if years else None,
            ),
            confidence=0.85,
            reasoning="Query mentions conference terms or conference dates",
            fallbacks=(
                _archive(text, ContentType.CONFERENCE, date_range="past-12-months"),
            ),
        )

    if content_type is ContentType.HANDBOOK or _contains(lower, "handbook"):
        return Route(
            query=_query(text, Domain.GENERAL_HANDBOOK),
            confidence=0.8,
            reasoning="Query mentions the General Handbook or policy terms",
            fallbacks=(_query(text, Domain.WEB), _archive(text, ContentType.HANDBOOK)),
        )

    if content_type is ContentType.MANUAL:
        if _any(lower, ("come follow me", "come, follow me")):
            return Route(
                query=_query(text, Domain.COME_FOLLOW_ME),
                confidence=0.8,
                reasoning="Query mentions Come, Follow Me",
                fallbacks=(
                    _query(text, Domain.WEB),
                    _archive(text, ContentType.MANUAL),
                ),
            )
        return Route(
            query=_query(text, Domain.WEB, filter=MANUAL_FILTER),
            confidence=0.7,
            reasoning="Query mentions manual or lesson content",
            fallbacks=(_archive(text, ContentType.MANUAL),),
        )

    if content_type is ContentType.MEDIA:
        media_type = _media_type(text)
        return Route(
            query=_query(text, Domain.WEB, search_type=media_type),
            confidence=0.75,
            reasoning=f"Query asks for {media_type} content",
            fallbacks=(_archive(text, ContentType.MEDIA),),
        )

    if content_type is ContentType.MAGAZINE or _any(lower, MAGAZINE_TERMS):
        return Route(
            query=_archive(
                text,
                ContentType.MAGAZINE,
                date_range=archive_date_range(text, today),
            ),
            confidence=0.7,
            reasoning="Query mentions magazine names or articles",
            fallbacks=(_query(text, Domain.ARCHIVE),),
        )

    return Route(
        query=_query(text, Domain.ARCHIVE),
        confidence=0.6,
        reasoning="General query; searching the whole archive",
        fallbacks=(_query(text, Domain.WEB),),
    )


def search_suggestions(analysis: QueryAnalysis) -> list[str]:
    """Rewording hints for a query that found nothing."""
    suggestions = []
    if analysis.has_quotes:
        suggestions.append("Try removing quotes for broader search results")
    else:
        suggestions.append("Use quotes around phrases for exact matches")

    if analysis.content_type is ContentType.UNKNOWN:
        suggestions.append(
            'Try adding specific terms like "conference", "scripture" or "manual"'
        )
        suggestions.append("Search one collection with the specialized search tools")

    if not analysis.has_date_terms and analysis.content_type in (
        ContentType.CONFERENCE,
        ContentType.MAGAZINE,
    ):
        suggestions.append(
            'Add date terms like "recent", a year or "past 5 years" to narrow results'
        )
    suggestions.append('Use mode="comprehensive" to search several endpoints')
    return suggestions


def _has_hits(result: SearchResult) -> bool:
    return result.error is None and bool(result.items)


def _forced_route(text: str, force_endpoint: str | None) -> Route:
    if force_endpoint is None:
        raise InvalidQueryError("Mode 'specific' requires force_endpoint")
    domain = FORCED_ENDPOINTS.get(force_endpoint)
    if domain is None:
        raise InvalidQueryError(
            f"Unknown endpoint: {force_endpoint} "
            f"(expected one of {', '.join(FORCED_ENDPOINTS)})"
        )
    return Route(
        query=SearchQuery(text=text, domain=domain),
        confidence=1.0,
        reasoning=f"Endpoint chosen by the caller: {force_endpoint}",
    )


async def routed_search(
    executor: SearchExecutor,
    text: str,
    *,
    mode: str = "smart",
    force_endpoint: str | None = None,
    content_hint: str | None = None,
    limit: int = 20,
    today: date | None = None,
) -> RoutedSearch:
    """Search the endpoint that fits the query best.

    Args:
        executor: Executor wrapping the shared HTTP client
        text: Free-text query
        mode: "smart", "comprehensive" or "specific"
        force_endpoint: Endpoint for mode "specific", a key of FORCED_ENDPOINTS
        content_hint: Content type to assume when the wording is inconclusive
        limit: Maximum number of hits per searched domain
        today: Reference date for relative terms like "recent"

    Returns:
        RoutedSearch; suggestions are filled when no search found anything

    Raises:
        BuildError: Invalid mode, endpoint, hint, limit or query text
    """
    if mode not in SEARCH_MODES:
        raise InvalidQueryError(f"Unknown search mode: {mode}")

    analysis = analyze_query(text)
    if mode == "specific":
        route = _forced_route(text, force_endpoint)
    else:
        route = route_query(text, content_hint, today)

    primary = route.query.model_copy(update={"page_size": limit})
    fallbacks = [q.model_copy(update={"page_size": limit}) for q in route.fallbacks]
    logger.info(
        f"Routing to {primary.domain.value} ({route.confidence:.0%}, mode {mode})"
    )

    fallback_used = None
    if mode == "comprehensive":
        results = await search_many(executor, [primary, *fallbacks])
    else:
        results = [await search(executor, primary)]
        if not _has_hits(results[0]):
            for fallback in fallbacks:
                result = await search(executor, fallback)
                if _has_hits(result):
                    logger.info(f"Fallback {fallback.domain.value} found results")
                    results = [results[0], result]
                    fallback_used = fallback.domain
                    break

    found = any(_has_hits(result) for result in results)
    return RoutedSearch(
        query=text,
        mode=mode,
        content_type=analysis.content_type.value,
        routed_to=primary.domain,
        confidence=route.confidence,
        reasoning=route.reasoning,
        fallback_used=fallback_used,
        results=results,
        suggestions=[] if found else search_suggestions(analysis),
    )
