"""Search facade: build, execute and normalize in one call.

``search`` is the entry point for callers holding a ``SearchQuery``. Input
errors raise ``BuildError`` before any network I/O; failures of the call
itself come back as ``SearchResult.error`` so that one failed domain never
hides the results of the others in ``search_many``.
"""

import asyncio
from datetime import date
import logging

from gospel_library_mcp.schemas.base.content import (
    ContentPage,
    StructureEntry,
    StructureListing,
)
from gospel_library_mcp.schemas.base.search import (
    DateRange,
    Domain,
    PreparedRequest,
    SearchQuery,
    SearchResult,
)
from gospel_library_mcp.utils.builders import (
    build_archive_request,
    build_conference_request,
    build_content_request,
    build_newsroom_request,
    build_scripture_books_request,
    build_scripture_request,
    build_search_strings_request,
    build_vertex_request,
    build_video_metadata_request,
)
from gospel_library_mcp.utils.errors import (
    ExecutionError,
    GospelLibraryError,
    InvalidQueryError,
)
from gospel_library_mcp.utils.executor import SearchExecutor
from gospel_library_mcp.utils.filters import FilterOptions
from gospel_library_mcp.utils.html import child_links
from gospel_library_mcp.utils.normalizers import (
    failed_result,
    normalize_content,
    normalize_response,
)

logger = logging.getLogger(__name__)

# Accepted SearchQuery.filters keys per endpoint family
VERTEX_FILTER_KEYS = frozenset(
    {
        "search_type",
        "filter",
        "language",
        "year",
        "edition",
        "subject",
        "order_by",
        "lang",
    }
)
CONFERENCE_FILTER_KEYS = frozenset(
    {
        "dates",
        "start_date",
        "end_date",
        "start_year",
        "end_year",
        "speaker",
        "order_by",
        "lang",
    }
)
SCRIPTURE_FILTER_KEYS = frozenset({"collection", "testament", "lang"})
ARCHIVE_FILTER_KEYS = frozenset(
    {"source", "author", "date_range", "dates", "sort", "book", "lang"}
)
LANG_ONLY_FILTER_KEYS = frozenset({"lang"})

MAX_BROWSE_DEPTH = 3
MAX_BROWSE_CHILDREN = 10


def _check_page_size(query: SearchQuery) -> None:
    if query.page_size is not None and query.page_size < 1:
        raise InvalidQueryError(
            f"page_size must be 1 or greater, got {query.page_size}"
        )


def _check_keys(query: SearchQuery, allowed: frozenset[str]) -> None:
    unknown = sorted(set(query.filters) - allowed)
    if unknown:
        raise InvalidQueryError(
            f"Unsupported filters for {query.domain.value}: {', '.join(unknown)}"
        )


def _str(query: SearchQuery, key: str) -> str | None:
    value = query.filters.get(key)
    if value is None:
        return None
    if isinstance(value, DateRange):
        raise InvalidQueryError(f"Filter {key} must be a string")
    return str(value)


def _int(query: SearchQuery, key: str) -> int | None:
    value = query.filters.get(key)
    if value is None:
        return None
    if isinstance(value, DateRange):
        raise InvalidQueryError(f"Filter {key} must be a number")
    try:
        return int(value)
    except ValueError as e:
        raise InvalidQueryError(f"Filter {key} must be a number: {value}") from e


def _dates(query: SearchQuery) -> tuple[date | str | None, date | str | None]:
    """Date bounds from ``dates`` (a DateRange) or ``start_date``/``end_date``."""
    value = query.filters.get("dates")
    if value is not None:
        if not isinstance(value, DateRange):
            raise InvalidQueryError("Filter dates must be a DateRange")
        return value.start, value.end
    return _str(query, "start_date"), _str(query, "end_date")


def build_request(query: SearchQuery) -> PreparedRequest:
    """Build the outbound request for a ``SearchQuery``.

    Site-scoped domains go to the multi-type endpoint with the domain's
    filter; conference, scripture, archive and newsroom queries use their
    dedicated endpoints. For archive and newsroom, ``start`` is the page
    number.

    Raises:
        BuildError: If the query or one of its filters is invalid
    """
    domain = query.domain
    lang = _str(query, "lang")

    if domain is Domain.GENERAL_CONFERENCE:
        _check_keys(query, CONFERENCE_FILTER_KEYS)
        start_date, end_date = _dates(query)
        start_year = _int(query, "start_year")
        end_year = _int(query, "end_year")
        return build_conference_request(
            query.text,
            start=query.start,
            start_date=start_date
            or (date(start_year, 1, 1) if start_year is not None else None),
            end_date=end_date
            or (date(end_year, 12, 31) if end_year is not None else None),
            speaker=_str(query, "speaker"),
            order_by=_str(query, "order_by"),
            lang=lang,
        )

    if domain is Domain.SCRIPTURES:
        _check_keys(query, SCRIPTURE_FILTER_KEYS)
        return build_scripture_request(
            query.text,
            collection=_str(query, "collection"),
            testament=_str(query, "testament"),
            start=query.start,
            lang=lang,
        )

    if domain is Domain.ARCHIVE:
        _check_keys(query, ARCHIVE_FILTER_KEYS)
        begin_date, end_date = _dates(query)
        return build_archive_request(
            query.text,
            source=_int(query, "source"),
            author=_str(query, "author"),
            date_range=_str(query, "date_range"),
            begin_date=begin_date,
            end_date=end_date,
            sort=_str(query, "sort"),
            book=_int(query, "book"),
            page=query.start,
            lang=lang,
        )

    if domain is Domain.NEWSROOM:
        _check_keys(query, LANG_ONLY_FILTER_KEYS)
        return build_newsroom_request(query.text, page=query.start, lang=lang)

    if domain is Domain.VIDEO_METADATA:
        _check_keys(query, LANG_ONLY_FILTER_KEYS)
        return build_video_metadata_request(query.text, lang=lang)

    if domain is Domain.SCRIPTURE_BOOKS:
        _check_keys(query, LANG_ONLY_FILTER_KEYS)
        return build_scripture_books_request(lang)

    if domain is Domain.SEARCH_STRINGS:
        _check_keys(query, LANG_ONLY_FILTER_KEYS)
        return build_search_strings_request(lang)

    if domain is Domain.CONTENT:
        raise InvalidQueryError("Content pages are fetched with fetch_content_page")

    _check_keys(query, VERTEX_FILTER_KEYS)
    return build_vertex_request(
        query.text,
        search_type=_str(query, "search_type") or "web",
        start=query.start,
        filter_expression=_str(query, "filter"),
        domain=domain,
        filter_options=FilterOptions(
            language=_str(query, "language"),
            year=_int(query, "year"),
            edition=_str(query, "edition"),
            subject=_str(query, "subject"),
        ),
        order_by=_str(query, "order_by"),
        lang=lang,
    )


async def run_search(
    executor: SearchExecutor,
    request: PreparedRequest,
    page_size: int | None = None,
) -> SearchResult:
    """Execute a prepared request and normalize the response.

    Execution failures (including malformed payloads) become
    ``SearchResult.error``; ``asyncio.CancelledError`` propagates.
    """
    try:
        raw = await executor.execute(request)
        result = normalize_response(request, raw)
    except ExecutionError as e:
        logger.info(f"Search in {request.domain.value} failed: {e.kind.value}")
        return failed_result(request.domain, e)

    if page_size is not None:
        result.items = result.items[:page_size]
    return result


async def search(executor: SearchExecutor, query: SearchQuery) -> SearchResult:
    """Run one search.

    Args:
        executor: Executor wrapping the shared HTTP client
        query: What to search for

    Returns:
        Normalized result; check ``result.error`` before reading ``items``

    Raises:
        BuildError: If the query is invalid (nothing is sent)
    """
    _check_page_size(query)
    request = build_request(query)
    return await run_search(executor, request, query.page_size)


async def search_many(
    executor: SearchExecutor, queries: list[SearchQuery]
) -> list[SearchResult]:
    """Run independent searches concurrently, results in input order.

    All requests are built before the first one is sent, so an invalid query
    fails the batch without any network I/O.
    """
    for query in queries:
        _check_page_size(query)
    requests = [build_request(query) for query in queries]
    return list(
        await asyncio.gather(
            *(
                run_search(executor, request, query.page_size)
                for request, query in zip(requests, queries, strict=True)
            )
        )
    )


async def fetch_content_page(
    executor: SearchExecutor, uri: str, lang: str | None = None
) -> ContentPage:
    """Fetch one content page by its path.

    Raises:
        InvalidUriError: If the path is not valid
        ExecutionError: If the fetch fails
    """
    request = build_content_request(uri, lang=lang)
    raw = await executor.execute(request)
    return normalize_content(raw, uri)


def _entries(page: ContentPage, limit: int | None = None) -> list[StructureEntry]:
    links = child_links(page.body_html, page.uri)
    return [StructureEntry(uri=path, title=title) for path, title in links[:limit]]


async def _expand(
    executor: SearchExecutor, entry: StructureEntry, lang: str | None, depth: int
) -> None:
    """Fill the children of an entry; a failed fetch leaves them empty."""
    try:
        page = await fetch_content_page(executor, entry.uri, lang)
    except GospelLibraryError as e:
        logger.warning(f"Browsing {entry.uri} failed: {e}")
        return

    entry.children = _entries(page, MAX_BROWSE_CHILDREN)
    if depth > 1:
        await asyncio.gather(
            *(_expand(executor, child, lang, depth - 1) for child in entry.children)
        )


async def browse_structure(
    executor: SearchExecutor, uri: str, lang: str | None = None, depth: int = 1
) -> StructureListing:
    """List the pages below a content path.

    Children are the links of the page body that lead one level further
    down. With ``depth`` > 1 each child is fetched in turn and its first
    children are attached.

    Args:
        executor: Executor wrapping the shared HTTP client
        uri: Content path, e.g. "/scriptures/bofm" or "/general-conference/2024/10"
        lang: Language code (default from settings)
        depth: Levels to list, 1 to MAX_BROWSE_DEPTH

    Returns:
        StructureListing of the page

    Raises:
        InvalidQueryError: If depth is out of range
        InvalidUriError: If the path is not valid
        ExecutionError: If the page itself cannot be fetched
    """
    if not 1 <= depth <= MAX_BROWSE_DEPTH:
        raise InvalidQueryError(
            f"depth must be between 1 and {MAX_BROWSE_DEPTH}, got {depth}"
        )

    page = await fetch_content_page(executor, uri, lang)
    entries = _entries(page)
    if depth > 1:
        await asyncio.gather(
            *(_expand(executor, entry, lang, depth - 1) for entry in entries)
        )
    return StructureListing(uri=uri, title=page.title, entries=entries)
