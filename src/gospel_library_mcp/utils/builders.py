"""Request builders for the Gospel Library search endpoints.

One builder per endpoint family. Each validates its inputs first and raises a
``BuildError`` before anything is sent; the returned ``PreparedRequest`` fully
determines the outbound call.

Wire formats differ per backend and must be reproduced exactly: a wrong
parameter name makes the backend silently return zero hits instead of an
error.
"""

from datetime import date
import json
import re

import httpx

from gospel_library_mcp.config.base import settings
from gospel_library_mcp.schemas.base.search import (
    Domain,
    Endpoint,
    MediaType,
    PreparedRequest,
)
from gospel_library_mcp.utils.errors import (
    InvalidDateRangeError,
    InvalidQueryError,
    InvalidUriError,
    UnknownCollectionError,
    UnknownDomainError,
)
from gospel_library_mcp.utils.filters import FilterOptions, build_filter, speaker_slug

SCRIPTURE_COLLECTIONS = (
    "The Holy Bible",
    "The Book of Mormon",
    "The Doctrine and Covenants",
    "The Pearl of Great Price",
)
TESTAMENTS = ("Old Testament", "New Testament")

ORDER_BY_VALUES = ("", "relevance", "date")

# content-search-service collection ids
ARCHIVE_SOURCES = {
    43: "Callings",
    44: "Media",
    45: "Other",
    46: "Magazines",
    47: "General Conference",
    48: "Scriptures",
    60: "Hymns for Home and Church",
}
ARCHIVE_BOOKS = {
    73: "Book of Mormon",
    74: "Doctrine and Covenants",
    75: "New Testament",
    76: "Old Testament",
    77: "Pearl of Great Price",
}
ARCHIVE_DATE_RANGES = (
    "any-date",
    "past-6-months",
    "past-12-months",
    "past-5-years",
    "past-10-years",
    "2010-2019",
    "2000-2009",
    "1990-1999",
    "1980-1989",
    "1970-1979",
    "custom-date-range",
)
ARCHIVE_SORTS = ("book", "relevance")

CONTENT_URI_PATTERN = re.compile(r"^/[a-zA-Z0-9\-_/]+$")
MAX_CONTENT_URI_LENGTH = 500


def _domain(value: Domain | str) -> Domain:
    try:
        return Domain(value)
    except ValueError as e:
        raise UnknownDomainError(value) from e


def _require_text(text: str | None) -> str:
    if text is None or not text.strip():
        raise InvalidQueryError("Query text must not be empty")
    return text.strip()


def _require_start(start: int, name: str = "start") -> None:
    if start < 1:
        raise InvalidQueryError(f"{name} must be 1 or greater, got {start}")


def _as_date(value: date | str | None, name: str) -> date | None:
    """Accept a date or an ISO-8601 string."""
    if value is None or isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except ValueError as e:
        raise InvalidQueryError(f"{name} is not an ISO-8601 date: {value}") from e


def _check_range(start: date | None, end: date | None) -> None:
    if start is not None and end is not None and start > end:
        raise InvalidDateRangeError(
            f"start date {start.isoformat()} lies after end date {end.isoformat()}"
        )


def _order_by(order_by: str | None) -> str:
    """Map the caller's sort order to the backend value ("" is relevance)."""
    value = order_by or ""
    if value not in ORDER_BY_VALUES:
        raise InvalidQueryError(f"Unsupported sort order: {order_by}")
    return "" if value == "relevance" else value


def _proxy_url(path: str, params: dict[str, str | int]) -> str:
    return str(httpx.URL(f"{settings.search_proxy_url}/{path}", params=params))


def build_vertex_request(
    text: str,
    *,
    search_type: MediaType | str = MediaType.WEB,
    start: int = 1,
    filter_expression: str | None = None,
    domain: Domain | str | None = None,
    filter_options: FilterOptions | None = None,
    order_by: str | None = "",
    lang: str | None = None,
) -> PreparedRequest:
    """Build a request for the multi-type ``vertex-search`` endpoint.

    Args:
        text: Query text; quotes mark exact phrases
        search_type: One of web, image, video, music, pdf
        start: 1-based index of the first hit
        filter_expression: Ready-made filter; wins over ``domain``
        domain: Domain whose filter template is rendered
        filter_options: Options for the domain's filter template
        order_by: "" or "relevance" for relevance, "date" for newest first
        lang: Language code (default from settings)

    Raises:
        InvalidQueryError: Empty text, start < 1, unknown search type or
            neither a filter nor a domain given
        UnknownDomainError: If ``domain`` has no filter template
    """
    query = _require_text(text)
    _require_start(start)
    try:
        media_type = MediaType(search_type)
    except ValueError as e:
        raise InvalidQueryError(f"Unsupported search type: {search_type}") from e

    if filter_expression:
        filter_string = filter_expression
        request_domain = _domain(domain) if domain else Domain.WEB
    elif domain is not None:
        filter_string = build_filter(domain, filter_options)
        request_domain = _domain(domain)
    else:
        raise InvalidQueryError("Either a filter expression or a domain is required")

    params: dict[str, str | int] = {
        "q": query,
        "start": start,
        "searchType": media_type.value,
        "filter": filter_string,
        "orderBy": _order_by(order_by),
        "lang": lang or settings.default_lang,
    }
    return PreparedRequest(
        url=_proxy_url("vertex-search", params),
        domain=request_domain,
        endpoint=Endpoint.VERTEX,
    )


def build_conference_request(
    text: str,
    *,
    start: int = 1,
    start_date: date | str | None = None,
    end_date: date | str | None = None,
    speaker: str | None = None,
    order_by: str | None = "",
    lang: str | None = None,
    today: date | None = None,
) -> PreparedRequest:
    """Build a POST request for ``general-conference-search``.

    The body carries the query, the 0-based offset, a filter restricted to
    the conference sessions of the covered years and, when given, the ISO
    dates. Without dates the last ``conference_years_back`` years are covered.

    Raises:
        InvalidQueryError: Empty text, start < 1 or a non-ISO date
        InvalidDateRangeError: If start_date lies after end_date
    """
    query = _require_text(text)
    _require_start(start)
    begin = _as_date(start_date, "start_date")
    end = _as_date(end_date, "end_date")
    _check_range(begin, end)

    current_year = (today or date.today()).year
    if end:
        end_year = end.year
    else:
        end_year = max(current_year, begin.year) if begin else current_year
    start_year = begin.year if begin else end_year - settings.conference_years_back

    filter_string = build_filter(
        Domain.GENERAL_CONFERENCE,
        FilterOptions(
            language=lang,
            start_year=start_year,
            end_year=end_year,
            speaker=speaker,
        ),
    )

    payload: dict[str, str | int] = {
        "query": query,
        "start": start - 1,
        "filter": filter_string,
        "orderBy": _order_by(order_by),
        "sort": "",
    }
    if begin:
        payload["startDate"] = begin.isoformat()
    if end:
        payload["endDate"] = end.isoformat()

    return PreparedRequest(
        url=f"{settings.search_proxy_url}/general-conference-search",
        method="POST",
        body=json.dumps(payload),
        domain=Domain.GENERAL_CONFERENCE,
        endpoint=Endpoint.CONFERENCE,
    )


def build_scripture_request(
    text: str,
    *,
    collection: str | None = None,
    testament: str | None = None,
    start: int = 1,
    lang: str | None = None,
) -> PreparedRequest:
    """Build a verse-level request for ``vertex-scripture-search``.

    Raises:
        InvalidQueryError: Empty text, start < 1 or a testament outside the Bible
        UnknownCollectionError: If ``collection`` is not a known volume
    """
    query = _require_text(text)
    _require_start(start)
    if collection is not None and collection not in SCRIPTURE_COLLECTIONS:
        raise UnknownCollectionError(collection)
    if testament is not None:
        if testament not in TESTAMENTS:
            raise InvalidQueryError(f"Unknown testament: {testament}")
        if collection not in (None, "The Holy Bible"):
            raise InvalidQueryError("testament only applies to The Holy Bible")

    params: dict[str, str | int] = {
        "q": query,
        "start": start - 1,
        "lang": lang or settings.default_lang,
    }
    if collection:
        params["collectionName"] = collection
    if testament:
        params["testament"] = testament

    return PreparedRequest(
        url=_proxy_url("vertex-scripture-search", params),
        domain=Domain.SCRIPTURES,
        endpoint=Endpoint.SCRIPTURE,
    )


def build_archive_request(
    text: str,
    *,
    source: int | None = None,
    author: str | None = None,
    date_range: str | None = None,
    begin_date: date | str | None = None,
    end_date: date | str | None = None,
    sort: str | None = None,
    book: int | None = None,
    page: int = 1,
    lang: str | None = None,
) -> PreparedRequest:
    """Build a request for ``content-search-service`` (the archive search).

    Only the filters that are given are serialized. Custom dates imply
    ``dateRange=custom-date-range``.

    Raises:
        InvalidQueryError: Empty text, page < 1, unknown date range token,
            unknown sort order or custom dates with a predefined range
        InvalidDateRangeError: If begin_date lies after end_date
    """
    query = _require_text(text)
    _require_start(page, "page")
    begin = _as_date(begin_date, "begin_date")
    end = _as_date(end_date, "end_date")
    _check_range(begin, end)

    if (begin or end) and date_range is None:
        date_range = "custom-date-range"
    if date_range is not None and date_range not in ARCHIVE_DATE_RANGES:
        raise InvalidQueryError(f"Unknown date range: {date_range}")
    if (begin or end) and date_range != "custom-date-range":
        raise InvalidQueryError("Custom dates require dateRange=custom-date-range")
    if sort is not None and sort not in ARCHIVE_SORTS:
        raise InvalidQueryError(f"Unsupported archive sort: {sort}")

    params: dict[str, str | int] = {
        "query": query,
        "page": page,
        "lang": lang or settings.default_lang,
    }
    if source is not None:
        params["source"] = source
    if author:
        params["author"] = speaker_slug(author)
    if date_range:
        params["dateRange"] = date_range
    if begin:
        params["beginDate"] = begin.isoformat()
    if end:
        params["endDate"] = end.isoformat()
    if sort:
        params["sort"] = sort
    if book is not None:
        params["book"] = book

    return PreparedRequest(
        url=_proxy_url("content-search-service", params),
        domain=Domain.ARCHIVE,
        endpoint=Endpoint.ARCHIVE,
    )


def build_newsroom_request(
    text: str, *, page: int = 1, lang: str | None = None
) -> PreparedRequest:
    """Build a request for ``newsroom-search``."""
    query = _require_text(text)
    _require_start(page, "page")
    params: dict[str, str | int] = {
        "query": query,
        "page": page,
        "lang": lang or settings.default_lang,
    }
    return PreparedRequest(
        url=_proxy_url("newsroom-search", params),
        domain=Domain.NEWSROOM,
        endpoint=Endpoint.NEWSROOM,
    )


def build_video_metadata_request(
    video_id: str, *, lang: str | None = None
) -> PreparedRequest:
    """Build a metadata lookup for one video."""
    if not video_id or not video_id.strip():
        raise InvalidQueryError("video_id must not be empty")
    params: dict[str, str | int] = {
        "id": video_id.strip(),
        "lang": lang or settings.default_lang,
    }
    return PreparedRequest(
        url=_proxy_url("video-metadata", params),
        domain=Domain.VIDEO_METADATA,
        endpoint=Endpoint.VIDEO_METADATA,
    )


def build_scripture_books_request(lang: str | None = None) -> PreparedRequest:
    """Build the listing of scripture books for a locale."""
    return PreparedRequest(
        url=_proxy_url("scripture-books", {"lang": lang or settings.default_lang}),
        domain=Domain.SCRIPTURE_BOOKS,
        endpoint=Endpoint.SCRIPTURE_BOOKS,
    )


def build_search_strings_request(lang: str | None = None) -> PreparedRequest:
    """Build the listing of localized search strings for a locale."""
    return PreparedRequest(
        url=_proxy_url("search-strings", {"lang": lang or settings.default_lang}),
        domain=Domain.SEARCH_STRINGS,
        endpoint=Endpoint.SEARCH_STRINGS,
    )


def build_content_request(uri: str, *, lang: str | None = None) -> PreparedRequest:
    """Build a content page fetch, e.g. for ``/scriptures/bofm/1-ne/1``.

    Raises:
        InvalidUriError: If the URI is not a plain path or too long
    """
    if (
        not uri
        or len(uri) >= MAX_CONTENT_URI_LENGTH
        or not CONTENT_URI_PATTERN.match(uri)
    ):
        raise InvalidUriError(
            "Invalid URI format. URI must start with / and contain only "
            "alphanumeric characters, hyphens, underscores, and slashes."
        )
    params = {"lang": lang or settings.default_lang, "uri": uri}
    return PreparedRequest(
        url=str(httpx.URL(settings.content_api_url, params=params)),
        domain=Domain.CONTENT,
        endpoint=Endpoint.CONTENT,
    )
