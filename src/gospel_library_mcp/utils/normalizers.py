"""Normalization of backend payloads into ``SearchResult``.

Each endpoint family answers in its own JSON dialect. The vertex endpoints
alone use two: the Custom-Search style (``items[]`` with ``searchInformation``)
and the Discovery-Engine style (``results[].document.derivedStructData`` with
protobuf-like ``{"stringValue": ...}`` wrappers). Everything is mapped onto
``SearchHit``; fields without a common slot go into ``metadata``.
"""

import logging
from typing import Any

import httpx

from gospel_library_mcp.schemas.base.content import (
    ContentPage,
    Footnote,
    FootnoteRef,
)
from gospel_library_mcp.schemas.base.search import (
    Domain,
    Endpoint,
    ErrorInfo,
    MediaType,
    PreparedRequest,
    RawResponse,
    SearchHit,
    SearchResult,
)
from gospel_library_mcp.utils.errors import ExecutionError, MalformedResponseError
from gospel_library_mcp.utils.html import clean_snippet

logger = logging.getLogger(__name__)

UNTITLED = "Untitled"

# Extra fields reported per result type of the multi-type search
MEDIA_METADATA_FIELDS: dict[MediaType, tuple[str, ...]] = {
    MediaType.WEB: (),
    MediaType.VIDEO: ("duration", "videoUrl"),
    MediaType.MUSIC: ("composer", "audioUrl"),
    MediaType.IMAGE: ("imageUrl", "thumbnailUrl"),
    MediaType.PDF: ("pdfUrl", "pageCount"),
}


# =============================================================================
# Field helpers
# =============================================================================


def _require_dict(raw: RawResponse, domain: Domain) -> dict[str, Any]:
    if not isinstance(raw.body, dict):
        logger.warning(f"{domain.value}: expected a JSON object")
        raise MalformedResponseError(
            f"{domain.value}: expected a JSON object", domain.value, raw.status_code
        )
    return raw.body


def _first(item: dict[str, Any], *keys: str) -> Any:
    """Value of the first key present with a non-None value."""
    for key in keys:
        value = item.get(key)
        if value is not None:
            return value
    return None


def _text(value: Any) -> str | None:
    if value is None or isinstance(value, (dict, list)):
        return None
    return str(value)


def _int_or_none(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _struct_value(value: Any) -> Any:
    """Unwrap a protobuf-like value (``stringValue``, ``listValue``, ...)."""
    if not isinstance(value, dict):
        return value
    if "stringValue" in value:
        return value["stringValue"]
    if "numberValue" in value:
        return value["numberValue"]
    if "boolValue" in value:
        return value["boolValue"]
    if "listValue" in value:
        list_value = value["listValue"]
        values = list_value.get("values") if isinstance(list_value, dict) else None
        return [_struct_value(v) for v in values or []]
    if "structValue" in value:
        struct = value["structValue"]
        fields = struct.get("fields") if isinstance(struct, dict) else None
        if not isinstance(fields, dict):
            return {}
        return {k: _struct_value(v) for k, v in fields.items()}
    return value


def _document_fields(result: dict[str, Any]) -> dict[str, Any]:
    """Flatten a Discovery-Engine result into a Custom-Search style item."""
    document = result.get("document")
    if not isinstance(document, dict):
        return {}
    derived = document.get("derivedStructData")
    if not isinstance(derived, dict):
        return {}
    fields = derived.get("fields")
    if isinstance(fields, dict):
        item = _struct_value({"structValue": {"fields": fields}})
    else:
        item = dict(derived)

    snippets = item.pop("snippets", None)
    if isinstance(snippets, list) and snippets:
        first = snippets[0]
        if isinstance(first, dict):
            first = first.get("snippet") or first.get("htmlSnippet")
        if first is not None:
            item.setdefault("snippet", first)
    return item


def _hit(
    item: Any,
    domain: Domain,
    *,
    media_type: MediaType = MediaType.WEB,
    title_keys: tuple[str, ...] = ("title", "displayTitle"),
    snippet_keys: tuple[str, ...] = ("snippet", "description"),
    url_keys: tuple[str, ...] = ("link", "url"),
    metadata_keys: tuple[str, ...] = (),
) -> SearchHit | None:
    """Map one backend item to a ``SearchHit``; None if it has no link."""
    if not isinstance(item, dict):
        logger.warning(f"{domain.value}: skipping non-object result entry")
        return None

    url = _text(_first(item, *url_keys))
    if not url:
        logger.warning(f"{domain.value}: skipping result without link")
        return None

    snippet = _text(_first(item, *snippet_keys))
    metadata = {}
    for key in metadata_keys:
        value = _text(item.get(key))
        if value is not None and value != "":
            metadata[key] = value

    return SearchHit(
        title=_text(_first(item, *title_keys)) or UNTITLED,
        snippet=clean_snippet(snippet) if snippet is not None else None,
        url=url,
        media_type=media_type,
        metadata=metadata,
    )


def _items(body: dict[str, Any], *keys: str) -> list[Any]:
    value = _first(body, *keys)
    return value if isinstance(value, list) else []


def _total(body: dict[str, Any]) -> int | None:
    """Total hit estimate from whichever counter the backend sent."""
    info = body.get("searchInformation")
    if isinstance(info, dict) and info.get("totalResults") is not None:
        return _int_or_none(info["totalResults"])
    return _int_or_none(_first(body, "totalResults", "totalSize", "total"))


def _next_cursor(body: dict[str, Any]) -> str | None:
    """Next-page token or offset exactly as the backend reported it."""
    token = body.get("nextPageToken")
    if token:
        return str(token)
    queries = body.get("queries")
    if isinstance(queries, dict):
        next_page = queries.get("nextPage")
        if isinstance(next_page, list) and next_page:
            first = next_page[0]
            if isinstance(first, dict) and first.get("startIndex") is not None:
                return str(first["startIndex"])
    return None


def _corrected(body: dict[str, Any]) -> str | None:
    spell_check = body.get("spellCheck")
    if isinstance(spell_check, dict) and spell_check.get("spellingChanged"):
        return _text(spell_check.get("display"))
    spelling = body.get("spelling")
    if isinstance(spelling, dict):
        return _text(spelling.get("correctedQuery"))
    return None


def _result(
    domain: Domain, body: dict[str, Any], items: list[SearchHit]
) -> SearchResult:
    return SearchResult(
        domain=domain,
        items=items,
        next_start=_next_cursor(body),
        total_estimate=_total(body),
        corrected_query=_corrected(body),
    )


def _collect(hits: list[SearchHit | None]) -> list[SearchHit]:
    return [hit for hit in hits if hit is not None]


# =============================================================================
# Search endpoints
# =============================================================================


def normalize_vertex(
    domain: Domain,
    raw: RawResponse,
    media_type: MediaType | str = MediaType.WEB,
) -> SearchResult:
    """Normalize a ``vertex-search`` response (either wire shape).

    Args:
        domain: Domain the request was built for
        raw: Executor response
        media_type: ``searchType`` of the request, selects the extra fields

    Returns:
        SearchResult in backend order

    Raises:
        MalformedResponseError: If the body is not a JSON object
    """
    body = _require_dict(raw, domain)
    kind = MediaType(media_type)

    if "items" not in body and isinstance(body.get("results"), list):
        entries = [
            _document_fields(r) if isinstance(r, dict) else r for r in body["results"]
        ]
    else:
        entries = _items(body, "items")

    hits = [
        _hit(
            entry,
            domain,
            media_type=kind,
            metadata_keys=("displayLink", *MEDIA_METADATA_FIELDS[kind]),
        )
        for entry in entries
    ]
    return _result(domain, body, _collect(hits))


def normalize_conference(raw: RawResponse) -> SearchResult:
    """Normalize a ``general-conference-search`` response."""
    domain = Domain.GENERAL_CONFERENCE
    body = _require_dict(raw, domain)
    hits = [
        _hit(item, domain, metadata_keys=("speaker", "displayLink"))
        for item in _items(body, "items")
    ]
    return _result(domain, body, _collect(hits))


def normalize_scripture(raw: RawResponse) -> SearchResult:
    """Normalize a verse-level ``vertex-scripture-search`` response."""
    domain = Domain.SCRIPTURES
    body = _require_dict(raw, domain)
    hits = [
        _hit(
            item,
            domain,
            snippet_keys=("snippet", "description", "text"),
            metadata_keys=("collectionName", "testament"),
        )
        for item in _items(body, "items")
    ]
    return _result(domain, body, _collect(hits))


def normalize_archive(raw: RawResponse) -> SearchResult:
    """Normalize a ``content-search-service`` response.

    The archive reports the collection of a hit as ``subtitle`` and marks
    matches in ``htmlSnippet``.
    """
    domain = Domain.ARCHIVE
    body = _require_dict(raw, domain)
    hits = []
    for item in _items(body, "items"):
        hit = _hit(item, domain, snippet_keys=("htmlSnippet", "snippet"))
        if hit is not None:
            subtitle = _text(item.get("subtitle"))
            if subtitle:
                hit.metadata["collection"] = subtitle
        hits.append(hit)
    return _result(domain, body, _collect(hits))


def normalize_newsroom(raw: RawResponse) -> SearchResult:
    """Normalize a newsroom search response."""
    domain = Domain.NEWSROOM
    body = _require_dict(raw, domain)
    hits = [
        _hit(
            item,
            domain,
            title_keys=("title", "headline"),
            snippet_keys=("snippet", "description", "summary"),
            metadata_keys=("date", "publishDate", "category"),
        )
        for item in _items(body, "items", "results", "articles")
    ]
    return _result(domain, body, _collect(hits))


# =============================================================================
# Lookup endpoints
# =============================================================================


def normalize_video_metadata(raw: RawResponse) -> SearchResult:
    """Normalize a video metadata lookup into ``video`` hits.

    The backend answers either with one video object or with a list of them.
    """
    domain = Domain.VIDEO_METADATA
    body = _require_dict(raw, domain)
    entries = _items(body, "items", "videos", "results") or [body]
    hits = [
        _hit(
            entry,
            domain,
            media_type=MediaType.VIDEO,
            title_keys=("title", "name"),
            snippet_keys=("description", "summary"),
            url_keys=("videoUrl", "url", "link", "downloadUrl"),
            metadata_keys=("id", "duration", "thumbnailUrl", "downloadUrl"),
        )
        for entry in entries
    ]
    return _result(domain, body, _collect(hits))


def normalize_scripture_books(raw: RawResponse, source_url: str) -> SearchResult:
    """Normalize the scripture book listing, one hit per book.

    Books without a link of their own point at the listing itself.
    """
    domain = Domain.SCRIPTURE_BOOKS
    body = raw.body
    if isinstance(body, dict):
        entries = _items(body, "books", "items", "results")
    elif isinstance(body, list):
        entries = body
        body = {}
    else:
        raise MalformedResponseError(
            f"{domain.value}: expected a JSON object or array",
            domain.value,
            raw.status_code,
        )

    hits = []
    for entry in entries:
        if isinstance(entry, dict) and not _first(entry, "uri", "url", "link"):
            entry = {**entry, "url": source_url}
        hits.append(
            _hit(
                entry,
                domain,
                title_keys=("name", "title", "bookName"),
                url_keys=("url", "link", "uri"),
                metadata_keys=("id", "abbreviation", "volume", "chapters", "uri"),
            )
        )
    return _result(domain, body, _collect(hits))


def normalize_search_strings(raw: RawResponse, source_url: str) -> SearchResult:
    """Normalize the localized search strings into a single hit.

    The strings themselves (label key to translation) end up in ``metadata``.
    """
    domain = Domain.SEARCH_STRINGS
    body = _require_dict(raw, domain)
    strings = body.get("strings") if isinstance(body.get("strings"), dict) else body
    metadata = {
        str(key): str(value)
        for key, value in strings.items()
        if isinstance(value, (str, int, float)) and not isinstance(value, bool)
    }
    lang = httpx.URL(source_url).params.get("lang", "")
    hit = SearchHit(
        title=f"Search strings ({lang})" if lang else "Search strings",
        url=source_url,
        metadata=metadata,
    )
    return SearchResult(domain=domain, items=[hit], total_estimate=len(metadata))


# =============================================================================
# Content pages
# =============================================================================


def _footnote(marker: str, note: Any) -> Footnote | None:
    if not isinstance(note, dict):
        return None
    refs = [
        FootnoteRef(href=str(ref.get("href", "")), text=str(ref.get("text", "")))
        for ref in note.get("noteRefs") or []
        if isinstance(ref, dict)
    ]
    return Footnote(
        marker=str(note.get("noteMarker") or marker),
        content=str(note.get("noteContent") or ""),
        refs=refs,
    )


def normalize_content(raw: RawResponse, uri: str) -> ContentPage:
    """Pass a content page through as ``ContentPage``.

    The HTML body is kept as is; callers convert it with ``html_to_text``
    when they need plain text.

    Raises:
        MalformedResponseError: If the body is not a JSON object or carries
            an error block instead of content
    """
    domain = Domain.CONTENT
    body = _require_dict(raw, domain)

    error = body.get("error")
    if isinstance(error, dict) and "content" not in body:
        raise MalformedResponseError(
            f"{domain.value}: backend reported an error", domain.value, raw.status_code
        )

    meta_block = body.get("meta") if isinstance(body.get("meta"), dict) else {}
    content = body.get("content") if isinstance(body.get("content"), dict) else {}

    notes = content.get("footnotes") or []
    if isinstance(notes, dict):
        pairs = list(notes.items())
    else:
        pairs = [(str(i + 1), note) for i, note in enumerate(notes)]
    footnotes = [fn for fn in (_footnote(m, n) for m, n in pairs) if fn is not None]

    return ContentPage(
        uri=uri,
        title=_text(meta_block.get("title")),
        body_html=_text(content.get("body")),
        meta={
            key: str(value)
            for key, value in meta_block.items()
            if value is not None and not isinstance(value, (dict, list))
        },
        footnotes=footnotes,
    )


# =============================================================================
# Dispatch
# =============================================================================


def failed_result(domain: Domain, error: ExecutionError) -> SearchResult:
    """Build the error-carrying result of a failed search (``items == []``)."""
    return SearchResult(
        domain=domain,
        error=ErrorInfo(kind=error.kind, message=str(error), status=error.status),
    )


def normalize_response(request: PreparedRequest, raw: RawResponse) -> SearchResult:
    """Select the normalizer of the request's endpoint family.

    Raises:
        MalformedResponseError: If the payload does not have the expected shape
        ValueError: For content requests, which normalize to ``ContentPage``
    """
    endpoint = request.endpoint
    if endpoint is Endpoint.VERTEX:
        search_type = httpx.URL(request.url).params.get("searchType", "web")
        return normalize_vertex(request.domain, raw, search_type)
    if endpoint is Endpoint.CONFERENCE:
        return normalize_conference(raw)
    if endpoint is Endpoint.SCRIPTURE:
        return normalize_scripture(raw)
    if endpoint is Endpoint.ARCHIVE:
        return normalize_archive(raw)
    if endpoint is Endpoint.NEWSROOM:
        return normalize_newsroom(raw)
    if endpoint is Endpoint.VIDEO_METADATA:
        return normalize_video_metadata(raw)
    if endpoint is Endpoint.SCRIPTURE_BOOKS:
        return normalize_scripture_books(raw, request.url)
    if endpoint is Endpoint.SEARCH_STRINGS:
        return normalize_search_strings(raw, request.url)
    raise ValueError(f"{endpoint.value} responses normalize to ContentPage")
