"""Search tools for the Gospel Library.

This module exposes the search endpoints (multi-type search, the site-scoped
content domains, General Conference, scriptures, archive and newsroom) and
the lookup endpoints as MCP tools. All tools return the same normalized
``SearchResult``.
"""

from collections.abc import Callable
import logging
from typing import Any, Literal, Protocol

from fastmcp import Context, FastMCP
from fastmcp.exceptions import ToolError

from gospel_library_mcp.schemas.base.search import (
    DateRange,
    Domain,
    PreparedRequest,
    RoutedSearch,
    SearchQuery,
    SearchResult,
)
from gospel_library_mcp.utils.builders import (
    ARCHIVE_BOOKS,
    ARCHIVE_SOURCES,
    build_vertex_request,
)
from gospel_library_mcp.utils.errors import BuildError
from gospel_library_mcp.utils.executor import SearchExecutor
from gospel_library_mcp.utils.filters import DOMAIN_FILTERS, FilterOptions
from gospel_library_mcp.utils.routing import routed_search
from gospel_library_mcp.utils.search import build_request, run_search

logger = logging.getLogger(__name__)

SearchType = Literal["web", "image", "video", "music", "pdf"]
OrderBy = Literal["", "relevance", "date"]
SearchMode = Literal["smart", "comprehensive", "specific"]
ForcedEndpoint = Literal[
    "conference",
    "scriptures",
    "archive",
    "vertex",
    "come-follow-me",
    "handbook",
    "seminary",
]
ContentHint = Literal["conference", "scripture", "manual", "magazine", "media"]
Testament = Literal["Old Testament", "New Testament"]
ArchiveDateRange = Literal[
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
]

# Archive collections of the preset tools
SCRIPTURES_SOURCE = 48
MAGAZINES_SOURCE = 46


class ExecutorGetter(Protocol):
    """Protocol for sync executor getter function."""

    def __call__(self) -> SearchExecutor: ...


def _filters(**options: Any) -> dict[str, Any]:
    """Drop unset options."""
    return {key: value for key, value in options.items() if value is not None}


async def _run(
    get_executor: ExecutorGetter,
    build: Callable[[], PreparedRequest],
    ctx: Context | None,
    page_size: int | None = None,
) -> SearchResult:
    """Build and run a search, turning input errors into ToolError."""
    if page_size is not None and page_size < 1:
        raise ToolError(f"max_results must be 1 or greater, got {page_size}")

    try:
        request = build()
    except BuildError as e:
        raise ToolError(str(e)) from e

    if ctx:
        await ctx.info(f"Searching {request.domain.value}")

    result = await run_search(get_executor(), request, page_size)

    if ctx:
        if result.error:
            await ctx.info(f"Search failed ({result.error.kind.value})")
        else:
            total = result.total_estimate if result.total_estimate is not None else "?"
            await ctx.info(f"Found: {total} results (showing {len(result.items)})")

    return result


async def _run_query(
    get_executor: ExecutorGetter, query: SearchQuery, ctx: Context | None
) -> SearchResult:
    return await _run(
        get_executor, lambda: build_request(query), ctx, query.page_size
    )


def _scripture_query(
    query: str,
    collection: str,
    start: int,
    max_results: int,
    testament: str | None = None,
) -> SearchQuery:
    return SearchQuery(
        text=query,
        domain=Domain.SCRIPTURES,
        start=start,
        page_size=max_results,
        filters=_filters(collection=collection, testament=testament),
    )


def register_search_tools(
    mcp: FastMCP,
    get_executor: ExecutorGetter,
) -> None:
    """Register Gospel Library search tools on the given MCP server.

    Args:
        mcp: The FastMCP server instance to register tools on
        get_executor: Function that returns the shared SearchExecutor
    """

    @mcp.tool
    async def search_gospel_library(
        query: str,
        search_mode: SearchMode = "smart",
        force_endpoint: ForcedEndpoint | None = None,
        content_hint: ContentHint | None = None,
        limit: int = 20,
        ctx: Context | None = None,
    ) -> RoutedSearch:
        """Search all Gospel Library content with automatic endpoint selection.

        PURPOSE: First choice for any search. The query is classified
        (scripture reference, speaker, conference, manual, media, magazine)
        and sent to the endpoint that answers it best.

        WHEN TO USE:
        - Default entry point when the user does not name a collection
        - Mixed questions ("Elder Holland on faith", "Alma 32 seed")

        WHEN NOT TO USE:
        - For precise filters (dates, book ids, editions) → the specialized
          search tools

        Args:
            query: Search terms; quotes for exact phrases
            search_mode: "smart" tries the best endpoint, then fallbacks until
                one has hits; "comprehensive" searches the best endpoint and
                all fallbacks at once; "specific" uses force_endpoint only
            force_endpoint: Endpoint for search_mode="specific": "conference",
                "scriptures", "archive", "vertex", "come-follow-me",
                "handbook" or "seminary"
            content_hint: Content type to assume when the wording gives no clue
            limit: Maximum number of results per searched endpoint
            ctx: FastMCP Context

        Returns:
            RoutedSearch with the routing decision, one SearchResult per
            searched endpoint and suggestions when nothing was found
        """
        if limit < 1 or limit > 100:
            raise ToolError(f"limit must be between 1 and 100, got {limit}")

        try:
            routed = await routed_search(
                get_executor(),
                query,
                mode=search_mode,
                force_endpoint=force_endpoint,
                content_hint=content_hint,
                limit=limit,
            )
        except BuildError as e:
            raise ToolError(str(e)) from e

        if ctx:
            await ctx.info(
                f"Routed to {routed.routed_to.value} "
                f"({routed.confidence:.0%}): {routed.reasoning}"
            )
            if routed.fallback_used:
                await ctx.info(f"Fallback used: {routed.fallback_used.value}")

        return routed

    @mcp.tool
    async def search_vertex(
        query: str,
        search_type: SearchType = "web",
        filter: str | None = None,
        start: int = 1,
        order_by: OrderBy = "",
        lang: str | None = None,
        max_results: int = 10,
        ctx: Context | None = None,
    ) -> SearchResult:
        """Search the whole Church website by result type.

        PURPOSE: Find web pages, images, videos, music or PDFs

        WHEN TO USE:
        - User looks for media (images, videos, hymn recordings, PDFs)
        - Broad search across all content
        - You already have a ready-made siteSearch filter expression

        WHEN NOT TO USE:
        - For one content area (Liahona, Gospel Topics, ...) → search_content_domain()
        - For conference talks → search_general_conference()
        - For verses → search_scriptures()

        Args:
            query: Search terms; wrap phrases in quotes for exact matches
            search_type: "web", "image", "video", "music" or "pdf"
            filter: Optional siteSearch filter, e.g.
                'siteSearch:"churchofjesuschrist.org/study/liahona*"'
            start: 1-based index of the first result
            order_by: "" or "relevance" for relevance, "date" for newest first
            lang: Language code (default "eng")
            max_results: Maximum number of results to return
            ctx: FastMCP Context

        Returns:
            SearchResult; check ``error`` before reading ``items``
        """
        return await _run_query(
            get_executor,
            SearchQuery(
                text=query,
                domain=Domain.WEB,
                start=start,
                page_size=max_results,
                filters=_filters(
                    search_type=search_type,
                    filter=filter,
                    order_by=order_by,
                    lang=lang,
                ),
            ),
            ctx,
        )

    @mcp.tool
    async def search_content_domain(
        query: str,
        domain: str,
        year: int | None = None,
        edition: str | None = None,
        subject: str | None = None,
        language: str | None = None,
        search_type: SearchType = "web",
        start: int = 1,
        max_results: int = 10,
        ctx: Context | None = None,
    ) -> SearchResult:
        """Search one content area of the Church website.

        PURPOSE: Focused search in Gospel Topics, Come, Follow Me, the General
        Handbook, Liahona, For the Strength of Youth, Friend, YA Weekly,
        Church history, basic beliefs, BYU speeches, seminary manuals, music
        or the media library.

        WHEN TO USE:
        - User names a specific publication or content area
        - Questions about Church policy → domain="general-handbook"
        - Doctrinal overviews → domain="gospel-topics"

        WHEN NOT TO USE:
        - For conference talks with dates or speakers → search_general_conference()
        - To see all valid domains → list_search_domains()

        Args:
            query: Search terms
            domain: Domain name from list_search_domains(), e.g. "liahona"
            year: Edition year (liahona, for-the-strength-of-youth, ya-weekly)
            edition: Edition token, e.g. "2024/03"; wins over year
            subject: Course of study for domain="seminary": "old-testament",
                "new-testament", "book-of-mormon" or "doctrine-and-covenants"
            language: Restrict to one language instead of English/unlabeled
            search_type: "web", "image", "video", "music" or "pdf"
            start: 1-based index of the first result
            max_results: Maximum number of results to return
            ctx: FastMCP Context

        Returns:
            SearchResult for the domain
        """
        if domain not in {d.value for d in DOMAIN_FILTERS}:
            raise ToolError(
                f"Unknown domain '{domain}'. Use list_search_domains() for valid names."
            )

        return await _run(
            get_executor,
            lambda: build_vertex_request(
                query,
                search_type=search_type,
                start=start,
                domain=domain,
                filter_options=FilterOptions(
                    language=language, year=year, edition=edition, subject=subject
                ),
            ),
            ctx,
            max_results,
        )

    @mcp.tool
    async def search_general_conference(
        query: str,
        start_date: str | None = None,
        end_date: str | None = None,
        speaker: str | None = None,
        order_by: OrderBy = "",
        start: int = 1,
        max_results: int = 10,
        ctx: Context | None = None,
    ) -> SearchResult:
        """Search General Conference talks.

        PURPOSE: Find conference talks by topic, time span and speaker

        WHEN TO USE:
        - User asks what Church leaders taught about a topic
        - Talks by a specific speaker
        - Talks from a specific period

        Args:
            query: Search terms; quotes for exact phrases
            start_date: Earliest date (ISO 8601, e.g. "2015-01-01")
            end_date: Latest date (ISO 8601, e.g. "2024-12-31")
            speaker: Speaker name, e.g. "Russell M. Nelson"
            order_by: "" or "relevance" for relevance, "date" for newest first
            start: 1-based index of the first result
            max_results: Maximum number of results to return
            ctx: FastMCP Context

        Returns:
            SearchResult with conference talks

        Note:
            Without dates the last ten years are searched.
        """
        dates = None
        if start_date or end_date:
            try:
                dates = DateRange(start=start_date, end=end_date)
            except ValueError as e:
                raise ToolError(f"Dates must be ISO 8601 (YYYY-MM-DD): {e}") from e

        return await _run_query(
            get_executor,
            SearchQuery(
                text=query,
                domain=Domain.GENERAL_CONFERENCE,
                start=start,
                page_size=max_results,
                filters=_filters(dates=dates, speaker=speaker, order_by=order_by),
            ),
            ctx,
        )

    @mcp.tool
    async def search_scriptures(
        query: str,
        collection: str | None = None,
        testament: str | None = None,
        start: int = 1,
        max_results: int = 10,
        ctx: Context | None = None,
    ) -> SearchResult:
        """Search verses in the standard works.

        PURPOSE: Verse-level scripture search

        WHEN TO USE:
        - User looks for a verse or a phrase from the scriptures
        - Cross-referencing a topic across volumes

        Args:
            query: Search terms; quotes for exact phrases
            collection: "The Holy Bible", "The Book of Mormon",
                "The Doctrine and Covenants" or "The Pearl of Great Price"
            testament: "Old Testament" or "New Testament" (Bible only)
            start: 1-based index of the first result
            max_results: Maximum number of results to return
            ctx: FastMCP Context

        Returns:
            SearchResult with verse references as titles
        """
        return await _run_query(
            get_executor,
            SearchQuery(
                text=query,
                domain=Domain.SCRIPTURES,
                start=start,
                page_size=max_results,
                filters=_filters(collection=collection, testament=testament),
            ),
            ctx,
        )

    @mcp.tool
    async def search_book_of_mormon(
        query: str,
        start: int = 1,
        max_results: int = 20,
        ctx: Context | None = None,
    ) -> SearchResult:
        """Search verses in the Book of Mormon.

        Args:
            query: Search terms; quotes for exact phrases
            start: 1-based index of the first result
            max_results: Maximum number of results to return
            ctx: FastMCP Context
        """
        return await _run_query(
            get_executor,
            _scripture_query(query, "The Book of Mormon", start, max_results),
            ctx,
        )

    @mcp.tool
    async def search_doctrine_covenants(
        query: str,
        start: int = 1,
        max_results: int = 20,
        ctx: Context | None = None,
    ) -> SearchResult:
        """Search verses in the Doctrine and Covenants.

        Args:
            query: Search terms; quotes for exact phrases
            start: 1-based index of the first result
            max_results: Maximum number of results to return
            ctx: FastMCP Context
        """
        return await _run_query(
            get_executor,
            _scripture_query(query, "The Doctrine and Covenants", start, max_results),
            ctx,
        )

    @mcp.tool
    async def search_bible(
        query: str,
        testament: Testament | None = None,
        start: int = 1,
        max_results: int = 20,
        ctx: Context | None = None,
    ) -> SearchResult:
        """Search verses in the Holy Bible, optionally in one testament.

        Args:
            query: Search terms; quotes for exact phrases
            testament: "Old Testament" or "New Testament"
            start: 1-based index of the first result
            max_results: Maximum number of results to return
            ctx: FastMCP Context
        """
        return await _run_query(
            get_executor,
            _scripture_query(
                query, "The Holy Bible", start, max_results, testament=testament
            ),
            ctx,
        )

    @mcp.tool
    async def search_archive(
        query: str,
        source: int | None = None,
        author: str | None = None,
        date_range: str | None = None,
        begin_date: str | None = None,
        end_date: str | None = None,
        sort: Literal["book", "relevance"] | None = None,
        book: int | None = None,
        page: int = 1,
        ctx: Context | None = None,
    ) -> SearchResult:
        """Search the content archive with collection and author filters.

        PURPOSE: Archive search across callings, media, magazines,
        conference, scriptures and hymns

        WHEN TO USE:
        - User wants results from one collection only
        - Scripture results in book order (sort="book" with a book id)
        - Older material in a decade range

        Args:
            query: Search terms
            source: Collection id: 43=Callings, 44=Media, 45=Other,
                46=Magazines, 47=General Conference, 48=Scriptures,
                60=Hymns for Home and Church
            author: Author or speaker name
            date_range: "any-date", "past-6-months", "past-12-months",
                "past-5-years", "past-10-years", "2010-2019", "2000-2009",
                "1990-1999", "1980-1989", "1970-1979" or "custom-date-range"
            begin_date: Start of a custom range (ISO 8601)
            end_date: End of a custom range (ISO 8601)
            sort: "book" or "relevance"
            book: Scripture book: 73=Book of Mormon, 74=D&C,
                75=New Testament, 76=Old Testament, 77=Pearl of Great Price
            page: Page of results (1-based)
            ctx: FastMCP Context

        Returns:
            SearchResult; the collection of each hit is in metadata["collection"]
        """
        if ctx and (source is not None or book is not None):
            parts = []
            if source is not None:
                parts.append(f"source {ARCHIVE_SOURCES.get(source, f'ID {source}')}")
            if book is not None:
                parts.append(f"book {ARCHIVE_BOOKS.get(book, f'ID {book}')}")
            await ctx.info(f"Archive filters: {', '.join(parts)}")

        dates = None
        if begin_date or end_date:
            try:
                dates = DateRange(start=begin_date, end=end_date)
            except ValueError as e:
                raise ToolError(f"Dates must be ISO 8601 (YYYY-MM-DD): {e}") from e

        return await _run_query(
            get_executor,
            SearchQuery(
                text=query,
                domain=Domain.ARCHIVE,
                start=page,
                filters=_filters(
                    source=source,
                    author=author,
                    date_range=date_range,
                    dates=dates,
                    sort=sort,
                    book=book,
                ),
            ),
            ctx,
        )

    @mcp.tool
    async def search_scriptures_archive(
        query: str,
        book: int | None = None,
        sort: Literal["book", "relevance"] = "book",
        page: int = 1,
        ctx: Context | None = None,
    ) -> SearchResult:
        """Search the scriptures collection of the archive, in book order.

        Args:
            query: Search terms
            book: Scripture book: 73=Book of Mormon, 74=D&C,
                75=New Testament, 76=Old Testament, 77=Pearl of Great Price
            sort: "book" (canonical order) or "relevance"
            page: Page of results (1-based)
            ctx: FastMCP Context
        """
        return await _run_query(
            get_executor,
            SearchQuery(
                text=query,
                domain=Domain.ARCHIVE,
                start=page,
                filters=_filters(source=SCRIPTURES_SOURCE, book=book, sort=sort),
            ),
            ctx,
        )

    @mcp.tool
    async def search_magazines_archive(
        query: str,
        date_range: ArchiveDateRange | None = None,
        page: int = 1,
        ctx: Context | None = None,
    ) -> SearchResult:
        """Search Church magazines (Liahona, Friend, For the Strength of Youth, ...).

        Args:
            query: Search terms
            date_range: "past-6-months", "past-12-months", "past-5-years",
                "past-10-years", a decade like "1990-1999" or "any-date"
            page: Page of results (1-based)
            ctx: FastMCP Context
        """
        return await _run_query(
            get_executor,
            SearchQuery(
                text=query,
                domain=Domain.ARCHIVE,
                start=page,
                filters=_filters(source=MAGAZINES_SOURCE, date_range=date_range),
            ),
            ctx,
        )

    @mcp.tool
    async def search_newsroom(
        query: str,
        page: int = 1,
        lang: str | None = None,
        ctx: Context | None = None,
    ) -> SearchResult:
        """Search Newsroom press releases and articles.

        Args:
            query: Search terms
            page: Page of results (1-based)
            lang: Language code (default "eng")
            ctx: FastMCP Context
        """
        return await _run_query(
            get_executor,
            SearchQuery(
                text=query,
                domain=Domain.NEWSROOM,
                start=page,
                filters=_filters(lang=lang),
            ),
            ctx,
        )

    @mcp.tool
    async def get_video_metadata(
        video_id: str,
        lang: str | None = None,
        ctx: Context | None = None,
    ) -> SearchResult:
        """Look up metadata (title, duration, thumbnail, links) of a video.

        Args:
            video_id: Video id as found in media library search results
            lang: Language code (default "eng")
            ctx: FastMCP Context
        """
        return await _run_query(
            get_executor,
            SearchQuery(
                text=video_id,
                domain=Domain.VIDEO_METADATA,
                filters=_filters(lang=lang),
            ),
            ctx,
        )

    @mcp.tool
    async def list_scripture_books(
        lang: str | None = None,
        ctx: Context | None = None,
    ) -> SearchResult:
        """List the books of the standard works, one result per book."""
        return await _run_query(
            get_executor,
            SearchQuery(
                text="scripture books",
                domain=Domain.SCRIPTURE_BOOKS,
                filters=_filters(lang=lang),
            ),
            ctx,
        )

    @mcp.tool
    async def list_search_strings(
        lang: str | None = None,
        ctx: Context | None = None,
    ) -> SearchResult:
        """Localized labels of the search interface (in metadata of one result)."""
        return await _run_query(
            get_executor,
            SearchQuery(
                text="search strings",
                domain=Domain.SEARCH_STRINGS,
                filters=_filters(lang=lang),
            ),
            ctx,
        )

    @mcp.tool
    def list_search_domains() -> list[dict[str, str | bool]]:
        """List the content domains accepted by search_content_domain().

        Returns:
            List of dicts with 'domain', 'description' and whether the
            domain accepts a year/edition
        """
        return [
            {
                "domain": domain.value,
                "description": template.description,
                "accepts_edition": template.accepts_edition,
            }
            for domain, template in DOMAIN_FILTERS.items()
        ]
