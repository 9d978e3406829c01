"""Tests for the request builders."""

from collections.abc import Callable
from datetime import date
import json

import httpx
import pytest

from gospel_library_mcp.schemas.base.search import Domain, Endpoint, PreparedRequest
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
    InvalidDateRangeError,
    InvalidQueryError,
    InvalidUriError,
    UnknownCollectionError,
    UnknownDomainError,
)
from gospel_library_mcp.utils.filters import build_filter

PROXY = "https://www.churchofjesuschrist.org/search/proxy"


def _params(request: PreparedRequest) -> httpx.QueryParams:
    return httpx.URL(request.url).params


def _path(request: PreparedRequest) -> str:
    url = httpx.URL(request.url)
    return f"{url.scheme}://{url.host}{url.path}"


class TestVertexRequest:
    """Tests for build_vertex_request."""

    def test_domain_request(self) -> None:
        request = build_vertex_request("faith", domain=Domain.GOSPEL_TOPICS)
        params = _params(request)

        assert request.method == "GET"
        assert request.endpoint is Endpoint.VERTEX
        assert request.domain is Domain.GOSPEL_TOPICS
        assert _path(request) == f"{PROXY}/vertex-search"
        assert params["q"] == "faith"
        assert params["start"] == "1"
        assert params["searchType"] == "web"
        assert params["filter"] == build_filter(Domain.GOSPEL_TOPICS)
        assert params["orderBy"] == ""
        assert params["lang"] == "eng"

    def test_explicit_filter_wins(self) -> None:
        request = build_vertex_request(
            '"plan of salvation"',
            search_type="pdf",
            filter_expression='siteSearch:"example.org*"',
            domain=Domain.LIAHONA,
            start=11,
            order_by="date",
        )
        params = _params(request)
        assert params["q"] == '"plan of salvation"'
        assert params["filter"] == 'siteSearch:"example.org*"'
        assert params["searchType"] == "pdf"
        assert params["start"] == "11"
        assert params["orderBy"] == "date"

    def test_relevance_is_empty_order(self) -> None:
        request = build_vertex_request("x", domain="web", order_by="relevance")
        assert _params(request)["orderBy"] == ""

    def test_requires_filter_or_domain(self) -> None:
        with pytest.raises(InvalidQueryError):
            build_vertex_request("faith")

    def test_unknown_search_type(self) -> None:
        with pytest.raises(InvalidQueryError):
            build_vertex_request("faith", domain="web", search_type="audio")

    def test_unknown_domain(self) -> None:
        with pytest.raises(UnknownDomainError):
            build_vertex_request("faith", domain="nope")

    @pytest.mark.parametrize("text", ["", "   "])
    def test_empty_text(self, text: str) -> None:
        with pytest.raises(InvalidQueryError):
            build_vertex_request(text, domain=Domain.WEB)


class TestConferenceRequest:
    """Tests for build_conference_request."""

    def test_post_body(self) -> None:
        request = build_conference_request(
            "hope",
            start=11,
            start_date="2020-01-01",
            end_date=date(2024, 12, 31),
            speaker="Russell M. Nelson",
        )
        body = json.loads(request.body)

        assert request.method == "POST"
        assert request.url == f"{PROXY}/general-conference-search"
        assert request.endpoint is Endpoint.CONFERENCE
        assert body["query"] == "hope"
        assert body["start"] == 10
        assert body["startDate"] == "2020-01-01"
        assert body["endDate"] == "2024-12-31"
        assert body["orderBy"] == ""
        assert body["sort"] == ""
        assert "general-conference/2020/04/" in body["filter"]
        assert "general-conference/2024/10/" in body["filter"]
        assert "2019/" not in body["filter"]
        assert '*/russell-m-nelson"' in body["filter"]

    def test_default_covers_last_ten_years(self) -> None:
        request = build_conference_request("hope", today=date(2024, 6, 1))
        body = json.loads(request.body)

        assert body["start"] == 0
        assert "startDate" not in body
        assert "endDate" not in body
        assert "general-conference/2014/04/" in body["filter"]
        assert "general-conference/2024/10/" in body["filter"]
        assert "2013/" not in body["filter"]

    def test_future_start_without_end(self) -> None:
        request = build_conference_request(
            "faith", start_date="2030-04-01", today=date(2026, 10, 15)
        )
        body = json.loads(request.body)

        assert body["startDate"] == "2030-04-01"
        assert "endDate" not in body
        assert "general-conference/2030/04/" in body["filter"]
        assert "2029/" not in body["filter"]

    def test_reversed_dates(self) -> None:
        with pytest.raises(InvalidDateRangeError):
            build_conference_request(
                "hope", start_date="2024-01-01", end_date="2020-01-01"
            )

    def test_non_iso_date(self) -> None:
        with pytest.raises(InvalidQueryError):
            build_conference_request("hope", start_date="01/02/2020")


class TestScriptureRequest:
    """Tests for build_scripture_request."""

    def test_collection_and_offset(self) -> None:
        request = build_scripture_request(
            "faith", collection="The Book of Mormon", start=1
        )
        params = _params(request)
        assert _path(request) == f"{PROXY}/vertex-scripture-search"
        assert params["q"] == "faith"
        assert params["start"] == "0"
        assert params["collectionName"] == "The Book of Mormon"
        assert "testament" not in params

    def test_testament(self) -> None:
        request = build_scripture_request(
            "love", collection="The Holy Bible", testament="New Testament"
        )
        assert _params(request)["testament"] == "New Testament"

    def test_unknown_collection(self) -> None:
        with pytest.raises(UnknownCollectionError):
            build_scripture_request("faith", collection="The Apocrypha")

    def test_testament_outside_bible(self) -> None:
        with pytest.raises(InvalidQueryError):
            build_scripture_request(
                "faith", collection="The Book of Mormon", testament="Old Testament"
            )


class TestArchiveRequest:
    """Tests for build_archive_request."""

    def test_only_given_filters(self) -> None:
        params = _params(build_archive_request("tithing"))
        assert dict(params) == {"query": "tithing", "page": "1", "lang": "eng"}

    def test_all_filters(self) -> None:
        request = build_archive_request(
            "prayer",
            source=48,
            author="Jeffrey R. Holland",
            sort="book",
            book=73,
            page=2,
        )
        params = _params(request)
        assert _path(request) == f"{PROXY}/content-search-service"
        assert params["source"] == "48"
        assert params["author"] == "jeffrey-r-holland"
        assert params["sort"] == "book"
        assert params["book"] == "73"
        assert params["page"] == "2"

    def test_custom_dates_imply_custom_range(self) -> None:
        params = _params(
            build_archive_request(
                "temple", begin_date="2001-01-01", end_date="2002-06-30"
            )
        )
        assert params["dateRange"] == "custom-date-range"
        assert params["beginDate"] == "2001-01-01"
        assert params["endDate"] == "2002-06-30"

    def test_unknown_date_range(self) -> None:
        with pytest.raises(InvalidQueryError):
            build_archive_request("temple", date_range="last-week")

    def test_unknown_date_range_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            build_archive_request("temple", date_range="last-week")

    def test_custom_dates_with_predefined_range(self) -> None:
        with pytest.raises(InvalidQueryError):
            build_archive_request(
                "temple", date_range="past-5-years", begin_date="2001-01-01"
            )


class TestStartValidation:
    """start < 1 is rejected by every builder accepting a start or page."""

    BUILDERS: list[Callable[[], PreparedRequest]] = [
        lambda: build_vertex_request("x", domain=Domain.WEB, start=0),
        lambda: build_conference_request("x", start=0),
        lambda: build_scripture_request("x", start=0),
        lambda: build_archive_request("x", page=0),
        lambda: build_newsroom_request("x", page=0),
        lambda: build_vertex_request("x", domain=Domain.WEB, start=-5),
    ]

    @pytest.mark.parametrize("build", BUILDERS)
    def test_rejected(self, build: Callable[[], PreparedRequest]) -> None:
        with pytest.raises(InvalidQueryError):
            build()


class TestLookupRequests:
    """Tests for the newsroom, lookup and content builders."""

    def test_newsroom(self) -> None:
        request = build_newsroom_request("humanitarian", page=3, lang="spa")
        params = _params(request)
        assert _path(request) == f"{PROXY}/newsroom-search"
        assert request.endpoint is Endpoint.NEWSROOM
        assert dict(params) == {"query": "humanitarian", "page": "3", "lang": "spa"}

    def test_video_metadata(self) -> None:
        request = build_video_metadata_request(" abc123 ")
        assert _path(request) == f"{PROXY}/video-metadata"
        assert dict(_params(request)) == {"id": "abc123", "lang": "eng"}

    def test_video_metadata_requires_id(self) -> None:
        with pytest.raises(InvalidQueryError):
            build_video_metadata_request("")

    def test_listings(self) -> None:
        books = build_scripture_books_request("fra")
        strings = build_search_strings_request()
        assert _path(books) == f"{PROXY}/scripture-books"
        assert _params(books)["lang"] == "fra"
        assert _path(strings) == f"{PROXY}/search-strings"
        assert _params(strings)["lang"] == "eng"

    def test_content(self) -> None:
        request = build_content_request("/scriptures/bofm/1-ne/1")
        params = _params(request)
        assert _path(request) == (
            "https://www.churchofjesuschrist.org"
            "/study/api/v3/language-pages/type/content"
        )
        assert params["uri"] == "/scriptures/bofm/1-ne/1"
        assert params["lang"] == "eng"
        assert request.domain is Domain.CONTENT

    @pytest.mark.parametrize(
        "uri",
        ["", "scriptures/bofm", "/scriptures/../etc", "/a b", "/x?y=1", "/" + "a" * 499],
    )
    def test_invalid_content_uri(self, uri: str) -> None:
        with pytest.raises(InvalidUriError):
            build_content_request(uri)
