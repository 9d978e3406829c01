"""Tests for the vertex-search filter builder."""

import pytest

from gospel_library_mcp.schemas.base.search import Domain
from gospel_library_mcp.utils.errors import (
    InvalidDateRangeError,
    InvalidQueryError,
    UnknownDomainError,
)
from gospel_library_mcp.utils.filters import (
    DOMAIN_FILTERS,
    FilterOptions,
    build_filter,
    locale_clause,
    speaker_slug,
    tracking_exclusions,
)

TRACKING = (
    ' AND -siteSearch:"*imageView=*" AND -siteSearch:"*adbid=*"'
    ' AND -siteSearch:"*adbpl=*" AND -siteSearch:"*adbpr=*"'
    ' AND -siteSearch:"*cid=*" AND -siteSearch:"*short_code=*"'
)
DEFAULT_LOCALE = '(siteSearch:"*lang=eng*" OR -siteSearch:"*lang=*")'


def _balanced(expression: str) -> bool:
    depth = 0
    for char in expression:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


class TestBuildFilter:
    """Tests for build_filter."""

    def test_gospel_topics_default(self) -> None:
        assert build_filter(Domain.GOSPEL_TOPICS) == (
            'siteSearch:"churchofjesuschrist.org/study/manual/gospel-topics*"'
            f" AND {DEFAULT_LOCALE}{TRACKING}"
        )

    def test_accepts_domain_value(self) -> None:
        assert build_filter("gospel-topics") == build_filter(Domain.GOSPEL_TOPICS)

    @pytest.mark.parametrize("domain", list(DOMAIN_FILTERS))
    def test_every_domain_is_well_formed(self, domain: Domain) -> None:
        expression = build_filter(domain)
        assert _balanced(expression)
        assert DEFAULT_LOCALE in expression
        for clause in tracking_exclusions():
            assert clause in expression
        for path in DOMAIN_FILTERS[domain].paths:
            assert f'siteSearch:"{path}"' in expression

    def test_multiple_paths_are_or_combined(self) -> None:
        expression = build_filter(Domain.CHILDREN)
        assert expression.startswith(
            '(siteSearch:"churchofjesuschrist.org/study/friend*"'
            ' OR siteSearch:"churchofjesuschrist.org/study/manual/primary*")'
        )

    def test_seminary_narrowing(self) -> None:
        expression = build_filter(Domain.SEMINARY)
        assert 'siteSearch:"*seminary*" OR siteSearch:"*institute*"' in expression

    def test_seminary_subject(self) -> None:
        expression = build_filter(
            Domain.SEMINARY, FilterOptions(subject="doctrine-and-covenants")
        )
        assert (
            ' AND (siteSearch:"*doctrine-and-covenants*" OR siteSearch:"*dc-*"'
            ' OR siteSearch:"*d-c-*") AND '
        ) in expression
        assert _balanced(expression)

    def test_unknown_subject(self) -> None:
        with pytest.raises(InvalidQueryError, match="book-of-mormon"):
            build_filter(Domain.SEMINARY, FilterOptions(subject="pearl"))

    def test_subject_outside_seminary(self) -> None:
        with pytest.raises(InvalidQueryError):
            build_filter(Domain.LIAHONA, FilterOptions(subject="book-of-mormon"))

    def test_language_override(self) -> None:
        expression = build_filter(Domain.LIAHONA, FilterOptions(language="spa"))
        assert 'siteSearch:"*lang=spa*"' in expression
        assert "lang=eng" not in expression

    def test_liahona_year(self) -> None:
        expression = build_filter(Domain.LIAHONA, FilterOptions(year=2024))
        assert ' AND siteSearch:"*2024*" AND ' in expression

    def test_edition_wins_over_year(self) -> None:
        expression = build_filter(
            Domain.YA_WEEKLY, FilterOptions(year=2023, edition="2024/03")
        )
        assert 'siteSearch:"*2024/03*"' in expression
        assert "*2023*" not in expression

    def test_edition_rejected_without_editions(self) -> None:
        with pytest.raises(InvalidQueryError):
            build_filter(Domain.GOSPEL_TOPICS, FilterOptions(year=2024))

    def test_literals_are_escaped(self) -> None:
        expression = build_filter(Domain.LIAHONA, FilterOptions(edition='a"b\\c'))
        assert 'siteSearch:"*a\\"b\\\\c*"' in expression

    def test_conference_year_range(self) -> None:
        expression = build_filter(
            Domain.GENERAL_CONFERENCE, FilterOptions(start_year=2023, end_year=2024)
        )
        for year in (2023, 2024):
            for month in ("04", "10"):
                assert (
                    f'siteSearch:"churchofjesuschrist.org/study/general-conference/'
                    f'{year}/{month}/"' in expression
                )
        assert "2022/" not in expression
        assert _balanced(expression)

    def test_conference_year_range_reversed(self) -> None:
        with pytest.raises(InvalidDateRangeError):
            build_filter(
                Domain.GENERAL_CONFERENCE,
                FilterOptions(start_year=2024, end_year=2020),
            )

    def test_year_range_rejected_without_dated_paths(self) -> None:
        with pytest.raises(InvalidQueryError):
            build_filter(Domain.LIAHONA, FilterOptions(start_year=2020, end_year=2021))

    def test_conference_speaker(self) -> None:
        expression = build_filter(
            Domain.GENERAL_CONFERENCE, FilterOptions(speaker="Russell M. Nelson")
        )
        assert ' AND siteSearch:"*/russell-m-nelson" AND ' in expression

    def test_speaker_rejected_outside_conference(self) -> None:
        with pytest.raises(InvalidQueryError):
            build_filter(Domain.LIAHONA, FilterOptions(speaker="Someone"))

    @pytest.mark.parametrize("domain", [Domain.ARCHIVE, "nope"])
    def test_unknown_domain(self, domain: Domain | str) -> None:
        with pytest.raises(UnknownDomainError):
            build_filter(domain)


class TestHelpers:
    """Tests for the clause helpers."""

    def test_speaker_slug(self) -> None:
        assert speaker_slug("  Dieter F. Uchtdorf ") == "dieter-f-uchtdorf"

    def test_locale_clause_default(self) -> None:
        assert locale_clause() == DEFAULT_LOCALE

    def test_locale_clause_language(self) -> None:
        assert locale_clause("por") == 'siteSearch:"*lang=por*"'
