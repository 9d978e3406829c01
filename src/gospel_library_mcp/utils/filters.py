"""Filter strings for the shared vertex-search endpoint.

The site-scoped searches (Gospel Topics, Come, Follow Me, Liahona, ...) are
not separate endpoints but filter variants of ``vertex-search``. Each domain's
dialect is a ``DomainFilter`` template; ``build_filter`` renders any template
into the backend's boolean ``siteSearch`` grammar:

    siteSearch:"pattern"      include URLs matching pattern
    -siteSearch:"pattern"     exclude URLs matching pattern
    AND / OR, parentheses     combine clauses

Every rendered filter ends with the locale clause and the exclusions for
tracking-parameter URL variants, which would otherwise show up as duplicates.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
import re
from types import MappingProxyType

from gospel_library_mcp.schemas.base.search import Domain
from gospel_library_mcp.utils.errors import (
    InvalidDateRangeError,
    InvalidQueryError,
    UnknownDomainError,
)

SITE = "churchofjesuschrist.org"
DEFAULT_LANGUAGE = "eng"

# URL parameters that only mark tracking/view variants of a page
TRACKING_PARAMETERS = ("imageView", "adbid", "adbpl", "adbpr", "cid", "short_code")

CONFERENCE_MONTHS = ("04", "10")

# Seminary manuals per course of study
SEMINARY_SUBJECTS: Mapping[str, tuple[str, ...]] = MappingProxyType(
    {
        "old-testament": ("*old-testament*", "*ot-*"),
        "new-testament": ("*new-testament*", "*nt-*"),
        "book-of-mormon": ("*book-of-mormon*", "*bofm*"),
        "doctrine-and-covenants": ("*doctrine-and-covenants*", "*dc-*", "*d-c-*"),
    }
)


@dataclass(frozen=True)
class DomainFilter:
    """Declarative filter dialect of one domain.

    Attributes:
        description: Human-readable scope of the domain
        paths: Site patterns, combined with OR into the base clause
        narrowing: Optional patterns of which at least one must match
        dated_path: Pattern with ``{year}``/``{month}`` placeholders used
            instead of ``paths`` when a year range is requested
        accepts_edition: Whether a year/edition token may be appended
        accepts_speaker: Whether a speaker slug may be appended
        subjects: Named narrowing patterns selectable with ``subject``
    """

    description: str
    paths: tuple[str, ...]
    narrowing: tuple[str, ...] = ()
    dated_path: str | None = None
    accepts_edition: bool = False
    accepts_speaker: bool = False
    subjects: Mapping[str, tuple[str, ...]] = field(default_factory=dict)


@dataclass(frozen=True)
class FilterOptions:
    """Optional parameters for ``build_filter``.

    Attributes:
        language: Language code; replaces the default English-or-unlabeled clause
        year: Year of an edition (Liahona, FTSOY, YA Weekly)
        edition: Edition token, takes precedence over ``year``
        start_year: First year of a conference range
        end_year: Last year of a conference range
        speaker: Speaker name, converted to a URL slug
        subject: Course of study (seminary), e.g. "book-of-mormon"
    """

    language: str | None = None
    year: int | None = None
    edition: str | None = None
    start_year: int | None = None
    end_year: int | None = None
    speaker: str | None = None
    subject: str | None = None


DOMAIN_FILTERS: dict[Domain, DomainFilter] = {
    Domain.WEB: DomainFilter(
        description="Everything on the Church website",
        paths=(f"{SITE}*",),
    ),
    Domain.GOSPEL_TOPICS: DomainFilter(
        description="Gospel Topics essays and topic overviews",
        paths=(f"{SITE}/study/manual/gospel-topics*",),
    ),
    Domain.COME_FOLLOW_ME: DomainFilter(
        description="Come, Follow Me study materials",
        paths=(f"{SITE}/study/manual/come-follow-me*",),
    ),
    Domain.GENERAL_HANDBOOK: DomainFilter(
        description="General Handbook policies and procedures",
        paths=(f"{SITE}/study/manual/general-handbook*",),
    ),
    Domain.LIAHONA: DomainFilter(
        description="Liahona magazine articles",
        paths=(f"{SITE}/study/liahona*",),
        accepts_edition=True,
    ),
    Domain.FOR_THE_STRENGTH_OF_YOUTH: DomainFilter(
        description="For the Strength of Youth magazine and guide",
        paths=(
            f"{SITE}/study/for-the-strength-of-youth*",
            f"{SITE}/study/manual/for-the-strength-of-youth*",
        ),
        accepts_edition=True,
    ),
    Domain.CHILDREN: DomainFilter(
        description="Friend magazine and Primary materials",
        paths=(f"{SITE}/study/friend*", f"{SITE}/study/manual/primary*"),
    ),
    Domain.YA_WEEKLY: DomainFilter(
        description="YA Weekly articles for young adults",
        paths=(f"{SITE}/study/ya-weekly*",),
        accepts_edition=True,
    ),
    Domain.CHURCH_HISTORY: DomainFilter(
        description="Church history topics, Saints volumes and sites",
        paths=(f"{SITE}/study/history*", f"{SITE}/study/church-history*"),
    ),
    Domain.BASIC_BELIEFS: DomainFilter(
        description="Basic beliefs introductions",
        paths=(f"{SITE}/comeuntochrist/beliefs*",),
    ),
    Domain.BYU_SPEECHES: DomainFilter(
        description="BYU devotionals and speeches",
        paths=("speeches.byu.edu/talks*",),
    ),
    Domain.SEMINARY: DomainFilter(
        description="Seminary and institute manuals",
        paths=(f"{SITE}/study/manual*",),
        narrowing=(
            "*seminary*",
            "*institute*",
            "*teacher-manual*",
            "*student-manual*",
        ),
        subjects=SEMINARY_SUBJECTS,
    ),
    Domain.MUSIC: DomainFilter(
        description="Hymns and Church music",
        paths=(f"{SITE}/study/music*", f"{SITE}/media/music*"),
    ),
    Domain.MEDIA_LIBRARY: DomainFilter(
        description="Media library videos, images and audio",
        paths=(f"{SITE}/media*",),
    ),
    Domain.GENERAL_CONFERENCE: DomainFilter(
        description="General Conference talks",
        paths=(f"{SITE}/study/general-conference*",),
        dated_path=f"{SITE}/study/general-conference/{{year}}/{{month}}/",
        accepts_speaker=True,
    ),
    Domain.SCRIPTURES: DomainFilter(
        description="Standard works (chapter pages)",
        paths=(f"{SITE}/study/scriptures*",),
    ),
    Domain.NEWSROOM: DomainFilter(
        description="Newsroom releases and articles",
        paths=("newsroom.churchofjesuschrist.org*",),
    ),
}


def _quote(value: str) -> str:
    """Quote a literal, escaping backslashes and double quotes."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _site(pattern: str) -> str:
    return f"siteSearch:{_quote(pattern)}"


def _exclude(pattern: str) -> str:
    return f"-{_site(pattern)}"


def _any_of(patterns: list[str] | tuple[str, ...]) -> str:
    """OR-combine include clauses; a single pattern needs no parentheses."""
    clauses = [_site(p) for p in patterns]
    if len(clauses) == 1:
        return clauses[0]
    return f"({' OR '.join(clauses)})"


def speaker_slug(name: str) -> str:
    """Convert a speaker name to the URL slug used in talk paths.

    Example:
        >>> speaker_slug("Russell M. Nelson")
        'russell-m-nelson'
    """
    slug = re.sub(r"\s+", "-", name.strip().lower())
    return re.sub(r"[^a-z0-9\-]", "", slug)


def locale_clause(language: str | None = None) -> str:
    """Clause selecting one language.

    Without an override, pages explicitly labeled English or carrying no
    ``lang`` parameter at all are kept.
    """
    if language:
        return _site(f"*lang={language}*")
    english = _site(f"*lang={DEFAULT_LANGUAGE}*")
    unlabeled = _exclude("*lang=*")
    return f"({english} OR {unlabeled})"


def tracking_exclusions() -> list[str]:
    """Clauses removing tracking-parameter variants of a URL."""
    return [_exclude(f"*{param}=*") for param in TRACKING_PARAMETERS]


def conference_paths(
    template: DomainFilter, start_year: int, end_year: int
) -> list[str]:
    """Session path patterns for every conference in a year range."""
    if template.dated_path is None:
        raise InvalidQueryError("Domain does not support year ranges")
    if start_year > end_year:
        raise InvalidDateRangeError(
            f"start year {start_year} lies after end year {end_year}"
        )
    return [
        template.dated_path.format(year=year, month=month)
        for year in range(start_year, end_year + 1)
        for month in CONFERENCE_MONTHS
    ]


def subject_paths(template: DomainFilter, subject: str) -> tuple[str, ...]:
    """Narrowing patterns of a course of study."""
    if not template.subjects:
        raise InvalidQueryError("Domain does not support subjects")
    try:
        return template.subjects[subject]
    except KeyError as e:
        expected = ", ".join(template.subjects)
        raise InvalidQueryError(
            f"Unknown subject: {subject} (expected one of {expected})"
        ) from e


def get_domain_filter(domain: Domain | str) -> DomainFilter:
    """Look up the filter template of a domain.

    Raises:
        UnknownDomainError: If the domain has no template
    """
    try:
        return DOMAIN_FILTERS[Domain(domain)]
    except (ValueError, KeyError) as e:
        raise UnknownDomainError(domain) from e


def build_filter(domain: Domain | str, options: FilterOptions | None = None) -> str:
    """Build the vertex-search filter string for a domain.

    Args:
        domain: Domain with a filter template
        options: Optional language, edition, year range, speaker or subject

    Returns:
        Filter expression, e.g. for Gospel Topics::

            siteSearch:"churchofjesuschrist.org/study/manual/gospel-topics*"
            AND (siteSearch:"*lang=eng*" OR -siteSearch:"*lang=*")
            AND -siteSearch:"*imageView=*" AND ...

    Raises:
        UnknownDomainError: If the domain has no template
        InvalidQueryError: If an option is not supported by the domain
        InvalidDateRangeError: If start_year lies after end_year
    """
    template = get_domain_filter(domain)
    opts = options or FilterOptions()

    if opts.start_year is not None or opts.end_year is not None:
        start_year = opts.start_year if opts.start_year is not None else opts.end_year
        end_year = opts.end_year if opts.end_year is not None else opts.start_year
        clauses = [_any_of(conference_paths(template, start_year, end_year))]
    else:
        clauses = [_any_of(template.paths)]

    if template.narrowing:
        clauses.append(_any_of(template.narrowing))

    token = opts.edition or (str(opts.year) if opts.year is not None else None)
    if token:
        if not template.accepts_edition:
            raise InvalidQueryError(f"{Domain(domain).value} has no editions")
        clauses.append(_site(f"*{token}*"))

    if opts.speaker:
        if not template.accepts_speaker:
            raise InvalidQueryError(f"{Domain(domain).value} has no speakers")
        clauses.append(_site(f"*/{speaker_slug(opts.speaker)}"))

    if opts.subject:
        clauses.append(_any_of(subject_paths(template, opts.subject)))

    clauses.append(locale_clause(opts.language))
    clauses.extend(tracking_exclusions())
    return " AND ".join(clauses)
