# ABOUTME: Strategy escalation: builds the ordered search plans tried for one book.
# ABOUTME: Each round widens the query until a candidate is accepted or plans run out.

import re
from dataclasses import dataclass, field, replace

from bookcover.types import BookQuery, SearchPlan

ISBN_PROVIDERS = ("openlibrary", "google_books", "rakuten", "ndl")
TEXT_PROVIDERS = ("google_books", "rakuten", "ndl")
FALLBACK_PROVIDERS = ("google_books", "browser")

# Subtitle separators: colon, dashes, wave dash, full-width space.
_SUBTITLE_RE = re.compile(r"\s*(?::|：|―|—|～|〜|\s-\s|　).*$")
# Trailing volume markers such as "2", "（上）", "第3巻".
_VOLUME_RE = re.compile(r"\s*(?:[（(][上中下][）)]|第?[0-9０-９]+巻?)$")
_PUNCT_RE = re.compile(r"[\W_]+")
_MIN_PARTIAL_LENGTH = 4
_YEAR_WINDOW = 2


def work_title(title: str) -> str:
    """Title without subtitle and trailing volume number."""
    stripped = _SUBTITLE_RE.sub("", title).strip()
    stripped = _VOLUME_RE.sub("", stripped).strip()
    return stripped or title.strip()


def fuzzy_terms(text: str) -> str:
    """Replace punctuation and middle dots with single spaces."""
    return " ".join(_PUNCT_RE.sub(" ", text).split())


def partial_title(title: str) -> str | None:
    """Leading segment of a title, or None if too short to shorten."""
    words = fuzzy_terms(title).split()
    if len(words) > 1:
        segment = max(words, key=len)
    else:
        compact = words[0] if words else ""
        segment = compact[: max(_MIN_PARTIAL_LENGTH, (len(compact) * 3 + 4) // 5)]
    if len(segment) < _MIN_PARTIAL_LENGTH or segment == title.strip():
        return None
    return segment


@dataclass
class ProviderRouting:
    """Which adapters each kind of round calls, in declaration order."""

    isbn: tuple[str, ...] = ISBN_PROVIDERS
    text: tuple[str, ...] = TEXT_PROVIDERS
    fallback: tuple[str, ...] = FALLBACK_PROVIDERS
    author_only: tuple[str, ...] = field(default=("google_books", "ndl"))


class StrategyPlanner:
    """Generates the escalating sequence of search plans for a query.

    Rounds that do not apply to the query (no ISBN, unknown publisher or
    year) are skipped, as are rounds that would repeat an earlier request.
    """

    def __init__(self, routing: ProviderRouting | None = None) -> None:
        self.routing = routing or ProviderRouting()

    def plan(self, query: BookQuery) -> list[SearchPlan]:
        title = query.title.strip()
        author = query.author.strip()
        base = work_title(title)
        routing = self.routing

        rounds: list[SearchPlan | None] = [
            self._isbn_round(query),
            SearchPlan(
                strategy_name="exact_title_author",
                priority=9,
                query_terms=f'"{title}" {author}'.strip(),
                title_terms=title,
                author_terms=author or None,
                providers=routing.text,
            ),
            SearchPlan(
                strategy_name="title_author_publisher",
                priority=8,
                query_terms=f"{title} {author} {query.publisher}".strip(),
                title_terms=title,
                author_terms=author or None,
                providers=routing.text,
            )
            if query.publisher
            else None,
            SearchPlan(
                strategy_name="title_author_year",
                priority=8,
                query_terms=f"{title} {author}".strip(),
                title_terms=title,
                author_terms=author or None,
                providers=("ndl",),
                year_range=(query.year - _YEAR_WINDOW, query.year + _YEAR_WINDOW),
            )
            if query.year
            else None,
            SearchPlan(
                strategy_name="series_work",
                priority=7,
                query_terms=f"{base} {author}".strip(),
                title_terms=base,
                author_terms=author or None,
                providers=routing.text,
            )
            if base != title
            else None,
            SearchPlan(
                strategy_name="fuzzy_title_author",
                priority=6,
                query_terms=f"{fuzzy_terms(title)} {fuzzy_terms(author)}".strip(),
                title_terms=fuzzy_terms(title),
                author_terms=fuzzy_terms(author) or None,
                providers=routing.text,
            ),
            SearchPlan(
                strategy_name="author_bibliography",
                priority=5,
                query_terms=f"inauthor:{author}",
                author_terms=author,
                providers=routing.author_only,
            )
            if author
            else None,
            SearchPlan(
                strategy_name="alternate_edition",
                priority=4,
                query_terms=base,
                title_terms=base,
                providers=routing.text,
                language_restrict=False,
            ),
            self._partial_round(title),
            SearchPlan(
                strategy_name="loose_title",
                priority=2,
                query_terms=title,
                title_terms=title,
                providers=routing.fallback,
                language_restrict=False,
            ),
        ]

        plans: list[SearchPlan] = []
        seen: set[tuple] = set()
        for number, plan in enumerate(rounds, start=1):
            if plan is None:
                continue
            signature = (
                plan.query_terms,
                plan.title_terms,
                plan.author_terms,
                plan.providers,
                plan.language_restrict,
                plan.year_range,
            )
            if signature in seen:
                continue
            seen.add(signature)
            plans.append(_with_round(plan, number))
        return plans

    def _isbn_round(self, query: BookQuery) -> SearchPlan | None:
        isbn = query.trusted_isbn
        if not isbn:
            return None
        return SearchPlan(
            strategy_name="isbn_exact",
            priority=10,
            query_terms=f"isbn:{isbn}",
            use_isbn=True,
            title_terms=query.title.strip(),
            author_terms=query.author.strip() or None,
            providers=self.routing.isbn,
        )

    def _partial_round(self, title: str) -> SearchPlan | None:
        segment = partial_title(title)
        if segment is None:
            return None
        return SearchPlan(
            strategy_name="partial_title",
            priority=3,
            query_terms=segment,
            title_terms=segment,
            providers=self.routing.text,
            language_restrict=False,
        )


def _with_round(plan: SearchPlan, number: int) -> SearchPlan:
    return replace(plan, round_number=number)
