# ABOUTME: Unit tests for the strategy escalation planner.
# ABOUTME: Checks round order, applicability rules, provider routing, and deduplication.

from bookcover.core.planner import (
    FALLBACK_PROVIDERS,
    ISBN_PROVIDERS,
    TEXT_PROVIDERS,
    ProviderRouting,
    StrategyPlanner,
    fuzzy_terms,
    partial_title,
    work_title,
)
from bookcover.types import BookQuery


def _names(query: BookQuery) -> list[str]:
    return [plan.strategy_name for plan in StrategyPlanner().plan(query)]


class TestTitleHelpers:
    """Tests for the title transformation helpers."""

    def test_work_title_strips_subtitle(self) -> None:
        assert work_title("ぐりとぐら：ふたごの野ねずみ") == "ぐりとぐら"
        assert work_title("Dune: Messiah") == "Dune"

    def test_work_title_strips_volume(self) -> None:
        assert work_title("ドラゴンたいじ 2") == "ドラゴンたいじ"
        assert work_title("はてしない物語（上）") == "はてしない物語"
        assert work_title("魔女の宅急便 第3巻") == "魔女の宅急便"

    def test_work_title_never_empty(self) -> None:
        assert work_title("1984") == "1984"

    def test_fuzzy_terms(self) -> None:
        assert fuzzy_terms("エリック・カール") == "エリック カール"
        assert fuzzy_terms("Harry Potter & the Stone!") == "Harry Potter the Stone"

    def test_partial_title(self) -> None:
        assert partial_title("The Very Hungry Caterpillar") == "Caterpillar"
        assert partial_title("はらぺこあおむし") == "はらぺこあ"
        assert partial_title("ぐり") is None


class TestStrategyPlanner:
    """Tests for StrategyPlanner.plan."""

    def test_full_query_rounds(self) -> None:
        query = BookQuery(
            title="ぐりとぐら：ふたごの野ねずみ",
            author="中川李枝子",
            isbn="9784834000829",
            publisher="福音館書店",
            year=1963,
        )
        plans = StrategyPlanner().plan(query)
        assert [p.strategy_name for p in plans] == [
            "isbn_exact",
            "exact_title_author",
            "title_author_publisher",
            "title_author_year",
            "series_work",
            "fuzzy_title_author",
            "author_bibliography",
            "alternate_edition",
            "partial_title",
            "loose_title",
        ]
        assert [p.round_number for p in plans] == list(range(1, 11))
        assert [p.priority for p in plans] == [10, 9, 8, 8, 7, 6, 5, 4, 3, 2]

    def test_isbn_round(self) -> None:
        plan = StrategyPlanner().plan(BookQuery(title="ぐりとぐら", isbn="978-4-8340-0082-9"))[0]
        assert plan.use_isbn is True
        assert plan.query_terms == "isbn:9784834000829"
        assert plan.providers == ISBN_PROVIDERS

    def test_untrusted_isbn_skips_isbn_round(self) -> None:
        assert "isbn_exact" not in _names(BookQuery(title="ぐりとぐら", isbn="4834000826"))

    def test_inapplicable_rounds_skipped(self) -> None:
        names = _names(BookQuery(title="ぐりとぐら"))
        for skipped in (
            "isbn_exact",
            "title_author_publisher",
            "title_author_year",
            "series_work",
            "author_bibliography",
        ):
            assert skipped not in names
        assert names[0] == "exact_title_author"
        assert names[-1] == "loose_title"

    def test_duplicate_requests_removed(self) -> None:
        """A round that would repeat an earlier request is dropped."""
        planner = StrategyPlanner(ProviderRouting(fallback=TEXT_PROVIDERS))
        names = [p.strategy_name for p in planner.plan(BookQuery(title="ぐりとぐら"))]
        assert "alternate_edition" in names
        assert "loose_title" not in names

    def test_round_numbers_keep_escalation_position(self) -> None:
        plans = StrategyPlanner().plan(BookQuery(title="ぐりとぐら", author="中川李枝子"))
        numbers = {p.strategy_name: p.round_number for p in plans}
        assert numbers["exact_title_author"] == 2
        assert numbers["loose_title"] == 10

    def test_exact_round_quotes_title(self) -> None:
        plan = StrategyPlanner().plan(BookQuery(title="ぐりとぐら", author="中川李枝子"))[0]
        assert plan.query_terms == '"ぐりとぐら" 中川李枝子'
        assert plan.title_terms == "ぐりとぐら"
        assert plan.author_terms == "中川李枝子"

    def test_year_round_range(self) -> None:
        plans = StrategyPlanner().plan(BookQuery(title="ぐりとぐら", year=1963))
        year_plan = next(p for p in plans if p.strategy_name == "title_author_year")
        assert year_plan.year_range == (1961, 1965)
        assert year_plan.providers == ("ndl",)

    def test_later_rounds_drop_language_restriction(self) -> None:
        plans = StrategyPlanner().plan(BookQuery(title="はらぺこあおむし", author="エリック・カール"))
        by_name = {p.strategy_name: p for p in plans}
        assert by_name["exact_title_author"].language_restrict is True
        assert by_name["alternate_edition"].language_restrict is False
        assert by_name["loose_title"].providers == FALLBACK_PROVIDERS

    def test_author_bibliography_terms(self) -> None:
        plans = StrategyPlanner().plan(BookQuery(title="ぐりとぐら", author="中川李枝子"))
        plan = next(p for p in plans if p.strategy_name == "author_bibliography")
        assert plan.query_terms == "inauthor:中川李枝子"
        assert plan.title_terms == ""
