# ABOUTME: Point-based scoring of provider candidates against the requested book.
# ABOUTME: Combines title, author, image quality, language, and category signals.

from collections.abc import Iterable
from dataclasses import dataclass

from bookcover.matching.similarity import author_similarity, similarity
from bookcover.types import BookQuery, Candidate, ImageQuality, ScoredCandidate

# Candidates below this title similarity are never selectable.
TITLE_THRESHOLD = 0.5
AUTHOR_THRESHOLD = 0.5

_QUALITY_POINTS: dict[ImageQuality, int] = {
    ImageQuality.LARGE: 8,
    ImageQuality.MEDIUM: 6,
    ImageQuality.SMALL: 4,
    ImageQuality.THUMBNAIL: 2,
    ImageQuality.NONE: 0,
}

_JUVENILE_MARKERS = (
    "juvenile",
    "children",
    "picture book",
    "児童",
    "絵本",
    "子ども",
    "こども",
    "001003",  # Rakuten genre id for picture and children's books
)


@dataclass
class ScoringWeights:
    """Tunable point weights for candidate scoring."""

    title: int = 10
    author: int = 15
    language: int = 5
    category: int = 3
    quality: dict[ImageQuality, int] | None = None

    def quality_points(self, quality: ImageQuality) -> int:
        table = self.quality if self.quality is not None else _QUALITY_POINTS
        return table.get(quality, 0)

    @property
    def max_score(self) -> int:
        best_quality = max(self.quality_points(q) for q in ImageQuality)
        return self.title + self.author + self.language + self.category + best_quality


def _has_juvenile_marker(categories: Iterable[str]) -> bool:
    for category in categories:
        lowered = category.lower()
        if any(marker in lowered for marker in _JUVENILE_MARKERS):
            return True
    return False


class CandidateScorer:
    """Assigns match scores to candidates and ranks them.

    Every component is non-negative and non-decreasing in its signal, so the
    total never drops when title, author, or image quality improves.
    """

    def __init__(
        self, weights: ScoringWeights | None = None, *, target_locale: str = "ja"
    ) -> None:
        self.weights = weights or ScoringWeights()
        self._locale = target_locale.lower()

    def score(
        self, query: BookQuery, candidate: Candidate, provider_order: int = 0
    ) -> ScoredCandidate:
        """Score one candidate against the query."""
        title_sim = similarity(query.title, candidate.source_title)
        author_sim = author_similarity(query.author, candidate.source_authors)

        total = 0
        if title_sim >= TITLE_THRESHOLD:
            total += round(self.weights.title * title_sim)
        if author_sim >= AUTHOR_THRESHOLD:
            total += round(self.weights.author * author_sim)

        quality_points = self.weights.quality_points(candidate.image_quality)
        total += quality_points

        if candidate.language and candidate.language.lower() == self._locale:
            total += self.weights.language
        if _has_juvenile_marker(candidate.categories):
            total += self.weights.category

        return ScoredCandidate(
            candidate=candidate,
            title_similarity=title_sim,
            author_similarity=author_sim,
            quality_score=quality_points,
            total_score=total,
            provider_order=provider_order,
        )

    def score_all(
        self, query: BookQuery, candidates: Iterable[tuple[int, Candidate]]
    ) -> list[ScoredCandidate]:
        """Score (provider_order, candidate) pairs and return them ranked."""
        scored = [self.score(query, cand, order) for order, cand in candidates]
        return rank(scored)


def rank_key(scored: ScoredCandidate) -> tuple[int, int, int]:
    """Sort key placing higher score, then higher plan priority, then earlier provider first."""
    return (-scored.total_score, -scored.candidate.plan_priority, scored.provider_order)


def rank(scored: Iterable[ScoredCandidate]) -> list[ScoredCandidate]:
    """Sort best-first by total score, plan priority, then provider order."""
    return sorted(scored, key=rank_key)


def is_selectable(scored: ScoredCandidate) -> bool:
    """Whether the candidate's title is close enough to ever be accepted."""
    return scored.title_similarity >= TITLE_THRESHOLD
