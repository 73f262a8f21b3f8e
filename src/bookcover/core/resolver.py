# ABOUTME: The cover resolution pipeline: cache lookup, strategy escalation, scoring, verification.
# ABOUTME: Stops at the first accepted candidate and caches both hits and misses.

import logging
from collections.abc import Iterable
from dataclasses import replace

from bookcover.config import ResolverConfig
from bookcover.core.batch import CancellationToken
from bookcover.core.cache import CacheStats, CacheStore
from bookcover.core.planner import StrategyPlanner
from bookcover.matching.scoring import CandidateScorer, is_selectable, rank_key
from bookcover.matching.similarity import normalize_author, normalize_text
from bookcover.matching.verification import VerificationGate
from bookcover.matching.vision import VisionValidator
from bookcover.providers.provider import CoverProvider
from bookcover.types import (
    AccuracyMode,
    BookQuery,
    Candidate,
    CachePriority,
    ResolutionResult,
    ScoredCandidate,
    SearchPlan,
)

logger = logging.getLogger(__name__)

NEGATIVE_TAG = "negative"
COVER_TAG = "cover"


def cache_key(query: BookQuery, mode: AccuracyMode) -> str:
    """Cache key for a query: ISBN-based when trusted, else normalized title and author."""
    isbn = query.trusted_isbn
    if isbn:
        return f"{mode.value}:isbn:{isbn}"
    title = normalize_text(query.title)
    author = normalize_author(query.author)
    return f"{mode.value}:title:{title}|author:{author}"


def _better(current: ScoredCandidate | None, challenger: ScoredCandidate) -> ScoredCandidate:
    """Pick the better diagnostic candidate: selectable beats unselectable, then rank."""
    if current is None:
        return challenger
    current_key = (not is_selectable(current), rank_key(current))
    challenger_key = (not is_selectable(challenger), rank_key(challenger))
    return challenger if challenger_key < current_key else current


class CoverResolver:
    """Resolves a book to a verified cover image.

    Each call checks the cache, then walks the planner's rounds. Within a
    round the plan's providers are called sequentially in declaration order,
    every candidate is scored, and candidates are verified best-first. The
    first accepted candidate ends the search. When every round is exhausted
    the result is "not found", with the best candidate seen kept for
    diagnostics, and a short-lived negative entry is cached.

    Providers named by a plan but not registered with the resolver are
    skipped.
    """

    def __init__(
        self,
        providers: Iterable[CoverProvider],
        *,
        cache: CacheStore | None = None,
        scorer: CandidateScorer | None = None,
        gate: VerificationGate | None = None,
        planner: StrategyPlanner | None = None,
        vision: VisionValidator | None = None,
        config: ResolverConfig | None = None,
    ) -> None:
        self.config = config or ResolverConfig()
        self._providers: dict[str, CoverProvider] = {p.name: p for p in providers}
        self.cache = cache if cache is not None else CacheStore(self.config.cache)
        self.scorer = scorer or CandidateScorer(
            self.config.weights, target_locale=self.config.target_locale
        )
        self.gate = gate or VerificationGate(self.config.gate, weights=self.config.weights)
        self.planner = planner or StrategyPlanner()
        self.vision = vision

    @property
    def provider_names(self) -> list[str]:
        return list(self._providers)

    def resolve(
        self,
        query: BookQuery,
        mode: AccuracyMode = AccuracyMode.BALANCED,
        *,
        cancel: CancellationToken | None = None,
    ) -> ResolutionResult:
        """Resolve one book.

        Args:
            query: The book to find a cover for.
            mode: STRICT requires visual confirmation; BALANCED trusts
                high-scoring and ISBN-sourced candidates.
            cancel: Optional token checked between rounds and provider calls.

        Returns:
            The resolution result. Never raises for provider or vision failures.

        Raises:
            ResolutionCancelled: If the token is set mid-resolution. Nothing
                is cached in that case.
        """
        key = cache_key(query, mode)
        cached = self.cache.get(key)
        if cached is not None:
            logger.debug("Cache hit for %s", key)
            return replace(cached, from_cache=True)

        plans = self.planner.plan(query)
        if self.config.max_rounds is not None:
            plans = plans[: self.config.max_rounds]

        best: ScoredCandidate | None = None
        rounds_tried = 0
        for plan in plans:
            if cancel is not None:
                cancel.raise_if_cancelled()
            rounds_tried += 1

            ranked = self.scorer.score_all(query, self._collect(plan, query, cancel))
            logger.debug(
                "Round %d (%s) produced %d candidates",
                plan.round_number,
                plan.strategy_name,
                len(ranked),
            )
            if ranked:
                leader = next((sc for sc in ranked if is_selectable(sc)), ranked[0])
                best = _better(best, leader)

            accepted = self._verify_round(query, plan, ranked, mode, cancel)
            if accepted is not None:
                result = replace(accepted, rounds_tried=rounds_tried)
                self._store_positive(key, result)
                return result

        logger.info("No confident cover found for %r after %d rounds", query.title, rounds_tried)
        result = replace(ResolutionResult.not_found(), best_candidate=best, rounds_tried=rounds_tried)
        self.cache.set(
            key,
            ResolutionResult.not_found(),
            ttl=self.config.negative_ttl,
            priority=CachePriority.LOW,
            tags=(NEGATIVE_TAG,),
        )
        return result

    def stats(self) -> CacheStats:
        return self.cache.stats()

    def _collect(
        self, plan: SearchPlan, query: BookQuery, cancel: CancellationToken | None
    ) -> list[tuple[int, Candidate]]:
        """Call each of the plan's providers in order, tagging candidates with that order."""
        collected: list[tuple[int, Candidate]] = []
        for order, name in enumerate(plan.providers):
            provider = self._providers.get(name)
            if provider is None:
                continue
            if cancel is not None:
                cancel.raise_if_cancelled()
            candidates = provider.search(plan, query)
            collected.extend((order, candidate) for candidate in candidates)
        return collected

    def _verify_round(
        self,
        query: BookQuery,
        plan: SearchPlan,
        ranked: list[ScoredCandidate],
        mode: AccuracyMode,
        cancel: CancellationToken | None,
    ) -> ResolutionResult | None:
        for position, scored in enumerate(ranked[: self.gate.config.pool_size]):
            if cancel is not None:
                cancel.raise_if_cancelled()
            outcome = self.gate.verify(query, scored, mode, self.vision, rank=position)
            if not outcome.accepted:
                logger.debug(
                    "Rejected %s from %s: %s",
                    scored.candidate.image_url,
                    scored.candidate.provider_name,
                    outcome.reason,
                )
                continue
            candidate = scored.candidate
            return ResolutionResult(
                success=True,
                image_url=candidate.image_url,
                confidence=outcome.confidence,
                source=f"{candidate.provider_name}/{plan.strategy_name}",
                strategy_used=plan.strategy_name,
                best_candidate=scored,
            )
        return None

    def _store_positive(self, key: str, result: ResolutionResult) -> None:
        priority = (
            CachePriority.HIGH
            if result.confidence >= self.config.high_priority_confidence
            else CachePriority.MEDIUM
        )
        provider = result.best_candidate.candidate.provider_name if result.best_candidate else ""
        self.cache.set(
            key,
            ResolutionResult.from_dict(result.to_dict()),
            ttl=self.config.positive_ttl,
            priority=priority,
            tags=(COVER_TAG, f"provider:{provider}", f"strategy:{result.strategy_used}"),
        )
