# ABOUTME: Confidence-gated acceptance of scored candidates in strict or balanced mode.
# ABOUTME: Combines text scores with optional visual verification; never raises on collaborator errors.

import logging
import random
from dataclasses import dataclass

from bookcover.matching.scoring import ScoringWeights, is_selectable
from bookcover.matching.vision import VisionCheck, VisionValidator
from bookcover.types import AccuracyMode, BookQuery, ScoredCandidate, VerificationOutcome

logger = logging.getLogger(__name__)

# ISBN-keyed matches are trusted by definition.
ISBN_CONFIDENCE = 95


@dataclass
class GateConfig:
    """Thresholds for both accuracy modes."""

    strict_min_confidence: int = 90
    balanced_min_confidence: int = 70
    top_n: int = 3
    pool_size: int = 8
    skip_ratio: float = 0.3
    score_floor: int = 25


class VerificationGate:
    """Decides whether a scored candidate is accepted, and at what confidence.

    Strict mode accepts nothing the vision collaborator has not confirmed.
    Balanced mode sends only the top candidates of a bounded pool to the
    collaborator and trusts ISBN-sourced or high-scoring candidates directly.
    """

    def __init__(
        self,
        config: GateConfig | None = None,
        *,
        weights: ScoringWeights | None = None,
        rng: random.Random | None = None,
    ) -> None:
        self.config = config or GateConfig()
        self._max_score = (weights or ScoringWeights()).max_score
        self._rng = rng or random.Random()

    def verify(
        self,
        query: BookQuery,
        candidate: ScoredCandidate,
        mode: AccuracyMode,
        vision: VisionValidator | None = None,
        *,
        rank: int = 0,
    ) -> VerificationOutcome:
        """Verify one candidate; rank is its 0-based position in the ranked round."""
        if not is_selectable(candidate):
            return VerificationOutcome(
                accepted=False,
                confidence=0,
                reason=f"title similarity {candidate.title_similarity:.2f} below threshold",
            )
        if not candidate.candidate.image_url:
            return VerificationOutcome(accepted=False, confidence=0, reason="no image")

        if mode is AccuracyMode.STRICT:
            return self._verify_strict(query, candidate, vision)
        return self._verify_balanced(query, candidate, vision, rank)

    def score_confidence(self, candidate: ScoredCandidate) -> int:
        """Confidence derived from text score alone."""
        if candidate.candidate.isbn_matched:
            return ISBN_CONFIDENCE
        if self._max_score <= 0:
            return 0
        value = round(100 * candidate.total_score / self._max_score)
        return max(0, min(100, value))

    def _verify_strict(
        self,
        query: BookQuery,
        candidate: ScoredCandidate,
        vision: VisionValidator | None,
    ) -> VerificationOutcome:
        if vision is None:
            return VerificationOutcome(
                accepted=False, confidence=0, reason="strict mode requires visual verification"
            )

        check = self._run_vision(query, candidate, vision)
        if check is None:
            return VerificationOutcome(
                accepted=False, confidence=0, reason="visual verification failed"
            )

        accepted = (
            check.confidence >= self.config.strict_min_confidence
            and check.title_match
            and check.author_match
        )
        reason = "visually confirmed" if accepted else f"visual check rejected: {check.reason}"
        return VerificationOutcome(
            accepted=accepted,
            confidence=check.confidence,
            reason=reason,
            vision_checked=True,
        )

    def _verify_balanced(
        self,
        query: BookQuery,
        candidate: ScoredCandidate,
        vision: VisionValidator | None,
        rank: int,
    ) -> VerificationOutcome:
        cfg = self.config
        if rank >= cfg.pool_size:
            return VerificationOutcome(accepted=False, confidence=0, reason="outside candidate pool")

        above_floor = candidate.total_score >= cfg.score_floor
        if candidate.candidate.isbn_matched and above_floor:
            return self._accept_on_score(candidate, "ISBN-sourced match")

        if rank >= cfg.top_n:
            return VerificationOutcome(
                accepted=False, confidence=0, reason="outside verification window"
            )

        if vision is None:
            if above_floor:
                return self._accept_on_score(candidate, "score above floor")
            return VerificationOutcome(
                accepted=False,
                confidence=self.score_confidence(candidate),
                reason=f"score {candidate.total_score} below floor",
            )

        if above_floor and self._rng.random() < cfg.skip_ratio:
            return self._accept_on_score(candidate, "visual check skipped, score above floor")

        check = self._run_vision(query, candidate, vision)
        if check is None:
            if above_floor:
                return self._accept_on_score(candidate, "visual check failed, score above floor")
            return VerificationOutcome(
                accepted=False, confidence=0, reason="visual verification failed"
            )

        accepted = (
            check.is_valid
            and check.title_match
            and check.confidence >= cfg.balanced_min_confidence
        )
        reason = "visually confirmed" if accepted else f"visual check rejected: {check.reason}"
        return VerificationOutcome(
            accepted=accepted,
            confidence=check.confidence,
            reason=reason,
            vision_checked=True,
        )

    def _accept_on_score(self, candidate: ScoredCandidate, reason: str) -> VerificationOutcome:
        return VerificationOutcome(
            accepted=True, confidence=self.score_confidence(candidate), reason=reason
        )

    @staticmethod
    def _run_vision(
        query: BookQuery, candidate: ScoredCandidate, vision: VisionValidator
    ) -> VisionCheck | None:
        try:
            return vision.validate(candidate.candidate.image_url, query.title, query.author)
        except Exception as exc:  # collaborator failures degrade, never propagate
            logger.warning(
                "Visual verification failed for %s: %s", candidate.candidate.image_url, exc
            )
            return None
