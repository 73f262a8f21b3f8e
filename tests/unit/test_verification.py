# ABOUTME: Unit tests for the VerificationGate in strict and balanced modes.
# ABOUTME: Uses stub vision validators and a fixed random source for the skip decision.

from bookcover.matching.scoring import CandidateScorer
from bookcover.matching.verification import ISBN_CONFIDENCE, GateConfig, VerificationGate
from bookcover.types import AccuracyMode, BookQuery, ImageQuality, ScoredCandidate
from tests.fixtures.fakes import FailingVision, FixedRandom, StubVision, make_candidate

GURI = BookQuery(title="ぐりとぐら", author="中川李枝子")
NEVER_SKIP = FixedRandom(0.99)
ALWAYS_SKIP = FixedRandom(0.0)


def _scored(**kwargs) -> ScoredCandidate:
    return CandidateScorer().score(GURI, make_candidate(**kwargs))


def _weak() -> ScoredCandidate:
    """Selectable title but below the score floor (no author, small image)."""
    return _scored(authors=[], quality=ImageQuality.SMALL, language=None)


class TestEarlyRejection:
    """Tests for rejections that apply to both modes."""

    def test_unrelated_title_never_accepted(self) -> None:
        gate = VerificationGate(rng=ALWAYS_SKIP)
        scored = _scored(title="はらぺこあおむし")
        for mode in AccuracyMode:
            outcome = gate.verify(GURI, scored, mode, StubVision(confidence=100))
            assert outcome.accepted is False

    def test_missing_image_rejected(self) -> None:
        gate = VerificationGate(rng=ALWAYS_SKIP)
        outcome = gate.verify(GURI, _scored(image_url=""), AccuracyMode.BALANCED)
        assert outcome.accepted is False


class TestStrictMode:
    """Tests for strict mode."""

    def test_requires_vision(self) -> None:
        outcome = VerificationGate().verify(GURI, _scored(), AccuracyMode.STRICT, None)
        assert outcome.accepted is False

    def test_confident_vision_accepts(self) -> None:
        vision = StubVision(confidence=92)
        outcome = VerificationGate().verify(GURI, _scored(), AccuracyMode.STRICT, vision)
        assert outcome.accepted is True
        assert outcome.confidence == 92
        assert outcome.vision_checked is True

    def test_low_confidence_rejected(self) -> None:
        """Vision confidence 40 is below the strict minimum of 90."""
        outcome = VerificationGate().verify(
            GURI, _scored(), AccuracyMode.STRICT, StubVision(confidence=40)
        )
        assert outcome.accepted is False

    def test_author_mismatch_rejected(self) -> None:
        outcome = VerificationGate().verify(
            GURI, _scored(), AccuracyMode.STRICT, StubVision(confidence=99, author_match=False)
        )
        assert outcome.accepted is False

    def test_isbn_candidate_still_needs_vision(self) -> None:
        outcome = VerificationGate().verify(
            GURI, _scored(isbn_matched=True), AccuracyMode.STRICT, None
        )
        assert outcome.accepted is False

    def test_vision_error_rejects_without_raising(self) -> None:
        outcome = VerificationGate().verify(GURI, _scored(), AccuracyMode.STRICT, FailingVision())
        assert outcome.accepted is False


class TestBalancedMode:
    """Tests for balanced mode."""

    def test_isbn_candidate_skips_vision(self) -> None:
        vision = StubVision(confidence=0, is_valid=False)
        outcome = VerificationGate(rng=NEVER_SKIP).verify(
            GURI, _scored(isbn_matched=True), AccuracyMode.BALANCED, vision
        )
        assert outcome.accepted is True
        assert outcome.confidence == ISBN_CONFIDENCE
        assert vision.calls == []

    def test_skip_draw_accepts_on_score(self) -> None:
        vision = StubVision()
        gate = VerificationGate(rng=ALWAYS_SKIP)
        outcome = gate.verify(GURI, _scored(), AccuracyMode.BALANCED, vision)
        assert outcome.accepted is True
        assert outcome.confidence == round(100 * 38 / 41)
        assert vision.calls == []

    def test_vision_consulted_when_not_skipped(self) -> None:
        vision = StubVision(confidence=75, author_match=False)
        outcome = VerificationGate(rng=NEVER_SKIP).verify(
            GURI, _scored(), AccuracyMode.BALANCED, vision
        )
        assert outcome.accepted is True
        assert outcome.confidence == 75
        assert len(vision.calls) == 1

    def test_vision_rejection(self) -> None:
        vision = StubVision(confidence=60)
        outcome = VerificationGate(rng=NEVER_SKIP).verify(
            GURI, _scored(), AccuracyMode.BALANCED, vision
        )
        assert outcome.accepted is False

    def test_vision_error_falls_back_to_score(self) -> None:
        gate = VerificationGate(rng=NEVER_SKIP)
        assert gate.verify(GURI, _scored(), AccuracyMode.BALANCED, FailingVision()).accepted
        assert not gate.verify(GURI, _weak(), AccuracyMode.BALANCED, FailingVision()).accepted

    def test_outside_top_n_not_accepted(self) -> None:
        vision = StubVision()
        outcome = VerificationGate(rng=ALWAYS_SKIP).verify(
            GURI, _scored(), AccuracyMode.BALANCED, vision, rank=3
        )
        assert outcome.accepted is False
        assert vision.calls == []

    def test_isbn_candidate_accepted_anywhere_in_pool(self) -> None:
        gate = VerificationGate(rng=NEVER_SKIP)
        scored = _scored(isbn_matched=True)
        assert gate.verify(GURI, scored, AccuracyMode.BALANCED, None, rank=7).accepted
        assert not gate.verify(GURI, scored, AccuracyMode.BALANCED, None, rank=8).accepted

    def test_without_vision_floor_decides(self) -> None:
        gate = VerificationGate(rng=NEVER_SKIP)
        assert gate.verify(GURI, _scored(), AccuracyMode.BALANCED, None).accepted
        assert not gate.verify(GURI, _weak(), AccuracyMode.BALANCED, None).accepted

    def test_custom_floor(self) -> None:
        gate = VerificationGate(GateConfig(score_floor=40), rng=NEVER_SKIP)
        assert not gate.verify(GURI, _scored(), AccuracyMode.BALANCED, None).accepted


class TestScoreConfidence:
    """Tests for confidence derived from score alone."""

    def test_clamped_percentage(self) -> None:
        gate = VerificationGate()
        assert gate.score_confidence(_scored()) == 93
        assert gate.score_confidence(_scored(isbn_matched=True)) == ISBN_CONFIDENCE
