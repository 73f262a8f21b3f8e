# ABOUTME: Matching package: text similarity, candidate scoring, and verification gating.
# ABOUTME: Exports the scorer, gate, and vision protocol used by the resolver.

from bookcover.matching.scoring import (
    CandidateScorer,
    ScoringWeights,
    is_selectable,
    rank,
    rank_key,
)
from bookcover.matching.similarity import author_similarity, similarity
from bookcover.matching.verification import GateConfig, VerificationGate
from bookcover.matching.vision import (
    GeminiVisionValidator,
    VisionCheck,
    VisionError,
    VisionValidator,
)

__all__ = [
    "CandidateScorer",
    "GateConfig",
    "GeminiVisionValidator",
    "ScoringWeights",
    "VerificationGate",
    "VisionCheck",
    "VisionError",
    "VisionValidator",
    "author_similarity",
    "is_selectable",
    "rank",
    "rank_key",
    "similarity",
]
