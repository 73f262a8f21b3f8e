# ABOUTME: Core data structures for cover resolution: queries, plans, candidates, results.
# ABOUTME: These types flow between providers, scoring, verification, cache, and the API.

import re
from dataclasses import asdict, dataclass, field
from enum import Enum, IntEnum
from typing import Any

_ISBN_STRIP_RE = re.compile(r"[\s-]")
_ISBN13_RE = re.compile(r"^97[89]\d{10}$")


class InvalidQueryError(ValueError):
    """Raised when a book query cannot enter the resolution pipeline."""


class ImageQuality(IntEnum):
    """Image size tiers offered by providers, ordered worst to best."""

    NONE = 0
    THUMBNAIL = 1
    SMALL = 2
    MEDIUM = 3
    LARGE = 4


class AccuracyMode(str, Enum):
    """How aggressively candidates are visually re-verified before acceptance."""

    STRICT = "strict"
    BALANCED = "balanced"


class CachePriority(str, Enum):
    """Retention priority of a cache entry under eviction pressure."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


def normalize_isbn(isbn: str) -> str:
    """Strip hyphens and spaces from an ISBN."""
    return _ISBN_STRIP_RE.sub("", isbn)


def is_valid_isbn(isbn: str) -> bool:
    """Whether an ISBN is a well-formed ISBN-13 once separators are removed."""
    return bool(_ISBN13_RE.match(normalize_isbn(isbn)))


@dataclass(frozen=True)
class BookQuery:
    """A request to find the cover of one book.

    Only the title is mandatory. The ISBN is kept as given but is used for
    ISBN-keyed lookups only when it is a well-formed ISBN-13.
    """

    title: str
    author: str = ""
    isbn: str | None = None
    genre: str | None = None
    publisher: str | None = None
    year: int | None = None

    def __post_init__(self) -> None:
        if not self.title or not self.title.strip():
            raise InvalidQueryError("title must not be empty")

    @property
    def trusted_isbn(self) -> str | None:
        """Normalized ISBN-13 if the given ISBN is well-formed, else None."""
        if not self.isbn:
            return None
        clean = normalize_isbn(self.isbn)
        return clean if _ISBN13_RE.match(clean) else None


@dataclass(frozen=True)
class SearchPlan:
    """One query formulation tried against providers during escalation."""

    strategy_name: str
    priority: int
    query_terms: str
    use_isbn: bool = False
    round_number: int = 0
    title_terms: str = ""
    author_terms: str | None = None
    providers: tuple[str, ...] = ()
    language_restrict: bool = True
    year_range: tuple[int, int] | None = None


@dataclass
class Candidate:
    """A provider-returned book record considered as a cover source."""

    source_title: str
    source_authors: list[str]
    image_url: str
    image_quality: ImageQuality
    provider_name: str
    plan_name: str
    language: str | None = None
    categories: list[str] = field(default_factory=list)
    plan_priority: int = 0
    isbn: str | None = None
    isbn_matched: bool = False


@dataclass
class ScoredCandidate:
    """A candidate with its similarity signals and total match score."""

    candidate: Candidate
    title_similarity: float
    author_similarity: float
    quality_score: int
    total_score: int
    provider_order: int = 0

    def __post_init__(self) -> None:
        for name in ("title_similarity", "author_similarity"):
            value = getattr(self, name)
            if not 0.0 <= value <= 1.0:
                msg = f"{name} must be between 0.0 and 1.0, got {value}"
                raise ValueError(msg)


@dataclass
class VerificationOutcome:
    """Whether a scored candidate was accepted, and how confidently."""

    accepted: bool
    confidence: int
    reason: str
    vision_checked: bool = False


@dataclass
class ResolutionResult:
    """The outcome of resolving one book; the only value returned to callers.

    The diagnostic fields are not part of equality and are never persisted, so
    a result served from the cache compares equal to the one that was stored.
    """

    success: bool
    image_url: str | None = None
    confidence: int = 0
    source: str = ""
    strategy_used: str | None = None
    best_candidate: ScoredCandidate | None = field(default=None, compare=False, repr=False)
    rounds_tried: int = field(default=0, compare=False)
    from_cache: bool = field(default=False, compare=False)

    @classmethod
    def not_found(cls) -> "ResolutionResult":
        return cls(success=False, source="none")

    def to_dict(self) -> dict[str, Any]:
        """Serialize the persisted fields to a plain dict."""
        data = asdict(self)
        for key in ("best_candidate", "rounds_tried", "from_cache"):
            data.pop(key)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ResolutionResult":
        return cls(
            success=bool(data["success"]),
            image_url=data.get("image_url"),
            confidence=int(data.get("confidence", 0)),
            source=data.get("source", ""),
            strategy_used=data.get("strategy_used"),
        )
