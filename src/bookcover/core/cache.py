# ABOUTME: Thread-safe TTL cache for resolution results with priority-weighted eviction.
# ABOUTME: Optionally persists entries to a JSON file and sweeps expired entries in the background.

import json
import logging
import os
import tempfile
import threading
import time
from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from bookcover.types import CachePriority, ResolutionResult

logger = logging.getLogger(__name__)

PRIORITY_WEIGHTS = {
    CachePriority.HIGH: 3,
    CachePriority.MEDIUM: 2,
    CachePriority.LOW: 1,
}

_FORMAT_VERSION = 1
_TOP_TAGS = 5


class CacheCorruptionError(Exception):
    """Raised when a persisted cache file cannot be deserialized."""


@dataclass
class CacheConfig:
    """Sizing, expiry and persistence settings for a CacheStore."""

    max_size: int = 200
    default_ttl: float = 1800.0
    cleanup_interval: float = 300.0
    path: Path | None = None

    def __post_init__(self) -> None:
        if self.max_size < 1:
            msg = f"max_size must be at least 1, got {self.max_size}"
            raise ValueError(msg)


@dataclass
class CacheEntry:
    """A cached resolution result and its bookkeeping."""

    key: str
    value: ResolutionResult
    created_at: float
    ttl: float
    priority: CachePriority = CachePriority.MEDIUM
    access_count: int = 0
    tags: frozenset[str] = field(default_factory=frozenset)
    touched_at: float = 0.0

    def is_expired(self, now: float) -> bool:
        return now - self.created_at >= self.ttl

    def eviction_score(self, now: float) -> float:
        """Weighted access frequency decayed by hours since last touch."""
        age_minutes = max(0.0, now - self.touched_at) / 60.0
        return (self.access_count * PRIORITY_WEIGHTS[self.priority]) / (1 + age_minutes / 60.0)

    def to_dict(self) -> dict:
        return {
            "key": self.key,
            "value": self.value.to_dict(),
            "created_at": self.created_at,
            "ttl": self.ttl,
            "priority": self.priority.value,
            "access_count": self.access_count,
            "tags": sorted(self.tags),
            "touched_at": self.touched_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CacheEntry":
        return cls(
            key=data["key"],
            value=ResolutionResult.from_dict(data["value"]),
            created_at=float(data["created_at"]),
            ttl=float(data["ttl"]),
            priority=CachePriority(data.get("priority", CachePriority.MEDIUM.value)),
            access_count=int(data.get("access_count", 0)),
            tags=frozenset(data.get("tags", ())),
            touched_at=float(data.get("touched_at", data["created_at"])),
        )


@dataclass
class CacheStats:
    """Point-in-time summary of the cache contents."""

    total: int
    max_size: int
    usage_percent: float
    expired: int
    by_priority: dict[str, int]
    average_age_seconds: float
    top_tags: list[tuple[str, int]]
    hits: int
    misses: int


class CacheStore:
    """Bounded key/value cache of ResolutionResults.

    Entries expire ttl seconds after creation and are removed lazily on read
    or by cleanup_expired(). When an insert of a new key would exceed
    max_size, exactly one entry is evicted first: the one with the lowest
    eviction score, oldest insertion first on ties.

    All public methods are safe to call from multiple threads.
    """

    def __init__(
        self,
        config: CacheConfig | None = None,
        *,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config or CacheConfig()
        self._clock = clock
        self._lock = threading.RLock()
        # Insertion-ordered, so iteration order doubles as the eviction tie-break.
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0
        self._stop = threading.Event()
        self._sweeper: threading.Thread | None = None

        if self.config.path is not None:
            try:
                self._entries = self._load(self.config.path)
            except CacheCorruptionError as exc:
                logger.warning("Discarding unreadable cache file %s: %s", self.config.path, exc)
                self._entries = {}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def set(
        self,
        key: str,
        value: ResolutionResult,
        ttl: float | None = None,
        priority: CachePriority = CachePriority.MEDIUM,
        tags: Iterable[str] = (),
    ) -> None:
        """Store a value, evicting one entry first if the cache is full."""
        now = self._clock()
        with self._lock:
            previous = self._entries.pop(key, None)
            if previous is None and len(self._entries) >= self.config.max_size:
                self.evict_one()
            self._entries[key] = CacheEntry(
                key=key,
                value=value,
                created_at=now,
                ttl=self.config.default_ttl if ttl is None else ttl,
                priority=priority,
                access_count=previous.access_count if previous else 0,
                tags=frozenset(tags),
                touched_at=now,
            )
            self._persist()

    def get(self, key: str) -> ResolutionResult | None:
        """Return the cached value, or None if absent or expired."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self._misses += 1
                return None
            if entry.is_expired(now):
                del self._entries[key]
                self._misses += 1
                self._persist()
                return None
            entry.access_count += 1
            entry.touched_at = now
            self._hits += 1
            return entry.value

    def has(self, key: str) -> bool:
        """Whether a live entry exists, without counting as an access."""
        now = self._clock()
        with self._lock:
            entry = self._entries.get(key)
            return entry is not None and not entry.is_expired(now)

    def delete(self, key: str) -> bool:
        with self._lock:
            removed = self._entries.pop(key, None) is not None
            if removed:
                self._persist()
            return removed

    def clear_by_tag(self, tag: str) -> int:
        """Remove every entry carrying the tag. Returns how many were removed."""
        with self._lock:
            doomed = [key for key, entry in self._entries.items() if tag in entry.tags]
            for key in doomed:
                del self._entries[key]
            if doomed:
                self._persist()
            return len(doomed)

    def evict_one(self) -> str | None:
        """Evict the entry with the lowest eviction score and return its key."""
        now = self._clock()
        with self._lock:
            if not self._entries:
                return None
            # min() keeps the first of equal scores, which is the oldest insertion.
            victim = min(self._entries.values(), key=lambda e: e.eviction_score(now))
            del self._entries[victim.key]
            logger.debug(
                "Evicted cache entry %s (priority=%s, accesses=%d)",
                victim.key,
                victim.priority.value,
                victim.access_count,
            )
            return victim.key

    def cleanup_expired(self) -> int:
        """Remove all expired entries. Returns how many were removed."""
        now = self._clock()
        with self._lock:
            expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
            for key in expired:
                del self._entries[key]
            if expired:
                logger.debug("Removed %d expired cache entries", len(expired))
                self._persist()
            return len(expired)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0
            self._persist()

    def stats(self) -> CacheStats:
        now = self._clock()
        with self._lock:
            entries = list(self._entries.values())
            hits, misses = self._hits, self._misses

        total = len(entries)
        by_priority = {p.value: 0 for p in CachePriority}
        tag_counts: Counter[str] = Counter()
        for entry in entries:
            by_priority[entry.priority.value] += 1
            tag_counts.update(entry.tags)
        average_age = sum(now - e.created_at for e in entries) / total if total else 0.0

        return CacheStats(
            total=total,
            max_size=self.config.max_size,
            usage_percent=round(100.0 * total / self.config.max_size, 1),
            expired=sum(1 for e in entries if e.is_expired(now)),
            by_priority=by_priority,
            average_age_seconds=average_age,
            top_tags=tag_counts.most_common(_TOP_TAGS),
            hits=hits,
            misses=misses,
        )

    def start_sweeper(self) -> None:
        """Start a daemon thread that calls cleanup_expired periodically."""
        with self._lock:
            if self._sweeper is not None and self._sweeper.is_alive():
                return
            self._stop.clear()
            self._sweeper = threading.Thread(
                target=self._sweep, name="bookcover-cache-sweeper", daemon=True
            )
            self._sweeper.start()

    def close(self) -> None:
        """Stop the sweeper thread if one is running."""
        self._stop.set()
        sweeper = self._sweeper
        if sweeper is not None:
            sweeper.join(timeout=1.0)
            self._sweeper = None

    def _sweep(self) -> None:
        while not self._stop.wait(self.config.cleanup_interval):
            self.cleanup_expired()

    def _persist(self) -> None:
        """Atomically rewrite the cache file. Caller holds the lock."""
        path = self.config.path
        if path is None:
            return
        payload = {
            "version": _FORMAT_VERSION,
            "entries": [entry.to_dict() for entry in self._entries.values()],
        }
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(payload, fh, ensure_ascii=False)
            os.replace(tmp_name, path)
        except OSError as exc:
            logger.warning("Could not write cache file %s: %s", path, exc)
            Path(tmp_name).unlink(missing_ok=True)

    @staticmethod
    def _load(path: Path) -> dict[str, CacheEntry]:
        """Read persisted entries, raising CacheCorruptionError on bad content."""
        if not path.exists():
            return {}
        try:
            payload = json.loads(path.read_text(encoding="utf-8"))
            entries = [CacheEntry.from_dict(item) for item in payload["entries"]]
        except (OSError, ValueError, KeyError, TypeError) as exc:
            raise CacheCorruptionError(str(exc)) from exc
        logger.debug("Loaded %d cache entries from %s", len(entries), path)
        return {entry.key: entry for entry in entries}
