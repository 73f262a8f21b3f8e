# ABOUTME: Configuration for the cover resolver: thresholds, TTLs, API keys, and pacing.
# ABOUTME: Built from dataclass defaults, optionally overridden by BOOKCOVER_* environment variables.

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from bookcover.core.cache import CacheConfig
from bookcover.matching.scoring import ScoringWeights
from bookcover.matching.verification import GateConfig
from bookcover.matching.vision import DEFAULT_VISION_MODEL

ENV_PREFIX = "BOOKCOVER_"

DEFAULT_RATE_LIMITS = {
    "google_books": 0.5,
    "openlibrary": 0.3,
    "rakuten": 1.0,
    "ndl": 1.0,
    "browser": 2.0,
}


class ConfigurationError(ValueError):
    """Raised when an environment variable holds an unusable value."""


@dataclass
class ResolverConfig:
    """Everything needed to wire and tune a CoverResolver."""

    target_locale: str = "ja"
    max_rounds: int | None = None
    positive_ttl: float = 2 * 60 * 60
    negative_ttl: float = 10 * 60
    high_priority_confidence: int = 90
    google_api_key: str | None = None
    rakuten_application_id: str | None = None
    gemini_api_key: str | None = None
    gemini_model: str = DEFAULT_VISION_MODEL
    enable_browser: bool = False
    http_timeout: float = 10.0
    concurrency: int = 3
    batch_size: int = 10
    batch_cooldown: float = 5.0
    rate_limits: dict[str, float] = field(default_factory=lambda: dict(DEFAULT_RATE_LIMITS))
    cache: CacheConfig = field(default_factory=CacheConfig)
    gate: GateConfig = field(default_factory=GateConfig)
    weights: ScoringWeights = field(default_factory=ScoringWeights)

    def __post_init__(self) -> None:
        if self.max_rounds is not None and self.max_rounds < 1:
            msg = f"max_rounds must be at least 1, got {self.max_rounds}"
            raise ValueError(msg)
        if self.concurrency < 1:
            msg = f"concurrency must be at least 1, got {self.concurrency}"
            raise ValueError(msg)


def _get(env: Mapping[str, str], name: str) -> str | None:
    value = env.get(ENV_PREFIX + name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _get_int(env: Mapping[str, str], name: str, default: int | None) -> int | None:
    raw = _get(env, name)
    if raw is None:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be an integer, got {raw!r}") from exc


def _get_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = _get(env, name)
    if raw is None:
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{ENV_PREFIX}{name} must be a number, got {raw!r}") from exc


def _get_bool(env: Mapping[str, str], name: str, default: bool) -> bool:
    raw = _get(env, name)
    if raw is None:
        return default
    return raw.lower() in ("1", "true", "yes", "on")


def load_config(environ: Mapping[str, str] | None = None) -> ResolverConfig:
    """Build a ResolverConfig from BOOKCOVER_* environment variables.

    Unset variables keep the dataclass defaults. Recognized variables:
    GOOGLE_API_KEY, RAKUTEN_APP_ID, GEMINI_API_KEY, GEMINI_MODEL, LOCALE,
    MAX_ROUNDS, POSITIVE_TTL, NEGATIVE_TTL, CACHE_PATH, CACHE_MAX_SIZE,
    CACHE_TTL, CONCURRENCY, HTTP_TIMEOUT, ENABLE_BROWSER.

    Args:
        environ: Mapping to read from. Defaults to os.environ.

    Returns:
        The populated configuration.

    Raises:
        ConfigurationError: If a numeric variable cannot be parsed.
    """
    env = os.environ if environ is None else environ
    defaults = ResolverConfig()
    cache_defaults = CacheConfig()

    cache_path = _get(env, "CACHE_PATH")
    cache = CacheConfig(
        max_size=_get_int(env, "CACHE_MAX_SIZE", cache_defaults.max_size),
        default_ttl=_get_float(env, "CACHE_TTL", cache_defaults.default_ttl),
        cleanup_interval=cache_defaults.cleanup_interval,
        path=Path(cache_path).expanduser() if cache_path else None,
    )

    return ResolverConfig(
        target_locale=_get(env, "LOCALE") or defaults.target_locale,
        max_rounds=_get_int(env, "MAX_ROUNDS", None),
        positive_ttl=_get_float(env, "POSITIVE_TTL", defaults.positive_ttl),
        negative_ttl=_get_float(env, "NEGATIVE_TTL", defaults.negative_ttl),
        google_api_key=_get(env, "GOOGLE_API_KEY"),
        rakuten_application_id=_get(env, "RAKUTEN_APP_ID"),
        gemini_api_key=_get(env, "GEMINI_API_KEY"),
        gemini_model=_get(env, "GEMINI_MODEL") or defaults.gemini_model,
        enable_browser=_get_bool(env, "ENABLE_BROWSER", defaults.enable_browser),
        http_timeout=_get_float(env, "HTTP_TIMEOUT", defaults.http_timeout),
        concurrency=_get_int(env, "CONCURRENCY", defaults.concurrency),
        cache=cache,
    )
