# ABOUTME: Unit tests for resolver wiring from configuration.
# ABOUTME: Checks which providers and collaborators each configuration enables.

from pathlib import Path

from bookcover.config import ResolverConfig
from bookcover.core.cache import CacheConfig, CacheStore
from bookcover.matching.vision import GeminiVisionValidator
from bookcover.service import create_providers, create_resolver


class TestCreateProviders:
    """Tests for create_providers."""

    def test_credential_free_defaults(self) -> None:
        names = [p.name for p in create_providers(ResolverConfig())]
        assert names == ["google_books", "openlibrary", "ndl"]

    def test_rakuten_needs_application_id(self) -> None:
        names = [p.name for p in create_providers(ResolverConfig(rakuten_application_id="app"))]
        assert "rakuten" in names

    def test_browser_only_when_enabled(self) -> None:
        names = [p.name for p in create_providers(ResolverConfig(enable_browser=True))]
        assert names[-1] == "browser"


class TestCreateResolver:
    """Tests for create_resolver."""

    def test_vision_disabled_without_key(self) -> None:
        resolver = create_resolver(ResolverConfig())
        assert resolver.vision is None

    def test_vision_enabled_with_key(self) -> None:
        resolver = create_resolver(ResolverConfig(gemini_api_key="key"))
        assert isinstance(resolver.vision, GeminiVisionValidator)

    def test_cache_built_from_config(self, tmp_path: Path) -> None:
        config = ResolverConfig(cache=CacheConfig(max_size=7, path=tmp_path / "c.json"))
        resolver = create_resolver(config)
        assert resolver.cache.config.max_size == 7

    def test_explicit_cache_wins(self) -> None:
        store = CacheStore()
        assert create_resolver(cache=store).cache is store
