# ABOUTME: Wires a CoverResolver from configuration: HTTP clients, providers, vision, cache.
# ABOUTME: Shared entry point for the CLI and the HTTP API.

import logging

from bookcover.config import ResolverConfig
from bookcover.core.cache import CacheStore
from bookcover.core.resolver import CoverResolver
from bookcover.matching.vision import GeminiVisionValidator
from bookcover.providers.browser import BrowserFallbackProvider, PlaywrightCoverLookup
from bookcover.providers.google_books import GoogleBooksProvider
from bookcover.providers.http import CoverHttpClient, get_rate_limiter
from bookcover.providers.ndl import NdlProvider
from bookcover.providers.openlibrary import OpenLibraryProvider
from bookcover.providers.provider import CoverProvider
from bookcover.providers.rakuten import RakutenBooksProvider

logger = logging.getLogger(__name__)


def _http_client(name: str, config: ResolverConfig) -> CoverHttpClient:
    """HTTP client paced by the process-wide limiter for the named provider."""
    limiter = get_rate_limiter(name, config.rate_limits.get(name, 0.0))
    return CoverHttpClient(rate_limiter=limiter, timeout=config.http_timeout)


def create_providers(config: ResolverConfig) -> list[CoverProvider]:
    """Build every provider the configuration enables.

    Google Books, Open Library and NDL need no credentials. Rakuten is added
    only with an application id, the browser fallback only when enabled.
    """
    providers: list[CoverProvider] = [
        GoogleBooksProvider(
            _http_client("google_books", config),
            api_key=config.google_api_key,
            language=config.target_locale,
        ),
        OpenLibraryProvider(_http_client("openlibrary", config)),
        NdlProvider(_http_client("ndl", config)),
    ]
    if config.rakuten_application_id:
        providers.append(
            RakutenBooksProvider(
                _http_client("rakuten", config),
                application_id=config.rakuten_application_id,
            )
        )
    else:
        logger.info("Rakuten provider disabled: no application id configured")
    if config.enable_browser:
        providers.append(
            BrowserFallbackProvider(
                PlaywrightCoverLookup(timeout=config.http_timeout),
                rate_limiter=get_rate_limiter("browser", config.rate_limits.get("browser", 0.0)),
            )
        )
    return providers


def create_resolver(
    config: ResolverConfig | None = None, *, cache: CacheStore | None = None
) -> CoverResolver:
    """Create a fully wired resolver. Vision is enabled only with a Gemini API key."""
    config = config or ResolverConfig()
    vision = None
    if config.gemini_api_key:
        vision = GeminiVisionValidator(
            CoverHttpClient(timeout=config.http_timeout),
            api_key=config.gemini_api_key,
            model=config.gemini_model,
        )
    else:
        logger.info("Visual verification disabled: no Gemini API key configured")
    return CoverResolver(
        create_providers(config),
        cache=cache if cache is not None else CacheStore(config.cache),
        vision=vision,
        config=config,
    )
