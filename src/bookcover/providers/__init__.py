# ABOUTME: Provider adapters that turn bibliographic APIs into cover candidates.
# ABOUTME: Exports the provider protocol, the HTTP client, and each adapter.

from bookcover.providers.browser import BrowserFallbackProvider, PlaywrightCoverLookup
from bookcover.providers.google_books import GoogleBooksProvider
from bookcover.providers.http import (
    CoverHttpClient,
    HttpClient,
    MalformedResponseError,
    ProviderError,
    ProviderUnavailableError,
    RateLimiter,
    get_rate_limiter,
)
from bookcover.providers.ndl import NdlProvider
from bookcover.providers.openlibrary import OpenLibraryProvider
from bookcover.providers.provider import CoverProvider
from bookcover.providers.rakuten import RakutenBooksProvider

__all__ = [
    "BrowserFallbackProvider",
    "CoverHttpClient",
    "CoverProvider",
    "GoogleBooksProvider",
    "HttpClient",
    "MalformedResponseError",
    "NdlProvider",
    "OpenLibraryProvider",
    "PlaywrightCoverLookup",
    "ProviderError",
    "ProviderUnavailableError",
    "RakutenBooksProvider",
    "RateLimiter",
    "get_rate_limiter",
]
