# ABOUTME: HTTP boundary for cover lookups, built on FastAPI.
# ABOUTME: Exposes the application factory used by `bookcover serve` and tests.

from bookcover.api.app import create_app

__all__ = ["create_app"]
