# ABOUTME: Google Books cover provider, the primary free-text and ISBN search source.
# ABOUTME: Builds volumes queries from search plans and returns image-bearing candidates.

import logging

from bookcover.providers.http import HttpClient, ProviderError
from bookcover.providers.parsers import parse_google_volumes
from bookcover.types import BookQuery, Candidate, SearchPlan

logger = logging.getLogger(__name__)

_GB_VOLUMES = "https://www.googleapis.com/books/v1/volumes"
_MAX_RESULTS = 8


class GoogleBooksProvider:
    """Cover provider backed by the Google Books volumes API."""

    def __init__(
        self,
        http_client: HttpClient,
        *,
        api_key: str | None = None,
        language: str = "ja",
        max_results: int = _MAX_RESULTS,
    ) -> None:
        self._http = http_client
        self._api_key = api_key
        self._language = language
        self._max_results = max_results

    @property
    def name(self) -> str:
        return "google_books"

    def search(self, plan: SearchPlan, query: BookQuery) -> list[Candidate]:
        isbn = query.trusted_isbn
        if plan.use_isbn:
            if not isbn:
                return []
            q = f"isbn:{isbn}"
        else:
            q = plan.query_terms
        if not q.strip():
            return []

        params: dict[str, str] = {
            "q": q,
            "maxResults": str(self._max_results),
            "printType": "books",
        }
        if plan.language_restrict and self._language:
            params["langRestrict"] = self._language
        if self._api_key:
            params["key"] = self._api_key

        try:
            data = self._http.get(_GB_VOLUMES, params=params)
            candidates = parse_google_volumes(
                data, plan, provider_name=self.name, query_isbn=isbn
            )
        except ProviderError as exc:
            logger.warning("Google Books search failed for %r: %s", q, exc)
            return []

        logger.debug("Google Books returned %d candidates for %r", len(candidates), q)
        return candidates
