# ABOUTME: Rakuten Books cover provider, the secondary search source for Japanese editions.
# ABOUTME: Requires a Rakuten application id; queries by title/author or ISBN.

import logging

from bookcover.providers.http import HttpClient, ProviderError
from bookcover.providers.parsers import parse_rakuten_items
from bookcover.types import BookQuery, Candidate, SearchPlan

logger = logging.getLogger(__name__)

_RAKUTEN_SEARCH = "https://app.rakuten.co.jp/services/api/BooksBook/Search/20170404"
_HITS = 5


class RakutenBooksProvider:
    """Cover provider backed by the Rakuten Books search API."""

    def __init__(self, http_client: HttpClient, *, application_id: str) -> None:
        self._http = http_client
        self._application_id = application_id

    @property
    def name(self) -> str:
        return "rakuten"

    def search(self, plan: SearchPlan, query: BookQuery) -> list[Candidate]:
        isbn = query.trusted_isbn
        params: dict[str, str] = {
            "applicationId": self._application_id,
            "format": "json",
            "formatVersion": "2",
            "hits": str(_HITS),
        }
        if plan.use_isbn:
            if not isbn:
                return []
            params["isbn"] = isbn
        else:
            if plan.title_terms:
                params["title"] = plan.title_terms
            if plan.author_terms:
                params["author"] = plan.author_terms
            if "title" not in params and "author" not in params:
                return []

        try:
            data = self._http.get(_RAKUTEN_SEARCH, params=params)
            return parse_rakuten_items(data, plan, provider_name=self.name, query_isbn=isbn)
        except ProviderError as exc:
            logger.warning("Rakuten search failed for plan %s: %s", plan.strategy_name, exc)
            return []
