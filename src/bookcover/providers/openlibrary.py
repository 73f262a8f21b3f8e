# ABOUTME: Open Library cover provider, keyed on ISBN.
# ABOUTME: Looks up the edition by ISBN, resolves author names, and returns its large cover.

import logging

from bookcover.providers.http import HttpClient, ProviderError
from bookcover.providers.parsers import build_cover_url, parse_openlibrary_edition
from bookcover.types import BookQuery, Candidate, ImageQuality, SearchPlan

logger = logging.getLogger(__name__)

_OL_BASE = "https://openlibrary.org"


class OpenLibraryProvider:
    """Cover provider backed by the Open Library ISBN and covers endpoints.

    Only answers ISBN plans; free-text plans return no candidates.
    """

    def __init__(self, http_client: HttpClient) -> None:
        self._http = http_client

    @property
    def name(self) -> str:
        return "openlibrary"

    def search(self, plan: SearchPlan, query: BookQuery) -> list[Candidate]:
        isbn = query.trusted_isbn
        if not plan.use_isbn or not isbn:
            return []

        try:
            data = self._http.get(f"{_OL_BASE}/isbn/{isbn}.json")
            edition = parse_openlibrary_edition(data)
        except ProviderError as exc:
            logger.warning("ISBN lookup failed for %s: %s", isbn, exc)
            return []

        if edition["cover_id"] is None:
            logger.debug("Open Library edition %s has no cover", isbn)
            return []

        candidate = Candidate(
            source_title=edition["title"],
            source_authors=self._resolve_authors(edition["author_keys"]),
            image_url=build_cover_url(edition["cover_id"], "L"),
            image_quality=ImageQuality.LARGE,
            provider_name=self.name,
            plan_name=plan.strategy_name,
            plan_priority=plan.priority,
            language=edition["language"],
            categories=edition["subjects"],
            isbn=isbn,
            isbn_matched=True,
        )
        return [candidate]

    def _resolve_authors(self, author_keys: list[str]) -> list[str]:
        """Fetch author names from the authors endpoint, skipping failures."""
        authors: list[str] = []
        for author_key in author_keys:
            try:
                author_data = self._http.get(f"{_OL_BASE}{author_key}.json")
            except ProviderError:
                continue
            if not isinstance(author_data, dict):
                logger.debug("Skipping malformed author record %s", author_key)
                continue
            name = author_data.get("name")
            if name:
                authors.append(str(name))
        return authors
