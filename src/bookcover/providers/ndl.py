# ABOUTME: National Diet Library cover provider using the NDL Search OpenSearch API.
# ABOUTME: Parses RSS records and maps ISBN-bearing records to NDL thumbnails.

import logging

from bookcover.providers.http import HttpClient, ProviderError
from bookcover.providers.parsers import parse_ndl_rss
from bookcover.types import BookQuery, Candidate, SearchPlan

logger = logging.getLogger(__name__)

_NDL_OPENSEARCH = "https://ndlsearch.ndl.go.jp/api/opensearch"
_COUNT = 10


class NdlProvider:
    """Cover provider backed by the National Diet Library search."""

    def __init__(self, http_client: HttpClient) -> None:
        self._http = http_client

    @property
    def name(self) -> str:
        return "ndl"

    def search(self, plan: SearchPlan, query: BookQuery) -> list[Candidate]:
        isbn = query.trusted_isbn
        params: dict[str, str] = {"cnt": str(_COUNT)}
        if plan.use_isbn:
            if not isbn:
                return []
            params["isbn"] = isbn
        else:
            if plan.title_terms:
                params["title"] = plan.title_terms
            if plan.author_terms:
                params["creator"] = plan.author_terms
            if not params.keys() - {"cnt"}:
                return []
            if plan.year_range is not None:
                params["from"] = str(plan.year_range[0])
                params["until"] = str(plan.year_range[1])

        try:
            xml_text = self._http.get_text(_NDL_OPENSEARCH, params=params)
            return parse_ndl_rss(xml_text, plan, provider_name=self.name, query_isbn=isbn)
        except ProviderError as exc:
            logger.warning("NDL search failed for plan %s: %s", plan.strategy_name, exc)
            return []
