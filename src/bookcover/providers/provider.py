# ABOUTME: CoverProvider protocol defining the contract for bibliographic cover sources.
# ABOUTME: Google Books, Open Library, Rakuten, NDL, and the browser fallback implement this.

from typing import Protocol, runtime_checkable

from bookcover.types import BookQuery, Candidate, SearchPlan


@runtime_checkable
class CoverProvider(Protocol):
    """Protocol for cover image lookup services.

    Implementations turn one search plan into zero or more candidates. A
    provider failure must come back as an empty list, never as an exception.
    """

    @property
    def name(self) -> str: ...

    def search(self, plan: SearchPlan, query: BookQuery) -> list[Candidate]: ...
