# ABOUTME: Headless-browser fallback provider for books the structured APIs cannot match.
# ABOUTME: Drives a Playwright page in small, paced batches and reads the first result's cover.

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol, runtime_checkable
from urllib.parse import quote_plus

from bookcover.providers.http import RateLimiter
from bookcover.types import BookQuery, Candidate, ImageQuality, SearchPlan

logger = logging.getLogger(__name__)


@dataclass
class BrowserHit:
    """A cover found on a rendered search page."""

    image_url: str
    title: str
    authors: list[str]


@dataclass
class PageSelectors:
    """Where to find results on the scraped search page."""

    search_url: str = "https://openlibrary.org/search?q={query}"
    result: str = "li.searchResultItem"
    image: str = "span.bookcover img"
    title: str = "h3.booktitle a"
    author: str = "span.bookauthor a"


@runtime_checkable
class BrowserLookup(Protocol):
    """Protocol for a best-effort browser-driven cover lookup."""

    def find_cover(self, title: str, author: str) -> BrowserHit | None: ...


class PlaywrightCoverLookup:
    """BrowserLookup that renders a bookstore search page with headless Chromium."""

    def __init__(
        self, *, selectors: PageSelectors | None = None, timeout: float = 10.0
    ) -> None:
        self._selectors = selectors or PageSelectors()
        self._timeout_ms = int(timeout * 1000)

    def find_cover(self, title: str, author: str) -> BrowserHit | None:
        from playwright.sync_api import Error as PlaywrightError
        from playwright.sync_api import sync_playwright

        sel = self._selectors
        url = sel.search_url.format(query=quote_plus(f"{title} {author}".strip()))
        try:
            with sync_playwright() as p:
                browser = p.chromium.launch(headless=True)
                try:
                    page = browser.new_page()
                    page.goto(url, wait_until="domcontentloaded", timeout=self._timeout_ms)
                    result = page.wait_for_selector(sel.result, timeout=self._timeout_ms)
                    if result is None:
                        return None
                    image = result.query_selector(sel.image)
                    src = image.get_attribute("src") if image else None
                    if not src:
                        return None
                    title_el = result.query_selector(sel.title)
                    authors = [a.inner_text().strip() for a in result.query_selector_all(sel.author)]
                    return BrowserHit(
                        image_url=_absolute_url(src),
                        title=title_el.inner_text().strip() if title_el else "",
                        authors=[a for a in authors if a],
                    )
                finally:
                    browser.close()
        except PlaywrightError as exc:
            logger.warning("Browser lookup failed for %r: %s", title, exc)
            return None


def _absolute_url(src: str) -> str:
    if src.startswith("//"):
        return f"https:{src}"
    return src.replace("http://", "https://", 1)


class BrowserFallbackProvider:
    """Cover provider that falls back to a headless browser.

    Lookups are paced by a shared rate limiter and, after every batch_size
    lookups, paused for batch_pause seconds to stay clear of anti-automation
    defenses.
    """

    def __init__(
        self,
        lookup: BrowserLookup,
        *,
        rate_limiter: RateLimiter | None = None,
        batch_size: int = 10,
        batch_pause: float = 5.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._lookup = lookup
        self._limiter = rate_limiter or RateLimiter(0.0)
        self._batch_size = batch_size
        self._batch_pause = batch_pause
        self._sleep = sleep
        self._calls = 0
        self._calls_lock = threading.Lock()

    @property
    def name(self) -> str:
        return "browser"

    def search(self, plan: SearchPlan, query: BookQuery) -> list[Candidate]:
        if plan.use_isbn:
            return []

        with self._calls_lock:
            pause = (
                self._batch_size > 0 and self._calls > 0 and self._calls % self._batch_size == 0
            )
            self._calls += 1
        if pause:
            logger.info("Browser fallback pausing %.1fs between batches", self._batch_pause)
            self._sleep(self._batch_pause)
        self._limiter.wait()

        try:
            hit = self._lookup.find_cover(plan.title_terms or query.title, query.author)
        except Exception as exc:  # best-effort collaborator, any failure means no result
            logger.warning("Browser fallback failed for %r: %s", query.title, exc)
            return []
        if hit is None or not hit.image_url:
            return []

        return [
            Candidate(
                source_title=hit.title,
                source_authors=hit.authors,
                image_url=hit.image_url,
                image_quality=ImageQuality.MEDIUM,
                provider_name=self.name,
                plan_name=plan.strategy_name,
                plan_priority=plan.priority,
            )
        ]
