# ABOUTME: Bounded worker pool that resolves many books concurrently, batch by batch.
# ABOUTME: Supports cooperative cancellation and isolates per-book failures.

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING

from bookcover.types import AccuracyMode, BookQuery, ResolutionResult

if TYPE_CHECKING:
    from bookcover.core.resolver import CoverResolver

logger = logging.getLogger(__name__)


class ResolutionCancelled(Exception):
    """Raised inside a resolution when its cancellation token has been set."""


class CancellationToken:
    """Thread-safe flag checked between books and between strategy rounds."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise ResolutionCancelled("resolution cancelled")

    def wait(self, timeout: float) -> bool:
        """Sleep up to timeout seconds; returns True early if cancelled."""
        return self._event.wait(timeout)


@dataclass
class BatchItemResult:
    """Outcome of one book in a batch run.

    Exactly one of result and error is set, unless the item was cancelled
    before it started, in which case both are None and cancelled is True.
    """

    index: int
    query: BookQuery
    result: ResolutionResult | None = None
    error: str | None = None
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return self.result is not None and self.result.success


class BatchResolver:
    """Resolves a list of books with a small pool of worker threads.

    Books are processed in batches of batch_size. Each batch is placed on a
    queue drained by concurrency workers, each running one resolution to
    completion before taking the next. A cooldown pause separates batches.
    Per-provider rate limits are shared by all workers through the limiter
    registry, so adding workers never exceeds a provider's quota.
    """

    def __init__(
        self,
        resolver: CoverResolver,
        *,
        concurrency: int = 3,
        batch_size: int = 10,
        cooldown: float = 5.0,
    ) -> None:
        if concurrency < 1:
            msg = f"concurrency must be at least 1, got {concurrency}"
            raise ValueError(msg)
        if batch_size < 1:
            msg = f"batch_size must be at least 1, got {batch_size}"
            raise ValueError(msg)
        self._resolver = resolver
        self._concurrency = concurrency
        self._batch_size = batch_size
        self._cooldown = cooldown

    def run(
        self,
        queries: Sequence[BookQuery],
        mode: AccuracyMode = AccuracyMode.BALANCED,
        cancel: CancellationToken | None = None,
        on_result: Callable[[BatchItemResult], None] | None = None,
    ) -> list[BatchItemResult]:
        """Resolve every query and return results in input order.

        Args:
            queries: Books to resolve.
            mode: Accuracy mode applied to every book.
            cancel: Token that stops the run cooperatively when set. Books not
                yet started are reported as cancelled.
            on_result: Called from a worker thread as each book finishes.

        Returns:
            One BatchItemResult per query, in the same order.
        """
        token = cancel or CancellationToken()
        results: list[BatchItemResult | None] = [None] * len(queries)
        lock = threading.Lock()

        def record(item: BatchItemResult) -> None:
            with lock:
                results[item.index] = item
            if on_result is not None:
                on_result(item)

        for start in range(0, len(queries), self._batch_size):
            if token.cancelled:
                break
            if start > 0 and self._cooldown > 0:
                logger.info("Cooling down %.1fs before next batch", self._cooldown)
                if token.wait(self._cooldown):
                    break

            work: queue.Queue[tuple[int, BookQuery]] = queue.Queue()
            for index in range(start, min(start + self._batch_size, len(queries))):
                work.put((index, queries[index]))

            workers = min(self._concurrency, work.qsize())
            with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="bookcover") as pool:
                futures = [
                    pool.submit(self._drain, work, mode, token, record) for _ in range(workers)
                ]
                for future in futures:
                    future.result()

        for index, item in enumerate(results):
            if item is None:
                results[index] = BatchItemResult(index=index, query=queries[index], cancelled=True)
        return [item for item in results if item is not None]

    def _drain(
        self,
        work: queue.Queue[tuple[int, BookQuery]],
        mode: AccuracyMode,
        token: CancellationToken,
        record: Callable[[BatchItemResult], None],
    ) -> None:
        while not token.cancelled:
            try:
                index, query = work.get_nowait()
            except queue.Empty:
                return
            record(self._resolve_one(index, query, mode, token))

    def _resolve_one(
        self, index: int, query: BookQuery, mode: AccuracyMode, token: CancellationToken
    ) -> BatchItemResult:
        try:
            result = self._resolver.resolve(query, mode, cancel=token)
        except ResolutionCancelled:
            return BatchItemResult(index=index, query=query, cancelled=True)
        except Exception as exc:  # one failing book never aborts the batch
            logger.exception("Resolution failed for %r", query.title)
            return BatchItemResult(index=index, query=query, error=str(exc) or type(exc).__name__)
        return BatchItemResult(index=index, query=query, result=result)
