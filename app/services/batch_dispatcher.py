# /app/services/batch_dispatcher.py

"""
Concurrent fan-out of sub-range requests to the provider client.

Every request runs as its own task behind a semaphore, so a failing or slow
sub-range never cancels or blocks the others. Results come back in the same
order as the requests regardless of completion order.
"""

import asyncio
import logging
from typing import List, Protocol, Sequence

from ..models.sales_model import DateRange, ProviderResponse, SubRangeRequest, SubRangeResult
from .provider_errors import ProviderError, ProviderTimeout, classify

logger = logging.getLogger(__name__)


class RangeFetcher(Protocol):
    async def fetch_range(self, date_range: DateRange) -> ProviderResponse: ...


class BatchDispatcher:
    def __init__(self, fetcher: RangeFetcher, max_concurrency: int = 6, timeout_seconds: float = 90.0):
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be at least 1")
        self.fetcher = fetcher
        self.max_concurrency = max_concurrency
        self.timeout_seconds = timeout_seconds

    async def dispatch(self, requests: Sequence[SubRangeRequest]) -> List[SubRangeResult]:
        """
        Runs every request concurrently (at most `max_concurrency` in flight) and
        waits for all of them to settle, or for the batch deadline to pass.

        Requests still pending at the deadline are cancelled and reported as
        timed-out failures. No sub-range is dispatched twice; retries are the
        client's business.
        """
        if not requests:
            return []

        # Scoped to this call: concurrent batches do not share a bound.
        semaphore = asyncio.Semaphore(self.max_concurrency)
        tasks = [asyncio.create_task(self._run_one(request, semaphore)) for request in requests]

        try:
            _, pending = await asyncio.wait(tasks, timeout=self.timeout_seconds)
            if pending:
                logger.error(
                    "Batch deadline of %.0fs reached with %d of %d sub-ranges pending; abandoning them",
                    self.timeout_seconds, len(pending), len(tasks),
                )
        finally:
            # Also runs when dispatch itself is cancelled: no provider call outlives the batch.
            unfinished = [task for task in tasks if not task.done()]
            for task in unfinished:
                task.cancel()
            if unfinished:
                await asyncio.gather(*unfinished, return_exceptions=True)

        results = []
        for request, task in zip(requests, tasks):
            if task in pending or task.cancelled():
                results.append(self._failed(
                    request, ProviderTimeout(f"Batch deadline of {self.timeout_seconds}s exceeded")
                ))
            elif task.exception() is not None:
                error = task.exception()
                logger.error("Unexpected error fetching %s: %r", request.key, error)
                results.append(SubRangeResult(
                    key=request.key, success=False, error=str(error) or type(error).__name__, error_type="internal"
                ))
            else:
                results.append(task.result())
        return results

    async def _run_one(self, request: SubRangeRequest, semaphore: asyncio.Semaphore) -> SubRangeResult:
        async with semaphore:
            try:
                response = await self.fetcher.fetch_range(request.range)
            except ProviderError as e:
                return self._failed(request, e)
        return SubRangeResult(
            key=request.key,
            success=True,
            total=response.data.sales_total,
            details=response.details,
        )

    @staticmethod
    def _failed(request: SubRangeRequest, error: ProviderError) -> SubRangeResult:
        logger.warning("Sub-range %s (%s) failed: %s", request.key, request.range, error.message)
        return SubRangeResult(key=request.key, success=False, error=error.message, error_type=classify(error))
