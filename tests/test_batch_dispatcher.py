# /tests/test_batch_dispatcher.py

import asyncio
import pytest
from datetime import date, timedelta

from app.models.sales_model import DateRange, ProviderResponse, SubRangeRequest
from app.services.batch_dispatcher import BatchDispatcher
from app.services.provider_errors import ProviderConnectionError, ProviderHttpError


class CountingFetcher:
    """
    Test double for the provider client. Tracks how many calls are in flight at
    once and lets individual dates fail, stall or finish out of order.
    """

    def __init__(self, failing=None, slow=None, delays=None):
        self.failing = failing or {}
        self.slow = slow or set()
        self.delays = delays or {}
        self.in_flight = 0
        self.max_in_flight = 0
        self.calls = []

    async def fetch_range(self, date_range: DateRange) -> ProviderResponse:
        key = date_range.start.isoformat()
        self.calls.append(key)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if key in self.slow:
                await asyncio.sleep(10)
            await asyncio.sleep(self.delays.get(key, 0.01))
            if key in self.failing:
                raise self.failing[key]
            return ProviderResponse.from_payload({
                "success": True,
                "data": {"total_sales": date_range.start.day * 100, "cards": {"branch_a": 1}},
            })
        finally:
            self.in_flight -= 1


def _requests(count: int, first: date = date(2025, 9, 1)):
    days = [first + timedelta(days=i) for i in range(count)]
    return [SubRangeRequest(key=d.isoformat(), label=d.strftime("%a"), range=DateRange(start=d, end=d)) for d in days]


@pytest.mark.asyncio
async def test_concurrency_bound_is_respected():
    fetcher = CountingFetcher()
    dispatcher = BatchDispatcher(fetcher, max_concurrency=6)

    results = await dispatcher.dispatch(_requests(14))

    assert len(results) == 14
    assert len(fetcher.calls) == 14
    assert fetcher.max_in_flight <= 6
    assert fetcher.max_in_flight == 6


@pytest.mark.asyncio
async def test_results_follow_request_order_not_completion_order():
    requests = _requests(5)
    # Earlier requests finish last.
    delays = {r.key: 0.05 - i * 0.01 for i, r in enumerate(requests)}
    dispatcher = BatchDispatcher(CountingFetcher(delays=delays), max_concurrency=5)

    results = await dispatcher.dispatch(requests)

    assert [r.key for r in results] == [r.key for r in requests]
    assert results[0].total == 100


@pytest.mark.asyncio
async def test_one_failure_does_not_affect_the_others():
    requests = _requests(7)
    fetcher = CountingFetcher(failing={
        requests[1].key: ProviderHttpError(404),
        requests[4].key: ProviderConnectionError("Connection refused"),
    })
    dispatcher = BatchDispatcher(fetcher)

    results = await dispatcher.dispatch(requests)

    assert [r.success for r in results] == [True, False, True, True, False, True, True]
    assert results[1].error_type == "http_4xx"
    assert results[1].total == 0 and results[1].details is None
    assert results[4].error_type == "connection"
    assert results[6].details == {"total_sales": 700, "cards": {"branch_a": 1}}


@pytest.mark.asyncio
async def test_unexpected_exception_is_isolated():
    requests = _requests(3)
    fetcher = CountingFetcher(failing={requests[0].key: RuntimeError("boom")})

    results = await BatchDispatcher(fetcher).dispatch(requests)

    assert results[0].success is False
    assert results[0].error_type == "internal"
    assert results[1].success and results[2].success


@pytest.mark.asyncio
async def test_batch_deadline_abandons_pending_calls():
    requests = _requests(4)
    fetcher = CountingFetcher(slow={requests[2].key})
    dispatcher = BatchDispatcher(fetcher, timeout_seconds=0.2)

    results = await dispatcher.dispatch(requests)

    assert results[2].success is False
    assert results[2].error_type == "timeout"
    assert all(results[i].success for i in (0, 1, 3))
    assert fetcher.in_flight == 0


@pytest.mark.asyncio
async def test_empty_dispatch_makes_no_calls():
    fetcher = CountingFetcher()
    assert await BatchDispatcher(fetcher).dispatch([]) == []
    assert fetcher.calls == []


def test_invalid_concurrency_bound():
    with pytest.raises(ValueError):
        BatchDispatcher(CountingFetcher(), max_concurrency=0)


@pytest.mark.asyncio
async def test_cancelling_dispatch_cancels_its_provider_calls():
    requests = _requests(3)
    fetcher = CountingFetcher(slow={r.key for r in requests})
    running = asyncio.create_task(BatchDispatcher(fetcher).dispatch(requests))

    await asyncio.sleep(0.05)
    assert fetcher.in_flight == 3

    running.cancel()
    with pytest.raises(asyncio.CancelledError):
        await running

    assert fetcher.in_flight == 0
    print("✅ SUCCESS: no provider call outlived the cancelled batch")
