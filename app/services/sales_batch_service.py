# /app/services/sales_batch_service.py

"""
This module defines the SalesBatchService, the orchestrator behind every
batch endpoint.

For each request it validates the cross-field rules, builds the sub-range
requests for the current and comparison periods, dispatches them in one
concurrent fan-out, folds the results and hands them to the response
contract layer. It also serves the single-range pass-through calls.
"""

import logging
import time
from datetime import date
from typing import Any, Callable, Dict, List, Sequence, Tuple, Union

from fastapi import Depends, Request, status

from ..config import AppSettings, BatchSettings
from ..models import batch_model as contract
from ..models.sales_model import BatchResult, DateRange, SubRangeRequest
from . import batch_validation, date_ranges, response_contract
from .aggregator import aggregate
from .batch_dispatcher import BatchDispatcher
from .provider_client import SalesDataProviderClient

logger = logging.getLogger(__name__)


class SalesBatchService:
    def __init__(
        self,
        client: SalesDataProviderClient,
        batch_settings: BatchSettings,
        today: Callable[[], date] = date.today,
    ):
        self.client = client
        self.batch_settings = batch_settings
        self.today = today
        self.dispatcher = BatchDispatcher(
            client,
            max_concurrency=batch_settings.max_concurrency,
            timeout_seconds=batch_settings.timeout_seconds,
        )

    @property
    def provider_configured(self) -> bool:
        return self.client.settings.is_configured

    # --- Batch endpoints ---

    async def weekly_batch(self, payload: contract.WeeklyBatchRequest) -> Tuple[int, contract.WeeklyBatchResponse]:
        batch_validation.check_weekly(payload, self.today())
        if not self.provider_configured:
            logger.error("Weekly batch requested but the provider token is not configured")
            return status.HTTP_503_SERVICE_UNAVAILABLE, response_contract.weekly_fallback(response_contract.CONFIGURATION_MESSAGE, "configuration")

        current = date_ranges.requests_for_days(payload.current_week)
        previous = date_ranges.requests_for_days(payload.previous_week)
        result = await self._run("weekly", current, previous)
        return response_contract.to_weekly_response(current, previous, result)

    async def monthly_batch(self, payload: contract.MonthlyBatchRequest) -> Tuple[int, contract.MonthlyBatchResponse]:
        batch_validation.check_monthly(payload, self.today(), self.batch_settings.max_weeks)
        if not payload.current_month_weeks and not payload.previous_month_weeks:
            return status.HTTP_200_OK, response_contract.empty_monthly_response()
        if not self.provider_configured:
            logger.error("Monthly batch requested but the provider token is not configured")
            return status.HTTP_503_SERVICE_UNAVAILABLE, response_contract.monthly_fallback(response_contract.CONFIGURATION_MESSAGE, "configuration")

        current = self._week_requests(payload.current_month_weeks)
        previous = self._week_requests(payload.previous_month_weeks)
        result = await self._run("monthly", current, previous)
        return response_contract.to_monthly_response(current, previous, result)

    async def period_batch(self, payload: contract.PeriodBatchRequest) -> Tuple[int, contract.PeriodBatchResponse]:
        batch_validation.check_period(payload, self.today())
        if not self.provider_configured:
            logger.error("Period batch requested but the provider token is not configured")
            return status.HTTP_503_SERVICE_UNAVAILABLE, response_contract.period_fallback(
                response_contract.CONFIGURATION_MESSAGE, "configuration", payload.period
            )

        current_range = payload.to_range()
        previous_range = date_ranges.comparison_range(current_range, payload.period)
        current = date_ranges.decompose(current_range, payload.period)
        previous = date_ranges.decompose(previous_range, payload.period)
        result = await self._run(payload.period.value, current, previous)
        return response_contract.to_period_response(
            payload.period, current_range, previous_range, current, previous, result
        )

    # --- Single-range pass-through ---

    async def main_dashboard_data(self, start: date, end: date) -> Dict[str, Any]:
        """Proxies one range to the provider. Provider errors propagate to the caller."""
        batch_validation.check_single_range(start, end, self.today())
        response = await self.client.fetch_range(DateRange(start=start, end=end))
        body = dict(response.raw)
        body["success"] = True
        return body

    async def preset_data(self, period: str) -> Dict[str, Any]:
        """Resolves a preset name relative to today. Raises ValueError for unknown presets."""
        date_range = date_ranges.resolve_preset(period, self.today())
        response = await self.client.fetch_range(date_range)
        return {
            "success": True,
            "data": response.details,
            "period": period,
            "date_range": {"start_date": date_range.start.isoformat(), "end_date": date_range.end.isoformat()},
        }

    async def branch_comparison(
        self, start: date, end: date, period_type: contract.BranchPeriodType
    ) -> Tuple[int, Union[contract.BranchComparisonResponse, contract.ProviderPassthroughError]]:
        """
        Compares the per-branch figures of one range with its comparison range
        (previous week or previous month). Two provider calls, dispatched together.
        """
        batch_validation.check_single_range(start, end, self.today())
        if not self.provider_configured:
            logger.error("Branch comparison requested but the provider token is not configured")
            return status.HTTP_503_SERVICE_UNAVAILABLE, contract.ProviderPassthroughError(
                message=response_contract.CONFIGURATION_MESSAGE
            )

        current_range = DateRange(start=start, end=end)
        comparison_range = date_ranges.comparison_range(current_range, period_type.kind)
        started_at = time.perf_counter()
        current, comparison = await self.dispatcher.dispatch([
            SubRangeRequest(key="current", label="Current", range=current_range),
            SubRangeRequest(key="comparison", label="Comparison", range=comparison_range),
        ])
        execution_time_ms = round((time.perf_counter() - started_at) * 1000, 2)

        if not (current.success and comparison.success):
            failed = current if not current.success else comparison
            logger.warning("Branch comparison for %s failed: %s", current_range, failed.error)
            return status.HTTP_503_SERVICE_UNAVAILABLE, contract.ProviderPassthroughError(
                message=response_contract.PROVIDER_UNAVAILABLE_MESSAGE
            )
        return status.HTTP_200_OK, response_contract.to_branch_response(
            period_type, current_range, comparison_range, current, comparison, execution_time_ms
        )

    async def hours_chart(self, day: date) -> contract.HoursChartResponse:
        """Hourly sales for one day. Provider errors propagate to the caller."""
        batch_validation.check_hours_chart(day, self.today())
        payload = await self.client.fetch_hours_chart(day)
        return contract.HoursChartResponse(success=True, data=payload.data)

    # --- Internals ---

    @staticmethod
    def _week_requests(weeks: Sequence[contract.MonthWeek]) -> List[SubRangeRequest]:
        return [
            SubRangeRequest(
                key=week.week_key,
                label=week.week_name,
                range=DateRange(start=week.start_date, end=week.end_date),
            )
            for week in weeks
        ]

    async def _run(
        self,
        batch_name: str,
        current: Sequence[SubRangeRequest],
        comparison: Sequence[SubRangeRequest],
    ) -> BatchResult:
        started_at = time.perf_counter()
        logger.info(
            "Starting %s batch: %d current + %d comparison sub-ranges",
            batch_name, len(current), len(comparison),
        )
        results = await self.dispatcher.dispatch(list(current) + list(comparison))
        result = aggregate(results[:len(current)], results[len(current):], started_at=started_at)

        log = logger.error if response_contract.is_total_outage(result) else logger.info
        log(
            "%s batch finished in %.0fms: current=%s comparison=%s change=%s failed=%d/%d (%.1f%% ok)",
            batch_name.capitalize(),
            result.metadata.execution_time_ms,
            result.current_period.total,
            result.comparison_period.total,
            result.percentage_change,
            result.metadata.failed_requests,
            result.metadata.total_requests,
            result.metadata.success_rate,
        )
        return result


# --- Dependency Providers ---

def get_settings(request: Request) -> AppSettings:
    return request.app.state.settings


def get_provider_client(request: Request) -> SalesDataProviderClient:
    return request.app.state.provider_client


def get_sales_batch_service(
    client: SalesDataProviderClient = Depends(get_provider_client),
    settings: AppSettings = Depends(get_settings),
) -> SalesBatchService:
    return SalesBatchService(client=client, batch_settings=settings.batch)
