# /app/services/response_contract.py

"""
Shapes a BatchResult into the stable JSON envelopes the frontend consumes.

The envelope is the same whether one or fifty provider calls were made. A
partially failed batch is still `success: true`; only a batch in which every
sub-range failed to reach the provider becomes a 503 with an empty, fully
populated fallback structure the UI can render as "no data".
"""

from datetime import datetime
from typing import Callable, Dict, Optional, Sequence, Tuple, TypeVar

from fastapi import status

from ..models import batch_model as contract
from ..models.sales_model import BatchResult, DateRange, PeriodKind, ProviderSalesData, SubRangeRequest, SubRangeResult
from .aggregator import percentage_change
from .provider_errors import UNREACHABLE_ERROR_TYPES

WEEKLY_SUCCESS_MESSAGE = "Weekly data retrieved successfully."
MONTHLY_SUCCESS_MESSAGE = "Monthly data by week retrieved successfully."
PERIOD_SUCCESS_MESSAGE = "Period data retrieved successfully."
OUTAGE_MESSAGE = "The sales data provider is unavailable. Please try again later."
CONFIGURATION_MESSAGE = "The sales data provider is not configured."
PROVIDER_UNAVAILABLE_MESSAGE = "Could not reach the sales data provider. Check the API configuration."
INTERNAL_ERROR_MESSAGE = "An unexpected error occurred while building the batch response."

EntryT = TypeVar("EntryT", bound=contract.DayEntry)


def request_time() -> str:
    return datetime.now().astimezone().isoformat(timespec="seconds")


def is_total_outage(result: BatchResult) -> bool:
    """True when every sub-range failed and none of them got a real answer from the provider."""
    return result.all_failed and all(r.error_type in UNREACHABLE_ERROR_TYPES for r in result.failures())


def _entries(
    requests: Sequence[SubRangeRequest],
    results: Sequence[SubRangeResult],
    build: Callable[[SubRangeRequest, SubRangeResult], EntryT],
) -> Dict[str, EntryT]:
    return {request.key: build(request, result) for request, result in zip(requests, results)}


def _common_metadata(result: BatchResult) -> Dict:
    return {
        "total_requests": result.metadata.total_requests,
        "failed_requests": result.metadata.failed_requests,
        "success_rate": result.metadata.success_rate,
        "execution_time_ms": result.metadata.execution_time_ms,
        "request_time": request_time(),
        "error_occurred": result.metadata.failed_requests > 0,
        "error_type": "partial_failure" if result.metadata.failed_requests else None,
    }


def _fallback_metadata(error_type: str, execution_time_ms: float) -> Dict:
    return {
        "request_time": request_time(),
        "execution_time_ms": execution_time_ms,
        "error_occurred": True,
        "error_type": error_type,
    }


# --- Weekly ---

def _day_entry(_: SubRangeRequest, result: SubRangeResult) -> contract.DayEntry:
    return contract.DayEntry(total=result.total, details=result.details, error=result.error)


def weekly_fallback(message: str, error_type: str, execution_time_ms: float = 0.0) -> contract.WeeklyBatchResponse:
    return contract.WeeklyBatchResponse(
        success=False,
        message=message,
        data=contract.WeeklyBatchData(
            current_week={},
            previous_week={},
            metadata=contract.WeeklyMetadata(**_fallback_metadata(error_type, execution_time_ms)),
        ),
    )


def to_weekly_response(
    current: Sequence[SubRangeRequest],
    previous: Sequence[SubRangeRequest],
    result: BatchResult,
) -> Tuple[int, contract.WeeklyBatchResponse]:
    if is_total_outage(result):
        return status.HTTP_503_SERVICE_UNAVAILABLE, weekly_fallback(
            OUTAGE_MESSAGE, "provider_unavailable", result.metadata.execution_time_ms
        )
    return status.HTTP_200_OK, contract.WeeklyBatchResponse(
        success=True,
        message=WEEKLY_SUCCESS_MESSAGE,
        data=contract.WeeklyBatchData(
            current_week=_entries(current, result.current_period.ranges, _day_entry),
            previous_week=_entries(previous, result.comparison_period.ranges, _day_entry),
            metadata=contract.WeeklyMetadata(
                current_week_total=result.current_period.total,
                previous_week_total=result.comparison_period.total,
                week_over_week_change=result.percentage_change,
                **_common_metadata(result),
            ),
        ),
    )


# --- Monthly ---

def _week_entry(request: SubRangeRequest, result: SubRangeResult) -> contract.WeekEntry:
    return contract.WeekEntry(
        week_name=request.label,
        start_date=request.range.start,
        end_date=request.range.end,
        total=result.total,
        details=result.details,
        error=result.error,
    )


def monthly_fallback(message: str, error_type: str, execution_time_ms: float = 0.0) -> contract.MonthlyBatchResponse:
    return contract.MonthlyBatchResponse(
        success=False,
        message=message,
        data=contract.MonthlyBatchData(
            current_month_weeks={},
            previous_month_weeks={},
            metadata=contract.MonthlyMetadata(**_fallback_metadata(error_type, execution_time_ms)),
        ),
    )


def empty_monthly_response() -> contract.MonthlyBatchResponse:
    """Both arrays were empty: nothing to fetch, nothing failed."""
    return contract.MonthlyBatchResponse(
        success=True,
        message="No data to process.",
        data=contract.MonthlyBatchData(
            current_month_weeks={},
            previous_month_weeks={},
            metadata=contract.MonthlyMetadata(request_time=request_time(), success_rate=100.0, month_over_month_change=None),
        ),
    )


def to_monthly_response(
    current: Sequence[SubRangeRequest],
    previous: Sequence[SubRangeRequest],
    result: BatchResult,
) -> Tuple[int, contract.MonthlyBatchResponse]:
    if is_total_outage(result):
        return status.HTTP_503_SERVICE_UNAVAILABLE, monthly_fallback(
            OUTAGE_MESSAGE, "provider_unavailable", result.metadata.execution_time_ms
        )
    return status.HTTP_200_OK, contract.MonthlyBatchResponse(
        success=True,
        message=MONTHLY_SUCCESS_MESSAGE,
        data=contract.MonthlyBatchData(
            current_month_weeks=_entries(current, result.current_period.ranges, _week_entry),
            previous_month_weeks=_entries(previous, result.comparison_period.ranges, _week_entry),
            metadata=contract.MonthlyMetadata(
                current_month_total=result.current_period.total,
                previous_month_total=result.comparison_period.total,
                month_over_month_change=result.percentage_change,
                **_common_metadata(result),
            ),
        ),
    )


# --- Generic period ---

def _range_entry(request: SubRangeRequest, result: SubRangeResult) -> contract.RangeEntry:
    return contract.RangeEntry(
        label=request.label,
        start_date=request.range.start,
        end_date=request.range.end,
        total=result.total,
        details=result.details,
        error=result.error,
    )


def period_fallback(
    message: str,
    error_type: str,
    kind: Optional[PeriodKind] = None,
    execution_time_ms: float = 0.0,
) -> contract.PeriodBatchResponse:
    return contract.PeriodBatchResponse(
        success=False,
        message=message,
        data=contract.PeriodBatchData(
            current_period=contract.PeriodBlock(),
            comparison_period=contract.PeriodBlock(),
            metadata=contract.PeriodMetadata(period=kind, **_fallback_metadata(error_type, execution_time_ms)),
        ),
    )


def to_period_response(
    kind: PeriodKind,
    current_range: DateRange,
    comparison_range: DateRange,
    current: Sequence[SubRangeRequest],
    comparison: Sequence[SubRangeRequest],
    result: BatchResult,
) -> Tuple[int, contract.PeriodBatchResponse]:
    if is_total_outage(result):
        return status.HTTP_503_SERVICE_UNAVAILABLE, period_fallback(
            OUTAGE_MESSAGE, "provider_unavailable", kind, result.metadata.execution_time_ms
        )
    return status.HTTP_200_OK, contract.PeriodBatchResponse(
        success=True,
        message=PERIOD_SUCCESS_MESSAGE,
        data=contract.PeriodBatchData(
            current_period=contract.PeriodBlock(
                start_date=current_range.start,
                end_date=current_range.end,
                total=result.current_period.total,
                breakdown=_entries(current, result.current_period.ranges, _range_entry),
            ),
            comparison_period=contract.PeriodBlock(
                start_date=comparison_range.start,
                end_date=comparison_range.end,
                total=result.comparison_period.total,
                breakdown=_entries(comparison, result.comparison_period.ranges, _range_entry),
            ),
            metadata=contract.PeriodMetadata(
                period=kind,
                current_total=result.current_period.total,
                comparison_total=result.comparison_period.total,
                percentage_change=result.percentage_change,
                **_common_metadata(result),
            ),
        ),
    )


# --- Branch comparison ---

def _branch_snapshot(
    date_range: DateRange,
    period_type: contract.BranchPeriodType,
    result: SubRangeResult,
) -> contract.BranchSnapshot:
    data = ProviderSalesData.model_validate(result.details or {})
    return contract.BranchSnapshot(
        total=data.revenue_total,
        sales_total=result.total,
        orders_count=data.orders_count,
        branches=data.cards if data.cards is not None else {},
        period=contract.BranchPeriodWindow(start_date=date_range.start, end_date=date_range.end, type=period_type),
    )


def to_branch_response(
    period_type: contract.BranchPeriodType,
    current_range: DateRange,
    comparison_range: DateRange,
    current: SubRangeResult,
    comparison: SubRangeResult,
    execution_time_ms: float,
) -> contract.BranchComparisonResponse:
    """Both results must be successful; the caller answers 503 otherwise."""
    current_block = _branch_snapshot(current_range, period_type, current)
    comparison_block = _branch_snapshot(comparison_range, period_type, comparison)
    branches = current_block.branches
    return contract.BranchComparisonResponse(
        success=True,
        current=current_block,
        comparison=comparison_block,
        metadata=contract.BranchMetadata(
            percentage_change=percentage_change(current_block.total, comparison_block.total),
            branches_count=len(branches) if isinstance(branches, (dict, list)) else 0,
            request_time=request_time(),
            execution_time_ms=execution_time_ms,
        ),
    )
