# /app/services/aggregator.py

"""
Folds already-resolved sub-range results into a single BatchResult.

This step does no I/O. Failed sub-ranges count as zero, so a partial outage
lowers accuracy but never breaks the arithmetic.
"""

import time
from typing import Optional, Sequence

from ..models.sales_model import BatchMetadata, BatchResult, PeriodSummary, SubRangeResult


def period_total(results: Sequence[SubRangeResult]) -> float:
    return sum(r.total for r in results if r.success)


def percentage_change(current_total: float, comparison_total: float) -> float:
    """
    Change of `current_total` relative to `comparison_total`, in percent, one decimal.
    A zero comparison yields 100 when there is any current value, else 0.
    """
    if comparison_total == 0:
        return 100.0 if current_total > 0 else 0.0
    return round((current_total - comparison_total) / comparison_total * 100, 1)


def success_rate(total_requests: int, failed_requests: int) -> float:
    if total_requests == 0:
        return 100.0
    return round((total_requests - failed_requests) / total_requests * 100, 1)


def aggregate(
    current: Sequence[SubRangeResult],
    comparison: Sequence[SubRangeResult],
    started_at: Optional[float] = None,
) -> BatchResult:
    """
    Builds the BatchResult for one batch.

    Args:
        current: Results for the current period, in request order.
        comparison: Results for the comparison period, in request order.
        started_at: `time.perf_counter()` reading taken when dispatch began. When
            omitted the execution time only covers this fold.

    Returns:
        A BatchResult. `percentage_change` is None when no comparison sub-range
        was requested at all.
    """
    start = started_at if started_at is not None else time.perf_counter()

    current_total = period_total(current)
    comparison_total = period_total(comparison)
    total_requests = len(current) + len(comparison)
    failed_requests = sum(1 for r in list(current) + list(comparison) if not r.success)

    change = percentage_change(current_total, comparison_total) if comparison else None

    return BatchResult(
        current_period=PeriodSummary(ranges=list(current), total=current_total),
        comparison_period=PeriodSummary(ranges=list(comparison), total=comparison_total),
        percentage_change=change,
        metadata=BatchMetadata(
            total_requests=total_requests,
            failed_requests=failed_requests,
            success_rate=success_rate(total_requests, failed_requests),
            execution_time_ms=round((time.perf_counter() - start) * 1000, 2),
        ),
    )
