# /tests/test_aggregator.py

import pytest

from app.models.sales_model import SubRangeResult
from app.services import aggregator


def _ok(key: str, total: float) -> SubRangeResult:
    return SubRangeResult(key=key, success=True, total=total, details={"sales": {"total": total}})


def _failed(key: str) -> SubRangeResult:
    return SubRangeResult(key=key, success=False, error="HTTP 503 from provider", error_type="http_5xx")


@pytest.fixture
def partially_failed_week():
    """Seven days where the 3rd and 6th failed."""
    results = [_ok(f"2025-09-0{i + 2}", 1000 + i * 100) for i in range(7)]
    results[2] = _failed(results[2].key)
    results[5] = _failed(results[5].key)
    return results


def test_partial_failures_count_as_zero(partially_failed_week):
    comparison = [_ok(f"2025-08-2{i + 6}", 500) for i in range(4)]
    result = aggregator.aggregate(partially_failed_week, comparison)

    expected_total = sum(r.total for r in partially_failed_week if r.success)
    assert result.current_period.total == expected_total == 1000 + 1100 + 1300 + 1400 + 1600
    assert result.metadata.total_requests == 11
    assert result.metadata.failed_requests == 2


def test_success_rate_for_five_of_seven(partially_failed_week):
    result = aggregator.aggregate(partially_failed_week, [])
    assert result.metadata.failed_requests == 2
    assert result.metadata.success_rate == pytest.approx(71.4)


def test_failed_result_is_normalised_to_zero_total():
    result = SubRangeResult(key="x", success=False, total=999, details={"a": 1})
    assert result.total == 0
    assert result.details is None


def test_weekly_scenario_totals_and_change():
    current = [_ok(f"c{i}", 1000) for i in range(7)]
    previous = [_ok(f"p{i}", 800) for i in range(7)]

    result = aggregator.aggregate(current, previous)

    assert result.current_period.total == 7000
    assert result.comparison_period.total == 5600
    assert result.percentage_change == 25.0
    assert result.metadata.success_rate == 100.0


@pytest.mark.parametrize("current, comparison, expected", [
    (500, 0, 100.0),
    (0, 0, 0.0),
    (900, 1000, -10.0),
    (1000, 3000, -66.7),
    (1234, 1000, 23.4),
])
def test_percentage_change(current, comparison, expected):
    assert aggregator.percentage_change(current, comparison) == expected


def test_no_comparison_requested_gives_null_change():
    result = aggregator.aggregate([_ok("week_1", 10)], [])
    assert result.percentage_change is None


def test_aggregate_is_idempotent_apart_from_timing(partially_failed_week):
    comparison = [_ok("p", 300), _failed("q")]
    first = aggregator.aggregate(partially_failed_week, comparison)
    second = aggregator.aggregate(partially_failed_week, comparison)

    exclude = {"metadata": {"execution_time_ms"}}
    assert first.model_dump_json(exclude=exclude) == second.model_dump_json(exclude=exclude)


def test_execution_time_is_measured_from_dispatch_start(mocker):
    mocker.patch("app.services.aggregator.time.perf_counter", return_value=12.5)
    result = aggregator.aggregate([_ok("a", 1)], [_ok("b", 1)], started_at=10.0)
    assert result.metadata.execution_time_ms == 2500.0


def test_empty_batch():
    result = aggregator.aggregate([], [])
    assert result.metadata.total_requests == 0
    assert result.metadata.success_rate == 100.0
    assert not result.all_failed
