# /tests/test_batch_validation.py

import pytest
from datetime import date, timedelta

from app.models.batch_model import MonthlyBatchRequest, MonthWeek, PeriodBatchRequest, WeeklyBatchRequest
from app.services.batch_validation import (
    BatchValidationError,
    check_hours_chart,
    check_monthly,
    check_period,
    check_single_range,
    check_weekly,
)

TODAY = date(2025, 9, 10)


def _days(first: str):
    start = date.fromisoformat(first)
    return [(start + timedelta(days=i)).isoformat() for i in range(7)]


def _week(key: str, start: str, end: str) -> MonthWeek:
    return MonthWeek(week_key=key, week_name=key.replace("_", " ").title(), start_date=start, end_date=end)


def _errors_of(check, *args):
    with pytest.raises(BatchValidationError) as exc_info:
        check(*args)
    return exc_info.value.errors


# --- Weekly ---

def test_valid_weekly_request_passes():
    payload = WeeklyBatchRequest(current_week=_days("2025-09-02"), previous_week=_days("2025-08-26"))
    check_weekly(payload, TODAY)


def test_weekly_rejects_unordered_days():
    days = _days("2025-09-02")
    days[2], days[3] = days[3], days[2]
    payload = WeeklyBatchRequest(current_week=days, previous_week=_days("2025-08-26"))

    errors = _errors_of(check_weekly, payload, TODAY)
    assert "current_week" in errors


def test_weekly_rejects_previous_week_after_current():
    payload = WeeklyBatchRequest(current_week=_days("2025-08-26"), previous_week=_days("2025-09-02"))
    errors = _errors_of(check_weekly, payload, TODAY)
    assert list(errors) == ["previous_week"]


def test_weekly_rejects_current_week_starting_in_future():
    payload = WeeklyBatchRequest(current_week=_days("2025-09-11"), previous_week=_days("2025-09-04"))
    errors = _errors_of(check_weekly, payload, TODAY)
    assert errors["current_week"] == ["The current period cannot start in the future."]


def test_weekly_allows_week_running_past_today():
    payload = WeeklyBatchRequest(current_week=_days("2025-09-08"), previous_week=_days("2025-09-01"))
    check_weekly(payload, TODAY)


# --- Monthly ---

def test_valid_monthly_request_passes():
    payload = MonthlyBatchRequest(
        current_month_weeks=[_week("week_1", "2025-09-01", "2025-09-07"), _week("week_2", "2025-09-08", "2025-09-14")],
        previous_month_weeks=[_week("week_1", "2025-08-01", "2025-08-03")],
    )
    check_monthly(payload, TODAY)


def test_monthly_rejects_overlapping_weeks():
    payload = MonthlyBatchRequest(current_month_weeks=[
        _week("week_1", "2025-09-01", "2025-09-07"),
        _week("week_2", "2025-09-05", "2025-09-09"),
    ])
    errors = _errors_of(check_monthly, payload, TODAY)
    assert list(errors) == ["current_month_weeks.1"]
    assert "overlaps" in errors["current_month_weeks.1"][0]


def test_monthly_rejects_week_spanning_more_than_seven_days():
    payload = MonthlyBatchRequest(previous_month_weeks=[_week("week_1", "2025-08-01", "2025-08-09")])
    errors = _errors_of(check_monthly, payload, TODAY)
    assert "previous_month_weeks.0.end_date" in errors


def test_monthly_accepts_seven_day_gap():
    payload = MonthlyBatchRequest(previous_month_weeks=[_week("week_1", "2025-08-01", "2025-08-08")])
    check_monthly(payload, TODAY)


def test_monthly_rejects_end_before_start():
    payload = MonthlyBatchRequest(current_month_weeks=[_week("week_1", "2025-09-07", "2025-09-01")])
    errors = _errors_of(check_monthly, payload, TODAY)
    assert errors["current_month_weeks.0.end_date"] == ["end_date must be on or after start_date."]


def test_monthly_rejects_too_many_weeks():
    first = date(2025, 1, 6)
    weeks = [
        _week(f"week_{i}", (first + timedelta(weeks=i)).isoformat(), (first + timedelta(weeks=i, days=6)).isoformat())
        for i in range(11)
    ]
    errors = _errors_of(check_monthly, MonthlyBatchRequest(previous_month_weeks=weeks), TODAY)
    assert "previous_month_weeks" in errors


def test_monthly_max_weeks_is_configurable():
    weeks = [_week("week_1", "2025-08-04", "2025-08-10"), _week("week_2", "2025-08-11", "2025-08-17")]
    with pytest.raises(BatchValidationError):
        check_monthly(MonthlyBatchRequest(previous_month_weeks=weeks), TODAY, max_weeks=1)


def test_monthly_rejects_duplicate_week_keys():
    payload = MonthlyBatchRequest(current_month_weeks=[
        _week("week_1", "2025-09-01", "2025-09-07"),
        _week("week_1", "2025-09-08", "2025-09-10"),
    ])
    errors = _errors_of(check_monthly, payload, TODAY)
    assert "current_month_weeks.1.week_key" in errors


def test_monthly_rejects_dates_outside_allowed_window():
    payload = MonthlyBatchRequest(previous_month_weeks=[_week("week_1", "2019-01-07", "2019-01-13")])
    errors = _errors_of(check_monthly, payload, TODAY)
    assert errors["date_range"] == ["Dates cannot be more than 5 years in the past."]


def test_monthly_collects_every_problem_at_once():
    payload = MonthlyBatchRequest(
        current_month_weeks=[_week("week_1", "2025-09-20", "2025-09-26")],
        previous_month_weeks=[_week("week_1", "2025-08-01", "2025-08-20")],
    )
    errors = _errors_of(check_monthly, payload, TODAY)
    assert set(errors) == {"current_month_weeks", "previous_month_weeks.0.end_date"}


# --- Period and single ranges ---

@pytest.mark.parametrize("period, start, end", [
    ("day", "2025-09-09", "2025-09-09"),
    ("week", "2025-09-01", "2025-09-07"),
    ("month", "2025-08-01", "2025-08-31"),
])
def test_valid_periods_pass(period, start, end):
    check_period(PeriodBatchRequest(start_date=start, end_date=end, period=period), TODAY)


@pytest.mark.parametrize("period, start, end", [
    ("day", "2025-09-08", "2025-09-09"),
    ("week", "2025-09-01", "2025-09-08"),
    ("month", "2025-07-31", "2025-08-31"),
])
def test_period_span_limits(period, start, end):
    errors = _errors_of(check_period, PeriodBatchRequest(start_date=start, end_date=end, period=period), TODAY)
    assert "end_date" in errors


def test_period_rejects_future_start():
    payload = PeriodBatchRequest(start_date="2025-09-11", end_date="2025-09-11", period="day")
    errors = _errors_of(check_period, payload, TODAY)
    assert "start_date" in errors


def test_single_range_rules():
    check_single_range(date(2025, 9, 1), date(2025, 9, 10), TODAY)
    errors = _errors_of(check_single_range, date(2025, 9, 12), date(2025, 9, 11), TODAY)
    assert set(errors) == {"start_date", "end_date"}


# --- Hours chart ---

def test_hours_chart_accepts_today_and_recent_days():
    check_hours_chart(TODAY, TODAY)
    check_hours_chart(date(2020, 1, 2), TODAY)


@pytest.mark.parametrize("day, message", [
    (date(2025, 9, 11), "The date cannot be in the future."),
    (date(2020, 1, 1), "The date must be after 2020-01-01."),
])
def test_hours_chart_date_limits(day, message):
    errors = _errors_of(check_hours_chart, day, TODAY)
    assert errors == {"date": [message]}
