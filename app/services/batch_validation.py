# /app/services/batch_validation.py

"""
Cross-field request rules that pydantic's per-field checks cannot express:
ordering, overlap, spans, and the allowed date window. Every rule reports
into a field-keyed error map so the client sees all problems at once.
"""

from collections import defaultdict
from datetime import date
from typing import Dict, List, Sequence

from ..models.batch_model import MonthlyBatchRequest, MonthWeek, PeriodBatchRequest, WeeklyBatchRequest
from ..models.sales_model import PeriodKind
from .date_ranges import shift_months

MAX_WEEK_SPAN_DAYS = 7
MAX_PAST_YEARS = 5
MAX_FUTURE_YEARS = 2
PERIOD_MAX_DAYS = {PeriodKind.DAY: 1, PeriodKind.WEEK: 7, PeriodKind.MONTH: 31}
HOURS_CHART_EARLIEST = date(2020, 1, 1)


class BatchValidationError(Exception):
    def __init__(self, errors: Dict[str, List[str]], message: str = "The batch request is invalid."):
        super().__init__(message)
        self.message = message
        self.errors = errors


class _Errors:
    def __init__(self):
        self._errors: Dict[str, List[str]] = defaultdict(list)

    def add(self, field: str, message: str) -> None:
        if message not in self._errors[field]:
            self._errors[field].append(message)

    def raise_if_any(self) -> None:
        if self._errors:
            raise BatchValidationError(dict(self._errors))


def _check_not_future(errors: _Errors, field: str, start: date, today: date) -> None:
    if start > today:
        errors.add(field, "The current period cannot start in the future.")


def check_weekly(payload: WeeklyBatchRequest, today: date) -> None:
    errors = _Errors()
    for field, week in (("current_week", payload.current_week), ("previous_week", payload.previous_week)):
        if any(later <= earlier for earlier, later in zip(week, week[1:])):
            errors.add(field, "Dates within the week must be in chronological order without repeats.")
    if max(payload.previous_week) >= min(payload.current_week):
        errors.add("previous_week", "The previous week must come before the current week.")
    _check_not_future(errors, "current_week", min(payload.current_week), today)
    errors.raise_if_any()


def _check_weeks(errors: _Errors, field: str, weeks: Sequence[MonthWeek], max_weeks: int) -> None:
    if len(weeks) > max_weeks:
        errors.add(field, f"No more than {max_weeks} weeks can be processed per month.")

    seen_keys = set()
    for index, week in enumerate(weeks):
        if week.week_key in seen_keys:
            errors.add(f"{field}.{index}.week_key", f"Duplicate week_key '{week.week_key}'.")
        seen_keys.add(week.week_key)

        if week.end_date < week.start_date:
            errors.add(f"{field}.{index}.end_date", "end_date must be on or after start_date.")
        elif (week.end_date - week.start_date).days > MAX_WEEK_SPAN_DAYS:
            errors.add(
                f"{field}.{index}.end_date",
                f"start_date and end_date cannot be more than {MAX_WEEK_SPAN_DAYS} days apart for one week.",
            )

    valid = [(i, w) for i, w in enumerate(weeks) if w.start_date <= w.end_date]
    for position, (_, first) in enumerate(valid):
        for j, second in valid[position + 1:]:
            if first.start_date <= second.end_date and first.end_date >= second.start_date:
                errors.add(
                    f"{field}.{j}",
                    f"Week '{second.week_name or second.week_key}' overlaps another week in the same period.",
                )


def check_monthly(payload: MonthlyBatchRequest, today: date, max_weeks: int = 10) -> None:
    errors = _Errors()
    _check_weeks(errors, "current_month_weeks", payload.current_month_weeks, max_weeks)
    _check_weeks(errors, "previous_month_weeks", payload.previous_month_weeks, max_weeks)

    earliest = shift_months(today, -12 * MAX_PAST_YEARS)
    latest = shift_months(today, 12 * MAX_FUTURE_YEARS)
    for week in payload.current_month_weeks + payload.previous_month_weeks:
        if week.start_date < earliest:
            errors.add("date_range", f"Dates cannot be more than {MAX_PAST_YEARS} years in the past.")
        if week.start_date > latest:
            errors.add("date_range", f"Dates cannot be more than {MAX_FUTURE_YEARS} years in the future.")

    if payload.current_month_weeks:
        _check_not_future(errors, "current_month_weeks", min(w.start_date for w in payload.current_month_weeks), today)
    errors.raise_if_any()


def check_period(payload: PeriodBatchRequest, today: date) -> None:
    errors = _Errors()
    if payload.end_date < payload.start_date:
        errors.add("end_date", "end_date must be on or after start_date.")
    else:
        span = (payload.end_date - payload.start_date).days + 1
        limit = PERIOD_MAX_DAYS[payload.period]
        if span > limit:
            unit = "day" if limit == 1 else "days"
            errors.add("end_date", f"A {payload.period.value} period cannot cover more than {limit} {unit}.")
    _check_not_future(errors, "start_date", payload.start_date, today)
    errors.raise_if_any()


def check_single_range(start: date, end: date, today: date) -> None:
    errors = _Errors()
    if end < start:
        errors.add("end_date", "end_date must be on or after start_date.")
    if start > today:
        errors.add("start_date", "start_date cannot be in the future.")
    errors.raise_if_any()


def check_hours_chart(day: date, today: date) -> None:
    errors = _Errors()
    if day > today:
        errors.add("date", "The date cannot be in the future.")
    if day <= HOURS_CHART_EARLIEST:
        errors.add("date", f"The date must be after {HOURS_CHART_EARLIEST.isoformat()}.")
    errors.raise_if_any()
