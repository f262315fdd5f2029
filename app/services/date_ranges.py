# /app/services/date_ranges.py

"""
Pure date arithmetic for the batch layer: comparison periods, sub-range
decomposition and the named preset periods. No I/O happens here.
"""

import calendar
from datetime import date, timedelta
from typing import Dict, Iterable, List

from ..models.sales_model import DateRange, PeriodKind, SubRangeRequest

WEEKDAY_LABELS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

PRESET_PERIODS: Dict[str, str] = {
    "today": "Today",
    "yesterday": "Yesterday",
    "last_7_days": "Last 7 Days",
    "last_30_days": "Last 30 Days",
    "last_90_days": "Last 90 Days",
    "this_month": "This Month",
    "last_month": "Last Month",
    "this_year": "This Year",
}


def shift_months(day: date, months: int) -> date:
    """Moves `day` by whole calendar months, clamping to the last valid day (Jan 31 -> Feb 28/29)."""
    month_index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(month_index, 12)
    month += 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def comparison_range(date_range: DateRange, kind: PeriodKind) -> DateRange:
    """
    The period a range is compared against.

    Week and Day both look back exactly 7 days (a Day compares with the same
    weekday of the previous week). Month looks back one calendar month on
    each endpoint independently.
    """
    if kind == PeriodKind.MONTH:
        return DateRange(start=shift_months(date_range.start, -1), end=shift_months(date_range.end, -1))
    one_week = timedelta(days=7)
    return DateRange(start=date_range.start - one_week, end=date_range.end - one_week)


def decompose(date_range: DateRange, kind: PeriodKind) -> List[SubRangeRequest]:
    """
    Splits a range into the sub-ranges a batch dispatches, in chronological order.

    - Week: one request per day actually present in the range (at most 7), keyed by ISO date.
    - Month: Monday-start calendar weeks cut strictly within the range, keyed `week_1..week_n`.
    - Day: the range itself as a single request.
    """
    if kind == PeriodKind.WEEK:
        if date_range.days > 7:
            raise ValueError(f"A week range cannot span {date_range.days} days")
        return requests_for_days(date_range.iter_days())

    if kind == PeriodKind.MONTH:
        requests = []
        cursor = date_range.start
        number = 1
        while cursor <= date_range.end:
            week_end = min(cursor + timedelta(days=6 - cursor.weekday()), date_range.end)
            requests.append(SubRangeRequest(
                key=f"week_{number}",
                label=f"Week {number}",
                range=DateRange(start=cursor, end=week_end),
            ))
            cursor = week_end + timedelta(days=1)
            number += 1
        return requests

    if date_range.start == date_range.end:
        key = date_range.start.isoformat()
        label = WEEKDAY_LABELS[date_range.start.weekday()]
    else:
        key = f"{date_range.start.isoformat()}_{date_range.end.isoformat()}"
        label = str(date_range)
    return [SubRangeRequest(key=key, label=label, range=date_range)]


def requests_for_days(days: Iterable[date]) -> List[SubRangeRequest]:
    """One single-day request per date, keyed by its ISO string."""
    return [
        SubRangeRequest(key=day.isoformat(), label=WEEKDAY_LABELS[day.weekday()], range=DateRange(start=day, end=day))
        for day in days
    ]


def resolve_preset(period: str, today: date) -> DateRange:
    """Turns a preset name into a concrete range relative to `today`."""
    if period == "today":
        return DateRange(start=today, end=today)
    if period == "yesterday":
        yesterday = today - timedelta(days=1)
        return DateRange(start=yesterday, end=yesterday)
    if period == "last_7_days":
        return DateRange(start=today - timedelta(days=7), end=today)
    if period == "last_30_days":
        return DateRange(start=today - timedelta(days=30), end=today)
    if period == "last_90_days":
        return DateRange(start=today - timedelta(days=90), end=today)
    if period == "this_month":
        return DateRange(start=today.replace(day=1), end=today)
    if period == "last_month":
        last_month_end = today.replace(day=1) - timedelta(days=1)
        return DateRange(start=last_month_end.replace(day=1), end=last_month_end)
    if period == "this_year":
        return DateRange(start=today.replace(month=1, day=1), end=today)
    raise ValueError(f"Unsupported period: {period}")


def available_presets() -> List[Dict[str, str]]:
    return [{"value": value, "label": label} for value, label in PRESET_PERIODS.items()]
