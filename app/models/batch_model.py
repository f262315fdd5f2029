# /app/models/batch_model.py

"""
The HTTP contract of the batch endpoints: request payloads and the JSON
envelopes returned to the dashboard frontend. Field names are snake_case on
the wire.
"""

import re
from datetime import date
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, BeforeValidator, Field

from .sales_model import DateRange, PeriodKind

ISO_DAY_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")
ISO_DAY_MESSAGE = "Date must use the YYYY-MM-DD format (e.g. 2025-09-09)"


def parse_iso_day(value: Any) -> date:
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not ISO_DAY_PATTERN.match(value):
        raise ValueError(ISO_DAY_MESSAGE)
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise ValueError(f"{value} is not a valid calendar date")


IsoDay = Annotated[date, BeforeValidator(parse_iso_day)]


# --- Request Models ---

class WeeklyBatchRequest(BaseModel):
    current_week: List[IsoDay] = Field(..., min_length=7, max_length=7, description="The 7 days of the current week, oldest first.")
    previous_week: List[IsoDay] = Field(..., min_length=7, max_length=7, description="The 7 days of the comparison week, oldest first.")


class MonthWeek(BaseModel):
    week_key: str = Field(..., min_length=1, max_length=50, examples=["week_1"])
    week_name: str = Field(..., min_length=1, max_length=100, examples=["Week 1"])
    start_date: IsoDay
    end_date: IsoDay


class MonthlyBatchRequest(BaseModel):
    # Either array may be omitted; it is then treated as empty.
    current_month_weeks: List[MonthWeek] = Field(default_factory=list)
    previous_month_weeks: List[MonthWeek] = Field(default_factory=list)


class PeriodBatchRequest(BaseModel):
    start_date: IsoDay
    end_date: IsoDay
    period: PeriodKind = Field(..., description="day | week | month")

    def to_range(self) -> DateRange:
        return DateRange(start=self.start_date, end=self.end_date)


# --- Response Models ---

class DayEntry(BaseModel):
    total: float
    details: Optional[Dict[str, Any]] = None
    error: Optional[str] = None


class WeekEntry(DayEntry):
    week_name: str
    start_date: date
    end_date: date


class RangeEntry(DayEntry):
    label: str
    start_date: date
    end_date: date


class BatchMetadataOut(BaseModel):
    total_requests: int = 0
    failed_requests: int = 0
    success_rate: float = 0.0
    execution_time_ms: float = 0.0
    request_time: str
    cache_hit: bool = False
    error_occurred: bool = False
    error_type: Optional[str] = None


class WeeklyMetadata(BatchMetadataOut):
    current_week_total: float = 0
    previous_week_total: float = 0
    week_over_week_change: Optional[float] = 0


class MonthlyMetadata(BatchMetadataOut):
    current_month_total: float = 0
    previous_month_total: float = 0
    month_over_month_change: Optional[float] = 0


class PeriodMetadata(BatchMetadataOut):
    period: Optional[PeriodKind] = None
    current_total: float = 0
    comparison_total: float = 0
    percentage_change: Optional[float] = 0


class WeeklyBatchData(BaseModel):
    current_week: Dict[str, DayEntry]
    previous_week: Dict[str, DayEntry]
    metadata: WeeklyMetadata


class MonthlyBatchData(BaseModel):
    current_month_weeks: Dict[str, WeekEntry]
    previous_month_weeks: Dict[str, WeekEntry]
    metadata: MonthlyMetadata


class PeriodBlock(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    total: float = 0
    breakdown: Dict[str, RangeEntry] = Field(default_factory=dict)


class PeriodBatchData(BaseModel):
    current_period: PeriodBlock
    comparison_period: PeriodBlock
    metadata: PeriodMetadata


class WeeklyBatchResponse(BaseModel):
    success: bool
    message: str
    data: WeeklyBatchData


class MonthlyBatchResponse(BaseModel):
    success: bool
    message: str
    data: MonthlyBatchData


class PeriodBatchResponse(BaseModel):
    success: bool
    message: str
    data: PeriodBatchData


class ValidationErrorResponse(BaseModel):
    success: bool = False
    message: str
    errors: Dict[str, List[str]]


class ProviderPassthroughError(BaseModel):
    success: bool = False
    message: str
    data: None = None


# --- Branch Comparison ---

class BranchPeriodType(str, Enum):
    WEEKLY = "weekly"
    MONTHLY = "monthly"

    @property
    def kind(self) -> PeriodKind:
        return PeriodKind.WEEK if self is BranchPeriodType.WEEKLY else PeriodKind.MONTH


class BranchPeriodWindow(BaseModel):
    start_date: date
    end_date: date
    type: BranchPeriodType


class BranchSnapshot(BaseModel):
    total: float = Field(..., description="Revenue for the range (`total_revenue`).")
    sales_total: float
    orders_count: float
    branches: Any = Field(default_factory=dict, description="Per-branch `cards` exactly as the provider sent them.")
    period: BranchPeriodWindow


class BranchMetadata(BaseModel):
    percentage_change: float
    branches_count: int
    request_time: str
    execution_time_ms: float


class BranchComparisonResponse(BaseModel):
    success: bool
    current: BranchSnapshot
    comparison: BranchSnapshot
    metadata: BranchMetadata


# --- Hours Chart ---

class HoursChartRequest(BaseModel):
    date: IsoDay = Field(..., description="The day to chart, YYYY-MM-DD.")


class HoursChartResponse(BaseModel):
    success: bool
    message: str = ""
    data: Dict[str, Any] = Field(default_factory=dict, description="Hourly totals per day, e.g. {'2025-08-20': {'07:00': 7958}}.")
