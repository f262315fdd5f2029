# /app/models/sales_model.py

"""
Domain value types for the batching and aggregation layer.

These models never touch the network. They are created fresh for each
incoming batch request and discarded once the response is serialized.
"""

from datetime import date, timedelta
from enum import Enum
from typing import Annotated, Any, Callable, Dict, Iterator, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, PrivateAttr, model_validator


# --- Core Enumerations ---
class PeriodKind(str, Enum):
    DAY = "day"
    WEEK = "week"
    MONTH = "month"


# --- Date Ranges ---

class DateRange(BaseModel):
    """An inclusive, calendar-day span. `start` may equal `end`."""
    model_config = ConfigDict(frozen=True)

    start: date
    end: date

    @model_validator(mode="after")
    def start_must_not_follow_end(self) -> "DateRange":
        if self.start > self.end:
            raise ValueError(f"start ({self.start}) cannot be after end ({self.end})")
        return self

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    def iter_days(self) -> Iterator[date]:
        current = self.start
        while current <= self.end:
            yield current
            current += timedelta(days=1)

    def overlaps(self, other: "DateRange") -> bool:
        return self.start <= other.end and self.end >= other.start

    def __str__(self) -> str:
        return f"{self.start.isoformat()}..{self.end.isoformat()}"


class SubRangeRequest(BaseModel):
    """One dispatch unit. `key` is unique within a batch and doubles as the aggregation key."""
    model_config = ConfigDict(frozen=True)

    key: str = Field(..., min_length=1)
    label: str
    range: DateRange


class SubRangeResult(BaseModel):
    key: str
    success: bool
    total: float = 0
    details: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @model_validator(mode="after")
    def failed_results_carry_no_data(self) -> "SubRangeResult":
        # A failed sub-range must still be summable.
        if not self.success:
            self.total = 0
            self.details = None
        return self


# --- Provider Payload ---

def _empty_list_as(empty: Any) -> Callable[[Any], Any]:
    # PHP serializes an empty associative array as [].
    def coerce(value: Any) -> Any:
        if isinstance(value, list) and not value:
            return empty
        return value
    return coerce


def _absent_map(value: Any) -> Any:
    return {} if value is None or value == [] else value


def as_number(value: Any) -> float:
    """Lenient numeric read for descriptive provider fields; anything unusable counts as 0."""
    if isinstance(value, bool) or value is None:
        return 0.0
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


class ProviderSalesBlock(BaseModel):
    model_config = ConfigDict(extra="allow")
    total: Optional[float] = None


class ProviderSalesData(BaseModel):
    """
    The `data` object of a provider response. Only the totals the aggregator
    sums are typed strictly; descriptive fields are accepted as sent and kept
    as-is for the `details` payload.
    """
    model_config = ConfigDict(extra="allow")

    total_sales: Optional[float] = None
    total_revenue: Any = None
    sales_count: Any = None
    cards: Annotated[Any, BeforeValidator(_empty_list_as({}))] = None
    sales: Annotated[Optional[ProviderSalesBlock], BeforeValidator(_empty_list_as(None))] = None

    @property
    def sales_total(self) -> float:
        if self.sales is not None and self.sales.total is not None:
            return self.sales.total
        return self.total_sales  # validated non-null below

    @property
    def revenue_total(self) -> float:
        return as_number(self.total_revenue)

    @property
    def orders_count(self) -> float:
        return as_number(self.sales_count)

    @model_validator(mode="after")
    def must_carry_a_sales_total(self) -> "ProviderSalesData":
        has_block_total = self.sales is not None and self.sales.total is not None
        if not has_block_total and self.total_sales is None:
            raise ValueError("provider data has neither 'sales.total' nor 'total_sales'")
        return self


class ProviderResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    success: bool = True
    data: ProviderSalesData

    _raw: Dict[str, Any] = PrivateAttr(default_factory=dict)

    @property
    def raw(self) -> Dict[str, Any]:
        return self._raw

    @property
    def details(self) -> Dict[str, Any]:
        """The untouched `data` object, as the frontend expects it."""
        return dict(self._raw.get("data") or {})

    @classmethod
    def from_payload(cls, payload: Dict[str, Any]) -> "ProviderResponse":
        response = cls.model_validate(payload)
        response._raw = payload
        return response


class HoursChartPayload(BaseModel):
    """`{"success": true, "data": {"2025-08-20": {"07:00": 7958, ...}, ...}}` from the hours chart endpoint."""
    model_config = ConfigDict(extra="allow")

    success: bool = True
    data: Annotated[Dict[str, Any], BeforeValidator(_absent_map)] = Field(default_factory=dict)


# --- Aggregate ---

class PeriodSummary(BaseModel):
    ranges: List[SubRangeResult]
    total: float


class BatchMetadata(BaseModel):
    total_requests: int
    failed_requests: int
    success_rate: float
    execution_time_ms: float


class BatchResult(BaseModel):
    current_period: PeriodSummary
    comparison_period: PeriodSummary
    percentage_change: Optional[float]
    metadata: BatchMetadata

    @property
    def all_failed(self) -> bool:
        return self.metadata.total_requests > 0 and self.metadata.failed_requests == self.metadata.total_requests

    def failures(self) -> List[SubRangeResult]:
        return [r for r in self.current_period.ranges + self.comparison_period.ranges if not r.success]
