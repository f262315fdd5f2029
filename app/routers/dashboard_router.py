# /app/routers/dashboard_router.py

# --- Core FastAPI Imports ---
import logging
from datetime import date
from typing import Dict, Optional

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

# --- Service and Model Imports ---
from ..models.batch_model import (
    BranchComparisonResponse,
    BranchPeriodType,
    HoursChartRequest,
    HoursChartResponse,
    ProviderPassthroughError,
    parse_iso_day,
)
from ..services import date_ranges, response_contract
from ..services.batch_validation import BatchValidationError
from ..services.provider_errors import ProviderConfigurationError, ProviderError
from ..services.sales_batch_service import SalesBatchService, get_sales_batch_service

logger = logging.getLogger(__name__)

router = APIRouter()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=ProviderPassthroughError(message=message).model_dump())


def _provider_error(e: ProviderError) -> JSONResponse:
    if isinstance(e, ProviderConfigurationError):
        return _error(status.HTTP_503_SERVICE_UNAVAILABLE, response_contract.CONFIGURATION_MESSAGE)
    return _error(status.HTTP_503_SERVICE_UNAVAILABLE, response_contract.PROVIDER_UNAVAILABLE_MESSAGE)


def _parse_days(**raw_days: str) -> Dict[str, date]:
    errors = {}
    parsed = {}
    for field, raw in raw_days.items():
        try:
            parsed[field] = parse_iso_day(raw)
        except ValueError as e:
            errors[field] = [str(e)]
    if errors:
        raise BatchValidationError(errors)
    return parsed


@router.get(
    "/main-data",
    summary="Get Main Dashboard Data",
    description="Proxies a single date range to the sales data provider and returns its aggregate unchanged.",
    responses={400: {"model": ProviderPassthroughError}, 503: {"model": ProviderPassthroughError}},
)
async def get_main_dashboard_data(
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
    batch_svc: SalesBatchService = Depends(get_sales_batch_service),
):
    if not start_date or not end_date:
        return _error(status.HTTP_400_BAD_REQUEST, "Both start_date and end_date are required.")

    parsed = _parse_days(start_date=start_date, end_date=end_date)
    try:
        return await batch_svc.main_dashboard_data(parsed["start_date"], parsed["end_date"])
    except ProviderError as e:
        logger.warning("Main dashboard data failed for %s..%s: %s", start_date, end_date, e.message)
        return _provider_error(e)


@router.get(
    "/periods",
    summary="List Preset Periods",
    description="Returns the named periods accepted by /data/{period}.",
)
async def get_available_periods():
    return {"success": True, "data": date_ranges.available_presets()}


@router.get(
    "/data/{period}",
    summary="Get Data for a Preset Period",
    responses={400: {"model": ProviderPassthroughError}, 503: {"model": ProviderPassthroughError}},
)
async def get_data_for_period(
    period: str,
    batch_svc: SalesBatchService = Depends(get_sales_batch_service),
):
    if period not in date_ranges.PRESET_PERIODS:
        return _error(status.HTTP_400_BAD_REQUEST, f"Invalid period: {period}")
    try:
        return await batch_svc.preset_data(period)
    except ProviderError as e:
        logger.warning("Preset period %s failed: %s", period, e.message)
        return _provider_error(e)


@router.get(
    "/branch-data",
    response_model=BranchComparisonResponse,
    summary="Compare Branches with the Previous Period",
    description=(
        "Fetches the per-branch figures for a range and for the same range one week "
        "(weekly) or one month (monthly) earlier, and compares the revenue totals."
    ),
    responses={503: {"model": ProviderPassthroughError}},
)
async def get_branch_comparison(
    start_date: str,
    end_date: str,
    period_type: BranchPeriodType,
    batch_svc: SalesBatchService = Depends(get_sales_batch_service),
):
    parsed = _parse_days(start_date=start_date, end_date=end_date)
    status_code, body = await batch_svc.branch_comparison(parsed["start_date"], parsed["end_date"], period_type)
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"))


@router.post(
    "/hours-chart",
    response_model=HoursChartResponse,
    summary="Get Hourly Sales Chart",
    description="Hourly sales for one day, together with the comparison days the provider returns.",
    responses={503: {"model": ProviderPassthroughError}},
)
async def get_hours_chart(
    payload: HoursChartRequest,
    batch_svc: SalesBatchService = Depends(get_sales_batch_service),
):
    try:
        return await batch_svc.hours_chart(payload.date)
    except ProviderError as e:
        logger.warning("Hours chart failed for %s: %s", payload.date, e.message)
        return _provider_error(e)
