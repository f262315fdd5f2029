# /app/routers/batch_router.py

# --- Core FastAPI Imports ---
import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

# --- Service and Model Imports ---
from ..models import batch_model
from ..services import response_contract
from ..services.batch_validation import BatchValidationError
from ..services.sales_batch_service import SalesBatchService, get_sales_batch_service

logger = logging.getLogger(__name__)

router = APIRouter()

MONTHLY_CACHE_HEADERS = {"Cache-Control": "public, max-age=300", "Vary": "Accept-Encoding"}


def _json(status_code: int, body, headers=None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=body.model_dump(mode="json"), headers=headers)


@router.post(
    "/weekly",
    response_model=batch_model.WeeklyBatchResponse,
    summary="Weekly Batch Comparison",
    description="Fetches the 7 days of the current week and of the previous week concurrently and compares them.",
    responses={422: {"model": batch_model.ValidationErrorResponse}, 503: {"model": batch_model.WeeklyBatchResponse}},
)
async def get_weekly_batch(
    payload: batch_model.WeeklyBatchRequest,
    batch_svc: SalesBatchService = Depends(get_sales_batch_service),
):
    try:
        status_code, body = await batch_svc.weekly_batch(payload)
    except BatchValidationError:
        raise
    except Exception as e:
        logger.exception("Unexpected error in weekly batch: %s", e)
        return _json(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            response_contract.weekly_fallback(response_contract.INTERNAL_ERROR_MESSAGE, "internal"),
        )
    return _json(status_code, body)


@router.post(
    "/monthly",
    response_model=batch_model.MonthlyBatchResponse,
    summary="Monthly Batch Comparison by Week",
    description="Fetches every week of the current and previous month concurrently and compares the totals.",
    responses={422: {"model": batch_model.ValidationErrorResponse}, 503: {"model": batch_model.MonthlyBatchResponse}},
)
async def get_monthly_batch(
    payload: batch_model.MonthlyBatchRequest,
    batch_svc: SalesBatchService = Depends(get_sales_batch_service),
):
    try:
        status_code, body = await batch_svc.monthly_batch(payload)
    except BatchValidationError:
        raise
    except Exception as e:
        logger.exception("Unexpected error in monthly batch: %s", e)
        return _json(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            response_contract.monthly_fallback(response_contract.INTERNAL_ERROR_MESSAGE, "internal"),
        )
    headers = MONTHLY_CACHE_HEADERS if status_code == status.HTTP_200_OK else None
    return _json(status_code, body, headers)


@router.post(
    "/period",
    response_model=batch_model.PeriodBatchResponse,
    summary="Period Comparison with Breakdown",
    description=(
        "Derives the comparison period and the per-day / per-week breakdown server-side, "
        "then fetches every sub-range concurrently."
    ),
    responses={422: {"model": batch_model.ValidationErrorResponse}, 503: {"model": batch_model.PeriodBatchResponse}},
)
async def get_period_batch(
    payload: batch_model.PeriodBatchRequest,
    batch_svc: SalesBatchService = Depends(get_sales_batch_service),
):
    try:
        status_code, body = await batch_svc.period_batch(payload)
    except BatchValidationError:
        raise
    except Exception as e:
        logger.exception("Unexpected error in period batch: %s", e)
        return _json(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            response_contract.period_fallback(response_contract.INTERNAL_ERROR_MESSAGE, "internal", payload.period),
        )
    return _json(status_code, body)
