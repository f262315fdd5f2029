# /app/main.py

# --- Core FastAPI Imports ---
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

# --- Application-specific Imports ---
from .config import AppSettings, configure_logging
from .models.batch_model import ValidationErrorResponse
from .routers import batch_router, dashboard_router
from .services.batch_validation import BatchValidationError
from .services.provider_client import SalesDataProviderClient

logger = logging.getLogger(__name__)

VALIDATION_MESSAGE = "The request contains validation errors."

settings = AppSettings.from_env()
configure_logging(settings.log_level)


# --- Application Lifecycle Management ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    # One pooled HTTP client per process; closed on shutdown.
    app.state.settings = settings
    app.state.provider_client = SalesDataProviderClient(settings.provider)
    if not settings.provider.is_configured:
        logger.error("SALES_API_TOKEN is not configured; batch endpoints will answer 503")
    yield
    await app.state.provider_client.aclose()


# --- FastAPI Application Instance Creation ---
app = FastAPI(
    title="Sales Dashboard Backend",
    description="Batches, compares and reshapes sales figures from the main dashboard data API.",
    version="1.0.0",
    lifespan=lifespan,
)

# --- Middleware Configuration ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Exception Handlers ---
def _field_key(loc) -> str:
    parts = [str(part) for part in loc if part not in ("body", "query", "path")]
    return ".".join(parts) or "request"


def _validation_response(errors) -> JSONResponse:
    body = ValidationErrorResponse(message=VALIDATION_MESSAGE, errors=errors)
    return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=body.model_dump())


@app.exception_handler(RequestValidationError)
async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    errors = {}
    for error in exc.errors():
        message = str(error.get("msg", "Invalid value")).removeprefix("Value error, ")
        errors.setdefault(_field_key(error.get("loc", ())), []).append(message)
    logger.warning("Validation failed for %s: %s", request.url.path, errors)
    return _validation_response(errors)


@app.exception_handler(BatchValidationError)
async def handle_batch_validation_error(request: Request, exc: BatchValidationError):
    logger.warning("Validation failed for %s: %s", request.url.path, exc.errors)
    return _validation_response(exc.errors)


# --- API Router Inclusion ---
app.include_router(batch_router.router, prefix="/batch", tags=["Batch"])
app.include_router(dashboard_router.router, prefix="/dashboard", tags=["Dashboard"])


# --- Root / Health Check Endpoint ---
@app.get("/", tags=["Health Check"])
async def read_root():
    """A simple health check endpoint to confirm the API is online."""
    return {"status": "Sales Dashboard Backend is running!", "version": app.version}
