# /app/services/provider_client.py

"""
Async client for the external sales data API.

One call to `fetch_range` (or `fetch_hours_chart`) is one logical request.
It may turn into several HTTP attempts: timeouts, connection failures and 5xx
answers are retried with the configured backoff; 4xx answers and malformed
bodies fail immediately. Each attempt is capped as a whole by
`timeout_seconds`, not only per socket operation.
"""

import asyncio
import logging
from datetime import date
from typing import Any, Awaitable, Callable, Dict, Optional, TypeVar

import httpx
from pydantic import ValidationError

from ..config import ProviderSettings
from ..models.sales_model import DateRange, HoursChartPayload, ProviderResponse
from .provider_errors import (
    ProviderConfigurationError,
    ProviderConnectionError,
    ProviderError,
    ProviderHttpError,
    ProviderMalformedResponse,
    ProviderTimeout,
)

logger = logging.getLogger(__name__)

ENDPOINT_PATH = "/main_dashboard_data"
HOURS_CHART_PATH = "/get_hours_chart"

T = TypeVar("T")


class SalesDataProviderClient:
    def __init__(self, settings: ProviderSettings, http_client: Optional[httpx.AsyncClient] = None):
        self.settings = settings
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=settings.timeout_seconds)

    @property
    def endpoint(self) -> str:
        return self._url(ENDPOINT_PATH)

    @property
    def hours_chart_endpoint(self) -> str:
        return self._url(HOURS_CHART_PATH)

    def _url(self, path: str) -> str:
        return f"{self.settings.base_url.rstrip('/')}{path}"

    async def __aenter__(self) -> "SalesDataProviderClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch_range(self, date_range: DateRange) -> ProviderResponse:
        """
        Fetches the provider's aggregate for one inclusive date range.

        Raises:
            ProviderConfigurationError: No usable token; nothing was sent.
            ProviderTimeout / ProviderConnectionError / ProviderHttpError(5xx):
                Still failing after every retry.
            ProviderHttpError(4xx) / ProviderMalformedResponse: First failure, no retry.
        """
        body = {"start_date": date_range.start.isoformat(), "end_date": date_range.end.isoformat()}

        async def attempt() -> ProviderResponse:
            payload = await self._post(self.endpoint, body)
            try:
                parsed = ProviderResponse.from_payload(payload)
            except ValidationError as e:
                raise ProviderMalformedResponse(
                    f"Provider response does not match the expected schema: {e.error_count()} error(s)"
                ) from e
            if not parsed.success:
                raise ProviderMalformedResponse("Provider reported success=false")
            return parsed

        return await self._with_retries(str(date_range), attempt)

    async def fetch_hours_chart(self, day: date) -> HoursChartPayload:
        """Hourly sales for `day` and the provider's comparison days. Same failure rules as `fetch_range`."""
        body = {"date": day.isoformat()}

        async def attempt() -> HoursChartPayload:
            payload = await self._post(self.hours_chart_endpoint, body)
            try:
                parsed = HoursChartPayload.model_validate(payload)
            except ValidationError as e:
                raise ProviderMalformedResponse(
                    f"Hours chart response does not match the expected schema: {e.error_count()} error(s)"
                ) from e
            if not parsed.success:
                raise ProviderMalformedResponse("Provider reported success=false")
            return parsed

        return await self._with_retries(f"hours chart {day.isoformat()}", attempt)

    async def _with_retries(self, label: str, attempt: Callable[[], Awaitable[T]]) -> T:
        if not self.settings.is_configured:
            raise ProviderConfigurationError("External API token is not configured")

        retry = 0
        while True:
            try:
                return await self._bounded(attempt())
            except ProviderError as e:
                if not e.retryable or retry >= self.settings.max_retries:
                    raise
                delay = self._backoff_for(retry)
                logger.warning(
                    "Provider call for %s failed (%s), retry %d/%d in %.1fs",
                    label, e.message, retry + 1, self.settings.max_retries, delay,
                )
                await asyncio.sleep(delay)
                retry += 1

    async def _bounded(self, call: Awaitable[T]) -> T:
        try:
            return await asyncio.wait_for(call, timeout=self.settings.timeout_seconds)
        except asyncio.TimeoutError as e:
            raise ProviderTimeout(f"Provider timed out after {self.settings.timeout_seconds}s") from e

    def _backoff_for(self, retry: int) -> float:
        schedule = self.settings.backoff_seconds
        if not schedule:
            return 0.0
        return schedule[min(retry, len(schedule) - 1)]

    async def _post(self, url: str, body: Dict[str, Any]) -> Dict[str, Any]:
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.settings.token}",
        }
        logger.debug("POST %s %s (token %s...)", url, body, self.settings.token[:6])
        try:
            response = await self._client.post(url, json=body, headers=headers, timeout=self.settings.timeout_seconds)
        except httpx.TimeoutException as e:
            raise ProviderTimeout(f"Provider timed out after {self.settings.timeout_seconds}s") from e
        except httpx.RequestError as e:
            raise ProviderConnectionError(f"Connection error: {e}") from e

        if not response.is_success:
            raise ProviderHttpError(response.status_code, response.text[:500])

        try:
            payload = response.json()
        except ValueError as e:
            raise ProviderMalformedResponse("Provider response is not valid JSON") from e
        if not isinstance(payload, dict):
            raise ProviderMalformedResponse("Provider response is not a JSON object")
        return payload
