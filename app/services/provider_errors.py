# /app/services/provider_errors.py

"""Typed failures raised by the sales data provider client."""

from typing import Optional


class ProviderError(Exception):
    """Base class. `retryable` drives the client's backoff loop."""

    retryable = False
    error_type = "provider"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ProviderConfigurationError(ProviderError):
    """The bearer token is missing or still the placeholder value."""
    error_type = "configuration"


class ProviderTimeout(ProviderError):
    retryable = True
    error_type = "timeout"


class ProviderConnectionError(ProviderError):
    retryable = True
    error_type = "connection"


class ProviderHttpError(ProviderError):
    error_type = "http"

    def __init__(self, status: int, body: Optional[str] = None):
        super().__init__(f"HTTP {status} from provider")
        self.status = status
        self.body = body

    @property
    def retryable(self) -> bool:  # 5xx only
        return self.status >= 500


class ProviderMalformedResponse(ProviderError):
    error_type = "malformed_response"


# Errors meaning the provider could not be reached or kept erroring.
UNREACHABLE_ERROR_TYPES = {ProviderTimeout.error_type, ProviderConnectionError.error_type, "http_5xx"}


def classify(error: ProviderError) -> str:
    """Fine-grained type for response metadata (`http_4xx` vs `http_5xx`)."""
    if isinstance(error, ProviderHttpError):
        return "http_5xx" if error.status >= 500 else "http_4xx"
    return error.error_type
