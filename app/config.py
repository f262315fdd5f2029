# /app/config.py

"""
Runtime configuration for the sales dashboard backend.

Every setting is read from the environment (a local `.env` file is honoured
through python-dotenv) and handed explicitly to the objects that need it.
Nothing in the service reads `os.environ` after startup.
"""

import os
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from dotenv import load_dotenv

PLACEHOLDER_TOKEN = "test_token_placeholder"


def _split_floats(raw: str) -> Tuple[float, ...]:
    return tuple(float(part) for part in raw.split(",") if part.strip())


@dataclass(frozen=True)
class ProviderSettings:
    """
    Connection details for the external "main dashboard data" API.

    Attributes:
        base_url: Root URL; requests go to `{base_url}/main_dashboard_data`.
        token: Bearer token. Empty or the placeholder value means "not configured".
        timeout_seconds: Per-call ceiling for one HTTP attempt.
        max_retries: Additional attempts allowed on a retryable failure.
        backoff_seconds: Delay before each retry, indexed by retry number.
    """

    base_url: str = "http://localhost:8080/api"
    token: str = ""
    timeout_seconds: float = 30.0
    max_retries: int = 3
    backoff_seconds: Tuple[float, ...] = (1.0, 2.0, 4.0)

    @property
    def is_configured(self) -> bool:
        return bool(self.token) and self.token != PLACEHOLDER_TOKEN

    @classmethod
    def from_env(cls, prefix: str = "SALES_API_") -> "ProviderSettings":
        return cls(
            base_url=os.getenv(f"{prefix}BASE_URL", "http://localhost:8080/api").rstrip("/"),
            token=os.getenv(f"{prefix}TOKEN", ""),
            timeout_seconds=float(os.getenv(f"{prefix}TIMEOUT_SECONDS", "30")),
            max_retries=int(os.getenv(f"{prefix}MAX_RETRIES", "3")),
            backoff_seconds=_split_floats(os.getenv(f"{prefix}BACKOFF_SECONDS", "1,2,4")),
        )


@dataclass(frozen=True)
class BatchSettings:
    """Tuning knobs for the batch layer."""

    max_concurrency: int = 6
    timeout_seconds: float = 90.0
    max_weeks: int = 10

    @classmethod
    def from_env(cls, prefix: str = "BATCH_") -> "BatchSettings":
        return cls(
            max_concurrency=max(1, int(os.getenv(f"{prefix}MAX_CONCURRENCY", "6"))),
            timeout_seconds=float(os.getenv(f"{prefix}TIMEOUT_SECONDS", "90")),
            max_weeks=int(os.getenv(f"{prefix}MAX_WEEKS", "10")),
        )


@dataclass(frozen=True)
class AppSettings:
    provider: ProviderSettings = field(default_factory=ProviderSettings)
    batch: BatchSettings = field(default_factory=BatchSettings)
    log_level: str = "INFO"
    cors_allow_origins: List[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "AppSettings":
        load_dotenv()
        origins = os.getenv("CORS_ALLOW_ORIGINS", "*")
        return cls(
            provider=ProviderSettings.from_env(),
            batch=BatchSettings.from_env(),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            cors_allow_origins=[o.strip() for o in origins.split(",") if o.strip()],
        )


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or "INFO").upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
