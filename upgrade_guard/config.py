"""Runtime configuration helpers."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Tuple
import math
import os


DEFAULT_API_BASE_URL = "https://api.whop.com/api/v1"


@dataclass(frozen=True)
class Settings:
    """Configuration for the billing client, access gate, and workers."""

    api_key: Optional[str]
    api_base_url: str
    connect_timeout: float
    read_timeout: float
    max_attempts: int
    backoff_seconds: float
    max_pages: int
    app_company_id: Optional[str]
    app_product_id: Optional[str]
    access_gate_enabled: bool
    access_cache_ttl_seconds: int
    reconciliation_workers: int
    cancellation_concurrency: int
    cors_allowed_origins: Tuple[str, ...]

    @property
    def timeout(self) -> Tuple[float, float]:
        return (self.connect_timeout, self.read_timeout)


def _to_bool(value: Optional[str], *, default: bool) -> bool:
    if value is None:
        return default
    lowered = value.strip().lower()
    if lowered in {"1", "true", "yes", "on"}:
        return True
    if lowered in {"0", "false", "no", "off"}:
        return False
    return default


def _to_int(value: Optional[str], *, default: int) -> int:
    if value is None or value == "":
        return default
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected integer value, got {value!r}") from exc


def _to_float(value: Optional[str], *, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Expected float value, got {value!r}") from exc


def _to_list(value: Optional[str], *, default: Tuple[str, ...]) -> Tuple[str, ...]:
    if not value:
        return default
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _optional(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    stripped = value.strip()
    if not stripped or stripped == "fallback":
        return None
    return stripped


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Load :class:`Settings` from environment variables."""

    env_mapping = os.environ if env is None else env

    api_base_url = (env_mapping.get("WHOP_API_BASE_URL") or DEFAULT_API_BASE_URL).rstrip("/")

    return Settings(
        api_key=_optional(env_mapping.get("WHOP_API_KEY")),
        api_base_url=api_base_url,
        connect_timeout=max(0.1, _to_float(env_mapping.get("BILLING_API_CONNECT_TIMEOUT"), default=3.05)),
        read_timeout=max(0.1, _to_float(env_mapping.get("BILLING_API_READ_TIMEOUT"), default=10.0)),
        max_attempts=max(1, _to_int(env_mapping.get("BILLING_API_MAX_ATTEMPTS"), default=3)),
        backoff_seconds=max(0.0, _to_float(env_mapping.get("BILLING_API_RETRY_BACKOFF"), default=0.5)),
        max_pages=max(1, _to_int(env_mapping.get("BILLING_API_MAX_PAGES"), default=50)),
        app_company_id=_optional(env_mapping.get("APP_COMPANY_ID")),
        app_product_id=_optional(env_mapping.get("APP_PRODUCT_ID")),
        access_gate_enabled=_to_bool(env_mapping.get("ACCESS_GATE_ENABLED"), default=True),
        access_cache_ttl_seconds=max(0, _to_int(env_mapping.get("ACCESS_CACHE_TTL_SECONDS"), default=60)),
        reconciliation_workers=max(1, _to_int(env_mapping.get("RECONCILIATION_WORKERS"), default=4)),
        cancellation_concurrency=max(1, _to_int(env_mapping.get("CANCELLATION_CONCURRENCY"), default=4)),
        cors_allowed_origins=_to_list(
            env_mapping.get("CORS_ALLOWED_ORIGINS"),
            default=("http://localhost:3000",),
        ),
    )


def _parse_connect_timeout(raw_value: str) -> int:
    try:
        timeout = float(raw_value)
    except ValueError as exc:
        raise ValueError("DB_CONNECT_TIMEOUT must be a number") from exc
    if timeout < 0:
        raise ValueError("DB_CONNECT_TIMEOUT must be non-negative")
    return int(math.ceil(timeout))


def load_db_config(env: Optional[Mapping[str, str]] = None) -> dict:
    """Connection keyword arguments for :func:`psycopg2.connect`."""

    env_mapping = os.environ if env is None else env
    return dict(
        host=env_mapping.get("DB_HOST", "127.0.0.1"),
        port=_to_int(env_mapping.get("DB_PORT"), default=5432),
        dbname=env_mapping.get("DB_NAME", "upgrade_guard"),
        user=env_mapping.get("DB_USER", "upgrade_guard"),
        password=env_mapping.get("DB_PASSWORD", "upgrade_guard"),
        connect_timeout=_parse_connect_timeout(env_mapping.get("DB_CONNECT_TIMEOUT", "5")),
    )


__all__ = ["DEFAULT_API_BASE_URL", "Settings", "load_db_config", "load_settings"]
