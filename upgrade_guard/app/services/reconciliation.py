"""Object graph for the reconciliation service and its collaborators."""
from __future__ import annotations

import logging
from functools import lru_cache

from ...config import Settings, load_settings
from ..audit.logger import ActivityLogger
from ..audit.repository import PostgresActivityRepository
from ..billing_api.client import BillingApiClient
from ..entitlements.cache import InMemoryAccessCache
from ..entitlements.models import AccessResult
from ..entitlements.service import AccessCheckService
from ..policies.repository import PostgresPolicyRepository
from ..reconciliation.dispatcher import ReconciliationDispatcher
from ..reconciliation.guard import WebhookGuard
from ..reconciliation.models import ReconciliationRequest, ReconciliationResult
from ..reconciliation.service import ReconciliationService

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return load_settings()


@lru_cache(maxsize=1)
def get_billing_client() -> BillingApiClient:
    return BillingApiClient.from_settings(get_settings())


@lru_cache(maxsize=1)
def get_policy_repository() -> PostgresPolicyRepository:
    return PostgresPolicyRepository()


@lru_cache(maxsize=1)
def get_activity_repository() -> PostgresActivityRepository:
    return PostgresActivityRepository()


@lru_cache(maxsize=1)
def get_activity_logger() -> ActivityLogger:
    return ActivityLogger(get_activity_repository())


@lru_cache(maxsize=1)
def get_reconciliation_service() -> ReconciliationService:
    return ReconciliationService(
        get_billing_client(),
        get_policy_repository(),
        get_activity_logger(),
        cancellation_concurrency=get_settings().cancellation_concurrency,
    )


def _reconcile(request: ReconciliationRequest) -> ReconciliationResult:
    # Built on the first task rather than at import.
    return get_reconciliation_service().process(request)


@lru_cache(maxsize=1)
def get_dispatcher() -> ReconciliationDispatcher:
    return ReconciliationDispatcher(_reconcile, max_workers=get_settings().reconciliation_workers)


@lru_cache(maxsize=1)
def get_access_service() -> AccessCheckService:
    settings = get_settings()
    return AccessCheckService(
        get_billing_client(),
        company_id=settings.app_company_id,
        product_id=settings.app_product_id,
        cache=InMemoryAccessCache(),
        enabled=settings.access_gate_enabled,
        ttl_seconds=settings.access_cache_ttl_seconds,
    )


class _ConfiguredAccessChecker:
    """Builds the access service on first use and denies if that fails."""

    def check_access(self, user_id: str) -> AccessResult:
        try:
            service = get_access_service()
        except Exception:
            logger.exception("Access service unavailable; denying access", extra={"user_id": user_id})
            return AccessResult.denied()
        return service.check_access(user_id)


def get_access_checker() -> _ConfiguredAccessChecker:
    return _ConfiguredAccessChecker()


@lru_cache(maxsize=1)
def get_webhook_guard() -> WebhookGuard:
    return WebhookGuard(get_access_checker(), get_dispatcher())


def shutdown_dispatcher() -> None:
    """Drain in-flight reconciliation work if the dispatcher was ever started."""

    if get_dispatcher.cache_info().currsize:
        get_dispatcher().shutdown(wait=True)
        get_dispatcher.cache_clear()
        get_webhook_guard.cache_clear()


__all__ = [
    "get_access_checker",
    "get_access_service",
    "get_activity_logger",
    "get_activity_repository",
    "get_billing_client",
    "get_dispatcher",
    "get_policy_repository",
    "get_reconciliation_service",
    "get_settings",
    "get_webhook_guard",
    "shutdown_dispatcher",
]
