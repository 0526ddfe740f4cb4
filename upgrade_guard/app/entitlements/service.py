"""Access check against the operator's own gating product."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, List, Optional, Protocol, Sequence

from ..billing_api.models import ACTIVE_STATUSES, Membership, MembershipStatus
from .cache import AccessCache
from .models import CUSTOMER_ACCESS_LEVEL, UNRESTRICTED_ACCESS_LEVEL, AccessResult

logger = logging.getLogger(__name__)


class MembershipLister(Protocol):
    def list_memberships(
        self,
        company_id: str,
        *,
        user_ids: Sequence[str] = (),
        product_ids: Sequence[str] = (),
        statuses: Sequence[MembershipStatus] = (),
    ) -> List[Membership]:
        ...


class AccessCheckService:
    """Decides whether a tenant may use the automation.

    A user has access while they hold at least one active or trialing,
    not-canceled membership to the gating product. Any failure while
    checking denies access.
    """

    def __init__(
        self,
        billing: MembershipLister,
        *,
        company_id: Optional[str],
        product_id: Optional[str],
        cache: Optional[AccessCache] = None,
        enabled: bool = True,
        ttl_seconds: int = 60,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> None:
        self._billing = billing
        self._company_id = company_id
        self._product_id = product_id
        self._cache = cache
        self._enabled = enabled
        self._ttl_seconds = max(ttl_seconds, 0)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def check_access(self, user_id: str) -> AccessResult:
        if not self._enabled:
            return AccessResult(has_access=True, access_level=UNRESTRICTED_ACCESS_LEVEL)
        if not self._company_id or not self._product_id:
            logger.warning("Access gate has no gating product configured; denying access")
            return AccessResult.denied()

        cache_key = f"user:{user_id}"
        if self._cache is not None:
            cached = self._cache.get(cache_key)
            if cached is not None:
                return cached

        try:
            memberships = self._billing.list_memberships(
                self._company_id,
                user_ids=[user_id],
                product_ids=[self._product_id],
                statuses=ACTIVE_STATUSES,
            )
        except Exception:
            logger.exception("Access check failed; denying access", extra={"user_id": user_id})
            return AccessResult.denied()

        active = [
            membership
            for membership in memberships
            if membership.is_active and membership.product_id == self._product_id
        ]
        result = AccessResult(
            has_access=bool(active),
            access_level=CUSTOMER_ACCESS_LEVEL if active else None,
        )
        logger.info(
            "Access check completed",
            extra={"user_id": user_id, "has_access": result.has_access, "active_memberships": len(active)},
        )

        if self._cache is not None and self._ttl_seconds:
            expires_at = self._clock() + timedelta(seconds=self._ttl_seconds)
            self._cache.set(cache_key, result, expires_at)
        return result

    def invalidate_user(self, user_id: str) -> None:
        if self._cache is not None:
            self._cache.invalidate({f"user:{user_id}"})
