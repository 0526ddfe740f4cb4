"""HTTP client for the billing platform REST API."""
from __future__ import annotations

import logging
import time
from typing import Any, Callable, Iterator, List, Mapping, Optional, Sequence, Tuple

import requests

from ...config import DEFAULT_API_BASE_URL, Settings
from .exceptions import BillingApiConfigurationError, UpstreamApiError
from .mapping import (
    membership_from_payload,
    page_cursor,
    page_items,
    plan_from_payload,
    product_from_payload,
)
from .models import ACTIVE_STATUSES, CancellationTiming, Membership, MembershipStatus, Plan, Product

logger = logging.getLogger(__name__)

QueryParams = List[Tuple[str, str]]

_ERROR_BODY_LIMIT = 500


def _error_text(response: Any) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None
    if isinstance(payload, Mapping):
        message = payload.get("message") or payload.get("error")
        if isinstance(message, Mapping):
            message = message.get("message")
        if message:
            return str(message)[:_ERROR_BODY_LIMIT]
    return (getattr(response, "text", "") or "")[:_ERROR_BODY_LIMIT]


def _is_already_canceled(error: UpstreamApiError) -> bool:
    if error.status_code == 409:
        return True
    body = error.body.lower()
    return "already" in body and "cancel" in body


class BillingApiClient:
    """Typed façade over the billing platform's v1 REST API.

    Read operations raise :class:`UpstreamApiError` on any non-success
    outcome. :meth:`cancel_membership` returns a boolean instead so callers
    can work through a batch without the first failure aborting the rest.
    """

    def __init__(
        self,
        api_key: Optional[str],
        *,
        base_url: str = DEFAULT_API_BASE_URL,
        session: Optional[requests.Session] = None,
        timeout: Tuple[float, float] = (3.05, 10.0),
        max_attempts: int = 3,
        backoff_seconds: float = 0.5,
        max_pages: int = 50,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        if not api_key:
            raise BillingApiConfigurationError("WHOP_API_KEY is not set")
        self._base_url = base_url.rstrip("/")
        self._session = session or requests.Session()
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        self._timeout = timeout
        self._max_attempts = max(1, max_attempts)
        self._backoff_seconds = max(0.0, backoff_seconds)
        self._max_pages = max(1, max_pages)
        self._sleep = sleep

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        *,
        session: Optional[requests.Session] = None,
    ) -> "BillingApiClient":
        return cls(
            settings.api_key,
            base_url=settings.api_base_url,
            session=session,
            timeout=settings.timeout,
            max_attempts=settings.max_attempts,
            backoff_seconds=settings.backoff_seconds,
            max_pages=settings.max_pages,
        )

    def list_products(self, company_id: str) -> List[Product]:
        params: QueryParams = [("company_id", company_id), ("product_types[]", "regular")]
        return [
            product_from_payload(item)
            for item in self._paginate("fetch products", "products", params, "products")
        ]

    def list_plans(self, company_id: str, product_id: str) -> List[Plan]:
        params: QueryParams = [("company_id", company_id), ("product_ids[]", product_id)]
        return [
            plan_from_payload(item)
            for item in self._paginate("fetch plans", "plans", params, "plans")
        ]

    def get_plan(self, plan_id: str) -> Optional[Plan]:
        """Return a single plan, or ``None`` when the platform does not know it."""

        response = self._call("fetch plan", "GET", f"plans/{plan_id}", allow_statuses=(404,))
        if response.status_code == 404:
            return None
        payload = self._json(response, "fetch plan")
        if not isinstance(payload, Mapping):
            raise UpstreamApiError("fetch plan", response.status_code, "unexpected response body")
        plan = plan_from_payload(payload, fallback_id=plan_id)
        logger.debug(
            "Fetched plan",
            extra={
                "plan_id": plan.id,
                "plan_type": plan.plan_type.value,
                "initial_price": plan.initial_price,
                "renewal_price": plan.renewal_price,
            },
        )
        return plan

    def get_membership(self, membership_id: str) -> Optional[Membership]:
        response = self._call(
            "fetch membership", "GET", f"memberships/{membership_id}", allow_statuses=(404,)
        )
        if response.status_code == 404:
            return None
        payload = self._json(response, "fetch membership")
        if not isinstance(payload, Mapping):
            raise UpstreamApiError("fetch membership", response.status_code, "unexpected response body")
        return membership_from_payload(payload)

    def list_active_memberships(self, company_id: str, user_id: str, product_id: str) -> List[Membership]:
        """Active and trialing memberships of one user for one product."""

        params: QueryParams = [
            ("company_id", company_id),
            ("user_id", user_id),
            ("product_id", product_id),
        ]
        params.extend(("statuses[]", status.value) for status in ACTIVE_STATUSES)
        memberships = [
            membership_from_payload(item)
            for item in self._paginate("fetch memberships", "memberships", params, "memberships")
        ]
        logger.debug(
            "Fetched active memberships",
            extra={"user_id": user_id, "product_id": product_id, "count": len(memberships)},
        )
        return memberships

    def list_memberships(
        self,
        company_id: str,
        *,
        user_ids: Sequence[str] = (),
        product_ids: Sequence[str] = (),
        statuses: Sequence[MembershipStatus] = (),
    ) -> List[Membership]:
        params: QueryParams = [("company_id", company_id)]
        params.extend(("user_ids[]", user_id) for user_id in user_ids)
        params.extend(("product_ids[]", product_id) for product_id in product_ids)
        params.extend(("statuses[]", status.value) for status in statuses)
        return [
            membership_from_payload(item)
            for item in self._paginate("fetch memberships", "memberships", params, "memberships")
        ]

    def cancel_membership(self, membership_id: str, *, timing: CancellationTiming) -> bool:
        """Request cancellation; ``True`` when the membership is (already) canceled."""

        params: QueryParams = []
        if timing == CancellationTiming.IMMEDIATE:
            params.append(("immediate", "true"))
        try:
            self._call("cancel membership", "POST", f"memberships/{membership_id}/cancel", params)
        except UpstreamApiError as exc:
            if _is_already_canceled(exc):
                logger.info(
                    "Membership already canceled",
                    extra={"membership_id": membership_id, "status_code": exc.status_code},
                )
                return True
            if self._confirm_canceled(membership_id):
                return True
            logger.error(
                "Failed to cancel membership",
                extra={
                    "membership_id": membership_id,
                    "status_code": exc.status_code,
                    "error": exc.body,
                },
            )
            return False
        return True

    def _confirm_canceled(self, membership_id: str) -> bool:
        try:
            membership = self.get_membership(membership_id)
        except UpstreamApiError:
            return False
        if membership is not None and membership.is_cancellation_settled:
            logger.info(
                "Membership cancellation already settled",
                extra={"membership_id": membership_id, "status": membership.status.value},
            )
            return True
        return False

    def _paginate(
        self,
        operation: str,
        path: str,
        params: QueryParams,
        *item_fields: str,
    ) -> Iterator[Mapping[str, Any]]:
        cursor: Optional[str] = None
        seen_cursors = set()
        for page_number in range(1, self._max_pages + 1):
            page_params = list(params)
            if cursor:
                page_params.append(("after", cursor))
            response = self._call(operation, "GET", path, page_params)
            page = self._json(response, operation)
            yield from page_items(page, *item_fields)

            cursor, has_next = page_cursor(page)
            if not cursor or not has_next:
                return
            if cursor in seen_cursors:
                logger.warning(
                    "Pagination cursor repeated; stopping",
                    extra={"operation": operation, "cursor": cursor, "page": page_number},
                )
                return
            seen_cursors.add(cursor)

        logger.warning(
            "Pagination limit reached; results truncated",
            extra={"operation": operation, "max_pages": self._max_pages},
        )

    def _call(
        self,
        operation: str,
        method: str,
        path: str,
        params: Optional[QueryParams] = None,
        *,
        allow_statuses: Sequence[int] = (),
    ) -> Any:
        url = f"{self._base_url}/{path.lstrip('/')}"
        attempt = 0
        while True:
            attempt += 1
            try:
                response = self._session.request(
                    method,
                    url,
                    params=params or None,
                    headers=self._headers,
                    timeout=self._timeout,
                )
            except requests.Timeout:
                error = UpstreamApiError(operation, None, f"timed out after {self._timeout}s")
            except requests.RequestException as exc:
                error = UpstreamApiError(operation, None, str(exc))
            else:
                status_code = response.status_code
                if 200 <= status_code < 300 or status_code in allow_statuses:
                    return response
                error = UpstreamApiError(operation, status_code, _error_text(response))

            if not error.is_transient or attempt >= self._max_attempts:
                raise error
            logger.warning(
                "Transient billing API failure; retrying",
                extra={
                    "operation": operation,
                    "status_code": error.status_code,
                    "attempt": attempt,
                    "attempts": self._max_attempts,
                },
            )
            if self._backoff_seconds > 0:
                self._sleep(self._backoff_seconds * attempt)

    @staticmethod
    def _json(response: Any, operation: str) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamApiError(operation, response.status_code, "invalid JSON body") from exc


__all__ = ["BillingApiClient"]
