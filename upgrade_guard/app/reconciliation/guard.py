"""Entry point for ``membership.activated`` deliveries.

The guard validates the payload, applies the entitlement gate, and hands
reconciliation to the dispatcher. Apart from malformed payloads every
delivery is acknowledged with 200, including internal faults. Outcomes of
the background work are only visible in the audit log and dispatcher
metrics.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Protocol

from pydantic import ValidationError

from ..entitlements.models import AccessResult
from ..schemas.webhooks import MembershipActivatedEvent, WebhookAck, WebhookEnvelope
from .exceptions import WebhookValidationError
from .models import ReconciliationRequest

logger = logging.getLogger("webhooks")

MEMBERSHIP_ACTIVATED = "membership.activated"


class AccessChecker(Protocol):
    def check_access(self, user_id: str) -> AccessResult:
        ...


class ReconciliationSubmitter(Protocol):
    def submit(self, request: ReconciliationRequest) -> Any:
        ...


@dataclass(frozen=True)
class GuardResponse:
    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)


def _ack(*, dispatched: bool = False) -> GuardResponse:
    return GuardResponse(status_code=200, body=WebhookAck(dispatched=dispatched).model_dump())


def _describe(exc: ValidationError) -> str:
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ()))
        parts.append(f"{location}: {error.get('msg')}" if location else str(error.get("msg")))
    return "; ".join(parts)


def parse_envelope(raw_body: bytes) -> WebhookEnvelope:
    try:
        decoded = json.loads(raw_body.decode("utf-8") if isinstance(raw_body, bytes) else raw_body)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise WebhookValidationError("Invalid webhook payload", detail={"reason": str(exc)}) from exc
    if not isinstance(decoded, dict):
        raise WebhookValidationError("Invalid webhook payload", detail={"reason": "expected a JSON object"})
    try:
        return WebhookEnvelope.model_validate(decoded)
    except ValidationError as exc:
        raise WebhookValidationError("Invalid webhook payload", detail={"reason": _describe(exc)}) from exc


def resolve_company_id(event: MembershipActivatedEvent) -> Optional[str]:
    """Company id precedence: ``membership.company_id``, ``membership.company.id``, top level."""

    membership = event.data.membership
    if membership.company_id:
        return membership.company_id
    if membership.company is not None:
        return membership.company.id
    return event.company_id or None


def parse_membership_activated(envelope: WebhookEnvelope) -> ReconciliationRequest:
    if not isinstance(envelope.data, Mapping):
        raise WebhookValidationError("Missing required webhook data", detail={"reason": "data is missing"})
    try:
        event = MembershipActivatedEvent.model_validate(
            {"company_id": envelope.company_id, "data": envelope.data}
        )
    except ValidationError as exc:
        raise WebhookValidationError("Missing required webhook data", detail={"reason": _describe(exc)}) from exc

    company_id = resolve_company_id(event)
    if not company_id:
        raise WebhookValidationError("Missing company_id")

    data = event.data
    return ReconciliationRequest(
        company_id=company_id,
        membership_id=data.membership.id,
        user_id=data.user.id,
        product_id=data.product.id,
        plan_id=data.plan.id,
    )


class WebhookGuard:
    def __init__(self, access_checker: AccessChecker, dispatcher: ReconciliationSubmitter) -> None:
        self._access_checker = access_checker
        self._dispatcher = dispatcher

    def handle(self, raw_body: bytes, headers: Optional[Mapping[str, str]] = None) -> GuardResponse:
        delivery_id = (headers or {}).get("webhook-id")
        try:
            envelope = parse_envelope(raw_body)
            if envelope.type != MEMBERSHIP_ACTIVATED:
                logger.debug("Ignoring webhook event", extra={"event_type": envelope.type, "delivery_id": delivery_id})
                return _ack()
            request = parse_membership_activated(envelope)
        except WebhookValidationError as exc:
            logger.warning(
                "Rejected webhook payload",
                extra={"delivery_id": delivery_id, "error": exc.message, "detail": exc.detail},
            )
            return GuardResponse(status_code=exc.status_code, body=exc.payload)

        try:
            access = self._access_checker.check_access(request.user_id)
            if not access.has_access:
                logger.info(
                    "Skipping reconciliation: user lacks access",
                    extra={"user_id": request.user_id, "delivery_id": delivery_id},
                )
                return _ack()
            self._dispatcher.submit(request)
        except Exception:
            logger.exception(
                "Error handling membership webhook",
                extra={"membership_id": request.membership_id, "delivery_id": delivery_id},
            )
            return _ack()

        logger.info(
            "Reconciliation dispatched",
            extra={"membership_id": request.membership_id, "delivery_id": delivery_id},
        )
        return _ack(dispatched=True)


__all__ = [
    "MEMBERSHIP_ACTIVATED",
    "GuardResponse",
    "WebhookGuard",
    "parse_envelope",
    "parse_membership_activated",
    "resolve_company_id",
]
