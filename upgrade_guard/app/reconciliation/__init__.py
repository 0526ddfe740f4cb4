"""Upgrade reconciliation: decision rules, execution and dispatch."""

from .dispatcher import ReconciliationDispatcher
from .engine import (
    batch_skip_reason,
    evaluate_candidate,
    existing_candidates,
    policy_skip_reason,
    select_cancellations,
)
from .exceptions import StoreUnavailableError, UpstreamApiError, WebhookValidationError
from .guard import MEMBERSHIP_ACTIVATED, GuardResponse, WebhookGuard
from .models import (
    CandidateDecision,
    DecisionReason,
    ReconciliationRequest,
    ReconciliationResult,
    SkipReason,
)
from .service import BillingGateway, ReconciliationService

__all__ = [
    "BillingGateway",
    "CandidateDecision",
    "DecisionReason",
    "GuardResponse",
    "MEMBERSHIP_ACTIVATED",
    "ReconciliationDispatcher",
    "ReconciliationRequest",
    "ReconciliationResult",
    "ReconciliationService",
    "SkipReason",
    "StoreUnavailableError",
    "UpstreamApiError",
    "WebhookGuard",
    "WebhookValidationError",
    "batch_skip_reason",
    "evaluate_candidate",
    "existing_candidates",
    "policy_skip_reason",
    "select_cancellations",
]
