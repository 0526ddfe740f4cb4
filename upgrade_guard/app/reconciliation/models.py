"""Value objects exchanged by the reconciliation components."""
from __future__ import annotations

from enum import Enum
from typing import List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..billing_api.models import Membership, Plan


class ReconciliationRequest(BaseModel):
    """Identifiers extracted from a ``membership.activated`` event."""

    company_id: str
    membership_id: str
    user_id: str
    product_id: str
    plan_id: str

    model_config = ConfigDict(frozen=True)


class SkipReason(str, Enum):
    """Why a whole batch was skipped without canceling anything."""

    NEW_PLAN_NOT_RENEWAL = "new_plan_not_renewal"
    NO_EXISTING_MEMBERSHIPS = "no_existing_memberships"
    NOT_CONFIGURED = "not_configured"
    DISABLED = "disabled"
    NO_MATCHING_CANDIDATES = "no_matching_candidates"

    @property
    def message(self) -> str:
        return _SKIP_MESSAGES[self]


_SKIP_MESSAGES = {
    SkipReason.NEW_PLAN_NOT_RENEWAL: "New plan is not a renewal plan",
    SkipReason.NO_EXISTING_MEMBERSHIPS: "No existing memberships to cancel",
    SkipReason.NOT_CONFIGURED: "Product not configured",
    SkipReason.DISABLED: "Upgrade protection disabled",
    SkipReason.NO_MATCHING_CANDIDATES: "No memberships matched cancellation criteria",
}


class DecisionReason(str, Enum):
    """Rule that settled a single candidate."""

    PLAN_NOT_FOUND = "plan_not_found"
    NOT_RENEWAL = "not_renewal"
    FREE_PLAN_IGNORED = "free_plan_ignored"
    UPGRADE = "upgrade"
    SAME_PRICE_AS_UPGRADE = "same_price_as_upgrade"
    SAME_PRICE = "same_price"
    DOWNGRADE_CANCEL_ALLOWED = "downgrade_cancel_allowed"
    DOWNGRADE = "downgrade"


class CandidateDecision(BaseModel):
    """Outcome of evaluating one existing membership against the new plan."""

    membership: Membership
    plan: Optional[Plan] = None
    cancel: bool
    reason: DecisionReason

    model_config = ConfigDict(frozen=True)


class ReconciliationResult(BaseModel):
    """Aggregate result of one reconciliation attempt.

    ``success`` is ``False`` only for setup-level faults (new plan or policy
    unavailable, new plan or membership reads failing); failures on
    individual candidates are reported through the audit log instead.
    """

    success: bool
    canceled_memberships: List[str] = Field(default_factory=list)
    error: Optional[str] = None
    skip_reason: Optional[SkipReason] = None
    decisions: Tuple[CandidateDecision, ...] = ()

    model_config = ConfigDict(frozen=True)
