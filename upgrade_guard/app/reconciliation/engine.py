"""Pure decision rules for superseded memberships.

Nothing here performs I/O: callers supply the new plan, each existing
membership with its resolved plan, and the product policy, and get back
which memberships should be canceled and why.
"""
from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Tuple

from ..billing_api.models import Membership, Plan
from ..policies.models import ProductConfig
from .models import CandidateDecision, DecisionReason, SkipReason


def batch_skip_reason(new_plan: Plan) -> Optional[SkipReason]:
    """One-time purchases never supersede anything."""

    if not new_plan.is_renewal:
        return SkipReason.NEW_PLAN_NOT_RENEWAL
    return None


def policy_skip_reason(config: Optional[ProductConfig]) -> Optional[SkipReason]:
    if config is None:
        return SkipReason.NOT_CONFIGURED
    if not config.enabled:
        return SkipReason.DISABLED
    return None


def existing_candidates(memberships: Iterable[Membership], new_membership_id: str) -> List[Membership]:
    """Active memberships other than the one that triggered the event."""

    return [membership for membership in memberships if membership.id != new_membership_id]


def evaluate_candidate(
    new_plan: Plan,
    membership: Membership,
    existing_plan: Optional[Plan],
    policy: ProductConfig,
) -> CandidateDecision:
    if existing_plan is None:
        return CandidateDecision(membership=membership, cancel=False, reason=DecisionReason.PLAN_NOT_FOUND)

    def decide(cancel: bool, reason: DecisionReason) -> CandidateDecision:
        return CandidateDecision(membership=membership, plan=existing_plan, cancel=cancel, reason=reason)

    if not existing_plan.is_renewal:
        return decide(False, DecisionReason.NOT_RENEWAL)

    existing_price = existing_plan.price
    if policy.ignore_free_plans and existing_price == 0:
        return decide(False, DecisionReason.FREE_PLAN_IGNORED)

    new_price = new_plan.price
    if new_price > existing_price:
        return decide(True, DecisionReason.UPGRADE)
    if new_price == existing_price:
        if policy.treat_same_price_as_upgrade:
            return decide(True, DecisionReason.SAME_PRICE_AS_UPGRADE)
        return decide(False, DecisionReason.SAME_PRICE)
    # Downgrades keep the higher tier unless the operator opted in.
    if policy.allow_downgrade_to_cancel:
        return decide(True, DecisionReason.DOWNGRADE_CANCEL_ALLOWED)
    return decide(False, DecisionReason.DOWNGRADE)


def select_cancellations(
    new_plan: Plan,
    candidates: Sequence[Tuple[Membership, Optional[Plan]]],
    policy: ProductConfig,
) -> List[CandidateDecision]:
    """Evaluate every candidate independently; order has no effect on outcome."""

    if batch_skip_reason(new_plan) is not None:
        return []
    return [
        evaluate_candidate(new_plan, membership, existing_plan, policy)
        for membership, existing_plan in candidates
    ]


__all__ = [
    "batch_skip_reason",
    "evaluate_candidate",
    "existing_candidates",
    "policy_skip_reason",
    "select_cancellations",
]
