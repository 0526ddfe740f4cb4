"""Orchestrates one reconciliation attempt for a newly activated membership."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, List, Optional, Protocol, Sequence, Tuple

from ..audit.logger import ActivityLogger
from ..audit.models import ActivityStatus
from ..billing_api.exceptions import UpstreamApiError
from ..billing_api.mapping import plan_display_title
from ..billing_api.models import CancellationTiming, Membership, Plan
from ..persistence import StoreUnavailableError
from ..policies.repository import PolicyRepository
from .engine import batch_skip_reason, existing_candidates, policy_skip_reason, select_cancellations
from .models import CandidateDecision, ReconciliationRequest, ReconciliationResult, SkipReason

logger = logging.getLogger("reconciliation")


class BillingGateway(Protocol):
    """Subset of the billing client the reconciliation flow depends on."""

    def get_plan(self, plan_id: str) -> Optional[Plan]:
        ...

    def list_active_memberships(self, company_id: str, user_id: str, product_id: str) -> List[Membership]:
        ...

    def cancel_membership(self, membership_id: str, *, timing: CancellationTiming) -> bool:
        ...


class ReconciliationService:
    """Finds superseded memberships, cancels them, and audits every outcome."""

    def __init__(
        self,
        billing: BillingGateway,
        policies: PolicyRepository,
        activity: ActivityLogger,
        *,
        cancellation_concurrency: int = 4,
    ) -> None:
        self._billing = billing
        self._policies = policies
        self._activity = activity
        self._cancellation_concurrency = max(1, cancellation_concurrency)

    def process(self, request: ReconciliationRequest) -> ReconciliationResult:
        logger.info("Starting upgrade reconciliation", extra=request.model_dump())
        try:
            return self._process(request)
        except UpstreamApiError as exc:
            logger.error(
                "Upgrade reconciliation aborted by billing API failure",
                extra={**request.model_dump(), "status_code": exc.status_code, "error": exc.body},
            )
            self._record(request, None, ActivityStatus.ERROR, error_message=str(exc))
            return ReconciliationResult(success=False, error=str(exc))
        except StoreUnavailableError as exc:
            logger.error(
                "Upgrade reconciliation aborted: policy store unavailable",
                extra={**request.model_dump(), "error": str(exc)},
            )
            return ReconciliationResult(success=False, error=f"Policy store unavailable: {exc}")

    def _process(self, request: ReconciliationRequest) -> ReconciliationResult:
        new_plan = self._billing.get_plan(request.plan_id)
        if new_plan is None:
            message = "Failed to fetch new plan details"
            logger.error(message, extra={"plan_id": request.plan_id})
            self._record(request, None, ActivityStatus.ERROR, error_message=message)
            return ReconciliationResult(success=False, error=message)

        skip = batch_skip_reason(new_plan)
        if skip is not None:
            logger.info(
                "Skipping reconciliation for non-renewal plan",
                extra={"plan_id": new_plan.id, "plan_type": new_plan.plan_type.value},
            )
            return ReconciliationResult(success=True, skip_reason=skip)

        memberships = self._billing.list_active_memberships(
            request.company_id, request.user_id, request.product_id
        )
        existing = existing_candidates(memberships, request.membership_id)
        if not existing:
            return self._skip(request, new_plan, SkipReason.NO_EXISTING_MEMBERSHIPS)

        config = self._policies.get_config(request.company_id, request.product_id)
        skip = policy_skip_reason(config)
        if skip is not None:
            return self._skip(request, new_plan, skip)

        plans, failures = self._resolve_plans(existing)
        for membership in existing:
            error = failures.get(membership.plan_id)
            if error is None:
                continue
            logger.error(
                "Could not resolve candidate plan",
                extra={
                    "membership_id": membership.id,
                    "plan_id": membership.plan_id,
                    "status_code": error.status_code,
                    "error": error.body,
                },
            )
            self._record(
                request,
                new_plan,
                ActivityStatus.ERROR,
                old_plan_id=membership.plan_id,
                error_message=f"Membership {membership.id}: {error}",
            )

        evaluable = [membership for membership in existing if membership.plan_id not in failures]
        if not evaluable:
            return ReconciliationResult(success=True)

        decisions = select_cancellations(
            new_plan,
            [(membership, plans.get(membership.plan_id)) for membership in evaluable],
            config,
        )
        for decision in decisions:
            logger.debug(
                "Candidate evaluated",
                extra={
                    "membership_id": decision.membership.id,
                    "existing_price": decision.plan.price if decision.plan else None,
                    "new_price": new_plan.price,
                    "cancel": decision.cancel,
                    "reason": decision.reason.value,
                },
            )

        selected = [decision for decision in decisions if decision.cancel]
        if not selected:
            first = evaluable[0]
            return self._skip(
                request,
                new_plan,
                SkipReason.NO_MATCHING_CANDIDATES,
                old_plan_id=first.plan_id or None,
                old_plan=plans.get(first.plan_id),
                decisions=decisions,
            )

        canceled = self._cancel_all(request, new_plan, selected, config.cancellation_timing)
        logger.info(
            "Upgrade reconciliation finished",
            extra={
                "membership_id": request.membership_id,
                "selected": len(selected),
                "canceled": len(canceled),
            },
        )
        return ReconciliationResult(success=True, canceled_memberships=canceled, decisions=tuple(decisions))

    def _resolve_plans(
        self, memberships: Sequence[Membership]
    ) -> Tuple[Dict[str, Optional[Plan]], Dict[str, UpstreamApiError]]:
        """Fetch each distinct candidate plan once; failures stay per plan."""

        plans: Dict[str, Optional[Plan]] = {}
        failures: Dict[str, UpstreamApiError] = {}
        for membership in memberships:
            plan_id = membership.plan_id
            if not plan_id or plan_id in plans or plan_id in failures:
                continue
            try:
                plans[plan_id] = self._billing.get_plan(plan_id)
            except UpstreamApiError as exc:
                failures[plan_id] = exc
        return plans, failures

    def _cancel_all(
        self,
        request: ReconciliationRequest,
        new_plan: Plan,
        selected: Sequence[CandidateDecision],
        timing: CancellationTiming,
    ) -> List[str]:
        workers = min(self._cancellation_concurrency, len(selected))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="cancel") as pool:
            futures = [
                pool.submit(self._cancel_one, request, new_plan, decision, timing)
                for decision in selected
            ]
            outcomes = [future.result() for future in futures]
        return [decision.membership.id for decision, ok in zip(selected, outcomes) if ok]

    def _cancel_one(
        self,
        request: ReconciliationRequest,
        new_plan: Plan,
        decision: CandidateDecision,
        timing: CancellationTiming,
    ) -> bool:
        membership = decision.membership
        try:
            ok = self._billing.cancel_membership(membership.id, timing=timing)
        except Exception:
            logger.exception("Cancel call raised", extra={"membership_id": membership.id})
            ok = False

        if ok:
            logger.info(
                "Canceled superseded membership",
                extra={"membership_id": membership.id, "timing": timing.value},
            )
            self._record(
                request,
                new_plan,
                ActivityStatus.CANCELED,
                old_plan_id=membership.plan_id,
                old_plan=decision.plan,
            )
        else:
            self._record(
                request,
                new_plan,
                ActivityStatus.ERROR,
                old_plan_id=membership.plan_id,
                old_plan=decision.plan,
                error_message=f"Failed to cancel membership {membership.id}",
            )
        return ok

    def _skip(
        self,
        request: ReconciliationRequest,
        new_plan: Plan,
        reason: SkipReason,
        *,
        old_plan_id: Optional[str] = None,
        old_plan: Optional[Plan] = None,
        decisions: Sequence[CandidateDecision] = (),
    ) -> ReconciliationResult:
        logger.info(
            "Skipping upgrade reconciliation",
            extra={"membership_id": request.membership_id, "reason": reason.value},
        )
        self._record(
            request,
            new_plan,
            ActivityStatus.SKIPPED,
            old_plan_id=old_plan_id,
            old_plan=old_plan,
            error_message=reason.message,
        )
        return ReconciliationResult(success=True, skip_reason=reason, decisions=tuple(decisions))

    def _record(
        self,
        request: ReconciliationRequest,
        new_plan: Optional[Plan],
        status: ActivityStatus,
        *,
        old_plan_id: Optional[str] = None,
        old_plan: Optional[Plan] = None,
        error_message: Optional[str] = None,
    ) -> None:
        self._activity.record(
            company_id=request.company_id,
            user_id=request.user_id,
            product_id=request.product_id,
            old_plan_id=old_plan_id,
            old_plan_name=plan_display_title(old_plan) if old_plan else None,
            new_plan_id=request.plan_id,
            new_plan_name=plan_display_title(new_plan) if new_plan else None,
            status=status,
            error_message=error_message,
        )


__all__ = ["BillingGateway", "ReconciliationService"]
