"""Audit logger that records reconciliation outcomes without ever raising."""
from __future__ import annotations

import logging
from typing import Optional

from .models import ActivityLog, ActivityStatus
from .repository import ActivityRepository

logger = logging.getLogger(__name__)


class ActivityLogger:
    """Appends one :class:`ActivityLog` per outcome.

    Storage failures are reported to the application log and otherwise
    ignored so that auditing never interrupts a reconciliation run.
    """

    def __init__(self, repository: ActivityRepository) -> None:
        self._repository = repository

    def record(
        self,
        *,
        company_id: str,
        user_id: str,
        product_id: str,
        new_plan_id: str,
        new_plan_name: Optional[str],
        status: ActivityStatus,
        old_plan_id: Optional[str] = None,
        old_plan_name: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> Optional[ActivityLog]:
        try:
            entry = ActivityLog(
                company_id=company_id,
                user_id=user_id,
                product_id=product_id,
                old_plan_id=old_plan_id,
                old_plan_name=old_plan_name,
                new_plan_id=new_plan_id,
                new_plan_name=new_plan_name,
                status=status,
                error_message=error_message,
            )
            stored = self._repository.insert(entry)
        except Exception:
            logger.exception(
                "Failed to record activity log",
                extra={
                    "company_id": company_id,
                    "user_id": user_id,
                    "activity_status": status.value,
                    "old_plan_id": old_plan_id,
                    "new_plan_id": new_plan_id,
                },
            )
            return None

        logger.info(
            "Activity logged",
            extra={
                "activity_status": status.value,
                "old_plan": old_plan_name or old_plan_id,
                "new_plan": new_plan_name or new_plan_id,
                "user_id": user_id,
            },
        )
        return stored
