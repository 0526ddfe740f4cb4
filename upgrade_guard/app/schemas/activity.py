"""API schemas for the recent activity feed."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..audit.models import ActivityLog, ActivityStatus


class ActivityItem(BaseModel):
    id: Optional[str] = None
    user_id: str = Field(alias="userId")
    product_id: str = Field(alias="productId")
    old_plan_id: Optional[str] = Field(alias="oldPlanId", default=None)
    old_plan_name: Optional[str] = Field(alias="oldPlanName", default=None)
    new_plan_id: str = Field(alias="newPlanId")
    new_plan_name: Optional[str] = Field(alias="newPlanName", default=None)
    status: ActivityStatus
    error_message: Optional[str] = Field(alias="errorMessage", default=None)
    created_at: datetime = Field(alias="createdAt")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_log(cls, entry: ActivityLog) -> "ActivityItem":
        return cls(
            id=entry.id,
            user_id=entry.user_id,
            product_id=entry.product_id,
            old_plan_id=entry.old_plan_id,
            old_plan_name=entry.old_plan_name,
            new_plan_id=entry.new_plan_id,
            new_plan_name=entry.new_plan_name,
            status=entry.status,
            error_message=entry.error_message,
            created_at=entry.created_at,
        )


class ActivityListResponse(BaseModel):
    activities: List[ActivityItem] = Field(default_factory=list)
