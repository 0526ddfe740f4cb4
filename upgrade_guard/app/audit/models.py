"""Audit records of reconciliation outcomes."""
from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ActivityStatus(str, Enum):
    """Terminal outcome of one reconciliation decision."""

    CANCELED = "canceled"
    SKIPPED = "skipped"
    ERROR = "error"


class ActivityLog(BaseModel):
    """Append-only outcome row. Never updated or deleted once written."""

    id: Optional[str] = None
    company_id: str
    user_id: str
    product_id: str
    old_plan_id: Optional[str] = None
    old_plan_name: Optional[str] = None
    new_plan_id: str
    new_plan_name: Optional[str] = None
    status: ActivityStatus
    error_message: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True)
