"""API schemas for reconciliation monitoring."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class DispatcherMetricsResponse(BaseModel):
    submitted: int
    completed: int
    failed: int
    in_flight: int = Field(alias="inFlight")
    last_error: Optional[str] = Field(alias="lastError", default=None)
    last_completed_at: Optional[str] = Field(alias="lastCompletedAt", default=None)

    model_config = ConfigDict(populate_by_name=True)
