"""API route for the recent reconciliation activity feed."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Query

from ..persistence import StoreUnavailableError
from ..schemas.activity import ActivityItem, ActivityListResponse
from ..services import reconciliation as reconciliation_services

logger = logging.getLogger(__name__)

_DEFAULT_LIMIT = 5
_MAX_LIMIT = 100

router = APIRouter(prefix="/api/activity", tags=["activity"])


@router.get("", response_model=ActivityListResponse)
def list_activity(
    company_id: str = Query(alias="companyId", min_length=1),
    limit: int = Query(default=_DEFAULT_LIMIT, ge=1, le=_MAX_LIMIT),
) -> ActivityListResponse:
    """Most recent outcomes first. An unreachable store yields an empty feed."""

    repository = reconciliation_services.get_activity_repository()
    try:
        entries = repository.list_recent(company_id, limit=limit)
    except StoreUnavailableError:
        logger.warning("Activity store unavailable; returning empty feed", extra={"company_id": company_id})
        return ActivityListResponse(activities=[])
    return ActivityListResponse(activities=[ActivityItem.from_log(entry) for entry in entries])
