"""API route reporting whether a user may use the automation."""
from __future__ import annotations

from fastapi import APIRouter, Query

from ..entitlements.models import AccessResult
from ..services import reconciliation as reconciliation_services

router = APIRouter(prefix="/api/access", tags=["access"])


@router.get("/check", response_model=AccessResult)
def check_access(user_id: str = Query(alias="userId", min_length=1)) -> AccessResult:
    return reconciliation_services.get_access_checker().check_access(user_id)
