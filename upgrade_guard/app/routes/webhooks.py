"""Inbound webhook endpoint for membership events."""
from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from ..services import reconciliation as reconciliation_services

router = APIRouter(prefix="/api/webhooks", tags=["webhooks"])


@router.post("/membership-activated")
async def membership_activated(request: Request) -> JSONResponse:
    """Acknowledge the delivery and hand reconciliation to the background dispatcher."""

    raw_body = await request.body()
    guard = reconciliation_services.get_webhook_guard()
    # The entitlement check performs blocking HTTP calls.
    outcome = await run_in_threadpool(guard.handle, raw_body, dict(request.headers))
    return JSONResponse(status_code=outcome.status_code, content=outcome.body)
