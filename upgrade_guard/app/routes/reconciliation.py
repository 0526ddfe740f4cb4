"""API route exposing background reconciliation counters."""
from __future__ import annotations

from fastapi import APIRouter

from ..schemas.reconciliation import DispatcherMetricsResponse
from ..services import reconciliation as reconciliation_services

router = APIRouter(prefix="/api/reconciliation", tags=["reconciliation"])


@router.get("/metrics", response_model=DispatcherMetricsResponse)
def dispatcher_metrics() -> DispatcherMetricsResponse:
    metrics = reconciliation_services.get_dispatcher().metrics()
    return DispatcherMetricsResponse(
        submitted=metrics["submitted"],
        completed=metrics["completed"],
        failed=metrics["failed"],
        in_flight=metrics["in_flight"],
        last_error=metrics["last_error"],
        last_completed_at=metrics["last_completed_at"],
    )
