"""Supervised background execution of reconciliation work.

Webhook deliveries are acknowledged before reconciliation finishes. The
dispatcher owns the worker pool so every submitted unit of work is tracked
until completion, its failures are logged and counted, and application
shutdown waits for in-flight work instead of dropping it.
"""
from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from datetime import datetime, timezone
from threading import Condition, Lock
from typing import Callable, Dict, Optional, Set

from .models import ReconciliationRequest, ReconciliationResult

logger = logging.getLogger(__name__)

ReconciliationHandler = Callable[[ReconciliationRequest], ReconciliationResult]


class ReconciliationDispatcher:
    def __init__(
        self,
        handler: ReconciliationHandler,
        *,
        max_workers: int = 4,
        executor: Optional[ThreadPoolExecutor] = None,
    ) -> None:
        self._handler = handler
        self._executor = executor or ThreadPoolExecutor(
            max_workers=max(1, max_workers), thread_name_prefix="reconcile"
        )
        self._lock = Lock()
        self._idle = Condition(self._lock)
        self._pending: Set[Future] = set()
        self._closed = False
        self._metrics: Dict[str, object] = {
            "submitted": 0,
            "completed": 0,
            "failed": 0,
            "last_completed_at": None,
            "last_error": None,
        }

    def submit(self, request: ReconciliationRequest) -> Future:
        """Queue ``request``; raises ``RuntimeError`` once shut down."""

        with self._lock:
            if self._closed:
                raise RuntimeError("Reconciliation dispatcher is shut down")
            future = self._executor.submit(self._run, request)
            self._pending.add(future)
            self._metrics["submitted"] = int(self._metrics["submitted"]) + 1
        future.add_done_callback(lambda done: self._on_done(request, done))
        return future

    def _run(self, request: ReconciliationRequest) -> ReconciliationResult:
        try:
            return self._handler(request)
        except Exception:
            logger.exception(
                "Reconciliation task crashed",
                extra={"membership_id": request.membership_id, "user_id": request.user_id},
            )
            raise

    def _on_done(self, request: ReconciliationRequest, future: Future) -> None:
        error: Optional[str] = None
        if future.cancelled():
            error = "cancelled"
        elif future.exception() is not None:
            exc = future.exception()
            error = f"{type(exc).__name__}: {exc}"
        else:
            result = future.result()
            if not result.success:
                error = result.error or "reconciliation failed"

        with self._lock:
            self._pending.discard(future)
            if not self._pending:
                self._idle.notify_all()
            self._metrics["last_completed_at"] = datetime.now(timezone.utc)
            if error is None:
                self._metrics["completed"] = int(self._metrics["completed"]) + 1
            else:
                self._metrics["failed"] = int(self._metrics["failed"]) + 1
                self._metrics["last_error"] = error

        if error is not None:
            logger.warning(
                "Reconciliation task failed",
                extra={"membership_id": request.membership_id, "error": error},
            )

    def wait_for_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until all submitted work has finished; ``False`` on timeout."""

        with self._idle:
            return self._idle.wait_for(lambda: not self._pending, timeout=timeout)

    def metrics(self) -> Dict[str, object]:
        with self._lock:
            snapshot = dict(self._metrics)
            snapshot["in_flight"] = len(self._pending)
        last_completed = snapshot.get("last_completed_at")
        snapshot["last_completed_at"] = last_completed.isoformat() if last_completed else None
        return snapshot

    def shutdown(self, *, wait: bool = True) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            in_flight = len(self._pending)
        logger.info("Shutting down reconciliation dispatcher", extra={"in_flight": in_flight})
        self._executor.shutdown(wait=wait)


__all__ = ["ReconciliationDispatcher", "ReconciliationHandler"]
