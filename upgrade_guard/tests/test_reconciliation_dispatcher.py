from __future__ import annotations

from threading import Event

import pytest

from upgrade_guard.app.reconciliation import (
    ReconciliationDispatcher,
    ReconciliationRequest,
    ReconciliationResult,
)


def make_request(membership_id: str = "mem_new") -> ReconciliationRequest:
    return ReconciliationRequest(
        company_id="biz_1",
        membership_id=membership_id,
        user_id="user_1",
        product_id="prod_1",
        plan_id="plan_new",
    )


def test_dispatcher_tracks_completed_and_failed_work():
    def handler(request: ReconciliationRequest) -> ReconciliationResult:
        if request.membership_id == "mem_bad":
            return ReconciliationResult(success=False, error="Failed to fetch new plan details")
        return ReconciliationResult(success=True, canceled_memberships=["mem_old"])

    dispatcher = ReconciliationDispatcher(handler, max_workers=2)
    try:
        dispatcher.submit(make_request("mem_ok"))
        dispatcher.submit(make_request("mem_bad"))
        assert dispatcher.wait_for_idle(timeout=5)

        metrics = dispatcher.metrics()
    finally:
        dispatcher.shutdown()

    assert metrics["submitted"] == 2
    assert metrics["completed"] == 1
    assert metrics["failed"] == 1
    assert metrics["in_flight"] == 0
    assert metrics["last_error"] == "Failed to fetch new plan details"
    assert metrics["last_completed_at"] is not None


def test_handler_crash_is_logged_and_counted(caplog):
    def handler(request: ReconciliationRequest) -> ReconciliationResult:
        raise RuntimeError("exploded")

    dispatcher = ReconciliationDispatcher(handler, max_workers=1)
    try:
        future = dispatcher.submit(make_request())
        assert dispatcher.wait_for_idle(timeout=5)
    finally:
        dispatcher.shutdown()

    assert isinstance(future.exception(), RuntimeError)
    assert dispatcher.metrics()["failed"] == 1
    assert "RuntimeError: exploded" in dispatcher.metrics()["last_error"]
    assert any("Reconciliation task crashed" in record.getMessage() for record in caplog.records)


def test_shutdown_waits_for_in_flight_work():
    started = Event()
    release = Event()
    finished = []

    def handler(request: ReconciliationRequest) -> ReconciliationResult:
        started.set()
        release.wait(timeout=5)
        finished.append(request.membership_id)
        return ReconciliationResult(success=True)

    dispatcher = ReconciliationDispatcher(handler, max_workers=1)
    dispatcher.submit(make_request("mem_slow"))
    assert started.wait(timeout=5)
    assert dispatcher.metrics()["in_flight"] == 1

    release.set()
    dispatcher.shutdown(wait=True)

    assert finished == ["mem_slow"]
    assert dispatcher.metrics()["completed"] == 1


def test_submit_after_shutdown_is_rejected():
    dispatcher = ReconciliationDispatcher(lambda request: ReconciliationResult(success=True))
    dispatcher.shutdown()

    with pytest.raises(RuntimeError):
        dispatcher.submit(make_request())


def test_wait_for_idle_times_out_while_work_is_pending():
    release = Event()

    def handler(request: ReconciliationRequest) -> ReconciliationResult:
        release.wait(timeout=5)
        return ReconciliationResult(success=True)

    dispatcher = ReconciliationDispatcher(handler, max_workers=1)
    try:
        dispatcher.submit(make_request())
        assert dispatcher.wait_for_idle(timeout=0.05) is False
    finally:
        release.set()
        dispatcher.shutdown()
