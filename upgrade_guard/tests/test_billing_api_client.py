from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest
import requests

from upgrade_guard.app.billing_api import (
    BillingApiClient,
    BillingApiConfigurationError,
    CancellationTiming,
    MembershipStatus,
    UpstreamApiError,
)
from upgrade_guard.config import load_settings


class FakeResponse:
    def __init__(self, status_code: int, payload: Any = None, text: str = "") -> None:
        self.status_code = status_code
        self._payload = payload
        self.text = text

    def json(self) -> Any:
        if self._payload is None:
            raise ValueError("No JSON body")
        return self._payload


class FakeSession:
    """Replays queued responses (or raises queued exceptions) in order."""

    def __init__(self, responses: List[Any]) -> None:
        self._responses = list(responses)
        self.calls: List[Dict[str, Any]] = []

    def request(self, method, url, params=None, headers=None, timeout=None):
        self.calls.append(
            {"method": method, "url": url, "params": params, "headers": headers, "timeout": timeout}
        )
        if not self._responses:
            raise AssertionError(f"Unexpected request: {method} {url}")
        outcome = self._responses.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


class LoopingSession(FakeSession):
    """Always answers with a page pointing at a further page."""

    def __init__(self, cursor_for_call) -> None:
        super().__init__([])
        self._cursor_for_call = cursor_for_call

    def request(self, method, url, params=None, headers=None, timeout=None):
        self.calls.append({"method": method, "url": url, "params": params})
        index = len(self.calls)
        return FakeResponse(
            200,
            {
                "data": [{"id": f"mem_{index}", "status": "active"}],
                "page_info": {"end_cursor": self._cursor_for_call(index), "has_next_page": True},
            },
        )


def make_client(session, *, max_attempts: int = 1, max_pages: int = 50, sleeps: Optional[List[float]] = None):
    recorded = sleeps if sleeps is not None else []
    return BillingApiClient(
        "test-key",
        base_url="https://billing.test/api/v1/",
        session=session,
        timeout=(1.0, 2.0),
        max_attempts=max_attempts,
        backoff_seconds=0.5,
        max_pages=max_pages,
        sleep=recorded.append,
    )


def test_client_requires_api_key():
    with pytest.raises(BillingApiConfigurationError):
        BillingApiClient(None, session=FakeSession([]))


def test_from_settings_uses_configured_values():
    settings = load_settings({"WHOP_API_KEY": "key", "WHOP_API_BASE_URL": "https://billing.test/v9/"})
    session = FakeSession([FakeResponse(404, text="missing")])

    client = BillingApiClient.from_settings(settings, session=session)
    client.get_plan("plan_1")

    assert session.calls[0]["url"] == "https://billing.test/v9/plans/plan_1"
    assert session.calls[0]["timeout"] == settings.timeout


def test_get_plan_converts_prices_and_sends_auth():
    session = FakeSession(
        [
            FakeResponse(
                200,
                {
                    "id": "plan_scale",
                    "internal_notes": "Scale",
                    "plan_type": "renewal",
                    "initial_price": 0,
                    "renewal_price": 149.95,
                    "product": {"id": "prod_1"},
                },
            )
        ]
    )
    client = make_client(session)

    plan = client.get_plan("plan_scale")

    assert plan is not None
    assert plan.price == 14995
    assert plan.product_id == "prod_1"
    call = session.calls[0]
    assert call["method"] == "GET"
    assert call["url"] == "https://billing.test/api/v1/plans/plan_scale"
    assert call["headers"]["Authorization"] == "Bearer test-key"
    assert call["timeout"] == (1.0, 2.0)


def test_get_plan_returns_none_when_missing():
    client = make_client(FakeSession([FakeResponse(404, {"error": "not found"})]))

    assert client.get_plan("plan_gone") is None


def test_get_plan_raises_on_server_error():
    client = make_client(FakeSession([FakeResponse(500, {"message": "boom"})]))

    with pytest.raises(UpstreamApiError) as excinfo:
        client.get_plan("plan_1")

    assert excinfo.value.status_code == 500
    assert excinfo.value.body == "boom"


def test_invalid_json_is_an_upstream_error():
    client = make_client(FakeSession([FakeResponse(200, None, text="<html>")]))

    with pytest.raises(UpstreamApiError):
        client.get_plan("plan_1")


def test_transient_failures_are_retried_with_backoff():
    sleeps: List[float] = []
    session = FakeSession(
        [
            FakeResponse(503, text="unavailable"),
            requests.ConnectionError("reset"),
            FakeResponse(200, {"id": "plan_1", "renewal_price": 10}),
        ]
    )
    client = make_client(session, max_attempts=3, sleeps=sleeps)

    plan = client.get_plan("plan_1")

    assert plan is not None and plan.price == 1000
    assert len(session.calls) == 3
    assert sleeps == [0.5, 1.0]


def test_client_errors_are_not_retried():
    session = FakeSession([FakeResponse(401, {"message": "bad key"})])
    client = make_client(session, max_attempts=3)

    with pytest.raises(UpstreamApiError) as excinfo:
        client.list_plans("biz_1", "prod_1")

    assert excinfo.value.status_code == 401
    assert len(session.calls) == 1


def test_timeout_is_classified_as_upstream_error():
    session = FakeSession([requests.Timeout("slow"), requests.Timeout("slow")])
    client = make_client(session, max_attempts=2)

    with pytest.raises(UpstreamApiError) as excinfo:
        client.list_products("biz_1")

    assert excinfo.value.status_code is None
    assert excinfo.value.is_transient
    assert len(session.calls) == 2


def test_list_active_memberships_follows_cursor():
    session = FakeSession(
        [
            FakeResponse(
                200,
                {
                    "data": [{"id": "mem_1", "status": "active", "plan": {"id": "plan_a"}}],
                    "page_info": {"end_cursor": "c1", "has_next_page": True},
                },
            ),
            FakeResponse(
                200,
                {
                    "data": [{"id": "mem_2", "status": "trialing", "plan_id": "plan_b"}],
                    "page_info": {"end_cursor": "c2", "has_next_page": False},
                },
            ),
        ]
    )
    client = make_client(session)

    memberships = client.list_active_memberships("biz_1", "user_1", "prod_1")

    assert [membership.id for membership in memberships] == ["mem_1", "mem_2"]
    assert [membership.plan_id for membership in memberships] == ["plan_a", "plan_b"]
    first_params = session.calls[0]["params"]
    assert ("company_id", "biz_1") in first_params
    assert ("user_id", "user_1") in first_params
    assert ("product_id", "prod_1") in first_params
    assert ("statuses[]", "active") in first_params
    assert ("statuses[]", "trialing") in first_params
    assert ("after", "c1") in session.calls[1]["params"]


def test_pagination_stops_at_page_cap():
    session = LoopingSession(lambda index: f"cursor_{index}")
    client = make_client(session, max_pages=3)

    memberships = client.list_memberships("biz_1", user_ids=["user_1"])

    assert len(session.calls) == 3
    assert len(memberships) == 3


def test_pagination_stops_on_repeated_cursor():
    session = LoopingSession(lambda index: "same_cursor")
    client = make_client(session, max_pages=10)

    client.list_memberships("biz_1")

    assert len(session.calls) == 2


def test_list_memberships_sends_array_filters():
    session = FakeSession([FakeResponse(200, {"data": []})])
    client = make_client(session)

    client.list_memberships(
        "biz_1",
        user_ids=["user_1"],
        product_ids=["prod_app"],
        statuses=[MembershipStatus.ACTIVE],
    )

    params = session.calls[0]["params"]
    assert ("user_ids[]", "user_1") in params
    assert ("product_ids[]", "prod_app") in params
    assert ("statuses[]", "active") in params


def test_list_products_requests_regular_products():
    session = FakeSession(
        [FakeResponse(200, {"data": [{"id": "prod_1", "title": "Voice Agent"}]})]
    )
    client = make_client(session)

    products = client.list_products("biz_1")

    assert products[0].title == "Voice Agent"
    assert ("product_types[]", "regular") in session.calls[0]["params"]


def test_cancel_membership_immediate_flag():
    session = FakeSession([FakeResponse(200, {"id": "mem_1"}), FakeResponse(200, {"id": "mem_2"})])
    client = make_client(session)

    assert client.cancel_membership("mem_1", timing=CancellationTiming.IMMEDIATE) is True
    assert client.cancel_membership("mem_2", timing=CancellationTiming.PERIOD_END) is True

    assert session.calls[0]["method"] == "POST"
    assert session.calls[0]["url"].endswith("/memberships/mem_1/cancel")
    assert session.calls[0]["params"] == [("immediate", "true")]
    assert session.calls[1]["params"] is None


@pytest.mark.parametrize(
    "response",
    [
        FakeResponse(409, {"message": "conflict"}),
        FakeResponse(400, {"message": "Membership is already canceled"}),
        FakeResponse(422, None, text="membership already cancelled"),
    ],
)
def test_cancel_membership_treats_already_canceled_as_success(response):
    session = FakeSession([response])
    client = make_client(session)

    assert client.cancel_membership("mem_1", timing=CancellationTiming.PERIOD_END) is True
    assert len(session.calls) == 1


def test_cancel_membership_confirms_settled_state_after_failure():
    session = FakeSession(
        [
            FakeResponse(400, {"message": "Cannot process request"}),
            FakeResponse(200, {"id": "mem_1", "status": "active", "cancel_at_period_end": True}),
        ]
    )
    client = make_client(session)

    assert client.cancel_membership("mem_1", timing=CancellationTiming.PERIOD_END) is True
    assert session.calls[1]["url"].endswith("/memberships/mem_1")


def test_cancel_membership_returns_false_on_failure():
    session = FakeSession(
        [
            FakeResponse(400, {"message": "Cannot process request"}),
            FakeResponse(200, {"id": "mem_1", "status": "active"}),
        ]
    )
    client = make_client(session)

    assert client.cancel_membership("mem_1", timing=CancellationTiming.IMMEDIATE) is False


def test_cancel_membership_timeout_returns_false():
    session = FakeSession([requests.Timeout("slow"), requests.Timeout("slow")])
    client = make_client(session)

    assert client.cancel_membership("mem_1", timing=CancellationTiming.IMMEDIATE) is False
