from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Optional

from upgrade_guard.app.billing_api import Membership, MembershipStatus, UpstreamApiError
from upgrade_guard.app.entitlements import AccessCheckService, InMemoryAccessCache

APP_COMPANY_ID = "biz_app"
APP_PRODUCT_ID = "prod_app"


class FakeMembershipLister:
    def __init__(self, memberships: Optional[List[Membership]] = None, *, error: Optional[Exception] = None) -> None:
        self.memberships = memberships or []
        self.error = error
        self.calls: List[dict] = []

    def list_memberships(self, company_id, *, user_ids=(), product_ids=(), statuses=()):
        self.calls.append(
            {
                "company_id": company_id,
                "user_ids": list(user_ids),
                "product_ids": list(product_ids),
                "statuses": list(statuses),
            }
        )
        if self.error is not None:
            raise self.error
        return list(self.memberships)


def active_membership(**overrides) -> Membership:
    values = {
        "id": "mem_app",
        "user_id": "user_1",
        "product_id": APP_PRODUCT_ID,
        "plan_id": "plan_app",
        "status": MembershipStatus.ACTIVE,
    }
    values.update(overrides)
    return Membership(**values)


def make_service(lister, **overrides) -> AccessCheckService:
    options = {
        "company_id": APP_COMPANY_ID,
        "product_id": APP_PRODUCT_ID,
        "cache": InMemoryAccessCache(),
        "ttl_seconds": 60,
    }
    options.update(overrides)
    return AccessCheckService(lister, **options)


def test_active_membership_grants_customer_access():
    lister = FakeMembershipLister([active_membership()])
    service = make_service(lister)

    result = service.check_access("user_1")

    assert result.has_access
    assert result.access_level == "customer"
    assert lister.calls[0]["company_id"] == APP_COMPANY_ID
    assert lister.calls[0]["user_ids"] == ["user_1"]
    assert lister.calls[0]["product_ids"] == [APP_PRODUCT_ID]
    assert lister.calls[0]["statuses"] == [MembershipStatus.ACTIVE, MembershipStatus.TRIALING]


def test_canceled_or_foreign_memberships_do_not_grant_access():
    lister = FakeMembershipLister(
        [
            active_membership(canceled_at=datetime(2024, 1, 1, tzinfo=timezone.utc)),
            active_membership(id="mem_other", product_id="prod_other"),
            active_membership(id="mem_expired", status=MembershipStatus.EXPIRED),
        ]
    )

    result = make_service(lister).check_access("user_1")

    assert not result.has_access
    assert result.access_level is None


def test_lookup_failure_fails_closed():
    lister = FakeMembershipLister(error=UpstreamApiError("fetch memberships", None, "timed out"))

    result = make_service(lister).check_access("user_1")

    assert not result.has_access


def test_missing_gating_product_denies_access():
    lister = FakeMembershipLister([active_membership()])

    result = make_service(lister, product_id=None).check_access("user_1")

    assert not result.has_access
    assert lister.calls == []


def test_disabled_gate_allows_everyone():
    lister = FakeMembershipLister()

    result = make_service(lister, enabled=False).check_access("user_1")

    assert result.has_access
    assert result.access_level == "unrestricted"
    assert lister.calls == []


def test_results_are_cached_until_invalidated():
    lister = FakeMembershipLister([active_membership()])
    service = make_service(lister)

    assert service.check_access("user_1").has_access
    lister.memberships = []
    assert service.check_access("user_1").has_access
    assert len(lister.calls) == 1

    service.invalidate_user("user_1")
    assert not service.check_access("user_1").has_access
    assert len(lister.calls) == 2


def test_failed_lookups_are_not_cached():
    lister = FakeMembershipLister(error=RuntimeError("network down"))
    service = make_service(lister)

    assert not service.check_access("user_1").has_access
    lister.error = None
    lister.memberships = [active_membership()]
    assert service.check_access("user_1").has_access


def test_cache_entries_expire():
    cache = InMemoryAccessCache()
    lister = FakeMembershipLister([active_membership()])
    past = datetime.now(timezone.utc) - timedelta(minutes=5)
    service = make_service(lister, cache=cache, clock=lambda: past)

    service.check_access("user_1")
    service.check_access("user_1")

    assert len(lister.calls) == 2
