from __future__ import annotations

import pytest

from upgrade_guard.app.billing_api import (
    MembershipStatus,
    Plan,
    PlanType,
)
from upgrade_guard.app.billing_api.mapping import (
    format_price,
    membership_from_payload,
    page_cursor,
    page_items,
    plan_display_title,
    plan_from_payload,
    product_from_payload,
    to_cents,
)


@pytest.mark.parametrize(
    ("value", "expected"),
    [
        (149.95, 14995),
        ("149.95", 14995),
        (19.99, 1999),
        (10, 1000),
        (0.005, 1),
        (None, 0),
        ("", 0),
        ("not-a-price", 0),
        (True, 0),
        (-5, 0),
    ],
)
def test_to_cents_normalizes_major_units(value, expected):
    assert to_cents(value) == expected


def test_to_cents_is_stable_across_repeated_reads():
    assert {to_cents(149.95) for _ in range(100)} == {14995}


def test_plan_from_payload_applies_field_precedence():
    payload = {
        "id": "plan_scale",
        "internal_notes": "Scale",
        "title": "Ignored title",
        "product": {"id": "prod_nested", "title": "Voice Agent"},
        "product_id": "prod_flat",
        "plan_type": "renewal",
        "initial_price": None,
        "renewal_price": 149.95,
    }

    plan = plan_from_payload(payload)

    assert plan.id == "plan_scale"
    assert plan.title == "Scale"
    assert plan.product_id == "prod_nested"
    assert plan.product_title == "Voice Agent"
    assert plan.initial_price == 0
    assert plan.renewal_price == 14995
    assert plan.price == 14995


def test_plan_from_payload_falls_back_to_flat_fields():
    plan = plan_from_payload(
        {"title": "Starter", "access_pass_id": "prod_legacy", "planType": "one_time", "initialPrice": "25"},
        fallback_id="plan_requested",
    )

    assert plan.id == "plan_requested"
    assert plan.title == "Starter"
    assert plan.product_id == "prod_legacy"
    assert plan.plan_type == PlanType.ONE_TIME
    assert plan.price == 2500


def test_plan_without_type_is_treated_as_renewal():
    assert plan_from_payload({"id": "plan_1"}).plan_type == PlanType.RENEWAL


def test_membership_from_payload_reads_nested_and_flat_ids():
    membership = membership_from_payload(
        {
            "id": "mem_1",
            "user": {"id": "user_1"},
            "product_id": "prod_1",
            "plan": {"id": "plan_1"},
            "company": {"id": "biz_1"},
            "status": "Trialing",
            "cancel_at_period_end": None,
        }
    )

    assert membership.user_id == "user_1"
    assert membership.product_id == "prod_1"
    assert membership.plan_id == "plan_1"
    assert membership.company_id == "biz_1"
    assert membership.status == MembershipStatus.TRIALING
    assert membership.is_active
    assert not membership.cancel_at_period_end


def test_membership_with_unexpected_status_is_unknown_and_inactive():
    membership = membership_from_payload({"id": "mem_1", "status": "paused_forever"})

    assert membership.status == MembershipStatus.UNKNOWN
    assert not membership.is_active


def test_canceled_at_makes_membership_inactive():
    membership = membership_from_payload(
        {"id": "mem_1", "status": "active", "canceled_at": "2024-05-01T10:00:00Z"}
    )

    assert membership.canceled_at is not None
    assert not membership.is_active


def test_product_from_payload_uses_name_when_title_missing():
    product = product_from_payload({"id": "prod_1", "name": "Voice Agent", "company_id": "biz_1"})

    assert product.title == "Voice Agent"
    assert product.company_id == "biz_1"


def test_page_helpers_understand_both_pagination_shapes():
    assert page_cursor({"page_info": {"end_cursor": "c1", "has_next_page": False}}) == ("c1", False)
    assert page_cursor({"pagination": {"next_cursor": "n1"}}) == ("n1", True)
    assert page_cursor({"data": []}) == (None, False)
    assert page_items({"data": [{"id": "a"}, "junk"]}) == [{"id": "a"}]
    assert page_items([{"id": "b"}]) == [{"id": "b"}]
    assert page_items({"plans": [{"id": "c"}]}, "plans") == [{"id": "c"}]


def test_format_price():
    assert format_price(0) == "Free"
    assert format_price(14995) == "$149.95/mo"


@pytest.mark.parametrize(
    ("title", "price", "product_title", "expected"),
    [
        ("Scale", 14995, "Voice Agent", "Voice Agent - Scale - $149.95/mo"),
        ("Scale", 14995, "", "Scale - $149.95/mo"),
        ("$10.00/mo", 1000, "Voice Agent", "Voice Agent - $10.00/mo"),
        ("$10.00/mo", 1000, "", "$10.00/mo"),
        (None, 0, "Voice Agent", "Voice Agent - Free"),
        (None, 2500, "", "$25.00/mo"),
        ("Pro $ edition", 2500, "Voice Agent", "Pro $ edition"),
    ],
)
def test_plan_display_title(title, price, product_title, expected):
    plan = Plan(id="plan_1", title=title, renewal_price=price)

    assert plan_display_title(plan, product_title) == expected


def test_plan_display_title_defaults_to_embedded_product_title():
    plan = Plan(id="plan_1", title="Growth", product_title="Voice Agent", renewal_price=4900)

    assert plan_display_title(plan) == "Voice Agent - Growth - $49.00/mo"
