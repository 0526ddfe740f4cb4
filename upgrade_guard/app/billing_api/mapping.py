"""Translation of billing platform payloads into domain models.

Upstream responses are not consistent about field names (nested objects vs.
flat ``*_id`` keys, camelCase vs. snake_case). Every fallback chain lives in
this module with a fixed precedence, listed in ``*_FIELDS`` tuples, so
schema drift only ever needs fixing here.

Prices arrive in major currency units (``149.95`` means $149.95) and are
converted to integer cents with decimal arithmetic.
"""
from __future__ import annotations

from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Iterable, List, Mapping, Optional, Sequence, Tuple

from .models import Membership, MembershipStatus, Plan, PlanType, Product

# Field paths in precedence order; dotted entries walk nested objects.
PLAN_TITLE_FIELDS = ("internal_notes", "title", "name", "description")
PLAN_INITIAL_PRICE_FIELDS = ("initial_price", "initialPrice")
PLAN_RENEWAL_PRICE_FIELDS = ("renewal_price", "renewalPrice")
PLAN_PRODUCT_ID_FIELDS = ("product.id", "product_id", "access_pass_id")
PLAN_PRODUCT_TITLE_FIELDS = ("product.title",)
PLAN_TYPE_FIELDS = ("plan_type", "type", "planType")

MEMBERSHIP_PLAN_ID_FIELDS = ("plan.id", "plan_id")
MEMBERSHIP_PRODUCT_ID_FIELDS = ("product.id", "product_id")
MEMBERSHIP_USER_ID_FIELDS = ("user.id", "user_id")
MEMBERSHIP_COMPANY_ID_FIELDS = ("company.id", "company_id")

PRODUCT_TITLE_FIELDS = ("title", "name")
PRODUCT_COMPANY_ID_FIELDS = ("company.id", "company_id")

PAGE_ITEM_FIELDS = ("data",)
PAGE_INFO_FIELDS = ("page_info", "pagination")
PAGE_CURSOR_FIELDS = ("end_cursor", "next_cursor")

_CENTS = Decimal(100)


def _lookup(payload: Mapping[str, Any], path: str) -> Any:
    current: Any = payload
    for part in path.split("."):
        if not isinstance(current, Mapping):
            return None
        current = current.get(part)
    return current


def first_present(payload: Mapping[str, Any], fields: Sequence[str]) -> Any:
    """Return the first non-null value among ``fields``."""

    for field in fields:
        value = _lookup(payload, field)
        if value is not None:
            return value
    return None


def first_truthy(payload: Mapping[str, Any], fields: Sequence[str]) -> Any:
    """Return the first value among ``fields`` that is not empty."""

    for field in fields:
        value = _lookup(payload, field)
        if value:
            return value
    return None


def to_cents(value: Any) -> int:
    """Convert a major-unit amount to integer cents; unusable input yields ``0``."""

    if value is None or isinstance(value, bool):
        return 0
    try:
        amount = Decimal(str(value).strip())
    except (InvalidOperation, ValueError):
        return 0
    if not amount.is_finite():
        return 0
    cents = int((amount * _CENTS).quantize(Decimal(1), rounding=ROUND_HALF_UP))
    return max(cents, 0)


def parse_plan_type(value: Any) -> PlanType:
    if value is None:
        return PlanType.RENEWAL
    normalized = str(value).strip().lower().replace("_", "-")
    if normalized == PlanType.ONE_TIME.value:
        return PlanType.ONE_TIME
    return PlanType.RENEWAL


def parse_optional_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def _as_str(value: Any) -> str:
    return "" if value is None else str(value)


def plan_from_payload(payload: Mapping[str, Any], *, fallback_id: str = "") -> Plan:
    title = first_truthy(payload, PLAN_TITLE_FIELDS)
    return Plan(
        id=_as_str(payload.get("id")) or fallback_id,
        title=str(title) if title else None,
        product_id=_as_str(first_truthy(payload, PLAN_PRODUCT_ID_FIELDS)),
        product_title=first_truthy(payload, PLAN_PRODUCT_TITLE_FIELDS) or None,
        plan_type=parse_plan_type(first_truthy(payload, PLAN_TYPE_FIELDS)),
        initial_price=to_cents(first_present(payload, PLAN_INITIAL_PRICE_FIELDS)),
        renewal_price=to_cents(first_present(payload, PLAN_RENEWAL_PRICE_FIELDS)),
    )


def membership_from_payload(payload: Mapping[str, Any]) -> Membership:
    return Membership(
        id=_as_str(payload.get("id")),
        user_id=_as_str(first_truthy(payload, MEMBERSHIP_USER_ID_FIELDS)),
        product_id=_as_str(first_truthy(payload, MEMBERSHIP_PRODUCT_ID_FIELDS)),
        plan_id=_as_str(first_truthy(payload, MEMBERSHIP_PLAN_ID_FIELDS)),
        company_id=first_truthy(payload, MEMBERSHIP_COMPANY_ID_FIELDS) or None,
        status=MembershipStatus.parse(payload.get("status") or "unknown"),
        canceled_at=parse_optional_datetime(payload.get("canceled_at")),
        cancel_at_period_end=bool(payload.get("cancel_at_period_end")),
    )


def product_from_payload(payload: Mapping[str, Any]) -> Product:
    return Product(
        id=_as_str(payload.get("id")),
        title=_as_str(first_truthy(payload, PRODUCT_TITLE_FIELDS)),
        company_id=first_truthy(payload, PRODUCT_COMPANY_ID_FIELDS) or None,
    )


def page_items(page: Any, *extra_fields: str) -> List[Mapping[str, Any]]:
    """Items of one list response; accepts ``{"data": [...]}`` or a bare list."""

    if isinstance(page, list):
        items: Iterable[Any] = page
    elif isinstance(page, Mapping):
        items = first_present(page, PAGE_ITEM_FIELDS + tuple(extra_fields)) or []
    else:
        items = []
    return [item for item in items if isinstance(item, Mapping)]


def page_cursor(page: Any) -> Tuple[Optional[str], bool]:
    """Return ``(next_cursor, has_next_page)`` for one list response."""

    if not isinstance(page, Mapping):
        return None, False
    info = first_present(page, PAGE_INFO_FIELDS)
    if not isinstance(info, Mapping):
        return None, False
    cursor = first_truthy(info, PAGE_CURSOR_FIELDS)
    has_next = info.get("has_next_page")
    if has_next is None:
        has_next = bool(cursor)
    return (str(cursor) if cursor else None), bool(has_next)


def format_price(cents: int) -> str:
    if cents <= 0:
        return "Free"
    return f"${cents / 100:.2f}/mo"


def plan_display_title(plan: Plan, product_title: Optional[str] = None) -> str:
    """Human readable plan name, e.g. ``"Voice Agent - Scale - $149.95/mo"``."""

    product_title = product_title if product_title is not None else (plan.product_title or "")
    price_label = format_price(plan.price)
    name = (plan.title or "").strip()

    if name and "$" not in name and "/mo" not in name:
        if product_title:
            return f"{product_title} - {name} - {price_label}"
        return f"{name} - {price_label}"
    if name and (name.startswith("$") or name.endswith("/mo")):
        return f"{product_title} - {name}" if product_title else name
    if not name:
        return f"{product_title} - {price_label}" if product_title else price_label
    return name


__all__ = [
    "first_present",
    "first_truthy",
    "format_price",
    "membership_from_payload",
    "page_cursor",
    "page_items",
    "parse_optional_datetime",
    "parse_plan_type",
    "plan_display_title",
    "plan_from_payload",
    "product_from_payload",
    "to_cents",
]
