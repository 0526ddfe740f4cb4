"""Billing platform integration: models, payload mapping, and REST client."""

from .client import BillingApiClient
from .exceptions import BillingApiConfigurationError, UpstreamApiError
from .mapping import plan_display_title, to_cents
from .models import (
    ACTIVE_STATUSES,
    CancellationTiming,
    Membership,
    MembershipStatus,
    Plan,
    PlanType,
    Product,
)

__all__ = [
    "ACTIVE_STATUSES",
    "BillingApiClient",
    "BillingApiConfigurationError",
    "CancellationTiming",
    "Membership",
    "MembershipStatus",
    "Plan",
    "PlanType",
    "Product",
    "UpstreamApiError",
    "plan_display_title",
    "to_cents",
]
