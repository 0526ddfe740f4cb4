"""Domain models for entities owned by the billing platform."""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class PlanType(str, Enum):
    """Billing cadence of a plan."""

    RENEWAL = "renewal"
    ONE_TIME = "one-time"


class MembershipStatus(str, Enum):
    """Lifecycle states reported for a membership."""

    ACTIVE = "active"
    TRIALING = "trialing"
    PAST_DUE = "past_due"
    CANCELED = "canceled"
    COMPLETED = "completed"
    EXPIRED = "expired"
    UNRESOLVED = "unresolved"
    DRAFTED = "drafted"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: object) -> "MembershipStatus":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNKNOWN


ACTIVE_STATUSES = (MembershipStatus.ACTIVE, MembershipStatus.TRIALING)
TERMINAL_STATUSES = frozenset(
    {MembershipStatus.CANCELED, MembershipStatus.COMPLETED, MembershipStatus.EXPIRED}
)


class CancellationTiming(str, Enum):
    """When a superseded membership stops."""

    IMMEDIATE = "immediate"
    PERIOD_END = "period_end"


class Product(BaseModel):
    """A sellable offering grouping one or more plans."""

    id: str
    title: str = ""
    company_id: Optional[str] = None

    model_config = ConfigDict(populate_by_name=True, frozen=True)


class Plan(BaseModel):
    """A priced tier of a product. Prices are integer cents."""

    id: str
    title: Optional[str] = None
    product_id: str = ""
    product_title: Optional[str] = None
    plan_type: PlanType = PlanType.RENEWAL
    initial_price: int = Field(default=0, ge=0)
    renewal_price: int = Field(default=0, ge=0)

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def price(self) -> int:
        """Price used for tier comparison, in cents."""
        return self.renewal_price or self.initial_price or 0

    @property
    def is_renewal(self) -> bool:
        return self.plan_type == PlanType.RENEWAL


class Membership(BaseModel):
    """A subscriber's instance of a plan."""

    id: str
    user_id: str = ""
    product_id: str = ""
    plan_id: str = ""
    company_id: Optional[str] = None
    status: MembershipStatus = MembershipStatus.UNKNOWN
    canceled_at: Optional[datetime] = None
    cancel_at_period_end: bool = False

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_STATUSES and self.canceled_at is None

    @property
    def is_cancellation_settled(self) -> bool:
        """``True`` once a cancel request has nothing left to do."""
        return self.status in TERMINAL_STATUSES or self.cancel_at_period_end
