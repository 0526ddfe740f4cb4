"""Per-product upgrade automation policy."""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from ..billing_api.models import CancellationTiming


class ProductConfig(BaseModel):
    """Automation rules for one (company, product) pair.

    A missing row means the product was never configured; it resolves to
    :func:`default_config`, which is disabled.
    """

    company_id: str
    product_id: str
    enabled: bool = False
    ignore_free_plans: bool = False
    treat_same_price_as_upgrade: bool = False
    allow_downgrade_to_cancel: bool = False
    cancellation_timing: CancellationTiming = CancellationTiming.PERIOD_END
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    model_config = ConfigDict(populate_by_name=True, frozen=True)


def default_config(company_id: str, product_id: str) -> ProductConfig:
    """The canonical policy for a product with no stored configuration."""

    return ProductConfig(company_id=company_id, product_id=product_id)


def resolve_config(
    company_id: str,
    product_id: str,
    stored: Optional[ProductConfig],
) -> Tuple[ProductConfig, bool]:
    """Return ``(effective_config, configured)``."""

    if stored is None:
        return default_config(company_id, product_id), False
    return stored, True
