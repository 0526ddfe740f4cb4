"""API schemas for product rule endpoints."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..billing_api.models import CancellationTiming
from ..policies.models import ProductConfig


class AdvancedRules(BaseModel):
    ignore_free_plans: bool = Field(alias="ignoreFreePlans", default=False)
    treat_same_price_as_upgrade: bool = Field(alias="treatSamePriceAsUpgrade", default=False)
    allow_downgrade_to_cancel: bool = Field(alias="allowDowngradeToCancel", default=False)

    model_config = ConfigDict(populate_by_name=True)


class RulesResponse(BaseModel):
    enabled: bool
    configured: bool
    cancellation_timing: CancellationTiming = Field(alias="cancellationTiming")
    advanced_rules: AdvancedRules = Field(alias="advancedRules")

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_config(cls, config: ProductConfig, *, configured: bool) -> "RulesResponse":
        return cls(
            enabled=config.enabled,
            configured=configured,
            cancellation_timing=config.cancellation_timing,
            advanced_rules=AdvancedRules(
                ignore_free_plans=config.ignore_free_plans,
                treat_same_price_as_upgrade=config.treat_same_price_as_upgrade,
                allow_downgrade_to_cancel=config.allow_downgrade_to_cancel,
            ),
        )


class SaveRulesRequest(BaseModel):
    company_id: str = Field(alias="companyId", min_length=1)
    product_id: str = Field(alias="productId", min_length=1)
    enabled: Optional[bool] = None
    cancellation_timing: Optional[CancellationTiming] = Field(alias="cancellationTiming", default=None)
    advanced_rules: Optional[AdvancedRules] = Field(alias="advancedRules", default=None)

    model_config = ConfigDict(populate_by_name=True)

    def to_config(self) -> ProductConfig:
        """Saving opts the product in unless ``enabled`` is explicitly false."""

        rules = self.advanced_rules or AdvancedRules()
        return ProductConfig(
            company_id=self.company_id,
            product_id=self.product_id,
            enabled=True if self.enabled is None else self.enabled,
            ignore_free_plans=rules.ignore_free_plans,
            treat_same_price_as_upgrade=rules.treat_same_price_as_upgrade,
            allow_downgrade_to_cancel=rules.allow_downgrade_to_cancel,
            cancellation_timing=self.cancellation_timing or CancellationTiming.PERIOD_END,
        )


class SaveRulesResponse(BaseModel):
    success: bool = True


class ConfiguredProductsResponse(BaseModel):
    configured_product_ids: List[str] = Field(alias="configuredProductIds")

    model_config = ConfigDict(populate_by_name=True)
