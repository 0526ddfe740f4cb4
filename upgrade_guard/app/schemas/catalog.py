"""API schemas for product and plan listings."""
from __future__ import annotations

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from ..billing_api.mapping import plan_display_title
from ..billing_api.models import Plan, PlanType, Product


class ProductItem(BaseModel):
    id: str
    title: str
    plan_count: int = Field(alias="planCount", default=0)

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_product(cls, product: Product, *, plan_count: int) -> "ProductItem":
        return cls(id=product.id, title=product.title, plan_count=plan_count)


class ProductListResponse(BaseModel):
    products: List[ProductItem]


class PlanItem(BaseModel):
    id: str
    title: str
    product_id: str = Field(alias="productId")
    plan_type: PlanType = Field(alias="planType")
    initial_price: int = Field(alias="initialPrice")
    renewal_price: int = Field(alias="renewalPrice")
    price: int

    model_config = ConfigDict(populate_by_name=True)

    @classmethod
    def from_plan(cls, plan: Plan, *, product_title: Optional[str] = None) -> "PlanItem":
        return cls(
            id=plan.id,
            title=plan_display_title(plan, product_title),
            product_id=plan.product_id,
            plan_type=plan.plan_type,
            initial_price=plan.initial_price,
            renewal_price=plan.renewal_price,
            price=plan.price,
        )


class PlanListResponse(BaseModel):
    plans: List[PlanItem]
