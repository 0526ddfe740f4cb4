"""API routes listing the operator's products and plans."""
from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, status

from ..billing_api.exceptions import BillingApiConfigurationError, UpstreamApiError
from ..schemas.catalog import PlanItem, PlanListResponse, ProductItem, ProductListResponse
from ..services import reconciliation as reconciliation_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["catalog"])


def _client():
    try:
        return reconciliation_services.get_billing_client()
    except BillingApiConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc


def _bad_gateway(exc: UpstreamApiError) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail={"error": str(exc), "statusCode": exc.status_code},
    )


@router.get("/products", response_model=ProductListResponse)
def list_products(company_id: str = Query(alias="companyId", min_length=1)) -> ProductListResponse:
    client = _client()
    try:
        products = client.list_products(company_id)
    except UpstreamApiError as exc:
        logger.error("Failed to list products", extra={"company_id": company_id, "status_code": exc.status_code})
        raise _bad_gateway(exc) from exc

    items = []
    for product in products:
        try:
            plan_count = len(client.list_plans(company_id, product.id))
        except UpstreamApiError:
            logger.warning("Failed to count plans", extra={"product_id": product.id})
            plan_count = 0
        items.append(ProductItem.from_product(product, plan_count=plan_count))
    return ProductListResponse(products=items)


@router.get("/plans", response_model=PlanListResponse)
def list_plans(
    company_id: str = Query(alias="companyId", min_length=1),
    product_id: str = Query(alias="productId", min_length=1),
) -> PlanListResponse:
    client = _client()
    try:
        plans = client.list_plans(company_id, product_id)
        products = client.list_products(company_id)
    except UpstreamApiError as exc:
        logger.error(
            "Failed to list plans",
            extra={"company_id": company_id, "product_id": product_id, "status_code": exc.status_code},
        )
        raise _bad_gateway(exc) from exc

    product_title = next((product.title for product in products if product.id == product_id), "")
    return PlanListResponse(plans=[PlanItem.from_plan(plan, product_title=product_title) for plan in plans])
