"""API routes for per-product automation rules."""
from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, status

from ..persistence import StoreUnavailableError
from ..policies.models import resolve_config
from ..schemas.policies import (
    ConfiguredProductsResponse,
    RulesResponse,
    SaveRulesRequest,
    SaveRulesResponse,
)
from ..services import reconciliation as reconciliation_services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["rules"])


def _store_unavailable(exc: StoreUnavailableError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc))


@router.get("/rules", response_model=RulesResponse)
def get_rules(
    company_id: str = Query(alias="companyId", min_length=1),
    product_id: str = Query(alias="productId", min_length=1),
) -> RulesResponse:
    repository = reconciliation_services.get_policy_repository()
    try:
        stored = repository.get_config(company_id, product_id)
    except StoreUnavailableError as exc:
        logger.error("Failed to load product rules", extra={"company_id": company_id, "product_id": product_id})
        raise _store_unavailable(exc) from exc

    config, configured = resolve_config(company_id, product_id, stored)
    return RulesResponse.from_config(config, configured=configured)


@router.post("/rules", response_model=SaveRulesResponse)
def save_rules(payload: SaveRulesRequest) -> SaveRulesResponse:
    repository = reconciliation_services.get_policy_repository()
    config = payload.to_config()
    try:
        repository.save_config(config)
    except StoreUnavailableError as exc:
        logger.error(
            "Failed to save product rules",
            extra={"company_id": payload.company_id, "product_id": payload.product_id},
        )
        raise _store_unavailable(exc) from exc

    logger.info(
        "Product rules saved",
        extra={"company_id": config.company_id, "product_id": config.product_id, "enabled": config.enabled},
    )
    return SaveRulesResponse(success=True)


@router.get("/configs", response_model=ConfiguredProductsResponse)
def list_configured_products(
    company_id: str = Query(alias="companyId", min_length=1),
) -> ConfiguredProductsResponse:
    repository = reconciliation_services.get_policy_repository()
    try:
        product_ids = repository.list_configured_product_ids(company_id)
    except StoreUnavailableError as exc:
        raise _store_unavailable(exc) from exc
    return ConfiguredProductsResponse(configured_product_ids=product_ids)
