"""Persistence for product automation policies."""
from __future__ import annotations

from typing import List, Optional, Protocol

from ..billing_api.models import CancellationTiming
from ..persistence import PostgresRepository
from .models import ProductConfig


class PolicyRepository(Protocol):
    """Read/write access to :class:`ProductConfig` rows."""

    def get_config(self, company_id: str, product_id: str) -> Optional[ProductConfig]:
        ...

    def save_config(self, config: ProductConfig) -> ProductConfig:
        ...

    def list_configured_product_ids(self, company_id: str) -> List[str]:
        ...


def _row_to_config(row: dict) -> ProductConfig:
    return ProductConfig(
        company_id=row["company_id"],
        product_id=row["product_id"],
        enabled=bool(row["enabled"]),
        ignore_free_plans=bool(row["ignore_free_plans"]),
        treat_same_price_as_upgrade=bool(row["treat_same_price_as_upgrade"]),
        allow_downgrade_to_cancel=bool(row["allow_downgrade_to_cancel"]),
        cancellation_timing=CancellationTiming(row["cancellation_timing"]),
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


class PostgresPolicyRepository(PostgresRepository):
    """Concrete repository persisting product configs in PostgreSQL."""

    def get_config(self, company_id: str, product_id: str) -> Optional[ProductConfig]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT *
                FROM product_configs
                WHERE company_id = %s AND product_id = %s
                LIMIT 1
                """,
                (company_id, product_id),
            )
            row = cursor.fetchone()
            return _row_to_config(row) if row else None

    def save_config(self, config: ProductConfig) -> ProductConfig:
        """Insert or update the config for its (company, product) pair."""

        with self._cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO product_configs (
                    company_id,
                    product_id,
                    enabled,
                    ignore_free_plans,
                    treat_same_price_as_upgrade,
                    allow_downgrade_to_cancel,
                    cancellation_timing
                )
                VALUES (%(company_id)s, %(product_id)s, %(enabled)s, %(ignore_free_plans)s,
                        %(treat_same_price_as_upgrade)s, %(allow_downgrade_to_cancel)s,
                        %(cancellation_timing)s)
                ON CONFLICT (company_id, product_id) DO UPDATE SET
                    enabled = EXCLUDED.enabled,
                    ignore_free_plans = EXCLUDED.ignore_free_plans,
                    treat_same_price_as_upgrade = EXCLUDED.treat_same_price_as_upgrade,
                    allow_downgrade_to_cancel = EXCLUDED.allow_downgrade_to_cancel,
                    cancellation_timing = EXCLUDED.cancellation_timing,
                    updated_at = NOW()
                RETURNING *
                """,
                {
                    "company_id": config.company_id,
                    "product_id": config.product_id,
                    "enabled": config.enabled,
                    "ignore_free_plans": config.ignore_free_plans,
                    "treat_same_price_as_upgrade": config.treat_same_price_as_upgrade,
                    "allow_downgrade_to_cancel": config.allow_downgrade_to_cancel,
                    "cancellation_timing": config.cancellation_timing.value,
                },
            )
            row = cursor.fetchone()
            if not row:
                raise RuntimeError("Failed to persist product config")
            return _row_to_config(row)

    def list_configured_product_ids(self, company_id: str) -> List[str]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT product_id
                FROM product_configs
                WHERE company_id = %s
                ORDER BY product_id
                """,
                (company_id,),
            )
            return [row["product_id"] for row in cursor.fetchall()]
