"""Persistence for activity logs."""
from __future__ import annotations

from typing import List, Protocol

from ..persistence import PostgresRepository
from .models import ActivityLog, ActivityStatus


class ActivityRepository(Protocol):
    """Append-only store of :class:`ActivityLog` rows."""

    def insert(self, entry: ActivityLog) -> ActivityLog:
        ...

    def list_recent(self, company_id: str, *, limit: int = 5) -> List[ActivityLog]:
        ...


def _row_to_activity(row: dict) -> ActivityLog:
    return ActivityLog(
        id=str(row["id"]),
        company_id=row["company_id"],
        user_id=row["user_id"],
        product_id=row["product_id"],
        old_plan_id=row.get("old_plan_id"),
        old_plan_name=row.get("old_plan_name"),
        new_plan_id=row["new_plan_id"],
        new_plan_name=row.get("new_plan_name"),
        status=ActivityStatus(row["status"]),
        error_message=row.get("error_message"),
        created_at=row["created_at"],
    )


class PostgresActivityRepository(PostgresRepository):
    """Concrete repository persisting activity logs in PostgreSQL."""

    def insert(self, entry: ActivityLog) -> ActivityLog:
        with self._cursor() as cursor:
            cursor.execute(
                """
                INSERT INTO activity_logs (
                    company_id,
                    user_id,
                    product_id,
                    old_plan_id,
                    old_plan_name,
                    new_plan_id,
                    new_plan_name,
                    status,
                    error_message,
                    created_at
                )
                VALUES (%(company_id)s, %(user_id)s, %(product_id)s, %(old_plan_id)s,
                        %(old_plan_name)s, %(new_plan_id)s, %(new_plan_name)s, %(status)s,
                        %(error_message)s, %(created_at)s)
                RETURNING *
                """,
                {
                    "company_id": entry.company_id,
                    "user_id": entry.user_id,
                    "product_id": entry.product_id,
                    "old_plan_id": entry.old_plan_id,
                    "old_plan_name": entry.old_plan_name,
                    "new_plan_id": entry.new_plan_id,
                    "new_plan_name": entry.new_plan_name,
                    "status": entry.status.value,
                    "error_message": entry.error_message,
                    "created_at": entry.created_at,
                },
            )
            row = cursor.fetchone()
            if not row:
                raise RuntimeError("Failed to persist activity log")
            return _row_to_activity(row)

    def list_recent(self, company_id: str, *, limit: int = 5) -> List[ActivityLog]:
        with self._cursor() as cursor:
            cursor.execute(
                """
                SELECT *
                FROM activity_logs
                WHERE company_id = %s
                ORDER BY created_at DESC
                LIMIT %s
                """,
                (company_id, limit),
            )
            return [_row_to_activity(row) for row in cursor.fetchall()]
