"""Append-only audit trail of reconciliation outcomes."""

from .logger import ActivityLogger
from .models import ActivityLog, ActivityStatus
from .repository import ActivityRepository, PostgresActivityRepository

__all__ = [
    "ActivityLog",
    "ActivityLogger",
    "ActivityRepository",
    "ActivityStatus",
    "PostgresActivityRepository",
]
