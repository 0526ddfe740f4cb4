"""Access gating for tenants of the automation."""

from .cache import AccessCache, InMemoryAccessCache
from .models import AccessResult
from .service import AccessCheckService, MembershipLister

__all__ = [
    "AccessCache",
    "AccessCheckService",
    "AccessResult",
    "InMemoryAccessCache",
    "MembershipLister",
]
