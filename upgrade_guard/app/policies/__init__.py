"""Per-product automation policy storage."""

from .models import ProductConfig, default_config, resolve_config
from .repository import PolicyRepository, PostgresPolicyRepository

__all__ = [
    "PolicyRepository",
    "PostgresPolicyRepository",
    "ProductConfig",
    "default_config",
    "resolve_config",
]
