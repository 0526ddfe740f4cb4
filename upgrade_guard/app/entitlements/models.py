"""Entitlement check results."""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

CUSTOMER_ACCESS_LEVEL = "customer"
UNRESTRICTED_ACCESS_LEVEL = "unrestricted"


class AccessResult(BaseModel):
    """Whether a user holds an active relationship to the gating product."""

    has_access: bool = Field(alias="hasAccess")
    access_level: Optional[str] = Field(default=None, alias="accessLevel")

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    @classmethod
    def denied(cls) -> "AccessResult":
        return cls(has_access=False, access_level=None)
