"""Inbound webhook payload schemas."""
from __future__ import annotations

from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, StringConstraints


def _coerce_id(value: Any) -> Any:
    if isinstance(value, (int, str)) and not isinstance(value, bool):
        return str(value).strip()
    return value


Identifier = Annotated[str, BeforeValidator(_coerce_id), StringConstraints(min_length=1)]
OptionalIdentifier = Annotated[Optional[str], BeforeValidator(_coerce_id)]


def _id_or_none(value: Any) -> Optional[str]:
    value = _coerce_id(value)
    return value if isinstance(value, str) and value else None


# Fallback ids that are ignored, not rejected, when malformed.
LenientIdentifier = Annotated[Optional[str], BeforeValidator(_id_or_none)]


class EntityRef(BaseModel):
    """Any nested entity of an event; only its identifier is required."""

    id: Identifier

    model_config = ConfigDict(extra="allow")


class MembershipRef(EntityRef):
    company_id: OptionalIdentifier = None
    company: Optional[EntityRef] = None


class MembershipActivatedData(BaseModel):
    membership: MembershipRef
    user: EntityRef
    product: EntityRef
    plan: EntityRef

    model_config = ConfigDict(extra="allow")


class WebhookEnvelope(BaseModel):
    """Outer shape shared by every event the platform delivers.

    Only ``type`` is checked here; the rest of the body is validated once the
    event is known to be one the service handles.
    """

    type: Optional[str] = None
    company_id: Any = None
    data: Any = None

    model_config = ConfigDict(extra="allow")


class MembershipActivatedEvent(BaseModel):
    company_id: LenientIdentifier = None
    data: MembershipActivatedData

    model_config = ConfigDict(extra="allow")


class WebhookAck(BaseModel):
    received: bool = True
    dispatched: bool = False
