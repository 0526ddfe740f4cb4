"""Errors raised while ingesting and reconciling membership events."""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from fastapi import status

from ..billing_api.exceptions import UpstreamApiError
from ..persistence import StoreUnavailableError


@dataclass
class WebhookValidationError(Exception):
    """A webhook delivery is malformed and must not be processed."""

    message: str
    code: str = "invalid_payload"
    status_code: int = status.HTTP_400_BAD_REQUEST
    detail: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    @property
    def payload(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"error": self.code, "message": self.message}
        if self.detail:
            body.update(self.detail)
        return body


__all__ = ["StoreUnavailableError", "UpstreamApiError", "WebhookValidationError"]
