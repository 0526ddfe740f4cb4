"""Errors raised by the billing API client."""
from __future__ import annotations

from typing import Optional


class UpstreamApiError(Exception):
    """A read against the billing platform did not succeed.

    ``status_code`` is ``None`` when no HTTP response was received
    (timeouts, connection failures).
    """

    def __init__(self, operation: str, status_code: Optional[int], body: str = "") -> None:
        self.operation = operation
        self.status_code = status_code
        self.body = body
        status_label = status_code if status_code is not None else "no response"
        super().__init__(f"Failed to {operation}: {status_label} {body}".rstrip())

    @property
    def is_transient(self) -> bool:
        return self.status_code is None or self.status_code == 429 or self.status_code >= 500


class BillingApiConfigurationError(ValueError):
    """The client cannot be built from the current settings."""


__all__ = ["BillingApiConfigurationError", "UpstreamApiError"]
