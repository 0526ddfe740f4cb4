"""Cache abstractions for access check results."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from threading import Lock
from typing import Dict, Iterable, Optional, Protocol

from .models import AccessResult


class AccessCache(Protocol):
    """Protocol describing cache operations used by the access check."""

    def get(self, key: str) -> Optional[AccessResult]:
        ...

    def set(self, key: str, value: AccessResult, expires_at: datetime) -> None:
        ...

    def invalidate(self, keys: Iterable[str]) -> None:
        ...


@dataclass
class _CacheEntry:
    value: AccessResult
    expires_at: datetime

    def is_expired(self, now: datetime) -> bool:
        return now >= self.expires_at


class InMemoryAccessCache:
    """Process-local cache shared by concurrent webhook requests."""

    def __init__(self) -> None:
        self._entries: Dict[str, _CacheEntry] = {}
        self._lock = Lock()

    def get(self, key: str) -> Optional[AccessResult]:
        now = datetime.now(timezone.utc)
        with self._lock:
            entry = self._entries.get(key)
            if not entry:
                return None
            if entry.is_expired(now):
                self._entries.pop(key, None)
                return None
            return entry.value

    def set(self, key: str, value: AccessResult, expires_at: datetime) -> None:
        now = datetime.now(timezone.utc)
        if expires_at <= now:
            return
        with self._lock:
            self._entries[key] = _CacheEntry(value=value, expires_at=expires_at)

    def invalidate(self, keys: Iterable[str]) -> None:
        with self._lock:
            for key in keys:
                self._entries.pop(key, None)
