"""
Revoked token store.

Logged-out tokens are remembered by their ``jti`` until they would have
expired anyway. The store is constructed once at application start and
handed to request handlers through a dependency, so a shared backend can
replace the in-memory one without touching call sites.
"""
import threading
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Dict


class RevokedTokenStore(ABC):
    """Interface for revoked token storage."""

    @abstractmethod
    def revoke(self, jti: str, expires_at: datetime) -> None:
        """Mark ``jti`` as revoked until ``expires_at``."""

    @abstractmethod
    def is_revoked(self, jti: str) -> bool:
        """True if ``jti`` is revoked and not yet expired."""


class InMemoryRevokedTokenStore(RevokedTokenStore):
    """Process-local store. Only suitable for a single worker."""

    def __init__(self):
        self._revoked: Dict[str, datetime] = {}
        self._lock = threading.Lock()

    def revoke(self, jti: str, expires_at: datetime) -> None:
        if not jti:
            return
        with self._lock:
            self._revoked[jti] = expires_at

    def is_revoked(self, jti: str) -> bool:
        if not jti:
            return False
        now = datetime.now(timezone.utc)
        with self._lock:
            self._prune(now)
            expires_at = self._revoked.get(jti)
        return expires_at is not None and expires_at > now

    def _prune(self, now: datetime) -> None:
        expired = [jti for jti, expires_at in self._revoked.items() if expires_at <= now]
        for jti in expired:
            del self._revoked[jti]

    def __len__(self):
        with self._lock:
            return len(self._revoked)
