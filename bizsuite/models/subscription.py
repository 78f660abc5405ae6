from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

KEY_ACTIVE = "active"
KEY_REVOKED = "revoked"
KEY_EXPIRED = "expired"


@dataclass(frozen=True, slots=True)
class SubscriptionKey:
    """An activation key as stored. The plaintext passkey is never kept.

    ``status`` holds only stored transitions: active, revoked, or expired
    once ``used_count`` reaches ``max_uses``.  Time-based expiry is
    derived on read by effective_status().
    """

    id: UUID
    key_hash: str
    plan: str
    max_uses: int
    enabled_modules: frozenset[str]
    created_by: str
    created_at: datetime
    used_count: int = 0
    expires_at: datetime | None = None
    status: str = KEY_ACTIVE

    def is_exhausted(self) -> bool:
        return self.used_count >= self.max_uses

    def is_past_expiry(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def effective_status(self, now: datetime) -> str:
        if self.status == KEY_ACTIVE and self.is_past_expiry(now):
            return KEY_EXPIRED
        return self.status


@dataclass(frozen=True, slots=True)
class RedemptionRecord:
    """Append-only link between a key and the organization that redeemed it."""

    id: UUID
    key_id: UUID
    org_id: UUID
    redeemed_by: str
    redeemed_at: datetime
