"""Subscription key registry and the redemption procedure.

Keys are issued by platform administrators.  The plaintext passkey is
returned exactly once, at issue time; only its SHA-256 hex digest is
stored, so a leaked table cannot be replayed.

redeem() is the only path that moves an organization out of
pending_activation.  The usage check, the counter increment, the
organization transition, the redemption record and the audit entry all
happen inside one store transaction with the key and organization rows
locked, so two concurrent redemptions of a single-use key cannot both
succeed.
"""

from __future__ import annotations

import hashlib
import logging
import secrets
from dataclasses import dataclass, replace
from datetime import UTC, datetime
from uuid import UUID, uuid4

from bizsuite.core.metrics import LIFECYCLE_TRANSITIONS, REDEMPTIONS
from bizsuite.models.audit import AuditEntry
from bizsuite.models.organization import (
    FEATURE_MODULES,
    ONBOARDING,
    PENDING_ACTIVATION,
)
from bizsuite.models.subscription import (
    KEY_ACTIVE,
    KEY_EXPIRED,
    KEY_REVOKED,
    RedemptionRecord,
    SubscriptionKey,
)
from bizsuite.repos.tenant_store import TenantStore

logger = logging.getLogger(__name__)

# Unambiguous characters only: no 0/O or 1/I/L.
_PASSKEY_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
_PASSKEY_GROUPS = 4
_PASSKEY_GROUP_LEN = 4


class SubscriptionError(Exception):
    """A key operation was refused.  ``code`` is the stable error name
    returned to callers (key_not_found, key_revoked, key_expired,
    key_exhausted, organization_not_eligible, invalid_passkey,
    invalid_request)."""

    def __init__(self, code: str, message: str | None = None) -> None:
        super().__init__(message or code)
        self.code = code


@dataclass(frozen=True, slots=True)
class IssuedKey:
    key: SubscriptionKey
    passkey: str  # shown once, never stored


@dataclass(frozen=True, slots=True)
class RedemptionResult:
    org_id: UUID
    key_id: UUID
    plan: str
    enabled_modules: tuple[str, ...]


def hash_passkey(passkey: str) -> str:
    return hashlib.sha256(passkey.strip().encode("utf-8")).hexdigest()


def generate_passkey() -> str:
    groups = [
        "".join(secrets.choice(_PASSKEY_ALPHABET) for _ in range(_PASSKEY_GROUP_LEN))
        for _ in range(_PASSKEY_GROUPS)
    ]
    return "BZS-" + "-".join(groups)


async def issue_key(
    store: TenantStore,
    *,
    plan: str,
    enabled_modules: set[str] | frozenset[str],
    created_by: str,
    max_uses: int = 1,
    expires_at: datetime | None = None,
) -> IssuedKey:
    plan = plan.strip()
    if not plan:
        raise SubscriptionError("invalid_request", "plan must be non-empty")
    if max_uses < 1:
        raise SubscriptionError("invalid_request", "max_uses must be at least 1")
    modules = frozenset(enabled_modules)
    if not modules or not modules <= FEATURE_MODULES:
        raise SubscriptionError(
            "invalid_request",
            f"enabled_modules must be a non-empty subset of {sorted(FEATURE_MODULES)}",
        )

    passkey = generate_passkey()
    key = SubscriptionKey(
        id=uuid4(),
        key_hash=hash_passkey(passkey),
        plan=plan,
        max_uses=max_uses,
        enabled_modules=modules,
        created_by=created_by,
        created_at=datetime.now(UTC),
        expires_at=expires_at,
    )

    async with store.transaction() as tx:
        await tx.add_key(key)
        await tx.add_audit(
            AuditEntry.record(
                actor_id=created_by,
                action="subscription_key_created",
                entity_type="subscription_key",
                entity_id=str(key.id),
                org_id=None,
                metadata={
                    "plan": plan,
                    "max_uses": max_uses,
                    "enabled_modules": sorted(modules),
                },
            )
        )

    logger.info(
        "Issued subscription key id=%s plan=%s max_uses=%d by=%s",
        key.id,
        plan,
        max_uses,
        created_by,
    )
    return IssuedKey(key=key, passkey=passkey)


async def revoke_key(
    store: TenantStore, key_id: UUID, *, revoked_by: str
) -> SubscriptionKey:
    """Revoke a key.  Revoking an already-revoked key is a no-op."""
    async with store.transaction() as tx:
        key = await tx.get_key(key_id, for_update=True)
        if key is None:
            raise SubscriptionError("key_not_found")
        if key.status == KEY_REVOKED:
            return key
        revoked = replace(key, status=KEY_REVOKED)
        await tx.save_key(revoked)
        await tx.add_audit(
            AuditEntry.record(
                actor_id=revoked_by,
                action="subscription_key_revoked",
                entity_type="subscription_key",
                entity_id=str(key_id),
                org_id=None,
                metadata={"previous_status": key.status, "used_count": key.used_count},
            )
        )

    logger.info("Revoked subscription key id=%s by=%s", key_id, revoked_by)
    return revoked


async def list_keys(store: TenantStore) -> list[SubscriptionKey]:
    async with store.transaction() as tx:
        return await tx.list_keys()


async def redeem(
    store: TenantStore,
    passkey: str,
    org_id: UUID,
    *,
    redeemed_by: str,
    now: datetime | None = None,
) -> RedemptionResult:
    """Redeem ``passkey`` for ``org_id``; raises SubscriptionError on refusal."""
    try:
        result = await _redeem(store, passkey, org_id, redeemed_by, now)
    except SubscriptionError as exc:
        REDEMPTIONS.labels(result=exc.code).inc()
        logger.warning(
            "Redemption refused org=%s by=%s code=%s", org_id, redeemed_by, exc.code
        )
        raise

    REDEMPTIONS.labels(result="success").inc()
    LIFECYCLE_TRANSITIONS.labels(
        from_state=PENDING_ACTIVATION, to_state=ONBOARDING
    ).inc()
    logger.info(
        "Subscription activated org=%s key=%s plan=%s modules=%s",
        org_id,
        result.key_id,
        result.plan,
        ",".join(result.enabled_modules),
    )
    return result


async def _redeem(
    store: TenantStore,
    passkey: str,
    org_id: UUID,
    redeemed_by: str,
    now: datetime | None,
) -> RedemptionResult:
    if not passkey or not passkey.strip():
        raise SubscriptionError("invalid_passkey", "passkey must be non-empty")

    now = now or datetime.now(UTC)
    key_hash = hash_passkey(passkey)

    async with store.transaction() as tx:
        key = await tx.get_key_by_hash(key_hash, for_update=True)
        if key is None:
            raise SubscriptionError("key_not_found")
        if key.status == KEY_REVOKED:
            raise SubscriptionError("key_revoked")
        # A stored "expired" status is only ever set by reaching max_uses.
        if key.status == KEY_EXPIRED or key.is_exhausted():
            raise SubscriptionError("key_exhausted")
        if key.is_past_expiry(now):
            raise SubscriptionError("key_expired")

        org = await tx.get_org(org_id, for_update=True)
        if org is None or org.lifecycle != PENDING_ACTIVATION:
            raise SubscriptionError("organization_not_eligible")

        used_count = key.used_count + 1
        await tx.save_key(
            replace(
                key,
                used_count=used_count,
                status=KEY_EXPIRED if used_count >= key.max_uses else KEY_ACTIVE,
            )
        )
        await tx.save_org(
            replace(
                org.advance(ONBOARDING),
                enabled_modules=key.enabled_modules,
                plan=key.plan,
            )
        )
        await tx.add_redemption(
            RedemptionRecord(
                id=uuid4(),
                key_id=key.id,
                org_id=org_id,
                redeemed_by=redeemed_by,
                redeemed_at=now,
            )
        )
        await tx.add_audit(
            AuditEntry.record(
                actor_id=redeemed_by,
                action="subscription_activated",
                entity_type="organization",
                entity_id=str(org_id),
                org_id=org_id,
                metadata={
                    "plan": key.plan,
                    "source": "passkey",
                    "key_id": str(key.id),
                    "enabled_modules": sorted(key.enabled_modules),
                },
            )
        )

    return RedemptionResult(
        org_id=org_id,
        key_id=key.id,
        plan=key.plan,
        enabled_modules=tuple(sorted(key.enabled_modules)),
    )
