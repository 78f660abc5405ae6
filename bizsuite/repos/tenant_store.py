"""Privileged store for tenant lifecycle state.

Everything the lifecycle procedures touch (organizations, subscription
keys, redemption records, audit entries, role assignments and the
onboarding defaults) is read and written through one transaction
object, so a procedure either commits all of its writes or none.

This is the elevated-privilege accessor.  Only the procedures in
bizsuite/services/ and the org-scoped dependencies use it; ordinary
user-scoped reads (workforce records, notifications) have their own
repositories.

InMemoryTenantStore serializes transactions with an asyncio.Lock and
restores a snapshot when the transaction body raises.
PgTenantStore (pg_tenant_store.py) uses a database transaction with
SELECT ... FOR UPDATE on the contended rows.
"""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass, field, fields
from datetime import date
from typing import Protocol
from uuid import UUID

from bizsuite.models.audit import AuditEntry
from bizsuite.models.ledger import (
    ApprovalWorkflow,
    ComplianceSettings,
    FiscalYear,
    LedgerAccount,
)
from bizsuite.models.organization import Organization
from bizsuite.models.subscription import RedemptionRecord, SubscriptionKey


class TenantTransaction(Protocol):
    # --- organizations ---
    async def get_org(
        self, org_id: UUID, *, for_update: bool = False
    ) -> Organization | None: ...
    async def add_org(self, org: Organization) -> None: ...
    async def save_org(self, org: Organization) -> None: ...
    async def list_orgs(self) -> list[Organization]: ...

    # --- subscription keys ---
    async def get_key(
        self, key_id: UUID, *, for_update: bool = False
    ) -> SubscriptionKey | None: ...
    async def get_key_by_hash(
        self, key_hash: str, *, for_update: bool = False
    ) -> SubscriptionKey | None: ...
    async def add_key(self, key: SubscriptionKey) -> None: ...
    async def save_key(self, key: SubscriptionKey) -> None: ...
    async def list_keys(self) -> list[SubscriptionKey]: ...

    # --- append-only trails ---
    async def add_redemption(self, record: RedemptionRecord) -> None: ...
    async def list_redemptions(
        self, org_id: UUID | None = None
    ) -> list[RedemptionRecord]: ...
    async def add_audit(self, entry: AuditEntry) -> None: ...
    async def list_audit(self, org_id: UUID | None = None) -> list[AuditEntry]: ...

    # --- role assignments ---
    async def get_roles(self, org_id: UUID, user_id: str) -> list[str]: ...
    async def set_roles(self, org_id: UUID, user_id: str, roles: list[str]) -> None: ...
    async def remove_roles(self, org_id: UUID, user_id: str) -> bool: ...
    async def list_members(self, org_id: UUID) -> dict[str, list[str]]: ...

    # --- onboarding defaults ---
    async def has_account(self, org_id: UUID, code: str) -> bool: ...
    async def add_account(self, account: LedgerAccount) -> None: ...
    async def count_accounts(self, org_id: UUID) -> int: ...
    async def has_fiscal_year(self, org_id: UUID, start_date: date) -> bool: ...
    async def add_fiscal_year(self, fiscal_year: FiscalYear) -> None: ...
    async def has_workflow(self, org_id: UUID, workflow_type: str) -> bool: ...
    async def add_workflow(self, workflow: ApprovalWorkflow) -> None: ...
    async def get_compliance(self, org_id: UUID) -> ComplianceSettings | None: ...
    async def save_compliance(self, settings: ComplianceSettings) -> None: ...


class TenantStore(Protocol):
    def transaction(self) -> AbstractAsyncContextManager[TenantTransaction]: ...


@dataclass
class _TenantData:
    orgs: dict[UUID, Organization] = field(default_factory=dict)
    keys: dict[UUID, SubscriptionKey] = field(default_factory=dict)
    redemptions: list[RedemptionRecord] = field(default_factory=list)
    audit: list[AuditEntry] = field(default_factory=list)
    roles: dict[tuple[UUID, str], tuple[str, ...]] = field(default_factory=dict)
    accounts: dict[tuple[UUID, str], LedgerAccount] = field(default_factory=dict)
    fiscal_years: dict[tuple[UUID, date], FiscalYear] = field(default_factory=dict)
    workflows: dict[tuple[UUID, str], ApprovalWorkflow] = field(default_factory=dict)
    compliance: dict[UUID, ComplianceSettings] = field(default_factory=dict)

    def snapshot(self) -> dict[str, object]:
        # Values are frozen dataclasses/tuples; copying the containers suffices.
        return {f.name: getattr(self, f.name).copy() for f in fields(self)}

    def restore(self, snapshot: dict[str, object]) -> None:
        for name, value in snapshot.items():
            setattr(self, name, value)

    def clear(self) -> None:
        for f in fields(self):
            getattr(self, f.name).clear()


class InMemoryTenantTransaction:
    def __init__(self, data: _TenantData) -> None:
        self._data = data

    async def get_org(
        self, org_id: UUID, *, for_update: bool = False
    ) -> Organization | None:
        return self._data.orgs.get(org_id)

    async def add_org(self, org: Organization) -> None:
        if org.id in self._data.orgs:
            raise ValueError("organization already exists")
        self._data.orgs[org.id] = org

    async def save_org(self, org: Organization) -> None:
        self._data.orgs[org.id] = org

    async def list_orgs(self) -> list[Organization]:
        return sorted(self._data.orgs.values(), key=lambda o: o.name)

    async def get_key(
        self, key_id: UUID, *, for_update: bool = False
    ) -> SubscriptionKey | None:
        return self._data.keys.get(key_id)

    async def get_key_by_hash(
        self, key_hash: str, *, for_update: bool = False
    ) -> SubscriptionKey | None:
        for key in self._data.keys.values():
            if key.key_hash == key_hash:
                return key
        return None

    async def add_key(self, key: SubscriptionKey) -> None:
        if any(k.key_hash == key.key_hash for k in self._data.keys.values()):
            raise ValueError("key hash already exists")
        self._data.keys[key.id] = key

    async def save_key(self, key: SubscriptionKey) -> None:
        self._data.keys[key.id] = key

    async def list_keys(self) -> list[SubscriptionKey]:
        return sorted(self._data.keys.values(), key=lambda k: k.created_at)

    async def add_redemption(self, record: RedemptionRecord) -> None:
        self._data.redemptions.append(record)

    async def list_redemptions(
        self, org_id: UUID | None = None
    ) -> list[RedemptionRecord]:
        return [r for r in self._data.redemptions if org_id in (None, r.org_id)]

    async def add_audit(self, entry: AuditEntry) -> None:
        self._data.audit.append(entry)

    async def list_audit(self, org_id: UUID | None = None) -> list[AuditEntry]:
        return [e for e in self._data.audit if org_id in (None, e.org_id)]

    async def get_roles(self, org_id: UUID, user_id: str) -> list[str]:
        return list(self._data.roles.get((org_id, user_id), ()))

    async def set_roles(self, org_id: UUID, user_id: str, roles: list[str]) -> None:
        self._data.roles[(org_id, user_id)] = tuple(roles)

    async def remove_roles(self, org_id: UUID, user_id: str) -> bool:
        return self._data.roles.pop((org_id, user_id), None) is not None

    async def list_members(self, org_id: UUID) -> dict[str, list[str]]:
        return {
            user_id: list(roles)
            for (oid, user_id), roles in self._data.roles.items()
            if oid == org_id
        }

    async def has_account(self, org_id: UUID, code: str) -> bool:
        return (org_id, code) in self._data.accounts

    async def add_account(self, account: LedgerAccount) -> None:
        self._data.accounts[(account.org_id, account.code)] = account

    async def count_accounts(self, org_id: UUID) -> int:
        return sum(1 for oid, _ in self._data.accounts if oid == org_id)

    async def has_fiscal_year(self, org_id: UUID, start_date: date) -> bool:
        return (org_id, start_date) in self._data.fiscal_years

    async def add_fiscal_year(self, fiscal_year: FiscalYear) -> None:
        key = (fiscal_year.org_id, fiscal_year.start_date)
        self._data.fiscal_years[key] = fiscal_year

    async def has_workflow(self, org_id: UUID, workflow_type: str) -> bool:
        return (org_id, workflow_type) in self._data.workflows

    async def add_workflow(self, workflow: ApprovalWorkflow) -> None:
        self._data.workflows[(workflow.org_id, workflow.workflow_type)] = workflow

    async def get_compliance(self, org_id: UUID) -> ComplianceSettings | None:
        return self._data.compliance.get(org_id)

    async def save_compliance(self, settings: ComplianceSettings) -> None:
        self._data.compliance[settings.org_id] = settings


class InMemoryTenantStore:
    """Single-process store for dev/test.

    One lock covers the whole store, which is stricter than the row locks
    the PostgreSQL store takes but gives the same guarantee: two
    transactions never interleave their check-then-act sequences.
    """

    def __init__(self) -> None:
        self._data = _TenantData()
        self._lock: asyncio.Lock | None = None
        self._lock_loop: asyncio.AbstractEventLoop | None = None

    def _get_lock(self) -> asyncio.Lock:
        # asyncio.Lock binds to the loop that first awaits it; TestClient and
        # asyncio.run() each bring a fresh loop.
        loop = asyncio.get_running_loop()
        if self._lock is None or self._lock_loop is not loop:
            self._lock = asyncio.Lock()
            self._lock_loop = loop
        return self._lock

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[InMemoryTenantTransaction]:
        async with self._get_lock():
            snapshot = self._data.snapshot()
            try:
                yield InMemoryTenantTransaction(self._data)
            except BaseException:
                self._data.restore(snapshot)
                raise
