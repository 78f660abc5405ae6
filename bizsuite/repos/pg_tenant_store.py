"""PostgreSQL implementation of TenantStore.

Each transaction() call opens one AsyncSession and one database
transaction; the body's writes commit together when it exits and roll
back together when it raises.  ``for_update=True`` reads issue
SELECT ... FOR UPDATE so two redemptions of the same key queue behind
each other instead of both passing the usage check.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import date
from uuid import UUID

from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bizsuite.db.tables import (
    ApprovalWorkflowRow,
    AuditLogRow,
    ComplianceSettingsRow,
    FiscalYearRow,
    LedgerAccountRow,
    OrganizationRow,
    SubscriptionKeyRow,
    SubscriptionRedemptionRow,
    UserRoleRow,
)
from bizsuite.models.audit import AuditEntry
from bizsuite.models.ledger import (
    ApprovalWorkflow,
    ComplianceSettings,
    FiscalYear,
    LedgerAccount,
)
from bizsuite.models.organization import Organization
from bizsuite.models.subscription import RedemptionRecord, SubscriptionKey


class PgTenantTransaction:
    """Satisfies the TenantTransaction Protocol on one AsyncSession."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    # --- organizations ---

    async def get_org(
        self, org_id: UUID, *, for_update: bool = False
    ) -> Organization | None:
        stmt = select(OrganizationRow).where(OrganizationRow.id == org_id)
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_org(row) if row is not None else None

    async def add_org(self, org: Organization) -> None:
        self._session.add(
            OrganizationRow(
                id=org.id,
                name=org.name,
                lifecycle=org.lifecycle,
                enabled_modules=sorted(org.enabled_modules),
                plan=org.plan,
                created_at=org.created_at,
                suspended_from=org.suspended_from,
            )
        )
        await self._session.flush()

    async def save_org(self, org: Organization) -> None:
        row = await self._session.get(OrganizationRow, org.id)
        if row is None:
            await self.add_org(org)
            return
        row.name = org.name
        row.lifecycle = org.lifecycle
        row.enabled_modules = sorted(org.enabled_modules)
        row.plan = org.plan
        row.suspended_from = org.suspended_from
        await self._session.flush()

    async def list_orgs(self) -> list[Organization]:
        stmt = select(OrganizationRow).order_by(OrganizationRow.name)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_org(r) for r in rows]

    # --- subscription keys ---

    async def get_key(
        self, key_id: UUID, *, for_update: bool = False
    ) -> SubscriptionKey | None:
        stmt = select(SubscriptionKeyRow).where(SubscriptionKeyRow.id == key_id)
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_key(row) if row is not None else None

    async def get_key_by_hash(
        self, key_hash: str, *, for_update: bool = False
    ) -> SubscriptionKey | None:
        stmt = select(SubscriptionKeyRow).where(SubscriptionKeyRow.key_hash == key_hash)
        if for_update:
            stmt = stmt.with_for_update()
        row = (await self._session.execute(stmt)).scalar_one_or_none()
        return _row_to_key(row) if row is not None else None

    async def add_key(self, key: SubscriptionKey) -> None:
        self._session.add(
            SubscriptionKeyRow(
                id=key.id,
                key_hash=key.key_hash,
                plan=key.plan,
                max_uses=key.max_uses,
                used_count=key.used_count,
                expires_at=key.expires_at,
                enabled_modules=sorted(key.enabled_modules),
                created_by=key.created_by,
                created_at=key.created_at,
                status=key.status,
            )
        )
        await self._session.flush()

    async def save_key(self, key: SubscriptionKey) -> None:
        row = await self._session.get(SubscriptionKeyRow, key.id)
        if row is None:
            await self.add_key(key)
            return
        row.used_count = key.used_count
        row.status = key.status
        row.expires_at = key.expires_at
        await self._session.flush()

    async def list_keys(self) -> list[SubscriptionKey]:
        stmt = select(SubscriptionKeyRow).order_by(SubscriptionKeyRow.created_at)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [_row_to_key(r) for r in rows]

    # --- append-only trails ---

    async def add_redemption(self, record: RedemptionRecord) -> None:
        self._session.add(
            SubscriptionRedemptionRow(
                id=record.id,
                key_id=record.key_id,
                org_id=record.org_id,
                redeemed_by=record.redeemed_by,
                redeemed_at=record.redeemed_at,
            )
        )
        await self._session.flush()

    async def list_redemptions(
        self, org_id: UUID | None = None
    ) -> list[RedemptionRecord]:
        stmt = select(SubscriptionRedemptionRow).order_by(
            SubscriptionRedemptionRow.redeemed_at
        )
        if org_id is not None:
            stmt = stmt.where(SubscriptionRedemptionRow.org_id == org_id)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [
            RedemptionRecord(
                id=r.id,
                key_id=r.key_id,
                org_id=r.org_id,
                redeemed_by=r.redeemed_by,
                redeemed_at=r.redeemed_at,
            )
            for r in rows
        ]

    async def add_audit(self, entry: AuditEntry) -> None:
        self._session.add(
            AuditLogRow(
                id=entry.id,
                actor_id=entry.actor_id,
                action=entry.action,
                entity_type=entry.entity_type,
                entity_id=entry.entity_id,
                org_id=entry.org_id,
                details=dict(entry.metadata),
                created_at=entry.created_at,
            )
        )
        await self._session.flush()

    async def list_audit(self, org_id: UUID | None = None) -> list[AuditEntry]:
        stmt = select(AuditLogRow).order_by(AuditLogRow.created_at)
        if org_id is not None:
            stmt = stmt.where(AuditLogRow.org_id == org_id)
        rows = (await self._session.execute(stmt)).scalars().all()
        return [
            AuditEntry(
                id=r.id,
                actor_id=r.actor_id,
                action=r.action,
                entity_type=r.entity_type,
                entity_id=r.entity_id,
                org_id=r.org_id,
                created_at=r.created_at,
                metadata=dict(r.details or {}),
            )
            for r in rows
        ]

    # --- role assignments ---

    async def get_roles(self, org_id: UUID, user_id: str) -> list[str]:
        stmt = select(UserRoleRow.role).where(
            UserRoleRow.org_id == org_id, UserRoleRow.user_id == user_id
        )
        return list((await self._session.execute(stmt)).scalars().all())

    async def set_roles(self, org_id: UUID, user_id: str, roles: list[str]) -> None:
        await self._session.execute(
            delete(UserRoleRow).where(
                UserRoleRow.org_id == org_id, UserRoleRow.user_id == user_id
            )
        )
        for role in roles:
            self._session.add(UserRoleRow(org_id=org_id, user_id=user_id, role=role))
        await self._session.flush()

    async def remove_roles(self, org_id: UUID, user_id: str) -> bool:
        result = await self._session.execute(
            delete(UserRoleRow).where(
                UserRoleRow.org_id == org_id, UserRoleRow.user_id == user_id
            )
        )
        return result.rowcount > 0

    async def list_members(self, org_id: UUID) -> dict[str, list[str]]:
        stmt = select(UserRoleRow).where(UserRoleRow.org_id == org_id)
        members: dict[str, list[str]] = {}
        for row in (await self._session.execute(stmt)).scalars().all():
            members.setdefault(row.user_id, []).append(row.role)
        return members

    # --- onboarding defaults ---

    async def has_account(self, org_id: UUID, code: str) -> bool:
        row = await self._session.get(LedgerAccountRow, (org_id, code))
        return row is not None

    async def add_account(self, account: LedgerAccount) -> None:
        self._session.add(
            LedgerAccountRow(
                org_id=account.org_id,
                account_code=account.code,
                name=account.name,
                account_type=account.account_type,
            )
        )
        await self._session.flush()

    async def count_accounts(self, org_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(LedgerAccountRow)
            .where(LedgerAccountRow.org_id == org_id)
        )
        return int((await self._session.execute(stmt)).scalar_one())

    async def has_fiscal_year(self, org_id: UUID, start_date: date) -> bool:
        row = await self._session.get(FiscalYearRow, (org_id, start_date))
        return row is not None

    async def add_fiscal_year(self, fiscal_year: FiscalYear) -> None:
        self._session.add(
            FiscalYearRow(
                org_id=fiscal_year.org_id,
                start_date=fiscal_year.start_date,
                end_date=fiscal_year.end_date,
                name=fiscal_year.name,
                is_active=fiscal_year.is_active,
            )
        )
        await self._session.flush()

    async def has_workflow(self, org_id: UUID, workflow_type: str) -> bool:
        row = await self._session.get(ApprovalWorkflowRow, (org_id, workflow_type))
        return row is not None

    async def add_workflow(self, workflow: ApprovalWorkflow) -> None:
        self._session.add(
            ApprovalWorkflowRow(
                org_id=workflow.org_id,
                workflow_type=workflow.workflow_type,
                threshold_amount=workflow.threshold_amount,
                approver_role=workflow.approver_role,
            )
        )
        await self._session.flush()

    async def get_compliance(self, org_id: UUID) -> ComplianceSettings | None:
        row = await self._session.get(ComplianceSettingsRow, org_id)
        if row is None:
            return None
        return ComplianceSettings(
            org_id=row.org_id,
            gst_enabled=row.gst_enabled,
            tds_enabled=row.tds_enabled,
            pf_enabled=row.pf_enabled,
            esi_enabled=row.esi_enabled,
            working_days=tuple(row.working_days or ()),
        )

    async def save_compliance(self, settings: ComplianceSettings) -> None:
        await self._session.merge(
            ComplianceSettingsRow(
                org_id=settings.org_id,
                gst_enabled=settings.gst_enabled,
                tds_enabled=settings.tds_enabled,
                pf_enabled=settings.pf_enabled,
                esi_enabled=settings.esi_enabled,
                working_days=list(settings.working_days),
            )
        )
        await self._session.flush()


class PgTenantStore:
    """Satisfies the TenantStore Protocol using PostgreSQL via SQLAlchemy."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[PgTenantTransaction]:
        async with self._session_factory() as session:
            async with session.begin():
                yield PgTenantTransaction(session)


def _row_to_org(row: OrganizationRow) -> Organization:
    return Organization(
        id=row.id,
        name=row.name,
        lifecycle=row.lifecycle,
        enabled_modules=frozenset(row.enabled_modules or ()),
        plan=row.plan,
        created_at=row.created_at,
        suspended_from=row.suspended_from,
    )


def _row_to_key(row: SubscriptionKeyRow) -> SubscriptionKey:
    return SubscriptionKey(
        id=row.id,
        key_hash=row.key_hash,
        plan=row.plan,
        max_uses=row.max_uses,
        enabled_modules=frozenset(row.enabled_modules or ()),
        created_by=row.created_by,
        created_at=row.created_at,
        used_count=row.used_count,
        expires_at=row.expires_at,
        status=row.status,
    )
