"""Organization creation and platform-level suspension.

A new organization starts in ``pending_activation`` with its creator as
the only admin.  Suspension and reinstatement are platform operations:
suspend remembers the state it interrupted and reinstate returns there,
never further forward.
"""

from __future__ import annotations

import logging
from uuid import UUID

from bizsuite.core.metrics import LIFECYCLE_TRANSITIONS
from bizsuite.models.audit import AuditEntry
from bizsuite.models.organization import LifecycleError, Organization
from bizsuite.models.role import ADMIN
from bizsuite.repos.tenant_store import TenantStore

logger = logging.getLogger(__name__)


class OrganizationNotFound(LookupError):
    pass


async def create_organization(
    store: TenantStore, *, name: str, created_by: str
) -> Organization:
    name = name.strip()
    if not name:
        raise ValueError("name must be non-empty")
    org = Organization.new(name=name)
    async with store.transaction() as tx:
        await tx.add_org(org)
        await tx.set_roles(org.id, created_by, [ADMIN])
    logger.info("Organization created id=%s by=%s", org.id, created_by)
    return org


async def get_organization(store: TenantStore, org_id: UUID) -> Organization | None:
    async with store.transaction() as tx:
        return await tx.get_org(org_id)


async def list_organizations(store: TenantStore) -> list[Organization]:
    async with store.transaction() as tx:
        return await tx.list_orgs()


async def suspend(store: TenantStore, org_id: UUID, *, actor_id: str) -> Organization:
    async with store.transaction() as tx:
        org = await tx.get_org(org_id, for_update=True)
        if org is None:
            raise OrganizationNotFound(str(org_id))
        suspended = org.suspend()
        await tx.save_org(suspended)
        await tx.add_audit(
            AuditEntry.record(
                actor_id=actor_id,
                action="organization_suspended",
                entity_type="organization",
                entity_id=str(org_id),
                org_id=org_id,
                metadata={"from": org.lifecycle},
            )
        )

    LIFECYCLE_TRANSITIONS.labels(
        from_state=org.lifecycle, to_state=suspended.lifecycle
    ).inc()
    logger.warning("Organization suspended id=%s was=%s", org_id, org.lifecycle)
    return suspended


async def reinstate(
    store: TenantStore, org_id: UUID, *, actor_id: str
) -> Organization:
    async with store.transaction() as tx:
        org = await tx.get_org(org_id, for_update=True)
        if org is None:
            raise OrganizationNotFound(str(org_id))
        restored = org.reinstate()
        await tx.save_org(restored)
        await tx.add_audit(
            AuditEntry.record(
                actor_id=actor_id,
                action="organization_reinstated",
                entity_type="organization",
                entity_id=str(org_id),
                org_id=org_id,
                metadata={"to": restored.lifecycle},
            )
        )

    LIFECYCLE_TRANSITIONS.labels(
        from_state=org.lifecycle, to_state=restored.lifecycle
    ).inc()
    logger.info("Organization reinstated id=%s to=%s", org_id, restored.lifecycle)
    return restored
