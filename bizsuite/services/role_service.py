"""Role assignment reads and admin-gated mutations.

Only organization admins may add members or change or remove role
assignments, and never their own: the check runs against the acting
identity inside the same transaction as the write.  The configured
platform-owner account is exempt from demotion and removal by anyone
but itself.
"""

from __future__ import annotations

import logging
from uuid import UUID

from bizsuite.core.config import SETTINGS
from bizsuite.core.metrics import ROLE_CHANGES
from bizsuite.models.audit import AuditEntry
from bizsuite.models.role import (
    ADMIN,
    DEFAULT_ROLE,
    ROLE_PRIORITY,
    RoleGrant,
    highest_role,
    rank_roles,
)
from bizsuite.repos.tenant_store import TenantStore

logger = logging.getLogger(__name__)


class RoleChangeError(Exception):
    """``code``: not_admin, self_role_change_forbidden, protected_account,
    member_not_found, invalid_role."""

    def __init__(self, code: str, message: str | None = None) -> None:
        super().__init__(message or code)
        self.code = code


async def fetch_roles(
    store: TenantStore, org_id: UUID, user_id: str
) -> list[RoleGrant]:
    """Stored roles for ``user_id``, highest priority first.

    A user with no assignment gets the lowest-privilege role.
    """
    async with store.transaction() as tx:
        roles = await tx.get_roles(org_id, user_id)
    ranked = rank_roles(roles)
    if not ranked:
        return [RoleGrant(role=DEFAULT_ROLE, priority=ROLE_PRIORITY[DEFAULT_ROLE])]
    return ranked


async def list_members(
    store: TenantStore, org_id: UUID
) -> list[tuple[str, list[RoleGrant]]]:
    async with store.transaction() as tx:
        members = await tx.list_members(org_id)
    return sorted(
        ((user_id, rank_roles(roles)) for user_id, roles in members.items()),
        key=lambda m: (-m[1][0].priority if m[1] else 0, m[0]),
    )


def _is_protected(user_id: str, actor_id: str, protected_id: str | None) -> bool:
    # Falls back to the configured platform-owner account.
    protected_id = protected_id or SETTINGS.protected_account_id
    if protected_id is None:
        return False
    return user_id == protected_id and actor_id != protected_id


async def set_role(
    store: TenantStore,
    org_id: UUID,
    *,
    actor_id: str,
    target_user_id: str,
    role: str,
    actor_is_super_admin: bool = False,
    protected_id: str | None = None,
) -> list[RoleGrant]:
    """Replace ``target_user_id``'s roles in ``org_id`` with ``role``.

    A user with no assignment yet is added to the organization.
    """
    try:
        if role not in ROLE_PRIORITY:
            raise RoleChangeError("invalid_role", f"unknown role {role!r}")
        if target_user_id == actor_id:
            raise RoleChangeError(
                "self_role_change_forbidden", "cannot change your own role"
            )
        if _is_protected(target_user_id, actor_id, protected_id):
            raise RoleChangeError(
                "protected_account", "this account cannot be modified"
            )

        async with store.transaction() as tx:
            actor_role = highest_role(await tx.get_roles(org_id, actor_id))
            if actor_role != ADMIN and not actor_is_super_admin:
                raise RoleChangeError("not_admin", "only admins can change roles")
            previous = await tx.get_roles(org_id, target_user_id)
            await tx.set_roles(org_id, target_user_id, [role])
            await tx.add_audit(
                AuditEntry.record(
                    actor_id=actor_id,
                    action="role_changed" if previous else "member_added",
                    entity_type="user_role",
                    entity_id=target_user_id,
                    org_id=org_id,
                    metadata={"from": sorted(previous), "to": role},
                )
            )
    except RoleChangeError as exc:
        ROLE_CHANGES.labels(operation="set_role", outcome=exc.code).inc()
        logger.warning(
            "Role change refused org=%s actor=%s target=%s code=%s",
            org_id,
            actor_id,
            target_user_id,
            exc.code,
        )
        raise

    ROLE_CHANGES.labels(operation="set_role", outcome="success").inc()
    logger.info(
        "Role changed org=%s actor=%s target=%s role=%s",
        org_id,
        actor_id,
        target_user_id,
        role,
    )
    return rank_roles([role])


async def remove_member(
    store: TenantStore,
    org_id: UUID,
    *,
    actor_id: str,
    target_user_id: str,
    actor_is_super_admin: bool = False,
    protected_id: str | None = None,
) -> None:
    try:
        if target_user_id == actor_id:
            raise RoleChangeError(
                "self_role_change_forbidden", "cannot remove yourself"
            )
        if _is_protected(target_user_id, actor_id, protected_id):
            raise RoleChangeError(
                "protected_account", "this account cannot be removed"
            )

        async with store.transaction() as tx:
            actor_role = highest_role(await tx.get_roles(org_id, actor_id))
            if actor_role != ADMIN and not actor_is_super_admin:
                raise RoleChangeError("not_admin", "only admins can remove members")
            previous = await tx.get_roles(org_id, target_user_id)
            if not await tx.remove_roles(org_id, target_user_id):
                raise RoleChangeError("member_not_found")
            await tx.add_audit(
                AuditEntry.record(
                    actor_id=actor_id,
                    action="member_removed",
                    entity_type="user_role",
                    entity_id=target_user_id,
                    org_id=org_id,
                    metadata={"roles": sorted(previous)},
                )
            )
    except RoleChangeError as exc:
        ROLE_CHANGES.labels(operation="remove_member", outcome=exc.code).inc()
        logger.warning(
            "Member removal refused org=%s actor=%s target=%s code=%s",
            org_id,
            actor_id,
            target_user_id,
            exc.code,
        )
        raise

    ROLE_CHANGES.labels(operation="remove_member", outcome="success").inc()
    logger.info(
        "Member removed org=%s actor=%s target=%s", org_id, actor_id, target_user_id
    )
