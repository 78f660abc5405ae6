"""Organization, membership and onboarding endpoints.

Org context comes from the URL path and is checked against the role
store on every request (see resolve_org_principal).  Role mutations are
additionally checked inside role_service, in the same transaction as the
write, so the admin test cannot go stale between check and act.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from bizsuite.api import stores
from bizsuite.api.dependencies import (
    org_id_of,
    require_org_permission,
    require_user,
    resolve_org_principal,
)
from bizsuite.models.organization import Organization
from bizsuite.models.principal import Principal
from bizsuite.models.role import RoleGrant
from bizsuite.services import onboarding_service, org_service, role_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/orgs", tags=["orgs"])

_resolve_org = resolve_org_principal(stores.tenant_store)
_can_read_members = require_org_permission("org.members.read", stores.tenant_store)
_can_complete_onboarding = require_org_permission(
    "org.onboarding.complete", stores.tenant_store
)

_ROLE_ERROR_STATUS = {
    "not_admin": status.HTTP_403_FORBIDDEN,
    "self_role_change_forbidden": status.HTTP_403_FORBIDDEN,
    "protected_account": status.HTTP_403_FORBIDDEN,
    "member_not_found": status.HTTP_404_NOT_FOUND,
    "invalid_role": status.HTTP_422_UNPROCESSABLE_ENTITY,
}

_ONBOARDING_ERROR_STATUS = {
    "organization_not_found": status.HTTP_404_NOT_FOUND,
    "organization_not_in_onboarding": status.HTTP_409_CONFLICT,
}


# --- Pydantic schemas ---


class OrgCreateIn(BaseModel):
    name: str = Field(min_length=1, max_length=255)


class OrgOut(BaseModel):
    id: str
    name: str
    lifecycle: str
    plan: str | None
    enabled_modules: list[str]
    created_at: datetime | None


class RoleGrantOut(BaseModel):
    role: str
    priority: int


class MemberOut(BaseModel):
    user_id: str
    role: str
    roles: list[RoleGrantOut]


class UpdateRoleIn(BaseModel):
    role: str


class OnboardingOut(BaseModel):
    success: bool
    appliedDefaults: list[str]


def org_out(org: Organization) -> OrgOut:
    return OrgOut(
        id=str(org.id),
        name=org.name,
        lifecycle=org.lifecycle,
        plan=org.plan,
        enabled_modules=sorted(org.enabled_modules),
        created_at=org.created_at,
    )


def _grants_out(grants: list[RoleGrant]) -> list[RoleGrantOut]:
    return [RoleGrantOut(role=g.role, priority=g.priority) for g in grants]


# --- Endpoints ---


@router.post("", response_model=OrgOut, status_code=status.HTTP_201_CREATED)
async def create_org(
    body: OrgCreateIn,
    principal: Annotated[Principal, Depends(require_user)],
) -> OrgOut:
    """Create an organization awaiting activation; the creator becomes admin."""
    try:
        org = await org_service.create_organization(
            stores.tenant_store, name=body.name, created_by=principal.user_id
        )
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from None
    return org_out(org)


@router.get("/{org_id}", response_model=OrgOut)
async def get_org(
    principal: Annotated[Principal, Depends(_resolve_org)],
) -> OrgOut:
    org = await org_service.get_organization(stores.tenant_store, org_id_of(principal))
    if org is None:
        raise HTTPException(status_code=404, detail="organization not found")
    return org_out(org)


@router.get("/{org_id}/members", response_model=list[MemberOut])
async def list_members(
    principal: Annotated[Principal, Depends(_can_read_members)],
) -> list[MemberOut]:
    members = await role_service.list_members(stores.tenant_store, org_id_of(principal))
    return [
        MemberOut(user_id=user_id, role=grants[0].role, roles=_grants_out(grants))
        for user_id, grants in members
        if grants
    ]


@router.put("/{org_id}/members/{user_id}/role", response_model=MemberOut)
async def update_member_role(
    user_id: str,
    body: UpdateRoleIn,
    principal: Annotated[Principal, Depends(_resolve_org)],
) -> MemberOut:
    try:
        grants = await role_service.set_role(
            stores.tenant_store,
            org_id_of(principal),
            actor_id=principal.user_id,
            target_user_id=user_id,
            role=body.role,
            actor_is_super_admin=principal.is_super_admin(),
        )
    except role_service.RoleChangeError as exc:
        raise HTTPException(
            status_code=_ROLE_ERROR_STATUS.get(exc.code, 400), detail=exc.code
        ) from None
    return MemberOut(user_id=user_id, role=grants[0].role, roles=_grants_out(grants))


@router.delete("/{org_id}/members/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def remove_member(
    user_id: str,
    principal: Annotated[Principal, Depends(_resolve_org)],
) -> None:
    try:
        await role_service.remove_member(
            stores.tenant_store,
            org_id_of(principal),
            actor_id=principal.user_id,
            target_user_id=user_id,
            actor_is_super_admin=principal.is_super_admin(),
        )
    except role_service.RoleChangeError as exc:
        raise HTTPException(
            status_code=_ROLE_ERROR_STATUS.get(exc.code, 400), detail=exc.code
        ) from None


@router.get("/{org_id}/roles/me", response_model=list[RoleGrantOut])
async def my_roles(
    org_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
) -> list[RoleGrantOut]:
    """Caller's stored roles, highest first; no assignment reads as employee."""
    grants = await role_service.fetch_roles(
        stores.tenant_store, org_id, principal.user_id
    )
    return _grants_out(grants)


@router.post("/{org_id}/onboarding/complete", response_model=OnboardingOut)
async def complete_onboarding(
    principal: Annotated[Principal, Depends(_can_complete_onboarding)],
):
    try:
        result = await onboarding_service.complete_onboarding(
            stores.tenant_store, org_id_of(principal), completed_by=principal.user_id
        )
    except onboarding_service.OnboardingError as exc:
        return JSONResponse(
            status_code=_ONBOARDING_ERROR_STATUS.get(exc.code, 400),
            content={"success": False, "error": exc.code},
        )
    return OnboardingOut(success=True, appliedDefaults=list(result.applied_defaults))
