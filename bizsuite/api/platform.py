"""Platform administration: subscription keys and organization suspension.

Every route requires the ``super_admin`` platform role.  The plaintext
passkey appears in exactly one response, the one that creates it.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from bizsuite.api import stores
from bizsuite.api.dependencies import require_super_admin
from bizsuite.api.orgs import OrgOut, org_out
from bizsuite.api.ratelimit import require_rate_limit
from bizsuite.models.organization import LifecycleError
from bizsuite.models.principal import Principal
from bizsuite.models.subscription import SubscriptionKey
from bizsuite.services import org_service, subscription_service
from bizsuite.services.rate_limiter import PLATFORM_LIMIT

router = APIRouter(
    prefix="/v1/platform",
    tags=["platform"],
    dependencies=[Depends(require_rate_limit(PLATFORM_LIMIT))],
)


class KeyCreateIn(BaseModel):
    plan: str
    enabled_modules: list[str]
    max_uses: int = Field(default=1, ge=1)
    expires_at: datetime | None = None


class KeyOut(BaseModel):
    id: str
    plan: str
    max_uses: int
    used_count: int
    enabled_modules: list[str]
    status: str
    expires_at: datetime | None
    created_by: str
    created_at: datetime


class IssuedKeyOut(BaseModel):
    key: KeyOut
    passkey: str


def _key_out(key: SubscriptionKey, now: datetime) -> KeyOut:
    return KeyOut(
        id=str(key.id),
        plan=key.plan,
        max_uses=key.max_uses,
        used_count=key.used_count,
        enabled_modules=sorted(key.enabled_modules),
        status=key.effective_status(now),
        expires_at=key.expires_at,
        created_by=key.created_by,
        created_at=key.created_at,
    )


# --- Subscription keys ---


@router.post("/keys", response_model=IssuedKeyOut, status_code=status.HTTP_201_CREATED)
async def create_key(
    body: KeyCreateIn,
    principal: Annotated[Principal, Depends(require_super_admin)],
) -> IssuedKeyOut:
    try:
        issued = await subscription_service.issue_key(
            stores.tenant_store,
            plan=body.plan,
            enabled_modules=set(body.enabled_modules),
            created_by=principal.user_id,
            max_uses=body.max_uses,
            expires_at=body.expires_at,
        )
    except subscription_service.SubscriptionError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from None
    return IssuedKeyOut(
        key=_key_out(issued.key, datetime.now(UTC)), passkey=issued.passkey
    )


@router.get("/keys", response_model=list[KeyOut])
async def list_keys(
    _principal: Annotated[Principal, Depends(require_super_admin)],
) -> list[KeyOut]:
    now = datetime.now(UTC)
    keys = await subscription_service.list_keys(stores.tenant_store)
    return [_key_out(k, now) for k in keys]


@router.post("/keys/{key_id}/revoke", response_model=KeyOut)
async def revoke_key(
    key_id: UUID,
    principal: Annotated[Principal, Depends(require_super_admin)],
) -> KeyOut:
    try:
        key = await subscription_service.revoke_key(
            stores.tenant_store, key_id, revoked_by=principal.user_id
        )
    except subscription_service.SubscriptionError as exc:
        raise HTTPException(status_code=404, detail=exc.code) from None
    return _key_out(key, datetime.now(UTC))


# --- Organizations ---


@router.get("/orgs", response_model=list[OrgOut])
async def list_orgs(
    _principal: Annotated[Principal, Depends(require_super_admin)],
) -> list[OrgOut]:
    orgs = await org_service.list_organizations(stores.tenant_store)
    return [org_out(o) for o in orgs]


@router.post("/orgs/{org_id}/suspend", response_model=OrgOut)
async def suspend_org(
    org_id: UUID,
    principal: Annotated[Principal, Depends(require_super_admin)],
) -> OrgOut:
    try:
        org = await org_service.suspend(
            stores.tenant_store, org_id, actor_id=principal.user_id
        )
    except org_service.OrganizationNotFound:
        raise HTTPException(status_code=404, detail="organization not found") from None
    except LifecycleError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from None
    return org_out(org)


@router.post("/orgs/{org_id}/reinstate", response_model=OrgOut)
async def reinstate_org(
    org_id: UUID,
    principal: Annotated[Principal, Depends(require_super_admin)],
) -> OrgOut:
    try:
        org = await org_service.reinstate(
            stores.tenant_store, org_id, actor_id=principal.user_id
        )
    except org_service.OrganizationNotFound:
        raise HTTPException(status_code=404, detail="organization not found") from None
    except LifecycleError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from None
    return org_out(org)
