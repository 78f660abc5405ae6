"""Navigation check endpoint.

The front end asks before rendering a page: POST /v1/navigation/check
with the destination path and, when the user has one, their
organization.  The server assembles the NavigationContext from the
token, the organization's lifecycle and the caller's stored roles, and
returns the route guard's decision.

An organization the caller does not belong to is treated as no
organization at all, so the response never reveals another tenant's
lifecycle state.
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel, ConfigDict, Field

from bizsuite.api import stores
from bizsuite.api.dependencies import optional_user
from bizsuite.api.sessions import apply_preview, load_role_session, preview_enabled
from bizsuite.core.metrics import GUARD_DECISIONS
from bizsuite.middleware.request_context import org_id_var
from bizsuite.models.principal import Principal
from bizsuite.services.role_session import RoleSession
from bizsuite.services.route_guard import NavigationContext, evaluate_navigation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/navigation", tags=["navigation"])


class NavigationIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    path: str = Field(min_length=1)
    organization_id: UUID | None = Field(default=None, alias="organizationId")


class NavigationOut(BaseModel):
    outcome: str
    stage: str
    trail: list[str]
    redirect_to: str | None = None
    from_path: str | None = None
    reason: str | None = None
    message: str | None = None
    allowed_roles: list[str] = []


@router.post("/check", response_model=NavigationOut)
async def check_navigation(
    body: NavigationIn,
    principal: Annotated[Principal | None, Depends(optional_user)],
    x_preview_role: Annotated[str | None, Header()] = None,
) -> NavigationOut:
    # A developer preview without a token passes the auth gate in dev mode only.
    preview_session = (
        principal is None
        and x_preview_role is not None
        and preview_enabled()
    )

    lifecycle: str | None = None
    modules: frozenset[str] = frozenset()
    session = RoleSession.resolved([])

    if principal is not None and body.organization_id is not None:
        org_id = body.organization_id
        org_id_var.set(str(org_id))
        async with stores.tenant_store.transaction() as tx:
            org = await tx.get_org(org_id)
            is_member = bool(await tx.get_roles(org_id, principal.user_id))
        if org is not None and (is_member or principal.is_super_admin()):
            lifecycle = org.lifecycle
            modules = org.enabled_modules
            session = await load_role_session(org_id, principal.user_id)

    try:
        view = apply_preview(session, x_preview_role)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from None

    decision = evaluate_navigation(
        NavigationContext(
            path=body.path,
            authenticated=principal is not None,
            preview_session=preview_session,
            is_super_admin=principal is not None and principal.is_super_admin(),
            lifecycle=lifecycle,
            enabled_modules=modules,
            role_status=view.status,
            effective_role=view.effective_role,
        )
    )

    GUARD_DECISIONS.labels(outcome=decision.outcome, stage=decision.stage).inc()
    logger.debug(
        "Navigation path=%s outcome=%s reason=%s",
        body.path,
        decision.outcome,
        decision.reason,
    )
    return NavigationOut(
        outcome=decision.outcome,
        stage=decision.stage,
        trail=list(decision.trail),
        redirect_to=decision.redirect_to,
        from_path=decision.from_path,
        reason=decision.reason,
        message=decision.message,
        allowed_roles=list(decision.allowed_roles),
    )
