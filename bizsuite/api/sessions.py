"""Role session endpoint for the front end.

GET /v1/orgs/{org_id}/session reports the caller's actual role, the role
the UI should render as, and that role's permission list.

DEVELOPER PREVIEW
-------------------
With DEV_MODE on, an ``X-Preview-Role`` header renders the session as
another role.  The preview module is imported only in that case; in any
other deployment ``_preview_session_cls`` is None, the header is logged
and ignored, and the reported effective role is always the stored one.
Server-side authorization never looks at this endpoint's output.
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Header, HTTPException
from pydantic import BaseModel

from bizsuite.api import stores
from bizsuite.api.dependencies import require_user
from bizsuite.core.config import SETTINGS
from bizsuite.core.metrics import PREVIEW_ROLE_REQUESTS
from bizsuite.models.principal import Principal
from bizsuite.services import role_service
from bizsuite.services.policy import permissions_for
from bizsuite.services.role_session import RoleSession

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/orgs", tags=["sessions"])

if SETTINGS.dev_mode:
    from bizsuite.services.role_preview import PreviewRoleSession

    _preview_session_cls: type[PreviewRoleSession] | None = PreviewRoleSession
else:
    _preview_session_cls = None


class RoleGrantOut(BaseModel):
    role: str
    priority: int


class SessionOut(BaseModel):
    status: str
    actual_role: str | None
    effective_role: str | None
    is_impersonating: bool
    available_roles: list[str]
    roles: list[RoleGrantOut]
    permissions: list[str]


def preview_enabled() -> bool:
    return _preview_session_cls is not None


async def load_role_session(org_id: UUID, user_id: str) -> RoleSession:
    """Stored roles as a session; a failed fetch yields no role at all."""
    try:
        grants = await role_service.fetch_roles(stores.tenant_store, org_id, user_id)
    except Exception:
        logger.exception("Role fetch failed org=%s user=%s", org_id, user_id)
        return RoleSession.failed()
    return RoleSession.resolved(grants)


def apply_preview(session: RoleSession, preview_role: str | None):
    """Wrap ``session`` in a preview when dev mode allows it.

    Raises ValueError for a preview role that does not exist.
    """
    if preview_role is None:
        return session
    if _preview_session_cls is None:
        PREVIEW_ROLE_REQUESTS.labels(handling="ignored").inc()
        logger.warning("Preview role header ignored outside dev mode")
        return session
    preview = _preview_session_cls(session)
    preview.set_active_role(preview_role)
    PREVIEW_ROLE_REQUESTS.labels(handling="applied").inc()
    return preview


@router.get("/{org_id}/session", response_model=SessionOut)
async def get_session(
    org_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
    x_preview_role: Annotated[str | None, Header()] = None,
) -> SessionOut:
    base = await load_role_session(org_id, principal.user_id)
    try:
        session = apply_preview(base, x_preview_role)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from None

    return SessionOut(
        status=session.status,
        actual_role=session.actual_role,
        effective_role=session.effective_role,
        is_impersonating=session.is_impersonating,
        available_roles=list(session.available_roles),
        roles=[RoleGrantOut(role=g.role, priority=g.priority) for g in base.grants],
        permissions=sorted(permissions_for(session.effective_role)),
    )
