"""Notification dispatch and inbox endpoints."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Annotated, Any
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from bizsuite.api import stores
from bizsuite.api.dependencies import org_id_of, require_org_permission, require_user
from bizsuite.api.ratelimit import require_rate_limit
from bizsuite.models.notification import Notification
from bizsuite.models.principal import Principal
from bizsuite.services.notification_service import (
    InvalidPayloadError,
    SourceRecordError,
    UnknownEventError,
)
from bizsuite.services.rate_limiter import DISPATCH_LIMIT

logger = logging.getLogger(__name__)

router = APIRouter(tags=["notifications"])

_can_dispatch = require_org_permission("notifications.dispatch", stores.tenant_store)


class DispatchIn(BaseModel):
    type: str
    payload: dict[str, Any] = Field(default_factory=dict)


class DispatchOut(BaseModel):
    success: bool
    notified: int
    emailed: int


class NotificationOut(BaseModel):
    id: str
    org_id: str
    title: str
    message: str
    type: str
    link: str | None
    is_read: bool
    created_at: datetime


def _out(n: Notification) -> NotificationOut:
    return NotificationOut(
        id=str(n.id),
        org_id=str(n.org_id),
        title=n.title,
        message=n.message,
        type=n.type,
        link=n.link,
        is_read=n.is_read,
        created_at=n.created_at,
    )


@router.post(
    "/v1/orgs/{org_id}/notifications/dispatch",
    response_model=DispatchOut,
    dependencies=[Depends(require_rate_limit(DISPATCH_LIMIT))],
)
async def dispatch(
    body: DispatchIn,
    principal: Annotated[Principal, Depends(_can_dispatch)],
):
    """Write in-app notifications for one event, then try email.

    Not idempotent: dispatching the same event twice notifies twice.
    """
    org_id = org_id_of(principal)
    try:
        result = await stores.dispatcher.dispatch(org_id, body.type, body.payload)
    except (UnknownEventError, InvalidPayloadError) as exc:
        return JSONResponse(status_code=400, content={"error": str(exc)})
    except SourceRecordError as exc:
        logger.error("Dispatch source missing type=%s: %s", body.type, exc)
        return JSONResponse(status_code=500, content={"error": str(exc)})
    except Exception:
        logger.exception("Dispatch failed type=%s org=%s", body.type, org_id)
        return JSONResponse(
            status_code=500, content={"error": "Failed to write notifications"}
        )

    return DispatchOut(success=True, notified=result.notified, emailed=result.emailed)


@router.get("/v1/notifications", response_model=list[NotificationOut])
async def list_notifications(
    principal: Annotated[Principal, Depends(require_user)],
    org_id: UUID | None = None,
) -> list[NotificationOut]:
    found = await stores.notification_repo.list_for_user(principal.user_id, org_id)
    return [_out(n) for n in found]


@router.post("/v1/notifications/{notification_id}/read", response_model=NotificationOut)
async def mark_read(
    notification_id: UUID,
    principal: Annotated[Principal, Depends(require_user)],
) -> NotificationOut:
    updated = await stores.notification_repo.mark_read(
        notification_id, principal.user_id
    )
    if updated is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND, detail="notification not found"
        )
    return _out(updated)
