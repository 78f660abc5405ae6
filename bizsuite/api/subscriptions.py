"""Passkey redemption endpoint.

POST /v1/subscriptions/redeem moves an organization from
pending_activation to onboarding.  Only an admin of that organization
(or a platform super admin) may redeem for it, and each caller gets a
small token bucket so passkeys cannot be guessed at speed.

Refusals come back as ``{"success": false, "error": <code>}`` with a
status that matches the code.
"""

from __future__ import annotations

import logging
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field

from bizsuite.api import stores
from bizsuite.api.dependencies import require_user
from bizsuite.api.ratelimit import require_rate_limit
from bizsuite.middleware.request_context import org_id_var
from bizsuite.models.principal import Principal
from bizsuite.models.role import highest_role
from bizsuite.services import subscription_service
from bizsuite.services.policy import authorize
from bizsuite.services.rate_limiter import REDEEM_LIMIT

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/v1/subscriptions", tags=["subscriptions"])

_ERROR_STATUS = {
    "invalid_passkey": status.HTTP_400_BAD_REQUEST,
    "key_not_found": status.HTTP_404_NOT_FOUND,
    "key_revoked": status.HTTP_409_CONFLICT,
    "key_expired": status.HTTP_409_CONFLICT,
    "key_exhausted": status.HTTP_409_CONFLICT,
    "organization_not_eligible": status.HTTP_409_CONFLICT,
}


class RedeemIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    passkey: str = ""
    organization_id: UUID = Field(alias="organizationId")


class RedeemOut(BaseModel):
    success: bool
    plan: str
    enabledModules: list[str]


def _refusal(code: str) -> JSONResponse:
    return JSONResponse(
        status_code=_ERROR_STATUS.get(code, status.HTTP_400_BAD_REQUEST),
        content={"success": False, "error": code},
    )


@router.post(
    "/redeem",
    response_model=RedeemOut,
    dependencies=[Depends(require_rate_limit(REDEEM_LIMIT))],
)
async def redeem(
    body: RedeemIn,
    principal: Annotated[Principal, Depends(require_user)],
):
    org_id = body.organization_id
    org_id_var.set(str(org_id))

    if not body.passkey.strip():
        return _refusal("invalid_passkey")

    if not principal.is_super_admin():
        async with stores.tenant_store.transaction() as tx:
            role = highest_role(await tx.get_roles(org_id, principal.user_id))
        if not authorize(role, org_id, org_id, "org.subscription.redeem"):
            logger.warning(
                "Redemption denied: user=%s role=%s org=%s",
                principal.user_id,
                role,
                org_id,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only organization admins can activate a subscription",
            )

    try:
        result = await subscription_service.redeem(
            stores.tenant_store,
            body.passkey,
            org_id,
            redeemed_by=principal.user_id,
        )
    except subscription_service.SubscriptionError as exc:
        return _refusal(exc.code)

    return RedeemOut(
        success=True, plan=result.plan, enabledModules=list(result.enabled_modules)
    )
