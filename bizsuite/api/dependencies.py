"""Authentication and tenant-scoping dependencies.

require_user turns a bearer token into a Principal carrying platform
roles only.  Tenant access goes through resolve_org_principal, which
reads the caller's assignments from the role store on every request
and sets ``Principal.org_role`` to the highest stored role.  Nothing the
client sends (a previewed role, a role claim in the token) can raise
that value.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Annotated
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer

from bizsuite.middleware.request_context import org_id_var, user_id_var
from bizsuite.models.principal import Principal
from bizsuite.models.role import ADMIN, highest_role
from bizsuite.repos.tenant_store import TenantStore
from bizsuite.services import token_service
from bizsuite.services.policy import authorize

logger = logging.getLogger(__name__)

# Tokens are issued by the identity provider; tokenUrl only feeds the docs UI.
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")
optional_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


def _principal_from_token(raw_token: str) -> Principal:
    try:
        claims = token_service.decode_access_token(raw_token)
    except jwt.ExpiredSignatureError:
        logger.warning("Expired token rejected")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None
    except jwt.InvalidTokenError as e:
        logger.warning("Invalid token rejected: %s", e)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        ) from None

    user_id_var.set(claims["sub"])
    return Principal(user_id=claims["sub"], roles=frozenset(claims.get("roles", [])))


async def require_user(
    raw_token: Annotated[str, Depends(oauth2_scheme)],
) -> Principal:
    return _principal_from_token(raw_token)


async def optional_user(
    raw_token: Annotated[str | None, Depends(optional_oauth2_scheme)],
) -> Principal | None:
    """Principal when a valid token is present, None when there is no token.

    A token that is present but invalid is still a 401.
    """
    if raw_token is None:
        return None
    return _principal_from_token(raw_token)


async def require_super_admin(
    principal: Annotated[Principal, Depends(require_user)],
) -> Principal:
    if not principal.is_super_admin():
        logger.warning("Platform access denied: user=%s", principal.user_id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Platform administrator required",
        )
    return principal


def resolve_org_principal(store: TenantStore):
    """Dependency factory: bind the caller to the org named in the path.

    Membership means at least one stored role row in that organization.
    Super admins pass without one and act with the admin role.
    """

    async def _resolve(
        org_id: UUID,
        principal: Annotated[Principal, Depends(require_user)],
    ) -> Principal:
        org_id_var.set(str(org_id))
        if principal.is_super_admin():
            return replace(principal, org_id=org_id, org_role=ADMIN)

        async with store.transaction() as tx:
            roles = await tx.get_roles(org_id, principal.user_id)
        org_role = highest_role(roles)
        if org_role is None:
            logger.warning(
                "Access denied: user=%s not a member of org=%s",
                principal.user_id,
                org_id,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Not a member of this organization",
            )
        return replace(principal, org_id=org_id, org_role=org_role)

    return _resolve


def require_org_permission(operation: str, store: TenantStore):
    """Dependency factory: demand ``operation`` in the caller's stored role.

    Usage::

        _can_read_members = require_org_permission("org.members.read", store)
    """
    _resolve = resolve_org_principal(store)

    # _resolve is closure-local, so it cannot appear inside a string
    # annotation; FastAPI resolves those against module globals only.
    async def _guard(
        org_id: UUID,
        principal: Principal = Depends(_resolve),
    ) -> Principal:
        if principal.is_super_admin():
            return principal
        if not authorize(principal.org_role, principal.org_id, org_id, operation):
            logger.warning(
                "Access denied: user=%s org_role=%s operation=%s org=%s",
                principal.user_id,
                principal.org_role,
                operation,
                org_id,
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient org permissions",
            )
        return principal

    return _guard


def org_id_of(principal: Principal) -> UUID:
    """org_id from an org-resolved Principal; 500 if the route skipped resolution."""
    if principal.org_id is None:
        raise HTTPException(status_code=500, detail="org context not resolved")
    return principal.org_id
