"""Developer-mode role preview.

Imported only when DEV_MODE is enabled.  A preview session wraps the
real RoleSession and lets a developer see the UI as another role would.
It holds the simulated role in the session object and nowhere else:
nothing is written to the role store, and server-side authorization
reads Principal.org_role, never this object.
"""

from __future__ import annotations

import logging

from bizsuite.models.role import ROLES
from bizsuite.services.role_session import RoleSession, SessionStatus

logger = logging.getLogger(__name__)


class PreviewRoleSession:
    def __init__(self, base: RoleSession) -> None:
        self._base = base
        self._simulated: str | None = None

    @property
    def status(self) -> SessionStatus:
        return self._base.status

    @property
    def actual_role(self) -> str | None:
        return self._base.actual_role

    @property
    def effective_role(self) -> str | None:
        if self._base.status != "resolved":
            return None
        return self._simulated or self._base.actual_role

    @property
    def is_impersonating(self) -> bool:
        return self._simulated is not None

    @property
    def available_roles(self) -> tuple[str, ...]:
        # Every role can be previewed, not only the ones held.
        return ROLES

    def set_active_role(self, role: str | None) -> None:
        """Preview ``role``; None (or the actual role) ends the preview."""
        if role is not None and role not in ROLES:
            raise ValueError(f"unknown role {role!r}")
        if role == self._base.actual_role:
            role = None
        self._simulated = role
        logger.info(
            "Role preview actual=%s effective=%s",
            self._base.actual_role,
            self.effective_role,
        )
