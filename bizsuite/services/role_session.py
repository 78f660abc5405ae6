"""Per-session view of the caller's role.

RoleSession is what every deployment gets: the actual stored role is the
effective role, and there is no way to change it.  It has no
``set_active_role`` at all.

The preview capability lives in role_preview.py, which is only imported
when DEV_MODE is on (see bizsuite/api/sessions.py).  A production
process never loads that module, so there is no flag to flip at runtime.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from bizsuite.models.role import RoleGrant

SessionStatus = Literal["loading", "resolved", "failed"]


@dataclass(frozen=True, slots=True)
class RoleSession:
    status: SessionStatus
    grants: tuple[RoleGrant, ...] = ()

    @staticmethod
    def loading() -> RoleSession:
        return RoleSession(status="loading")

    @staticmethod
    def failed() -> RoleSession:
        # No role at all: guards block rather than fall back to a default.
        return RoleSession(status="failed")

    @staticmethod
    def resolved(grants: list[RoleGrant]) -> RoleSession:
        return RoleSession(status="resolved", grants=tuple(grants))

    @property
    def actual_role(self) -> str | None:
        if self.status != "resolved" or not self.grants:
            return None
        return self.grants[0].role

    @property
    def effective_role(self) -> str | None:
        return self.actual_role

    @property
    def is_impersonating(self) -> bool:
        return False

    @property
    def available_roles(self) -> tuple[str, ...]:
        return tuple(g.role for g in self.grants)
