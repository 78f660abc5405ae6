from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import UTC, datetime
from uuid import UUID, uuid4

PENDING_ACTIVATION = "pending_activation"
ONBOARDING = "onboarding"
ACTIVE = "active"
SUSPENDED = "suspended"

LIFECYCLE_STATES = (PENDING_ACTIVATION, ONBOARDING, ACTIVE, SUSPENDED)

# Forward order; suspension sits outside it.
_FORWARD = (PENDING_ACTIVATION, ONBOARDING, ACTIVE)

FEATURE_MODULES = frozenset({"financial", "hrms", "performance", "audit", "assets"})


class LifecycleError(Exception):
    """Raised when a lifecycle transition would move an organization backwards."""


@dataclass(frozen=True, slots=True)
class Organization:
    id: UUID
    name: str
    lifecycle: str = PENDING_ACTIVATION
    enabled_modules: frozenset[str] = frozenset()
    plan: str | None = None
    created_at: datetime | None = None
    # Set only while suspended; reinstate returns here.
    suspended_from: str | None = None

    @staticmethod
    def new(*, name: str) -> Organization:
        return Organization(id=uuid4(), name=name, created_at=datetime.now(UTC))

    def advance(self, target: str) -> Organization:
        """Move one step forward: pending_activation -> onboarding -> active."""
        if self.lifecycle not in _FORWARD or target not in _FORWARD:
            raise LifecycleError(f"cannot move {self.lifecycle} -> {target}")
        if _FORWARD.index(target) != _FORWARD.index(self.lifecycle) + 1:
            raise LifecycleError(f"cannot move {self.lifecycle} -> {target}")
        return replace(self, lifecycle=target)

    def suspend(self) -> Organization:
        if self.lifecycle == SUSPENDED:
            raise LifecycleError("organization is already suspended")
        return replace(self, lifecycle=SUSPENDED, suspended_from=self.lifecycle)

    def reinstate(self) -> Organization:
        if self.lifecycle != SUSPENDED or self.suspended_from is None:
            raise LifecycleError("organization is not suspended")
        return replace(self, lifecycle=self.suspended_from, suspended_from=None)
