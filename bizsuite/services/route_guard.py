"""Ordered navigation guard: auth, then subscription, then role.

evaluate_navigation() is a pure function of a NavigationContext.  It
walks the gates in a fixed order and stops at the first one that does
not pass:

    checking_auth -> checking_subscription -> checking_role -> render

Outcomes:
    render    page may be shown
    redirect  send the user to ``redirect_to`` (login, activation, onboarding)
    deny      show an access-denied view with ``message``
    pending   lifecycle or role still loading; show nothing protected yet

The ordering matters for what a user can learn.  A user whose
organization has not finished onboarding is redirected at the
subscription gate and never reaches the role gate, so the role
requirements of a page are only ever described to users of an active
organization.

Guards read; they never write.  Abandoning a navigation half-way
needs no cleanup.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Literal

from bizsuite.models.organization import (
    ACTIVE,
    ONBOARDING,
    PENDING_ACTIVATION,
    SUSPENDED,
)
from bizsuite.models.role import ADMIN, FINANCE, HR, MANAGER

Outcome = Literal["render", "redirect", "deny", "pending"]

LOGIN_PATH = "/auth"
ACTIVATION_PATH = "/subscription/activate"
ONBOARDING_PATH = "/onboarding"

# Paths that skip the subscription gate entirely.
SUBSCRIPTION_EXEMPT_PATHS = (
    "/auth",
    "/auth/callback",
    "/reset-password",
    "/onboarding",
    "/subscription/activate",
    "/profile",
    "/settings",
)
SUBSCRIPTION_EXEMPT_PREFIXES = ("/platform",)

# Most specific prefix wins.
ROLE_RULES: dict[str, tuple[str, ...]] = {
    "/financial": (ADMIN, FINANCE),
    "/hrms/payroll": (ADMIN, HR, FINANCE),
    "/hrms/inbox": (ADMIN, HR, MANAGER),
    "/hrms/employees": (ADMIN, HR),
    "/hrms/attendance": (ADMIN, HR),
    "/hrms/holidays": (ADMIN, HR),
    "/hrms/org-chart": (ADMIN, HR, MANAGER),
    "/admin": (ADMIN,),
}

MODULE_RULES: dict[str, str] = {
    "/financial": "financial",
    "/hrms": "hrms",
    "/performance": "performance",
    "/assets": "assets",
    "/admin/audit-log": "audit",
}

PLATFORM_PREFIX = "/platform"

_ROLE_LABELS = {
    ADMIN: "Administrators",
    HR: "HR",
    FINANCE: "Finance",
    MANAGER: "Managers",
}


@dataclass(frozen=True, slots=True)
class NavigationContext:
    path: str
    authenticated: bool
    # Developer preview session (DEV_MODE only) counts as signed in.
    preview_session: bool = False
    is_super_admin: bool = False
    lifecycle: str | None = None  # None: no organization yet
    lifecycle_loading: bool = False
    enabled_modules: frozenset[str] = frozenset()
    role_status: str = "resolved"  # loading|resolved|failed
    effective_role: str | None = None


@dataclass(frozen=True, slots=True)
class GuardDecision:
    outcome: Outcome
    trail: tuple[str, ...]
    redirect_to: str | None = None
    from_path: str | None = None
    reason: str | None = None
    message: str | None = None
    allowed_roles: tuple[str, ...] = field(default_factory=tuple)

    @property
    def stage(self) -> str:
        return self.trail[-1]


def _matches(path: str, prefix: str) -> bool:
    return path == prefix or path.startswith(prefix.rstrip("/") + "/")


def _longest_match(path: str, prefixes: Iterable[str]) -> str | None:
    matched = [p for p in prefixes if _matches(path, p)]
    return max(matched, key=len) if matched else None


def normalize_path(path: str) -> str:
    path = path.split("?", 1)[0].split("#", 1)[0] or "/"
    if not path.startswith("/"):
        path = "/" + path
    if len(path) > 1:
        path = path.rstrip("/")
    return path


def is_subscription_exempt(path: str) -> bool:
    if path in SUBSCRIPTION_EXEMPT_PATHS:
        return True
    return any(_matches(path, p) for p in SUBSCRIPTION_EXEMPT_PREFIXES)


def required_roles(path: str) -> tuple[str, ...]:
    prefix = _longest_match(path, ROLE_RULES)
    return ROLE_RULES[prefix] if prefix else ()


def required_module(path: str) -> str | None:
    prefix = _longest_match(path, MODULE_RULES)
    return MODULE_RULES[prefix] if prefix else None


def describe_roles(roles: tuple[str, ...]) -> str:
    labels = [_ROLE_LABELS.get(r, r) for r in roles]
    if len(labels) == 1:
        return f"Only {labels[0]} can access this page."
    return f"Only {', '.join(labels[:-1])} and {labels[-1]} can access this page."


def evaluate_navigation(ctx: NavigationContext) -> GuardDecision:
    path = normalize_path(ctx.path)
    trail: list[str] = ["checking_auth"]

    # --- auth gate ---
    if not ctx.authenticated and not ctx.preview_session:
        return GuardDecision(
            outcome="redirect",
            trail=tuple(trail),
            redirect_to=LOGIN_PATH,
            from_path=path,
            reason="unauthenticated",
        )

    # --- subscription gate ---
    trail.append("checking_subscription")
    if not ctx.is_super_admin and not is_subscription_exempt(path):
        blocked = _subscription_gate(ctx, path, tuple(trail))
        if blocked is not None:
            return blocked

    # --- role gate ---
    trail.append("checking_role")
    if _matches(path, PLATFORM_PREFIX):
        if ctx.is_super_admin:
            return GuardDecision(outcome="render", trail=tuple(trail))
        return GuardDecision(
            outcome="deny",
            trail=tuple(trail),
            reason="platform_admin_required",
            message="Only platform administrators can access this page.",
        )

    allowed = required_roles(path)
    if not allowed or ctx.is_super_admin:
        return GuardDecision(outcome="render", trail=tuple(trail))

    if ctx.role_status == "loading":
        return GuardDecision(
            outcome="pending", trail=tuple(trail), reason="role_loading"
        )
    if ctx.role_status != "resolved" or ctx.effective_role is None:
        return GuardDecision(
            outcome="deny",
            trail=tuple(trail),
            reason="role_unavailable",
            message="Your role could not be verified. Please sign in again.",
        )
    if ctx.effective_role not in allowed:
        return GuardDecision(
            outcome="deny",
            trail=tuple(trail),
            reason="role_not_permitted",
            message=describe_roles(allowed),
            allowed_roles=allowed,
        )
    return GuardDecision(outcome="render", trail=tuple(trail))


def _subscription_gate(
    ctx: NavigationContext, path: str, trail: tuple[str, ...]
) -> GuardDecision | None:
    if ctx.lifecycle_loading:
        return GuardDecision(outcome="pending", trail=trail, reason="lifecycle_loading")

    if ctx.lifecycle in (None, PENDING_ACTIVATION):
        return GuardDecision(
            outcome="redirect",
            trail=trail,
            redirect_to=ACTIVATION_PATH,
            from_path=path,
            reason="subscription_required",
        )
    if ctx.lifecycle == ONBOARDING:
        return GuardDecision(
            outcome="redirect",
            trail=trail,
            redirect_to=ONBOARDING_PATH,
            from_path=path,
            reason="onboarding_required",
        )
    if ctx.lifecycle == SUSPENDED:
        return GuardDecision(
            outcome="deny",
            trail=trail,
            reason="organization_suspended",
            message=(
                "This organization's subscription is suspended. "
                "Contact your platform administrator."
            ),
        )
    if ctx.lifecycle != ACTIVE:
        return GuardDecision(
            outcome="deny", trail=trail, reason="organization_not_active"
        )

    module = required_module(path)
    if module is not None and module not in ctx.enabled_modules:
        return GuardDecision(
            outcome="deny",
            trail=trail,
            reason="module_not_enabled",
            message=f"The {module} module is not included in your subscription.",
        )
    return None
