"""Workforce records that notification dispatch reads.

These rows are written by ordinary CRUD paths; dispatch only resolves
recipients from them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Profile:
    id: UUID
    org_id: UUID
    full_name: str
    email: str | None = None
    user_id: str | None = None  # None until the employee signs up
    manager_id: UUID | None = None  # another Profile.id
    status: str = "active"  # active|inactive


@dataclass(frozen=True, slots=True)
class LeaveRequest:
    id: UUID
    org_id: UUID
    profile_id: UUID
    leave_type: str
    from_date: date
    to_date: date
    days: int
    reason: str | None = None
    status: str = "pending"


@dataclass(frozen=True, slots=True)
class CorrectionRequest:
    id: UUID
    org_id: UUID
    profile_id: UUID
    attendance_date: date
    reason: str | None = None
    reviewer_notes: str | None = None
    status: str = "pending"


@dataclass(frozen=True, slots=True)
class ReimbursementRequest:
    id: UUID
    org_id: UUID
    profile_id: UUID
    amount: Decimal
    category: str | None = None
    vendor_name: str | None = None
    manager_notes: str | None = None
    finance_notes: str | None = None
    status: str = "pending_manager"


@dataclass(frozen=True, slots=True)
class Memo:
    id: UUID
    org_id: UUID
    title: str
    content: str
    author_name: str
    excerpt: str | None = None
    # Empty means every active profile in the organization.
    recipients: tuple[str, ...] = ()
