"""Organization-scoped defaults seeded during onboarding."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from uuid import UUID


@dataclass(frozen=True, slots=True)
class LedgerAccount:
    org_id: UUID
    code: str
    name: str
    account_type: str  # asset|liability|equity|revenue|expense


@dataclass(frozen=True, slots=True)
class FiscalYear:
    org_id: UUID
    name: str  # e.g. "FY 2026-27"
    start_date: date
    end_date: date
    is_active: bool = True


@dataclass(frozen=True, slots=True)
class ApprovalWorkflow:
    org_id: UUID
    workflow_type: str
    threshold_amount: int
    approver_role: str


@dataclass(frozen=True, slots=True)
class ComplianceSettings:
    org_id: UUID
    gst_enabled: bool = True
    tds_enabled: bool = True
    pf_enabled: bool = True
    esi_enabled: bool = True
    working_days: tuple[str, ...] = ("mon", "tue", "wed", "thu", "fri")
