"""Onboarding completion: seed organization defaults, then activate.

Every default is inserted only when absent, so a retried call that died
half-way through seeding finishes the job instead of duplicating rows.
A call on an organization that is already active returns success with
nothing applied.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, date, datetime
from uuid import UUID

from bizsuite.core.metrics import LIFECYCLE_TRANSITIONS, ONBOARDING_COMPLETIONS
from bizsuite.models.audit import AuditEntry
from bizsuite.models.ledger import (
    ApprovalWorkflow,
    ComplianceSettings,
    FiscalYear,
    LedgerAccount,
)
from bizsuite.models.organization import ACTIVE, ONBOARDING
from bizsuite.models.role import ADMIN
from bizsuite.repos.tenant_store import TenantStore, TenantTransaction

logger = logging.getLogger(__name__)

# Master chart of accounts: (code, name, type)
MASTER_CHART_OF_ACCOUNTS: tuple[tuple[str, str, str], ...] = (
    ("1000", "Cash", "asset"),
    ("1100", "Bank", "asset"),
    ("1200", "Accounts Receivable", "asset"),
    ("1300", "Fixed Assets", "asset"),
    ("1310", "Accumulated Depreciation", "asset"),
    ("2000", "Accounts Payable", "liability"),
    ("2100", "Salaries Payable", "liability"),
    ("2200", "Tax Payable", "liability"),
    ("3000", "Owner Equity", "equity"),
    ("3100", "Retained Earnings", "equity"),
    ("4000", "Revenue", "revenue"),
    ("4010", "Invoices", "revenue"),
    ("4100", "Interest Income", "revenue"),
    ("4200", "Gain on Asset Disposal", "revenue"),
    ("5000", "Cost of Goods Sold", "expense"),
    ("5100", "Salaries", "expense"),
    ("5200", "Rent", "expense"),
    ("5300", "Utilities", "expense"),
    ("5400", "Bills", "expense"),
    ("5500", "Loss on Asset Disposal", "expense"),
    ("5600", "Reimbursement", "expense"),
    ("5900", "Miscellaneous Expense", "expense"),
)

GST_LEDGERS: tuple[tuple[str, str, str], ...] = (
    ("2300", "Input GST", "asset"),
    ("2310", "Output GST", "liability"),
    ("2320", "GST Payable", "liability"),
)

EXPENSE_APPROVAL_THRESHOLD = 5000


class OnboardingError(Exception):
    """``code`` is organization_not_found or organization_not_in_onboarding."""

    def __init__(self, code: str) -> None:
        super().__init__(code)
        self.code = code


@dataclass(frozen=True, slots=True)
class OnboardingResult:
    org_id: UUID
    applied_defaults: tuple[str, ...]
    account_count: int | None


def fiscal_year_for(today: date) -> tuple[date, date]:
    """April-to-March fiscal year that contains ``today``."""
    start_year = today.year if today.month >= 4 else today.year - 1
    return date(start_year, 4, 1), date(start_year + 1, 3, 31)


async def complete_onboarding(
    store: TenantStore,
    org_id: UUID,
    *,
    completed_by: str,
    today: date | None = None,
) -> OnboardingResult:
    today = today or datetime.now(UTC).date()
    try:
        result = await _complete(store, org_id, completed_by, today)
    except OnboardingError as exc:
        ONBOARDING_COMPLETIONS.labels(outcome=exc.code).inc()
        logger.warning("Onboarding refused org=%s code=%s", org_id, exc.code)
        raise

    if result is None:
        ONBOARDING_COMPLETIONS.labels(outcome="already_active").inc()
        logger.info("Onboarding already complete org=%s", org_id)
        return OnboardingResult(org_id=org_id, applied_defaults=(), account_count=None)

    ONBOARDING_COMPLETIONS.labels(outcome="activated").inc()
    LIFECYCLE_TRANSITIONS.labels(from_state=ONBOARDING, to_state=ACTIVE).inc()
    logger.info(
        "Tenant onboarded org=%s applied=%d accounts=%d",
        org_id,
        len(result.applied_defaults),
        result.account_count,
    )
    return result


async def _complete(
    store: TenantStore, org_id: UUID, completed_by: str, today: date
) -> OnboardingResult | None:
    async with store.transaction() as tx:
        org = await tx.get_org(org_id, for_update=True)
        if org is None:
            raise OnboardingError("organization_not_found")
        if org.lifecycle == ACTIVE:
            return None
        if org.lifecycle != ONBOARDING:
            raise OnboardingError("organization_not_in_onboarding")

        applied: list[str] = []
        applied += await _seed_accounts(tx, org_id)
        applied += await _seed_fiscal_year(tx, org_id, today)
        applied += await _seed_approval_workflow(tx, org_id)
        applied += await _seed_compliance(tx, org_id)

        account_count = await tx.count_accounts(org_id)
        await tx.save_org(org.advance(ACTIVE))
        await tx.add_audit(
            AuditEntry.record(
                actor_id=completed_by,
                action="tenant_onboarded",
                entity_type="organization",
                entity_id=str(org_id),
                org_id=org_id,
                metadata={
                    "applied_defaults": len(applied),
                    "chart_of_accounts": account_count,
                },
            )
        )

    return OnboardingResult(
        org_id=org_id, applied_defaults=tuple(applied), account_count=account_count
    )


async def _seed_accounts(tx: TenantTransaction, org_id: UUID) -> list[str]:
    applied: list[str] = []
    for code, name, account_type in MASTER_CHART_OF_ACCOUNTS + GST_LEDGERS:
        if await tx.has_account(org_id, code):
            continue
        await tx.add_account(
            LedgerAccount(
                org_id=org_id, code=code, name=name, account_type=account_type
            )
        )
        applied.append(f"chart_of_accounts:{code}")
    return applied


async def _seed_fiscal_year(
    tx: TenantTransaction, org_id: UUID, today: date
) -> list[str]:
    start, end = fiscal_year_for(today)
    if await tx.has_fiscal_year(org_id, start):
        return []
    name = f"FY {start.year}-{str(end.year)[-2:]}"
    await tx.add_fiscal_year(
        FiscalYear(org_id=org_id, name=name, start_date=start, end_date=end)
    )
    return [f"fiscal_year:{name}"]


async def _seed_approval_workflow(
    tx: TenantTransaction, org_id: UUID
) -> list[str]:
    if await tx.has_workflow(org_id, "expense"):
        return []
    await tx.add_workflow(
        ApprovalWorkflow(
            org_id=org_id,
            workflow_type="expense",
            threshold_amount=EXPENSE_APPROVAL_THRESHOLD,
            approver_role=ADMIN,
        )
    )
    return ["approval_workflow:expense"]


async def _seed_compliance(tx: TenantTransaction, org_id: UUID) -> list[str]:
    if await tx.get_compliance(org_id) is not None:
        return []
    await tx.save_compliance(ComplianceSettings(org_id=org_id))
    return ["compliance_settings"]
