from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import date
from uuid import uuid4

import pytest

from bizsuite.models.ledger import LedgerAccount
from bizsuite.models.organization import (
    ACTIVE,
    ONBOARDING,
    PENDING_ACTIVATION,
    SUSPENDED,
    Organization,
)
from bizsuite.repos.tenant_store import InMemoryTenantStore
from bizsuite.services.onboarding_service import (
    EXPENSE_APPROVAL_THRESHOLD,
    OnboardingError,
    complete_onboarding,
    fiscal_year_for,
)

TODAY = date(2026, 10, 19)


def _org(store: InMemoryTenantStore, lifecycle: str = ONBOARDING) -> Organization:
    org = replace(Organization.new(name="Acme"), lifecycle=lifecycle)
    store._data.orgs[org.id] = org
    return org


def _complete(store, org_id):
    return asyncio.run(
        complete_onboarding(store, org_id, completed_by="admin-1", today=TODAY)
    )


def _account_count(store: InMemoryTenantStore, org_id) -> int:
    return sum(1 for oid, _ in store._data.accounts if oid == org_id)


def test_first_call_seeds_defaults_and_activates() -> None:
    store = InMemoryTenantStore()
    org = _org(store)

    result = _complete(store, org.id)

    assert store._data.orgs[org.id].lifecycle == ACTIVE
    assert result.account_count == 25
    assert _account_count(store, org.id) == 25
    assert "fiscal_year:FY 2026-27" in result.applied_defaults
    assert "approval_workflow:expense" in result.applied_defaults
    assert "compliance_settings" in result.applied_defaults
    assert len(result.applied_defaults) == 28


def test_second_call_applies_nothing_and_keeps_25_rows() -> None:
    store = InMemoryTenantStore()
    org = _org(store)
    _complete(store, org.id)

    again = _complete(store, org.id)

    assert again.applied_defaults == ()
    assert _account_count(store, org.id) == 25
    assert store._data.orgs[org.id].lifecycle == ACTIVE


def test_existing_rows_are_not_duplicated() -> None:
    store = InMemoryTenantStore()
    org = _org(store)
    store._data.accounts[(org.id, "1000")] = LedgerAccount(
        org_id=org.id, code="1000", name="Petty Cash", account_type="asset"
    )

    result = _complete(store, org.id)

    assert "chart_of_accounts:1000" not in result.applied_defaults
    assert _account_count(store, org.id) == 25
    # The pre-existing row keeps its name.
    assert store._data.accounts[(org.id, "1000")].name == "Petty Cash"


def test_seeded_workflow_and_compliance_values() -> None:
    store = InMemoryTenantStore()
    org = _org(store)
    _complete(store, org.id)

    workflow = store._data.workflows[(org.id, "expense")]
    assert workflow.threshold_amount == EXPENSE_APPROVAL_THRESHOLD == 5000
    assert workflow.approver_role == "admin"

    compliance = store._data.compliance[org.id]
    assert compliance.gst_enabled and compliance.tds_enabled
    assert compliance.pf_enabled and compliance.esi_enabled
    assert compliance.working_days == ("mon", "tue", "wed", "thu", "fri")


def test_onboarding_writes_one_audit_entry() -> None:
    store = InMemoryTenantStore()
    org = _org(store)
    _complete(store, org.id)
    _complete(store, org.id)

    onboarded = [e for e in store._data.audit if e.action == "tenant_onboarded"]
    assert len(onboarded) == 1
    assert onboarded[0].metadata["chart_of_accounts"] == 25


def test_unknown_org() -> None:
    store = InMemoryTenantStore()
    with pytest.raises(OnboardingError) as exc_info:
        _complete(store, uuid4())
    assert exc_info.value.code == "organization_not_found"


@pytest.mark.parametrize(
    "lifecycle", [PENDING_ACTIVATION, SUSPENDED], ids=["pending", "suspended"]
)
def test_org_not_in_onboarding(lifecycle: str) -> None:
    store = InMemoryTenantStore()
    org = _org(store, lifecycle)

    with pytest.raises(OnboardingError) as exc_info:
        _complete(store, org.id)

    assert exc_info.value.code == "organization_not_in_onboarding"
    assert store._data.orgs[org.id].lifecycle == lifecycle
    assert _account_count(store, org.id) == 0


def test_failure_while_seeding_leaves_no_partial_rows(monkeypatch) -> None:
    store = InMemoryTenantStore()
    org = _org(store)

    async def broken_add_workflow(self, workflow) -> None:
        raise RuntimeError("connection reset")

    monkeypatch.setattr(
        "bizsuite.repos.tenant_store.InMemoryTenantTransaction.add_workflow",
        broken_add_workflow,
    )

    with pytest.raises(RuntimeError):
        _complete(store, org.id)

    assert _account_count(store, org.id) == 0
    assert store._data.fiscal_years == {}
    assert store._data.orgs[org.id].lifecycle == ONBOARDING


@pytest.mark.parametrize(
    "today,expected",
    [
        (date(2026, 4, 1), (date(2026, 4, 1), date(2027, 3, 31))),
        (date(2026, 3, 31), (date(2025, 4, 1), date(2026, 3, 31))),
        (date(2026, 12, 31), (date(2026, 4, 1), date(2027, 3, 31))),
        (date(2027, 1, 1), (date(2026, 4, 1), date(2027, 3, 31))),
    ],
    ids=["april-first", "march-end", "december", "january"],
)
def test_fiscal_year_runs_april_to_march(today: date, expected: tuple) -> None:
    assert fiscal_year_for(today) == expected
