from __future__ import annotations

import asyncio
from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from bizsuite.models.workforce import (
    CorrectionRequest,
    LeaveRequest,
    Memo,
    Profile,
    ReimbursementRequest,
)
from bizsuite.repos.notification_repo import InMemoryNotificationRepo
from bizsuite.repos.tenant_store import InMemoryTenantStore
from bizsuite.repos.workforce_repo import InMemoryWorkforceRepo
from bizsuite.services.email_service import EmailRecipient
from bizsuite.services.notification_service import (
    InvalidPayloadError,
    NotificationDispatcher,
    SourceRecordError,
    UnknownEventError,
)

ORG = uuid4()


class RecordingSender:
    def __init__(self, result: bool = True, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.sent: list[tuple[list[EmailRecipient], str]] = []

    async def send(
        self, recipients: list[EmailRecipient], subject: str, body: str
    ) -> bool:
        if self.error is not None:
            raise self.error
        self.sent.append((recipients, subject))
        return self.result


class Env:
    def __init__(self, sender: RecordingSender | None = None) -> None:
        self.workforce = InMemoryWorkforceRepo()
        self.notifications = InMemoryNotificationRepo()
        self.store = InMemoryTenantStore()
        self.sender = sender or RecordingSender()
        self.dispatcher = NotificationDispatcher(
            workforce=self.workforce,
            notifications=self.notifications,
            store=self.store,
            email_sender=self.sender,
        )
        self.manager = Profile(
            id=uuid4(),
            org_id=ORG,
            full_name="Meera Manager",
            email="meera@example.com",
            user_id="u-manager",
        )
        self.employee = Profile(
            id=uuid4(),
            org_id=ORG,
            full_name="Ravi Kumar",
            email="ravi@example.com",
            user_id="u-employee",
            manager_id=self.manager.id,
        )
        self.workforce.add_profile(self.manager)
        self.workforce.add_profile(self.employee)

    def dispatch(self, event_type: str, payload: dict, org_id=ORG):
        return asyncio.run(self.dispatcher.dispatch(org_id, event_type, payload))

    def inbox(self, user_id: str):
        return asyncio.run(self.notifications.list_for_user(user_id))

    def leave(self, **kwargs) -> LeaveRequest:
        leave = LeaveRequest(
            id=uuid4(),
            org_id=kwargs.pop("org_id", ORG),
            profile_id=self.employee.id,
            leave_type="casual",
            from_date=date(2026, 11, 2),
            to_date=date(2026, 11, 4),
            days=3,
            **kwargs,
        )
        self.workforce.add_leave_request(leave)
        return leave

    def claim(self, **kwargs) -> ReimbursementRequest:
        claim = ReimbursementRequest(
            id=uuid4(),
            org_id=ORG,
            profile_id=self.employee.id,
            amount=Decimal("12500"),
            category="travel",
            **kwargs,
        )
        self.workforce.add_reimbursement(claim)
        return claim


# ---------------------------------------------------------------------------
# Leave and corrections
# ---------------------------------------------------------------------------


def test_leave_created_notifies_manager_and_employee() -> None:
    env = Env()
    leave = env.leave(reason="family function")

    result = env.dispatch("leave_request_created", {"leave_request_id": str(leave.id)})

    assert result.notified == 2
    assert result.emailed == 2
    [to_manager] = env.inbox("u-manager")
    assert to_manager.title == "Leave Request from Ravi Kumar"
    assert to_manager.link == "/hrms/inbox"
    assert to_manager.org_id == ORG
    [to_employee] = env.inbox("u-employee")
    assert to_employee.title == "Leave Request Submitted"
    assert to_employee.type == "leave_request"


def test_leave_decided_uses_decision_type() -> None:
    env = Env()
    leave = env.leave()

    env.dispatch(
        "leave_request_decided",
        {"leave_request_id": str(leave.id), "decision": "rejected"},
    )

    [note] = env.inbox("u-employee")
    assert note.type == "leave_rejected"
    assert note.title == "Leave Rejected"


def test_manager_in_another_org_is_not_notified() -> None:
    env = Env()
    outsider = Profile(
        id=uuid4(),
        org_id=uuid4(),
        full_name="Other Tenant Boss",
        email="boss@other.example",
        user_id="u-foreign",
    )
    env.workforce.add_profile(outsider)
    env.workforce.add_profile(
        Profile(
            id=env.employee.id,
            org_id=ORG,
            full_name="Ravi Kumar",
            user_id="u-employee",
            manager_id=outsider.id,
        )
    )
    leave = env.leave()

    result = env.dispatch("leave_request_created", {"leave_request_id": str(leave.id)})

    assert result.notified == 1
    assert env.inbox("u-foreign") == []
    assert all("other.example" not in str(to) for to, _ in env.sender.sent)


def test_employee_without_manager_only_notifies_self() -> None:
    env = Env()
    loner = Profile(id=uuid4(), org_id=ORG, full_name="Solo", user_id="u-solo")
    env.workforce.add_profile(loner)
    leave = LeaveRequest(
        id=uuid4(),
        org_id=ORG,
        profile_id=loner.id,
        leave_type="sick",
        from_date=date(2026, 11, 2),
        to_date=date(2026, 11, 2),
        days=1,
    )
    env.workforce.add_leave_request(leave)

    result = env.dispatch("leave_request_created", {"leave_request_id": str(leave.id)})

    assert result.notified == 1
    # No email address on file.
    assert result.emailed == 0


def test_correction_decided_includes_reviewer_notes() -> None:
    env = Env()
    correction = CorrectionRequest(
        id=uuid4(),
        org_id=ORG,
        profile_id=env.employee.id,
        attendance_date=date(2026, 10, 12),
        reviewer_notes="badge log confirms",
    )
    env.workforce.add_correction_request(correction)

    env.dispatch(
        "correction_request_decided",
        {"correction_request_id": str(correction.id), "decision": "approved"},
    )

    [note] = env.inbox("u-employee")
    assert note.type == "leave_approved"
    assert "badge log confirms" in note.message


# ---------------------------------------------------------------------------
# Reimbursements
# ---------------------------------------------------------------------------


def test_manager_approval_hands_off_to_finance_and_admins() -> None:
    env = Env()
    env.store._data.roles[(ORG, "u-fin")] = ("finance",)
    env.store._data.roles[(ORG, "u-admin")] = ("admin", "employee")
    env.store._data.roles[(ORG, "u-hr")] = ("hr",)
    claim = env.claim()

    result = env.dispatch(
        "reimbursement_manager_decided",
        {"reimbursement_id": str(claim.id), "decision": "approved"},
    )

    assert result.notified == 3
    for holder in ("u-fin", "u-admin"):
        [note] = env.inbox(holder)
        assert note.title == "Reimbursement Pending Finance Approval"
        assert note.link == "/financial/reimbursements"
        assert "₹12,500" in note.message
    assert env.inbox("u-hr") == []


def test_manager_rejection_does_not_reach_finance() -> None:
    env = Env()
    env.store._data.roles[(ORG, "u-fin")] = ("finance",)
    claim = env.claim(manager_notes="missing receipt")

    result = env.dispatch(
        "reimbursement_manager_decided",
        {"reimbursement_id": str(claim.id), "decision": "rejected"},
    )

    assert result.notified == 1
    assert env.inbox("u-fin") == []
    [note] = env.inbox("u-employee")
    assert note.type == "warning"
    assert "missing receipt" in note.message


def test_finance_paid() -> None:
    env = Env()
    claim = env.claim()

    env.dispatch(
        "reimbursement_finance_decided",
        {"reimbursement_id": str(claim.id), "decision": "paid"},
    )

    [note] = env.inbox("u-employee")
    assert note.title == "Reimbursement Approved & Paid"


def test_finance_rejects_manager_style_decision() -> None:
    env = Env()
    claim = env.claim()
    with pytest.raises(InvalidPayloadError):
        env.dispatch(
            "reimbursement_finance_decided",
            {"reimbursement_id": str(claim.id), "decision": "approved"},
        )


# ---------------------------------------------------------------------------
# Memos
# ---------------------------------------------------------------------------


def test_memo_to_everyone_batches_emails() -> None:
    env = Env()
    for i in range(118):
        env.workforce.add_profile(
            Profile(
                id=uuid4(),
                org_id=ORG,
                full_name=f"Staff {i}",
                email=f"staff{i}@example.com",
                # Only some have signed up.
                user_id=f"u-{i}" if i % 2 == 0 else None,
            )
        )
    memo = Memo(
        id=uuid4(),
        org_id=ORG,
        title="Diwali",
        content="Office closed",
        author_name="HR",
    )
    env.workforce.add_memo(memo)

    result = env.dispatch("memo_published", {"memo_id": str(memo.id)})

    # 120 profiles with email, 59 staff plus manager and employee have accounts.
    assert result.notified == 61
    assert result.emailed == 120
    assert [len(recipients) for recipients, _ in env.sender.sent] == [50, 50, 20]


def test_memo_with_explicit_recipients() -> None:
    env = Env()
    memo = Memo(
        id=uuid4(),
        org_id=ORG,
        title="Appraisals",
        content="Cycle opens Monday",
        author_name="HR",
        recipients=("RAVI@example.com", "outside@vendor.com"),
    )
    env.workforce.add_memo(memo)

    result = env.dispatch("memo_published", {"memo_id": str(memo.id)})

    assert result.notified == 1
    assert env.inbox("u-employee")[0].type == "memo"
    assert env.inbox("u-manager") == []
    assert result.emailed == 2


# ---------------------------------------------------------------------------
# Failure handling
# ---------------------------------------------------------------------------


def test_email_failure_does_not_fail_dispatch() -> None:
    env = Env(RecordingSender(error=RuntimeError("smtp down")))
    leave = env.leave()

    result = env.dispatch("leave_request_created", {"leave_request_id": str(leave.id)})

    assert result.notified == 2
    assert result.emailed == 0
    assert len(env.inbox("u-manager")) == 1


def test_unsent_email_is_not_counted() -> None:
    env = Env(RecordingSender(result=False))
    leave = env.leave()
    result = env.dispatch("leave_request_created", {"leave_request_id": str(leave.id)})
    assert result.emailed == 0


def test_row_write_failure_propagates_and_skips_email() -> None:
    env = Env()
    leave = env.leave()

    async def broken_add(notification) -> None:
        raise RuntimeError("db down")

    env.notifications.add = broken_add  # type: ignore[method-assign]

    with pytest.raises(RuntimeError):
        env.dispatch("leave_request_created", {"leave_request_id": str(leave.id)})
    assert env.sender.sent == []


def test_unknown_event_type() -> None:
    env = Env()
    with pytest.raises(UnknownEventError) as exc_info:
        env.dispatch("payroll_run", {})
    assert exc_info.value.event_type == "payroll_run"


@pytest.mark.parametrize(
    "payload",
    [{}, {"leave_request_id": "not-a-uuid"}],
    ids=["missing", "malformed"],
)
def test_invalid_payload(payload: dict) -> None:
    env = Env()
    with pytest.raises(InvalidPayloadError):
        env.dispatch("leave_request_created", payload)


def test_missing_source_record() -> None:
    env = Env()
    with pytest.raises(SourceRecordError):
        env.dispatch("leave_request_created", {"leave_request_id": str(uuid4())})


def test_record_from_another_org_is_not_found() -> None:
    env = Env()
    leave = env.leave(org_id=uuid4())

    with pytest.raises(SourceRecordError):
        env.dispatch("leave_request_created", {"leave_request_id": str(leave.id)})
    assert env.inbox("u-manager") == []


def test_dispatch_twice_notifies_twice() -> None:
    env = Env()
    leave = env.leave()
    payload = {"leave_request_id": str(leave.id)}

    env.dispatch("leave_request_created", payload)
    env.dispatch("leave_request_created", payload)

    assert len(env.inbox("u-manager")) == 2
