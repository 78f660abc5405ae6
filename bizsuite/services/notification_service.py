"""Notification dispatch for workforce events.

dispatch(org_id, event_type, payload) resolves the recipients of one
event, writes an in-app notification row for each, and only then tries
email.  The two halves fail differently:

  - A notification row that cannot be written fails the whole call.
  - An email that cannot be sent is logged and counted; the call still
    succeeds and reports how many emails went out.

Recipients come from stored references: the employee's own profile, the
manager named by ``Profile.manager_id``, and for reimbursements approved
by a manager, every finance and admin role holder in the organization.

NOT IDEMPOTENT
----------------
Calling dispatch twice for the same event notifies everyone twice.
Callers dispatch once per event; there is no dedup key and no retry.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any
from uuid import UUID

from bizsuite.core.metrics import NOTIFICATIONS_WRITTEN
from bizsuite.models.notification import Notification
from bizsuite.models.role import ADMIN, FINANCE
from bizsuite.models.workforce import Profile
from bizsuite.repos.notification_repo import NotificationRepo
from bizsuite.repos.tenant_store import TenantStore
from bizsuite.repos.workforce_repo import WorkforceRepo
from bizsuite.services.email_service import EmailRecipient, EmailSender

logger = logging.getLogger(__name__)

EVENT_TYPES = (
    "leave_request_created",
    "leave_request_decided",
    "correction_request_created",
    "correction_request_decided",
    "reimbursement_submitted",
    "reimbursement_manager_decided",
    "reimbursement_finance_decided",
    "memo_published",
)

_MEMO_EMAIL_BATCH = 50


class UnknownEventError(Exception):
    def __init__(self, event_type: str) -> None:
        super().__init__(f"Unknown notification type: {event_type}")
        self.event_type = event_type


class InvalidPayloadError(ValueError):
    pass


class SourceRecordError(Exception):
    """The record named in the payload does not exist in this organization."""


@dataclass(frozen=True, slots=True)
class DispatchResult:
    notified: int
    emailed: int


@dataclass(frozen=True, slots=True)
class _InApp:
    user_id: str
    title: str
    message: str
    type: str
    link: str


@dataclass(frozen=True, slots=True)
class _Email:
    recipients: tuple[EmailRecipient, ...]
    subject: str
    body: str


@dataclass(slots=True)
class _Plan:
    in_app: list[_InApp] = field(default_factory=list)
    emails: list[_Email] = field(default_factory=list)

    def notify(self, profile: Profile | None, **kwargs: str) -> None:
        if profile is not None and profile.user_id:
            self.in_app.append(_InApp(user_id=profile.user_id, **kwargs))

    def email(self, profile: Profile | None, subject: str, body: str) -> None:
        if profile is not None and profile.email:
            recipient = EmailRecipient(email=profile.email, name=profile.full_name)
            self.emails.append(_Email((recipient,), subject, body))


def _uuid_field(payload: dict[str, Any], name: str) -> UUID:
    raw = payload.get(name)
    if not raw:
        raise InvalidPayloadError(f"payload.{name} is required")
    try:
        return UUID(str(raw))
    except ValueError:
        raise InvalidPayloadError(f"payload.{name} must be a UUID") from None


def _decision(payload: dict[str, Any], allowed: tuple[str, ...]) -> str:
    decision = payload.get("decision")
    if decision not in allowed:
        raise InvalidPayloadError(f"payload.decision must be one of {list(allowed)}")
    return decision


def _amount(value: Decimal) -> str:
    return f"₹{value:,}"


def _note(text: str | None) -> str:
    return f" Note: {text}" if text else ""


class NotificationDispatcher:
    def __init__(
        self,
        workforce: WorkforceRepo,
        notifications: NotificationRepo,
        store: TenantStore,
        email_sender: EmailSender,
    ) -> None:
        self._workforce = workforce
        self._notifications = notifications
        self._store = store
        self._email = email_sender
        self._handlers: dict[
            str, Callable[[UUID, dict[str, Any]], Awaitable[_Plan]]
        ] = {
            "leave_request_created": self._leave_created,
            "leave_request_decided": self._leave_decided,
            "correction_request_created": self._correction_created,
            "correction_request_decided": self._correction_decided,
            "reimbursement_submitted": self._reimbursement_submitted,
            "reimbursement_manager_decided": self._reimbursement_manager_decided,
            "reimbursement_finance_decided": self._reimbursement_finance_decided,
            "memo_published": self._memo_published,
        }

    async def dispatch(
        self, org_id: UUID, event_type: str, payload: dict[str, Any]
    ) -> DispatchResult:
        handler = self._handlers.get(event_type)
        if handler is None:
            logger.warning("Unknown notification type=%r org=%s", event_type, org_id)
            raise UnknownEventError(event_type)

        plan = await handler(org_id, payload)

        # Rows first; a failure here propagates and nothing is emailed.
        for item in plan.in_app:
            await self._notifications.add(
                Notification.new(
                    user_id=item.user_id,
                    org_id=org_id,
                    title=item.title,
                    message=item.message,
                    type=item.type,
                    link=item.link,
                )
            )
        if plan.in_app:
            NOTIFICATIONS_WRITTEN.labels(event_type=event_type).inc(len(plan.in_app))

        emailed = 0
        for email in plan.emails:
            emailed += await self._try_email(event_type, email)

        logger.info(
            "Dispatched type=%s org=%s notified=%d emailed=%d",
            event_type,
            org_id,
            len(plan.in_app),
            emailed,
        )
        return DispatchResult(notified=len(plan.in_app), emailed=emailed)

    async def _try_email(self, event_type: str, email: _Email) -> int:
        try:
            sent = await self._email.send(
                list(email.recipients), email.subject, email.body
            )
        except Exception:
            # In-app rows are already written; email never fails the dispatch.
            logger.warning(
                "Email send failed type=%s subject=%r",
                event_type,
                email.subject,
                exc_info=True,
            )
            return 0
        return len(email.recipients) if sent else 0

    # --- record lookups ---

    async def _employee(self, org_id: UUID, profile_id: UUID) -> Profile:
        profile = await self._workforce.get_profile(profile_id)
        if profile is None or profile.org_id != org_id:
            raise SourceRecordError(f"profile {profile_id} not found")
        return profile

    async def _manager_of(self, employee: Profile) -> Profile | None:
        if employee.manager_id is None:
            return None
        manager = await self._workforce.get_profile(employee.manager_id)
        if manager is None or manager.org_id != employee.org_id:
            logger.warning(
                "Manager %s of profile %s is outside org=%s; skipped",
                employee.manager_id,
                employee.id,
                employee.org_id,
            )
            return None
        return manager

    # --- leave requests ---

    async def _leave_created(self, org_id: UUID, payload: dict[str, Any]) -> _Plan:
        request_id = _uuid_field(payload, "leave_request_id")
        leave = await self._workforce.get_leave_request(request_id)
        if leave is None or leave.org_id != org_id:
            raise SourceRecordError(f"leave request {request_id} not found")
        employee = await self._employee(org_id, leave.profile_id)
        manager = await self._manager_of(employee)
        name = employee.full_name or "An employee"
        span = f"{leave.from_date} to {leave.to_date}"

        plan = _Plan()
        plan.notify(
            manager,
            title=f"Leave Request from {name}",
            message=(
                f"{name} requested {leave.days} day(s) of {leave.leave_type} "
                f"leave ({span})"
            ),
            type="leave_request",
            link="/hrms/inbox",
        )
        plan.notify(
            employee,
            title="Leave Request Submitted",
            message=(
                f"Your {leave.leave_type} leave request ({span}) has been submitted "
                "and is pending approval."
            ),
            type="leave_request",
            link="/hrms/leaves",
        )
        details = (
            f"Type: {leave.leave_type}\nFrom: {leave.from_date}\n"
            f"To: {leave.to_date}\nDays: {leave.days}"
        )
        if leave.reason:
            details += f"\nReason: {leave.reason}"
        plan.email(
            manager,
            f"Leave Request from {name}: Approval Required",
            f"{name} has requested leave and needs your approval.\n\n{details}",
        )
        plan.email(
            employee,
            "Leave Request Submitted: Awaiting Approval",
            f"Hi {name}, your leave request has been submitted.\n\n{details}",
        )
        return plan

    async def _leave_decided(self, org_id: UUID, payload: dict[str, Any]) -> _Plan:
        request_id = _uuid_field(payload, "leave_request_id")
        decision = _decision(payload, ("approved", "rejected"))
        leave = await self._workforce.get_leave_request(request_id)
        if leave is None or leave.org_id != org_id:
            raise SourceRecordError(f"leave request {request_id} not found")
        employee = await self._employee(org_id, leave.profile_id)
        manager = await self._manager_of(employee)
        name = employee.full_name or "An employee"
        status = decision.capitalize()
        kind = "leave_approved" if decision == "approved" else "leave_rejected"
        span = f"{leave.from_date} to {leave.to_date}"

        plan = _Plan()
        plan.notify(
            employee,
            title=f"Leave {status}",
            message=f"Your {leave.leave_type} leave ({span}) has been {decision}.",
            type=kind,
            link="/hrms/leaves",
        )
        plan.notify(
            manager,
            title=f"Leave {status} for {name}",
            message=f"{name}'s {leave.leave_type} leave ({span}) was {decision}.",
            type=kind,
            link="/hrms/inbox",
        )
        reviewer = payload.get("reviewer_name")
        plan.email(
            employee,
            f"Leave {status}: {leave.from_date} to {leave.to_date}",
            f"Hi {name}, your {leave.leave_type} leave ({span}) has been {decision}"
            + (f" by {reviewer}." if reviewer else "."),
        )
        return plan

    # --- attendance corrections ---

    async def _correction_created(
        self, org_id: UUID, payload: dict[str, Any]
    ) -> _Plan:
        request_id = _uuid_field(payload, "correction_request_id")
        correction = await self._workforce.get_correction_request(request_id)
        if correction is None or correction.org_id != org_id:
            raise SourceRecordError(f"correction request {request_id} not found")
        employee = await self._employee(org_id, correction.profile_id)
        manager = await self._manager_of(employee)
        name = employee.full_name or "An employee"
        day = correction.attendance_date

        plan = _Plan()
        plan.notify(
            manager,
            title=f"Correction Request from {name}",
            message=f"{name} submitted an attendance correction for {day}.",
            type="leave_request",
            link="/hrms/inbox",
        )
        plan.notify(
            employee,
            title="Correction Request Submitted",
            message=(
                f"Your attendance correction for {day} has been submitted "
                "and is pending review."
            ),
            type="leave_request",
            link="/hrms/my-attendance",
        )
        plan.email(
            manager,
            f"Attendance Correction from {name}: Review Required",
            f"{name} submitted an attendance correction for {day}."
            + (f"\nReason: {correction.reason}" if correction.reason else ""),
        )
        return plan

    async def _correction_decided(
        self, org_id: UUID, payload: dict[str, Any]
    ) -> _Plan:
        request_id = _uuid_field(payload, "correction_request_id")
        decision = _decision(payload, ("approved", "rejected"))
        correction = await self._workforce.get_correction_request(request_id)
        if correction is None or correction.org_id != org_id:
            raise SourceRecordError(f"correction request {request_id} not found")
        employee = await self._employee(org_id, correction.profile_id)
        manager = await self._manager_of(employee)
        name = employee.full_name or "An employee"
        status = decision.capitalize()
        kind = "leave_approved" if decision == "approved" else "leave_rejected"
        day = correction.attendance_date

        plan = _Plan()
        plan.notify(
            employee,
            title=f"Attendance Correction {status}",
            message=(
                f"Your attendance correction for {day} has been {decision}."
                + _note(correction.reviewer_notes)
            ),
            type=kind,
            link="/hrms/my-attendance",
        )
        plan.notify(
            manager,
            title=f"Correction {status} for {name}",
            message=f"{name}'s attendance correction for {day} was {decision}.",
            type=kind,
            link="/hrms/inbox",
        )
        plan.email(
            employee,
            f"Attendance Correction {status}",
            f"Hi {name}, your attendance correction for {day} has been {decision}."
            + _note(correction.reviewer_notes),
        )
        return plan

    # --- reimbursements ---

    async def _reimbursement_submitted(
        self, org_id: UUID, payload: dict[str, Any]
    ) -> _Plan:
        request_id = _uuid_field(payload, "reimbursement_id")
        claim = await self._workforce.get_reimbursement(request_id)
        if claim is None or claim.org_id != org_id:
            raise SourceRecordError(f"reimbursement {request_id} not found")
        employee = await self._employee(org_id, claim.profile_id)
        manager = await self._manager_of(employee)
        name = employee.full_name or "An employee"
        amount = _amount(claim.amount)
        category = claim.category or "expenses"

        plan = _Plan()
        plan.notify(
            manager,
            title=f"Reimbursement Request from {name}",
            message=(
                f"{name} submitted a reimbursement claim of {amount} for {category}."
            ),
            type="info",
            link="/hrms/inbox",
        )
        plan.notify(
            employee,
            title="Reimbursement Submitted",
            message=(
                f"Your reimbursement claim of {amount} has been submitted "
                "and is pending manager approval."
            ),
            type="info",
            link="/hrms/reimbursements",
        )
        plan.email(
            manager,
            f"Reimbursement Request from {name}: Approval Required",
            f"{name} submitted a reimbursement claim of {amount} for {category}.",
        )
        plan.email(
            employee,
            "Reimbursement Submitted: Awaiting Manager Approval",
            f"Hi {name}, your reimbursement claim of {amount} has been submitted.",
        )
        return plan

    async def _reimbursement_manager_decided(
        self, org_id: UUID, payload: dict[str, Any]
    ) -> _Plan:
        request_id = _uuid_field(payload, "reimbursement_id")
        decision = _decision(payload, ("approved", "rejected"))
        claim = await self._workforce.get_reimbursement(request_id)
        if claim is None or claim.org_id != org_id:
            raise SourceRecordError(f"reimbursement {request_id} not found")
        employee = await self._employee(org_id, claim.profile_id)
        name = employee.full_name or "An employee"
        amount = _amount(claim.amount)
        approved = decision == "approved"
        status = "Approved by Manager" if approved else "Rejected by Manager"

        if approved:
            message = (
                f"Your reimbursement of {amount} has been approved by your manager "
                "and forwarded to Finance for processing."
            )
        else:
            message = (
                f"Your reimbursement of {amount} has been rejected by your manager."
                + _note(claim.manager_notes)
            )

        plan = _Plan()
        plan.notify(
            employee,
            title=f"Reimbursement {status}",
            message=message,
            type="info" if approved else "warning",
            link="/hrms/reimbursements",
        )
        if approved:
            # Cross-stage handoff: every finance and admin holder reviews next.
            for user_id in await self._role_holders(org_id, {FINANCE, ADMIN}):
                plan.in_app.append(
                    _InApp(
                        user_id=user_id,
                        title="Reimbursement Pending Finance Approval",
                        message=(
                            f"{name}'s expense claim of {amount} for "
                            f"{claim.category or 'expenses'} has been approved by "
                            "their manager and requires your review."
                        ),
                        type="info",
                        link="/financial/reimbursements",
                    )
                )
        plan.email(
            employee, f"Reimbursement {status}: {amount}", f"Hi {name}. {message}"
        )
        return plan

    async def _reimbursement_finance_decided(
        self, org_id: UUID, payload: dict[str, Any]
    ) -> _Plan:
        request_id = _uuid_field(payload, "reimbursement_id")
        decision = _decision(payload, ("paid", "rejected"))
        claim = await self._workforce.get_reimbursement(request_id)
        if claim is None or claim.org_id != org_id:
            raise SourceRecordError(f"reimbursement {request_id} not found")
        employee = await self._employee(org_id, claim.profile_id)
        name = employee.full_name or "An employee"
        amount = _amount(claim.amount)
        paid = decision == "paid"
        status = "Approved & Paid" if paid else "Rejected by Finance"

        if paid:
            message = (
                f"Your reimbursement claim of {amount} has been approved by Finance "
                "and recorded as a paid expense."
            )
        else:
            message = (
                f"Your reimbursement claim of {amount} has been rejected by Finance."
                + _note(claim.finance_notes)
            )

        plan = _Plan()
        plan.notify(
            employee,
            title=f"Reimbursement {status}",
            message=message,
            type="info" if paid else "warning",
            link="/hrms/reimbursements",
        )
        plan.email(
            employee, f"Reimbursement {status}: {amount}", f"Hi {name}. {message}"
        )
        return plan

    async def _role_holders(self, org_id: UUID, roles: set[str]) -> list[str]:
        async with self._store.transaction() as tx:
            members = await tx.list_members(org_id)
        return sorted(uid for uid, held in members.items() if roles & set(held))

    # --- memos ---

    async def _memo_published(self, org_id: UUID, payload: dict[str, Any]) -> _Plan:
        memo_id = _uuid_field(payload, "memo_id")
        memo = await self._workforce.get_memo(memo_id)
        if memo is None or memo.org_id != org_id:
            raise SourceRecordError(f"memo {memo_id} not found")

        profiles = await self._workforce.list_active_profiles(org_id)
        if memo.recipients:
            wanted = {e.lower() for e in memo.recipients}
            emails = list(memo.recipients)
            audience = [p for p in profiles if p.email and p.email.lower() in wanted]
        else:
            audience = [p for p in profiles if p.email]
            emails = [p.email for p in audience if p.email]

        summary = memo.excerpt or memo.content[:150] or "New memo published"
        plan = _Plan()
        for profile in audience:
            plan.notify(
                profile,
                title=f"New Memo: {memo.title}",
                message=summary,
                type="memo",
                link="/performance/memos",
            )
        body = f"From {memo.author_name}\n\n{memo.excerpt or memo.content}"
        for start in range(0, len(emails), _MEMO_EMAIL_BATCH):
            chunk = emails[start : start + _MEMO_EMAIL_BATCH]
            batch = tuple(EmailRecipient(email=e) for e in chunk)
            plan.emails.append(_Email(batch, f"New Memo: {memo.title}", body))
        return plan
