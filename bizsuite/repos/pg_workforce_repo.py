"""PostgreSQL implementation of WorkforceRepo.

Read-only: the HR modules own these tables and write them through their
own CRUD paths.  Dispatch only resolves recipients from them, so each
lookup is a single SELECT outside any transaction.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bizsuite.db.tables import (
    CorrectionRequestRow,
    LeaveRequestRow,
    MemoRow,
    ProfileRow,
    ReimbursementRequestRow,
)
from bizsuite.models.workforce import (
    CorrectionRequest,
    LeaveRequest,
    Memo,
    Profile,
    ReimbursementRequest,
)


class PgWorkforceRepo:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def _get(self, row_cls, record_id: UUID):
        async with self._session_factory() as session:
            return await session.get(row_cls, record_id)

    async def get_profile(self, profile_id: UUID) -> Profile | None:
        row = await self._get(ProfileRow, profile_id)
        return _row_to_profile(row) if row is not None else None

    async def list_active_profiles(self, org_id: UUID) -> list[Profile]:
        stmt = select(ProfileRow).where(
            ProfileRow.org_id == org_id, ProfileRow.status == "active"
        )
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [_row_to_profile(r) for r in rows]

    async def get_leave_request(self, request_id: UUID) -> LeaveRequest | None:
        row = await self._get(LeaveRequestRow, request_id)
        return _row_to_leave_request(row) if row is not None else None

    async def get_correction_request(
        self, request_id: UUID
    ) -> CorrectionRequest | None:
        row = await self._get(CorrectionRequestRow, request_id)
        return _row_to_correction_request(row) if row is not None else None

    async def get_reimbursement(
        self, request_id: UUID
    ) -> ReimbursementRequest | None:
        row = await self._get(ReimbursementRequestRow, request_id)
        return _row_to_reimbursement(row) if row is not None else None

    async def get_memo(self, memo_id: UUID) -> Memo | None:
        row = await self._get(MemoRow, memo_id)
        return _row_to_memo(row) if row is not None else None


# --- row -> domain ---


def _row_to_profile(row: ProfileRow) -> Profile:
    return Profile(
        id=row.id,
        org_id=row.org_id,
        full_name=row.full_name,
        email=row.email,
        user_id=row.user_id,
        manager_id=row.manager_id,
        status=row.status,
    )


def _row_to_leave_request(row: LeaveRequestRow) -> LeaveRequest:
    return LeaveRequest(
        id=row.id,
        org_id=row.org_id,
        profile_id=row.profile_id,
        leave_type=row.leave_type,
        from_date=row.from_date,
        to_date=row.to_date,
        days=row.days,
        reason=row.reason,
        status=row.status,
    )


def _row_to_correction_request(row: CorrectionRequestRow) -> CorrectionRequest:
    return CorrectionRequest(
        id=row.id,
        org_id=row.org_id,
        profile_id=row.profile_id,
        attendance_date=row.attendance_date,
        reason=row.reason,
        reviewer_notes=row.reviewer_notes,
        status=row.status,
    )


def _row_to_reimbursement(row: ReimbursementRequestRow) -> ReimbursementRequest:
    return ReimbursementRequest(
        id=row.id,
        org_id=row.org_id,
        profile_id=row.profile_id,
        amount=row.amount,
        category=row.category,
        vendor_name=row.vendor_name,
        manager_notes=row.manager_notes,
        finance_notes=row.finance_notes,
        status=row.status,
    )


def _row_to_memo(row: MemoRow) -> Memo:
    return Memo(
        id=row.id,
        org_id=row.org_id,
        title=row.title,
        content=row.content or "",
        author_name=row.author_name,
        excerpt=row.excerpt,
        recipients=tuple(row.recipients or ()),
    )
