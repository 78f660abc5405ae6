from __future__ import annotations

from typing import Protocol
from uuid import UUID

from bizsuite.models.workforce import (
    CorrectionRequest,
    LeaveRequest,
    Memo,
    Profile,
    ReimbursementRequest,
)


class WorkforceRepo(Protocol):
    async def get_profile(self, profile_id: UUID) -> Profile | None: ...
    async def list_active_profiles(self, org_id: UUID) -> list[Profile]: ...
    async def get_leave_request(self, request_id: UUID) -> LeaveRequest | None: ...
    async def get_correction_request(
        self, request_id: UUID
    ) -> CorrectionRequest | None: ...
    async def get_reimbursement(
        self, request_id: UUID
    ) -> ReimbursementRequest | None: ...
    async def get_memo(self, memo_id: UUID) -> Memo | None: ...


class InMemoryWorkforceRepo:
    def __init__(self) -> None:
        self._profiles: dict[UUID, Profile] = {}
        self._leave_requests: dict[UUID, LeaveRequest] = {}
        self._corrections: dict[UUID, CorrectionRequest] = {}
        self._reimbursements: dict[UUID, ReimbursementRequest] = {}
        self._memos: dict[UUID, Memo] = {}

    def add_profile(self, profile: Profile) -> None:
        self._profiles[profile.id] = profile

    def add_leave_request(self, request: LeaveRequest) -> None:
        self._leave_requests[request.id] = request

    def add_correction_request(self, request: CorrectionRequest) -> None:
        self._corrections[request.id] = request

    def add_reimbursement(self, request: ReimbursementRequest) -> None:
        self._reimbursements[request.id] = request

    def add_memo(self, memo: Memo) -> None:
        self._memos[memo.id] = memo

    def clear(self) -> None:
        self._profiles.clear()
        self._leave_requests.clear()
        self._corrections.clear()
        self._reimbursements.clear()
        self._memos.clear()

    async def get_profile(self, profile_id: UUID) -> Profile | None:
        return self._profiles.get(profile_id)

    async def list_active_profiles(self, org_id: UUID) -> list[Profile]:
        return [
            p
            for p in self._profiles.values()
            if p.org_id == org_id and p.status == "active"
        ]

    async def get_leave_request(self, request_id: UUID) -> LeaveRequest | None:
        return self._leave_requests.get(request_id)

    async def get_correction_request(
        self, request_id: UUID
    ) -> CorrectionRequest | None:
        return self._corrections.get(request_id)

    async def get_reimbursement(
        self, request_id: UUID
    ) -> ReimbursementRequest | None:
        return self._reimbursements.get(request_id)

    async def get_memo(self, memo_id: UUID) -> Memo | None:
        return self._memos.get(memo_id)
