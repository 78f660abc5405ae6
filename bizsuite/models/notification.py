from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import UUID, uuid4


@dataclass(frozen=True, slots=True)
class Notification:
    id: UUID
    user_id: str
    org_id: UUID
    title: str
    message: str
    type: str  # info|warning|memo|leave_request|leave_approved|leave_rejected
    link: str | None
    created_at: datetime
    is_read: bool = False

    @staticmethod
    def new(
        *,
        user_id: str,
        org_id: UUID,
        title: str,
        message: str,
        type: str,
        link: str | None = None,
    ) -> Notification:
        return Notification(
            id=uuid4(),
            user_id=user_id,
            org_id=org_id,
            title=title,
            message=message,
            type=type,
            link=link,
            created_at=datetime.now(UTC),
        )
