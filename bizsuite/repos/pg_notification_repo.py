"""PostgreSQL implementation of NotificationRepo.

Each call runs in its own short transaction: a dispatch that writes five
rows commits five times, and a failure on the third leaves the first two
in place.  Dispatch is documented as non-idempotent, so partial delivery
is reported by the error rather than rolled back.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from bizsuite.db.tables import NotificationRow
from bizsuite.models.notification import Notification


class PgNotificationRepo:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def add(self, notification: Notification) -> None:
        async with self._session_factory() as session, session.begin():
            session.add(
                NotificationRow(
                    id=notification.id,
                    user_id=notification.user_id,
                    org_id=notification.org_id,
                    title=notification.title,
                    message=notification.message,
                    type=notification.type,
                    link=notification.link,
                    is_read=notification.is_read,
                    created_at=notification.created_at,
                )
            )

    async def list_for_user(
        self, user_id: str, org_id: UUID | None = None
    ) -> list[Notification]:
        stmt = select(NotificationRow).where(NotificationRow.user_id == user_id)
        if org_id is not None:
            stmt = stmt.where(NotificationRow.org_id == org_id)
        stmt = stmt.order_by(NotificationRow.created_at.desc())
        async with self._session_factory() as session:
            rows = (await session.execute(stmt)).scalars().all()
        return [_row_to_notification(r) for r in rows]

    async def mark_read(
        self, notification_id: UUID, user_id: str
    ) -> Notification | None:
        stmt = (
            update(NotificationRow)
            .where(
                NotificationRow.id == notification_id,
                NotificationRow.user_id == user_id,
            )
            .values(is_read=True)
            .returning(NotificationRow)
        )
        async with self._session_factory() as session, session.begin():
            row = (await session.execute(stmt)).scalar_one_or_none()
            return _row_to_notification(row) if row is not None else None


def _row_to_notification(row: NotificationRow) -> Notification:
    return Notification(
        id=row.id,
        user_id=row.user_id,
        org_id=row.org_id,
        title=row.title,
        message=row.message,
        type=row.type,
        link=row.link,
        created_at=row.created_at,
        is_read=row.is_read,
    )
