from __future__ import annotations

from dataclasses import replace
from typing import Protocol
from uuid import UUID

from bizsuite.models.notification import Notification


class NotificationRepo(Protocol):
    async def add(self, notification: Notification) -> None: ...
    async def list_for_user(
        self, user_id: str, org_id: UUID | None = None
    ) -> list[Notification]: ...
    async def mark_read(
        self, notification_id: UUID, user_id: str
    ) -> Notification | None: ...


class InMemoryNotificationRepo:
    def __init__(self) -> None:
        self._store: dict[UUID, Notification] = {}

    async def add(self, notification: Notification) -> None:
        self._store[notification.id] = notification

    async def list_for_user(
        self, user_id: str, org_id: UUID | None = None
    ) -> list[Notification]:
        found = [
            n
            for n in self._store.values()
            if n.user_id == user_id and org_id in (None, n.org_id)
        ]
        return sorted(found, key=lambda n: n.created_at, reverse=True)

    async def mark_read(
        self, notification_id: UUID, user_id: str
    ) -> Notification | None:
        existing = self._store.get(notification_id)
        # Another user's notification reads as missing
        if existing is None or existing.user_id != user_id:
            return None
        updated = replace(existing, is_read=True)
        self._store[notification_id] = updated
        return updated
