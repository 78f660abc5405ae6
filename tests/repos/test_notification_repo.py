from __future__ import annotations

import asyncio
from dataclasses import replace
from datetime import timedelta
from uuid import uuid4

from bizsuite.models.notification import Notification
from bizsuite.repos.notification_repo import InMemoryNotificationRepo


def _note(user_id: str, org_id, title: str = "Hello") -> Notification:
    return Notification.new(
        user_id=user_id, org_id=org_id, title=title, message="m", type="info"
    )


def test_list_is_newest_first_and_org_filtered() -> None:
    repo = InMemoryNotificationRepo()
    org_a, org_b = uuid4(), uuid4()
    older = _note("u1", org_a, "older")
    newer = replace(
        _note("u1", org_a, "newer"), created_at=older.created_at + timedelta(seconds=5)
    )
    other_org = _note("u1", org_b, "elsewhere")
    other_user = _note("u2", org_a, "not mine")

    async def scenario():
        for n in (older, newer, other_org, other_user):
            await repo.add(n)
        return (
            await repo.list_for_user("u1", org_a),
            await repo.list_for_user("u1"),
        )

    scoped, everything = asyncio.run(scenario())
    assert [n.title for n in scoped] == ["newer", "older"]
    assert {n.title for n in everything} == {"newer", "older", "elsewhere"}


def test_mark_read_only_for_owner() -> None:
    repo = InMemoryNotificationRepo()
    note = _note("u1", uuid4())

    async def scenario():
        await repo.add(note)
        stranger = await repo.mark_read(note.id, "u2")
        owner = await repo.mark_read(note.id, "u1")
        return stranger, owner

    stranger, owner = asyncio.run(scenario())
    assert stranger is None
    assert owner is not None and owner.is_read
