from __future__ import annotations

import asyncio
from uuid import uuid4

import pytest

from bizsuite.models.organization import Organization
from bizsuite.repos.tenant_store import InMemoryTenantStore


def test_commit_keeps_writes() -> None:
    store = InMemoryTenantStore()
    org = Organization.new(name="Acme")

    async def scenario():
        async with store.transaction() as tx:
            await tx.add_org(org)
            await tx.set_roles(org.id, "u1", ["admin"])
        async with store.transaction() as tx:
            return await tx.get_org(org.id), await tx.list_members(org.id)

    found, members = asyncio.run(scenario())
    assert found == org
    assert members == {"u1": ["admin"]}


def test_exception_rolls_back_every_write() -> None:
    store = InMemoryTenantStore()
    org = Organization.new(name="Acme")

    async def scenario():
        with pytest.raises(RuntimeError):
            async with store.transaction() as tx:
                await tx.add_org(org)
                await tx.set_roles(org.id, "u1", ["admin"])
                raise RuntimeError("boom")
        async with store.transaction() as tx:
            return await tx.get_org(org.id), await tx.list_members(org.id)

    assert asyncio.run(scenario()) == (None, {})


def test_duplicate_org_rejected() -> None:
    store = InMemoryTenantStore()
    org = Organization.new(name="Acme")

    async def scenario():
        async with store.transaction() as tx:
            await tx.add_org(org)
            await tx.add_org(org)

    with pytest.raises(ValueError, match="already exists"):
        asyncio.run(scenario())


def test_members_scoped_to_org() -> None:
    store = InMemoryTenantStore()
    first, second = uuid4(), uuid4()

    async def scenario():
        async with store.transaction() as tx:
            await tx.set_roles(first, "u1", ["hr", "employee"])
            await tx.set_roles(second, "u2", ["admin"])
            removed = await tx.remove_roles(second, "u2")
            missing = await tx.remove_roles(second, "u2")
            return await tx.list_members(first), removed, missing

    members, removed, missing = asyncio.run(scenario())
    assert members == {"u1": ["hr", "employee"]}
    assert (removed, missing) == (True, False)


def test_transactions_do_not_interleave() -> None:
    store = InMemoryTenantStore()
    org_id = uuid4()
    events: list[str] = []

    async def writer(name: str) -> None:
        async with store.transaction() as tx:
            events.append(f"{name}-start")
            current = await tx.get_roles(org_id, "counter")
            await asyncio.sleep(0)
            await tx.set_roles(org_id, "counter", [*current, name])
            events.append(f"{name}-end")

    async def scenario():
        await asyncio.gather(writer("a"), writer("b"))
        async with store.transaction() as tx:
            return await tx.get_roles(org_id, "counter")

    assert sorted(asyncio.run(scenario())) == ["a", "b"]
    assert events in (
        ["a-start", "a-end", "b-start", "b-end"],
        ["b-start", "b-end", "a-start", "a-end"],
    )


def test_store_usable_across_event_loops() -> None:
    store = InMemoryTenantStore()

    async def touch() -> None:
        async with store.transaction() as tx:
            await tx.list_orgs()

    asyncio.run(touch())
    asyncio.run(touch())
