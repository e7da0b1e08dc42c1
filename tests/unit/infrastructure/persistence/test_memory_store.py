"""Tests for the in-memory catalog store."""

import pytest

from sonicat.infrastructure.persistence import MemoryCatalogStore


@pytest.mark.asyncio
async def test_values_are_copied(store: MemoryCatalogStore) -> None:
    value = {"song": ["t1"]}
    await store.set(("albums", "a1"), value)
    value["song"].append("t2")

    fetched = await store.get(("albums", "a1"))
    fetched["song"].append("t3")

    assert await store.get(("albums", "a1")) == {"song": ["t1"]}


@pytest.mark.asyncio
async def test_list_is_ordered_and_prefix_scoped(store: MemoryCatalogStore) -> None:
    await store.set(("userData", "u2", "track", "t1"), 1)
    await store.set(("userData", "u1", "track", "t2"), 2)
    await store.set(("userData", "u1", "album", "a1"), 3)
    await store.set(("users", "u1"), 4)

    keys = [entry.key async for entry in store.list(("userData", "u1"))]

    assert keys == [("userData", "u1", "album", "a1"), ("userData", "u1", "track", "t2")]


@pytest.mark.asyncio
async def test_list_tolerates_deletes(store: MemoryCatalogStore) -> None:
    for i in range(5):
        await store.set(("tracks", f"t{i}"), i)

    seen = []
    async for entry in store.list(("tracks",)):
        seen.append(entry.key[1])
        await store.delete(("tracks", "t3"))

    assert seen == ["t0", "t1", "t2", "t4"]


@pytest.mark.asyncio
async def test_atomic_batch(store: MemoryCatalogStore) -> None:
    await store.set(("covers", "c1"), {"id": "c1"})
    txn = store.atomic()
    txn.set(("covers", "c2"), {"id": "c2"}).delete(("covers", "c1"))

    # Nothing visible before commit
    assert await store.get(("covers", "c2")) is None
    assert len(txn) == 2
    await txn.commit()

    assert await store.get(("covers", "c1")) is None
    assert await store.get(("covers", "c2")) == {"id": "c2"}
    assert store.commit_sizes == [2]
