"""In-memory catalog store.

Hey future me - this is a REAL store, not a mock: same semantics as SqlCatalogStore
(values are deep-copied like a serialize/deserialize round trip, list() is ordered and
tolerates deletes while iterating). Use it for tests and for dry-run scans.
It also records commit sizes so batch bounds can be verified.
"""

import copy
from collections.abc import AsyncIterator
from typing import Any

from sonicat.domain.ports import AtomicBatch, ICatalogStore, StoreEntry
from sonicat.domain.value_objects import CatalogKey


class MemoryAtomicBatch(AtomicBatch):
    """Queued writes applied to the dict in one step."""

    def __init__(self, store: "MemoryCatalogStore") -> None:
        self._store = store
        self._operations: list[tuple[str, CatalogKey, Any]] = []

    def set(self, key: CatalogKey, value: Any) -> "MemoryAtomicBatch":
        self._operations.append(("set", tuple(key), copy.deepcopy(value)))
        return self

    def delete(self, key: CatalogKey) -> "MemoryAtomicBatch":
        self._operations.append(("delete", tuple(key), None))
        return self

    def __len__(self) -> int:
        return len(self._operations)

    async def commit(self) -> None:
        if not self._operations:
            return
        for operation, key, value in self._operations:
            if operation == "set":
                self._store.data[key] = value
            else:
                self._store.data.pop(key, None)
        self._store.commit_sizes.append(len(self._operations))
        self._operations.clear()


class MemoryCatalogStore(ICatalogStore):
    """Dict-backed ICatalogStore."""

    def __init__(self) -> None:
        self.data: dict[CatalogKey, Any] = {}
        self.commit_sizes: list[int] = []

    @property
    def commit_count(self) -> int:
        """Number of atomic batches committed so far."""
        return len(self.commit_sizes)

    async def get(self, key: CatalogKey) -> Any | None:
        return copy.deepcopy(self.data.get(tuple(key)))

    async def set(self, key: CatalogKey, value: Any) -> None:
        self.data[tuple(key)] = copy.deepcopy(value)

    async def delete(self, key: CatalogKey) -> None:
        self.data.pop(tuple(key), None)

    async def list(self, prefix: CatalogKey) -> AsyncIterator[StoreEntry]:
        prefix = tuple(prefix)
        matching = sorted(key for key in self.data if key[: len(prefix)] == prefix)
        for key in matching:
            # Skip keys deleted since the snapshot was taken
            if key in self.data:
                yield StoreEntry(key=key, value=copy.deepcopy(self.data[key]))

    def atomic(self) -> MemoryAtomicBatch:
        return MemoryAtomicBatch(self)
