"""Domain ports (interfaces) for dependency inversion."""

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

from sonicat.domain.dtos import ExtractedMetadata
from sonicat.domain.value_objects import CatalogKey


@dataclass(frozen=True)
class StoreEntry:
    """One key/value pair yielded by ICatalogStore.list()."""

    key: CatalogKey
    value: Any


class AtomicBatch(ABC):
    """A group of writes applied together by commit().

    Hey future me - this is how the sweep bounds transaction size! Collect at most
    batch_size operations, commit, start a new batch. Nothing is visible before
    commit() and everything is visible after it.
    """

    @abstractmethod
    def set(self, key: CatalogKey, value: Any) -> "AtomicBatch":
        """Queue a write."""

    @abstractmethod
    def delete(self, key: CatalogKey) -> "AtomicBatch":
        """Queue a delete."""

    @abstractmethod
    async def commit(self) -> None:
        """Apply all queued operations in one transaction."""

    @abstractmethod
    def __len__(self) -> int:
        """Number of queued operations."""


# Hey future me, ICatalogStore is THE storage port. It's a flat key-value store with tuple keys
# whose first part is the collection ("tracks", "albums", ...). There are NO foreign keys and NO
# cascades - referential integrity is the consistency sweep's job. list() must tolerate deletes of
# already-yielded keys while iterating (the sweep deletes as it walks).
class ICatalogStore(ABC):
    """Flat key-value store holding every catalog collection."""

    @abstractmethod
    async def get(self, key: CatalogKey) -> Any | None:
        """Get the raw value for a key, or None."""

    @abstractmethod
    async def set(self, key: CatalogKey, value: Any) -> None:
        """Write a JSON-compatible value."""

    @abstractmethod
    async def delete(self, key: CatalogKey) -> None:
        """Delete a key (no-op if absent)."""

    @abstractmethod
    def list(self, prefix: CatalogKey) -> AsyncIterator[StoreEntry]:
        """Iterate entries whose key starts with prefix, ordered by key."""

    @abstractmethod
    def atomic(self) -> AtomicBatch:
        """Start a new atomic batch."""


class IMetadataExtractor(ABC):
    """Port for the metadata extraction collaborator."""

    @abstractmethod
    async def extract(self, file_path: str) -> ExtractedMetadata:
        """Parse tags and audio properties for one file.

        Raises:
            OSError: File vanished or is unreadable
            ValueError: File could not be parsed as audio
        """


__all__ = [
    "AtomicBatch",
    "ICatalogStore",
    "IMetadataExtractor",
    "StoreEntry",
]
