"""SQLAlchemy-backed catalog store."""

import logging
from collections.abc import AsyncIterator
from typing import Any

from sqlalchemy import delete, select

from sonicat.domain.ports import AtomicBatch, ICatalogStore, StoreEntry
from sonicat.domain.value_objects import CatalogKey
from sonicat.infrastructure.persistence.database import Database
from sonicat.infrastructure.persistence.models import (
    CatalogEntryModel,
    decode_key,
    encode_key,
)

logger = logging.getLogger(__name__)


class SqlAtomicBatch(AtomicBatch):
    """Queues writes and applies them in one database transaction."""

    def __init__(self, database: Database) -> None:
        self._database = database
        self._operations: list[tuple[str, CatalogKey, Any]] = []

    def set(self, key: CatalogKey, value: Any) -> "SqlAtomicBatch":
        self._operations.append(("set", key, value))
        return self

    def delete(self, key: CatalogKey) -> "SqlAtomicBatch":
        self._operations.append(("delete", key, None))
        return self

    def __len__(self) -> int:
        return len(self._operations)

    async def commit(self) -> None:
        if not self._operations:
            return
        async with self._database.session_scope() as session:
            for operation, key, value in self._operations:
                collection, encoded = encode_key(key)
                if operation == "set":
                    await session.merge(
                        CatalogEntryModel(collection=collection, key=encoded, value=value)
                    )
                else:
                    await session.execute(
                        delete(CatalogEntryModel).where(
                            CatalogEntryModel.collection == collection,
                            CatalogEntryModel.key == encoded,
                        )
                    )
        logger.debug("Committed atomic batch of %d operations", len(self._operations))
        self._operations.clear()


# Hey future me - every single-key operation is its OWN short transaction! That keeps SQLite
# locks short during a long scan (the serving layer keeps reading) and makes each write
# individually durable, which is what the idempotent scan/sweep design relies on.
class SqlCatalogStore(ICatalogStore):
    """ICatalogStore on top of the catalog_entries table."""

    def __init__(self, database: Database, page_size: int = 500) -> None:
        self._database = database
        self._page_size = page_size

    async def get(self, key: CatalogKey) -> Any | None:
        collection, encoded = encode_key(key)
        async with self._database.session_scope() as session:
            model = await session.get(CatalogEntryModel, (collection, encoded))
            return model.value if model else None

    async def set(self, key: CatalogKey, value: Any) -> None:
        collection, encoded = encode_key(key)
        async with self._database.session_scope() as session:
            await session.merge(
                CatalogEntryModel(collection=collection, key=encoded, value=value)
            )

    async def delete(self, key: CatalogKey) -> None:
        collection, encoded = encode_key(key)
        async with self._database.session_scope() as session:
            await session.execute(
                delete(CatalogEntryModel).where(
                    CatalogEntryModel.collection == collection,
                    CatalogEntryModel.key == encoded,
                )
            )

    async def list(self, prefix: CatalogKey) -> AsyncIterator[StoreEntry]:
        """Iterate a collection page by page (keyset pagination).

        Each page is read in its own short session, so callers may delete or
        rewrite already-yielded keys while iterating.
        """
        if not prefix:
            raise ValueError("list() needs at least the collection prefix")
        collection = prefix[0]
        sub_prefix = tuple(prefix[1:])
        last_key: str | None = None

        while True:
            stmt = (
                select(CatalogEntryModel.key, CatalogEntryModel.value)
                .where(CatalogEntryModel.collection == collection)
                .order_by(CatalogEntryModel.key)
                .limit(self._page_size)
            )
            if last_key is not None:
                stmt = stmt.where(CatalogEntryModel.key > last_key)

            async with self._database.session_scope() as session:
                rows = (await session.execute(stmt)).all()

            for encoded, value in rows:
                key = decode_key(collection, encoded)
                if key[1 : 1 + len(sub_prefix)] == sub_prefix:
                    yield StoreEntry(key=key, value=value)

            if len(rows) < self._page_size:
                break
            last_key = rows[-1][0]

    def atomic(self) -> SqlAtomicBatch:
        return SqlAtomicBatch(self._database)
