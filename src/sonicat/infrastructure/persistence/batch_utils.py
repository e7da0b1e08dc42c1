# Hey future me - these are THE tools for keeping commits small!
#
# A sweep over a big library can find thousands of keys to delete. Committing them in ONE
# transaction holds the SQLite write lock for the whole time and makes a failure lose all of
# it. Committing them one by one is slow. Fixed-size atomic groups are the middle ground:
# each group is small, retry-friendly, and targets keys no other group touches.
"""Batch deletion helpers for the catalog store."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable

from sonicat.domain.ports import ICatalogStore
from sonicat.domain.value_objects import CatalogKey

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100


def chunked(keys: Iterable[CatalogKey], size: int) -> Iterable[list[CatalogKey]]:
    """Split keys into lists of at most size elements."""
    if size < 1:
        raise ValueError(f"batch size must be >= 1, got {size}")
    batch: list[CatalogKey] = []
    for key in keys:
        batch.append(key)
        if len(batch) >= size:
            yield batch
            batch = []
    if batch:
        yield batch


async def delete_in_batches(
    store: ICatalogStore,
    keys: Iterable[CatalogKey],
    batch_size: int = DEFAULT_BATCH_SIZE,
    breather_interval: int = 10,
    breather_delay: float = 0.0,
) -> int:
    """Delete keys through atomic groups of at most batch_size.

    Args:
        store: Catalog store
        keys: Keys to delete
        batch_size: Maximum keys per commit
        breather_interval: Commits between yields to the event loop
        breather_delay: Seconds to sleep at each breather

    Returns:
        Number of keys deleted
    """
    deleted = 0
    commits = 0
    for batch in chunked(keys, batch_size):
        txn = store.atomic()
        for key in batch:
            txn.delete(key)
        await txn.commit()
        deleted += len(batch)
        commits += 1
        logger.debug("Deleted batch of %d keys", len(batch))

        if commits % breather_interval == 0:
            await asyncio.sleep(breather_delay)

    return deleted


async def clear_prefix(
    store: ICatalogStore,
    prefix: CatalogKey,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> int:
    """Delete every key under a prefix in atomic groups.

    Returns:
        Number of keys deleted
    """
    return await delete_in_batches(
        store, [key async for key in _keys(store, prefix)], batch_size=batch_size
    )


async def _keys(store: ICatalogStore, prefix: CatalogKey) -> AsyncIterator[CatalogKey]:
    async for entry in store.list(prefix):
        yield entry.key
