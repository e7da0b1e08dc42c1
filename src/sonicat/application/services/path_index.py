"""Path index: absolute file path to track id mapping."""

import logging
from collections.abc import AsyncIterator

from sonicat.domain.ports import ICatalogStore
from sonicat.domain.value_objects import Collection

logger = logging.getLogger(__name__)


class PathIndex:
    """Authoritative mapping stored under ("filePathToId", path).

    Hey future me - this mapping is the ONLY answer to "is this file indexed?".
    A track whose mapping is gone (or points somewhere else) gets deleted by the
    sweep, so always bind AFTER the track record is written.
    """

    def __init__(self, store: ICatalogStore) -> None:
        self._store = store

    async def lookup(self, path: str) -> str | None:
        """Get the track id bound to a path."""
        value = await self._store.get(Collection.FILE_PATH_TO_ID.key(path))
        return value if isinstance(value, str) else None

    async def bind(self, path: str, track_id: str) -> None:
        """Bind a path to a track id (no write when already bound)."""
        if await self.lookup(path) == track_id:
            return
        await self._store.set(Collection.FILE_PATH_TO_ID.key(path), track_id)
        logger.debug(f"Bound {path} -> {track_id}")

    async def unbind(self, path: str) -> None:
        await self._store.delete(Collection.FILE_PATH_TO_ID.key(path))

    async def entries(self) -> AsyncIterator[tuple[str, str | None]]:
        """Iterate (path, track id) pairs; a malformed value yields None as id."""
        async for entry in self._store.list(Collection.FILE_PATH_TO_ID.prefix):
            track_id = entry.value if isinstance(entry.value, str) else None
            yield entry.key[1], track_id
