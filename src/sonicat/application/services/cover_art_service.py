# Hey future me - cover art is best-effort! A missing or unwritable cover must NEVER fail a
# scan, so every I/O error here is logged and turned into None. Local files next to the
# audio win over embedded pictures (usually higher resolution, and no copy needed).
"""Album cover art discovery and storage."""

import asyncio
import logging
import os
from collections.abc import Sequence
from pathlib import Path

from sonicat.application.services.record_decoding import Decoded, decode_record
from sonicat.domain.dtos import EmbeddedPicture
from sonicat.domain.entities import CoverArt
from sonicat.domain.ports import ICatalogStore
from sonicat.domain.value_objects import Collection

logger = logging.getLogger(__name__)

LOCAL_COVER_NAMES: tuple[str, ...] = (
    "cover.jpg",
    "cover.png",
    "folder.jpg",
    "folder.png",
    "album.png",
    "album.jpg",
    "front.jpg",
    "front.png",
)

MIME_TO_EXT: dict[str, str] = {
    "image/jpeg": "jpg",
    "image/jpg": "jpg",
    "image/png": "png",
    "image/gif": "gif",
    "image/webp": "webp",
    "image/bmp": "bmp",
    "image/svg+xml": "svg",
}

_EXT_TO_MIME: dict[str, str] = {
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "png": "image/png",
}


def pick_embedded_picture(pictures: Sequence[EmbeddedPicture]) -> EmbeddedPicture | None:
    """Pick the front cover, else any cover, else the first picture."""
    if not pictures:
        return None
    for picture in pictures:
        if picture.picture_type.lower() == "cover (front)":
            return picture
    for picture in pictures:
        if picture.picture_type.lower().startswith("cover"):
            return picture
    return pictures[0]


def find_local_cover(track_path: str) -> Path | None:
    """Find a cover image file in the track's directory."""
    directory = Path(track_path).parent
    for name in LOCAL_COVER_NAMES:
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


class CoverArtService:
    """Record cover art for albums (and playlists, via PlaylistService)."""

    def __init__(self, store: ICatalogStore, covers_path: Path) -> None:
        """Initialize service.

        Args:
            store: Catalog store
            covers_path: Directory for extracted embedded pictures
        """
        self._store = store
        self._covers_path = covers_path

    async def get_cover(self, cover_id: str) -> CoverArt | None:
        """Get a cover record whose file still exists on disk."""
        result = decode_record(CoverArt, await self._store.get(Collection.COVERS.key(cover_id)))
        if not isinstance(result, Decoded):
            return None
        loop = asyncio.get_running_loop()
        if not await loop.run_in_executor(None, os.path.exists, result.record.path):
            return None
        return result.record

    async def store_album_cover(
        self,
        album_id: str,
        track_path: str,
        pictures: Sequence[EmbeddedPicture] = (),
    ) -> CoverArt | None:
        """Make sure a cover record exists for the album.

        Args:
            album_id: Album id (also the cover id)
            track_path: Path of a track of this album
            pictures: Pictures embedded in that track

        Returns:
            The cover record, or None when no cover could be found or written
        """
        existing = await self.get_cover(album_id)
        if existing is not None:
            return existing

        try:
            local = await asyncio.get_running_loop().run_in_executor(
                None, find_local_cover, track_path
            )
            if local is not None:
                ext = local.suffix.lstrip(".").lower()
                cover = CoverArt(
                    id=album_id,
                    mime_type=_EXT_TO_MIME.get(ext, f"image/{ext}"),
                    path=str(local),
                )
            else:
                picture = pick_embedded_picture(pictures)
                if picture is None:
                    return None
                cover = await self._write_picture(album_id, picture)
        except OSError as e:
            logger.warning(f"Could not store cover art for album {album_id}: {e}")
            return None

        await self._store.set(Collection.COVERS.key(album_id), cover.to_record())
        logger.debug(f"Stored cover art {album_id} at {cover.path}")
        return cover

    async def _write_picture(self, cover_id: str, picture: EmbeddedPicture) -> CoverArt:
        ext = MIME_TO_EXT.get(picture.mime_type.lower(), "jpg")
        target = self._covers_path / f"{cover_id}.{ext}"

        def _write() -> None:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(picture.data)

        await asyncio.get_running_loop().run_in_executor(None, _write)
        return CoverArt(id=cover_id, mime_type=picture.mime_type, path=str(target))
