"""Playlist maintenance: totals, entry pruning and cover derivation."""

import logging
from collections.abc import Mapping, Sequence

from sonicat.application.services.cover_art_service import CoverArtService
from sonicat.application.services.record_decoding import Decoded, decode_record
from sonicat.domain.entities import CoverArt, Playlist, Track, utc_now
from sonicat.domain.exceptions import EntityNotFoundException
from sonicat.domain.ports import ICatalogStore
from sonicat.domain.value_objects import Collection

logger = logging.getLogger(__name__)


def recompute_totals(playlist: Playlist, durations: Mapping[str, int]) -> bool:
    """Set songCount and duration from the current entry list.

    Args:
        playlist: Playlist to update in place
        durations: Track id to duration in seconds (unknown ids count as 0)

    Returns:
        True if songCount or duration changed
    """
    song_count = len(playlist.entry)
    duration = sum(durations.get(track_id, 0) for track_id in playlist.entry)
    if playlist.song_count == song_count and playlist.duration == duration:
        return False
    playlist.song_count = song_count
    playlist.duration = duration
    return True


class PlaylistService:
    """Keeps playlists consistent with the tracks they reference."""

    def __init__(self, store: ICatalogStore, cover_service: CoverArtService) -> None:
        self._store = store
        self._covers = cover_service

    async def get_playlist(self, playlist_id: str) -> Playlist | None:
        result = decode_record(Playlist, await self._store.get(Collection.PLAYLISTS.key(playlist_id)))
        return result.record if isinstance(result, Decoded) else None

    async def save_playlist(self, playlist: Playlist) -> None:
        playlist.changed = utc_now()
        await self._store.set(Collection.PLAYLISTS.key(playlist.id), playlist.to_record())

    async def track_durations(self, track_ids: Sequence[str]) -> dict[str, int]:
        """Durations of the given tracks that exist (missing tracks are left out)."""
        durations: dict[str, int] = {}
        for track_id in dict.fromkeys(track_ids):
            result = decode_record(Track, await self._store.get(Collection.TRACKS.key(track_id)))
            if isinstance(result, Decoded):
                durations[track_id] = result.record.duration
        return durations

    async def save_entries(self, playlist_id: str, entry: Sequence[str]) -> Playlist:
        """Replace a playlist's entries (user edit path).

        Entries pointing at unknown tracks are dropped, totals are recomputed and
        the cover is re-derived.

        Raises:
            EntityNotFoundException: If the playlist does not exist
        """
        playlist = await self.get_playlist(playlist_id)
        if playlist is None:
            raise EntityNotFoundException("Playlist", playlist_id)

        durations = await self.track_durations(entry)
        playlist.entry = [track_id for track_id in entry if track_id in durations]
        recompute_totals(playlist, durations)
        await self.save_playlist(playlist)
        logger.info(f"Saved playlist \"{playlist.name}\" with {playlist.song_count} entries")

        await self.update_playlist_cover(playlist_id)
        return await self.get_playlist(playlist_id) or playlist

    async def update_playlist_cover(self, playlist_id: str) -> bool:
        """Derive the playlist cover from its first entry's album cover.

        Nothing changes while the playlist's own cover record points at an existing file.

        Returns:
            True if a new cover record was written
        """
        playlist = await self.get_playlist(playlist_id)
        if playlist is None:
            logger.warning(f"Could not find or parse playlist with ID: {playlist_id}")
            return False

        if await self._covers.get_cover(playlist.id) is not None:
            return False

        source = await self._first_entry_cover(playlist)
        if source is None:
            return False

        cover = CoverArt(id=playlist.id, mime_type=source.mime_type, path=source.path)
        await self._store.set(Collection.COVERS.key(playlist.id), cover.to_record())
        playlist.cover_art = playlist.id
        await self.save_playlist(playlist)
        logger.info(f"Derived cover for playlist \"{playlist.name}\" from album cover {source.id}")
        return True

    async def _first_entry_cover(self, playlist: Playlist) -> CoverArt | None:
        for track_id in playlist.entry:
            result = decode_record(Track, await self._store.get(Collection.TRACKS.key(track_id)))
            if not isinstance(result, Decoded):
                continue
            cover_id = result.record.cover_art or result.record.album_id
            if cover_id:
                cover = await self._covers.get_cover(cover_id)
                if cover is not None:
                    return cover
        return None
