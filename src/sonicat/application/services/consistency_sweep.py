# Hey future me - this is the ONLY place that enforces referential integrity!
# The store is a flat key-value map: no foreign keys, no cascades. When a file disappears,
# its track, mapping, album membership, artist back-links, playlist entries, cover, cover
# shares and user annotations all have to go, and nothing but this sweep will do it.
#
# Passes run in dependency order and each one builds the "in use" sets the next one needs:
#   mappings -> tracks -> albums -> artists -> playlists -> covers -> shares -> userData
# NEVER reorder them: e.g. running the artist pass before the album pass would delete artists
# that are only credited on an album.
#
# Every step is idempotent, so an interrupted sweep (cancel, crash) is simply completed by the
# next one.
"""Post-scan consistency sweep and hard reset."""

import logging
from collections.abc import Set
from dataclasses import asdict, dataclass, field
from typing import Any

from sonicat.application.cancellation import CancellationToken
from sonicat.application.services.path_index import PathIndex
from sonicat.application.services.playlist_service import (
    PlaylistService,
    recompute_totals,
)
from sonicat.application.services.record_decoding import (
    Decoded,
    MalformedPolicy,
    decode_record,
    malformed_policy_for,
)
from sonicat.domain.entities import (
    Album,
    Artist,
    CoverArt,
    Playlist,
    Share,
    ShareItemType,
    Track,
)
from sonicat.domain.ports import ICatalogStore
from sonicat.domain.value_objects import CatalogKey, Collection, EntityType
from sonicat.infrastructure.persistence.batch_utils import (
    DEFAULT_BATCH_SIZE,
    clear_prefix,
    delete_in_batches,
)

logger = logging.getLogger(__name__)

# Collections wiped by hard_reset. Playlists, users and user annotations are NOT in here.
HARD_RESET_COLLECTIONS: tuple[Collection, ...] = (
    Collection.TRACKS,
    Collection.ALBUMS,
    Collection.ARTISTS,
    Collection.COVERS,
    Collection.FILE_PATH_TO_ID,
    Collection.SHARES,
    Collection.AUTO_SHARES,
    Collection.RADIO_STATIONS,
)


@dataclass
class SweepStats:
    """Counters of one sweep run."""

    removed_mappings: int = 0
    removed_tracks: int = 0
    removed_albums: int = 0
    updated_albums: int = 0
    removed_artists: int = 0
    updated_artists: int = 0
    updated_playlists: int = 0
    malformed_playlists: int = 0
    playlist_covers: int = 0
    removed_covers: int = 0
    removed_shares: int = 0
    removed_auto_shares: int = 0
    removed_user_data: int = 0

    def to_dict(self) -> dict[str, int]:
        return asdict(self)


@dataclass
class _Survivors:
    """What survived so far, filled pass by pass."""

    tracks: dict[str, Track] = field(default_factory=dict)
    albums_in_use: set[str] = field(default_factory=set)
    albums: set[str] = field(default_factory=set)
    artists_in_use: set[str] = field(default_factory=set)
    artists: set[str] = field(default_factory=set)
    covers_in_use: set[str] = field(default_factory=set)
    # artist id -> albums crediting it, in album pass order
    credited_albums: dict[str, list[str]] = field(default_factory=dict)


class ConsistencySweep:
    """Reconciles every catalog collection against the files seen by a scan."""

    def __init__(
        self,
        store: ICatalogStore,
        playlist_service: PlaylistService,
        batch_size: int = DEFAULT_BATCH_SIZE,
    ) -> None:
        """Initialize sweep.

        Args:
            store: Catalog store
            playlist_service: Used to re-derive playlist covers
            batch_size: Maximum keys per atomic delete commit
        """
        self._store = store
        self._paths = PathIndex(store)
        self._playlists = playlist_service
        self._batch_size = batch_size

    async def run(
        self,
        seen_paths: Set[str],
        cancel_token: CancellationToken | None = None,
    ) -> SweepStats:
        """Run all passes.

        Args:
            seen_paths: Absolute paths observed by the last full discovery
            cancel_token: Checked between passes

        Returns:
            Sweep statistics

        Raises:
            ScanCancelledException: When cancelled between passes
        """
        stats = SweepStats()
        survivors = _Survivors()

        logger.info(f"Starting consistency sweep ({len(seen_paths)} observed files)")

        def checkpoint() -> None:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

        await self._sweep_path_index(seen_paths, stats)
        checkpoint()
        await self._sweep_tracks(survivors, stats)
        checkpoint()
        await self._sweep_albums(survivors, stats)
        checkpoint()
        await self._sweep_artists(survivors, stats)
        checkpoint()
        await self._sweep_playlists(survivors, stats)
        checkpoint()
        orphaned_covers = await self._sweep_covers(survivors, stats)
        checkpoint()
        await self._sweep_shares(orphaned_covers, stats)
        checkpoint()
        await self._sweep_user_data(survivors, stats)

        logger.info(
            "Consistency sweep complete\n"
            f"├─ Tracks removed: {stats.removed_tracks} (mappings: {stats.removed_mappings})\n"
            f"├─ Albums removed/updated: {stats.removed_albums}/{stats.updated_albums}\n"
            f"├─ Artists removed/updated: {stats.removed_artists}/{stats.updated_artists}\n"
            f"├─ Playlists updated: {stats.updated_playlists}\n"
            f"├─ Covers removed: {stats.removed_covers} (shares: {stats.removed_shares})\n"
            f"└─ User data removed: {stats.removed_user_data}"
        )
        return stats

    # =========================================================================
    # PASSES
    # =========================================================================

    async def _sweep_path_index(self, seen_paths: Set[str], stats: SweepStats) -> None:
        async for path, track_id in self._paths.entries():
            if path not in seen_paths:
                if track_id is not None:
                    await self._store.delete(Collection.TRACKS.key(track_id))
                    stats.removed_tracks += 1
                await self._paths.unbind(path)
                stats.removed_mappings += 1
                logger.info(f"Removing missing file track: {track_id} ({path})")
                continue

            if track_id is None or await self._store.get(Collection.TRACKS.key(track_id)) is None:
                await self._paths.unbind(path)
                stats.removed_mappings += 1
                logger.info(f"Removing mapping without track: {path}")

    async def _sweep_tracks(self, survivors: _Survivors, stats: SweepStats) -> None:
        async for entry in self._store.list(Collection.TRACKS.prefix):
            track_id = entry.key[1]
            result = decode_record(Track, entry.value)
            if not isinstance(result, Decoded):
                if self._apply_malformed_policy(Collection.TRACKS, track_id, result.error):
                    await self._store.delete(entry.key)
                    stats.removed_tracks += 1
                continue

            track = result.record
            if await self._paths.lookup(track.path) != track_id:
                logger.info(f"Track missing in path index: {track_id}. Deleting.")
                await self._store.delete(entry.key)
                stats.removed_tracks += 1
                continue

            survivors.tracks[track_id] = track
            if track.album_id:
                survivors.albums_in_use.add(track.album_id)
            if track.cover_art:
                survivors.covers_in_use.add(track.cover_art)
            survivors.artists_in_use.update(track.artist_ids())

    async def _sweep_albums(self, survivors: _Survivors, stats: SweepStats) -> None:
        async for entry in self._store.list(Collection.ALBUMS.prefix):
            album_id = entry.key[1]
            if album_id not in survivors.albums_in_use:
                logger.info(f"Removing orphaned album: {album_id}")
                await self._store.delete(entry.key)
                stats.removed_albums += 1
                continue

            result = decode_record(Album, entry.value)
            if not isinstance(result, Decoded):
                if self._apply_malformed_policy(Collection.ALBUMS, album_id, result.error):
                    await self._store.delete(entry.key)
                    stats.removed_albums += 1
                continue

            album = result.record
            survivors.albums.add(album_id)
            if album.cover_art:
                survivors.covers_in_use.add(album.cover_art)
            credited = [ref.id for ref in album.artists]
            if album.artist_id:
                credited.append(album.artist_id)
            for artist_id in dict.fromkeys(credited):
                survivors.artists_in_use.add(artist_id)
                survivors.credited_albums.setdefault(artist_id, []).append(album_id)

            if self._repair_album_songs(album, survivors.tracks):
                await self._store.set(entry.key, album.to_record())
                stats.updated_albums += 1
                logger.debug(f"Updated album {album.name}: {album.song_count} tracks")

    @staticmethod
    def _repair_album_songs(album: Album, tracks: dict[str, Track]) -> bool:
        """Keep only surviving member tracks (and add members missing from the list)."""
        song = [
            track_id
            for track_id in dict.fromkeys(album.song)
            if track_id in tracks and tracks[track_id].album_id == album.id
        ]
        listed = set(song)
        song.extend(
            track_id
            for track_id, track in tracks.items()
            if track.album_id == album.id and track_id not in listed
        )
        duration = round(sum(tracks[track_id].duration for track_id in song))

        if song == album.song and album.song_count == len(song) and album.duration == duration:
            return False
        album.song = song
        album.song_count = len(song)
        album.duration = duration
        return True

    async def _sweep_artists(self, survivors: _Survivors, stats: SweepStats) -> None:
        async for entry in self._store.list(Collection.ARTISTS.prefix):
            artist_id = entry.key[1]
            if artist_id not in survivors.artists_in_use:
                logger.info(f"Removing orphaned artist: {artist_id}")
                await self._store.delete(entry.key)
                stats.removed_artists += 1
                continue

            result = decode_record(Artist, entry.value)
            if not isinstance(result, Decoded):
                if self._apply_malformed_policy(Collection.ARTISTS, artist_id, result.error):
                    await self._store.delete(entry.key)
                    stats.removed_artists += 1
                continue

            artist = result.record
            survivors.artists.add(artist_id)
            if artist.cover_art:
                survivors.covers_in_use.add(artist.cover_art)

            albums = [album_id for album_id in dict.fromkeys(artist.album) if album_id in survivors.albums]
            albums.extend(
                album_id
                for album_id in survivors.credited_albums.get(artist_id, [])
                if album_id in survivors.albums and album_id not in albums
            )
            if albums != artist.album or artist.album_count != len(albums):
                artist.album = albums
                artist.album_count = len(albums)
                await self._store.set(entry.key, artist.to_record())
                stats.updated_artists += 1

    async def _sweep_playlists(self, survivors: _Survivors, stats: SweepStats) -> None:
        durations = {track_id: track.duration for track_id, track in survivors.tracks.items()}

        async for entry in self._store.list(Collection.PLAYLISTS.prefix):
            playlist_id = entry.key[1]
            result = decode_record(Playlist, entry.value)
            if not isinstance(result, Decoded):
                stats.malformed_playlists += 1
                if self._apply_malformed_policy(Collection.PLAYLISTS, playlist_id, result.error):
                    await self._store.delete(entry.key)
                continue

            playlist = result.record
            original_length = len(playlist.entry)
            playlist.entry = [track_id for track_id in playlist.entry if track_id in durations]
            totals_changed = recompute_totals(playlist, durations)

            if len(playlist.entry) != original_length or totals_changed:
                await self._playlists.save_playlist(playlist)
                stats.updated_playlists += 1
                logger.info(
                    f"Updated playlist \"{playlist.name}\", removed "
                    f"{original_length - len(playlist.entry)} missing tracks"
                )

            if playlist.cover_art:
                survivors.covers_in_use.add(playlist.cover_art)
            if await self._playlists.update_playlist_cover(playlist_id):
                survivors.covers_in_use.add(playlist_id)
                stats.playlist_covers += 1

    async def _sweep_covers(self, survivors: _Survivors, stats: SweepStats) -> set[str]:
        orphaned: set[str] = set()
        async for entry in self._store.list(Collection.COVERS.prefix):
            cover_id = entry.key[1]
            if cover_id not in survivors.covers_in_use:
                orphaned.add(cover_id)
                continue
            result = decode_record(CoverArt, entry.value)
            if not isinstance(result, Decoded) and self._apply_malformed_policy(
                Collection.COVERS, cover_id, result.error
            ):
                orphaned.add(cover_id)

        stats.removed_covers = await self._delete_keys(
            [Collection.COVERS.key(cover_id) for cover_id in sorted(orphaned)]
        )
        if orphaned:
            logger.info(f"Removed {len(orphaned)} orphaned covers")
        return orphaned

    async def _sweep_shares(self, orphaned_covers: set[str], stats: SweepStats) -> None:
        if not orphaned_covers:
            return

        share_keys: list[CatalogKey] = []
        async for entry in self._store.list(Collection.SHARES.prefix):
            result = decode_record(Share, entry.value)
            if not isinstance(result, Decoded):
                # Shares are only touched when they point at a dead cover
                logger.debug(f"Skipping unreadable share {entry.key[1]}: {result.error}")
                continue
            share = result.record
            if share.item_type == ShareItemType.COVER_ART and share.item_id in orphaned_covers:
                share_keys.append(entry.key)

        index_keys: list[CatalogKey] = []
        async for entry in self._store.list(
            Collection.AUTO_SHARES.key(ShareItemType.COVER_ART.value)
        ):
            if entry.key[2] in orphaned_covers:
                index_keys.append(entry.key)

        stats.removed_shares = await self._delete_keys(share_keys)
        stats.removed_auto_shares = await self._delete_keys(index_keys)
        logger.info(f"Deleted {stats.removed_shares} shares for orphaned covers")

    async def _sweep_user_data(self, survivors: _Survivors, stats: SweepStats) -> None:
        alive: dict[str, Set[str]] = {
            EntityType.TRACK.value: survivors.tracks.keys(),
            EntityType.ALBUM.value: survivors.albums,
            EntityType.ARTIST.value: survivors.artists,
        }

        stale: list[CatalogKey] = []
        async for entry in self._store.list(Collection.USER_DATA.prefix):
            if len(entry.key) != 4:
                continue
            _, _user_id, entity_type, entity_id = entry.key
            if entity_type in alive and entity_id not in alive[entity_type]:
                stale.append(entry.key)

        stats.removed_user_data = await self._delete_keys(stale)
        if stale:
            logger.info(f"Removed {len(stale)} orphaned user data entries")

    # =========================================================================
    # HELPERS
    # =========================================================================

    async def _delete_keys(self, keys: list[CatalogKey]) -> int:
        if not keys:
            return 0
        return await delete_in_batches(self._store, keys, batch_size=self._batch_size)

    @staticmethod
    def _apply_malformed_policy(collection: Collection, record_id: str, error: str) -> bool:
        """Log a malformed record and tell whether to delete it."""
        if malformed_policy_for(collection) is MalformedPolicy.DELETE:
            logger.warning(f"Malformed {collection.value} record {record_id}, removing: {error}")
            return True
        logger.warning(f"Malformed {collection.value} record {record_id}, keeping: {error}")
        return False

    async def hard_reset(self) -> dict[str, Any]:
        """Wipe all scan-derived collections.

        Playlists, users and user annotations survive; the next scan rebuilds the rest.

        Returns:
            Deleted key counts per collection
        """
        logger.warning("Hard resetting all track, album, and artist metadata!")
        deleted: dict[str, Any] = {}
        for collection in HARD_RESET_COLLECTIONS:
            logger.info(f"Clearing prefix: {collection.value}")
            deleted[collection.value] = await clear_prefix(
                self._store, collection.prefix, batch_size=self._batch_size
            )
        logger.info("Hard reset complete")
        return deleted
