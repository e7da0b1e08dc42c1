"""Catalog writer: album aggregates, artist back-links and track upserts."""

import logging
import re
from collections.abc import Sequence
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from sonicat.application.services.record_decoding import Decoded, decode_record
from sonicat.domain.entities import (
    Album,
    Artist,
    ArtistRef,
    DiscTitle,
    Genre,
    ReleaseDate,
    Track,
    utc_now,
)
from sonicat.domain.dtos import ExtractedMetadata
from sonicat.domain.ports import ICatalogStore
from sonicat.domain.value_objects import Collection
from sonicat.domain.value_objects.artist_names import (
    UNKNOWN_ARTIST,
    format_display_artist,
)

logger = logging.getLogger(__name__)

EPOCH_RELEASE_DATE = ReleaseDate(year=1970, month=1, day=1)
_LEADING_DIGITS = re.compile(r"^\s*(\d+)")


def parse_release_date(date: str | None, original_year: int | str | None = None) -> ReleaseDate:
    """Parse a "YYYY-MM-DD"-style tag into a release date.

    Missing month/day default to 1. Falls back to the original year and then to
    1970-01-01 when nothing usable is present or the date is impossible.

    Examples:
        "2004-05-17" -> 2004/5/17, "1999" -> 1999/1/1, "garbage" -> 1970/1/1
    """
    raw = date or (str(original_year) if original_year else "")
    if not raw:
        return EPOCH_RELEASE_DATE

    parts = (raw.split("-") + ["1", "1"])[:3]
    numbers: list[int] = []
    for part in parts:
        match = _LEADING_DIGITS.match(part)
        if match is None:
            return EPOCH_RELEASE_DATE
        numbers.append(int(match.group(1)))

    year, month, day = numbers
    try:
        datetime(year, month, day)
    except ValueError:
        return EPOCH_RELEASE_DATE
    return ReleaseDate(year=year, month=month, day=day)


def _release_timestamp(release: ReleaseDate) -> str:
    return datetime(release.year, release.month, release.day, tzinfo=UTC).isoformat()


def _merge_artists(current: list[ArtistRef], new: Sequence[ArtistRef]) -> bool:
    changed = False
    known = {ref.id for ref in current}
    for ref in new:
        if ref.id not in known:
            current.append(ref)
            known.add(ref.id)
            changed = True
    return changed


class CatalogWriter:
    """Idempotent writes of album, artist and track records for one scanned file.

    Hey future me - every method here must be safe to call twice with the same input!
    A cancelled scan gets re-run from scratch and replays the same writes. "Persist only
    if something changed" is what makes an unchanged library scan write nothing.
    """

    def __init__(self, store: ICatalogStore) -> None:
        self._store = store

    async def write_album(
        self,
        album_id: str,
        track_id: str,
        album_artists: Sequence[ArtistRef],
        metadata: ExtractedMetadata,
    ) -> Album | None:
        """Create the album or fold one more track into it.

        Args:
            album_id: Resolved album id
            track_id: Track being added
            album_artists: Resolved album artists
            metadata: Extracted metadata of the track

        Returns:
            The album as persisted (None if validation failed)
        """
        result = decode_record(Album, await self._store.get(Collection.ALBUMS.key(album_id)))
        if isinstance(result, Decoded):
            album = await self._update_album(result.record, track_id, album_artists, metadata)
        else:
            album = await self._create_album(album_id, track_id, album_artists, metadata)

        if album is not None:
            await self.link_artists(album.id, album.artists)
        return album

    async def _update_album(
        self,
        album: Album,
        track_id: str,
        album_artists: Sequence[ArtistRef],
        metadata: ExtractedMetadata,
    ) -> Album | None:
        changed = False

        if track_id not in album.song:
            album.song.append(track_id)
            album.song_count = len(album.song)
            album.duration = round(album.duration + metadata.audio.duration)
            changed = True

        disc = metadata.tags.disc_number
        if not any(title.disc == disc for title in album.disc_titles):
            album.disc_titles.append(DiscTitle(disc=disc, title=f"Disc {disc}"))
            changed = True

        if _merge_artists(album.artists, album_artists):
            changed = True

        if not changed:
            return album

        album.display_artist = format_display_artist([ref.name for ref in album.artists])
        if album.artist_id is None and album.artists:
            album.artist_id = album.artists[0].id
            album.artist = album.artists[0].name

        if not await self._persist_album(album):
            return None
        logger.debug(f"Updated album: {album.name}")
        return album

    async def _create_album(
        self,
        album_id: str,
        track_id: str,
        album_artists: Sequence[ArtistRef],
        metadata: ExtractedMetadata,
    ) -> Album | None:
        tags = metadata.tags
        release = parse_release_date(tags.date, tags.original_year)
        created = _release_timestamp(release)
        primary = album_artists[0] if album_artists else None

        data: dict[str, Any] = {
            "id": album_id,
            "name": tags.album,
            "artist": primary.name if primary else UNKNOWN_ARTIST,
            "artist_id": primary.id if primary else None,
            "artists": [ref.model_dump() for ref in album_artists],
            "display_artist": format_display_artist([ref.name for ref in album_artists]),
            "year": tags.year or release.year,
            "cover_art": album_id,
            "duration": metadata.audio.duration,
            "song_count": 1,
            "song": [track_id],
            "disc_titles": [{"disc": tags.disc_number, "title": f"Disc {tags.disc_number}"}],
            "genre": tags.genre_string,
            "genres": [{"name": name} for name in tags.genres],
            "created": created,
            "release_types": ["/".join(tags.release_type)] if tags.release_type else ["album"],
            "release_date": release.model_dump(),
            "original_release_date": release.model_dump(),
            "music_brainz_id": tags.music_brainz_album_id,
            "date_added": int(utc_now().timestamp() * 1000),
        }

        try:
            album = Album.model_validate(data)
        except ValidationError as e:
            logger.error(f"Failed to validate new album {tags.album}: {e}")
            return None

        await self._store.set(Collection.ALBUMS.key(album_id), album.to_record())
        logger.info(f"Created new album: {album.name}")
        return album

    async def link_artists(self, album_id: str, artists: Sequence[ArtistRef]) -> int:
        """Make sure every credited artist lists the album.

        Returns:
            Number of artist records that were updated
        """
        updated = 0
        for ref in artists:
            result = decode_record(Artist, await self._store.get(Collection.ARTISTS.key(ref.id)))
            if not isinstance(result, Decoded):
                logger.warning(f"Album {album_id} credits missing artist {ref.id} ({ref.name})")
                continue

            artist = result.record
            if album_id in artist.album and artist.album_count == len(artist.album):
                continue
            if album_id not in artist.album:
                artist.album.append(album_id)
            artist.album_count = len(artist.album)
            await self._store.set(Collection.ARTISTS.key(artist.id), artist.to_record())
            updated += 1
        return updated

    async def write_track(
        self,
        track_id: str,
        metadata: ExtractedMetadata,
        artists: Sequence[ArtistRef],
        album_artists: Sequence[ArtistRef],
        album_id: str,
    ) -> Track | None:
        """Upsert the track record.

        The created timestamp of an existing track is kept, and an unchanged
        track is not rewritten.

        Returns:
            The track as persisted (None if validation failed)
        """
        file, tags, audio = metadata.file, metadata.tags, metadata.audio
        key = Collection.TRACKS.key(track_id)
        existing = decode_record(Track, await self._store.get(key))
        created = (
            existing.record.created
            if isinstance(existing, Decoded) and existing.record.created
            else utc_now().isoformat()
        )
        artist_names = [ref.name for ref in artists]

        data: dict[str, Any] = {
            "id": track_id,
            "path": file.path,
            "title": tags.title or Path(file.path).stem,
            "album": tags.album,
            "album_id": album_id,
            "artist": format_display_artist(artist_names),
            "artist_id": artists[0].id if artists else None,
            "artists": [ref.model_dump() for ref in artists],
            "album_artists": [ref.model_dump() for ref in album_artists],
            "display_artist": format_display_artist(artist_names),
            "display_album_artist": format_display_artist([ref.name for ref in album_artists]),
            "track": tags.track_number,
            "disc_number": tags.disc_number,
            "year": tags.year,
            "genre": tags.genre_string,
            "genres": [Genre(name=name).model_dump() for name in tags.genres],
            "cover_art": album_id,
            "size": file.size,
            "content_type": file.content_type,
            "suffix": file.extension.lstrip(".").lower() or None,
            "duration": audio.duration or 0,
            "bit_rate": audio.bit_rate,
            "bit_depth": audio.bit_depth,
            "sampling_rate": audio.sampling_rate,
            "channel_count": audio.channel_count,
            "music_brainz_id": tags.music_brainz_track_id,
            "last_modified": file.last_modified,
            "created": created,
        }

        try:
            track = Track.model_validate(data)
        except ValidationError as e:
            logger.error(f"Failed to validate track {file.path}: {e}")
            return None

        record = track.to_record()
        if isinstance(existing, Decoded) and existing.record.to_record() == record:
            return track

        await self._store.set(key, record)
        logger.debug(f"Wrote track {track_id}: {track.title}")
        return track

    async def _persist_album(self, album: Album) -> bool:
        value = album.to_record()
        # Re-validate the mutated record before it goes back into the store
        try:
            Album.model_validate(value)
        except ValidationError as e:
            logger.error(f"Error re-validating album {album.id}: {e}")
            return False
        await self._store.set(Collection.ALBUMS.key(album.id), value)
        return True
