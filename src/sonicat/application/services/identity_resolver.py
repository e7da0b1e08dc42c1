# Hey future me - this is where duplicate artists and albums are born or prevented!
# Tag data says "The Foo" in one file and "the foo" in the next; both MUST land on the same
# artist id. Rules:
# 1. Names are split on the configured separators, trimmed and deduped case-insensitively.
# 2. Lookup order is per-scan cache, then a walk of the persisted artists/albums.
# 3. An album matches on name (case-insensitive) AND at least one overlapping credited artist.
#    Two "Greatest Hits" by different artists stay separate; a collab album found via either
#    artist stays one album.
# 4. Every find-or-create runs under ONE lock so two callers can't both decide "missing, create".
"""Artist and album identity resolution."""

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from sonicat.application.services.record_decoding import Decoded, decode_record
from sonicat.domain.entities import Album, Artist, ArtistRef
from sonicat.domain.ports import ICatalogStore
from sonicat.domain.value_objects import Collection, generate_id
from sonicat.domain.value_objects.artist_names import (
    UNKNOWN_ARTIST,
    names_overlap,
    normalize_name,
    split_artist_names,
)

logger = logging.getLogger(__name__)


@dataclass
class ResolverCache:
    """Name-to-id caches owned by a single scan run.

    Keys are normalized names (artists) or "album|artist1|artist2" (albums).
    """

    artists: dict[str, str] = field(default_factory=dict)
    albums: dict[str, str] = field(default_factory=dict)

    def clear(self) -> None:
        self.artists.clear()
        self.albums.clear()


def album_cache_key(name: str, artist_names: Iterable[str] = ()) -> str:
    """Build the album cache key from the album name and credited artist names."""
    normalized = normalize_name(name)
    artists = sorted(normalize_name(artist) for artist in artist_names)
    if not artists:
        return normalized
    return "|".join([normalized, *artists])


class IdentityResolver:
    """Find-or-create for artists and find-or-allocate for album ids."""

    def __init__(
        self,
        store: ICatalogStore,
        artist_separators: Sequence[str] = (";", "/"),
        cache: ResolverCache | None = None,
    ) -> None:
        """Initialize resolver.

        Args:
            store: Catalog store
            artist_separators: Characters splitting multi-artist tag strings
            cache: Per-scan cache (a fresh one is created when omitted)
        """
        self._store = store
        self._separators = list(artist_separators)
        self.cache = cache if cache is not None else ResolverCache()
        self._lock = asyncio.Lock()

    # =========================================================================
    # ARTISTS
    # =========================================================================

    async def resolve_artists(
        self, artist: str | None, artists: Iterable[str] = ()
    ) -> list[ArtistRef]:
        """Resolve tag artist data to existing or newly created artists.

        Args:
            artist: Artist tag string (may contain several names)
            artists: Artist array tag

        Returns:
            Artist refs in first-seen order, never empty ("Unknown Artist" fallback)
        """
        names = split_artist_names(artist, artists, self._separators)
        if not names:
            names = [UNKNOWN_ARTIST]

        refs: list[ArtistRef] = []
        async with self._lock:
            for name in names:
                ref = await self._find_or_create_artist(name)
                if ref.id not in {existing.id for existing in refs}:
                    refs.append(ref)
        return refs

    async def find_artist_id(self, name: str) -> str | None:
        """Look up an artist id by name (cache first, then the artists collection)."""
        key = normalize_name(name)
        if key in self.cache.artists:
            return self.cache.artists[key]

        async for entry in self._store.list(Collection.ARTISTS.prefix):
            result = decode_record(Artist, entry.value)
            if isinstance(result, Decoded) and normalize_name(result.record.name) == key:
                self.cache.artists[key] = result.record.id
                return result.record.id
        return None

    async def _find_or_create_artist(self, name: str) -> ArtistRef:
        artist_id = await self.find_artist_id(name)
        if artist_id is not None:
            result = decode_record(Artist, await self._store.get(Collection.ARTISTS.key(artist_id)))
            if isinstance(result, Decoded):
                return ArtistRef(id=result.record.id, name=result.record.name)
            # Cached id whose record vanished (e.g. a sweep ran meanwhile): recreate
            logger.debug(f"Artist {artist_id} for '{name}' is gone, creating a new one")

        artist_id = generate_id()
        new_artist = Artist(id=artist_id, name=name, cover_art=artist_id, album_count=0, album=[])
        await self._store.set(Collection.ARTISTS.key(artist_id), new_artist.to_record())
        self.cache.artists[normalize_name(name)] = artist_id
        logger.debug(f"Created new artist: {name} ({artist_id})")
        return ArtistRef(id=artist_id, name=name)

    # =========================================================================
    # ALBUMS
    # =========================================================================

    async def find_album_id(self, name: str, artists: Sequence[ArtistRef] = ()) -> str | None:
        """Look up an album id by name and credited artists.

        Args:
            name: Album name
            artists: Credited album artists (empty = match on name only)

        Returns:
            Matching album id, or None
        """
        artist_names = [ref.name for ref in artists]
        key = album_cache_key(name, artist_names)
        if key in self.cache.albums:
            return self.cache.albums[key]

        normalized = normalize_name(name)
        async for entry in self._store.list(Collection.ALBUMS.prefix):
            result = decode_record(Album, entry.value)
            if not isinstance(result, Decoded):
                continue
            album = result.record
            if normalize_name(album.name) != normalized:
                continue
            if not artist_names or names_overlap(
                (ref.name for ref in album.artists), artist_names
            ):
                self.cache.albums[key] = album.id
                return album.id
        return None

    async def resolve_album(self, name: str, artists: Sequence[ArtistRef] = ()) -> str:
        """Find the album id for name/artists, or allocate a fresh one.

        A freshly allocated id is cached for the rest of the scan, so every
        track of a new album gets the same id before the album is written.
        """
        async with self._lock:
            album_id = await self.find_album_id(name, artists)
            if album_id is None:
                album_id = generate_id()
                self.cache.albums[album_cache_key(name, [ref.name for ref in artists])] = album_id
                logger.debug(f"Allocated album id {album_id} for '{name}'")
            return album_id
