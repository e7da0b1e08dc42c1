"""Catalog records.

Hey future me - these are pydantic models, not dataclasses, because every record is
VALIDATED on the way in and out of the key-value store. A record that fails
validation on read is treated as corruption (see record_decoding.py), so keep the
required fields minimal: anything a scan can't always provide must have a default.

On the wire (the stored JSON) fields are camelCase ("songCount", "albumId"),
in Python they are snake_case. Both spellings are accepted on input.
"""

from datetime import UTC, datetime
from enum import Enum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Get current UTC time."""
    return datetime.now(UTC)


class CatalogRecord(BaseModel):
    """Base class for all stored records."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_record(self) -> dict[str, Any]:
        """Serialize to the JSON-compatible form persisted in the store."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_record(cls, value: Any) -> Self:
        """Validate a stored value (raises pydantic.ValidationError)."""
        return cls.model_validate(value)


class ArtistRef(CatalogRecord):
    """An {id, name} credit embedded in tracks and albums."""

    id: str
    name: str


class Genre(CatalogRecord):
    name: str


class ReleaseDate(CatalogRecord):
    year: int
    month: int
    day: int


class DiscTitle(CatalogRecord):
    disc: int
    title: str


class ReplayGain(CatalogRecord):
    track_gain: float | None = None
    track_peak: float | None = None
    album_gain: float | None = None
    album_peak: float | None = None


class Track(CatalogRecord):
    """One indexed audio file."""

    id: str
    path: str
    title: str
    album: str | None = None
    album_id: str | None = None
    artist: str | None = None
    artist_id: str | None = None
    artists: list[ArtistRef] = Field(default_factory=list)
    album_artists: list[ArtistRef] = Field(default_factory=list)
    display_artist: str | None = None
    display_album_artist: str | None = None
    track: int | None = None
    disc_number: int | None = None
    year: int | None = None
    genre: str | None = None
    genres: list[Genre] = Field(default_factory=list)
    cover_art: str | None = None
    size: int | None = None
    content_type: str = "application/octet-stream"
    suffix: str | None = None
    duration: int = 0
    bit_rate: int | None = None
    bit_depth: int | None = None
    sampling_rate: int | None = None
    channel_count: int | None = None
    music_brainz_id: str | None = None
    replay_gain: ReplayGain | None = None
    last_modified: int = 0
    created: str | None = None
    type: str = "music"

    def artist_ids(self) -> set[str]:
        """All artist ids this track credits (track and album artists)."""
        ids = {ref.id for ref in self.artists} | {ref.id for ref in self.album_artists}
        if self.artist_id:
            ids.add(self.artist_id)
        return ids


class Album(CatalogRecord):
    """Aggregation of tracks sharing album identity."""

    id: str
    name: str
    artist: str | None = None
    artist_id: str | None = None
    artists: list[ArtistRef] = Field(default_factory=list)
    display_artist: str | None = None
    year: int | None = None
    cover_art: str | None = None
    duration: int = 0
    song_count: int = 0
    song: list[str] = Field(default_factory=list)
    disc_titles: list[DiscTitle] = Field(default_factory=list)
    genre: str | None = None
    genres: list[Genre] = Field(default_factory=list)
    created: str
    release_types: list[str] = Field(default_factory=lambda: ["album"])
    release_date: ReleaseDate | None = None
    original_release_date: ReleaseDate | None = None
    music_brainz_id: str | None = None
    date_added: int | None = None


class Artist(CatalogRecord):
    """Named contributor credited on tracks and albums."""

    id: str
    name: str
    cover_art: str | None = None
    album_count: int = 0
    album: list[str] = Field(default_factory=list)
    music_brainz_id: str | None = None
    artist_image_url: str | None = None


class CoverArt(CatalogRecord):
    id: str
    mime_type: str
    path: str


class Playlist(CatalogRecord):
    """User-authored ordered list of tracks."""

    id: str
    name: str
    owner: str
    public: bool = False
    entry: list[str] = Field(default_factory=list)
    song_count: int = 0
    duration: int = 0
    cover_art: str | None = None
    comment: str | None = None
    created: datetime = Field(default_factory=utc_now)
    changed: datetime = Field(default_factory=utc_now)


class ShareItemType(str, Enum):
    TRACK = "track"
    ALBUM = "album"
    PLAYLIST = "playlist"
    COVER_ART = "coverArt"


class Share(CatalogRecord):
    """Public reference to an internal item."""

    id: str
    user_id: str
    item_id: str
    item_type: ShareItemType
    description: str | None = None
    created: datetime = Field(default_factory=utc_now)
    expires: datetime | None = None
    last_viewed: datetime | None = None
    view_count: int = 0


class UserData(CatalogRecord):
    """Per-user annotation keyed by (user, entity type, entity id)."""

    starred: datetime | None = None
    played: datetime | None = None
    play_count: int = 0
    user_rating: int | None = Field(default=None, ge=1, le=5)


class User(CatalogRecord):
    """Account record; the engine only needs the admin flag."""

    id: str
    username: str
    admin_role: bool = False
    stream_role: bool = True
    playlist_role: bool = True
    share_role: bool = False
