"""Parsed metadata for one audio file.

Hey future me - the engine treats this as already validated! Whatever produces it
(mutagen adapter, a test, some future extractor) is responsible for defaults such as
"Unknown Album" and disc number 1. The catalog writer never re-reads the file.
"""

from dataclasses import dataclass, field

CONTENT_TYPES: dict[str, str] = {
    "flac": "audio/flac",
    "mp3": "audio/mpeg",
    "wav": "audio/wav",
    "ogg": "audio/ogg",
    "m4a": "audio/mp4",
    "opus": "audio/opus",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"
UNKNOWN_ALBUM = "Unknown Album"


def content_type_for(extension: str) -> str:
    """Map a file extension (with or without dot) to its audio mime type."""
    return CONTENT_TYPES.get(extension.lower().lstrip("."), DEFAULT_CONTENT_TYPE)


@dataclass
class TrackTags:
    """Tag fields relevant to the catalog."""

    title: str
    album: str = UNKNOWN_ALBUM
    artist: str | None = None
    artists: list[str] = field(default_factory=list)
    album_artist: str | None = None
    track_number: int | None = None
    disc_number: int = 1
    year: int | None = None
    date: str | None = None
    original_year: int | None = None
    genres: list[str] = field(default_factory=list)
    music_brainz_track_id: str | None = None
    music_brainz_album_id: str | None = None
    music_brainz_artist_id: str | None = None
    release_type: list[str] = field(default_factory=list)

    @property
    def genre_string(self) -> str | None:
        """Genres joined for display ("Rock, Pop")."""
        return ", ".join(self.genres) if self.genres else None


@dataclass
class AudioInfo:
    """Audio stream properties."""

    duration: int = 0  # seconds, rounded
    bit_rate: int | None = None  # kbps
    bit_depth: int | None = None
    sampling_rate: int | None = None
    channel_count: int | None = None


@dataclass
class FileInfo:
    """Filesystem facts about the audio file."""

    path: str
    size: int = 0
    last_modified: int = 0  # epoch milliseconds
    extension: str = ""

    @property
    def content_type(self) -> str:
        return content_type_for(self.extension)


@dataclass
class EmbeddedPicture:
    """Picture embedded in the audio file's tags."""

    data: bytes
    mime_type: str
    picture_type: str = ""  # e.g. "Cover (front)"


@dataclass
class ExtractedMetadata:
    """Everything the extraction collaborator hands to the engine for one file."""

    file: FileInfo
    tags: TrackTags
    audio: AudioInfo = field(default_factory=AudioInfo)
    pictures: list[EmbeddedPicture] = field(default_factory=list)
