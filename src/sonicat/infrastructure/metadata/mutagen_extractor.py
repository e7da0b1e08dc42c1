# Hey future me - mutagen is SYNC and does file I/O, so every extract() runs in a thread pool
# (run_in_executor) to keep the event loop free. The tag lookups below try ID3 (MP3/WAV),
# Vorbis comments (FLAC/OGG/Opus) and MP4 (M4A) keys in one mapping - whichever key the file
# has wins. Nothing here knows about the catalog: it only turns a file into ExtractedMetadata.
"""Metadata extraction with mutagen."""

import asyncio
import base64
import binascii
import logging
import os
import re
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

from mutagen import File as MutagenFile  # type: ignore[attr-defined]
from mutagen import MutagenError
from mutagen.flac import Picture
from mutagen.mp4 import MP4Cover

from sonicat.domain.dtos import (
    UNKNOWN_ALBUM,
    AudioInfo,
    EmbeddedPicture,
    ExtractedMetadata,
    TrackTags,
)
from sonicat.domain.ports import IMetadataExtractor
from sonicat.domain.value_objects.artist_names import separators_to_pattern
from sonicat.infrastructure.metadata.file_info import read_file_info

logger = logging.getLogger(__name__)

# Candidate tag keys per field: ID3 frame ids, Vorbis comment names, MP4 atoms
TAG_KEYS: dict[str, tuple[str, ...]] = {
    "title": ("TIT2", "title", "©nam"),
    "artist": ("TPE1", "artist", "©ART"),
    "artists": ("TXXX:ARTISTS", "artists", "----:com.apple.iTunes:ARTISTS"),
    "album_artist": ("TPE2", "albumartist", "album artist", "aART"),
    "album": ("TALB", "album", "©alb"),
    "track_number": ("TRCK", "tracknumber", "trkn"),
    "disc_number": ("TPOS", "discnumber", "disk"),
    "date": ("TDRC", "TYER", "date", "year", "©day"),
    "original_year": ("TDOR", "TORY", "originalyear", "originaldate"),
    "genre": ("TCON", "genre", "©gen"),
    "music_brainz_track_id": (
        "UFID:http://musicbrainz.org",
        "TXXX:MusicBrainz Release Track Id",
        "musicbrainz_trackid",
        "----:com.apple.iTunes:MusicBrainz Track Id",
    ),
    "music_brainz_album_id": (
        "TXXX:MusicBrainz Album Id",
        "musicbrainz_albumid",
        "----:com.apple.iTunes:MusicBrainz Album Id",
    ),
    "music_brainz_artist_id": (
        "TXXX:MusicBrainz Artist Id",
        "musicbrainz_artistid",
        "----:com.apple.iTunes:MusicBrainz Artist Id",
    ),
    "release_type": (
        "TXXX:MusicBrainz Album Type",
        "releasetype",
        "----:com.apple.iTunes:MusicBrainz Album Type",
    ),
}

# ID3/FLAC picture type codes
PICTURE_TYPES: dict[int, str] = {
    0: "Other",
    3: "Cover (front)",
    4: "Cover (back)",
}

_YEAR = re.compile(r"(\d{4})")


def text_values(value: Any) -> list[str]:
    """Flatten a mutagen tag value into a list of strings.

    Handles plain lists (Vorbis, MP4), ID3 frames (.text / .data), MP4 number
    tuples and freeform bytes.
    """
    if value is None:
        return []
    if hasattr(value, "text"):
        return text_values(value.text)
    if hasattr(value, "data") and not isinstance(value, bytes | bytearray):
        return text_values(value.data)
    if isinstance(value, list | tuple) and value and isinstance(value[0], int):
        # MP4 trkn/disk: (number, total)
        return [str(value[0])]
    if isinstance(value, list | tuple):
        return [item for entry in value for item in text_values(entry)]
    if isinstance(value, bytes | bytearray):
        return [bytes(value).decode("utf-8", errors="replace")]
    text = str(value).strip()
    return [text] if text else []


def parse_number(value: str | None) -> int | None:
    """Parse "3" or "3/12" into 3."""
    if not value:
        return None
    head = value.split("/")[0].strip()
    try:
        return int(head)
    except ValueError:
        return None


def parse_year(value: str | None) -> int | None:
    """Extract a four digit year from a date-ish string."""
    if not value:
        return None
    match = _YEAR.search(value)
    return int(match.group(1)) if match else None


def split_genres(values: Sequence[str], separators: Sequence[str]) -> list[str]:
    """Split genre tag values on the separators, trimmed, empty ones dropped."""
    pattern = separators_to_pattern(separators)
    genres: list[str] = []
    for value in values:
        parts = pattern.split(value) if pattern else [value]
        genres.extend(part.strip() for part in parts if part.strip())
    return genres


def _lookup(tags: Any, field: str) -> list[str]:
    if tags is None:
        return []
    for key in TAG_KEYS[field]:
        try:
            if key in tags:
                values = text_values(tags[key])
                if values:
                    return values
        except (KeyError, ValueError):
            continue
    return []


def _first(tags: Any, field: str) -> str | None:
    values = _lookup(tags, field)
    return values[0] if values else None


def _picture_type(code: Any) -> str:
    try:
        return PICTURE_TYPES.get(int(code), "Other")
    except (TypeError, ValueError):
        return "Other"


def extract_pictures(audio: Any) -> list[EmbeddedPicture]:
    """Collect embedded pictures from FLAC, ID3, MP4 and Ogg files."""
    pictures: list[EmbeddedPicture] = []

    for picture in getattr(audio, "pictures", None) or []:
        pictures.append(
            EmbeddedPicture(data=picture.data, mime_type=picture.mime, picture_type=_picture_type(picture.type))
        )

    tags = getattr(audio, "tags", None)
    if tags is None:
        return pictures

    if hasattr(tags, "getall"):
        for frame in tags.getall("APIC"):
            pictures.append(
                EmbeddedPicture(data=frame.data, mime_type=frame.mime, picture_type=_picture_type(frame.type))
            )

    try:
        covers = tags["covr"] if "covr" in tags else []
    except (KeyError, ValueError):
        covers = []
    for cover in covers:
        mime = "image/png" if getattr(cover, "imageformat", None) == MP4Cover.FORMAT_PNG else "image/jpeg"
        pictures.append(EmbeddedPicture(data=bytes(cover), mime_type=mime, picture_type="Cover (front)"))

    try:
        blocks = tags["metadata_block_picture"] if "metadata_block_picture" in tags else []
    except (KeyError, ValueError):
        blocks = []
    for block in blocks:
        try:
            picture = Picture(base64.b64decode(block))
        except (binascii.Error, ValueError, MutagenError):
            logger.debug("Skipping undecodable Ogg picture block")
            continue
        pictures.append(
            EmbeddedPicture(data=picture.data, mime_type=picture.mime, picture_type=_picture_type(picture.type))
        )

    return pictures


class MutagenMetadataExtractor(IMetadataExtractor):
    """IMetadataExtractor backed by mutagen."""

    def __init__(
        self,
        genre_separators: Sequence[str] = (";", "/", ","),
        max_workers: int | None = None,
    ) -> None:
        """Initialize extractor.

        Args:
            genre_separators: Characters splitting multi-genre strings
            max_workers: Thread pool size (default based on CPU count)
        """
        self._genre_separators = list(genre_separators)
        self._executor = ThreadPoolExecutor(
            max_workers=max_workers or min(8, max(2, os.cpu_count() or 4))
        )

    async def extract(self, file_path: str) -> ExtractedMetadata:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, self._extract_sync, file_path)

    def close(self) -> None:
        """Shut down the thread pool."""
        self._executor.shutdown(wait=False)

    def _extract_sync(self, file_path: str) -> ExtractedMetadata:
        file_info = read_file_info(file_path)
        try:
            audio = MutagenFile(file_path)
        except MutagenError as e:
            raise ValueError(f"Could not parse audio file {file_path}: {e}") from e
        if audio is None:
            raise ValueError(f"Unsupported or unreadable audio file: {file_path}")

        tags = audio.tags
        artist_values = _lookup(tags, "artist")
        artists = _lookup(tags, "artists") or (artist_values if len(artist_values) > 1 else [])
        date = _first(tags, "date")

        track_tags = TrackTags(
            title=_first(tags, "title") or Path(file_path).stem,
            album=_first(tags, "album") or UNKNOWN_ALBUM,
            artist=artist_values[0] if artist_values else None,
            artists=artists,
            album_artist=_first(tags, "album_artist"),
            track_number=parse_number(_first(tags, "track_number")),
            disc_number=parse_number(_first(tags, "disc_number")) or 1,
            year=parse_year(date),
            date=date,
            original_year=parse_year(_first(tags, "original_year")),
            genres=split_genres(_lookup(tags, "genre"), self._genre_separators),
            music_brainz_track_id=_first(tags, "music_brainz_track_id"),
            music_brainz_album_id=_first(tags, "music_brainz_album_id"),
            music_brainz_artist_id=_first(tags, "music_brainz_artist_id"),
            release_type=_lookup(tags, "release_type"),
        )

        info = audio.info
        length = getattr(info, "length", 0) or 0
        bitrate = getattr(info, "bitrate", 0) or 0
        audio_info = AudioInfo(
            duration=round(length),
            bit_rate=round(bitrate / 1000) if bitrate else None,
            bit_depth=getattr(info, "bits_per_sample", None) or None,
            sampling_rate=getattr(info, "sample_rate", None) or None,
            channel_count=getattr(info, "channels", None) or None,
        )

        return ExtractedMetadata(
            file=file_info,
            tags=track_tags,
            audio=audio_info,
            pictures=extract_pictures(audio),
        )
