"""Data transfer objects passed between the extraction port and the engine."""

from sonicat.domain.dtos.metadata import (
    UNKNOWN_ALBUM,
    AudioInfo,
    EmbeddedPicture,
    ExtractedMetadata,
    FileInfo,
    TrackTags,
)

__all__ = [
    "UNKNOWN_ALBUM",
    "AudioInfo",
    "EmbeddedPicture",
    "ExtractedMetadata",
    "FileInfo",
    "TrackTags",
]
