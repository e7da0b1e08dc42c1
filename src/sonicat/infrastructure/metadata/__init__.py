"""Metadata extraction adapters."""

from sonicat.infrastructure.metadata.file_info import mtime_ms, read_file_info
from sonicat.infrastructure.metadata.mutagen_extractor import MutagenMetadataExtractor

__all__ = ["MutagenMetadataExtractor", "mtime_ms", "read_file_info"]
