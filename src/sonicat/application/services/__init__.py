"""Application services."""

from sonicat.application.services.auto_share_service import AutoShareService
from sonicat.application.services.catalog_writer import CatalogWriter, parse_release_date
from sonicat.application.services.consistency_sweep import ConsistencySweep, SweepStats
from sonicat.application.services.cover_art_service import CoverArtService
from sonicat.application.services.file_discovery import count_audio_files, scan_audio_files
from sonicat.application.services.identity_resolver import IdentityResolver, ResolverCache
from sonicat.application.services.library_scanner_service import (
    LibraryScannerService,
    ScanStats,
    ScanStatus,
)
from sonicat.application.services.path_index import PathIndex
from sonicat.application.services.playlist_service import PlaylistService, recompute_totals
from sonicat.application.services.record_decoding import (
    Decoded,
    Malformed,
    MalformedPolicy,
    decode_record,
    malformed_policy_for,
)

__all__ = [
    "AutoShareService",
    "CatalogWriter",
    "ConsistencySweep",
    "CoverArtService",
    "Decoded",
    "IdentityResolver",
    "LibraryScannerService",
    "Malformed",
    "MalformedPolicy",
    "PathIndex",
    "PlaylistService",
    "ResolverCache",
    "ScanStats",
    "ScanStatus",
    "SweepStats",
    "count_audio_files",
    "decode_record",
    "malformed_policy_for",
    "parse_release_date",
    "recompute_totals",
    "scan_audio_files",
]
