# Hey future me - this service scans the music folders and keeps the catalog in sync!
# Key features:
# 1. STABLE IDS - a track's id is derived from its path, rescans never re-key anything
# 2. INCREMENTAL - files whose mtime matches the stored track are not re-parsed
# 3. ONE SCAN AT A TIME - a second request while scanning gets the current status back
# 4. CANCELLABLE - cancel stops the walk at the next file and SKIPS the sweep
# 5. SWEEP AT THE END - removes everything whose file disappeared (see consistency_sweep.py)
# 6. CLEANUP AND RESET hold the same one-run guard as a scan, so neither races a scan
"""Library scanner service: discovery, extraction, resolution and writes."""

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable, Sequence
from contextlib import suppress
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from sonicat.application.cancellation import CancellationToken
from sonicat.application.services.catalog_writer import CatalogWriter
from sonicat.application.services.consistency_sweep import (
    ConsistencySweep,
    SweepStats,
)
from sonicat.application.services.cover_art_service import CoverArtService
from sonicat.application.services.file_discovery import (
    count_audio_files,
    scan_audio_files,
)
from sonicat.application.services.identity_resolver import (
    IdentityResolver,
    ResolverCache,
)
from sonicat.application.services.path_index import PathIndex
from sonicat.application.services.playlist_service import PlaylistService
from sonicat.application.services.record_decoding import Decoded, decode_record
from sonicat.config import Settings
from sonicat.domain.entities import Track
from sonicat.domain.exceptions import (
    ScanCancelledException,
    ScanInProgressException,
    ValidationException,
)
from sonicat.domain.ports import ICatalogStore, IMetadataExtractor
from sonicat.domain.value_objects import Collection, track_id_for_path
from sonicat.infrastructure.metadata.file_info import mtime_ms
from sonicat.infrastructure.observability.logging import set_correlation_id

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float, "ScanStatus"], Awaitable[None]]

# Keep at most this many error messages on the status object
MAX_STATUS_ERRORS = 100


@dataclass
class ScanStatus:
    """Live status of the current (or last) scan."""

    scanning: bool = False
    count: int = 0
    total_files: int = 0
    last_scan: datetime = field(default_factory=lambda: datetime.now(UTC))
    errors: list[str] = field(default_factory=list)
    cancelled: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["last_scan"] = self.last_scan.isoformat()
        return data


@dataclass
class ScanStats:
    """Result of one scan_library() call."""

    total_files: int = 0
    processed: int = 0
    unchanged: int = 0
    errors: int = 0
    cancelled: bool = False
    already_running: bool = False
    correlation_id: str = ""
    sweep: SweepStats | None = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["sweep"] = self.sweep.to_dict() if self.sweep else None
        return data


class LibraryScannerService:
    """Scans music folders into the catalog.

    Hey future me - one instance lives for the whole app (it owns the scan status
    and the "already running" guard). The resolver cache does NOT: a fresh
    ResolverCache is created per scan and dropped when the scan ends.
    """

    def __init__(
        self,
        store: ICatalogStore,
        extractor: IMetadataExtractor,
        settings: Settings,
    ) -> None:
        """Initialize scanner service.

        Args:
            store: Catalog store
            extractor: Metadata extraction collaborator
            settings: Application settings (music folders, separators, batch size)
        """
        self._store = store
        self._extractor = extractor
        self.settings = settings
        self.paths = PathIndex(store)
        self.writer = CatalogWriter(store)
        self.covers = CoverArtService(store, settings.library.covers_path)
        self.playlists = PlaylistService(store, self.covers)
        self.sweep = ConsistencySweep(store, self.playlists, batch_size=settings.sweep.batch_size)

        self._status = ScanStatus()
        self._cancel_token: CancellationToken | None = None
        self._task: asyncio.Task[ScanStats] | None = None

    # =========================================================================
    # STATUS & CONTROL
    # =========================================================================

    @property
    def status(self) -> ScanStatus:
        return self._status

    @property
    def is_scanning(self) -> bool:
        return self._status.scanning

    def start_background_scan(
        self,
        directories: Sequence[str | Path] | None = None,
        cleanup: bool = True,
    ) -> asyncio.Task[ScanStats]:
        """Start scan_library() as a background task.

        Raises:
            ScanInProgressException: If a scan is already running
        """
        if self.is_scanning or (self._task is not None and not self._task.done()):
            raise ScanInProgressException()
        # Token exists before the task first runs, so shutdown can stop a scan that hasn't started
        token = CancellationToken()
        self._cancel_token = token
        self._task = asyncio.create_task(
            self.scan_library(directories=directories, cleanup=cleanup, cancel_token=token),
            name="library-scan",
        )
        return self._task

    def cancel_scan(self) -> bool:
        """Request cancellation of the running scan.

        Returns:
            True if a running scan was told to stop
        """
        if not self.is_scanning or self._cancel_token is None:
            return False
        self._cancel_token.cancel()
        logger.info("Scan cancellation requested")
        return True

    async def shutdown(self, timeout: float = 10.0) -> None:
        """Stop the background scan and wait for it to finish.

        The token is cancelled first so the scan exits at its next checkpoint;
        a scan that is still running after the timeout is cancelled hard.

        Args:
            timeout: Seconds to wait for a graceful stop
        """
        task = self._task
        if task is None or task.done():
            return
        if self._cancel_token is not None:
            self._cancel_token.cancel()
        logger.info("Stopping background scan")
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
            logger.info("Background scan stopped")
        except TimeoutError:
            logger.warning(f"Background scan did not stop within {timeout}s, cancelling task")
            task.cancel()
            with suppress(asyncio.CancelledError):
                await task
        except Exception as e:
            logger.exception(f"Background scan failed during shutdown: {e}")

    def _claim(self, action: str) -> CancellationToken:
        """Take the one-run guard for a maintenance operation.

        Raises:
            ScanInProgressException: If a scan or another maintenance run is active
        """
        if self.is_scanning or (self._task is not None and not self._task.done()):
            raise ScanInProgressException(f"Cannot {action} while a scan is running")
        token = CancellationToken()
        self._cancel_token = token
        self._status.scanning = True
        return token

    def _release(self) -> None:
        self._status.scanning = False
        self._cancel_token = None

    # =========================================================================
    # MAINTENANCE
    # =========================================================================

    async def run_cleanup(self) -> tuple[int, SweepStats]:
        """Walk the music folders and run the consistency sweep on demand.

        Returns:
            Number of files observed by the walk and the sweep statistics

        Raises:
            ScanInProgressException: If a scan is running
            ScanCancelledException: If cancel_scan() was called during the run
        """
        token = self._claim("run cleanup")
        library = self.settings.library
        try:
            seen = {
                path
                async for path in scan_audio_files(
                    library.music_folders, library.supported_extensions, cancel_token=token
                )
            }
            token.raise_if_cancelled()
            stats = await self.sweep.run(seen, cancel_token=token)
        finally:
            self._release()
        return len(seen), stats

    async def reset_catalog(self) -> dict[str, Any]:
        """Wipe the scan-derived collections.

        Returns:
            Deleted key counts per collection

        Raises:
            ScanInProgressException: If a scan is running
        """
        self._claim("reset the catalog")
        try:
            return await self.sweep.hard_reset()
        finally:
            self._release()

    # =========================================================================
    # MAIN SCAN
    # =========================================================================

    async def scan_library(
        self,
        directories: Sequence[str | Path] | None = None,
        cleanup: bool = True,
        cancel_token: CancellationToken | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> ScanStats:
        """Scan the music folders and update the catalog.

        Args:
            directories: Roots to scan (default: configured music folders)
            cleanup: Run the consistency sweep after a complete walk
            cancel_token: Token to stop the scan (a new one is created if omitted)
            progress_callback: Awaited with (percent, status) after each file

        Returns:
            Scan statistics (already_running=True if another scan was in progress)
        """
        if self._status.scanning:
            logger.warning("Scan already in progress.")
            return ScanStats(
                total_files=self._status.total_files,
                processed=self._status.count,
                already_running=True,
            )

        roots = list(directories) if directories is not None else list(self.settings.library.music_folders)
        token = cancel_token or CancellationToken()
        self._cancel_token = token
        self._status = ScanStatus(scanning=True)
        stats = ScanStats(correlation_id=set_correlation_id())
        resolver = IdentityResolver(
            self._store,
            artist_separators=self.settings.library.artist_separators,
            cache=ResolverCache(),
        )
        extensions = self.settings.library.supported_extensions
        seen: set[str] = set()

        logger.info(
            "Library scan started\n"
            f"├─ Roots: {', '.join(str(root) for root in roots)}\n"
            f"└─ Cleanup: {cleanup}"
        )

        try:
            stats.total_files = await count_audio_files(roots, extensions)
            self._status.total_files = stats.total_files

            async for file_path in scan_audio_files(roots, extensions, cancel_token=token):
                seen.add(file_path)
                try:
                    changed = await self.process_file(file_path, resolver)
                    if changed:
                        stats.processed += 1
                    else:
                        stats.unchanged += 1
                except Exception as e:
                    stats.errors += 1
                    if len(self._status.errors) < MAX_STATUS_ERRORS:
                        self._status.errors.append(f"{file_path}: {e}")
                    logger.warning(f"Error processing {file_path}: {e}", exc_info=False)

                self._status.count += 1
                if progress_callback and stats.total_files > 0:
                    progress = min(100.0, self._status.count / stats.total_files * 100)
                    await progress_callback(progress, self._status)

            token.raise_if_cancelled()
            if cleanup:
                stats.sweep = await self.sweep.run(seen, cancel_token=token)

        except ScanCancelledException:
            # A partial seen-set must never reach the sweep, it would delete live tracks
            stats.cancelled = True
            self._status.cancelled = True
            logger.warning(
                f"Library scan cancelled after {self._status.count} files, sweep skipped"
            )
        finally:
            resolver.cache.clear()
            self._status.scanning = False
            self._status.last_scan = datetime.now(UTC)
            self._cancel_token = None

        logger.info(
            f"Library scan complete: {stats.processed} processed, "
            f"{stats.unchanged} unchanged, {stats.errors} errors"
        )
        return stats

    async def process_file(self, file_path: str, resolver: IdentityResolver) -> bool:
        """Index one audio file.

        Order matters: album and track records are written before the path is
        bound, so a crash in between leaves a track the next sweep removes
        rather than a mapping to nothing.

        Args:
            file_path: Absolute path of the audio file
            resolver: Resolver of the running scan

        Returns:
            False if the file was unchanged since the last scan, True otherwise

        Raises:
            OSError: File vanished or is unreadable
            ValueError: File could not be parsed as audio
            ValidationException: Album or track record failed validation
        """
        track_id = track_id_for_path(file_path)

        if await self._is_unchanged(track_id, file_path):
            await self.paths.bind(file_path, track_id)
            return False

        metadata = await self._extractor.extract(file_path)
        tags = metadata.tags

        artists = await resolver.resolve_artists(tags.artist, tags.artists)
        album_artists = (
            await resolver.resolve_artists(tags.album_artist) if tags.album_artist else artists
        )
        album_id = await resolver.resolve_album(tags.album, album_artists)

        await self.covers.store_album_cover(album_id, file_path, metadata.pictures)
        album = await self.writer.write_album(album_id, track_id, album_artists, metadata)
        if album is None:
            raise ValidationException("Album", album_id, f"record for {file_path} failed validation")
        track = await self.writer.write_track(track_id, metadata, artists, album_artists, album_id)
        if track is None:
            raise ValidationException("Track", track_id, f"record for {file_path} failed validation")

        await self.paths.bind(file_path, track_id)
        logger.debug(f"Indexed {file_path} as {track_id}")
        return True

    async def _is_unchanged(self, track_id: str, file_path: str) -> bool:
        result = decode_record(Track, await self._store.get(Collection.TRACKS.key(track_id)))
        if not isinstance(result, Decoded) or result.record.path != file_path:
            return False
        try:
            stat_result = await asyncio.get_running_loop().run_in_executor(None, os.stat, file_path)
        except OSError:
            return False
        return result.record.last_modified == mtime_ms(stat_result)
