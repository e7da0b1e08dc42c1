"""Library scan and maintenance endpoints.

Hey future me - these are ADMIN operations:
- Starting a scan (runs in the background, poll /scan/status)
- Cancelling a running scan
- Running the consistency sweep on demand
- Hard reset (wipes scan-derived data, keeps playlists/users/annotations)

Scan, cleanup and reset share one guard: each refuses to start while another
runs (409). A sweep racing a scan would see a half-written catalog.
"""

import logging
from datetime import datetime

from fastapi import APIRouter, Depends, status
from pydantic import BaseModel, Field

from sonicat.api.dependencies import get_library_scanner_service
from sonicat.application.services.library_scanner_service import LibraryScannerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/library", tags=["library"])


# =============================================================================
# Request/Response Models
# =============================================================================


class ScanRequest(BaseModel):
    """Request to start a library scan."""

    directories: list[str] | None = Field(
        default=None, description="Roots to scan (default: configured music folders)"
    )
    cleanup: bool = Field(default=True, description="Run the sweep after the scan")


class ScanStartedResponse(BaseModel):
    status: str
    message: str


class ScanStatusResponse(BaseModel):
    """Live scan status."""

    scanning: bool
    count: int
    total_files: int
    last_scan: datetime
    errors: list[str]
    cancelled: bool


class CancelResponse(BaseModel):
    cancelled: bool
    message: str


class SweepResponse(BaseModel):
    """Counters of an on-demand sweep."""

    observed_files: int
    stats: dict[str, int]


class ResetResponse(BaseModel):
    deleted: dict[str, int]


# =============================================================================
# Endpoints
# =============================================================================


@router.post("/scan", response_model=ScanStartedResponse, status_code=status.HTTP_202_ACCEPTED)
async def start_scan(
    request: ScanRequest | None = None,
    scanner: LibraryScannerService = Depends(get_library_scanner_service),
) -> ScanStartedResponse:
    """Start a library scan in the background.

    Raises:
        ScanInProgressException: 409 if a scan is already running
    """
    request = request or ScanRequest()
    scanner.start_background_scan(directories=request.directories, cleanup=request.cleanup)
    logger.info("Library scan started via API")
    return ScanStartedResponse(status="started", message="Library scan started")


@router.get("/scan/status", response_model=ScanStatusResponse)
async def get_scan_status(
    scanner: LibraryScannerService = Depends(get_library_scanner_service),
) -> ScanStatusResponse:
    """Get the status of the current or last scan."""
    current = scanner.status
    return ScanStatusResponse(
        scanning=current.scanning,
        count=current.count,
        total_files=current.total_files,
        last_scan=current.last_scan,
        errors=list(current.errors),
        cancelled=current.cancelled,
    )


@router.post("/scan/cancel", response_model=CancelResponse)
async def cancel_scan(
    scanner: LibraryScannerService = Depends(get_library_scanner_service),
) -> CancelResponse:
    """Cancel the running scan (it stops at the next file, sweep is skipped)."""
    if scanner.cancel_scan():
        return CancelResponse(cancelled=True, message="Cancellation requested")
    return CancelResponse(cancelled=False, message="No scan is running")


@router.post("/cleanup", response_model=SweepResponse)
async def run_cleanup(
    scanner: LibraryScannerService = Depends(get_library_scanner_service),
) -> SweepResponse:
    """Walk the music folders and run the consistency sweep on demand.

    Raises:
        ScanInProgressException: 409 while a scan is running
        ScanCancelledException: 409 when cancelled via /scan/cancel
    """
    observed, stats = await scanner.run_cleanup()
    return SweepResponse(observed_files=observed, stats=stats.to_dict())


@router.post("/reset", response_model=ResetResponse)
async def hard_reset(
    scanner: LibraryScannerService = Depends(get_library_scanner_service),
) -> ResetResponse:
    """Wipe tracks, albums, artists, covers, path index, shares and radio stations.

    Raises:
        ScanInProgressException: 409 while a scan is running
    """
    deleted = await scanner.reset_catalog()
    return ResetResponse(deleted=deleted)
