"""FastAPI dependencies for injecting services from app state."""

from typing import cast

from fastapi import HTTPException, Request

from sonicat.application.services.auto_share_service import AutoShareService
from sonicat.application.services.library_scanner_service import LibraryScannerService
from sonicat.application.services.playlist_service import PlaylistService


# Hey future me, the scanner is created ONCE in main.py lifespan() and attached to app.state.
# It must be a singleton: the "scan already running" guard and the live status live on it.
# If it's missing, startup failed - answer 503 instead of crashing with AttributeError.
def get_library_scanner_service(request: Request) -> LibraryScannerService:
    """Get the library scanner from app state.

    Raises:
        HTTPException: 503 if the scanner is not initialized
    """
    if not hasattr(request.app.state, "scanner"):
        raise HTTPException(status_code=503, detail="Library scanner not initialized")
    return cast(LibraryScannerService, request.app.state.scanner)


def get_playlist_service(request: Request) -> PlaylistService:
    """Get the playlist service (shared with the scanner's sweep)."""
    return get_library_scanner_service(request).playlists


def get_auto_share_service(request: Request) -> AutoShareService:
    """Get the auto-share service from app state.

    Raises:
        HTTPException: 503 if the service is not initialized
    """
    if not hasattr(request.app.state, "auto_shares"):
        raise HTTPException(status_code=503, detail="Share service not initialized")
    return cast(AutoShareService, request.app.state.auto_shares)
