"""Serving-side catalog edits: playlist entries and cover-art share links."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field

from sonicat.api.dependencies import get_auto_share_service, get_playlist_service
from sonicat.application.services.auto_share_service import AutoShareService
from sonicat.application.services.playlist_service import PlaylistService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["catalog"])


class PlaylistEntriesRequest(BaseModel):
    entry: list[str] = Field(default_factory=list, description="Ordered track ids")


class PlaylistResponse(BaseModel):
    id: str
    name: str
    entry: list[str]
    song_count: int
    duration: int
    cover_art: str | None = None


class ShareUrlResponse(BaseModel):
    url: str


@router.put("/playlists/{playlist_id}/entries", response_model=PlaylistResponse)
async def save_playlist_entries(
    playlist_id: str,
    request: PlaylistEntriesRequest,
    playlists: PlaylistService = Depends(get_playlist_service),
) -> PlaylistResponse:
    """Replace a playlist's entries.

    Unknown track ids are dropped; totals and cover are recomputed.

    Raises:
        EntityNotFoundException: 404 if the playlist does not exist
    """
    playlist = await playlists.save_entries(playlist_id, request.entry)
    return PlaylistResponse(
        id=playlist.id,
        name=playlist.name,
        entry=playlist.entry,
        song_count=playlist.song_count,
        duration=playlist.duration,
        cover_art=playlist.cover_art,
    )


@router.get("/covers/{cover_id}/share", response_model=ShareUrlResponse)
async def get_cover_share_url(
    cover_id: str,
    request: Request,
    size: int = Query(default=300, ge=1, le=2048),
    shares: AutoShareService = Depends(get_auto_share_service),
) -> ShareUrlResponse:
    """Get (or create) the public share link for a cover.

    Raises:
        HTTPException: 404 when no admin user exists to own the share
    """
    url = await shares.share_url(cover_id, size, str(request.base_url))
    if url is None:
        raise HTTPException(status_code=404, detail="No admin user available to own the share")
    return ShareUrlResponse(url=url)
