"""Domain entities - the validated records stored in the catalog."""

from sonicat.domain.entities.catalog import (
    Album,
    ArtistRef,
    Artist,
    CatalogRecord,
    CoverArt,
    DiscTitle,
    Genre,
    Playlist,
    ReleaseDate,
    ReplayGain,
    Share,
    ShareItemType,
    Track,
    User,
    UserData,
    utc_now,
)

__all__ = [
    "Album",
    "Artist",
    "ArtistRef",
    "CatalogRecord",
    "CoverArt",
    "DiscTitle",
    "Genre",
    "Playlist",
    "ReleaseDate",
    "ReplayGain",
    "Share",
    "ShareItemType",
    "Track",
    "User",
    "UserData",
    "utc_now",
]
