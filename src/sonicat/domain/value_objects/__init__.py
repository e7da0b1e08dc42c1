"""Value objects: catalog keys and identifiers."""

import hashlib
import os
import secrets
import string
from enum import Enum
from typing import TypeAlias

# A catalog key is a tuple of string parts; the first part names the collection.
CatalogKey: TypeAlias = tuple[str, ...]

TRACK_ID_LENGTH = 10
_ID_ALPHABET = string.ascii_letters + string.digits


class Collection(str, Enum):
    """Logical collections of the flat key-value catalog."""

    TRACKS = "tracks"
    ALBUMS = "albums"
    ARTISTS = "artists"
    COVERS = "covers"
    PLAYLISTS = "playlists"
    SHARES = "shares"
    USER_DATA = "userData"
    FILE_PATH_TO_ID = "filePathToId"
    AUTO_SHARES = "autoShares"
    USERS = "users"
    RADIO_STATIONS = "radioStations"

    def key(self, *parts: str) -> CatalogKey:
        """Build a key inside this collection."""
        return (self.value, *parts)

    @property
    def prefix(self) -> CatalogKey:
        """Prefix matching every key of this collection."""
        return (self.value,)


class EntityType(str, Enum):
    """Entity types that user annotations can point at."""

    TRACK = "track"
    ALBUM = "album"
    ARTIST = "artist"


# Hey future me - this is THE identity rule for tracks! Same absolute path = same id, across
# scans and restarts, no lookup needed. Changing this function re-keys the whole library (every
# mapping would point at an id the sweep considers foreign), so don't touch it.
def track_id_for_path(file_path: str) -> str:
    """Derive the stable track id for an absolute file path.

    Args:
        file_path: Absolute path of the audio file

    Returns:
        First 10 hex chars of the MD5 digest of the path's filesystem bytes
    """
    # fsencode, not encode("utf-8"): names that aren't valid UTF-8 arrive with surrogate escapes
    return hashlib.md5(os.fsencode(file_path)).hexdigest()[:TRACK_ID_LENGTH]


def generate_id(length: int = 12) -> str:
    """Generate a random alphanumeric id for albums, artists and shares."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


__all__ = [
    "CatalogKey",
    "Collection",
    "EntityType",
    "TRACK_ID_LENGTH",
    "generate_id",
    "track_id_for_path",
]
