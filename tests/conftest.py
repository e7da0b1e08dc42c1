"""Shared fixtures for sonicat tests."""

import os
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from sonicat.config import Settings
from sonicat.config.settings import LibrarySettings
from sonicat.domain.dtos import (
    AudioInfo,
    EmbeddedPicture,
    ExtractedMetadata,
    FileInfo,
    TrackTags,
)
from sonicat.domain.ports import IMetadataExtractor
from sonicat.infrastructure.metadata.file_info import read_file_info
from sonicat.infrastructure.persistence import MemoryCatalogStore

MetadataFactory = Callable[..., ExtractedMetadata]


def build_metadata(
    path: str,
    title: str = "Song",
    album: str = "Album",
    artist: str | None = "Artist",
    artists: list[str] | None = None,
    album_artist: str | None = None,
    duration: int = 180,
    disc_number: int = 1,
    track_number: int | None = 1,
    date: str | None = None,
    genres: list[str] | None = None,
    last_modified: int = 1_000,
    pictures: list[EmbeddedPicture] | None = None,
) -> ExtractedMetadata:
    """Build ExtractedMetadata the way an extractor would."""
    extension = Path(path).suffix.lstrip(".")
    return ExtractedMetadata(
        file=FileInfo(path=path, size=1024, last_modified=last_modified, extension=extension),
        tags=TrackTags(
            title=title,
            album=album,
            artist=artist,
            artists=artists or [],
            album_artist=album_artist,
            track_number=track_number,
            disc_number=disc_number,
            date=date,
            genres=genres or [],
        ),
        audio=AudioInfo(duration=duration, bit_rate=320),
        pictures=pictures or [],
    )


class FakeExtractor(IMetadataExtractor):
    """Extractor serving pre-registered tags for real files on disk."""

    def __init__(self) -> None:
        self.tags: dict[str, dict[str, Any]] = {}
        self.failures: dict[str, Exception] = {}
        self.calls: list[str] = []

    def register(self, path: str | Path, **tags: Any) -> None:
        self.tags[str(path)] = tags

    def fail(self, path: str | Path, error: Exception) -> None:
        self.failures[str(path)] = error

    async def extract(self, file_path: str) -> ExtractedMetadata:
        self.calls.append(file_path)
        if file_path in self.failures:
            raise self.failures[file_path]
        info = read_file_info(file_path)
        tags = self.tags.get(file_path, {"title": Path(file_path).stem})
        return build_metadata(file_path, last_modified=info.last_modified, **tags)


@pytest.fixture
def store() -> MemoryCatalogStore:
    """Fresh in-memory catalog store."""
    return MemoryCatalogStore()


@pytest.fixture
def music_dir(tmp_path: Path) -> Path:
    path = tmp_path / "music"
    path.mkdir()
    return path


@pytest.fixture
def settings(tmp_path: Path, music_dir: Path) -> Settings:
    """Settings pointing at temporary music and data folders."""
    return Settings(
        library=LibrarySettings(
            music_folders=[music_dir],
            data_folder=tmp_path / "data",
        ),
    )


@pytest.fixture
def extractor() -> FakeExtractor:
    return FakeExtractor()


@pytest.fixture
def make_metadata() -> MetadataFactory:
    """Factory for ExtractedMetadata objects."""
    return build_metadata


def write_audio_file(directory: Path, name: str, content: bytes = b"\x00" * 16) -> str:
    """Create a dummy audio file and return its absolute path."""
    path = directory / name
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)
    return os.path.abspath(path)


@pytest.fixture
def audio_file(music_dir: Path) -> Callable[..., str]:
    """Create a dummy audio file under the music folder."""

    def _create(name: str, content: bytes = b"\x00" * 16) -> str:
        return write_audio_file(music_dir, name, content)

    return _create
