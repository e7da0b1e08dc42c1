"""Tests for the mutagen tag helpers and extractor error handling."""

from pathlib import Path

import pytest

from sonicat.infrastructure.metadata import MutagenMetadataExtractor, read_file_info
from sonicat.infrastructure.metadata.mutagen_extractor import (
    _lookup,
    parse_number,
    parse_year,
    split_genres,
    text_values,
)


class _Frame:
    """Minimal stand-in for an ID3 text frame."""

    def __init__(self, *text: str) -> None:
        self.text = list(text)


@pytest.mark.parametrize(
    ("value", "expected"),
    [("3", 3), ("3/12", 3), (" 7 / 9", 7), ("", None), (None, None), ("A", None)],
)
def test_parse_number(value, expected) -> None:
    assert parse_number(value) == expected


@pytest.mark.parametrize(
    ("value", "expected"),
    [("2004-05-17", 2004), ("1999", 1999), ("c. 1987", 1987), ("", None), ("sometime", None)],
)
def test_parse_year(value, expected) -> None:
    assert parse_year(value) == expected


def test_split_genres() -> None:
    assert split_genres(["Rock; Pop", "Jazz/ Funk", " "], [";", "/", ","]) == ["Rock", "Pop", "Jazz", "Funk"]
    assert split_genres(["Rock, Pop"], []) == ["Rock, Pop"]


class TestTextValues:
    """Tests for text_values()."""

    def test_id3_frame(self) -> None:
        assert text_values(_Frame("Foo", "Bar")) == ["Foo", "Bar"]

    def test_vorbis_list(self) -> None:
        assert text_values(["Foo", " "]) == ["Foo"]

    def test_mp4_number_tuple(self) -> None:
        assert text_values([(3, 12)]) == ["3"]

    def test_freeform_bytes(self) -> None:
        assert text_values([b"Album"]) == ["Album"]

    def test_none(self) -> None:
        assert text_values(None) == []


def test_lookup_tries_keys_in_order() -> None:
    tags = {"albumartist": ["Vorbis AA"], "aART": ["MP4 AA"]}
    assert _lookup(tags, "album_artist") == ["Vorbis AA"]
    assert _lookup({}, "album_artist") == []
    assert _lookup(None, "title") == []


def test_read_file_info(tmp_path: Path) -> None:
    path = tmp_path / "Song.FLAC"
    path.write_bytes(b"1234")

    info = read_file_info(str(path))

    assert info.size == 4
    assert info.extension == "flac"
    assert info.content_type == "audio/flac"
    assert info.last_modified > 0


class TestMutagenMetadataExtractor:
    """Error handling of the mutagen extractor."""

    @pytest.mark.asyncio
    async def test_unreadable_audio_raises_value_error(self, tmp_path: Path) -> None:
        path = tmp_path / "noise.flac"
        path.write_bytes(b"definitely not audio")
        extractor = MutagenMetadataExtractor(max_workers=1)
        try:
            with pytest.raises(ValueError):
                await extractor.extract(str(path))
        finally:
            extractor.close()

    @pytest.mark.asyncio
    async def test_missing_file_raises_os_error(self, tmp_path: Path) -> None:
        extractor = MutagenMetadataExtractor(max_workers=1)
        try:
            with pytest.raises(OSError):
                await extractor.extract(str(tmp_path / "gone.flac"))
        finally:
            extractor.close()
