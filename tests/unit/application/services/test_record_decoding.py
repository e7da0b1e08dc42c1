"""Tests for stored record decoding."""

import pytest

from sonicat.application.services.record_decoding import (
    Decoded,
    Malformed,
    MalformedPolicy,
    decode_record,
    malformed_policy_for,
)
from sonicat.domain.entities import Playlist, Track
from sonicat.domain.value_objects import Collection


def test_decodes_camel_case_record() -> None:
    result = decode_record(Track, {"id": "t1", "path": "/m/a.flac", "title": "A", "albumId": "x"})

    assert isinstance(result, Decoded)
    assert result.record.album_id == "x"


@pytest.mark.parametrize("value", [None, {"id": "t1"}, "not a dict", {"id": "t1", "path": "/a", "title": "A", "duration": "long"}])
def test_malformed_values(value) -> None:
    result = decode_record(Track, value)

    assert isinstance(result, Malformed)
    assert result.raw == value
    assert result.error


def test_playlist_datetime_round_trip() -> None:
    stored = Playlist(id="p1", name="Mix", owner="u1").to_record()

    result = decode_record(Playlist, stored)

    assert isinstance(result, Decoded)
    assert result.record.to_record() == stored


@pytest.mark.parametrize(
    ("collection", "policy"),
    [
        (Collection.PLAYLISTS, MalformedPolicy.KEEP),
        (Collection.USERS, MalformedPolicy.KEEP),
        (Collection.TRACKS, MalformedPolicy.DELETE),
        (Collection.ALBUMS, MalformedPolicy.DELETE),
        (Collection.ARTISTS, MalformedPolicy.DELETE),
        (Collection.COVERS, MalformedPolicy.DELETE),
    ],
)
def test_malformed_policy(collection: Collection, policy: MalformedPolicy) -> None:
    assert malformed_policy_for(collection) is policy
