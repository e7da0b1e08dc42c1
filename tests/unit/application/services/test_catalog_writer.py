"""Tests for the catalog writer."""

import pytest

from sonicat.application.services.catalog_writer import CatalogWriter, parse_release_date
from sonicat.domain.entities import Album, Artist, ArtistRef, ReleaseDate, Track
from sonicat.domain.value_objects import Collection
from sonicat.infrastructure.persistence import MemoryCatalogStore

FOO = ArtistRef(id="foo", name="Foo")
BAR = ArtistRef(id="bar", name="Bar")


async def _seed_artists(store: MemoryCatalogStore, *refs: ArtistRef) -> None:
    for ref in refs:
        artist = Artist(id=ref.id, name=ref.name, cover_art=ref.id)
        await store.set(Collection.ARTISTS.key(ref.id), artist.to_record())


async def _album(store: MemoryCatalogStore, album_id: str) -> Album:
    return Album.from_record(await store.get(Collection.ALBUMS.key(album_id)))


async def _artist(store: MemoryCatalogStore, artist_id: str) -> Artist:
    return Artist.from_record(await store.get(Collection.ARTISTS.key(artist_id)))


class TestParseReleaseDate:
    """Tests for parse_release_date()."""

    @pytest.mark.parametrize(
        ("date", "original_year", "expected"),
        [
            ("2004-05-17", None, (2004, 5, 17)),
            ("1999", None, (1999, 1, 1)),
            ("2010-03", None, (2010, 3, 1)),
            (None, 1987, (1987, 1, 1)),
            (None, None, (1970, 1, 1)),
            ("garbage", None, (1970, 1, 1)),
            ("2001-13-40", None, (1970, 1, 1)),
            ("2004-05-17T10:00:00", None, (2004, 5, 17)),
        ],
    )
    def test_parses(self, date: str | None, original_year: int | None, expected: tuple[int, int, int]) -> None:
        assert parse_release_date(date, original_year) == ReleaseDate(
            year=expected[0], month=expected[1], day=expected[2]
        )


class TestWriteAlbum:
    """Tests for CatalogWriter.write_album()."""

    @pytest.mark.asyncio
    async def test_new_album_seeded_from_first_track(self, store, make_metadata) -> None:
        await _seed_artists(store, FOO)
        metadata = make_metadata(
            "/m/a.flac", album="Debut", duration=200, disc_number=2, date="2001-02-03", genres=["Rock", "Pop"]
        )

        await CatalogWriter(store).write_album("alb", "t1", [FOO], metadata)

        album = await _album(store, "alb")
        assert album.name == "Debut"
        assert album.song == ["t1"]
        assert album.song_count == 1
        assert album.duration == 200
        assert album.artist == "Foo"
        assert album.artist_id == "foo"
        assert album.cover_art == "alb"
        assert [(d.disc, d.title) for d in album.disc_titles] == [(2, "Disc 2")]
        assert album.release_date == ReleaseDate(year=2001, month=2, day=3)
        assert album.year == 2001
        assert album.genre == "Rock, Pop"
        assert album.release_types == ["album"]

    @pytest.mark.asyncio
    async def test_existing_album_aggregates_tracks(self, store, make_metadata) -> None:
        await _seed_artists(store, FOO, BAR)
        writer = CatalogWriter(store)
        await writer.write_album("alb", "t1", [FOO], make_metadata("/m/1.flac", duration=100))
        await writer.write_album(
            "alb", "t2", [BAR], make_metadata("/m/2.flac", duration=50, disc_number=2)
        )

        album = await _album(store, "alb")
        assert album.song == ["t1", "t2"]
        assert album.song_count == 2
        assert album.duration == 150
        assert [d.disc for d in album.disc_titles] == [1, 2]
        assert [ref.id for ref in album.artists] == ["foo", "bar"]
        assert album.display_artist == "Foo & Bar"

    @pytest.mark.asyncio
    async def test_same_track_twice_is_idempotent(self, store, make_metadata) -> None:
        await _seed_artists(store, FOO)
        writer = CatalogWriter(store)
        metadata = make_metadata("/m/1.flac", duration=100)
        await writer.write_album("alb", "t1", [FOO], metadata)
        before = await store.get(Collection.ALBUMS.key("alb"))

        await writer.write_album("alb", "t1", [FOO], metadata)

        assert await store.get(Collection.ALBUMS.key("alb")) == before

    @pytest.mark.asyncio
    async def test_artist_back_links(self, store, make_metadata) -> None:
        await _seed_artists(store, FOO, BAR)
        writer = CatalogWriter(store)
        await writer.write_album("alb1", "t1", [FOO, BAR], make_metadata("/m/1.flac"))
        await writer.write_album("alb2", "t2", [FOO], make_metadata("/m/2.flac", album="Other"))
        await writer.write_album("alb1", "t3", [FOO], make_metadata("/m/3.flac"))

        foo = await _artist(store, "foo")
        bar = await _artist(store, "bar")
        assert foo.album == ["alb1", "alb2"]
        assert foo.album_count == 2
        assert bar.album == ["alb1"]
        assert bar.album_count == 1


class TestWriteTrack:
    """Tests for CatalogWriter.write_track()."""

    @pytest.mark.asyncio
    async def test_track_record_links(self, store, make_metadata) -> None:
        metadata = make_metadata("/m/song.mp3", title="", duration=123)

        track = await CatalogWriter(store).write_track("t1", metadata, [FOO, BAR], [FOO], "alb")

        assert track is not None
        stored = Track.from_record(await store.get(Collection.TRACKS.key("t1")))
        assert stored.title == "song"
        assert stored.album_id == "alb"
        assert stored.cover_art == "alb"
        assert stored.artist_id == "foo"
        assert [ref.id for ref in stored.artists] == ["foo", "bar"]
        assert [ref.id for ref in stored.album_artists] == ["foo"]
        assert stored.display_artist == "Foo & Bar"
        assert stored.content_type == "audio/mpeg"
        assert stored.suffix == "mp3"
        assert stored.duration == 123
        assert stored.created is not None

    @pytest.mark.asyncio
    async def test_unknown_extension_gets_octet_stream(self, store, make_metadata) -> None:
        track = await CatalogWriter(store).write_track(
            "t1", make_metadata("/m/song.xyz"), [FOO], [FOO], "alb"
        )
        assert track is not None
        assert track.content_type == "application/octet-stream"

    @pytest.mark.asyncio
    async def test_unchanged_track_is_not_rewritten(self, store, make_metadata) -> None:
        writer = CatalogWriter(store)
        metadata = make_metadata("/m/a.flac")
        await writer.write_track("t1", metadata, [FOO], [FOO], "alb")
        first = await store.get(Collection.TRACKS.key("t1"))
        store.data[Collection.TRACKS.key("t1")]["marker"] = True

        await writer.write_track("t1", metadata, [FOO], [FOO], "alb")

        # The extra field would have been dropped by a rewrite
        assert store.data[Collection.TRACKS.key("t1")]["marker"] is True
        assert {k: v for k, v in store.data[Collection.TRACKS.key("t1")].items() if k != "marker"} == first

    @pytest.mark.asyncio
    async def test_changed_track_keeps_created(self, store, make_metadata) -> None:
        writer = CatalogWriter(store)
        first = await writer.write_track("t1", make_metadata("/m/a.flac", title="Old"), [FOO], [FOO], "alb")
        second = await writer.write_track("t1", make_metadata("/m/a.flac", title="New"), [FOO], [FOO], "alb")

        assert first is not None and second is not None
        assert second.title == "New"
        assert second.created == first.created
