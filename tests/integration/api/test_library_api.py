"""Integration tests for the admin and catalog API."""

import time
from collections.abc import Iterator

import pytest
from fastapi.testclient import TestClient

from sonicat.domain.entities import Playlist, Track, User
from sonicat.domain.exceptions import ScanInProgressException
from sonicat.domain.value_objects import Collection, track_id_for_path
from sonicat.main import create_app


@pytest.fixture
def client(settings, store, extractor) -> Iterator[TestClient]:
    app = create_app(settings, store=store, extractor=extractor)
    with TestClient(app) as test_client:
        yield test_client


def _wait_for_scan(client: TestClient, timeout: float = 5.0) -> dict:
    deadline = time.monotonic() + timeout
    while True:
        body = client.get("/api/library/scan/status").json()
        if not body["scanning"] or time.monotonic() > deadline:
            return body
        time.sleep(0.02)


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_shutdown_waits_for_background_scan(settings, store, extractor, audio_file) -> None:
    for i in range(5):
        audio_file(f"album/track{i}.flac")
    app = create_app(settings, store=store, extractor=extractor)

    with TestClient(app) as client:
        assert client.post("/api/library/scan").status_code == 202
        scanner = client.app.state.scanner

    assert scanner._task is not None and scanner._task.done()
    assert scanner.is_scanning is False


class TestScanEndpoints:
    """Tests for /api/library/scan*."""

    def test_initial_status(self, client: TestClient) -> None:
        response = client.get("/api/library/scan/status")

        assert response.status_code == 200
        body = response.json()
        assert body["scanning"] is False
        assert body["count"] == 0
        assert body["errors"] == []

    def test_background_scan(self, client: TestClient, store, audio_file) -> None:
        path = audio_file("one.flac")

        response = client.post("/api/library/scan", json={"cleanup": True})

        assert response.status_code == 202
        assert response.json()["status"] == "started"
        status = _wait_for_scan(client)
        assert status["scanning"] is False
        assert status["count"] == 1
        assert Collection.TRACKS.key(track_id_for_path(path)) in store.data

    def test_scan_while_scanning_conflicts(self, client: TestClient) -> None:
        client.app.state.scanner.status.scanning = True

        response = client.post("/api/library/scan")

        assert response.status_code == 409
        assert "already running" in response.json()["detail"]

    def test_cancel_without_scan(self, client: TestClient) -> None:
        response = client.post("/api/library/scan/cancel")

        assert response.status_code == 200
        assert response.json()["cancelled"] is False


class TestMaintenanceEndpoints:
    """Tests for /api/library/cleanup and /api/library/reset."""

    def test_cleanup_removes_vanished_tracks(self, client: TestClient, store, music_dir) -> None:
        gone = str(music_dir / "gone.flac")
        store.data[Collection.TRACKS.key("deadbeef00")] = Track(
            id="deadbeef00", path=gone, title="Gone"
        ).to_record()
        store.data[Collection.FILE_PATH_TO_ID.key(gone)] = "deadbeef00"

        response = client.post("/api/library/cleanup")

        assert response.status_code == 200
        body = response.json()
        assert body["observed_files"] == 0
        assert body["stats"]["removed_tracks"] == 1
        assert Collection.TRACKS.key("deadbeef00") not in store.data

    def test_reset_keeps_playlists(self, client: TestClient, store) -> None:
        store.data[Collection.ALBUMS.key("a1")] = {"id": "a1"}
        store.data[Collection.PLAYLISTS.key("p1")] = Playlist(id="p1", name="Mix", owner="u1").to_record()

        response = client.post("/api/library/reset")

        assert response.status_code == 200
        assert response.json()["deleted"]["albums"] == 1
        assert Collection.PLAYLISTS.key("p1") in store.data

    @pytest.mark.parametrize("endpoint", ["/api/library/cleanup", "/api/library/reset"])
    def test_conflict_while_scanning(self, client: TestClient, store, endpoint: str) -> None:
        store.data[Collection.ALBUMS.key("a1")] = {"id": "a1"}
        client.app.state.scanner.status.scanning = True

        response = client.post(endpoint)

        assert response.status_code == 409
        assert Collection.ALBUMS.key("a1") in store.data

    def test_scan_rejected_while_cleanup_runs(
        self, client: TestClient, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        """Test a scan started mid-cleanup is refused and the guard is released after."""
        scanner = client.app.state.scanner
        real_run = scanner.sweep.run
        rejected: list[ScanInProgressException] = []

        async def run_with_scan_attempt(seen_paths, cancel_token=None):
            try:
                scanner.start_background_scan()
            except ScanInProgressException as exc:
                rejected.append(exc)
            return await real_run(seen_paths, cancel_token=cancel_token)

        monkeypatch.setattr(scanner.sweep, "run", run_with_scan_attempt)

        response = client.post("/api/library/cleanup")

        assert response.status_code == 200
        assert len(rejected) == 1
        assert client.get("/api/library/scan/status").json()["scanning"] is False
        assert client.post("/api/library/scan").status_code == 202


class TestCatalogEndpoints:
    """Tests for playlist edits and cover share links."""

    def test_save_playlist_entries(self, client: TestClient, store) -> None:
        store.data[Collection.TRACKS.key("t1")] = Track(id="t1", path="/m/1.flac", title="One", duration=61).to_record()
        store.data[Collection.PLAYLISTS.key("p1")] = Playlist(id="p1", name="Mix", owner="u1").to_record()

        response = client.put("/api/playlists/p1/entries", json={"entry": ["t1", "missing", "t1"]})

        assert response.status_code == 200
        body = response.json()
        assert body["entry"] == ["t1", "t1"]
        assert body["song_count"] == 2
        assert body["duration"] == 122

    def test_save_entries_unknown_playlist(self, client: TestClient) -> None:
        response = client.put("/api/playlists/nope/entries", json={"entry": []})

        assert response.status_code == 404

    def test_cover_share_url(self, client: TestClient, store) -> None:
        store.data[Collection.USERS.key("admin")] = User(id="admin", username="admin", admin_role=True).to_record()

        first = client.get("/api/covers/a1/share", params={"size": 600})
        second = client.get("/api/covers/a1/share", params={"size": 600})

        assert first.status_code == 200
        share_id = store.data[Collection.AUTO_SHARES.key("coverArt", "a1")]
        assert first.json()["url"] == f"http://testserver/share/{share_id}?size=600"
        assert second.json() == first.json()

    def test_cover_share_without_admin(self, client: TestClient) -> None:
        response = client.get("/api/covers/a1/share")

        assert response.status_code == 404
