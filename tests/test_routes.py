import pytest
from fastapi.testclient import TestClient

from config import settings
from conftest import file, folder
from database import get_store
from main import app


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def library(fake_drive):
    fake_drive.add(
        "root",
        folder("movies", "Movies"),
        folder("bb", "Breaking Bad"),
        file("readme", "README.txt"),
    )
    fake_drive.add(
        "movies",
        file(
            "v1", "Inception (2010) 1080p [Sci-Fi].mp4",
            videoMediaMetadata={"durationMillis": "8880000"},
        ),
        file("v2", "Heat (1995).mkv"),
        file("v3", "heat (1995) 720p.mkv"),
        file("s1", "Inception (2010) 1080p [Sci-Fi].en.srt"),
    )
    fake_drive.add("bb", folder("bb1", "Season 1"))
    fake_drive.add("bb1", file("e1", "Breaking.Bad.S01E01.mkv"))
    return fake_drive


def test_health(client):
    resp = client.get("/api/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_library_scan(client, library):
    resp = client.get("/api/library")
    assert resp.status_code == 200
    body = resp.json()
    assert [m["title"] for m in body["movies"]] == ["Heat", "heat", "Inception"]
    assert body["total_files"] == 4
    episodes = body["series"]["Breaking Bad"]["seasons"]["Season 1"]
    assert episodes[0]["kind"] == "episode"
    assert episodes[0]["season"] == 1


def test_library_without_api_key(client, fake_drive, monkeypatch):
    monkeypatch.setattr(settings, "google_drive_api_key", "")
    resp = client.get("/api/library")
    assert resp.status_code == 500
    assert "not configured" in resp.json()["detail"]


def test_library_root_failure(client, fake_drive):
    fake_drive.failing.add("root")
    assert client.get("/api/library").status_code == 502


def test_library_root_not_found(client, fake_drive, monkeypatch):
    monkeypatch.setattr(settings, "google_drive_root_id", "")
    assert client.get("/api/library").status_code == 404


def test_video_details(client, library):
    resp = client.get("/api/video/v1")
    assert resp.status_code == 200
    body = resp.json()
    assert body["video"]["title"] == "Inception"
    assert body["video"]["genre"] == "Sci-Fi"
    assert body["video"]["subtitles"][0]["src"] == "/api/stream/s1"
    assert body["stream_url"] == "/api/stream/v1"
    assert body["chapters"][1]["time"] == 600
    assert body["intro_start"] == 10
    assert body["intro_end"] == 90
    assert body["outro_start"] == 8580


def test_episode_details(client, library):
    body = client.get("/api/video/e1").json()
    assert body["video"]["series_title"] == "Breaking Bad"
    assert body["chapters"] == []
    assert body["outro_start"] is None


def test_unknown_video(client, library):
    assert client.get("/api/video/nope").status_code == 404


def test_file_locator(client):
    resp = client.get("/api/file", params={"id": "abc"})
    assert resp.json() == {"url": "/api/stream/abc", "file_id": "abc"}
    assert client.get("/api/file").status_code == 422


def test_search(client, library):
    results = client.get("/api/library/search", params={"q": "HEAT"}).json()
    assert [r["id"] for r in results] == ["v2", "v3"]

    series = client.get("/api/library/search", params={"kind": "series"}).json()
    assert series == [{
        "id": "e1", "title": "Breaking Bad", "type": "series",
        "year": None, "genre": None, "thumbnail": None,
    }]
    assert client.get(f"/api/video/{series[0]['id']}").status_code == 200

    by_genre = client.get("/api/library/search", params={"genre": "sci-fi"}).json()
    assert [r["id"] for r in by_genre] == ["v1"]


def test_duplicates(client, library):
    groups = client.get("/api/library/duplicates").json()
    assert [[m["id"] for m in g] for g in groups] == [["v2", "v3"]]


def test_browse_root(client, library):
    body = client.get("/api/browse").json()
    assert body["folder_id"] == "root"
    assert [f["name"] for f in body["folders"]] == ["Movies", "Breaking Bad"]
    assert body["videos"] == []


def test_browse_folder(client, library):
    body = client.get("/api/browse", params={"folder_id": "movies"}).json()
    assert [v["id"] for v in body["videos"]] == ["v1", "v2", "v3"]
    assert body["videos"][0]["year"] == "2010"
    assert len(body["videos"][0]["subtitles"]) == 1


def test_stream_forwards_range(client, fake_drive):
    fake_drive.media["v1"] = bytes(range(100))

    resp = client.get("/api/stream/v1", headers={"Range": "bytes=10-19"})

    assert resp.status_code == 206
    assert resp.content == bytes(range(10, 20))
    assert resp.headers["content-range"] == "bytes 10-19/100"
    assert resp.headers["accept-ranges"] == "bytes"
    assert resp.headers["content-type"] == "video/mp4"
    assert resp.headers["access-control-allow-origin"] == "*"
    assert "x-goog-internal" not in resp.headers

    upstream = fake_drive.requests[-1]
    assert upstream.headers["range"] == "bytes=10-19"
    assert upstream.url.params["alt"] == "media"
    assert upstream.url.params["key"] == "test-key"


def test_stream_defaults_to_whole_file(client, fake_drive):
    fake_drive.media["v1"] = b"abc"
    resp = client.get("/api/stream/v1")
    assert resp.content == b"abc"
    assert fake_drive.requests[-1].headers["range"] == "bytes=0-"


def test_stream_upstream_error(client, fake_drive):
    resp = client.get("/api/stream/missing")
    assert resp.status_code == 404
    assert resp.json()["detail"] == "Failed to fetch video from Google Drive"


def test_stream_without_api_key(client, fake_drive, monkeypatch):
    monkeypatch.setattr(settings, "google_drive_api_key", "")
    assert client.get("/api/stream/v1").status_code == 500


# ── device-local state ──────────────────────────────────────────

def test_watchlist_routes(client):
    item = {"id": "m1", "title": "Heat", "type": "movie"}
    assert [w["id"] for w in client.post("/api/watchlist", json=item).json()] == ["m1"]
    assert len(client.post("/api/watchlist", json=item).json()) == 1
    assert client.get("/api/watchlist/m1").json() == {"id": "m1", "in_watchlist": True}

    assert client.delete("/api/watchlist/m1").json() == {"deleted": "m1"}
    assert client.get("/api/watchlist").json() == []


def test_watchlist_rejects_unknown_type(client):
    resp = client.post("/api/watchlist", json={"id": "m1", "title": "Heat", "type": "clip"})
    assert resp.status_code == 422


def test_history_routes(client):
    client.post("/api/history", json={"id": "a", "title": "A", "type": "movie", "position": 5})
    history = client.post(
        "/api/history", json={"id": "b", "title": "B", "type": "series", "position": 9},
    ).json()
    assert [h["id"] for h in history] == ["b", "a"]
    assert client.get("/api/history").json()[0]["position"] == 9


def test_resume_routes(client):
    assert client.get("/api/resume/m1").json() == {"id": "m1", "position": 0}
    assert client.put("/api/resume/m1", json={"position": 42.5}).json() == {
        "id": "m1", "position": 42.5,
    }
    assert client.get("/api/resume/m1").json()["position"] == 42.5
    assert client.put("/api/resume/m1", json={"position": -1}).status_code == 422


def test_preferences_routes(client):
    assert client.get("/api/preferences").json()["theme"] == "dark"
    prefs = {"theme": "light", "autoplay": False, "subtitles_enabled": True, "volume": 0.5}
    assert client.put("/api/preferences", json=prefs).json() == prefs
    assert client.get("/api/preferences").json() == prefs
    assert client.put("/api/preferences", json={**prefs, "volume": 2}).status_code == 422
