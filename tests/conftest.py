import re
from datetime import datetime, timedelta, timezone
from itertools import count
from typing import Optional

import httpx
import pytest

from config import settings
from models import FOLDER_MIME_TYPE
from services import drive, library_manager, scanner
from services.progress import InMemoryStorage, ProgressStore

_PARENTS_RE = re.compile(r"^'(.+)' in parents")
_NAME_RE = re.compile(r"^name = '(.+)' and mimeType")
_RANGE_RE = re.compile(r"bytes=(\d+)-(\d*)")


def folder(id: str, name: str) -> dict:
    return {"id": id, "name": name, "mimeType": FOLDER_MIME_TYPE}


def file(id: str, name: str, **extra) -> dict:
    return {"id": id, "name": name, "mimeType": "application/octet-stream", **extra}


class FakeDrive:
    """In-memory stand-in for the Drive v3 ``files`` endpoint."""

    def __init__(self):
        self.children: dict[str, list[dict]] = {}
        self.failing: set[str] = set()
        self.media: dict[str, bytes] = {}
        self.page_size: Optional[int] = None
        self.requests: list[httpx.Request] = []

    def add(self, parent: str, *entries: dict) -> "FakeDrive":
        self.children.setdefault(parent, []).extend(entries)
        return self

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=httpx.MockTransport(self.handler),
            base_url="https://drive.test",
        )

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.startswith("/files/"):
            return self._media(request, request.url.path.rsplit("/", 1)[1])

        q = request.url.params.get("q", "")
        match = _PARENTS_RE.match(q)
        if match:
            return self._listing(request, match.group(1))

        match = _NAME_RE.match(q)
        if match:
            found = [
                {"id": e["id"], "name": e["name"]}
                for entries in self.children.values()
                for e in entries
                if e["name"] == match.group(1) and e["mimeType"] == FOLDER_MIME_TYPE
            ]
            return httpx.Response(200, json={"files": found})

        return httpx.Response(400, json={"error": "unsupported query"})

    def _listing(self, request: httpx.Request, folder_id: str) -> httpx.Response:
        if folder_id in self.failing:
            return httpx.Response(500, json={"error": "backend error"})
        entries = self.children.get(folder_id, [])
        if self.page_size is None:
            return httpx.Response(200, json={"files": entries})

        offset = int(request.url.params.get("pageToken", "0"))
        body = {"files": entries[offset:offset + self.page_size]}
        if offset + self.page_size < len(entries):
            body["nextPageToken"] = str(offset + self.page_size)
        return httpx.Response(200, json=body)

    def _media(self, request: httpx.Request, file_id: str) -> httpx.Response:
        data = self.media.get(file_id)
        if data is None:
            return httpx.Response(404, json={"error": "not found"})

        match = _RANGE_RE.match(request.headers.get("range", ""))
        start = int(match.group(1)) if match else 0
        end = int(match.group(2)) if match and match.group(2) else len(data) - 1
        chunk = data[start:end + 1]
        return httpx.Response(
            206,
            stream=httpx.ByteStream(chunk),
            headers={
                "content-type": "video/mp4",
                "content-length": str(len(chunk)),
                "content-range": f"bytes {start}-{end}/{len(data)}",
                "accept-ranges": "bytes",
                "x-goog-internal": "dropped",
            },
        )


@pytest.fixture
def fake_drive(monkeypatch):
    fake = FakeDrive()
    monkeypatch.setattr(drive, "new_client", fake.client)
    monkeypatch.setattr(scanner, "new_client", fake.client)
    monkeypatch.setattr(settings, "google_drive_api_key", "test-key")
    monkeypatch.setattr(settings, "google_drive_root_id", "root")
    monkeypatch.setattr(settings, "scan_batch_delay", 0)
    monkeypatch.setattr(library_manager, "_catalog_cache", None)
    monkeypatch.setattr(library_manager, "_cached_generation", 0)
    return fake


@pytest.fixture
def clock():
    """Strictly increasing timestamps, one minute apart."""
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    ticks = count()
    return lambda: start + timedelta(minutes=next(ticks))


@pytest.fixture
def store(clock):
    return ProgressStore(InMemoryStorage(), now=clock)
