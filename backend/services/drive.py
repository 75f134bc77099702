"""Google Drive API client — folder listing, root lookup and media streaming."""

import logging
from typing import Optional

import httpx

from config import settings
from errors import RemoteUnavailable, RootNotFound
from models import FOLDER_MIME_TYPE, RemoteEntry

logger = logging.getLogger(__name__)

VIDEO_EXTENSIONS = (".mp4", ".mkv", ".webm", ".avi", ".mov", ".wmv", ".flv", ".m4v")

_LIST_FIELDS = (
    "nextPageToken, files(id,name,mimeType,parents,size,createdTime,"
    "modifiedTime,thumbnailLink,videoMediaMetadata)"
)
_PAGE_SIZE = 1000


def is_video_file(filename: str) -> bool:
    return filename.lower().endswith(VIDEO_EXTENSIONS)


def stream_locator(file_id: str) -> str:
    """URL the browser uses to stream a file through our proxy."""
    return f"/api/stream/{file_id}"


def new_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        base_url=settings.drive_api_url.rstrip("/"),
        timeout=settings.drive_timeout,
    )


def _quote(value: str) -> str:
    return value.replace("\\", "\\\\").replace("'", "\\'")


async def _get_json(client: httpx.AsyncClient, path: str, params: dict) -> dict:
    try:
        resp = await client.get(path, params=params)
        resp.raise_for_status()
    except httpx.HTTPStatusError as e:
        status = e.response.status_code
        raise RemoteUnavailable(f"Drive API error: {status}", status) from e
    except httpx.HTTPError as e:
        raise RemoteUnavailable(f"Drive API request failed: {e}") from e
    return resp.json()


async def list_folder(
    client: httpx.AsyncClient, folder_id: str, api_key: str,
) -> list[RemoteEntry]:
    """List every non-trashed child of *folder_id*, following pagination."""
    entries: list[RemoteEntry] = []
    page_token: Optional[str] = None

    while True:
        params = {
            "q": f"'{_quote(folder_id)}' in parents and trashed = false",
            "key": api_key,
            "fields": _LIST_FIELDS,
            "pageSize": _PAGE_SIZE,
        }
        if page_token:
            params["pageToken"] = page_token

        data = await _get_json(client, "/files", params)
        entries.extend(RemoteEntry.model_validate(f) for f in data.get("files", []))

        page_token = data.get("nextPageToken")
        if not page_token:
            return entries


async def find_folder(
    client: httpx.AsyncClient, name: str, api_key: str,
) -> Optional[str]:
    """Id of the first folder literally named *name*, or None."""
    params = {
        "q": (
            f"name = '{_quote(name)}' and mimeType = '{FOLDER_MIME_TYPE}'"
            " and trashed = false"
        ),
        "key": api_key,
        "fields": "files(id,name)",
    }
    data = await _get_json(client, "/files", params)
    files = data.get("files", [])
    return files[0]["id"] if files else None


async def resolve_root(
    client: httpx.AsyncClient,
    api_key: str,
    root_id: str = "",
    root_name: str = "Streaming",
) -> str:
    """Use the configured root id, otherwise look the root folder up by name."""
    if root_id:
        logger.info("Using configured Drive root folder %s", root_id)
        return root_id

    folder_id = await find_folder(client, root_name, api_key)
    if not folder_id:
        raise RootNotFound(f"{root_name} folder not found")
    logger.info("Found %s folder by name: %s", root_name, folder_id)
    return folder_id


async def open_media(
    client: httpx.AsyncClient,
    file_id: str,
    api_key: str,
    range_header: Optional[str] = None,
) -> httpx.Response:
    """
    Start streaming the bytes of *file_id*.

    The caller owns the returned response and must ``aclose()`` it. The Range
    header is forwarded as-is so partial content semantics pass through.
    """
    request = client.build_request(
        "GET",
        f"/files/{file_id}",
        params={"alt": "media", "key": api_key},
        headers={"Range": range_header or "bytes=0-"},
    )
    try:
        resp = await client.send(request, stream=True)
    except httpx.HTTPError as e:
        raise RemoteUnavailable(f"Failed to fetch media from Google Drive: {e}") from e

    if resp.is_error:
        await resp.aclose()
        raise RemoteUnavailable(
            f"Failed to fetch media from Google Drive: {resp.status_code}",
            resp.status_code,
        )
    return resp
