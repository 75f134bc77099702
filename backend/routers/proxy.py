"""Proxy router — streams Drive media bytes to the browser.

The API key is injected server-side so it never reaches the client. Range
requests pass straight through, so seeking in the player works as usual.
"""

from fastapi import APIRouter, HTTPException, Request
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from config import settings
from errors import ConfigurationError, RemoteUnavailable
from services import drive

router = APIRouter(tags=["proxy"])

_PASSTHROUGH_HEADERS = ("content-type", "content-length", "content-range", "accept-ranges")
_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, HEAD, OPTIONS",
    "Access-Control-Allow-Headers": "Range",
}


@router.get("/stream/{file_id}")
async def stream_file(file_id: str, request: Request):
    """Proxy a Drive media download, forwarding the Range header."""
    try:
        api_key = settings.require_api_key()
    except ConfigurationError as e:
        raise HTTPException(500, str(e))

    client = drive.new_client()
    try:
        upstream = await drive.open_media(
            client, file_id, api_key, request.headers.get("range"),
        )
    except RemoteUnavailable as e:
        await client.aclose()
        raise HTTPException(e.status_code or 502, "Failed to fetch video from Google Drive")

    headers = {
        name: upstream.headers[name]
        for name in _PASSTHROUGH_HEADERS
        if name in upstream.headers
    }
    headers.update(_CORS_HEADERS)

    async def _close():
        await upstream.aclose()
        await client.aclose()

    return StreamingResponse(
        upstream.aiter_raw(),
        status_code=upstream.status_code,
        headers=headers,
        background=BackgroundTask(_close),
    )
