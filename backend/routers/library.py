"""Library router — catalog scans, lookups, search and folder browsing."""

from typing import Literal, Optional

from fastapi import APIRouter, HTTPException, Query

from errors import ConfigurationError, LibraryError, NotFound, RemoteUnavailable, RootNotFound
from models import (
    BrowseListing, Catalog, CatalogMovie, SearchResult, StreamLocator, VideoDetails,
)
from services import library_manager

router = APIRouter(tags=["library"])


def _to_http(e: LibraryError) -> HTTPException:
    if isinstance(e, ConfigurationError):
        return HTTPException(500, str(e))
    if isinstance(e, (RootNotFound, NotFound)):
        return HTTPException(404, str(e))
    if isinstance(e, RemoteUnavailable):
        return HTTPException(502, f"Error scanning library: {e}")
    return HTTPException(500, str(e))


@router.get("/library", response_model=Catalog)
async def scan_library():
    """Rescan the Drive root and return the full catalog."""
    try:
        return await library_manager.scan_library()
    except LibraryError as e:
        raise _to_http(e)


@router.get("/library/duplicates", response_model=list[list[CatalogMovie]])
async def list_duplicates():
    try:
        return await library_manager.get_duplicates()
    except LibraryError as e:
        raise _to_http(e)


@router.get("/library/search", response_model=list[SearchResult])
async def search_library(
    q: str = Query("", description="Case-insensitive title fragment"),
    kind: Optional[Literal["movie", "series"]] = Query(None),
    year: Optional[str] = Query(None),
    genre: Optional[str] = Query(None),
    limit: int = Query(20, ge=1, le=200),
):
    try:
        catalog = await library_manager.get_catalog()
    except LibraryError as e:
        raise _to_http(e)
    return library_manager.search_catalog(catalog, q, kind, year, genre, limit)


@router.get("/browse", response_model=BrowseListing)
async def browse(folder_id: Optional[str] = Query(None, description="Drive folder id, root when omitted")):
    try:
        return await library_manager.browse_folder(folder_id)
    except LibraryError as e:
        raise _to_http(e)


@router.get("/video/{video_id}", response_model=VideoDetails)
async def get_video(video_id: str):
    """Everything the player needs for one movie or episode."""
    try:
        return await library_manager.get_video_details(video_id)
    except LibraryError as e:
        raise _to_http(e)


@router.get("/file", response_model=StreamLocator)
async def get_file_url(id: str = Query(..., min_length=1, description="Drive file id")):
    return library_manager.get_file_stream_locator(id)
