"""Library manager — runs scans with the configured credentials and answers lookups."""

import logging
from itertools import count
from typing import Optional, Union

from config import settings
from errors import NotFound
from models import (
    BrowseListing, BrowseVideo, Catalog, CatalogMovie, Chapter, Episode,
    FolderRef, SearchResult, StreamLocator, VideoDetails,
)
from services import drive, scanner
from services.aggregator import find_duplicates
from services.classifier import classify
from services.player import build_chapters
from services.subtitles import is_subtitle_file, match_subtitles

logger = logging.getLogger(__name__)

# Latest finished scan, used for video lookups between scans
_catalog_cache: Optional[Catalog] = None
_scan_counter = count(1)
_cached_generation = 0


async def scan_library() -> Catalog:
    """Rescan the whole library; an older scan never replaces a newer result."""
    global _catalog_cache, _cached_generation

    generation = next(_scan_counter)
    catalog = await scanner.scan(
        settings.require_api_key(),
        settings.google_drive_root_id,
        root_name=settings.root_folder_name,
        batch_size=settings.scan_batch_size,
        batch_delay=settings.scan_batch_delay,
    )

    if generation > _cached_generation:
        _catalog_cache = catalog
        _cached_generation = generation
    else:
        logger.info("Discarding stale scan #%d", generation)
    return catalog


def get_cached_catalog() -> Optional[Catalog]:
    return _catalog_cache


async def get_catalog() -> Catalog:
    return _catalog_cache or await scan_library()


def find_video(catalog: Catalog, video_id: str) -> Union[CatalogMovie, Episode]:
    for movie in catalog.movies:
        if movie.id == video_id:
            return movie
    for series in catalog.series.values():
        for episodes in series.seasons.values():
            for episode in episodes:
                if episode.id == video_id:
                    return episode
    raise NotFound(f"Video {video_id} not found")


async def get_video_by_id(video_id: str) -> Union[CatalogMovie, Episode]:
    """Look *video_id* up, rescanning once if the cached catalog misses it."""
    cached = get_cached_catalog()
    if cached is not None:
        try:
            return find_video(cached, video_id)
        except NotFound:
            pass
    return find_video(await scan_library(), video_id)


def get_file_stream_locator(file_id: str) -> StreamLocator:
    return StreamLocator(url=drive.stream_locator(file_id), file_id=file_id)


async def get_video_details(video_id: str) -> VideoDetails:
    video = await get_video_by_id(video_id)
    chapters: list[Chapter] = []
    outro_start = None
    if video.duration:
        chapters = build_chapters(video.duration, settings.chapter_interval)
        outro_start = max(0.0, video.duration - settings.outro_length)

    return VideoDetails(
        video=video,
        stream_url=drive.stream_locator(video.id),
        chapters=chapters,
        intro_start=settings.intro_start,
        intro_end=settings.intro_end,
        outro_start=outro_start,
    )


async def get_duplicates() -> list[list[CatalogMovie]]:
    catalog = await get_catalog()
    return find_duplicates(catalog.movies)


def search_catalog(
    catalog: Catalog,
    query: str = "",
    kind: Optional[str] = None,
    year: Optional[str] = None,
    genre: Optional[str] = None,
    limit: int = 20,
) -> list[SearchResult]:
    """Filter movies and series by title substring, type, year and genre."""
    items = [
        SearchResult(
            id=m.id, title=m.title, type="movie",
            year=m.year, genre=m.genre, thumbnail=m.thumbnail,
        )
        for m in catalog.movies
    ]
    for title, series in catalog.series.items():
        # A series opens at its first episode; one without episodes can't be played
        first = next((eps[0] for eps in series.seasons.values() if eps), None)
        if first is None:
            continue
        items.append(SearchResult(
            id=first.id,
            title=title,
            type="series",
            thumbnail=first.thumbnail,
        ))

    needle = query.strip().casefold()
    matches = [
        item for item in items
        if (not needle or needle in item.title.casefold())
        and (kind is None or item.type == kind)
        and (year is None or item.year == year)
        and (genre is None or (item.genre or "").lower() == genre.lower())
    ]
    return matches[:limit]


async def browse_folder(folder_id: Optional[str] = None) -> BrowseListing:
    """Raw view of one Drive folder: its subfolders and classified videos."""
    api_key = settings.require_api_key()
    async with drive.new_client() as client:
        if not folder_id:
            folder_id = await drive.resolve_root(
                client, api_key, settings.google_drive_root_id, settings.root_folder_name,
            )
        entries = await drive.list_folder(client, folder_id, api_key)

    subtitles = [e for e in entries if not e.is_folder and is_subtitle_file(e.name)]
    videos = []
    for entry in entries:
        if entry.is_folder or not drive.is_video_file(entry.name):
            continue
        parsed = classify(entry.name)
        videos.append(BrowseVideo(
            id=entry.id,
            name=entry.name,
            title=parsed.title,
            year=parsed.year,
            season=parsed.season,
            episode=parsed.episode,
            size=entry.size,
            subtitles=match_subtitles(entry, subtitles),
            created_time=entry.created_time,
            modified_time=entry.modified_time,
        ))

    return BrowseListing(
        folder_id=folder_id,
        folders=[FolderRef(id=e.id, name=e.name) for e in entries if e.is_folder],
        videos=videos,
    )
