"""Folder traversal engine — walks the Drive root and classifies its contents.

A top-level folder is a *series* folder when at least one of its subfolders is
named like "Season 2"; any other folder is a flat collection whose videos are
movies. Video files sitting directly in the root are standalone movies.
"""

import asyncio
import logging
import re
from typing import Optional, Sequence

import httpx

from errors import ConfigurationError, RemoteUnavailable
from models import Catalog, CatalogMovie, Episode, FolderScan, RemoteEntry
from services.aggregator import aggregate
from services.classifier import classify
from services.drive import is_video_file, list_folder, new_client, resolve_root
from services.subtitles import is_subtitle_file, match_subtitles

logger = logging.getLogger(__name__)

SEASON_FOLDER_RE = re.compile(r"season\s*([0-9]+)", re.IGNORECASE)


def season_label(number: int) -> str:
    return f"Season {number}"


def season_number(folder_name: str) -> Optional[int]:
    match = SEASON_FOLDER_RE.search(folder_name)
    return int(match.group(1)) if match else None


def is_season_folder(entry: RemoteEntry) -> bool:
    return entry.is_folder and season_number(entry.name) is not None


def is_series_folder(children: Sequence[RemoteEntry]) -> bool:
    return any(is_season_folder(child) for child in children)


# ── Listing ─────────────────────────────────────────────────────

async def _list_or_empty(
    client: httpx.AsyncClient, folder_id: str, api_key: str,
) -> list[RemoteEntry]:
    try:
        return await list_folder(client, folder_id, api_key)
    except RemoteUnavailable as e:
        logger.warning("Failed to list folder %s, skipping: %s", folder_id, e)
        return []


async def batch_list_folders(
    client: httpx.AsyncClient,
    folder_ids: Sequence[str],
    api_key: str,
    batch_size: int = 10,
    delay: float = 0.1,
) -> dict[str, list[RemoteEntry]]:
    """
    List many folders, at most *batch_size* at a time.

    Each batch is awaited as a group and followed by a short pause before the
    next one. A folder whose listing fails maps to an empty list.
    """
    batch_size = max(1, batch_size)
    results: dict[str, list[RemoteEntry]] = {}

    for i in range(0, len(folder_ids), batch_size):
        batch = folder_ids[i:i + batch_size]
        listings = await asyncio.gather(
            *(_list_or_empty(client, folder_id, api_key) for folder_id in batch)
        )
        results.update(zip(batch, listings))

        if i + batch_size < len(folder_ids):
            await asyncio.sleep(delay)

    return results


# ── Classification ──────────────────────────────────────────────

def _subtitle_pool(entries: Sequence[RemoteEntry]) -> list[RemoteEntry]:
    return [e for e in entries if not e.is_folder and is_subtitle_file(e.name)]


def _videos(entries: Sequence[RemoteEntry]) -> list[RemoteEntry]:
    return [e for e in entries if not e.is_folder and is_video_file(e.name)]


def build_movie(video: RemoteEntry, subtitle_pool: Sequence[RemoteEntry]) -> CatalogMovie:
    parsed = classify(video.name)
    return CatalogMovie(
        id=video.id,
        title=parsed.title,
        year=parsed.year,
        genre=parsed.genre,
        quality=parsed.quality,
        thumbnail=video.thumbnail_link,
        duration=video.duration_seconds,
        file_size=video.size,
        subtitles=match_subtitles(video, subtitle_pool),
    )


def build_movies(entries: Sequence[RemoteEntry]) -> list[CatalogMovie]:
    pool = _subtitle_pool(entries)
    return [build_movie(video, pool) for video in _videos(entries)]


def build_episodes(entries: Sequence[RemoteEntry], series_title: str) -> list[Episode]:
    """Episodes among *entries*; videos without an SxxEyy tag are skipped."""
    pool = _subtitle_pool(entries)
    episodes = []
    for video in _videos(entries):
        parsed = classify(video.name)
        if parsed.season is None or parsed.episode is None:
            logger.debug("Skipping %s: no season/episode in name", video.name)
            continue
        episodes.append(Episode(
            id=video.id,
            title=parsed.title,
            season=parsed.season,
            episode=parsed.episode,
            series_title=series_title,
            duration=video.duration_seconds,
            thumbnail=video.thumbnail_link,
            subtitles=match_subtitles(video, pool),
        ))
    return episodes


def group_by_season(episodes: Sequence[Episode]) -> dict[str, list[Episode]]:
    seasons: dict[str, list[Episode]] = {}
    for episode in episodes:
        seasons.setdefault(season_label(episode.season), []).append(episode)
    return seasons


# ── Scan ────────────────────────────────────────────────────────

async def scan(
    api_key: str,
    root_id: str = "",
    *,
    root_name: str = "Streaming",
    batch_size: int = 10,
    batch_delay: float = 0.1,
    client: Optional[httpx.AsyncClient] = None,
) -> Catalog:
    """
    Walk the Drive library and return a freshly aggregated Catalog.

    Failing to resolve or list the root is fatal; any other folder that cannot
    be listed contributes nothing and the scan carries on.
    """
    if not api_key:
        raise ConfigurationError("Google Drive API key not configured")

    if client is None:
        async with new_client() as own_client:
            return await scan(
                api_key, root_id,
                root_name=root_name,
                batch_size=batch_size,
                batch_delay=batch_delay,
                client=own_client,
            )

    root = await resolve_root(client, api_key, root_id, root_name)
    root_entries = await list_folder(client, root, api_key)

    folders = [e for e in root_entries if e.is_folder]
    listings = await batch_list_folders(
        client, [f.id for f in folders], api_key, batch_size, batch_delay,
    )

    results: list[FolderScan] = []
    pending_seasons: list[tuple[FolderScan, RemoteEntry]] = []
    root_pool = _subtitle_pool(root_entries)

    for entry in root_entries:
        if not entry.is_folder:
            if is_video_file(entry.name):
                results.append(FolderScan(
                    name=root_name, movies=[build_movie(entry, root_pool)],
                ))
            continue

        children = listings.get(entry.id, [])
        if not is_series_folder(children):
            results.append(FolderScan(name=entry.name, movies=build_movies(children)))
            continue

        # Loose episodes beside the season folders are grouped by parsed season
        series = FolderScan(
            name=entry.name,
            seasons=group_by_season(build_episodes(children, entry.name)),
        )
        results.append(series)
        for child in children:
            if is_season_folder(child):
                pending_seasons.append((series, child))
            elif child.is_folder:
                logger.debug("Ignoring non-season folder %s in %s", child.name, entry.name)

    season_listings = await batch_list_folders(
        client, [folder.id for _, folder in pending_seasons], api_key,
        batch_size, batch_delay,
    )
    for series, folder in pending_seasons:
        label = season_label(season_number(folder.name))
        episodes = build_episodes(season_listings.get(folder.id, []), series.name)
        series.seasons.setdefault(label, []).extend(episodes)

    catalog = aggregate(results)
    logger.info(
        "Library scan complete: %d movies, %d series, %d files",
        len(catalog.movies), len(catalog.series), catalog.total_files,
    )
    return catalog
