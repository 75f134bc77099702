"""Library aggregator — merges per-folder scan results into one Catalog."""

import re
from datetime import datetime, timezone
from typing import Iterable, Optional

from models import Catalog, CatalogMovie, Episode, FolderScan, SeriesEntry

_SEASON_NUMBER_RE = re.compile(r"([0-9]+)")


def _season_sort_key(label: str) -> tuple[int, str]:
    match = _SEASON_NUMBER_RE.search(label)
    return (int(match.group(1)) if match else 0, label)


def _order_seasons(seasons: dict[str, list[Episode]]) -> dict[str, list[Episode]]:
    return {
        label: sorted(seasons[label], key=lambda ep: ep.episode)
        for label in sorted(seasons, key=_season_sort_key)
    }


def aggregate(
    results: Iterable[FolderScan],
    scanned_at: Optional[datetime] = None,
) -> Catalog:
    """
    Build a Catalog from folder results given in discovery order.

    Movies are sorted by case-insensitive title; the sort is stable so ties
    keep discovery order. Series names are used exactly as discovered.
    """
    movies: list[CatalogMovie] = []
    series: dict[str, SeriesEntry] = {}
    total_files = 0

    for result in results:
        movies.extend(result.movies)
        total_files += len(result.movies)

        if result.seasons is None:
            continue
        entry = series.setdefault(result.name, SeriesEntry(title=result.name))
        for label, episodes in result.seasons.items():
            entry.seasons.setdefault(label, []).extend(episodes)
            total_files += len(episodes)

    for entry in series.values():
        entry.seasons = _order_seasons(entry.seasons)

    movies.sort(key=lambda movie: movie.title.casefold())

    return Catalog(
        movies=movies,
        series=series,
        total_files=total_files,
        last_scanned=scanned_at or datetime.now(timezone.utc),
    )


def duplicate_key(movie: CatalogMovie) -> str:
    return f"{movie.title.lower()}-{movie.year or 'unknown'}"


def find_duplicates(movies: Iterable[CatalogMovie]) -> list[list[CatalogMovie]]:
    """Groups of movies sharing title and year. Diagnostic only, never merged."""
    groups: dict[str, list[CatalogMovie]] = {}
    for movie in movies:
        groups.setdefault(duplicate_key(movie), []).append(movie)
    return [group for group in groups.values() if len(group) > 1]
