"""Filename classifier — turns a raw video filename into structured metadata.

Pure and total: every pattern that is absent simply leaves its field unset.
"""

import re

from models import ParsedName

GENRES = (
    "Action", "Comedy", "Drama", "Horror", "Thriller", "Romance", "Sci-Fi",
    "Fantasy", "Adventure", "Crime", "Mystery", "Documentary", "Animation",
)
QUALITY_TAGS = ("720p", "1080p", "4K", "2160p", "HDR", "HEVC", "x264", "x265")

_CANONICAL_GENRES = {g.lower(): g for g in GENRES}
_GENRE_ALTERNATION = "|".join(re.escape(g) for g in GENRES)

_EXTENSION_RE = re.compile(r"\.[^/.]+$")
# "(2015)" wins over a bare 2015 when both start at the same position
_YEAR_RE = re.compile(r"\(([0-9]{4})\)|(?<![0-9A-Za-z])([0-9]{4})(?![0-9A-Za-z])")
_EPISODE_RE = re.compile(r"S([0-9]{1,2})E([0-9]{1,2})(?![0-9])", re.IGNORECASE)
_QUALITY_RE = re.compile(
    r"(?<![0-9A-Za-z])(" + "|".join(QUALITY_TAGS) + r")(?![0-9A-Za-z])",
    re.IGNORECASE,
)
_GENRE_PATTERNS = (
    re.compile(rf"\[({_GENRE_ALTERNATION})\]", re.IGNORECASE),
    re.compile(rf"\.({_GENRE_ALTERNATION})\.", re.IGNORECASE),
)
_SEPARATORS_RE = re.compile(r"[-_]")
_WHITESPACE_RE = re.compile(r"\s+")


def strip_extension(filename: str) -> str:
    """Drop a single trailing ``.ext``."""
    return _EXTENSION_RE.sub("", filename)


def _remove_spans(text: str, spans: list[tuple[int, int]]) -> str:
    """Blank out matched tokens, eating one neighbouring dot on each side."""
    widened = []
    for start, end in spans:
        if start > 0 and text[start - 1] == ".":
            start -= 1
        if end < len(text) and text[end] == ".":
            end += 1
        widened.append((start, end))

    merged: list[tuple[int, int]] = []
    for start, end in sorted(widened):
        if merged and start <= merged[-1][1]:
            merged[-1] = (merged[-1][0], max(merged[-1][1], end))
        else:
            merged.append((start, end))

    pieces = []
    cursor = 0
    for start, end in merged:
        pieces.append(text[cursor:start])
        pieces.append(" ")
        cursor = end
    pieces.append(text[cursor:])
    return "".join(pieces)


def _clean_title(text: str) -> str:
    text = _SEPARATORS_RE.sub(" ", text)
    return _WHITESPACE_RE.sub(" ", text).strip()


def classify(filename: str) -> ParsedName:
    """Parse *filename* into a :class:`ParsedName`."""
    name = strip_extension(filename)
    spans: list[tuple[int, int]] = []

    year = None
    match = _YEAR_RE.search(name)
    if match:
        year = match.group(1) or match.group(2)
        spans.append(match.span())

    # Season and episode are kept only as a pair
    season = episode = None
    match = _EPISODE_RE.search(name)
    if match:
        s, e = int(match.group(1)), int(match.group(2))
        if s > 0 and e > 0:
            season, episode = s, e
            spans.append(match.span())

    quality = None
    match = _QUALITY_RE.search(name)
    if match:
        quality = match.group(1)
        spans.append(match.span())

    genre = None
    for pattern in _GENRE_PATTERNS:
        match = pattern.search(name)
        if match:
            genre = _CANONICAL_GENRES[match.group(1).lower()]
            spans.append(match.span())
            break

    return ParsedName(
        title=_clean_title(_remove_spans(name, spans)),
        year=year,
        season=season,
        episode=episode,
        quality=quality,
        genre=genre,
    )
