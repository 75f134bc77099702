"""Subtitle matcher — pairs sidecar .vtt/.srt files with a video by name prefix."""

import re
from typing import Callable, Iterable

from models import RemoteEntry, SubtitleTrack
from services.classifier import strip_extension
from services.drive import stream_locator

SUBTITLE_EXTENSIONS = (".vtt", ".srt")
DEFAULT_LANGUAGE = "en"

_LANGUAGE_RE = re.compile(r"\.([a-z]{2})\.(?:vtt|srt)$", re.IGNORECASE)


def is_subtitle_file(filename: str) -> bool:
    return filename.lower().endswith(SUBTITLE_EXTENSIONS)


def subtitle_language(filename: str) -> str:
    """Two-letter language code from ``name.<lang>.srt``, ``en`` when absent."""
    match = _LANGUAGE_RE.search(filename)
    return match.group(1).lower() if match else DEFAULT_LANGUAGE


def match_subtitles(
    video: RemoteEntry,
    candidates: Iterable[RemoteEntry],
    locate: Callable[[str], str] = stream_locator,
) -> list[SubtitleTrack]:
    """
    Return the subtitle tracks belonging to *video*, in candidate order.

    A candidate qualifies when it has a subtitle extension and its name starts
    with the video's name minus extension (case-sensitive). Every English track
    is flagged default; duplicates per language are kept as-is.
    """
    base_name = strip_extension(video.name)
    tracks = []
    for candidate in candidates:
        if not is_subtitle_file(candidate.name):
            continue
        if not candidate.name.startswith(base_name):
            continue
        lang = subtitle_language(candidate.name)
        tracks.append(SubtitleTrack(
            src=locate(candidate.id),
            src_lang=lang,
            label=lang.upper(),
            default=lang == DEFAULT_LANGUAGE,
        ))
    return tracks
