"""Playback controller — drives one media session and records watch progress.

State machine::

    IDLE -> LOADING -> READY -> PLAYING <-> PAUSED -> ENDED
                                   \\        /
                                    SEEKING

SEEKING returns to whichever of PLAYING/PAUSED it was entered from once the
media backend reports ``on_seeked``. From ENDED, play restarts at 0 and a
seek lands in PAUSED. Loading a new source from any state goes
back through IDLE. A load failure leaves the session in FAILED for good.
"""

import bisect
import logging
from enum import Enum
from typing import Callable, Optional, Protocol

from config import settings
from errors import PlaybackError
from models import Chapter, HistoryRequest, VideoDetails
from services.progress import ProgressStore

logger = logging.getLogger(__name__)

SEEK_STEP = 10.0
VOLUME_STEP = 0.1
SWIPE_THRESHOLD = 50.0  # pixels
CHAPTER_INTERVAL = 600.0
MIN_PLAYBACK_RATE = 0.25
MAX_PLAYBACK_RATE = 2.0


class PlaybackState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    PLAYING = "playing"
    PAUSED = "paused"
    SEEKING = "seeking"
    ENDED = "ended"
    FAILED = "failed"


class MediaSession(Protocol):
    """What the controller needs from a media element or player backend."""

    def load(self, src: str) -> None: ...

    async def play(self) -> None:
        """Start playback; raises PlaybackError when the backend refuses."""

    def pause(self) -> None: ...

    def seek(self, seconds: float) -> None: ...

    def get_position(self) -> float: ...

    def get_duration(self) -> float: ...

    def set_volume(self, volume: float) -> None: ...

    def set_muted(self, muted: bool) -> None: ...

    def set_playback_rate(self, rate: float) -> None: ...

    def set_subtitle_track(self, lang: Optional[str]) -> None: ...

    async def set_fullscreen(self, enabled: bool) -> None: ...

    async def set_picture_in_picture(self, enabled: bool) -> None: ...


def build_chapters(duration: float, interval: float = CHAPTER_INTERVAL) -> list[Chapter]:
    """One chapter every *interval* seconds from 0 up to *duration*."""
    chapters = []
    start = 0.0
    while start < duration:
        chapters.append(Chapter(time=start, title=f"Chapter {len(chapters) + 1}"))
        start += interval
    return chapters


def current_chapter(chapters: list[Chapter], position: float) -> Optional[Chapter]:
    """The chapter with the greatest start time not after *position*."""
    ordered = sorted(chapters, key=lambda c: c.time)
    index = bisect.bisect_right([c.time for c in ordered], position)
    return ordered[index - 1] if index else None


def _clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


class PlaybackController:
    def __init__(
        self,
        media: MediaSession,
        store: ProgressStore,
        *,
        checkpoint_interval: Optional[float] = None,
        on_progress: Optional[Callable[[float], None]] = None,
    ):
        self._media = media
        self._store = store
        self._checkpoint_interval = (
            settings.resume_checkpoint_seconds if checkpoint_interval is None else checkpoint_interval
        )
        self._on_progress = on_progress

        self.state = PlaybackState.IDLE
        self.details: Optional[VideoDetails] = None
        self.position = 0.0
        self.duration = 0.0
        self.volume = 0.8
        self.muted = False
        self.fullscreen = False
        self.picture_in_picture = False
        self.playback_rate = 1.0
        self.subtitle_lang: Optional[str] = None
        self.error: Optional[str] = None

        self._autoplay = False
        self._seek_return: Optional[PlaybackState] = None
        self._last_checkpoint = 0.0
        self._touch_start: Optional[tuple[float, float]] = None

    # ── lifecycle ───────────────────────────────────────────────

    async def load(self, details: VideoDetails) -> None:
        """Assign a new source, discarding whatever was playing before."""
        self.state = PlaybackState.IDLE
        self.details = details
        self.position = 0.0
        self.duration = details.video.duration or 0.0
        self.error = None
        self._seek_return = None
        self._last_checkpoint = 0.0

        prefs = await self._store.get_preferences()
        self._autoplay = prefs.autoplay
        self.volume = prefs.volume
        self._media.set_volume(self.volume)

        self.subtitle_lang = None
        if prefs.subtitles_enabled:
            default = next((t for t in details.video.subtitles if t.default), None)
            if default is not None:
                self.subtitle_lang = default.src_lang
        self._media.set_subtitle_track(self.subtitle_lang)

        self.state = PlaybackState.LOADING
        self._media.load(details.stream_url)

    async def on_loaded_metadata(self) -> None:
        """Metadata is available: apply the resume position, then maybe autoplay."""
        if self.state != PlaybackState.LOADING:
            return
        self.duration = self._media.get_duration() or self.duration
        self.state = PlaybackState.READY

        resume = await self._store.get_resume_position(self.details.video.id)
        if resume > 0 and (not self.duration or resume < self.duration):
            self._media.seek(resume)
            self.position = resume
            self._last_checkpoint = resume

        if self._autoplay:
            await self.play()

    def on_load_error(self, message: str) -> None:
        logger.error("Failed to load %s: %s", self.details.video.id if self.details else "?", message)
        self.state = PlaybackState.FAILED
        self.error = message

    async def on_time_update(self, position: float) -> None:
        """Progress callback from the media backend."""
        if self.state not in (
            PlaybackState.READY, PlaybackState.PLAYING,
            PlaybackState.PAUSED, PlaybackState.SEEKING,
        ):
            return
        self.position = position
        await self._record_history(position)

        if abs(position - self._last_checkpoint) >= self._checkpoint_interval:
            await self._store.save_resume_position(self.details.video.id, position)
            self._last_checkpoint = position

        if self._on_progress:
            self._on_progress(position)

        if self.duration and position >= self.duration:
            await self.on_ended()

    async def on_ended(self) -> None:
        if self.state not in (
            PlaybackState.PLAYING, PlaybackState.PAUSED, PlaybackState.SEEKING,
        ):
            return
        self.state = PlaybackState.ENDED
        self.position = self.duration
        await self._record_history(self.duration)
        await self._store.clear_resume_position(self.details.video.id)

    async def _record_history(self, position: float) -> None:
        video = self.details.video
        await self._store.add_to_history(HistoryRequest(
            id=video.id,
            title=video.title,
            type="series" if video.kind == "episode" else "movie",
            thumbnail=video.thumbnail,
            position=position,
            duration=self.duration or None,
        ))

    # ── transport ───────────────────────────────────────────────

    async def play(self) -> bool:
        if self.state == PlaybackState.ENDED:
            self._media.seek(0.0)
            self.position = 0.0
            self._last_checkpoint = 0.0
        elif self.state not in (PlaybackState.READY, PlaybackState.PAUSED):
            return False
        try:
            await self._media.play()
        except PlaybackError as e:
            logger.info("Play attempt rejected (non-critical): %s", e)
            return False
        self.state = PlaybackState.PLAYING
        return True

    def pause(self) -> bool:
        if self.state != PlaybackState.PLAYING:
            return False
        self._media.pause()
        self.state = PlaybackState.PAUSED
        return True

    async def toggle_play(self) -> bool:
        if self.state == PlaybackState.PLAYING:
            return self.pause()
        return await self.play()

    def seek(self, target: float) -> bool:
        """Seek to *target* seconds, clamped to the content."""
        if self.state not in (
            PlaybackState.READY, PlaybackState.PLAYING,
            PlaybackState.PAUSED, PlaybackState.SEEKING, PlaybackState.ENDED,
        ):
            return False
        target = _clamp(target, 0.0, self.duration) if self.duration else max(0.0, target)

        previous = self.state
        if previous in (PlaybackState.PLAYING, PlaybackState.PAUSED, PlaybackState.ENDED):
            self._seek_return = PlaybackState.PAUSED if previous == PlaybackState.ENDED else previous
            self.state = PlaybackState.SEEKING
        try:
            self._media.seek(target)
        except PlaybackError as e:
            logger.info("Seek rejected: %s", e)
            if previous != PlaybackState.SEEKING:
                self.state = previous
            return False
        self.position = target
        return True

    def on_seeked(self) -> None:
        if self.state == PlaybackState.SEEKING:
            self.state = self._seek_return or PlaybackState.PAUSED
            self._seek_return = None

    def seek_by(self, delta: float) -> bool:
        return self.seek(self.position + delta)

    # ── intro / outro / chapters ────────────────────────────────

    @property
    def skip_intro_visible(self) -> bool:
        d = self.details
        return (
            d is not None and d.intro_start is not None and d.intro_end is not None
            and d.intro_start <= self.position <= d.intro_end
        )

    @property
    def skip_outro_visible(self) -> bool:
        d = self.details
        return d is not None and d.outro_start is not None and self.position >= d.outro_start

    def skip_intro(self) -> bool:
        return self.skip_intro_visible and self.seek(self.details.intro_end)

    def skip_outro(self) -> bool:
        return self.skip_outro_visible and self.seek(self.duration)

    @property
    def chapters(self) -> list[Chapter]:
        if self.details is not None and self.details.chapters:
            return self.details.chapters
        return build_chapters(self.duration)

    @property
    def current_chapter(self) -> Optional[Chapter]:
        return current_chapter(self.chapters, self.position)

    def jump_to_chapter(self, index: int) -> bool:
        chapters = self.chapters
        if not 0 <= index < len(chapters):
            return False
        return self.seek(chapters[index].time)

    # ── audio, display, subtitles ───────────────────────────────

    def set_volume(self, volume: float) -> None:
        """Volume slider: sets an absolute level and unmutes."""
        self.volume = _clamp(volume, 0.0, 1.0)
        self._media.set_volume(self.volume)
        if self.muted:
            self.toggle_mute()

    def adjust_volume(self, delta: float) -> None:
        self.volume = round(_clamp(self.volume + delta, 0.0, 1.0), 2)
        self._media.set_volume(self.volume)

    def toggle_mute(self) -> None:
        self.muted = not self.muted
        self._media.set_muted(self.muted)

    def set_playback_rate(self, rate: float) -> None:
        self.playback_rate = _clamp(rate, MIN_PLAYBACK_RATE, MAX_PLAYBACK_RATE)
        self._media.set_playback_rate(self.playback_rate)

    def select_subtitle(self, lang: Optional[str]) -> bool:
        """Switch to the first track in *lang*, or turn subtitles off with None."""
        if lang is not None:
            tracks = self.details.video.subtitles if self.details else []
            if not any(t.src_lang == lang for t in tracks):
                return False
        self.subtitle_lang = lang
        self._media.set_subtitle_track(lang)
        return True

    async def toggle_fullscreen(self) -> None:
        try:
            await self._media.set_fullscreen(not self.fullscreen)
        except PlaybackError as e:
            logger.info("Fullscreen request rejected: %s", e)
            return
        self.fullscreen = not self.fullscreen

    async def toggle_picture_in_picture(self) -> None:
        try:
            await self._media.set_picture_in_picture(not self.picture_in_picture)
        except PlaybackError as e:
            logger.error("PiP error: %s", e)
            return
        self.picture_in_picture = not self.picture_in_picture

    # ── input mapping ───────────────────────────────────────────

    async def handle_key(self, code: str) -> bool:
        """Apply a keyboard shortcut (DOM ``KeyboardEvent.code`` names)."""
        if self.details is None or self.state == PlaybackState.FAILED:
            return False

        if code == "Space":
            await self.toggle_play()
        elif code == "ArrowLeft":
            self.seek_by(-SEEK_STEP)
        elif code == "ArrowRight":
            self.seek_by(SEEK_STEP)
        elif code == "ArrowUp":
            self.adjust_volume(VOLUME_STEP)
        elif code == "ArrowDown":
            self.adjust_volume(-VOLUME_STEP)
        elif code == "KeyF":
            await self.toggle_fullscreen()
        elif code == "KeyM":
            self.toggle_mute()
        else:
            return False
        return True

    def touch_start(self, x: float, y: float) -> None:
        self._touch_start = (x, y)

    def touch_end(self, x: float, y: float) -> bool:
        """Finish a swipe: horizontal seeks, vertical (up = louder) changes volume."""
        if self._touch_start is None:
            return False
        start_x, start_y = self._touch_start
        self._touch_start = None
        dx, dy = x - start_x, y - start_y

        if abs(dx) > abs(dy):
            if abs(dx) <= SWIPE_THRESHOLD:
                return False
            return self.seek_by(SEEK_STEP if dx > 0 else -SEEK_STEP)

        if abs(dy) <= SWIPE_THRESHOLD:
            return False
        # Screen y grows downwards
        self.adjust_volume(-VOLUME_STEP if dy > 0 else VOLUME_STEP)
        return True
