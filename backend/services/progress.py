"""Device-local watch state — watchlist, history, resume positions, preferences.

Every operation degrades to a logged no-op when the underlying storage fails,
so playback never breaks because persistence is unavailable.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Protocol

from pydantic import TypeAdapter

from models import (
    HistoryItem, HistoryRequest, Preferences, WatchlistItem, WatchlistRequest,
)

logger = logging.getLogger(__name__)

WATCHLIST_KEY = "watchlist"
HISTORY_KEY = "history"
RESUME_KEY = "resume"
PREFERENCES_KEY = "preferences"

HISTORY_LIMIT = 50

_watchlist_adapter = TypeAdapter(list[WatchlistItem])
_history_adapter = TypeAdapter(list[HistoryItem])
_resume_adapter = TypeAdapter(dict[str, float])
_preferences_adapter = TypeAdapter(Preferences)


class Storage(Protocol):
    """Async key-value storage holding JSON strings."""

    async def get(self, key: str) -> Optional[str]: ...

    async def set(self, key: str, value: str) -> None: ...

    async def remove(self, key: str) -> None: ...


class InMemoryStorage:
    def __init__(self):
        self.data: dict[str, str] = {}

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def set(self, key: str, value: str) -> None:
        self.data[key] = value

    async def remove(self, key: str) -> None:
        self.data.pop(key, None)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ProgressStore:
    def __init__(
        self,
        storage: Optional[Storage],
        now: Callable[[], datetime] = _utcnow,
    ):
        self._storage = storage
        self._now = now

    # ── raw access ──────────────────────────────────────────────

    async def _load(self, key: str, adapter: TypeAdapter, default: Callable[[], Any]) -> Any:
        if self._storage is None:
            return default()
        try:
            raw = await self._storage.get(key)
            return adapter.validate_json(raw) if raw is not None else default()
        except Exception as e:
            logger.error("Failed to load %s from storage: %s", key, e)
            return default()

    async def _save(self, key: str, adapter: TypeAdapter, value: Any) -> None:
        if self._storage is None:
            return
        try:
            await self._storage.set(key, adapter.dump_json(value).decode())
        except Exception as e:
            logger.error("Failed to save %s to storage: %s", key, e)

    # ── watchlist ───────────────────────────────────────────────

    async def get_watchlist(self) -> list[WatchlistItem]:
        return await self._load(WATCHLIST_KEY, _watchlist_adapter, list)

    async def add_to_watchlist(self, item: WatchlistRequest) -> None:
        """Add *item* unless its id is already saved; the first add wins."""
        watchlist = await self.get_watchlist()
        if any(w.id == item.id for w in watchlist):
            return
        watchlist.append(WatchlistItem(**item.model_dump(), added_at=self._now()))
        await self._save(WATCHLIST_KEY, _watchlist_adapter, watchlist)

    async def remove_from_watchlist(self, item_id: str) -> None:
        watchlist = await self.get_watchlist()
        filtered = [w for w in watchlist if w.id != item_id]
        await self._save(WATCHLIST_KEY, _watchlist_adapter, filtered)

    async def is_in_watchlist(self, item_id: str) -> bool:
        return any(w.id == item_id for w in await self.get_watchlist())

    # ── history ─────────────────────────────────────────────────

    async def get_history(self) -> list[HistoryItem]:
        return await self._load(HISTORY_KEY, _history_adapter, list)

    async def add_to_history(self, item: HistoryRequest) -> None:
        """
        Record a watch, most recent first.

        An existing entry with the same id is replaced and moved to the front,
        so the list holds the HISTORY_LIMIT most recently touched items.
        """
        history = [h for h in await self.get_history() if h.id != item.id]
        history.insert(0, HistoryItem(**item.model_dump(), watched_at=self._now()))
        await self._save(HISTORY_KEY, _history_adapter, history[:HISTORY_LIMIT])

    # ── resume positions ────────────────────────────────────────

    async def save_resume_position(self, video_id: str, position: float) -> None:
        resume = await self._load(RESUME_KEY, _resume_adapter, dict)
        resume[video_id] = position
        await self._save(RESUME_KEY, _resume_adapter, resume)

    async def get_resume_position(self, video_id: str) -> float:
        resume = await self._load(RESUME_KEY, _resume_adapter, dict)
        return resume.get(video_id, 0.0)

    async def clear_resume_position(self, video_id: str) -> None:
        resume = await self._load(RESUME_KEY, _resume_adapter, dict)
        if resume.pop(video_id, None) is not None:
            await self._save(RESUME_KEY, _resume_adapter, resume)

    # ── preferences ─────────────────────────────────────────────

    async def get_preferences(self) -> Preferences:
        return await self._load(PREFERENCES_KEY, _preferences_adapter, Preferences)

    async def save_preferences(self, prefs: Preferences) -> None:
        await self._save(PREFERENCES_KEY, _preferences_adapter, prefs)
