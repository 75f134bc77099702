"""SQLite-backed key-value storage for device-local watch state."""

from datetime import datetime, timezone
from typing import Optional

import aiosqlite

from config import settings
from services.progress import ProgressStore

_DB_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv (
    key TEXT PRIMARY KEY,           -- 'watchlist', 'history', 'resume', 'preferences'
    value TEXT NOT NULL,            -- JSON document
    updated_at TEXT NOT NULL
);
"""


async def init_db(db_path: Optional[str] = None):
    async with aiosqlite.connect(db_path or settings.db_path) as db:
        await db.executescript(_DB_SCHEMA)
        await db.commit()


class SqliteStorage:
    def __init__(self, db_path: str):
        self.db_path = db_path

    async def get(self, key: str) -> Optional[str]:
        async with aiosqlite.connect(self.db_path) as db:
            cursor = await db.execute("SELECT value FROM kv WHERE key = ?", (key,))
            row = await cursor.fetchone()
        return row[0] if row else None

    async def set(self, key: str, value: str) -> None:
        now = datetime.now(timezone.utc).isoformat()
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute(
                """INSERT INTO kv (key, value, updated_at) VALUES (?, ?, ?)
                   ON CONFLICT(key) DO UPDATE SET
                       value = excluded.value, updated_at = excluded.updated_at""",
                (key, value, now),
            )
            await db.commit()

    async def remove(self, key: str) -> None:
        async with aiosqlite.connect(self.db_path) as db:
            await db.execute("DELETE FROM kv WHERE key = ?", (key,))
            await db.commit()


def get_store() -> ProgressStore:
    """FastAPI dependency: the progress store bound to the configured database."""
    return ProgressStore(SqliteStorage(settings.db_path))
