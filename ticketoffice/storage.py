"""SQLite-backed key/value store for locally persisted client state."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Callable

import aiosqlite

log = logging.getLogger(__name__)

_SELECT = "SELECT value FROM local_storage WHERE key = ?"
_UPSERT = """
    INSERT INTO local_storage (key, value) VALUES (?, ?)
    ON CONFLICT(key) DO UPDATE SET
        value = excluded.value,
        updated_at = datetime('now')
"""


class LocalStorage:
    """``localStorage``-style string store kept in a single SQLite table.

    Each call opens its own connection, so one instance can be shared freely
    between the CLI, the BFF and tests.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self._ready = False

    async def init(self) -> None:
        """Create the database file and schema if missing."""
        if self._ready:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        async with aiosqlite.connect(self.path) as db:
            await db.execute("PRAGMA journal_mode=WAL")
            await db.execute("""
                CREATE TABLE IF NOT EXISTS local_storage (
                    key TEXT PRIMARY KEY,
                    value TEXT NOT NULL,
                    updated_at TEXT DEFAULT (datetime('now'))
                )
            """)
            await db.commit()
        self._ready = True

    async def get_item(self, key: str) -> str | None:
        await self.init()
        async with aiosqlite.connect(self.path) as db:
            cursor = await db.execute(_SELECT, (key,))
            row = await cursor.fetchone()
        return row[0] if row else None

    async def set_item(self, key: str, value: str) -> None:
        await self.init()
        async with aiosqlite.connect(self.path) as db:
            await db.execute(_UPSERT, (key, value))
            await db.commit()

    async def remove_item(self, key: str) -> None:
        await self.init()
        async with aiosqlite.connect(self.path) as db:
            await db.execute("DELETE FROM local_storage WHERE key = ?", (key,))
            await db.commit()

    async def keys(self) -> list[str]:
        await self.init()
        async with aiosqlite.connect(self.path) as db:
            cursor = await db.execute("SELECT key FROM local_storage ORDER BY key")
            rows = await cursor.fetchall()
        return [row[0] for row in rows]

    async def get_json(self, key: str, default: Any = None) -> Any:
        """Decode a JSON value; missing or corrupt entries yield *default*."""
        return _decode(key, await self.get_item(key), default)

    async def set_json(self, key: str, value: Any) -> None:
        await self.set_item(key, json.dumps(value, ensure_ascii=False))

    async def update_json(self, key: str, fn: Callable[[Any], Any], default: Any = None) -> Any:
        """Apply *fn* to the stored value and save the result in one transaction.

        ``BEGIN IMMEDIATE`` takes the write lock before reading, so concurrent
        updates of the same key are serialized instead of overwriting each other.
        """
        await self.init()
        async with aiosqlite.connect(self.path, isolation_level=None) as db:
            await db.execute("BEGIN IMMEDIATE")
            try:
                cursor = await db.execute(_SELECT, (key,))
                row = await cursor.fetchone()
                value = fn(_decode(key, row[0] if row else None, default))
                await db.execute(_UPSERT, (key, json.dumps(value, ensure_ascii=False)))
            except Exception:
                await db.rollback()
                raise
            await db.commit()
        return value


def _decode(key: str, raw: str | None, default: Any) -> Any:
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        log.warning("Discarding corrupt local value for %r", key)
        return default
