"""
SQLite state store.

Stores options in a single ``options`` table, one JSON-encoded value per
row, the same shape a CMS options table has.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import aiosqlite

from ..exceptions import StateStoreError
from .base import StateStore

logger = logging.getLogger(__name__)

_CREATE_OPTIONS_SQL = """
CREATE TABLE IF NOT EXISTS options (
    name TEXT NOT NULL PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT DEFAULT (datetime('now'))
)
"""


class SQLiteStateStore(StateStore):
    """State store backed by an SQLite database."""

    def __init__(self, db_path: str | Path = ":memory:") -> None:
        """
        Initialize SQLite state store.

        Args:
            db_path: Database file, or ":memory:" for a private in-memory database
        """
        self.db_path = db_path
        self.conn: aiosqlite.Connection | None = None
        self._initialized = False

    @classmethod
    async def create(cls, db_path: str | Path = ":memory:") -> SQLiteStateStore:
        """Create and initialize an SQLite state store."""
        store = cls(db_path)
        await store.initialize()
        return store

    async def initialize(self) -> None:
        """Open the connection and create the schema."""
        if self._initialized:
            return

        try:
            if str(self.db_path) != ":memory:":
                Path(self.db_path).expanduser().parent.mkdir(parents=True, exist_ok=True)
            self.conn = await aiosqlite.connect(str(self.db_path))
            await self.conn.execute(_CREATE_OPTIONS_SQL)
            await self.conn.commit()
        except (aiosqlite.Error, OSError) as e:
            raise StateStoreError("initialize", path=str(self.db_path), cause=e) from e

        self._initialized = True
        logger.info(f"SQLite state store initialized at {self.db_path}")

    def _require_conn(self) -> aiosqlite.Connection:
        if self.conn is None:
            raise StateStoreError(
                "connect", path=str(self.db_path), cause=RuntimeError("store is not initialized")
            )
        return self.conn

    async def get(self, key: str, default: Any = None) -> Any:
        conn = self._require_conn()
        try:
            async with conn.execute("SELECT value FROM options WHERE name = ?", (key,)) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise StateStoreError("get", key=key, cause=e) from e

        if row is None:
            return default
        try:
            return json.loads(row[0])
        except json.JSONDecodeError as e:
            raise StateStoreError("decode", key=key, cause=e) from e

    async def set(self, key: str, value: Any) -> None:
        conn = self._require_conn()
        try:
            encoded = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise StateStoreError("encode", key=key, cause=e) from e

        try:
            await conn.execute(
                """
                INSERT INTO options (name, value) VALUES (?, ?)
                ON CONFLICT(name) DO UPDATE SET
                    value = excluded.value,
                    updated_at = datetime('now')
                """,
                (key, encoded),
            )
            await conn.commit()
        except aiosqlite.Error as e:
            raise StateStoreError("set", key=key, cause=e) from e

    async def delete(self, key: str) -> None:
        conn = self._require_conn()
        try:
            await conn.execute("DELETE FROM options WHERE name = ?", (key,))
            await conn.commit()
        except aiosqlite.Error as e:
            raise StateStoreError("delete", key=key, cause=e) from e

    async def close(self) -> None:
        if self.conn is not None:
            await self.conn.close()
            self.conn = None
        self._initialized = False
