"""
SQLite item query engine.

Selects items from an ``items`` table joined against ``item_terms``
for taxonomy restrictions. Ideal for local runs against an exported
content index, and for testing.
"""

from __future__ import annotations

import logging
from datetime import datetime
from pathlib import Path
from typing import Any

import aiosqlite

from ..exceptions import ItemQueryError
from .engine import ItemQueryEngine
from .types import ContentItem, ItemQuery, QueryResult

logger = logging.getLogger(__name__)

_SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS items (
    id INTEGER NOT NULL PRIMARY KEY,
    post_type TEXT NOT NULL,
    status TEXT NOT NULL,
    published TEXT NOT NULL,
    sticky INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS item_terms (
    item_id INTEGER NOT NULL REFERENCES items(id) ON DELETE CASCADE,
    taxonomy TEXT NOT NULL,
    slug TEXT NOT NULL,
    PRIMARY KEY (item_id, taxonomy, slug)
);

CREATE INDEX IF NOT EXISTS idx_items_type_status ON items(post_type, status);
CREATE INDEX IF NOT EXISTS idx_item_terms_lookup ON item_terms(taxonomy, slug);
"""


def _placeholders(count: int) -> str:
    return ", ".join("?" for _ in range(count))


class SQLiteItemQueryEngine(ItemQueryEngine):
    """Item query engine backed by SQLite."""

    def __init__(self, db_path: str | Path = ":memory:") -> None:
        """
        Initialize the engine.

        Args:
            db_path: Database file, or ":memory:" for a private in-memory database
        """
        self.db_path = db_path
        self.conn: aiosqlite.Connection | None = None
        self._initialized = False

    @classmethod
    async def create(cls, db_path: str | Path = ":memory:") -> SQLiteItemQueryEngine:
        """Create and initialize an SQLite query engine."""
        engine = cls(db_path)
        await engine.initialize()
        return engine

    async def initialize(self) -> None:
        """Open the connection and create the schema."""
        if self._initialized:
            return

        try:
            self.conn = await aiosqlite.connect(str(self.db_path))
            await self.conn.execute("PRAGMA foreign_keys = ON")
            await self.conn.executescript(_SCHEMA_SQL)
            await self.conn.commit()
        except aiosqlite.Error as e:
            raise ItemQueryError(f"could not open {self.db_path}", e) from e

        self._initialized = True
        logger.info(f"SQLite item engine initialized at {self.db_path}")

    def _require_conn(self) -> aiosqlite.Connection:
        if self.conn is None:
            raise ItemQueryError("engine is not initialized")
        return self.conn

    async def add_item(self, item: ContentItem) -> None:
        """Insert or replace an item and its terms."""
        conn = self._require_conn()
        try:
            await conn.execute(
                """
                INSERT OR REPLACE INTO items (id, post_type, status, published, sticky)
                VALUES (?, ?, ?, ?, ?)
                """,
                (
                    item.id,
                    item.post_type,
                    item.status,
                    item.published.isoformat(),
                    int(item.sticky),
                ),
            )
            await conn.execute("DELETE FROM item_terms WHERE item_id = ?", (item.id,))
            await conn.executemany(
                "INSERT INTO item_terms (item_id, taxonomy, slug) VALUES (?, ?, ?)",
                [
                    (item.id, taxonomy, slug)
                    for taxonomy, slugs in item.terms.items()
                    for slug in slugs
                ],
            )
            await conn.commit()
        except aiosqlite.Error as e:
            raise ItemQueryError(f"could not store item {item.id}", e) from e

    async def add_items(self, items: list[ContentItem]) -> None:
        """Insert or replace several items."""
        for item in items:
            await self.add_item(item)

    async def get_item(self, item_id: int) -> ContentItem | None:
        """Load a single item with its terms."""
        conn = self._require_conn()
        try:
            async with conn.execute(
                "SELECT id, post_type, status, published, sticky FROM items WHERE id = ?",
                (item_id,),
            ) as cursor:
                row = await cursor.fetchone()
            if row is None:
                return None

            terms: dict[str, list[str]] = {}
            async with conn.execute(
                "SELECT taxonomy, slug FROM item_terms WHERE item_id = ? ORDER BY taxonomy, slug",
                (item_id,),
            ) as cursor:
                async for taxonomy, slug in cursor:
                    terms.setdefault(taxonomy, []).append(slug)
        except aiosqlite.Error as e:
            raise ItemQueryError(f"could not load item {item_id}", e) from e

        return ContentItem(
            id=row[0],
            post_type=row[1],
            status=row[2],
            published=datetime.fromisoformat(row[3]),
            sticky=bool(row[4]),
            terms=terms,
        )

    def _build_where(self, query: ItemQuery) -> tuple[str, list[Any]]:
        clauses = [f"post_type IN ({_placeholders(len(query.post_types))})", "status = ?"]
        params: list[Any] = [*query.post_types, query.post_status]

        if query.post_in is not None:
            if not query.post_in:
                clauses.append("0")
            else:
                clauses.append(f"id IN ({_placeholders(len(query.post_in))})")
                params.extend(query.post_in)

        for tax in query.tax_query:
            if tax.field != "slug":
                raise ItemQueryError(f"unsupported tax_query field: {tax.field}")
            if not tax.terms:
                clauses.append("0")
                continue
            clauses.append(
                "EXISTS (SELECT 1 FROM item_terms t WHERE t.item_id = items.id "
                f"AND t.taxonomy = ? AND t.slug IN ({_placeholders(len(tax.terms))}))"
            )
            params.append(tax.taxonomy)
            params.extend(tax.terms)

        return " AND ".join(clauses), params

    async def execute(self, query: ItemQuery) -> QueryResult:
        if query.fields != "ids":
            raise ItemQueryError(f"unsupported fields: {query.fields}")
        if not query.post_types:
            return QueryResult()

        conn = self._require_conn()
        where, params = self._build_where(query)
        order = "published DESC, id DESC"
        if not query.ignore_sticky_posts:
            order = "sticky DESC, " + order

        sql = f"SELECT id FROM items WHERE {where} ORDER BY {order}"
        page_params = list(params)
        if query.per_page > 0:
            sql += " LIMIT ? OFFSET ?"
            page_params.extend([query.per_page, query.offset])

        try:
            async with conn.execute(sql, page_params) as cursor:
                ids = [row[0] for row in await cursor.fetchall()]
            async with conn.execute(f"SELECT COUNT(*) FROM items WHERE {where}", params) as cursor:
                row = await cursor.fetchone()
        except aiosqlite.Error as e:
            raise ItemQueryError("select failed", e) from e

        found = row[0] if row else 0
        logger.debug(f"Item query matched {found} items, returning {len(ids)}")
        return QueryResult(ids=ids, found=found)

    async def close(self) -> None:
        if self.conn is not None:
            await self.conn.close()
            self.conn = None
        self._initialized = False
