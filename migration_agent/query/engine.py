"""
Item query engine interface and in-memory implementation.

An engine answers an ItemQuery with the matching ids in processing
order plus the total match count used for pagination reports.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Iterable
from typing import Any

from .types import ContentItem, ItemQuery, QueryResult


class ItemQueryEngine(ABC):
    """Abstract interface for selecting items to migrate.

    Results are ordered newest first (published descending, then id
    descending), matching the host platform's default listing order.
    """

    @abstractmethod
    async def execute(self, query: ItemQuery) -> QueryResult:
        """Run a selection query.

        Args:
            query: The selection query

        Returns:
            Ids for the requested page and the total match count

        Raises:
            ItemQueryError: If the query cannot be executed
        """
        ...

    async def close(self) -> None:
        """Release engine resources."""
        return None

    async def __aenter__(self) -> ItemQueryEngine:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


class MemoryItemQueryEngine(ItemQueryEngine):
    """Query engine over an in-process list of ContentItem records."""

    def __init__(self, items: Iterable[ContentItem] = ()) -> None:
        self._items: dict[int, ContentItem] = {item.id: item for item in items}

    def add_item(self, item: ContentItem) -> None:
        """Add or replace an item."""
        self._items[item.id] = item

    def _matches(self, item: ContentItem, query: ItemQuery, allowed: set[int] | None) -> bool:
        if item.post_type not in query.post_types:
            return False
        if item.status != query.post_status:
            return False
        if allowed is not None and item.id not in allowed:
            return False
        return all(item.has_term(tax.taxonomy, tax.terms) for tax in query.tax_query)

    async def execute(self, query: ItemQuery) -> QueryResult:
        allowed = set(query.post_in) if query.post_in is not None else None
        matches = [item for item in self._items.values() if self._matches(item, query, allowed)]

        matches.sort(key=lambda item: (item.published, item.id), reverse=True)
        if not query.ignore_sticky_posts:
            # Stable sort keeps date order within each group
            matches.sort(key=lambda item: not item.sticky)

        found = len(matches)
        if query.per_page > 0:
            matches = matches[query.offset : query.offset + query.per_page]

        return QueryResult(ids=[item.id for item in matches], found=found)
