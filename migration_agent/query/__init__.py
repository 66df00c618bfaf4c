"""
Item selection.

Builds selection queries from migration options and executes them
against a pluggable engine (in-memory or SQLite).
"""

from .builder import apply_allow_list, build_item_query, resolve_post_types
from .engine import ItemQueryEngine, MemoryItemQueryEngine
from .sqlite import SQLiteItemQueryEngine
from .types import ContentItem, ItemQuery, QueryResult, TaxQuery

__all__ = [
    "ContentItem",
    "ItemQuery",
    "ItemQueryEngine",
    "MemoryItemQueryEngine",
    "QueryResult",
    "SQLiteItemQueryEngine",
    "TaxQuery",
    "apply_allow_list",
    "build_item_query",
    "resolve_post_types",
]
