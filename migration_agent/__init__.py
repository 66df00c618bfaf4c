"""
Migration Agent

Batch migration progress tracker for content editors.

Provides:
- A persisted cursor over the items selected for migration
- Pluggable state stores (memory, JSON file, SQLite)
- Pluggable item query engines (memory, SQLite)
- Editor links and the payload injected into the editor script

Usage:

    >>> from migration_agent import MigrationAgent, MemoryStateStore, SQLiteItemQueryEngine
    >>> engine = await SQLiteItemQueryEngine.create("content.db")
    >>> async with MigrationAgent(MemoryStateStore(), engine) as agent:
    ...     link = await agent.start({"post_type": "post,page", "catalog": True})
    ...     status = await agent.get_status()
    ...     link = await agent.next()
"""

from .agent import MigrationAgent, compute_progress
from .config import AgentConfig
from .diagnostics import ProgressReporter, StreamProgressReporter

# Exceptions
from .exceptions import (
    ConfigurationError,
    ItemQueryError,
    MigrationAgentError,
    StateStoreError,
)
from .hooks import QueryParamsFilter, SaveDelayPolicy, fixed_save_delay, no_save_delay
from .links import ClientLinkBuilder
from .logging_utils import configure_logging, configure_structured_logging
from .query import (
    ContentItem,
    ItemQuery,
    ItemQueryEngine,
    MemoryItemQueryEngine,
    QueryResult,
    SQLiteItemQueryEngine,
    TaxQuery,
)
from .state import (
    JsonFileStateStore,
    MemoryStateStore,
    SQLiteStateStore,
    StateStore,
    create_state_store,
)
from .types import AgentPayload, MigrationOptions, MigrationStatus

__version__ = "0.1.0"

__all__ = [
    # Agent
    "MigrationAgent",
    "compute_progress",
    "AgentConfig",
    # Types
    "AgentPayload",
    "MigrationOptions",
    "MigrationStatus",
    # State stores
    "StateStore",
    "MemoryStateStore",
    "JsonFileStateStore",
    "SQLiteStateStore",
    "create_state_store",
    # Item selection
    "ContentItem",
    "ItemQuery",
    "ItemQueryEngine",
    "MemoryItemQueryEngine",
    "QueryResult",
    "SQLiteItemQueryEngine",
    "TaxQuery",
    # Hooks and links
    "ClientLinkBuilder",
    "QueryParamsFilter",
    "SaveDelayPolicy",
    "fixed_save_delay",
    "no_save_delay",
    # Diagnostics and logging
    "ProgressReporter",
    "StreamProgressReporter",
    "configure_structured_logging",
    "configure_logging",
    # Exceptions
    "MigrationAgentError",
    "StateStoreError",
    "ItemQueryError",
    "ConfigurationError",
]
