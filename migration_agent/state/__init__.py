"""
Persistent key-value state stores.

Provides in-memory, JSON file and SQLite stores behind one
interface, selected by AgentConfig.state_backend.

Example:
    >>> from migration_agent.state import create_state_store
    >>> store = await create_state_store(AgentConfig(state_backend="sqlite", state_path="state.db"))
"""

from __future__ import annotations

from ..config import AgentConfig
from .base import StateStore
from .local import JsonFileStateStore
from .memory import MemoryStateStore
from .sqlite import SQLiteStateStore


async def create_state_store(config: AgentConfig) -> StateStore:
    """Create the state store named by the configuration."""
    if config.state_backend == "json":
        return JsonFileStateStore(config.state_path)
    if config.state_backend == "sqlite":
        return await SQLiteStateStore.create(config.state_path)
    return MemoryStateStore()


__all__ = [
    "StateStore",
    "MemoryStateStore",
    "JsonFileStateStore",
    "SQLiteStateStore",
    "create_state_store",
]
