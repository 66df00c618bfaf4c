"""In-process state store."""

from __future__ import annotations

import copy
from typing import Any

from .base import StateStore


class MemoryStateStore(StateStore):
    """Dict-backed state store.

    Values are deep-copied on write and read so callers never share
    mutable state with the store.
    """

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial) if initial else {}

    async def get(self, key: str, default: Any = None) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def close(self) -> None:
        pass

    def snapshot(self) -> dict[str, Any]:
        """Return a copy of everything stored."""
        return copy.deepcopy(self._data)
