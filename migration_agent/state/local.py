"""
Local file-based state store.

Keeps all options in a single JSON object file. Every write rewrites
the file atomically, so a crash leaves either the old or the new state.
"""

from __future__ import annotations

import copy
import logging
from pathlib import Path
from typing import Any

from .base import StateStore
from .file_ops import read_json, write_json_atomic

logger = logging.getLogger(__name__)


class JsonFileStateStore(StateStore):
    """State store backed by one JSON file.

    The file is re-read on every access so several processes pointing at
    the same path observe each other's writes (last write wins).
    """

    def __init__(self, path: str | Path) -> None:
        """Initialize the store.

        Args:
            path: Location of the JSON file; created on first write
        """
        self.path = Path(path).expanduser()

    async def _load(self) -> dict[str, Any]:
        return await read_json(self.path) or {}

    async def get(self, key: str, default: Any = None) -> Any:
        data = await self._load()
        if key not in data:
            return default
        return copy.deepcopy(data[key])

    async def set(self, key: str, value: Any) -> None:
        data = await self._load()
        data[key] = value
        await write_json_atomic(self.path, data)
        logger.debug(f"Wrote {key} to {self.path}")

    async def delete(self, key: str) -> None:
        data = await self._load()
        if key in data:
            del data[key]
            await write_json_atomic(self.path, data)

    async def close(self) -> None:
        pass
