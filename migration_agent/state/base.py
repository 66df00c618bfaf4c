"""
Abstract key-value state store interface.

The agent persists three independent values (running flag, item list,
cursor) through this contract. There are no transactions; each key is
written on its own.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class StateStore(ABC):
    """Abstract interface for persistent key-value state.

    All state stores (memory, json file, sqlite) must implement this
    interface. Values must be JSON-serializable.
    """

    @abstractmethod
    async def get(self, key: str, default: Any = None) -> Any:
        """Read a value.

        Args:
            key: The option key
            default: Returned when the key is absent

        Returns:
            The stored value, or default

        Raises:
            StateStoreError: If the read fails
        """
        ...

    @abstractmethod
    async def set(self, key: str, value: Any) -> None:
        """Write a value, replacing any previous one.

        Args:
            key: The option key
            value: JSON-serializable value

        Raises:
            StateStoreError: If the write fails
        """
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a value. Absent keys are ignored."""
        ...

    @abstractmethod
    async def close(self) -> None:
        """Close the store and release resources."""
        ...

    async def __aenter__(self) -> StateStore:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
