"""
Migration agent types and data structures.

Defines the options accepted by a batch start, the status snapshot
returned to callers, and the payload handed to the editor script.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from .exceptions import ConfigurationError
from .utils import parse_flag

# Sentinel returned by start()/next() when there is no item to move to
NextLink = str | bool


def _coerce_int(name: str, value: Any, default: int) -> int:
    if value is None or value == "":
        return default
    if isinstance(value, bool):
        raise ConfigurationError(name, "must be an integer", str(value))
    try:
        return int(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(name, "must be an integer", str(value)) from e


def _coerce_page_size(value: Any) -> int:
    if isinstance(value, str) and value.strip().lower() == "all":
        return -1
    size = _coerce_int("per_page", value, -1)
    return size if size > 0 else -1


def _coerce_csv(value: Any) -> str | None:
    if value is None:
        return None
    if isinstance(value, (list, tuple, set)):
        return ",".join(str(v) for v in value)
    return str(value)


@dataclass
class MigrationOptions:
    """Selection options for a migration batch.

    Attributes:
        post_type: Comma-separated type filter; blank falls back to the defaults
        per_page: Page size for the selection query, -1 for all ("all" and
            non-positive values are read as -1)
        page: 1-based page number for the selection query
        catalog: Restrict selection to items tagged as classic content
        only: Comma-separated explicit id allow-list
    """

    post_type: str | None = None
    per_page: int = -1
    page: int = 1
    catalog: bool = False
    only: str | None = None

    @classmethod
    def from_mapping(cls, opts: Mapping[str, Any] | None) -> MigrationOptions:
        """Build options from a loose mapping (CLI args, request data).

        Unknown keys are ignored so a command layer can pass its full
        argument dict through.
        """
        opts = opts or {}
        return cls(
            post_type=_coerce_csv(opts.get("post_type")),
            per_page=_coerce_page_size(opts.get("per_page")),
            page=_coerce_int("page", opts.get("page"), 1),
            catalog=parse_flag(opts.get("catalog")),
            only=_coerce_csv(opts.get("only")),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "post_type": self.post_type,
            "per_page": self.per_page,
            "page": self.page,
            "catalog": self.catalog,
            "only": self.only,
        }


@dataclass
class MigrationStatus:
    """Snapshot of batch progress."""

    running: bool
    cursor: int
    total: int
    progress: int
    active: str = ""

    @property
    def complete(self) -> bool:
        """Whether the cursor sits on the last item."""
        return self.total > 0 and self.cursor + 1 == self.total

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "running": self.running,
            "cursor": self.cursor,
            "total": self.total,
            "progress": self.progress,
            "active": self.active,
        }


@dataclass
class AgentPayload:
    """Data injected into the editor script while a batch is running.

    Attributes:
        next: Link to the item after the current one, or False at the end
        save_delay: Delay the editor waits before saving the current item
    """

    next: NextLink
    save_delay: float | int = 0

    def to_script_context(self) -> dict[str, Any]:
        """Return the object exposed to the editor script."""
        return {"agent": {"next": self.next, "save_delay": self.save_delay}}
