"""
Agent configuration.

Configuration can be provided directly, via environment variables,
or from the ``migration_agent`` section of a YAML settings file.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, fields
from pathlib import Path
from typing import Any

import yaml

from .exceptions import ConfigurationError
from .logging_utils import LOG_FORMATS

DEFAULT_POST_TYPES: tuple[str, ...] = ("post", "page")
STATE_BACKENDS = ("memory", "json", "sqlite")


def split_csv(value: str | None) -> list[str]:
    """Split a comma-separated string, dropping blank segments."""
    if not value:
        return []
    return [part.strip() for part in value.split(",") if part.strip()]


@dataclass
class AgentConfig:
    """Configuration for the migration agent.

    Environment Variables:
        MIGRATION_AGENT_OPTION_PREFIX: Prefix for persisted keys (default: ctb_)
        MIGRATION_AGENT_POST_TYPES: Comma-separated default types (default: post,page)
        MIGRATION_AGENT_ADMIN_URL: Base URL of the admin area
        MIGRATION_AGENT_CLIENT_PARAM: Query parameter marking the active item
        MIGRATION_AGENT_CATALOG_TAXONOMY: Taxonomy used by the catalog filter
        MIGRATION_AGENT_CATALOG_TERM: Term slug used by the catalog filter
        MIGRATION_AGENT_STATE_BACKEND: memory, json or sqlite (default: memory)
        MIGRATION_AGENT_STATE_PATH: File path for json/sqlite backends
        MIGRATION_AGENT_LOG_LEVEL: Level for the package logger (default: unset)
        MIGRATION_AGENT_LOG_FORMAT: json or text (default: json)

    Attributes:
        option_prefix: Prefix for the running/items/cursor keys
        default_post_types: Types selected when no post_type option is given
        admin_url: Base admin URL that edit links are built against
        client_param: Name of the active client query parameter
        catalog_taxonomy: Taxonomy restricting selection when catalog is set
        catalog_term: Slug within catalog_taxonomy marking classic content
        state_backend: Which StateStore implementation to create
        state_path: Location of the json or sqlite state file
        log_level: When set, configure_logging() installs a handler at this level
        log_format: Output format of that handler
    """

    option_prefix: str = "ctb_"
    default_post_types: tuple[str, ...] = DEFAULT_POST_TYPES
    admin_url: str = "http://localhost/wp-admin/"
    client_param: str = "ctb_client"
    catalog_taxonomy: str = "block_catalog"
    catalog_term: str = "core-classic"
    state_backend: str = "memory"
    state_path: str | None = None
    log_level: str | None = None
    log_format: str = "json"

    def __post_init__(self) -> None:
        self.default_post_types = tuple(self.default_post_types) or DEFAULT_POST_TYPES
        if self.state_backend not in STATE_BACKENDS:
            raise ConfigurationError(
                "state_backend",
                f"must be one of {', '.join(STATE_BACKENDS)}",
                self.state_backend,
            )
        if self.state_backend != "memory" and not self.state_path:
            raise ConfigurationError(
                "state_path", f"required for the {self.state_backend} backend"
            )
        if self.log_level:
            self.log_level = str(self.log_level).upper()
            if not isinstance(logging.getLevelName(self.log_level), int):
                raise ConfigurationError("log_level", "unknown level", self.log_level)
        if self.log_format not in LOG_FORMATS:
            raise ConfigurationError(
                "log_format", f"must be one of {', '.join(LOG_FORMATS)}", self.log_format
            )

    @property
    def running_key(self) -> str:
        return f"{self.option_prefix}running"

    @property
    def items_key(self) -> str:
        return f"{self.option_prefix}posts_to_update"

    @property
    def cursor_key(self) -> str:
        return f"{self.option_prefix}cursor"

    @classmethod
    def from_env(cls) -> AgentConfig:
        """Create configuration from environment variables."""
        post_types = split_csv(os.environ.get("MIGRATION_AGENT_POST_TYPES"))

        return cls(
            option_prefix=os.environ.get("MIGRATION_AGENT_OPTION_PREFIX", "ctb_"),
            default_post_types=tuple(post_types) or DEFAULT_POST_TYPES,
            admin_url=os.environ.get("MIGRATION_AGENT_ADMIN_URL", "http://localhost/wp-admin/"),
            client_param=os.environ.get("MIGRATION_AGENT_CLIENT_PARAM", "ctb_client"),
            catalog_taxonomy=os.environ.get("MIGRATION_AGENT_CATALOG_TAXONOMY", "block_catalog"),
            catalog_term=os.environ.get("MIGRATION_AGENT_CATALOG_TERM", "core-classic"),
            state_backend=os.environ.get("MIGRATION_AGENT_STATE_BACKEND", "memory").lower(),
            state_path=os.environ.get("MIGRATION_AGENT_STATE_PATH"),
            log_level=os.environ.get("MIGRATION_AGENT_LOG_LEVEL") or None,
            log_format=os.environ.get("MIGRATION_AGENT_LOG_FORMAT", "json").lower(),
        )

    @classmethod
    def from_yaml(cls, path: Path) -> AgentConfig:
        """Create configuration from a YAML settings file.

        Reads the ``migration_agent`` section:

        ```yaml
        migration_agent:
          option_prefix: "ctb_"
          default_post_types: ["post", "page"]
          admin_url: "https://example.com/wp-admin/"
          state_backend: sqlite
          state_path: "~/.migration-agent/state.db"
          log_level: info
        ```

        A missing file or section yields the defaults.
        """
        if not path.exists():
            return cls()

        try:
            content = yaml.safe_load(path.read_text()) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError("path", f"invalid YAML: {e}", str(path)) from e

        if not isinstance(content, dict):
            raise ConfigurationError("path", "settings file must contain a mapping", str(path))

        section: dict[str, Any] = content.get("migration_agent") or {}
        known = {f.name for f in fields(cls)}
        unknown = set(section) - known
        if unknown:
            raise ConfigurationError("migration_agent", "unknown keys", ", ".join(sorted(unknown)))

        post_types = section.get("default_post_types")
        if isinstance(post_types, str):
            section["default_post_types"] = tuple(split_csv(post_types))
        elif post_types is not None:
            section["default_post_types"] = tuple(str(t) for t in post_types if t)

        if section.get("state_path"):
            section["state_path"] = str(Path(section["state_path"]).expanduser())

        return cls(**section)
