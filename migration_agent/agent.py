"""
Migration agent.

Walks a cursor through a persisted list of item ids so an editor UI can
re-process each item in turn. State lives in three independent keys of a
StateStore (running flag, item list, cursor); there is no transaction
spanning them.

States:
- Idle: running is false
- Active(cursor, total): running is true and 0 <= cursor < total

start() moves Idle to Active (or stays Idle on an empty selection),
next() advances or, past the last item, drops back to Idle, and stop()
resets everything to Idle.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from .config import AgentConfig
from .diagnostics import ProgressReporter, format_pagination
from .hooks import QueryParamsFilter, SaveDelayPolicy, apply_query_filters, no_save_delay
from .links import ClientLinkBuilder
from .logging_utils import AgentLoggerAdapter, configure_logging
from .query import ItemQueryEngine, apply_allow_list, build_item_query
from .state import StateStore, create_state_store
from .types import AgentPayload, MigrationOptions, MigrationStatus, NextLink
from .utils import parse_flag

logger = logging.getLogger(__name__)


def compute_progress(cursor: int, total: int) -> int:
    """Percentage of the batch consumed, rounded half away from zero."""
    if total <= 0:
        return 0
    return int((cursor + 1) / total * 100 + 0.5)


class MigrationAgent:
    """Sequential progress tracker over a batch of items to migrate.

    The agent owns the running/items/cursor triple for one option prefix.
    Collaborators are injected rather than looked up globally:

    - store: persistent key-value state
    - engine: item selection
    - link_builder: edit links (defaults to one built from the config)
    - query_filters: callables that may rewrite the selection query
    - save_delay: policy giving the editor's save delay per item
    - reporter: progress sink, only set when driven by a batch runner

    start(), next() and stop() are serialized by an instance lock, so
    concurrent calls on the same agent cannot skip or repeat items.
    Separate agents sharing a store still race (last write wins).
    """

    def __init__(
        self,
        store: StateStore,
        engine: ItemQueryEngine,
        config: AgentConfig | None = None,
        link_builder: ClientLinkBuilder | None = None,
        query_filters: Sequence[QueryParamsFilter] = (),
        save_delay: SaveDelayPolicy = no_save_delay,
        reporter: ProgressReporter | None = None,
    ) -> None:
        self.store = store
        self.engine = engine
        self.config = config or AgentConfig()
        self.link_builder = link_builder or ClientLinkBuilder(
            self.config.admin_url, self.config.client_param
        )
        self.query_filters = list(query_filters)
        self.save_delay = save_delay
        self.reporter = reporter
        self._lock = asyncio.Lock()
        self.log = AgentLoggerAdapter(logger, self.config.option_prefix)

    @classmethod
    async def from_config(
        cls, engine: ItemQueryEngine, config: AgentConfig | None = None, **kwargs: Any
    ) -> MigrationAgent:
        """Create an agent with the state store and logging the config names.

        Args:
            engine: Item query engine to select from
            config: Agent configuration (default: from the environment)
            **kwargs: Remaining MigrationAgent arguments
        """
        config = config or AgentConfig.from_env()
        configure_logging(config)
        store = await create_state_store(config)
        logger.debug(f"Using {config.state_backend} state store")
        return cls(store, engine, config=config, **kwargs)

    async def __aenter__(self) -> MigrationAgent:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the store and engine."""
        await self.engine.close()
        await self.store.close()

    # ------------------------------------------------------------------
    # Persisted state
    # ------------------------------------------------------------------

    async def _read_items(self) -> list[int]:
        items = await self.store.get(self.config.items_key)
        if not isinstance(items, list):
            return []
        return items

    async def _read_cursor(self) -> int:
        cursor = await self.store.get(self.config.cursor_key)
        try:
            return int(cursor)
        except (TypeError, ValueError):
            return -1

    # ------------------------------------------------------------------
    # Batch lifecycle
    # ------------------------------------------------------------------

    async def start(self, options: MigrationOptions | Mapping[str, Any] | None = None) -> NextLink:
        """Select items and begin a new batch.

        Any batch already in progress is replaced.

        Args:
            options: MigrationOptions or a mapping of option values

        Returns:
            Link to the first item, or False if nothing was selected
        """
        if not isinstance(options, MigrationOptions):
            options = MigrationOptions.from_mapping(options)

        items = await self.get_posts_to_update(options)
        if not items:
            self.log.info("No items matched, migration not started")
            return False

        async with self._lock:
            if await self.is_running():
                self.log.warning("Replacing a migration batch that was still running")

            await self.store.set(self.config.running_key, 1)
            await self.store.set(self.config.items_key, items)
            await self.store.set(self.config.cursor_key, -1)

            self.log.info(
                f"Started migration of {len(items)} items",
                extra={"total": len(items), "options": options.to_dict()},
            )
            return await self._advance()

    async def stop(self) -> None:
        """Stop the batch, if any, and reset all state."""
        async with self._lock:
            await self.store.set(self.config.running_key, 0)
            await self.store.set(self.config.items_key, [])
            await self.store.set(self.config.cursor_key, -1)
        self.log.info("Migration stopped")

    async def next(self) -> NextLink:
        """Move the cursor to the next item.

        Returns:
            Link to the new current item, or False once the batch is done
        """
        async with self._lock:
            return await self._advance()

    async def _advance(self) -> NextLink:
        items = await self._read_items()
        total = len(items)
        cursor = await self._read_cursor()

        if cursor + 1 < total:
            cursor += 1
            await self.store.set(self.config.cursor_key, cursor)
            self.log.debug(
                f"Advanced to item {items[cursor]} ({cursor + 1}/{total})",
                extra={"cursor": cursor, "item_id": items[cursor], "total": total},
            )
            return self.get_client_link(items[cursor])

        if cursor + 1 == total:
            if await self.is_running():
                await self.store.set(self.config.running_key, 0)
                self.log.info(f"Migration complete after {total} items", extra={"total": total})
            return False

        return False

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    async def is_running(self) -> bool:
        """Whether a batch is in progress."""
        return parse_flag(await self.store.get(self.config.running_key))

    async def get_status(self) -> MigrationStatus:
        """Return a snapshot of batch progress."""
        running = await self.is_running()
        items = await self._read_items()
        total = len(items)
        cursor = await self._read_cursor()

        active_id = items[cursor] if 0 <= cursor < total else 0
        return MigrationStatus(
            running=running,
            cursor=cursor,
            total=total,
            progress=compute_progress(cursor, total),
            active=self.get_client_link(active_id),
        )

    # ------------------------------------------------------------------
    # Selection and links
    # ------------------------------------------------------------------

    def get_client_link(self, item_id: Any) -> str:
        """Return the editor link for an item, or "" for a missing id."""
        return self.link_builder.edit_link(item_id)

    async def get_posts_to_update(
        self, options: MigrationOptions | Mapping[str, Any] | None = None
    ) -> list[int]:
        """Select the ids of the items to migrate.

        Query filters run before the ``only`` allow-list is applied, so a
        filter can narrow the selection but never widen an explicit list.
        """
        if not isinstance(options, MigrationOptions):
            options = MigrationOptions.from_mapping(options)

        query = build_item_query(options, self.config)
        query = apply_query_filters(query, query.post_types, options, self.query_filters)
        query = apply_allow_list(query, options)

        result = await self.engine.execute(query)

        if result.ids and self.reporter is not None:
            pages = result.pages(query.per_page)
            self.reporter.line(format_pagination(query.page, pages, result.found))

        return list(result.ids)

    def has_client_param(self, query_params: Mapping[str, Any] | None) -> bool:
        """Whether the request carries a non-zero active client marker."""
        return self.link_builder.has_client_param(query_params)

    # ------------------------------------------------------------------
    # Editor bridge
    # ------------------------------------------------------------------

    def can_register(self) -> bool:
        """The bridge is always offered; register() decides per request."""
        return True

    async def register(self, query_params: Mapping[str, Any] | None) -> AgentPayload | None:
        """Build the editor payload for a request, advancing the batch.

        Returns None unless the request carries the client marker and a
        batch is running.
        """
        if not self.has_client_param(query_params):
            return None
        if not await self.is_running():
            return None

        items = await self._read_items()
        cursor = await self._read_cursor()
        item_id = items[cursor] if 0 <= cursor < len(items) else 0

        next_link = await self.next()
        return AgentPayload(next=next_link, save_delay=self.save_delay(item_id))
