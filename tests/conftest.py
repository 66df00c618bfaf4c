"""
Shared test configuration and fixtures.

Provides a fixed-result query engine that records the queries it was
asked to run, plus a small content catalog for the real engines.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import UTC, datetime, timedelta

import pytest

from migration_agent import (
    AgentConfig,
    ContentItem,
    ItemQuery,
    ItemQueryEngine,
    MemoryItemQueryEngine,
    MemoryStateStore,
    MigrationAgent,
    QueryResult,
)

logger = logging.getLogger(__name__)

BASE_TIME = datetime(2024, 6, 1, 12, 0, 0, tzinfo=UTC)


class FixedItemQueryEngine(ItemQueryEngine):
    """
    Query engine returning a fixed id list.

    Records every query so tests can assert on how it was built.
    """

    def __init__(self, ids: list[int] | None = None, found: int | None = None):
        self.ids = list(ids or [])
        self.found = len(self.ids) if found is None else found
        self.queries: list[ItemQuery] = []
        self.closed = False

    async def execute(self, query: ItemQuery) -> QueryResult:
        self.queries.append(query)
        return QueryResult(ids=list(self.ids), found=self.found)

    async def close(self) -> None:
        self.closed = True


class YieldingStateStore(MemoryStateStore):
    """
    Memory store that yields to the event loop on every access.

    Lets concurrent agent calls interleave between their reads and writes.
    """

    async def get(self, key, default=None):
        await asyncio.sleep(0)
        return await super().get(key, default)

    async def set(self, key, value):
        await asyncio.sleep(0)
        await super().set(key, value)


class RecordingReporter:
    """Progress reporter collecting lines in memory."""

    def __init__(self):
        self.lines: list[str] = []

    def line(self, text: str) -> None:
        self.lines.append(text)


def make_catalog() -> list[ContentItem]:
    """
    Content catalog used by the engine tests.

    Newest first, published ordering is: 1, 2, 3, 4, 5, 6, 7.
    """

    def at(hours_ago: int) -> datetime:
        return BASE_TIME - timedelta(hours=hours_ago)

    return [
        ContentItem(1, "post", published=at(1), terms={"block_catalog": ["core-classic"]}),
        ContentItem(2, "page", published=at(2)),
        ContentItem(3, "post", published=at(3), sticky=True),
        ContentItem(4, "post", status="draft", published=at(4)),
        ContentItem(5, "product", published=at(5), terms={"block_catalog": ["core-classic"]}),
        ContentItem(
            6, "page", published=at(6), terms={"block_catalog": ["core-classic", "core-paragraph"]}
        ),
        ContentItem(7, "post", published=at(7), terms={"block_catalog": ["core-paragraph"]}),
    ]


@pytest.fixture
def config() -> AgentConfig:
    return AgentConfig(admin_url="https://example.com/wp-admin/")


@pytest.fixture
def store() -> MemoryStateStore:
    return MemoryStateStore()


@pytest.fixture
def fixed_engine() -> FixedItemQueryEngine:
    return FixedItemQueryEngine([5, 9, 14])


@pytest.fixture
def catalog_engine() -> MemoryItemQueryEngine:
    return MemoryItemQueryEngine(make_catalog())


@pytest.fixture
def reporter() -> RecordingReporter:
    return RecordingReporter()


@pytest.fixture
async def agent(store, fixed_engine, config):
    """Agent over the fixed [5, 9, 14] selection with an in-memory store."""
    agent = MigrationAgent(store, fixed_engine, config=config)
    yield agent
    await agent.close()
