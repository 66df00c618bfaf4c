"""Tests for the migration agent cursor."""

from __future__ import annotations

import asyncio

import pytest
from conftest import FixedItemQueryEngine, RecordingReporter, YieldingStateStore

from migration_agent import (
    AgentConfig,
    AgentPayload,
    MemoryItemQueryEngine,
    MemoryStateStore,
    MigrationAgent,
    MigrationOptions,
    SQLiteStateStore,
    compute_progress,
    fixed_save_delay,
)


def link(item_id: int) -> str:
    return f"https://example.com/wp-admin/post.php?post={item_id}&action=edit&ctb_client={item_id}"


class TestComputeProgress:
    """Tests for progress percentage."""

    def test_zero_total(self) -> None:
        """Progress is 0 when there are no items."""
        assert compute_progress(-1, 0) == 0
        assert compute_progress(5, 0) == 0

    def test_before_first_item(self) -> None:
        """Progress is 0 before the cursor moves."""
        assert compute_progress(-1, 3) == 0

    def test_rounding(self) -> None:
        """Progress rounds to the nearest whole percent."""
        assert compute_progress(0, 3) == 33
        assert compute_progress(1, 3) == 67
        assert compute_progress(0, 8) == 13  # 12.5 rounds up

    def test_complete(self) -> None:
        """Progress is exactly 100 on the last item."""
        assert compute_progress(2, 3) == 100


class TestStart:
    """Tests for starting a batch."""

    async def test_start_returns_first_link(
        self, agent: MigrationAgent, store: MemoryStateStore
    ) -> None:
        """Start persists the batch and moves to the first item."""
        result = await agent.start()

        assert result == link(5)
        assert store.snapshot() == {
            "ctb_running": 1,
            "ctb_posts_to_update": [5, 9, 14],
            "ctb_cursor": 0,
        }

    async def test_start_empty_selection(self, store: MemoryStateStore, config) -> None:
        """An empty selection returns False and writes nothing."""
        agent = MigrationAgent(store, FixedItemQueryEngine([]), config=config)

        assert await agent.start({"post_type": "post"}) is False
        assert store.snapshot() == {}
        assert await agent.is_running() is False

    async def test_start_empty_keeps_prior_state(self, config) -> None:
        """An empty selection leaves an earlier batch untouched."""
        store = MemoryStateStore(
            {"ctb_running": 1, "ctb_posts_to_update": [1, 2], "ctb_cursor": 0}
        )
        agent = MigrationAgent(store, FixedItemQueryEngine([]), config=config)

        assert await agent.start() is False
        assert store.snapshot()["ctb_posts_to_update"] == [1, 2]
        assert store.snapshot()["ctb_cursor"] == 0

    async def test_start_replaces_running_batch(
        self, store: MemoryStateStore, config, caplog: pytest.LogCaptureFixture
    ) -> None:
        """Starting again while running replaces the old batch."""
        engine = FixedItemQueryEngine([1, 2, 3])
        agent = MigrationAgent(store, engine, config=config)
        await agent.start()
        await agent.next()

        engine.ids = [7, 8]
        with caplog.at_level("WARNING", logger="migration_agent.agent"):
            result = await agent.start()

        assert result == link(7)
        status = await agent.get_status()
        assert status.total == 2
        assert status.cursor == 0
        assert "still running" in caplog.text

    async def test_start_accepts_options_object(
        self, agent: MigrationAgent, fixed_engine: FixedItemQueryEngine
    ) -> None:
        """Start accepts MigrationOptions as well as mappings."""
        await agent.start(MigrationOptions(post_type="product", per_page=10, page=2))

        query = fixed_engine.queries[-1]
        assert query.post_types == ["product"]
        assert query.per_page == 10
        assert query.page == 2

    @pytest.mark.parametrize("per_page", ["all", "ALL", 0, "-1"])
    async def test_start_unbounded_page_size(
        self, catalog_engine: MemoryItemQueryEngine, config, per_page
    ) -> None:
        """A page size of "all" or below one selects the whole catalog."""
        agent = MigrationAgent(MemoryStateStore(), catalog_engine, config=config)

        assert await agent.start({"per_page": per_page}) == link(1)

        status = await agent.get_status()
        assert status.total == 5
        assert status.running is True


class TestNext:
    """Tests for advancing the cursor."""

    async def test_walk_whole_batch(self, agent: MigrationAgent, store: MemoryStateStore) -> None:
        """Walk [5, 9, 14] from start to completion."""
        assert await agent.start() == link(5)
        assert (await agent.get_status()).cursor == 0

        assert await agent.next() == link(9)
        assert (await agent.get_status()).cursor == 1

        assert await agent.next() == link(14)
        assert (await agent.get_status()).cursor == 2

        assert await agent.next() is False
        status = await agent.get_status()
        assert status.running is False
        assert status.cursor == 2
        assert status.progress == 100

    @pytest.mark.parametrize("count", [1, 2, 5])
    async def test_batch_of_n_items(self, store: MemoryStateStore, config, count: int) -> None:
        """Start plus N-1 next calls visit every item; the Nth next ends the batch."""
        ids = list(range(100, 100 + count))
        agent = MigrationAgent(store, FixedItemQueryEngine(ids), config=config)

        visited = [await agent.start()]
        for _ in range(count - 1):
            visited.append(await agent.next())

        assert visited == [link(i) for i in ids]
        assert await agent.is_running() is True

        assert await agent.next() is False
        assert await agent.is_running() is False

    async def test_progress_is_monotonic(self, store: MemoryStateStore, config) -> None:
        """Progress never decreases while walking a batch."""
        agent = MigrationAgent(store, FixedItemQueryEngine(list(range(1, 8))), config=config)
        await agent.start()

        seen = [(await agent.get_status()).progress]
        while await agent.next():
            seen.append((await agent.get_status()).progress)

        assert seen == sorted(seen)
        assert seen[-1] == 100

    async def test_next_after_completion_is_idempotent(
        self, agent: MigrationAgent, store: MemoryStateStore
    ) -> None:
        """Repeated next() calls after completion return False and change nothing."""
        await agent.start()
        while await agent.next():
            pass
        before = store.snapshot()

        for _ in range(3):
            assert await agent.next() is False

        assert store.snapshot() == before

    async def test_next_on_empty_store(
        self, agent: MigrationAgent, store: MemoryStateStore
    ) -> None:
        """next() with no state returns False without writing."""
        assert await agent.next() is False
        assert store.snapshot() == {}

    async def test_next_with_cursor_past_end(self, config) -> None:
        """A cursor beyond the list is treated as nothing left to do."""
        store = MemoryStateStore(
            {"ctb_running": 1, "ctb_posts_to_update": [1, 2], "ctb_cursor": 5}
        )
        agent = MigrationAgent(store, FixedItemQueryEngine([]), config=config)

        assert await agent.next() is False
        assert store.snapshot()["ctb_running"] == 1
        assert (await agent.get_status()).active == ""

    async def test_concurrent_next_does_not_skip(self, config) -> None:
        """Concurrent next() calls on one agent visit each item once."""
        ids = list(range(1, 11))
        store = YieldingStateStore()
        agent = MigrationAgent(store, FixedItemQueryEngine(ids), config=config)
        first = await agent.start()

        results = await asyncio.gather(*(agent.next() for _ in range(9)))

        assert sorted([first, *results]) == sorted(link(i) for i in ids)
        assert (await agent.get_status()).cursor == 9


class TestStop:
    """Tests for stopping a batch."""

    async def test_stop_resets_state(self, agent: MigrationAgent, store: MemoryStateStore) -> None:
        """Stop clears the batch immediately."""
        await agent.start()
        await agent.next()

        await agent.stop()

        assert await agent.is_running() is False
        status = await agent.get_status()
        assert status.total == 0
        assert status.cursor == -1
        assert status.progress == 0
        assert status.active == ""
        assert store.snapshot() == {
            "ctb_running": 0,
            "ctb_posts_to_update": [],
            "ctb_cursor": -1,
        }

    async def test_stop_when_idle(self, agent: MigrationAgent) -> None:
        """Stop is safe without a running batch."""
        await agent.stop()
        await agent.stop()

        assert await agent.is_running() is False
        assert await agent.next() is False


class TestStatus:
    """Tests for status reporting."""

    @pytest.mark.parametrize(
        "stored, expected",
        [("0", False), ("", False), (0, False), (None, False), ("1", True), (1, True)],
    )
    async def test_running_flag_from_strings(self, config, stored, expected: bool) -> None:
        """Stores that hand back strings still read "0" as stopped."""
        agent = MigrationAgent(
            MemoryStateStore({"ctb_running": stored}), FixedItemQueryEngine(), config=config
        )

        assert await agent.is_running() is expected
        assert (await agent.get_status()).running is expected

    async def test_status_defaults(self, agent: MigrationAgent) -> None:
        """Missing state reads as an empty idle batch."""
        status = await agent.get_status()

        assert status.to_dict() == {
            "running": False,
            "cursor": -1,
            "total": 0,
            "progress": 0,
            "active": "",
        }

    async def test_status_mid_batch(self, agent: MigrationAgent) -> None:
        """Status reports the active item link and progress."""
        await agent.start()
        await agent.next()

        status = await agent.get_status()

        assert status.running is True
        assert status.cursor == 1
        assert status.total == 3
        assert status.progress == 67
        assert status.active == link(9)
        assert status.complete is False

    async def test_status_tolerates_malformed_state(self, config) -> None:
        """Non-list items and a non-numeric cursor read as defaults."""
        store = MemoryStateStore(
            {"ctb_running": "yes", "ctb_posts_to_update": "oops", "ctb_cursor": "x"}
        )
        agent = MigrationAgent(store, FixedItemQueryEngine([]), config=config)

        status = await agent.get_status()

        assert status.running is True
        assert status.total == 0
        assert status.cursor == -1

    async def test_active_empty_for_zero_id(self, config) -> None:
        """A zero id at the cursor yields no active link."""
        store = MemoryStateStore({"ctb_running": 1, "ctb_posts_to_update": [0], "ctb_cursor": 0})
        agent = MigrationAgent(store, FixedItemQueryEngine([]), config=config)

        assert (await agent.get_status()).active == ""

    async def test_option_prefix(self, fixed_engine: FixedItemQueryEngine) -> None:
        """Keys follow the configured option prefix."""
        store = MemoryStateStore()
        agent = MigrationAgent(
            store, fixed_engine, config=AgentConfig(option_prefix="batch2_")
        )

        await agent.start()

        assert set(store.snapshot()) == {
            "batch2_running",
            "batch2_posts_to_update",
            "batch2_cursor",
        }


class TestClientLink:
    """Tests for editor links."""

    def test_falsy_ids(self, agent: MigrationAgent) -> None:
        """Missing and zero ids produce no link."""
        assert agent.get_client_link(0) == ""
        assert agent.get_client_link(None) == ""

    def test_link_carries_marker(self, agent: MigrationAgent) -> None:
        """Links carry the client marker for the item."""
        result = agent.get_client_link(42)

        assert result == link(42)
        assert "ctb_client=42" in result


class TestGetPostsToUpdate:
    """Tests for item selection through the agent."""

    async def test_default_query(
        self, agent: MigrationAgent, fixed_engine: FixedItemQueryEngine
    ) -> None:
        """Without options the default types are selected, all on one page."""
        ids = await agent.get_posts_to_update()

        assert ids == [5, 9, 14]
        query = fixed_engine.queries[-1]
        assert query.post_types == ["post", "page"]
        assert query.post_status == "publish"
        assert query.per_page == -1
        assert query.page == 1
        assert query.ignore_sticky_posts is True
        assert query.tax_query == []
        assert query.post_in is None

    async def test_catalog_and_only(
        self, agent: MigrationAgent, fixed_engine: FixedItemQueryEngine
    ) -> None:
        """Catalog adds a taxonomy restriction and only adds an allow-list."""
        await agent.get_posts_to_update({"catalog": True, "only": "14,abc,0,5"})

        query = fixed_engine.queries[-1]
        assert [t.to_dict() for t in query.tax_query] == [
            {"taxonomy": "block_catalog", "field": "slug", "terms": ["core-classic"]}
        ]
        assert query.post_in == [14, 5]

    async def test_filters_run_before_allow_list(self, store, fixed_engine, config) -> None:
        """Query filters cannot widen the explicit allow-list."""
        calls = []

        def widen(query, post_types, options):
            calls.append((list(post_types), options.only))
            query.post_types = [*post_types, "product"]
            query.post_in = None
            return query

        agent = MigrationAgent(store, fixed_engine, config=config, query_filters=[widen])
        await agent.get_posts_to_update({"only": "9"})

        query = fixed_engine.queries[-1]
        assert calls == [(["post", "page"], "9")]
        assert query.post_types == ["post", "page", "product"]
        assert query.post_in == [9]

    async def test_pagination_report(self, store, config) -> None:
        """A batch-mode reporter receives one pagination line."""
        reporter = RecordingReporter()
        engine = FixedItemQueryEngine([1, 2, 3], found=25)
        agent = MigrationAgent(store, engine, config=config, reporter=reporter)

        await agent.get_posts_to_update({"per_page": "10", "page": "2"})

        assert reporter.lines == ["Pagination: 2/3 of 25"]

    async def test_pagination_report_unbounded(self, store, config) -> None:
        """With no page size everything fits on one page."""
        reporter = RecordingReporter()
        engine = FixedItemQueryEngine([1, 2, 3])
        agent = MigrationAgent(store, engine, config=config, reporter=reporter)

        await agent.get_posts_to_update()

        assert reporter.lines == ["Pagination: 1/1 of 3"]

    async def test_no_report_for_empty_selection(self, store, config) -> None:
        """Nothing is reported when nothing matched."""
        reporter = RecordingReporter()
        agent = MigrationAgent(store, FixedItemQueryEngine([]), config=config, reporter=reporter)

        await agent.get_posts_to_update()

        assert reporter.lines == []


class TestRegister:
    """Tests for the editor bridge."""

    async def test_without_marker(self, agent: MigrationAgent) -> None:
        """No payload without the client marker."""
        await agent.start()

        assert await agent.register({}) is None
        assert await agent.register({"ctb_client": "abc"}) is None

    async def test_when_idle(self, agent: MigrationAgent) -> None:
        """No payload when no batch is running."""
        assert await agent.register({"ctb_client": "5"}) is None

    async def test_payload_advances(self, store, fixed_engine, config) -> None:
        """The payload links the next item and carries the current item's delay."""
        delays = []

        def policy(item_id: int) -> int:
            delays.append(item_id)
            return 3

        agent = MigrationAgent(store, fixed_engine, config=config, save_delay=policy)
        await agent.start()

        payload = await agent.register({"ctb_client": ["5"]})

        assert payload == AgentPayload(next=link(9), save_delay=3)
        assert delays == [5]
        assert payload.to_script_context() == {"agent": {"next": link(9), "save_delay": 3}}

    async def test_payload_on_last_item(self, store, config) -> None:
        """On the last item the payload has no next link and the batch ends."""
        agent = MigrationAgent(
            store, FixedItemQueryEngine([5]), config=config, save_delay=fixed_save_delay(1.5)
        )
        await agent.start()

        payload = await agent.register({"ctb_client": "5"})

        assert payload is not None
        assert payload.next is False
        assert payload.save_delay == 1.5
        assert await agent.is_running() is False

    def test_can_register(self, agent: MigrationAgent) -> None:
        """The bridge is always offered."""
        assert agent.can_register() is True


class TestLifecycle:
    """Tests for resource handling."""

    async def test_context_manager_closes_engine(self, config) -> None:
        """Leaving the context closes the engine."""
        engine = FixedItemQueryEngine([1])
        async with MigrationAgent(MemoryStateStore(), engine, config=config) as agent:
            await agent.start()

        assert engine.closed is True

    async def test_from_config_sqlite(self, tmp_path) -> None:
        """from_config opens the configured store, which outlives the agent."""
        config = AgentConfig(
            admin_url="https://example.com/wp-admin/",
            state_backend="sqlite",
            state_path=str(tmp_path / "state.db"),
        )

        async with await MigrationAgent.from_config(FixedItemQueryEngine([3, 6]), config) as agent:
            assert isinstance(agent.store, SQLiteStateStore)
            await agent.start()

        reopened = await MigrationAgent.from_config(FixedItemQueryEngine(), config)
        try:
            status = await reopened.get_status()
            assert status.running is True
            assert status.total == 2
            assert status.active == link(3)
        finally:
            await reopened.close()

    async def test_from_config_defaults_to_environment(self, monkeypatch) -> None:
        monkeypatch.setenv("MIGRATION_AGENT_OPTION_PREFIX", "env_")
        monkeypatch.delenv("MIGRATION_AGENT_STATE_BACKEND", raising=False)
        monkeypatch.delenv("MIGRATION_AGENT_LOG_LEVEL", raising=False)

        agent = await MigrationAgent.from_config(FixedItemQueryEngine([1]))

        assert isinstance(agent.store, MemoryStateStore)
        assert agent.config.running_key == "env_running"
