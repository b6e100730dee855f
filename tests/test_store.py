"""
Tests for the Task Store backends (in-memory and SQLite).

These tests verify:
    1. Writes are visible to the next read; reads return copies
    2. Filtering and insertion-order listing
    3. update_task() validation and error mapping
    4. transition() only applies from allowed statuses
    5. Cycle records are persisted and listed most recent first
    6. SQLite round-trips JSON columns and survives a reopen
"""

import asyncio
import gc

import pytest

from wakecycle.exceptions import StoreNotInitializedError, StoreWriteError, TaskNotFoundError
from wakecycle.models.cycle import Cycle
from wakecycle.models.task import Task, TaskPriority, TaskStatus, TaskType
from wakecycle.store.memory import InMemoryTaskStore
from wakecycle.store.sqlite import SQLiteTaskStore


def _make_task(id: str, priority: str = "medium", **kwargs) -> Task:
    return Task(id=id, type=TaskType.CUSTOM, priority=priority, **kwargs)


@pytest.fixture(params=["memory", "sqlite"])
async def store(request):
    """Every contract test runs against both backends."""
    if request.param == "memory":
        backend = InMemoryTaskStore()
    else:
        backend = SQLiteTaskStore(":memory:")
    await backend.init()
    yield backend
    await backend.close()


# ══════════════════════════════════════════════════════════════════════
# STORE CONTRACT TESTS
# ══════════════════════════════════════════════════════════════════════

class TestTaskStoreContract:
    """Behaviour shared by all backends."""

    @pytest.mark.asyncio
    async def test_add_then_get(self, store):
        await store.add_task(_make_task("t1", description="hello"))
        fetched = await store.get_task("t1")
        assert fetched is not None
        assert fetched.description == "hello"
        assert fetched.status == TaskStatus.QUEUED

    @pytest.mark.asyncio
    async def test_get_unknown_returns_none(self, store):
        assert await store.get_task("missing") is None

    @pytest.mark.asyncio
    async def test_duplicate_id_rejected(self, store):
        await store.add_task(_make_task("t1"))
        with pytest.raises(StoreWriteError):
            await store.add_task(_make_task("t1"))

    @pytest.mark.asyncio
    async def test_reads_return_copies(self, store):
        await store.add_task(_make_task("t1"))
        fetched = await store.get_task("t1")
        fetched.description = "mutated"
        assert (await store.get_task("t1")).description == ""

    @pytest.mark.asyncio
    async def test_list_in_insertion_order(self, store):
        for tid in ("c", "a", "b"):
            await store.add_task(_make_task(tid))
        assert [t.id for t in await store.list_tasks()] == ["c", "a", "b"]

    @pytest.mark.asyncio
    async def test_list_filters(self, store):
        await store.add_task(_make_task("q-high", "high"))
        await store.add_task(_make_task("q-low", "low"))
        await store.add_task(_make_task("done-high", "high", status=TaskStatus.COMPLETED))

        queued = await store.list_tasks(status=TaskStatus.QUEUED)
        assert {t.id for t in queued} == {"q-high", "q-low"}

        high = await store.list_tasks(priority=TaskPriority.HIGH)
        assert {t.id for t in high} == {"q-high", "done-high"}

        both = await store.list_tasks(status=TaskStatus.QUEUED, priority=TaskPriority.HIGH)
        assert [t.id for t in both] == ["q-high"]

    @pytest.mark.asyncio
    async def test_update_visible_on_next_read(self, store):
        await store.add_task(_make_task("t1"))
        updated = await store.update_task("t1", status=TaskStatus.RUNNING, executed_count=1)
        assert updated.status == TaskStatus.RUNNING

        fetched = await store.get_task("t1")
        assert fetched.status == TaskStatus.RUNNING
        assert fetched.executed_count == 1

    @pytest.mark.asyncio
    async def test_update_unknown_raises(self, store):
        with pytest.raises(TaskNotFoundError):
            await store.update_task("missing", status=TaskStatus.RUNNING)

    @pytest.mark.asyncio
    async def test_update_rejects_invalid_values(self, store):
        await store.add_task(_make_task("t1", max_retries=1))
        with pytest.raises(StoreWriteError):
            await store.update_task("t1", retry_attempts=5)
        assert (await store.get_task("t1")).retry_attempts == 0

    @pytest.mark.asyncio
    async def test_update_rejects_id_change(self, store):
        await store.add_task(_make_task("t1"))
        with pytest.raises(StoreWriteError):
            await store.update_task("t1", id="t2")

    @pytest.mark.asyncio
    async def test_transition_from_allowed_status(self, store):
        await store.add_task(_make_task("t1"))
        result = await store.transition(
            "t1", {TaskStatus.QUEUED}, lambda cur: {"status": TaskStatus.CANCELLED}
        )
        assert result is not None
        assert (await store.get_task("t1")).status == TaskStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_transition_from_other_status_is_noop(self, store):
        await store.add_task(_make_task("t1", status=TaskStatus.RUNNING))
        result = await store.transition(
            "t1", {TaskStatus.QUEUED}, lambda cur: {"status": TaskStatus.CANCELLED}
        )
        assert result is None
        assert (await store.get_task("t1")).status == TaskStatus.RUNNING

    @pytest.mark.asyncio
    async def test_transition_unknown_task(self, store):
        assert await store.transition("nope", {TaskStatus.QUEUED}, lambda cur: {}) is None

    @pytest.mark.asyncio
    async def test_transition_sees_current_values(self, store):
        await store.add_task(_make_task("t1", executed_count=2))
        result = await store.transition(
            "t1",
            {TaskStatus.QUEUED},
            lambda cur: {"status": TaskStatus.RUNNING, "executed_count": cur.executed_count + 1},
        )
        assert result.executed_count == 3

    @pytest.mark.asyncio
    async def test_transition_predicate_can_refuse(self, store):
        await store.add_task(_make_task("t1", deadline=100.0))
        result = await store.transition(
            "t1",
            {TaskStatus.QUEUED},
            lambda cur: {"status": TaskStatus.RUNNING},
            when=lambda cur: cur.deadline > 200.0,
        )
        assert result is None
        assert (await store.get_task("t1")).status == TaskStatus.QUEUED

    @pytest.mark.asyncio
    async def test_concurrent_claims_only_one_wins(self, store):
        await store.add_task(_make_task("t1"))
        results = await asyncio.gather(*(
            store.transition("t1", {TaskStatus.QUEUED}, lambda cur: {"status": TaskStatus.RUNNING})
            for _ in range(5)
        ))
        assert sum(r is not None for r in results) == 1

    @pytest.mark.asyncio
    async def test_task_locks_not_retained(self, store):
        """Per-task locks do not accumulate once writes finish."""
        for i in range(20):
            await store.add_task(_make_task(f"t{i}"))
            await store.update_task(f"t{i}", status=TaskStatus.COMPLETED)
        gc.collect()
        assert len(store._task_locks) == 0

    @pytest.mark.asyncio
    async def test_cycles_most_recent_first(self, store):
        for i in range(5):
            await store.record_cycle(Cycle(f"cycle-{i}", float(i), i, i, 0, 1.0))
        cycles = await store.list_cycles(limit=3)
        assert [c.id for c in cycles] == ["cycle-4", "cycle-3", "cycle-2"]

    @pytest.mark.asyncio
    async def test_cycle_fields_preserved(self, store):
        await store.record_cycle(Cycle("cycle-x", 12.5, 3, 2, 1, 40.0, "Resource warning: CPU"))
        (cycle,) = await store.list_cycles()
        assert cycle == Cycle("cycle-x", 12.5, 3, 2, 1, 40.0, "Resource warning: CPU")

    @pytest.mark.asyncio
    async def test_clear_all(self, store):
        await store.add_task(_make_task("t1"))
        await store.record_cycle(Cycle("cycle-1", 1.0, 0, 0, 0, 0.0))
        await store.clear_all()
        assert await store.list_tasks() == []
        assert await store.list_cycles() == []


# ══════════════════════════════════════════════════════════════════════
# SQLITE-SPECIFIC TESTS
# ══════════════════════════════════════════════════════════════════════

class TestSQLiteTaskStore:
    """Behaviour only the durable backend has."""

    @pytest.mark.asyncio
    async def test_requires_init(self):
        store = SQLiteTaskStore(":memory:")
        with pytest.raises(StoreNotInitializedError):
            await store.list_tasks()

    @pytest.mark.asyncio
    async def test_json_columns_round_trip(self):
        store = SQLiteTaskStore(":memory:")
        await store.init()
        try:
            await store.add_task(_make_task(
                "t1",
                payload={"topic": "physics", "depth": 2},
                dependencies=["a", "b"],
                metadata={"source": "user"},
                deadline=123.5,
            ))
            fetched = await store.get_task("t1")
            assert fetched.payload == {"topic": "physics", "depth": 2}
            assert fetched.dependencies == ["a", "b"]
            assert fetched.metadata == {"source": "user"}
            assert fetched.deadline == 123.5
        finally:
            await store.close()

    @pytest.mark.asyncio
    async def test_survives_reopen(self, tmp_path):
        db_path = str(tmp_path / "nested" / "wakecycle.db")

        store = SQLiteTaskStore(db_path)
        await store.init()
        await store.add_task(_make_task("t1", "critical"))
        await store.update_task("t1", status=TaskStatus.COMPLETED, actual_duration_ms=12.0)
        await store.record_cycle(Cycle("cycle-1", 1.0, 1, 1, 0, 12.0))
        await store.close()

        reopened = SQLiteTaskStore(db_path)
        await reopened.init()
        try:
            task = await reopened.get_task("t1")
            assert task.status == TaskStatus.COMPLETED
            assert task.priority == TaskPriority.CRITICAL
            assert task.actual_duration_ms == 12.0
            assert [c.id for c in await reopened.list_cycles()] == ["cycle-1"]
        finally:
            await reopened.close()

    @pytest.mark.asyncio
    async def test_write_after_close_raises(self):
        store = SQLiteTaskStore(":memory:")
        await store.init()
        await store.close()
        with pytest.raises(StoreNotInitializedError):
            await store.add_task(_make_task("t1"))
