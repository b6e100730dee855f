"""
Tests for the Readiness Selector.

These tests verify:
    1. Priority ordering (critical before low regardless of creation order)
    2. Deadline ordering and expiry
    3. FIFO tie-breaking on created_at
    4. Dependency gating
    5. Only QUEUED tasks are selected; the limit is respected
"""

from wakecycle.models.task import Task, TaskStatus, TaskType
from wakecycle.schedulers.readiness import ReadinessSelector

NOW = 1000.0


class TestReadinessSelector:
    """Tests for ReadinessSelector.select()."""

    def setup_method(self):
        """Create a fresh selector for each test."""
        self.selector = ReadinessSelector()

    def _make_task(self, id: str, priority: str = "medium", created: float = 0.0,
                   deadline: float | None = None, deps: list[str] | None = None,
                   status: TaskStatus = TaskStatus.QUEUED) -> Task:
        """Helper to create a task with sensible defaults."""
        return Task(
            id=id,
            type=TaskType.CUSTOM,
            priority=priority,
            created_at=created,
            deadline=deadline,
            dependencies=deps or [],
            status=status,
        )

    def _ids(self, tasks: list[Task]) -> list[str]:
        return [t.id for t in tasks]

    def test_priority_order(self):
        """Critical runs before high, high before medium, medium before low."""
        tasks = [
            self._make_task("low", "low", created=1.0),
            self._make_task("medium", "medium", created=2.0),
            self._make_task("critical", "critical", created=3.0),
            self._make_task("high", "high", created=4.0),
        ]
        selected = self.selector.select(tasks, NOW, limit=10)
        assert self._ids(selected) == ["critical", "high", "medium", "low"]

    def test_critical_beats_older_low(self):
        """Creation order never outranks priority."""
        tasks = [
            self._make_task("old-low", "low", created=0.0),
            self._make_task("new-critical", "critical", created=999.0),
        ]
        assert self._ids(self.selector.select(tasks, NOW, limit=10)) == ["new-critical", "old-low"]

    def test_fifo_within_priority(self):
        tasks = [
            self._make_task("c", created=3.0),
            self._make_task("a", created=1.0),
            self._make_task("b", created=2.0),
        ]
        assert self._ids(self.selector.select(tasks, NOW, limit=10)) == ["a", "b", "c"]

    def test_deadline_before_no_deadline(self):
        """Within a priority, tasks with a deadline go first, earliest deadline first."""
        tasks = [
            self._make_task("none-old", created=0.0),
            self._make_task("late", created=5.0, deadline=NOW + 500),
            self._make_task("soon", created=6.0, deadline=NOW + 10),
        ]
        assert self._ids(self.selector.select(tasks, NOW, limit=10)) == ["soon", "late", "none-old"]

    def test_deadline_does_not_outrank_priority(self):
        tasks = [
            self._make_task("low-urgent", "low", deadline=NOW + 1),
            self._make_task("high-relaxed", "high"),
        ]
        assert self._ids(self.selector.select(tasks, NOW, limit=10)) == ["high-relaxed", "low-urgent"]

    def test_expired_deadline_excluded(self):
        tasks = [
            self._make_task("expired", deadline=NOW - 1),
            self._make_task("at-now", deadline=NOW),
            self._make_task("future", deadline=NOW + 1),
        ]
        assert self._ids(self.selector.select(tasks, NOW, limit=10)) == ["future"]

    def test_unmet_dependency_blocks(self):
        tasks = [
            self._make_task("dep", status=TaskStatus.RUNNING),
            self._make_task("child", deps=["dep"]),
        ]
        assert self.selector.select(tasks, NOW, limit=10) == []

    def test_met_dependency_allows(self):
        tasks = [
            self._make_task("dep", status=TaskStatus.COMPLETED),
            self._make_task("child", deps=["dep"]),
        ]
        assert self._ids(self.selector.select(tasks, NOW, limit=10)) == ["child"]

    def test_partially_met_dependencies_block(self):
        tasks = [
            self._make_task("a", status=TaskStatus.COMPLETED),
            self._make_task("b", status=TaskStatus.FAILED),
            self._make_task("child", deps=["a", "b"]),
        ]
        assert self.selector.select(tasks, NOW, limit=10) == []

    def test_unknown_dependency_blocks(self):
        tasks = [self._make_task("orphan", deps=["missing"])]
        assert self.selector.select(tasks, NOW, limit=10) == []

    def test_only_queued_selected(self):
        tasks = [
            self._make_task(status.value, status=status)
            for status in TaskStatus
        ]
        assert self._ids(self.selector.select(tasks, NOW, limit=10)) == ["queued"]

    def test_limit_respected(self):
        tasks = [self._make_task(f"t{i}", created=float(i)) for i in range(10)]
        selected = self.selector.select(tasks, NOW, limit=3)
        assert self._ids(selected) == ["t0", "t1", "t2"]

    def test_zero_limit(self):
        tasks = [self._make_task("t")]
        assert self.selector.select(tasks, NOW, limit=0) == []

    def test_full_ties_keep_input_order(self):
        """Identical sort keys fall back to the store's insertion order."""
        tasks = [self._make_task(f"t{i}", created=1.0) for i in range(5)]
        assert self._ids(self.selector.select(tasks, NOW, limit=5)) == ["t0", "t1", "t2", "t3", "t4"]

    def test_selection_is_deterministic(self):
        tasks = [
            self._make_task("a", "high", created=2.0, deadline=NOW + 5),
            self._make_task("b", "high", created=1.0),
            self._make_task("c", "critical", created=3.0),
            self._make_task("d", "low", created=0.0),
        ]
        first = self._ids(self.selector.select(tasks, NOW, limit=10))
        second = self._ids(self.selector.select(list(reversed(tasks)), NOW, limit=10))
        assert first == second == ["c", "a", "b", "d"]

    def test_name(self):
        assert self.selector.name == "ReadinessSelector"
