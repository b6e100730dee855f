"""Readiness Selector — priority, then deadline, then FIFO."""

from wakecycle.models.task import Task, TaskStatus
from wakecycle.schedulers.base import BaseSelector


class ReadinessSelector(BaseSelector):
    """Filters to ready tasks and orders them for dispatch.

    Ready = QUEUED, every dependency COMPLETED, and no deadline or a deadline
    still in the future. Order key:
        1. priority rank (critical=0 … low=3)
        2. tasks with a deadline before tasks without one
        3. earlier deadline first
        4. earlier created_at first
    The sort is stable, so full ties keep the store's insertion order.
    """

    def select(self, tasks: list[Task], now: float, limit: int) -> list[Task]:
        if limit <= 0:
            return []

        status_by_id = {t.id: t.status for t in tasks}
        ready = [
            t for t in tasks
            if t.status == TaskStatus.QUEUED
            and self._dependencies_met(t, status_by_id)
            and not self._deadline_passed(t, now)
        ]
        ready.sort(key=self._sort_key)
        return ready[:limit]

    @staticmethod
    def _sort_key(task: Task) -> tuple[int, int, float, float]:
        has_deadline = task.deadline is not None
        return (
            task.priority_rank,
            0 if has_deadline else 1,
            task.deadline if has_deadline else 0.0,
            task.created_at,
        )

    @staticmethod
    def _dependencies_met(task: Task, status_by_id: dict[str, TaskStatus]) -> bool:
        """All dependencies must exist and be COMPLETED. Unknown ids count as unmet."""
        return all(
            status_by_id.get(dep_id) == TaskStatus.COMPLETED
            for dep_id in task.dependencies
        )

    @staticmethod
    def _deadline_passed(task: Task, now: float) -> bool:
        return task.deadline is not None and task.deadline <= now
