"""Executor — runs one task to completion, failure or timeout."""

import asyncio
import time
from dataclasses import dataclass
from typing import Callable, Optional

from wakecycle.exceptions import WorkTimeoutError
from wakecycle.execution.registry import WorkRegistry
from wakecycle.execution.retry import RetryPolicy
from wakecycle.models.task import Task, TaskStatus
from wakecycle.observability.logger import get_logger
from wakecycle.store.base import TaskStore

log = get_logger(__name__)


@dataclass(frozen=True)
class TaskOutcome:
    """Result of one attempt."""
    task_id: str
    success: bool
    duration_ms: float
    final_status: TaskStatus
    reason: Optional[str] = None

    @property
    def requeued(self) -> bool:
        return not self.success and self.final_status == TaskStatus.QUEUED


class Executor:
    """Runs work functions and records their outcome in the store.

    The RUNNING write happens before the work function is awaited, so a crash
    mid-task leaves the task observably RUNNING. Store errors propagate; only
    work-function errors and timeouts are turned into a failed outcome.
    """

    def __init__(
        self,
        store: TaskStore,
        registry: WorkRegistry,
        retry_policy: RetryPolicy,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.registry = registry
        self.retry_policy = retry_policy
        self._clock = clock
        self._running: set[str] = set()

    @property
    def running_task_ids(self) -> frozenset[str]:
        return frozenset(self._running)

    @property
    def running_count(self) -> int:
        return len(self._running)

    async def execute(self, task: Task, timeout_s: float) -> Optional[TaskOutcome]:
        """Run one attempt. Returns None if, at dispatch time, the task was no
        longer QUEUED (cancelled, paused or already claimed) or its deadline
        had passed. Such a task is not run and keeps its status."""
        if task.id in self._running:
            log.warning("executor.task.already_running", task_id=task.id)
            return None

        self._running.add(task.id)
        try:
            claimed = await self.store.transition(
                task.id,
                {TaskStatus.QUEUED},
                lambda current: {
                    "status": TaskStatus.RUNNING,
                    "executed_count": current.executed_count + 1,
                },
                when=self._startable,
            )
            if claimed is None:
                log.info("executor.task.skipped", task_id=task.id,
                         reason="no longer queued or past deadline")
                return None
            task = claimed
            log.info("executor.task.start", task_id=task.id, type=task.type.value,
                     description=task.description, attempt=task.executed_count)

            started = time.perf_counter()
            reason: Optional[str] = None
            try:
                await self._run_work(task, timeout_s)
            except Exception as e:
                reason = str(e) or e.__class__.__name__
            duration_ms = (time.perf_counter() - started) * 1000.0

            if reason is None:
                await self.store.update_task(
                    task.id,
                    status=TaskStatus.COMPLETED,
                    actual_duration_ms=duration_ms,
                )
                log.info("executor.task.completed", task_id=task.id, duration_ms=round(duration_ms, 1))
                return TaskOutcome(task.id, True, duration_ms, TaskStatus.COMPLETED)

            failed = await self.store.update_task(
                task.id,
                status=TaskStatus.FAILED,
                failure_count=task.failure_count + 1,
                last_failure_reason=reason,
                actual_duration_ms=duration_ms,
            )
            log.warning("executor.task.failed", task_id=task.id, reason=reason,
                        failure_count=failed.failure_count)
            final = await self.retry_policy.on_failure(failed, reason)
            return TaskOutcome(task.id, False, duration_ms, final.status, reason)
        finally:
            self._running.discard(task.id)

    def _startable(self, task: Task) -> bool:
        return task.deadline is None or task.deadline > self._clock()

    async def _run_work(self, task: Task, timeout_s: float) -> None:
        """Await the work function. Any exception it raises is a task failure."""
        work = self.registry.get(task.type)
        try:
            await asyncio.wait_for(work(task), timeout=timeout_s)
        except asyncio.TimeoutError as e:
            raise WorkTimeoutError(f"Task timeout after {timeout_s:g}s") from e
