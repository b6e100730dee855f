"""
Cognitive Scheduler — runs background work in discrete wake cycles.

One cycle, end to end:
    guard check → select ready tasks → bounded dispatch → retry routing → cycle record

The host constructs one CognitiveScheduler, injects a store, a work registry
and a load sampler, and calls execute_cycle() whenever its own trigger fires
(timer, idle detection, ...). There is no internal timer loop.

Usage:
    registry = WorkRegistry()
    registry.register(TaskType.MEMORY_CONSOLIDATION, consolidate)

    scheduler = CognitiveScheduler(store=SQLiteTaskStore(path), registry=registry)
    await scheduler.initialize()
    await scheduler.add_task(TaskType.MEMORY_CONSOLIDATION, "Nightly consolidation", "high")
    result = await scheduler.execute_cycle()
    await scheduler.shutdown()
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Any, Callable, Optional

from wakecycle.config.settings import SchedulerConfig, StaleRunningPolicy
from wakecycle.execution.executor import Executor, TaskOutcome
from wakecycle.execution.registry import WorkRegistry
from wakecycle.execution.retry import RetryPolicy
from wakecycle.guard.resource_guard import GuardAction, LoadSampler, PsutilSampler, ResourceGuard
from wakecycle.metrics.collector import SchedulerStats, StatsCollector
from wakecycle.models.cycle import Cycle, CycleResult, new_cycle_id
from wakecycle.models.task import (
    CANCELLABLE_STATUSES,
    Task,
    TaskPriority,
    TaskStatus,
    TaskType,
)
from wakecycle.observability.logger import bind_cycle, clear_cycle, get_logger
from wakecycle.schedulers.base import BaseSelector
from wakecycle.schedulers.readiness import ReadinessSelector
from wakecycle.store.base import TaskStore
from wakecycle.store.memory import InMemoryTaskStore

log = get_logger(__name__)

RESTART_FAILURE_REASON = "interrupted by restart"


class CognitiveScheduler:
    """Priority- and deadline-aware wake-cycle scheduler.

    Cycles never overlap: execute_cycle() holds a lock for its whole run.
    Inside a cycle at most max_concurrent_tasks work functions run at once.
    """

    def __init__(
        self,
        store: Optional[TaskStore] = None,
        registry: Optional[WorkRegistry] = None,
        config: Optional[SchedulerConfig] = None,
        sampler: Optional[LoadSampler] = None,
        selector: Optional[BaseSelector] = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Args:
            store:    Persistence backend. Defaults to an InMemoryTaskStore.
            registry: Task-type → work-function table.
            config:   Initial SchedulerConfig (defaults if omitted).
            sampler:  Host load source for the resource guard. Defaults to psutil.
            selector: Readiness selection strategy.
            clock:    Wall clock in epoch seconds; used for created_at, deadlines
                      and cycle start times.
        """
        self.store = store or InMemoryTaskStore()
        self.registry = registry or WorkRegistry()
        self.selector = selector or ReadinessSelector()
        self.guard = ResourceGuard(sampler or PsutilSampler())
        self.retry_policy = RetryPolicy(self.store)
        self.executor = Executor(self.store, self.registry, self.retry_policy, clock=clock)
        self.stats_collector = StatsCollector()
        self._clock = clock

        self._config = config or SchedulerConfig()
        self._completed: set[str] = set()
        self._cycle_history: deque[float] = deque(maxlen=self._config.cycle_history_size)
        self._cycles_executed = 0

        self._cycle_lock = asyncio.Lock()
        self._paused = False
        self._shutting_down = False

    # ── State ─────────────────────────────────────────────────────────────────

    @property
    def config(self) -> SchedulerConfig:
        return self._config

    def now(self) -> float:
        return self._clock()

    @property
    def is_paused(self) -> bool:
        return self._paused

    @property
    def is_shutting_down(self) -> bool:
        return self._shutting_down

    @property
    def running_task_ids(self) -> frozenset[str]:
        return self.executor.running_task_ids

    @property
    def completed_task_ids(self) -> frozenset[str]:
        return frozenset(self._completed)

    @property
    def failed_tasks(self) -> dict[str, str]:
        """Permanently failed task id → reason."""
        return dict(self.retry_policy.failed_tasks)

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def initialize(self) -> None:
        """Open the store, rebuild in-memory mirrors and reconcile stale RUNNING tasks."""
        await self.store.init()

        tasks = await self.store.list_tasks()
        self._completed = {t.id for t in tasks if t.status == TaskStatus.COMPLETED}
        self.retry_policy.reset()
        for t in tasks:
            if t.status == TaskStatus.FAILED:
                self.retry_policy.failed_tasks[t.id] = t.last_failure_reason or ""

        stale = [t for t in tasks if t.status == TaskStatus.RUNNING]
        if stale:
            await self._reconcile_stale(stale)

        log.info("scheduler.initialized", store=self.store.name, tasks=len(tasks),
                 stale_running=len(stale))

    async def _reconcile_stale(self, stale: list[Task]) -> None:
        policy = self._config.stale_running_policy
        if policy == StaleRunningPolicy.LEAVE:
            log.warning("scheduler.stale_running.left", task_ids=[t.id for t in stale],
                        hint="set stale_running_policy to requeue or fail to recover them")
            return

        for task in stale:
            if policy == StaleRunningPolicy.REQUEUE:
                await self.store.update_task(task.id, status=TaskStatus.QUEUED)
                log.info("scheduler.stale_running.requeued", task_id=task.id)
            else:
                failed = await self.store.update_task(
                    task.id,
                    status=TaskStatus.FAILED,
                    failure_count=task.failure_count + 1,
                    last_failure_reason=RESTART_FAILURE_REASON,
                )
                await self.retry_policy.on_failure(failed, RESTART_FAILURE_REASON)

    async def shutdown(self) -> None:
        """Reject new cycles and wait for the active cycle and its running
        tasks to drain.

        A cycle already in progress starts no further tasks. Running work is
        never cancelled. If work is still in flight when shutdown_timeout_s
        elapses, a warning is logged and shutdown returns.
        """
        self._shutting_down = True
        log.info("scheduler.shutdown.start", running=self.executor.running_count)

        timeout = self._config.shutdown_timeout_s
        poll = self._config.shutdown_poll_interval_s
        deadline = time.monotonic() + timeout
        while self._draining() and time.monotonic() < deadline:
            await asyncio.sleep(poll)

        if self._draining():
            log.warning("scheduler.shutdown.tasks_still_running",
                        count=self.executor.running_count,
                        task_ids=sorted(self.executor.running_task_ids),
                        cycle_active=self._cycle_lock.locked(),
                        timeout_s=timeout)
        log.info("scheduler.shutdown.complete")

    def _draining(self) -> bool:
        return self._cycle_lock.locked() or self.executor.running_count > 0

    async def close(self) -> None:
        """Release the store's resources."""
        await self.store.close()

    def pause(self) -> None:
        """Skip future cycles. A cycle already in progress runs to completion."""
        self._paused = True
        log.info("scheduler.paused")

    def resume(self) -> None:
        self._paused = False
        log.info("scheduler.resumed")

    # ── Task management ───────────────────────────────────────────────────────

    async def add_task(
        self,
        task_type: TaskType | str,
        description: str,
        priority: TaskPriority | str = TaskPriority.MEDIUM,
        *,
        deadline: Optional[float] = None,
        estimated_duration_ms: int = 5000,
        payload: Optional[dict[str, Any]] = None,
        parent_goal_id: Optional[str] = None,
        dependencies: Optional[list[str]] = None,
        max_retries: Optional[int] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> Task:
        """Queue a new task. Invalid arguments raise pydantic.ValidationError."""
        task = Task(
            type=task_type,
            description=description,
            priority=priority,
            created_at=self._clock(),
            deadline=deadline,
            estimated_duration_ms=estimated_duration_ms,
            payload=payload,
            parent_goal_id=parent_goal_id,
            dependencies=list(dependencies or []),
            max_retries=self._config.default_max_retries if max_retries is None else max_retries,
            metadata=metadata,
        )
        stored = await self.store.add_task(task)
        log.info("scheduler.task_added", task_id=stored.id, type=stored.type.value,
                 priority=stored.priority.value, description=description)
        return stored

    async def get_task(self, task_id: str) -> Optional[Task]:
        return await self.store.get_task(task_id)

    async def get_tasks(
        self,
        status: Optional[TaskStatus | str] = None,
        priority: Optional[TaskPriority | str] = None,
    ) -> list[Task]:
        return await self.store.list_tasks(
            status=TaskStatus(status) if status is not None else None,
            priority=TaskPriority(priority) if priority is not None else None,
        )

    async def cancel_task(self, task_id: str) -> bool:
        """Cancel a QUEUED or PAUSED task. Returns False from any other state."""
        cancelled = await self.store.transition(
            task_id, CANCELLABLE_STATUSES, lambda _: {"status": TaskStatus.CANCELLED}
        )
        if cancelled is None:
            log.info("scheduler.cancel_rejected", task_id=task_id)
            return False
        log.info("scheduler.task_cancelled", task_id=task_id)
        return True

    async def pause_task(self, task_id: str) -> bool:
        """Park a QUEUED task so the selector ignores it."""
        paused = await self.store.transition(
            task_id, {TaskStatus.QUEUED}, lambda _: {"status": TaskStatus.PAUSED}
        )
        return paused is not None

    async def resume_task(self, task_id: str) -> bool:
        """Return a PAUSED task to the queue."""
        resumed = await self.store.transition(
            task_id, {TaskStatus.PAUSED}, lambda _: {"status": TaskStatus.QUEUED}
        )
        return resumed is not None

    # ── Configuration ─────────────────────────────────────────────────────────

    def update_config(self, **updates: Any) -> bool:
        """Merge a partial update. Returns False (config unchanged) if invalid."""
        try:
            new_config = self._config.merged(**updates)
        except ValueError as e:
            log.warning("scheduler.config_rejected", error=str(e), fields=sorted(updates))
            return False
        self._apply_config(new_config)
        log.info("scheduler.config_updated", fields=sorted(updates))
        return True

    def replace_config(self, config: SchedulerConfig) -> None:
        self._apply_config(config)
        log.info("scheduler.config_replaced")

    def _apply_config(self, config: SchedulerConfig) -> None:
        if config.cycle_history_size != self._cycle_history.maxlen:
            self._cycle_history = deque(self._cycle_history, maxlen=config.cycle_history_size)
        self._config = config

    # ── Cycle ─────────────────────────────────────────────────────────────────

    async def execute_cycle(self) -> CycleResult:
        """Run one wake cycle.

        Returns an all-zero result without touching the store when paused or
        shutting down. Task failures are absorbed by the retry policy; only a
        store write failure (StoreWriteError) propagates.
        """
        async with self._cycle_lock:
            if self._paused or self._shutting_down:
                log.info("scheduler.cycle.skipped", paused=self._paused,
                         shutting_down=self._shutting_down)
                return CycleResult.skipped()

            cycle_id = new_cycle_id()
            bind_cycle(cycle_id)
            try:
                return await self._run_cycle(cycle_id)
            finally:
                clear_cycle()

    async def _run_cycle(self, cycle_id: str) -> CycleResult:
        config = self._config
        started_at = self._clock()
        t0 = time.perf_counter()
        log.info("scheduler.cycle.start")

        warning: Optional[str] = None
        concurrency = config.max_concurrent_tasks

        check = self.guard.check(config)
        if not check.ok:
            warning = f"Resource warning: {check.reason}"
            log.warning("scheduler.cycle.resource_warning", reason=check.reason,
                        action=check.action.value)
            if check.action == GuardAction.ABORT:
                result = CycleResult(
                    cycle_id=cycle_id,
                    total_duration_ms=(time.perf_counter() - t0) * 1000.0,
                    resources_warning=warning,
                )
                return await self._finish_cycle(result, started_at)
            if check.action == GuardAction.THROTTLE:
                concurrency = 1

        tasks = await self.store.list_tasks()
        ready = self.selector.select(tasks, started_at, config.max_tasks_per_cycle)
        log.debug("scheduler.cycle.selected", task_ids=[t.id for t in ready],
                  concurrency=concurrency)

        outcomes = await self._dispatch(ready, concurrency, config.task_timeout_s)

        completed = sum(1 for o in outcomes if o.success)

        result = CycleResult(
            cycle_id=cycle_id,
            tasks_executed=len(outcomes),
            tasks_completed=completed,
            tasks_failed=len(outcomes) - completed,
            total_duration_ms=(time.perf_counter() - t0) * 1000.0,
            resources_warning=warning,
        )
        return await self._finish_cycle(result, started_at)

    async def _dispatch(
        self,
        ready: list[Task],
        concurrency: int,
        timeout_s: float,
    ) -> list[TaskOutcome]:
        """Run `ready` with at most `concurrency` in flight, in selection order.

        After a store error no further task is started; tasks already in
        flight finish, then the first error is re-raised. Once shutdown has
        begun, tasks not yet started are left queued.
        """
        semaphore = asyncio.Semaphore(concurrency)
        halted = asyncio.Event()

        async def run_one(task: Task) -> Optional[TaskOutcome]:
            async with semaphore:
                if halted.is_set() or self._shutting_down:
                    return None
                try:
                    outcome = await self.executor.execute(task, timeout_s)
                except Exception:
                    halted.set()
                    raise
                if outcome is not None and outcome.success:
                    self._completed.add(outcome.task_id)
                return outcome

        results = await asyncio.gather(*(run_one(t) for t in ready), return_exceptions=True)

        errors = [r for r in results if isinstance(r, BaseException)]
        if errors:
            log.error("scheduler.cycle.aborted", error=str(errors[0]),
                      error_type=type(errors[0]).__name__, failures=len(errors))
            raise errors[0]
        return [r for r in results if r is not None]

    async def _finish_cycle(self, result: CycleResult, started_at: float) -> CycleResult:
        await self.store.record_cycle(Cycle.from_result(result, started_at))
        self._cycle_history.append(started_at)
        self._cycles_executed += 1
        log.info("scheduler.cycle.complete",
                 executed=result.tasks_executed,
                 completed=result.tasks_completed,
                 failed=result.tasks_failed,
                 duration_ms=round(result.total_duration_ms, 1),
                 warning=result.resources_warning)
        return result

    # ── Stats & history ───────────────────────────────────────────────────────

    async def get_stats(self) -> SchedulerStats:
        tasks = await self.store.list_tasks()
        last = self._cycle_history[-1] if self._cycle_history else None
        return self.stats_collector.calculate(tasks, self._cycles_executed, last)

    def get_cycle_history(self, limit: int = 20) -> list[float]:
        """Start times of the most recent cycles, oldest first."""
        if limit <= 0:
            return []
        return list(self._cycle_history)[-limit:]

    async def get_cycles(self, limit: int = 20) -> list[Cycle]:
        """Persisted cycle records, most recent first."""
        return await self.store.list_cycles(limit)

    async def mirrors_consistent(self) -> bool:
        """True when the in-memory running/completed/failed mirrors match the store."""
        tasks = await self.store.list_tasks()
        running = {t.id for t in tasks if t.status == TaskStatus.RUNNING}
        completed = {t.id for t in tasks if t.status == TaskStatus.COMPLETED}
        failed = {t.id for t in tasks if t.status == TaskStatus.FAILED}
        return (
            running == set(self.executor.running_task_ids)
            and completed == self._completed
            and failed == set(self.retry_policy.failed_tasks)
        )

    async def clear_all(self) -> None:
        """Delete every task and cycle record and reset the mirrors."""
        await self.store.clear_all()
        self._completed.clear()
        self.retry_policy.reset()
        self._cycle_history.clear()
        self._cycles_executed = 0
        log.warning("scheduler.cleared")
