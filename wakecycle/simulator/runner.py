"""Drives a CognitiveScheduler through a generated scenario."""

import asyncio

from wakecycle.coordinator.scheduler import CognitiveScheduler
from wakecycle.models.cycle import CycleResult
from wakecycle.models.task import Task
from wakecycle.simulator.generator import TaskSpec


async def populate(scheduler: CognitiveScheduler, specs: list[TaskSpec]) -> list[Task]:
    """Add every TaskSpec to the scheduler, resolving index dependencies to ids."""
    tasks: list[Task] = []
    now = scheduler.now()
    for spec in specs:
        deadline = now + spec.deadline_offset_s if spec.deadline_offset_s is not None else None
        task = await scheduler.add_task(
            spec.task_type,
            spec.description,
            spec.priority,
            deadline=deadline,
            estimated_duration_ms=spec.estimated_duration_ms,
            dependencies=[tasks[i].id for i in spec.depends_on],
            max_retries=spec.max_retries,
            payload=spec.payload or None,
        )
        tasks.append(task)
    return tasks


async def run_cycles(
    scheduler: CognitiveScheduler,
    num_cycles: int,
    interval_s: float = 0.0,
) -> list[CycleResult]:
    """Trigger `num_cycles` cycles back to back, sleeping `interval_s` between them."""
    results: list[CycleResult] = []
    for i in range(num_cycles):
        results.append(await scheduler.execute_cycle())
        if interval_s > 0 and i < num_cycles - 1:
            await asyncio.sleep(interval_s)
    return results
