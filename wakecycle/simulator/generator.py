"""Scenario generator — creates reproducible task workloads for simulation."""

import random
from dataclasses import dataclass, field
from typing import Any, Optional

from wakecycle.models.task import TaskPriority, TaskType


@dataclass
class TaskSpec:
    """Arguments for one CognitiveScheduler.add_task() call.

    Dependencies are indexes into the generated list, because task ids only
    exist once the scheduler has stored the task.
    """
    task_type: TaskType
    description: str
    priority: TaskPriority
    estimated_duration_ms: int
    deadline_offset_s: Optional[float] = None
    depends_on: list[int] = field(default_factory=list)
    max_retries: Optional[int] = None
    payload: dict[str, Any] = field(default_factory=dict)


class ScenarioGenerator:
    """Generates deterministic workloads using a seeded RNG."""

    def __init__(self, seed: int = 42):
        self.rng = random.Random(seed)
        self._task_counter = 0

    def generate_tasks(
        self,
        num_tasks: int = 20,
        deadline_probability: float = 0.3,
        deadline_range_s: tuple[float, float] = (0.5, 30.0),
        dependency_density: float = 0.15,
        duration_range_ms: tuple[int, int] = (50, 2000),
        task_types: Optional[list[TaskType]] = None,
    ) -> list[TaskSpec]:
        """Generate task specs. Dependencies only reference earlier specs (DAG)."""
        if task_types is None:
            task_types = list(TaskType)

        priorities = list(TaskPriority)
        # Skewed towards medium/low, as background work mostly is
        priority_weights = [0.1, 0.2, 0.4, 0.3]

        specs: list[TaskSpec] = []
        for i in range(num_tasks):
            self._task_counter += 1
            task_type = self.rng.choice(task_types)
            priority = self.rng.choices(priorities, weights=priority_weights, k=1)[0]
            duration = self.rng.randint(*duration_range_ms)

            deadline_offset = None
            if self.rng.random() < deadline_probability:
                deadline_offset = round(self.rng.uniform(*deadline_range_s), 2)

            depends_on: list[int] = []
            if specs and dependency_density > 0:
                for earlier in self.rng.sample(range(len(specs)), min(len(specs), 3)):
                    if self.rng.random() < dependency_density:
                        depends_on.append(earlier)

            specs.append(TaskSpec(
                task_type=task_type,
                description=f"{task_type.value.replace('_', ' ')} #{self._task_counter:04d}",
                priority=priority,
                estimated_duration_ms=duration,
                deadline_offset_s=deadline_offset,
                depends_on=sorted(depends_on),
            ))

        return specs
