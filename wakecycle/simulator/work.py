"""Simulated work — a stand-in work function with injectable failures.

Each attempt fails independently with a fixed probability, which models flaky
downstream services. A large time_scale pushes sleeps past the task timeout.
"""

import asyncio
import random

from wakecycle.models.task import Task


class SimulatedWorkError(RuntimeError):
    """Raised by SimulatedWork when an injected failure fires."""


class SimulatedWork:
    """Callable work function: sleeps for a scaled estimated duration and
    fails at random.

    Usage:
        work = SimulatedWork(failure_probability=0.1, time_scale=0.01, seed=42)
        registry = WorkRegistry(fallback=work)
    """

    def __init__(
        self,
        failure_probability: float = 0.0,
        time_scale: float = 0.01,
        max_sleep_s: float = 5.0,
        seed: int = 42,
    ):
        """
        Args:
            failure_probability: Chance that an attempt raises SimulatedWorkError.
            time_scale: Sleep = estimated_duration_ms / 1000 * time_scale seconds.
            max_sleep_s: Upper bound on a single sleep.
            seed: RNG seed for reproducibility.
        """
        if not 0.0 <= failure_probability <= 1.0:
            raise ValueError("failure_probability must be within [0, 1]")
        self.failure_probability = failure_probability
        self.time_scale = time_scale
        self.max_sleep_s = max_sleep_s
        self.rng = random.Random(seed)
        self.calls: list[str] = []

    async def __call__(self, task: Task) -> None:
        self.calls.append(task.id)
        fails = self.rng.random() < self.failure_probability
        sleep_s = min(task.estimated_duration_ms / 1000.0 * self.time_scale, self.max_sleep_s)
        await asyncio.sleep(sleep_s)
        if fails:
            raise SimulatedWorkError(f"injected failure in {task.type.value}")
