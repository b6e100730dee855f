"""Shared fixtures: a controllable clock, recording work functions, scheduler factory."""

import asyncio

import pytest

from wakecycle.config.settings import SchedulerConfig
from wakecycle.coordinator.scheduler import CognitiveScheduler
from wakecycle.execution.registry import WorkRegistry
from wakecycle.guard.resource_guard import StaticSampler
from wakecycle.store.memory import InMemoryTaskStore


class FakeClock:
    """Wall clock that only moves when told to."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingWork:
    """Work function that records calls and tracks how many run at once."""

    def __init__(self, delay_s: float = 0.0, fail_times: int = 0, error: str = "boom"):
        self.delay_s = delay_s
        self.fail_times = fail_times
        self.error = error
        self.calls: list[str] = []
        self.active = 0
        self.max_active = 0

    async def __call__(self, task) -> None:
        self.calls.append(task.id)
        attempt = len(self.calls)
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            delay = (task.payload or {}).get("delay_s", self.delay_s)
            if delay:
                await asyncio.sleep(delay)
            if attempt <= self.fail_times:
                raise RuntimeError(self.error)
        finally:
            self.active -= 1


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def work() -> RecordingWork:
    return RecordingWork()


@pytest.fixture
def make_scheduler(clock):
    """Factory: scheduler on an in-memory store with a calm host by default."""

    def _make(
        work_fn=None,
        cpu: float = 10.0,
        memory: float = 10.0,
        store=None,
        **config_overrides,
    ) -> CognitiveScheduler:
        registry = WorkRegistry(fallback=work_fn or RecordingWork())
        return CognitiveScheduler(
            store=store or InMemoryTaskStore(),
            registry=registry,
            config=SchedulerConfig(**config_overrides),
            sampler=StaticSampler(cpu_percent=cpu, memory_percent=memory),
            clock=clock,
        )

    return _make
