"""Resource Guard — decides whether a cycle proceeds, throttles or aborts.

How load is measured is host-specific and lives behind LoadSampler. The guard
only owns the policy:

    balancing disabled            → PROCEED, ok
    under both thresholds         → PROCEED, ok
    over a threshold, sensitivity → high: ABORT, medium: THROTTLE, low: PROCEED
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import psutil

from wakecycle.config.settings import InterruptSensitivity, SchedulerConfig


class GuardAction(str, Enum):
    PROCEED = "proceed"     # dispatch normally
    THROTTLE = "throttle"   # dispatch one task at a time
    ABORT = "abort"         # dispatch nothing this cycle


@dataclass(frozen=True)
class ResourceSample:
    """A single load measurement, both values in percent."""
    cpu_percent: float
    memory_percent: float


@dataclass(frozen=True)
class ResourceCheck:
    ok: bool
    action: GuardAction = GuardAction.PROCEED
    reason: Optional[str] = None
    sample: Optional[ResourceSample] = None


class LoadSampler(ABC):
    """Source of host load measurements."""

    @abstractmethod
    def sample(self) -> ResourceSample:
        ...


class PsutilSampler(LoadSampler):
    """Samples the host with psutil.

    cpu_percent(interval=None) compares against the previous call, so the
    constructor primes it once; the first cycle then sees a real value.
    """

    def __init__(self) -> None:
        psutil.cpu_percent(interval=None)

    def sample(self) -> ResourceSample:
        return ResourceSample(
            cpu_percent=psutil.cpu_percent(interval=None),
            memory_percent=psutil.virtual_memory().percent,
        )


class StaticSampler(LoadSampler):
    """Fixed readings. Used by tests and the simulator."""

    def __init__(self, cpu_percent: float = 0.0, memory_percent: float = 0.0):
        self.cpu_percent = cpu_percent
        self.memory_percent = memory_percent

    def sample(self) -> ResourceSample:
        return ResourceSample(cpu_percent=self.cpu_percent, memory_percent=self.memory_percent)


_ACTION_BY_SENSITIVITY: dict[InterruptSensitivity, GuardAction] = {
    InterruptSensitivity.HIGH: GuardAction.ABORT,
    InterruptSensitivity.MEDIUM: GuardAction.THROTTLE,
    InterruptSensitivity.LOW: GuardAction.PROCEED,
}


class ResourceGuard:
    """Applies the configured thresholds to a sampler reading."""

    def __init__(self, sampler: LoadSampler):
        self.sampler = sampler

    def check(self, config: SchedulerConfig) -> ResourceCheck:
        if not config.enable_resource_balancing:
            return ResourceCheck(ok=True)

        sample = self.sampler.sample()
        reason = self._over_threshold(sample, config)
        if reason is None:
            return ResourceCheck(ok=True, sample=sample)

        return ResourceCheck(
            ok=False,
            action=_ACTION_BY_SENSITIVITY[config.interrupt_sensitivity],
            reason=reason,
            sample=sample,
        )

    @staticmethod
    def _over_threshold(sample: ResourceSample, config: SchedulerConfig) -> Optional[str]:
        """CPU is reported first when both are exceeded."""
        if sample.cpu_percent > config.cpu_threshold:
            return f"CPU usage high: {sample.cpu_percent:.1f}%"
        if sample.memory_percent > config.memory_threshold:
            return f"Memory usage high: {sample.memory_percent:.1f}%"
        return None
