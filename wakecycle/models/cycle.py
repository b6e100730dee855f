"""Cycle records — immutable summaries of one wake cycle."""

import uuid
from dataclasses import dataclass
from typing import Optional


def new_cycle_id() -> str:
    return f"cycle-{uuid.uuid4().hex[:12]}"


@dataclass(frozen=True)
class CycleResult:
    """What execute_cycle() hands back to the trigger."""
    cycle_id: str
    tasks_executed: int = 0
    tasks_completed: int = 0
    tasks_failed: int = 0
    total_duration_ms: float = 0.0
    resources_warning: Optional[str] = None

    @classmethod
    def skipped(cls) -> "CycleResult":
        """All-zero result for a cycle that never started (paused or shutting down)."""
        return cls(cycle_id="")

    @property
    def was_skipped(self) -> bool:
        return self.cycle_id == ""


@dataclass(frozen=True)
class Cycle:
    """Persisted record of a cycle. Created once, never mutated."""
    id: str
    started_at: float
    tasks_executed: int
    tasks_completed: int
    tasks_failed: int
    total_duration_ms: float
    resources_warning: Optional[str] = None

    @classmethod
    def from_result(cls, result: CycleResult, started_at: float) -> "Cycle":
        return cls(
            id=result.cycle_id,
            started_at=started_at,
            tasks_executed=result.tasks_executed,
            tasks_completed=result.tasks_completed,
            tasks_failed=result.tasks_failed,
            total_duration_ms=result.total_duration_ms,
            resources_warning=result.resources_warning,
        )

