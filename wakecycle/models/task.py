"""Task model — the unit of schedulable background work."""

import time
import uuid
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class TaskStatus(str, Enum):
    """Lifecycle states: QUEUED → RUNNING → COMPLETED | QUEUED (retry) | FAILED.

    QUEUED and PAUSED may also move to CANCELLED on external request.
    """
    QUEUED = "queued"
    RUNNING = "running"
    PAUSED = "paused"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class TaskPriority(str, Enum):
    """Fixed priority scale. CRITICAL runs before HIGH, and so on."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return PRIORITY_RANK[self]


PRIORITY_RANK: dict[TaskPriority, int] = {
    TaskPriority.CRITICAL: 0,
    TaskPriority.HIGH: 1,
    TaskPriority.MEDIUM: 2,
    TaskPriority.LOW: 3,
}


class TaskType(str, Enum):
    """Work categories. The scheduler treats these as opaque registry keys."""
    MEMORY_CONSOLIDATION = "memory_consolidation"
    PATTERN_ANALYSIS = "pattern_analysis"
    INSIGHT_GENERATION = "insight_generation"
    GOAL_EVALUATION = "goal_evaluation"
    ENTITY_EXTRACTION = "entity_extraction"
    KB_MAINTENANCE = "kb_maintenance"
    USER_MODEL_UPDATE = "user_model_update"
    CUSTOM = "custom"


TERMINAL_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED})
CANCELLABLE_STATUSES = frozenset({TaskStatus.QUEUED, TaskStatus.PAUSED})


def new_task_id() -> str:
    return f"task-{uuid.uuid4().hex}"


class Task(BaseModel):
    """A unit of background work run during a wake cycle."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(default_factory=new_task_id, description="Unique task identifier")
    type: TaskType = Field(description="Work category, used to look up the work function")
    description: str = Field(default="", description="Human-readable summary")
    priority: TaskPriority = Field(default=TaskPriority.MEDIUM, description="Scheduling priority")
    status: TaskStatus = Field(default=TaskStatus.QUEUED, description="Current lifecycle state")
    created_at: float = Field(default_factory=time.time, description="Creation time, epoch seconds")
    deadline: Optional[float] = Field(default=None, description="Not eligible to start at or after this time")
    estimated_duration_ms: int = Field(default=5000, gt=0, description="Planning hint, never enforced")
    actual_duration_ms: Optional[float] = Field(default=None, ge=0, description="Duration of the latest attempt")
    executed_count: int = Field(default=0, ge=0, description="Times the work function was invoked")
    failure_count: int = Field(default=0, ge=0, description="Times an attempt failed")
    last_failure_reason: Optional[str] = Field(default=None, description="Cause of the latest failure")
    dependencies: list[str] = Field(default_factory=list, description="Task IDs that must complete first")
    retry_attempts: int = Field(default=0, ge=0, description="Re-queues consumed so far")
    max_retries: int = Field(default=3, ge=0, description="Retry budget")
    payload: Optional[dict[str, Any]] = Field(default=None, description="Opaque data for the work function")
    parent_goal_id: Optional[str] = Field(default=None, description="Linked goal, if any")
    metadata: Optional[dict[str, Any]] = Field(default=None, description="Opaque caller metadata")

    @model_validator(mode="after")
    def _retry_budget(self) -> "Task":
        if self.retry_attempts > self.max_retries:
            raise ValueError(
                f"retry_attempts ({self.retry_attempts}) exceeds max_retries ({self.max_retries})"
            )
        return self

    @property
    def priority_rank(self) -> int:
        return self.priority.rank

    @property
    def is_terminal(self) -> bool:
        """True once the task can never run again."""
        return self.status in TERMINAL_STATUSES

    @property
    def retries_remaining(self) -> int:
        return self.max_retries - self.retry_attempts

    def __repr__(self) -> str:
        return (
            f"Task(id={self.id!r}, type={self.type.value}, "
            f"priority={self.priority.value}, status={self.status.value})"
        )
