"""Task Store — abstract persistence contract for tasks and cycles."""

import asyncio
import weakref
from abc import ABC, abstractmethod
from typing import Any, Callable, Collection, Optional

from pydantic import ValidationError

from wakecycle.exceptions import StoreWriteError, TaskNotFoundError
from wakecycle.models.cycle import Cycle
from wakecycle.models.task import Task, TaskPriority, TaskStatus


class TaskStore(ABC):
    """Single source of truth for Task and Cycle records.

    Implementations must make every write visible to the next read, return
    copies from reads, and raise StoreWriteError instead of dropping a write.
    All task writes go through update_task() / transition(), which hold a
    per-id lock for the whole read-modify-write.
    """

    def __init__(self) -> None:
        # Weak values: a lock lives only while some writer holds or awaits it.
        self._task_locks: weakref.WeakValueDictionary[str, asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def task_lock(self, task_id: str) -> asyncio.Lock:
        lock = self._task_locks.get(task_id)
        if lock is None:
            lock = asyncio.Lock()
            self._task_locks[task_id] = lock
        return lock

    async def init(self) -> None:
        """Open connections / create schema. No-op by default."""

    async def close(self) -> None:
        """Release resources. No-op by default."""

    # ── Writes shared by all backends ─────────────────────────────────────────

    async def update_task(self, task_id: str, **fields: Any) -> Task:
        """Apply `fields`, re-validate, persist and return the updated task.

        Raises TaskNotFoundError for an unknown id, StoreWriteError on failure.
        """
        async with self.task_lock(task_id):
            current = await self.get_task(task_id)
            if current is None:
                raise TaskNotFoundError(f"Task {task_id!r} not found")
            return await self._apply(current, fields)

    async def transition(
        self,
        task_id: str,
        allowed_from: Collection[TaskStatus],
        changes: Callable[[Task], dict[str, Any]],
        when: Optional[Callable[[Task], bool]] = None,
    ) -> Optional[Task]:
        """Conditional update: apply changes(current) only if the current status
        is in `allowed_from` and `when(current)`, if given, is true. Returns
        None (and writes nothing) otherwise."""
        async with self.task_lock(task_id):
            current = await self.get_task(task_id)
            if current is None or current.status not in allowed_from:
                return None
            if when is not None and not when(current):
                return None
            return await self._apply(current, changes(current))

    async def _apply(self, current: Task, fields: dict[str, Any]) -> Task:
        if "id" in fields and fields["id"] != current.id:
            raise StoreWriteError(f"Task id is immutable ({current.id!r})")
        try:
            updated = Task.model_validate({**current.model_dump(), **fields})
        except ValidationError as e:
            raise StoreWriteError(f"Rejected update for {current.id!r}: {e}") from e
        await self._save(updated)
        return updated.model_copy(deep=True)

    # ── Backend hooks ─────────────────────────────────────────────────────────

    @abstractmethod
    async def _save(self, task: Task) -> None:
        """Overwrite the stored record for an existing, already validated task."""
        ...

    @abstractmethod
    async def add_task(self, task: Task) -> Task:
        """Persist a new task and return the stored copy."""
        ...

    @abstractmethod
    async def get_task(self, task_id: str) -> Optional[Task]:
        ...

    @abstractmethod
    async def list_tasks(
        self,
        status: Optional[TaskStatus] = None,
        priority: Optional[TaskPriority] = None,
    ) -> list[Task]:
        """Return tasks in insertion order, optionally filtered."""
        ...

    @abstractmethod
    async def record_cycle(self, cycle: Cycle) -> None:
        ...

    @abstractmethod
    async def list_cycles(self, limit: int = 20) -> list[Cycle]:
        """Most recent cycles first."""
        ...

    @abstractmethod
    async def clear_all(self) -> None:
        """Delete every task and cycle record."""
        ...

    @property
    def name(self) -> str:
        return self.__class__.__name__
