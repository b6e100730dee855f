"""In-memory Task Store."""

from typing import Optional

from wakecycle.exceptions import StoreWriteError
from wakecycle.models.cycle import Cycle
from wakecycle.models.task import Task, TaskPriority, TaskStatus
from wakecycle.store.base import TaskStore


class InMemoryTaskStore(TaskStore):
    """Dict-backed store. Nothing survives the process."""

    def __init__(self) -> None:
        super().__init__()
        self._tasks: dict[str, Task] = {}
        self._cycles: list[Cycle] = []

    async def add_task(self, task: Task) -> Task:
        if task.id in self._tasks:
            raise StoreWriteError(f"Task {task.id!r} already exists")
        self._tasks[task.id] = task.model_copy(deep=True)
        return task.model_copy(deep=True)

    async def _save(self, task: Task) -> None:
        self._tasks[task.id] = task.model_copy(deep=True)

    async def get_task(self, task_id: str) -> Optional[Task]:
        task = self._tasks.get(task_id)
        return task.model_copy(deep=True) if task is not None else None

    async def list_tasks(
        self,
        status: Optional[TaskStatus] = None,
        priority: Optional[TaskPriority] = None,
    ) -> list[Task]:
        return [
            t.model_copy(deep=True)
            for t in self._tasks.values()
            if (status is None or t.status == status)
            and (priority is None or t.priority == priority)
        ]

    async def record_cycle(self, cycle: Cycle) -> None:
        self._cycles.append(cycle)

    async def list_cycles(self, limit: int = 20) -> list[Cycle]:
        return list(reversed(self._cycles[-limit:])) if limit > 0 else []

    async def clear_all(self) -> None:
        self._tasks.clear()
        self._cycles.clear()
        self._task_locks.clear()
