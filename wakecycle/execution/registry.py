"""
Work registry — maps task types to injected work functions.

Usage:
    registry = WorkRegistry()
    registry.register(TaskType.MEMORY_CONSOLIDATION, consolidate_memories)

    work = registry.get(TaskType.MEMORY_CONSOLIDATION)
    await work(task)

A work function is `async def fn(task: Task) -> Any`. Its return value is
ignored; raising (or timing out) is the only failure signal.
"""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Optional

from wakecycle.exceptions import WorkNotRegisteredError
from wakecycle.models.task import Task, TaskType

WorkFn = Callable[[Task], Awaitable[Any]]


class WorkRegistry:
    """Task-type → work-function table, with an optional fallback."""

    def __init__(self, fallback: Optional[WorkFn] = None) -> None:
        self._handlers: dict[TaskType, WorkFn] = {}
        self._fallback = fallback

    def register(self, task_type: TaskType | str, fn: WorkFn) -> None:
        """Register `fn` for `task_type`. Raises ValueError on duplicate."""
        key = TaskType(task_type)
        if key in self._handlers:
            raise ValueError(f"A work function is already registered for '{key.value}'")
        self._handlers[key] = fn

    def unregister(self, task_type: TaskType | str) -> None:
        self._handlers.pop(TaskType(task_type), None)

    def get(self, task_type: TaskType | str) -> WorkFn:
        """Return the work function. Raises WorkNotRegisteredError if none applies."""
        key = TaskType(task_type)
        fn = self._handlers.get(key, self._fallback)
        if fn is None:
            raise WorkNotRegisteredError(f"no work function registered for '{key.value}'")
        return fn

    def is_registered(self, task_type: TaskType | str) -> bool:
        return TaskType(task_type) in self._handlers

    @property
    def registered_types(self) -> list[TaskType]:
        return sorted(self._handlers, key=lambda t: t.value)
