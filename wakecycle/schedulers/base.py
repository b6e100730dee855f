"""Base Selector — abstract interface for choosing which tasks run in a cycle."""

from abc import ABC, abstractmethod

from wakecycle.models.task import Task


class BaseSelector(ABC):
    """Abstract base class for readiness selection. Subclasses implement select()."""

    @abstractmethod
    def select(self, tasks: list[Task], now: float, limit: int) -> list[Task]:
        """Return at most `limit` tasks eligible to start at `now`, in dispatch order."""
        ...

    @property
    def name(self) -> str:
        """Human-readable selector name for logs and reports."""
        return self.__class__.__name__
