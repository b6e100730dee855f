from wakecycle.store.base import TaskStore
from wakecycle.store.memory import InMemoryTaskStore
from wakecycle.store.sqlite import SQLiteTaskStore

__all__ = ["TaskStore", "InMemoryTaskStore", "SQLiteTaskStore"]
