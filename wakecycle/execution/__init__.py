from wakecycle.execution.executor import Executor, TaskOutcome
from wakecycle.execution.registry import WorkFn, WorkRegistry
from wakecycle.execution.retry import RetryPolicy

__all__ = ["Executor", "TaskOutcome", "WorkFn", "WorkRegistry", "RetryPolicy"]
