"""Error hierarchy for wakecycle.

Hierarchy:
    WakeCycleError
    ├── StoreError
    │   ├── StoreNotInitializedError
    │   ├── StoreWriteError
    │   └── TaskNotFoundError
    ├── WorkError
    │   ├── WorkNotRegisteredError
    │   └── WorkTimeoutError
    └── ConfigError

Task failures (WorkError) are recovered by the retry policy and never reach
the caller of a cycle. StoreWriteError is the only error a cycle propagates.
"""


class WakeCycleError(Exception):
    """Base class for all wakecycle exceptions."""


# ── Store ─────────────────────────────────────────────────────────────────────

class StoreError(WakeCycleError):
    """Base for persistence errors."""


class StoreNotInitializedError(StoreError):
    """The store was used before init() or after close()."""


class StoreWriteError(StoreError):
    """A write could not be persisted. Task state integrity is not guaranteed."""


class TaskNotFoundError(StoreError):
    """No task with the requested id exists in the store."""


# ── Work ──────────────────────────────────────────────────────────────────────

class WorkError(WakeCycleError):
    """Base for failures of a task's work function."""


class WorkNotRegisteredError(WorkError):
    """No work function is registered for the task's type."""


class WorkTimeoutError(WorkError):
    """The work function did not finish within task_timeout_s."""


# ── Config ────────────────────────────────────────────────────────────────────

class ConfigError(WakeCycleError):
    """Configuration file could not be read or failed validation."""
