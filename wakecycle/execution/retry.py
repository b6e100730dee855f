"""Retry/Failure Policy — re-queue within budget, otherwise fail permanently."""

from wakecycle.models.task import Task, TaskStatus
from wakecycle.observability.logger import get_logger
from wakecycle.store.base import TaskStore

log = get_logger(__name__)


class RetryPolicy:
    """Applied after every failed attempt.

    A re-queued task only becomes eligible in a later cycle: selection for the
    current cycle already happened before dispatch.
    """

    def __init__(self, store: TaskStore):
        self.store = store
        self.failed_tasks: dict[str, str] = {}  # task_id → reason

    async def on_failure(self, task: Task, reason: str) -> Task:
        if task.retry_attempts < task.max_retries:
            updated = await self.store.update_task(
                task.id,
                status=TaskStatus.QUEUED,
                retry_attempts=task.retry_attempts + 1,
                last_failure_reason=reason,
            )
            log.info(
                "retry.task.requeued",
                task_id=task.id,
                attempt=updated.retry_attempts,
                max_retries=updated.max_retries,
                reason=reason,
            )
            return updated

        updated = await self.store.update_task(
            task.id,
            status=TaskStatus.FAILED,
            last_failure_reason=reason,
        )
        self.failed_tasks[task.id] = reason
        log.error(
            "retry.task.failed_permanently",
            task_id=task.id,
            description=task.description,
            reason=reason,
        )
        return updated

    def reset(self) -> None:
        self.failed_tasks.clear()
