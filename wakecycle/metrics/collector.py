"""Stats Collector — derives scheduler counters from the task store."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from wakecycle.models.task import Task, TaskPriority, TaskStatus

try:
    from rich.console import Console
    from rich.panel import Panel
    from rich.table import Table
    HAS_RICH = True
except ImportError:
    HAS_RICH = False


@dataclass
class SchedulerStats:
    """Container for all computed counters."""
    total_tasks: int = 0
    queued_tasks: int = 0
    running_tasks: int = 0
    completed_tasks: int = 0
    failed_tasks: int = 0
    average_task_duration_ms: float = 0.0
    success_rate: float = 0.0           # percent of finished tasks that completed
    cycles_executed: int = 0
    last_cycle_time: Optional[float] = None
    per_priority_queued: dict[str, int] = field(default_factory=dict)


class StatsCollector:
    """Computes and reports scheduler statistics.

    calculate() is a pure function of its inputs, so two calls over an
    unchanged store give identical results.
    """

    def __init__(self):
        self.stats: Optional[SchedulerStats] = None

    def calculate(
        self,
        tasks: list[Task],
        cycles_executed: int,
        last_cycle_time: Optional[float],
    ) -> SchedulerStats:
        stats = SchedulerStats(
            total_tasks=len(tasks),
            cycles_executed=cycles_executed,
            last_cycle_time=last_cycle_time,
        )

        by_status: dict[TaskStatus, list[Task]] = {s: [] for s in TaskStatus}
        for task in tasks:
            by_status[task.status].append(task)

        completed = by_status[TaskStatus.COMPLETED]
        failed = by_status[TaskStatus.FAILED]

        stats.queued_tasks = len(by_status[TaskStatus.QUEUED])
        stats.running_tasks = len(by_status[TaskStatus.RUNNING])
        stats.completed_tasks = len(completed)
        stats.failed_tasks = len(failed)

        # Average over finished tasks that actually recorded a duration
        durations = [
            t.actual_duration_ms for t in completed + failed
            if t.actual_duration_ms is not None
        ]
        if durations:
            stats.average_task_duration_ms = sum(durations) / len(durations)

        finished = len(completed) + len(failed)
        if finished > 0:
            stats.success_rate = len(completed) / finished * 100.0

        stats.per_priority_queued = {
            p.value: sum(1 for t in by_status[TaskStatus.QUEUED] if t.priority == p)
            for p in TaskPriority
        }

        self.stats = stats
        return stats

    def print_report(self) -> None:
        """Print formatted stats (rich if available, plain otherwise)."""
        if self.stats is None:
            print("No stats calculated yet. Run calculate() first.")
            return

        if HAS_RICH:
            self._print_rich_report(self.stats)
        else:
            self._print_plain_report(self.stats)

    @staticmethod
    def _format_time(ts: Optional[float]) -> str:
        if ts is None:
            return "never"
        return datetime.fromtimestamp(ts, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")

    def _print_rich_report(self, s: SchedulerStats) -> None:
        console = Console()

        console.print(Panel(
            "[bold cyan]wakecycle — Scheduler Report[/bold cyan]\n"
            f"Cycles executed: [bold yellow]{s.cycles_executed}[/bold yellow]  "
            f"Last cycle: {self._format_time(s.last_cycle_time)}",
            border_style="cyan",
        ))

        task_table = Table(title="Task Summary", border_style="blue")
        task_table.add_column("Metric", style="bold")
        task_table.add_column("Value", justify="right")
        task_table.add_row("Total Tasks", str(s.total_tasks))
        task_table.add_row("Queued", f"[yellow]{s.queued_tasks}[/yellow]")
        task_table.add_row("Running", str(s.running_tasks))
        task_table.add_row("Completed", f"[green]{s.completed_tasks}[/green]")
        task_table.add_row("Failed", f"[red]{s.failed_tasks}[/red]")
        console.print(task_table)

        perf_table = Table(title="Performance", border_style="green")
        perf_table.add_column("Metric", style="bold")
        perf_table.add_column("Value", justify="right")
        perf_table.add_row("Avg Task Duration", f"{s.average_task_duration_ms:.1f} ms")
        perf_table.add_row(
            "Success Rate",
            f"[{'green' if s.success_rate >= 90 else 'red'}]{s.success_rate:.1f}%[/]",
        )
        console.print(perf_table)

        if any(s.per_priority_queued.values()):
            queue_table = Table(title="Queued by Priority", border_style="magenta")
            queue_table.add_column("Priority", style="bold")
            queue_table.add_column("Queued", justify="right")
            for priority, count in s.per_priority_queued.items():
                queue_table.add_row(priority, str(count))
            console.print(queue_table)

    def _print_plain_report(self, s: SchedulerStats) -> None:
        print(f"\n{'='*50}")
        print("  wakecycle — Scheduler Report")
        print(f"{'='*50}")
        print(f"  Total Tasks:       {s.total_tasks}")
        print(f"  Queued:            {s.queued_tasks}")
        print(f"  Running:           {s.running_tasks}")
        print(f"  Completed:         {s.completed_tasks}")
        print(f"  Failed:            {s.failed_tasks}")
        print(f"{'─'*50}")
        print(f"  Avg Task Duration: {s.average_task_duration_ms:.1f} ms")
        print(f"  Success Rate:      {s.success_rate:.1f}%")
        print(f"  Cycles Executed:   {s.cycles_executed}")
        print(f"  Last Cycle:        {self._format_time(s.last_cycle_time)}")
        print(f"{'='*50}\n")
