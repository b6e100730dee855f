"""Entry point for running wakecycle simulations.

Usage:
    python scripts/run_simulation.py --tasks 30 --cycles 10 --failure-rate 0.1
"""

import argparse
import asyncio
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from wakecycle.config.settings import InterruptSensitivity, load_config
from wakecycle.coordinator.scheduler import CognitiveScheduler
from wakecycle.execution.registry import WorkRegistry
from wakecycle.guard.resource_guard import PsutilSampler, StaticSampler
from wakecycle.observability.logger import setup_logging
from wakecycle.simulator.generator import ScenarioGenerator, TaskSpec
from wakecycle.simulator.runner import populate, run_cycles
from wakecycle.simulator.work import SimulatedWork
from wakecycle.store.memory import InMemoryTaskStore
from wakecycle.store.sqlite import SQLiteTaskStore

try:
    from rich.console import Console
    from rich.table import Table
    console = Console()
    HAS_RICH = True
except ImportError:
    HAS_RICH = False


def print_scenario_summary(specs: list[TaskSpec]) -> None:
    """Print a summary of the generated workload."""
    priority_counts: dict[str, int] = {}
    for s in specs:
        priority_counts[s.priority.value] = priority_counts.get(s.priority.value, 0) + 1
    dep_count = sum(1 for s in specs if s.depends_on)
    deadline_count = sum(1 for s in specs if s.deadline_offset_s is not None)

    if HAS_RICH:
        console.print("\n[bold cyan]Generated Scenario[/bold cyan]")
        console.print(f"  Tasks:                   {len(specs)}")
        console.print(f"  By priority:             {priority_counts}")
        console.print(f"  Tasks with dependencies: {dep_count}")
        console.print(f"  Tasks with deadlines:    {deadline_count}")
        console.print()
    else:
        print("\n--- Generated Scenario ---")
        print(f"Tasks: {len(specs)}, dependencies: {dep_count}, deadlines: {deadline_count}")
        print()


def print_cycles(results) -> None:
    if not HAS_RICH:
        for r in results:
            print(f"{r.cycle_id or '(skipped)'}: {r.tasks_completed}/{r.tasks_executed} "
                  f"completed, {r.tasks_failed} failed, {r.total_duration_ms:.0f}ms")
        return

    table = Table(title="Cycles", border_style="blue")
    table.add_column("Cycle", style="bold")
    table.add_column("Executed", justify="right")
    table.add_column("Completed", justify="right")
    table.add_column("Failed", justify="right")
    table.add_column("Duration", justify="right")
    table.add_column("Warning")
    for r in results:
        table.add_row(
            r.cycle_id or "(skipped)",
            str(r.tasks_executed),
            f"[green]{r.tasks_completed}[/green]",
            f"[red]{r.tasks_failed}[/red]",
            f"{r.total_duration_ms:.0f} ms",
            r.resources_warning or "",
        )
    console.print(table)


async def simulate(args: argparse.Namespace) -> None:
    app_config = load_config(args.config)
    setup_logging(
        level=args.log_level or app_config.logging.level,
        log_dir=None,
        json_format=False,
        console_output=args.verbose,
    )

    config = app_config.scheduler.merged(
        interrupt_sensitivity=InterruptSensitivity(args.sensitivity),
        max_concurrent_tasks=args.concurrency,
        max_tasks_per_cycle=args.per_cycle,
    )

    if args.host_load:
        sampler = PsutilSampler()
    else:
        sampler = StaticSampler(cpu_percent=args.cpu, memory_percent=args.memory)

    store = SQLiteTaskStore(args.db) if args.db else InMemoryTaskStore()
    registry = WorkRegistry(fallback=SimulatedWork(
        failure_probability=args.failure_rate,
        time_scale=args.time_scale,
        seed=args.seed,
    ))

    scheduler = CognitiveScheduler(store=store, registry=registry, config=config, sampler=sampler)
    await scheduler.initialize()
    try:
        specs = ScenarioGenerator(seed=args.seed).generate_tasks(
            num_tasks=args.tasks,
            dependency_density=args.dependency_density,
        )
        print_scenario_summary(specs)
        await populate(scheduler, specs)

        results = await run_cycles(scheduler, args.cycles, interval_s=args.interval)
        print_cycles(results)

        await scheduler.get_stats()
        scheduler.stats_collector.print_report()
        await scheduler.shutdown()
    finally:
        await scheduler.close()


def main():
    parser = argparse.ArgumentParser(
        description="wakecycle — background task scheduler simulator"
    )
    parser.add_argument("--tasks", type=int, default=30, help="Number of tasks (default: 30)")
    parser.add_argument("--cycles", type=int, default=10, help="Wake cycles to run (default: 10)")
    parser.add_argument("--interval", type=float, default=0.0, help="Seconds between cycles (default: 0)")
    parser.add_argument("--concurrency", type=int, default=3, help="max_concurrent_tasks (default: 3)")
    parser.add_argument("--per-cycle", type=int, default=5, help="max_tasks_per_cycle (default: 5)")
    parser.add_argument("--failure-rate", type=float, default=0.1, help="Injected failure probability (default: 0.1)")
    parser.add_argument("--time-scale", type=float, default=0.01, help="Sleep scale for estimated durations (default: 0.01)")
    parser.add_argument("--dependency-density", type=float, default=0.15, help="Dependency probability (default: 0.15)")
    parser.add_argument("--sensitivity", choices=[s.value for s in InterruptSensitivity], default="high")
    parser.add_argument("--cpu", type=float, default=10.0, help="Simulated CPU load percent (default: 10)")
    parser.add_argument("--memory", type=float, default=30.0, help="Simulated memory load percent (default: 30)")
    parser.add_argument("--host-load", action="store_true", help="Sample real host load with psutil")
    parser.add_argument("--db", type=str, default=None, help="SQLite file; in-memory store if omitted")
    parser.add_argument("--config", type=str, default=None, help="YAML config path")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (default: 42)")
    parser.add_argument("--log-level", type=str, default=None, help="Override logging level")
    parser.add_argument("--verbose", action="store_true", help="Print structured logs to stdout")

    args = parser.parse_args()

    if HAS_RICH:
        console.print("[bold]wakecycle[/bold] — Starting simulation...\n")

    asyncio.run(simulate(args))


if __name__ == "__main__":
    main()
