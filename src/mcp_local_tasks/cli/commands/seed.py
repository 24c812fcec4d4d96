"""Seed command: generate deterministic benchmark tasks."""

import time

import typer
from rich.table import Table

from ...bench.seed import seed_benchmark_data
from ...config.defaults import BENCHMARK_SEED, BENCHMARK_SOURCE, DEFAULT_BENCHMARK_TASKS
from ...core.exceptions import TaskSearchError
from ...core.task_store import TaskStore
from ..output import console, print_error, print_info, print_success


def seed_main(
    ctx: typer.Context,
    count: int = typer.Option(
        DEFAULT_BENCHMARK_TASKS, "--count", "-n", min=1, help="Number of tasks"
    ),
    seed: int = typer.Option(BENCHMARK_SEED, "--seed", help="Generator seed"),
) -> None:
    """🌱 Replace the benchmark tasks with freshly generated ones."""
    config = ctx.obj["config"]
    print_info(f"Seeding {count} benchmark tasks into {config.db_path}...")
    start = time.perf_counter()
    try:
        with TaskStore(config.db_path) as store:
            inserted = seed_benchmark_data(store, count=count, seed=seed)
            rows = store.count_by_state_priority(BENCHMARK_SOURCE)
    except TaskSearchError as e:
        print_error(f"Seeding failed: {e}")
        raise typer.Exit(1)

    elapsed = time.perf_counter() - start
    print_success(f"✓ Seeded {inserted} tasks in {elapsed:.2f}s")

    table = Table(title="Distribution", show_header=True)
    table.add_column("State", style="cyan")
    table.add_column("Priority")
    table.add_column("Count", justify="right", style="green")
    for state, priority, n in rows:
        table.add_row(state, priority, str(n))
    console.print(table)
