"""Benchmark commands: run the latency/precision suite and gate CI on thresholds.

Exit codes: 0 all thresholds passed, 1 a threshold failed, 2 the run itself failed.
"""

import asyncio
from pathlib import Path

import typer

from ...bench.benchmark import BenchmarkSuite, check_thresholds, run_suite
from ...bench.reporter import BenchmarkReporter, load_results, save_results
from ...bench.seed import seed_benchmark_data
from ...config.defaults import (
    BENCHMARK_SEED,
    BENCHMARK_SOURCE,
    BENCHMARK_WARMUP_RUNS,
    DEFAULT_BENCHMARK_TASKS,
    DEFAULT_RESULTS_FILE,
    DEFAULT_THRESHOLDS_FILE,
)
from ...config.settings import TaskSearchConfig
from ...config.thresholds import ThresholdConfig
from ...core.factory import ComponentFactory
from ...core.vector_index import index_tasks
from ..output import console, print_error, print_info, print_success

bench_app = typer.Typer(help="📈 Benchmark task operations and check CI thresholds")

EXIT_PASSED = 0
EXIT_THRESHOLD_FAILED = 1
EXIT_ERROR = 2


async def _run(
    config: TaskSearchConfig,
    seed: bool,
    count: int,
    seed_value: int,
    reindex: bool,
    list_samples: int,
    hybrid_samples: int,
    plan_samples: int,
    warmup: int,
) -> BenchmarkSuite:
    bundle = await ComponentFactory.create_standard_components(
        config, source=BENCHMARK_SOURCE
    )
    try:
        if seed:
            print_info(f"Seeding {count} benchmark tasks...")
            seed_benchmark_data(bundle.store, count=count, seed=seed_value)
        if reindex and bundle.vector_index is not None:
            print_info("Embedding tasks into the vector index...")
            await bundle.vector_index.reset()
            await index_tasks(
                bundle.store,
                bundle.embedding_function,
                bundle.vector_index,
                batch_size=config.embed_batch_size,
            )
        print_info("Running benchmarks...")
        return await run_suite(
            bundle.store,
            bundle.search_engine,
            list_samples=list_samples,
            hybrid_samples=hybrid_samples,
            plan_samples=plan_samples,
            warmup=warmup,
        )
    finally:
        await bundle.close()


def _gate(suite: BenchmarkSuite, thresholds_path: Path, reporter: BenchmarkReporter) -> int:
    thresholds = ThresholdConfig.load(thresholds_path)
    outcomes = check_thresholds(suite, thresholds)
    return EXIT_PASSED if reporter.print_thresholds(outcomes) else EXIT_THRESHOLD_FAILED


@bench_app.command("run")
def run_bench(
    ctx: typer.Context,
    seed: bool = typer.Option(
        True, "--seed/--no-seed", help="Regenerate benchmark tasks before running"
    ),
    count: int = typer.Option(
        DEFAULT_BENCHMARK_TASKS, "--count", "-n", min=1, help="Tasks to seed"
    ),
    seed_value: int = typer.Option(BENCHMARK_SEED, "--seed-value", help="Generator seed"),
    reindex: bool = typer.Option(
        True, "--index/--no-index", help="Rebuild the vector index before running"
    ),
    output: Path = typer.Option(
        DEFAULT_RESULTS_FILE, "--output", "-o", help="JSON results file"
    ),
    thresholds: Path = typer.Option(
        DEFAULT_THRESHOLDS_FILE, "--thresholds", "-t", help="Threshold YAML file"
    ),
    list_samples: int = typer.Option(200, "--list-samples", min=1),
    hybrid_samples: int = typer.Option(100, "--hybrid-samples", min=1),
    plan_samples: int = typer.Option(100, "--plan-samples", min=1),
    warmup: int = typer.Option(BENCHMARK_WARMUP_RUNS, "--warmup", min=0),
) -> None:
    """🏁 Seed, benchmark and check latency thresholds.

    [bold cyan]Examples:[/bold cyan]

    [green]Full run with defaults:[/green]
        $ mcp-local-tasks bench run

    [green]Quick run on existing data:[/green]
        $ mcp-local-tasks bench run --no-seed --no-index --list-samples 20
    """
    reporter = BenchmarkReporter()
    try:
        suite = asyncio.run(
            _run(
                ctx.obj["config"],
                seed=seed,
                count=count,
                seed_value=seed_value,
                reindex=reindex,
                list_samples=list_samples,
                hybrid_samples=hybrid_samples,
                plan_samples=plan_samples,
                warmup=warmup,
            )
        )
        reporter.print_results(suite)
        save_results(suite, output)
        print_success(f"✓ Results saved to {output}")
        code = _gate(suite, thresholds, reporter)
    except Exception as e:
        print_error(f"Benchmark failed: {e}")
        console.print_exception()
        raise typer.Exit(EXIT_ERROR)
    raise typer.Exit(code)


@bench_app.command("check")
def check_bench(
    results: Path = typer.Argument(DEFAULT_RESULTS_FILE, help="JSON results file"),
    thresholds: Path = typer.Option(
        DEFAULT_THRESHOLDS_FILE, "--thresholds", "-t", help="Threshold YAML file"
    ),
) -> None:
    """✅ Check a saved results file against the thresholds."""
    reporter = BenchmarkReporter()
    try:
        suite = load_results(results)
        reporter.print_results(suite)
        code = _gate(suite, thresholds, reporter)
    except Exception as e:
        print_error(f"Threshold check failed: {e}")
        raise typer.Exit(EXIT_ERROR)
    raise typer.Exit(code)
