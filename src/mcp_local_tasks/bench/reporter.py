"""Console and JSON reporting for benchmark results."""

import json
from pathlib import Path

from rich.console import Console
from rich.table import Table

from ..core.exceptions import BenchmarkError
from .benchmark import BenchmarkSuite, ThresholdOutcome

console = Console()


def format_duration(ms: float) -> str:
    if ms < 1:
        return f"{ms * 1000:.0f}µs"
    if ms < 1000:
        return f"{ms:.2f}ms"
    return f"{ms / 1000:.2f}s"


class BenchmarkReporter:
    """Render a benchmark suite to the terminal."""

    def __init__(self, out: Console | None = None) -> None:
        self.console = out or console

    def print_results(self, suite: BenchmarkSuite) -> None:
        table = Table(
            title="📈 Benchmark Results",
            show_header=True,
            header_style="bold cyan",
        )
        table.add_column("Operation", style="cyan", width=20)
        table.add_column("Samples", justify="right", width=8)
        table.add_column("p50", justify="right", style="green", width=10)
        table.add_column("p95", justify="right", style="yellow", width=10)
        table.add_column("p99", justify="right", style="yellow", width=10)
        table.add_column("Mean", justify="right", width=10)
        table.add_column("Tokens/Req", justify="right", style="magenta", width=10)

        for result in suite.results:
            table.add_row(
                result.operation,
                str(result.samples),
                format_duration(result.p50),
                format_duration(result.p95),
                format_duration(result.p99),
                format_duration(result.mean),
                str(result.tokens_per_request),
            )

        self.console.print()
        self.console.print(table)
        self.console.print(
            f"\n⏱️  Total: {suite.total_samples} samples in "
            f"{format_duration(suite.total_duration_ms)}"
        )
        if suite.precision is not None:
            self.console.print(
                f"🎯 Precision: MAP@10 = {suite.precision.map10 * 100:.1f}% "
                f"({suite.precision.queries} queries)"
            )

    def print_thresholds(self, outcomes: list[ThresholdOutcome]) -> bool:
        """Print threshold outcomes. Returns True when all passed."""
        self.console.print("\n[bold]CI Threshold Checks[/bold]")
        for outcome in outcomes:
            status = "[green]✅ PASS[/green]" if outcome.passed else "[red]❌ FAIL[/red]"
            self.console.print(f"  {status} {outcome.message}")

        passed = all(o.passed for o in outcomes)
        if passed:
            self.console.print("\n[green]✅ All performance thresholds passed![/green]")
        else:
            self.console.print("\n[red]❌ Performance threshold failures[/red]")
        return passed


def save_results(suite: BenchmarkSuite, path: Path) -> None:
    """Write the suite as JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(suite.to_dict(), indent=2))


def load_results(path: Path) -> BenchmarkSuite:
    if not path.exists():
        raise BenchmarkError(f"Results file not found: {path}")
    try:
        data = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        raise BenchmarkError(f"Invalid results file {path}: {e}") from e
    return BenchmarkSuite.from_dict(data)
