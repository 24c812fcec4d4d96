"""Search command: hybrid search from the terminal."""

import asyncio

import typer
from rich.table import Table

from ...config.defaults import DEFAULT_RESULT_LIMIT, MAX_LIST_LIMIT
from ...core.exceptions import TaskSearchError
from ...core.factory import ComponentContext
from ...core.models import SearchFilters, TaskPriority, TaskState
from ..output import console, print_error, print_info, print_json


async def _run_search(config, query: str, k: int, filters: SearchFilters):
    async with ComponentContext(config) as bundle:
        return await bundle.search_engine.hybrid_search_with_metrics(
            query, k=k, filters=filters
        )


def search_main(
    ctx: typer.Context,
    query: str = typer.Argument(..., help="Search query"),
    k: int = typer.Option(
        DEFAULT_RESULT_LIMIT, "--limit", "-k", min=1, max=MAX_LIST_LIMIT
    ),
    state: list[TaskState] | None = typer.Option(None, "--state", "-s"),
    priority: list[TaskPriority] | None = typer.Option(None, "--priority", "-p"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
    show_timing: bool = typer.Option(False, "--timing", help="Show per-phase timing"),
) -> None:
    """🔍 Hybrid search: keyword matches plus semantic neighbours.

    [bold cyan]Examples:[/bold cyan]

    [green]Search everything:[/green]
        $ mcp-local-tasks search "login timeout"

    [green]Only open high-priority tasks:[/green]
        $ mcp-local-tasks search "memory leak" -s open -p high
    """
    filters = SearchFilters(
        state=tuple(s.value for s in state or ()),
        priority=tuple(p.value for p in priority or ()),
    )
    try:
        results, metrics = asyncio.run(
            _run_search(ctx.obj["config"], query, k, filters)
        )
    except TaskSearchError as e:
        print_error(f"Search failed: {e}")
        raise typer.Exit(1)

    if json_output:
        print_json({"items": [r.to_dict() for r in results]})
    elif not results:
        print_info("No matching tasks")
    else:
        table = Table(title=f"Results for '{query}'", show_header=True)
        table.add_column("#", justify="right", width=3)
        table.add_column("ID", style="cyan", no_wrap=True)
        table.add_column("Title", width=40)
        table.add_column("State", width=6)
        table.add_column("Preview", style="dim", width=50)
        for rank, record in enumerate(results, 1):
            table.add_row(
                str(rank), record.id, record.title, record.state, record.preview[:80]
            )
        console.print(table)

    if show_timing:
        for phase in metrics.phases.values():
            note = " (degraded)" if phase.degraded else ""
            console.print(
                f"  {phase.phase_name:<12} {phase.duration_ms:8.2f}ms "
                f"{phase.item_count:>5} items{note}"
            )
        console.print(f"  {'total':<12} {metrics.total_ms:8.2f}ms")
