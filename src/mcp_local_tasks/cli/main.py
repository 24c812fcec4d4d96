"""Command-line entry point for mcp-local-tasks."""

from pathlib import Path

import typer

from .. import __version__
from ..config.settings import TaskSearchConfig
from ..core.exceptions import ConfigError
from .commands.bench import bench_app
from .commands.index import index_main
from .commands.search import search_main
from .commands.seed import seed_main
from .commands.serve import serve_main
from .commands.tasks import add_task, expand_task, list_tasks, plan_day
from .output import configure_logging, print_error

app = typer.Typer(
    name="mcp-local-tasks",
    help="📋 Local task tracker with hybrid (keyword + semantic) search over MCP",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"mcp-local-tasks {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    config_path: Path | None = typer.Option(
        None,
        "--config",
        "-c",
        help="YAML config file (default: $TASKS_CONFIG or .mcp-local-tasks/config.yaml)",
    ),
    db_path: Path | None = typer.Option(
        None, "--db", help="SQLite task database (overrides config and $TASKS_DB_PATH)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only log errors"),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    configure_logging(verbose=verbose, quiet=quiet)
    try:
        config = TaskSearchConfig.load(config_path)
    except ConfigError as e:
        print_error(f"Invalid configuration: {e}")
        raise typer.Exit(2)
    if db_path is not None:
        config.db_path = db_path
    ctx.obj = {"config": config}


app.command(name="serve")(serve_main)
app.command(name="add")(add_task)
app.command(name="list")(list_tasks)
app.command(name="expand")(expand_task)
app.command(name="plan")(plan_day)
app.command(name="search")(search_main)
app.command(name="index")(index_main)
app.command(name="seed")(seed_main)
app.add_typer(bench_app, name="bench")


if __name__ == "__main__":
    app()
