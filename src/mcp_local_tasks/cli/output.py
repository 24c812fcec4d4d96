"""Rich output helpers for the CLI."""

import json
import sys
from typing import Any

from loguru import logger
from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table

from ..core.models import ResultRecord, Task

console = Console()

PRIORITY_STYLES = {"high": "red", "med": "yellow", "low": "dim"}


def configure_logging(verbose: bool = False, quiet: bool = False) -> None:
    """Send loguru output to stderr at the requested level.

    stdout is reserved for command output and the MCP stdio transport.
    """
    level = "DEBUG" if verbose else "ERROR" if quiet else "WARNING"
    logger.remove()
    logger.add(sys.stderr, level=level)


def print_success(message: str) -> None:
    console.print(f"[green]{message}[/green]")


def print_error(message: str) -> None:
    console.print(f"[red]❌ {message}[/red]")


def print_warning(message: str) -> None:
    console.print(f"[yellow]⚠️  {message}[/yellow]")


def print_info(message: str) -> None:
    console.print(f"[blue]{message}[/blue]")


def print_json(data: Any, title: str | None = None) -> None:
    if title:
        console.print(f"[bold blue]{title}[/bold blue]")
    console.print(Syntax(json.dumps(data, indent=2, default=str), "json"))


def print_task_handles(records: list[ResultRecord], title: str = "Tasks") -> None:
    if not records:
        print_info("No tasks found")
        return

    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", width=40)
    table.add_column("State", width=6)
    table.add_column("Due", width=12)
    table.add_column("Preview", style="dim", width=50)

    for record in records:
        table.add_row(
            record.id,
            record.title,
            record.state,
            (record.due_ts or "")[:10],
            record.preview[:80],
        )
    console.print(table)


def print_tasks(tasks: list[Task], title: str = "Tasks") -> None:
    if not tasks:
        print_info("No tasks found")
        return

    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("ID", style="cyan", no_wrap=True)
    table.add_column("Title", width=40)
    table.add_column("Priority", width=8)
    table.add_column("State", width=6)
    table.add_column("Due", width=12)
    table.add_column("Est", justify="right", width=5)

    for task in tasks:
        style = PRIORITY_STYLES.get(task.priority.value, "")
        table.add_row(
            task.id,
            task.title,
            f"[{style}]{task.priority.value}[/{style}]" if style else task.priority.value,
            task.state.value,
            (task.due_ts or "")[:10],
            str(task.estimate_min) if task.estimate_min else "",
        )
    console.print(table)
