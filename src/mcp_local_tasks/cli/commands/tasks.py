"""Task CRUD commands: add, list, expand, plan."""

import asyncio

import typer
from loguru import logger

from ...config.defaults import DEFAULT_LIST_LIMIT, MAX_LIST_LIMIT
from ...config.settings import TaskSearchConfig
from ...core.exceptions import TaskSearchError
from ...core.factory import ComponentContext
from ...core.models import SearchFilters, Task, TaskPriority, TaskState
from ...core.task_store import TaskStore
from ..output import (
    console,
    print_error,
    print_json,
    print_success,
    print_task_handles,
    print_tasks,
    print_warning,
)


def _config(ctx: typer.Context) -> TaskSearchConfig:
    return ctx.obj["config"]


async def _create_and_index(config: TaskSearchConfig, **fields) -> tuple[Task, bool]:
    async with ComponentContext(config) as bundle:
        task = bundle.store.create_task(**fields)
        if bundle.vector_index is None:
            return task, False
        try:
            vector = await asyncio.to_thread(
                bundle.embedding_function.embed_query, task.embedding_text
            )
            await bundle.vector_index.upsert([task], [vector])
        except TaskSearchError as e:
            logger.warning(f"Could not index task {task.id}: {e}")
            return task, False
        return task, True


def add_task(
    ctx: typer.Context,
    title: str = typer.Argument(..., help="Task title"),
    body: str | None = typer.Option(None, "--body", "-b", help="Task body"),
    priority: TaskPriority = typer.Option(
        TaskPriority.MED, "--priority", "-p", help="Task priority"
    ),
    due: str | None = typer.Option(None, "--due", help="Due time (ISO-8601)"),
    source: str | None = typer.Option(None, "--source", help="Task source"),
) -> None:
    """➕ Create a task in the inbox."""
    try:
        task, indexed = asyncio.run(
            _create_and_index(
                _config(ctx),
                title=title,
                body=body,
                priority=priority,
                due_ts=due,
                source=source,
            )
        )
    except (TaskSearchError, ValueError) as e:
        print_error(f"Failed to create task: {e}")
        raise typer.Exit(1)

    print_success(f"✓ Created {task.id}: {task.title}")
    if not indexed:
        print_warning("Task not embedded; run 'mcp-local-tasks index' to refresh")


def list_tasks(
    ctx: typer.Context,
    state: list[TaskState] | None = typer.Option(
        None, "--state", "-s", help="Filter by state (repeatable)"
    ),
    priority: list[TaskPriority] | None = typer.Option(
        None, "--priority", "-p", help="Filter by priority (repeatable)"
    ),
    query: str | None = typer.Option(None, "--query", "-q", help="Keyword filter"),
    limit: int = typer.Option(
        DEFAULT_LIST_LIMIT, "--limit", "-n", min=1, max=MAX_LIST_LIMIT
    ),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """📋 List tasks, newest first."""
    filters = SearchFilters(
        state=tuple(s.value for s in state or ()),
        priority=tuple(p.value for p in priority or ()),
    )
    try:
        with TaskStore(_config(ctx).db_path) as store:
            records = store.list_task_handles(limit=limit, filters=filters, query=query)
    except TaskSearchError as e:
        print_error(f"Failed to list tasks: {e}")
        raise typer.Exit(1)

    if json_output:
        print_json([r.to_dict() for r in records])
    else:
        print_task_handles(records)


def expand_task(
    ctx: typer.Context,
    task_id: str = typer.Argument(..., help="Task id"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """🔎 Show the full task record."""
    try:
        with TaskStore(_config(ctx).db_path) as store:
            task = store.expand_task(task_id)
    except TaskSearchError as e:
        print_error(f"Failed to read task: {e}")
        raise typer.Exit(1)

    if task is None:
        print_error(f"Task not found: {task_id}")
        raise typer.Exit(1)

    if json_output:
        print_json(task.to_dict())
        return

    console.print(f"[bold cyan]{task.id}[/bold cyan]  {task.title}")
    console.print(f"  State: {task.state.value}   Priority: {task.priority.value}")
    if task.due_ts:
        console.print(f"  Due: {task.due_ts}")
    if task.estimate_min:
        console.print(f"  Estimate: {task.estimate_min} min")
    console.print(f"  Source: {task.source or '-'}   Created: {task.created_ts}")
    if task.summary:
        console.print(f"\n[bold]Summary[/bold]\n{task.summary}")
    if task.body:
        console.print(f"\n{task.body}")


def plan_day(
    ctx: typer.Context,
    limit: int = typer.Option(50, "--limit", "-n", min=1, help="Maximum tasks"),
    json_output: bool = typer.Option(False, "--json", help="Output JSON"),
) -> None:
    """🗓️  Show today's plan: actionable high/med tasks due within a week."""
    try:
        with TaskStore(_config(ctx).db_path) as store:
            tasks = store.plan_day(limit=limit)
    except TaskSearchError as e:
        print_error(f"Failed to build plan: {e}")
        raise typer.Exit(1)

    if json_output:
        print_json([t.to_dict() for t in tasks])
    else:
        print_tasks(tasks, title="Today's Plan")
