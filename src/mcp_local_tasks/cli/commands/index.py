"""Index command: embed tasks into the vector index."""

import asyncio

import typer

from ...config.settings import TaskSearchConfig
from ...core.exceptions import TaskSearchError
from ...core.factory import ComponentFactory
from ...core.vector_index import index_tasks
from ..output import print_error, print_info, print_success


async def _run_index(config: TaskSearchConfig, reset: bool, batch_size: int) -> int:
    store = ComponentFactory.create_store(config)
    try:
        embedder = ComponentFactory.create_embedding_function(config)
        index = await ComponentFactory.create_vector_index(config)
        try:
            if reset:
                await index.reset()
            return await index_tasks(store, embedder, index, batch_size=batch_size)
        finally:
            await index.close()
    finally:
        store.close()


def index_main(
    ctx: typer.Context,
    reset: bool = typer.Option(
        False, "--reset", help="Drop and rebuild the vector table first"
    ),
    batch_size: int | None = typer.Option(
        None, "--batch-size", min=1, help="Tasks per embedding batch"
    ),
) -> None:
    """🧮 Embed every task into the vector index."""
    config: TaskSearchConfig = ctx.obj["config"]
    print_info(f"Indexing tasks from {config.db_path} with the {config.embedder} embedder...")
    try:
        count = asyncio.run(
            _run_index(config, reset, batch_size or config.embed_batch_size)
        )
    except TaskSearchError as e:
        print_error(f"Indexing failed: {e}")
        raise typer.Exit(1)
    print_success(f"✓ Indexed {count} tasks")
