"""Serve command: run the MCP stdio server."""

import asyncio

import typer
from loguru import logger

from ...core.exceptions import TaskSearchError
from ...mcp.server import run_mcp_server


def serve_main(ctx: typer.Context) -> None:
    """🔌 Run the MCP server on stdio (for MCP clients)."""
    try:
        asyncio.run(run_mcp_server(ctx.obj["config"]))
    except KeyboardInterrupt:
        pass
    except TaskSearchError as e:
        # stdout belongs to the protocol
        logger.error(f"MCP server failed: {e}")
        raise typer.Exit(1)
