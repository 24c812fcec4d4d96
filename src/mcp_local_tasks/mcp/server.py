"""MCP stdio server exposing the task tools."""

from typing import Any

from loguru import logger
from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import CallToolResult, Tool

from .. import __version__
from ..config.settings import TaskSearchConfig
from ..core.factory import ComponentBundle, ComponentFactory
from .task_handlers import TaskHandlers
from .tool_schemas import get_tool_schemas

SERVER_NAME = "mcp-local-tasks"


class MCPTaskServer:
    """MCP server for the local task tracker."""

    def __init__(self, config: TaskSearchConfig) -> None:
        self.config = config
        self.bundle: ComponentBundle | None = None
        self.handlers: TaskHandlers | None = None

    async def initialize(self) -> None:
        """Open the task store and vector index."""
        if self.handlers is not None:
            return
        self.bundle = await ComponentFactory.create_standard_components(self.config)
        self.handlers = TaskHandlers(
            store=self.bundle.store,
            search_engine=self.bundle.search_engine,
            embedding_function=self.bundle.embedding_function,
            vector_index=self.bundle.vector_index,
        )
        logger.info(f"MCP server initialized with task store {self.config.db_path}")

    async def cleanup(self) -> None:
        if self.bundle is not None:
            await self.bundle.close()
        self.bundle = None
        self.handlers = None

    def get_tools(self) -> list[Tool]:
        return get_tool_schemas()

    async def call_tool(self, name: str, arguments: dict[str, Any] | None) -> CallToolResult:
        if self.handlers is None:
            await self.initialize()
        return await self.handlers.dispatch(name, arguments)


def create_mcp_server(mcp_server: MCPTaskServer) -> Server:
    """Create and configure the MCP server."""
    server = Server(SERVER_NAME, version=__version__)

    @server.list_tools()
    async def list_tools() -> list[Tool]:
        return mcp_server.get_tools()

    # Handlers validate arguments and report failures as JSON payloads.
    @server.call_tool(validate_input=False)
    async def call_tool(name: str, arguments: dict[str, Any]) -> CallToolResult:
        return await mcp_server.call_tool(name, arguments)

    return server


async def run_mcp_server(config: TaskSearchConfig) -> None:
    """Run the MCP server using stdio transport.

    stdout carries the protocol, so logging must go to stderr.
    """
    mcp_server = MCPTaskServer(config)
    await mcp_server.initialize()
    server = create_mcp_server(mcp_server)
    logger.info("stdio server started")

    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(
                read_stream, write_stream, server.create_initialization_options()
            )
    finally:
        await mcp_server.cleanup()
