"""Task tool handlers for the MCP server.

Every handler returns a ``CallToolResult`` whose single text content is a JSON
document. Failures are reported as ``{"error": message}`` with ``isError`` set;
nothing raises across the RPC boundary.
"""

import asyncio
import json
from datetime import UTC, datetime
from typing import Any

from loguru import logger
from mcp.types import CallToolResult, TextContent

from ..config.defaults import DEFAULT_LIST_LIMIT, DEFAULT_RESULT_LIMIT, MAX_LIST_LIMIT
from ..core.embeddings import EmbeddingFunction
from ..core.exceptions import NotFoundError, TaskSearchError
from ..core.models import SearchFilters, Task, Weights
from ..core.search import HybridSearchEngine
from ..core.task_store import TaskStore
from ..core.vector_index import TaskVectorIndex


def _json_result(payload: Any, is_error: bool = False) -> CallToolResult:
    return CallToolResult(
        content=[TextContent(type="text", text=json.dumps(payload, indent=2))],
        isError=is_error,
    )


def _error_result(message: str) -> CallToolResult:
    return _json_result({"error": message}, is_error=True)


def _bounded_int(value: Any, default: int, name: str) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ValueError(f"'{name}' must be a number")
    number = int(value)
    if number < 1 or number > MAX_LIST_LIMIT:
        raise ValueError(f"'{name}' must be between 1 and {MAX_LIST_LIMIT}")
    return number


class TaskHandlers:
    """Handlers for the ``task.*`` MCP tools."""

    def __init__(
        self,
        store: TaskStore,
        search_engine: HybridSearchEngine,
        embedding_function: EmbeddingFunction | None = None,
        vector_index: TaskVectorIndex | None = None,
    ) -> None:
        """Initialize task handlers.

        Args:
            store: Task store
            search_engine: Hybrid search engine for ``task.queryHybrid``
            embedding_function: Used to embed created/updated tasks
            vector_index: Vector index to keep in step with writes (optional)
        """
        self.store = store
        self.search_engine = search_engine
        self.embedding_function = embedding_function
        self.vector_index = vector_index

    async def dispatch(self, name: str, args: dict[str, Any] | None) -> CallToolResult:
        """Route a tool call by name."""
        handlers = {
            "task.create": self.handle_create,
            "task.list": self.handle_list,
            "task.expand": self.handle_expand,
            "task.update": self.handle_update,
            "task.queryHybrid": self.handle_query_hybrid,
        }
        handler = handlers.get(name)
        if handler is None:
            return _error_result(f"Unknown tool: {name}")
        try:
            return await handler(args or {})
        except (TaskSearchError, ValueError) as e:
            logger.warning(f"{name} failed: {e}")
            return _error_result(str(e))
        except Exception as e:
            logger.error(f"{name} failed unexpectedly: {e}")
            return _error_result(f"Tool execution failed: {e}")

    async def handle_create(self, args: dict[str, Any]) -> CallToolResult:
        title = args.get("title")
        if not isinstance(title, str) or not title.strip():
            return _error_result("'title' is required")

        task = self.store.create_task(
            title=title,
            body=args.get("body"),
            priority=args.get("priority") or "med",
            due_ts=args.get("due_ts"),
            source=args.get("source"),
        )
        await self._index(task)
        return _json_result({"id": task.id, "title": task.title, "state": task.state.value})

    async def handle_list(self, args: dict[str, Any]) -> CallToolResult:
        filter_args = args.get("filter") or {}
        limit = _bounded_int(args.get("limit"), DEFAULT_LIST_LIMIT, "limit")
        items = self.store.list_task_handles(
            limit=limit,
            filters=SearchFilters.from_dict(filter_args),
            query=filter_args.get("q"),
        )
        return _json_result(
            {
                "as_of": datetime.now(UTC).isoformat(),
                "source": "db",
                "items": [item.to_dict() for item in items],
                "next": None,
            }
        )

    async def handle_expand(self, args: dict[str, Any]) -> CallToolResult:
        task_id = args.get("id")
        if not task_id:
            return _error_result("'id' is required")
        task = self.store.expand_task(task_id)
        if task is None:
            return _error_result("NOT_FOUND")
        return _json_result(task.to_dict())

    async def handle_update(self, args: dict[str, Any]) -> CallToolResult:
        task_id = args.get("id")
        patch = args.get("patch")
        if not task_id or not isinstance(patch, dict):
            return _error_result("'id' and 'patch' are required")
        try:
            task = self.store.update_task(task_id, patch)
        except NotFoundError:
            return _json_result({"ok": False, "error": "NOT_FOUND"}, is_error=True)
        await self._index(task)
        return _json_result({"ok": True, "task": task.to_dict()})

    async def handle_query_hybrid(self, args: dict[str, Any]) -> CallToolResult:
        query = args.get("query")
        if not isinstance(query, str):
            return _error_result("'query' must be a string")
        k = _bounded_int(args.get("k"), DEFAULT_RESULT_LIMIT, "k")
        filters = SearchFilters.from_dict(args.get("filters"))
        weights = Weights.from_dict(args.get("weights"), base=self.search_engine.weights)

        results = await self.search_engine.hybrid_search(
            query, k=k, filters=filters, weights=weights
        )
        return _json_result({"items": [r.to_dict() for r in results]})

    async def _index(self, task: Task) -> None:
        """Refresh the task's embedding; failures leave the vector index stale."""
        if self.vector_index is None or self.embedding_function is None:
            return
        try:
            vector = await asyncio.to_thread(
                self.embedding_function.embed_query, task.embedding_text
            )
            await self.vector_index.upsert([task], [vector])
        except TaskSearchError as e:
            logger.warning(f"Could not index task {task.id}: {e}")
