"""MCP tool schema definitions for the task tools."""

from mcp.types import Tool

from ..config.defaults import DEFAULT_LIST_LIMIT, DEFAULT_RESULT_LIMIT, MAX_LIST_LIMIT

STATES = ["inbox", "open", "done"]
PRIORITIES = ["low", "med", "high"]


def get_tool_schemas() -> list[Tool]:
    """Get all MCP tool schema definitions.

    Returns:
        List of Tool objects defining available MCP tools
    """
    return [
        _get_task_create_schema(),
        _get_task_list_schema(),
        _get_task_expand_schema(),
        _get_task_update_schema(),
        _get_task_query_hybrid_schema(),
    ]


def _filter_properties() -> dict:
    return {
        "state": {"type": "array", "items": {"type": "string", "enum": STATES}},
        "priority": {"type": "array", "items": {"type": "string", "enum": PRIORITIES}},
    }


def _get_task_create_schema() -> Tool:
    """Get task.create tool schema."""
    return Tool(
        name="task.create",
        description="Create a local task in the inbox.",
        inputSchema={
            "type": "object",
            "properties": {
                "title": {"type": "string"},
                "body": {"type": "string"},
                "priority": {"type": "string", "enum": PRIORITIES},
                "due_ts": {"type": "string", "description": "ISO-8601 due time"},
                "source": {"type": "string"},
            },
            "required": ["title"],
        },
    )


def _get_task_list_schema() -> Tool:
    """Get task.list tool schema."""
    return Tool(
        name="task.list",
        description="List tasks as compact handles, newest first. Optional keyword filter via 'q'.",
        inputSchema={
            "type": "object",
            "properties": {
                "filter": {
                    "type": "object",
                    "properties": {**_filter_properties(), "q": {"type": "string"}},
                },
                "limit": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": MAX_LIST_LIMIT,
                    "default": DEFAULT_LIST_LIMIT,
                },
            },
        },
    )


def _get_task_expand_schema() -> Tool:
    """Get task.expand tool schema."""
    return Tool(
        name="task.expand",
        description="Return the full task record for an id.",
        inputSchema={
            "type": "object",
            "properties": {"id": {"type": "string"}},
            "required": ["id"],
        },
    )


def _get_task_update_schema() -> Tool:
    """Get task.update tool schema."""
    return Tool(
        name="task.update",
        description="Patch fields on a task.",
        inputSchema={
            "type": "object",
            "properties": {
                "id": {"type": "string"},
                "patch": {
                    "type": "object",
                    "properties": {
                        "title": {"type": "string"},
                        "body": {"type": ["string", "null"]},
                        "state": {"type": "string", "enum": STATES},
                        "priority": {"type": "string", "enum": PRIORITIES},
                        "estimate_min": {"type": ["integer", "null"]},
                        "due_ts": {"type": ["string", "null"]},
                        "source": {"type": ["string", "null"]},
                        "summary": {"type": ["string", "null"]},
                    },
                },
            },
            "required": ["id", "patch"],
        },
    )


def _get_task_query_hybrid_schema() -> Tool:
    """Get task.queryHybrid tool schema."""
    return Tool(
        name="task.queryHybrid",
        description=(
            "Search tasks by keywords and meaning. Results are ranked by semantic "
            "similarity, recency and priority. Example: 'login timeout bug'."
        ),
        inputSchema={
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Free-text search query"},
                "k": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": MAX_LIST_LIMIT,
                    "default": DEFAULT_RESULT_LIMIT,
                },
                "filters": {"type": "object", "properties": _filter_properties()},
                "weights": {
                    "type": "object",
                    "description": "Optional per-query fusion weights",
                    "properties": {
                        "semantic": {"type": "number", "minimum": 0},
                        "recency": {"type": "number", "minimum": 0},
                        "priority": {"type": "number", "minimum": 0},
                    },
                },
            },
            "required": ["query"],
        },
    )
