"""MCP Local Tasks - local task tracker with hybrid search over MCP."""

__version__ = "0.3.0"

from .core.exceptions import TaskSearchError

__all__ = ["TaskSearchError", "__version__"]
