"""Command-line interface for mcp-local-tasks."""
