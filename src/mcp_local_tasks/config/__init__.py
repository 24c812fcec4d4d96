"""Configuration for mcp-local-tasks."""
