"""MCP server exposing task tools over stdio."""
