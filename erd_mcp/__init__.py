"""MCP tools for relationship diagrams."""
