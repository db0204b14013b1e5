"""MCP server exposing observatory queries as tools."""
