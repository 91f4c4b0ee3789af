"""MCP stdio server exposing the gitpush sync session as tools."""
