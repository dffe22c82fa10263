"""Shared helpers for gws-mcp."""
