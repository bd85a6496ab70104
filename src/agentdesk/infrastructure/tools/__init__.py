"""Tool registry and built-in tools."""
