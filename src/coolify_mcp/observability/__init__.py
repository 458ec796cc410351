"""Observability module for structured logging with tool-call correlation."""

from coolify_mcp.observability.context import get_tool_context, set_tool_context, tool_call_context, tool_context
from coolify_mcp.observability.logging import JsonFormatter, configure_logging


__all__ = [
    "JsonFormatter",
    "configure_logging",
    "get_tool_context",
    "set_tool_context",
    "tool_call_context",
    "tool_context",
]
