"""Context propagation for tool-call correlation across async boundaries."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from uuid import uuid4


# Per-task context for the tool call being served
tool_context: ContextVar[dict | None] = ContextVar("tool_context", default=None)


def generate_call_id() -> str:
    """Generate a 16-char hex call ID."""
    return uuid4().hex[:16]


def get_tool_context() -> dict:
    """Get the current tool-call context, empty outside a tool call."""
    return tool_context.get() or {}


def set_tool_context(tool: str, call_id: str | None = None, **extra: object) -> None:
    """Set tool-call context for the current async context."""
    tool_context.set({"tool": tool, "call_id": call_id or generate_call_id(), **extra})


@contextmanager
def tool_call_context(tool: str, **extra: object) -> Iterator[dict]:
    """Bind a fresh tool-call context for the duration of the block."""
    token = tool_context.set({"tool": tool, "call_id": generate_call_id(), **extra})
    try:
        yield tool_context.get() or {}
    finally:
        tool_context.reset(token)
