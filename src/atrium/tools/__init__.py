"""Side tools whose results feed conversational memory."""

from .base import Tool, ToolInvocation, ToolResult
from .registry import ToolRegistry, backoff_delay

__all__ = [
    "Tool",
    "ToolInvocation",
    "ToolRegistry",
    "ToolResult",
    "backoff_delay",
]
