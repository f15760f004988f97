"""Tool registry for managing and dispatching side tools."""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import Any

from .base import Tool, ToolInvocation, ToolResult

logger = logging.getLogger(__name__)


def backoff_delay(
    attempt: int,
    base_delay: float = 0.5,
    factor: float = 2.0,
    max_delay: float = 8.0,
    jitter: bool = True,
) -> float:
    """Delay before retry number ``attempt`` (1-indexed), exponential and capped."""
    delay = min(base_delay * (factor ** (attempt - 1)), max_delay)
    if jitter:
        # +/-25% spread so concurrent retries don't line up
        delay *= random.uniform(0.75, 1.25)
    return delay


class ToolRegistry:
    """Registry for available side tools."""

    def __init__(self) -> None:
        self._tools: dict[str, Tool] = {}

    def register(self, tool: Tool) -> None:
        """Register a tool."""
        if tool.name in self._tools:
            raise ValueError(f"Tool '{tool.name}' already registered")
        self._tools[tool.name] = tool

    def unregister(self, name: str) -> None:
        """Unregister a tool by name."""
        if name in self._tools:
            del self._tools[name]

    def get(self, name: str) -> Tool | None:
        """Get a tool by name."""
        return self._tools.get(name)

    def list_tools(self) -> list[str]:
        """List all registered tool names."""
        return list(self._tools.keys())

    async def dispatch(
        self,
        tool_name: str,
        args: dict[str, Any],
        invocation: ToolInvocation | None = None,
    ) -> ToolResult:
        """Dispatch a tool call by name with arguments."""
        tool = self._tools.get(tool_name)

        if tool is None:
            return ToolResult(
                success=False,
                output="",
                error=f"Unknown tool: {tool_name}",
                retryable=False,
            )

        valid, error = tool.validate_args(args)
        if not valid:
            return ToolResult(
                success=False,
                output="",
                error=error,
                retryable=False,
            )

        try:
            return await tool.execute(invocation=invocation, **args)
        except Exception as e:
            return ToolResult(
                success=False,
                output="",
                error=f"Tool execution failed: {e}",
            )

    async def dispatch_with_backoff(
        self,
        tool_name: str,
        args: dict[str, Any],
        invocation: ToolInvocation | None = None,
        *,
        max_attempts: int = 3,
        base_delay: float = 0.5,
        factor: float = 2.0,
        max_delay: float = 8.0,
        jitter: bool = True,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> tuple[ToolResult, int]:
        """Dispatch a tool, retrying retryable failures with exponential backoff.

        Returns:
            The last result and the number of attempts made.
        """
        attempt = 0
        while True:
            attempt += 1
            result = await self.dispatch(tool_name, args, invocation)
            if result.success or not result.retryable or attempt >= max_attempts:
                return result, attempt

            delay = backoff_delay(attempt, base_delay, factor, max_delay, jitter)
            logger.info(
                f"Tool {tool_name} failed (attempt {attempt}/{max_attempts}), "
                f"retrying in {delay:.2f}s: {result.error}"
            )
            await sleep(delay)
