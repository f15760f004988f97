"""Memory tools for explicit fact and preference management."""

from typing import Any

from ..errors import MemoryStoreError
from ..tools.base import Tool, ToolInvocation, ToolResult
from .models import MemoryKind
from .store import MemoryStore

EXPLICIT_CONFIDENCE = 1.0


class RememberTool(Tool):
    """Tool for saving explicit facts or preferences about the user."""

    def __init__(self, store: MemoryStore) -> None:
        """Initialize with a memory store.

        Args:
            store: The MemoryStore for persistence.
        """
        self.store = store

    @property
    def name(self) -> str:
        return "remember"

    @property
    def description(self) -> str:
        return (
            "Save a fact or preference about the user for future reference. "
            "Use when the user explicitly asks to remember something."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "content": {
                    "type": "string",
                    "description": (
                        "The fact or preference to remember "
                        "(e.g., 'prefers concise answers', 'targets Nashville multifamily')"
                    ),
                },
                "kind": {
                    "type": "string",
                    "description": "Whether this is a 'fact' or a 'preference'",
                    "enum": ["fact", "preference"],
                },
            },
            "required": ["content"],
        }

    async def execute(self, invocation: ToolInvocation | None = None, **kwargs: Any) -> ToolResult:
        """Save an explicit memory for the invoking user.

        Args:
            invocation: Who is asking. Required.
            content: What to remember.
            kind: 'fact' (default) or 'preference'.

        Returns:
            ToolResult with the stored memory id in metadata.
        """
        content = kwargs.get("content", "")
        kind = MemoryKind(kwargs.get("kind", "fact"))

        if invocation is None:
            return ToolResult(
                success=False,
                output="",
                error="remember needs to know which user and session it runs for",
                retryable=False,
            )

        try:
            entry = self.store.store(
                invocation.user_id,
                invocation.session_id,
                content,
                kind,
                confidence=EXPLICIT_CONFIDENCE,
                source_interface=invocation.source_interface,
            )
        except MemoryStoreError as e:
            return ToolResult(success=False, output="", error=str(e), retryable=False)

        return ToolResult(
            success=True,
            output=f"Remembered {kind.value}: {entry.content}",
            metadata={"memory_id": entry.id},
        )
