"""Records side-tool results into memory."""

import json
import logging
from typing import Any

from ..errors import MemoryStoreError
from .models import MemoryEntry, MemoryKind
from .store import MemoryStore

logger = logging.getLogger(__name__)

TOOL_RESULT_IMPORTANCE = 8
TOOL_RESULT_CONFIDENCE = 0.9
MAX_RESULT_CHARS = 500


def format_tool_result(tool_name: str, result: Any) -> str:
    """Render a tool result as memory content."""
    if isinstance(result, str):
        rendered = result
    else:
        try:
            rendered = json.dumps(result, indent=2, sort_keys=True, default=str)
        except (TypeError, ValueError):
            rendered = repr(result)

    if len(rendered) > MAX_RESULT_CHARS:
        rendered = rendered[:MAX_RESULT_CHARS] + "..."
    return f"Tool: {tool_name}\nResult: {rendered}"


def parse_tool_result(entry: MemoryEntry) -> Any:
    """Recover the structured result stored in a tool-result entry.

    Returns the decoded JSON value when the stored result was structured
    and not truncated, otherwise the raw result text.
    """
    _, _, payload = entry.content.partition("\nResult: ")
    try:
        return json.loads(payload)
    except ValueError:
        return payload


class ToolContextIntegrator:
    """Stores side-tool results as ToolResult memories.

    Each entry records the tool name and the interface that ran the tool, so
    results from different UI surfaces of the same session stay attributable.
    """

    def __init__(self, store: MemoryStore) -> None:
        """Initialize with a memory store.

        Args:
            store: The MemoryStore for persistence.
        """
        self.store = store

    def integrate(
        self,
        user_id: str,
        session_id: str,
        tool_name: str,
        result: Any,
        source_interface: str = "main",
    ) -> MemoryEntry | None:
        """Record a tool result.

        Failures are logged and swallowed: integrating tool context is a
        secondary write and must never break the caller.

        Returns:
            The stored entry, or None if it could not be stored.
        """
        try:
            return self.store.store(
                user_id,
                session_id,
                format_tool_result(tool_name, result),
                MemoryKind.TOOL_RESULT,
                importance=TOOL_RESULT_IMPORTANCE,
                confidence=TOOL_RESULT_CONFIDENCE,
                source_interface=source_interface,
                tool_name=tool_name,
            )
        except MemoryStoreError as e:
            logger.warning(f"Failed to integrate result of {tool_name}: {e}")
            return None

    def results_for_session(
        self,
        session_id: str,
        source_interface: str | None = None,
    ) -> list[MemoryEntry]:
        """Tool results visible in a session, newest first.

        Args:
            session_id: The session to inspect.
            source_interface: Only return results from this interface.
        """
        entries = self.store.get_session_entries(session_id, MemoryKind.TOOL_RESULT)
        if source_interface is not None:
            entries = [e for e in entries if e.source_interface == source_interface]
        return sorted(entries, key=lambda e: e.created_at, reverse=True)
