"""Conversation logger for transcript analysis.

Each session gets its own JSONL file per day with user and assistant turns,
tier attempts, tool results and errors.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


class ConversationLogger:
    """Logs complete conversations for analysis."""

    def __init__(self, log_dir: Path | str | None = None) -> None:
        """Initialize the conversation logger.

        Args:
            log_dir: Directory to store logs. Defaults to ./logs in cwd.
        """
        if log_dir is None:
            log_dir = Path.cwd() / "logs"
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def _get_log_file(self, session_id: str) -> Path:
        """Get log file path for a chat session."""
        date_str = datetime.now().strftime("%Y-%m-%d")
        return self.log_dir / f"{date_str}_{session_id}.jsonl"

    def _write(self, session_id: str, entry: dict[str, Any]) -> None:
        """Write an entry to the log file."""
        entry["timestamp"] = datetime.now(timezone.utc).isoformat()
        entry["session_id"] = session_id

        log_file = self._get_log_file(session_id)
        with open(log_file, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")

    def log_session_start(self, session_id: str, user_id: str, source_interface: str) -> None:
        """Log session activation."""
        self._write(session_id, {
            "event": "session_start",
            "user_id": user_id,
            "source_interface": source_interface,
        })

    def log_user_message(self, session_id: str, content: str) -> None:
        """Log a user message."""
        self._write(session_id, {
            "event": "user_message",
            "role": "user",
            "content": content,
        })

    def log_assistant_message(
        self,
        session_id: str,
        content: str,
        tier: str,
        cached: bool = False,
    ) -> None:
        """Log an assistant message (final response)."""
        self._write(session_id, {
            "event": "assistant_message",
            "role": "assistant",
            "content": content,
            "tier": tier,
            "cached": cached,
        })

    def log_tier_attempt(
        self,
        session_id: str,
        tier: str,
        success: bool,
        duration_ms: float,
        error: str | None = None,
    ) -> None:
        """Log a single tier attempt."""
        entry: dict[str, Any] = {
            "event": "tier_attempt",
            "tier": tier,
            "success": success,
            "duration_ms": duration_ms,
        }
        if error:
            entry["error"] = error
        self._write(session_id, entry)

    def log_tool_result(
        self,
        session_id: str,
        tool_name: str,
        success: bool,
        output: str,
        error: str | None = None,
        attempts: int = 1,
    ) -> None:
        """Log the result of a side-tool execution."""
        entry = {
            "event": "tool_result",
            "tool_name": tool_name,
            "success": success,
            "output": output[:2000] if output else "",  # Truncate long outputs
            "attempts": attempts,
        }
        if error:
            entry["error"] = error
        self._write(session_id, entry)

    def log_error(self, session_id: str, error: str, context: str | None = None) -> None:
        """Log an error."""
        entry = {
            "event": "error",
            "error": error,
        }
        if context:
            entry["context"] = context
        self._write(session_id, entry)


# Global instance
_conversation_logger: ConversationLogger | None = None


def get_conversation_logger(log_dir: Path | str | None = None) -> ConversationLogger:
    """Get or create the global conversation logger."""
    global _conversation_logger
    if _conversation_logger is None:
        _conversation_logger = ConversationLogger(log_dir=log_dir)
    return _conversation_logger


def reset_conversation_logger() -> None:
    """Reset the global conversation logger (for testing)."""
    global _conversation_logger
    _conversation_logger = None
