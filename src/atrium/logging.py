"""JSONL logging for dispatch observability."""

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


@dataclass
class LogEntry:
    """A single log entry."""

    timestamp: str
    event: str
    session_id: str | None = None
    user_id: str | None = None
    tier: str | None = None
    duration_ms: float | None = None
    error: str | None = None
    cached: bool = False
    extra: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict, excluding None values and false flags."""
        data = asdict(self)
        return {
            k: v
            for k, v in data.items()
            if v is not None and v is not False and v != {} and v != []
        }


class JSONLLogger:
    """Logger that writes structured logs in JSONL format."""

    def __init__(
        self,
        log_dir: str | Path | None = None,
        filename: str = "dispatch.jsonl",
        max_size_mb: float = 10.0,
    ) -> None:
        if log_dir is None:
            log_dir = Path.home() / ".atrium" / "logs"
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.filename = filename
        self.max_size_bytes = int(max_size_mb * 1024 * 1024)

    @property
    def log_path(self) -> Path:
        """Current log file path."""
        return self.log_dir / self.filename

    def _rotate_if_needed(self) -> None:
        """Rotate log file if it exceeds max size."""
        if not self.log_path.exists():
            return

        if self.log_path.stat().st_size >= self.max_size_bytes:
            timestamp = datetime.now(timezone.utc).strftime("%Y%m%d_%H%M%S")
            rotated_name = f"{self.log_path.stem}_{timestamp}.jsonl"
            self.log_path.rename(self.log_dir / rotated_name)

    def _write(self, entry: LogEntry) -> None:
        """Write a log entry to the file."""
        self._rotate_if_needed()

        with open(self.log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry.to_dict(), default=str) + "\n")

    def log(
        self,
        event: str,
        *,
        session_id: str | None = None,
        user_id: str | None = None,
        tier: str | None = None,
        duration_ms: float | None = None,
        error: str | None = None,
        cached: bool = False,
        **extra: Any,
    ) -> None:
        """Log an event."""
        entry = LogEntry(
            timestamp=datetime.now(timezone.utc).isoformat(),
            event=event,
            session_id=session_id,
            user_id=user_id,
            tier=tier,
            duration_ms=duration_ms,
            error=error,
            cached=cached,
            extra=extra if extra else {},
        )
        self._write(entry)

    def log_tier_attempt(
        self,
        tier: str,
        success: bool,
        duration_ms: float,
        *,
        session_id: str | None = None,
        error: str | None = None,
        timed_out: bool = False,
    ) -> None:
        """Log one tier of the dispatch cascade."""
        self.log(
            "tier_attempt",
            session_id=session_id,
            tier=tier,
            duration_ms=duration_ms,
            error=error if not success else None,
            success=success,
            timed_out=timed_out,
        )

    def log_dispatch_outcome(
        self,
        tier: str,
        duration_ms: float,
        *,
        session_id: str | None = None,
        user_id: str | None = None,
        fallback: bool = False,
        cached: bool = False,
    ) -> None:
        """Log the final outcome of a chat request."""
        self.log(
            "dispatch_outcome",
            session_id=session_id,
            user_id=user_id,
            tier=tier,
            duration_ms=duration_ms,
            cached=cached,
            fallback=fallback,
        )


# Global logger instance
_logger: JSONLLogger | None = None


def get_logger() -> JSONLLogger:
    """Get the global logger instance."""
    global _logger
    if _logger is None:
        _logger = JSONLLogger()
    return _logger


def configure_logger(log_dir: str | Path | None = None, max_size_mb: float = 10.0) -> JSONLLogger:
    """Configure and return the global logger."""
    global _logger
    _logger = JSONLLogger(log_dir=log_dir, max_size_mb=max_size_mb)
    return _logger
