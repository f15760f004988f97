"""SQLite persistence for memory entries and conversation summaries."""

import json
import sqlite3
from pathlib import Path

from .models import ConversationSummary, MemoryEntry, MemoryKind


class SQLiteMemoryBackend:
    """Durable storage for memory entries using SQLite.

    The in-process MemoryStore is the source of truth while running; this
    backend only mirrors its writes so memory survives process restarts.
    """

    def __init__(self, db_path: Path) -> None:
        """Initialize the backend with a database path.

        Args:
            db_path: Path to the SQLite database file.
        """
        self.db_path = db_path
        self._conn: sqlite3.Connection | None = None

    def _get_connection(self) -> sqlite3.Connection:
        """Get or create the database connection."""
        if self._conn is None:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            self._conn = sqlite3.connect(self.db_path)
            self._conn.row_factory = sqlite3.Row
        return self._conn

    def init_db(self) -> None:
        """Create tables if they don't exist."""
        conn = self._get_connection()
        conn.execute("""
            CREATE TABLE IF NOT EXISTS memories (
                id                TEXT PRIMARY KEY,
                user_id           TEXT NOT NULL,
                session_id        TEXT NOT NULL,
                kind              TEXT NOT NULL,
                content           TEXT NOT NULL,
                importance        INTEGER NOT NULL,
                confidence        REAL NOT NULL,
                source_interface  TEXT NOT NULL,
                created_at        REAL NOT NULL,
                expires_at        REAL,
                last_used         REAL,
                access_count      INTEGER NOT NULL DEFAULT 0,
                keywords          TEXT NOT NULL DEFAULT '[]',
                topics            TEXT NOT NULL DEFAULT '[]',
                origin_id         TEXT,
                tool_name         TEXT
            )
        """)
        conn.execute("CREATE INDEX IF NOT EXISTS idx_memories_user ON memories(user_id)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_memories_session ON memories(session_id)")
        conn.execute("""
            CREATE TABLE IF NOT EXISTS summaries (
                session_id    TEXT PRIMARY KEY,
                key_topics    TEXT NOT NULL,
                decisions     TEXT NOT NULL,
                action_items  TEXT NOT NULL,
                message_count INTEGER NOT NULL,
                generated_at  REAL NOT NULL
            )
        """)
        conn.commit()

    def save_entry(self, entry: MemoryEntry) -> None:
        """Insert an entry, or refresh its usage fields if it already exists."""
        conn = self._get_connection()
        conn.execute(
            """
            INSERT INTO memories (
                id, user_id, session_id, kind, content, importance, confidence,
                source_interface, created_at, expires_at, last_used, access_count,
                keywords, topics, origin_id, tool_name
            )
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            ON CONFLICT(id) DO UPDATE SET
                confidence = excluded.confidence,
                last_used = excluded.last_used,
                access_count = excluded.access_count
            """,
            (
                entry.id,
                entry.user_id,
                entry.session_id,
                entry.kind.value,
                entry.content,
                entry.importance,
                entry.confidence,
                entry.source_interface,
                entry.created_at,
                entry.expires_at,
                entry.last_used,
                entry.access_count,
                json.dumps(list(entry.keywords)),
                json.dumps(list(entry.topics)),
                entry.origin_id,
                entry.tool_name,
            ),
        )
        conn.commit()

    def load_entries(self) -> list[MemoryEntry]:
        """Load every stored entry, oldest first."""
        conn = self._get_connection()
        cursor = conn.execute("SELECT * FROM memories ORDER BY created_at")
        return [self._row_to_entry(row) for row in cursor.fetchall()]

    def delete_entries(self, entry_ids: list[str]) -> int:
        """Delete entries by id.

        Returns:
            Number of rows deleted.
        """
        if not entry_ids:
            return 0
        conn = self._get_connection()
        placeholders = ",".join("?" for _ in entry_ids)
        cursor = conn.execute(
            f"DELETE FROM memories WHERE id IN ({placeholders})", entry_ids
        )
        conn.commit()
        return cursor.rowcount

    def delete_user(self, user_id: str) -> int:
        """Delete all entries of a user."""
        conn = self._get_connection()
        cursor = conn.execute("DELETE FROM memories WHERE user_id = ?", (user_id,))
        conn.commit()
        return cursor.rowcount

    def save_summary(self, summary: ConversationSummary) -> None:
        """Store a summary, superseding any earlier one for the session."""
        conn = self._get_connection()
        conn.execute(
            """
            INSERT INTO summaries (
                session_id, key_topics, decisions, action_items, message_count, generated_at
            )
            VALUES (?, ?, ?, ?, ?, ?)
            ON CONFLICT(session_id) DO UPDATE SET
                key_topics = excluded.key_topics,
                decisions = excluded.decisions,
                action_items = excluded.action_items,
                message_count = excluded.message_count,
                generated_at = excluded.generated_at
            WHERE excluded.generated_at >= summaries.generated_at
            """,
            (
                summary.session_id,
                json.dumps(summary.key_topics),
                json.dumps(summary.decisions),
                json.dumps(summary.action_items),
                summary.message_count,
                summary.generated_at,
            ),
        )
        conn.commit()

    def load_summaries(self) -> list[ConversationSummary]:
        """Load the latest summary of every session."""
        conn = self._get_connection()
        cursor = conn.execute("SELECT * FROM summaries")
        return [
            ConversationSummary(
                session_id=row["session_id"],
                key_topics=json.loads(row["key_topics"]),
                decisions=json.loads(row["decisions"]),
                action_items=json.loads(row["action_items"]),
                message_count=row["message_count"],
                generated_at=row["generated_at"],
            )
            for row in cursor.fetchall()
        ]

    def delete_summaries(self, session_ids: list[str]) -> None:
        """Delete the summaries of the given sessions."""
        if not session_ids:
            return
        conn = self._get_connection()
        placeholders = ",".join("?" for _ in session_ids)
        conn.execute(
            f"DELETE FROM summaries WHERE session_id IN ({placeholders})", session_ids
        )
        conn.commit()

    def close(self) -> None:
        """Close the database connection."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def _row_to_entry(self, row: sqlite3.Row) -> MemoryEntry:
        """Convert a database row to a MemoryEntry."""
        return MemoryEntry(
            id=row["id"],
            user_id=row["user_id"],
            session_id=row["session_id"],
            kind=MemoryKind(row["kind"]),
            content=row["content"],
            importance=row["importance"],
            confidence=row["confidence"],
            source_interface=row["source_interface"],
            created_at=row["created_at"],
            expires_at=row["expires_at"],
            last_used=row["last_used"],
            access_count=row["access_count"],
            keywords=tuple(json.loads(row["keywords"])),
            topics=tuple(json.loads(row["topics"])),
            origin_id=row["origin_id"],
            tool_name=row["tool_name"],
        )
