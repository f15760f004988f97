"""Tests for SQLiteMemoryBackend."""

from pathlib import Path

import pytest

from atrium.memory import ConversationSummary, MemoryEntry, MemoryKind, SQLiteMemoryBackend


@pytest.fixture
def backend(tmp_path: Path) -> SQLiteMemoryBackend:
    """Create a backend with a temporary database."""
    backend = SQLiteMemoryBackend(tmp_path / "test_memory.db")
    backend.init_db()
    yield backend
    backend.close()


def _entry(content: str = "Owns a duplex", user_id: str = "u1", session_id: str = "s1") -> MemoryEntry:
    return MemoryEntry(
        user_id=user_id,
        session_id=session_id,
        kind=MemoryKind.FACT,
        content=content,
        importance=7,
        keywords=("owns", "duplex"),
    )


class TestBackendInit:
    """Tests for backend initialization."""

    def test_creates_db_directory(self, tmp_path: Path):
        """Backend creates parent directories if they don't exist."""
        nested_path = tmp_path / "nested" / "dir" / "memory.db"
        backend = SQLiteMemoryBackend(nested_path)
        backend.init_db()
        assert nested_path.exists()
        backend.close()

    def test_creates_tables(self, backend: SQLiteMemoryBackend):
        """init_db creates the memories and summaries tables."""
        conn = backend._get_connection()
        names = {
            row[0]
            for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")
        }
        assert {"memories", "summaries"} <= names

    def test_init_db_idempotent(self, backend: SQLiteMemoryBackend):
        """init_db can be called multiple times."""
        backend.init_db()
        backend.init_db()


class TestBackendEntries:
    """Tests for entry persistence."""

    def test_round_trip(self, backend: SQLiteMemoryBackend):
        """A saved entry loads back with the same fields."""
        entry = _entry()
        backend.save_entry(entry)
        [loaded] = backend.load_entries()
        assert loaded.id == entry.id
        assert loaded.kind is MemoryKind.FACT
        assert loaded.keywords == ("owns", "duplex")
        assert loaded.importance == 7

    def test_save_twice_refreshes_usage(self, backend: SQLiteMemoryBackend):
        """Re-saving updates usage fields without duplicating rows."""
        entry = _entry()
        backend.save_entry(entry)
        entry.touch(now=123.0)
        backend.save_entry(entry)

        [loaded] = backend.load_entries()
        assert loaded.access_count == 1
        assert loaded.last_used == 123.0

    def test_delete_entries(self, backend: SQLiteMemoryBackend):
        """delete_entries removes the given ids."""
        a, b = _entry("a"), _entry("b")
        backend.save_entry(a)
        backend.save_entry(b)
        assert backend.delete_entries([a.id]) == 1
        assert [e.content for e in backend.load_entries()] == ["b"]

    def test_delete_user(self, backend: SQLiteMemoryBackend):
        """delete_user removes only that user's rows."""
        backend.save_entry(_entry("mine", user_id="u1"))
        backend.save_entry(_entry("theirs", user_id="u2"))
        assert backend.delete_user("u1") == 1
        assert [e.user_id for e in backend.load_entries()] == ["u2"]


class TestBackendSummaries:
    """Tests for summary persistence."""

    def test_round_trip(self, backend: SQLiteMemoryBackend):
        """A saved summary loads back."""
        backend.save_summary(ConversationSummary("s1", ["irr"], ["buy"], ["call broker"], 12, 50.0))
        [loaded] = backend.load_summaries()
        assert loaded.key_topics == ["irr"]
        assert loaded.action_items == ["call broker"]
        assert loaded.message_count == 12

    def test_older_summary_does_not_overwrite(self, backend: SQLiteMemoryBackend):
        """Only a newer summary replaces the stored one."""
        backend.save_summary(ConversationSummary("s1", ["new"], [], [], 20, 200.0))
        backend.save_summary(ConversationSummary("s1", ["old"], [], [], 10, 100.0))
        [loaded] = backend.load_summaries()
        assert loaded.key_topics == ["new"]

    def test_delete_summaries(self, backend: SQLiteMemoryBackend):
        """delete_summaries removes the given sessions."""
        backend.save_summary(ConversationSummary("s1", [], [], []))
        backend.save_summary(ConversationSummary("s2", [], [], []))
        backend.delete_summaries(["s1"])
        assert [s.session_id for s in backend.load_summaries()] == ["s2"]
