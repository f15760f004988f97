"""Tests for SessionCoordinator."""

import json
from pathlib import Path

import pytest

from atrium.conversation_logger import ConversationLogger
from atrium.logging import JSONLLogger
from atrium.memory import MemoryKind, MemoryStore
from atrium.session import SessionCoordinator, new_session_id


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def jsonl_logger(tmp_path: Path) -> JSONLLogger:
    return JSONLLogger(log_dir=tmp_path / "ops")


@pytest.fixture
def coordinator(store: MemoryStore, jsonl_logger: JSONLLogger, tmp_path: Path) -> SessionCoordinator:
    return SessionCoordinator(
        store,
        jsonl_logger=jsonl_logger,
        conversation_logger=ConversationLogger(log_dir=tmp_path / "conversations"),
    )


def test_new_session_id_format() -> None:
    session_id = new_session_id()
    assert session_id.startswith("session_")
    assert len(session_id) == len("session_") + 16
    assert new_session_id() != session_id


class TestEnsureSession:
    """Tests for ensure_session."""

    def test_keeps_provided_id(self, coordinator: SessionCoordinator):
        assert coordinator.ensure_session("abc", "u1") == "abc"

    def test_strips_provided_id(self, coordinator: SessionCoordinator):
        assert coordinator.ensure_session("  abc ", "u1") == "abc"

    @pytest.mark.parametrize("provided", [None, "", "   "])
    def test_mints_when_missing(self, coordinator: SessionCoordinator, provided):
        assert coordinator.ensure_session(provided, "u1").startswith("session_")


class TestRecentSessions:
    """Tests for the recent-session map."""

    def test_most_recent_first(self, coordinator: SessionCoordinator):
        for session_id in ("s1", "s2", "s3"):
            coordinator.activate("u1", session_id)
        coordinator.activate("u1", "s1")
        assert coordinator.recent_sessions("u1") == ["s1", "s3", "s2"]

    def test_bounded(self, store: MemoryStore, jsonl_logger: JSONLLogger, tmp_path: Path):
        coordinator = SessionCoordinator(
            store,
            max_recent=3,
            jsonl_logger=jsonl_logger,
            conversation_logger=ConversationLogger(log_dir=tmp_path),
        )
        for i in range(5):
            coordinator.activate("u1", f"s{i}")
        assert coordinator.recent_sessions("u1") == ["s4", "s3", "s2"]

    def test_users_are_independent(self, coordinator: SessionCoordinator):
        coordinator.activate("u1", "a")
        coordinator.activate("u2", "b")
        assert coordinator.recent_sessions("u1") == ["a"]
        assert coordinator.previous_session("u2", "c") == "b"

    def test_is_new(self, coordinator: SessionCoordinator):
        assert coordinator.activate("u1", "s1").is_new
        assert not coordinator.activate("u1", "s1").is_new

    def test_forget_user(self, coordinator: SessionCoordinator):
        coordinator.activate("u1", "s1")
        coordinator.forget_user("u1")
        assert coordinator.recent_sessions("u1") == []
        assert coordinator.activate("u1", "s1").is_new


class TestSharing:
    """Tests for cross-session memory sharing on activation."""

    def test_shares_from_previous_session(self, coordinator: SessionCoordinator, store: MemoryStore):
        coordinator.activate("u1", "A")
        store.store("u1", "A", "I target 6% cap rates", MemoryKind.FACT, importance=8)
        store.store("u1", "A", "User: hi", importance=3)

        activation = coordinator.activate("u1", "B", cross_session=True)

        assert activation.shared_from == "A"
        assert activation.shared_count == 1
        [copied] = store.get_session_entries("B")
        assert copied.content == "I target 6% cap rates"

    def test_no_share_without_flag(self, coordinator: SessionCoordinator, store: MemoryStore):
        coordinator.activate("u1", "A")
        store.store("u1", "A", "I target 6% cap rates", MemoryKind.FACT, importance=8)

        activation = coordinator.activate("u1", "B")

        assert activation.shared_from is None
        assert store.get_session_entries("B") == []

    def test_shares_once_per_pair(self, coordinator: SessionCoordinator, store: MemoryStore):
        coordinator.activate("u1", "A")
        store.store("u1", "A", "fact one", MemoryKind.FACT, importance=9)
        coordinator.activate("u1", "B", cross_session=True)

        store.store("u1", "A", "fact two", MemoryKind.FACT, importance=9)
        activation = coordinator.activate("u1", "B", cross_session=True)

        assert activation.shared_from is None
        assert [e.content for e in store.get_session_entries("B")] == ["fact one"]

    def test_first_session_has_nothing_to_share(self, coordinator: SessionCoordinator):
        activation = coordinator.activate("u1", "A", cross_session=True)
        assert activation.shared_from is None
        assert activation.shared_count == 0

    def test_share_is_logged(self, coordinator: SessionCoordinator, store: MemoryStore, jsonl_logger: JSONLLogger):
        coordinator.activate("u1", "A")
        store.store("u1", "A", "fact", MemoryKind.FACT, importance=9)
        coordinator.activate("u1", "B", cross_session=True)

        with open(jsonl_logger.log_path) as f:
            [entry] = [json.loads(line) for line in f]
        assert entry["event"] == "session_share"
        assert entry["extra"] == {"from_session": "A", "shared": 1}
