"""Tests for CLI."""

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest

from atrium.chat import ChatResponse, ResponseMetadata
from atrium.cli import CLI, print_stats
from atrium.config import ChatConfig, MemoryConfig
from atrium.logging import JSONLLogger
from atrium.memory import MemoryKind, MemoryStats, MemoryStore


@pytest.fixture
def service() -> MagicMock:
    service = MagicMock()
    service.process_chat = AsyncMock(
        return_value=ChatResponse(
            content="Cap rates are near 6%.",
            session_id="s1",
            model="llama-3.3-70b-versatile",
            metadata=ResponseMetadata(processing_time_ms=5.0, source_tier="unified"),
        )
    )
    service.get_stats.return_value = MemoryStats(
        user_id="u1",
        total_memories=4,
        by_kind={"conversation": 3, "fact": 1},
        average_importance=5.5,
        total_interactions=3,
        sessions=2,
    )
    service.clear_user_data.return_value = 4
    return service


@pytest.fixture
def cli(service: MagicMock, tmp_path: Path, monkeypatch) -> CLI:
    monkeypatch.setattr("atrium.logging._logger", JSONLLogger(log_dir=tmp_path))
    return CLI(service=service, config=ChatConfig(), user_id="u1")


def test_new_session_id(cli: CLI) -> None:
    """Test session ID generation."""
    assert cli.session_id.startswith("session_")


@pytest.mark.asyncio
async def test_handle_command_exit(cli: CLI) -> None:
    """Test exit commands return False."""
    assert await cli._handle_command("/exit") is False
    assert await cli._handle_command("quit") is False


@pytest.mark.asyncio
async def test_handle_command_help(cli: CLI) -> None:
    """Test help command returns True."""
    assert await cli._handle_command("/help") is True


@pytest.mark.asyncio
async def test_new_session_shares_next_request(cli: CLI, service: MagicMock) -> None:
    """Test /new starts a session that pulls memory from the previous one."""
    old_id = cli.session_id
    assert await cli._handle_command("/new") is True
    assert cli.session_id != old_id

    await cli._process_message("what did we decide?")
    await cli._process_message("and then?")

    first = service.process_chat.await_args_list[0].args[0]
    second = service.process_chat.await_args_list[1].args[0]
    assert first.session_id == cli.session_id
    assert first.cross_session_memory is True
    assert second.cross_session_memory is False


@pytest.mark.asyncio
async def test_clear_command(cli: CLI, service: MagicMock, capsys) -> None:
    assert await cli._handle_command("/clear") is True
    service.clear_user_data.assert_called_once_with("u1")
    assert "Deleted 4 memories" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_unknown_command(cli: CLI, capsys) -> None:
    assert await cli._handle_command("/dance") is True
    assert "Unknown command" in capsys.readouterr().out


def test_format_response_plain(cli: CLI) -> None:
    """Test response formatting for a live tier."""
    output = cli._format_response("Hello!", "unified", cached=False, fallback=False)
    assert "Hello!" in output
    assert "(tier: unified)" in output


def test_format_response_fallback(cli: CLI) -> None:
    """Test response formatting for cached offline answers."""
    output = cli._format_response("Offline", "fallback", cached=True, fallback=True)
    assert "cached" in output
    assert "offline fallback" in output


def test_format_stats(cli: CLI) -> None:
    output = cli._format_stats()
    assert "Total memories:     4" in output
    assert "fact: 1" in output


def test_print_stats_requires_db(monkeypatch, capsys) -> None:
    monkeypatch.delenv("ATRIUM_MEMORY_DB", raising=False)
    assert print_stats("u1") == 1
    assert "ATRIUM_MEMORY_DB" in capsys.readouterr().out


def test_print_stats_reads_persisted_memory(monkeypatch, tmp_path: Path, capsys) -> None:
    db_path = tmp_path / "memory.db"
    store = MemoryStore(MemoryConfig(db_path=db_path))
    store.open()
    store.store("u1", "s1", "Budget is $5M", MemoryKind.FACT)
    store.close()

    monkeypatch.setenv("ATRIUM_MEMORY_DB", str(db_path))
    assert print_stats("u1") == 0
    assert "total_memories: 1" in capsys.readouterr().out
