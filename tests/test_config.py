"""Tests for configuration loading."""

from pathlib import Path

from atrium.config import ChatConfig, config_from_env


def test_defaults():
    config = ChatConfig()
    assert config.default_model == "llama-3.3-70b-versatile"
    assert config.dispatch.global_budget == 45.0
    assert config.dispatch.unified_timeout == 30.0
    assert config.dispatch.simplified_timeout == 15.0
    assert config.dispatch.direct_timeout == 8.0
    assert config.cache.ttl_seconds == 300.0
    assert config.summary.threshold == 10
    assert config.memory.share_importance_threshold == 7
    assert config.memory.db_path is None


def test_config_from_env(monkeypatch, tmp_path: Path):
    monkeypatch.setenv("ATRIUM_MODEL", "llama-3.1-70b")
    monkeypatch.setenv("ATRIUM_SIMPLIFIED_MODEL", "llama-3.1-8b")
    monkeypatch.setenv("ATRIUM_DIRECT_MODEL", "openai/gpt-4o")
    monkeypatch.setenv("ATRIUM_DIRECT_BASE_URL", "https://llm.test/v1")
    monkeypatch.setenv("ATRIUM_GLOBAL_BUDGET", "20")
    monkeypatch.setenv("ATRIUM_CACHE_TTL", "60")
    monkeypatch.setenv("ATRIUM_MEMORY_DB", str(tmp_path / "memory.db"))

    config = config_from_env()

    assert config.default_model == "llama-3.1-70b"
    assert config.simplified_model == "llama-3.1-8b"
    assert config.direct_model == "openai/gpt-4o"
    assert config.direct_base_url == "https://llm.test/v1"
    assert config.dispatch.global_budget == 20.0
    assert config.cache.ttl_seconds == 60.0
    assert config.memory.db_path == tmp_path / "memory.db"


def test_config_from_env_defaults(monkeypatch):
    for name in ("ATRIUM_MODEL", "ATRIUM_GLOBAL_BUDGET", "ATRIUM_CACHE_TTL", "ATRIUM_MEMORY_DB"):
        monkeypatch.delenv(name, raising=False)

    config = config_from_env()

    assert config.default_model == "llama-3.3-70b-versatile"
    assert config.dispatch.global_budget == 45.0
    assert config.memory.db_path is None
