"""Configuration objects and environment loading."""

import os
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_MODEL = "llama-3.3-70b-versatile"
DEFAULT_SIMPLIFIED_MODEL = "llama-3.1-8b-instant"
DEFAULT_DIRECT_MODEL = "openai/gpt-4o-mini"
DEFAULT_DIRECT_BASE_URL = "https://openrouter.ai/api/v1"


@dataclass
class DispatchConfig:
    """Time budgets for the tier cascade, in seconds."""

    global_budget: float = 45.0
    unified_timeout: float = 30.0
    simplified_timeout: float = 15.0
    direct_timeout: float = 8.0


@dataclass
class CacheConfig:
    """Configuration for the response cache."""

    ttl_seconds: float = 300.0  # 5 minutes
    max_entries: int = 1000
    key_prefix_chars: int = 100


@dataclass
class MemoryConfig:
    """Configuration for the memory store."""

    db_path: Path | None = None
    recent_limit: int = 20
    relevant_limit: int = 15
    share_importance_threshold: int = 7
    conversation_ttl_seconds: float | None = None
    recency_half_life_hours: float = 720.0  # 30 days
    sweep_interval: float = 300.0


@dataclass
class SummaryConfig:
    """Configuration for conversation summarization."""

    threshold: int = 10
    timeout: float = 5.0


@dataclass
class ChatConfig:
    """Top-level configuration for the chat service."""

    default_model: str = DEFAULT_MODEL
    simplified_model: str = DEFAULT_SIMPLIFIED_MODEL
    direct_model: str = DEFAULT_DIRECT_MODEL
    direct_base_url: str = DEFAULT_DIRECT_BASE_URL
    default_user: str = "demo-user"
    dispatch: DispatchConfig = field(default_factory=DispatchConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    memory: MemoryConfig = field(default_factory=MemoryConfig)
    summary: SummaryConfig = field(default_factory=SummaryConfig)


def config_from_env() -> ChatConfig:
    """Load configuration from environment variables."""
    memory_db = os.getenv("ATRIUM_MEMORY_DB")

    return ChatConfig(
        default_model=os.getenv("ATRIUM_MODEL", DEFAULT_MODEL),
        simplified_model=os.getenv("ATRIUM_SIMPLIFIED_MODEL", DEFAULT_SIMPLIFIED_MODEL),
        direct_model=os.getenv("ATRIUM_DIRECT_MODEL", DEFAULT_DIRECT_MODEL),
        direct_base_url=os.getenv("ATRIUM_DIRECT_BASE_URL", DEFAULT_DIRECT_BASE_URL),
        dispatch=DispatchConfig(
            global_budget=float(os.getenv("ATRIUM_GLOBAL_BUDGET", "45")),
        ),
        cache=CacheConfig(
            ttl_seconds=float(os.getenv("ATRIUM_CACHE_TTL", "300")),
        ),
        memory=MemoryConfig(
            db_path=Path(memory_db).expanduser() if memory_db else None,
        ),
    )
