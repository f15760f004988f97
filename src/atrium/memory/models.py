"""Data models for the memory system."""

import time
import uuid
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

DEFAULT_IMPORTANCE = 5
DEFAULT_CONFIDENCE = 0.8

# Fields that may never change once an entry has been written.
_WRITE_ONCE = frozenset({"id", "user_id", "session_id", "kind", "content", "created_at"})


class MemoryKind(Enum):
    """Kinds of memory a user accumulates."""

    CONVERSATION = "conversation"
    PREFERENCE = "preference"
    FACT = "fact"
    TOOL_RESULT = "tool_result"


def new_memory_id() -> str:
    """Generate a unique memory id."""
    return f"mem_{uuid.uuid4().hex}"


@dataclass
class MemoryEntry:
    """An atomic utterance, fact, preference or tool result.

    Attributes:
        id: Unique id, assigned on creation.
        user_id: Owner of the memory.
        session_id: Session the memory is visible in.
        kind: What sort of memory this is.
        content: The remembered text. Immutable.
        importance: 0..10, higher is more important.
        confidence: 0..1, how much we trust the content.
        source_interface: Which UI surface produced it ('main', 'floating', ...).
        created_at: Epoch seconds when written.
        expires_at: Epoch seconds after which the entry is dead. None = durable.
        last_used: Epoch seconds of the last time it was surfaced as context.
        access_count: How many times it was surfaced.
        keywords: Lowercase keywords extracted from content.
        topics: Domain topics mentioned in content.
        origin_id: For entries copied across sessions, the id of the source entry.
        tool_name: For tool results, the originating tool.
    """

    user_id: str
    session_id: str
    kind: MemoryKind
    content: str
    importance: int = DEFAULT_IMPORTANCE
    confidence: float = DEFAULT_CONFIDENCE
    source_interface: str = "main"
    id: str = field(default_factory=new_memory_id)
    created_at: float = field(default_factory=time.time)
    expires_at: float | None = None
    last_used: float | None = None
    access_count: int = 0
    keywords: tuple[str, ...] = ()
    topics: tuple[str, ...] = ()
    origin_id: str | None = None
    tool_name: str | None = None

    def __setattr__(self, name: str, value: Any) -> None:
        if name in _WRITE_ONCE and name in self.__dict__:
            raise AttributeError(f"MemoryEntry.{name} is immutable once written")
        super().__setattr__(name, value)

    @property
    def is_durable(self) -> bool:
        """True if the entry never expires."""
        return self.expires_at is None

    def is_expired(self, now: float | None = None) -> bool:
        """Check if the entry has passed its expiry."""
        if self.expires_at is None:
            return False
        return (now if now is not None else time.time()) >= self.expires_at

    def touch(self, now: float | None = None) -> None:
        """Record that the entry was surfaced as context."""
        self.last_used = now if now is not None else time.time()
        self.access_count += 1

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        data = asdict(self)
        data["kind"] = self.kind.value
        data["keywords"] = list(self.keywords)
        data["topics"] = list(self.topics)
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MemoryEntry":
        """Create from dictionary."""
        data = dict(data)
        data["kind"] = MemoryKind(data["kind"])
        data["keywords"] = tuple(data.get("keywords") or ())
        data["topics"] = tuple(data.get("topics") or ())
        return cls(**data)


@dataclass(frozen=True)
class ConversationSummary:
    """Compressed view of a session's history.

    A later summary for the same session supersedes an earlier one.
    """

    session_id: str
    key_topics: list[str]
    decisions: list[str]
    action_items: list[str]
    message_count: int = 0
    generated_at: float = field(default_factory=time.time)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConversationSummary":
        """Create from dictionary."""
        return cls(**data)


@dataclass
class UserProfile:
    """Read-only projection over a user's memory entries."""

    user_id: str
    communication_style: str = "professional"
    topic_histogram: dict[str, int] = field(default_factory=dict)
    tool_usage: dict[str, int] = field(default_factory=dict)
    total_interactions: int = 0
    last_active: float | None = None

    def top_topics(self, limit: int = 5) -> list[str]:
        """Most frequent topics, most frequent first."""
        ranked = sorted(self.topic_histogram.items(), key=lambda kv: (-kv[1], kv[0]))
        return [topic for topic, _ in ranked[:limit]]

    def top_tools(self, limit: int = 5) -> list[str]:
        """Most used tools, most used first."""
        ranked = sorted(self.tool_usage.items(), key=lambda kv: (-kv[1], kv[0]))
        return [tool for tool, _ in ranked[:limit]]


@dataclass
class RelevantContext:
    """Context assembled from memory for one query."""

    recent_context: list[MemoryEntry]
    relevant_memories: list[MemoryEntry]
    tool_results: list[MemoryEntry]
    user_profile: UserProfile
    conversation_summary: ConversationSummary | None = None


@dataclass
class MemoryStats:
    """Aggregate statistics about a user's memory."""

    user_id: str
    total_memories: int
    by_kind: dict[str, int]
    average_importance: float
    total_interactions: int
    sessions: int

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return asdict(self)


USER_PREFIX = "User: "
ASSISTANT_PREFIX = "Assistant: "


def as_chat_message(entry: MemoryEntry) -> dict[str, str]:
    """Convert a conversation entry back into a role/content message."""
    if entry.content.startswith(ASSISTANT_PREFIX):
        return {"role": "assistant", "content": entry.content[len(ASSISTANT_PREFIX):]}
    if entry.content.startswith(USER_PREFIX):
        return {"role": "user", "content": entry.content[len(USER_PREFIX):]}
    return {"role": "user", "content": entry.content}
