"""Chat request and response models."""

import logging
import math
from dataclasses import dataclass, field
from typing import Any

from ..config import ChatConfig
from ..errors import ValidationError

logger = logging.getLogger(__name__)

SOURCE_INTERFACES = ("main", "floating")
DEFAULT_MESSAGE = "Hello"
DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 4000
MAX_TEMPERATURE = 2.0


def _pick(data: dict[str, Any], *keys: str) -> Any:
    """First present, non-None value among camelCase/snake_case aliases."""
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def _as_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes"):
            return True
        if lowered in ("false", "0", "no"):
            return False
    return default


def _as_number(value: Any, convert: type, name: str) -> Any:
    """Convert a numeric field, raising ValidationError if it is unusable."""
    try:
        number = convert(value)
    except (TypeError, ValueError, OverflowError) as e:
        raise ValidationError(f"{name} is not a number: {value!r}") from e
    if isinstance(number, float) and not math.isfinite(number):
        raise ValidationError(f"{name} is not finite: {value!r}")
    return number


@dataclass
class ChatRequest:
    """A validated chat request. Every field holds a usable value."""

    message: str
    session_id: str | None = None
    user_id: str = "demo-user"
    model: str | None = None
    temperature: float = DEFAULT_TEMPERATURE
    max_tokens: int = DEFAULT_MAX_TOKENS
    streaming: bool = False
    source_instance: str = "main"
    memory_enabled: bool = True
    cross_session_memory: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None, config: ChatConfig | None = None) -> "ChatRequest":
        """Build a request from loosely-typed input.

        Malformed fields are replaced by defaults instead of raising, and each
        correction is logged at debug level.

        Args:
            data: Request payload, camelCase or snake_case keys.
            config: Supplies the default user and model.
        """
        config = config or ChatConfig()
        data = data if isinstance(data, dict) else {}
        corrections: list[str] = []

        message = _pick(data, "message", "query", "text")
        if message is not None and not isinstance(message, str):
            message = str(message)
        if not message or not message.strip():
            corrections.append("message")
            message = DEFAULT_MESSAGE

        session_id = _pick(data, "sessionId", "session_id")
        if session_id is not None and not isinstance(session_id, str):
            session_id = str(session_id)

        user_id = _pick(data, "userId", "user_id")
        if not isinstance(user_id, str) or not user_id.strip():
            if user_id is not None:
                corrections.append("userId")
            user_id = config.default_user

        model = _pick(data, "model")
        if not isinstance(model, str) or not model.strip():
            model = config.default_model

        temperature = DEFAULT_TEMPERATURE
        raw = _pick(data, "temperature")
        if raw is not None:
            try:
                temperature = _as_number(raw, float, "temperature")
            except ValidationError as e:
                logger.debug(f"Invalid request field: {e}")
                corrections.append("temperature")
        if not 0.0 <= temperature <= MAX_TEMPERATURE:
            corrections.append("temperature")
            temperature = min(max(temperature, 0.0), MAX_TEMPERATURE)

        max_tokens = DEFAULT_MAX_TOKENS
        raw = _pick(data, "maxTokens", "max_tokens")
        if raw is not None:
            try:
                max_tokens = _as_number(raw, int, "maxTokens")
            except ValidationError as e:
                logger.debug(f"Invalid request field: {e}")
                corrections.append("maxTokens")
        if max_tokens <= 0:
            corrections.append("maxTokens")
            max_tokens = DEFAULT_MAX_TOKENS

        source = _pick(data, "sourceInstance", "source_instance")
        if source not in SOURCE_INTERFACES:
            if source is not None:
                corrections.append("sourceInstance")
            source = "main"

        if corrections:
            logger.debug(f"Corrected request fields: {', '.join(corrections)}")

        return cls(
            message=message,
            session_id=session_id,
            user_id=user_id.strip(),
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            streaming=_as_bool(data.get("streaming"), False),
            source_instance=source,
            memory_enabled=_as_bool(_pick(data, "memoryEnabled", "memory_enabled"), True),
            cross_session_memory=_as_bool(
                _pick(data, "crossSessionMemory", "cross_session_memory"), False
            ),
        )


@dataclass
class ContextUsage:
    """How much memory context went into a response."""

    recent_messages: int = 0
    relevant_memories: int = 0
    tool_results: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "recentMessages": self.recent_messages,
            "relevantMemories": self.relevant_memories,
            "toolResults": self.tool_results,
        }


@dataclass
class ResponseMetadata:
    """Observability data attached to every response."""

    processing_time_ms: float
    source_tier: str
    memory_integrated: bool = False
    context_used: ContextUsage = field(default_factory=ContextUsage)
    fallback: bool = False
    cached: bool = False
    category: str | None = None
    attempts: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Convert to the external camelCase shape."""
        data: dict[str, Any] = {
            "processingTimeMs": round(self.processing_time_ms, 2),
            "memoryIntegrated": self.memory_integrated,
            "contextUsed": self.context_used.to_dict(),
            "sourceTier": self.source_tier,
            "fallback": self.fallback,
            "cached": self.cached,
        }
        if self.category:
            data["category"] = self.category
        if self.attempts:
            data["attempts"] = self.attempts
        return data


@dataclass
class ChatResponse:
    """Response to a chat request. ``success`` is always True to callers."""

    content: str
    session_id: str
    model: str
    metadata: ResponseMetadata
    success: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": self.success,
            "content": self.content,
            "sessionId": self.session_id,
            "model": self.model,
            "metadata": self.metadata.to_dict(),
        }


@dataclass
class StreamChunk:
    """One piece of a streamed response; the last chunk has ``done`` set."""

    content: str
    done: bool
    session_id: str
    model: str
    metadata: ResponseMetadata | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "content": self.content,
            "done": self.done,
            "sessionId": self.session_id,
            "model": self.model,
        }
        if self.metadata is not None:
            data["metadata"] = self.metadata.to_dict()
        return data
