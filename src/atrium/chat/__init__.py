"""Chat request handling."""

from .models import ChatRequest, ChatResponse, ContextUsage, ResponseMetadata, StreamChunk
from .service import ChatService

__all__ = [
    "ChatRequest",
    "ChatResponse",
    "ChatService",
    "ContextUsage",
    "ResponseMetadata",
    "StreamChunk",
]
