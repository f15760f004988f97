"""Conversational memory: storage, retrieval, tool context and summaries."""

from .backend import SQLiteMemoryBackend
from .models import (
    ConversationSummary,
    MemoryEntry,
    MemoryKind,
    MemoryStats,
    RelevantContext,
    UserProfile,
)
from .store import MemoryStore
from .summarizer import ConversationSummarizer
from .tool_context import ToolContextIntegrator
from .tools import RememberTool

__all__ = [
    "ConversationSummarizer",
    "ConversationSummary",
    "MemoryEntry",
    "MemoryKind",
    "MemoryStats",
    "MemoryStore",
    "RelevantContext",
    "RememberTool",
    "SQLiteMemoryBackend",
    "ToolContextIntegrator",
    "UserProfile",
]
