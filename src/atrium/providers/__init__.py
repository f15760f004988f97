"""Completion providers."""

from .base import CompletionOptions, CompletionProvider
from .groq_provider import GroqProvider
from .http_provider import OpenAICompatibleProvider

__all__ = [
    "CompletionOptions",
    "CompletionProvider",
    "GroqProvider",
    "OpenAICompatibleProvider",
]
