"""Tiered response dispatch with caching and a deterministic fallback."""

from .cache import CacheEntry, ResponseCache
from .dispatcher import (
    FALLBACK_TIER,
    CascadingDispatcher,
    DispatchAttempt,
    DispatchOutcome,
    DispatchRequest,
    Fallback,
    Success,
    Tier,
    default_tiers,
)
from .fallback import DeterministicFallback
from .intent import Category, classify_intent
from .prompt import ContextLevel, build_messages, build_system_prompt

__all__ = [
    "FALLBACK_TIER",
    "CacheEntry",
    "CascadingDispatcher",
    "Category",
    "ContextLevel",
    "DeterministicFallback",
    "DispatchAttempt",
    "DispatchOutcome",
    "DispatchRequest",
    "Fallback",
    "ResponseCache",
    "Success",
    "Tier",
    "build_messages",
    "build_system_prompt",
    "classify_intent",
    "default_tiers",
]
