"""Keyword extraction, importance inference and relevance scoring.

Relevance of a memory to a query combines three factors:

    score = (importance / 10) * confidence * recency * (1 + OVERLAP_WEIGHT * overlap)

``recency`` decays exponentially with a configurable half-life and ``overlap``
is the fraction of query keywords found in the memory. Every factor is
monotonic, so more recent, more important and more lexically relevant
entries always rank higher.
"""

from __future__ import annotations

import math
import re
import time

from .models import MemoryEntry, MemoryKind

OVERLAP_WEIGHT = 2.0
MAX_KEYWORDS = 10

STOPWORDS = frozenset({
    "the", "and", "for", "are", "but", "not", "you", "all", "can", "had", "her",
    "was", "one", "our", "out", "day", "get", "has", "him", "his", "how", "its",
    "may", "new", "now", "old", "see", "two", "way", "who", "did", "let", "put",
    "say", "she", "too", "use", "what", "when", "where", "which", "with", "this",
    "that", "from", "have", "will", "would", "could", "should", "about", "there",
    "their", "them", "they", "then", "than", "been", "were", "your", "into",
    "tell", "does", "just", "also", "some", "user", "assistant",
})

DOMAIN_TOPICS = (
    "development", "real estate", "investment", "property", "market",
    "analysis", "finance", "demographics", "cap rate", "irr", "npv",
    "multifamily", "acquisition", "underwriting", "due diligence",
)

KIND_IMPORTANCE = {
    MemoryKind.FACT: 7,
    MemoryKind.PREFERENCE: 8,
    MemoryKind.TOOL_RESULT: 8,
    MemoryKind.CONVERSATION: 3,
}

_WORD_RE = re.compile(r"[a-z0-9][a-z0-9\-]*")


def tokenize(text: str) -> list[str]:
    """Lowercase word tokens of a text."""
    return _WORD_RE.findall(text.lower())


def extract_keywords(text: str, limit: int = MAX_KEYWORDS) -> tuple[str, ...]:
    """Extract distinct, stopword-filtered keywords in order of appearance."""
    seen: dict[str, None] = {}
    for word in tokenize(text):
        word = word.strip("-")
        if len(word) <= 2 or word in STOPWORDS:
            continue
        seen.setdefault(word, None)
        if len(seen) >= limit:
            break
    return tuple(seen)


def extract_topics(text: str) -> tuple[str, ...]:
    """Domain topics mentioned in a text."""
    padded = " " + " ".join(tokenize(text)) + " "
    return tuple(topic for topic in DOMAIN_TOPICS if f" {topic} " in padded)


def infer_importance(content: str, kind: MemoryKind) -> int:
    """Derive an importance score (1..10) from kind and content cues."""
    score = KIND_IMPORTANCE.get(kind, 5)
    lowered = content.lower()

    if "important" in lowered or "remember" in lowered:
        score += 2
    if "never" in lowered or "always" in lowered:
        score += 1
    if "prefer" in lowered or "like" in lowered:
        score += 1
    if len(content) > 200:
        score += 1

    return min(max(score, 1), 10)


def recency_decay(
    created_at: float,
    half_life_hours: float,
    now: float | None = None,
) -> float:
    """Exponential decay: 1.0 when brand new, 0.5 after one half-life."""
    now = now if now is not None else time.time()
    hours_ago = max(0.0, (now - created_at) / 3600.0)
    if half_life_hours <= 0:
        return 1.0
    return math.pow(2.0, -hours_ago / half_life_hours)


def lexical_overlap(query_keywords: tuple[str, ...], entry: MemoryEntry) -> float:
    """Fraction of query keywords present in the entry (0..1)."""
    if not query_keywords:
        return 0.0
    entry_words = set(entry.keywords) | set(tokenize(entry.content))
    entry_words.update(entry.topics)
    hits = sum(1 for word in query_keywords if word in entry_words)
    return hits / len(query_keywords)


def relevance_score(
    entry: MemoryEntry,
    query_keywords: tuple[str, ...],
    half_life_hours: float,
    now: float | None = None,
) -> float:
    """Composite relevance of an entry for a query."""
    importance = max(0, min(entry.importance, 10)) / 10.0
    confidence = max(0.0, min(entry.confidence, 1.0))
    recency = recency_decay(entry.created_at, half_life_hours, now)
    overlap = lexical_overlap(query_keywords, entry)
    return importance * confidence * recency * (1.0 + OVERLAP_WEIGHT * overlap)


def rank_entries(
    entries: list[MemoryEntry],
    query: str,
    limit: int,
    half_life_hours: float,
    now: float | None = None,
) -> list[MemoryEntry]:
    """Return the top ``limit`` entries for a query, ties broken by recency."""
    if limit <= 0:
        return []
    query_keywords = extract_keywords(query)
    scored = [
        (relevance_score(entry, query_keywords, half_life_hours, now), entry)
        for entry in entries
    ]
    scored.sort(key=lambda item: (item[0], item[1].created_at), reverse=True)
    return [entry for _, entry in scored[:limit]]
