"""In-process memory store with optional durable mirroring."""

from __future__ import annotations

import asyncio
import logging
import sqlite3
import time
from collections import Counter

from ..config import MemoryConfig
from ..errors import MemoryStoreError
from .backend import SQLiteMemoryBackend
from .models import (
    DEFAULT_CONFIDENCE,
    DEFAULT_IMPORTANCE,
    ConversationSummary,
    MemoryEntry,
    MemoryKind,
    MemoryStats,
    RelevantContext,
    UserProfile,
)
from .scoring import extract_keywords, extract_topics, infer_importance, rank_entries

logger = logging.getLogger(__name__)


def _coerce_importance(value: object) -> int | None:
    """Validate an importance value, returning None when it is unusable."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not 0 <= value <= 10:
        return None
    return int(round(value))


def _coerce_confidence(value: object) -> float | None:
    """Validate a confidence value, returning None when it is unusable."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if not 0.0 <= value <= 1.0:
        return None
    return float(value)


def _coerce_kind(value: object) -> MemoryKind:
    if isinstance(value, MemoryKind):
        return value
    try:
        return MemoryKind(str(value).lower())
    except ValueError:
        return MemoryKind.CONVERSATION


class MemoryStore:
    """Per-user, per-session memory with relevance-ranked retrieval.

    All operations are synchronous, so each one runs atomically with respect
    to other coroutines on the event loop. Expired entries are filtered on
    every read and physically removed by ``delete_expired``.
    """

    def __init__(
        self,
        config: MemoryConfig | None = None,
        backend: SQLiteMemoryBackend | None = None,
    ) -> None:
        """Initialize the store.

        Args:
            config: Memory configuration. Defaults are used when omitted.
            backend: Optional durable backend that mirrors every write.
        """
        self.config = config or MemoryConfig()
        if backend is None and self.config.db_path is not None:
            backend = SQLiteMemoryBackend(self.config.db_path)
        self.backend = backend
        self._entries: dict[str, MemoryEntry] = {}
        self._summaries: dict[str, ConversationSummary] = {}
        self._sweep_task: asyncio.Task | None = None

    def open(self) -> None:
        """Initialize the backend and load persisted memory, if any."""
        if self.backend is None:
            return

        self.backend.init_db()
        now = time.time()
        for entry in self.backend.load_entries():
            if not entry.is_expired(now):
                self._entries[entry.id] = entry
        for summary in self.backend.load_summaries():
            self._summaries[summary.session_id] = summary

    def close(self) -> None:
        """Stop background work and close the backend."""
        self.stop_sweep_task()
        if self.backend is not None:
            self.backend.close()

    # -- writes -------------------------------------------------------------

    def store(
        self,
        user_id: str,
        session_id: str,
        content: str,
        kind: MemoryKind | str = MemoryKind.CONVERSATION,
        *,
        importance: object = None,
        confidence: object = None,
        source_interface: str = "main",
        ttl_seconds: float | None = None,
        tool_name: str | None = None,
    ) -> MemoryEntry:
        """Store a new memory entry.

        Malformed optional fields are replaced by defaults rather than
        rejected. A missing importance is inferred from kind and content.

        Args:
            user_id: Owner of the memory.
            session_id: Session the memory belongs to.
            content: The text to remember. Must be non-empty.
            kind: Memory kind.
            importance: 0..10. Inferred when None, 5 when malformed.
            confidence: 0..1. 0.8 when None or malformed.
            source_interface: Which UI surface produced the memory.
            ttl_seconds: Lifetime in seconds. None for durable memory, unless
                the store is configured with a conversation TTL.
            tool_name: Originating tool, for tool results.

        Returns:
            The stored entry.

        Raises:
            MemoryStoreError: If content is empty.
        """
        if not isinstance(content, str) or not content.strip():
            raise MemoryStoreError("Memory content must be a non-empty string")

        kind = _coerce_kind(kind)

        if importance is None:
            resolved_importance = infer_importance(content, kind)
        else:
            resolved_importance = _coerce_importance(importance)
            if resolved_importance is None:
                resolved_importance = DEFAULT_IMPORTANCE

        resolved_confidence = _coerce_confidence(confidence)
        if resolved_confidence is None:
            resolved_confidence = DEFAULT_CONFIDENCE

        if ttl_seconds is None and kind is MemoryKind.CONVERSATION:
            ttl_seconds = self.config.conversation_ttl_seconds

        created_at = time.time()
        expires_at = None
        if ttl_seconds is not None:
            expires_at = created_at + max(0.0, float(ttl_seconds))

        entry = MemoryEntry(
            user_id=user_id,
            session_id=session_id,
            kind=kind,
            content=content,
            importance=resolved_importance,
            confidence=resolved_confidence,
            source_interface=source_interface or "main",
            created_at=created_at,
            expires_at=expires_at,
            keywords=extract_keywords(content),
            topics=extract_topics(content),
            tool_name=tool_name,
        )
        self._insert(entry)
        return entry

    def _insert(self, entry: MemoryEntry) -> None:
        self._entries[entry.id] = entry
        self._mirror(entry)

    def _mirror(self, entry: MemoryEntry) -> None:
        """Write an entry through to the backend, best-effort."""
        if self.backend is None:
            return
        try:
            self.backend.save_entry(entry)
        except sqlite3.Error as e:
            logger.warning(f"Failed to persist memory {entry.id}: {e}")

    def save_summary(self, summary: ConversationSummary) -> bool:
        """Store a summary if it is newer than the current one.

        Returns:
            True if the summary became the session's current summary.
        """
        current = self._summaries.get(summary.session_id)
        if current is not None and summary.generated_at < current.generated_at:
            return False

        self._summaries[summary.session_id] = summary
        if self.backend is not None:
            try:
                self.backend.save_summary(summary)
            except sqlite3.Error as e:
                logger.warning(f"Failed to persist summary for {summary.session_id}: {e}")
        return True

    # -- reads --------------------------------------------------------------

    def _live(self, now: float | None = None) -> list[MemoryEntry]:
        now = now if now is not None else time.time()
        return [e for e in self._entries.values() if not e.is_expired(now)]

    def get_user_entries(self, user_id: str) -> list[MemoryEntry]:
        """All live entries of a user, oldest first."""
        return [e for e in self._live() if e.user_id == user_id]

    def get_session_entries(
        self,
        session_id: str,
        kind: MemoryKind | None = None,
    ) -> list[MemoryEntry]:
        """All live entries visible in a session, oldest first."""
        return [
            e
            for e in self._live()
            if e.session_id == session_id and (kind is None or e.kind is kind)
        ]

    def count_messages(self, session_id: str) -> int:
        """Number of live conversation entries in a session."""
        return len(self.get_session_entries(session_id, MemoryKind.CONVERSATION))

    def get_summary(self, session_id: str) -> ConversationSummary | None:
        """The most recent summary of a session."""
        return self._summaries.get(session_id)

    def get_relevant_context(
        self,
        user_id: str,
        session_id: str,
        query: str,
        limit: int | None = None,
    ) -> RelevantContext:
        """Assemble memory context for a new query.

        Args:
            user_id: The user asking.
            session_id: The session the query arrives in.
            query: The query text, used for lexical biasing.
            limit: Maximum number of relevant memories and tool results.

        Returns:
            RelevantContext with the last conversation turns of the session
            (chronological), the user's top-ranked memories, the session's
            tool results, the current summary and the user profile.
        """
        limit = self.config.relevant_limit if limit is None else limit
        now = time.time()
        user_entries = [e for e in self._live(now) if e.user_id == user_id]

        conversation = [
            e
            for e in user_entries
            if e.session_id == session_id and e.kind is MemoryKind.CONVERSATION
        ]
        conversation.sort(key=lambda e: e.created_at)
        recent = conversation[-self.config.recent_limit:] if self.config.recent_limit > 0 else []
        recent_ids = {e.id for e in recent}

        candidates = [e for e in user_entries if e.id not in recent_ids]
        relevant: list[MemoryEntry] = []
        seen_content: set[tuple[MemoryKind, str]] = set()
        for entry in rank_entries(
            candidates, query, len(candidates), self.config.recency_half_life_hours, now
        ):
            signature = (entry.kind, entry.content)
            if signature in seen_content:
                continue
            seen_content.add(signature)
            relevant.append(entry)
            if len(relevant) >= limit:
                break

        tool_results = [
            e
            for e in user_entries
            if e.session_id == session_id and e.kind is MemoryKind.TOOL_RESULT
        ]
        tool_results.sort(key=lambda e: e.created_at, reverse=True)
        tool_results = tool_results[:limit]

        for entry in relevant:
            entry.touch(now)
            self._mirror(entry)

        return RelevantContext(
            recent_context=recent,
            relevant_memories=relevant,
            tool_results=tool_results,
            user_profile=self.user_profile(user_id),
            conversation_summary=self._summaries.get(session_id),
        )

    # -- cross-session ------------------------------------------------------

    def share_memory_across_sessions(
        self,
        user_id: str,
        from_session_id: str,
        to_session_id: str,
    ) -> int:
        """Copy a session's high-importance memories into another session.

        The source session keeps its entries. Re-sharing the same pair is a
        no-op because copies remember the entry they came from.

        Returns:
            Number of entries copied.
        """
        if from_session_id == to_session_id:
            return 0

        now = time.time()
        live = [e for e in self._live(now) if e.user_id == user_id]
        target = [e for e in live if e.session_id == to_session_id]
        present_origins = {e.origin_id or e.id for e in target}
        present_content = {(e.kind, e.content) for e in target}

        copied = 0
        for source in live:
            if source.session_id != from_session_id:
                continue
            if source.importance < self.config.share_importance_threshold:
                continue
            origin = source.origin_id or source.id
            if origin in present_origins or (source.kind, source.content) in present_content:
                continue

            copy = MemoryEntry(
                user_id=user_id,
                session_id=to_session_id,
                kind=source.kind,
                content=source.content,
                importance=source.importance,
                confidence=source.confidence,
                source_interface=source.source_interface,
                created_at=source.created_at,
                expires_at=source.expires_at,
                keywords=source.keywords,
                topics=source.topics,
                origin_id=origin,
                tool_name=source.tool_name,
            )
            self._insert(copy)
            present_origins.add(origin)
            present_content.add((copy.kind, copy.content))
            copied += 1

        return copied

    # -- deletion -----------------------------------------------------------

    def delete_expired(self) -> int:
        """Remove every entry whose expiry has passed.

        Returns:
            Number of entries removed.
        """
        now = time.time()
        expired = [entry_id for entry_id, e in self._entries.items() if e.is_expired(now)]
        for entry_id in expired:
            del self._entries[entry_id]

        if expired and self.backend is not None:
            try:
                self.backend.delete_entries(expired)
            except sqlite3.Error as e:
                logger.warning(f"Failed to delete expired memories: {e}")

        return len(expired)

    def clear_user_memory(self, user_id: str) -> int:
        """Irreversibly delete all memory of a user.

        Returns:
            Number of entries removed.
        """
        doomed = [entry_id for entry_id, e in self._entries.items() if e.user_id == user_id]
        sessions = {self._entries[entry_id].session_id for entry_id in doomed}
        for entry_id in doomed:
            del self._entries[entry_id]
        for session_id in sessions:
            self._summaries.pop(session_id, None)

        if self.backend is not None:
            try:
                self.backend.delete_user(user_id)
                self.backend.delete_summaries(sorted(sessions))
            except sqlite3.Error as e:
                raise MemoryStoreError(f"Failed to clear memory for {user_id}: {e}") from e

        return len(doomed)

    # -- projections --------------------------------------------------------

    def user_profile(self, user_id: str) -> UserProfile:
        """Recompute the user's profile from their memory entries."""
        entries = self.get_user_entries(user_id)
        profile = UserProfile(user_id=user_id)

        topics: Counter[str] = Counter()
        tools: Counter[str] = Counter()
        style_votes: Counter[str] = Counter()

        for entry in entries:
            if entry.origin_id is not None:
                continue  # cross-session copies would double count
            topics.update(entry.topics)
            if entry.kind is MemoryKind.TOOL_RESULT and entry.tool_name:
                tools[entry.tool_name] += 1
            if entry.kind is MemoryKind.CONVERSATION:
                profile.total_interactions += 1
            if entry.kind is MemoryKind.PREFERENCE:
                lowered = entry.content.lower()
                if "concise" in lowered or "brief" in lowered or "short" in lowered:
                    style_votes["concise"] += 1
                if "detail" in lowered or "thorough" in lowered:
                    style_votes["detailed"] += 1
            last = max(entry.created_at, entry.last_used or 0.0)
            if profile.last_active is None or last > profile.last_active:
                profile.last_active = last

        if style_votes:
            profile.communication_style = style_votes.most_common(1)[0][0]
        profile.topic_histogram = dict(topics)
        profile.tool_usage = dict(tools)
        return profile

    def get_stats(self, user_id: str) -> MemoryStats:
        """Aggregate statistics about a user's memory."""
        entries = self.get_user_entries(user_id)
        by_kind = Counter(e.kind.value for e in entries)
        average = sum(e.importance for e in entries) / len(entries) if entries else 0.0

        return MemoryStats(
            user_id=user_id,
            total_memories=len(entries),
            by_kind=dict(by_kind),
            average_importance=round(average, 2),
            total_interactions=self.user_profile(user_id).total_interactions,
            sessions=len({e.session_id for e in entries}),
        )

    def __len__(self) -> int:
        return len(self._entries)

    # -- background sweep ---------------------------------------------------

    async def _sweep_loop(self) -> None:
        """Background task for periodic expiry."""
        while True:
            try:
                await asyncio.sleep(self.config.sweep_interval)
                removed = self.delete_expired()
                if removed:
                    logger.info(f"Swept {removed} expired memories")
            except asyncio.CancelledError:
                break

    def start_sweep_task(self) -> None:
        """Start the background expiry sweep."""
        if self._sweep_task is None or self._sweep_task.done():
            self._sweep_task = asyncio.create_task(self._sweep_loop())

    def stop_sweep_task(self) -> None:
        """Stop the background expiry sweep."""
        if self._sweep_task and not self._sweep_task.done():
            self._sweep_task.cancel()
