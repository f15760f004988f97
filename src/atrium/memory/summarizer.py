"""Conversation summarization: topics, decisions and action items."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from ..config import SummaryConfig
from ..errors import ProviderError
from ..providers import CompletionOptions, CompletionProvider
from .models import ConversationSummary, MemoryKind, as_chat_message
from .scoring import extract_topics
from .store import MemoryStore

logger = logging.getLogger(__name__)

DECISION_PATTERNS = ("decided", "choose", "chose", "selected", "will proceed", "agreed", "going with")
ACTION_PATTERNS = ("need to", "should", "must", "plan to", "next step", "follow up", "todo")
MAX_ITEMS = 5
MAX_TOPICS = 10
SNIPPET_CHARS = 200

SUMMARY_PROMPT = """Summarize this real-estate advisory conversation.

Return ONLY valid JSON:
{
  "key_topics": ["<topic>", ...],
  "decisions": ["<decision taken>", ...],
  "action_items": ["<open follow-up>", ...]
}

Rules:
- At most 10 topics, 5 decisions and 5 action items
- Decisions are things the user settled on, not suggestions
- Action items are open follow-ups, phrased as short imperatives
- Use empty lists when nothing applies

Conversation:
"""


def _matching_snippets(
    messages: list[dict[str, Any]],
    patterns: tuple[str, ...],
) -> list[str]:
    """Messages that contain any of the patterns, truncated, without repeats."""
    found: list[str] = []
    for message in messages:
        if message.get("role") not in ("user", "assistant"):
            continue
        content = message.get("content") or ""
        lowered = content.lower()
        if any(pattern in lowered for pattern in patterns):
            snippet = content[:SNIPPET_CHARS]
            if snippet not in found:
                found.append(snippet)
        if len(found) >= MAX_ITEMS:
            break
    return found


class ConversationSummarizer:
    """Compresses a session's message history into a ConversationSummary.

    Extraction is deterministic by default. When a provider is configured,
    it is asked first under a short timeout; any failure falls back to the
    deterministic extraction.
    """

    def __init__(
        self,
        store: MemoryStore,
        config: SummaryConfig | None = None,
        provider: CompletionProvider | None = None,
        options: CompletionOptions | None = None,
    ) -> None:
        self.store = store
        self.config = config or SummaryConfig()
        self.provider = provider
        self.options = options

    def summarize(self, session_id: str, messages: list[dict[str, Any]]) -> ConversationSummary:
        """Deterministically summarize a list of role/content messages."""
        text = " ".join(m.get("content") or "" for m in messages)
        return ConversationSummary(
            session_id=session_id,
            key_topics=list(extract_topics(text))[:MAX_TOPICS],
            decisions=_matching_snippets(messages, DECISION_PATTERNS),
            action_items=_matching_snippets(messages, ACTION_PATTERNS),
            message_count=len(messages),
        )

    def needs_summary(self, session_id: str) -> bool:
        """True when the session has grown by a full threshold since the last summary."""
        count = self.store.count_messages(session_id)
        if count < self.config.threshold:
            return False
        current = self.store.get_summary(session_id)
        if current is None:
            return True
        return count - current.message_count >= self.config.threshold

    async def maybe_summarize(self, session_id: str) -> ConversationSummary | None:
        """Summarize the session if it crossed the threshold.

        Never raises: summarization must not block the chat path.

        Returns:
            The new summary, or None if none was produced.
        """
        if not self.needs_summary(session_id):
            return None

        entries = self.store.get_session_entries(session_id, MemoryKind.CONVERSATION)
        messages = [as_chat_message(e) for e in entries]

        summary = None
        if self.provider is not None:
            summary = await self._summarize_with_provider(self.provider, session_id, messages)
        if summary is None:
            summary = self.summarize(session_id, messages)

        self.store.save_summary(summary)
        return summary

    async def _summarize_with_provider(
        self,
        provider: CompletionProvider,
        session_id: str,
        messages: list[dict[str, Any]],
    ) -> ConversationSummary | None:
        """Ask the provider for a summary, best-effort."""
        prompt = SUMMARY_PROMPT + self._format_conversation(messages)
        options = self.options or CompletionOptions(temperature=0.1, max_tokens=600)

        try:
            content = await asyncio.wait_for(
                provider.complete([{"role": "user", "content": prompt}], options),
                timeout=self.config.timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(f"Summary for {session_id} timed out")
            return None
        except ProviderError as e:
            logger.warning(f"Summary provider failed for {session_id}: {e}")
            return None
        except Exception as e:
            logger.warning(f"Unexpected summary failure for {session_id}: {type(e).__name__}: {e}")
            return None

        return self._parse_response(session_id, content, len(messages))

    def _format_conversation(self, messages: list[dict[str, Any]]) -> str:
        """Format messages into a readable conversation string."""
        lines = []
        for msg in messages:
            role = msg.get("role", "unknown")
            content = msg.get("content", "")
            if role == "user":
                lines.append(f"User: {content}")
            elif role == "assistant":
                lines.append(f"Assistant: {content}")
        return "\n".join(lines)

    def _parse_response(
        self,
        session_id: str,
        content: str,
        message_count: int,
    ) -> ConversationSummary | None:
        """Parse the provider's JSON answer, None if unusable."""
        json_str = content.strip()
        if json_str.startswith("```"):
            # The model might wrap it in a markdown code block
            lines = [line for line in json_str.split("\n") if not line.startswith("```")]
            json_str = "\n".join(lines)

        try:
            data = json.loads(json_str)
        except json.JSONDecodeError as e:
            logger.warning(f"Failed to parse summary response: {e}")
            return None

        if not isinstance(data, dict):
            logger.warning("Invalid summary structure: expected an object")
            return None

        def _strings(key: str, limit: int) -> list[str]:
            items = data.get(key) or []
            if not isinstance(items, list):
                return []
            return [str(item)[:SNIPPET_CHARS] for item in items][:limit]

        return ConversationSummary(
            session_id=session_id,
            key_topics=_strings("key_topics", MAX_TOPICS),
            decisions=_strings("decisions", MAX_ITEMS),
            action_items=_strings("action_items", MAX_ITEMS),
            message_count=message_count,
        )
