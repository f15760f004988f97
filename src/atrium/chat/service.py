"""Chat service: the façade that ties memory, dispatch and caching together."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import AsyncIterator, Callable
from typing import Any

from ..config import ChatConfig, config_from_env
from ..conversation_logger import ConversationLogger, get_conversation_logger
from ..dispatch import (
    CascadingDispatcher,
    DispatchOutcome,
    DispatchRequest,
    Fallback,
    ResponseCache,
    default_tiers,
)
from ..errors import MemoryStoreError
from ..logging import JSONLLogger, get_logger
from ..memory import (
    ConversationSummarizer,
    MemoryKind,
    MemoryStats,
    MemoryStore,
    RelevantContext,
    RememberTool,
    ToolContextIntegrator,
)
from ..memory.models import ASSISTANT_PREFIX, USER_PREFIX
from ..providers import CompletionOptions, GroqProvider, OpenAICompatibleProvider
from ..session import SessionCoordinator
from ..tools import ToolInvocation, ToolRegistry, ToolResult
from .models import ChatRequest, ChatResponse, ContextUsage, ResponseMetadata, StreamChunk

logger = logging.getLogger(__name__)

USER_TURN_IMPORTANCE = 5
USER_TURN_CONFIDENCE = 1.0
ASSISTANT_TURN_IMPORTANCE = 6
ASSISTANT_TURN_CONFIDENCE = 0.9
STREAM_CHUNK_CHARS = 64
SUMMARY_MAX_TOKENS = 500


class ChatService:
    """Answers chat requests. Every request gets a non-empty response.

    Per request: resolve the session, check the cache, assemble memory
    context, store the user turn, dispatch through the tier cascade, store
    the assistant turn, summarize when due, and cache the result.
    Secondary writes (memory, summaries, tool context) are best-effort.
    """

    def __init__(
        self,
        dispatcher: CascadingDispatcher,
        store: MemoryStore,
        cache: ResponseCache | None = None,
        summarizer: ConversationSummarizer | None = None,
        sessions: SessionCoordinator | None = None,
        registry: ToolRegistry | None = None,
        config: ChatConfig | None = None,
        jsonl_logger: JSONLLogger | None = None,
        conversation_logger: ConversationLogger | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or ChatConfig()
        self.dispatcher = dispatcher
        self.store = store
        self.cache = cache or ResponseCache(self.config.cache)
        self.summarizer = summarizer or ConversationSummarizer(store, self.config.summary)
        self.jsonl_logger = jsonl_logger or get_logger()
        self.conv_logger = conversation_logger or get_conversation_logger()
        self.sessions = sessions or SessionCoordinator(
            store,
            jsonl_logger=self.jsonl_logger,
            conversation_logger=self.conv_logger,
        )
        self.integrator = ToolContextIntegrator(store)
        self.registry = registry or ToolRegistry()
        if self.registry.get("remember") is None:
            self.registry.register(RememberTool(store))
        self._clock = clock

    @classmethod
    def from_config(cls, config: ChatConfig | None = None) -> ChatService:
        """Build a service with the Groq and direct HTTP providers.

        Reads configuration from the environment when none is given.
        The memory store is opened, loading persisted memory if configured.
        """
        config = config or config_from_env()
        store = MemoryStore(config.memory)
        store.open()

        primary = GroqProvider(model=config.default_model)
        direct = OpenAICompatibleProvider(
            base_url=config.direct_base_url,
            model=config.direct_model,
            timeout=config.dispatch.direct_timeout,
        )
        dispatcher = CascadingDispatcher(default_tiers(config, primary, direct), config.dispatch)
        summarizer = ConversationSummarizer(
            store,
            config.summary,
            provider=primary,
            options=CompletionOptions(
                model=config.simplified_model,
                temperature=0.2,
                max_tokens=SUMMARY_MAX_TOKENS,
            ),
        )
        return cls(dispatcher, store, summarizer=summarizer, config=config)

    # -- lifecycle ----------------------------------------------------------

    def start(self) -> None:
        """Start background maintenance. Must run inside an event loop."""
        self.store.start_sweep_task()

    def close(self) -> None:
        """Stop background work and close the memory store."""
        self.store.close()

    # -- chat ---------------------------------------------------------------

    async def process_chat(self, request: ChatRequest | dict[str, Any]) -> ChatResponse:
        """Answer a chat request.

        Never raises for provider or memory failures. If the calling task is
        cancelled mid-dispatch, the user turn stays stored and the assistant
        turn is not written.
        """
        started = self._clock()
        if not isinstance(request, ChatRequest):
            request = ChatRequest.from_dict(request, self.config)

        user_id = request.user_id
        model = request.model or self.config.default_model
        session_id = self.sessions.ensure_session(request.session_id, user_id)
        self.sessions.activate(
            user_id,
            session_id,
            cross_session=request.cross_session_memory and request.memory_enabled,
            source_interface=request.source_instance,
        )

        cache_key = self.cache.make_key(user_id, model, request.message)
        cached = self.cache.lookup(cache_key)
        if cached is not None:
            elapsed_ms = (self._clock() - started) * 1000
            self.jsonl_logger.log(
                "cache_hit",
                session_id=session_id,
                user_id=user_id,
                tier=cached.tier,
                duration_ms=elapsed_ms,
                cached=True,
            )
            self.conv_logger.log_user_message(session_id, request.message)
            self.conv_logger.log_assistant_message(session_id, cached.response, cached.tier, cached=True)
            return ChatResponse(
                content=cached.response,
                session_id=session_id,
                model=model,
                metadata=ResponseMetadata(
                    processing_time_ms=elapsed_ms,
                    source_tier=cached.tier,
                    fallback=cached.fallback,
                    cached=True,
                ),
            )

        context: RelevantContext | None = None
        if request.memory_enabled:
            context = self.store.get_relevant_context(user_id, session_id, request.message)
            self._remember_turn(
                user_id,
                session_id,
                USER_PREFIX + request.message,
                USER_TURN_IMPORTANCE,
                USER_TURN_CONFIDENCE,
                request.source_instance,
            )
        self.conv_logger.log_user_message(session_id, request.message)

        outcome = await self.dispatcher.dispatch(
            DispatchRequest(
                message=request.message,
                options=CompletionOptions(
                    model=model,
                    temperature=request.temperature,
                    max_tokens=request.max_tokens,
                ),
                context=context,
                source_interface=request.source_instance,
                cross_session=request.cross_session_memory,
                session_id=session_id,
                user_id=user_id,
            )
        )

        if request.memory_enabled:
            self._remember_turn(
                user_id,
                session_id,
                ASSISTANT_PREFIX + outcome.content,
                ASSISTANT_TURN_IMPORTANCE,
                ASSISTANT_TURN_CONFIDENCE,
                request.source_instance,
            )
            await self._summarize(session_id, started)
        self.conv_logger.log_assistant_message(session_id, outcome.content, outcome.tier)

        self.cache.set(
            cache_key,
            outcome.content,
            tier=outcome.tier,
            fallback=outcome.fallback,
            user_id=user_id,
        )

        return ChatResponse(
            content=outcome.content,
            session_id=session_id,
            model=model,
            metadata=self._metadata(outcome, context, started),
        )

    async def process_chat_stream(
        self, request: ChatRequest | dict[str, Any]
    ) -> AsyncIterator[StreamChunk]:
        """Answer a chat request as a sequence of chunks.

        The last chunk has ``done`` set, empty content, and the metadata.
        """
        response = await self.process_chat(request)
        content = response.content
        for i in range(0, len(content), STREAM_CHUNK_CHARS):
            yield StreamChunk(
                content=content[i : i + STREAM_CHUNK_CHARS],
                done=False,
                session_id=response.session_id,
                model=response.model,
            )
        yield StreamChunk(
            content="",
            done=True,
            session_id=response.session_id,
            model=response.model,
            metadata=response.metadata,
        )

    def _remember_turn(
        self,
        user_id: str,
        session_id: str,
        content: str,
        importance: int,
        confidence: float,
        source_interface: str,
    ) -> None:
        """Store a conversation turn, logging instead of raising on failure."""
        try:
            self.store.store(
                user_id,
                session_id,
                content,
                MemoryKind.CONVERSATION,
                importance=importance,
                confidence=confidence,
                source_interface=source_interface,
            )
        except MemoryStoreError as e:
            logger.warning(f"Failed to store turn for session {session_id}: {e}")
            self.conv_logger.log_error(session_id, str(e), context="memory_write")

    async def _summarize(self, session_id: str, started: float) -> None:
        """Run the summarizer within whatever is left of the global budget."""
        remaining = self.config.dispatch.global_budget - (self._clock() - started)
        if remaining <= 0:
            logger.info(f"Skipping summary for {session_id}: budget exhausted")
            return
        try:
            summary = await asyncio.wait_for(self.summarizer.maybe_summarize(session_id), remaining)
        except asyncio.TimeoutError:
            logger.warning(f"Summary for {session_id} did not finish within budget")
            return
        except Exception as e:
            logger.warning(f"Summary for {session_id} failed: {type(e).__name__}: {e}")
            return
        if summary is not None:
            logger.info(f"Summarized session {session_id} at {summary.message_count} messages")

    def _metadata(
        self,
        outcome: DispatchOutcome,
        context: RelevantContext | None,
        started: float,
    ) -> ResponseMetadata:
        usage = ContextUsage()
        if context is not None:
            usage = ContextUsage(
                recent_messages=len(context.recent_context),
                relevant_memories=len(context.relevant_memories),
                tool_results=len(context.tool_results),
            )
        return ResponseMetadata(
            processing_time_ms=(self._clock() - started) * 1000,
            source_tier=outcome.tier,
            memory_integrated=context is not None,
            context_used=usage,
            fallback=outcome.fallback,
            category=outcome.category.value if isinstance(outcome, Fallback) else None,
            attempts=[
                {
                    "tier": a.tier,
                    "durationMs": round(a.duration_ms, 2),
                    "timedOut": a.timed_out,
                    "error": a.error,
                }
                for a in outcome.attempts
            ],
        )

    # -- tools --------------------------------------------------------------

    async def run_tool(
        self,
        user_id: str,
        session_id: str,
        tool_name: str,
        args: dict[str, Any],
        source_interface: str = "main",
        max_attempts: int = 3,
    ) -> ToolResult:
        """Run a side tool with backoff and record its result in memory.

        Retryable failures are retried with exponential backoff. Successful
        results are stored as ToolResult memories for the session.
        """
        invocation = ToolInvocation(user_id, session_id, source_interface)
        result, attempts = await self.registry.dispatch_with_backoff(
            tool_name, args, invocation, max_attempts=max_attempts
        )

        if attempts > 1:
            self.jsonl_logger.log(
                "tool_retry",
                session_id=session_id,
                user_id=user_id,
                error=result.error,
                tool=tool_name,
                attempts=attempts,
                success=result.success,
            )
        self.conv_logger.log_tool_result(
            session_id, tool_name, result.success, result.output, result.error, attempts
        )

        if result.success and tool_name != "remember":
            payload = result.data if result.data is not None else result.output
            self.integrator.integrate(user_id, session_id, tool_name, payload, source_interface)

        return result

    # -- admin --------------------------------------------------------------

    def get_stats(self, user_id: str) -> MemoryStats:
        """Memory statistics for a user."""
        return self.store.get_stats(user_id)

    def clear_user_data(self, user_id: str) -> int:
        """Irreversibly delete a user's memory, session history and cached responses.

        Returns:
            Number of memory entries removed.

        Raises:
            MemoryStoreError: If the durable backend could not be cleared.
        """
        removed = self.store.clear_user_memory(user_id)
        self.sessions.forget_user(user_id)
        self.cache.invalidate_user(user_id)
        return removed

    def health(self) -> dict[str, Any]:
        """Service health snapshot."""
        return {
            "status": "ok",
            "tiers": self.dispatcher.tier_names,
            "cache": self.cache.stats(),
            "memory_entries": len(self.store),
        }
