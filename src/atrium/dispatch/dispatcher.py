"""Cascading dispatcher: ordered completion tiers with a deterministic tail."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field, replace

from ..config import ChatConfig, DispatchConfig
from ..conversation_logger import ConversationLogger, get_conversation_logger
from ..errors import ProviderTimeout
from ..logging import JSONLLogger, get_logger
from ..memory.models import RelevantContext
from ..providers import CompletionOptions, CompletionProvider
from .fallback import DeterministicFallback
from .intent import Category
from .prompt import ContextLevel, build_messages

logger = logging.getLogger(__name__)

FALLBACK_TIER = "fallback"
DIRECT_MAX_TOKENS = 800
DIRECT_TEMPERATURE = 0.3


@dataclass
class Tier:
    """One network strategy in the cascade."""

    name: str
    provider: CompletionProvider
    timeout: float
    context_level: ContextLevel = ContextLevel.FULL
    model: str | None = None  # None keeps the requested model
    max_tokens: int | None = None
    temperature: float | None = None


@dataclass
class DispatchAttempt:
    """Record of one tier attempt within a single request."""

    tier: str
    started_at: float
    duration_ms: float = 0.0
    timed_out: bool = False
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and not self.timed_out


@dataclass(frozen=True)
class Success:
    """A network tier produced the answer."""

    tier: str
    content: str
    attempts: tuple[DispatchAttempt, ...] = ()

    @property
    def fallback(self) -> bool:
        return False


@dataclass(frozen=True)
class Fallback:
    """Every network tier failed; the answer is a deterministic template."""

    content: str
    category: Category
    attempts: tuple[DispatchAttempt, ...] = ()

    @property
    def tier(self) -> str:
        return FALLBACK_TIER

    @property
    def fallback(self) -> bool:
        return True


DispatchOutcome = Success | Fallback


@dataclass
class DispatchRequest:
    """Everything a tier needs to build its call."""

    message: str
    options: CompletionOptions = field(default_factory=CompletionOptions)
    context: RelevantContext | None = None
    source_interface: str = "main"
    cross_session: bool = False
    session_id: str | None = None
    user_id: str | None = None


class CascadingDispatcher:
    """Tries each tier in order and falls through on any failure.

    A tier fails when it raises, returns blank text, or runs past
    ``min(tier.timeout, global_budget - elapsed)``. Tiers run back to back
    with no delay. When every tier fails, the deterministic fallback answers,
    so ``dispatch`` always returns non-empty content.
    """

    def __init__(
        self,
        tiers: list[Tier],
        config: DispatchConfig | None = None,
        fallback: DeterministicFallback | None = None,
        jsonl_logger: JSONLLogger | None = None,
        conversation_logger: ConversationLogger | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.tiers = list(tiers)
        self.config = config or DispatchConfig()
        self.fallback = fallback or DeterministicFallback()
        self.jsonl_logger = jsonl_logger or get_logger()
        self.conv_logger = conversation_logger or get_conversation_logger()
        self._clock = clock

    @property
    def tier_names(self) -> list[str]:
        """Names of all tiers, the fallback included."""
        return [t.name for t in self.tiers] + [FALLBACK_TIER]

    async def dispatch(self, request: DispatchRequest) -> DispatchOutcome:
        """Produce a response for the request.

        Cancellation of the calling task propagates: the in-flight tier call
        is cancelled and no further tiers are attempted.
        """
        started = self._clock()
        attempts: list[DispatchAttempt] = []

        for tier in self.tiers:
            remaining = self.config.global_budget - (self._clock() - started)
            if remaining <= 0:
                logger.warning(f"Global budget exhausted before tier {tier.name}")
                break

            attempt, content = await self._attempt(tier, request, min(tier.timeout, remaining))
            attempts.append(attempt)
            if content is not None:
                outcome: DispatchOutcome = Success(tier.name, content, tuple(attempts))
                self._log_outcome(outcome, started, request)
                return outcome

        content, category = self.fallback.respond(request.message)
        outcome = Fallback(content, category, tuple(attempts))
        self._log_outcome(outcome, started, request)
        return outcome

    async def _attempt(
        self,
        tier: Tier,
        request: DispatchRequest,
        timeout: float,
    ) -> tuple[DispatchAttempt, str | None]:
        """Run one tier. Returns the attempt record and the content on success."""
        messages = build_messages(
            tier.context_level,
            request.message,
            request.context,
            request.source_interface,
            request.cross_session,
        )
        options = replace(
            request.options,
            model=tier.model or request.options.model,
            max_tokens=tier.max_tokens or request.options.max_tokens,
            temperature=(
                tier.temperature if tier.temperature is not None else request.options.temperature
            ),
        )

        attempt = DispatchAttempt(tier=tier.name, started_at=time.time())
        tier_started = self._clock()
        content: str | None = None
        try:
            text = await asyncio.wait_for(tier.provider.complete(messages, options), timeout)
            if text and text.strip():
                content = text
            else:
                attempt.error = "EmptyResponse: provider returned no content"
        except asyncio.TimeoutError:
            attempt.timed_out = True
            attempt.error = f"TimeoutError: no response within {timeout:.1f}s"
        except ProviderTimeout as e:
            attempt.timed_out = True
            attempt.error = f"{type(e).__name__}: {e}"
        except Exception as e:
            attempt.error = f"{type(e).__name__}: {e}"

        attempt.duration_ms = (self._clock() - tier_started) * 1000
        self._log_attempt(attempt, request)
        return attempt, content

    def _log_attempt(self, attempt: DispatchAttempt, request: DispatchRequest) -> None:
        if not attempt.succeeded:
            logger.warning(f"Tier {attempt.tier} failed after {attempt.duration_ms:.0f}ms: {attempt.error}")

        self.jsonl_logger.log_tier_attempt(
            attempt.tier,
            attempt.succeeded,
            attempt.duration_ms,
            session_id=request.session_id,
            error=attempt.error,
            timed_out=attempt.timed_out,
        )
        if request.session_id:
            self.conv_logger.log_tier_attempt(
                request.session_id,
                attempt.tier,
                attempt.succeeded,
                attempt.duration_ms,
                attempt.error,
            )

    def _log_outcome(self, outcome: DispatchOutcome, started: float, request: DispatchRequest) -> None:
        self.jsonl_logger.log_dispatch_outcome(
            outcome.tier,
            (self._clock() - started) * 1000,
            session_id=request.session_id,
            user_id=request.user_id,
            fallback=outcome.fallback,
        )


def default_tiers(
    config: ChatConfig,
    primary: CompletionProvider,
    direct: CompletionProvider,
) -> list[Tier]:
    """Unified, simplified and direct tiers with timeouts from config.

    The unified and simplified tiers share the primary provider; the
    simplified tier pins the smaller model and gets reduced context.
    """
    return [
        Tier(
            name="unified",
            provider=primary,
            timeout=config.dispatch.unified_timeout,
            context_level=ContextLevel.FULL,
        ),
        Tier(
            name="simplified",
            provider=primary,
            timeout=config.dispatch.simplified_timeout,
            context_level=ContextLevel.REDUCED,
            model=config.simplified_model,
        ),
        Tier(
            name="direct",
            provider=direct,
            timeout=config.dispatch.direct_timeout,
            context_level=ContextLevel.MINIMAL,
            max_tokens=DIRECT_MAX_TOKENS,
            temperature=DIRECT_TEMPERATURE,
        ),
    ]
