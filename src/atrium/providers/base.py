"""Completion provider interface."""

from dataclasses import dataclass
from typing import Protocol


@dataclass
class CompletionOptions:
    """Per-call generation options."""

    model: str | None = None
    temperature: float = 0.7
    max_tokens: int = 4000


class CompletionProvider(Protocol):
    """Anything that can turn a list of chat messages into text.

    Implementations raise subclasses of ``atrium.errors.ProviderError``
    (``ProviderTimeout``, ``ProviderAuthError``, ``ProviderRateLimited``,
    ``ProviderUnavailable``) when they fail.
    """

    name: str

    async def complete(
        self,
        messages: list[dict[str, str]],
        options: CompletionOptions,
    ) -> str:
        """Complete the conversation and return the assistant text."""
        ...
