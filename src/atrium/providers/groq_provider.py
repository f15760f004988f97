"""CompletionProvider backed by the Groq API."""

import os

import groq
from groq import AsyncGroq

from ..errors import (
    ProviderAuthError,
    ProviderError,
    ProviderRateLimited,
    ProviderTimeout,
    ProviderUnavailable,
)
from .base import CompletionOptions


class GroqProvider:
    """CompletionProvider implementation that wraps AsyncGroq.

    SDK exceptions are translated into the provider error taxonomy so the
    dispatcher never has to know which vendor it is talking to.

    Example:
        from groq import AsyncGroq
        from atrium.providers import GroqProvider

        provider = GroqProvider(AsyncGroq(api_key="..."), model="llama-3.3-70b-versatile")
        text = await provider.complete(messages, CompletionOptions())
    """

    def __init__(
        self,
        client: AsyncGroq | None = None,
        model: str = "llama-3.3-70b-versatile",
        name: str = "groq",
    ) -> None:
        """Initialize the Groq provider.

        Args:
            client: The AsyncGroq client instance to wrap. Built from
                GROQ_API_KEY when omitted.
            model: Default model for completions.
            name: Provider name used in logs and errors.
        """
        self._client = client or AsyncGroq(api_key=os.getenv("GROQ_API_KEY"))
        self._model = model
        self.name = name

    @property
    def model(self) -> str:
        """Return the default model."""
        return self._model

    async def complete(
        self,
        messages: list[dict[str, str]],
        options: CompletionOptions,
    ) -> str:
        """Complete the conversation and return the assistant text.

        Raises:
            ProviderTimeout, ProviderAuthError, ProviderRateLimited,
            ProviderUnavailable: Translated from the Groq SDK errors.
        """
        try:
            response = await self._client.chat.completions.create(
                model=options.model or self._model,
                messages=messages,
                temperature=options.temperature,
                max_tokens=options.max_tokens,
            )
        except groq.APITimeoutError as e:
            raise ProviderTimeout(f"Groq request timed out: {e}", self.name) from e
        except groq.APIConnectionError as e:
            raise ProviderUnavailable(f"Groq connection failed: {e}", self.name) from e
        except (groq.AuthenticationError, groq.PermissionDeniedError) as e:
            raise ProviderAuthError(f"Groq rejected credentials: {e}", self.name) from e
        except groq.RateLimitError as e:
            raise ProviderRateLimited(f"Groq rate limit: {e}", self.name) from e
        except groq.APIStatusError as e:
            raise ProviderUnavailable(
                f"Groq returned HTTP {e.status_code}: {e}", self.name
            ) from e
        except groq.GroqError as e:
            raise ProviderError(f"Groq error: {e}", self.name) from e

        return response.choices[0].message.content or ""
