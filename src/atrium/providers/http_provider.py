"""Direct CompletionProvider for OpenAI-compatible HTTP endpoints."""

import os
from typing import Any

import httpx

from ..errors import (
    ProviderAuthError,
    ProviderRateLimited,
    ProviderTimeout,
    ProviderUnavailable,
)
from .base import CompletionOptions

DEFAULT_ALLOWED_MODELS = frozenset({
    "openai/gpt-4o",
    "openai/gpt-4o-mini",
    "openai/gpt-4-turbo",
    "anthropic/claude-3.5-sonnet",
    "anthropic/claude-sonnet-4",
    "google/gemini-2.5-pro",
    "google/gemini-2.5-flash",
    "x-ai/grok-4",
    "perplexity/sonar-pro",
})


class OpenAICompatibleProvider:
    """Bare chat-completions call over httpx.

    Used as the narrow "direct" tier: one request, no SDK, no retries.
    Models outside the allowlist are replaced by the provider's default.
    """

    def __init__(
        self,
        base_url: str = "https://openrouter.ai/api/v1",
        api_key: str | None = None,
        model: str = "openai/gpt-4o-mini",
        allowed_models: frozenset[str] | None = None,
        name: str = "direct",
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key if api_key is not None else os.getenv("OPENROUTER_API_KEY")
        self._model = model
        self._allowed_models = allowed_models or DEFAULT_ALLOWED_MODELS
        self._timeout = timeout
        self._client = client
        self.name = name

    @property
    def model(self) -> str:
        """Return the default model."""
        return self._model

    def resolve_model(self, requested: str | None) -> str:
        """Pick the model to call: the requested one if allowed, else the default."""
        if requested and requested in self._allowed_models:
            return requested
        return self._model

    async def complete(
        self,
        messages: list[dict[str, str]],
        options: CompletionOptions,
    ) -> str:
        """Complete the conversation and return the assistant text."""
        if not self._api_key:
            raise ProviderAuthError("No API key configured for direct provider", self.name)

        payload: dict[str, Any] = {
            "model": self.resolve_model(options.model),
            "messages": messages,
            "temperature": options.temperature,
            "max_tokens": options.max_tokens,
        }
        headers = {
            "Authorization": f"Bearer {self._api_key}",
            "Content-Type": "application/json",
        }

        try:
            if self._client is not None:
                response = await self._client.post(
                    f"{self._base_url}/chat/completions", json=payload, headers=headers
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout) as client:
                    response = await client.post(
                        f"{self._base_url}/chat/completions", json=payload, headers=headers
                    )
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            raise ProviderTimeout(f"Request timed out after {self._timeout}s", self.name) from e
        except httpx.HTTPStatusError as e:
            raise self._status_error(e.response.status_code) from e
        except httpx.RequestError as e:
            raise ProviderUnavailable(f"Request failed: {e}", self.name) from e
        except ValueError as e:
            raise ProviderUnavailable(f"Invalid JSON in response: {e}", self.name) from e

        try:
            return data["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as e:
            raise ProviderUnavailable(f"Unexpected response shape: {e}", self.name) from e

    def _status_error(self, status_code: int) -> Exception:
        """Map an HTTP status to a provider error."""
        if status_code in (401, 403):
            return ProviderAuthError(f"HTTP {status_code}", self.name)
        if status_code == 429:
            return ProviderRateLimited(f"HTTP {status_code}", self.name)
        if status_code in (408, 504):
            return ProviderTimeout(f"HTTP {status_code}", self.name)
        return ProviderUnavailable(f"HTTP {status_code}", self.name)
