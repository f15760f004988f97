"""Tests for GroqProvider."""

from unittest.mock import AsyncMock, MagicMock, patch

import groq
import httpx
import pytest

from atrium.errors import (
    ProviderAuthError,
    ProviderRateLimited,
    ProviderTimeout,
    ProviderUnavailable,
)
from atrium.providers import CompletionOptions, GroqProvider

REQUEST = httpx.Request("POST", "https://api.groq.com/openai/v1/chat/completions")


def _response(status_code: int) -> httpx.Response:
    return httpx.Response(status_code, request=REQUEST)


def _client(content: str | None = "Cap rates are stable.") -> MagicMock:
    client = MagicMock()
    message = MagicMock(content=content)
    client.chat.completions.create = AsyncMock(
        return_value=MagicMock(choices=[MagicMock(message=message)])
    )
    return client


class TestGroqProviderInit:
    """Tests for construction."""

    def test_builds_client_from_env(self):
        with patch.dict("os.environ", {"GROQ_API_KEY": "test"}):
            provider = GroqProvider()
        assert provider.name == "groq"
        assert provider.model == "llama-3.3-70b-versatile"


class TestGroqProviderComplete:
    """Tests for completions."""

    @pytest.mark.asyncio
    async def test_returns_content(self):
        client = _client()
        provider = GroqProvider(client, model="llama-3.3-70b-versatile")

        text = await provider.complete([{"role": "user", "content": "hi"}], CompletionOptions())

        assert text == "Cap rates are stable."
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "llama-3.3-70b-versatile"
        assert kwargs["max_tokens"] == 4000

    @pytest.mark.asyncio
    async def test_option_model_overrides_default(self):
        client = _client()
        provider = GroqProvider(client)
        await provider.complete([], CompletionOptions(model="llama-3.1-8b-instant", temperature=0.1))
        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "llama-3.1-8b-instant"
        assert kwargs["temperature"] == 0.1

    @pytest.mark.asyncio
    async def test_none_content_becomes_empty(self):
        provider = GroqProvider(_client(content=None))
        assert await provider.complete([], CompletionOptions()) == ""

    @pytest.mark.parametrize(
        ("error", "expected"),
        [
            (groq.APITimeoutError(request=REQUEST), ProviderTimeout),
            (groq.APIConnectionError(request=REQUEST), ProviderUnavailable),
            (groq.AuthenticationError("bad key", response=_response(401), body=None), ProviderAuthError),
            (groq.RateLimitError("slow down", response=_response(429), body=None), ProviderRateLimited),
            (groq.InternalServerError("boom", response=_response(500), body=None), ProviderUnavailable),
        ],
    )
    @pytest.mark.asyncio
    async def test_maps_sdk_errors(self, error: Exception, expected: type):
        client = MagicMock()
        client.chat.completions.create = AsyncMock(side_effect=error)
        provider = GroqProvider(client, name="unified")

        with pytest.raises(expected) as exc_info:
            await provider.complete([], CompletionOptions())

        assert exc_info.value.provider == "unified"
