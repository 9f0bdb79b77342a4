"""
Tests for OpenAIProvider with a mocked AsyncOpenAI client.
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import httpx
import openai
import pytest

from feedguard.llm import (
    ChatMessage,
    CompletionRequest,
    CompletionUnavailableError,
    get_completion_provider,
    set_completion_provider,
)
from feedguard.llm.openai_provider import OpenAIProvider

_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def _response(content, prompt_tokens=12, completion_tokens=7):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(prompt_tokens=prompt_tokens, completion_tokens=completion_tokens),
    )


def _status_error(cls, status, body=None):
    return cls(f"HTTP {status}", response=httpx.Response(status, request=_REQUEST), body=body)


@pytest.fixture
def client():
    mock = MagicMock()
    mock.chat.completions.create = AsyncMock()
    mock.close = AsyncMock()
    return mock


@pytest.fixture
def provider(client):
    return OpenAIProvider(api_key="sk-test", model="gpt-4o-mini", client=client)


@pytest.fixture
def request_():
    return CompletionRequest(
        messages=[ChatMessage(role="system", content="be kind"), ChatMessage(role="user", content="死ね")],
        temperature=0.4,
        max_tokens=800,
    )


class TestOpenAIProvider:

    def test_requires_key(self):
        with pytest.raises(ValueError, match="API key required"):
            OpenAIProvider(api_key="")

    @pytest.mark.asyncio
    async def test_complete_returns_stripped_text(self, provider, client, request_):
        client.chat.completions.create.return_value = _response("  やめてほしいです。 \n")

        assert await provider.complete(request_) == "やめてほしいです。"

        kwargs = client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-4o-mini"
        assert kwargs["messages"] == [
            {"role": "system", "content": "be kind"},
            {"role": "user", "content": "死ね"},
        ]
        assert kwargs["temperature"] == 0.4
        assert kwargs["max_tokens"] == 800

    @pytest.mark.asyncio
    async def test_request_model_overrides_default(self, provider, client, request_):
        client.chat.completions.create.return_value = _response("ok")
        request_.model = "gpt-4o"

        await provider.complete(request_)

        assert client.chat.completions.create.call_args.kwargs["model"] == "gpt-4o"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("content", ["", "   ", None])
    async def test_empty_content_is_unavailable(self, provider, client, request_, content):
        client.chat.completions.create.return_value = _response(content)

        with pytest.raises(CompletionUnavailableError, match="Empty completion"):
            await provider.complete(request_)

    @pytest.mark.asyncio
    async def test_no_choices_is_unavailable(self, provider, client, request_):
        client.chat.completions.create.return_value = SimpleNamespace(choices=[], usage=None)

        with pytest.raises(CompletionUnavailableError):
            await provider.complete(request_)

    @pytest.mark.asyncio
    async def test_status_error_carries_status_and_message(self, provider, client, request_):
        client.chat.completions.create.side_effect = _status_error(
            openai.BadRequestError, 400, body={"error": {"message": "invalid model"}}
        )

        with pytest.raises(CompletionUnavailableError, match="invalid model") as exc_info:
            await provider.complete(request_)
        assert exc_info.value.status_code == 400
        # Client errors are not retried
        assert client.chat.completions.create.call_count == 1

    @pytest.mark.asyncio
    async def test_server_error_retried_once(self, provider, client, request_):
        client.chat.completions.create.side_effect = [
            _status_error(openai.InternalServerError, 500),
            _response("recovered"),
        ]

        assert await provider.complete(request_) == "recovered"
        assert client.chat.completions.create.call_count == 2

    @pytest.mark.asyncio
    async def test_persistent_rate_limit_is_unavailable(self, provider, client, request_):
        client.chat.completions.create.side_effect = _status_error(openai.RateLimitError, 429)

        with pytest.raises(CompletionUnavailableError) as exc_info:
            await provider.complete(request_)
        assert exc_info.value.status_code == 429
        assert client.chat.completions.create.call_count == 2

    @pytest.mark.asyncio
    async def test_timeout_is_unavailable(self, provider, client, request_):
        client.chat.completions.create.side_effect = openai.APITimeoutError(request=_REQUEST)

        with pytest.raises(CompletionUnavailableError, match="timed out"):
            await provider.complete(request_)

    @pytest.mark.asyncio
    async def test_connection_error_is_unavailable(self, provider, client, request_):
        client.chat.completions.create.side_effect = openai.APIConnectionError(request=_REQUEST)

        with pytest.raises(CompletionUnavailableError, match="connection failed"):
            await provider.complete(request_)

    @pytest.mark.asyncio
    async def test_close(self, provider, client):
        await provider.close()
        client.close.assert_awaited_once()


class TestProviderFactory:

    def test_none_when_disabled(self):
        assert get_completion_provider() is None

    def test_none_without_key(self, monkeypatch):
        monkeypatch.setenv("COMPLETION_PROVIDER", "openai")
        monkeypatch.setenv("OPENAI_API_KEY", "")
        from feedguard.config import get_settings
        get_settings.cache_clear()

        assert get_completion_provider() is None

    def test_builds_openai_with_key(self, monkeypatch):
        monkeypatch.setenv("COMPLETION_PROVIDER", "openai")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        monkeypatch.setenv("OPENAI_MODEL", "gpt-4o")
        from feedguard.config import get_settings
        get_settings.cache_clear()

        provider = get_completion_provider()

        assert isinstance(provider, OpenAIProvider)
        assert provider.model_name == "gpt-4o"

    def test_unknown_provider_raises(self):
        with pytest.raises(ValueError, match="Unknown completion provider"):
            get_completion_provider("telepathy")

    def test_set_provider(self, fake_provider):
        set_completion_provider(fake_provider)
        assert get_completion_provider() is fake_provider
