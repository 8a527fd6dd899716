"""Tests for the provider-chained LLM client."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from repo_migrator.agents import (
    ImageConfig,
    LLMClient,
    LLMProviderError,
    RateLimitExceededError,
    RequestConfig,
)
from repo_migrator.agents.llm_client import JSON_MIME_TYPE, JSON_ONLY_SUFFIX
from repo_migrator.config import EngineSettings
from repo_migrator.resilience import CancellationToken, OperationCancelledError, RateLimiter


def _settings(**overrides) -> EngineSettings:
    values = {
        "anthropic_api_key": "",
        "openai_api_key": "",
        "max_retries": 0,
        "retry_base_delay": 0.0,
    }
    values.update(overrides)
    return EngineSettings(**values)


class _FakeAnthropicStream:
    def __init__(self, pieces):
        self._pieces = pieces

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        return False

    @property
    def text_stream(self):
        async def iterate():
            for piece in self._pieces:
                yield piece

        return iterate()


def _openai_chunk(content):
    chunk = MagicMock()
    choice = MagicMock()
    choice.delta.content = content
    chunk.choices = [choice]
    return chunk


async def _aiter(items):
    for item in items:
        yield item


class TestConstruction:
    def test_requires_some_provider(self):
        with pytest.raises(LLMProviderError, match="No Anthropic or OpenAI API key"):
            LLMClient(_settings())

    def test_explicit_provider_needs_its_client(self, mock_anthropic_client):
        with pytest.raises(LLMProviderError, match="llm_provider=openai"):
            LLMClient(_settings(llm_provider="openai"), anthropic_client=mock_anthropic_client)

    def test_fallback_provider_needs_its_client(self, mock_anthropic_client):
        settings = _settings(llm_fallback_provider="openai", allow_llm_fallback=True)
        with pytest.raises(LLMProviderError, match="OPENAI_API_KEY"):
            LLMClient(settings, anthropic_client=mock_anthropic_client)

    def test_sdk_clients_leave_retries_to_the_engine(self):
        settings = _settings(anthropic_api_key="sk-ant-test", openai_api_key="sk-openai-test")

        with patch("repo_migrator.agents.llm_client.AsyncAnthropic") as anthropic_cls, \
                patch("repo_migrator.agents.llm_client.AsyncOpenAI") as openai_cls:
            LLMClient(settings)

        anthropic_cls.assert_called_once_with(api_key="sk-ant-test", max_retries=0)
        openai_cls.assert_called_once_with(api_key="sk-openai-test", max_retries=0)

    def test_image_support_follows_openai(self, mock_anthropic_client, mock_openai_client):
        assert not LLMClient(_settings(), anthropic_client=mock_anthropic_client).has_image_support()
        assert LLMClient(_settings(), openai_client=mock_openai_client).has_image_support()


class TestRequest:
    @pytest.mark.asyncio
    async def test_auto_prefers_anthropic(self, mock_anthropic_client, mock_openai_client):
        client = LLMClient(
            _settings(),
            anthropic_client=mock_anthropic_client,
            openai_client=mock_openai_client,
        )

        response = await client.request("claude-test", "hello")

        assert response.text == '{"ok": true}'
        assert response.provider == "anthropic"
        mock_openai_client.chat.completions.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_json_mime_type_adds_system_suffix(self, mock_anthropic_client):
        client = LLMClient(_settings(), anthropic_client=mock_anthropic_client)
        config = RequestConfig(system_instruction="You are an analyst.", response_mime_type=JSON_MIME_TYPE)

        await client.request("claude-test", "hello", config)

        kwargs = mock_anthropic_client.messages.create.call_args.kwargs
        assert kwargs["system"] == "You are an analyst." + JSON_ONLY_SUFFIX
        assert kwargs["messages"] == [{"role": "user", "content": "hello"}]

    @pytest.mark.asyncio
    async def test_thinking_budget_enables_thinking(self, mock_anthropic_client):
        client = LLMClient(_settings(), anthropic_client=mock_anthropic_client)

        await client.request("claude-test", "hello", RequestConfig(thinking_budget=2048, max_tokens=1000))

        kwargs = mock_anthropic_client.messages.create.call_args.kwargs
        assert kwargs["thinking"] == {"type": "enabled", "budget_tokens": 2048}
        assert kwargs["max_tokens"] == 2048 + 1024

    @pytest.mark.asyncio
    async def test_small_thinking_budget_is_ignored(self, mock_anthropic_client):
        client = LLMClient(_settings(), anthropic_client=mock_anthropic_client)

        await client.request("claude-test", "hello", RequestConfig(thinking_budget=100))

        assert "thinking" not in mock_anthropic_client.messages.create.call_args.kwargs

    @pytest.mark.asyncio
    async def test_openai_maps_claude_models(self, mock_openai_client):
        client = LLMClient(_settings(openai_model="gpt-test"), openai_client=mock_openai_client)

        response = await client.request("claude-test", "hello", RequestConfig(system_instruction="sys"))

        kwargs = mock_openai_client.chat.completions.create.call_args.kwargs
        assert kwargs["model"] == "gpt-test"
        assert kwargs["messages"][0] == {"role": "system", "content": "sys"}
        assert response.text == '{"ok": "openai"}'
        assert response.provider == "openai"

    @pytest.mark.asyncio
    async def test_falls_back_to_second_provider(self, mock_anthropic_client, mock_openai_client):
        mock_anthropic_client.messages.create.side_effect = RuntimeError("boom")
        settings = _settings(
            llm_provider="anthropic",
            llm_fallback_provider="openai",
            allow_llm_fallback=True,
        )
        client = LLMClient(settings, anthropic_client=mock_anthropic_client, openai_client=mock_openai_client)

        response = await client.request("claude-test", "hello")

        assert response.provider == "openai"

    @pytest.mark.asyncio
    async def test_without_fallback_the_error_propagates(self, mock_anthropic_client, mock_openai_client):
        mock_anthropic_client.messages.create.side_effect = RuntimeError("boom")
        client = LLMClient(_settings(), anthropic_client=mock_anthropic_client, openai_client=mock_openai_client)

        with pytest.raises(RuntimeError, match="boom"):
            await client.request("claude-test", "hello")

    @pytest.mark.asyncio
    async def test_transient_failures_are_retried(self, mock_anthropic_client):
        response = mock_anthropic_client.messages.create.return_value
        mock_anthropic_client.messages.create.side_effect = [TimeoutError("request timeout"), response]
        client = LLMClient(_settings(max_retries=2), anthropic_client=mock_anthropic_client)

        result = await client.request("claude-test", "hello")

        assert result.text == '{"ok": true}'
        assert mock_anthropic_client.messages.create.await_count == 2

    @pytest.mark.asyncio
    async def test_cancelled_token_stops_before_calling(self, mock_anthropic_client):
        client = LLMClient(_settings(), anthropic_client=mock_anthropic_client)
        token = CancellationToken()
        token.cancel("user")

        with pytest.raises(OperationCancelledError):
            await client.request("claude-test", "hello", token=token)

        mock_anthropic_client.messages.create.assert_not_called()

    @pytest.mark.asyncio
    async def test_rate_limit_is_enforced(self, mock_anthropic_client):
        limiter = RateLimiter(limit=1, window_seconds=60.0, clock=lambda: 0.0)
        client = LLMClient(_settings(), anthropic_client=mock_anthropic_client, rate_limiter=limiter, client_key="cli")

        await client.request("claude-test", "first")
        with pytest.raises(RateLimitExceededError) as excinfo:
            await client.request("claude-test", "second")

        assert excinfo.value.retry_after == 60.0
        assert mock_anthropic_client.messages.create.await_count == 1


class TestImageGeneration:
    @pytest.mark.asyncio
    async def test_returns_inline_png(self, mock_openai_client):
        item = MagicMock()
        item.b64_json = "aGVsbG8="
        mock_openai_client.images.generate = AsyncMock(return_value=MagicMock(data=[item]))
        client = LLMClient(_settings(), openai_client=mock_openai_client)

        response = await client.request(
            "gpt-image-1", "draw", RequestConfig(image_config=ImageConfig(aspect_ratio="16:9"))
        )

        assert response.inline_data[0].mime_type == "image/png"
        assert response.inline_data[0].data == "aGVsbG8="
        assert mock_openai_client.images.generate.call_args.kwargs["size"] == "1536x1024"

    @pytest.mark.asyncio
    async def test_requires_openai(self, mock_anthropic_client):
        client = LLMClient(_settings(), anthropic_client=mock_anthropic_client)

        with pytest.raises(LLMProviderError, match="Image generation"):
            await client.request("gpt-image-1", "draw", RequestConfig(image_config=ImageConfig()))


class TestStream:
    @pytest.mark.asyncio
    async def test_anthropic_stream_reports_accumulated_text(self, mock_anthropic_client):
        mock_anthropic_client.messages.stream = MagicMock(return_value=_FakeAnthropicStream(["ex", "port"]))
        client = LLMClient(_settings(), anthropic_client=mock_anthropic_client)
        chunks = []

        text = await client.stream("claude-test", "go", on_chunk=chunks.append)

        assert text == "export"
        assert chunks == ["ex", "export"]

    @pytest.mark.asyncio
    async def test_openai_stream_skips_empty_deltas(self, mock_openai_client):
        mock_openai_client.chat.completions.create = AsyncMock(
            return_value=_aiter([_openai_chunk("a"), _openai_chunk(None), _openai_chunk("b")])
        )
        client = LLMClient(_settings(), openai_client=mock_openai_client)
        chunks = []

        text = await client.stream("gpt-test", "go", on_chunk=chunks.append)

        assert text == "ab"
        assert chunks == ["a", "ab"]
        assert mock_openai_client.chat.completions.create.call_args.kwargs["stream"] is True


class TestValidateApiKey:
    @pytest.mark.asyncio
    async def test_success(self, mock_anthropic_client):
        client = LLMClient(_settings(), anthropic_client=mock_anthropic_client)

        assert await client.validate_api_key() is True
        assert mock_anthropic_client.messages.create.call_args.kwargs["max_tokens"] == 1

    @pytest.mark.asyncio
    async def test_rejected_key(self, mock_anthropic_client):
        mock_anthropic_client.messages.create.side_effect = RuntimeError("invalid x-api-key")
        client = LLMClient(_settings(), anthropic_client=mock_anthropic_client)

        assert await client.validate_api_key() is False

    @pytest.mark.asyncio
    async def test_cancellation_propagates(self, mock_anthropic_client):
        client = LLMClient(_settings(), anthropic_client=mock_anthropic_client)
        token = CancellationToken()
        token.cancel()

        with pytest.raises(OperationCancelledError):
            await client.validate_api_key(token)
