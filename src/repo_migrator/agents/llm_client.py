"""Request/response client for the code-generation service.

Wraps the async Anthropic and OpenAI SDKs behind one ``request`` call and
one ``stream`` call. Provider selection follows the ``auto | anthropic |
openai`` chain with an optional fallback provider. Every call goes through
the retry executor and observes the run's cancellation token.
"""

import logging
from typing import Any, Awaitable, Callable, Literal

from anthropic import AsyncAnthropic
from openai import AsyncOpenAI
from pydantic import BaseModel, ConfigDict, Field

from repo_migrator.agents.exceptions import LLMProviderError, RateLimitExceededError
from repo_migrator.config import EngineSettings
from repo_migrator.resilience import (
    CancellationToken,
    RateLimiter,
    abort_if_signaled,
    is_abort_error,
    with_retry,
)

logger = logging.getLogger(__name__)

MAX_API_TOKENS = 8192
MIN_THINKING_BUDGET = 1024
JSON_MIME_TYPE = "application/json"
JSON_ONLY_SUFFIX = "\nRespond with valid JSON only."

_IMAGE_SIZES = {
    "16:9": "1536x1024",
    "4:3": "1536x1024",
    "1:1": "1024x1024",
    "3:4": "1024x1536",
    "9:16": "1024x1536",
}

ChunkCallback = Callable[[str], None]


class ImageConfig(BaseModel):
    model_config = ConfigDict(frozen=False)

    aspect_ratio: str = "16:9"
    image_size: str = "1K"


class RequestConfig(BaseModel):
    """Per-request options understood by every provider."""

    model_config = ConfigDict(frozen=False)

    system_instruction: str | None = None
    response_mime_type: str | None = None
    thinking_budget: int = 0
    max_tokens: int = MAX_API_TOKENS
    image_config: ImageConfig | None = None


class InlineData(BaseModel):
    model_config = ConfigDict(frozen=False)

    mime_type: str
    data: str  # base64


class LLMResponse(BaseModel):
    model_config = ConfigDict(frozen=False)

    text: str | None = None
    inline_data: list[InlineData] = Field(default_factory=list)
    provider: str = ""


class LLMClient:
    """Provider-chained client with retry, cancellation and optional quota."""

    def __init__(
        self,
        settings: EngineSettings | None = None,
        *,
        anthropic_client: Any | None = None,
        openai_client: Any | None = None,
        rate_limiter: RateLimiter | None = None,
        client_key: str = "default",
    ) -> None:
        """Initialize the client.

        Args:
            settings: Engine settings; read from the environment when omitted.
            anthropic_client: Pre-built async Anthropic client.
            openai_client: Pre-built async OpenAI client.
            rate_limiter: Optional quota checked before each attempt.
            client_key: Identity used for the quota.

        Raises:
            LLMProviderError: If no provider is available or the provider
                selection cannot be served.
        """
        self.settings = settings if settings is not None else EngineSettings.from_env()
        self._anthropic_client = anthropic_client
        self._openai_client = openai_client
        if self._anthropic_client is None and self.settings.anthropic_api_key:
            self._anthropic_client = AsyncAnthropic(api_key=self.settings.anthropic_api_key, max_retries=0)
        if self._openai_client is None and self.settings.openai_api_key:
            self._openai_client = AsyncOpenAI(api_key=self.settings.openai_api_key, max_retries=0)
        if not (self._anthropic_client or self._openai_client):
            raise LLMProviderError(
                "No Anthropic or OpenAI API key found. "
                "Set ANTHROPIC_API_KEY or OPENAI_API_KEY."
            )
        self.rate_limiter = rate_limiter
        self.client_key = client_key
        self._check_provider_config()

    def _check_provider_config(self) -> None:
        provider = self.settings.llm_provider
        if provider == "anthropic" and self._anthropic_client is None:
            raise LLMProviderError("No Anthropic API key found for llm_provider=anthropic.")
        if provider == "openai" and self._openai_client is None:
            raise LLMProviderError("No OpenAI API key found for llm_provider=openai.")
        fallback = self.settings.llm_fallback_provider
        if self.settings.allow_llm_fallback and fallback:
            if fallback == "anthropic" and self._anthropic_client is None:
                raise LLMProviderError(
                    "Fallback provider requested as anthropic but ANTHROPIC_API_KEY is not set."
                )
            if fallback == "openai" and self._openai_client is None:
                raise LLMProviderError(
                    "Fallback provider requested as openai but OPENAI_API_KEY is not set."
                )

    def _primary_provider(self) -> Literal["anthropic", "openai"]:
        if self.settings.llm_provider == "auto":
            return "anthropic" if self._anthropic_client is not None else "openai"
        return self.settings.llm_provider  # type: ignore[return-value]

    def _provider_chain(self) -> list[str]:
        chain: list[str] = [self._primary_provider()]
        fallback = self.settings.llm_fallback_provider
        if self.settings.allow_llm_fallback and fallback and fallback != "auto":
            if fallback != chain[0]:
                chain.append(fallback)
        return chain

    def _resolve_model(self, provider: str, model: str) -> str:
        if provider == "openai" and model.startswith("claude-"):
            return self.settings.openai_model
        if provider == "anthropic" and not model.startswith("claude-"):
            return self.settings.analysis_model
        return model

    def has_image_support(self) -> bool:
        return self._openai_client is not None

    def _check_rate_limit(self) -> None:
        if self.rate_limiter is None:
            return
        if not self.rate_limiter.check(self.client_key):
            raise RateLimitExceededError(
                f"Rate limit exceeded for client '{self.client_key}'",
                retry_after=self.rate_limiter.retry_after(self.client_key),
            )

    async def _retrying(
        self,
        attempt: Callable[[], Awaitable[Any]],
        token: CancellationToken | None,
        label: str,
    ) -> Any:
        return await with_retry(
            attempt,
            retries=self.settings.max_retries,
            base_delay=self.settings.retry_base_delay,
            max_delay=self.settings.retry_max_delay,
            token=token,
            label=label,
        )

    async def _over_providers(self, call: Callable[[str], Awaitable[Any]]) -> Any:
        providers = self._provider_chain()
        last_error: Exception | None = None
        for index, provider in enumerate(providers):
            try:
                return await call(provider)
            except Exception as error:
                if is_abort_error(error):
                    raise
                last_error = error
                if index < len(providers) - 1:
                    logger.warning(
                        "Provider %s failed (%s); falling back to %s",
                        provider, error, providers[index + 1],
                    )
        if last_error is None:
            raise LLMProviderError("No LLM provider configured")
        raise last_error

    # -- request ---------------------------------------------------------

    async def request(
        self,
        model: str,
        contents: str,
        config: RequestConfig | None = None,
        token: CancellationToken | None = None,
    ) -> LLMResponse:
        """Send one request and return its text and/or inline payloads.

        Args:
            model: Model identifier; mapped per provider when needed.
            contents: Prompt text.
            config: Request options. ``image_config`` turns the call into
                an image generation.
            token: Cancellation token for the run.

        Returns:
            LLMResponse with ``text`` or ``inline_data``.

        Raises:
            OperationCancelledError: If the token is cancelled.
            LLMProviderError: If image generation has no capable provider.
            Exception: The provider's last error once retries are spent.
        """
        config = config or RequestConfig()

        async def attempt() -> LLMResponse:
            abort_if_signaled(token)
            self._check_rate_limit()
            if config.image_config is not None:
                return await self._generate_image(model, contents, config.image_config)
            return await self._over_providers(
                lambda provider: self._complete(provider, model, contents, config)
            )

        return await self._retrying(attempt, token, f"request {model}")

    async def _complete(
        self,
        provider: str,
        model: str,
        contents: str,
        config: RequestConfig,
    ) -> LLMResponse:
        if provider == "anthropic":
            if self._anthropic_client is None:
                raise LLMProviderError("Anthropic client unavailable")
            response = await self._anthropic_client.messages.create(
                **self._anthropic_kwargs(model, contents, config)
            )
            text = "".join(
                getattr(block, "text", "")
                for block in response.content
                if getattr(block, "type", "text") == "text"
            )
            return LLMResponse(text=text, provider=provider)

        if self._openai_client is None:
            raise LLMProviderError("OpenAI client unavailable")
        response = await self._openai_client.chat.completions.create(
            **self._openai_kwargs(model, contents, config)
        )
        return LLMResponse(text=response.choices[0].message.content or "", provider=provider)

    def _system_prompt(self, config: RequestConfig) -> str | None:
        system = config.system_instruction or ""
        if config.response_mime_type == JSON_MIME_TYPE:
            system += JSON_ONLY_SUFFIX
        return system.strip() or None

    def _anthropic_kwargs(self, model: str, contents: str, config: RequestConfig) -> dict[str, Any]:
        kwargs: dict[str, Any] = {
            "model": self._resolve_model("anthropic", model),
            "max_tokens": config.max_tokens,
            "messages": [{"role": "user", "content": contents}],
        }
        system = self._system_prompt(config)
        if system:
            kwargs["system"] = system
        if config.thinking_budget >= MIN_THINKING_BUDGET:
            kwargs["thinking"] = {"type": "enabled", "budget_tokens": config.thinking_budget}
            kwargs["max_tokens"] = max(config.max_tokens, config.thinking_budget + MIN_THINKING_BUDGET)
        return kwargs

    def _openai_kwargs(self, model: str, contents: str, config: RequestConfig) -> dict[str, Any]:
        messages: list[dict[str, str]] = []
        system = self._system_prompt(config)
        if system:
            messages.append({"role": "system", "content": system})
        messages.append({"role": "user", "content": contents})
        return {
            "model": self._resolve_model("openai", model),
            "max_tokens": config.max_tokens,
            "messages": messages,
        }

    async def _generate_image(self, model: str, prompt: str, image_config: ImageConfig) -> LLMResponse:
        if self._openai_client is None:
            raise LLMProviderError("Image generation requires an OpenAI API key.")
        result = await self._openai_client.images.generate(
            model=model,
            prompt=prompt,
            size=_IMAGE_SIZES.get(image_config.aspect_ratio, "1024x1024"),
        )
        inline = [
            InlineData(mime_type="image/png", data=item.b64_json)
            for item in result.data or []
            if getattr(item, "b64_json", None)
        ]
        return LLMResponse(inline_data=inline, provider="openai")

    # -- streaming -------------------------------------------------------

    async def stream(
        self,
        model: str,
        contents: str,
        config: RequestConfig | None = None,
        on_chunk: ChunkCallback | None = None,
        token: CancellationToken | None = None,
    ) -> str:
        """Stream a completion, reporting the accumulated text per chunk.

        A retried attempt restarts the stream from an empty buffer.

        Returns:
            The full generated text.
        """
        config = config or RequestConfig()

        async def attempt() -> str:
            abort_if_signaled(token)
            self._check_rate_limit()
            return await self._over_providers(
                lambda provider: self._stream_once(provider, model, contents, config, on_chunk, token)
            )

        return await self._retrying(attempt, token, f"stream {model}")

    async def _stream_once(
        self,
        provider: str,
        model: str,
        contents: str,
        config: RequestConfig,
        on_chunk: ChunkCallback | None,
        token: CancellationToken | None,
    ) -> str:
        accumulated = ""
        if provider == "anthropic":
            if self._anthropic_client is None:
                raise LLMProviderError("Anthropic client unavailable")
            async with self._anthropic_client.messages.stream(
                **self._anthropic_kwargs(model, contents, config)
            ) as stream:
                async for text in stream.text_stream:
                    abort_if_signaled(token)
                    accumulated += text
                    if on_chunk is not None:
                        on_chunk(accumulated)
            return accumulated

        if self._openai_client is None:
            raise LLMProviderError("OpenAI client unavailable")
        stream = await self._openai_client.chat.completions.create(
            stream=True, **self._openai_kwargs(model, contents, config)
        )
        async for chunk in stream:
            abort_if_signaled(token)
            if not chunk.choices:
                continue
            delta = chunk.choices[0].delta.content
            if delta:
                accumulated += delta
                if on_chunk is not None:
                    on_chunk(accumulated)
        return accumulated

    # -- probes ----------------------------------------------------------

    async def validate_api_key(self, token: CancellationToken | None = None) -> bool:
        """Issue a minimal request to confirm the configured key works.

        Returns:
            True if the provider answered, False if it rejected the call.

        Raises:
            OperationCancelledError: If the token is cancelled.
        """
        abort_if_signaled(token)
        probe = RequestConfig(max_tokens=1)
        try:
            await self._over_providers(
                lambda provider: self._complete(provider, self.settings.analysis_model, "ping", probe)
            )
        except Exception as error:
            if is_abort_error(error):
                raise
            logger.warning("API key validation failed: %s", error)
            return False
        return True
