"""
Anthropic Claude LLM client.

Completions only: embeddings are always served through an OpenAI-compatible
client. Requests go through the shared ``RetryTransport`` with the SDK's own
retries switched off.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Optional

import anthropic
import httpx
from anthropic import AsyncAnthropic

from memory_llm.llm.context import deadline_scope, remaining_time
from memory_llm.llm.interfaces.llm_provider_interface import (
    DEFAULT_TEMPERATURE,
    LLMBadRequestError,
    LLMCancellationError,
    LLMClientInterface,
    LLMConnectionError,
    LLMError,
    LLMRateLimitError,
    LLMResponse,
    LLMTransientError,
    LLMValidationError,
)
from memory_llm.llm.provider_config import OPENAI_API_TIMEOUT, AnthropicProvider
from memory_llm.llm.tokens import TokenCounter
from memory_llm.llm.transport import RetryTransport

DEFAULT_MAX_OUTPUT_TOKENS = 1024


class AnthropicLLMClient(LLMClientInterface):
    """Client for the Anthropic Messages API."""

    provider_name = "anthropic"

    def __init__(
        self,
        provider: AnthropicProvider,
        token_counter: TokenCounter,
        transport: RetryTransport,
        timeout: float = OPENAI_API_TIMEOUT,
    ):
        super().__init__(provider.model, token_counter)

        self.logger = logging.getLogger(__name__)
        self.provider = provider
        self.timeout = timeout
        self._http_client = httpx.AsyncClient(transport=transport, timeout=timeout)

        try:
            self.client = AsyncAnthropic(
                api_key=provider.api_key,
                http_client=self._http_client,
                max_retries=0,
                timeout=timeout,
            )
        except anthropic.AnthropicError as e:
            raise LLMConnectionError(
                "failed to initialize Anthropic client", original_error=e
            ) from e

    async def _call(self, request: Callable[[], Awaitable[Any]]) -> Any:
        with deadline_scope(self.timeout):
            try:
                return await asyncio.wait_for(request(), timeout=remaining_time())
            except asyncio.TimeoutError as e:
                raise LLMCancellationError("anthropic call deadline exceeded", original_error=e) from e
            except LLMCancellationError:
                raise
            except LLMTransientError as e:
                # Transport failure the SDK did not wrap in APIConnectionError
                raise LLMConnectionError("failed to reach anthropic", original_error=e) from e
            except anthropic.BadRequestError as e:
                raise LLMBadRequestError(
                    f"anthropic rejected the request: {e.message}", original_error=e
                ) from e
            except anthropic.RateLimitError as e:
                raise LLMRateLimitError(
                    "anthropic rate limit exceeded", status_code=429, original_error=e
                ) from e
            except anthropic.APIConnectionError as e:
                cause = e.__cause__
                if isinstance(cause, LLMCancellationError):
                    raise cause from None
                raise LLMConnectionError(
                    "failed to reach anthropic", original_error=cause or e
                ) from e
            except anthropic.APIStatusError as e:
                if e.status_code >= 500:
                    raise LLMTransientError(
                        f"anthropic server error {e.status_code}",
                        status_code=e.status_code,
                        original_error=e,
                    ) from e
                raise LLMError(f"anthropic API error {e.status_code}", original_error=e) from e
            except anthropic.AnthropicError as e:
                raise LLMError("anthropic API error", original_error=e) from e

    async def generate_completion(
        self,
        prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        if not prompt or not prompt.strip():
            raise LLMValidationError("prompt cannot be empty")

        response = await self._call(
            lambda: self.client.messages.create(
                model=self.model_name,
                max_tokens=max_tokens or DEFAULT_MAX_OUTPUT_TOKENS,
                temperature=DEFAULT_TEMPERATURE if temperature is None else temperature,
                messages=[{"role": "user", "content": prompt}],
            )
        )

        if not response.content:
            raise LLMError("empty response from anthropic")

        content = "".join(getattr(block, "text", "") or "" for block in response.content)
        llm_response = LLMResponse(
            content=content,
            model=self.model_name,
            finish_reason=response.stop_reason,
        )
        if response.usage:
            llm_response.prompt_tokens = response.usage.input_tokens
            llm_response.completion_tokens = response.usage.output_tokens

        return llm_response

    async def close(self) -> None:
        await self.client.close()
