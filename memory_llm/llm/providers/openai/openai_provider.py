"""
OpenAI-compatible LLM client.

One client class serves the plain OpenAI API, Azure OpenAI deployments and
self-hosted OpenAI-compatible endpoints; the resolved provider variant decides
which SDK client is built and where requests are routed. All requests go
through a ``RetryTransport`` with the SDK's own retries switched off.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, List, Optional, Union

import httpx
import numpy as np
import openai
from openai import AsyncAzureOpenAI, AsyncOpenAI

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
    to_float32_matrix,
)
from memory_llm.llm.provider_config import (
    OPENAI_API_TIMEOUT,
    AzureOpenAIProvider,
    OpenAIProvider,
    OpenSourceProvider,
)
from memory_llm.llm.tokens import TokenCounter
from memory_llm.llm.transport import RetryTransport

OpenAICompatibleProvider = Union[OpenAIProvider, AzureOpenAIProvider, OpenSourceProvider]


class OpenAILLMClient(LLMClientInterface):
    """
    Client for OpenAI-compatible chat completion and embedding APIs.

    Completions send the prompt as a single system message at temperature 0.0
    unless told otherwise. Embeddings use the configured embedding model, or
    the embedding deployment on Azure.
    """

    def __init__(
        self,
        provider: OpenAICompatibleProvider,
        token_counter: TokenCounter,
        transport: RetryTransport,
        timeout: float = OPENAI_API_TIMEOUT,
    ):
        """
        Args:
            provider: Validated provider variant
            token_counter: Tokenizer for the bound model
            transport: Retrying transport for all requests
            timeout: Upper bound on each complete/embed call in seconds
        """
        super().__init__(provider.model, token_counter)

        self.logger = logging.getLogger(__name__)
        self.provider = provider
        self.timeout = timeout
        self._http_client = httpx.AsyncClient(transport=transport, timeout=timeout)

        client_kwargs = {
            "api_key": provider.api_key,
            "http_client": self._http_client,
            "max_retries": 0,
            "timeout": timeout,
        }

        try:
            if isinstance(provider, AzureOpenAIProvider):
                self.provider_name = "azure-openai"
                self.embedding_model = provider.embedding_deployment or provider.model
                self.client = AsyncAzureOpenAI(
                    azure_endpoint=provider.endpoint,
                    api_version=provider.api_version,
                    **client_kwargs,
                )
            elif isinstance(provider, OpenSourceProvider):
                self.provider_name = "open-source"
                self.embedding_model = provider.embedding_model
                self.client = AsyncOpenAI(base_url=provider.endpoint, **client_kwargs)
            else:
                self.provider_name = "openai"
                self.embedding_model = provider.embedding_model
                if provider.organization_id:
                    client_kwargs["organization"] = provider.organization_id
                self.client = AsyncOpenAI(**client_kwargs)
        except openai.OpenAIError as e:
            raise LLMConnectionError("failed to initialize OpenAI client", original_error=e) from e

    async def _call(self, request: Callable[[], Awaitable[Any]]) -> Any:
        """Run one SDK request under the call timeout, mapping SDK errors."""
        with deadline_scope(self.timeout):
            try:
                return await asyncio.wait_for(request(), timeout=remaining_time())
            except asyncio.TimeoutError as e:
                raise LLMCancellationError(
                    f"{self.provider_name} call deadline exceeded", original_error=e
                ) from e
            except LLMCancellationError:
                raise
            except LLMTransientError as e:
                # Transport failure the SDK did not wrap in APIConnectionError
                raise LLMConnectionError(
                    f"failed to reach {self.provider_name}", original_error=e
                ) from e
            except openai.BadRequestError as e:
                raise LLMBadRequestError(
                    f"{self.provider_name} rejected the request: {e.message}", original_error=e
                ) from e
            except openai.RateLimitError as e:
                raise LLMRateLimitError(
                    f"{self.provider_name} rate limit exceeded", status_code=429, original_error=e
                ) from e
            except openai.APIConnectionError as e:
                cause = e.__cause__
                if isinstance(cause, LLMCancellationError):
                    raise cause from None
                raise LLMConnectionError(
                    f"failed to reach {self.provider_name}", original_error=cause or e
                ) from e
            except openai.APIStatusError as e:
                if e.status_code >= 500:
                    raise LLMTransientError(
                        f"{self.provider_name} server error {e.status_code}",
                        status_code=e.status_code,
                        original_error=e,
                    ) from e
                raise LLMError(
                    f"{self.provider_name} API error {e.status_code}", original_error=e
                ) from e
            except openai.OpenAIError as e:
                raise LLMError(f"{self.provider_name} API error", original_error=e) from e

    async def generate_completion(
        self,
        prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        if not prompt or not prompt.strip():
            raise LLMValidationError("prompt cannot be empty")

        request_params = {
            "model": self.model_name,
            "messages": [{"role": "system", "content": prompt}],
            "temperature": DEFAULT_TEMPERATURE if temperature is None else temperature,
        }
        if max_tokens:
            request_params["max_tokens"] = max_tokens

        response = await self._call(lambda: self.client.chat.completions.create(**request_params))

        if not response.choices or not response.choices[0].message:
            raise LLMError(f"empty response from {self.provider_name}")

        choice = response.choices[0]
        llm_response = LLMResponse(
            content=choice.message.content or "",
            model=self.model_name,
            finish_reason=choice.finish_reason,
        )
        if response.usage:
            llm_response.prompt_tokens = response.usage.prompt_tokens
            llm_response.completion_tokens = response.usage.completion_tokens
            self.logger.debug(
                f"{self.provider_name} completion used {response.usage.total_tokens} tokens"
            )

        return llm_response

    async def embed(self, texts: List[str]) -> np.ndarray:
        if not texts:
            raise LLMValidationError("no text to embed")

        response = await self._call(
            lambda: self.client.embeddings.create(model=self.embedding_model, input=texts)
        )
        rows = sorted(response.data, key=lambda item: item.index)
        return to_float32_matrix([row.embedding for row in rows])

    async def close(self) -> None:
        await self.client.close()
