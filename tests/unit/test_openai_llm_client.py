"""
Unit tests for OpenAILLMClient.

The real OpenAI SDK runs on top of RetryTransport; only the network is
replaced by httpx.MockTransport.
"""

import json
from unittest.mock import AsyncMock

import httpx
import numpy as np
import pytest

from memory_llm.llm.context import deadline_scope
from memory_llm.llm.interfaces.llm_provider_interface import (
    LLMBadRequestError,
    LLMCancellationError,
    LLMConnectionError,
    LLMRateLimitError,
    LLMTransientError,
    LLMValidationError,
)
from memory_llm.llm.provider_config import (
    AzureOpenAIProvider,
    OpenAIProvider,
    OpenSourceProvider,
)
from memory_llm.llm.providers.openai.openai_provider import OpenAILLMClient
from memory_llm.llm.tokens import TokenCounter
from memory_llm.llm.transport import RetryTransport


class WordEncoding:
    def encode(self, text, **kwargs):
        return text.split()


def completion_body(content="Hello there", model="gpt-4"):
    return {
        "id": "chatcmpl-123",
        "object": "chat.completion",
        "created": 1700000000,
        "model": model,
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": content},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 12, "completion_tokens": 3, "total_tokens": 15},
    }


def embeddings_body(vectors):
    return {
        "object": "list",
        "data": [
            {"object": "embedding", "index": index, "embedding": vector}
            for index, vector in vectors
        ],
        "model": "text-embedding-ada-002",
        "usage": {"prompt_tokens": 4, "total_tokens": 4},
    }


class RecordingHandler:
    """Answers every request with the next scripted (status, body) pair."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        status, body = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(status, Exception):
            raise status
        return httpx.Response(status, json=body)


def make_client(handler, provider=None, max_attempts=5):
    provider = provider or OpenAIProvider(model="gpt-4", api_key="sk-test")
    transport = RetryTransport(
        max_attempts=max_attempts,
        transport=httpx.MockTransport(handler),
        sleep=AsyncMock(),
    )
    counter = TokenCounter(provider.model, encoding=WordEncoding())
    return OpenAILLMClient(provider, counter, transport, timeout=5.0)


ERROR_BODY = {"error": {"message": "maximum context length exceeded", "type": "invalid_request_error"}}


class TestCompletion:
    @pytest.mark.asyncio
    async def test_complete_sends_system_prompt(self):
        handler = RecordingHandler((200, completion_body("A summary")))
        client = make_client(handler)

        result = await client.complete("Summarize this")

        assert result == "A summary"
        body = json.loads(handler.requests[0].content)
        assert body["model"] == "gpt-4"
        assert body["messages"] == [{"role": "system", "content": "Summarize this"}]
        assert body["temperature"] == 0.0
        assert "max_tokens" not in body
        assert handler.requests[0].url.path.endswith("/chat/completions")
        await client.close()

    @pytest.mark.asyncio
    async def test_generate_completion_reports_usage(self):
        handler = RecordingHandler((200, completion_body()))
        client = make_client(handler)

        response = await client.generate_completion("Hi", temperature=0.5, max_tokens=64)

        assert response.prompt_tokens == 12
        assert response.completion_tokens == 3
        assert response.finish_reason == "stop"
        body = json.loads(handler.requests[0].content)
        assert body["temperature"] == 0.5
        assert body["max_tokens"] == 64
        await client.close()

    @pytest.mark.asyncio
    async def test_empty_prompt(self):
        handler = RecordingHandler((200, completion_body()))
        client = make_client(handler)

        with pytest.raises(LLMValidationError):
            await client.complete("   ")
        assert handler.requests == []
        await client.close()

    @pytest.mark.asyncio
    async def test_retries_server_errors(self):
        handler = RecordingHandler((500, {}), (502, {}), (200, completion_body("ok")))
        client = make_client(handler)

        assert await client.complete("Hi") == "ok"
        assert len(handler.requests) == 3
        await client.close()

    @pytest.mark.asyncio
    async def test_bad_request_is_not_retried(self):
        handler = RecordingHandler((400, ERROR_BODY))
        client = make_client(handler)

        with pytest.raises(LLMBadRequestError) as exc_info:
            await client.complete("Hi")

        assert len(handler.requests) == 1
        assert exc_info.value.original_error is not None
        await client.close()

    @pytest.mark.asyncio
    async def test_server_errors_surface_after_attempts(self):
        handler = RecordingHandler((503, {}))
        client = make_client(handler, max_attempts=3)

        with pytest.raises(LLMTransientError) as exc_info:
            await client.complete("Hi")

        assert exc_info.value.status_code == 503
        assert len(handler.requests) == 3
        await client.close()

    @pytest.mark.asyncio
    async def test_rate_limit(self):
        handler = RecordingHandler((429, {"error": {"message": "slow down"}}))
        client = make_client(handler, max_attempts=2)

        with pytest.raises(LLMRateLimitError):
            await client.complete("Hi")
        assert len(handler.requests) == 2
        await client.close()

    @pytest.mark.asyncio
    async def test_network_failure(self):
        handler = RecordingHandler((httpx.ConnectError("refused"), None))
        client = make_client(handler, max_attempts=2)

        with pytest.raises(LLMConnectionError) as exc_info:
            await client.complete("Hi")

        assert isinstance(exc_info.value.original_error, LLMTransientError)
        await client.close()

    @pytest.mark.asyncio
    async def test_unwrapped_transport_errors(self):
        client = make_client(RecordingHandler((200, completion_body())))
        gave_up = LLMTransientError("giving up after 2 attempts")
        expired = LLMCancellationError("request deadline exceeded")

        async def raise_error(error):
            raise error

        with pytest.raises(LLMConnectionError) as exc_info:
            await client._call(lambda: raise_error(gave_up))
        assert exc_info.value.original_error is gave_up

        with pytest.raises(LLMCancellationError) as exc_info:
            await client._call(lambda: raise_error(expired))
        assert exc_info.value is expired
        await client.close()

    @pytest.mark.asyncio
    async def test_expired_deadline_is_cancellation(self):
        handler = RecordingHandler((200, completion_body()))
        client = make_client(handler)

        with deadline_scope(0):
            with pytest.raises(LLMCancellationError):
                await client.complete("Hi")

        assert handler.requests == []
        await client.close()


class TestEmbeddings:
    @pytest.mark.asyncio
    async def test_embed_orders_rows_by_index(self):
        handler = RecordingHandler((200, embeddings_body([(1, [0.0, 1.0]), (0, [1.0, 0.0])])))
        client = make_client(handler)

        vectors = await client.embed(["first", "second"])

        assert vectors.dtype == np.float32
        assert vectors.shape == (2, 2)
        np.testing.assert_array_equal(vectors[0], [1.0, 0.0])
        body = json.loads(handler.requests[0].content)
        assert body["model"] == "text-embedding-ada-002"
        assert body["input"] == ["first", "second"]
        await client.close()

    @pytest.mark.asyncio
    async def test_embed_empty(self):
        handler = RecordingHandler((200, embeddings_body([])))
        client = make_client(handler)

        with pytest.raises(LLMValidationError):
            await client.embed([])
        assert handler.requests == []
        await client.close()


class TestProviderVariants:
    @pytest.mark.asyncio
    async def test_organization_header(self):
        handler = RecordingHandler((200, completion_body()))
        provider = OpenAIProvider(model="gpt-4", api_key="sk-test", organization_id="org-42")
        client = make_client(handler, provider)

        await client.complete("Hi")

        assert handler.requests[0].headers["openai-organization"] == "org-42"
        assert client.provider_name == "openai"
        await client.close()

    @pytest.mark.asyncio
    async def test_open_source_endpoint(self):
        handler = RecordingHandler((200, completion_body()))
        provider = OpenSourceProvider(
            model="llama-local", api_key="none", endpoint="http://llm.local:8000/v1"
        )
        client = make_client(handler, provider)

        await client.complete("Hi")

        url = handler.requests[0].url
        assert url.host == "llm.local"
        assert url.path == "/v1/chat/completions"
        assert client.provider_name == "open-source"
        await client.close()

    @pytest.mark.asyncio
    async def test_azure_routes_to_deployments(self):
        handler = RecordingHandler(
            (200, completion_body()),
            (200, embeddings_body([(0, [0.5, 0.5])])),
        )
        provider = AzureOpenAIProvider(
            model="chat-deployment",
            api_key="azure-key",
            endpoint="https://example.openai.azure.com",
            embedding_deployment="embedding-deployment",
        )
        client = make_client(handler, provider)

        await client.complete("Hi")
        await client.embed(["text"])

        chat_url, embed_url = (request.url for request in handler.requests)
        assert "/deployments/chat-deployment/chat/completions" in chat_url.path
        assert "/deployments/embedding-deployment/embeddings" in embed_url.path
        assert chat_url.params["api-version"] == "2024-02-01"
        assert client.provider_name == "azure-openai"
        await client.close()
