"""
Shared fixtures for the Memory LLM test suite.

Provider SDK calls are never made for real: completion clients are replaced
by ``FakeLLMClient`` and HTTP traffic goes through ``httpx.MockTransport``.
"""

from typing import List, Optional

import numpy as np
import pytest

import memory_llm.config.config_manager as config_module
from memory_llm.config.config_manager import AppConfig, ConfigManager
from memory_llm.llm.interfaces.llm_provider_interface import (
    LLMClientInterface,
    LLMResponse,
    to_float32_matrix,
)
from memory_llm.llm.registry import OPENAI_PROVIDER, ValidModelRegistry
from memory_llm.llm.tokens import TokenCounter
from memory_llm.model.message import Message


class WhitespaceEncoding:
    """Encoding stand-in: one token per whitespace-separated word."""

    def encode(self, text, **kwargs):
        return text.split()


class FakeLLMClient(LLMClientInterface):
    """Completion client that records prompts and answers from a script."""

    provider_name = "fake"

    def __init__(
        self,
        model_name: str = "fake-model",
        max_tokens: int = 4096,
        responses: Optional[List[str]] = None,
    ):
        registry = ValidModelRegistry({OPENAI_PROVIDER: {model_name: max_tokens}})
        super().__init__(
            model_name, TokenCounter(model_name, registry=registry, encoding=WhitespaceEncoding())
        )
        self.responses = list(responses or [])
        self.prompts: List[str] = []
        self.embedded: List[List[str]] = []
        self.closed = False

    async def generate_completion(self, prompt, temperature=None, max_tokens=None):
        self.prompts.append(prompt)
        if self.responses:
            content = self.responses.pop(0)
        else:
            content = f"summary number {len(self.prompts)}"
        return LLMResponse(content=content, model=self.model_name)

    async def embed(self, texts):
        self.embedded.append(list(texts))
        return to_float32_matrix([[float(len(text)), 1.0] for text in texts])

    async def close(self):
        self.closed = True


class FakeLocalEmbedder:
    """Local embedding capability recording its calls."""

    def __init__(self, dimensions: int = 3):
        self.dimensions = dimensions
        self.calls = []
        self.closed = False

    async def embed_local(self, document_type, texts):
        self.calls.append((document_type, list(texts)))
        return np.ones((len(texts), self.dimensions), dtype=np.float32)

    async def close(self):
        self.closed = True


@pytest.fixture(autouse=True)
def reset_config_singleton():
    """Make every test start without a loaded global configuration."""
    ConfigManager.reset()
    config_module._config_manager = None
    yield
    ConfigManager.reset()
    config_module._config_manager = None


@pytest.fixture
def fake_client():
    return FakeLLMClient()


@pytest.fixture
def make_fake_client():
    def _make(**kwargs):
        return FakeLLMClient(**kwargs)

    return _make


@pytest.fixture
def local_embedder():
    return FakeLocalEmbedder()


@pytest.fixture
def make_messages():
    """Build ordered messages with predictable uuids and content."""

    def _make(count: int, content: str = "message {index} says hello") -> List[Message]:
        return [
            Message(
                uuid=f"msg-{index}",
                role="user" if index % 2 == 0 else "assistant",
                content=content.format(index=index),
                created_at=1_700_000_000 + index,
            )
            for index in range(count)
        ]

    return _make


@pytest.fixture
def app_config():
    config = AppConfig()
    config.api.openai_api_key = "sk-test"
    config.api.anthropic_api_key = "sk-ant-test"
    return config
