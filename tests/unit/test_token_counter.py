"""
Unit tests for TokenCounter and the known-model registry.
"""

from unittest.mock import MagicMock, patch

import pytest

from memory_llm.llm.registry import (
    ANTHROPIC_PROVIDER,
    DEFAULT_MAX_LLM_TOKENS,
    DEFAULT_MODEL_REGISTRY,
    OPENAI_PROVIDER,
    ValidModelRegistry,
)
from memory_llm.llm.tokens import DEFAULT_ENCODING, TokenCounter, estimate_tokens


class FakeEncoding:
    def __init__(self):
        self.calls = []

    def encode(self, text, **kwargs):
        self.calls.append(kwargs)
        return list(text.replace(" ", ""))


class TestValidModelRegistry:
    def test_known_models(self):
        assert DEFAULT_MODEL_REGISTRY.is_valid(OPENAI_PROVIDER, "gpt-4")
        assert DEFAULT_MODEL_REGISTRY.is_valid(ANTHROPIC_PROVIDER, "claude-2")
        assert not DEFAULT_MODEL_REGISTRY.is_valid(OPENAI_PROVIDER, "claude-2")
        assert not DEFAULT_MODEL_REGISTRY.is_valid("unknown", "gpt-4")

    def test_embedding_capable_set_is_openai(self):
        assert DEFAULT_MODEL_REGISTRY.is_embedding_capable("gpt-3.5-turbo")
        assert not DEFAULT_MODEL_REGISTRY.is_embedding_capable("claude-2")

    def test_max_tokens(self):
        assert DEFAULT_MODEL_REGISTRY.max_tokens("gpt-4") == 8192
        assert DEFAULT_MODEL_REGISTRY.max_tokens("claude-2") == 100_000
        assert DEFAULT_MODEL_REGISTRY.max_tokens("my-custom-model") == DEFAULT_MAX_LLM_TOKENS

    def test_registry_is_read_only(self):
        source = {OPENAI_PROVIDER: {"gpt-4": 8192}}
        registry = ValidModelRegistry(source)
        source[OPENAI_PROVIDER]["gpt-5"] = 1

        assert not registry.is_valid(OPENAI_PROVIDER, "gpt-5")
        with pytest.raises(TypeError):
            registry._models[OPENAI_PROVIDER]["gpt-5"] = 1


class TestTokenCounter:
    def test_count_with_encoding(self):
        encoding = FakeEncoding()
        counter = TokenCounter("gpt-4", encoding=encoding)

        assert counter.count("ab cd") == 4
        assert encoding.calls == [{"disallowed_special": ()}]
        assert not counter.approximate

    def test_empty_text_is_zero(self):
        counter = TokenCounter("gpt-4", encoding=FakeEncoding())
        assert counter.count("") == 0

    def test_encoding_is_loaded_lazily(self):
        with patch("memory_llm.llm.tokens.tiktoken") as mock_tiktoken:
            counter = TokenCounter("gpt-4")
            mock_tiktoken.encoding_for_model.assert_not_called()

            mock_tiktoken.encoding_for_model.return_value = FakeEncoding()
            counter.count("hello")
            counter.count("again")

            mock_tiktoken.encoding_for_model.assert_called_once_with("gpt-4")

    def test_unknown_model_uses_default_encoding(self):
        with patch("memory_llm.llm.tokens.tiktoken") as mock_tiktoken:
            mock_tiktoken.encoding_for_model.side_effect = KeyError("claude-2")
            mock_tiktoken.get_encoding.return_value = FakeEncoding()

            counter = TokenCounter("claude-2")

            assert counter.count("abc") == 3
            mock_tiktoken.get_encoding.assert_called_once_with(DEFAULT_ENCODING)
            assert not counter.approximate

    def test_falls_back_to_estimate(self):
        with patch("memory_llm.llm.tokens.tiktoken") as mock_tiktoken:
            mock_tiktoken.encoding_for_model.side_effect = KeyError("custom")
            mock_tiktoken.get_encoding.side_effect = ValueError("no data files")

            counter = TokenCounter("my-custom-model")

            assert counter.count("a" * 10) == estimate_tokens("a" * 10) == 3
            assert counter.approximate

    def test_max_tokens(self):
        counter = TokenCounter("gpt-3.5-turbo-16k", encoding=MagicMock())
        assert counter.max_tokens() == 16_384
        assert counter.max_tokens("gpt-4") == 8192

    def test_estimate_tokens(self):
        assert estimate_tokens("") == 0
        assert estimate_tokens("abc") == 1
        assert estimate_tokens("abcdefgh") == 2
