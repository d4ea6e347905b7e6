"""
Known-model registry.

Maps each provider to the models it is known to serve and their maximum
context length. The registry is built once and is read-only afterwards; it
is passed to the factory and token counters rather than looked up globally.
"""

from types import MappingProxyType
from typing import Dict, FrozenSet, Mapping

DEFAULT_MAX_LLM_TOKENS = 4096

OPENAI_PROVIDER = "openai"
ANTHROPIC_PROVIDER = "anthropic"
OPEN_SOURCE_PROVIDER = "open-source"

_OPENAI_LLMS = {
    "gpt-3.5-turbo": 4096,
    "gpt-3.5-turbo-16k": 16_384,
    "gpt-4": 8192,
    "gpt-4-32k": 32_768,
    "gpt-4-turbo": 128_000,
    "gpt-4o": 128_000,
    "gpt-4o-mini": 128_000,
}

_ANTHROPIC_LLMS = {
    "claude-instant-1": 100_000,
    "claude-2": 100_000,
    "claude-3-haiku-20240307": 200_000,
    "claude-3-sonnet-20240229": 200_000,
    "claude-3-opus-20240229": 200_000,
    "claude-3-5-sonnet-20241022": 200_000,
}

_OPEN_SOURCE_LLMS = {
    "meta-llama/Llama-2-7b-chat-hf": 4096,
    "meta-llama/Llama-2-13b-chat-hf": 4096,
    "meta-llama/Llama-2-70b-chat-hf": 4096,
}


class ValidModelRegistry:
    """
    Read-only provider -> model -> max-token mapping.

    Embeddings are always served through an OpenAI-compatible path, so the
    embedding-capable set is the OpenAI model set unless given explicitly.
    """

    def __init__(
        self,
        models: Dict[str, Dict[str, int]],
        embedding_provider: str = OPENAI_PROVIDER,
        default_max_tokens: int = DEFAULT_MAX_LLM_TOKENS,
    ):
        self._models: Mapping[str, Mapping[str, int]] = MappingProxyType(
            {provider: MappingProxyType(dict(limits)) for provider, limits in models.items()}
        )
        self._embedding_models: FrozenSet[str] = frozenset(
            self._models.get(embedding_provider, {})
        )
        self._max_tokens: Mapping[str, int] = MappingProxyType(
            {
                model: limit
                for limits in self._models.values()
                for model, limit in limits.items()
            }
        )
        self.default_max_tokens = default_max_tokens

    def is_valid(self, provider: str, model: str) -> bool:
        return model in self._models.get(provider, {})

    def is_embedding_capable(self, model: str) -> bool:
        return model in self._embedding_models

    def max_tokens(self, model: str) -> int:
        """Maximum context length for model, or the default for unknown models."""
        return self._max_tokens.get(model, self.default_max_tokens)


DEFAULT_MODEL_REGISTRY = ValidModelRegistry(
    {
        OPENAI_PROVIDER: _OPENAI_LLMS,
        ANTHROPIC_PROVIDER: _ANTHROPIC_LLMS,
        OPEN_SOURCE_PROVIDER: _OPEN_SOURCE_LLMS,
    }
)
