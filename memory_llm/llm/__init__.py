"""
LLM Client Layer for Memory LLM

This module resolves, validates and builds LLM clients for the conversational
memory service. It covers OpenAI, Azure OpenAI, self-hosted OpenAI-compatible
endpoints and Anthropic, and wraps every outbound call in a retrying,
deadline-aware HTTP transport.

Features:
- Provider validation against a read-only known-model registry
- Tagged provider variants instead of string dispatch
- Bounded retries with exponential backoff; HTTP 400 is never retried
- Token counting against provider context limits
"""

from .factory import (
    LLMProviderFactory,
    resolve_completion_client,
    resolve_embeddings_client,
    get_model_name,
)

from .provider_config import (
    ServiceType,
    ProviderConfig,
    OpenAIProvider,
    AzureOpenAIProvider,
    OpenSourceProvider,
    AnthropicProvider,
)

from .registry import ValidModelRegistry, DEFAULT_MODEL_REGISTRY
from .tokens import TokenCounter
from .transport import RetryTransport
from .context import deadline_scope

from .interfaces.llm_provider_interface import (
    ClientPurpose,
    LLMClientInterface,
    LLMResponse,
    LLMError,
    LLMConfigurationError,
    LLMValidationError,
    LLMTransientError,
    LLMConnectionError,
    LLMRateLimitError,
    LLMBadRequestError,
    LLMCancellationError,
)

__all__ = [
    # Factory
    "LLMProviderFactory",
    "resolve_completion_client",
    "resolve_embeddings_client",
    "get_model_name",
    # Configuration
    "ServiceType",
    "ProviderConfig",
    "OpenAIProvider",
    "AzureOpenAIProvider",
    "OpenSourceProvider",
    "AnthropicProvider",
    "ValidModelRegistry",
    "DEFAULT_MODEL_REGISTRY",
    # Transport and tokens
    "TokenCounter",
    "RetryTransport",
    "deadline_scope",
    # Interfaces and errors
    "ClientPurpose",
    "LLMClientInterface",
    "LLMResponse",
    "LLMError",
    "LLMConfigurationError",
    "LLMValidationError",
    "LLMTransientError",
    "LLMConnectionError",
    "LLMRateLimitError",
    "LLMBadRequestError",
    "LLMCancellationError",
]
