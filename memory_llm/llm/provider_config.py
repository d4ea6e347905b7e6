"""
Provider configuration and resolved provider variants.

``ProviderConfig`` is the declarative, immutable description of one LLM
client as read from configuration. The factory validates it and turns it
into exactly one of the provider variants below, each carrying only the
fields its client needs.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from memory_llm.llm.interfaces.llm_provider_interface import LLMConfigurationError

DEFAULT_EMBEDDING_MODEL = "text-embedding-ada-002"
DEFAULT_AZURE_API_VERSION = "2024-02-01"
OPENAI_API_TIMEOUT = 90.0
MAX_OPENAI_API_REQUEST_ATTEMPTS = 5


class ServiceType(Enum):
    """LLM services a client can be configured for."""

    OPENAI = "openai"
    AZURE_OPENAI = "azure-openai"
    ANTHROPIC = "anthropic"
    OPEN_SOURCE = "open-source"
    UNSET = ""

    @classmethod
    def parse(cls, value: Optional[Union[str, "ServiceType"]]) -> "ServiceType":
        """Parse a configured service name; empty or missing means unset."""
        if isinstance(value, ServiceType):
            return value
        if value is None:
            return cls.UNSET
        try:
            return cls(value.strip().lower())
        except ValueError as e:
            raise LLMConfigurationError(
                f"invalid LLM service: {value}", field="service", original_error=e
            )


@dataclass(frozen=True)
class ProviderConfig:
    """
    Configuration of one LLM client.

    At most one of ``custom_endpoint`` / ``azure_endpoint`` may be set. When
    ``azure_endpoint`` is set, a non-empty ``azure_deployment`` overrides
    ``model``.
    """

    service: ServiceType = ServiceType.UNSET
    model: str = ""
    api_key: Optional[str] = None
    custom_endpoint: Optional[str] = None
    azure_endpoint: Optional[str] = None
    azure_deployment: Optional[str] = None
    azure_embedding_deployment: Optional[str] = None
    azure_api_version: str = DEFAULT_AZURE_API_VERSION
    organization_id: Optional[str] = None
    embedding_model: str = DEFAULT_EMBEDDING_MODEL
    max_attempts: int = MAX_OPENAI_API_REQUEST_ATTEMPTS
    timeout: float = OPENAI_API_TIMEOUT

    def __post_init__(self):
        # Accept plain strings from callers building configs by hand
        object.__setattr__(self, "service", ServiceType.parse(self.service))


@dataclass(frozen=True)
class OpenAIProvider:
    model: str
    api_key: str
    organization_id: Optional[str] = None
    embedding_model: str = DEFAULT_EMBEDDING_MODEL


@dataclass(frozen=True)
class AzureOpenAIProvider:
    """Azure OpenAI; ``model`` is the deployment name."""

    model: str
    api_key: str
    endpoint: str
    api_version: str = DEFAULT_AZURE_API_VERSION
    embedding_deployment: Optional[str] = None


@dataclass(frozen=True)
class OpenSourceProvider:
    """Self-hosted or custom OpenAI-compatible endpoint."""

    model: str
    api_key: str
    endpoint: str
    embedding_model: str = DEFAULT_EMBEDDING_MODEL


@dataclass(frozen=True)
class AnthropicProvider:
    model: str
    api_key: str

ProviderVariant = Union[OpenAIProvider, AzureOpenAIProvider, OpenSourceProvider, AnthropicProvider]
