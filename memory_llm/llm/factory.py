"""
LLM client factory.

This module validates provider configuration and builds the matching client.
Validation follows a fixed precedence:

1. An Azure endpoint wins: a non-empty deployment name replaces the model,
   and embeddings need an embedding deployment when OpenAI embeddings are
   enabled. Combining it with a custom endpoint is an error.
2. A custom endpoint means a self-hosted model, which is not checked against
   the known-model registry.
3. Otherwise the model must be known; embedding clients need an
   embedding-capable (OpenAI-compatible) model whatever the LLM service is.
4. Anthropic models must be known and accept no endpoint override.
5. An unset service is treated as OpenAI.

The factory never falls back to another provider: every violation raises
``LLMConfigurationError`` naming the offending field.
"""

import logging
from typing import Optional, TYPE_CHECKING

from memory_llm.llm.interfaces.llm_provider_interface import (
    INVALID_LLM_MODEL_ERROR,
    ClientPurpose,
    LLMClientInterface,
    LLMConfigurationError,
)
from memory_llm.llm.provider_config import (
    AnthropicProvider,
    AzureOpenAIProvider,
    OpenAIProvider,
    OpenSourceProvider,
    ProviderConfig,
    ProviderVariant,
    ServiceType,
)
from memory_llm.llm.registry import (
    ANTHROPIC_PROVIDER,
    DEFAULT_MODEL_REGISTRY,
    OPENAI_PROVIDER,
    ValidModelRegistry,
)
from memory_llm.llm.tokens import TokenCounter
from memory_llm.llm.transport import RetryTransport

if TYPE_CHECKING:
    from memory_llm.config.config_manager import AppConfig


class LLMProviderFactory:
    """
    Factory for LLM clients.

    Holds only the read-only model registry, so one instance can serve any
    number of concurrent resolve calls.
    """

    def __init__(self, registry: ValidModelRegistry = DEFAULT_MODEL_REGISTRY):
        self.logger = logging.getLogger(__name__)
        self.registry = registry

    def to_provider_variant(
        self,
        config: ProviderConfig,
        purpose: ClientPurpose = ClientPurpose.COMPLETION,
        embeddings_enabled: bool = False,
    ) -> ProviderVariant:
        """
        Validate config and return the provider variant it describes.

        Args:
            config: Provider configuration
            purpose: Whether the client will serve completions or embeddings
            embeddings_enabled: Whether OpenAI embeddings are enabled system-wide

        Raises:
            LLMConfigurationError: If the configuration is invalid
        """
        service = config.service
        label = service.value or OPENAI_PROVIDER

        if not config.api_key:
            raise LLMConfigurationError(f"api key is not set for {label}", field="api_key")

        if service is ServiceType.ANTHROPIC:
            return self._anthropic_variant(config, purpose)

        if config.azure_endpoint and config.custom_endpoint:
            raise LLMConfigurationError(
                "only one of azure_endpoint or custom_endpoint can be set",
                field="custom_endpoint",
            )

        if config.azure_endpoint:
            # Azure deployments are named by the user, so there is nothing to
            # check the name against
            model = config.azure_deployment or config.model
            if not model:
                raise LLMConfigurationError(
                    f"invalid llm deployment for {label}, deployment name is required",
                    field="azure_deployment",
                )
            if (
                purpose is ClientPurpose.EMBEDDINGS
                and embeddings_enabled
                and not config.azure_embedding_deployment
            ):
                raise LLMConfigurationError(
                    f"invalid embeddings deployment for {label}, deployment name is required",
                    field="azure_embedding_deployment",
                )
            return AzureOpenAIProvider(
                model=model,
                api_key=config.api_key,
                endpoint=config.azure_endpoint,
                api_version=config.azure_api_version,
                embedding_deployment=config.azure_embedding_deployment,
            )

        if service is ServiceType.AZURE_OPENAI:
            raise LLMConfigurationError(
                "azure-openai service requires azure_endpoint", field="azure_endpoint"
            )

        if config.custom_endpoint:
            if not config.model:
                raise LLMConfigurationError(INVALID_LLM_MODEL_ERROR, field="model")
            return OpenSourceProvider(
                model=config.model,
                api_key=config.api_key,
                endpoint=config.custom_endpoint,
                embedding_model=config.embedding_model,
            )

        if service is ServiceType.OPEN_SOURCE:
            raise LLMConfigurationError(
                "open-source service requires custom_endpoint", field="custom_endpoint"
            )

        if purpose is ClientPurpose.EMBEDDINGS:
            valid = self.registry.is_embedding_capable(config.model)
        else:
            valid = self.registry.is_valid(OPENAI_PROVIDER, config.model)
        if not valid:
            raise LLMConfigurationError(
                f'invalid llm model "{config.model}" for {label}', field="model"
            )

        return OpenAIProvider(
            model=config.model,
            api_key=config.api_key,
            organization_id=config.organization_id,
            embedding_model=config.embedding_model,
        )

    def _anthropic_variant(
        self, config: ProviderConfig, purpose: ClientPurpose
    ) -> AnthropicProvider:
        if purpose is ClientPurpose.EMBEDDINGS:
            raise LLMConfigurationError(
                "invalid embeddings service: anthropic", field="service"
            )
        for field in ("custom_endpoint", "azure_endpoint"):
            if getattr(config, field):
                raise LLMConfigurationError(
                    f"{field} is not supported for anthropic", field=field
                )
        if not self.registry.is_valid(ANTHROPIC_PROVIDER, config.model):
            raise LLMConfigurationError(
                f'invalid llm model "{config.model}" for anthropic', field="model"
            )
        return AnthropicProvider(model=config.model, api_key=config.api_key)

    def resolve(
        self,
        config: ProviderConfig,
        purpose: ClientPurpose = ClientPurpose.COMPLETION,
        embeddings_enabled: bool = False,
    ) -> LLMClientInterface:
        """
        Validate config and build a client for it.

        Each call builds its own retrying transport and tokenizer; nothing is
        shared between clients.

        Raises:
            LLMConfigurationError: If the configuration is invalid
        """
        variant = self.to_provider_variant(config, purpose, embeddings_enabled)

        transport = RetryTransport(
            max_attempts=config.max_attempts, per_attempt_timeout=config.timeout
        )
        token_counter = TokenCounter(variant.model, registry=self.registry)

        self.logger.info(
            f"Creating {type(variant).__name__} client for {purpose.value} "
            f"with model {variant.model}"
        )

        if isinstance(variant, AnthropicProvider):
            from memory_llm.llm.providers.anthropic.anthropic_provider import AnthropicLLMClient

            return AnthropicLLMClient(variant, token_counter, transport, timeout=config.timeout)

        from memory_llm.llm.providers.openai.openai_provider import OpenAILLMClient

        return OpenAILLMClient(variant, token_counter, transport, timeout=config.timeout)

    def get_model_name(self, config: ProviderConfig) -> str:
        """
        Return the validated model or deployment name, e.g. for telemetry.

        Names behind a custom or Azure endpoint are returned unchecked.

        Raises:
            LLMConfigurationError: If no endpoint is set and the model is unknown
        """
        if config.azure_endpoint:
            return config.azure_deployment or config.model
        if config.custom_endpoint:
            return config.model
        if not config.model or not (
            self.registry.is_valid(OPENAI_PROVIDER, config.model)
            or self.registry.is_valid(ANTHROPIC_PROVIDER, config.model)
        ):
            raise LLMConfigurationError(INVALID_LLM_MODEL_ERROR, field="model")
        return config.model


# Global factory instance
_llm_factory = LLMProviderFactory()


def _app_config(config: Optional["AppConfig"]) -> "AppConfig":
    if config is not None:
        return config
    from memory_llm.config import get_config

    return get_config().config


def resolve_completion_client(config: Optional["AppConfig"] = None) -> LLMClientInterface:
    """
    Build the completion client described by the ``llm`` configuration section.

    Args:
        config: Application configuration; the global one when omitted

    Raises:
        LLMConfigurationError: If the configuration is invalid
    """
    config = _app_config(config)
    return _llm_factory.resolve(
        config.provider_config(ClientPurpose.COMPLETION), ClientPurpose.COMPLETION
    )


def resolve_embeddings_client(config: Optional["AppConfig"] = None) -> LLMClientInterface:
    """
    Build the embeddings client described by the ``embeddings_client`` section.

    Raises:
        LLMConfigurationError: If the configuration is invalid
    """
    config = _app_config(config)
    return _llm_factory.resolve(
        config.provider_config(ClientPurpose.EMBEDDINGS),
        ClientPurpose.EMBEDDINGS,
        embeddings_enabled=config.uses_openai_embeddings(),
    )


def get_model_name(config: Optional["AppConfig"] = None) -> str:
    """Return the validated completion model name."""
    config = _app_config(config)
    return _llm_factory.get_model_name(config.provider_config(ClientPurpose.COMPLETION))
