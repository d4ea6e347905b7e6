"""
LLM client interfaces package.

This package contains the abstract client interface and the error hierarchy
shared by every provider.
"""

from .llm_provider_interface import (
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
    DEFAULT_TEMPERATURE,
    INVALID_LLM_MODEL_ERROR,
)

__all__ = [
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
    "DEFAULT_TEMPERATURE",
    "INVALID_LLM_MODEL_ERROR",
]
