"""
Abstract interface for Large Language Model (LLM) clients.

This module defines the error hierarchy and the common interface that every
resolved LLM client implements, so the summarizer and the embedding router can
work with OpenAI, Azure OpenAI, self-hosted OpenAI-compatible endpoints and
Anthropic through the same `complete` / `embed` capabilities.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, TYPE_CHECKING
import logging

import numpy as np

if TYPE_CHECKING:
    from memory_llm.llm.tokens import TokenCounter


DEFAULT_TEMPERATURE = 0.0
INVALID_LLM_MODEL_ERROR = "llm model is not set or is invalid"


class ClientPurpose(Enum):
    """What a resolved client will be used for."""

    COMPLETION = "completion"
    EMBEDDINGS = "embeddings"


class LLMError(Exception):
    """Base exception for LLM client errors."""

    def __init__(self, message: str, original_error: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error is not None:
            return f"llm error: {self.message} (original error: {self.original_error})"
        return f"llm error: {self.message}"


class LLMConfigurationError(LLMError):
    """
    Raised when the provider configuration is invalid.

    Never retried: the configuration has to be fixed first.
    """

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        original_error: Optional[BaseException] = None,
    ):
        super().__init__(message, original_error)
        self.field = field


class LLMValidationError(LLMError):
    """Raised when input validation fails (empty input, unknown document type)."""

    pass


class LLMTransientError(LLMError):
    """Raised when a provider call failed for a reason that may go away (5xx, 429, network)."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        original_error: Optional[BaseException] = None,
    ):
        super().__init__(message, original_error)
        self.status_code = status_code


class LLMConnectionError(LLMTransientError):
    """Raised when the connection to the provider fails."""

    pass


class LLMRateLimitError(LLMTransientError):
    """Raised when the provider rate limit is exceeded."""

    pass


class LLMBadRequestError(LLMError):
    """
    Raised on HTTP 400 from a provider.

    Providers use 400 to signal a structurally invalid request, such as a
    prompt exceeding the context length, so it is never retried.
    """

    status_code = 400


class LLMCancellationError(LLMError):
    """Raised when the request deadline expired before the call could complete."""

    pass


@dataclass
class LLMResponse:
    """Response from a completion call."""

    content: str
    model: Optional[str] = None
    finish_reason: Optional[str] = None
    prompt_tokens: Optional[int] = None
    completion_tokens: Optional[int] = None


def to_float32_matrix(vectors: List[List[float]]) -> np.ndarray:
    """Convert provider float64 vectors to a float32 matrix, one row per vector."""
    if not vectors:
        return np.empty((0, 0), dtype=np.float32)
    return np.asarray(vectors, dtype=np.float32)


class LLMClientInterface(ABC):
    """
    Abstract interface for LLM clients.

    A client is bound to one resolved provider/model. It holds no state beyond
    its configuration, its HTTP client and its tokenizer, so it can be shared
    by concurrent requests.
    """

    provider_name: str = "unknown"

    def __init__(self, model_name: str, token_counter: "TokenCounter"):
        self.model_name = model_name
        self.token_counter = token_counter
        self.logger = logging.getLogger(self.__class__.__name__)

    @property
    def max_tokens(self) -> int:
        """Maximum context length of the bound model."""
        return self.token_counter.max_tokens(self.model_name)

    def count_tokens(self, text: str) -> int:
        """Return the number of tokens in text for the bound model."""
        return self.token_counter.count(text)

    async def complete(
        self,
        prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> str:
        """
        Generate a completion for a single prompt.

        Args:
            prompt: Prompt text
            temperature: Sampling temperature, defaults to 0.0
            max_tokens: Maximum number of output tokens

        Returns:
            The generated text

        Raises:
            LLMError: If generation fails
        """
        response = await self.generate_completion(
            prompt, temperature=temperature, max_tokens=max_tokens
        )
        return response.content

    @abstractmethod
    async def generate_completion(
        self,
        prompt: str,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
    ) -> LLMResponse:
        """
        Generate a completion and return it with usage metadata.

        Raises:
            LLMValidationError: If the prompt is empty
            LLMBadRequestError: If the provider rejected the request
            LLMTransientError: If the provider kept failing after retries
            LLMCancellationError: If the deadline expired
        """
        pass

    async def embed(self, texts: List[str]) -> np.ndarray:
        """
        Embed texts, returning a float32 matrix with one row per text.

        Raises:
            LLMValidationError: If the provider does not serve embeddings
        """
        raise LLMValidationError(f"{self.provider_name} client does not support embeddings")

    async def close(self) -> None:
        """Release the underlying HTTP client."""
        pass

    def __str__(self) -> str:
        return f"{self.__class__.__name__}(model={self.model_name})"
