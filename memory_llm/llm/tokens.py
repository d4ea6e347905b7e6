"""
Token counting against provider limits.

Counts use a tiktoken byte-pair encoding matched to the model family. When no
encoding can be obtained for the model, the counter falls back to a character
heuristic and reports itself as approximate.
"""

import logging
import math
from typing import Any, Optional

import tiktoken

from memory_llm.llm.registry import DEFAULT_MODEL_REGISTRY, ValidModelRegistry

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "cl100k_base"
CHARS_PER_TOKEN = 4


def estimate_tokens(text: str) -> int:
    """Estimate tokens at ~4 characters per token."""
    if not text:
        return 0
    return max(1, math.ceil(len(text) / CHARS_PER_TOKEN))


class TokenCounter:
    """
    Token counter bound to one model.

    The encoding is loaded on first use, so building a counter never touches
    the tiktoken data files.
    """

    _UNLOADED = object()

    def __init__(
        self,
        model: str,
        registry: ValidModelRegistry = DEFAULT_MODEL_REGISTRY,
        encoding: Optional[Any] = None,
    ):
        """
        Args:
            model: Model name the counts are for
            registry: Known-model registry used for limits
            encoding: Pre-built encoding (anything with ``encode(text)``)
        """
        self.model = model
        self.registry = registry
        self._encoding = encoding if encoding is not None else self._UNLOADED

    def _load_encoding(self) -> Optional[Any]:
        try:
            return tiktoken.encoding_for_model(self.model)
        except KeyError:
            pass
        except Exception as e:
            logger.warning(f"Failed to load tiktoken encoding for {self.model}: {e}")
            return None

        # Claude, Llama and custom models have no tiktoken mapping
        try:
            return tiktoken.get_encoding(DEFAULT_ENCODING)
        except Exception as e:
            logger.warning(
                f"Encoding {DEFAULT_ENCODING} unavailable for {self.model}, "
                f"token counts will be estimated: {e}"
            )
            return None

    @property
    def encoding(self) -> Optional[Any]:
        if self._encoding is self._UNLOADED:
            self._encoding = self._load_encoding()
        return self._encoding

    @property
    def approximate(self) -> bool:
        """True when counts are character estimates rather than encodings."""
        return self.encoding is None

    def count(self, text: str) -> int:
        """Return the number of tokens in text."""
        if not text:
            return 0
        encoding = self.encoding
        if encoding is None:
            return estimate_tokens(text)
        return len(encoding.encode(text, disallowed_special=()))

    def max_tokens(self, model: Optional[str] = None) -> int:
        """Maximum context length of model (defaults to the bound model)."""
        return self.registry.max_tokens(model or self.model)
