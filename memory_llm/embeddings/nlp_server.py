"""
Local embedding capability backed by the NLP server.

The NLP server runs next to the memory service and serves small sentence
embedding models per document type. Requests go through ``RetryTransport``
so the local path follows the same retry and deadline rules as provider
calls.
"""

import logging
from typing import List, Optional

import httpx
import numpy as np

from memory_llm.llm.context import deadline_scope
from memory_llm.llm.interfaces.llm_provider_interface import (
    LLMError,
    LLMTransientError,
    LLMValidationError,
    to_float32_matrix,
)
from memory_llm.llm.transport import RetryTransport

DEFAULT_NLP_SERVER_URL = "http://localhost:5557"


class NLPServerEmbedder:
    """POSTs ``{"texts": [...]}`` to ``<server_url>/embeddings/<document_type>``."""

    def __init__(
        self,
        server_url: str = DEFAULT_NLP_SERVER_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.logger = logging.getLogger(__name__)
        self.server_url = server_url.rstrip("/")
        self.timeout = timeout
        self._client = httpx.AsyncClient(
            base_url=self.server_url,
            transport=transport or RetryTransport(per_attempt_timeout=timeout),
            timeout=timeout,
        )

    async def embed_local(self, document_type: str, texts: List[str]) -> np.ndarray:
        if not texts:
            raise LLMValidationError("no text to embed")

        with deadline_scope(self.timeout):
            try:
                response = await self._client.post(
                    f"/embeddings/{document_type}", json={"texts": texts}
                )
            except httpx.HTTPError as e:
                raise LLMTransientError(
                    f"failed to reach nlp server at {self.server_url}", original_error=e
                ) from e

        if response.status_code >= 500 or response.status_code == 429:
            raise LLMTransientError(
                f"nlp server error {response.status_code}", status_code=response.status_code
            )
        if response.status_code != 200:
            raise LLMError(f"nlp server rejected the request: {response.status_code}")

        try:
            payload = response.json()
        except ValueError as e:
            raise LLMError("nlp server returned a non-JSON response", original_error=e) from e

        embeddings = payload.get("embeddings") if isinstance(payload, dict) else None
        if not isinstance(embeddings, list) or len(embeddings) != len(texts):
            raise LLMError("nlp server returned a malformed embeddings payload")

        try:
            vectors = to_float32_matrix(embeddings)
        except (TypeError, ValueError) as e:
            raise LLMError("nlp server returned non-numeric embeddings", original_error=e) from e

        self.logger.debug(f"Embedded {len(texts)} {document_type} texts locally")
        return vectors

    async def close(self) -> None:
        await self._client.aclose()
