"""
Embedding routing.

Conversation messages and ingested documents can be embedded by different
services with different dimensions. The router resolves the embedding model
for a document type from configuration and sends the texts either to the
local NLP server or to the OpenAI-compatible embeddings client.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Protocol, TYPE_CHECKING, Union

import numpy as np

from memory_llm.llm.interfaces.llm_provider_interface import (
    LLMClientInterface,
    LLMValidationError,
)
from memory_llm.monitoring.structured_logger import OperationLogger, get_logger

if TYPE_CHECKING:
    from memory_llm.config.config_manager import AppConfig

LOCAL_EMBEDDING_SERVICE = "local"
OPENAI_EMBEDDING_SERVICE = "openai"


class DocumentType(Enum):
    """What kind of text is being embedded."""

    MESSAGE = "message"
    DOCUMENT = "document"

    @classmethod
    def parse(cls, value: Union["DocumentType", str]) -> "DocumentType":
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            raise LLMValidationError(f"unknown document type: {value!r}") from None


@dataclass(frozen=True)
class EmbeddingModel:
    """Embedding service and vector size for one document type."""

    service: str
    dimensions: int

    @property
    def is_local(self) -> bool:
        return self.service == LOCAL_EMBEDDING_SERVICE


class LocalEmbedder(Protocol):
    """Embeds texts without going to a network LLM provider."""

    async def embed_local(self, document_type: str, texts: List[str]) -> np.ndarray:
        ...


class EmbeddingRouter:
    """
    Routes embedding requests to the local embedder or the embeddings client.

    Both collaborators are created lazily on first use, so a deployment that
    only embeds locally never needs provider credentials.
    """

    def __init__(
        self,
        config: "AppConfig",
        embeddings_client: Optional[LLMClientInterface] = None,
        local_embedder: Optional[LocalEmbedder] = None,
        client_factory: Optional[Callable[["AppConfig"], LLMClientInterface]] = None,
    ):
        """
        Args:
            config: Application configuration
            embeddings_client: Pre-resolved OpenAI-compatible embeddings client
            local_embedder: Local embedding capability; the NLP server by default
            client_factory: Builds the embeddings client when none is given
        """
        self.config = config
        self.logger = get_logger(__name__, "embedding_router")
        self._embeddings_client = embeddings_client
        self._local_embedder = local_embedder
        self._client_factory = client_factory

    def get_embedding_model(self, document_type: Union[DocumentType, str]) -> EmbeddingModel:
        """
        Resolve the embedding model for a document type from configuration.

        Raises:
            LLMValidationError: If the document type is unknown
        """
        doc_type = DocumentType.parse(document_type)
        if doc_type is DocumentType.MESSAGE:
            embeddings = self.config.extractors.messages.embeddings
        else:
            embeddings = self.config.extractors.documents.embeddings
        return EmbeddingModel(service=embeddings.service, dimensions=embeddings.dimensions)

    @property
    def local_embedder(self) -> LocalEmbedder:
        if self._local_embedder is None:
            from memory_llm.embeddings.nlp_server import NLPServerEmbedder

            self._local_embedder = NLPServerEmbedder(
                self.config.nlp.server_url, timeout=self.config.nlp.timeout
            )
        return self._local_embedder

    @property
    def embeddings_client(self) -> LLMClientInterface:
        if self._embeddings_client is None:
            factory = self._client_factory
            if factory is None:
                from memory_llm.llm.factory import resolve_embeddings_client

                factory = resolve_embeddings_client
            self._embeddings_client = factory(self.config)
        return self._embeddings_client

    async def embed_texts(
        self,
        model: EmbeddingModel,
        document_type: Union[DocumentType, str],
        texts: List[str],
    ) -> np.ndarray:
        """
        Embed texts with the service named by model.

        Args:
            model: Resolved embedding model
            document_type: Message or document
            texts: Texts to embed

        Returns:
            float32 matrix with one row per text

        Raises:
            LLMValidationError: If texts is empty or the document type is unknown
            LLMConfigurationError: If the embeddings client cannot be resolved
        """
        if not texts:
            raise LLMValidationError("no text to embed")
        doc_type = DocumentType.parse(document_type)

        with OperationLogger(
            self.logger,
            "embed_texts",
            service=model.service,
            document_type=doc_type.value,
            count=len(texts),
        ):
            if model.is_local:
                return await self.local_embedder.embed_local(doc_type.value, texts)
            return await self.embeddings_client.embed(texts)

    async def close(self) -> None:
        if self._embeddings_client is not None:
            await self._embeddings_client.close()
        close_local = getattr(self._local_embedder, "close", None)
        if close_local is not None:
            await close_local()


def _default_config(config: Optional["AppConfig"]) -> "AppConfig":
    if config is not None:
        return config
    from memory_llm.config import get_config

    return get_config().config


def get_embedding_model(
    document_type: Union[DocumentType, str], config: Optional["AppConfig"] = None
) -> EmbeddingModel:
    """Resolve the embedding model for a document type."""
    return EmbeddingRouter(_default_config(config)).get_embedding_model(document_type)


async def embed_texts(
    model: EmbeddingModel,
    document_type: Union[DocumentType, str],
    texts: List[str],
    config: Optional["AppConfig"] = None,
    embeddings_client: Optional[LLMClientInterface] = None,
    local_embedder: Optional[LocalEmbedder] = None,
) -> np.ndarray:
    """
    Embed texts through a one-shot router.

    Collaborators created here are closed before returning; ones passed in
    are left to the caller.
    """
    router = EmbeddingRouter(
        _default_config(config),
        embeddings_client=embeddings_client,
        local_embedder=local_embedder,
    )
    try:
        return await router.embed_texts(model, document_type, texts)
    finally:
        if embeddings_client is None and router._embeddings_client is not None:
            await router._embeddings_client.close()
        if local_embedder is None and router._local_embedder is not None:
            await router._local_embedder.close()
