"""
Embedding routing for Memory LLM.

Messages and documents are embedded either by the local NLP server or by the
OpenAI-compatible embeddings client, as configured per document type.
"""

from .router import (
    DocumentType,
    EmbeddingModel,
    EmbeddingRouter,
    LocalEmbedder,
    embed_texts,
    get_embedding_model,
)
from .nlp_server import NLPServerEmbedder

__all__ = [
    "DocumentType",
    "EmbeddingModel",
    "EmbeddingRouter",
    "LocalEmbedder",
    "NLPServerEmbedder",
    "embed_texts",
    "get_embedding_model",
]
