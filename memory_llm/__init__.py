"""
Memory LLM

Resilience and orchestration layer between a conversational memory service
and its LLM providers: provider resolution and validation, retrying
transport, token counting, rolling conversation summaries and embedding
routing.
"""

__version__ = "0.1.0"

from memory_llm.llm.factory import (
    resolve_completion_client,
    resolve_embeddings_client,
    get_model_name,
)
from memory_llm.embeddings.router import embed_texts, get_embedding_model
from memory_llm.extractors.summarizer import summarize

__all__ = [
    "__version__",
    "resolve_completion_client",
    "resolve_embeddings_client",
    "get_model_name",
    "embed_texts",
    "get_embedding_model",
    "summarize",
]
