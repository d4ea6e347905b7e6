"""
OpenAI-compatible LLM client module.

Serves the OpenAI API, Azure OpenAI deployments and self-hosted
OpenAI-compatible endpoints.
"""

from .openai_provider import OpenAILLMClient

__all__ = ["OpenAILLMClient"]
