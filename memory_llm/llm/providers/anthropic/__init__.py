"""
Anthropic Claude LLM client module.
"""

from .anthropic_provider import AnthropicLLMClient

__all__ = ["AnthropicLLMClient"]
