"""
LLM Providers - Concrete implementations of the LLM interface.

Available providers:
- OpenAIProvider: HTTP REST-based, any OpenAI-compatible endpoint
"""

from browser_agent.llm.base import BaseLLMProvider, decode_arguments, parse_structured_output
from browser_agent.llm.openai_provider import OpenAIProvider

__all__ = [
    "BaseLLMProvider",
    "OpenAIProvider",
    "decode_arguments",
    "parse_structured_output",
]
