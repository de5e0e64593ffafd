"""
Interfaces module - Contracts for the agent's external collaborators.

- ILLMProvider: language model (completions, streaming, structured output)
- IEnvironment: environment snapshot source
"""

from browser_agent.interfaces.llm import (
    ILLMProvider,
    Message,
    MessageRole,
    LLMResponse,
    StreamChunk,
    ToolCall,
    ToolCallChunk,
    ToolDefinition,
    Usage,
)
from browser_agent.interfaces.environment import IEnvironment, NullEnvironment

__all__ = [
    "ILLMProvider",
    "Message",
    "MessageRole",
    "LLMResponse",
    "StreamChunk",
    "ToolCall",
    "ToolCallChunk",
    "ToolDefinition",
    "Usage",
    "IEnvironment",
    "NullEnvironment",
]
