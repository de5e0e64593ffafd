"""
Exceptions module - Custom exception hierarchy.

This module defines all custom exceptions used throughout the browser agent,
providing clear error types for different failure scenarios.
"""

from browser_agent.exceptions.base import (
    BrowserAgentError,
    ConfigurationError,
)
from browser_agent.exceptions.llm import (
    LLMError,
    LLMConnectionError,
    LLMAuthenticationError,
    RateLimitError,
    InvalidResponseError,
)
from browser_agent.exceptions.tool import (
    ToolError,
    ToolValidationError,
    ToolNotFoundError,
    ToolExecutionError,
)
from browser_agent.exceptions.agent import (
    AgentError,
    PlanningError,
    StrategyExhaustedError,
    TaskCancelledError,
)

__all__ = [
    # Base exceptions
    "BrowserAgentError",
    "ConfigurationError",
    # LLM exceptions
    "LLMError",
    "LLMConnectionError",
    "LLMAuthenticationError",
    "RateLimitError",
    "InvalidResponseError",
    # Tool exceptions
    "ToolError",
    "ToolValidationError",
    "ToolNotFoundError",
    "ToolExecutionError",
    # Agent exceptions
    "AgentError",
    "PlanningError",
    "StrategyExhaustedError",
    "TaskCancelledError",
]
