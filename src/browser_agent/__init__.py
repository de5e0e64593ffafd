"""
Browser Agent - LLM-driven task execution against a browser environment.

The agent turns a natural-language goal into a bounded sequence of tool
calls, deciding at runtime whether to act directly, plan ahead, or
replan after validation feedback.

Example:
    >>> from browser_agent import Agent
    >>> from browser_agent.llm import OpenAIProvider
    >>> agent = Agent(OpenAIProvider(base_url="https://api.openai.com", model="gpt-4o"))
    >>> result = await agent.execute("Go to google.com and search for Python tutorials")
"""

__version__ = "0.1.0"

# Public API exports
from browser_agent.core.agent import Agent, AgentResult, AgentState
from browser_agent.config.settings import Settings
from browser_agent.context.store import ContextStore
from browser_agent.events.emitter import EventType, ProgressEmitter, ProgressEvent
from browser_agent.tools.base import BaseTool, ToolResult
from browser_agent.utils.cancellation import CancellationToken

__all__ = [
    "Agent",
    "AgentResult",
    "AgentState",
    "Settings",
    "ContextStore",
    "EventType",
    "ProgressEmitter",
    "ProgressEvent",
    "BaseTool",
    "ToolResult",
    "CancellationToken",
    "__version__",
]
