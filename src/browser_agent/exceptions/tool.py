"""
Tool-related exceptions.

These never escape a tool invocation: the Tool Manager converts them
into failed tool results that the model sees on its next turn.
"""

from browser_agent.exceptions.base import BrowserAgentError


class ToolError(BrowserAgentError):
    """Base exception for tool-related errors."""
    
    def __init__(self, message: str, tool_name: str | None = None, details: dict | None = None):
        merged = {"tool_name": tool_name}
        if details:
            merged.update(details)
        super().__init__(message, merged)
        self.tool_name = tool_name


class ToolValidationError(ToolError):
    """
    Tool call could not be matched to a handler and schema.
    
    Covers both unknown tool names and arguments that fail the
    tool's input schema, so the dispatcher reports them uniformly.
    """
    
    def __init__(self, message: str, tool_name: str | None = None, errors: list | None = None):
        super().__init__(message, tool_name, {"errors": errors} if errors else None)
        self.errors = errors or []


class ToolNotFoundError(ToolValidationError):
    """No tool is registered under the requested name."""
    
    def __init__(self, tool_name: str, available: list[str] | None = None):
        super().__init__(f"Tool '{tool_name}' not found", tool_name)
        self.available = available or []


class ToolExecutionError(ToolError):
    """
    Error raised by a tool handler while executing.
    
    Tools may raise this to fail with a clean message; any other
    exception is wrapped the same way by the Tool Manager.
    """
    pass
