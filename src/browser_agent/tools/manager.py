"""
Tool Manager - Per-agent registry and dispatcher for tools.

Each Agent owns one ToolManager; there is no process-wide registry.
Dispatch resolves the call's name to a tool, validates arguments against
the tool's schema before invocation, and always returns a ToolResult.
Unknown names, undecodable argument JSON and schema mismatches all come
back as the same kind of failure (ToolValidationError).
"""

import logging
from typing import Dict, Iterable, List, Optional

from browser_agent.exceptions import TaskCancelledError, ToolNotFoundError, ToolValidationError
from browser_agent.interfaces.llm import ToolCall, ToolDefinition
from browser_agent.tools.base import BaseTool, ToolResult, describe_validation_error

logger = logging.getLogger(__name__)


class ToolManager:
    """
    Registry of the tools available to one agent.
    
    Example:
        >>> manager = ToolManager([DoneTool()])
        >>> manager.describe()
        'Available tools:\\n- done_tool: ...'
        >>> result = await manager.dispatch(ToolCall(id="1", name="done_tool"))
    """
    
    def __init__(self, tools: Optional[Iterable[BaseTool]] = None):
        self._tools: Dict[str, BaseTool] = {}
        for tool in tools or ():
            self.register(tool)
    
    def register(self, tool: BaseTool, replace: bool = False) -> None:
        """
        Register a tool.
        
        Args:
            tool: Tool instance
            replace: Allow replacing a tool with the same name
            
        Raises:
            ValueError: If the name is empty or already taken
        """
        if not tool.name:
            raise ValueError(f"{type(tool).__name__} has no name")
        if tool.name in self._tools and not replace:
            raise ValueError(f"Tool '{tool.name}' is already registered")
        self._tools[tool.name] = tool
        logger.debug(f"Registered tool: {tool.name}")
    
    def unregister(self, name: str) -> bool:
        return self._tools.pop(name, None) is not None
    
    def get(self, name: str) -> Optional[BaseTool]:
        return self._tools.get(name)
    
    def has(self, name: str) -> bool:
        return name in self._tools
    
    def list(self) -> List[BaseTool]:
        return list(self._tools.values())
    
    def names(self) -> List[str]:
        return list(self._tools)
    
    def __len__(self) -> int:
        return len(self._tools)
    
    def describe(self) -> str:
        """Summary of the registered tools for system prompts."""
        if not self._tools:
            return "No tools available."
        lines = ["Available tools:"]
        for tool in self._tools.values():
            lines.append(f"- {tool.name}: {tool.description}")
        return "\n".join(lines)
    
    def definitions(self) -> List[ToolDefinition]:
        """Tool definitions for binding to a tool-enabled LLM call."""
        return [
            ToolDefinition(
                name=tool.name,
                description=tool.description,
                parameters=tool.parameters_schema(),
            )
            for tool in self._tools.values()
        ]
    
    async def dispatch(self, call: ToolCall) -> ToolResult:
        """
        Resolve and invoke one tool call.
        
        Returns:
            The tool's result, or a failure result for unknown tools and
            invalid arguments
            
        Raises:
            TaskCancelledError: If the run is cancelled during the call
        """
        tool = self._tools.get(call.name)
        if tool is None:
            error = ToolNotFoundError(call.name, self.names())
            logger.warning(f"Model called unknown tool '{call.name}'")
            return ToolResult.failure_result(
                f"{error.message}. Available tools: {', '.join(self.names()) or 'none'}",
                ToolValidationError.__name__,
            )
        
        if call.argument_error:
            error = ToolValidationError(
                f"Invalid arguments for tool '{call.name}'", call.name, [call.argument_error],
            )
            return ToolResult.failure_result(
                describe_validation_error(error), ToolValidationError.__name__,
            )
        
        try:
            args = tool.parse_arguments(call.arguments)
        except ToolValidationError as e:
            logger.debug(f"Rejected arguments for '{call.name}': {e.errors}")
            return ToolResult.failure_result(
                describe_validation_error(e), ToolValidationError.__name__,
            )
        
        logger.debug(f"Invoking tool '{call.name}' ({call.id})")
        try:
            return await tool.run_validated(args)
        except TaskCancelledError:
            raise
        except Exception as e:
            logger.warning(f"Tool '{call.name}' raised past its boundary: {e}")
            return ToolResult.failure_result(str(e) or type(e).__name__, type(e).__name__)
