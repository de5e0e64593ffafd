"""
Tool Interface - Base class for tools the model can call.

A tool declares a name, a description shown to the model and a pydantic
model describing its arguments. ``invoke`` never raises for ordinary
failures: they come back as a failed ToolResult so the model can react
on its next turn. Only cancellation propagates.
"""

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel, ValidationError

from browser_agent.exceptions import TaskCancelledError, ToolValidationError

logger = logging.getLogger(__name__)


class NoArgs(BaseModel):
    """Argument schema for tools that take no input."""
    pass


@dataclass
class ToolResult:
    """
    Result of invoking a tool.
    
    Attributes:
        ok: Whether the tool succeeded
        output: Text shown to the model on success
        error: Error message shown to the model on failure
        error_type: Exception class name for failures
        data: Extra structured data for the host (not shown to the model)
    """
    ok: bool
    output: str = ""
    error: Optional[str] = None
    error_type: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    
    @classmethod
    def success_result(cls, output: str = "", **data: Any) -> "ToolResult":
        """Create a successful tool result."""
        return cls(ok=True, output=output, data=data)
    
    @classmethod
    def failure_result(cls, error: str, error_type: str = "ToolError") -> "ToolResult":
        """Create a failed tool result."""
        return cls(ok=False, error=error, error_type=error_type)
    
    def to_dict(self) -> Dict[str, Any]:
        if self.ok:
            return {"ok": True, "output": self.output}
        return {"ok": False, "error": self.error}
    
    def to_json(self) -> str:
        return json.dumps(self.to_dict())


class BaseTool(ABC):
    """
    Abstract base class for tools.
    
    Subclasses set ``name``, ``description`` and ``args_schema`` and
    implement ``_run``.
    
    Example:
        >>> class EchoArgs(BaseModel):
        ...     text: str
        >>> class EchoTool(BaseTool):
        ...     name = "echo"
        ...     description = "Echo the given text"
        ...     args_schema = EchoArgs
        ...     async def _run(self, args):
        ...         return ToolResult.success_result(args.text)
    """
    
    name: str = ""
    description: str = ""
    args_schema: Type[BaseModel] = NoArgs
    
    def parse_arguments(self, arguments: Dict[str, Any]) -> BaseModel:
        """
        Validate raw arguments against ``args_schema``.
        
        Raises:
            ToolValidationError: If the arguments do not match
        """
        try:
            return self.args_schema.model_validate(arguments or {})
        except ValidationError as e:
            errors = [
                f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
                for err in e.errors()
            ]
            raise ToolValidationError(
                f"Invalid arguments for tool '{self.name}'", self.name, errors,
            ) from e
    
    def parameters_schema(self) -> Dict[str, Any]:
        """JSON schema of the arguments, for the LLM tool binding."""
        return self.args_schema.model_json_schema()
    
    async def invoke(self, arguments: Dict[str, Any]) -> ToolResult:
        """
        Validate arguments and run the tool.
        
        Raises:
            TaskCancelledError: Only cancellation escapes
        """
        try:
            args = self.parse_arguments(arguments)
        except ToolValidationError as e:
            return ToolResult.failure_result(describe_validation_error(e), type(e).__name__)
        return await self.run_validated(args)
    
    async def run_validated(self, args: BaseModel) -> ToolResult:
        """
        Run the tool with arguments already parsed by ``parse_arguments``.
        
        Raises:
            TaskCancelledError: Only cancellation escapes
        """
        try:
            return await self._run(args)
        except TaskCancelledError:
            raise
        except Exception as e:
            logger.warning(f"Tool '{self.name}' failed: {e}")
            return ToolResult.failure_result(str(e) or type(e).__name__, type(e).__name__)
    
    @abstractmethod
    async def _run(self, args: Any) -> ToolResult:
        """Execute the tool with validated arguments."""
        ...


def describe_validation_error(error: ToolValidationError) -> str:
    if not error.errors:
        return error.message
    return f"{error.message}: {'; '.join(error.errors)}"
