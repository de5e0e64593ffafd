"""
LLM Provider Interface - Abstract base classes for LLM integrations.

This module defines the contract the orchestration core requires from a
language model: tool-enabled completions, streaming with incremental tool
calls, and a structured-output mode returning schema-validated results.

Example:
    >>> from browser_agent.llm import OpenAIProvider
    >>> provider = OpenAIProvider(base_url="https://api.openai.com", model="gpt-4o")
    >>> response = await provider.complete([Message.user("Hello")])
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional, Type, TypeVar, TYPE_CHECKING

from pydantic import BaseModel

if TYPE_CHECKING:
    from browser_agent.utils.cancellation import CancellationToken

SchemaT = TypeVar("SchemaT", bound=BaseModel)


class MessageRole(Enum):
    """Role of a message in the conversation."""
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass
class ToolCall:
    """
    A tool/function call from the LLM.
    
    Attributes:
        id: Unique identifier for this tool call
        name: Name of the tool/function to call
        arguments: Decoded arguments
        argument_error: Set when the raw arguments were not valid JSON
    """
    id: str
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)
    argument_error: Optional[str] = None
    
    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name, "arguments": self.arguments}


@dataclass
class Message:
    """
    A message in the LLM conversation.
    
    Attributes:
        role: The role of the message sender
        content: The text content of the message
        tool_calls: Calls issued by an assistant message
        tool_call_id: ID of the call a tool message answers
        name: Optional name (tool name for tool messages)
    """
    role: MessageRole
    content: str
    tool_calls: Optional[List[ToolCall]] = None
    tool_call_id: Optional[str] = None
    name: Optional[str] = None

    @classmethod
    def system(cls, content: str) -> "Message":
        """Create a system message."""
        return cls(role=MessageRole.SYSTEM, content=content)

    @classmethod
    def user(cls, content: str) -> "Message":
        """Create a user message."""
        return cls(role=MessageRole.USER, content=content)

    @classmethod
    def assistant(cls, content: str, tool_calls: Optional[List[ToolCall]] = None) -> "Message":
        """Create an assistant message."""
        return cls(role=MessageRole.ASSISTANT, content=content, tool_calls=tool_calls)

    @classmethod
    def tool(cls, content: str, tool_call_id: str, name: Optional[str] = None) -> "Message":
        """Create a tool result message."""
        return cls(role=MessageRole.TOOL, content=content, tool_call_id=tool_call_id, name=name)


@dataclass
class Usage:
    """Token usage information from an LLM response."""
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "prompt_tokens": self.prompt_tokens,
            "completion_tokens": self.completion_tokens,
            "total_tokens": self.total_tokens,
        }


@dataclass
class LLMResponse:
    """
    Response from an LLM completion request.
    
    Attributes:
        content: The text content of the response
        model: The model that generated the response
        usage: Token usage information
        tool_calls: Optional list of tool calls
        finish_reason: Reason the completion finished ('stop', 'length', 'tool_calls')
        raw_response: The original response object from the provider
    """
    content: str
    model: str
    usage: Usage = field(default_factory=Usage)
    tool_calls: Optional[List[ToolCall]] = None
    finish_reason: str = "stop"
    raw_response: Any = None


@dataclass
class ToolCallChunk:
    """
    A fragment of a tool call received while streaming.
    
    The first fragment of a call usually carries ``id`` and ``name``;
    later fragments carry pieces of the JSON argument string. Fragments
    belonging to the same call share an ``index``.
    """
    index: int
    id: Optional[str] = None
    name: Optional[str] = None
    arguments: str = ""


@dataclass
class StreamChunk:
    """One incremental piece of a streamed completion."""
    content: str = ""
    tool_call_chunks: List[ToolCallChunk] = field(default_factory=list)
    finish_reason: Optional[str] = None


@dataclass
class ToolDefinition:
    """
    Definition of a tool/function that the LLM can call.
    
    Attributes:
        name: Name of the tool
        description: Description of what the tool does
        parameters: JSON schema for the tool's parameters
    """
    name: str
    description: str
    parameters: Dict[str, Any] = field(default_factory=dict)


class ILLMProvider(ABC):
    """
    Abstract interface for LLM providers.
    
    The Classifier, Planner, Validator and Turn Executor all receive an
    instance of this interface explicitly; there is no global client.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider name (e.g., 'openai')."""
        ...

    @property
    @abstractmethod
    def default_model(self) -> str:
        """Default model for this provider."""
        ...

    @property
    @abstractmethod
    def supports_tools(self) -> bool:
        """Whether the provider supports tool/function calling."""
        ...

    @property
    @abstractmethod
    def supports_streaming(self) -> bool:
        """Whether the provider supports streaming responses."""
        ...

    @abstractmethod
    async def complete(
        self,
        messages: List[Message],
        tools: Optional[List[ToolDefinition]] = None,
        response_format: Optional[Dict[str, Any]] = None,
        cancel_token: Optional["CancellationToken"] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """
        Generate a completion for the given messages.
        
        Args:
            messages: List of messages in the conversation
            tools: Optional list of tools the model can call
            response_format: Optional provider response format (JSON schema mode)
            cancel_token: Cancellation signal for the request
            **kwargs: Provider-specific options
            
        Raises:
            LLMError: If the request fails
            TaskCancelledError: If the token fires while waiting
        """
        ...

    @abstractmethod
    def stream(
        self,
        messages: List[Message],
        tools: Optional[List[ToolDefinition]] = None,
        cancel_token: Optional["CancellationToken"] = None,
        **kwargs: Any,
    ) -> AsyncIterator[StreamChunk]:
        """
        Stream a completion, yielding text and tool-call fragments.
        
        Raises:
            LLMError: If the request fails
            TaskCancelledError: If the token fires mid-stream
        """
        ...

    @abstractmethod
    async def complete_structured(
        self,
        messages: List[Message],
        schema: Type[SchemaT],
        cancel_token: Optional["CancellationToken"] = None,
    ) -> SchemaT:
        """
        Generate a completion validated against a pydantic schema.
        
        Raises:
            InvalidResponseError: If the output does not match the schema
        """
        ...

    @abstractmethod
    async def count_tokens(self, messages: List[Message]) -> int:
        """Estimate the number of tokens in the given messages."""
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the provider is available and properly configured."""
        ...
