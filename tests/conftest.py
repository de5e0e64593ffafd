"""
Pytest configuration and fixtures.

The scripted LLM stands in for a real provider: each ``stream`` call
plays back the next scripted turn, and structured calls pop the next
queued answer for the requested schema.
"""

import asyncio
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple, Type

import pytest
from pydantic import BaseModel

from browser_agent.exceptions import InvalidResponseError, ToolExecutionError
from browser_agent.interfaces.environment import IEnvironment
from browser_agent.interfaces.llm import (
    LLMResponse,
    Message,
    StreamChunk,
    ToolCallChunk,
    ToolDefinition,
)
from browser_agent.llm.base import BaseLLMProvider
from browser_agent.tools.base import BaseTool, ToolResult


# =============================================================================
# SCRIPTED LLM
# =============================================================================

def text_turn(text: str) -> List[StreamChunk]:
    """A turn that streams plain text in two pieces."""
    middle = len(text) // 2
    return [StreamChunk(content=text[:middle]), StreamChunk(content=text[middle:], finish_reason="stop")]


def tool_turn(*calls: Tuple[str, str, str], text: str = "") -> List[StreamChunk]:
    """
    A turn that issues tool calls.
    
    Each call is ``(call_id, name, arguments_json)``; the argument string
    is split across two fragments to exercise reassembly.
    """
    chunks = [StreamChunk(content=text)] if text else []
    for index, (call_id, name, arguments) in enumerate(calls):
        middle = len(arguments) // 2
        chunks.append(StreamChunk(tool_call_chunks=[
            ToolCallChunk(index=index, id=call_id, name=name, arguments=arguments[:middle]),
        ]))
        chunks.append(StreamChunk(tool_call_chunks=[
            ToolCallChunk(index=index, arguments=arguments[middle:]),
        ]))
    chunks.append(StreamChunk(finish_reason="tool_calls"))
    return chunks


def done_turn(call_id: str = "call_done", summary: str = "finished") -> List[StreamChunk]:
    return tool_turn((call_id, "done_tool", f'{{"summary": "{summary}"}}'))


class ScriptedLLM(BaseLLMProvider):
    """Provider that replays scripted turns and structured answers."""
    
    def __init__(
        self,
        turns: Optional[List[List[StreamChunk]]] = None,
        structured: Optional[Dict[Type[BaseModel], List[Any]]] = None,
        default_turn: Optional[List[StreamChunk]] = None,
    ):
        self.turns = list(turns or [])
        self.structured = {schema: list(items) for schema, items in (structured or {}).items()}
        self.default_turn = default_turn
        self.stream_calls: List[List[Message]] = []
        self.tool_bindings: List[Optional[List[ToolDefinition]]] = []
        self.structured_calls: List[Tuple[Type[BaseModel], List[Message]]] = []
    
    @property
    def name(self) -> str:
        return "scripted"
    
    @property
    def default_model(self) -> str:
        return "scripted-model"
    
    async def complete(self, messages, tools=None, response_format=None, cancel_token=None, **kwargs):
        return LLMResponse(content="", model=self.default_model)
    
    async def complete_structured(self, messages, schema, cancel_token=None):
        self.structured_calls.append((schema, list(messages)))
        if cancel_token:
            cancel_token.check()
        queue = self.structured.get(schema) or []
        if not queue:
            raise InvalidResponseError(f"No scripted {schema.__name__} response")
        item = queue.pop(0)
        if isinstance(item, Exception):
            raise item
        return item
    
    async def stream(self, messages, tools=None, cancel_token=None, **kwargs) -> AsyncIterator[StreamChunk]:
        self.stream_calls.append(list(messages))
        self.tool_bindings.append(tools)
        if self.turns:
            chunks = self.turns.pop(0)
        elif self.default_turn is not None:
            chunks = list(self.default_turn)
        else:
            chunks = text_turn("Nothing to do.")
        for chunk in chunks:
            await asyncio.sleep(0)
            yield chunk
    
    async def health_check(self) -> bool:
        return True
    
    def prompts_for(self, schema: Type[BaseModel]) -> List[str]:
        """User prompts sent for a schema, in call order."""
        return [
            messages[-1].content
            for called_schema, messages in self.structured_calls
            if called_schema is schema
        ]


# =============================================================================
# ENVIRONMENT, TOOLS, SINKS
# =============================================================================

class FakeEnvironment(IEnvironment):
    """Environment returning numbered snapshots."""
    
    def __init__(self, prefix: str = "url=https://example.com"):
        self.prefix = prefix
        self.calls = 0
    
    async def get_snapshot(self) -> str:
        self.calls += 1
        return f"{self.prefix} snapshot#{self.calls}"


class EchoArgs(BaseModel):
    text: str


class EchoTool(BaseTool):
    name = "echo"
    description = "Echo the given text"
    args_schema = EchoArgs
    
    def __init__(self):
        self.received: List[str] = []
    
    async def _run(self, args: EchoArgs) -> ToolResult:
        self.received.append(args.text)
        return ToolResult.success_result(f"echo: {args.text}")


class FailingTool(BaseTool):
    name = "explode"
    description = "Always fails"
    
    async def _run(self, args) -> ToolResult:
        raise ToolExecutionError("boom", tool_name=self.name)


class RecordingSink:
    """Progress sink that keeps every event."""
    
    def __init__(self):
        self.events = []
    
    def __call__(self, event) -> None:
        self.events.append(event)
    
    def types(self):
        return [event.type for event in self.events]
    
    def of_type(self, event_type):
        return [event for event in self.events if event.type == event_type]


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def settings():
    """Provide test settings."""
    from browser_agent.config import Settings, LLMSettings, AgentSettings, ContextSettings
    
    return Settings(
        llm=LLMSettings(provider="openai", model="gpt-4o-mini"),
        agent=AgentSettings(),
        context=ContextSettings(max_tokens=8192),
    )


@pytest.fixture
def environment():
    return FakeEnvironment()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def emitter(sink):
    from browser_agent.events import ProgressEmitter
    
    emitter = ProgressEmitter()
    emitter.subscribe(sink)
    return emitter


@pytest.fixture
def token():
    from browser_agent.utils.cancellation import CancellationToken
    return CancellationToken()
