"""
Turn Executor - One round trip with the model plus its tool calls.

A turn appends the instruction, streams a tool-enabled completion over
the whole context, forwards text to the progress emitter, rebuilds the
tool calls from their streamed fragments and dispatches them in order.
Every dispatched call gets exactly one tool result entry, including the
calls left unexecuted when the run is cancelled mid-batch.
"""

import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Dict, List, Optional, Tuple

from browser_agent.context.store import ContextStore, EntryKind
from browser_agent.events.emitter import ProgressEmitter
from browser_agent.exceptions import TaskCancelledError
from browser_agent.interfaces.llm import ILLMProvider, StreamChunk, ToolCall
from browser_agent.llm.base import decode_arguments
from browser_agent.prompts import format_browser_state
from browser_agent.tools.base import ToolResult
from browser_agent.tools.builtin import DONE_TOOL_NAME, REFRESH_STATE_TOOL_NAME
from browser_agent.tools.manager import ToolManager
from browser_agent.utils.cancellation import CancellationToken

logger = logging.getLogger(__name__)

SUMMARY_LENGTH = 200

_STREAM_END = object()


async def _next_chunk(chunks: AsyncIterator[StreamChunk]) -> Any:
    """Next chunk, or ``_STREAM_END`` once the stream is exhausted."""
    try:
        return await chunks.__anext__()
    except StopAsyncIteration:
        return _STREAM_END


@dataclass
class TurnResult:
    """
    Outcome of a single turn.
    
    Attributes:
        completed: Whether ``done_tool`` succeeded during the turn
        text: Text the model produced
        tool_calls: Calls the model issued, in order
        results: Results of the dispatched calls, aligned with ``tool_calls``
    """
    completed: bool
    text: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    results: List[ToolResult] = field(default_factory=list)


@dataclass
class _PartialCall:
    id: Optional[str] = None
    name: str = ""
    arguments: List[str] = field(default_factory=list)


class TurnExecutor:
    """
    Execute LLM turns against a context store and a tool manager.
    
    Example:
        >>> executor = TurnExecutor(llm, store, tools, emitter)
        >>> result = await executor.execute_turn("Open example.com", token)
        >>> result.completed
        False
    """
    
    def __init__(
        self,
        llm: ILLMProvider,
        store: ContextStore,
        tools: ToolManager,
        emitter: ProgressEmitter,
    ):
        self._llm = llm
        self._store = store
        self._tools = tools
        self._emitter = emitter
    
    async def execute_turn(
        self,
        instruction: str,
        cancel_token: Optional[CancellationToken] = None,
    ) -> TurnResult:
        """
        Run one turn.
        
        Raises:
            TaskCancelledError: If the run is cancelled mid-stream or mid-batch
            LLMError: If the completion request fails
        """
        token = cancel_token or CancellationToken()
        token.check()
        self._store.add_user(instruction)
        
        text, tool_calls = await self._stream_response(token)
        
        if not tool_calls:
            if text:
                self._store.add_assistant(text)
            else:
                logger.debug("Model returned neither text nor tool calls")
            return TurnResult(completed=False, text=text)
        
        self._store.add_assistant(text, tool_calls)
        results = await self._dispatch_all(tool_calls, token)
        completed = any(
            call.name == DONE_TOOL_NAME and result.ok
            for call, result in zip(tool_calls, results)
        )
        return TurnResult(completed=completed, text=text, tool_calls=tool_calls, results=results)
    
    # =========================================================================
    # STREAMING
    # =========================================================================
    
    async def _stream_response(self, token: CancellationToken) -> Tuple[str, List[ToolCall]]:
        text_parts: List[str] = []
        partials: Dict[int, _PartialCall] = {}
        definitions = self._tools.definitions()
        
        self._emitter.start_thinking()
        stream = self._llm.stream(
            self._store.messages(),
            tools=definitions or None,
            cancel_token=token,
        )
        chunks = stream.__aiter__()
        try:
            while True:
                chunk = await token.guard(_next_chunk(chunks))
                if chunk is _STREAM_END:
                    break
                self._accumulate(chunk, text_parts, partials)
        finally:
            aclose = getattr(stream, "aclose", None)
            if aclose is not None:
                await aclose()
            self._emitter.finish_thinking("".join(text_parts))
        
        return "".join(text_parts), self._rebuild_calls(partials)
    
    def _accumulate(
        self,
        chunk: StreamChunk,
        text_parts: List[str],
        partials: Dict[int, _PartialCall],
    ) -> None:
        if chunk.content:
            text_parts.append(chunk.content)
            self._emitter.stream_thought(chunk.content)
        for fragment in chunk.tool_call_chunks:
            partial = partials.setdefault(fragment.index, _PartialCall())
            if fragment.id:
                partial.id = fragment.id
            if fragment.name:
                partial.name += fragment.name
            if fragment.arguments:
                partial.arguments.append(fragment.arguments)
    
    @staticmethod
    def _rebuild_calls(partials: Dict[int, _PartialCall]) -> List[ToolCall]:
        calls = []
        for index in sorted(partials):
            partial = partials[index]
            arguments, error = decode_arguments("".join(partial.arguments))
            calls.append(ToolCall(
                id=partial.id or f"call_{uuid.uuid4().hex[:12]}",
                name=partial.name,
                arguments=arguments,
                argument_error=error,
            ))
        return calls
    
    # =========================================================================
    # DISPATCH
    # =========================================================================
    
    async def _dispatch_all(self, calls: List[ToolCall], token: CancellationToken) -> List[ToolResult]:
        results: List[ToolResult] = []
        for position, call in enumerate(calls):
            try:
                token.check()
                self._emitter.executing_tool(call.name, call.arguments, call.id)
                result = await token.guard(self._tools.dispatch(call))
            except TaskCancelledError as e:
                self._record_cancelled(calls[position:], e.reason)
                raise
            
            self._emitter.tool_result(call.name, result.ok, _summarize(result), call.id)
            self._store.add_tool_result(result.to_json(), call.id, call.name)
            results.append(result)
            
            if call.name == REFRESH_STATE_TOOL_NAME and result.ok:
                snapshot = result.data.get("snapshot", result.output)
                self._store.remove_by_kind(EntryKind.ENVIRONMENT)
                self._store.add_environment(format_browser_state(snapshot))
        return results
    
    def _record_cancelled(self, calls: List[ToolCall], reason: Optional[str]) -> None:
        message = f"Cancelled before completion: {reason}" if reason else "Cancelled before completion"
        for call in calls:
            result = ToolResult.failure_result(message, TaskCancelledError.__name__)
            self._store.add_tool_result(result.to_json(), call.id, call.name)
        logger.info(f"Recorded {len(calls)} cancelled tool call(s)")


def _summarize(result: ToolResult) -> str:
    text = result.output if result.ok else f"Error: {result.error}"
    if len(text) > SUMMARY_LENGTH:
        return text[:SUMMARY_LENGTH] + "..."
    return text
