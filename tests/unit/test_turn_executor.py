"""
Tests for the turn executor: streaming, tool-call reassembly and dispatch.
"""

import asyncio
import json

import pytest

from browser_agent.context import ContextStore, EntryKind
from browser_agent.core.executor import TurnExecutor
from browser_agent.events import EventType
from browser_agent.exceptions import LLMConnectionError, TaskCancelledError
from browser_agent.interfaces.llm import StreamChunk
from browser_agent.tools import DoneTool, RefreshStateTool, ToolManager
from browser_agent.tools.base import BaseTool, ToolResult
from conftest import EchoTool, ScriptedLLM, done_turn, text_turn, tool_turn


@pytest.fixture
def store():
    store = ContextStore()
    store.add_system("system prompt")
    return store


@pytest.fixture
def echo():
    return EchoTool()


@pytest.fixture
def tools(echo, environment):
    return ToolManager([DoneTool(), RefreshStateTool(environment), echo])


def results_of(store):
    return [e for e in store.entries() if e.kind == EntryKind.TOOL_RESULT]


class TestTextTurns:
    
    @pytest.mark.asyncio
    async def test_text_only_turn(self, store, tools, emitter, sink, token):
        llm = ScriptedLLM(turns=[text_turn("I need more information.")])
        executor = TurnExecutor(llm, store, tools, emitter)
        
        result = await executor.execute_turn("Do something", token)
        
        assert result.completed is False
        assert result.text == "I need more information."
        kinds = [e.kind for e in store.entries()]
        assert kinds == [EntryKind.SYSTEM, EntryKind.USER, EntryKind.ASSISTANT]
        assert store.last().content == "I need more information."
    
    @pytest.mark.asyncio
    async def test_streams_reasoning_events(self, store, tools, emitter, sink, token):
        llm = ScriptedLLM(turns=[text_turn("Hello there")])
        await TurnExecutor(llm, store, tools, emitter).execute_turn("Hi", token)
        
        chunks = sink.of_type(EventType.REASONING_CHUNK)
        assert "".join(e.message for e in chunks) == "Hello there"
        assert sink.types()[0] == EventType.THINKING_STARTED
        assert sink.of_type(EventType.THINKING_FINISHED)[0].message == "Hello there"
    
    @pytest.mark.asyncio
    async def test_llm_sees_full_context_and_tools(self, store, tools, emitter, token):
        llm = ScriptedLLM(turns=[text_turn("ok")])
        await TurnExecutor(llm, store, tools, emitter).execute_turn("Go", token)
        
        messages = llm.stream_calls[0]
        assert messages[0].content == "system prompt"
        assert messages[-1].content == "Go"
        assert {d.name for d in llm.tool_bindings[0]} == {"done_tool", "refresh_browser_state", "echo"}


class TestToolTurns:
    
    @pytest.mark.asyncio
    async def test_three_calls_three_results_in_order(self, store, tools, emitter, echo, token):
        llm = ScriptedLLM(turns=[tool_turn(
            ("c1", "echo", '{"text": "one"}'),
            ("c2", "echo", '{"text": "two"}'),
            ("c3", "echo", '{"text": "three"}'),
        )])
        
        result = await TurnExecutor(llm, store, tools, emitter).execute_turn("Echo thrice", token)
        
        assert result.completed is False
        assert echo.received == ["one", "two", "three"]
        assistant = [e for e in store.entries() if e.kind == EntryKind.ASSISTANT][0]
        assert assistant.content == ""
        assert [tc.id for tc in assistant.tool_calls] == ["c1", "c2", "c3"]
        assert [e.tool_call_id for e in results_of(store)] == ["c1", "c2", "c3"]
        assert json.loads(results_of(store)[1].content) == {"ok": True, "output": "echo: two"}
    
    @pytest.mark.asyncio
    async def test_done_tool_completes_but_batch_continues(self, store, tools, emitter, echo, token):
        llm = ScriptedLLM(turns=[tool_turn(
            ("c1", "done_tool", '{"summary": "all good"}'),
            ("c2", "echo", '{"text": "after done"}'),
        )])
        
        result = await TurnExecutor(llm, store, tools, emitter).execute_turn("Finish", token)
        
        assert result.completed is True
        assert echo.received == ["after done"]
        assert len(results_of(store)) == 2
    
    @pytest.mark.asyncio
    async def test_failed_done_tool_does_not_complete(self, store, tools, emitter, token):
        llm = ScriptedLLM(turns=[tool_turn(("c1", "done_tool", '{"summary": 42}'))])
        result = await TurnExecutor(llm, store, tools, emitter).execute_turn("Finish", token)
        assert result.completed is False
        assert json.loads(results_of(store)[0].content)["ok"] is False
    
    @pytest.mark.asyncio
    async def test_unknown_tool_gets_failure_result(self, store, tools, emitter, token):
        llm = ScriptedLLM(turns=[tool_turn(("c1", "teleport", "{}"))])
        
        result = await TurnExecutor(llm, store, tools, emitter).execute_turn("Go", token)
        
        assert result.results[0].ok is False
        assert result.results[0].error_type == "ToolValidationError"
        payload = json.loads(results_of(store)[0].content)
        assert payload["ok"] is False
        assert "teleport" in payload["error"]
    
    @pytest.mark.asyncio
    async def test_malformed_arguments_get_failure_result(self, store, tools, emitter, echo, token):
        llm = ScriptedLLM(turns=[tool_turn(("c1", "echo", '{"text": '))])
        
        result = await TurnExecutor(llm, store, tools, emitter).execute_turn("Go", token)
        
        assert echo.received == []
        assert result.results[0].error_type == "ToolValidationError"
        assert results_of(store)[0].tool_call_id == "c1"
    
    @pytest.mark.asyncio
    async def test_tool_events(self, store, tools, emitter, sink, token):
        llm = ScriptedLLM(turns=[tool_turn(("c1", "echo", '{"text": "x"}'))])
        await TurnExecutor(llm, store, tools, emitter).execute_turn("Go", token)
        
        started = sink.of_type(EventType.TOOL_STARTED)[0]
        finished = sink.of_type(EventType.TOOL_FINISHED)[0]
        assert started.data["tool_name"] == "echo"
        assert started.data["arguments"] == {"text": "x"}
        assert finished.data["ok"] is True
        assert finished.data["call_id"] == "c1"
    
    @pytest.mark.asyncio
    async def test_refresh_replaces_environment_entry(self, store, tools, emitter, token):
        llm = ScriptedLLM(turns=[
            tool_turn(("c1", "refresh_browser_state", "{}")),
            tool_turn(("c2", "refresh_browser_state", "{}")),
        ])
        executor = TurnExecutor(llm, store, tools, emitter)
        
        await executor.execute_turn("Look", token)
        await executor.execute_turn("Look again", token)
        
        environments = [e for e in store.entries() if e.kind == EntryKind.ENVIRONMENT]
        assert len(environments) == 1
        assert "snapshot#2" in environments[0].content
        assert store.last().kind == EntryKind.ENVIRONMENT
        assert len(results_of(store)) == 2
    
    @pytest.mark.asyncio
    async def test_fragmented_name_and_missing_id(self, store, tools, emitter, echo, token):
        from browser_agent.interfaces.llm import ToolCallChunk
        llm = ScriptedLLM(turns=[[
            StreamChunk(tool_call_chunks=[ToolCallChunk(index=0, name="ec", arguments='{"te')]),
            StreamChunk(tool_call_chunks=[ToolCallChunk(index=0, name="ho", arguments='xt": "hi"}')]),
        ]])
        
        result = await TurnExecutor(llm, store, tools, emitter).execute_turn("Go", token)
        
        assert echo.received == ["hi"]
        assert result.tool_calls[0].id.startswith("call_")


class TestCancellation:
    
    @pytest.mark.asyncio
    async def test_cancel_mid_stream_skips_dispatch(self, store, tools, emitter, echo, token):
        class CancellingLLM(ScriptedLLM):
            async def stream(self, messages, tools=None, cancel_token=None, **kwargs):
                yield StreamChunk(content="Working on it")
                cancel_token.cancel("user pressed stop")
                yield StreamChunk(tool_call_chunks=[])
        
        llm = CancellingLLM()
        executor = TurnExecutor(llm, store, tools, emitter)
        
        with pytest.raises(TaskCancelledError):
            await executor.execute_turn("Go", token)
        
        assert echo.received == []
        assert [e.kind for e in store.entries()] == [EntryKind.SYSTEM, EntryKind.USER]
    
    @pytest.mark.asyncio
    async def test_cancel_while_stream_stalls(self, store, tools, emitter, sink, echo, token):
        closed = []
        
        class StallingLLM(ScriptedLLM):
            async def stream(self, messages, tools=None, cancel_token=None, **kwargs):
                try:
                    yield StreamChunk(content="Thinking")
                    await asyncio.sleep(5)
                    yield StreamChunk(content="too late")
                finally:
                    closed.append(True)
        
        executor = TurnExecutor(StallingLLM(), store, tools, emitter)
        loop = asyncio.get_running_loop()
        loop.call_later(0.1, token.cancel, "user pressed stop")
        started = loop.time()
        
        with pytest.raises(TaskCancelledError):
            await executor.execute_turn("Go", token)
        
        assert loop.time() - started < 1.0
        assert closed == [True]
        assert echo.received == []
        assert EventType.THINKING_FINISHED in sink.types()
        assert [e.kind for e in store.entries()] == [EntryKind.SYSTEM, EntryKind.USER]
    
    @pytest.mark.asyncio
    async def test_cancel_mid_batch_records_remaining_calls(self, store, environment, emitter, token):
        class StopTool(BaseTool):
            name = "stop"
            description = "Cancels the run"
            
            async def _run(self, args):
                token.cancel("stopped by tool")
                await asyncio.sleep(0.1)
                return ToolResult.success_result("never seen")
        
        echo = EchoTool()
        tools = ToolManager([DoneTool(), StopTool(), echo])
        llm = ScriptedLLM(turns=[tool_turn(
            ("c1", "echo", '{"text": "first"}'),
            ("c2", "stop", "{}"),
            ("c3", "echo", '{"text": "third"}'),
        )])
        
        with pytest.raises(TaskCancelledError):
            await TurnExecutor(llm, store, tools, emitter).execute_turn("Go", token)
        
        assert echo.received == ["first"]
        results = results_of(store)
        assert [e.tool_call_id for e in results] == ["c1", "c2", "c3"]
        assert json.loads(results[0].content)["ok"] is True
        assert "Cancelled" in json.loads(results[1].content)["error"]
        assert "Cancelled" in json.loads(results[2].content)["error"]
    
    @pytest.mark.asyncio
    async def test_already_cancelled_token(self, store, tools, emitter, token):
        token.cancel()
        llm = ScriptedLLM(turns=[text_turn("never")])
        with pytest.raises(TaskCancelledError):
            await TurnExecutor(llm, store, tools, emitter).execute_turn("Go", token)
        assert llm.stream_calls == []


class TestErrors:
    
    @pytest.mark.asyncio
    async def test_stream_error_propagates(self, store, tools, emitter, sink, token):
        class BrokenLLM(ScriptedLLM):
            async def stream(self, messages, tools=None, cancel_token=None, **kwargs):
                yield StreamChunk(content="partial")
                raise LLMConnectionError("connection reset")
        
        with pytest.raises(LLMConnectionError):
            await TurnExecutor(BrokenLLM(), store, tools, emitter).execute_turn("Go", token)
        
        assert EventType.THINKING_FINISHED in sink.types()
        assert store.last().kind == EntryKind.USER
