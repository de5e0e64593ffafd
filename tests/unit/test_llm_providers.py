"""
Tests for the LLM providers.
"""

import json
from unittest.mock import AsyncMock, patch

import httpx
import pytest

from browser_agent.core.schemas import ClassificationResult
from browser_agent.exceptions import (
    InvalidResponseError,
    LLMAuthenticationError,
    LLMConnectionError,
    LLMError,
    RateLimitError,
    TaskCancelledError,
)
from browser_agent.interfaces.llm import Message, MessageRole, ToolCall, ToolDefinition
from browser_agent.llm import OpenAIProvider, decode_arguments, parse_structured_output
from browser_agent.utils.cancellation import CancellationToken

BASE_URL = "http://127.0.0.1:3030"


def completion(content="", tool_calls=None, finish_reason="stop"):
    message = {"role": "assistant", "content": content}
    if tool_calls:
        message["tool_calls"] = tool_calls
    return {
        "model": "gpt-4",
        "choices": [{"message": message, "finish_reason": finish_reason}],
        "usage": {"prompt_tokens": 12, "completion_tokens": 5, "total_tokens": 17},
    }


def sse(*payloads) -> bytes:
    lines = [f"data: {json.dumps(p)}\n\n" for p in payloads]
    lines.append("data: [DONE]\n\n")
    return "".join(lines).encode()


def make_provider(handler, **kwargs):
    """Provider whose HTTP traffic goes to ``handler``."""
    client = httpx.AsyncClient(base_url=BASE_URL, transport=httpx.MockTransport(handler))
    return OpenAIProvider(base_url=BASE_URL, model="gpt-4", client=client, **kwargs)


class TestArgumentDecoding:
    
    def test_valid_object(self):
        assert decode_arguments('{"url": "https://example.com"}') == ({"url": "https://example.com"}, None)
    
    def test_empty_string_is_no_arguments(self):
        assert decode_arguments("") == ({}, None)
        assert decode_arguments("   ") == ({}, None)
    
    def test_malformed_json(self):
        arguments, error = decode_arguments('{"url": ')
        assert arguments == {}
        assert error.startswith("Invalid JSON arguments")
    
    def test_non_object(self):
        arguments, error = decode_arguments("[1, 2]")
        assert arguments == {}
        assert "JSON object" in error


class TestStructuredParsing:
    
    def test_plain_json(self):
        result = parse_structured_output('{"is_simple_task": true}', ClassificationResult)
        assert result.is_simple_task is True
        assert result.is_followup_task is False
    
    def test_fenced_json(self):
        text = 'Here you go:\n```json\n{"is_simple_task": false, "is_followup_task": true}\n```'
        result = parse_structured_output(text, ClassificationResult)
        assert result.is_simple_task is False
        assert result.is_followup_task is True
    
    def test_empty_response(self):
        with pytest.raises(InvalidResponseError):
            parse_structured_output("  ", ClassificationResult)
    
    def test_invalid_json(self):
        with pytest.raises(InvalidResponseError) as exc_info:
            parse_structured_output("{not json", ClassificationResult)
        assert exc_info.value.raw_response == "{not json"
    
    def test_schema_mismatch(self):
        with pytest.raises(InvalidResponseError):
            parse_structured_output('{"is_simple_task": "perhaps"}', ClassificationResult)


class TestOpenAIProvider:
    """Test the OpenAI LLM provider."""
    
    @pytest.fixture
    def provider(self):
        return OpenAIProvider(base_url="http://127.0.0.1:3030/v1/", model="gpt-4")
    
    def test_properties(self, provider):
        assert provider.name == "openai"
        assert provider.default_model == "gpt-4"
        assert provider.supports_tools is True
        assert provider.supports_streaming is True
    
    def test_strips_v1_suffix(self, provider):
        assert provider._base_url == "http://127.0.0.1:3030"
    
    @pytest.mark.asyncio
    async def test_count_tokens(self, provider):
        messages = [Message(role=MessageRole.USER, content="Hello, world!")]
        assert await provider.count_tokens(messages) == 3
    
    def test_format_messages_with_tool_calls(self, provider):
        messages = [
            Message.assistant("", tool_calls=[ToolCall(id="c1", name="navigate", arguments={"url": "x"})]),
            Message.tool("ok", tool_call_id="c1", name="navigate"),
        ]
        formatted = provider._format_messages(messages)
        assert formatted[0]["content"] is None
        assert formatted[0]["tool_calls"][0]["function"] == {"name": "navigate", "arguments": '{"url": "x"}'}
        assert formatted[1]["role"] == "tool"
        assert formatted[1]["tool_call_id"] == "c1"
    
    @pytest.mark.asyncio
    async def test_complete_text(self):
        requests = []
        
        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(json.loads(request.content))
            return httpx.Response(200, json=completion("Hello!"))
        
        provider = make_provider(handler)
        response = await provider.complete([Message.user("Hi")])
        
        assert response.content == "Hello!"
        assert response.usage.total_tokens == 17
        assert response.tool_calls is None
        assert requests[0]["model"] == "gpt-4"
        assert requests[0]["messages"] == [{"role": "user", "content": "Hi"}]
        assert "tools" not in requests[0]
    
    @pytest.mark.asyncio
    async def test_complete_with_tool_calls(self):
        requests = []
        
        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(json.loads(request.content))
            return httpx.Response(200, json=completion(tool_calls=[
                {"id": "call_1", "type": "function",
                 "function": {"name": "navigate", "arguments": '{"url": "https://example.com"}'}},
                {"id": "call_2", "type": "function",
                 "function": {"name": "click", "arguments": "{broken"}},
            ], finish_reason="tool_calls"))
        
        provider = make_provider(handler)
        tools = [ToolDefinition(name="navigate", description="Go to a URL", parameters={"type": "object"})]
        response = await provider.complete([Message.user("Open example.com")], tools=tools)
        
        assert [tc.name for tc in response.tool_calls] == ["navigate", "click"]
        assert response.tool_calls[0].arguments == {"url": "https://example.com"}
        assert response.tool_calls[0].argument_error is None
        assert response.tool_calls[1].argument_error is not None
        assert response.finish_reason == "tool_calls"
        assert requests[0]["tools"][0]["function"]["name"] == "navigate"
    
    @pytest.mark.asyncio
    async def test_authentication_error(self):
        provider = make_provider(lambda request: httpx.Response(401, json={"error": "bad key"}))
        with pytest.raises(LLMAuthenticationError):
            await provider.complete([Message.user("Hi")])
    
    @pytest.mark.asyncio
    async def test_rate_limit_error(self):
        provider = make_provider(
            lambda request: httpx.Response(429, headers={"retry-after": "7"}),
            retry_attempts=1,
        )
        with pytest.raises(RateLimitError) as exc_info:
            await provider.complete([Message.user("Hi")])
        assert exc_info.value.retry_after == 7
    
    @pytest.mark.asyncio
    async def test_client_error_is_not_retried(self):
        calls = []
        
        def handler(request):
            calls.append(request)
            return httpx.Response(400, text="bad request")
        
        provider = make_provider(handler)
        with pytest.raises(LLMError):
            await provider.complete([Message.user("Hi")])
        assert len(calls) == 1
    
    @pytest.mark.asyncio
    async def test_server_error_is_retried(self):
        responses = [httpx.Response(503), httpx.Response(200, json=completion("recovered"))]
        provider = make_provider(lambda request: responses.pop(0), retry_attempts=2)
        
        with patch("browser_agent.utils.retry.asyncio.sleep", new=AsyncMock()):
            response = await provider.complete([Message.user("Hi")])
        
        assert response.content == "recovered"
    
    @pytest.mark.asyncio
    async def test_connection_failure(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)
        
        provider = make_provider(handler, retry_attempts=1)
        with pytest.raises(LLMConnectionError):
            await provider.complete([Message.user("Hi")])
    
    @pytest.mark.asyncio
    async def test_complete_respects_cancelled_token(self):
        calls = []
        provider = make_provider(lambda request: calls.append(request) or httpx.Response(200, json=completion("x")))
        token = CancellationToken()
        token.cancel("stop")
        
        with pytest.raises(TaskCancelledError):
            await provider.complete([Message.user("Hi")], cancel_token=token)
        assert calls == []
    
    @pytest.mark.asyncio
    async def test_complete_structured_fenced(self):
        requests = []
        
        def handler(request):
            requests.append(json.loads(request.content))
            return httpx.Response(200, json=completion('```json\n{"is_simple_task": true}\n```'))
        
        provider = make_provider(handler)
        result = await provider.complete_structured([Message.user("classify")], ClassificationResult)
        
        assert isinstance(result, ClassificationResult)
        assert result.is_simple_task is True
        assert requests[0]["response_format"]["type"] == "json_schema"
        assert requests[0]["response_format"]["json_schema"]["name"] == "ClassificationResult"
    
    @pytest.mark.asyncio
    async def test_complete_structured_invalid(self):
        provider = make_provider(lambda request: httpx.Response(200, json=completion("I think it is simple")))
        with pytest.raises(InvalidResponseError):
            await provider.complete_structured([Message.user("classify")], ClassificationResult)
    
    @pytest.mark.asyncio
    async def test_stream_content_and_tool_calls(self):
        body = sse(
            {"choices": [{"delta": {"content": "Let me "}}]},
            {"choices": [{"delta": {"content": "open it."}}]},
            {"choices": [{"delta": {"tool_calls": [
                {"index": 0, "id": "call_1", "function": {"name": "navigate", "arguments": '{"url": '}},
            ]}}]},
            {"choices": [{"delta": {"tool_calls": [
                {"index": 0, "function": {"arguments": '"https://example.com"}'}},
            ]}}]},
            {"choices": [{"delta": {}, "finish_reason": "tool_calls"}]},
        )
        requests = []
        
        def handler(request):
            requests.append(json.loads(request.content))
            return httpx.Response(200, content=body, headers={"content-type": "text/event-stream"})
        
        provider = make_provider(handler)
        chunks = [chunk async for chunk in provider.stream([Message.user("Open example.com")])]
        
        assert requests[0]["stream"] is True
        assert "".join(c.content for c in chunks) == "Let me open it."
        fragments = [tc for c in chunks for tc in c.tool_call_chunks]
        assert fragments[0].id == "call_1"
        assert fragments[0].name == "navigate"
        assert fragments[1].id is None
        assert "".join(f.arguments for f in fragments) == '{"url": "https://example.com"}'
        assert chunks[-1].finish_reason == "tool_calls"
    
    @pytest.mark.asyncio
    async def test_stream_skips_noise(self):
        body = b": keep-alive\n\ndata: {not json}\n\n" + sse({"choices": [{"delta": {"content": "ok"}}]})
        provider = make_provider(lambda request: httpx.Response(200, content=body))
        
        chunks = [chunk async for chunk in provider.stream([Message.user("Hi")])]
        
        assert [c.content for c in chunks] == ["ok"]
    
    @pytest.mark.asyncio
    async def test_stream_error_status(self):
        provider = make_provider(lambda request: httpx.Response(401, text="unauthorized"))
        with pytest.raises(LLMAuthenticationError):
            async for _ in provider.stream([Message.user("Hi")]):
                pass
    
    @pytest.mark.asyncio
    async def test_stream_honours_cancellation(self):
        body = sse(
            {"choices": [{"delta": {"content": "a"}}]},
            {"choices": [{"delta": {"content": "b"}}]},
        )
        provider = make_provider(lambda request: httpx.Response(200, content=body))
        token = CancellationToken()
        received = []
        
        with pytest.raises(TaskCancelledError):
            async for chunk in provider.stream([Message.user("Hi")], cancel_token=token):
                received.append(chunk.content)
                token.cancel("stop")
        
        assert received == ["a"]
    
    @pytest.mark.asyncio
    async def test_health_check(self):
        def handler(request):
            assert request.url.path == "/v1/models"
            return httpx.Response(200, json={"data": []})
        
        assert await make_provider(handler).health_check() is True
        assert await make_provider(lambda request: httpx.Response(500)).health_check() is False
    
    @pytest.mark.asyncio
    async def test_health_check_unreachable(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)
        
        assert await make_provider(handler).health_check() is False
