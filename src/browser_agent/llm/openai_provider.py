"""
OpenAI-compatible LLM Provider.

Supports any OpenAI-compatible chat completions API including:
- OpenAI
- Azure OpenAI
- Local servers (LM Studio, Ollama, etc.)
- Custom gateways
"""

import json
import logging
import os
from typing import Any, AsyncIterator, Dict, List, Optional, TYPE_CHECKING

import httpx

from browser_agent.exceptions import (
    LLMAuthenticationError,
    LLMConnectionError,
    LLMError,
    RateLimitError,
)
from browser_agent.interfaces.llm import (
    LLMResponse,
    Message,
    MessageRole,
    StreamChunk,
    ToolCall,
    ToolCallChunk,
    ToolDefinition,
    Usage,
)
from browser_agent.llm.base import BaseLLMProvider, decode_arguments
from browser_agent.utils.retry import RetryConfig, retry_async

if TYPE_CHECKING:
    from browser_agent.utils.cancellation import CancellationToken

logger = logging.getLogger(__name__)

COMPLETIONS_PATH = "/v1/chat/completions"


class OpenAIProvider(BaseLLMProvider):
    """
    OpenAI-compatible LLM provider.
    
    Example:
        >>> provider = OpenAIProvider(
        ...     base_url="https://api.openai.com",
        ...     model="gpt-4o"
        ... )
        >>> response = await provider.complete([Message.user("Hello!")])
    """
    
    def __init__(
        self,
        base_url: str,
        model: str,
        api_key: Optional[str] = None,
        timeout: float = 120.0,
        temperature: float = 0.3,
        max_tokens: Optional[int] = None,
        retry_attempts: int = 3,
        client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the provider.
        
        Args:
            base_url: Base URL for the API (no /v1 suffix needed)
            model: Model to use for completions
            api_key: Optional API key (reads OPENAI_API_KEY if not set)
            timeout: Request timeout in seconds
            temperature: Sampling temperature
            max_tokens: Maximum tokens per response
            retry_attempts: Attempts for transient failures on complete()
            client: Pre-built httpx client (mainly for tests)
        """
        self._base_url = base_url.rstrip("/")
        if self._base_url.endswith("/v1"):
            self._base_url = self._base_url[:-3]
        self._api_key = api_key or os.environ.get("OPENAI_API_KEY", "not-needed")
        self._model = model
        self._temperature = temperature
        self._max_tokens = max_tokens
        self._retry = RetryConfig(
            max_attempts=retry_attempts,
            retry_on=(LLMConnectionError, RateLimitError),
        )
        
        self._client = client or httpx.AsyncClient(
            base_url=self._base_url,
            headers={
                "Authorization": f"Bearer {self._api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
        )
    
    @property
    def name(self) -> str:
        return "openai"
    
    @property
    def default_model(self) -> str:
        return self._model
    
    # =========================================================================
    # REQUEST BUILDING
    # =========================================================================
    
    def _format_messages(self, messages: List[Message]) -> List[Dict[str, Any]]:
        formatted_messages = []
        for msg in messages:
            role = msg.role.value if isinstance(msg.role, MessageRole) else msg.role
            formatted: Dict[str, Any] = {"role": role, "content": msg.content}
            if msg.tool_calls:
                formatted["content"] = msg.content or None
                formatted["tool_calls"] = [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {
                            "name": tc.name,
                            "arguments": json.dumps(tc.arguments),
                        },
                    }
                    for tc in msg.tool_calls
                ]
            if msg.tool_call_id:
                formatted["tool_call_id"] = msg.tool_call_id
            formatted_messages.append(formatted)
        return formatted_messages
    
    def _build_body(
        self,
        messages: List[Message],
        tools: Optional[List[ToolDefinition]],
        **kwargs: Any,
    ) -> Dict[str, Any]:
        body: Dict[str, Any] = {
            "model": kwargs.pop("model", None) or self._model,
            "messages": self._format_messages(messages),
            "temperature": kwargs.pop("temperature", self._temperature),
        }
        if self._max_tokens:
            body["max_tokens"] = self._max_tokens
        if tools:
            body["tools"] = [
                {
                    "type": "function",
                    "function": {
                        "name": tool.name,
                        "description": tool.description,
                        "parameters": tool.parameters,
                    },
                }
                for tool in tools
            ]
        body.update(kwargs)
        return body
    
    @staticmethod
    def _raise_for_status(response: httpx.Response, text: str) -> None:
        status = response.status_code
        if status < 400:
            return
        if status in (401, 403):
            raise LLMAuthenticationError(f"Authentication failed ({status})", {"body": text[:500]})
        if status == 429:
            retry_after = response.headers.get("retry-after")
            raise RateLimitError(
                "Rate limit exceeded",
                retry_after=int(retry_after) if retry_after and retry_after.isdigit() else None,
            )
        if status >= 500:
            raise LLMConnectionError(f"Server error ({status})", {"body": text[:500]})
        raise LLMError(f"Request failed ({status})", {"body": text[:500]})
    
    # =========================================================================
    # COMPLETIONS
    # =========================================================================
    
    async def _post_completion(self, body: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = await self._client.post(COMPLETIONS_PATH, json=body)
        except httpx.TransportError as e:
            raise LLMConnectionError(f"Error calling LLM API: {e}") from e
        self._raise_for_status(response, response.text)
        return response.json()
    
    async def complete(
        self,
        messages: List[Message],
        tools: Optional[List[ToolDefinition]] = None,
        response_format: Optional[Dict[str, Any]] = None,
        cancel_token: Optional["CancellationToken"] = None,
        **kwargs: Any,
    ) -> LLMResponse:
        """Generate a completion."""
        if response_format:
            kwargs["response_format"] = response_format
        body = self._build_body(messages, tools, **kwargs)
        
        logger.debug(f"Calling chat completions: {body['model']}")
        request = retry_async(self._post_completion, self._retry, body)
        data = await (cancel_token.guard(request) if cancel_token else request)
        
        choice = data["choices"][0]
        message = choice["message"]
        
        tool_calls = None
        if message.get("tool_calls"):
            tool_calls = []
            for tc in message["tool_calls"]:
                arguments, error = decode_arguments(tc["function"].get("arguments", ""))
                tool_calls.append(ToolCall(
                    id=tc["id"],
                    name=tc["function"]["name"],
                    arguments=arguments,
                    argument_error=error,
                ))
        
        usage_data = data.get("usage") or {}
        usage = Usage(
            prompt_tokens=usage_data.get("prompt_tokens", 0),
            completion_tokens=usage_data.get("completion_tokens", 0),
            total_tokens=usage_data.get("total_tokens", 0),
        )
        
        return LLMResponse(
            content=message.get("content") or "",
            model=data.get("model", body["model"]),
            usage=usage,
            tool_calls=tool_calls,
            finish_reason=choice.get("finish_reason") or "stop",
            raw_response=data,
        )
    
    async def stream(
        self,
        messages: List[Message],
        tools: Optional[List[ToolDefinition]] = None,
        cancel_token: Optional["CancellationToken"] = None,
        **kwargs: Any,
    ) -> AsyncIterator[StreamChunk]:
        """Stream a completion as text and tool-call fragments."""
        body = self._build_body(messages, tools, **kwargs)
        body["stream"] = True
        
        try:
            async with self._client.stream("POST", COMPLETIONS_PATH, json=body) as response:
                if response.status_code >= 400:
                    text = (await response.aread()).decode("utf-8", errors="replace")
                    self._raise_for_status(response, text)
                
                async for line in response.aiter_lines():
                    if cancel_token:
                        cancel_token.check()
                    if not line.startswith("data: "):
                        continue
                    data = line[6:]
                    if data.strip() == "[DONE]":
                        break
                    try:
                        chunk = json.loads(data)
                    except json.JSONDecodeError:
                        logger.debug(f"Skipping malformed stream line: {data[:100]}")
                        continue
                    parsed = self._parse_stream_chunk(chunk)
                    if parsed is not None:
                        yield parsed
        except httpx.TransportError as e:
            raise LLMConnectionError(f"Stream interrupted: {e}") from e
    
    @staticmethod
    def _parse_stream_chunk(chunk: Dict[str, Any]) -> Optional[StreamChunk]:
        choices = chunk.get("choices") or []
        if not choices:
            return None
        choice = choices[0]
        delta = choice.get("delta") or {}
        
        tool_chunks = [
            ToolCallChunk(
                index=tc.get("index", position),
                id=tc.get("id"),
                name=(tc.get("function") or {}).get("name"),
                arguments=(tc.get("function") or {}).get("arguments") or "",
            )
            for position, tc in enumerate(delta.get("tool_calls") or [])
        ]
        return StreamChunk(
            content=delta.get("content") or "",
            tool_call_chunks=tool_chunks,
            finish_reason=choice.get("finish_reason"),
        )
    
    async def health_check(self) -> bool:
        """Check if the API is available."""
        try:
            response = await self._client.get("/v1/models")
            return response.status_code == 200
        except httpx.HTTPError as e:
            logger.warning(f"Health check failed: {e}")
            return False
    
    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
