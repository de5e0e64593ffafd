"""
Base LLM Provider - Common functionality for LLM providers.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Tuple, Type, TYPE_CHECKING

from pydantic import BaseModel, ValidationError

from browser_agent.exceptions import InvalidResponseError
from browser_agent.interfaces.llm import ILLMProvider, Message, SchemaT

if TYPE_CHECKING:
    from browser_agent.utils.cancellation import CancellationToken

logger = logging.getLogger(__name__)

CHARS_PER_TOKEN = 4


def extract_json_text(text: str) -> str:
    """Strip markdown code fences around a JSON payload."""
    json_text = text.strip()
    if "```json" in json_text:
        start = json_text.find("```json") + 7
        end = json_text.find("```", start)
        json_text = json_text[start:end if end != -1 else None].strip()
    elif "```" in json_text:
        start = json_text.find("```") + 3
        end = json_text.find("```", start)
        json_text = json_text[start:end if end != -1 else None].strip()
    return json_text


def decode_arguments(raw: str) -> Tuple[Dict[str, Any], Optional[str]]:
    """Decode a JSON tool-argument string into ``(arguments, error)``."""
    if not raw or not raw.strip():
        return {}, None
    try:
        value = json.loads(raw)
    except json.JSONDecodeError as e:
        return {}, f"Invalid JSON arguments: {e}"
    if not isinstance(value, dict):
        return {}, "Tool arguments must be a JSON object"
    return value, None


def parse_structured_output(text: str, schema: Type[SchemaT]) -> SchemaT:
    """
    Parse an LLM text response into a pydantic model.
    
    Args:
        text: Raw model output, optionally wrapped in a code block
        schema: Pydantic model class to validate against
        
    Returns:
        Validated model instance
        
    Raises:
        InvalidResponseError: On empty output, bad JSON or schema mismatch
    """
    if not text or not text.strip():
        raise InvalidResponseError("Empty response", raw_response=text)
    
    json_text = extract_json_text(text)
    try:
        data = json.loads(json_text)
    except json.JSONDecodeError as e:
        raise InvalidResponseError(f"JSON parse error: {e}", raw_response=text) from e
    
    try:
        return schema.model_validate(data)
    except ValidationError as e:
        raise InvalidResponseError(
            f"Response does not match {schema.__name__}: {e.error_count()} error(s)",
            raw_response=text,
        ) from e


def json_schema_response_format(schema: Type[BaseModel]) -> Dict[str, Any]:
    """Build an OpenAI-style ``response_format`` for a pydantic schema."""
    return {
        "type": "json_schema",
        "json_schema": {
            "name": schema.__name__,
            "schema": schema.model_json_schema(),
        },
    }


class BaseLLMProvider(ILLMProvider):
    """
    Base class for LLM providers with common functionality.
    
    Provides structured output on top of ``complete`` and a rough token
    estimate. Subclasses implement the transport.
    """
    
    @property
    def supports_tools(self) -> bool:
        return True
    
    @property
    def supports_streaming(self) -> bool:
        return True
    
    async def complete_structured(
        self,
        messages: List[Message],
        schema: Type[SchemaT],
        cancel_token: Optional["CancellationToken"] = None,
    ) -> SchemaT:
        """Request JSON-schema output and validate it with pydantic."""
        response = await self.complete(
            messages,
            response_format=json_schema_response_format(schema),
            cancel_token=cancel_token,
        )
        return parse_structured_output(response.content, schema)
    
    async def count_tokens(self, messages: List[Message]) -> int:
        """Rough estimate: one token per four characters."""
        total_chars = sum(len(m.content or "") for m in messages)
        return total_chars // CHARS_PER_TOKEN
