"""Helpers for building fake tool provider and model responses."""

import json
from collections.abc import Callable
from typing import Any

import httpx

from catalog_assistant.clients.tool_provider import ToolProviderClient, ToolProviderConfig
from catalog_assistant.models.llm import LLMResponse, TextBlock, ToolUseBlock

Handler = Callable[[httpx.Request], httpx.Response]


def sse_response(payload: dict[str, Any], status_code: int = 200) -> httpx.Response:
    """Build an event-stream response whose data lines carry the payload split in two."""
    text = json.dumps(payload)
    middle = len(text) // 2
    body = f"event: message\ndata: {text[:middle]}\ndata: {text[middle:]}\n\n"
    return httpx.Response(status_code, text=body, headers={"content-type": "text/event-stream"})


def json_response(payload: dict[str, Any], status_code: int = 200) -> httpx.Response:
    """Build a plain JSON response."""
    return httpx.Response(status_code, json=payload)


def make_provider_client(handler: Handler) -> ToolProviderClient:
    """Create a tool provider client served by an in-process handler."""
    config = ToolProviderConfig(endpoint="https://catalog.example.com/mcp", api_key="test-catalog-key")
    http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return ToolProviderClient(config=config, http_client=http_client)


def text_response(text: str, stop_reason: str = "end_turn") -> LLMResponse:
    """Model response carrying a single text block."""
    return LLMResponse(content=[TextBlock(text=text)], stop_reason=stop_reason)


def tool_use_response(*calls: tuple[str, str, dict[str, Any]], text: str | None = None) -> LLMResponse:
    """Model response requesting tool calls given as (id, name, input) tuples."""
    content: list = [TextBlock(text=text)] if text else []
    content.extend(ToolUseBlock(id=call_id, name=name, input=tool_input) for call_id, name, tool_input in calls)
    return LLMResponse(content=content, stop_reason="tool_use")
