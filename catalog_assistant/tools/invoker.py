"""Execution of single tool calls against the catalog provider."""

import json
from typing import Any

from catalog_assistant.clients.tool_provider import ToolProviderClient, get_tool_provider_client
from catalog_assistant.exceptions import CatalogAssistantError
from catalog_assistant.tools.base import ToolFailure, ToolInvocationResult, ToolSuccess
from catalog_assistant.utils.logging import get_logger

logger = get_logger(__name__)


def extract_tool_result(data: dict[str, Any]) -> ToolInvocationResult:
    """Map a decoded ``tools/call`` response envelope to a tool result."""
    if data.get("error"):
        error = data["error"]
        message = error.get("message") if isinstance(error, dict) else str(error)
        return ToolFailure(message=message or "Tool provider error")

    result = data.get("result")
    content = result.get("content") if isinstance(result, dict) else None
    text_items = [
        item.get("text", "")
        for item in (content if isinstance(content, list) else [])
        if isinstance(item, dict) and item.get("type") == "text"
    ]

    if isinstance(result, dict) and result.get("isError"):
        message = text_items[0] if text_items else None
        return ToolFailure(message=message or "Tool provider returned an error")

    if text_items:
        return ToolSuccess(data="\n".join(text_items))

    return ToolSuccess(data=json.dumps(result))


class ToolInvoker:
    """Calls a named tool and always returns a tagged result, never raising."""

    def __init__(self, client: ToolProviderClient | None = None):
        """Initialize tool invoker.

        Args:
            client: Tool provider client (defaults to global instance)
        """
        self._client = client

    @property
    def client(self) -> ToolProviderClient:
        if self._client is None:
            self._client = get_tool_provider_client()
        return self._client

    async def invoke(self, tool_name: str, tool_input: dict[str, Any]) -> ToolInvocationResult:
        """Execute one tool call.

        Args:
            tool_name: Name of the tool as listed by the provider
            tool_input: Arguments chosen by the model

        Returns:
            ToolSuccess with the tool's text output, or ToolFailure with a message
        """
        logger.info(f"Calling catalog tool: {tool_name} with input: {json.dumps(tool_input)[:200]}")

        try:
            data = await self.client.request("tools/call", {"name": tool_name, "arguments": tool_input})
            result = extract_tool_result(data)
        except CatalogAssistantError as e:
            result = ToolFailure(message=e.message)
        except Exception as e:
            logger.error(f"Error calling catalog tool {tool_name}: {e}", exc_info=True)
            result = ToolFailure(message=str(e) or type(e).__name__)

        if isinstance(result, ToolFailure):
            logger.warning(f"Tool {tool_name} failed: {result.message}")
        else:
            logger.debug(f"Tool {tool_name} succeeded: {result.data[:100]}...")

        return result
