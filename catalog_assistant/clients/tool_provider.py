"""JSON-RPC client for the catalog tool provider (MCP over streamable HTTP)."""

import itertools
import json
from dataclasses import dataclass
from typing import Any

import httpx

from catalog_assistant.config import get_settings
from catalog_assistant.exceptions import MalformedResponseError, ToolProviderHTTPError
from catalog_assistant.utils.logging import get_logger

logger = get_logger(__name__)

EVENT_STREAM_CONTENT_TYPE = "text/event-stream"
DATA_PREFIX = "data: "


def parse_event_stream(text: str) -> dict[str, Any] | None:
    """Extract the JSON payload carried by an event-stream body.

    Every line starting with ``data: `` contributes its remainder; the remainders
    are concatenated without a separator and parsed as one JSON document.

    Returns:
        The decoded payload, or None when the stream carried no data lines.

    Raises:
        MalformedResponseError: If the concatenated data is not a JSON object.
    """
    data_lines = [line[len(DATA_PREFIX) :] for line in text.splitlines() if line.startswith(DATA_PREFIX)]
    payload = "".join(data_lines)
    if not payload:
        return None
    return _decode_object(payload)


def _decode_object(payload: str) -> dict[str, Any]:
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise MalformedResponseError(f"Invalid JSON from tool provider: {e}") from e
    if not isinstance(data, dict):
        raise MalformedResponseError("Tool provider payload is not a JSON object")
    return data


@dataclass
class ToolProviderConfig:
    """Configuration for the tool provider client."""

    endpoint: str
    api_key: str
    timeout: float = 30.0


class ToolProviderClient:
    """Sends JSON-RPC 2.0 requests to the tool provider and decodes the reply envelope."""

    def __init__(self, config: ToolProviderConfig | None = None, http_client: httpx.AsyncClient | None = None):
        """Initialize tool provider client.

        Args:
            config: Endpoint configuration (defaults to values from settings)
            http_client: Preconfigured HTTP client, mainly for tests
        """
        if config is None:
            settings = get_settings()
            if not settings.catalog_api_key:
                raise ValueError("CATALOG_API_KEY environment variable is required")
            config = ToolProviderConfig(
                endpoint=settings.catalog_mcp_url,
                api_key=settings.catalog_api_key,
                timeout=settings.catalog_http_timeout,
            )

        self.config = config
        self.http_client = http_client or httpx.AsyncClient(timeout=config.timeout)
        self._request_ids = itertools.count(1)

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Accept": f"application/json, {EVENT_STREAM_CONTENT_TYPE}",
            "Authorization": f"Bearer {self.config.api_key}",
        }

    async def request(self, method: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """Send one JSON-RPC request and return the decoded response envelope.

        Args:
            method: JSON-RPC method, e.g. ``tools/list`` or ``tools/call``
            params: Method parameters

        Returns:
            The full JSON-RPC response object (``result`` and/or ``error``)

        Raises:
            ToolProviderHTTPError: On a non-success HTTP status
            MalformedResponseError: On an empty or undecodable body
            httpx.HTTPError: On transport failures
        """
        body = {
            "jsonrpc": "2.0",
            "method": method,
            "params": params or {},
            "id": next(self._request_ids),
        }
        logger.debug(f"Tool provider request: {method} {json.dumps(body['params'])[:200]}")

        response = await self.http_client.post(self.config.endpoint, json=body, headers=self._headers())

        if not response.is_success:
            logger.error(f"Tool provider error: {response.status_code} {response.text[:200]}")
            raise ToolProviderHTTPError(response.status_code, response.text)

        content_type = response.headers.get("content-type", "")
        if EVENT_STREAM_CONTENT_TYPE in content_type:
            data = parse_event_stream(response.text)
            if data is None:
                raise MalformedResponseError("No data received from tool provider")
        else:
            data = _decode_object(response.text)

        logger.debug(f"Tool provider response ({content_type or 'unknown'}): {str(data)[:200]}")
        return data


_tool_provider_client: ToolProviderClient | None = None


def get_tool_provider_client() -> ToolProviderClient:
    """Get or create tool provider client instance."""
    global _tool_provider_client
    if _tool_provider_client is None:
        _tool_provider_client = ToolProviderClient()
    return _tool_provider_client
