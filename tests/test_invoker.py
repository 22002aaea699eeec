"""Tests for tool invocation and response normalization."""

import json

import httpx
import pytest

from catalog_assistant.tools.base import ToolFailure, ToolSuccess
from catalog_assistant.tools.invoker import ToolInvoker, extract_tool_result
from tests.helpers import json_response, make_provider_client, sse_response


def invoker_for(response: httpx.Response) -> ToolInvoker:
    return ToolInvoker(client=make_provider_client(lambda request: response))


class TestExtractToolResult:
    """Tests for envelope-to-result mapping."""

    def test_joins_text_items(self):
        """Test that text content items are newline-joined and other items skipped."""
        data = {
            "result": {
                "content": [
                    {"type": "text", "text": "CUSTOMERS table"},
                    {"type": "image", "data": "..."},
                    {"type": "text", "text": "CUSTOMER_ORDERS table"},
                ]
            }
        }
        assert extract_tool_result(data) == ToolSuccess(data="CUSTOMERS table\nCUSTOMER_ORDERS table")

    def test_top_level_error(self):
        """Test that a JSON-RPC error becomes a failure with its message."""
        assert extract_tool_result({"error": {"code": -32000, "message": "bad query"}}) == ToolFailure(
            message="bad query"
        )

    def test_top_level_error_without_message(self):
        """Test the default message for an error object without one."""
        assert extract_tool_result({"error": {"code": -32000}}) == ToolFailure(message="Tool provider error")

    def test_in_band_error_uses_first_text_item(self):
        """Test that isError results report the first text item."""
        data = {"result": {"isError": True, "content": [{"type": "text", "text": "Index unavailable"}]}}
        assert extract_tool_result(data) == ToolFailure(message="Index unavailable")

    def test_in_band_error_without_text(self):
        """Test the default message for an isError result without text."""
        assert extract_tool_result({"result": {"isError": True, "content": []}}) == ToolFailure(
            message="Tool provider returned an error"
        )

    def test_falls_back_to_raw_result(self):
        """Test that results without text items are serialized as JSON."""
        data = {"result": {"content": [{"type": "resource", "uri": "x"}], "total": 0}}
        result = extract_tool_result(data)

        assert isinstance(result, ToolSuccess)
        assert json.loads(result.data) == data["result"]


class TestToolInvoker:
    """Tests for ToolInvoker.invoke over the wire."""

    @pytest.mark.asyncio
    async def test_sends_tool_call(self, provider_requests):
        """Test that invoke issues tools/call with name and arguments."""

        def handler(request: httpx.Request) -> httpx.Response:
            provider_requests.append(json.loads(request.content))
            return json_response({"result": {"content": [{"type": "text", "text": "ok"}]}})

        invoker = ToolInvoker(client=make_provider_client(handler))
        result = await invoker.invoke("search_assets", {"query": "customer", "limit": 5})

        assert result == ToolSuccess(data="ok")
        assert provider_requests[0]["method"] == "tools/call"
        assert provider_requests[0]["params"] == {"name": "search_assets", "arguments": {"query": "customer", "limit": 5}}

    @pytest.mark.asyncio
    async def test_event_stream_and_json_results_match(self):
        """Test that both envelope variants yield the same result."""
        payload = {"result": {"content": [{"type": "text", "text": "CUSTOMERS table"}]}}

        sse_result = await invoker_for(sse_response(payload)).invoke("search_assets", {"query": "customer"})
        json_result = await invoker_for(json_response(payload)).invoke("search_assets", {"query": "customer"})

        assert sse_result == json_result == ToolSuccess(data="CUSTOMERS table")

    @pytest.mark.asyncio
    async def test_event_stream_in_band_error(self):
        """Test that an isError payload inside an event stream is a failure."""
        payload = {"result": {"isError": True, "content": [{"type": "text", "text": "Unknown asset type"}]}}

        result = await invoker_for(sse_response(payload)).invoke("search_assets", {})

        assert result == ToolFailure(message="Unknown asset type")

    @pytest.mark.asyncio
    async def test_http_status_failure(self):
        """Test that a non-success status becomes a failure carrying the code."""
        result = await invoker_for(httpx.Response(502, text="bad gateway")).invoke("search_assets", {})

        assert isinstance(result, ToolFailure)
        assert "502" in result.message

    @pytest.mark.asyncio
    async def test_empty_event_stream_failure(self):
        """Test that an event stream without data is a failure."""
        response = httpx.Response(200, text="\n", headers={"content-type": "text/event-stream"})

        result = await invoker_for(response).invoke("search_assets", {})

        assert result == ToolFailure(message="No data received from tool provider")

    @pytest.mark.asyncio
    async def test_malformed_json_does_not_raise(self):
        """Test that an undecodable body becomes a failure."""
        response = httpx.Response(200, text="{oops", headers={"content-type": "application/json"})

        result = await invoker_for(response).invoke("search_assets", {})

        assert isinstance(result, ToolFailure)

    @pytest.mark.asyncio
    async def test_network_error_does_not_raise(self):
        """Test that transport exceptions become a failure with their message."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        result = await ToolInvoker(client=make_provider_client(handler)).invoke("search_assets", {})

        assert result == ToolFailure(message="connection refused")
