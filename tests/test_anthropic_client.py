"""Tests for the Anthropic client: request building, error mapping and truncation."""

from unittest.mock import AsyncMock, Mock, patch

import httpx
import pytest
from anthropic import InternalServerError
from anthropic.types import Message

from catalog_assistant.clients.anthropic import AnthropicClient, AnthropicConfig
from catalog_assistant.exceptions import ModelEndpointError
from catalog_assistant.models.llm import LLMMessage, TextBlock, ToolResultBlock, ToolUseBlock
from catalog_assistant.tools.base import ToolDefinition

SEARCH_TOOL = ToolDefinition(
    name="search_assets",
    description="Search catalog assets",
    input_schema={"type": "object", "properties": {"query": {"type": "string"}}},
)


def make_message(content: list[dict], stop_reason: str) -> Message:
    return Message.model_validate(
        {
            "id": "msg_1",
            "type": "message",
            "role": "assistant",
            "model": "claude-3-haiku-20240307",
            "content": content,
            "stop_reason": stop_reason,
            "stop_sequence": None,
            "usage": {"input_tokens": 10, "output_tokens": 5},
        }
    )


def server_error() -> InternalServerError:
    request = httpx.Request("POST", "https://api.anthropic.com/v1/messages")
    return InternalServerError("overloaded", response=httpx.Response(500, request=request), body=None)


@pytest.fixture
def anthropic_client():
    """Create AnthropicClient with no real network or rate limiting."""
    client = AnthropicClient(api_key="test-key", config=AnthropicConfig(retry_delay=0, max_retries=2))
    client.tokenizer = None
    client.rate_limiter = Mock(check_rate_limit=AsyncMock())
    return client


class TestCreateMessage:
    """Tests for model calls."""

    @pytest.mark.asyncio
    async def test_request_parameters(self, anthropic_client):
        """Test that messages, tools and system prompt are sent in API shape."""
        create = AsyncMock(return_value=make_message([{"type": "text", "text": "hi"}], "end_turn"))
        messages = [LLMMessage(role="user", content="find customer tables")]

        with patch.object(anthropic_client.client.messages, "create", create):
            response = await anthropic_client.create_message(messages, tools=[SEARCH_TOOL], system_prompt="Be rich")

        params = create.await_args.kwargs
        assert params["system"] == "Be rich"
        assert params["messages"] == [{"role": "user", "content": "find customer tables"}]
        assert params["tools"][0]["name"] == "search_assets"
        assert params["tools"][0]["cache_control"] == {"type": "ephemeral", "ttl": "5m"}
        assert params["max_tokens"] == 1024

        assert response.stop_reason == "end_turn"
        assert response.content == [TextBlock(text="hi")]
        assert response.usage.total_tokens == 15

    @pytest.mark.asyncio
    async def test_system_prompt_omitted(self, anthropic_client):
        """Test that no system field is sent without a prompt."""
        create = AsyncMock(return_value=make_message([{"type": "text", "text": "hi"}], "end_turn"))

        with patch.object(anthropic_client.client.messages, "create", create):
            await anthropic_client.create_message([LLMMessage(role="user", content="hello")])

        assert "system" not in create.await_args.kwargs
        assert "tools" not in create.await_args.kwargs

    @pytest.mark.asyncio
    async def test_tool_use_blocks_converted(self, anthropic_client):
        """Test that tool use blocks keep their id, name and input."""
        create = AsyncMock(
            return_value=make_message(
                [{"type": "tool_use", "id": "toolu_1", "name": "search_assets", "input": {"query": "customer"}}],
                "tool_use",
            )
        )

        with patch.object(anthropic_client.client.messages, "create", create):
            response = await anthropic_client.create_message([LLMMessage(role="user", content="q")])

        assert response.tool_uses() == [ToolUseBlock(id="toolu_1", name="search_assets", input={"query": "customer"})]

    @pytest.mark.asyncio
    async def test_server_error_retried_then_raised(self, anthropic_client):
        """Test that persistent 5xx responses become a ModelEndpointError after retries."""
        create = AsyncMock(side_effect=server_error())

        with patch.object(anthropic_client.client.messages, "create", create):
            with pytest.raises(ModelEndpointError) as exc_info:
                await anthropic_client.create_message([LLMMessage(role="user", content="q")])

        assert exc_info.value.status_code == 500
        assert create.await_count == 2

    @pytest.mark.asyncio
    async def test_server_error_recovers(self, anthropic_client):
        """Test that a transient 5xx is retried."""
        create = AsyncMock(
            side_effect=[server_error(), make_message([{"type": "text", "text": "ok"}], "end_turn")]
        )

        with patch.object(anthropic_client.client.messages, "create", create):
            response = await anthropic_client.create_message([LLMMessage(role="user", content="q")])

        assert response.text() == "ok"

    def test_missing_api_key(self, monkeypatch):
        """Test that construction without a key fails."""
        with patch("catalog_assistant.clients.anthropic.get_settings") as get_settings:
            get_settings.return_value = Mock(anthropic_api_key=None)
            with pytest.raises(ValueError, match="ANTHROPIC_API_KEY"):
                AnthropicClient()


class TestConversationTruncation:
    """Tests for conversation truncation functionality."""

    @pytest.fixture
    def small_client(self):
        """Create AnthropicClient with a tight context budget."""
        config = AnthropicConfig(max_conversation_tokens=10000, token_headroom=1000)
        client = AnthropicClient(api_key="test-key", config=config)
        client.tokenizer = Mock()
        return client

    def test_truncate_conversation_within_limit(self, small_client):
        """Test that conversations within limits are not truncated."""
        small_client.tokenizer.encode.return_value = ["token"] * 100

        messages = [
            LLMMessage(role="user", content="Message 1"),
            LLMMessage(role="assistant", content="Response 1"),
            LLMMessage(role="user", content="Message 2"),
        ]

        assert small_client.truncate_conversation(messages, "System prompt") == messages

    def test_truncate_conversation_exceeds_limit(self, small_client):
        """Test that conversations exceeding limits are truncated from the beginning."""

        def mock_encode(text):
            if "System prompt" in text:
                return ["token"] * 500
            return ["token"] * 3000

        small_client.tokenizer.encode.side_effect = mock_encode

        messages = [
            LLMMessage(role="user", content="Message 1"),
            LLMMessage(role="assistant", content="Response 1"),
            LLMMessage(role="user", content="Message 2"),
            LLMMessage(role="assistant", content="Response 2"),
            LLMMessage(role="user", content="Message 3"),
        ]

        result = small_client.truncate_conversation(messages, "System prompt")

        assert len(result) < len(messages)
        assert result[0].role == "user"
        assert result[-1].content == "Message 3"

    def test_truncation_keeps_tool_pairs_together(self, small_client):
        """Test that the kept tail never starts with an orphaned tool result."""
        small_client.tokenizer.encode.side_effect = lambda text: ["token"] * 2500

        messages = [
            LLMMessage(role="user", content="find customers"),
            LLMMessage(role="assistant", content=[ToolUseBlock(id="toolu_1", name="search_assets", input={})]),
            LLMMessage(role="user", content=[ToolResultBlock(tool_use_id="toolu_1", content="CUSTOMERS")]),
            LLMMessage(role="assistant", content=[TextBlock(text="Found CUSTOMERS")]),
            LLMMessage(role="user", content="and orders?"),
        ]

        result = small_client.truncate_conversation(messages, "")

        assert result == messages[-1:]

    def test_truncate_conversation_empty_messages(self, small_client):
        """Test truncation with empty message list."""
        assert small_client.truncate_conversation([], "System prompt") == []
