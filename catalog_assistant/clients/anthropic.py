"""Anthropic API client with rate limiting and error handling."""

import asyncio
import json
import time
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass
from typing import Any, Literal, TypeVar

import tiktoken
from anthropic import APIConnectionError, APIStatusError, AsyncAnthropic
from anthropic.types import ContentBlock as AnthropicContentBlock
from anthropic.types import Message
from limits import parse
from limits.storage import MemoryStorage
from limits.strategies import MovingWindowRateLimiter
from pydantic import BaseModel

from catalog_assistant.config import get_settings
from catalog_assistant.exceptions import MalformedResponseError, ModelEndpointError
from catalog_assistant.models.llm import (
    ContentBlock,
    LLMMessage,
    LLMResponse,
    LLMToolDefinition,
    LLMUsage,
    TextBlock,
    ToolResultBlock,
    ToolUseBlock,
)
from catalog_assistant.utils.logging import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


class CacheControl(BaseModel):
    """Cache control configuration for prompt caching."""

    type: Literal["ephemeral"] = "ephemeral"
    ttl: Literal["5m", "1h"] = "5m"


class AnthropicTool(BaseModel):
    """Tool definition for Anthropic API."""

    name: str
    description: str
    input_schema: dict[str, Any]
    cache_control: CacheControl | None = None


@dataclass
class AnthropicConfig:
    """Configuration for Anthropic API client."""

    model: str = "claude-3-haiku-20240307"
    max_tokens: int = 1024
    temperature: float = 0.1
    max_retries: int = 3
    retry_delay: float = 1.0
    base_url: str | None = None

    # Token limits for truncation
    max_conversation_tokens: int = 200000
    token_headroom: int = 2000  # Reserve tokens for response


class AnthropicRateLimiter:
    """Request and token rate limiter built on the limits library."""

    def __init__(self, requests_per_minute: int = 50, tokens_per_minute: int = 40_000):
        """Initialize rate limiter.

        Args:
            requests_per_minute: Maximum requests per minute
            tokens_per_minute: Maximum tokens per minute
        """
        self.storage = MemoryStorage()
        self.limiter = MovingWindowRateLimiter(self.storage)

        self.request_limit = parse(f"{requests_per_minute}/minute")
        self.token_limit = parse(f"{tokens_per_minute}/minute")

    async def check_rate_limit(self, estimated_tokens: int, identifier: str = "anthropic") -> None:
        """Wait until the request fits within both request and token limits."""
        logger.debug(f"Checking rate limit for {estimated_tokens} tokens, identifier: {identifier}")

        if not self.limiter.hit(self.request_limit, identifier):
            await self._wait_for_window(self.request_limit, identifier, "Request")

        token_identifier = f"{identifier}_tokens"
        if not self.limiter.hit(self.token_limit, token_identifier, cost=max(estimated_tokens, 1)):
            await self._wait_for_window(self.token_limit, token_identifier, "Token")

    async def _wait_for_window(self, limit, identifier: str, label: str) -> None:
        window_stats = self.limiter.get_window_stats(limit, identifier)
        if window_stats:
            wait_time = max(0.0, window_stats.reset_time - time.time())
            if wait_time > 0:
                logger.warning(f"{label} rate limit exceeded, waiting {wait_time:.2f}s")
                await asyncio.sleep(wait_time)


class AnthropicClient:
    """Low-level Anthropic API client with rate limiting and error handling."""

    tokenizer: tiktoken.Encoding | None = None
    api_key: str
    client: AsyncAnthropic
    config: AnthropicConfig
    rate_limiter: AnthropicRateLimiter = AnthropicRateLimiter()

    def __init__(self, api_key: str | None = None, config: AnthropicConfig | None = None):
        """Initialize Anthropic client.

        Args:
            api_key: Anthropic API key (defaults to ANTHROPIC_API_KEY from settings)
            config: Client configuration (defaults to values from settings)
        """
        settings = get_settings()
        anthropic_api_key = api_key or settings.anthropic_api_key
        if not anthropic_api_key:
            raise ValueError("ANTHROPIC_API_KEY environment variable is required")

        self.api_key = anthropic_api_key
        self.config = config or AnthropicConfig(
            model=settings.model,
            max_tokens=settings.max_tokens,
            base_url=settings.anthropic_base_url,
        )

        # Retries are handled by _request_with_retries
        self.client = AsyncAnthropic(api_key=self.api_key, base_url=self.config.base_url, max_retries=0)

        try:
            # Close approximation for Claude
            self.tokenizer = tiktoken.encoding_for_model("gpt-4")
        except Exception:
            self.tokenizer = None

    async def create_message(
        self,
        messages: Sequence[LLMMessage],
        tools: Sequence[LLMToolDefinition] | None = None,
        system_prompt: str | None = None,
        **kwargs,
    ) -> LLMResponse:
        """Create a message with Claude API.

        Args:
            messages: Conversation transcript, ending with a user message
            tools: Tools the model may call
            system_prompt: Optional system prompt
            **kwargs: Overrides for model, max_tokens or temperature

        Returns:
            Provider-agnostic response

        Raises:
            ModelEndpointError: On non-success status, transport failure or unusable payload
        """
        anthropic_tools = self._convert_tools(tools or [])
        truncated_messages = self.truncate_conversation(list(messages), system_prompt or "", anthropic_tools)

        estimated_tokens = self._estimate_tokens(truncated_messages, system_prompt or "")
        logger.debug(f"Estimated tokens: {estimated_tokens}")
        await self.rate_limiter.check_rate_limit(estimated_tokens)

        request_params: dict[str, Any] = {
            "model": kwargs.get("model", self.config.model),
            "max_tokens": kwargs.get("max_tokens", self.config.max_tokens),
            "temperature": kwargs.get("temperature", self.config.temperature),
            "messages": [msg.model_dump(exclude_none=True) for msg in truncated_messages],
        }
        if anthropic_tools:
            request_params["tools"] = [tool.model_dump(exclude_none=True) for tool in anthropic_tools]
        if system_prompt:
            request_params["system"] = system_prompt

        logger.debug(
            f"Making Anthropic API call with model: {request_params['model']}, "
            f"{len(truncated_messages)} messages, {len(anthropic_tools)} tools"
        )
        response: Message = await self._request_with_retries(
            lambda: self.client.messages.create(**request_params)
        )

        if response.content is None:
            raise MalformedResponseError("Model endpoint returned no content")

        usage = LLMUsage()
        if response.usage:
            usage = LLMUsage(
                input_tokens=response.usage.input_tokens,
                output_tokens=response.usage.output_tokens,
                total_tokens=response.usage.input_tokens + response.usage.output_tokens,
                cache_creation_input_tokens=response.usage.cache_creation_input_tokens or 0,
                cache_read_input_tokens=response.usage.cache_read_input_tokens or 0,
            )

        logger.debug(
            f"Response received - Stop reason: {response.stop_reason}, Content blocks: {len(response.content)}"
        )

        return LLMResponse(
            content=self._convert_content_blocks(response.content),
            stop_reason=response.stop_reason,
            usage=usage,
            model=response.model,
        )

    async def _request_with_retries(self, call: Callable[[], Awaitable[T]]) -> T:
        """Execute Anthropic API request with retry logic."""
        for attempt in range(self.config.max_retries):
            try:
                return await call()

            except APIStatusError as e:
                last_attempt = attempt >= self.config.max_retries - 1
                if e.status_code == 429 and not last_attempt:
                    retry_after = int(e.response.headers.get("retry-after", 60))
                    if retry_after < 120:
                        logger.warning(f"Model endpoint rate limited, retrying in {retry_after}s")
                        await asyncio.sleep(retry_after)
                        continue

                elif e.status_code >= 500 and not last_attempt:
                    # Server error, retry with exponential backoff
                    await asyncio.sleep(self.config.retry_delay * (2**attempt))
                    continue

                logger.error(f"Model endpoint error: {e.status_code} {e.message}")
                raise ModelEndpointError(f"Model endpoint error: {e.status_code}", status_code=e.status_code) from e

            except APIConnectionError as e:
                if attempt < self.config.max_retries - 1:
                    await asyncio.sleep(self.config.retry_delay * (2**attempt))
                    continue
                logger.error(f"Model endpoint unreachable: {e}")
                raise ModelEndpointError(f"Model endpoint unreachable: {e}") from e

        raise ModelEndpointError(f"Failed to complete request after {self.config.max_retries} attempts")

    def _convert_tools(self, tools: Sequence[LLMToolDefinition]) -> list[AnthropicTool]:
        """Convert tool definitions, marking the last one for prompt caching."""
        anthropic_tools = []
        for i, tool in enumerate(tools):
            cache_control = CacheControl() if i == len(tools) - 1 else None
            anthropic_tools.append(
                AnthropicTool(
                    name=tool.name,
                    description=tool.description,
                    input_schema=tool.input_schema,
                    cache_control=cache_control,
                )
            )
        return anthropic_tools

    def _convert_content_blocks(self, anthropic_content: list[AnthropicContentBlock]) -> list[ContentBlock]:
        """Convert Anthropic content blocks to our ContentBlock types."""
        converted_blocks: list[ContentBlock] = []
        for block in anthropic_content:
            try:
                if hasattr(block, "model_dump"):
                    block_dict = block.model_dump()
                elif hasattr(block, "__dict__"):
                    block_dict = block.__dict__
                else:
                    block_dict = dict(block)

                if block_dict.get("type") == "text":
                    converted_blocks.append(TextBlock.model_validate(block_dict))
                elif block_dict.get("type") == "tool_use":
                    converted_blocks.append(ToolUseBlock.model_validate(block_dict))
                else:
                    logger.warning(f"Unknown content block type: {block_dict.get('type')}")

            except Exception as e:
                logger.error(f"Failed to convert content block: {e}, block: {block}")
                # Skip malformed blocks rather than failing the entire response
                continue

        return converted_blocks

    def _message_text(self, message: LLMMessage) -> str:
        if isinstance(message.content, str):
            return message.content

        parts: list[str] = []
        for block in message.content:
            match block:
                case TextBlock(text=text):
                    parts.append(text)
                case ToolUseBlock(name=name, input=tool_input):
                    parts.append(name + json.dumps(tool_input))
                case ToolResultBlock(content=content):
                    parts.append(content)
        return "".join(parts)

    def _estimate_tokens(self, messages: Sequence[LLMMessage], system_prompt: str) -> int:
        """Estimate token count for rate limiting."""
        text_content = system_prompt + "".join(self._message_text(message) for message in messages)
        return self.estimate_message_tokens(text_content)

    def estimate_message_tokens(self, message: str) -> int:
        """Estimate token count for a single message.

        Args:
            message: Message content

        Returns:
            Estimated token count
        """
        try:
            return len(self.tokenizer.encode(message)) if self.tokenizer else len(message) // 4
        except Exception:
            # Fallback: roughly 4 characters per token
            return len(message) // 4

    def truncate_conversation(
        self, messages: list[LLMMessage], system_prompt: str, tools: list[AnthropicTool] | None = None
    ) -> list[LLMMessage]:
        """Truncate conversation from the beginning to fit within token limits.

        The kept tail always starts with a plain user message, so a tool result is
        never separated from the tool use it answers. The last message is always kept.

        Args:
            messages: Conversation messages
            system_prompt: System prompt
            tools: Available tools

        Returns:
            Truncated message list that fits within limits
        """
        if not messages:
            return messages

        available_tokens = self.config.max_conversation_tokens - self.config.token_headroom
        available_tokens -= self.estimate_message_tokens(system_prompt)

        if tools:
            tool_content = "".join(tool.name + tool.description + str(tool.input_schema) for tool in tools)
            available_tokens -= self.estimate_message_tokens(tool_content)

        start = len(messages) - 1
        current_tokens = self.estimate_message_tokens(self._message_text(messages[start]))
        for index in range(len(messages) - 2, -1, -1):
            message_tokens = self.estimate_message_tokens(self._message_text(messages[index]))
            if current_tokens + message_tokens > available_tokens:
                break
            current_tokens += message_tokens
            start = index

        # Advance to a user message carrying plain text
        while start < len(messages) - 1 and not (
            messages[start].role == "user" and isinstance(messages[start].content, str)
        ):
            start += 1

        truncated_messages = messages[start:]
        if len(truncated_messages) < len(messages):
            logger.warning(
                f"Truncated conversation from {len(messages)} to {len(truncated_messages)} messages "
                f"to fit within {available_tokens} token limit"
            )

        return truncated_messages


_anthropic_client: AnthropicClient | None = None


def get_anthropic_client() -> AnthropicClient:
    """Get or create Anthropic client instance."""
    global _anthropic_client
    if _anthropic_client is None:
        _anthropic_client = AnthropicClient()
    return _anthropic_client
