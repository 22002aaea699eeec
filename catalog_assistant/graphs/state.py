"""State definitions for the LangGraph conversation flow."""

from typing import Literal

from pydantic import BaseModel, Field

from catalog_assistant.models.llm import LLMMessage, ToolUseBlock
from catalog_assistant.tools.base import ToolDefinition


class ConversationState(BaseModel):
    """State owned by a single driver run.

    Seeded from the client's history plus the new question; never shared
    between requests.
    """

    # Core conversation data
    messages: list[LLMMessage]
    tools: list[ToolDefinition] = Field(default_factory=list)

    # Loop control
    iteration: int = 0
    max_iterations: int = 5
    streaming: bool = False
    pending_tool_uses: list[ToolUseBlock] = Field(default_factory=list)
    next_step: Literal["tools", "end"] | None = None
    exhausted: bool = False

    # Answer tracking
    accumulated_text: str = ""
    answer: str | None = None
    stop_reason: str | None = None

    # Token usage tracking
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    cache_read_tokens: int = 0
    cache_creation_tokens: int = 0
