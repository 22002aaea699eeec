"""LLM-related data models and types (provider-agnostic)."""

from dataclasses import dataclass
from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field


# Content block types
class TextBlock(BaseModel):
    """Text content block."""

    type: Literal["text"] = "text"
    text: str

    class Config:
        extra = "ignore"  # Ignore any additional fields from Anthropic


class ToolUseBlock(BaseModel):
    """Tool use content block."""

    type: Literal["tool_use"] = "tool_use"
    id: str
    name: str
    input: dict[str, Any] = Field(default_factory=dict)

    class Config:
        extra = "ignore"  # Ignore any additional fields from Anthropic


class ToolResultBlock(BaseModel):
    """Tool result content block."""

    type: Literal["tool_result"] = "tool_result"
    tool_use_id: str
    content: str
    is_error: bool = False

    class Config:
        extra = "ignore"


ContentBlock = Annotated[TextBlock | ToolUseBlock | ToolResultBlock, Field(discriminator="type")]


class LLMMessage(BaseModel):
    """A message for LLM conversation."""

    role: Literal["user", "assistant"]
    content: str | list[ContentBlock]

    def text_blocks(self) -> list[TextBlock]:
        """Return the text blocks of this message; plain string content counts as one block."""
        if isinstance(self.content, str):
            return [TextBlock(text=self.content)]
        return [block for block in self.content if isinstance(block, TextBlock)]

    def tool_uses(self) -> list[ToolUseBlock]:
        """Return the tool use blocks of this message in emission order."""
        if isinstance(self.content, str):
            return []
        return [block for block in self.content if isinstance(block, ToolUseBlock)]


class LLMToolDefinition(BaseModel):
    """Complete tool definition for LLM."""

    name: str
    description: str
    input_schema: dict[str, Any]


@dataclass
class LLMUsage:
    """Token/resource usage information from LLM provider."""

    input_tokens: int = 0
    output_tokens: int = 0
    total_tokens: int = 0

    cache_creation_input_tokens: int = 0
    cache_read_input_tokens: int = 0


@dataclass
class LLMResponse:
    """Provider-agnostic response from the model endpoint."""

    content: list[ContentBlock]
    stop_reason: str | None
    usage: LLMUsage | None = None
    model: str = ""

    def text(self) -> str:
        """Concatenate all text blocks of the response, newline-joined."""
        parts: list[str] = []
        for block in self.content:
            match block:
                case TextBlock(text=text):
                    parts.append(text)
                case ToolUseBlock() | ToolResultBlock():
                    continue
        return "\n".join(parts)

    def tool_uses(self) -> list[ToolUseBlock]:
        """Return the tool use blocks of the response in emission order."""
        return [block for block in self.content if isinstance(block, ToolUseBlock)]
