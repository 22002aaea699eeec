"""Base types and definitions for catalog tools."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

from catalog_assistant.models.llm import LLMToolDefinition

EMPTY_INPUT_SCHEMA: dict[str, Any] = {"type": "object", "properties": {}, "required": []}


class ToolDefinition(LLMToolDefinition):
    """A callable operation exposed by the tool provider."""

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_provider(cls, raw: dict[str, Any]) -> "ToolDefinition":
        """Normalize a tool entry from a ``tools/list`` response."""
        name = raw["name"]
        return cls(
            name=name,
            description=raw.get("description") or f"Catalog tool: {name}",
            input_schema=raw.get("inputSchema") or dict(EMPTY_INPUT_SCHEMA),
        )


class ToolSuccess(BaseModel):
    """Successful tool invocation."""

    ok: Literal[True] = True
    data: str


class ToolFailure(BaseModel):
    """Failed tool invocation, either transport-level or reported in-band by the provider."""

    ok: Literal[False] = False
    message: str


ToolInvocationResult = ToolSuccess | ToolFailure
