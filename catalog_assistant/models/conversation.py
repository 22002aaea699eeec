"""Conversation request/response models."""

from dataclasses import dataclass, field
from datetime import datetime

from pydantic import BaseModel, Field

from catalog_assistant.models.llm import LLMMessage, LLMUsage


class AskRequest(BaseModel):
    """Request model for the ask endpoint."""

    question: str
    history: list[LLMMessage] = Field(default_factory=list)
    stream_id: str | None = None


class AskResponse(BaseModel):
    """Response model for the ask endpoint; exactly one of answer or error is set."""

    answer: str | None = None
    error: str | None = None


class ToolInfo(BaseModel):
    """Public view of a catalog tool."""

    name: str
    description: str


class ToolsResponse(BaseModel):
    """Response model for the tool listing endpoint."""

    tools: list[ToolInfo]


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: datetime
    version: str


@dataclass
class ConversationResult:
    """Outcome of one driver run."""

    success: bool
    answer: str | None = None
    error: str | None = None
    iterations: int = 0
    messages: list[LLMMessage] = field(default_factory=list)
    usage: LLMUsage = field(default_factory=LLMUsage)
