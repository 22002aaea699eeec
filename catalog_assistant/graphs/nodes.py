"""Node implementations for the conversation graph."""

from collections.abc import Sequence
from typing import Any, Protocol

from langchain_core.runnables import RunnableConfig

from catalog_assistant.graphs.prompts import APOLOGY_ANSWER, CATALOG_SYSTEM_PROMPT, SYSTEM_PROMPT_MAX_TRANSCRIPT
from catalog_assistant.graphs.state import ConversationState
from catalog_assistant.models.llm import LLMMessage, LLMResponse, LLMToolDefinition, TextBlock, ToolResultBlock
from catalog_assistant.models.progress import ContentEvent, StatusEvent
from catalog_assistant.services.progress import NullSink, ProgressSink
from catalog_assistant.tools.base import ToolFailure
from catalog_assistant.tools.invoker import ToolInvoker
from catalog_assistant.utils.logging import get_logger

logger = get_logger(__name__)

# Input field shown in progress updates while a tool runs
PRIMARY_INPUT_FIELD = "query"


class ModelClient(Protocol):
    """The slice of the model endpoint client the agent node needs."""

    async def create_message(
        self,
        messages: Sequence[LLMMessage],
        tools: Sequence[LLMToolDefinition] | None = None,
        system_prompt: str | None = None,
    ) -> LLMResponse: ...


def _configurable(config: RunnableConfig) -> dict[str, Any]:
    return config.get("configurable", {}) if config else {}


def _sink(config: RunnableConfig) -> ProgressSink:
    return _configurable(config).get("sink") or NullSink()


async def agent_node(state: ConversationState, config: RunnableConfig) -> dict[str, Any]:
    """Ask the model for its next action.

    This node:
    1. Stops the run when the iteration budget is spent, without calling the model
    2. Calls the model with the full transcript and the tool catalog
    3. Either queues the requested tool calls or records the final answer
    """
    if state.iteration >= state.max_iterations:
        logger.warning(f"Agent loop reached max iterations ({state.max_iterations})")
        return {"exhausted": True, "next_step": "end"}

    model_client: ModelClient = _configurable(config)["model_client"]
    sink = _sink(config)

    iteration = state.iteration + 1
    logger.info(f"Iteration {iteration}/{state.max_iterations}")

    if state.streaming:
        sink.emit(StatusEvent(status="Thinking..."))

    system_prompt = CATALOG_SYSTEM_PROMPT if len(state.messages) <= SYSTEM_PROMPT_MAX_TRANSCRIPT else None
    response = await model_client.create_message(
        messages=state.messages,
        tools=state.tools,
        system_prompt=system_prompt,
    )

    updates: dict[str, Any] = {"iteration": iteration, "stop_reason": response.stop_reason}
    if response.usage:
        updates.update(
            total_input_tokens=state.total_input_tokens + response.usage.input_tokens,
            total_output_tokens=state.total_output_tokens + response.usage.output_tokens,
            cache_read_tokens=state.cache_read_tokens + response.usage.cache_read_input_tokens,
            cache_creation_tokens=state.cache_creation_tokens + response.usage.cache_creation_input_tokens,
        )

    text = response.text()
    tool_uses = response.tool_uses()

    if response.stop_reason == "tool_use" and tool_uses:
        logger.info(f"Model requested {len(tool_uses)} tool calls")

        accumulated_text = state.accumulated_text
        if state.streaming and text:
            accumulated_text += text + "\n"
            sink.emit(ContentEvent(text=accumulated_text))

        return {
            **updates,
            "messages": [*state.messages, LLMMessage(role="assistant", content=response.content)],
            "pending_tool_uses": tool_uses,
            "accumulated_text": accumulated_text,
            "next_step": "tools",
        }

    if response.stop_reason != "end_turn":
        logger.info(f"Model stopped with reason: {response.stop_reason}")

    accumulated_text = state.accumulated_text + text
    answer = accumulated_text if state.streaming else text
    if not answer and response.stop_reason != "end_turn":
        answer = APOLOGY_ANSWER

    if state.streaming:
        sink.emit(ContentEvent(text=accumulated_text, is_complete=True))

    final_content = response.content or [TextBlock(text=answer)]
    return {
        **updates,
        "messages": [*state.messages, LLMMessage(role="assistant", content=final_content)],
        "pending_tool_uses": [],
        "accumulated_text": accumulated_text,
        "answer": answer,
        "next_step": "end",
    }


async def tools_node(state: ConversationState, config: RunnableConfig) -> dict[str, Any]:
    """Run every pending tool call in order and append their results as one user message."""
    invoker: ToolInvoker = _configurable(config)["invoker"]
    sink = _sink(config)

    tool_results: list[ToolResultBlock] = []
    for tool_use in state.pending_tool_uses:
        primary_input = tool_use.input.get(PRIMARY_INPUT_FIELD)
        sink.emit(StatusEvent(status=f"Searching catalog: {primary_input or 'processing...'}"))

        result = await invoker.invoke(tool_use.name, tool_use.input)

        if isinstance(result, ToolFailure):
            tool_results.append(
                ToolResultBlock(tool_use_id=tool_use.id, content=f"Error: {result.message}", is_error=True)
            )
        else:
            tool_results.append(ToolResultBlock(tool_use_id=tool_use.id, content=result.data))

    if state.streaming:
        sink.emit(StatusEvent(status="Analyzing results..."))

    return {
        "messages": [*state.messages, LLMMessage(role="user", content=tool_results)],
        "pending_tool_uses": [],
        "next_step": None,
    }
