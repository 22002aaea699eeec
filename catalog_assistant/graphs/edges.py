"""Edge logic and routing for the conversation graph."""

from typing import Literal

from catalog_assistant.graphs.state import ConversationState
from catalog_assistant.utils.logging import get_logger

logger = get_logger(__name__)


def route_agent_output(state: ConversationState) -> Literal["tools", "end"]:
    """Route from the agent node.

    Goes to tool execution only when the model asked for tools and the
    budget was not exhausted; everything else ends the run.
    """
    logger.debug(f"Routing from agent node. Next step: {state.next_step}")

    if state.exhausted:
        return "end"

    if state.next_step == "tools" and state.pending_tool_uses:
        return "tools"

    return "end"


def route_tool_output(state: ConversationState) -> Literal["agent"]:
    """Route from tool execution node.

    Tool failures are encoded as erroneous tool results, so the model always
    gets the next turn.
    """
    return "agent"
