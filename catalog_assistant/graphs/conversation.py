"""Main conversation graph implementation."""

from collections.abc import Sequence

from langgraph.graph import END, StateGraph

from catalog_assistant.graphs.edges import route_agent_output, route_tool_output
from catalog_assistant.graphs.nodes import ModelClient, agent_node, tools_node
from catalog_assistant.graphs.state import ConversationState
from catalog_assistant.models.conversation import ConversationResult
from catalog_assistant.models.llm import LLMMessage, LLMUsage
from catalog_assistant.models.progress import StatusEvent
from catalog_assistant.services.progress import NullSink, ProgressSink
from catalog_assistant.tools.base import ToolDefinition
from catalog_assistant.tools.catalog import ToolCatalog
from catalog_assistant.tools.invoker import ToolInvoker
from catalog_assistant.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_ITERATIONS = 5

MAX_ITERATIONS_ERROR = "Maximum iterations reached. Please try a simpler question."
DISCOVERY_ERROR = "Unable to discover tools from the catalog provider. Please check your API key and connection."


def create_conversation_graph():
    """Create the agent loop graph.

    The ``agent`` node asks the model for its next action; the ``tools`` node
    runs the requested tool calls and hands control back to ``agent``. The
    iteration budget is enforced by ``agent`` itself.

    Returns:
        Compiled LangGraph workflow
    """
    logger.info("Creating conversation graph")

    workflow = StateGraph(ConversationState)

    workflow.add_node("agent", agent_node)
    workflow.add_node("tools", tools_node)

    workflow.set_entry_point("agent")

    workflow.add_conditional_edges(
        "agent",
        route_agent_output,
        {
            "tools": "tools",
            "end": END,
        },
    )

    workflow.add_conditional_edges(
        "tools",
        route_tool_output,
        {
            "agent": "agent",
        },
    )

    return workflow.compile()


def create_initial_state(
    question: str,
    history: Sequence[LLMMessage],
    tools: list[ToolDefinition],
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    streaming: bool = False,
) -> ConversationState:
    """Create initial conversation state.

    Args:
        question: The user's new question
        history: Prior transcript supplied by the client
        tools: Tool catalog for this run
        max_iterations: Model call budget
        streaming: Whether the run reports interim text and phases

    Returns:
        Initial ConversationState
    """
    return ConversationState(
        messages=[*history, LLMMessage(role="user", content=question)],
        tools=tools,
        max_iterations=max_iterations,
        streaming=streaming,
    )


class ConversationDriver:
    """Runs the bounded agent loop for one question at a time."""

    def __init__(
        self,
        catalog: ToolCatalog,
        invoker: ToolInvoker,
        model_client: ModelClient,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
    ):
        """Initialize the driver.

        Args:
            catalog: Source of the tool catalog
            invoker: Executes the model's tool calls
            model_client: Model endpoint client
            max_iterations: Maximum number of model calls per run
        """
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")

        self.catalog = catalog
        self.invoker = invoker
        self.model_client = model_client
        self.max_iterations = max_iterations
        self.graph = create_conversation_graph()

    async def run(
        self, question: str, history: Sequence[LLMMessage] = (), sink: ProgressSink | None = None
    ) -> ConversationResult:
        """Answer a question; the answer is the final model response's text.

        Raises:
            ModelEndpointError: If the model endpoint fails
        """
        return await self._run(question, history, sink or NullSink(), streaming=False)

    async def run_streaming(
        self, question: str, history: Sequence[LLMMessage], sink: ProgressSink
    ) -> ConversationResult:
        """Answer a question while reporting phases and accumulated text to a sink.

        Raises:
            ModelEndpointError: If the model endpoint fails
        """
        sink.emit(StatusEvent(status="Analyzing your question..."))
        return await self._run(question, history, sink, streaming=True)

    async def _run(
        self, question: str, history: Sequence[LLMMessage], sink: ProgressSink, streaming: bool
    ) -> ConversationResult:
        logger.info(f"Processing conversation for: {question[:50]}...")

        tools = await self.catalog.get()
        if not tools:
            logger.error("No tools available, not calling the model")
            return ConversationResult(success=False, error=DISCOVERY_ERROR)

        initial_state = create_initial_state(question, history, tools, self.max_iterations, streaming)

        config = {
            "configurable": {
                "model_client": self.model_client,
                "invoker": self.invoker,
                "sink": sink,
            },
            # agent and tools alternate, plus the final agent step
            "recursion_limit": 2 * self.max_iterations + 4,
        }

        result = await self.graph.ainvoke(initial_state.model_dump(), config)
        final_state = result if isinstance(result, ConversationState) else ConversationState.model_validate(result)

        usage = LLMUsage(
            input_tokens=final_state.total_input_tokens,
            output_tokens=final_state.total_output_tokens,
            total_tokens=final_state.total_input_tokens + final_state.total_output_tokens,
            cache_creation_input_tokens=final_state.cache_creation_tokens,
            cache_read_input_tokens=final_state.cache_read_tokens,
        )

        if final_state.exhausted or final_state.answer is None:
            logger.warning(f"Conversation ended without an answer after {final_state.iteration} iterations")
            return ConversationResult(
                success=False,
                error=MAX_ITERATIONS_ERROR,
                iterations=final_state.iteration,
                messages=final_state.messages,
                usage=usage,
            )

        logger.info(
            f"Conversation completed in {final_state.iteration} iterations "
            f"(input tokens: {usage.input_tokens}, output tokens: {usage.output_tokens})"
        )
        return ConversationResult(
            success=True,
            answer=final_state.answer,
            iterations=final_state.iteration,
            messages=final_state.messages,
            usage=usage,
        )
