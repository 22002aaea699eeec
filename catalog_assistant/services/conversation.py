"""Conversation service wiring the agent loop to the catalog, model and progress sessions."""

from catalog_assistant.clients.anthropic import get_anthropic_client
from catalog_assistant.config import get_settings
from catalog_assistant.exceptions import ModelEndpointError
from catalog_assistant.graphs.conversation import ConversationDriver
from catalog_assistant.models.conversation import AskRequest, ConversationResult
from catalog_assistant.services.progress import ProgressChannel, progress_channel
from catalog_assistant.tools.catalog import get_tool_catalog
from catalog_assistant.tools.invoker import ToolInvoker
from catalog_assistant.utils.logging import get_logger

logger = get_logger(__name__)

MAX_QUESTION_CHARS = 4000  # Roughly 1000 tokens

TECHNICAL_DIFFICULTIES = "I apologize, but I'm experiencing technical difficulties. Please try again."


class ConversationService:
    """Answers client questions, streaming progress to the client's session when one is given."""

    def __init__(self, driver: ConversationDriver | None = None, channel: ProgressChannel | None = None):
        """Initialize conversation service.

        Args:
            driver: Agent loop driver (built from global clients on first use)
            channel: Progress session registry
        """
        self._driver = driver
        self.channel = channel or progress_channel

    @property
    def driver(self) -> ConversationDriver:
        if self._driver is None:
            self._driver = ConversationDriver(
                catalog=get_tool_catalog(),
                invoker=ToolInvoker(),
                model_client=get_anthropic_client(),
                max_iterations=get_settings().max_iterations,
            )
            logger.info("ConversationService initialized")
        return self._driver

    async def ask(self, request: AskRequest) -> ConversationResult:
        """Answer one question.

        Args:
            request: Question, prior history and optional progress session id

        Returns:
            The driver's result; model endpoint and unexpected failures become
            unsuccessful results

        Raises:
            ValueError: If the question is empty or too long
        """
        question = request.question.strip()
        self._validate_question(question)

        try:
            if request.stream_id:
                sink = self.channel.sink_for(request.stream_id)
                return await self.driver.run_streaming(question, request.history, sink)
            return await self.driver.run(question, request.history)

        except ModelEndpointError as e:
            logger.error(f"Model endpoint failed: {e.message}")
            return ConversationResult(success=False, error=e.message)
        except Exception as e:
            logger.error(f"Error processing conversation: {e}", exc_info=True)
            return ConversationResult(success=False, error=TECHNICAL_DIFFICULTIES)

    def _validate_question(self, question: str) -> None:
        if not question:
            raise ValueError("No question provided")
        if len(question) > MAX_QUESTION_CHARS:
            raise ValueError("Your question is too long. Please keep questions under 1000 tokens.")


conversation_service = ConversationService()
