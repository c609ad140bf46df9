"""Conversation agent - one request/response cycle per user message.

For each message the agent:
1. Fetches the system prompt and tool descriptors from the connector service
2. Sends the user text to the language model with that metadata attached
3. Hands the completion to the connector service if it asks for a tool
"""

import uuid
from typing import Optional

from shared.logging import bound_context, get_logger
from shared.models import (
    AgentRequest,
    AgentResponse,
    ConversationMessage,
    ExecutionRequest,
)
from connector_client.client import ConnectorExecutionClient
from orchestrator.llm import LanguageModelClient

logger = get_logger(__name__)


TOOL_CODE_MARKER = "```tool_code"

DEFAULT_TEMPERATURE = 0.7
DEFAULT_MAX_TOKENS = 2048


class ProcessingError(Exception):
    """Raised when a user message could not be processed, whatever the cause."""

    def __init__(self, message: str = "Failed to process input") -> None:
        super().__init__(message)


class ConversationAgent:
    """
    Forwards user text to the language model and relays tool invocations.

    The agent holds no conversation state. Each call is independent and
    makes two or three sequential network calls:
    prompt fetch, model completion, and an optional tool execution.
    """

    def __init__(
        self,
        llm_provider: LanguageModelClient,
        connector: ConnectorExecutionClient,
        temperature: float = DEFAULT_TEMPERATURE,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        tool_marker: str = TOOL_CODE_MARKER
    ) -> None:
        """
        Initialize the agent.

        Args:
            llm_provider: Language-model client used for completions
            connector: Connector-execution client for prompts and tools
            temperature: Sampling temperature sent with every completion
            max_tokens: Output token limit sent with every completion
            tool_marker: Literal substring that marks a tool invocation
        """
        self.llm = llm_provider
        self.connector = connector
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.tool_marker = tool_marker

    async def process_user_input(self, text: str) -> str:
        """
        Process one user message and return the reply text.

        Raises:
            ProcessingError: On any failure of either external service
        """
        response = await self.process(text)
        return response.content

    async def process(self, text: str, request_id: Optional[str] = None) -> AgentResponse:
        """
        Process one user message and return the reply with metadata.

        Args:
            text: Raw user text
            request_id: Optional id for log correlation

        Returns:
            The agent response; `content` is never empty

        Raises:
            ProcessingError: On any failure of either external service
        """
        request_id = request_id or str(uuid.uuid4())
        with bound_context(request_id=request_id):
            try:
                logger.info("Processing message", input_length=len(text))
                return await self._process(text, request_id)
            except Exception as e:
                logger.error(
                    "Error processing input",
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=True
                )
                raise ProcessingError() from e

    async def _process(self, text: str, request_id: str) -> AgentResponse:
        bundle = await self.connector.get_system_prompt()
        request = AgentRequest(text=text, system=bundle.system, tools=bundle.tools)

        completion = await self._complete(request)

        if request.has_tools and self.tool_marker in completion:
            logger.info("Completion requests tool execution")
            result = await self.connector.execute(
                ExecutionRequest(input=completion, stream=False)
            )
            logger.info("Tool executed", has_output=bool(result.output))
            return AgentResponse(
                content=result.output or completion,
                tool_executed=True,
                request_id=request_id
            )

        return AgentResponse(content=completion, request_id=request_id)

    async def _complete(self, request: AgentRequest) -> str:
        """Send the request to the model and return non-empty completion text."""
        llm_response = await self.llm.complete(
            messages=[ConversationMessage(role="user", content=request.text)],
            system_prompt=request.system,
            tools=request.tools,
            temperature=self.temperature,
            max_tokens=self.max_tokens
        )

        if not llm_response.content:
            raise ValueError("Language model returned an empty completion")
        return llm_response.content
