"""Chat session - transcript and busy flag for one page session.

Holds everything the chat page needs to render. Nothing is persisted.
"""

from typing import Optional, Protocol

from shared.logging import get_logger
from shared.models import ConversationMessage

logger = get_logger(__name__)


DEFAULT_APOLOGY = "Sorry, I encountered an error processing your request."


class SessionBusyError(Exception):
    """A submission is already in flight."""
    pass


class UserInputProcessor(Protocol):
    async def process_user_input(self, text: str) -> str: ...


class ChatSession:
    """
    Transcript owner for a single chat page.

    Allows one in-flight submission at a time; the busy flag is the only
    concurrency guard. Agent failures become a fixed apology message.
    """

    def __init__(
        self,
        agent: UserInputProcessor,
        apology_message: str = DEFAULT_APOLOGY
    ) -> None:
        self.agent = agent
        self.apology_message = apology_message
        self._messages: list[ConversationMessage] = []
        self._busy = False

    @property
    def transcript(self) -> tuple[ConversationMessage, ...]:
        return tuple(self._messages)

    @property
    def busy(self) -> bool:
        return self._busy

    async def submit(self, text: str) -> Optional[ConversationMessage]:
        """
        Submit user text and append the assistant reply.

        Args:
            text: Raw input; surrounding whitespace is stripped

        Returns:
            The assistant message, or None if the input was blank

        Raises:
            SessionBusyError: If a previous submission has not finished
        """
        if self._busy:
            raise SessionBusyError("A message is already being processed")

        user_text = text.strip()
        if not user_text:
            return None

        self._messages.append(ConversationMessage(role="user", content=user_text))
        self._busy = True
        try:
            try:
                reply = await self.agent.process_user_input(user_text)
            except Exception as e:
                logger.warning(
                    "Replying with apology",
                    error=str(e),
                    error_type=type(e).__name__
                )
                reply = self.apology_message

            message = ConversationMessage(role="assistant", content=reply)
            self._messages.append(message)
            return message
        finally:
            self._busy = False

    def clear(self) -> None:
        """Drop the transcript."""
        if self._busy:
            raise SessionBusyError("Cannot clear while a message is being processed")
        self._messages.clear()

    def to_dicts(self) -> list[dict[str, str]]:
        """Transcript in the shape the chat page renders."""
        return [
            {
                "role": m.role,
                "content": m.content,
                "timestamp": m.timestamp.isoformat()
            }
            for m in self._messages
        ]
