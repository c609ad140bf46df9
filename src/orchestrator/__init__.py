"""Orchestrator - conversation agent, chat session and hosting app.

Forwards user text to the language model via LlamaIndex and relays
tool invocations to the connector-execution service.
"""

from orchestrator.agent import ConversationAgent, ProcessingError
from orchestrator.llm import LanguageModelClient, create_llm_provider
from orchestrator.session import ChatSession, SessionBusyError

__all__ = [
    "ConversationAgent",
    "ProcessingError",
    "LanguageModelClient",
    "create_llm_provider",
    "ChatSession",
    "SessionBusyError",
]
