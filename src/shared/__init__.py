"""Shared models, configuration and logging for the Jarvis chat agent."""

from shared.models import (
    AgentRequest,
    AgentResponse,
    ConversationMessage,
    ExecutionRequest,
    ExecutionResult,
    LLMResponse,
    PromptBundle,
)
from shared.config import Settings, get_settings
from shared.logging import get_logger, setup_logging

__all__ = [
    "AgentRequest",
    "AgentResponse",
    "ConversationMessage",
    "ExecutionRequest",
    "ExecutionResult",
    "LLMResponse",
    "PromptBundle",
    "Settings",
    "get_settings",
    "get_logger",
    "setup_logging",
]
