"""Core data models for the Jarvis chat agent.

Everything crossing a component boundary (shell, orchestrator, model
client, connector client) is one of these pydantic models.
"""

from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class ConversationMessage(BaseModel):
    """A single transcript entry. Immutable once created."""
    model_config = ConfigDict(frozen=True)

    role: Literal["user", "assistant"]
    content: str
    timestamp: datetime = Field(default_factory=datetime.utcnow)


class PromptBundle(BaseModel):
    """System prompt and tool descriptors supplied by the connector service."""
    model_config = ConfigDict(extra="ignore")

    system: str = ""
    tools: Optional[Any] = Field(
        default=None,
        description="Opaque tool descriptor set, passed through to the model"
    )


class AgentRequest(BaseModel):
    """The single outbound unit built for one user message."""
    text: str
    system: str = ""
    tools: Optional[Any] = None

    @property
    def has_tools(self) -> bool:
        return bool(self.tools)


class ExecutionRequest(BaseModel):
    """Body of a connector-service execution call."""
    input: str
    stream: bool = False


class ExecutionResult(BaseModel):
    """Connector-service execution result."""
    model_config = ConfigDict(extra="ignore")

    output: Optional[str] = ""


class LLMResponse(BaseModel):
    """Completion returned by a language-model client."""
    content: Optional[str] = None
    finish_reason: str = "stop"
    usage: dict[str, int] = Field(default_factory=dict)


class AgentResponse(BaseModel):
    """Result of one orchestrator invocation."""
    content: str
    tool_executed: bool = False
    request_id: str
