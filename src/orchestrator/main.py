"""Orchestrator - FastAPI application.

Hosts a single chat session for the browser page:
- POST /chat sends a message and returns the reply with the transcript
- GET/DELETE /transcript read or reset the transcript
- GET /health probes the connector service
"""

from contextlib import asynccontextmanager
from typing import Any, Optional

from fastapi import FastAPI, HTTPException, status
from pydantic import BaseModel, Field

from shared.config import Settings, get_settings
from shared.logging import get_logger, setup_logging
from connector_client.client import ConnectorExecutionClient, HTTPConnectorClient
from orchestrator.agent import ConversationAgent
from orchestrator.llm import create_llm_provider
from orchestrator.session import ChatSession, SessionBusyError

logger = get_logger(__name__)


class ChatRequest(BaseModel):
    """Chat request from the page."""
    message: str = Field(..., description="User message")


class ChatResponse(BaseModel):
    """Chat response to the page."""
    response: str
    messages: list[dict[str, Any]]


class TranscriptResponse(BaseModel):
    messages: list[dict[str, Any]]


class HealthResponse(BaseModel):
    status: str
    connector: str


# Global instances
_settings: Optional[Settings] = None
_connector: Optional[HTTPConnectorClient] = None
_session: Optional[ChatSession] = None


def build_session(settings: Settings, connector: ConnectorExecutionClient) -> ChatSession:
    """Wire the agent and chat session from settings."""
    agent = ConversationAgent(
        llm_provider=create_llm_provider(settings.llm),
        connector=connector,
        temperature=settings.llm.temperature,
        max_tokens=settings.llm.max_tokens
    )
    return ChatSession(agent, apology_message=settings.chat.apology_message)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler."""
    global _settings, _connector, _session

    _settings = get_settings()
    setup_logging(_settings.log_level, json_output=_settings.environment == "production")
    logger.info("Starting orchestrator")

    _connector = HTTPConnectorClient.from_settings(_settings.connector)
    _session = build_session(_settings, _connector)

    logger.info(
        "Orchestrator started",
        llm_provider=_settings.llm.provider,
        connector=_settings.connector.base_url
    )

    yield

    logger.info("Shutting down orchestrator")
    await _connector.close()


app = FastAPI(
    title="Jarvis",
    description="Chat agent backed by a language model and a connector-execution service",
    version="0.1.0",
    lifespan=lifespan
)


def _require_session() -> ChatSession:
    if _session is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Chat session not initialized"
        )
    return _session


@app.get("/health", response_model=HealthResponse, tags=["System"])
async def health_check():
    """Health check endpoint."""
    if _connector is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Connector not initialized"
        )

    try:
        health = await _connector.health_check()
        connector_status = health.get("status", "unknown")
    except Exception as e:
        logger.warning("Connector health check failed", error=str(e))
        connector_status = "unhealthy"

    return HealthResponse(
        status="healthy" if connector_status in ("ok", "healthy") else "degraded",
        connector=connector_status
    )


@app.post("/chat", response_model=ChatResponse, tags=["Chat"])
async def chat(request: ChatRequest):
    """
    Process a chat message.

    Failures of the model or connector service come back as the apology
    message, not as an HTTP error.
    """
    session = _require_session()

    try:
        reply = await session.submit(request.message)
    except SessionBusyError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    if reply is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Message must not be blank"
        )

    return ChatResponse(response=reply.content, messages=session.to_dicts())


@app.get("/transcript", response_model=TranscriptResponse, tags=["Chat"])
async def get_transcript():
    """Get the transcript of the current session."""
    session = _require_session()
    return TranscriptResponse(messages=session.to_dicts())


@app.delete("/transcript", tags=["Chat"])
async def clear_transcript():
    """Reset the transcript."""
    session = _require_session()

    try:
        session.clear()
    except SessionBusyError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))

    return {"status": "cleared"}


def main():
    """Run the orchestrator server."""
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "orchestrator.main:app",
        host=settings.chat.host,
        port=settings.chat.port,
        reload=settings.environment == "development"
    )


if __name__ == "__main__":
    main()
