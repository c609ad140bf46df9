"""Language-model integration using LlamaIndex.

Supports:
- Google Gemini (default)
- OpenAI
- An in-process mock for tests

The system prompt and tool descriptors travel as side-channel metadata
on the user message; they are never appended to the visible text.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

from shared.config import LLMSettings
from shared.logging import get_logger
from shared.models import ConversationMessage, LLMResponse

logger = get_logger(__name__)


class LanguageModelClient(ABC):
    """Capability interface for a plain-text chat completion API."""

    @abstractmethod
    async def complete(
        self,
        messages: list[ConversationMessage],
        system_prompt: str = "",
        tools: Optional[Any] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> LLMResponse:
        """
        Generate a single, non-streamed completion.

        Args:
            messages: Messages to send, oldest first
            system_prompt: System prompt, attached as metadata
            tools: Opaque tool descriptor set, attached as metadata
            temperature: Sampling temperature
            max_tokens: Maximum output tokens

        Returns:
            The completion text and finish metadata
        """
        pass


class LlamaIndexProvider(LanguageModelClient):
    """Base for providers backed by a LlamaIndex LLM."""

    def __init__(self, settings: LLMSettings) -> None:
        self.settings = settings
        self._llm = None

    @abstractmethod
    def _build_llm(self):
        """Construct the underlying LlamaIndex LLM."""
        pass

    def _get_llm(self):
        """Lazy initialization of the LlamaIndex LLM."""
        if self._llm is None:
            self._llm = self._build_llm()
        return self._llm

    def _convert_messages(
        self,
        messages: list[ConversationMessage],
        system_prompt: str,
        tools: Optional[Any]
    ) -> list:
        """Convert transcript messages to LlamaIndex chat messages."""
        from llama_index.core.llms import ChatMessage, MessageRole

        role_map = {
            "user": MessageRole.USER,
            "assistant": MessageRole.ASSISTANT,
        }

        result = []
        for msg in messages:
            additional_kwargs = {}
            if msg.role == "user":
                additional_kwargs = {"system": system_prompt, "tools": tools}

            result.append(ChatMessage(
                role=role_map.get(msg.role, MessageRole.USER),
                content=msg.content,
                additional_kwargs=additional_kwargs,
            ))

        return result

    def _call_kwargs(self, temperature: float, max_tokens: int) -> dict[str, Any]:
        """Per-call generation parameters in the form the LLM's achat() accepts."""
        return {"temperature": temperature, "max_tokens": max_tokens}

    async def complete(
        self,
        messages: list[ConversationMessage],
        system_prompt: str = "",
        tools: Optional[Any] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> LLMResponse:
        llm = self._get_llm()
        chat_messages = self._convert_messages(messages, system_prompt, tools)

        call_kwargs = self._call_kwargs(
            temperature if temperature is not None else self.settings.temperature,
            max_tokens if max_tokens is not None else self.settings.max_tokens,
        )

        try:
            response = await llm.achat(chat_messages, **call_kwargs)
        except Exception as e:
            logger.error("LLM completion failed", provider=self.settings.provider, error=str(e))
            raise

        return LLMResponse(
            content=response.message.content if response.message else None,
            finish_reason="stop",
            usage={}  # LlamaIndex does not report usage uniformly
        )


class GeminiProvider(LlamaIndexProvider):
    """Google Gemini provider using LlamaIndex."""

    def _build_llm(self):
        from llama_index.llms.google_genai import GoogleGenAI

        return GoogleGenAI(
            model=self.settings.model,
            api_key=self.settings.api_key,
            temperature=self.settings.temperature,
            max_tokens=self.settings.max_tokens,
        )

    def _call_kwargs(self, temperature: float, max_tokens: int) -> dict[str, Any]:
        # GoogleGenAI freezes its generation config at construction and only
        # merges an explicit generation_config passed to achat().
        return {
            "generation_config": {
                "temperature": temperature,
                "max_output_tokens": max_tokens,
            }
        }


class OpenAIProvider(LlamaIndexProvider):
    """OpenAI provider using LlamaIndex."""

    def _build_llm(self):
        from llama_index.llms.openai import OpenAI

        # max_tokens stays unset here: a constructor value would override the
        # per-call one in every request payload.
        return OpenAI(
            model=self.settings.model,
            api_key=self.settings.api_key,
            api_base=self.settings.api_base,
            temperature=self.settings.temperature,
        )


class MockLLMProvider(LanguageModelClient):
    """Mock LLM provider for testing without API calls."""

    def __init__(self, settings: Optional[LLMSettings] = None) -> None:
        self.settings = settings
        self.call_history: list[dict[str, Any]] = []
        self._next_response: Optional[LLMResponse] = None

    def set_next_response(self, response: LLMResponse) -> None:
        """Set the next response to return."""
        self._next_response = response

    async def complete(
        self,
        messages: list[ConversationMessage],
        system_prompt: str = "",
        tools: Optional[Any] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None
    ) -> LLMResponse:
        self.call_history.append({
            "messages": messages,
            "system_prompt": system_prompt,
            "tools": tools,
            "temperature": temperature,
            "max_tokens": max_tokens
        })

        if self._next_response:
            response = self._next_response
            self._next_response = None
            return response

        return LLMResponse(
            content="This is a mock response.",
            finish_reason="stop",
            usage={"prompt_tokens": 10, "completion_tokens": 5}
        )


def create_llm_provider(settings: LLMSettings) -> LanguageModelClient:
    """
    Factory function to create the configured LLM provider.

    Supports:
    - gemini: Google Gemini via google-genai
    - openai: OpenAI API
    - mock: Mock provider for testing

    Raises:
        ValueError: If provider is not supported
    """
    providers = {
        "gemini": GeminiProvider,
        "openai": OpenAIProvider,
        "mock": MockLLMProvider,
    }

    provider_class = providers.get(settings.provider)
    if not provider_class:
        raise ValueError(
            f"Unsupported LLM provider: {settings.provider}. "
            f"Supported: {list(providers.keys())}"
        )

    logger.info("Creating LLM provider", provider=settings.provider, model=settings.model)
    return provider_class(settings)
