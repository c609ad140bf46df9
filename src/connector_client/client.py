"""Client for the connector-execution service.

The connector service supplies the system prompt and tool descriptors
for the model, and executes tool invocations on the model's behalf.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx
from pydantic import ValidationError
from tenacity import retry, stop_after_attempt, wait_exponential

from shared.config import ConnectorSettings
from shared.logging import get_logger
from shared.models import ExecutionRequest, ExecutionResult, PromptBundle

logger = get_logger(__name__)


class ConnectorClientError(Exception):
    """Base exception for connector client errors."""
    pass


class ConnectorConnectionError(ConnectorClientError):
    """Connection to the connector service failed."""
    pass


class ConnectorAuthError(ConnectorClientError):
    """The connector service rejected our credentials."""
    pass


class ConnectorExecutionClient(ABC):
    """
    Capability interface for the connector-execution service.

    The orchestrator depends only on this interface so the HTTP client
    can be swapped for a fake in tests.
    """

    @abstractmethod
    async def get_system_prompt(self) -> PromptBundle:
        """Fetch the current system prompt and tool descriptor set."""
        pass

    @abstractmethod
    async def execute(self, request: ExecutionRequest) -> ExecutionResult:
        """Execute the tool invocation contained in a model completion."""
        pass

    async def close(self) -> None:
        """Release any held resources."""
        return None


class HTTPConnectorClient(ConnectorExecutionClient):
    """
    httpx-based connector-execution client.

    Makes one request per call. Nothing is cached between calls and the
    request cycle never retries; only `health_check` does.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8001",
        api_key: Optional[str] = None,
        system_prompt_path: str = "/system-prompt",
        execute_path: str = "/execute",
        connectors: Optional[list[str]] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ) -> None:
        """
        Initialize the connector client.

        Args:
            base_url: Connector service base URL
            api_key: Connector service secret, sent as a bearer token
            system_prompt_path: Path of the system-prompt endpoint
            execute_path: Path of the execution endpoint
            connectors: Connector keys to expose to the model ("*" for all)
            timeout: Request timeout in seconds
            transport: Optional httpx transport, mainly for tests
        """
        self.base_url = base_url.rstrip("/")
        self.system_prompt_path = system_prompt_path
        self.execute_path = execute_path
        self.connectors = connectors or ["*"]
        self.timeout = timeout
        self._api_key = api_key
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @classmethod
    def from_settings(cls, settings: ConnectorSettings) -> "HTTPConnectorClient":
        return cls(
            base_url=settings.base_url,
            api_key=settings.api_key,
            system_prompt_path=settings.system_prompt_path,
            execute_path=settings.execute_path,
            connectors=settings.connectors,
            timeout=settings.timeout,
        )

    def _get_headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        return headers

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                headers=self._get_headers(),
                transport=self._transport
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "HTTPConnectorClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def _check_auth(self, response: httpx.Response) -> None:
        if response.status_code == 401:
            raise ConnectorAuthError("Authentication required")
        if response.status_code == 403:
            raise ConnectorAuthError("Access denied")

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """Send a request and return the decoded JSON object body."""
        try:
            client = await self._get_client()
            response = await client.request(method, path, **kwargs)
            self._check_auth(response)
            response.raise_for_status()
            data = response.json()
        except httpx.ConnectError as e:
            raise ConnectorConnectionError(f"Cannot connect to connector service: {e}") from e
        except httpx.RequestError as e:
            raise ConnectorConnectionError(f"Connector request did not complete: {e}") from e
        except httpx.HTTPStatusError as e:
            raise ConnectorClientError(f"Connector request failed: {e}") from e
        except ValueError as e:
            raise ConnectorClientError(f"Connector returned invalid JSON: {e}") from e

        if not isinstance(data, dict):
            raise ConnectorClientError(
                f"Unexpected response from {path}: expected object, got {type(data).__name__}"
            )
        return data

    async def get_system_prompt(self) -> PromptBundle:
        """
        Fetch the system prompt and tool descriptors.

        Returns:
            The current prompt bundle

        Raises:
            ConnectorConnectionError: If the service is unreachable
            ConnectorAuthError: If the secret is missing or rejected
            ConnectorClientError: On any other failure or malformed body
        """
        data = await self._request(
            "GET",
            self.system_prompt_path,
            params={"connectors": ",".join(self.connectors)}
        )
        try:
            bundle = PromptBundle.model_validate(data)
        except ValidationError as e:
            raise ConnectorClientError(f"Malformed system prompt response: {e}") from e

        logger.debug(
            "System prompt fetched",
            prompt_length=len(bundle.system),
            has_tools=bool(bundle.tools)
        )
        return bundle

    async def execute(self, request: ExecutionRequest) -> ExecutionResult:
        """
        Execute a tool invocation.

        Args:
            request: Execution payload; `input` is the full model completion

        Returns:
            The execution result

        Raises:
            ConnectorConnectionError: If the service is unreachable
            ConnectorAuthError: If the secret is missing or rejected
            ConnectorClientError: On any other failure or malformed body
        """
        logger.debug("Executing tool call", input_length=len(request.input))

        data = await self._request(
            "POST",
            self.execute_path,
            json=request.model_dump()
        )
        try:
            return ExecutionResult.model_validate(data)
        except ValidationError as e:
            raise ConnectorClientError(f"Malformed execution response: {e}") from e

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        reraise=True
    )
    async def health_check(self) -> dict[str, Any]:
        """
        Check connector service health.

        Raises:
            ConnectorConnectionError: If the service is unreachable
        """
        return await self._request("GET", "/health")


class StaticConnectorClient(ConnectorExecutionClient):
    """In-process connector client returning canned data, for tests and demos."""

    def __init__(
        self,
        system: str = "",
        tools: Optional[Any] = None,
        output: str = ""
    ) -> None:
        self.bundle = PromptBundle(system=system, tools=tools)
        self.output = output
        self.executed: list[ExecutionRequest] = []

    async def get_system_prompt(self) -> PromptBundle:
        return self.bundle

    async def execute(self, request: ExecutionRequest) -> ExecutionResult:
        self.executed.append(request)
        return ExecutionResult(output=self.output)
