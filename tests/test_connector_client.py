"""Tests for the connector-execution client."""

import json

import httpx
import pytest

from shared.models import ExecutionRequest


def make_client(handler, **kwargs):
    from connector_client.client import HTTPConnectorClient

    return HTTPConnectorClient(
        base_url="http://connector.test",
        transport=httpx.MockTransport(handler),
        **kwargs
    )


class TestHTTPConnectorClient:
    """Tests for HTTPConnectorClient."""

    @pytest.mark.asyncio
    async def test_get_system_prompt(self):
        """Test fetching the system prompt and tools."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["path"] = request.url.path
            seen["connectors"] = request.url.params.get("connectors")
            seen["auth"] = request.headers.get("Authorization")
            return httpx.Response(
                200,
                json={"system": "You have connectors.", "tools": [{"name": "list_files"}]}
            )

        async with make_client(handler, api_key="secret") as client:
            bundle = await client.get_system_prompt()

        assert bundle.system == "You have connectors."
        assert bundle.tools == [{"name": "list_files"}]
        assert seen == {
            "path": "/system-prompt",
            "connectors": "*",
            "auth": "Bearer secret",
        }

    @pytest.mark.asyncio
    async def test_missing_tools_is_none(self):
        """Test that a prompt without tools has no tool set."""
        def handler(request):
            return httpx.Response(200, json={"system": "plain"})

        async with make_client(handler) as client:
            bundle = await client.get_system_prompt()

        assert bundle.tools is None

    @pytest.mark.asyncio
    async def test_execute_posts_completion(self):
        """Test the execution request body and result."""
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["method"] = request.method
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"output": "file1.txt, file2.txt", "extra": 1})

        async with make_client(handler) as client:
            result = await client.execute(ExecutionRequest(input="```tool_code\nx\n```"))

        assert result.output == "file1.txt, file2.txt"
        assert seen == {
            "method": "POST",
            "path": "/execute",
            "body": {"input": "```tool_code\nx\n```", "stream": False},
        }

    @pytest.mark.asyncio
    async def test_custom_paths(self):
        """Test configurable endpoint paths."""
        paths = []

        def handler(request):
            paths.append(request.url.path)
            return httpx.Response(200, json={"system": "", "output": "ok"})

        async with make_client(
            handler, system_prompt_path="/v1/prompt", execute_path="/v1/run"
        ) as client:
            await client.get_system_prompt()
            await client.execute(ExecutionRequest(input="x"))

        assert paths == ["/v1/prompt", "/v1/run"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status_code", [401, 403])
    async def test_auth_errors(self, status_code):
        """Test that rejected credentials raise ConnectorAuthError."""
        from connector_client.client import ConnectorAuthError

        def handler(request):
            return httpx.Response(status_code)

        async with make_client(handler) as client:
            with pytest.raises(ConnectorAuthError):
                await client.get_system_prompt()

    @pytest.mark.asyncio
    async def test_server_error(self):
        """Test that other HTTP failures raise ConnectorClientError."""
        from connector_client.client import ConnectorAuthError, ConnectorClientError

        def handler(request):
            return httpx.Response(500, json={"detail": "boom"})

        async with make_client(handler) as client:
            with pytest.raises(ConnectorClientError) as exc_info:
                await client.execute(ExecutionRequest(input="x"))

        assert not isinstance(exc_info.value, ConnectorAuthError)

    @pytest.mark.asyncio
    async def test_connection_error(self):
        """Test that unreachable services raise ConnectorConnectionError."""
        from connector_client.client import ConnectorConnectionError

        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        async with make_client(handler) as client:
            with pytest.raises(ConnectorConnectionError):
                await client.get_system_prompt()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("error_class", [httpx.ReadTimeout, httpx.RemoteProtocolError])
    async def test_transport_errors_are_wrapped(self, error_class):
        """Test that timeouts and other transport failures raise ConnectorConnectionError."""
        from connector_client.client import ConnectorConnectionError

        def handler(request):
            raise error_class("stalled", request=request)

        async with make_client(handler) as client:
            with pytest.raises(ConnectorConnectionError, match="did not complete"):
                await client.execute(ExecutionRequest(input="x"))

    @pytest.mark.asyncio
    async def test_invalid_json(self):
        """Test that a non-JSON body raises ConnectorClientError."""
        from connector_client.client import ConnectorClientError

        def handler(request):
            return httpx.Response(200, text="<html>oops</html>")

        async with make_client(handler) as client:
            with pytest.raises(ConnectorClientError, match="invalid JSON"):
                await client.get_system_prompt()

    @pytest.mark.asyncio
    async def test_malformed_body(self):
        """Test that unexpected body shapes raise ConnectorClientError."""
        from connector_client.client import ConnectorClientError

        def handler(request):
            if request.url.path == "/execute":
                return httpx.Response(200, json={"output": ["not", "a", "string"]})
            return httpx.Response(200, json=["not", "an", "object"])

        async with make_client(handler) as client:
            with pytest.raises(ConnectorClientError, match="expected object"):
                await client.get_system_prompt()
            with pytest.raises(ConnectorClientError, match="Malformed execution"):
                await client.execute(ExecutionRequest(input="x"))

    @pytest.mark.asyncio
    async def test_health_check(self):
        """Test the health check endpoint."""
        def handler(request):
            assert request.url.path == "/health"
            return httpx.Response(200, json={"status": "ok"})

        async with make_client(handler) as client:
            assert await client.health_check() == {"status": "ok"}

    def test_from_settings(self):
        """Test building the client from settings."""
        from connector_client.client import HTTPConnectorClient
        from shared.config import ConnectorSettings

        settings = ConnectorSettings(
            base_url="http://connector.test/",
            api_key="k",
            connectors=["gmail", "slack"],
            timeout=5.0
        )
        client = HTTPConnectorClient.from_settings(settings)

        assert client.base_url == "http://connector.test"
        assert client.connectors == ["gmail", "slack"]
        assert client.timeout == 5.0


class TestStaticConnectorClient:
    """Tests for StaticConnectorClient."""

    @pytest.mark.asyncio
    async def test_records_executions(self):
        from connector_client.client import StaticConnectorClient

        client = StaticConnectorClient(system="sys", tools=["t"], output="out")

        bundle = await client.get_system_prompt()
        result = await client.execute(ExecutionRequest(input="in"))

        assert bundle.system == "sys"
        assert result.output == "out"
        assert client.executed[0].input == "in"
