"""Connector client - system prompt, tool descriptors and tool execution.

The client is stateless per call and reusable by the agent, the hosting
app and tests.
"""

from connector_client.client import (
    ConnectorAuthError,
    ConnectorClientError,
    ConnectorConnectionError,
    ConnectorExecutionClient,
    HTTPConnectorClient,
    StaticConnectorClient,
)

__all__ = [
    "ConnectorAuthError",
    "ConnectorClientError",
    "ConnectorConnectionError",
    "ConnectorExecutionClient",
    "HTTPConnectorClient",
    "StaticConnectorClient",
]
