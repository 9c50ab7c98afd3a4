"""
Base transport interface for MCP communication.

This module defines the abstract base class that all RPC client sessions
implement, plus the protocol-level requests shared by every transport
(initialize handshake, tools/resources listing, tool calls).
"""

from __future__ import annotations

import itertools
import logging
from abc import ABC, abstractmethod
from typing import Any

from .models import MCPRequest, MCPResponse, ToolCallRequest

logger = logging.getLogger(__name__)

LATEST_PROTOCOL_VERSION = "2025-03-26"
DEFAULT_TIMEOUT_MS = 30000


def timeout_seconds(timeout_ms: int | None) -> float | None:
    """Convert a millisecond timeout to seconds; 0 or None means wait indefinitely."""
    return timeout_ms / 1000 if timeout_ms else None


class BaseTransport(ABC):
    """
    Abstract base class for MCP transports.

    Transports handle the low-level communication with MCP servers,
    whether over STDIO pipes, Streamable HTTP or legacy SSE. A transport
    instance is one session: connect, initialize, issue requests, disconnect.
    """

    def __init__(
        self,
        *,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        client_name: str = "mcp-tester-client",
        client_version: str = "1.0.0",
        protocol_version: str = LATEST_PROTOCOL_VERSION,
    ):
        self.timeout_ms = timeout_ms
        self.client_name = client_name
        self.client_version = client_version
        self.protocol_version = protocol_version
        self.server_info: dict[str, Any] = {}
        self.server_capabilities: dict[str, Any] | None = None
        self._ids = itertools.count(1)

    @abstractmethod
    async def connect(self) -> None:
        """
        Establish connection to the MCP server.

        For HTTP this opens the client session, for SSE it also waits for
        the message endpoint, for STDIO it spawns the subprocess.
        Raises MCPClientError when the connection cannot be established.
        """

    @abstractmethod
    async def disconnect(self) -> None:
        """
        Close the connection to the MCP server.

        Must be safe to call more than once and after a failed connect().
        """

    @abstractmethod
    async def send(self, request: MCPRequest, timeout_ms: int | None = None) -> MCPResponse:
        """
        Send a raw MCP JSON-RPC request and get the response.

        Args:
            request: The MCP request to send
            timeout_ms: Timeout in milliseconds (defaults to the session timeout)

        Returns:
            MCPResponse with either result or error
        """

    @abstractmethod
    async def notify(self, notification: MCPRequest) -> None:
        """Send a JSON-RPC notification (no response expected)."""

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """Return True if the transport is currently connected."""

    def next_request_id(self) -> int:
        return next(self._ids)

    async def request(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        timeout_ms: int | None = None,
    ) -> Any:
        """
        Send a request with a fresh id and return its result.

        Raises:
            MCPClientError: If the server or the transport reported an error
        """
        mcp_request = MCPRequest(method=method, params=params or {}, id=self.next_request_id())
        response = await self.send(mcp_request, timeout_ms=timeout_ms)
        return response.unwrap()

    async def initialize(self) -> dict[str, Any]:
        """
        Perform the MCP initialize handshake.

        Records the server info and advertised capabilities, then sends
        the notifications/initialized notification.
        """
        result = await self.request(
            "initialize",
            {
                "protocolVersion": self.protocol_version,
                "capabilities": {},
                "clientInfo": {
                    "name": self.client_name,
                    "version": self.client_version,
                },
            },
        )
        result = result or {}
        self.server_info = result.get("serverInfo") or {}
        self.server_capabilities = result.get("capabilities")
        self._handle_initialize_result(result)
        logger.debug(
            f"Initialized session with {self.server_info.get('name', '?')} "
            f"v{self.server_info.get('version', '?')}"
        )
        await self.notify(MCPRequest(method="notifications/initialized", id=None))
        return result

    def _handle_initialize_result(self, result: dict[str, Any]) -> None:
        """Hook for transports that need data from the handshake."""

    async def _list_paginated(self, method: str, key: str) -> list[dict[str, Any]]:
        items: list[dict[str, Any]] = []
        cursor: str | None = None
        while True:
            params = {"cursor": cursor} if cursor else {}
            result = await self.request(method, params) or {}
            items.extend(result.get(key) or [])
            cursor = result.get("nextCursor")
            if not cursor:
                return items

    async def list_tools(self) -> list[dict[str, Any]]:
        """Request every tool the server exposes, following pagination cursors."""
        return await self._list_paginated("tools/list", "tools")

    async def list_resources(self) -> list[dict[str, Any]]:
        """Request every resource the server exposes, following pagination cursors."""
        return await self._list_paginated("resources/list", "resources")

    async def call_tool(self, request: ToolCallRequest) -> dict[str, Any]:
        """
        High-level method to call an MCP tool.

        Returns:
            The raw tools/call result (content, isError, ...)

        Raises:
            MCPClientError: If the call failed at the protocol or transport level
        """
        mcp_request = request.to_mcp_request(request_id=self.next_request_id())
        response = await self.send(mcp_request, timeout_ms=request.timeout_ms)
        return response.unwrap() or {}

    async def __aenter__(self) -> BaseTransport:
        """Async context manager entry."""
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Async context manager exit."""
        await self.disconnect()
