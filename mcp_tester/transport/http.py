"""
Streamable HTTP transport for MCP communication.

This module implements the MCP Streamable HTTP transport, which supports:
- JSON-RPC 2.0 over HTTP POST
- Server-Sent Events (SSE) for streaming responses
- Session management via mcp-session-id header
"""

from __future__ import annotations

import asyncio
import errno
import json
import logging
from typing import Any

import aiohttp

from .base import BaseTransport, timeout_seconds
from .models import MCPClientError, MCPError, MCPErrorCode, MCPRequest, MCPResponse

logger = logging.getLogger(__name__)

# MCP Streamable HTTP headers
CONTENT_TYPE = "Content-Type"
ACCEPT = "Accept"
MCP_SESSION_ID = "mcp-session-id"
MCP_PROTOCOL_VERSION = "mcp-protocol-version"

# Content types
JSON_CONTENT_TYPE = "application/json"
SSE_CONTENT_TYPE = "text/event-stream"


def error_from_client_exception(exc: aiohttp.ClientError, url: str) -> MCPError:
    """Translate an aiohttp failure into an MCPError with a transport code."""
    os_error = getattr(exc, "os_error", None)
    if isinstance(os_error, ConnectionRefusedError) or getattr(os_error, "errno", None) == errno.ECONNREFUSED:
        return MCPError(
            MCPErrorCode.CONNECTION_REFUSED,
            f"Connection refused (ECONNREFUSED): {exc}",
            data={"url": url},
        )
    if isinstance(exc, aiohttp.ClientConnectorError):
        return MCPError.http_error(f"Connection failed: {exc}", data={"url": url})
    return MCPError.http_error(f"HTTP error: {exc}", data={"url": url})


async def iter_sse_events(response: aiohttp.ClientResponse):
    """
    Yield (event_type, data) pairs from an SSE response body.

    Multi-line data fields are joined with newlines; events without data
    are skipped.
    """
    event_type: str | None = None
    data_lines: list[str] = []

    async for raw in response.content:
        line = raw.decode("utf-8", errors="replace").rstrip("\r\n")

        if not line:
            if data_lines:
                yield event_type or "message", "\n".join(data_lines)
            event_type = None
            data_lines = []
            continue

        if line.startswith(":"):
            continue  # comment / keep-alive
        if line.startswith("event:"):
            event_type = line[6:].strip()
        elif line.startswith("data:"):
            data_lines.append(line[5:].lstrip())

    if data_lines:
        yield event_type or "message", "\n".join(data_lines)


class StreamableHTTPTransport(BaseTransport):
    """
    MCP Streamable HTTP transport.

    Implements the MCP Streamable HTTP transport protocol which supports:
    - HTTP POST with JSON-RPC 2.0 payloads
    - SSE (Server-Sent Events) for streaming responses
    - Session management via mcp-session-id header

    Caller-supplied headers are sent verbatim on every request and take
    precedence over the protocol headers.
    """

    def __init__(self, url: str, headers: dict[str, str] | None = None, **options: Any):
        """
        Initialize Streamable HTTP transport.

        Args:
            url: The MCP server endpoint URL (e.g., "http://localhost:8000/mcp")
            headers: Extra headers to attach to every request
            **options: Session options forwarded to BaseTransport
        """
        super().__init__(**options)
        self.url = url
        self.headers = dict(headers or {})
        self._session: aiohttp.ClientSession | None = None
        self._connected = False
        self._mcp_session_id: str | None = None
        self._negotiated_version: str | None = None

    @property
    def is_connected(self) -> bool:
        return self._connected and self._session is not None

    @property
    def session_id(self) -> str | None:
        """Get the current MCP session ID."""
        return self._mcp_session_id

    def _build_headers(self) -> dict[str, str]:
        """Build request headers for Streamable HTTP."""
        headers = {
            CONTENT_TYPE: JSON_CONTENT_TYPE,
            # Streamable HTTP servers may answer with either
            ACCEPT: f"{JSON_CONTENT_TYPE}, {SSE_CONTENT_TYPE}",
        }
        if self._mcp_session_id:
            headers[MCP_SESSION_ID] = self._mcp_session_id
        if self._negotiated_version:
            headers[MCP_PROTOCOL_VERSION] = self._negotiated_version
        headers.update(self.headers)
        return headers

    async def connect(self) -> None:
        """Create the HTTP session."""
        if self._session is None:
            self._session = aiohttp.ClientSession()
        self._connected = True

    async def disconnect(self) -> None:
        """Terminate the MCP session (best effort) and close the HTTP session."""
        if self._session:
            if self._mcp_session_id:
                await self._terminate_session()
            await self._session.close()
            self._session = None
        self._connected = False
        self._mcp_session_id = None
        self._negotiated_version = None

    async def _terminate_session(self) -> None:
        try:
            async with self._session.delete(
                self.url,
                headers=self._build_headers(),
                timeout=aiohttp.ClientTimeout(total=5),
            ) as resp:
                logger.debug(f"Session {self._mcp_session_id} terminated: HTTP {resp.status}")
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.debug(f"Could not terminate MCP session {self._mcp_session_id}: {e}")

    def _extract_session_id(self, response: aiohttp.ClientResponse) -> None:
        """Extract and store session ID from response headers."""
        session_id = response.headers.get(MCP_SESSION_ID)
        if session_id:
            if self._mcp_session_id != session_id:
                logger.info(f"MCP session ID: {session_id}")
            self._mcp_session_id = session_id

    def _handle_initialize_result(self, result: dict[str, Any]) -> None:
        """Extract protocol version from initialize response."""
        if "protocolVersion" in result:
            self._negotiated_version = str(result["protocolVersion"])
            logger.info(f"MCP protocol version: {self._negotiated_version}")

    async def _parse_sse_response(self, response: aiohttp.ClientResponse, request_id: Any) -> MCPResponse:
        """Read an SSE response stream until the reply to request_id arrives."""
        async for event_type, data_str in iter_sse_events(response):
            logger.debug(f"SSE event type: {event_type}")
            try:
                data = json.loads(data_str)
            except json.JSONDecodeError as e:
                logger.warning(f"Failed to parse SSE data: {e}")
                continue

            if not isinstance(data, dict) or not ("result" in data or "error" in data):
                continue  # server notification or request
            if data.get("id") == request_id:
                return MCPResponse.from_jsonrpc(data)

        return MCPResponse.from_error(
            MCPError.connection_error("SSE stream ended without a response")
        )

    async def _post(self, request: MCPRequest, timeout_ms: int) -> MCPResponse:
        timeout = aiohttp.ClientTimeout(total=timeout_seconds(timeout_ms))

        async with self._session.post(
            self.url,
            json=request.to_dict(),
            headers=self._build_headers(),
            timeout=timeout,
        ) as resp:
            self._extract_session_id(resp)

            if resp.status >= 300:
                text = await resp.text()
                return MCPResponse.from_error(
                    MCPError.connection_error(
                        f"HTTP {resp.status}: {resp.reason}",
                        data={"body": text[:500], "url": self.url},
                    )
                )

            if request.is_notification:
                return MCPResponse(success=True)

            content_type = resp.headers.get(CONTENT_TYPE, "").lower()
            if SSE_CONTENT_TYPE in content_type:
                logger.debug("Received SSE response")
                return await self._parse_sse_response(resp, request.id)

            text = await resp.text()
            try:
                data = json.loads(text)
            except json.JSONDecodeError as e:
                return MCPResponse.from_error(
                    MCPError(
                        code=MCPErrorCode.PARSE_ERROR,
                        message=f"Invalid JSON response: {e}",
                        data={"body": text[:500]},
                    )
                )
            return MCPResponse.from_jsonrpc(data)

    async def send(self, request: MCPRequest, timeout_ms: int | None = None) -> MCPResponse:
        """
        Send a JSON-RPC request over Streamable HTTP.

        Args:
            request: The MCP request to send
            timeout_ms: Timeout in milliseconds

        Returns:
            MCPResponse with result or error
        """
        timeout_ms = self.timeout_ms if timeout_ms is None else timeout_ms
        if not self.is_connected:
            return MCPResponse.from_error(
                MCPError.connection_error("Transport not connected. Call connect() first.")
            )

        try:
            return await self._post(request, timeout_ms)
        except asyncio.TimeoutError:
            return MCPResponse.from_error(
                MCPError.timeout_error(
                    f"Request timed out after {timeout_ms}ms",
                    data={"url": self.url, "method": request.method},
                )
            )
        except aiohttp.ClientError as e:
            return MCPResponse.from_error(error_from_client_exception(e, self.url))

    async def notify(self, notification: MCPRequest) -> None:
        response = await self.send(notification)
        if not response.success:
            raise MCPClientError(response.error)

    def __repr__(self) -> str:
        status = "connected" if self.is_connected else "disconnected"
        session = f", session={self._mcp_session_id}" if self._mcp_session_id else ""
        return f"StreamableHTTPTransport(url={self.url!r}, status={status}{session})"

