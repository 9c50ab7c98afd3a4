"""
SSE (Server-Sent Events) transport for MCP communication.

This module implements the legacy MCP SSE transport pattern:
- GET <url> - Establishes the SSE stream, receives the message endpoint
- POST to endpoint - Sends JSON-RPC messages

Responses to POSTed requests arrive on the SSE stream and are matched
to their request by JSON-RPC id.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any
from urllib.parse import urljoin

import aiohttp

from .base import BaseTransport, timeout_seconds
from .http import SSE_CONTENT_TYPE, error_from_client_exception, iter_sse_events
from .models import MCPClientError, MCPError, MCPRequest, MCPResponse

logger = logging.getLogger(__name__)


class SSETransport(BaseTransport):
    """
    MCP SSE transport.

    Implements the legacy MCP SSE transport:
    1. GET the SSE URL to establish the stream
    2. Receive the message endpoint from the 'endpoint' event
    3. POST JSON-RPC messages to that endpoint, read replies from the stream
    """

    def __init__(self, url: str, headers: dict[str, str] | None = None, **options: Any):
        """
        Initialize SSE transport.

        Args:
            url: The SSE stream URL (e.g., "http://localhost:3001/sse")
            headers: Extra headers to attach to every request
            **options: Session options forwarded to BaseTransport
        """
        super().__init__(**options)
        self.url = url
        self.headers = dict(headers or {})
        self._session: aiohttp.ClientSession | None = None
        self._connected = False

        self._message_endpoint: str | None = None
        self._sse_task: asyncio.Task | None = None
        self._ready_event: asyncio.Event | None = None
        self._pending: dict[int | str, asyncio.Future[MCPResponse]] = {}
        self._connection_error: MCPError | None = None

    @property
    def is_connected(self) -> bool:
        return self._connected and self._message_endpoint is not None

    @property
    def message_endpoint(self) -> str | None:
        return self._message_endpoint

    def _fail(self, error: MCPError) -> None:
        """Record a stream failure and wake up everyone waiting on it."""
        if self._connection_error is None:
            self._connection_error = error
        if self._ready_event is not None:
            self._ready_event.set()
        for future in self._pending.values():
            if not future.done():
                future.set_result(MCPResponse.from_error(error))
        self._pending.clear()

    async def _sse_reader(self) -> None:
        """
        Background task that keeps the SSE connection alive and reads messages.

        The first 'endpoint' event provides the URL for posting JSON-RPC
        messages; every later JSON payload is routed to its pending request.
        """
        headers = {"Accept": SSE_CONTENT_TYPE}
        headers.update(self.headers)

        logger.info(f"Connecting to SSE endpoint: {self.url}")

        try:
            async with self._session.get(
                self.url,
                headers=headers,
                timeout=aiohttp.ClientTimeout(total=None),  # No timeout for SSE
            ) as response:
                if response.status != 200:
                    text = await response.text()
                    logger.error(f"SSE connection failed: HTTP {response.status}")
                    self._fail(
                        MCPError.connection_error(
                            f"HTTP {response.status}: {response.reason}",
                            data={"body": text[:500], "url": self.url},
                        )
                    )
                    return

                logger.info("SSE connection established, reading events...")

                async for event_type, data_str in iter_sse_events(response):
                    if event_type == "endpoint":
                        self._message_endpoint = urljoin(self.url, data_str.strip())
                        logger.info(f"Got message endpoint: {self._message_endpoint}")
                        self._ready_event.set()
                        continue

                    try:
                        data = json.loads(data_str)
                    except json.JSONDecodeError:
                        logger.debug(f"Non-JSON data: {data_str}")
                        continue

                    if not isinstance(data, dict):
                        continue
                    future = self._pending.pop(data.get("id"), None)
                    if future is not None and not future.done():
                        future.set_result(MCPResponse.from_jsonrpc(data))

                logger.warning("SSE stream ended unexpectedly")
                self._fail(MCPError.connection_error("SSE stream ended"))

        except asyncio.CancelledError:
            logger.debug("SSE reader cancelled")
            raise
        except aiohttp.ClientError as e:
            logger.error(f"SSE connection error: {e}")
            self._fail(error_from_client_exception(e, self.url))
        except Exception as e:
            logger.error(f"SSE reader failed: {e}")
            self._fail(MCPError.connection_error(f"SSE stream failed: {e}", data={"url": self.url}))

    async def connect(self) -> None:
        """
        Establish SSE connection and get message endpoint.

        This starts a background task to keep the SSE stream alive.

        Raises:
            MCPClientError: If the stream fails or no endpoint arrives in time
        """
        if self._session is None:
            self._session = aiohttp.ClientSession()

        self._ready_event = asyncio.Event()
        self._connection_error = None
        self._message_endpoint = None
        self._sse_task = asyncio.create_task(self._sse_reader())

        try:
            await asyncio.wait_for(self._ready_event.wait(), timeout=timeout_seconds(self.timeout_ms))
        except asyncio.TimeoutError:
            raise MCPClientError(
                MCPError.timeout_error(
                    "Timeout waiting for endpoint from SSE stream",
                    data={"url": self.url},
                )
            )

        if self._connection_error:
            raise MCPClientError(self._connection_error)

        if not self._message_endpoint:
            raise MCPClientError(MCPError.connection_error("Failed to get message endpoint from SSE stream"))

        self._connected = True
        logger.info(f"SSE transport connected, endpoint: {self._message_endpoint}")

    async def disconnect(self) -> None:
        """Close the SSE connection and HTTP session."""
        task, self._sse_task = self._sse_task, None
        try:
            if task:
                task.cancel()
                try:
                    await task
                except asyncio.CancelledError:
                    pass
        finally:
            if self._session:
                await self._session.close()
                self._session = None

        self._fail(MCPError.connection_error("Transport disconnected"))
        self._message_endpoint = None
        self._connected = False
        self._ready_event = None
        logger.info("SSE transport disconnected")

    async def _post(self, request: MCPRequest, timeout_ms: int) -> MCPResponse | None:
        """POST one message; returns an error response, or None when accepted."""
        headers = {"Content-Type": "application/json"}
        headers.update(self.headers)

        logger.debug(f"POST {self._message_endpoint} {request.method}")

        async with self._session.post(
            self._message_endpoint,
            json=request.to_dict(),
            headers=headers,
            timeout=aiohttp.ClientTimeout(total=timeout_seconds(timeout_ms)),
        ) as resp:
            if resp.status >= 300:
                text = await resp.text()
                logger.error(f"POST failed: HTTP {resp.status}: {text[:200]}")
                return MCPResponse.from_error(
                    MCPError.connection_error(
                        f"HTTP {resp.status}: {resp.reason}",
                        data={"body": text[:500]},
                    )
                )

            # Some servers answer inline instead of over the stream
            if "json" in resp.headers.get("Content-Type", "").lower():
                try:
                    data = json.loads(await resp.text())
                except json.JSONDecodeError:
                    return None
                if isinstance(data, dict) and ("result" in data or "error" in data):
                    return MCPResponse.from_jsonrpc(data)
            return None

    async def send(self, request: MCPRequest, timeout_ms: int | None = None) -> MCPResponse:
        """
        Send a JSON-RPC request via the message endpoint.

        Args:
            request: The MCP request to send
            timeout_ms: Timeout in milliseconds

        Returns:
            MCPResponse with result or error
        """
        timeout_ms = self.timeout_ms if timeout_ms is None else timeout_ms
        if not self.is_connected:
            return MCPResponse.from_error(
                MCPError.connection_error("SSE transport not connected. Call connect() first.")
            )

        future: asyncio.Future[MCPResponse] | None = None
        if not request.is_notification:
            future = asyncio.get_running_loop().create_future()
            self._pending[request.id] = future

        try:
            immediate = await self._post(request, timeout_ms)
            if immediate is not None or future is None:
                self._pending.pop(request.id, None)
                return immediate or MCPResponse(success=True)

            return await asyncio.wait_for(future, timeout=timeout_seconds(timeout_ms))

        except asyncio.TimeoutError:
            self._pending.pop(request.id, None)
            return MCPResponse.from_error(
                MCPError.timeout_error(
                    f"Request timed out after {timeout_ms}ms",
                    data={"url": self._message_endpoint, "method": request.method},
                )
            )
        except aiohttp.ClientError as e:
            self._pending.pop(request.id, None)
            return MCPResponse.from_error(error_from_client_exception(e, self._message_endpoint))

    async def notify(self, notification: MCPRequest) -> None:
        response = await self.send(notification)
        if not response.success:
            raise MCPClientError(response.error)

    def __repr__(self) -> str:
        status = "connected" if self.is_connected else "disconnected"
        endpoint = f", endpoint={self._message_endpoint}" if self._message_endpoint else ""
        return f"SSETransport(url={self.url!r}, status={status}{endpoint})"
