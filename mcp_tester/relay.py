"""
Relay handlers between a request body and the ConnectionManager.

These are the transport-agnostic halves of the connect / call-tool HTTP
routes: validate the body, run the operation under a deadline, and turn
the outcome into a (status, body) pair. The CLI uses them directly.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Awaitable, TypeVar

from .bindings import TransportError
from .manager import ConnectionManager

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class RelayResponse:
    """Status code plus JSON-serialisable body."""
    status: int
    body: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    @property
    def message(self) -> str | None:
        return self.body.get("message")


def _bad_request(message: str) -> RelayResponse:
    return RelayResponse(400, {"message": message})


def _headers_from(body: dict[str, Any]) -> dict[str, str] | None:
    headers = body.get("headers") or {}
    if not isinstance(headers, dict):
        return None
    if not all(isinstance(k, str) and isinstance(v, str) for k, v in headers.items()):
        return None
    return headers


async def _with_deadline(operation: Awaitable[T], timeout_ms: int | None) -> T:
    if not timeout_ms:
        return await operation
    return await asyncio.wait_for(operation, timeout=timeout_ms / 1000)


async def _run(operation: Awaitable[Any], timeout_ms: int) -> RelayResponse:
    try:
        result = await _with_deadline(operation, timeout_ms)
    except asyncio.TimeoutError:
        logger.error(f"Relay request timed out after {timeout_ms}ms")
        return RelayResponse(504, {"message": f"Request timed out after {timeout_ms}ms"})
    except TransportError as e:
        return RelayResponse(500, {"message": e.message, "category": e.category.value})
    return RelayResponse(200, result.to_dict())


async def handle_connect(
    manager: ConnectionManager,
    body: dict[str, Any],
    timeout_ms: int | None = None,
) -> RelayResponse:
    """
    Connect to the server described by body and list what it exposes.

    Body keys: url (required), transport, headers.
    """
    url = body.get("url")
    if not url:
        return _bad_request("Server URL is required")

    headers = _headers_from(body)
    if headers is None:
        return _bad_request("Headers must be an object of string values")

    if timeout_ms is None:
        timeout_ms = manager.settings.relay_timeout_ms
    return await _run(manager.connect(url, body.get("transport") or None, headers), timeout_ms)


async def handle_call_tool(
    manager: ConnectionManager,
    body: dict[str, Any],
    timeout_ms: int | None = None,
) -> RelayResponse:
    """
    Call one tool on the server described by body.

    Body keys: url and toolName (required), transport, headers, arguments.
    """
    url = body.get("url")
    tool_name = body.get("toolName")
    if not url or not tool_name:
        return _bad_request("Server URL and tool name are required")

    headers = _headers_from(body)
    if headers is None:
        return _bad_request("Headers must be an object of string values")

    arguments = body.get("arguments")
    if timeout_ms is None:
        timeout_ms = manager.settings.relay_timeout_ms
    return await _run(
        manager.call_tool(
            url,
            body.get("transport") or None,
            tool_name,
            {} if arguments is None else arguments,
            headers,
        ),
        timeout_ms,
    )
