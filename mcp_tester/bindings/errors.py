"""
Error taxonomy for transport bindings.

Every failure that leaves a binding is converted into a TransportError
whose message is safe to show to an end user. Classification looks at
structured signals first (exception type, MCP error code) and then falls
back to matching well-known fragments of the failure message. Rules are
evaluated in a fixed priority order; the first match wins.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable

import aiohttp

from ..transport.models import MCPClientError, MCPErrorCode


class ErrorCategory(str, Enum):
    """User-facing failure classes."""
    EXECUTABLE_NOT_FOUND = "executable_not_found"
    SPAWN_FAILED = "spawn_failed"
    CONNECTION_REFUSED = "connection_refused"
    HTTP_FAILED = "http_failed"
    TOOL_NOT_FOUND = "tool_not_found"
    INVALID_ARGUMENTS = "invalid_arguments"
    UNSUPPORTED_TRANSPORT = "unsupported_transport"
    OTHER = "other"


class TransportError(Exception):
    """Base class for classified errors raised by the transport core."""

    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.OTHER):
        super().__init__(message)
        self.message = message
        self.category = category


class ConnectionFailedError(TransportError):
    """Opening a session or listing a server failed."""


class ToolCallError(TransportError):
    """A tool invocation failed."""

    def __init__(self, message: str, category: ErrorCategory = ErrorCategory.OTHER, tool_name: str = ""):
        super().__init__(message, category)
        self.tool_name = tool_name


class UnsupportedTransportError(TransportError):
    """No binding is registered for the requested tag or address."""

    def __init__(self, message: str):
        super().__init__(message, ErrorCategory.UNSUPPORTED_TRANSPORT)


def _code(exc: BaseException) -> int | None:
    return exc.code if isinstance(exc, MCPClientError) else None


def _mentions(exc: BaseException, *fragments: str) -> bool:
    message = str(exc).lower()
    return any(fragment.lower() in message for fragment in fragments)


@dataclass(frozen=True)
class _Rule:
    category: ErrorCategory
    matches: Callable[[BaseException], bool]
    message: str
    tool_call_only: bool = False


_RULES: tuple[_Rule, ...] = (
    _Rule(
        ErrorCategory.EXECUTABLE_NOT_FOUND,
        lambda e: (
            isinstance(e, FileNotFoundError)
            or _code(e) == MCPErrorCode.EXECUTABLE_NOT_FOUND
            or _mentions(e, "ENOENT")
        ),
        "MCP server executable not found. Please check the server path.",
    ),
    _Rule(
        ErrorCategory.SPAWN_FAILED,
        lambda e: _code(e) == MCPErrorCode.PROCESS_ERROR or _mentions(e, "spawn"),
        "Failed to start MCP server process. Please verify the command.",
    ),
    _Rule(
        ErrorCategory.CONNECTION_REFUSED,
        lambda e: (
            isinstance(e, ConnectionRefusedError)
            or _code(e) == MCPErrorCode.CONNECTION_REFUSED
            or _mentions(e, "ECONNREFUSED", "connection refused")
        ),
        "Connection refused. Please verify the server URL and ensure the server is running.",
    ),
    _Rule(
        ErrorCategory.HTTP_FAILED,
        lambda e: (
            isinstance(e, aiohttp.ClientError)
            or _code(e) == MCPErrorCode.HTTP_ERROR
            or _mentions(e, "fetch")
        ),
        "HTTP connection failed. Please check the URL and network connectivity.",
    ),
    _Rule(
        ErrorCategory.TOOL_NOT_FOUND,
        lambda e: _mentions(e, "tool not found", "unknown tool"),
        'Tool "{tool}" not found on the MCP server.',
        tool_call_only=True,
    ),
    _Rule(
        ErrorCategory.INVALID_ARGUMENTS,
        lambda e: _code(e) == MCPErrorCode.INVALID_PARAMS or _mentions(e, "invalid arguments"),
        'Invalid arguments provided for tool "{tool}".',
        tool_call_only=True,
    ),
)


def _classify(exc: BaseException, tool_name: str | None) -> tuple[ErrorCategory, str] | None:
    for rule in _RULES:
        if rule.tool_call_only and tool_name is None:
            continue
        if rule.matches(exc):
            return rule.category, rule.message.format(tool=tool_name)
    return None


def classify_connection_error(exc: BaseException) -> TransportError:
    """Map a failure raised while connecting/listing to a user-facing error."""
    if isinstance(exc, TransportError):
        return exc
    match = _classify(exc, None)
    if match is None:
        return ConnectionFailedError(f"Connection failed: {exc}")
    category, message = match
    return ConnectionFailedError(message, category)


def classify_tool_call_error(exc: BaseException, tool_name: str) -> TransportError:
    """Map a failure raised while calling tool_name to a user-facing error."""
    if isinstance(exc, TransportError):
        return exc
    match = _classify(exc, tool_name)
    if match is None:
        return ToolCallError(f"Tool call failed: {exc}", tool_name=tool_name)
    category, message = match
    return ToolCallError(message, category, tool_name=tool_name)
