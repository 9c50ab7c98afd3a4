"""
Transport layer models for MCP communication.

This module defines the data structures for MCP JSON-RPC requests,
responses, and the error values raised by the RPC client sessions.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any


class MCPErrorCode(IntEnum):
    """Standard JSON-RPC 2.0 and MCP error codes."""
    # JSON-RPC 2.0 standard errors
    PARSE_ERROR = -32700
    INVALID_REQUEST = -32600
    METHOD_NOT_FOUND = -32601
    INVALID_PARAMS = -32602
    INTERNAL_ERROR = -32603

    # Transport-level errors (custom)
    CONNECTION_ERROR = -32000
    TIMEOUT_ERROR = -32001
    PROCESS_ERROR = -32002  # the server process could not be spawned
    EXECUTABLE_NOT_FOUND = -32003
    CONNECTION_REFUSED = -32004
    HTTP_ERROR = -32005  # network-level HTTP failure (DNS, reset, TLS...)


@dataclass
class MCPError:
    """Represents an MCP/JSON-RPC error."""
    code: int
    message: str
    data: Any = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MCPError:
        return cls(
            code=data.get("code", MCPErrorCode.INTERNAL_ERROR),
            message=data.get("message", "Unknown error"),
            data=data.get("data"),
        )

    @classmethod
    def connection_error(cls, message: str, data: Any = None) -> MCPError:
        return cls(MCPErrorCode.CONNECTION_ERROR, message, data)

    @classmethod
    def timeout_error(cls, message: str, data: Any = None) -> MCPError:
        return cls(MCPErrorCode.TIMEOUT_ERROR, message, data)

    @classmethod
    def process_error(cls, message: str, data: Any = None) -> MCPError:
        return cls(MCPErrorCode.PROCESS_ERROR, message, data)

    @classmethod
    def http_error(cls, message: str, data: Any = None) -> MCPError:
        return cls(MCPErrorCode.HTTP_ERROR, message, data)


class MCPClientError(Exception):
    """Raised by an RPC client session when a request or connection fails."""

    def __init__(self, error: MCPError):
        super().__init__(error.message)
        self.error = error

    @property
    def code(self) -> int:
        return self.error.code

    @property
    def data(self) -> Any:
        return self.error.data


@dataclass
class MCPRequest:
    """Represents an MCP JSON-RPC request (or a notification when id is None)."""
    method: str
    params: dict[str, Any] = field(default_factory=dict)
    id: int | str | None = None

    @property
    def is_notification(self) -> bool:
        return self.id is None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "jsonrpc": "2.0",
            "method": self.method,
            "params": self.params,
        }
        if self.id is not None:
            payload["id"] = self.id
        return payload


@dataclass
class MCPResponse:
    """Outcome of one request: a result, or the error that replaced it."""
    success: bool
    result: Any = None
    error: MCPError | None = None

    def unwrap(self) -> Any:
        """Return the result, raising MCPClientError for an error response."""
        if self.success:
            return self.result
        raise MCPClientError(self.error or MCPError(MCPErrorCode.INTERNAL_ERROR, "Unknown error"))

    @classmethod
    def from_jsonrpc(cls, data: dict[str, Any]) -> MCPResponse:
        """Parse a JSON-RPC 2.0 response object."""
        error = data.get("error")
        if error is not None:
            if not isinstance(error, dict):
                error = {"message": str(error)}
            return cls(success=False, error=MCPError.from_dict(error))
        return cls(success=True, result=data.get("result"))

    @classmethod
    def from_error(cls, error: MCPError) -> MCPResponse:
        return cls(success=False, error=error)


@dataclass
class ToolCallRequest:
    """A tools/call invocation and the time the caller is willing to wait for it."""
    tool_name: str
    arguments: Any = field(default_factory=dict)
    timeout_ms: int = 30000

    def to_mcp_request(self, request_id: int | str) -> MCPRequest:
        return MCPRequest(
            method="tools/call",
            params={"name": self.tool_name, "arguments": self.arguments},
            id=request_id,
        )
