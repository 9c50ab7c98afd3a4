"""
MCP Transport Layer

This package provides the RPC client sessions used to talk to MCP servers
over the three supported connection mechanisms (STDIO pipes, Streamable
HTTP, legacy SSE). Each transport instance is a single session.

Usage:
    from mcp_tester.transport import StreamableHTTPTransport, ToolCallRequest

    transport = StreamableHTTPTransport(
        "http://localhost:8000/mcp",
        headers={"Authorization": "Bearer abc"},
    )

    async with transport:
        await transport.initialize()
        tools = await transport.list_tools()
        result = await transport.call_tool(ToolCallRequest(
            tool_name="search",
            arguments={"query": "hello"},
        ))
"""

# Transport implementations
from .base import BaseTransport, LATEST_PROTOCOL_VERSION
from .http import StreamableHTTPTransport
from .sse import SSETransport
from .stdio import STDIOTransport

# Models
from .models import (
    MCPClientError,
    MCPError,
    MCPErrorCode,
    MCPRequest,
    MCPResponse,
    ToolCallRequest,
)

__all__ = [
    # Base
    "BaseTransport",
    "LATEST_PROTOCOL_VERSION",
    # Implementations
    "StreamableHTTPTransport",
    "SSETransport",
    "STDIOTransport",
    # Models
    "MCPClientError",
    "MCPError",
    "MCPErrorCode",
    "MCPRequest",
    "MCPResponse",
    "ToolCallRequest",
]
