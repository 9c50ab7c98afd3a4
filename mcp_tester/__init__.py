"""
mcp-tester - MCP Server Registry and Interactive Tester

This package connects to MCP servers over local process pipes, Streamable
HTTP or legacy SSE, lists what they expose and invokes their tools.

Subpackages:
    - transport: RPC client sessions (STDIO, Streamable HTTP, SSE)
    - bindings: per-transport connect/call_tool bindings and error taxonomy
    - registry: YAML endpoint registry

Usage:
    from mcp_tester import ConnectionManager

    manager = ConnectionManager()

    result = await manager.connect("https://example.com/mcp", "streamHttp",
                                   {"Authorization": "Bearer abc"})
    for tool in result.tools:
        print(tool.name, tool.description)

    answer = await manager.call_tool("proc://python -m my_server", None,
                                     "echo", {"text": "hi"})
    print(answer.text)
"""

__version__ = "0.1.0"

# Re-export bindings for convenience
from .bindings import (
    # Contract
    TransportBinding,
    # Implementations
    ProcessBinding,
    StreamHttpBinding,
    EventHttpBinding,
    parse_process_address,
    # Errors
    TransportError,
    ConnectionFailedError,
    ToolCallError,
    UnsupportedTransportError,
    ErrorCategory,
    # Models
    TransportTag,
    EndpointDescriptor,
    ToolDescriptor,
    ResourceDescriptor,
    ConnectionResult,
    ContentItem,
    ToolCallResult,
    DEFAULT_CAPABILITIES,
)

from .config import Settings
from .manager import ConnectionManager, default_bindings

# Re-export relay for convenience
from .relay import RelayResponse, handle_call_tool, handle_connect

# Re-export registry for convenience
from .registry import (
    EndpointRecord,
    Registry,
    RegistryError,
    load_registry,
    validate_registry_yaml,
)

__all__ = [
    # Package info
    "__version__",
    # Manager
    "ConnectionManager",
    "default_bindings",
    "Settings",
    # Bindings - Contract
    "TransportBinding",
    # Bindings - Implementations
    "ProcessBinding",
    "StreamHttpBinding",
    "EventHttpBinding",
    "parse_process_address",
    # Bindings - Errors
    "TransportError",
    "ConnectionFailedError",
    "ToolCallError",
    "UnsupportedTransportError",
    "ErrorCategory",
    # Bindings - Models
    "TransportTag",
    "EndpointDescriptor",
    "ToolDescriptor",
    "ResourceDescriptor",
    "ConnectionResult",
    "ContentItem",
    "ToolCallResult",
    "DEFAULT_CAPABILITIES",
    # Relay
    "RelayResponse",
    "handle_connect",
    "handle_call_tool",
    # Registry
    "EndpointRecord",
    "Registry",
    "RegistryError",
    "load_registry",
    "validate_registry_yaml",
]
