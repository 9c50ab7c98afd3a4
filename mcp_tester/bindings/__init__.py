"""
Transport bindings

One binding per connection mechanism, all implementing the same
TransportBinding contract (supports_protocol / connect / call_tool):

    - ProcessBinding      proc://<executable> <args...>   (tag: process)
    - StreamHttpBinding   http(s)://...                   (tag: streamHttp)
    - EventHttpBinding    http(s)://...                   (tag: eventHttp)
"""

from .base import TransportBinding, TransportFactory, open_session
from .errors import (
    ConnectionFailedError,
    ErrorCategory,
    ToolCallError,
    TransportError,
    UnsupportedTransportError,
    classify_connection_error,
    classify_tool_call_error,
)
from .event_http import EventHttpBinding
from .models import (
    DEFAULT_CAPABILITIES,
    ConnectionResult,
    ContentItem,
    EndpointDescriptor,
    ResourceDescriptor,
    ToolCallResult,
    ToolDescriptor,
    TransportTag,
    tag_key,
)
from .process import PROCESS_SCHEME, ProcessBinding, parse_process_address
from .stream_http import StreamHttpBinding

__all__ = [
    # Contract
    "TransportBinding",
    "TransportFactory",
    "open_session",
    # Implementations
    "ProcessBinding",
    "StreamHttpBinding",
    "EventHttpBinding",
    "PROCESS_SCHEME",
    "parse_process_address",
    # Errors
    "TransportError",
    "ConnectionFailedError",
    "ToolCallError",
    "UnsupportedTransportError",
    "ErrorCategory",
    "classify_connection_error",
    "classify_tool_call_error",
    # Models
    "TransportTag",
    "tag_key",
    "EndpointDescriptor",
    "ToolDescriptor",
    "ResourceDescriptor",
    "ConnectionResult",
    "ContentItem",
    "ToolCallResult",
    "DEFAULT_CAPABILITIES",
]
