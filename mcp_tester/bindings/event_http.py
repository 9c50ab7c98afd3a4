"""
Event-stream HTTP binding (legacy MCP SSE transport).

Its addresses are plain http(s) URLs, indistinguishable from streaming-HTTP
ones, so this binding is only ever selected by its explicit tag.
"""

from __future__ import annotations

from typing import Any

from ..config import Settings
from ..transport import BaseTransport, SSETransport
from .base import TransportFactory, call_tool_session, connect_session
from .models import ConnectionResult, ToolCallResult, TransportTag
from .stream_http import HTTP_SCHEMES


def _default_factory(address: str, headers: dict[str, str], **options: Any) -> BaseTransport:
    return SSETransport(address, headers=headers, **options)


class EventHttpBinding:
    """Talks to a remote server over the legacy SSE transport."""

    tag = TransportTag.EVENT_HTTP.value

    def __init__(self, settings: Settings | None = None, transport_factory: TransportFactory | None = None):
        self.settings = settings or Settings()
        self._factory = transport_factory or _default_factory

    def supports_protocol(self, address: str) -> bool:
        return address.startswith(HTTP_SCHEMES)

    def _builder(self, address: str, headers: dict[str, str] | None):
        return lambda: self._factory(address, dict(headers or {}), **self.settings.session_options())

    async def connect(self, address: str, headers: dict[str, str] | None = None) -> ConnectionResult:
        return await connect_session(self._builder(address, headers), self.settings)

    async def call_tool(
        self,
        address: str,
        tool_name: str,
        arguments: Any = None,
        headers: dict[str, str] | None = None,
    ) -> ToolCallResult:
        return await call_tool_session(self._builder(address, headers), self.settings, tool_name, arguments)

    def __repr__(self) -> str:
        return f"EventHttpBinding(tag={self.tag!r})"
