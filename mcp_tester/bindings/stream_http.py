"""Streaming-HTTP binding (MCP Streamable HTTP transport)."""

from __future__ import annotations

from typing import Any

from ..config import Settings
from ..transport import BaseTransport, StreamableHTTPTransport
from .base import TransportFactory, call_tool_session, connect_session
from .models import ConnectionResult, ToolCallResult, TransportTag

HTTP_SCHEMES = ("http://", "https://")


def _default_factory(address: str, headers: dict[str, str], **options: Any) -> BaseTransport:
    return StreamableHTTPTransport(address, headers=headers, **options)


class StreamHttpBinding:
    """Talks to a remote server over Streamable HTTP, headers sent verbatim."""

    tag = TransportTag.STREAM_HTTP.value

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
        return f"StreamHttpBinding(tag={self.tag!r})"
