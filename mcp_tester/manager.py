"""
Connection manager: the single entry point used by the relay layer.

Holds the registered transport bindings keyed by transport tag, resolves
a binding for each request (explicit tag, or legacy inference from the
address scheme) and delegates one call to it. The manager keeps no
per-request state and never retries.
"""

from __future__ import annotations

import logging
from typing import Any

from .bindings import (
    ConnectionResult,
    EventHttpBinding,
    ProcessBinding,
    StreamHttpBinding,
    ToolCallResult,
    TransportBinding,
    TransportTag,
    UnsupportedTransportError,
    classify_connection_error,
    classify_tool_call_error,
    tag_key,
)
from .config import Settings

logger = logging.getLogger(__name__)


def default_bindings(settings: Settings | None = None) -> list[TransportBinding]:
    """The built-in bindings, in legacy inference order."""
    return [
        ProcessBinding(settings),
        StreamHttpBinding(settings),
        EventHttpBinding(settings),
    ]


class ConnectionManager:
    """
    Registry of transport bindings plus the connect/call_tool surface.

    Example:
        manager = ConnectionManager()
        result = await manager.connect("https://example.com/mcp", "streamHttp")
        weather = await manager.call_tool(
            "https://example.com/mcp", "streamHttp", "get_weather", {"location": "Paris"}
        )
    """

    def __init__(
        self,
        bindings: list[TransportBinding] | None = None,
        settings: Settings | None = None,
    ):
        self.settings = settings or Settings()
        self._bindings: dict[str, TransportBinding] = {}
        if bindings is None:
            bindings = default_bindings(self.settings)
        for binding in bindings:
            self.register(binding)

    # ── administration ──────────────────────────────────────────────────

    def register(self, binding: TransportBinding, tag: TransportTag | str | None = None) -> None:
        """Register binding under tag (defaults to binding.tag), replacing any previous one."""
        key = tag_key(tag if tag is not None else binding.tag)
        if key in self._bindings:
            logger.info(f"Replacing transport binding for tag '{key}'")
        self._bindings[key] = binding

    def available_transports(self) -> list[TransportBinding]:
        """Snapshot of the registered bindings, in registration order."""
        return list(self._bindings.values())

    def registered_tags(self) -> list[str]:
        return list(self._bindings)

    # ── resolution ──────────────────────────────────────────────────────

    def get_transport(self, tag: TransportTag | str) -> TransportBinding:
        """Return the binding registered for tag."""
        key = tag_key(tag)
        try:
            return self._bindings[key]
        except KeyError:
            raise UnsupportedTransportError(f"Unsupported transport: {key}") from None

    def infer_tag(self, address: str) -> str:
        """
        Infer a transport tag from the address scheme (legacy records).

        http(s) addresses resolve to the streaming-HTTP binding; the
        event-stream binding shares that scheme and is only reachable by
        explicit tag.
        """
        for key, binding in self._bindings.items():
            if key == TransportTag.EVENT_HTTP.value:
                continue
            if binding.supports_protocol(address):
                return key
        raise UnsupportedTransportError(f"Unsupported protocol for URL: {address}")

    def resolve(self, address: str, tag: TransportTag | str | None = None) -> TransportBinding:
        if tag is None or tag == "":
            tag = self.infer_tag(address)
        return self.get_transport(tag)

    # ── request surface ─────────────────────────────────────────────────

    async def connect(
        self,
        address: str,
        transport: TransportTag | str | None = None,
        headers: dict[str, str] | None = None,
    ) -> ConnectionResult:
        """List the tools and resources of the server at address."""
        try:
            binding = self.resolve(address, transport)
            return await binding.connect(address, headers or {})
        except Exception as e:
            logger.error(f"MCP connection error for {address}: {e}")
            error = classify_connection_error(e)
            if error is e:
                raise
            raise error from e

    async def call_tool(
        self,
        address: str,
        transport: TransportTag | str | None,
        tool_name: str,
        arguments: Any = None,
        headers: dict[str, str] | None = None,
    ) -> ToolCallResult:
        """Invoke tool_name on the server at address."""
        try:
            binding = self.resolve(address, transport)
            return await binding.call_tool(
                address,
                tool_name,
                {} if arguments is None else arguments,
                headers or {},
            )
        except Exception as e:
            logger.error(f"MCP tool call error for {tool_name} at {address}: {e}")
            error = classify_tool_call_error(e, tool_name)
            if error is e:
                raise
            raise error from e

    def __repr__(self) -> str:
        return f"ConnectionManager(transports={self.registered_tags()!r})"
