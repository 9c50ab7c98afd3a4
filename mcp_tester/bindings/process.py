"""
Process-pipe binding: runs a local MCP server executable over STDIO.

Addresses look like ``proc://<executable> <arg> <arg>...``. The part after
the scheme is split on whitespace; there is no shell interpretation and no
quoting, so an argument cannot contain a space.
"""

from __future__ import annotations

from typing import Any

from ..config import Settings
from ..transport import BaseTransport, STDIOTransport
from .base import TransportFactory, call_tool_session, connect_session
from .models import ConnectionResult, ToolCallResult, TransportTag

PROCESS_SCHEME = "proc://"
# Prefix written by earlier versions of the registry.
LEGACY_PROCESS_SCHEME = "stdio://"
PROCESS_SCHEMES = (PROCESS_SCHEME, LEGACY_PROCESS_SCHEME)


def parse_process_address(address: str) -> tuple[str, list[str]]:
    """
    Split a process address into (executable, args).

    >>> parse_process_address("proc://echo hello world")
    ('echo', ['hello', 'world'])

    Raises:
        ValueError: If the address has no executable after the scheme
    """
    command = address
    for scheme in PROCESS_SCHEMES:
        if address.startswith(scheme):
            command = address[len(scheme):]
            break
    parts = command.split()
    if not parts:
        raise ValueError(f"No executable in process address: {address!r}")
    return parts[0], parts[1:]


def _default_factory(address: str, headers: dict[str, str], **options: Any) -> BaseTransport:
    executable, args = parse_process_address(address)
    return STDIOTransport(command=executable, args=args, **options)


class ProcessBinding:
    """Runs the server as a child process and talks to it over its pipes."""

    tag = TransportTag.PROCESS.value

    def __init__(self, settings: Settings | None = None, transport_factory: TransportFactory | None = None):
        self.settings = settings or Settings()
        self._factory = transport_factory or _default_factory

    def supports_protocol(self, address: str) -> bool:
        return address.startswith(PROCESS_SCHEMES)

    def _builder(self, address: str):
        # Headers have no meaning for a local process.
        return lambda: self._factory(address, {}, **self.settings.session_options())

    async def connect(self, address: str, headers: dict[str, str] | None = None) -> ConnectionResult:
        return await connect_session(self._builder(address), self.settings)

    async def call_tool(
        self,
        address: str,
        tool_name: str,
        arguments: Any = None,
        headers: dict[str, str] | None = None,
    ) -> ToolCallResult:
        return await call_tool_session(self._builder(address), self.settings, tool_name, arguments)

    def __repr__(self) -> str:
        return f"ProcessBinding(tag={self.tag!r})"
