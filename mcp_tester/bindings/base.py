"""
Shared contract and session handling for transport bindings.

A binding turns an address (plus headers) into one short-lived RPC client
session, runs a single operation on it and always closes it before
returning. The session-driving logic lives here so each binding only has
to say how to build its transport.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Protocol, runtime_checkable

from ..config import Settings
from ..transport import BaseTransport, ToolCallRequest
from .errors import classify_connection_error, classify_tool_call_error
from .models import (
    ConnectionResult,
    ResourceDescriptor,
    ToolCallResult,
    ToolDescriptor,
    default_capabilities,
)

logger = logging.getLogger(__name__)

# Builds the session for (address, headers) with the given session options.
TransportFactory = Callable[..., BaseTransport]


@runtime_checkable
class TransportBinding(Protocol):
    """The capability set every binding implements."""

    tag: str

    def supports_protocol(self, address: str) -> bool:
        ...

    async def connect(self, address: str, headers: dict[str, str] | None = None) -> ConnectionResult:
        ...

    async def call_tool(
        self,
        address: str,
        tool_name: str,
        arguments: Any = None,
        headers: dict[str, str] | None = None,
    ) -> ToolCallResult:
        ...


@asynccontextmanager
async def open_session(transport: BaseTransport) -> AsyncIterator[BaseTransport]:
    """
    Connect and initialize transport, yield it, and always disconnect.

    Disconnect runs exactly once on every exit path, including a failed
    connect. A failure while disconnecting is logged and never replaces
    the error that ended the session.
    """
    try:
        await transport.connect()
        await transport.initialize()
        yield transport
    finally:
        try:
            await transport.disconnect()
        except Exception as e:
            logger.warning(f"Error closing {transport!r}: {e}")


async def _safe_list(label: str, fetch: Callable, convert: Callable) -> list:
    try:
        raw = await fetch()
    except Exception as e:
        logger.error(f"Error listing {label}: {e}")
        return []

    items = []
    for entry in raw:
        try:
            items.append(convert(entry))
        except (KeyError, TypeError, AttributeError) as e:
            logger.warning(f"Skipping malformed entry in {label} list: {entry!r} ({e!r})")
    return items


async def connect_session(build: Callable[[], BaseTransport], settings: Settings) -> ConnectionResult:
    """
    Open a session, list tools and resources concurrently, close it.

    Listing failures degrade to empty lists; only failing to establish the
    session raises, as a classified TransportError.
    """
    try:
        async with open_session(build()) as session:
            tools, resources = await asyncio.gather(
                _safe_list("tools", session.list_tools, ToolDescriptor.from_dict),
                _safe_list("resources", session.list_resources, ResourceDescriptor.from_dict),
            )
            reported = session.server_capabilities
    except Exception as e:
        raise classify_connection_error(e) from e

    if settings.static_capabilities or not reported:
        capabilities = default_capabilities()
    else:
        capabilities = dict(reported)

    logger.info(f"Listed {len(tools)} tool(s) and {len(resources)} resource(s)")
    return ConnectionResult(tools=tools, resources=resources, capabilities=capabilities)


async def call_tool_session(
    build: Callable[[], BaseTransport],
    settings: Settings,
    tool_name: str,
    arguments: Any,
) -> ToolCallResult:
    """Open a session, issue exactly one tools/call, close it."""
    request = ToolCallRequest(
        tool_name=tool_name,
        arguments={} if arguments is None else arguments,
        timeout_ms=settings.request_timeout_ms,
    )
    try:
        async with open_session(build()) as session:
            raw = await session.call_tool(request)
            return ToolCallResult.from_dict(raw)
    except Exception as e:
        raise classify_tool_call_error(e, tool_name) from e
