"""Tests for the relay handlers (status codes and bodies)."""

import asyncio
from unittest.mock import AsyncMock

import pytest

from mcp_tester import (
    ConnectionFailedError,
    ConnectionManager,
    ConnectionResult,
    ErrorCategory,
    Settings,
    StreamHttpBinding,
    ToolCallResult,
    ToolDescriptor,
    handle_call_tool,
    handle_connect,
)
from mcp_tester.transport import MCPError, MCPErrorCode


def manager_with(connect=None, call_tool=None, settings=None):
    manager = ConnectionManager(settings=settings)
    manager.connect = AsyncMock(return_value=connect or ConnectionResult())
    manager.call_tool = AsyncMock(return_value=call_tool or ToolCallResult())
    return manager


@pytest.mark.asyncio
async def test_connect_requires_url():
    manager = manager_with()

    response = await handle_connect(manager, {"transport": "streamHttp"})

    assert response.status == 400
    assert response.message == "Server URL is required"
    manager.connect.assert_not_awaited()


@pytest.mark.asyncio
async def test_connect_rejects_non_string_headers():
    response = await handle_connect(manager_with(), {"url": "https://x/mcp", "headers": {"X-Retry": 3}})

    assert response.status == 400


@pytest.mark.asyncio
async def test_connect_success_body():
    result = ConnectionResult(tools=[ToolDescriptor("echo", "Echo text", {"type": "object"})])
    manager = manager_with(connect=result)

    response = await handle_connect(
        manager,
        {"url": "https://x/mcp", "transport": "streamHttp", "headers": {"Authorization": "Bearer abc"}},
    )

    assert response.ok
    assert response.status == 200
    assert response.body == result.to_dict()
    manager.connect.assert_awaited_once_with("https://x/mcp", "streamHttp", {"Authorization": "Bearer abc"})


@pytest.mark.asyncio
async def test_connect_empty_transport_means_infer():
    manager = manager_with()

    await handle_connect(manager, {"url": "proc://server", "transport": ""})

    manager.connect.assert_awaited_once_with("proc://server", None, {})


@pytest.mark.asyncio
async def test_transport_error_becomes_500():
    manager = manager_with()
    manager.connect.side_effect = ConnectionFailedError(
        "Connection refused. Please verify the server URL and ensure the server is running.",
        ErrorCategory.CONNECTION_REFUSED,
    )

    response = await handle_connect(manager, {"url": "http://127.0.0.1:1/mcp"})

    assert response.status == 500
    assert response.message.startswith("Connection refused")
    assert response.body["category"] == "connection_refused"


@pytest.mark.asyncio
async def test_unknown_transport_becomes_500():
    response = await handle_connect(ConnectionManager(), {"url": "https://x/mcp", "transport": "bogus"})

    assert response.status == 500
    assert response.message == "Unsupported transport: bogus"


@pytest.mark.asyncio
async def test_deadline_becomes_504():
    async def hang(*args, **kwargs):
        await asyncio.sleep(10)

    manager = manager_with()
    manager.connect.side_effect = hang

    response = await handle_connect(manager, {"url": "https://slow/mcp"}, timeout_ms=50)

    assert response.status == 504
    assert response.message == "Request timed out after 50ms"


@pytest.mark.asyncio
async def test_deadline_defaults_to_settings():
    async def hang(*args, **kwargs):
        await asyncio.sleep(10)

    manager = manager_with(settings=Settings(relay_timeout_ms=20))
    manager.call_tool.side_effect = hang

    response = await handle_call_tool(manager, {"url": "https://slow/mcp", "toolName": "x"})

    assert response.status == 504
    assert response.message == "Request timed out after 20ms"


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [{"url": "https://x/mcp"}, {"toolName": "echo"}, {}])
async def test_call_tool_requires_url_and_tool(body):
    response = await handle_call_tool(manager_with(), body)

    assert response.status == 400
    assert response.message == "Server URL and tool name are required"


@pytest.mark.asyncio
async def test_call_tool_success_body(make_transport, make_factory):
    payload = {"content": [{"type": "text", "text": "sunny"}]}
    binding = StreamHttpBinding(transport_factory=make_factory(make_transport(call_result=payload)))
    manager = ConnectionManager(bindings=[binding])

    response = await handle_call_tool(
        manager,
        {"url": "https://x/mcp", "transport": "streamHttp", "toolName": "get_weather",
         "arguments": {"location": "Paris"}},
    )

    assert response.status == 200
    assert response.body == payload


@pytest.mark.asyncio
async def test_call_tool_missing_arguments_sent_as_empty_object():
    manager = manager_with()

    await handle_call_tool(manager, {"url": "https://x/mcp", "toolName": "ping"})

    manager.call_tool.assert_awaited_once_with("https://x/mcp", None, "ping", {}, {})


@pytest.mark.asyncio
async def test_call_tool_not_found_message(make_transport, make_factory):
    transport = make_transport(call_error=MCPError(MCPErrorCode.METHOD_NOT_FOUND, "Tool not found: nope"))
    manager = ConnectionManager(bindings=[StreamHttpBinding(transport_factory=make_factory(transport))])

    response = await handle_call_tool(manager, {"url": "https://x/mcp", "toolName": "nope"})

    assert response.status == 500
    assert response.message == 'Tool "nope" not found on the MCP server.'
