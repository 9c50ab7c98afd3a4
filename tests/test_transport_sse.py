"""Tests for the legacy SSE transport against an in-process aiohttp server."""

import asyncio
import json

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from mcp_tester import ConnectionManager, EventHttpBinding
from mcp_tester.transport import MCPClientError, SSETransport


class FakeSSEServer:
    """
    Legacy SSE MCP server: GET /sse opens the stream and announces the
    message endpoint, POST /messages accepts requests and answers on the stream.
    """

    def __init__(self, inline_replies=False):
        self.inline_replies = inline_replies
        self.queues = {}
        self.stream_headers = []
        self.post_headers = []

    def app(self):
        app = web.Application()
        app.router.add_get("/sse", self.stream)
        app.router.add_post("/messages", self.messages)
        return app

    async def stream(self, request):
        self.stream_headers.append(request.headers)
        session = f"s{len(self.queues) + 1}"
        queue = asyncio.Queue()
        self.queues[session] = queue

        response = web.StreamResponse(headers={"Content-Type": "text/event-stream"})
        await response.prepare(request)
        await response.write(f"event: endpoint\ndata: /messages?session_id={session}\n\n".encode())
        await response.write(b": keep-alive\n\n")

        while request.transport is not None and not request.transport.is_closing():
            try:
                message = await asyncio.wait_for(queue.get(), timeout=0.05)
            except asyncio.TimeoutError:
                continue
            await response.write(f"event: message\ndata: {json.dumps(message)}\n\n".encode())
        return response

    def reply(self, payload):
        method = payload["method"]
        params = payload.get("params") or {}
        if method == "initialize":
            result = {
                "protocolVersion": params["protocolVersion"],
                "capabilities": {"tools": {"listChanged": False}},
                "serverInfo": {"name": "fake-sse", "version": "1.0"},
            }
        elif method == "tools/list":
            result = {"tools": [{"name": "echo", "description": "Echo text", "inputSchema": {"type": "object"}}]}
        elif method == "resources/list":
            result = {"resources": [{"uri": "mem://greeting", "name": "greeting"}]}
        elif method == "tools/call":
            result = {"content": [{"type": "text", "text": params["arguments"]["text"]}]}
        else:
            return {"jsonrpc": "2.0", "id": payload["id"], "error": {"code": -32601, "message": "Method not found"}}
        return {"jsonrpc": "2.0", "id": payload["id"], "result": result}

    async def messages(self, request):
        self.post_headers.append(request.headers)
        payload = await request.json()
        if "id" not in payload:
            return web.Response(status=202, text="Accepted")
        if self.inline_replies:
            return web.json_response(self.reply(payload))
        await self.queues[request.query["session_id"]].put(self.reply(payload))
        return web.Response(status=202, text="Accepted")


@pytest.mark.asyncio
async def test_connect_over_event_stream():
    server = FakeSSEServer()
    async with TestServer(server.app()) as test_server:
        url = str(test_server.make_url("/sse"))
        result = await EventHttpBinding().connect(url, {"Authorization": "Bearer abc"})

    assert [t.name for t in result.tools] == ["echo"]
    assert [r.uri for r in result.resources] == ["mem://greeting"]
    assert result.capabilities == {"tools": {"listChanged": False}}
    assert server.stream_headers[0]["Authorization"] == "Bearer abc"
    assert server.stream_headers[0]["Accept"] == "text/event-stream"
    assert all(h["Authorization"] == "Bearer abc" for h in server.post_headers)


@pytest.mark.asyncio
async def test_endpoint_is_resolved_against_stream_url():
    server = FakeSSEServer()
    async with TestServer(server.app()) as test_server:
        url = str(test_server.make_url("/sse"))
        async with SSETransport(url) as transport:
            endpoint = transport.message_endpoint

    assert endpoint == str(test_server.make_url("/messages?session_id=s1"))


@pytest.mark.asyncio
async def test_call_tool_by_explicit_tag():
    server = FakeSSEServer()
    async with TestServer(server.app()) as test_server:
        result = await ConnectionManager().call_tool(
            str(test_server.make_url("/sse")), "eventHttp", "echo", {"text": "hello"}
        )

    assert result.to_dict() == {"content": [{"type": "text", "text": "hello"}]}


@pytest.mark.asyncio
async def test_concurrent_requests_are_matched_by_id():
    server = FakeSSEServer()
    async with TestServer(server.app()) as test_server:
        async with SSETransport(str(test_server.make_url("/sse"))) as transport:
            await transport.initialize()
            tools, resources = await asyncio.gather(transport.list_tools(), transport.list_resources())

    assert tools[0]["name"] == "echo"
    assert resources[0]["uri"] == "mem://greeting"


@pytest.mark.asyncio
async def test_inline_replies_are_accepted():
    server = FakeSSEServer(inline_replies=True)
    async with TestServer(server.app()) as test_server:
        result = await EventHttpBinding().call_tool(str(test_server.make_url("/sse")), "echo", {"text": "inline"})

    assert result.text == "inline"


@pytest.mark.asyncio
async def test_stream_error_status_fails_connect():
    async def forbidden(request):
        return web.Response(status=403, text="forbidden")

    app = web.Application()
    app.router.add_get("/sse", forbidden)
    async with TestServer(app) as test_server:
        transport = SSETransport(str(test_server.make_url("/sse")))
        with pytest.raises(MCPClientError) as exc_info:
            await transport.connect()
        await transport.disconnect()

    assert "HTTP 403" in str(exc_info.value)


@pytest.mark.asyncio
async def test_missing_endpoint_event_times_out():
    async def silent(request):
        response = web.StreamResponse(headers={"Content-Type": "text/event-stream"})
        await response.prepare(request)
        await response.write(b": nothing to see\n\n")
        await asyncio.sleep(0.5)
        return response

    app = web.Application()
    app.router.add_get("/sse", silent)
    async with TestServer(app) as test_server:
        transport = SSETransport(str(test_server.make_url("/sse")), timeout_ms=100)
        with pytest.raises(MCPClientError) as exc_info:
            await transport.connect()
        await transport.disconnect()

    assert "endpoint" in str(exc_info.value)


@pytest.mark.asyncio
async def test_invalid_utf8_on_stream_is_tolerated():
    async def garbled(request):
        response = web.StreamResponse(headers={"Content-Type": "text/event-stream"})
        await response.prepare(request)
        await response.write(b"data: \xff\xfe bad\n\n")
        await response.write(b"event: endpoint\ndata: /messages\n\n")
        while request.transport is not None and not request.transport.is_closing():
            await asyncio.sleep(0.05)
        return response

    app = web.Application()
    app.router.add_get("/sse", garbled)
    async with TestServer(app) as test_server:
        transport = SSETransport(str(test_server.make_url("/sse")), timeout_ms=2000)
        await asyncio.wait_for(transport.connect(), timeout=2)
        endpoint = transport.message_endpoint
        await transport.disconnect()

    assert endpoint == str(test_server.make_url("/messages"))


@pytest.mark.asyncio
async def test_reader_failure_fails_connect_and_closes_session(monkeypatch):
    async def broken_events(response):
        raise UnicodeDecodeError("utf-8", b"\xff", 0, 1, "invalid start byte")
        yield  # pragma: no cover

    monkeypatch.setattr("mcp_tester.transport.sse.iter_sse_events", broken_events)
    server = FakeSSEServer()
    async with TestServer(server.app()) as test_server:
        transport = SSETransport(str(test_server.make_url("/sse")), timeout_ms=30000)
        with pytest.raises(MCPClientError) as exc_info:
            await asyncio.wait_for(transport.connect(), timeout=2)
        session = transport._session
        await transport.disconnect()

    assert "SSE stream failed" in str(exc_info.value)
    assert session.closed
    assert transport._session is None
