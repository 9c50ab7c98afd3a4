"""Shared fixtures: an in-memory MCP session and a factory that hands it out."""

import pytest

from mcp_tester.transport import BaseTransport, MCPError, MCPErrorCode, MCPResponse


class FakeTransport(BaseTransport):
    """
    Session double that answers from canned data and records its lifecycle.

    Pass an exception as fail_connect / fail_tools / fail_resources /
    fail_call to make that step raise it.
    """

    def __init__(
        self,
        tools=None,
        resources=None,
        call_result=None,
        capabilities=None,
        fail_connect=None,
        fail_tools=None,
        fail_resources=None,
        fail_call=None,
        call_error=None,
        **options,
    ):
        super().__init__(**options)
        self.tools = tools or []
        self.resources = resources or []
        self.call_result = call_result if call_result is not None else {"content": []}
        self.capabilities = capabilities
        self.fail_connect = fail_connect
        self.fail_tools = fail_tools
        self.fail_resources = fail_resources
        self.fail_call = fail_call
        self.call_error = call_error
        self.connect_calls = 0
        self.disconnect_calls = 0
        self.sent = []
        self.notifications = []
        self._connected = False

    @property
    def is_connected(self):
        return self._connected

    async def connect(self):
        self.connect_calls += 1
        if self.fail_connect is not None:
            raise self.fail_connect
        self._connected = True

    async def disconnect(self):
        self.disconnect_calls += 1
        self._connected = False

    async def notify(self, notification):
        self.notifications.append(notification.method)

    async def send(self, request, timeout_ms=None):
        self.sent.append(request)
        if request.method == "initialize":
            result = {"protocolVersion": self.protocol_version, "serverInfo": {"name": "fake", "version": "0"}}
            if self.capabilities is not None:
                result["capabilities"] = self.capabilities
            return MCPResponse(success=True, result=result)
        if request.method == "tools/list":
            if self.fail_tools is not None:
                raise self.fail_tools
            return MCPResponse(success=True, result={"tools": self.tools})
        if request.method == "resources/list":
            if self.fail_resources is not None:
                raise self.fail_resources
            return MCPResponse(success=True, result={"resources": self.resources})
        if request.method == "tools/call":
            if self.fail_call is not None:
                raise self.fail_call
            if self.call_error is not None:
                return MCPResponse.from_error(self.call_error)
            return MCPResponse(success=True, result=self.call_result)
        return MCPResponse.from_error(MCPError(MCPErrorCode.METHOD_NOT_FOUND, f"Method not found: {request.method}"))

    def sent_methods(self):
        return [r.method for r in self.sent]


class RecordingFactory:
    """Transport factory that returns one prepared session and records its arguments."""

    def __init__(self, transport):
        self.transport = transport
        self.calls = []

    def __call__(self, address, headers, **options):
        self.calls.append((address, headers, options))
        return self.transport


@pytest.fixture
def make_transport():
    return FakeTransport


@pytest.fixture
def make_factory():
    return RecordingFactory


WEATHER_TOOL = {
    "name": "get_weather",
    "description": "Current weather for a location",
    "inputSchema": {
        "type": "object",
        "properties": {"location": {"type": "string"}},
        "required": ["location"],
    },
}

README_RESOURCE = {"uri": "file:///readme.md", "name": "README", "mimeType": "text/markdown"}


@pytest.fixture
def weather_tool():
    return dict(WEATHER_TOOL)


@pytest.fixture
def readme_resource():
    return dict(README_RESOURCE)
