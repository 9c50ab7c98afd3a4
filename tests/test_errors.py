"""Tests for the error taxonomy mapper."""

import aiohttp
import pytest

from mcp_tester.bindings import (
    ConnectionFailedError,
    ErrorCategory,
    ToolCallError,
    TransportError,
    UnsupportedTransportError,
    classify_connection_error,
    classify_tool_call_error,
)
from mcp_tester.transport import MCPClientError, MCPError, MCPErrorCode


def client_error(code, message):
    return MCPClientError(MCPError(code, message))


@pytest.mark.parametrize(
    "exc, category, message",
    [
        (
            FileNotFoundError(2, "No such file or directory"),
            ErrorCategory.EXECUTABLE_NOT_FOUND,
            "MCP server executable not found. Please check the server path.",
        ),
        (
            Exception("spawn my-server ENOENT"),
            ErrorCategory.EXECUTABLE_NOT_FOUND,
            "MCP server executable not found. Please check the server path.",
        ),
        (
            client_error(MCPErrorCode.PROCESS_ERROR, "Failed to spawn process x: permission denied"),
            ErrorCategory.SPAWN_FAILED,
            "Failed to start MCP server process. Please verify the command.",
        ),
        (
            Exception("connect ECONNREFUSED 127.0.0.1:8080"),
            ErrorCategory.CONNECTION_REFUSED,
            "Connection refused. Please verify the server URL and ensure the server is running.",
        ),
        (
            ConnectionRefusedError(111, "Connection refused"),
            ErrorCategory.CONNECTION_REFUSED,
            "Connection refused. Please verify the server URL and ensure the server is running.",
        ),
        (
            Exception("fetch failed"),
            ErrorCategory.HTTP_FAILED,
            "HTTP connection failed. Please check the URL and network connectivity.",
        ),
        (
            aiohttp.ClientPayloadError("Response payload is not completed"),
            ErrorCategory.HTTP_FAILED,
            "HTTP connection failed. Please check the URL and network connectivity.",
        ),
    ],
)
def test_connection_errors_use_friendly_messages(exc, category, message):
    error = classify_connection_error(exc)

    assert isinstance(error, ConnectionFailedError)
    assert error.category == category
    assert error.message == message
    assert str(error) == message


def test_executable_not_found_wins_over_spawn():
    """A message mentioning both ENOENT and spawn is an executable problem."""
    error = classify_connection_error(Exception("spawn foo ENOENT"))
    assert error.category == ErrorCategory.EXECUTABLE_NOT_FOUND


def test_connection_refused_wins_over_fetch():
    error = classify_connection_error(Exception("fetch failed: ECONNREFUSED"))
    assert error.category == ErrorCategory.CONNECTION_REFUSED


def test_unmatched_connection_error_keeps_original_message():
    error = classify_connection_error(ValueError("Session closed"))

    assert error.category == ErrorCategory.OTHER
    assert error.message == "Connection failed: Session closed"


def test_tool_rules_do_not_apply_to_connect():
    error = classify_connection_error(Exception("Unknown tool: x"))

    assert error.category == ErrorCategory.OTHER
    assert error.message == "Connection failed: Unknown tool: x"


@pytest.mark.parametrize("text", ["Tool not found: get_weather", "Unknown tool: get_weather"])
def test_tool_not_found(text):
    error = classify_tool_call_error(Exception(text), "get_weather")

    assert isinstance(error, ToolCallError)
    assert error.category == ErrorCategory.TOOL_NOT_FOUND
    assert error.message == 'Tool "get_weather" not found on the MCP server.'
    assert error.tool_name == "get_weather"


def test_invalid_arguments_by_message():
    error = classify_tool_call_error(Exception("Invalid arguments for tool"), "get_weather")

    assert error.category == ErrorCategory.INVALID_ARGUMENTS
    assert error.message == 'Invalid arguments provided for tool "get_weather".'


def test_invalid_arguments_by_error_code():
    exc = client_error(MCPErrorCode.INVALID_PARAMS, "location: required property missing")
    error = classify_tool_call_error(exc, "get_weather")

    assert error.category == ErrorCategory.INVALID_ARGUMENTS


def test_unknown_tool_with_invalid_params_code_is_not_found():
    exc = client_error(MCPErrorCode.INVALID_PARAMS, "Unknown tool: nope")
    error = classify_tool_call_error(exc, "nope")

    assert error.category == ErrorCategory.TOOL_NOT_FOUND


def test_connection_refused_during_tool_call():
    error = classify_tool_call_error(Exception("connect ECONNREFUSED 127.0.0.1:3000"), "get_weather")

    assert error.category == ErrorCategory.CONNECTION_REFUSED
    assert error.message.startswith("Connection refused")


def test_unmatched_tool_error_keeps_original_message():
    error = classify_tool_call_error(RuntimeError("quota exceeded"), "get_weather")

    assert error.category == ErrorCategory.OTHER
    assert error.message == "Tool call failed: quota exceeded"


def test_classified_errors_pass_through_unchanged():
    original = UnsupportedTransportError("Unsupported transport: bogus")

    assert classify_connection_error(original) is original
    assert classify_tool_call_error(original, "x") is original
    assert isinstance(original, TransportError)
    assert original.category == ErrorCategory.UNSUPPORTED_TRANSPORT


def test_structured_transport_codes():
    refused = client_error(MCPErrorCode.CONNECTION_REFUSED, "Connection refused (ECONNREFUSED): ...")
    http = client_error(MCPErrorCode.HTTP_ERROR, "Connection failed: Cannot connect to host")
    missing = client_error(MCPErrorCode.EXECUTABLE_NOT_FOUND, "Command not found: nope")

    assert classify_connection_error(refused).category == ErrorCategory.CONNECTION_REFUSED
    assert classify_connection_error(http).category == ErrorCategory.HTTP_FAILED
    assert classify_connection_error(missing).category == ErrorCategory.EXECUTABLE_NOT_FOUND
