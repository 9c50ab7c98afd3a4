"""Tests for the mcp-tester command line interface."""

import json
import sys
from pathlib import Path

import pytest
from typer.testing import CliRunner

from mcp_tester import __version__
from mcp_tester.cli import app, parse_header_options

ECHO_SERVER = Path(__file__).parent / "fixtures" / "echo_server.py"
ECHO_ADDRESS = f"proc://{sys.executable} {ECHO_SERVER}"

runner = CliRunner()

needs_plain_paths = pytest.mark.skipif(
    " " in sys.executable or " " in str(ECHO_SERVER),
    reason="process addresses cannot carry paths containing spaces",
)


@pytest.fixture
def registry_file(tmp_path):
    path = tmp_path / "mcp-servers.yaml"
    path.write_text(
        "version: 1\n"
        "endpoints:\n"
        "  - name: echo\n"
        f"    address: {ECHO_ADDRESS}\n"
        "  - name: remote\n"
        "    address: https://example.com/mcp\n"
        "    headers:\n"
        "      Authorization: Bearer secret\n"
    )
    return path


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_transports_lists_all_tags():
    result = runner.invoke(app, ["transports"])

    assert result.exit_code == 0
    for tag in ("process", "streamHttp", "eventHttp"):
        assert tag in result.stdout


def test_parse_header_options():
    assert parse_header_options(["Authorization: Bearer a:b", "X-Empty:"]) == {
        "Authorization": "Bearer a:b",
        "X-Empty": "",
    }


def test_validate_good_file(registry_file):
    result = runner.invoke(app, ["validate", str(registry_file)])

    assert result.exit_code == 0
    assert "2 endpoint(s)" in result.stdout


def test_validate_bad_file(tmp_path):
    path = tmp_path / "bad.yaml"
    path.write_text("version: 1\nendpoints:\n  - name: broken\n")

    result = runner.invoke(app, ["validate", str(path)])

    assert result.exit_code == 1


def test_endpoints_hides_header_values(registry_file):
    result = runner.invoke(app, ["endpoints", "--registry", str(registry_file)])

    assert result.exit_code == 0
    assert "remote" in result.stdout
    assert "secret" not in result.stdout


@needs_plain_paths
def test_connect_json_output():
    result = runner.invoke(
        app,
        ["--log-level", "CRITICAL", "connect", ECHO_ADDRESS, "--output", "json", "--registry", "missing.yaml"],
    )

    assert result.exit_code == 0
    body = json.loads(result.stdout)
    assert [t["name"] for t in body["tools"]] == ["echo", "shout"]
    assert body["resources"] == []


@needs_plain_paths
def test_call_registered_endpoint(registry_file):
    result = runner.invoke(
        app,
        ["call", "echo", "--endpoint", "echo", "--registry", str(registry_file),
         "--args", '{"text": "from the registry"}'],
    )

    assert result.exit_code == 0
    assert "from the registry" in result.stdout


def test_call_rejects_bad_json():
    result = runner.invoke(app, ["call", "echo", "proc://whatever", "--args", "{not json"])

    assert result.exit_code != 0


def test_connect_unknown_transport_fails():
    result = runner.invoke(
        app, ["connect", "https://example.com/mcp", "--transport", "bogus", "--registry", "missing.yaml"]
    )

    assert result.exit_code == 1


def test_connect_needs_address_or_endpoint():
    result = runner.invoke(app, ["connect", "--registry", "missing.yaml"])

    assert result.exit_code != 0
