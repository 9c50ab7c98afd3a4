"""
Runtime settings for mcp-tester.

Settings are resolved from, lowest to highest precedence: built-in defaults,
the `defaults:` section of an endpoint registry file, MCP_TESTER_* environment
variables, and explicit overrides (CLI options).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping

from .transport.base import DEFAULT_TIMEOUT_MS, LATEST_PROTOCOL_VERSION

ENV_PREFIX = "MCP_TESTER_"

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Settings:
    """Options shared by every binding and by the relay layer."""
    client_name: str = "mcp-tester-client"
    client_version: str = "1.0.0"
    protocol_version: str = LATEST_PROTOCOL_VERSION
    request_timeout_ms: int = DEFAULT_TIMEOUT_MS  # per RPC request
    relay_timeout_ms: int = 60000  # whole connect / call_tool operation
    static_capabilities: bool = False  # always report the placeholder capabilities

    def session_options(self) -> dict[str, Any]:
        """Keyword arguments for a BaseTransport constructor."""
        return {
            "timeout_ms": self.request_timeout_ms,
            "client_name": self.client_name,
            "client_version": self.client_version,
            "protocol_version": self.protocol_version,
        }

    def merged(self, values: Mapping[str, Any]) -> Settings:
        """Return a copy with known, non-None keys from values applied."""
        known = {f.name for f in fields(self)}
        updates: dict[str, Any] = {}
        for key, value in values.items():
            if key not in known or value is None:
                continue
            updates[key] = _coerce(getattr(self, key), value)
        return replace(self, **updates)

    @classmethod
    def from_env(cls, base: Settings | None = None, environ: Mapping[str, str] | None = None) -> Settings:
        """Apply MCP_TESTER_<FIELD> environment variables on top of base."""
        environ = os.environ if environ is None else environ
        base = base or cls()
        values = {
            f.name: environ[ENV_PREFIX + f.name.upper()]
            for f in fields(base)
            if ENV_PREFIX + f.name.upper() in environ
        }
        return base.merged(values)


def _coerce(current: Any, value: Any) -> Any:
    """Convert value to the type of the current setting."""
    if isinstance(current, bool):
        if isinstance(value, str):
            return value.strip().lower() in _TRUE_VALUES
        return bool(value)
    if isinstance(current, int):
        return int(value)
    return str(value)
