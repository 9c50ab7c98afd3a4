"""
Schema validation for endpoint registry files.

This module contains the validation logic that checks raw parsed YAML
against the registry schema and reports errors with helpful messages.
Transport tag validity is enforced here, where records enter the system.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from typing import Any

from ..bindings.models import TransportTag
from ..bindings.process import PROCESS_SCHEMES
from ..bindings.stream_http import HTTP_SCHEMES
from ..config import Settings


# ─────────────────────────────────────────────────────────────────────────────
# Validation Result Types
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class ValidationError:
    """Represents a single validation error with context."""
    path: str  # e.g., "endpoints[0].headers.Authorization"
    message: str
    value: Any = None
    suggestion: str | None = None

    def __str__(self) -> str:
        parts = [f"❌ {self.path}: {self.message}"]
        if self.value is not None:
            parts.append(f"   Got: {repr(self.value)}")
        if self.suggestion:
            parts.append(f"   💡 {self.suggestion}")
        return "\n".join(parts)


@dataclass
class ValidationResult:
    """Result of schema validation."""
    errors: list[ValidationError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(
        self,
        path: str,
        message: str,
        value: Any = None,
        suggestion: str | None = None
    ) -> None:
        self.errors.append(ValidationError(path, message, value, suggestion))

    def __str__(self) -> str:
        if self.is_valid:
            return "✅ Registry validation passed"
        lines = [f"Registry validation failed with {len(self.errors)} error(s):\n"]
        lines.extend(str(e) for e in self.errors)
        return "\n".join(lines)


# ─────────────────────────────────────────────────────────────────────────────
# Registry Validator
# ─────────────────────────────────────────────────────────────────────────────

class RegistryValidator:
    """Validates raw parsed YAML against the registry schema."""

    REQUIRED_TOP_LEVEL = {"version", "endpoints"}
    OPTIONAL_TOP_LEVEL = {"env", "defaults"}
    ENDPOINT_FIELDS = {
        "id", "name", "description", "address", "transport", "headers",
        "created_at", "updated_at",
    }
    VALID_TRANSPORTS = {t.value for t in TransportTag}
    SETTINGS_FIELDS = {f.name: f.default for f in fields(Settings)}

    def __init__(self, data: dict[str, Any]):
        self.data = data
        self.result = ValidationResult()
        self.names: set[str] = set()
        self.ids: set[int] = set()

    def validate(self) -> ValidationResult:
        """Run all validation checks and return result."""
        self._validate_top_level()
        if not self.result.is_valid:
            return self.result

        self._validate_version()
        self._validate_env()
        self._validate_defaults()
        self._validate_endpoints()

        return self.result

    def _validate_top_level(self) -> None:
        """Check required and unknown top-level keys."""
        keys = set(self.data.keys())
        missing = self.REQUIRED_TOP_LEVEL - keys
        unknown = keys - self.REQUIRED_TOP_LEVEL - self.OPTIONAL_TOP_LEVEL

        for key in sorted(missing):
            self.result.add_error(
                key,
                f"Required field '{key}' is missing",
                suggestion=f"Add '{key}:' to your registry file"
            )

        for key in sorted(unknown):
            self.result.add_error(
                key,
                f"Unknown top-level field '{key}'",
                suggestion=f"Valid fields are: {', '.join(sorted(self.REQUIRED_TOP_LEVEL | self.OPTIONAL_TOP_LEVEL))}"
            )

    def _validate_version(self) -> None:
        version = self.data.get("version")
        if not isinstance(version, int) or isinstance(version, bool):
            self.result.add_error(
                "version",
                "Must be an integer",
                value=version,
                suggestion="Use 'version: 1'"
            )
        elif version < 1:
            self.result.add_error(
                "version",
                "Must be >= 1",
                value=version
            )

    def _validate_env(self) -> None:
        env = self.data.get("env")
        if env is None:
            return
        if not isinstance(env, dict):
            self.result.add_error(
                "env",
                "Must be an object (key-value pairs)",
                value=env
            )

    def _validate_defaults(self) -> None:
        defaults = self.data.get("defaults")
        if defaults is None:
            return
        if not isinstance(defaults, dict):
            self.result.add_error(
                "defaults",
                "Must be an object",
                value=defaults
            )
            return

        for key, value in defaults.items():
            path = f"defaults.{key}"
            if key not in self.SETTINGS_FIELDS:
                self.result.add_error(
                    path,
                    "Unknown setting",
                    suggestion=f"Valid settings: {', '.join(sorted(self.SETTINGS_FIELDS))}"
                )
                continue

            expected = self.SETTINGS_FIELDS[key]
            if isinstance(expected, bool):
                if not isinstance(value, bool):
                    self.result.add_error(path, "Must be true or false", value=value)
            elif isinstance(expected, int):
                if not isinstance(value, int) or isinstance(value, bool) or value < 0:
                    self.result.add_error(
                        path,
                        "Must be a non-negative integer (milliseconds, 0 disables the timeout)",
                        value=value
                    )
            elif not isinstance(value, str):
                self.result.add_error(path, "Must be a string", value=value)

    def _validate_endpoints(self) -> None:
        endpoints = self.data.get("endpoints")
        if endpoints is None:
            return  # an empty registry is allowed
        if not isinstance(endpoints, list):
            self.result.add_error(
                "endpoints",
                "Must be a list",
                value=endpoints
            )
            return

        for i, endpoint in enumerate(endpoints):
            self._validate_endpoint(i, endpoint)

    def _validate_endpoint(self, index: int, endpoint: Any) -> None:
        path = f"endpoints[{index}]"

        if not isinstance(endpoint, dict):
            self.result.add_error(
                path,
                "Endpoint must be an object",
                value=endpoint
            )
            return

        for key in sorted(set(endpoint) - self.ENDPOINT_FIELDS):
            self.result.add_error(
                f"{path}.{key}",
                "Unknown endpoint field",
                suggestion=f"Valid fields: {', '.join(sorted(self.ENDPOINT_FIELDS))}"
            )

        self._validate_name(path, endpoint.get("name"))
        self._validate_id(path, endpoint.get("id"))

        description = endpoint.get("description")
        if description is not None and not isinstance(description, str):
            self.result.add_error(f"{path}.description", "Must be a string", value=description)

        self._validate_address(path, endpoint.get("address"), endpoint.get("transport"))
        self._validate_headers(path, endpoint.get("headers"))

        for key in ("created_at", "updated_at"):
            value = endpoint.get(key)
            if value is None or isinstance(value, datetime):
                continue
            try:
                datetime.fromisoformat(str(value))
            except ValueError:
                self.result.add_error(
                    f"{path}.{key}",
                    "Must be an ISO 8601 timestamp",
                    value=value,
                    suggestion="e.g. 2024-05-01T12:00:00"
                )

    def _validate_name(self, path: str, name: Any) -> None:
        if not name:
            self.result.add_error(
                f"{path}.name",
                "Endpoint must have a 'name' field",
                suggestion="Add a unique name like 'name: weather'"
            )
        elif not isinstance(name, str):
            self.result.add_error(f"{path}.name", "Name must be a string", value=name)
        elif name in self.names:
            self.result.add_error(
                f"{path}.name",
                "Duplicate endpoint name",
                value=name,
                suggestion="Each endpoint must have a unique name"
            )
        else:
            self.names.add(name)

    def _validate_id(self, path: str, endpoint_id: Any) -> None:
        if endpoint_id is None:
            return
        if not isinstance(endpoint_id, int) or isinstance(endpoint_id, bool) or endpoint_id < 1:
            self.result.add_error(f"{path}.id", "Must be a positive integer", value=endpoint_id)
        elif endpoint_id in self.ids:
            self.result.add_error(f"{path}.id", "Duplicate endpoint id", value=endpoint_id)
        else:
            self.ids.add(endpoint_id)

    def _validate_address(self, path: str, address: Any, transport: Any) -> None:
        if transport is not None and transport not in self.VALID_TRANSPORTS:
            self.result.add_error(
                f"{path}.transport",
                "Invalid transport type",
                value=transport,
                suggestion=f"Valid transports: {', '.join(sorted(self.VALID_TRANSPORTS))}"
            )
            return

        if not address:
            self.result.add_error(
                f"{path}.address",
                "Endpoint must have a non-empty 'address'",
                suggestion="Use 'https://host/mcp' or 'proc://executable args'"
            )
            return
        if not isinstance(address, str):
            self.result.add_error(f"{path}.address", "Must be a string", value=address)
            return

        # {{env.X}} placeholders may hide the scheme until interpolation
        if address.startswith("{{"):
            return

        if transport == TransportTag.PROCESS.value:
            if not address.startswith(PROCESS_SCHEMES):
                self.result.add_error(
                    f"{path}.address",
                    "Process endpoints need a proc:// address",
                    value=address,
                    suggestion="e.g. 'proc://python -m my_server'"
                )
        elif transport is not None or not address.startswith(PROCESS_SCHEMES):
            if not address.startswith(HTTP_SCHEMES):
                self.result.add_error(
                    f"{path}.address",
                    "Must be a valid HTTP(S) URL",
                    value=address,
                    suggestion="URL should start with 'http://' or 'https://'"
                )

    def _validate_headers(self, path: str, headers: Any) -> None:
        if headers is None:
            return
        if not isinstance(headers, dict):
            self.result.add_error(
                f"{path}.headers",
                "Must be an object (header name to value)",
                value=headers
            )
            return
        for name, value in headers.items():
            if not isinstance(name, str) or not isinstance(value, str):
                self.result.add_error(
                    f"{path}.headers.{name}",
                    "Header names and values must be strings",
                    value=value,
                    suggestion="Quote numeric values, e.g. 'X-Retry: \"3\"'"
                )
