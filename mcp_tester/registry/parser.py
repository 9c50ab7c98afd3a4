"""
Registry parser.

This module converts validated YAML data into a typed Registry, resolving
{{env.NAME}} placeholders in addresses and header values.
"""

from __future__ import annotations

import os
import re
from datetime import datetime
from typing import Any, Mapping

from ..bindings.models import TransportTag
from ..bindings.process import PROCESS_SCHEMES
from .models import EndpointRecord, Registry

# Regex for template interpolation: {{env.KEY}}
TEMPLATE_PATTERN = re.compile(r"\{\{\s*env\.(\w+)\s*\}\}")


def interpolate(value: str, env: Mapping[str, Any], environ: Mapping[str, str] | None = None) -> str:
    """
    Replace {{env.NAME}} with the file's env value, then the process
    environment. Unknown names are left untouched.
    """
    environ = os.environ if environ is None else environ

    def replace_env(match: re.Match) -> str:
        name = match.group(1)
        if name in env:
            return str(env[name])
        return environ.get(name, match.group(0))

    return TEMPLATE_PATTERN.sub(replace_env, value)


def _timestamp(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


class RegistryParser:
    """Parses and converts validated YAML to a typed Registry."""

    def __init__(self, data: dict[str, Any], environ: Mapping[str, str] | None = None):
        self.data = data
        self.environ = environ
        self.env = data.get("env") or {}

    def parse(self) -> Registry:
        """Convert validated data to a typed Registry."""
        return Registry(
            version=self.data["version"],
            endpoints=self._parse_endpoints(),
            env=dict(self.env),
            defaults=dict(self.data.get("defaults") or {}),
        )

    def _interpolate(self, value: str) -> str:
        return interpolate(value, self.env, self.environ)

    def _parse_endpoints(self) -> list[EndpointRecord]:
        records: list[EndpointRecord] = []
        taken_ids = {e["id"] for e in self.data.get("endpoints") or [] if e.get("id") is not None}
        next_id = 1
        for endpoint in self.data.get("endpoints") or []:
            endpoint_id = endpoint.get("id")
            if endpoint_id is None:
                while next_id in taken_ids:
                    next_id += 1
                endpoint_id = next_id
                taken_ids.add(endpoint_id)
            records.append(self._parse_endpoint(endpoint_id, endpoint))
        return records

    def _parse_endpoint(self, endpoint_id: int, endpoint: dict[str, Any]) -> EndpointRecord:
        address = self._interpolate(endpoint["address"])
        transport = endpoint.get("transport")
        if transport is None:
            # Records without a tag predate explicit transports
            transport = TransportTag.PROCESS if address.startswith(PROCESS_SCHEMES) else TransportTag.STREAM_HTTP

        return EndpointRecord(
            id=endpoint_id,
            name=endpoint["name"],
            description=endpoint.get("description"),
            address=address,
            transport=TransportTag(transport),
            headers={
                name: self._interpolate(value)
                for name, value in (endpoint.get("headers") or {}).items()
            },
            created_at=_timestamp(endpoint.get("created_at")),
            updated_at=_timestamp(endpoint.get("updated_at")),
        )
