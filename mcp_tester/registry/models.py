"""
Typed data structures for the endpoint registry.

This module contains the dataclasses that represent the internal typed
structure of a parsed registry file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from ..bindings.models import EndpointDescriptor, TransportTag


class RegistryError(LookupError):
    """Raised when a registry lookup fails."""


# ─────────────────────────────────────────────────────────────────────────────
# Endpoints
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class EndpointRecord:
    """A registered MCP server endpoint."""
    id: int
    name: str
    address: str
    transport: TransportTag = TransportTag.STREAM_HTTP
    description: str | None = None
    headers: dict[str, str] = field(default_factory=dict)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def to_descriptor(self) -> EndpointDescriptor:
        """Per-request view of this record (a fresh copy every time)."""
        return EndpointDescriptor(
            address=self.address,
            transport=self.transport,
            headers=dict(self.headers),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "address": self.address,
            "transport": self.transport.value,
            "headers": dict(self.headers),
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


# ─────────────────────────────────────────────────────────────────────────────
# Registry
# ─────────────────────────────────────────────────────────────────────────────

@dataclass
class Registry:
    """Fully parsed and validated endpoint registry."""
    version: int
    endpoints: list[EndpointRecord] = field(default_factory=list)
    env: dict[str, Any] = field(default_factory=dict)
    defaults: dict[str, Any] = field(default_factory=dict)  # Settings overrides

    def names(self) -> list[str]:
        return [e.name for e in self.endpoints]

    def get(self, name_or_id: str | int) -> EndpointRecord:
        """Look up an endpoint by name, or by id when given an int or digit string."""
        for endpoint in self.endpoints:
            if endpoint.name == name_or_id:
                return endpoint
        if isinstance(name_or_id, int) or str(name_or_id).isdigit():
            wanted = int(name_or_id)
            for endpoint in self.endpoints:
                if endpoint.id == wanted:
                    return endpoint
        known = ", ".join(self.names()) or "none"
        raise RegistryError(f"Unknown endpoint '{name_or_id}' (registered: {known})")
