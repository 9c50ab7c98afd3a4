"""
Data structures exchanged by the transport bindings.

Descriptors mirror the MCP wire shapes but use snake_case attributes;
`from_dict`/`to_dict` convert to and from the wire (camelCase) form.
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class TransportTag(str, Enum):
    """Explicit transport selector stored with an endpoint."""
    PROCESS = "process"
    STREAM_HTTP = "streamHttp"
    EVENT_HTTP = "eventHttp"


def tag_key(tag: TransportTag | str) -> str:
    """Normalise a tag (enum or plain string) to its registry key."""
    return tag.value if isinstance(tag, TransportTag) else str(tag)


# Placeholder reported when the server did not advertise capabilities.
DEFAULT_CAPABILITIES: dict[str, Any] = {
    "tools": {"listChanged": True},
    "resources": {"subscribe": True, "listChanged": True},
}


def default_capabilities() -> dict[str, Any]:
    return copy.deepcopy(DEFAULT_CAPABILITIES)


@dataclass
class EndpointDescriptor:
    """Where a server lives and how to reach it, for a single request."""
    address: str
    transport: TransportTag | str | None = None
    headers: dict[str, str] = field(default_factory=dict)


@dataclass
class ToolDescriptor:
    """A tool exposed by a connected server."""
    name: str
    description: str | None = None
    input_schema: Any = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ToolDescriptor:
        return cls(
            name=data["name"],
            description=data.get("description"),
            input_schema=data.get("inputSchema"),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"name": self.name}
        if self.description is not None:
            result["description"] = self.description
        result["inputSchema"] = self.input_schema
        return result


@dataclass
class ResourceDescriptor:
    """A URI-addressed resource exposed by a connected server."""
    uri: str
    name: str | None = None
    description: str | None = None
    mime_type: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ResourceDescriptor:
        return cls(
            uri=data["uri"],
            name=data.get("name"),
            description=data.get("description"),
            mime_type=data.get("mimeType"),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"uri": self.uri}
        if self.name is not None:
            result["name"] = self.name
        if self.description is not None:
            result["description"] = self.description
        if self.mime_type is not None:
            result["mimeType"] = self.mime_type
        return result


@dataclass
class ConnectionResult:
    """What a server exposes: its tools, resources and capabilities."""
    tools: list[ToolDescriptor] = field(default_factory=list)
    resources: list[ResourceDescriptor] = field(default_factory=list)
    capabilities: dict[str, Any] = field(default_factory=default_capabilities)

    def to_dict(self) -> dict[str, Any]:
        return {
            "tools": [t.to_dict() for t in self.tools],
            "resources": [r.to_dict() for r in self.resources],
            "capabilities": self.capabilities,
        }


@dataclass
class ContentItem:
    """One item of a tool call result (text, image, embedded resource...)."""
    type: str
    text: str | None = None
    data: Any = None
    extra: dict[str, Any] = field(default_factory=dict)  # mimeType, resource, annotations...

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ContentItem:
        extra = {k: v for k, v in data.items() if k not in ("type", "text", "data")}
        return cls(
            type=data.get("type", "text"),
            text=data.get("text"),
            data=data.get("data"),
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"type": self.type}
        if self.text is not None:
            result["text"] = self.text
        if self.data is not None:
            result["data"] = self.data
        result.update(self.extra)
        return result


@dataclass
class ToolCallResult:
    """The outcome of one tools/call request, as returned by the server."""
    content: list[ContentItem] = field(default_factory=list)
    is_error: bool | None = None
    extra: dict[str, Any] = field(default_factory=dict)  # structuredContent, _meta...

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ToolCallResult:
        extra = {k: v for k, v in data.items() if k not in ("content", "isError")}
        return cls(
            content=[ContentItem.from_dict(item) for item in data.get("content") or []],
            is_error=data.get("isError"),
            extra=extra,
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"content": [item.to_dict() for item in self.content]}
        if self.is_error is not None:
            result["isError"] = self.is_error
        result.update(self.extra)
        return result

    @property
    def text(self) -> str:
        """All text content joined by newlines."""
        return "\n".join(item.text for item in self.content if item.text is not None)
