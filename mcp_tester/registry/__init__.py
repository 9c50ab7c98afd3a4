"""
Endpoint Registry

This package loads and validates the YAML file that records known MCP
server endpoints (address, transport tag, default headers).

Usage:
    from mcp_tester.registry import load_registry

    registry, result = load_registry("mcp-servers.yaml")
    if not result.is_valid:
        print(result)

    endpoint = registry.get("weather")
    descriptor = endpoint.to_descriptor()
"""

# Public API
from .loader import DEFAULT_REGISTRY_FILE, load_registry, validate_registry_yaml

# Models
from .models import EndpointRecord, Registry, RegistryError

# Parsing / validation (for custom use)
from .parser import RegistryParser, interpolate
from .validation import RegistryValidator, ValidationError, ValidationResult

__all__ = [
    # Loader functions
    "DEFAULT_REGISTRY_FILE",
    "load_registry",
    "validate_registry_yaml",
    # Models
    "EndpointRecord",
    "Registry",
    "RegistryError",
    # Parsing
    "RegistryParser",
    "interpolate",
    # Validation
    "RegistryValidator",
    "ValidationError",
    "ValidationResult",
]
