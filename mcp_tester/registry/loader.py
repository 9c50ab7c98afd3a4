"""
Registry loader.

This module provides the public API for loading and validating endpoint
registry files from disk or YAML strings.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

import yaml

from .models import Registry
from .parser import RegistryParser
from .validation import RegistryValidator, ValidationResult

DEFAULT_REGISTRY_FILE = "mcp-servers.yaml"


def _parse_and_validate(
    data: Any,
    source: str,
    environ: Mapping[str, str] | None,
) -> tuple[Registry | None, ValidationResult]:
    if not isinstance(data, dict):
        result = ValidationResult()
        result.add_error(
            source,
            "File must contain a YAML object (not a list or scalar)",
            value=type(data).__name__
        )
        return None, result

    validator = RegistryValidator(data)
    result = validator.validate()

    if not result.is_valid:
        return None, result

    parser = RegistryParser(data, environ=environ)
    return parser.parse(), result


def load_registry(
    path: str | Path,
    environ: Mapping[str, str] | None = None,
) -> tuple[Registry | None, ValidationResult]:
    """
    Load and validate an endpoint registry from a YAML file.

    Args:
        path: Path to the YAML registry file
        environ: Environment used for {{env.NAME}} fallbacks (default os.environ)

    Returns:
        Tuple of (Registry or None, ValidationResult)
        If validation fails, Registry will be None.

    Example:
        registry, result = load_registry("mcp-servers.yaml")
        if not result.is_valid:
            print(result)
            sys.exit(1)
        endpoint = registry.get("weather")
    """
    path = Path(path)

    if not path.exists():
        result = ValidationResult()
        result.add_error(
            str(path),
            "File not found",
            suggestion="Check the file path is correct"
        )
        return None, result

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        result = ValidationResult()
        result.add_error(
            str(path),
            f"Invalid YAML syntax: {e}",
            suggestion="Check YAML formatting (indentation, colons, etc.)"
        )
        return None, result

    return _parse_and_validate(data, str(path), environ)


def validate_registry_yaml(
    yaml_string: str,
    environ: Mapping[str, str] | None = None,
) -> tuple[Registry | None, ValidationResult]:
    """
    Validate a registry from a YAML string (useful for testing).

    Args:
        yaml_string: YAML content as a string

    Returns:
        Tuple of (Registry or None, ValidationResult)
    """
    try:
        data = yaml.safe_load(yaml_string)
    except yaml.YAMLError as e:
        result = ValidationResult()
        result.add_error("yaml", f"Invalid YAML syntax: {e}")
        return None, result

    return _parse_and_validate(data, "yaml", environ)
