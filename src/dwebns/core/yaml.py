"""YAML configuration loading.

Files are parsed with ``yaml.safe_load`` (plain scalars, lists and mappings
only) and the result is handed to a Pydantic model by the caller, e.g.
[Ledger.from_yaml()][dwebns.core.ledger.Ledger.from_yaml] or
[BaseService.from_yaml()][dwebns.core.base_service.BaseService.from_yaml].

Examples:
    ```python
    raw = load_yaml("config/dwebns.yaml")
    ledger_section = section(raw, "ledger")
    ```
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml

from dwebns.exceptions import ConfigurationError


def load_yaml(config_path: str | Path) -> dict[str, Any]:
    """Load a YAML file whose top level is a mapping.

    Returns:
        The parsed mapping; ``{}`` for an empty file.

    Raises:
        FileNotFoundError: If the file does not exist.
        ConfigurationError: If the file is not valid YAML or its top level is
            not a mapping.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with path.open(encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Top level of {config_path} must be a mapping, got {type(data).__name__}"
        )
    return data


def section(data: dict[str, Any], key: str) -> dict[str, Any]:
    """Return the mapping under *key*, ``{}`` when absent.

    Raises:
        ConfigurationError: If the value under *key* is not a mapping.
    """
    value = data.get(key)
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"Config section {key!r} must be a mapping")
    return value
