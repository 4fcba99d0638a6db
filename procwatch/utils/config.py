# procwatch/utils/config.py
"""
Configuration loading utility.
Handles loading YAML run files and reading typed values out of them.
"""

import yaml
from pathlib import Path
from typing import Dict, Any, Mapping, Union

from procwatch.errors import ConfigurationError


def load_config(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Loads a YAML configuration file.

    Args:
        path: The path to the YAML file.

    Returns:
        A dictionary containing the configuration (empty for an empty file).
    """
    with open(path, 'r') as f:
        data = yaml.safe_load(f)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"{path} must contain a mapping at the top level")
    return data


def section(cfg: Mapping[str, Any], name: str) -> Dict[str, Any]:
    """Returns the mapping stored under `name`, or an empty dict."""
    value = cfg.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"'{name}' must be a mapping")
    return value


def get_bool(cfg: Mapping[str, Any], key: str, default: bool = False) -> bool:
    """
    Reads a boolean, accepting YAML booleans and the strings true/false/yes/no/on/off.
    """
    value = cfg.get(key, default)
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "yes", "on", "1"}:
        return True
    if isinstance(value, str) and value.strip().lower() in {"false", "no", "off", "0"}:
        return False
    raise ConfigurationError(f"'{key}' must be a boolean, got {value!r}")
