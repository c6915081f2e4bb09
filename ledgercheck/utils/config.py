"""
Configuration helpers for ledgercheck.

Settings are layered: packaged defaults, then an optional JSON or YAML file,
then ``LEDGERCHECK_*`` environment variables. The helpers here read and
combine those layers; they know nothing about individual settings.
"""

import os
import json
import logging
from typing import Dict, Any, Optional, Union
from pathlib import Path

import yaml

logger = logging.getLogger(__name__)

_SUPPORTED_SUFFIXES = {'.json': 'json', '.yaml': 'yaml', '.yml': 'yaml'}

_TRUE_WORDS = ('true', 'yes', 'on')
_FALSE_WORDS = ('false', 'no', 'off')
_NULL_WORDS = ('none', 'null')


class ConfigError(Exception):
    """Raised when settings cannot be read or hold unusable values."""
    pass


def load_config_file(file_path: Union[str, Path]) -> Dict[str, Any]:
    """
    Read one settings file.

    Args:
        file_path: ``.json``, ``.yaml`` or ``.yml`` file

    Returns:
        Settings mapping (empty for an empty file)

    Raises:
        ConfigError: If the file is missing, unreadable or not a mapping
    """
    path = Path(file_path)
    if not path.is_file():
        raise ConfigError(f"Settings file does not exist: {path}")

    kind = _SUPPORTED_SUFFIXES.get(path.suffix.lower())
    if kind is None:
        raise ConfigError(f"Settings file {path} must be JSON or YAML, not {path.suffix or 'no suffix'}")

    try:
        with path.open('r', encoding='utf-8') as f:
            data = json.load(f) if kind == 'json' else yaml.safe_load(f)
    except (OSError, json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not parse settings file {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Settings file {path} must hold a mapping at the top level")

    logger.debug(f"Read settings from {path}")
    return data


def merge_configs(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """
    Layer ``override`` on top of ``base`` without changing either.

    Nested sections are merged key by key; any other value in ``override``
    replaces the one in ``base``.

    Args:
        base: Lower-priority settings
        override: Higher-priority settings

    Returns:
        New merged mapping
    """
    merged = dict(base)
    for key, value in override.items():
        current = merged.get(key)
        if isinstance(current, dict) and isinstance(value, dict):
            merged[key] = merge_configs(current, value)
        else:
            merged[key] = value
    return merged


def get_env_config(prefix: str) -> Dict[str, Any]:
    """
    Collect settings from ``<PREFIX>_<SECTION>__<KEY>`` environment variables.

    ``LEDGERCHECK_DETECTION__SPLIT_MIN_BOOKINGS=4`` becomes
    ``{'detection': {'split_min_bookings': 4}}``. ``<PREFIX>_CONFIG`` names
    a settings file and is skipped.

    Args:
        prefix: Variable prefix without the trailing underscore

    Returns:
        Nested settings mapping
    """
    marker = f"{prefix.upper()}_"
    found: Dict[str, Any] = {}

    for name, raw in sorted(os.environ.items()):
        if not name.startswith(marker):
            continue
        path = name[len(marker):].lower().split("__")
        if path == ['config']:
            continue

        section = found
        for part in path[:-1]:
            section = section.setdefault(part, {})
            if not isinstance(section, dict):
                raise ConfigError(f"Environment variable {name} nests below a plain value")
        section[path[-1]] = parse_config_value(raw)

    return found


def parse_config_value(value: str) -> Any:
    """
    Turn an environment string into a bool, None, number, list or string.

    Args:
        value: Raw string

    Returns:
        Typed value; comma-separated strings become lists of typed values
    """
    lowered = value.strip().lower()
    if lowered in _TRUE_WORDS:
        return True
    if lowered in _FALSE_WORDS:
        return False
    if lowered in _NULL_WORDS:
        return None

    if ',' in value:
        return [parse_config_value(item.strip()) for item in value.split(',')]

    for number_type in (int, float):
        try:
            return number_type(value)
        except ValueError:
            continue

    return value


def load_config(config_path: Optional[Union[str, Path]] = None,
                env_prefix: str = 'LEDGERCHECK',
                default_config: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """
    Build settings from defaults, an optional file and the environment.

    Later layers win: environment over file over defaults.

    Args:
        config_path: Optional settings file
        env_prefix: Prefix of the environment variables to read
        default_config: Lowest-priority settings

    Returns:
        Merged settings mapping

    Raises:
        ConfigError: If ``config_path`` cannot be loaded
    """
    layers = [default_config or {}]
    if config_path:
        layers.append(load_config_file(config_path))
    layers.append(get_env_config(env_prefix))

    config: Dict[str, Any] = {}
    for layer in layers:
        config = merge_configs(config, layer)
    return config
