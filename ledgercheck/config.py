"""
Configuration management for ledgercheck.

This module provides functions for loading and managing configuration
settings: detector thresholds, runner settings, logging and the default
booking sources used by the command line.
"""

import os
import copy
import logging
from typing import Dict, List, Any, Optional, Tuple
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ledgercheck.utils.config import (
    ConfigError, load_config_file, merge_configs, get_env_config
)

logger = logging.getLogger(__name__)

ENV_PREFIX = "LEDGERCHECK"

# Default configuration
_DEFAULT_CONFIG = {
    "detection": {
        # Duplicate payments
        "duplicate_amount_tolerance": 0.05,
        "duplicate_day_window": 30,
        # Missing accruals
        "accrual_amount_tolerance": 0.10,
        "accrual_min_frequency": 2,
        # Round numbers
        "round_number_divisors": [10000, 5000, 1000, 500],
        "round_number_very_round_divisor": 10000,
        "round_number_relative_stddev": 0.2,
        # Reversed signs
        "revenue_account_range": [8000, 8999],
        "reversed_sign_impact_factor": 2,
        # Unusual vendors
        "unusual_vendor_min_amount": 5000,
        # Split bookings
        "split_min_bookings": 3,
        "split_bands": [[2000, 5000], [5000, 10000]],
        # Keyword to account range table (None = packaged SKR03 table)
        "account_mappings_file": None,
    },
    "runner": {
        "max_workers": 1,
    },
    "sources": {
        "database_url": None,
        "current_table": "controlling.bookings_curr",
        "previous_table": "controlling.bookings_prev",
    },
    "logging": {
        "level": "INFO",
        "file": None,
        "max_size": 10485760,  # 10 MB
        "backup_count": 5
    }
}

# Global configuration dictionary
_CONFIG = None


def default_config() -> Dict[str, Any]:
    """Return a fresh copy of the default configuration."""
    return copy.deepcopy(_DEFAULT_CONFIG)


def _config_paths():
    return [
        os.path.join(os.getcwd(), "ledgercheck.json"),
        os.path.join(os.getcwd(), "ledgercheck.yaml"),
        os.path.join(str(Path.home()), ".ledgercheck", "config.json"),
        os.environ.get(f"{ENV_PREFIX}_CONFIG", ""),
    ]


def get_config() -> Dict[str, Any]:
    """Get the current configuration.

    Built lazily from the defaults, the first-found configuration files and
    ``LEDGERCHECK_*`` environment variables.

    Returns:
        Configuration dictionary
    """
    global _CONFIG

    if _CONFIG is None:
        config = default_config()

        for path in _config_paths():
            if path and os.path.exists(path):
                try:
                    config = merge_configs(config, load_config_file(path))
                except ConfigError as e:
                    logger.warning(f"Could not load config file {path}: {e}")

        _CONFIG = merge_configs(config, get_env_config(ENV_PREFIX))

    return _CONFIG


def set_config(new_config: Dict[str, Any]) -> None:
    """Set a new configuration.

    Args:
        new_config: Configuration merged over the defaults
    """
    global _CONFIG
    _CONFIG = merge_configs(default_config(), new_config)


def reset_config() -> None:
    """Reset configuration to default."""
    global _CONFIG
    _CONFIG = None


class DetectionSettings(BaseModel):
    """Allowed values of the ``detection`` section.

    Unset fields stay None so each detector falls back to its own default.
    """

    model_config = ConfigDict(extra='forbid')

    duplicate_amount_tolerance: Optional[float] = Field(None, ge=0)
    duplicate_day_window: Optional[int] = Field(None, ge=0)
    accrual_amount_tolerance: Optional[float] = Field(None, ge=0)
    accrual_min_frequency: Optional[int] = Field(None, ge=1)
    round_number_divisors: Optional[List[int]] = None
    round_number_very_round_divisor: Optional[int] = Field(None, gt=0)
    round_number_relative_stddev: Optional[float] = Field(None, ge=0)
    revenue_account_range: Optional[Tuple[int, int]] = None
    reversed_sign_impact_factor: Optional[float] = Field(None, ge=0)
    unusual_vendor_min_amount: Optional[float] = Field(None, ge=0)
    split_min_bookings: Optional[int] = Field(None, ge=1)
    split_bands: Optional[List[Tuple[float, float]]] = None
    account_mappings_file: Optional[str] = None

    @field_validator('round_number_divisors')
    @classmethod
    def _positive_divisors(cls, value):
        if value is not None and any(d <= 0 for d in value):
            raise ValueError("divisors must be positive")
        return value

    @field_validator('revenue_account_range')
    @classmethod
    def _ordered_range(cls, value):
        if value is not None and value[0] > value[1]:
            raise ValueError("range start must not exceed its end")
        return value

    @field_validator('split_bands')
    @classmethod
    def _ordered_bands(cls, value):
        if value is not None and any(low >= high for low, high in value):
            raise ValueError("each band needs a lower bound below its threshold")
        return value


def validate_detection_config(section: Optional[Dict[str, Any]]) -> Dict[str, Any]:
    """Check a ``detection`` section and return its typed values.

    Args:
        section: Raw detection settings (may be None)

    Returns:
        Settings that were given, converted to their proper types

    Raises:
        ConfigError: If a key is unknown or a value is unusable
    """
    try:
        settings = DetectionSettings.model_validate(section or {})
    except ValidationError as e:
        raise ConfigError(f"Invalid detection settings: {e}") from e
    return settings.model_dump(exclude_none=True)
