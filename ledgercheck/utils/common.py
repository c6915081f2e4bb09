"""
Common utility functions for ledgercheck.

This module provides shared functionality used across the ingestion layer,
the detectors and the command line, mostly lenient parsing of raw ledger
values and JSON-friendly formatting of results.
"""

from typing import Dict, Any, Optional, Union
from enum import Enum
from datetime import datetime, date
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
import hashlib
import json
import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

# Type aliases for better type hints
JSON = Dict[str, Any]
Number = Union[int, float, Decimal]
DateType = Union[date, datetime, str]

CENT = Decimal('0.01')

# Dot-grouped thousands without decimals (1.234 or 1.234.567)
_DOT_GROUPED_RE = re.compile(r'^[+-]?[1-9]\d{0,2}(\.\d{3})+$')

# Date formats seen in ledger exports (ISO first, then German and US styles)
_DATE_FORMATS = [
    '%Y-%m-%d',   # 2024-01-15
    '%Y-%m-%dT%H:%M:%S',  # ISO timestamp
    '%Y-%m-%d %H:%M:%S',
    '%d.%m.%Y',   # 15.01.2024
    '%d.%m.%y',   # 15.01.24
    '%m/%d/%Y',   # 01/15/2024
    '%Y%m%d',     # 20240115
]


def parse_date(value: Optional[DateType]) -> Optional[date]:
    """
    Parse a date value into a date object.

    Args:
        value: Date, datetime or date string

    Returns:
        Date object or None if parsing fails
    """
    if value is None or value == '':
        return None

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    # pandas Timestamps and similar objects
    if hasattr(value, 'to_pydatetime'):
        try:
            return value.to_pydatetime().date()
        except (TypeError, ValueError):
            return None

    date_str = str(value).strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue

    try:
        return datetime.fromisoformat(date_str.replace('Z', '+00:00')).date()
    except ValueError:
        pass

    # Log but don't raise exception
    logger.debug(f"Failed to parse date value: {value!r}")
    return None


def normalize_amount(value: Any) -> Optional[Decimal]:
    """
    Convert an amount value to a Decimal, handling various formats.

    Floats go through their shortest string representation so that 1005.0
    becomes Decimal('1005.0') rather than a binary approximation.

    Args:
        value: Number or string representation of an amount

    Returns:
        Normalized Decimal amount or None if conversion fails
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, Decimal):
        return value if value.is_finite() else None

    if isinstance(value, int):
        return Decimal(value)

    if isinstance(value, float):
        if value != value or value in (float('inf'), float('-inf')):
            return None
        return Decimal(repr(value))

    amount_str = str(value).strip()
    if not amount_str:
        return None

    # Handle parentheses for negative numbers (accounting notation)
    if amount_str.startswith('(') and amount_str.endswith(')'):
        amount_str = '-' + amount_str[1:-1]

    # Remove currency symbols and spaces
    for token in ['EUR', '€', '$', '£', ' ', ' ']:
        amount_str = amount_str.replace(token, '')

    # German notation (1.234,56) has a decimal comma with at most two digits after it
    last_comma = amount_str.rfind(',')
    if last_comma > amount_str.rfind('.') and len(amount_str) - last_comma - 1 <= 2:
        amount_str = amount_str.replace('.', '').replace(',', '.')
    elif _DOT_GROUPED_RE.match(amount_str):
        amount_str = amount_str.replace('.', '')
    else:
        amount_str = amount_str.replace(',', '')

    try:
        amount = Decimal(amount_str)
    except InvalidOperation:
        logger.debug(f"Failed to normalize amount value: {value!r}")
        return None

    return amount if amount.is_finite() else None


def normalize_account(value: Any) -> Optional[int]:
    """Convert an account number value to an int, or None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value

    amount = normalize_amount(value)
    if amount is None or amount != amount.to_integral_value():
        logger.debug(f"Failed to normalize account value: {value!r}")
        return None
    return int(amount)


def round_to_cents(value: Decimal) -> Decimal:
    """Round a Decimal to whole cents."""
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def format_currency(amount: Optional[Number]) -> str:
    """
    Format a number as a EUR amount string.

    Args:
        amount: Amount to format

    Returns:
        Formatted currency string
    """
    if amount is None:
        return "N/A"

    return f"{Decimal(amount):,.2f} EUR"


def fingerprint(*parts: Any) -> str:
    """Stable hex digest over the string forms of ``parts``."""
    raw = "|".join(str(p) for p in parts)
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]


def safe_json_serialize(obj: Any) -> Any:
    """
    Convert an object to a JSON-serializable format.

    Args:
        obj: Object to serialize

    Returns:
        JSON-serializable representation of the object
    """
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    elif isinstance(obj, Decimal):
        return float(obj)
    elif isinstance(obj, Enum):
        return obj.value
    elif isinstance(obj, Path):
        return str(obj)
    elif hasattr(obj, 'to_dict'):
        return obj.to_dict()
    return str(obj)


def safe_json_dumps(data: Any, indent: Optional[int] = None) -> str:
    """
    Convert data to a JSON string, handling non-serializable types.

    Args:
        data: Data to convert to JSON
        indent: Optional indentation

    Returns:
        JSON string
    """
    return json.dumps(data, default=safe_json_serialize, indent=indent, ensure_ascii=False)
