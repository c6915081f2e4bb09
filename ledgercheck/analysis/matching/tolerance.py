"""
Tolerance predicates for fuzzy booking comparison.

Duplicate and accrual detection compare amounts and dates approximately.
The predicates here keep the percentage and day-window rules explicit and
their parameters as named constants.
"""

import calendar
from datetime import date
from decimal import Decimal
from typing import Union

# Duplicate payments: relative amount difference (inclusive) and day window
DUPLICATE_AMOUNT_TOLERANCE = Decimal('0.05')
DUPLICATE_DAY_WINDOW = 30

# Recurring charges: relative amount difference (exclusive)
RECURRING_AMOUNT_TOLERANCE = Decimal('0.10')

# Differences below one cent count as the same amount
EXACT_AMOUNT_EPSILON = Decimal('0.01')

Ratio = Union[Decimal, float, int, str]


def _as_decimal(value: Ratio) -> Decimal:
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def within_relative_tolerance(candidate: Decimal, reference: Decimal,
                              tolerance: Ratio = DUPLICATE_AMOUNT_TOLERANCE) -> bool:
    """True if ``candidate`` differs from ``reference`` by at most ``tolerance`` of ``|reference|``.

    A zero reference only matches a zero candidate.
    """
    if reference == 0:
        return candidate == 0
    return abs(candidate - reference) / abs(reference) <= _as_decimal(tolerance)


def strictly_within_tolerance(candidate: Decimal, reference: Decimal,
                              tolerance: Ratio = RECURRING_AMOUNT_TOLERANCE) -> bool:
    """True if ``|candidate - reference| < |reference| * tolerance``.

    Zero references never match, as in the recurring-charge grouping.
    """
    return abs(candidate - reference) < abs(reference) * _as_decimal(tolerance)


def days_apart(first: date, second: date) -> int:
    return abs((second - first).days)


def within_day_window(first: date, second: date, window: int = DUPLICATE_DAY_WINDOW) -> bool:
    return days_apart(first, second) <= window


def is_exact_amount(first: Decimal, second: Decimal) -> bool:
    return abs(first - second) < EXACT_AMOUNT_EPSILON


def add_months(value: date, months: int = 1) -> date:
    """Shift a date by whole calendar months, clamping to the month's last day.

    Args:
        value: Start date
        months: Number of months to add (may be negative)

    Returns:
        Shifted date (2024-01-31 + 1 month = 2024-02-29)
    """
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)
