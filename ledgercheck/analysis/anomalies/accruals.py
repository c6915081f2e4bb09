"""
Missing accrual detector.

This module compares the current period with the previous one: a vendor
charge that recurred on the same account in the previous period but has no
counterpart now suggests that an accrual or provision is missing.
"""

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Dict, List, Any, Optional, Sequence

from ledgercheck.models import Anomaly, AnomalyType, Booking
from ledgercheck.analysis.base import AnomalyDetector
from ledgercheck.analysis.matching.tolerance import (
    RECURRING_AMOUNT_TOLERANCE, strictly_within_tolerance, add_months
)
from ledgercheck.utils.common import format_currency

MIN_RECURRING_FREQUENCY = 2


@dataclass
class RecurringPattern:
    """Bookings of one vendor on one account with roughly the same amount.

    Only lives for the duration of one detection call.
    """

    vendor: str
    account: int
    amount: Decimal
    frequency: int
    last_date: date


class MissingAccrualDetector(AnomalyDetector):
    """Detects recurring vendor charges missing from the current period."""

    anomaly_type = AnomalyType.MISSING_ACCRUAL

    def __init__(self, config: Optional[Dict[str, Any]] = None, as_of: Optional[date] = None):
        """Initialize the detector.

        Args:
            config: Optional detection configuration dictionary
            as_of: Reference date for "expected by now"; defaults to today
                at detection time
        """
        super().__init__(config)

        self.as_of = as_of
        self.amount_tolerance = self.get_config_value('accrual_amount_tolerance', RECURRING_AMOUNT_TOLERANCE)
        self.min_frequency = int(self.get_config_value('accrual_min_frequency', MIN_RECURRING_FREQUENCY))

    def detect_anomalies(self, current: Sequence[Booking],
                         previous: Optional[Sequence[Booking]] = None) -> List[Anomaly]:
        """Detect recurring charges of the previous period that are missing now.

        Args:
            current: Bookings of the period under review
            previous: Bookings of the prior period; without them nothing is reported

        Returns:
            List of missing accrual anomalies (with no affected bookings)
        """
        if not previous:
            self.logger.info("No previous period supplied, skipping missing accrual detection")
            return []

        as_of = self.as_of or date.today()
        anomalies = []

        for vendor, patterns in self.find_recurring_patterns(previous).items():
            for pattern in patterns:
                if pattern.frequency < self.min_frequency:
                    continue
                if self._has_counterpart(pattern, current):
                    continue
                if add_months(pattern.last_date, 1) > as_of:
                    continue
                anomalies.append(self._build(pattern))

        self.logger.info(f"Found {len(anomalies)} possibly missing accruals")
        return anomalies

    def find_recurring_patterns(self, bookings: Sequence[Booking]) -> Dict[str, List[RecurringPattern]]:
        """Group bookings into per-vendor patterns of similar amounts.

        A booking joins the first pattern of its vendor with the same account
        and an amount within tolerance of the booking's own amount; otherwise
        it starts a new pattern.

        Args:
            bookings: Bookings to group

        Returns:
            Patterns keyed by lower-cased vendor, in first-seen order
        """
        patterns: Dict[str, List[RecurringPattern]] = {}

        for booking in bookings:
            vendor = booking.vendor_key
            if not vendor:
                continue
            if booking.amount is None or booking.account is None or booking.posting_date is None:
                self.skip(booking, "amount, account or posting_date")
                continue

            vendor_patterns = patterns.setdefault(vendor, [])
            existing = next(
                (p for p in vendor_patterns
                 if p.account == booking.account
                 and strictly_within_tolerance(p.amount, booking.amount, self.amount_tolerance)),
                None
            )

            if existing:
                existing.frequency += 1
                existing.last_date = max(existing.last_date, booking.posting_date)
            else:
                vendor_patterns.append(RecurringPattern(
                    vendor=vendor,
                    account=booking.account,
                    amount=booking.amount,
                    frequency=1,
                    last_date=booking.posting_date,
                ))

        return patterns

    def _has_counterpart(self, pattern: RecurringPattern, current: Sequence[Booking]) -> bool:
        return any(
            b.vendor_key == pattern.vendor
            and b.account == pattern.account
            and b.amount is not None
            and strictly_within_tolerance(b.amount, pattern.amount, self.amount_tolerance)
            for b in current
        )

    def _build(self, pattern: RecurringPattern) -> Anomaly:
        amount = abs(pattern.amount)
        return self.build_anomaly(
            id_parts=[pattern.vendor, pattern.account, pattern.amount],
            description=(
                f"Possibly missing accrual: {pattern.vendor} on account {pattern.account} recurred "
                f"in the previous period ({pattern.frequency}x) but is missing now"
            ),
            bookings=[],
            suggested_fix=(
                f"Check whether an accrual for {pattern.vendor} of about "
                f"{format_currency(amount)} is required."
            ),
            financial_impact=amount,
        )
