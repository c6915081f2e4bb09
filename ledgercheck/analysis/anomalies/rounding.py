"""
Round-number suspicion detector.

A suspiciously round amount on an account whose postings usually vary is a
hint for an estimate or plug figure instead of an actual invoice. Accounts
with little variance (flat-rate rent, fixed fees) are exempt.
"""

from decimal import Decimal
from statistics import mean, pstdev
from typing import Dict, List, Any, Optional, Sequence

from ledgercheck.models import Anomaly, AnomalyType, Booking
from ledgercheck.analysis.base import AnomalyDetector
from ledgercheck.utils.common import format_currency

ROUND_DIVISORS = (10000, 5000, 1000, 500)
VERY_ROUND_DIVISOR = 10000
RELATIVE_STDDEV_THRESHOLD = Decimal('0.2')


class RoundNumberDetector(AnomalyDetector):
    """Detects round amounts on accounts with normally varied amounts."""

    anomaly_type = AnomalyType.ROUND_NUMBER_SUSPICIOUS

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)

        self.divisors = [Decimal(d) for d in self.get_config_value('round_number_divisors', ROUND_DIVISORS)]
        self.very_round_divisor = Decimal(self.get_config_value('round_number_very_round_divisor', VERY_ROUND_DIVISOR))
        self.relative_stddev = Decimal(str(self.get_config_value('round_number_relative_stddev', RELATIVE_STDDEV_THRESHOLD)))

    def detect_anomalies(self, current: Sequence[Booking],
                         previous: Optional[Sequence[Booking]] = None) -> List[Anomaly]:
        # Positions into ``current`` grouped by account
        by_account: Dict[int, List[int]] = {}
        for position, booking in enumerate(current):
            if booking.account is None:
                self.skip(booking, "account")
                continue
            if booking.amount is None:
                self.skip(booking, "amount")
                continue
            by_account.setdefault(booking.account, []).append(position)

        anomalies = []
        for account, positions in by_account.items():
            round_positions = [p for p in positions if self.is_round(abs(current[p].amount))]
            if not round_positions or not self._varies([current[p] for p in positions]):
                continue
            anomalies.extend(self._build(p, current[p]) for p in round_positions)

        self.logger.info(f"Found {len(anomalies)} suspiciously round amounts")
        return anomalies

    def is_round(self, amount: Decimal) -> bool:
        """True for amounts divisible by one of the round divisors, zero included."""
        return any(amount % divisor == 0 for divisor in self.divisors)

    def _varies(self, bookings: List[Booking]) -> bool:
        """Population standard deviation above the relative threshold of the mean."""
        amounts = [abs(b.amount) for b in bookings]
        return pstdev(amounts) > mean(amounts) * self.relative_stddev

    def _build(self, position: int, booking: Booking) -> Anomaly:
        amount = abs(booking.amount)
        level = "very round" if amount % self.very_round_divisor == 0 else "round"
        return self.build_anomaly(
            id_parts=[position, booking.document_no],
            description=(
                f"Conspicuously {level} amount on account {booking.account} "
                f"({booking.account_name}): {format_currency(amount)}"
            ),
            bookings=[booking],
            suggested_fix="Check whether this estimate or simplified amount is correct.",
            financial_impact=amount,
        )
