"""
Split booking detector.

This module looks for threshold evasion: several postings on the same day and
account, each kept just below a common approval limit.
"""

from datetime import date
from decimal import Decimal
from typing import Dict, List, Any, Optional, Sequence, Tuple

from ledgercheck.models import Anomaly, AnomalyType, Booking
from ledgercheck.analysis.base import AnomalyDetector

MIN_SPLIT_BOOKINGS = 3

# (lower, threshold): every amount strictly between the two
SPLIT_BANDS = ((2000, 5000), (5000, 10000))


class SplitBookingDetector(AnomalyDetector):
    """Detects same-day postings split to stay under an approval threshold."""

    anomaly_type = AnomalyType.SPLIT_BOOKING_SUSPICIOUS

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)

        self.min_bookings = int(self.get_config_value('split_min_bookings', MIN_SPLIT_BOOKINGS))
        self.bands = [
            (Decimal(str(low)), Decimal(str(high)))
            for low, high in self.get_config_value('split_bands', SPLIT_BANDS)
        ]

    def detect_anomalies(self, current: Sequence[Booking],
                         previous: Optional[Sequence[Booking]] = None) -> List[Anomaly]:
        groups: Dict[Tuple[date, int], List[int]] = {}
        for position, booking in enumerate(current):
            if booking.posting_date is None or booking.account is None or booking.amount is None:
                self.skip(booking, "posting_date, account or amount")
                continue
            groups.setdefault((booking.posting_date, booking.account), []).append(position)

        anomalies = []
        for (posting_date, account), positions in groups.items():
            if len(positions) < self.min_bookings:
                continue

            group = [current[p] for p in positions]
            amounts = [abs(b.amount) for b in group]
            threshold = self.evaded_threshold(amounts)
            if threshold is None:
                continue

            anomalies.append(self.build_anomaly(
                id_parts=[posting_date.isoformat(), account] + positions + [b.document_no for b in group],
                description=(
                    f"Suspicious split: {len(group)} bookings on the same account on the same day, "
                    f"all just below {threshold:,.0f} EUR"
                ),
                bookings=group,
                suggested_fix=(
                    f"Check whether these {len(group)} bookings were split artificially "
                    "to avoid approval thresholds."
                ),
                financial_impact=sum(amounts, Decimal('0')),
            ))

        self.logger.info(f"Found {len(anomalies)} suspicious split bookings")
        return anomalies

    def evaded_threshold(self, amounts: List[Decimal]) -> Optional[Decimal]:
        """The first band threshold all amounts stay strictly below, or None."""
        for low, high in self.bands:
            if all(low < amount < high for amount in amounts):
                return high
        return None
