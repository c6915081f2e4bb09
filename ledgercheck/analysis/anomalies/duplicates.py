"""
Duplicate payment detector.

This module finds clusters of bookings to the same vendor with nearly the
same amount within a short date window, the typical shape of an invoice that
was paid twice.
"""

from collections import defaultdict
from decimal import Decimal
from typing import Dict, List, Any, Optional, Sequence, Set

from ledgercheck.models import Anomaly, AnomalyType, Booking, Severity
from ledgercheck.analysis.base import AnomalyDetector
from ledgercheck.analysis.matching.tolerance import (
    DUPLICATE_AMOUNT_TOLERANCE, DUPLICATE_DAY_WINDOW,
    within_relative_tolerance, within_day_window, is_exact_amount
)
from ledgercheck.analysis.rules import (
    DUPLICATE_CLUSTER_BONUS, DUPLICATE_EXACT_AMOUNT_BONUS, DUPLICATE_CRITICAL_ABOVE
)


class DuplicatePaymentDetector(AnomalyDetector):
    """Detects likely double payments to the same vendor."""

    anomaly_type = AnomalyType.DUPLICATE_PAYMENT

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)

        self.amount_tolerance = self.get_config_value('duplicate_amount_tolerance', DUPLICATE_AMOUNT_TOLERANCE)
        self.day_window = int(self.get_config_value('duplicate_day_window', DUPLICATE_DAY_WINDOW))

    def detect_anomalies(self, current: Sequence[Booking],
                         previous: Optional[Sequence[Booking]] = None) -> List[Anomaly]:
        """Detect duplicate payment clusters.

        Every booking is compared against later bookings of the same vendor
        only. Bookings already placed in a cluster are claimed and never
        reported again, so a triple payment yields one finding, not three.

        Args:
            current: Bookings of the period under review
            previous: Unused

        Returns:
            One anomaly per cluster of two or more bookings
        """
        # Bucket indices by vendor; each bucket keeps ascending index order
        buckets: Dict[str, List[int]] = defaultdict(list)
        for index, booking in enumerate(current):
            if not booking.vendor_key:
                continue
            if booking.amount is None:
                self.skip(booking, "amount")
                continue
            if booking.posting_date is None:
                self.skip(booking, "posting_date")
                continue
            buckets[booking.vendor_key].append(index)

        claimed: Set[int] = set()
        anomalies = []

        for index in sorted(i for indices in buckets.values() for i in indices):
            if index in claimed:
                continue
            booking = current[index]

            matches = [
                other for other in buckets[booking.vendor_key]
                if other > index and other not in claimed and self._is_duplicate(booking, current[other])
            ]
            if not matches:
                continue

            claimed.add(index)
            claimed.update(matches)
            anomalies.append(self._build(current, index, matches))

        self.logger.info(f"Found {len(anomalies)} duplicate payment clusters")
        return anomalies

    def _is_duplicate(self, booking: Booking, candidate: Booking) -> bool:
        return (
            within_relative_tolerance(candidate.amount, booking.amount, self.amount_tolerance)
            and within_day_window(booking.posting_date, candidate.posting_date, self.day_window)
        )

    def _build(self, current: Sequence[Booking], index: int, match_positions: List[int]) -> Anomaly:
        booking = current[index]
        matches = [current[i] for i in match_positions]
        cluster = [booking] + matches

        confidence = self.profile.confidence
        if len(cluster) > 2:
            confidence += DUPLICATE_CLUSTER_BONUS
        if any(is_exact_amount(m.amount, booking.amount) for m in matches):
            confidence += DUPLICATE_EXACT_AMOUNT_BONUS
        confidence = min(1.0, round(confidence, 4))

        severity = Severity.CRITICAL if confidence > DUPLICATE_CRITICAL_ABOVE else Severity.WARNING
        total = sum((b.amount for b in cluster), Decimal('0'))
        document_numbers = [b.document_no for b in cluster]

        return self.build_anomaly(
            id_parts=[index] + match_positions + document_numbers,
            description=(
                f"Possible duplicate payment to {booking.vendor}: {len(cluster)} similar bookings "
                f"within {self.day_window} days"
            ),
            bookings=cluster,
            suggested_fix=(
                f"Check bookings {', '.join(document_numbers)}. "
                "One or more of them may have to be reversed."
            ),
            financial_impact=abs(total),
            confidence=confidence,
            severity=severity,
        )
