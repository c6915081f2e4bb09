"""
Unusual vendor detector.

A vendor that shows up for the first time with a single large posting is
worth a look: it may be unknown, unauthorised or a typo of a known vendor.
"""

from decimal import Decimal
from typing import Dict, List, Any, Optional, Sequence, Set

from ledgercheck.models import Anomaly, AnomalyType, Booking
from ledgercheck.analysis.base import AnomalyDetector
from ledgercheck.utils.common import format_currency

UNUSUAL_VENDOR_MIN_AMOUNT = Decimal('5000')


class UnusualVendorDetector(AnomalyDetector):
    """Detects new vendors with a single large booking."""

    anomaly_type = AnomalyType.UNUSUAL_VENDOR

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)

        self.min_amount = Decimal(str(self.get_config_value('unusual_vendor_min_amount',
                                                            UNUSUAL_VENDOR_MIN_AMOUNT)))

    def detect_anomalies(self, current: Sequence[Booking],
                         previous: Optional[Sequence[Booking]] = None) -> List[Anomaly]:
        # Positions into ``current`` grouped by vendor
        by_vendor: Dict[str, List[int]] = {}
        for position, booking in enumerate(current):
            if booking.vendor_key:
                by_vendor.setdefault(booking.vendor_key, []).append(position)

        known: Set[str] = {b.vendor_key for b in previous or [] if b.vendor_key}

        anomalies = []
        for vendor, positions in by_vendor.items():
            if len(positions) != 1 or vendor in known:
                continue

            position = positions[0]
            booking = current[position]
            if booking.amount is None:
                self.skip(booking, "amount")
                continue
            amount = abs(booking.amount)
            if amount <= self.min_amount:
                continue

            anomalies.append(self.build_anomaly(
                id_parts=[position, vendor, booking.document_no],
                description=f'New vendor "{booking.vendor}" with a single large booking: {format_currency(amount)}',
                bookings=[booking],
                suggested_fix="Check whether this new vendor is known and authorised.",
                financial_impact=amount,
            ))

        self.logger.info(f"Found {len(anomalies)} unusual vendors")
        return anomalies
