"""
Weekend booking detector.
"""

import calendar
from decimal import Decimal
from typing import List, Optional, Sequence

from ledgercheck.models import Anomaly, AnomalyType, Booking
from ledgercheck.analysis.base import AnomalyDetector

WEEKEND_DAYS = (5, 6)  # Saturday, Sunday


class WeekendBookingDetector(AnomalyDetector):
    """Flags postings dated on a Saturday or Sunday."""

    anomaly_type = AnomalyType.WEEKEND_BOOKING

    def detect_anomalies(self, current: Sequence[Booking],
                         previous: Optional[Sequence[Booking]] = None) -> List[Anomaly]:
        anomalies = []

        for position, booking in enumerate(current):
            if booking.posting_date is None:
                self.skip(booking, "posting_date")
                continue
            weekday = booking.posting_date.weekday()
            if weekday not in WEEKEND_DAYS:
                continue

            anomalies.append(self.build_anomaly(
                id_parts=[position, booking.document_no, booking.posting_date.isoformat()],
                description=(
                    f"Booking dated on a weekend ({calendar.day_name[weekday]}): "
                    f"{booking.posting_date.isoformat()}"
                ),
                bookings=[booking],
                suggested_fix="Check whether the posting date is correct.",
                # Calendar finding, no amount at risk
                financial_impact=Decimal('0'),
            ))

        self.logger.info(f"Found {len(anomalies)} weekend bookings")
        return anomalies
