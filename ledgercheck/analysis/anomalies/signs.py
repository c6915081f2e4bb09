"""
Reversed sign detector.

Revenue accounts post credits, i.e. negative amounts. A positive amount on a
revenue account is almost always a sign error.
"""

from decimal import Decimal
from typing import Dict, List, Any, Optional, Sequence

from ledgercheck.models import Anomaly, AnomalyType, Booking
from ledgercheck.analysis.base import AnomalyDetector
from ledgercheck.utils.common import format_currency

# SKR03 revenue accounts
REVENUE_ACCOUNT_RANGE = (8000, 8999)

# A flipped sign counts twice: once in the wrong direction, once for the correction
REVERSED_SIGN_IMPACT_FACTOR = 2


class ReversedSignDetector(AnomalyDetector):
    """Detects positive amounts on revenue accounts."""

    anomaly_type = AnomalyType.REVERSED_SIGN

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        super().__init__(config)

        low, high = self.get_config_value('revenue_account_range', REVENUE_ACCOUNT_RANGE)
        self.revenue_range = (int(low), int(high))
        self.impact_factor = Decimal(str(self.get_config_value('reversed_sign_impact_factor',
                                                               REVERSED_SIGN_IMPACT_FACTOR)))

    def is_revenue_account(self, account: int) -> bool:
        low, high = self.revenue_range
        return low <= account <= high

    def detect_anomalies(self, current: Sequence[Booking],
                         previous: Optional[Sequence[Booking]] = None) -> List[Anomaly]:
        anomalies = []

        for position, booking in enumerate(current):
            if booking.account is None or booking.amount is None:
                self.skip(booking, "account or amount")
                continue
            if not self.is_revenue_account(booking.account) or booking.amount <= 0:
                continue

            anomalies.append(self.build_anomaly(
                id_parts=[position, booking.document_no],
                description=(
                    f"Reversed sign: revenue account {booking.account} carries a positive amount of "
                    f"{format_currency(booking.amount)} (should be negative)"
                ),
                bookings=[booking],
                suggested_fix="Check the sign of the booking.",
                financial_impact=booking.amount * self.impact_factor,
            ))

        self.logger.info(f"Found {len(anomalies)} reversed signs on revenue accounts")
        return anomalies
