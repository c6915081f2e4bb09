"""
Account misclassification detector.

Flags postings whose narration points to one account family (rent, payroll,
travel...) while the posting went to an account outside that family's
expected ranges.
"""

from decimal import Decimal
from typing import Dict, List, Any, Optional, Sequence, Tuple

from ledgercheck.models import Anomaly, AnomalyType, Booking
from ledgercheck.analysis.base import AnomalyDetector
from ledgercheck.analysis.rules import ACCOUNT_MAPPINGS, AccountMapping, load_account_mappings


class AccountMisclassificationDetector(AnomalyDetector):
    """Detects bookings whose text does not fit the posted account."""

    anomaly_type = AnomalyType.WRONG_ACCOUNT

    def __init__(self, config: Optional[Dict[str, Any]] = None,
                 mappings: Optional[Tuple[AccountMapping, ...]] = None):
        """Initialize the detector.

        Args:
            config: Optional detection configuration dictionary
            mappings: Keyword to account-range table; defaults to the table
                named by ``account_mappings_file`` or the packaged SKR03 table
        """
        super().__init__(config)

        if mappings is None:
            mappings_file = self.get_config_value('account_mappings_file')
            mappings = load_account_mappings(mappings_file) if mappings_file else ACCOUNT_MAPPINGS
        self.mappings = mappings

    def detect_anomalies(self, current: Sequence[Booking],
                         previous: Optional[Sequence[Booking]] = None) -> List[Anomaly]:
        anomalies = []

        for position, booking in enumerate(current):
            if not booking.text:
                continue
            if booking.account is None:
                self.skip(booking, "account")
                continue

            lowered = booking.text.lower()
            for mapping in self.mappings:
                keyword = mapping.matched_keyword(lowered)
                if keyword is None or mapping.contains(booking.account):
                    continue
                anomalies.append(self._build(position, booking, mapping, keyword))

        self.logger.info(f"Found {len(anomalies)} implausible account assignments")
        return anomalies

    def _build(self, position: int, booking: Booking, mapping: AccountMapping, keyword: str) -> Anomaly:
        expected = mapping.describe_ranges()
        return self.build_anomaly(
            id_parts=[position, booking.document_no, mapping.label],
            description=(
                f'Implausible account assignment: "{keyword}" points to {mapping.label} '
                f"account {expected}, but the booking was posted to {booking.account} "
                f"({booking.account_name})"
            ),
            bookings=[booking],
            suggested_fix=f"Check whether the booking should be reposted to an account in range {expected}.",
            financial_impact=booking.amount if booking.amount is not None else Decimal("0"),
        )
