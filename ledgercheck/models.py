"""
Data model for ledgercheck.

Bookings are the normalized input records, anomalies are detector findings
and ErrorDetectionResult is the single output of a detection run. All of them
are immutable and convert to plain dictionaries for reporting collaborators.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Dict, List, Any, Optional, Mapping, Tuple

from ledgercheck.utils.common import round_to_cents


class Severity(Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class Category(Enum):
    """Grouping labels for anomalies, in recommendation order."""
    DUPLICATE = "Duplicate"
    MISCLASSIFICATION = "Misclassification"
    ACCRUAL = "Accrual"
    ANOMALY = "Anomaly"
    PLAUSIBILITY = "Plausibility"


class AnomalyType(Enum):
    DUPLICATE_PAYMENT = "duplicate_payment"
    WRONG_ACCOUNT = "wrong_account"
    MISSING_ACCRUAL = "missing_accrual"
    ROUND_NUMBER_SUSPICIOUS = "round_number_suspicious"
    WEEKEND_BOOKING = "weekend_booking"
    REVERSED_SIGN = "reversed_sign"
    UNUSUAL_VENDOR = "unusual_vendor"
    SPLIT_BOOKING_SUSPICIOUS = "split_booking_suspicious"


def _amount_out(value: Optional[Decimal]) -> Optional[float]:
    if value is None:
        return None
    return float(round_to_cents(value))


@dataclass(frozen=True)
class BookingReference:
    """Immutable projection of a booking embedded in an anomaly."""

    document_no: str
    posting_date: Optional[date]
    amount: Optional[Decimal]
    account: Optional[int]
    account_name: str
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'document_no': self.document_no,
            'posting_date': self.posting_date.isoformat() if self.posting_date else None,
            'amount': _amount_out(self.amount),
            'account': self.account,
            'account_name': self.account_name,
            'text': self.text,
        }


@dataclass(frozen=True)
class Booking:
    """One ledger posting.

    ``posting_date``, ``amount`` and ``account`` are None when the source row
    held a value that could not be parsed; detectors skip such bookings where
    they need the missing field.
    """

    posting_date: Optional[date]
    amount: Optional[Decimal]
    account: Optional[int]
    document_no: str = ""
    account_name: str = ""
    text: str = ""
    cost_center: Optional[str] = None
    profit_center: Optional[str] = None
    vendor: Optional[str] = None
    customer: Optional[str] = None

    @classmethod
    def from_dict(cls, row: Mapping[str, Any]) -> 'Booking':
        """Build a booking from a raw row, coercing values leniently.

        Args:
            row: Mapping with ledger column names (``posting_date``, ``amount``...)

        Returns:
            Booking instance
        """
        from ledgercheck.ingest.schema import BookingRow

        return BookingRow.model_validate(dict(row)).to_booking()

    @property
    def vendor_key(self) -> Optional[str]:
        """Case-insensitive vendor key, None when there is no vendor."""
        if not self.vendor:
            return None
        return self.vendor.lower()

    def reference(self) -> BookingReference:
        return BookingReference(
            document_no=self.document_no,
            posting_date=self.posting_date,
            amount=self.amount,
            account=self.account,
            account_name=self.account_name,
            text=self.text,
        )


@dataclass(frozen=True)
class Anomaly:
    """A single detector finding."""

    id: str
    type: AnomalyType
    severity: Severity
    confidence: float
    description: str
    affected_bookings: Tuple[BookingReference, ...]
    suggested_fix: str
    financial_impact: Decimal
    category: Category

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")
        if self.financial_impact < 0:
            raise ValueError(f"financial_impact must not be negative, got {self.financial_impact}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'type': self.type.value,
            'severity': self.severity.value,
            'confidence': round(self.confidence, 4),
            'description': self.description,
            'affected_bookings': [ref.to_dict() for ref in self.affected_bookings],
            'suggested_fix': self.suggested_fix,
            'financial_impact': _amount_out(self.financial_impact),
            'category': self.category.value,
        }


@dataclass(frozen=True)
class CategorySummary:
    category: Category
    count: int
    impact: Decimal

    def to_dict(self) -> Dict[str, Any]:
        return {
            'category': self.category.value,
            'count': self.count,
            'impact': _amount_out(self.impact),
        }


@dataclass(frozen=True)
class DetectionSummary:
    total: int = 0
    critical_count: int = 0
    warning_count: int = 0
    info_count: int = 0
    estimated_financial_impact: Decimal = Decimal('0')
    top_categories: Tuple[CategorySummary, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total': self.total,
            'critical_count': self.critical_count,
            'warning_count': self.warning_count,
            'info_count': self.info_count,
            'estimated_financial_impact': _amount_out(self.estimated_financial_impact),
            'top_categories': [c.to_dict() for c in self.top_categories],
        }


@dataclass(frozen=True)
class ErrorDetectionResult:
    """Output of one detection run.

    ``anomalies`` keep detector execution order; callers sort for display.
    """

    anomalies: Tuple[Anomaly, ...] = ()
    risk_score: int = 0
    summary: DetectionSummary = field(default_factory=DetectionSummary)
    recommendations: Tuple[str, ...] = ()

    def by_severity(self) -> List[Anomaly]:
        """Anomalies ordered critical first, keeping detector order within a tier."""
        rank = {Severity.CRITICAL: 0, Severity.WARNING: 1, Severity.INFO: 2}
        return sorted(self.anomalies, key=lambda a: rank[a.severity])

    def to_dict(self) -> Dict[str, Any]:
        return {
            'anomalies': [a.to_dict() for a in self.anomalies],
            'risk_score': self.risk_score,
            'summary': self.summary.to_dict(),
            'recommendations': list(self.recommendations),
        }
