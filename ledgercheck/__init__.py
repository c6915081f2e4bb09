"""
ledgercheck: booking error detection for period-end ledger reviews.

The package scans the bookings of a period (and optionally the prior period)
for duplicate payments, misclassified accounts, missing accruals and other
bookkeeping anomalies, and rates the overall risk.
"""

from ledgercheck.models import (
    Anomaly, AnomalyType, Booking, BookingReference, Category,
    ErrorDetectionResult, Severity
)
from ledgercheck.analysis.engine import ErrorDetectionEngine, detect

__version__ = "0.1.0"

__all__ = [
    'Anomaly', 'AnomalyType', 'Booking', 'BookingReference', 'Category',
    'ErrorDetectionEngine', 'ErrorDetectionResult', 'Severity', 'detect',
]
