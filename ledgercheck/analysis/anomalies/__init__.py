"""Anomaly detectors, one module per failure pattern."""

from ledgercheck.analysis.anomalies.duplicates import DuplicatePaymentDetector
from ledgercheck.analysis.anomalies.classification import AccountMisclassificationDetector
from ledgercheck.analysis.anomalies.accruals import MissingAccrualDetector
from ledgercheck.analysis.anomalies.rounding import RoundNumberDetector
from ledgercheck.analysis.anomalies.weekend import WeekendBookingDetector
from ledgercheck.analysis.anomalies.signs import ReversedSignDetector
from ledgercheck.analysis.anomalies.vendors import UnusualVendorDetector
from ledgercheck.analysis.anomalies.splits import SplitBookingDetector

__all__ = [
    'DuplicatePaymentDetector',
    'AccountMisclassificationDetector',
    'MissingAccrualDetector',
    'RoundNumberDetector',
    'WeekendBookingDetector',
    'ReversedSignDetector',
    'UnusualVendorDetector',
    'SplitBookingDetector',
]
