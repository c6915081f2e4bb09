"""
Main engine for booking error detection.

This module provides the public entry point of ledgercheck. It runs the eight
anomaly detectors over the same bookings in a fixed order, then aggregates the
findings into a risk score, a category summary and recommendations.
"""

import concurrent.futures
from datetime import date
from typing import Dict, List, Any, Iterable, Mapping, Optional, Sequence, Tuple, Union

from ledgercheck.models import Anomaly, Booking, ErrorDetectionResult
from ledgercheck.analysis.base import AnomalyDetector
from ledgercheck.analysis.rules import load_account_mappings
from ledgercheck.analysis.scoring import RiskAggregator, RecommendationGenerator
from ledgercheck.config import validate_detection_config

# Import detectors
from ledgercheck.analysis.anomalies.duplicates import DuplicatePaymentDetector
from ledgercheck.analysis.anomalies.classification import AccountMisclassificationDetector
from ledgercheck.analysis.anomalies.accruals import MissingAccrualDetector
from ledgercheck.analysis.anomalies.rounding import RoundNumberDetector
from ledgercheck.analysis.anomalies.weekend import WeekendBookingDetector
from ledgercheck.analysis.anomalies.signs import ReversedSignDetector
from ledgercheck.analysis.anomalies.vendors import UnusualVendorDetector
from ledgercheck.analysis.anomalies.splits import SplitBookingDetector

import logging
logger = logging.getLogger(__name__)

BookingInput = Union[Booking, Mapping[str, Any]]


def coerce_bookings(items: Optional[Iterable[BookingInput]], label: str = "bookings") -> Tuple[Booking, ...]:
    """Turn caller input into an immutable tuple of bookings.

    Args:
        items: Bookings or raw row mappings; None means no bookings
        label: Name used in error messages

    Returns:
        Tuple of bookings

    Raises:
        TypeError: If ``items`` is not a collection of bookings or mappings
    """
    if items is None:
        return ()
    if isinstance(items, (str, bytes, Mapping)) or not isinstance(items, Iterable):
        raise TypeError(f"{label} must be a list of bookings, got {type(items).__name__}")

    bookings = []
    for item in items:
        if isinstance(item, Booking):
            bookings.append(item)
        elif isinstance(item, Mapping):
            bookings.append(Booking.from_dict(item))
        else:
            raise TypeError(f"{label} must contain bookings or mappings, got {type(item).__name__}")
    return tuple(bookings)


class DetectorRunner:
    """Runs detectors over the same input and concatenates their findings."""

    def __init__(self, detectors: Sequence[AnomalyDetector], max_workers: int = 1):
        """Initialize the runner.

        Args:
            detectors: Detectors in output order
            max_workers: Thread pool size; 1 runs the detectors sequentially
        """
        self.detectors = list(detectors)
        self.max_workers = max(1, int(max_workers))

    def run(self, current: Sequence[Booking],
            previous: Optional[Sequence[Booking]] = None) -> List[Anomaly]:
        """Run all detectors.

        The output order is the detector order, whether or not the detectors
        ran concurrently.

        Args:
            current: Bookings of the period under review
            previous: Optional bookings of the prior period

        Returns:
            Concatenated anomalies
        """
        if self.max_workers <= 1 or len(self.detectors) <= 1:
            results = [d.detect_anomalies(current, previous) for d in self.detectors]
        else:
            with concurrent.futures.ThreadPoolExecutor(max_workers=self.max_workers) as executor:
                futures = [executor.submit(d.detect_anomalies, current, previous) for d in self.detectors]
                # Collected in submission order, not completion order
                results = [future.result() for future in futures]

        anomalies: List[Anomaly] = []
        for detector, found in zip(self.detectors, results):
            logger.debug(f"{detector.name}: {len(found)} anomalies")
            anomalies.extend(found)
        return anomalies


class ErrorDetectionEngine:
    """Booking error detection façade."""

    def __init__(self, config: Optional[Dict[str, Any]] = None, max_workers: Optional[int] = None):
        """Initialize the engine.

        Args:
            config: Optional detection configuration dictionary (the
                ``detection`` section of the application config)
            max_workers: Thread pool size for the detectors; defaults to
                sequential execution

        Raises:
            ConfigError: If the detection settings are invalid
        """
        self.config = validate_detection_config(config)
        self.max_workers = max_workers or 1

        mappings_file = self.config.get('account_mappings_file')
        self.account_mappings = load_account_mappings(mappings_file) if mappings_file else None

        self.aggregator = RiskAggregator()
        self.recommendations = RecommendationGenerator()

    def build_detectors(self, as_of: Optional[date] = None) -> List[AnomalyDetector]:
        """Create the detectors in their fixed execution order.

        Args:
            as_of: Reference date for the missing accrual detector

        Returns:
            List of detectors
        """
        return [
            DuplicatePaymentDetector(self.config),
            AccountMisclassificationDetector(self.config, mappings=self.account_mappings),
            MissingAccrualDetector(self.config, as_of=as_of),
            RoundNumberDetector(self.config),
            WeekendBookingDetector(self.config),
            ReversedSignDetector(self.config),
            UnusualVendorDetector(self.config),
            SplitBookingDetector(self.config),
        ]

    def detect(self, current: Optional[Iterable[BookingInput]],
               previous: Optional[Iterable[BookingInput]] = None,
               as_of: Optional[date] = None) -> ErrorDetectionResult:
        """Detect booking errors.

        Args:
            current: Bookings (or raw row mappings) of the period under review
            previous: Optional bookings of the prior period
            as_of: Reference date for "expected by now" checks; defaults to today

        Returns:
            Error detection result
        """
        current_bookings = coerce_bookings(current, "current bookings")
        previous_bookings = coerce_bookings(previous, "previous bookings") if previous is not None else None
        as_of = as_of or date.today()

        logger.info(
            f"Detecting booking errors in {len(current_bookings)} bookings"
            f"{f' against {len(previous_bookings)} previous bookings' if previous_bookings else ''}"
        )

        runner = DetectorRunner(self.build_detectors(as_of), max_workers=self.max_workers)
        anomalies = runner.run(current_bookings, previous_bookings)

        result = ErrorDetectionResult(
            anomalies=tuple(anomalies),
            risk_score=self.aggregator.risk_score(anomalies),
            summary=self.aggregator.summarize(anomalies),
            recommendations=tuple(self.recommendations.generate(anomalies)),
        )

        logger.info(f"Found {len(anomalies)} anomalies, risk score {result.risk_score}")
        return result


def detect(current: Optional[Iterable[BookingInput]],
           previous: Optional[Iterable[BookingInput]] = None,
           *,
           as_of: Optional[date] = None,
           config: Optional[Dict[str, Any]] = None,
           max_workers: Optional[int] = None) -> ErrorDetectionResult:
    """Detect booking errors with a one-off engine.

    Args:
        current: Bookings (or raw row mappings) of the period under review
        previous: Optional bookings of the prior period
        as_of: Reference date for "expected by now" checks; defaults to today
        config: Optional detection configuration dictionary
        max_workers: Thread pool size for the detectors

    Returns:
        Error detection result
    """
    return ErrorDetectionEngine(config, max_workers=max_workers).detect(current, previous, as_of=as_of)
