"""
Base interfaces for the anomaly detectors.

This module defines the abstract detector class shared by all detectors and
the helpers they use to build anomalies with deterministic identifiers.
"""

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Dict, List, Any, Optional, Sequence, Iterable
import logging

from ledgercheck.models import Anomaly, AnomalyType, Booking, Severity
from ledgercheck.analysis.rules import DETECTOR_PROFILES, DetectorProfile
from ledgercheck.utils.common import fingerprint


class AnomalyDetector(ABC):
    """Base class for all anomaly detectors.

    A detector is a pure function of the bookings it is given. Configuration
    is read once in ``__init__``; nothing else is stored between calls.
    """

    #: Kind of anomaly this detector emits
    anomaly_type: AnomalyType

    def __init__(self, config: Optional[Dict[str, Any]] = None):
        """Initialize the detector.

        Args:
            config: Optional detection configuration dictionary
        """
        self.config = config or {}
        self.logger = logging.getLogger(f"{self.__class__.__module__}.{self.__class__.__name__}")

    @property
    def name(self) -> str:
        return self.anomaly_type.value

    @property
    def profile(self) -> DetectorProfile:
        return DETECTOR_PROFILES[self.anomaly_type]

    @abstractmethod
    def detect_anomalies(self, current: Sequence[Booking],
                         previous: Optional[Sequence[Booking]] = None) -> List[Anomaly]:
        """Detect anomalies in the current period's bookings.

        Args:
            current: Bookings of the period under review
            previous: Optional bookings of the prior period

        Returns:
            List of detected anomalies
        """
        pass

    def get_config_value(self, key: str, default: Any = None) -> Any:
        """Get a configuration value with fallback to default.

        Args:
            key: Configuration key
            default: Default value if key not found or None

        Returns:
            Configuration value
        """
        value = self.config.get(key)
        return default if value is None else value

    def skip(self, booking: Booking, missing: str) -> None:
        self.logger.debug(
            f"Skipping booking {booking.document_no or '<no document>'} in {self.name}: missing {missing}"
        )

    def anomaly_id(self, *parts: Any) -> str:
        """Deterministic id from the anomaly type and the identifying parts."""
        return f"{self.profile.id_prefix}-{fingerprint(self.anomaly_type.value, *parts)}"

    def build_anomaly(self, *, id_parts: Iterable[Any], description: str,
                      bookings: Sequence[Booking], suggested_fix: str,
                      financial_impact: Decimal,
                      confidence: Optional[float] = None,
                      severity: Optional[Severity] = None) -> Anomaly:
        """Create an anomaly scored with this detector's profile.

        Args:
            id_parts: Values identifying the finding (positions in the input,
                document numbers etc.)
            description: Human-readable description
            bookings: Affected bookings, in report order
            suggested_fix: Remediation text
            financial_impact: Estimated amount at risk (made non-negative)
            confidence: Overrides the profile confidence
            severity: Overrides the profile severity

        Returns:
            Anomaly instance
        """
        profile = self.profile
        return Anomaly(
            id=self.anomaly_id(*id_parts),
            type=self.anomaly_type,
            severity=severity or profile.severity,
            confidence=min(1.0, profile.confidence if confidence is None else confidence),
            description=description,
            affected_bookings=tuple(b.reference() for b in bookings),
            suggested_fix=suggested_fix,
            financial_impact=abs(financial_impact),
            category=profile.category,
        )
