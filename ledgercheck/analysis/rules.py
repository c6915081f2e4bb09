"""
Declarative rule tables for the anomaly detectors.

The keyword to account-range table, the per-detector severity and confidence
profiles and the recommendation texts live here as data so they can be tested
and extended without touching detector control flow.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional, Tuple, Union
import logging

import yaml

from ledgercheck.models import AnomalyType, Category, Severity
from ledgercheck.utils.config import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_ACCOUNT_MAPPINGS_FILE = Path(__file__).resolve().parent.parent / "data" / "skr03_account_mappings.yaml"


@dataclass(frozen=True)
class AccountMapping:
    """Expected account ranges for bookings whose text contains a keyword."""

    label: str
    ranges: Tuple[Tuple[int, int], ...]
    keywords: Tuple[str, ...]

    def matched_keyword(self, lowered_text: str) -> Optional[str]:
        """First keyword contained in ``lowered_text``, or None."""
        for keyword in self.keywords:
            if keyword in lowered_text:
                return keyword
        return None

    def contains(self, account: int) -> bool:
        return any(low <= account <= high for low, high in self.ranges)

    def describe_ranges(self) -> str:
        return ", ".join(f"{low}-{high}" for low, high in self.ranges)


def _parse_mapping(entry: Dict[str, Any]) -> AccountMapping:
    try:
        label = str(entry['label'])
        ranges = tuple((int(low), int(high)) for low, high in entry['ranges'])
        keywords = tuple(str(k).lower() for k in entry['keywords'])
    except (KeyError, TypeError, ValueError) as e:
        raise ConfigError(f"Invalid account mapping entry {entry!r}: {e}") from e

    if not ranges or not keywords:
        raise ConfigError(f"Account mapping '{label}' needs at least one range and one keyword")
    for low, high in ranges:
        if low > high:
            raise ConfigError(f"Account mapping '{label}' has an inverted range {low}-{high}")

    return AccountMapping(label=label, ranges=ranges, keywords=keywords)


def load_account_mappings(path: Optional[Union[str, Path]] = None) -> Tuple[AccountMapping, ...]:
    """Load the keyword to account-range table from a YAML file.

    Args:
        path: YAML file with a list of ``label``/``ranges``/``keywords`` entries;
            defaults to the packaged SKR03 table

    Returns:
        Tuple of account mappings in file order

    Raises:
        ConfigError: If the file is missing or malformed
    """
    path = Path(path) if path else DEFAULT_ACCOUNT_MAPPINGS_FILE

    try:
        with open(path, 'r', encoding='utf-8') as f:
            entries = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Could not load account mappings from {path}: {e}") from e

    if not isinstance(entries, list):
        raise ConfigError(f"Account mappings in {path} must be a list")

    mappings = tuple(_parse_mapping(entry) for entry in entries)
    logger.debug(f"Loaded {len(mappings)} account mappings from {path}")
    return mappings


# Loaded once at import; tuples of frozen dataclasses, never mutated
ACCOUNT_MAPPINGS: Tuple[AccountMapping, ...] = load_account_mappings()


@dataclass(frozen=True)
class DetectorProfile:
    """Fixed scoring of one detector's findings."""

    severity: Severity
    confidence: float
    category: Category
    id_prefix: str


DETECTOR_PROFILES: Dict[AnomalyType, DetectorProfile] = {
    # Base values; duplicate confidence and severity are raised per cluster
    AnomalyType.DUPLICATE_PAYMENT: DetectorProfile(Severity.WARNING, 0.5, Category.DUPLICATE, "dup-payment"),
    AnomalyType.WRONG_ACCOUNT: DetectorProfile(Severity.WARNING, 0.75, Category.MISCLASSIFICATION, "wrong-account"),
    AnomalyType.MISSING_ACCRUAL: DetectorProfile(Severity.WARNING, 0.8, Category.ACCRUAL, "missing-accrual"),
    AnomalyType.ROUND_NUMBER_SUSPICIOUS: DetectorProfile(Severity.INFO, 0.6, Category.ANOMALY, "round-number"),
    AnomalyType.WEEKEND_BOOKING: DetectorProfile(Severity.INFO, 0.5, Category.ANOMALY, "weekend"),
    AnomalyType.REVERSED_SIGN: DetectorProfile(Severity.WARNING, 0.9, Category.PLAUSIBILITY, "reversed-sign"),
    AnomalyType.UNUSUAL_VENDOR: DetectorProfile(Severity.INFO, 0.6, Category.ANOMALY, "unusual-vendor"),
    AnomalyType.SPLIT_BOOKING_SUSPICIOUS: DetectorProfile(Severity.WARNING, 0.7, Category.ANOMALY, "split-booking"),
}

DUPLICATE_CLUSTER_BONUS = 0.2
DUPLICATE_EXACT_AMOUNT_BONUS = 0.2
DUPLICATE_CRITICAL_ABOVE = 0.7

SEVERITY_WEIGHTS: Dict[Severity, int] = {
    Severity.CRITICAL: 25,
    Severity.WARNING: 10,
    Severity.INFO: 2,
}
MAX_RISK_SCORE = 100

# Category definition order is the recommendation order
RECOMMENDATIONS: Dict[Category, str] = {
    Category.DUPLICATE: "Review the suspected duplicate postings and reverse any double payments.",
    Category.MISCLASSIFICATION: "Check the account assignments; some postings appear to be booked to the wrong account.",
    Category.ACCRUAL: "Check whether accruals are needed for recurring costs that are missing this period.",
    Category.ANOMALY: "Review the conspicuous postings for plausibility and possible input errors.",
    Category.PLAUSIBILITY: "Sign errors were detected; verify the sign of the affected postings.",
}
NO_ISSUES_RECOMMENDATION = "No critical issues detected. The bookings look plausible."
