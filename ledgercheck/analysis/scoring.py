"""
Risk aggregation and recommendations.

This module turns the flat anomaly list of a detection run into a bounded
risk score, a per-category summary and a list of action items.
"""

from decimal import Decimal
from typing import Dict, List, Sequence, Tuple

from ledgercheck.models import Anomaly, Category, CategorySummary, DetectionSummary, Severity
from ledgercheck.analysis.rules import (
    SEVERITY_WEIGHTS, MAX_RISK_SCORE, RECOMMENDATIONS, NO_ISSUES_RECOMMENDATION
)


class RiskAggregator:
    """Computes the risk score and summary of a list of anomalies."""

    def risk_score(self, anomalies: Sequence[Anomaly]) -> int:
        """Severity-weighted anomaly count, clamped to [0, 100].

        Args:
            anomalies: Anomalies of one detection run

        Returns:
            Risk score
        """
        score = sum(SEVERITY_WEIGHTS[a.severity] for a in anomalies)
        return max(0, min(MAX_RISK_SCORE, score))

    def summarize(self, anomalies: Sequence[Anomaly]) -> DetectionSummary:
        """Count anomalies per severity and category.

        Categories are ordered by count, descending; ties keep first-seen order.

        Args:
            anomalies: Anomalies of one detection run

        Returns:
            Detection summary
        """
        counts = {severity: 0 for severity in Severity}
        by_category: Dict[Category, List] = {}
        total_impact = Decimal('0')

        for anomaly in anomalies:
            counts[anomaly.severity] += 1
            total_impact += anomaly.financial_impact
            entry = by_category.setdefault(anomaly.category, [0, Decimal('0')])
            entry[0] += 1
            entry[1] += anomaly.financial_impact

        # sorted() is stable, so equal counts stay in first-seen order
        top_categories: Tuple[CategorySummary, ...] = tuple(sorted(
            (CategorySummary(category=c, count=n, impact=impact) for c, (n, impact) in by_category.items()),
            key=lambda s: -s.count,
        ))

        return DetectionSummary(
            total=len(anomalies),
            critical_count=counts[Severity.CRITICAL],
            warning_count=counts[Severity.WARNING],
            info_count=counts[Severity.INFO],
            estimated_financial_impact=total_impact,
            top_categories=top_categories,
        )


class RecommendationGenerator:
    """Maps the categories present in a result to fixed action items."""

    def generate(self, anomalies: Sequence[Anomaly]) -> List[str]:
        """One recommendation per present category, in category definition order.

        Args:
            anomalies: Anomalies of one detection run

        Returns:
            Recommendation strings; a single all-clear message when empty
        """
        if not anomalies:
            return [NO_ISSUES_RECOMMENDATION]

        present = {a.category for a in anomalies}
        return [text for category, text in RECOMMENDATIONS.items() if category in present]
