"""
Unit tests for risk aggregation, recommendations and result serialization.
"""

import json
import unittest
from decimal import Decimal

from ledgercheck.models import (
    Anomaly, AnomalyType, Booking, Category, ErrorDetectionResult, Severity
)
from ledgercheck.analysis.rules import NO_ISSUES_RECOMMENDATION, RECOMMENDATIONS
from ledgercheck.analysis.scoring import RecommendationGenerator, RiskAggregator
from ledgercheck.utils.common import safe_json_dumps


def anomaly(category, severity=Severity.INFO, impact="0", id_suffix="1"):
    return Anomaly(
        id=f"test-{id_suffix}",
        type=AnomalyType.WEEKEND_BOOKING,
        severity=severity,
        confidence=0.5,
        description="test",
        affected_bookings=(),
        suggested_fix="none",
        financial_impact=Decimal(impact),
        category=category,
    )


class TestRiskAggregator(unittest.TestCase):
    """Test risk score and summary aggregation."""

    def setUp(self):
        self.aggregator = RiskAggregator()

    def test_weights(self):
        anomalies = [
            anomaly(Category.DUPLICATE, Severity.CRITICAL),
            anomaly(Category.ANOMALY, Severity.WARNING),
            anomaly(Category.ANOMALY, Severity.INFO),
        ]

        self.assertEqual(self.aggregator.risk_score(anomalies), 37)

    def test_score_is_clamped(self):
        anomalies = [anomaly(Category.DUPLICATE, Severity.CRITICAL)] * 5

        self.assertEqual(self.aggregator.risk_score(anomalies), 100)
        self.assertEqual(self.aggregator.risk_score([]), 0)

    def test_summary_orders_categories_by_count(self):
        anomalies = [
            anomaly(Category.PLAUSIBILITY, impact="10"),
            anomaly(Category.DUPLICATE, impact="5"),
            anomaly(Category.ANOMALY, impact="1.50"),
            anomaly(Category.ANOMALY, impact="2.50"),
        ]

        summary = self.aggregator.summarize(anomalies)

        self.assertEqual(summary.total, 4)
        self.assertEqual(summary.info_count, 4)
        self.assertEqual(summary.estimated_financial_impact, Decimal("19.00"))
        # Ties keep first-seen order
        self.assertEqual(
            [(c.category, c.count, c.impact) for c in summary.top_categories],
            [
                (Category.ANOMALY, 2, Decimal("4.00")),
                (Category.PLAUSIBILITY, 1, Decimal("10")),
                (Category.DUPLICATE, 1, Decimal("5")),
            ]
        )


class TestRecommendationGenerator(unittest.TestCase):
    """Test recommendation selection."""

    def test_no_anomalies(self):
        self.assertEqual(RecommendationGenerator().generate([]), [NO_ISSUES_RECOMMENDATION])

    def test_category_definition_order(self):
        anomalies = [
            anomaly(Category.PLAUSIBILITY),
            anomaly(Category.ACCRUAL),
            anomaly(Category.PLAUSIBILITY),
            anomaly(Category.DUPLICATE),
        ]

        self.assertEqual(
            RecommendationGenerator().generate(anomalies),
            [
                RECOMMENDATIONS[Category.DUPLICATE],
                RECOMMENDATIONS[Category.ACCRUAL],
                RECOMMENDATIONS[Category.PLAUSIBILITY],
            ]
        )


class TestModels(unittest.TestCase):
    """Test model invariants and dictionary conversion."""

    def test_confidence_must_be_within_bounds(self):
        with self.assertRaises(ValueError):
            Anomaly(
                id="x", type=AnomalyType.REVERSED_SIGN, severity=Severity.WARNING, confidence=1.2,
                description="", affected_bookings=(), suggested_fix="",
                financial_impact=Decimal("0"), category=Category.PLAUSIBILITY,
            )

    def test_impact_must_not_be_negative(self):
        with self.assertRaises(ValueError):
            anomaly(Category.ANOMALY, impact="-1")

    def test_result_to_dict_is_json_compatible(self):
        booking = Booking.from_dict({
            'posting_date': '2024-03-12', 'amount': '1234.565', 'account': 8400, 'document_no': 'AR-1',
        })
        found = Anomaly(
            id="reversed-sign-1", type=AnomalyType.REVERSED_SIGN, severity=Severity.WARNING,
            confidence=0.9, description="sign", affected_bookings=(booking.reference(),),
            suggested_fix="fix", financial_impact=Decimal("2469.13"), category=Category.PLAUSIBILITY,
        )
        aggregator = RiskAggregator()
        result = ErrorDetectionResult(
            anomalies=(found,),
            risk_score=aggregator.risk_score([found]),
            summary=aggregator.summarize([found]),
            recommendations=tuple(RecommendationGenerator().generate([found])),
        )

        data = result.to_dict()

        self.assertEqual(json.loads(json.dumps(data)), data)
        self.assertEqual(data['risk_score'], 10)
        self.assertEqual(data['anomalies'][0]['type'], 'reversed_sign')
        self.assertEqual(data['anomalies'][0]['category'], 'Plausibility')
        self.assertEqual(data['anomalies'][0]['affected_bookings'][0]['posting_date'], '2024-03-12')
        # Rounded half up to cents
        self.assertEqual(data['anomalies'][0]['affected_bookings'][0]['amount'], 1234.57)
        self.assertEqual(data['summary']['top_categories'][0], {
            'category': 'Plausibility', 'count': 1, 'impact': 2469.13,
        })
        self.assertEqual(json.loads(safe_json_dumps(result)), data)

    def test_by_severity_keeps_detector_order_within_tier(self):
        first = anomaly(Category.ANOMALY, Severity.INFO, id_suffix="a")
        second = anomaly(Category.ANOMALY, Severity.CRITICAL, id_suffix="b")
        third = anomaly(Category.ANOMALY, Severity.INFO, id_suffix="c")
        result = ErrorDetectionResult(anomalies=(first, second, third))

        self.assertEqual([a.id for a in result.by_severity()], ["test-b", "test-a", "test-c"])


if __name__ == '__main__':
    unittest.main()
