"""
Analysis package for ledgercheck.

This package contains the anomaly detectors, the rule tables they use and
the engine that runs them and aggregates their findings.
"""

from ledgercheck.analysis.engine import DetectorRunner, ErrorDetectionEngine, detect

__all__ = ['DetectorRunner', 'ErrorDetectionEngine', 'detect']
