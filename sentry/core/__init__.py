"""
Sentry Core
===========

Domain models and errors for Wi-Fi Sentry.

The threat engine and scan scheduler depend on :mod:`sentry.analyzers`,
which in turn depends on these models, so they are imported from their
own modules (``sentry.core.engine``, ``sentry.core.scheduler``) rather
than re-exported here.
"""

from sentry.core.errors import CycleFailed, HistoryUnavailable, ScanUnavailable, SentryError
from sentry.core.models import (
    AnalysisResult,
    AnalysisSummary,
    CycleReport,
    HistoryWindow,
    NetworkAssessment,
    NetworkObservation,
    ScanSnapshot,
    ThreatFinding,
    ThreatType,
)

__all__ = [
    "SentryError",
    "ScanUnavailable",
    "HistoryUnavailable",
    "CycleFailed",
    "AnalysisResult",
    "AnalysisSummary",
    "CycleReport",
    "HistoryWindow",
    "NetworkAssessment",
    "NetworkObservation",
    "ScanSnapshot",
    "ThreatFinding",
    "ThreatType",
]
