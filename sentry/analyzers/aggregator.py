"""
Sentry Finding Aggregator
=========================

Merges the per-observation check results of one cycle into ranked
:class:`NetworkAssessment` records and a roll-up summary.

Ranking rules:

1. Observations with no findings are dropped.
2. Within an assessment, findings keep check-battery order; they are
   never re-sorted, so a consumer can show the first reason or all of
   them.
3. Assessments are ordered by aggregate severity (maximum over their
   findings), most severe first.  The sort is stable: ties keep the
   scanner's order, which keeps output deterministic.
"""

from __future__ import annotations

from collections import Counter
from datetime import datetime
from typing import Sequence

from shared.models import max_severity, severity_counts
from sentry.core.models import (
    AnalysisResult,
    AnalysisSummary,
    NetworkAssessment,
    NetworkObservation,
    ThreatFinding,
    ThreatType,
)


class FindingAggregator:
    """Builds an :class:`AnalysisResult` from raw per-network findings."""

    def aggregate(
        self,
        timestamp: datetime,
        network_count: int,
        per_network: Sequence[tuple[NetworkObservation, Sequence[ThreatFinding]]],
    ) -> AnalysisResult:
        assessments = [
            NetworkAssessment(observation=obs, findings=tuple(findings))
            for obs, findings in per_network
            if findings
        ]
        # list.sort is stable, so equal severities stay in snapshot order
        assessments.sort(key=lambda a: a.severity.rank, reverse=True)

        return AnalysisResult(
            timestamp=timestamp,
            assessments=tuple(assessments),
            summary=self.summarize(network_count, assessments),
        )

    @staticmethod
    def summarize(
        network_count: int, assessments: Sequence[NetworkAssessment]
    ) -> AnalysisSummary:
        findings = [f for a in assessments for f in a.findings]
        type_counter = Counter(f.type for f in findings)
        return AnalysisSummary(
            network_count=network_count,
            flagged_count=len(assessments),
            finding_count=len(findings),
            severity_counts=severity_counts(f.severity for f in findings),
            # Keep enum order so the summary reads like the check battery
            type_counts={
                t.value: type_counter[t] for t in ThreatType if type_counter[t]
            },
            highest_severity=max_severity(a.severity for a in assessments),
        )
