"""
Sentry Threat Engine
====================

The single pure entry point of Wi-Fi Sentry: given one scan snapshot and
the history window that precedes it, run the full check battery over
every observation and return ranked findings.

The engine follows a pipeline architecture:
    1. Context: build the per-cycle lookup caches once
    2. Evaluation: run every check on every observation
    3. Aggregation: merge and rank the fired checks

The engine keeps no state between calls, so ``analyze`` is idempotent
and safe to call concurrently with distinct inputs.  A check that raises
is an engine defect: it is caught here, logged with its traceback, and
counted as "did not fire" for that observation only.

References:
    - Bauer, K., Gonzales, H., & McCoy, D. (2008). Mitigating Evil Twin
      Attacks in 802.11. IEEE IPCCC.
    - Evans, E. (2003). Domain-Driven Design. Addison-Wesley.
"""

from __future__ import annotations

from typing import Optional, Sequence

from shared.config import EngineConfig
from shared.logger import SentryLogger

from sentry.analyzers.aggregator import FindingAggregator
from sentry.analyzers.context import AnalysisContext, Check, CheckHit
from sentry.analyzers.correlation import CrossNetworkCorrelator
from sentry.analyzers.history import HistoryDetector
from sentry.analyzers.network import NetworkHeuristics
from sentry.core.models import (
    AnalysisResult,
    HistoryWindow,
    NetworkObservation,
    ScanSnapshot,
    ThreatFinding,
    ThreatType,
)
from sentry.core.vendors import VendorDirectory

logger = SentryLogger("sentry.core.engine")


def default_battery(
    config: EngineConfig, vendors: Optional[VendorDirectory] = None
) -> list[tuple[ThreatType, Check]]:
    """The full check battery in evaluation order."""
    return [
        *NetworkHeuristics(config).checks(),
        *CrossNetworkCorrelator(config, vendors).checks(),
        *HistoryDetector(config).checks(),
    ]


class ThreatEngine:
    """Stateless heuristic threat engine.

    Usage::

        engine = ThreatEngine(config.engine)
        result = engine.analyze(snapshot, history)
        for assessment in result.assessments:
            print(assessment.severity, assessment.threat_types)

    Args:
        config: Engine thresholds. Uses defaults if None.
        checks: Override the check battery (mainly for tests).
        vendors: OUI vendor names for findings. Loaded from
            ``config.oui_file`` (or the bundled table) if None.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        checks: Optional[Sequence[tuple[ThreatType, Check]]] = None,
        vendors: Optional[VendorDirectory] = None,
    ) -> None:
        self._config = config or EngineConfig()
        if vendors is None:
            vendors = (
                VendorDirectory.load(self._config.oui_file)
                if self._config.oui_file
                else VendorDirectory()
            )
        self._vendors = vendors
        self._checks: tuple[tuple[ThreatType, Check], ...] = tuple(
            checks if checks is not None else default_battery(self._config, vendors)
        )
        self._aggregator = FindingAggregator()

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def vendors(self) -> VendorDirectory:
        return self._vendors

    @property
    def check_types(self) -> list[ThreatType]:
        return [threat_type for threat_type, _ in self._checks]

    def analyze(
        self,
        snapshot: ScanSnapshot,
        history: Optional[HistoryWindow] = None,
    ) -> AnalysisResult:
        """Run every check over every observation of *snapshot*.

        Args:
            snapshot: Current scan.
            history: Prior snapshots, oldest first. ``None`` means no history.

        Returns:
            AnalysisResult with assessments ranked by aggregate severity.
        """
        history = history if history is not None else HistoryWindow.empty()

        with logger.timed(
            f"analysis of {snapshot.network_count} networks "
            f"against {history.size} historic snapshots"
        ):
            context = AnalysisContext.build(snapshot, history, self._config)
            per_network = [
                (obs, self._evaluate(obs, context))
                for obs in snapshot.observations
            ]
            result = self._aggregator.aggregate(
                snapshot.timestamp, snapshot.network_count, per_network
            )

        logger.debug(
            "Analysis flagged %d of %d networks (%d findings)",
            result.summary.flagged_count,
            result.summary.network_count,
            result.summary.finding_count,
        )
        return result

    # ------------------------------------------------------------------ #
    #  Internal helpers
    # ------------------------------------------------------------------ #

    def _evaluate(
        self, obs: NetworkObservation, context: AnalysisContext
    ) -> list[ThreatFinding]:
        findings: list[ThreatFinding] = []
        for threat_type, check in self._checks:
            hit = self._guarded(threat_type, check, obs, context)
            if hit is None:
                continue
            findings.append(
                ThreatFinding(
                    ssid=obs.ssid,
                    bssid=obs.bssid,
                    type=threat_type,
                    severity=threat_type.severity,
                    description=hit.description,
                    evidence=hit.evidence,
                    detected_at=context.snapshot.timestamp,
                )
            )
        return findings

    @staticmethod
    def _guarded(
        threat_type: ThreatType,
        check: Check,
        obs: NetworkObservation,
        context: AnalysisContext,
    ) -> Optional[CheckHit]:
        """Run one check; a raising check counts as not fired."""
        try:
            return check(obs, context)
        except Exception:
            logger.exception(
                "Check %s raised on %s (%s); treating as not fired",
                threat_type.value,
                obs.bssid or "<no bssid>",
                obs.display_ssid,
                check=threat_type.value,
            )
            return None
