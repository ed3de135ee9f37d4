"""
Sentry Analyzers
================

Heuristic check families and the finding aggregator.

Modules:
    context      -- Per-cycle lookup caches shared by every check
    network      -- Context-free per-network checks
    correlation  -- Cross-network checks over the current snapshot
    history      -- History-aware checks
    aggregator   -- Merges, ranks and summarises findings
"""

from sentry.analyzers.aggregator import FindingAggregator
from sentry.analyzers.context import AnalysisContext, CheckHit
from sentry.analyzers.correlation import CrossNetworkCorrelator
from sentry.analyzers.history import HistoryDetector
from sentry.analyzers.network import NetworkHeuristics

__all__ = [
    "AnalysisContext",
    "CheckHit",
    "CrossNetworkCorrelator",
    "FindingAggregator",
    "HistoryDetector",
    "NetworkHeuristics",
]
