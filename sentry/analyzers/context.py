"""
Sentry Analysis Context
=======================

Lookup caches built once per cycle from the current snapshot and the
history window, then shared read-only by every check in that cycle.

Building the caches up front keeps the total work at
O(snapshot + history) per cycle and guarantees that every check observes
the same notion of which BSSIDs are "known".
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Callable, Optional

from shared.config import EngineConfig
from sentry.core.models import (
    RSSI_ABSENT,
    HistoryWindow,
    NetworkObservation,
    ScanSnapshot,
)
from sentry.core.radio import UNKNOWN_PREFIX


@dataclass(frozen=True, slots=True)
class CheckHit:
    """Why a check fired: a rationale plus the values that triggered it."""

    description: str
    evidence: dict[str, Any] = field(default_factory=dict)


#: A single heuristic: returns a hit when it fires, ``None`` otherwise.
Check = Callable[[NetworkObservation, "AnalysisContext"], Optional[CheckHit]]


def _freeze(groups: dict[Any, set[str]]) -> dict[Any, frozenset[str]]:
    return {key: frozenset(values) for key, values in groups.items()}


@dataclass(frozen=True, slots=True)
class AnalysisContext:
    """Per-cycle caches over one snapshot and its history window.

    Attributes:
        snapshot: The snapshot under analysis.
        history: Prior snapshots, oldest first.
        config: Engine thresholds in effect for this cycle.
        known_bssids: Every non-blank BSSID seen anywhere in history.
        ssid_to_bssids: SSID -> BSSIDs seen for it anywhere in history.
        recent_ssid_to_bssids: As above, limited to the recent window
            (identical to ``ssid_to_bssids`` when no window is configured).
        secured_ssids: SSIDs observed with a secured descriptor in history.
        latest_with_security: (SSID, BSSID) -> newest historic observation
            that recorded a security value.
        latest_with_frequency: BSSID -> newest historic observation that
            recorded a frequency.
        latest_with_rssi: BSSID -> newest historic observation that
            recorded a signal strength.
        current_ssid_to_bssids: SSID -> BSSIDs in the current snapshot.
        oui_groups: OUI -> current observations sharing it.
        prefix_groups: (SSID, 4-octet prefix) -> current observations.
    """

    snapshot: ScanSnapshot
    history: HistoryWindow
    config: EngineConfig
    known_bssids: frozenset[str]
    ssid_to_bssids: dict[str, frozenset[str]]
    recent_ssid_to_bssids: dict[str, frozenset[str]]
    secured_ssids: frozenset[str]
    latest_with_security: dict[tuple[str, str], NetworkObservation]
    latest_with_frequency: dict[str, NetworkObservation]
    latest_with_rssi: dict[str, NetworkObservation]
    current_ssid_to_bssids: dict[str, frozenset[str]]
    oui_groups: dict[str, tuple[NetworkObservation, ...]]
    prefix_groups: dict[tuple[str, str], tuple[NetworkObservation, ...]]

    @classmethod
    def build(
        cls,
        snapshot: ScanSnapshot,
        history: HistoryWindow,
        config: EngineConfig,
    ) -> AnalysisContext:
        known: set[str] = set()
        ssid_map: dict[str, set[str]] = defaultdict(set)
        secured: set[str] = set()
        latest_security: dict[tuple[str, str], NetworkObservation] = {}
        latest_frequency: dict[str, NetworkObservation] = {}
        latest_rssi: dict[str, NetworkObservation] = {}

        # Oldest to newest, so later writes win for the "latest" maps
        for obs in history.observations():
            if obs.bssid:
                known.add(obs.bssid)
                if obs.frequency_mhz > 0:
                    latest_frequency[obs.bssid] = obs
                if obs.rssi != RSSI_ABSENT:
                    latest_rssi[obs.bssid] = obs
            if not obs.ssid:
                continue
            if obs.bssid:
                ssid_map[obs.ssid].add(obs.bssid)
                if obs.has_recorded_security:
                    latest_security[(obs.ssid, obs.bssid)] = obs
            if obs.is_secured:
                secured.add(obs.ssid)

        ssid_to_bssids = _freeze(ssid_map)
        if config.recent_window_seconds is None:
            recent = ssid_to_bssids
        else:
            cutoff = snapshot.timestamp - timedelta(
                seconds=config.recent_window_seconds
            )
            recent_map: dict[str, set[str]] = defaultdict(set)
            for obs in history.since(cutoff).observations():
                if obs.ssid and obs.bssid:
                    recent_map[obs.ssid].add(obs.bssid)
            recent = _freeze(recent_map)

        current_map: dict[str, set[str]] = defaultdict(set)
        oui_map: dict[str, list[NetworkObservation]] = defaultdict(list)
        prefix_map: dict[tuple[str, str], list[NetworkObservation]] = defaultdict(list)
        for obs in snapshot.observations:
            if obs.ssid and obs.bssid:
                current_map[obs.ssid].add(obs.bssid)
            if obs.oui != UNKNOWN_PREFIX:
                oui_map[obs.oui].append(obs)
            if obs.ssid and obs.prefix4 != UNKNOWN_PREFIX:
                prefix_map[(obs.ssid, obs.prefix4)].append(obs)

        return cls(
            snapshot=snapshot,
            history=history,
            config=config,
            known_bssids=frozenset(known),
            ssid_to_bssids=ssid_to_bssids,
            recent_ssid_to_bssids=recent,
            secured_ssids=frozenset(secured),
            latest_with_security=latest_security,
            latest_with_frequency=latest_frequency,
            latest_with_rssi=latest_rssi,
            current_ssid_to_bssids=_freeze(current_map),
            oui_groups={k: tuple(v) for k, v in oui_map.items()},
            prefix_groups={k: tuple(v) for k, v in prefix_map.items()},
        )

    @property
    def has_baseline(self) -> bool:
        """``True`` once any history exists to compare against."""
        return bool(self.known_bssids)

    def is_new(self, bssid: str) -> bool:
        """Non-blank BSSID never seen in history."""
        return bool(bssid) and bssid not in self.known_bssids
