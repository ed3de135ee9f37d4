"""Shared fixtures: observation / snapshot / history factories."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Optional

import pytest

from shared.config import EngineConfig
from shared.logger import SentryLogger
from sentry.analyzers.context import AnalysisContext
from sentry.core.models import HistoryWindow, NetworkObservation, ScanSnapshot

T0 = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)

WPA2 = "[WPA2-PSK-CCMP][ESS]"


@pytest.fixture(autouse=True, scope="session")
def _quiet_logging():
    SentryLogger.configure(log_level="DEBUG", console_output=False)
    yield


def make_obs(
    ssid: str = "",
    bssid: str = "",
    security: Optional[str] = WPA2,
    rssi: Optional[int] = -60,
    frequency_mhz: Optional[int] = 2412,
    capability_flags: Optional[str] = None,
) -> NetworkObservation:
    return NetworkObservation(
        ssid=ssid,
        bssid=bssid,
        security=security,
        rssi=rssi,
        frequency_mhz=frequency_mhz,
        capability_flags=capability_flags,
    )


def make_snapshot(*observations: NetworkObservation, offset: float = 0.0) -> ScanSnapshot:
    """Snapshot taken *offset* seconds relative to T0."""
    return ScanSnapshot(
        timestamp=T0 + timedelta(seconds=offset),
        observations=tuple(observations),
    )


def make_history(*snapshots: ScanSnapshot) -> HistoryWindow:
    return HistoryWindow.from_snapshots(snapshots)


def make_context(
    snapshot: ScanSnapshot,
    history: Optional[HistoryWindow] = None,
    config: Optional[EngineConfig] = None,
) -> AnalysisContext:
    return AnalysisContext.build(
        snapshot, history or HistoryWindow.empty(), config or EngineConfig()
    )


@pytest.fixture
def obs():
    return make_obs


@pytest.fixture
def snapshot():
    return make_snapshot


@pytest.fixture
def history():
    return make_history


@pytest.fixture
def context():
    return make_context
