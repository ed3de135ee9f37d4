"""
Sentry Simulated Snapshot Source
================================

Produces a scripted sequence of realistic scans for demonstrations and
tests when no wireless hardware is available.

The script establishes a quiet baseline on the first cycle and then
stages one attack per cycle on top of it:

==========  ============================================================
Cycle       Scenario
==========  ============================================================
1           Baseline: office, home and café networks
2           Evil twin: "CafeLatte" reappears open from a new radio
3           Beacon flood: a burst of virtual APs from one OUI
4           Karma bait and a spoofed close-range AP
5+          Channel shift plus a near-clone; NETGEAR-Guest jumps closer
==========  ============================================================

RSSI values jitter by a few dB per cycle using a seeded generator so
runs are reproducible.
"""

from __future__ import annotations

import random
from datetime import datetime, timezone
from typing import Any, Callable, Optional

from shared.logger import SentryLogger
from sentry.core.models import NetworkObservation, ScanSnapshot

logger = SentryLogger("sentry.collectors.simulated")

_BASELINE: list[dict[str, Any]] = [
    {
        "ssid": "SecureOffice-5G",
        "bssid": "A4:CF:12:D3:5E:01",
        "security": "[WPA3-SAE-CCMP][ESS]",
        "rssi": -52,
        "frequency_mhz": 5180,
        "capability_flags": "802.11ax",
    },
    {
        "ssid": "SecureOffice",
        "bssid": "A4:CF:12:D3:5E:02",
        "security": "[WPA2-PSK-CCMP][ESS]",
        "rssi": -58,
        "frequency_mhz": 2437,
        "capability_flags": "802.11n",
    },
    {
        "ssid": "HomeNetwork",
        "bssid": "B0:4E:26:A1:3B:02",
        "security": "[WPA2-PSK-CCMP][ESS]",
        "rssi": -61,
        "frequency_mhz": 2412,
        "capability_flags": "802.11n",
    },
    {
        "ssid": "NETGEAR-Guest",
        "bssid": "00:14:6C:7E:40:03",
        "security": "[WPA2-PSK-CCMP][WPS][ESS]",
        "rssi": -67,
        "frequency_mhz": 2462,
        "capability_flags": "802.11n",
    },
    {
        "ssid": "CafeLatte",
        "bssid": "3C:84:6A:10:20:30",
        "security": "[WPA2-PSK-CCMP][ESS]",
        "rssi": -63,
        "frequency_mhz": 5240,
        "capability_flags": "802.11ac",
    },
]


def _evil_twin(cycle: int) -> list[dict[str, Any]]:
    return [
        {
            "ssid": "CafeLatte",
            "bssid": "3C:84:6A:99:88:77",
            "security": "[ESS]",
            "rssi": -45,
            "frequency_mhz": 2437,
        }
    ]


def _beacon_flood(cycle: int) -> list[dict[str, Any]]:
    return [
        {
            "ssid": name,
            "bssid": f"0E:11:22:00:00:{index:02X}",
            "security": "[ESS]",
            "rssi": -70,
            "frequency_mhz": 2412,
        }
        for index, name in enumerate(
            ("Linksys", "xfinitywifi", "attwifi", "eduroam", "Boingo Hotspot", "NETGEAR")
        )
    ]


def _karma_and_spoof(cycle: int) -> list[dict[str, Any]]:
    return [
        {
            "ssid": "Free Airport WiFi",
            "bssid": "12:34:56:78:9A:BC",
            "security": "",
            "rssi": -32,
            "frequency_mhz": 2437,
        },
        {
            "ssid": "SecureOffice-6E",
            "bssid": "A4:CF:12:D3:5E:09",
            "security": "[WPA3-SAE-CCMP][ESS]",
            "rssi": -60,
            "frequency_mhz": 5975,
            "capability_flags": "802.11ac",
        },
    ]


def _shift_and_clone(cycle: int) -> list[dict[str, Any]]:
    return [
        {
            "ssid": "HomeNetwork",
            "bssid": "B0:4E:26:A1:3B:7F",
            "security": "[WPA2-PSK-CCMP][ESS]",
            "rssi": -55,
            "frequency_mhz": 5745,
        }
    ]


_SCRIPT: list[Callable[[int], list[dict[str, Any]]]] = [
    _evil_twin,
    _beacon_flood,
    _karma_and_spoof,
    _shift_and_clone,
]


class SimulatedSnapshotSource:
    """Scripted snapshot source.

    Args:
        seed: Seed for the RSSI jitter generator.
        jitter_db: Maximum absolute RSSI jitter in dB.
    """

    def __init__(self, seed: Optional[int] = 7, jitter_db: int = 3) -> None:
        self._rng = random.Random(seed)
        self._jitter = jitter_db
        self._cycle = 0

    async def acquire_snapshot(self) -> ScanSnapshot:
        self._cycle += 1
        records = [dict(r) for r in _BASELINE]

        if self._cycle > 1:
            stage = min(self._cycle - 2, len(_SCRIPT) - 1)
            records.extend(_SCRIPT[stage](self._cycle))
        if self._cycle >= 5:
            # HomeNetwork's main radio has hopped from 2.4 to 5 GHz
            records[2]["frequency_mhz"] = 5785
            # NETGEAR-Guest jumps much closer than any earlier scan
            records[3]["rssi"] = -45

        observations = []
        for record in records:
            if self._jitter:
                record["rssi"] += self._rng.randint(-self._jitter, self._jitter)
            observations.append(NetworkObservation.model_validate(record))

        logger.debug(
            "Simulated cycle %d with %d networks", self._cycle, len(observations)
        )
        return ScanSnapshot(
            timestamp=datetime.now(timezone.utc),
            observations=tuple(observations),
        )
