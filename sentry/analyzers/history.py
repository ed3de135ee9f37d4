"""
Sentry History-Aware Detector
=============================

Checks that need the history window:

- **SECURITY_CHANGE** -- an SSID+BSSID flipped between open and secured.
- **EVIL_TWIN** -- a previously secured SSID reappears open under a
  BSSID never associated with it.
- **MAC_SPOOFING_SUSPECTED** -- a brand-new locally-administered BSSID.
- **SUSPICIOUS_SIGNAL_STRENGTH** -- a brand-new BSSID that is unusually
  close.
- **CHANNEL_SHIFT** -- a known BSSID moved to a different band.
- **SIGNAL_ANOMALY** -- a known BSSID whose signal swung sharply since
  its last scan (moved hardware, or an impostor on the same MAC).

The "new BSSID" style checks require a baseline (non-empty history) so
the very first scan in an unfamiliar environment does not flag every AP.
Enterprise controllers that assign locally-administered BSSIDs are
suppressed once their BSSIDs become part of history.

References:
    - Bauer, K., Gonzales, H., & McCoy, D. (2008). Mitigating Evil Twin
      Attacks in 802.11. IEEE IPCCC.
    - Gonzales, H., Bauer, K., Lindqvist, J., McCoy, D., & Sicker, D.
      (2010). Practical Defenses for Evil Twin Attacks in 802.11.
      IEEE GLOBECOM.
    - IEEE. (2014). IEEE Std 802-2014. Section 8.2.
"""

from __future__ import annotations

from typing import Optional

from shared.config import EngineConfig
from sentry.analyzers.context import AnalysisContext, Check, CheckHit
from sentry.core.models import RSSI_ABSENT, NetworkObservation, ThreatType
from sentry.core.radio import Band


def _exposure(obs: NetworkObservation) -> str:
    return "open" if obs.is_open else "secured"


class HistoryDetector:
    """History-aware checks.

    Args:
        config: Engine thresholds (strong-signal level, RSSI swing).
    """

    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        config = config or EngineConfig()
        self._strong_signal_dbm = config.strong_signal_dbm
        self._rssi_anomaly_dbm = config.rssi_anomaly_dbm

    def checks(self) -> list[tuple[ThreatType, Check]]:
        return [
            (ThreatType.SECURITY_CHANGE, self.security_change),
            (ThreatType.EVIL_TWIN, self.evil_twin),
            (ThreatType.MAC_SPOOFING_SUSPECTED, self.mac_spoofing),
            (ThreatType.SUSPICIOUS_SIGNAL_STRENGTH, self.suspicious_signal),
            (ThreatType.CHANNEL_SHIFT, self.channel_shift),
            (ThreatType.SIGNAL_ANOMALY, self.signal_anomaly),
        ]

    def security_change(
        self, obs: NetworkObservation, ctx: AnalysisContext
    ) -> Optional[CheckHit]:
        if not obs.ssid or not obs.bssid or not obs.has_recorded_security:
            return None
        previous = ctx.latest_with_security.get((obs.ssid, obs.bssid))
        if previous is None or previous.is_open == obs.is_open:
            return None
        return CheckHit(
            f"'{obs.ssid}' ({obs.bssid}) changed from {_exposure(previous)} "
            f"to {_exposure(obs)}",
            {
                "previous_security": previous.security,
                "current_security": obs.security,
            },
        )

    def evil_twin(
        self, obs: NetworkObservation, ctx: AnalysisContext
    ) -> Optional[CheckHit]:
        if not obs.is_open or not obs.ssid or not obs.bssid:
            return None
        if obs.ssid not in ctx.secured_ssids:
            return None
        historic = ctx.ssid_to_bssids.get(obs.ssid, frozenset())
        if obs.bssid in historic:
            return None
        return CheckHit(
            f"'{obs.ssid}' was previously secured but now appears open from "
            f"unfamiliar BSSID {obs.bssid}",
            {"historic_bssids": sorted(historic)},
        )

    def mac_spoofing(
        self, obs: NetworkObservation, ctx: AnalysisContext
    ) -> Optional[CheckHit]:
        if not obs.is_locally_administered:
            return None
        if not ctx.has_baseline or not ctx.is_new(obs.bssid):
            return None
        return CheckHit(
            f"New BSSID {obs.bssid} is locally administered, typical of "
            f"software or spoofed radios",
            {"first_octet": obs.bssid.split(":", 1)[0]},
        )

    def suspicious_signal(
        self, obs: NetworkObservation, ctx: AnalysisContext
    ) -> Optional[CheckHit]:
        if not ctx.has_baseline or obs.rssi < self._strong_signal_dbm:
            return None
        if not ctx.is_new(obs.bssid):
            return None
        return CheckHit(
            f"New BSSID {obs.bssid} is unusually strong at {obs.rssi} dBm",
            {"rssi": obs.rssi, "threshold_dbm": self._strong_signal_dbm},
        )

    def channel_shift(
        self, obs: NetworkObservation, ctx: AnalysisContext
    ) -> Optional[CheckHit]:
        if not obs.bssid or obs.band is Band.UNKNOWN:
            return None
        previous = ctx.latest_with_frequency.get(obs.bssid)
        if previous is None or previous.band is Band.UNKNOWN:
            return None
        if previous.band is obs.band:
            return None
        return CheckHit(
            f"{obs.bssid} moved from {previous.band.value} "
            f"(channel {previous.channel}) to {obs.band.value} "
            f"(channel {obs.channel})",
            {
                "previous_frequency_mhz": previous.frequency_mhz,
                "current_frequency_mhz": obs.frequency_mhz,
            },
        )

    def signal_anomaly(
        self, obs: NetworkObservation, ctx: AnalysisContext
    ) -> Optional[CheckHit]:
        if not obs.bssid or obs.rssi == RSSI_ABSENT:
            return None
        previous = ctx.latest_with_rssi.get(obs.bssid)
        if previous is None:
            return None
        delta = obs.rssi - previous.rssi
        if abs(delta) < self._rssi_anomaly_dbm:
            return None
        direction = "stronger" if delta > 0 else "weaker"
        return CheckHit(
            f"{obs.bssid} is {abs(delta)} dB {direction} than its last scan "
            f"({previous.rssi} -> {obs.rssi} dBm)",
            {
                "previous_rssi": previous.rssi,
                "current_rssi": obs.rssi,
                "delta_db": delta,
            },
        )
