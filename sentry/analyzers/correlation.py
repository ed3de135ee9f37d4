"""
Sentry Cross-Network Correlator
===============================

Checks that compare an observation against its peers in the current
snapshot (and, for suppression, against the set of known BSSIDs):

- **MULTIPLE_BSSIDS** -- one SSID served by more than one BSSID.
- **MULTI_SSID_SAME_OUI** -- one radio vendor prefix advertising many
  SSIDs at once (Karma mode, beacon-spam "AP list" attacks).
- **BEACON_FLOOD** -- a burst of brand-new BSSIDs from one OUI.
- **BSSID_NEAR_CLONE** -- same SSID, same 4-octet prefix, different BSSID.
- **INCONSISTENT_CAPABILITIES** -- a PHY standard that cannot exist on
  the reported band.

Every OUI / prefix keyed check returns ``None`` for observations whose
BSSID did not parse, so malformed MACs never group together.

References:
    - Bauer, K., Gonzales, H., & McCoy, D. (2008). Mitigating Evil Twin
      Attacks in 802.11. IEEE IPCCC.
    - mdk4 project. Beacon flood mode.
      https://github.com/aircrack-ng/mdk4
    - Wi-Fi Alliance. (2020). Wi-Fi 6E: Extending Wi-Fi 6 into 6 GHz.
"""

from __future__ import annotations

from typing import Optional

from shared.config import EngineConfig
from sentry.analyzers.context import AnalysisContext, Check, CheckHit
from sentry.core.models import NetworkObservation, ThreatType
from sentry.core.radio import UNKNOWN_PREFIX, Band, standard_band_conflict
from sentry.core.vendors import VendorDirectory


class CrossNetworkCorrelator:
    """Snapshot-wide correlation checks.

    Args:
        config: Engine thresholds (OUI SSID count, beacon flood size).
        vendors: Names the manufacturer in OUI-group findings.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        vendors: Optional[VendorDirectory] = None,
    ) -> None:
        config = config or EngineConfig()
        self._multi_ssid_threshold = config.multi_ssid_oui_threshold
        self._flood_threshold = config.beacon_flood_threshold
        self._vendors = vendors if vendors is not None else VendorDirectory()

    def _oui_label(self, obs: NetworkObservation) -> tuple[str, dict[str, str]]:
        vendor = self._vendors.lookup(obs.bssid)
        evidence = {"oui": obs.oui, "vendor": vendor}
        return (f"{obs.oui} ({vendor})" if vendor else obs.oui), evidence

    def checks(self) -> list[tuple[ThreatType, Check]]:
        return [
            (ThreatType.MULTIPLE_BSSIDS, self.multiple_bssids),
            (ThreatType.MULTI_SSID_SAME_OUI, self.multi_ssid_same_oui),
            (ThreatType.BEACON_FLOOD, self.beacon_flood),
            (ThreatType.BSSID_NEAR_CLONE, self.near_clone),
            (ThreatType.INCONSISTENT_CAPABILITIES, self.inconsistent_capabilities),
        ]

    # ------------------------------------------------------------------ #
    #  Duplicate SSID
    # ------------------------------------------------------------------ #

    def multiple_bssids(
        self, obs: NetworkObservation, ctx: AnalysisContext
    ) -> Optional[CheckHit]:
        if not obs.ssid:
            return None
        current = ctx.current_ssid_to_bssids.get(obs.ssid, frozenset())
        historic = ctx.recent_ssid_to_bssids.get(obs.ssid, frozenset())
        union = current | historic
        if len(union) <= 1:
            return None
        return CheckHit(
            f"SSID '{obs.ssid}' is served by {len(union)} distinct BSSIDs",
            {
                "bssids": sorted(union),
                "in_snapshot": len(current),
                "in_history": len(historic),
            },
        )

    # ------------------------------------------------------------------ #
    #  OUI grouping
    # ------------------------------------------------------------------ #

    def multi_ssid_same_oui(
        self, obs: NetworkObservation, ctx: AnalysisContext
    ) -> Optional[CheckHit]:
        if obs.oui == UNKNOWN_PREFIX:
            return None
        named = [o for o in ctx.oui_groups.get(obs.oui, ()) if o.ssid]
        ssids = {o.ssid for o in named}
        if len(ssids) < self._multi_ssid_threshold:
            return None
        # An established deployment has every radio in history already
        if all(o.bssid in ctx.known_bssids for o in named):
            return None
        label, evidence = self._oui_label(obs)
        return CheckHit(
            f"OUI {label} advertises {len(ssids)} distinct SSIDs in one "
            f"scan, consistent with Karma or beacon-spam tooling",
            {**evidence, "ssids": sorted(ssids)},
        )

    def beacon_flood(
        self, obs: NetworkObservation, ctx: AnalysisContext
    ) -> Optional[CheckHit]:
        if not ctx.has_baseline or obs.oui == UNKNOWN_PREFIX:
            return None
        new_bssids = {
            o.bssid
            for o in ctx.oui_groups.get(obs.oui, ())
            if ctx.is_new(o.bssid)
        }
        if len(new_bssids) < self._flood_threshold:
            return None
        label, evidence = self._oui_label(obs)
        return CheckHit(
            f"{len(new_bssids)} never-seen BSSIDs from OUI {label} "
            f"appeared in a single scan",
            {**evidence, "new_bssids": sorted(new_bssids)},
        )

    # ------------------------------------------------------------------ #
    #  Near-clone BSSIDs
    # ------------------------------------------------------------------ #

    def near_clone(
        self, obs: NetworkObservation, ctx: AnalysisContext
    ) -> Optional[CheckHit]:
        if not obs.ssid or obs.prefix4 == UNKNOWN_PREFIX:
            return None
        peers = [
            p
            for p in ctx.prefix_groups.get((obs.ssid, obs.prefix4), ())
            if p.bssid != obs.bssid
        ]
        if not peers:
            return None

        same_band = [
            p.bssid
            for p in peers
            if obs.band is not Band.UNKNOWN and p.band is obs.band
        ]
        if same_band:
            return CheckHit(
                f"'{obs.ssid}' has near-identical BSSID(s) on the same "
                f"{obs.band.value} band: {', '.join(sorted(same_band))}",
                {"prefix": obs.prefix4, "peers": sorted(same_band), "band": obs.band.value},
            )

        if ctx.is_new(obs.bssid):
            known_peers = [p.bssid for p in peers if p.bssid in ctx.known_bssids]
            if known_peers:
                return CheckHit(
                    f"New BSSID {obs.bssid} mimics established "
                    f"{', '.join(sorted(known_peers))} for '{obs.ssid}'",
                    {"prefix": obs.prefix4, "peers": sorted(known_peers)},
                )
        return None

    # ------------------------------------------------------------------ #
    #  Capability consistency
    # ------------------------------------------------------------------ #

    def inconsistent_capabilities(
        self, obs: NetworkObservation, ctx: AnalysisContext
    ) -> Optional[CheckHit]:
        conflict = standard_band_conflict(obs.wifi_standard, obs.band)
        if conflict is None:
            return None
        return CheckHit(
            f"Advertised {obs.wifi_standard.value} on {obs.frequency_mhz} MHz: "
            f"{conflict}",
            {
                "wifi_standard": obs.wifi_standard.value,
                "band": obs.band.value,
                "frequency_mhz": obs.frequency_mhz,
            },
        )
