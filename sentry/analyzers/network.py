"""
Sentry Per-Network Heuristics
=============================

Context-free checks that look at a single observation in isolation:
open (unencrypted) networks, rogue-bait SSID keywords, and WPS exposure.

Keyword matching is a plain case-insensitive substring test.  "test"
is absent from the default list: it matches too many legitimate lab and
vendor SSIDs.

References:
    - Dai Zovi, D., & Macaulay, S. (2005). Attacking Automatic Wireless
      Network Selection. IEEE Information Assurance Workshop (Karma).
    - Viehbock, S. (2011). Brute Forcing Wi-Fi Protected Setup.
      https://sviehb.files.wordpress.com/2011/12/viehboeck_wps.pdf
"""

from __future__ import annotations

from typing import Optional

from shared.config import EngineConfig
from shared.logger import SentryLogger
from sentry.analyzers.context import AnalysisContext, Check, CheckHit
from sentry.core.models import NetworkObservation, ThreatType

logger = SentryLogger("sentry.analyzers.network")


class NetworkHeuristics:
    """Checks that need nothing but the observation itself.

    Usage::

        heuristics = NetworkHeuristics(config.engine)
        for threat_type, check in heuristics.checks():
            hit = check(observation, context)
    """

    def __init__(self, config: Optional[EngineConfig] = None) -> None:
        config = config or EngineConfig()
        self._keywords: tuple[str, ...] = tuple(
            k.lower() for k in config.suspicious_keywords if k
        )
        logger.debug("Loaded %d suspicious SSID keywords", len(self._keywords))

    def checks(self) -> list[tuple[ThreatType, Check]]:
        return [
            (ThreatType.OPEN_NETWORK, self.open_network),
            (ThreatType.SUSPICIOUS_SSID, self.suspicious_ssid),
            (ThreatType.WPS_VULNERABLE, self.wps_vulnerable),
        ]

    # ------------------------------------------------------------------ #

    def open_network(
        self, obs: NetworkObservation, ctx: AnalysisContext
    ) -> Optional[CheckHit]:
        if not obs.is_open:
            return None
        return CheckHit(
            f"'{obs.display_ssid}' broadcasts without encryption; "
            f"traffic is readable by anyone in range",
            {"security": obs.security},
        )

    def suspicious_ssid(
        self, obs: NetworkObservation, ctx: AnalysisContext
    ) -> Optional[CheckHit]:
        if not obs.ssid:
            return None
        lowered = obs.ssid.lower()
        matched = [k for k in self._keywords if k in lowered]
        if not matched:
            return None
        return CheckHit(
            f"SSID '{obs.ssid}' contains rogue-bait keyword(s): "
            f"{', '.join(matched)}",
            {"keywords": matched},
        )

    def wps_vulnerable(
        self, obs: NetworkObservation, ctx: AnalysisContext
    ) -> Optional[CheckHit]:
        if not obs.wps_advertised:
            return None
        return CheckHit(
            f"'{obs.display_ssid}' advertises WPS, which is exposed to "
            f"PIN brute-force and Pixie-Dust attacks",
            {"security": obs.security, "capability_flags": obs.capability_flags},
        )
