"""
Wi-Fi Sentry -- Wireless Threat Heuristic Engine
================================================

Sentry classifies periodic snapshots of nearby access points against a
fixed battery of pattern-matching and history-aware checks (evil twin,
karma / rogue-bait SSIDs, MAC spoofing, beacon flood, near-clone BSSIDs,
inconsistent radio capabilities, WPS exposure, channel shift) and emits
ranked findings.

Modules:
    core.engine     -- Stateless threat engine (``analyze``)
    core.scheduler  -- Periodic scan-cycle driver
    core.models     -- Pydantic domain models
    core.radio      -- MAC, band, security and PHY parsing helpers
    analyzers       -- Check families and the finding aggregator
    collectors      -- Snapshot sources and history providers
    output          -- Console, reports and publishing sinks
    cli             -- Click-based command-line interface

References:
    - IEEE. (2020). IEEE Std 802.11-2020: Wireless LAN MAC and PHY
      Specifications.
    - Bauer, K., Gonzales, H., & McCoy, D. (2008). Mitigating Evil Twin
      Attacks in 802.11. IEEE IPCCC.
"""

__version__ = "1.0.0"
__tool__ = "Sentry"
__description__ = "Wireless Threat Heuristic Engine"
