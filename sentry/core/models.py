"""
Sentry Core Data Models
=======================

Pydantic-based domain models for the Wi-Fi Sentry threat engine: the
access-point observations handed in by a scanning collaborator, the
snapshots and history windows built from them, and the findings,
assessments and cycle reports the engine emits.

Observations, snapshots and history windows are immutable once built.
Radio attributes derived from an observation (security protocol, band,
OUI, Wi-Fi standard, ...) are computed once at construction and reused
by every check in the cycle.

References:
    - IEEE. (2020). IEEE Std 802.11-2020: Wireless LAN Medium Access Control
      (MAC) and Physical Layer (PHY) Specifications.
    - Bauer, K., Gonzales, H., & McCoy, D. (2008). Mitigating Evil Twin
      Attacks in 802.11. IEEE IPCCC.
    - Pydantic v2 Documentation. https://docs.pydantic.dev/latest/
"""

from __future__ import annotations

import enum
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Iterable, Iterator, Optional

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    PrivateAttr,
    field_validator,
)

from shared.models import Severity, max_severity
from sentry.core.radio import (
    Band,
    SecurityProtocol,
    WifiStandard,
    advertises_wps,
    band_from_frequency,
    channel_from_frequency,
    classify_security,
    is_locally_administered,
    oui_of,
    parse_wifi_standard,
    prefix4_of,
    security_label,
)

if TYPE_CHECKING:
    from sentry.core.vendors import VendorDirectory

#: RSSI value recorded when the scanner did not report one.
RSSI_ABSENT = -127


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _coerce_timestamp(value: Any) -> Any:
    """Accept epoch seconds or milliseconds as well as datetimes / ISO strings."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        seconds = value / 1000.0 if value > 1e11 else float(value)
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    return value


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ThreatType(str, enum.Enum):
    """Every heuristic the engine can raise, in check-battery order."""

    OPEN_NETWORK = "OPEN_NETWORK"
    SUSPICIOUS_SSID = "SUSPICIOUS_SSID"
    WPS_VULNERABLE = "WPS_VULNERABLE"
    MULTIPLE_BSSIDS = "MULTIPLE_BSSIDS"
    MULTI_SSID_SAME_OUI = "MULTI_SSID_SAME_OUI"
    BEACON_FLOOD = "BEACON_FLOOD"
    BSSID_NEAR_CLONE = "BSSID_NEAR_CLONE"
    INCONSISTENT_CAPABILITIES = "INCONSISTENT_CAPABILITIES"
    SECURITY_CHANGE = "SECURITY_CHANGE"
    EVIL_TWIN = "EVIL_TWIN"
    MAC_SPOOFING_SUSPECTED = "MAC_SPOOFING_SUSPECTED"
    SUSPICIOUS_SIGNAL_STRENGTH = "SUSPICIOUS_SIGNAL_STRENGTH"
    CHANNEL_SHIFT = "CHANNEL_SHIFT"
    SIGNAL_ANOMALY = "SIGNAL_ANOMALY"

    @property
    def severity(self) -> Severity:
        """Fixed severity assigned to this threat type."""
        return THREAT_SEVERITY[self]

    @property
    def label(self) -> str:
        return self.value.replace("_", " ").title()


THREAT_SEVERITY: dict[ThreatType, Severity] = {
    ThreatType.OPEN_NETWORK: Severity.LOW,
    ThreatType.SUSPICIOUS_SSID: Severity.MEDIUM,
    ThreatType.WPS_VULNERABLE: Severity.MEDIUM,
    ThreatType.MULTIPLE_BSSIDS: Severity.MEDIUM,
    ThreatType.MULTI_SSID_SAME_OUI: Severity.HIGH,
    ThreatType.BEACON_FLOOD: Severity.HIGH,
    ThreatType.BSSID_NEAR_CLONE: Severity.HIGH,
    ThreatType.INCONSISTENT_CAPABILITIES: Severity.MEDIUM,
    ThreatType.SECURITY_CHANGE: Severity.HIGH,
    ThreatType.EVIL_TWIN: Severity.CRITICAL,
    ThreatType.MAC_SPOOFING_SUSPECTED: Severity.HIGH,
    ThreatType.SUSPICIOUS_SIGNAL_STRENGTH: Severity.MEDIUM,
    ThreatType.CHANNEL_SHIFT: Severity.MEDIUM,
    ThreatType.SIGNAL_ANOMALY: Severity.LOW,
}


# ---------------------------------------------------------------------------
# Network Observation
# ---------------------------------------------------------------------------


class NetworkObservation(BaseModel):
    """One access point as reported by a scan.

    Reference:
        IEEE. (2020). IEEE Std 802.11-2020. Section 9.4.2: Information
        Elements.

    Attributes:
        ssid: Advertised network name; empty for hidden networks.
        bssid: Colon-hex MAC address of the radio (may be malformed).
        security: Free-text encryption descriptor, ``None`` if not recorded.
        rssi: Received signal strength in dBm, ``RSSI_ABSENT`` if missing.
        frequency_mhz: Centre frequency in MHz, ``0`` if unknown.
        capability_flags: Optional opaque descriptor of PHY capabilities.
    """

    model_config = ConfigDict(frozen=True)

    ssid: str = ""
    bssid: str = ""
    security: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("security", "capabilities", "encryption"),
    )
    rssi: int = Field(
        default=RSSI_ABSENT,
        validation_alias=AliasChoices("rssi", "signal_dbm", "level"),
    )
    frequency_mhz: int = Field(
        default=0,
        validation_alias=AliasChoices("frequency_mhz", "frequencyMHz", "frequency"),
    )
    capability_flags: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices(
            "capability_flags", "capabilityFlags", "wifi_standard", "wifiStandard"
        ),
    )

    _security_protocol: SecurityProtocol = PrivateAttr(
        default=SecurityProtocol.UNKNOWN
    )
    _band: Band = PrivateAttr(default=Band.UNKNOWN)
    _oui: str = PrivateAttr(default="unknown")
    _prefix4: str = PrivateAttr(default="unknown")
    _wifi_standard: WifiStandard = PrivateAttr(default=WifiStandard.UNKNOWN)
    _wps: bool = PrivateAttr(default=False)

    @field_validator("ssid", mode="before")
    @classmethod
    def _ssid_default(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("bssid", mode="before")
    @classmethod
    def _normalise_bssid(cls, value: Any) -> Any:
        if value is None:
            return ""
        return str(value).strip().upper()

    @field_validator("rssi", mode="before")
    @classmethod
    def _rssi_sentinel(cls, value: Any) -> Any:
        return RSSI_ABSENT if value is None else value

    @field_validator("frequency_mhz", mode="before")
    @classmethod
    def _frequency_default(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("capability_flags", mode="before")
    @classmethod
    def _flags_to_text(cls, value: Any) -> Any:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    def model_post_init(self, __context: Any) -> None:
        self._security_protocol = classify_security(self.security)
        self._band = band_from_frequency(self.frequency_mhz)
        self._oui = oui_of(self.bssid)
        self._prefix4 = prefix4_of(self.bssid)
        self._wifi_standard = parse_wifi_standard(self.capability_flags)
        self._wps = advertises_wps(self.capability_flags, self.security)

    # -- derived radio attributes -------------------------------------------

    @property
    def security_protocol(self) -> SecurityProtocol:
        return self._security_protocol

    @property
    def has_recorded_security(self) -> bool:
        return self._security_protocol is not SecurityProtocol.UNKNOWN

    @property
    def is_open(self) -> bool:
        return self._security_protocol is SecurityProtocol.OPEN

    @property
    def is_secured(self) -> bool:
        return self.has_recorded_security and not self.is_open

    @property
    def security_label(self) -> str:
        return security_label(self.security)

    @property
    def band(self) -> Band:
        return self._band

    @property
    def channel(self) -> int:
        return channel_from_frequency(self.frequency_mhz)

    @property
    def oui(self) -> str:
        return self._oui

    @property
    def prefix4(self) -> str:
        return self._prefix4

    @property
    def wifi_standard(self) -> WifiStandard:
        return self._wifi_standard

    @property
    def wps_advertised(self) -> bool:
        return self._wps

    @property
    def is_locally_administered(self) -> bool:
        return is_locally_administered(self.bssid)

    @property
    def display_ssid(self) -> str:
        return self.ssid or "<hidden>"

    def describe(self, vendors: Optional[VendorDirectory] = None) -> dict[str, Any]:
        """Raw fields plus derived attributes, JSON-ready.

        With *vendors*, the manufacturer registered for the OUI is added
        under ``vendor`` (empty when unknown).
        """
        data = self.model_dump(mode="json")
        data.update(
            {
                "security_protocol": self.security_protocol.value,
                "band": self.band.value,
                "channel": self.channel,
                "oui": self.oui,
                "wifi_standard": self.wifi_standard.value,
                "wps_advertised": self.wps_advertised,
            }
        )
        if vendors is not None:
            data["vendor"] = vendors.lookup(self.bssid)
        return data


# ---------------------------------------------------------------------------
# Snapshots and history
# ---------------------------------------------------------------------------


class ScanSnapshot(BaseModel):
    """All observations from one scan, in scanner order."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime = Field(
        default_factory=_utcnow,
        validation_alias=AliasChoices("timestamp", "timestampMs", "timestamp_ms"),
    )
    observations: tuple[NetworkObservation, ...] = Field(
        default=(),
        validation_alias=AliasChoices("observations", "networks"),
    )

    @field_validator("timestamp", mode="before")
    @classmethod
    def _epoch_timestamp(cls, value: Any) -> Any:
        return _coerce_timestamp(value)

    @field_validator("timestamp")
    @classmethod
    def _aware_timestamp(cls, value: datetime) -> datetime:
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value

    @property
    def network_count(self) -> int:
        return len(self.observations)


class HistoryWindow(BaseModel):
    """Prior snapshots, oldest first, as supplied by a history provider.

    The engine only reads from a window; trimming and retention belong to
    the provider that built it.
    """

    model_config = ConfigDict(frozen=True)

    snapshots: tuple[ScanSnapshot, ...] = ()

    @classmethod
    def from_snapshots(cls, snapshots: Iterable[ScanSnapshot]) -> HistoryWindow:
        """Build a window sorted oldest to newest (stable for equal timestamps)."""
        return cls(snapshots=tuple(sorted(snapshots, key=lambda s: s.timestamp)))

    @classmethod
    def empty(cls) -> HistoryWindow:
        return cls()

    @property
    def is_empty(self) -> bool:
        return not self.snapshots

    @property
    def size(self) -> int:
        return len(self.snapshots)

    def observations(self) -> Iterator[NetworkObservation]:
        """Every historic observation, oldest snapshot first."""
        for snapshot in self.snapshots:
            yield from snapshot.observations

    def newest_first(self) -> Iterator[NetworkObservation]:
        """Every historic observation, newest snapshot first."""
        for snapshot in reversed(self.snapshots):
            yield from snapshot.observations

    def since(self, cutoff: datetime) -> HistoryWindow:
        """Snapshots taken at or after *cutoff*."""
        return HistoryWindow(
            snapshots=tuple(s for s in self.snapshots if s.timestamp >= cutoff)
        )


# ---------------------------------------------------------------------------
# Findings
# ---------------------------------------------------------------------------


class ThreatFinding(BaseModel):
    """One fired check on one observation.

    Attributes:
        ssid: SSID of the flagged observation.
        bssid: BSSID of the flagged observation.
        type: Which heuristic fired.
        severity: Severity of this heuristic.
        description: Human-readable rationale.
        evidence: Structured values that made the check fire.
        detected_at: Timestamp of the snapshot that triggered it.
    """

    model_config = ConfigDict(frozen=True)

    ssid: str
    bssid: str
    type: ThreatType
    severity: Severity
    description: str
    evidence: dict[str, Any] = Field(default_factory=dict)
    detected_at: datetime = Field(default_factory=_utcnow)


class NetworkAssessment(BaseModel):
    """Every finding for one flagged observation, in check-battery order."""

    model_config = ConfigDict(frozen=True)

    observation: NetworkObservation
    findings: tuple[ThreatFinding, ...]

    @property
    def severity(self) -> Severity:
        """Aggregate severity: the maximum over the findings."""
        highest = max_severity(f.severity for f in self.findings)
        return highest if highest is not None else Severity.LOW

    @property
    def top_finding(self) -> ThreatFinding:
        """First finding carrying the aggregate severity."""
        target = self.severity
        return next(f for f in self.findings if f.severity is target)

    @property
    def threat_types(self) -> list[ThreatType]:
        return [f.type for f in self.findings]


class AnalysisSummary(BaseModel):
    """Roll-up counters for one analysis."""

    model_config = ConfigDict(frozen=True)

    network_count: int = 0
    flagged_count: int = 0
    finding_count: int = 0
    severity_counts: dict[str, int] = Field(default_factory=dict)
    type_counts: dict[str, int] = Field(default_factory=dict)
    highest_severity: Optional[Severity] = None


class AnalysisResult(BaseModel):
    """Return value of :meth:`ThreatEngine.analyze`.

    ``assessments`` are ranked by aggregate severity, most severe first;
    networks of equal severity keep their snapshot order.
    """

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    assessments: tuple[NetworkAssessment, ...] = ()
    summary: AnalysisSummary = Field(default_factory=AnalysisSummary)

    @property
    def findings(self) -> list[ThreatFinding]:
        """All findings flattened in ranked assessment order."""
        return [f for a in self.assessments for f in a.findings]

    def findings_for(self, bssid: str) -> list[ThreatFinding]:
        key = (bssid or "").strip().upper()
        return [f for f in self.findings if f.bssid == key]

    def types_for(self, bssid: str) -> set[ThreatType]:
        return {f.type for f in self.findings_for(bssid)}


# ---------------------------------------------------------------------------
# Cycle report
# ---------------------------------------------------------------------------


class CycleReport(BaseModel):
    """What the scheduler publishes to subscribers after each cycle."""

    model_config = ConfigDict(frozen=True)

    cycle: int
    timestamp: datetime
    network_count: int
    findings: tuple[ThreatFinding, ...] = ()
    summary: AnalysisSummary = Field(default_factory=AnalysisSummary)
    duration_seconds: float = 0.0
    # The analysed snapshot, for history recorders; never serialised
    snapshot: Optional[ScanSnapshot] = Field(default=None, exclude=True, repr=False)

    @classmethod
    def from_result(
        cls,
        cycle: int,
        result: AnalysisResult,
        snapshot: Optional[ScanSnapshot] = None,
        duration_seconds: float = 0.0,
    ) -> CycleReport:
        return cls(
            cycle=cycle,
            timestamp=result.timestamp,
            network_count=result.summary.network_count,
            findings=tuple(result.findings),
            summary=result.summary,
            duration_seconds=duration_seconds,
            snapshot=snapshot,
        )

    def to_envelope(self) -> dict[str, Any]:
        """Broadcast envelope ``{"type": "scan-result", ...}``."""
        return {
            "type": "scan-result",
            "timestamp": self.timestamp.isoformat(),
            "networkCount": self.network_count,
            "findings": [f.model_dump(mode="json") for f in self.findings],
        }


def error_envelope(message: str) -> dict[str, Any]:
    """Broadcast envelope for a failed cycle."""
    return {"type": "error", "message": message}
