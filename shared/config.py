"""
Wi-Fi Sentry Configuration Management
======================================

Centralized configuration for the Sentry engine, scheduler, collectors,
and sinks using Python dataclasses and TOML-based persistence.

Architecture follows the Twelve-Factor App methodology for configuration
management (Wiggins, 2011), separating config from code.

References:
    - Wiggins, A. (2011). The Twelve-Factor App. https://12factor.net/
    - PEP 681 -- Data Class Transforms (2022).
    - TOML v1.0.0 Specification. https://toml.io/en/v1.0.0
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field, asdict
from pathlib import Path
from typing import Any, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib  # type: ignore[no-redef]


# ---------------------------------------------------------------------------
# Default configuration file path relative to the project root
# ---------------------------------------------------------------------------
_DEFAULT_CONFIG_PATH: Path = Path(__file__).resolve().parent.parent / "config.toml"

SOURCE_KINDS: tuple[str, ...] = ("file", "nmcli", "simulated")

DEFAULT_SUSPICIOUS_KEYWORDS: tuple[str, ...] = (
    "free", "guest", "public", "open", "hack", "evil", "pineapple",
    "starbucks", "airport", "hotel", "setup",
    "karma", "rogue", "pentest", "kali",
)


# ========================== Component Configs ==============================


@dataclass(frozen=False, slots=True)
class EngineConfig:
    """Thresholds and keyword lists for the heuristic check battery.

    Reference:
        Bauer, K., Gonzales, H., & McCoy, D. (2008). Mitigating Evil Twin
        Attacks in 802.11. IEEE IPCCC.
    """

    suspicious_keywords: list[str] = field(
        default_factory=lambda: list(DEFAULT_SUSPICIOUS_KEYWORDS)
    )
    strong_signal_dbm: int = -40
    multi_ssid_oui_threshold: int = 5
    beacon_flood_threshold: int = 4
    # dB swing between scans of one BSSID that counts as SIGNAL_ANOMALY
    rssi_anomaly_dbm: int = 15
    # Properties file merged over the bundled OUI vendor table
    oui_file: str = ""
    # None disables the window: the whole history counts for MULTIPLE_BSSIDS
    recent_window_seconds: Optional[float] = None


@dataclass(frozen=False, slots=True)
class SchedulerConfig:
    """Scan-cycle pacing and acquisition timeouts."""

    interval_seconds: float = 10.0
    history_max_records: int = 50
    snapshot_timeout: float = 30.0
    history_timeout: float = 10.0
    max_cycles: Optional[int] = None


@dataclass(frozen=False, slots=True)
class SourceConfig:
    """Where snapshots come from: ``file``, ``nmcli`` or ``simulated``."""

    kind: str = "simulated"
    path: str = ""
    interface: str = ""


@dataclass(frozen=False, slots=True)
class SinkConfig:
    """Downstream publishing targets for cycle reports."""

    jsonl_path: str = ""
    webhook_url: str = ""
    webhook_timeout: float = 5.0


# =========================== Global Settings ===============================


@dataclass(frozen=False, slots=True)
class GlobalConfig:
    """Global settings: logging verbosity, output directory, debug mode."""

    log_level: str = "INFO"
    log_file: str = ""
    log_json: bool = False
    output_dir: str = "output"
    debug: bool = False
    version: str = "1.0.0"


# =========================== Master Config =================================


@dataclass(frozen=False, slots=True)
class SentryConfig:
    """Master configuration aggregating all component and global settings.

    Usage:
        >>> config = SentryConfig.load()                  # from default path
        >>> config = SentryConfig.load("custom.toml")     # from custom path
        >>> config.engine.beacon_flood_threshold
        4
        >>> config.scheduler.interval_seconds
        10.0
    """

    global_settings: GlobalConfig = field(default_factory=GlobalConfig)
    engine: EngineConfig = field(default_factory=EngineConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    source: SourceConfig = field(default_factory=SourceConfig)
    sinks: SinkConfig = field(default_factory=SinkConfig)

    # ------------------------------------------------------------------ #
    #  TOML Loading
    # ------------------------------------------------------------------ #

    @classmethod
    def load(cls, path: str | Path | None = None) -> SentryConfig:
        """Load configuration from a TOML file.

        If *path* is ``None`` the loader looks for ``config.toml`` in the
        project root.  Missing keys fall back to dataclass defaults.

        Args:
            path: Filesystem path to a TOML configuration file.

        Returns:
            A fully-populated :class:`SentryConfig` instance.

        Raises:
            FileNotFoundError: If the specified path does not exist
                *and* was explicitly provided by the caller.
        """
        config_path = Path(path) if path is not None else _DEFAULT_CONFIG_PATH

        if not config_path.exists():
            if path is not None:
                raise FileNotFoundError(
                    f"Configuration file not found: {config_path}"
                )
            return cls()

        with open(config_path, "rb") as fh:
            raw: dict[str, Any] = tomllib.load(fh)

        config = cls(
            global_settings=cls._build_section(GlobalConfig, raw.get("global", {})),
            engine=cls._build_section(EngineConfig, raw.get("engine", {})),
            scheduler=cls._build_section(SchedulerConfig, raw.get("scheduler", {})),
            source=cls._build_section(SourceConfig, raw.get("source", {})),
            sinks=cls._build_section(SinkConfig, raw.get("sinks", {})),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Reject values the scheduler or engine cannot run with.

        Raises:
            ValueError: Listing every offending ``section.key``.
        """
        problems = []
        if self.source.kind not in SOURCE_KINDS:
            problems.append(
                f"source.kind must be one of {', '.join(SOURCE_KINDS)}, "
                f"got {self.source.kind!r}"
            )
        for name in ("interval_seconds", "snapshot_timeout", "history_timeout"):
            if getattr(self.scheduler, name) <= 0:
                problems.append(f"scheduler.{name} must be positive")
        if self.scheduler.history_max_records < 0:
            problems.append("scheduler.history_max_records must be >= 0")
        if self.scheduler.max_cycles is not None and self.scheduler.max_cycles < 1:
            problems.append("scheduler.max_cycles must be >= 1 when set")
        for name in ("multi_ssid_oui_threshold", "beacon_flood_threshold", "rssi_anomaly_dbm"):
            if getattr(self.engine, name) < 1:
                problems.append(f"engine.{name} must be >= 1")
        if problems:
            raise ValueError("; ".join(problems))

    def to_dict(self) -> dict[str, Any]:
        """Serialise the entire configuration tree to a plain dictionary."""
        return asdict(self)

    @staticmethod
    def _build_section(cls: type, data: dict[str, Any]) -> Any:
        """Instantiate a dataclass *cls* using only the keys it declares.

        Unknown keys in the TOML source are silently ignored so that
        forward-compatible config files do not break older code.
        """
        valid_keys = {f.name for f in cls.__dataclass_fields__.values()}  # type: ignore[attr-defined]
        filtered = {k: v for k, v in data.items() if k in valid_keys}
        return cls(**filtered)
