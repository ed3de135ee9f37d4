"""
Sentry Console Output
=====================

Rich-based console output for Wi-Fi Sentry: the observed-network table,
the ranked findings table, the summary panel, and the one-line cycle
status printed by ``sentry watch``.

References:
    - Rich library: https://github.com/Textualize/rich
    - Wi-Fi Sentry Console: shared.console.SentryConsole
"""

from __future__ import annotations

from typing import Optional

from rich.markup import escape
from rich.table import Table

from shared.console import SentryConsole
from shared.models import Severity

from sentry.core.models import AnalysisResult, CycleReport, ScanSnapshot
from sentry.core.radio import SecurityProtocol
from sentry.core.vendors import VendorDirectory


# ---------------------------------------------------------------------------
# Colour mappings
# ---------------------------------------------------------------------------

_SECURITY_COLORS: dict[SecurityProtocol, str] = {
    SecurityProtocol.WPA3: "bold bright_green",
    SecurityProtocol.WPA2: "bold yellow",
    SecurityProtocol.WPA: "bold bright_red",
    SecurityProtocol.WEP: "bold red",
    SecurityProtocol.OPEN: "bold white on red",
    SecurityProtocol.UNKNOWN: "dim",
}


def _severity_markup(severity: Optional[Severity]) -> str:
    if severity is None:
        return "[green]none[/green]"
    # sentry.<level> styles come from the SentryConsole theme
    style = f"sentry.{severity.value.lower()}"
    return f"[{style}]{severity.value}[/{style}]"


# ---------------------------------------------------------------------------
# Console Output
# ---------------------------------------------------------------------------


class SentryConsoleOutput:
    """Rich rendering of snapshots, analysis results and cycle reports.

    Usage::

        output = SentryConsoleOutput()
        output.display_networks(snapshot, result)
        output.display_findings(result)
        output.display_summary(result)
    """

    def __init__(
        self,
        console: Optional[SentryConsole] = None,
        vendors: Optional[VendorDirectory] = None,
    ) -> None:
        self._console = console or SentryConsole()
        self._vendors = vendors

    @property
    def console(self) -> SentryConsole:
        return self._console

    def display_banner(self, version: str = "1.0.0") -> None:
        self._console.banner(version)

    def display_networks(
        self, snapshot: ScanSnapshot, result: Optional[AnalysisResult] = None
    ) -> None:
        """Table of every observation in *snapshot*, flagged ones marked."""
        self._console.section("Observed Networks")

        severity_by_bssid: dict[str, Severity] = {}
        if result is not None:
            for assessment in result.assessments:
                severity_by_bssid[assessment.observation.bssid] = assessment.severity

        table = Table(
            title=f"{snapshot.network_count} networks at "
            f"{snapshot.timestamp:%Y-%m-%d %H:%M:%S %Z}",
            border_style="bright_cyan",
            header_style="bold bright_magenta",
            show_lines=True,
            padding=(0, 1),
        )
        table.add_column("BSSID", style="bright_white", width=19)
        table.add_column("SSID", style="bold")
        if self._vendors is not None:
            table.add_column("Vendor", style="dim")
        table.add_column("Band", width=8)
        table.add_column("CH", justify="center", width=4)
        table.add_column("Signal", justify="right", width=9)
        table.add_column("Security", width=16)
        table.add_column("WPS", justify="center", width=5)
        table.add_column("Risk", justify="center", width=10)

        for obs in snapshot.observations:
            ssid = escape(obs.ssid) if obs.ssid else "[dim italic]<hidden>[/dim italic]"
            sec_color = _SECURITY_COLORS.get(obs.security_protocol, "")
            security = f"[{sec_color}]{obs.security_label}[/{sec_color}]"
            wps = "[bold red]YES[/bold red]" if obs.wps_advertised else "[green]No[/green]"
            channel = str(obs.channel) if obs.channel > 0 else "-"
            risk = severity_by_bssid.get(obs.bssid)
            cells = [escape(obs.bssid) or "[dim]?[/dim]", ssid]
            if self._vendors is not None:
                cells.append(escape(self._vendors.lookup(obs.bssid)) or "-")
            cells += [
                obs.band.value,
                channel,
                f"{obs.rssi} dBm",
                security,
                wps,
                _severity_markup(risk) if risk else "[dim]-[/dim]",
            ]
            table.add_row(*cells)

        self._console.rich.print(table)
        self._console.blank()

    def display_findings(self, result: AnalysisResult) -> None:
        """Ranked findings, one row per fired check."""
        self._console.section("Threat Findings")

        if not result.assessments:
            self._console.success("No threats detected")
            self._console.blank()
            return

        table = Table(
            title=f"{result.summary.finding_count} findings on "
            f"{result.summary.flagged_count} networks",
            border_style="bright_cyan",
            header_style="bold bright_magenta",
            show_lines=True,
            padding=(0, 1),
        )
        table.add_column("Severity", justify="center", width=10)
        table.add_column("Type", style="bold", width=26)
        table.add_column("SSID")
        table.add_column("BSSID", style="bright_white", width=19)
        table.add_column("Description", ratio=1)

        for assessment in result.assessments:
            for finding in assessment.findings:
                table.add_row(
                    _severity_markup(finding.severity),
                    finding.type.value,
                    escape(finding.ssid) or "[dim italic]<hidden>[/dim italic]",
                    finding.bssid,
                    escape(finding.description),
                )

        self._console.rich.print(table)
        self._console.blank()

    def display_summary(self, result: AnalysisResult) -> None:
        summary = result.summary
        rows = [
            ("Networks observed", str(summary.network_count)),
            ("Networks flagged", str(summary.flagged_count)),
            ("Findings", str(summary.finding_count)),
            ("Highest severity", _severity_markup(summary.highest_severity)),
        ]
        for level, count in summary.severity_counts.items():
            if count:
                rows.append((f"  {level}", str(count)))
        self._console.key_values("Summary", rows)

        if summary.highest_severity is Severity.CRITICAL:
            top = result.assessments[0].top_finding
            self._console.critical(f"{top.type.value}: {top.description}")

    def display_cycle(self, report: CycleReport) -> None:
        """One-line status for a completed scheduler cycle."""
        highest = report.summary.highest_severity
        self._console.print(
            f"[sentry.dim]{report.timestamp:%H:%M:%S}[/sentry.dim] "
            f"cycle {report.cycle}: {report.network_count} networks, "
            f"{report.summary.flagged_count} flagged, "
            f"{len(report.findings)} findings, highest "
            f"{_severity_markup(highest)}"
        )
        for finding in report.findings:
            if finding.severity >= Severity.HIGH:
                self._console.print(
                    f"    {_severity_markup(finding.severity)} "
                    f"{finding.type.value} {finding.bssid} "
                    f"'{escape(finding.ssid)}': {escape(finding.description)}"
                )
