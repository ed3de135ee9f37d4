"""
Sentry Report Generator
=======================

Serialises analysis results for downstream tools:

- a structured JSON report (summary, ranked assessments, and optionally
  the observed snapshot);
- a CSV threat export with one row per finding, columns
  ``ssid, bssid, type, severity, description, detected_at``.

References:
    - RFC 4180: Common Format and MIME Type for CSV Files.
    - OWASP. (2023). Testing Guide v4: Reporting.
"""

from __future__ import annotations

import csv
import io
import json
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Optional

from shared.logger import SentryLogger

from sentry.core.models import AnalysisResult, ScanSnapshot, ThreatFinding
from sentry.core.vendors import VendorDirectory

logger = SentryLogger("sentry.output.report")

CSV_COLUMNS = ("ssid", "bssid", "type", "severity", "description", "detected_at")


class _SentryJSONEncoder(json.JSONEncoder):
    """JSON encoder handling Sentry model serialization."""

    def default(self, obj: Any) -> Any:
        if isinstance(obj, datetime):
            return obj.isoformat()
        if hasattr(obj, "model_dump"):
            return obj.model_dump(mode="json")
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, (set, frozenset)):
            return sorted(obj)
        return super().default(obj)


def dumps(data: Any, *, indent: Optional[int] = None) -> str:
    """``json.dumps`` with the Sentry encoder."""
    return json.dumps(data, cls=_SentryJSONEncoder, indent=indent, ensure_ascii=False)


def findings_to_csv(findings: Iterable[ThreatFinding]) -> str:
    """Render findings as CSV text with a header row."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    for finding in findings:
        writer.writerow(
            [
                finding.ssid,
                finding.bssid,
                finding.type.value,
                finding.severity.value,
                finding.description,
                finding.detected_at.isoformat(),
            ]
        )
    return buffer.getvalue()


class SentryReportGenerator:
    """Writes JSON reports and CSV threat exports.

    Usage::

        reports = SentryReportGenerator()
        reports.generate_json(result, "output/report.json", snapshot=snapshot)
        reports.generate_csv(result.findings, "output/threats.csv")
    """

    def __init__(
        self, version: str = "1.0.0", vendors: Optional[VendorDirectory] = None
    ) -> None:
        self._version = version
        self._vendors = vendors

    def build_report(
        self,
        result: AnalysisResult,
        snapshot: Optional[ScanSnapshot] = None,
    ) -> dict[str, Any]:
        report: dict[str, Any] = {
            "tool": "wifisentry",
            "version": self._version,
            "generated_at": datetime.now(timezone.utc).isoformat(),
            "scan_timestamp": result.timestamp.isoformat(),
            "summary": result.summary.model_dump(mode="json"),
            "assessments": [
                {
                    "ssid": a.observation.ssid,
                    "bssid": a.observation.bssid,
                    "severity": a.severity.value,
                    "network": a.observation.describe(self._vendors),
                    "findings": [f.model_dump(mode="json") for f in a.findings],
                }
                for a in result.assessments
            ],
        }
        if snapshot is not None:
            report["networks"] = [
                obs.describe(self._vendors) for obs in snapshot.observations
            ]
        return report

    def generate_json(
        self,
        result: AnalysisResult,
        output_path: str | Path,
        *,
        snapshot: Optional[ScanSnapshot] = None,
    ) -> str:
        """Write the JSON report and return its absolute path."""
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(
            dumps(self.build_report(result, snapshot), indent=2), encoding="utf-8"
        )
        logger.info("JSON report written to %s", path)
        return str(path.resolve())

    def generate_csv(
        self, findings: Iterable[ThreatFinding], output_path: str | Path
    ) -> str:
        """Write the CSV threat export and return its absolute path."""
        path = Path(output_path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(findings_to_csv(findings), encoding="utf-8", newline="")
        logger.info("CSV threat export written to %s", path)
        return str(path.resolve())
