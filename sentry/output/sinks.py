"""
Sentry Publishing Sinks
=======================

Subscribers for :meth:`ScanScheduler.on_findings`.  Each sink is a plain
callable (sync or async) taking a :class:`CycleReport`; the failure-side
``send_error`` / ``write_error`` methods plug into
:meth:`ScanScheduler.on_error`.

Wire format for the JSON-lines file and the webhook is the broadcast
envelope::

    {"type": "scan-result", "timestamp": "...", "networkCount": 12,
     "findings": [...]}

and, for a failed cycle::

    {"type": "error", "message": "..."}
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from shared.logger import SentryLogger
from shared.models import Severity
from shared.network import SentryHTTP

from sentry.core.errors import CycleFailed
from sentry.core.models import CycleReport, error_envelope
from sentry.output.console import SentryConsoleOutput
from sentry.output.report import dumps

logger = SentryLogger("sentry.output.sinks")


class LogSink:
    """Logs a cycle summary and every finding at or above *min_severity*."""

    def __init__(
        self,
        log: Optional[SentryLogger] = None,
        min_severity: Severity = Severity.HIGH,
    ) -> None:
        self._log = log or logger
        self._min_severity = min_severity

    def __call__(self, report: CycleReport) -> None:
        self._log.info(
            "Cycle %d: %d networks, %d findings",
            report.cycle,
            report.network_count,
            len(report.findings),
        )
        for finding in report.findings:
            if finding.severity >= self._min_severity:
                self._log.warning(
                    "%s %s on %s (%s): %s",
                    finding.severity.value,
                    finding.type.value,
                    finding.bssid,
                    finding.ssid,
                    finding.description,
                )


class ConsoleSink:
    """Prints one status line per cycle to the terminal."""

    def __init__(self, output: Optional[SentryConsoleOutput] = None) -> None:
        self._output = output or SentryConsoleOutput()

    def __call__(self, report: CycleReport) -> None:
        self._output.display_cycle(report)


class JsonLinesSink:
    """Appends one envelope per cycle to a JSON-lines file."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._path.parent.mkdir(parents=True, exist_ok=True)

    @property
    def path(self) -> Path:
        return self._path

    def _append(self, envelope: dict) -> None:
        with open(self._path, "a", encoding="utf-8") as fh:
            fh.write(dumps(envelope) + "\n")

    def __call__(self, report: CycleReport) -> None:
        self._append(report.to_envelope())

    def write_error(self, error: CycleFailed) -> None:
        self._append(error_envelope(str(error)))


class WebhookSink:
    """POSTs each cycle envelope to an HTTP endpoint.

    Args:
        url: Destination URL.
        http: Shared client; a private one is created if None.
        timeout: Request timeout for a private client.
    """

    def __init__(
        self,
        url: str,
        http: Optional[SentryHTTP] = None,
        timeout: float = 5.0,
    ) -> None:
        self._url = url
        self._http = http or SentryHTTP(timeout=timeout)
        self._owns_client = http is None

    async def __call__(self, report: CycleReport) -> None:
        await self._http.post_json(self._url, report.to_envelope())
        logger.debug("Delivered cycle %d to %s", report.cycle, self._url)

    async def send_error(self, error: CycleFailed) -> None:
        await self._http.post_json(self._url, error_envelope(str(error)))

    async def close(self) -> None:
        if self._owns_client:
            await self._http.close()
