"""
Sentry History Providers
========================

History retention is owned here, never by the engine.  Two providers are
offered:

- :class:`InMemoryHistoryProvider` keeps a bounded window of the
  snapshots it has been asked to record (oldest dropped first).
- :class:`RemoteHistoryProvider` pulls the window from an HTTP endpoint
  returning a JSON list of snapshots.

Both hand out :class:`HistoryWindow` objects ordered oldest to newest.
"""

from __future__ import annotations

from collections import deque
from typing import Any, Iterable, Optional

from pydantic import ValidationError

from shared.logger import SentryLogger
from shared.network import SentryHTTP, SentryHTTPError
from sentry.collectors.file_source import parse_snapshots
from sentry.core.errors import HistoryUnavailable
from sentry.core.models import CycleReport, HistoryWindow, ScanSnapshot

logger = SentryLogger("sentry.collectors.history")


class InMemoryHistoryProvider:
    """Bounded in-process history window.

    Register :meth:`record_report` as a findings subscriber so that each
    published cycle's snapshot becomes history for the next one.

    Args:
        max_snapshots: Retention bound; older snapshots are discarded.
        initial: Snapshots to seed the window with.
    """

    def __init__(
        self,
        max_snapshots: int = 50,
        initial: Optional[Iterable[ScanSnapshot]] = None,
    ) -> None:
        self._snapshots: deque[ScanSnapshot] = deque(maxlen=max(1, max_snapshots))
        for snapshot in sorted(initial or (), key=lambda s: s.timestamp):
            self._snapshots.append(snapshot)

    def record(self, snapshot: ScanSnapshot) -> None:
        self._snapshots.append(snapshot)

    def record_report(self, report: CycleReport) -> None:
        if report.snapshot is not None:
            self.record(report.snapshot)

    async def get_history(self, max_records: int) -> HistoryWindow:
        if max_records <= 0:
            return HistoryWindow.empty()
        recent = list(self._snapshots)[-max_records:]
        return HistoryWindow.from_snapshots(recent)

    def __len__(self) -> int:
        return len(self._snapshots)


class RemoteHistoryProvider:
    """History window fetched over HTTP.

    The endpoint receives ``?limit=<max_records>`` and must answer with a
    JSON list of snapshots (or ``{"snapshots": [...]}``).

    Args:
        url: Absolute endpoint URL.
        http: Shared client; a private one is created if None.
    """

    def __init__(self, url: str, http: Optional[SentryHTTP] = None) -> None:
        self._url = url
        self._http = http or SentryHTTP()
        self._owns_client = http is None

    async def get_history(self, max_records: int) -> HistoryWindow:
        try:
            raw: Any = await self._http.fetch_json(
                self._url, params={"limit": max_records}
            )
            snapshots = parse_snapshots(raw) if raw else []
        except SentryHTTPError as exc:
            raise HistoryUnavailable(f"history endpoint failed: {exc}") from exc
        except (ValidationError, ValueError) as exc:
            raise HistoryUnavailable(f"malformed history payload: {exc}") from exc

        window = HistoryWindow.from_snapshots(snapshots)
        if max_records <= 0:
            window = HistoryWindow.empty()
        elif window.size > max_records:
            window = HistoryWindow(snapshots=window.snapshots[-max_records:])
        logger.debug("Fetched %d historic snapshots", window.size)
        return window

    async def close(self) -> None:
        if self._owns_client:
            await self._http.close()
