"""
Sentry Error Hierarchy
======================

Acquisition failures are the only conditions that abort a scan cycle.
Both collaborator errors are wrapped in :class:`CycleFailed`, which the
scheduler logs before returning to Idle and retrying on the next tick.
"""

from __future__ import annotations

from typing import Optional


class SentryError(Exception):
    """Base class for every Wi-Fi Sentry error."""


class ScanUnavailable(SentryError):
    """The snapshot source could not produce a scan."""


class HistoryUnavailable(SentryError):
    """The history provider could not produce a window."""


class CycleFailed(SentryError):
    """A scan cycle was aborted before publishing.

    Attributes:
        cycle: Number of the aborted cycle.
        phase: Scheduler state the failure occurred in.
    """

    def __init__(
        self,
        message: str,
        *,
        cycle: int = 0,
        phase: str = "",
        cause: Optional[BaseException] = None,
    ) -> None:
        super().__init__(message)
        self.cycle = cycle
        self.phase = phase
        if cause is not None:
            self.__cause__ = cause
