"""
Sentry Scan Cycle Scheduler
===========================

Drives the periodic acquire -> analyse -> publish loop.

State machine::

    Idle -> Scanning -> Analyzing -> Publishing -> Idle

- **Scanning**: acquire a :class:`ScanSnapshot` from the snapshot source.
- **Analyzing**: acquire the :class:`HistoryWindow` and run the engine.
- **Publishing**: deliver a :class:`CycleReport` to every subscriber.

Cycles start on a fixed start-to-start interval.  A cycle that overruns
the interval defers the next start; cycles never overlap.  The injected
:class:`CycleGuard` keeps at most one cycle in flight even when
:meth:`ScanScheduler.run_cycle` is called by hand while the loop runs.

Acquisition failures abort only the current cycle: they are raised as
:class:`CycleFailed`, logged by the loop, and the scheduler returns to
Idle for the next tick.  A failing subscriber is logged and never
affects delivery to the others.  :meth:`ScanScheduler.stop` takes
effect at the Idle boundary only, so a cycle is never half published.

References:
    - Nygard, M. T. (2018). Release It! 2nd ed. Chapter 5: Stability
      Patterns (Timeouts, Bulkheads).
    - Python asyncio documentation. https://docs.python.org/3/library/asyncio.html
"""

from __future__ import annotations

import asyncio
import enum
import inspect
import time
from typing import Any, Awaitable, Callable, Optional, Protocol, Union

from shared.config import SchedulerConfig
from shared.logger import SentryLogger

from sentry.core.engine import ThreatEngine
from sentry.core.errors import CycleFailed
from sentry.core.models import CycleReport, HistoryWindow, ScanSnapshot

logger = SentryLogger("sentry.core.scheduler")

FindingsCallback = Callable[[CycleReport], Union[None, Awaitable[None]]]
ErrorCallback = Callable[[CycleFailed], Union[None, Awaitable[None]]]


# ---------------------------------------------------------------------------
# Collaborator protocols
# ---------------------------------------------------------------------------


class SnapshotSource(Protocol):
    """Scanning collaborator; raises :class:`ScanUnavailable` on failure."""

    async def acquire_snapshot(self) -> ScanSnapshot: ...


class HistoryProvider(Protocol):
    """Persistence collaborator; raises :class:`HistoryUnavailable` on failure."""

    async def get_history(self, max_records: int) -> HistoryWindow: ...


class CycleState(str, enum.Enum):
    IDLE = "Idle"
    SCANNING = "Scanning"
    ANALYZING = "Analyzing"
    PUBLISHING = "Publishing"


# ---------------------------------------------------------------------------
# Cycle guard
# ---------------------------------------------------------------------------


class CycleGuard:
    """Token held for the whole duration of a cycle.

    Backed by an :class:`asyncio.Lock`; a second cycle waits for the
    first to finish instead of running alongside it.
    """

    def __init__(self, lock: Optional[asyncio.Lock] = None) -> None:
        self._lock = lock or asyncio.Lock()

    @property
    def in_flight(self) -> bool:
        return self._lock.locked()

    async def __aenter__(self) -> CycleGuard:
        await self._lock.acquire()
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self._lock.release()


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------


class ScanScheduler:
    """Periodic scan-cycle driver with an owned subscriber list.

    Usage::

        scheduler = ScanScheduler(source, history, ThreatEngine(cfg.engine))
        unsubscribe = scheduler.on_findings(lambda report: print(report))
        await scheduler.run(max_cycles=3)
        unsubscribe()

    Args:
        source: Snapshot source.
        history: History provider.
        engine: Threat engine. Uses defaults if None.
        config: Interval, timeouts and history size.
        guard: Cycle guard token. A private one is created if None.
        clock: Monotonic clock, injectable for tests.
    """

    def __init__(
        self,
        source: SnapshotSource,
        history: HistoryProvider,
        engine: Optional[ThreatEngine] = None,
        config: Optional[SchedulerConfig] = None,
        guard: Optional[CycleGuard] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._source = source
        self._history = history
        self._engine = engine or ThreatEngine()
        self._config = config or SchedulerConfig()
        self._guard = guard or CycleGuard()
        self._clock = clock

        self._state = CycleState.IDLE
        self._subscribers: list[FindingsCallback] = []
        self._error_subscribers: list[ErrorCallback] = []
        self._stop_event = asyncio.Event()
        self._cycle_number = 0
        self._completed = 0
        self._failed = 0

    # ------------------------------------------------------------------ #
    #  Introspection
    # ------------------------------------------------------------------ #

    @property
    def state(self) -> CycleState:
        return self._state

    @property
    def cycles_completed(self) -> int:
        return self._completed

    @property
    def cycles_failed(self) -> int:
        return self._failed

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    # ------------------------------------------------------------------ #
    #  Subscriptions
    # ------------------------------------------------------------------ #

    def on_findings(self, callback: FindingsCallback) -> Callable[[], None]:
        """Register *callback* for every published cycle report.

        Returns:
            A handle that removes the subscription; calling it twice is
            harmless.
        """
        self._subscribers.append(callback)
        return self._make_unsubscribe(self._subscribers, callback)

    def on_error(self, callback: ErrorCallback) -> Callable[[], None]:
        """Register *callback* for cycles that fail before publishing."""
        self._error_subscribers.append(callback)
        return self._make_unsubscribe(self._error_subscribers, callback)

    @staticmethod
    def _make_unsubscribe(
        registry: list[Any], callback: Any
    ) -> Callable[[], None]:
        def unsubscribe() -> None:
            try:
                registry.remove(callback)
            except ValueError:
                pass

        return unsubscribe

    # ------------------------------------------------------------------ #
    #  One cycle
    # ------------------------------------------------------------------ #

    async def run_cycle(self) -> CycleReport:
        """Run one full cycle and return the published report.

        Raises:
            CycleFailed: When the snapshot or history could not be
                acquired (including timeouts).
        """
        async with self._guard:
            self._cycle_number += 1
            cycle = self._cycle_number
            started = self._clock()
            try:
                with logger.operation(f"cycle-{cycle}"):
                    self._state = CycleState.SCANNING
                    snapshot = await self._acquire(
                        cycle,
                        "snapshot",
                        self._source.acquire_snapshot(),
                        self._config.snapshot_timeout,
                    )

                    self._state = CycleState.ANALYZING
                    history = await self._acquire(
                        cycle,
                        "history",
                        self._history.get_history(self._config.history_max_records),
                        self._config.history_timeout,
                    )
                    result = self._engine.analyze(snapshot, history)

                    self._state = CycleState.PUBLISHING
                    report = CycleReport.from_result(
                        cycle,
                        result,
                        snapshot=snapshot,
                        duration_seconds=self._clock() - started,
                    )
                    await self._publish(report)
            finally:
                self._state = CycleState.IDLE

            self._completed += 1
            logger.info(
                "Cycle %d complete: %d networks, %d flagged, %d findings",
                cycle,
                report.network_count,
                report.summary.flagged_count,
                len(report.findings),
            )
            return report

    async def _acquire(
        self,
        cycle: int,
        what: str,
        call: Awaitable[Any],
        timeout: Optional[float],
    ) -> Any:
        phase = self._state.value
        try:
            return await asyncio.wait_for(call, timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise CycleFailed(
                f"{what} acquisition timed out after {timeout}s",
                cycle=cycle,
                phase=phase,
                cause=exc,
            ) from exc
        except Exception as exc:
            raise CycleFailed(
                f"{what} unavailable: {exc}",
                cycle=cycle,
                phase=phase,
                cause=exc,
            ) from exc

    # ------------------------------------------------------------------ #
    #  Publishing
    # ------------------------------------------------------------------ #

    async def _publish(self, report: CycleReport) -> None:
        await self._fan_out(list(self._subscribers), report, "findings")

    async def _fan_out(
        self, callbacks: list[Callable[[Any], Any]], payload: Any, kind: str
    ) -> None:
        """Deliver *payload* to each callback in isolation."""
        pending: list[tuple[Callable[[Any], Any], Awaitable[Any]]] = []
        for callback in callbacks:
            try:
                outcome = callback(payload)
            except Exception:
                logger.exception(
                    "%s subscriber %r raised", kind.capitalize(), callback
                )
                continue
            if inspect.isawaitable(outcome):
                pending.append((callback, outcome))

        if not pending:
            return
        results = await asyncio.gather(
            *(awaitable for _, awaitable in pending), return_exceptions=True
        )
        for (callback, _), outcome in zip(pending, results):
            if isinstance(outcome, BaseException):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                logger.error(
                    "%s subscriber %r raised: %s",
                    kind.capitalize(),
                    callback,
                    outcome,
                    exc_info=outcome,
                )

    # ------------------------------------------------------------------ #
    #  Loop
    # ------------------------------------------------------------------ #

    async def run(self, max_cycles: Optional[int] = None) -> None:
        """Run cycles until :meth:`stop` or *max_cycles* attempts.

        Failed cycles count towards *max_cycles*.
        """
        limit = max_cycles if max_cycles is not None else self._config.max_cycles
        interval = self._config.interval_seconds
        attempts = 0
        self._stop_event.clear()
        logger.info("Scheduler started (interval %.1fs)", interval)

        while not self._stop_event.is_set():
            if limit is not None and attempts >= limit:
                break
            started = self._clock()
            attempt = asyncio.ensure_future(self._attempt_cycle())
            try:
                await asyncio.shield(attempt)
            except asyncio.CancelledError:
                # Cancellation lands at the Idle boundary: the cycle in
                # flight still publishes to every subscriber.
                self._stop_event.set()
                logger.warning("Scheduler cancelled; finishing the cycle in flight")
                await attempt
                raise

            attempts += 1
            if limit is not None and attempts >= limit:
                break

            delay = interval - (self._clock() - started)
            if delay <= 0:
                logger.warning(
                    "Cycle overran the %.1fs interval by %.2fs; starting next "
                    "cycle immediately",
                    interval,
                    -delay,
                )
                continue
            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
            except asyncio.TimeoutError:
                pass

        logger.info(
            "Scheduler stopped after %d completed / %d failed cycles",
            self._completed,
            self._failed,
        )

    async def _attempt_cycle(self) -> None:
        try:
            await self.run_cycle()
        except CycleFailed as exc:
            self._failed += 1
            logger.error("Cycle %d failed during %s: %s", exc.cycle, exc.phase, exc)
            await self._fan_out(list(self._error_subscribers), exc, "error")

    def stop(self) -> None:
        """Request a stop; honoured once the current cycle returns to Idle."""
        self._stop_event.set()
