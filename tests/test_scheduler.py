"""Tests for the scan-cycle scheduler."""

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from shared.config import SchedulerConfig
from sentry.collectors import InMemoryHistoryProvider, SimulatedSnapshotSource
from sentry.core.errors import CycleFailed, HistoryUnavailable, ScanUnavailable
from sentry.core.models import CycleReport, HistoryWindow, ThreatType
from sentry.core.scheduler import CycleGuard, CycleState, ScanScheduler


class ListSource:
    """Hands out the given snapshots; an Exception entry is raised instead."""

    def __init__(self, items, delay=0.0):
        self._items = list(items)
        self._delay = delay
        self.calls = 0
        self.in_flight = 0
        self.max_in_flight = 0

    async def acquire_snapshot(self):
        self.calls += 1
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self._delay:
                await asyncio.sleep(self._delay)
            item = self._items[min(self.calls - 1, len(self._items) - 1)]
            if isinstance(item, Exception):
                raise item
            return item
        finally:
            self.in_flight -= 1


@pytest.fixture
def fast_config():
    return SchedulerConfig(interval_seconds=0.01, snapshot_timeout=1.0, history_timeout=1.0)


@pytest.fixture
def empty_history():
    provider = MagicMock()
    provider.get_history = AsyncMock(return_value=HistoryWindow.empty())
    return provider


class TestRunCycle:
    @pytest.mark.asyncio
    async def test_publishes_report(self, obs, snapshot, empty_history, fast_config):
        snap = snapshot(obs("Free WiFi", "00:11:22:33:44:55", security=""))
        scheduler = ScanScheduler(ListSource([snap]), empty_history, config=fast_config)
        received = []
        scheduler.on_findings(received.append)

        report = await scheduler.run_cycle()

        assert received == [report]
        assert isinstance(report, CycleReport)
        assert report.cycle == 1
        assert report.network_count == 1
        assert {f.type for f in report.findings} == {
            ThreatType.OPEN_NETWORK,
            ThreatType.SUSPICIOUS_SSID,
        }
        assert report.snapshot is snap
        assert scheduler.state is CycleState.IDLE
        assert scheduler.cycles_completed == 1
        empty_history.get_history.assert_awaited_once_with(fast_config.history_max_records)

    @pytest.mark.asyncio
    async def test_async_subscriber_awaited(self, snapshot, empty_history, fast_config):
        scheduler = ScanScheduler(ListSource([snapshot()]), empty_history, config=fast_config)
        subscriber = AsyncMock()
        scheduler.on_findings(subscriber)
        report = await scheduler.run_cycle()
        subscriber.assert_awaited_once_with(report)

    @pytest.mark.asyncio
    async def test_failing_subscribers_are_isolated(self, snapshot, empty_history, fast_config):
        scheduler = ScanScheduler(ListSource([snapshot()]), empty_history, config=fast_config)

        def sync_boom(report):
            raise RuntimeError("sync subscriber failed")

        async_boom = AsyncMock(side_effect=RuntimeError("async subscriber failed"))
        received = []
        scheduler.on_findings(sync_boom)
        scheduler.on_findings(async_boom)
        scheduler.on_findings(received.append)

        report = await scheduler.run_cycle()

        assert received == [report]
        async_boom.assert_awaited_once()
        assert scheduler.state is CycleState.IDLE

    @pytest.mark.asyncio
    async def test_unsubscribe(self, snapshot, empty_history, fast_config):
        scheduler = ScanScheduler(ListSource([snapshot()]), empty_history, config=fast_config)
        received = []
        unsubscribe = scheduler.on_findings(received.append)
        assert scheduler.subscriber_count == 1

        unsubscribe()
        unsubscribe()
        await scheduler.run_cycle()

        assert received == []
        assert scheduler.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_snapshot_failure(self, empty_history, fast_config):
        source = ListSource([ScanUnavailable("radio off")])
        scheduler = ScanScheduler(source, empty_history, config=fast_config)
        received = []
        scheduler.on_findings(received.append)

        with pytest.raises(CycleFailed) as info:
            await scheduler.run_cycle()

        assert info.value.phase == CycleState.SCANNING.value
        assert info.value.cycle == 1
        assert isinstance(info.value.__cause__, ScanUnavailable)
        assert received == []
        assert scheduler.state is CycleState.IDLE
        empty_history.get_history.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_history_failure(self, snapshot, fast_config):
        history = MagicMock()
        history.get_history = AsyncMock(side_effect=HistoryUnavailable("db down"))
        scheduler = ScanScheduler(ListSource([snapshot()]), history, config=fast_config)

        with pytest.raises(CycleFailed) as info:
            await scheduler.run_cycle()

        assert info.value.phase == CycleState.ANALYZING.value
        assert scheduler.state is CycleState.IDLE

    @pytest.mark.asyncio
    async def test_snapshot_timeout(self, snapshot, empty_history):
        config = SchedulerConfig(snapshot_timeout=0.05)
        source = ListSource([snapshot()], delay=1.0)
        scheduler = ScanScheduler(source, empty_history, config=config)

        with pytest.raises(CycleFailed, match="timed out"):
            await scheduler.run_cycle()
        assert scheduler.state is CycleState.IDLE

    @pytest.mark.asyncio
    async def test_cycles_never_overlap(self, snapshot, empty_history, fast_config):
        source = ListSource([snapshot()], delay=0.05)
        guard = CycleGuard()
        scheduler = ScanScheduler(source, empty_history, config=fast_config, guard=guard)

        reports = await asyncio.gather(scheduler.run_cycle(), scheduler.run_cycle())

        assert source.max_in_flight == 1
        assert sorted(r.cycle for r in reports) == [1, 2]
        assert not guard.in_flight


class TestRunLoop:
    @pytest.mark.asyncio
    async def test_max_cycles(self, snapshot, empty_history, fast_config):
        source = ListSource([snapshot()])
        scheduler = ScanScheduler(source, empty_history, config=fast_config)
        await asyncio.wait_for(scheduler.run(max_cycles=3), timeout=5)
        assert source.calls == 3
        assert scheduler.cycles_completed == 3

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_the_loop(self, snapshot, empty_history, fast_config):
        source = ListSource([ScanUnavailable("busy"), snapshot(), snapshot()])
        scheduler = ScanScheduler(source, empty_history, config=fast_config)
        errors = []
        scheduler.on_error(errors.append)

        await asyncio.wait_for(scheduler.run(max_cycles=3), timeout=5)

        assert scheduler.cycles_failed == 1
        assert scheduler.cycles_completed == 2
        assert len(errors) == 1
        assert isinstance(errors[0], CycleFailed)

    @pytest.mark.asyncio
    async def test_stop_ends_loop_after_cycle(self, snapshot, empty_history):
        config = SchedulerConfig(interval_seconds=30.0)
        scheduler = ScanScheduler(ListSource([snapshot()]), empty_history, config=config)
        scheduler.on_findings(lambda report: scheduler.stop())

        await asyncio.wait_for(scheduler.run(), timeout=5)

        assert scheduler.cycles_completed == 1
        assert scheduler.state is CycleState.IDLE

    @pytest.mark.asyncio
    async def test_zero_cycles_runs_nothing(self, snapshot, empty_history, fast_config):
        source = ListSource([snapshot()])
        scheduler = ScanScheduler(source, empty_history, config=fast_config)
        await asyncio.wait_for(scheduler.run(max_cycles=0), timeout=5)
        assert source.calls == 0
        assert scheduler.cycles_completed == 0

    @pytest.mark.asyncio
    async def test_cancel_finishes_publishing(self, snapshot, empty_history):
        config = SchedulerConfig(interval_seconds=30.0)
        scheduler = ScanScheduler(ListSource([snapshot()]), empty_history, config=config)
        delivered = []

        async def slow_subscriber(report):
            await asyncio.sleep(0.2)
            delivered.append("async")

        scheduler.on_findings(lambda report: delivered.append("sync"))
        scheduler.on_findings(slow_subscriber)

        task = asyncio.ensure_future(scheduler.run())
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert delivered == ["sync", "async"]
        assert scheduler.cycles_completed == 1
        assert scheduler.state is CycleState.IDLE

    @pytest.mark.asyncio
    async def test_overrun_defers_next_cycle(self, snapshot, empty_history, monkeypatch):
        from sentry.core import scheduler as scheduler_module

        warnings = []
        monkeypatch.setattr(
            scheduler_module.logger, "warning", lambda msg, *args, **kw: warnings.append(msg)
        )
        source = ListSource([snapshot()], delay=0.05)
        config = SchedulerConfig(interval_seconds=0.01, snapshot_timeout=1.0)
        scheduler = ScanScheduler(source, empty_history, config=config)

        await asyncio.wait_for(scheduler.run(max_cycles=3), timeout=5)

        assert source.calls == 3
        assert source.max_in_flight == 1
        assert scheduler.cycles_completed == 3
        assert sum(msg.startswith("Cycle overran") for msg in warnings) == 2

    @pytest.mark.asyncio
    async def test_history_accumulates_between_cycles(self):
        history = InMemoryHistoryProvider(max_snapshots=10)
        scheduler = ScanScheduler(
            SimulatedSnapshotSource(jitter_db=0),
            history,
            config=SchedulerConfig(interval_seconds=0.01),
        )
        reports = []
        scheduler.on_findings(history.record_report)
        scheduler.on_findings(reports.append)

        await asyncio.wait_for(scheduler.run(max_cycles=2), timeout=5)

        assert len(history) == 2
        twins = [f for f in reports[1].findings if f.type is ThreatType.EVIL_TWIN]
        assert [f.bssid for f in twins] == ["3C:84:6A:99:88:77"]
