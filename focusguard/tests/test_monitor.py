"""Tests for focusguard.client.monitor — FocusMonitor state machine.

Covers: timestamp-based elapsed time, grace-period debounce (regain within
grace, repeated loss signals), violation finalization (counter frozen,
listeners, single report), stop/start/reset semantics, and report failures
leaving local state alone.

Elapsed time runs on a fake clock; grace countdowns run on the real event
loop with short periods. All async tests use explicit @pytest.mark.asyncio.
"""

import asyncio

import pytest

from focusguard.client.monitor import FocusMonitor, MonitorState, Violation

GRACE = 0.05


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class ReportRecorder:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.reports: list[Violation] = []

    async def __call__(self, violation: Violation) -> None:
        self.reports.append(violation)
        if self.fail:
            raise ConnectionError("offline")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def make_monitor(clock: FakeClock):
    """Returns a factory for FocusMonitor instances on the fake clock."""

    def _make(**overrides) -> FocusMonitor:
        defaults = {"grace_period": GRACE, "tick_interval": 60.0, "clock": clock}
        defaults.update(overrides)
        return FocusMonitor(**defaults)

    return _make


# ---------------------------------------------------------------------------
# Elapsed time
# ---------------------------------------------------------------------------


class TestElapsedTime:
    """Elapsed time comes from clock deltas, never from tick counts."""

    @pytest.mark.asyncio
    async def test_idle_by_default(self, make_monitor) -> None:
        monitor = make_monitor()
        assert monitor.state is MonitorState.IDLE
        assert monitor.elapsed_seconds == 0
        assert monitor.formatted_elapsed == "00:00"

    @pytest.mark.asyncio
    async def test_elapsed_follows_clock(self, make_monitor, clock: FakeClock) -> None:
        monitor = make_monitor()
        monitor.start()
        clock.advance(65.4)

        assert monitor.state is MonitorState.RUNNING
        assert monitor.elapsed_seconds == 65
        assert monitor.formatted_elapsed == "01:05"
        monitor.reset()

    @pytest.mark.asyncio
    async def test_stop_freezes_and_start_resumes(self, make_monitor, clock: FakeClock) -> None:
        monitor = make_monitor()
        monitor.start()
        clock.advance(30)
        monitor.stop()
        clock.advance(500)

        assert monitor.elapsed_seconds == 30
        assert monitor.state is MonitorState.IDLE

        monitor.start()
        clock.advance(15)
        assert monitor.elapsed_seconds == 45
        monitor.reset()

    @pytest.mark.asyncio
    async def test_reset_zeroes(self, make_monitor, clock: FakeClock) -> None:
        monitor = make_monitor()
        monitor.start()
        clock.advance(90)
        monitor.reset()

        assert monitor.elapsed_seconds == 0
        assert monitor.running is False
        assert monitor.state is MonitorState.IDLE

    @pytest.mark.asyncio
    async def test_start_twice_does_not_restart_span(self, make_monitor, clock: FakeClock) -> None:
        monitor = make_monitor()
        monitor.start()
        clock.advance(10)
        monitor.start()
        clock.advance(5)
        assert monitor.elapsed_seconds == 15
        monitor.reset()

    @pytest.mark.asyncio
    async def test_tick_listener_receives_elapsed(self, make_monitor, clock: FakeClock) -> None:
        monitor = make_monitor(tick_interval=0.01)
        ticks: list[int] = []
        monitor.add_tick_listener(ticks.append)

        monitor.start()
        clock.advance(3)
        await asyncio.sleep(0.05)
        monitor.stop()

        assert ticks
        assert ticks[0] == 3


# ---------------------------------------------------------------------------
# Grace period
# ---------------------------------------------------------------------------


class TestGracePeriod:
    """Focus loss only becomes a violation after the grace period."""

    @pytest.mark.asyncio
    async def test_regain_within_grace_is_not_a_violation(self, make_monitor) -> None:
        reporter = ReportRecorder()
        monitor = make_monitor(reporter=reporter)
        monitor.start()

        monitor.focus_lost("window_blur")
        assert monitor.state is MonitorState.GRACE_PENDING
        monitor.focus_regained()
        await asyncio.sleep(GRACE * 3)

        assert monitor.state is MonitorState.RUNNING
        assert monitor.violated is False
        assert reporter.reports == []
        monitor.reset()

    @pytest.mark.asyncio
    async def test_loss_ignored_when_not_running(self, make_monitor) -> None:
        reporter = ReportRecorder()
        monitor = make_monitor(reporter=reporter)

        monitor.focus_lost("window_blur")
        await asyncio.sleep(GRACE * 3)

        assert monitor.state is MonitorState.IDLE
        assert reporter.reports == []

    @pytest.mark.asyncio
    async def test_repeated_loss_restarts_single_countdown(self, make_monitor) -> None:
        reporter = ReportRecorder()
        monitor = make_monitor(reporter=reporter, grace_period=0.1)
        monitor.start()

        monitor.focus_lost("window_blur")
        await asyncio.sleep(0.06)
        monitor.focus_lost("document_hidden")
        await asyncio.sleep(0.06)
        assert monitor.violated is False

        await asyncio.sleep(0.1)
        await monitor.drain()
        assert monitor.violated is True
        assert [r.reason for r in reporter.reports] == ["document_hidden"]

    @pytest.mark.asyncio
    async def test_reset_cancels_pending_countdown(self, make_monitor) -> None:
        reporter = ReportRecorder()
        monitor = make_monitor(reporter=reporter)
        monitor.start()

        monitor.focus_lost("window_blur")
        monitor.reset()
        await asyncio.sleep(GRACE * 3)

        assert monitor.state is MonitorState.IDLE
        assert monitor.violated is False
        assert reporter.reports == []

    @pytest.mark.asyncio
    async def test_stop_cancels_pending_countdown(self, make_monitor) -> None:
        reporter = ReportRecorder()
        monitor = make_monitor(reporter=reporter)
        monitor.start()

        monitor.focus_lost("window_blur")
        monitor.stop()
        await asyncio.sleep(GRACE * 3)

        assert monitor.violated is False
        assert reporter.reports == []


# ---------------------------------------------------------------------------
# Violations
# ---------------------------------------------------------------------------


class TestViolation:
    """Finalized violations freeze the counter and report exactly once."""

    @pytest.mark.asyncio
    async def test_violation_freezes_counter_and_reports(
        self, make_monitor, clock: FakeClock
    ) -> None:
        reporter = ReportRecorder()
        seen: list[Violation] = []
        monitor = make_monitor(reporter=reporter)
        monitor.add_violation_listener(seen.append)
        monitor.start()
        clock.advance(125)

        monitor.focus_lost("app_background")
        await asyncio.sleep(GRACE * 3)
        await monitor.drain()
        clock.advance(60)

        assert monitor.state is MonitorState.VIOLATED
        assert monitor.running is False
        assert monitor.elapsed_seconds == 125
        assert seen == [Violation(reason="app_background", elapsed_seconds=125)]
        [report] = reporter.reports
        assert report.focus_duration == "02:05"
        assert report.focus_minutes == 2

    @pytest.mark.asyncio
    async def test_report_failure_keeps_local_state(self, make_monitor) -> None:
        reporter = ReportRecorder(fail=True)
        monitor = make_monitor(reporter=reporter)
        monitor.start()

        monitor.focus_lost("window_blur")
        await asyncio.sleep(GRACE * 3)
        await monitor.drain()

        assert len(reporter.reports) == 1
        assert monitor.violated is True
        assert monitor.state is MonitorState.VIOLATED

    @pytest.mark.asyncio
    async def test_start_clears_violated_flag(self, make_monitor, clock: FakeClock) -> None:
        monitor = make_monitor()
        monitor.start()
        clock.advance(20)
        monitor.focus_lost("window_blur")
        await asyncio.sleep(GRACE * 3)
        assert monitor.violated is True

        monitor.start()
        clock.advance(5)

        assert monitor.violated is False
        assert monitor.state is MonitorState.RUNNING
        assert monitor.elapsed_seconds == 25
        monitor.reset()

    @pytest.mark.asyncio
    async def test_clear_violation_keeps_counter(self, make_monitor, clock: FakeClock) -> None:
        monitor = make_monitor()
        monitor.start()
        clock.advance(20)
        monitor.focus_lost("window_blur")
        await asyncio.sleep(GRACE * 3)
        monitor.clear_violation()

        assert monitor.violated is False
        assert monitor.state is MonitorState.IDLE
        assert monitor.elapsed_seconds == 20

        monitor.start()
        clock.advance(10)
        monitor.clear_violation()

        assert monitor.state is MonitorState.RUNNING
        assert monitor.elapsed_seconds == 30
        monitor.reset()

    @pytest.mark.asyncio
    async def test_listener_failure_does_not_block_report(self, make_monitor) -> None:
        reporter = ReportRecorder()
        monitor = make_monitor(reporter=reporter)

        def broken(violation: Violation) -> None:
            raise ValueError("ui gone")

        monitor.add_violation_listener(broken)
        monitor.start()
        monitor.focus_lost("window_blur")
        await asyncio.sleep(GRACE * 3)
        await monitor.drain()

        assert len(reporter.reports) == 1
