"""Client focus monitor — elapsed-time counter with debounced focus-loss detection.

State machine over Idle / Running / GracePending / Violated:

- start(): → Running. Clears the violated flag and any pending countdown.
- focus_lost(reason): Running/GracePending → GracePending. (Re)starts the
  grace countdown; repeated signals restart the single countdown.
- focus_regained(): GracePending → Running. Cancels the countdown.
- countdown elapses: → Violated. Stops the counter, sets the violated flag,
  notifies violation listeners synchronously, then reports asynchronously.
- stop(): halts counting, keeps elapsed time and the violated flag.
- reset(): → Idle. Zeroes elapsed time, clears every flag.

Elapsed time comes from monotonic timestamp deltas, never from counting
ticks, so suspended timers cannot make it drift. Ticks only tell listeners
that a new second may be showing.

All state lives in one FocusSession owned by the monitor and touched only
from the event loop thread. Timer callbacks read it when they fire, so they
always see the latest value.

Reporting is optimistic: a failed report never rolls back the local
transition.
"""

from __future__ import annotations

import asyncio
import enum
import logging
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from focusguard.rules import GRACE_PERIOD_SECONDS, TICK_INTERVAL_SECONDS, format_duration

logger = logging.getLogger("focusguard.client.monitor")


class MonitorState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    GRACE_PENDING = "grace_pending"
    VIOLATED = "violated"


@dataclass(frozen=True)
class Violation:
    """A finalized focus violation, as handed to listeners and the reporter."""

    reason: str
    elapsed_seconds: int

    @property
    def focus_duration(self) -> str:
        return format_duration(self.elapsed_seconds)

    @property
    def focus_minutes(self) -> int:
        return self.elapsed_seconds // 60


@dataclass
class FocusSession:
    """Mutable per-client session state. Ephemeral: never persisted.

    Attributes:
        accumulated_seconds: Time counted in previous running spans.
        run_started_at: Clock reading when the current span began, or None.
        pending_violation: A grace countdown is armed.
        violation_deadline: Clock reading at which the countdown fires.
        pending_reason: Reason of the most recent focus-loss signal.
        violated: A violation has been finalized since the last start/reset.
    """

    accumulated_seconds: float = 0.0
    run_started_at: float | None = None
    pending_violation: bool = False
    violation_deadline: float | None = None
    pending_reason: str | None = None
    violated: bool = False

    @property
    def running(self) -> bool:
        return self.run_started_at is not None

    def elapsed(self, now: float) -> float:
        if self.run_started_at is None:
            return self.accumulated_seconds
        return self.accumulated_seconds + max(now - self.run_started_at, 0.0)


ViolationReporter = Callable[[Violation], Awaitable[Any]]
ViolationListener = Callable[[Violation], None]
TickListener = Callable[[int], None]


class FocusMonitor:
    """Debounced focus-loss detector wrapped around an elapsed-time counter.

    Must be driven from inside a running asyncio event loop.

    Args:
        reporter: Async callable invoked once per violation. Its failures are
            logged and otherwise ignored.
        grace_period: Seconds a focus loss must last to count as a violation.
        tick_interval: Seconds between tick notifications while running.
        clock: Monotonic clock in seconds. Tests inject a fake.
    """

    def __init__(
        self,
        reporter: ViolationReporter | None = None,
        grace_period: float = GRACE_PERIOD_SECONDS,
        tick_interval: float = TICK_INTERVAL_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._reporter = reporter
        self._grace_period = grace_period
        self._tick_interval = tick_interval
        self._clock = clock
        self._session = FocusSession()
        self._grace_handle: asyncio.TimerHandle | None = None
        self._tick_handle: asyncio.TimerHandle | None = None
        self._reports: set[asyncio.Task[None]] = set()
        self._violation_listeners: list[ViolationListener] = []
        self._tick_listeners: list[TickListener] = []

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def state(self) -> MonitorState:
        session = self._session
        if session.pending_violation:
            return MonitorState.GRACE_PENDING
        if session.running:
            return MonitorState.RUNNING
        if session.violated:
            return MonitorState.VIOLATED
        return MonitorState.IDLE

    @property
    def session(self) -> FocusSession:
        return self._session

    @property
    def running(self) -> bool:
        return self._session.running

    @property
    def violated(self) -> bool:
        return self._session.violated

    @property
    def elapsed_seconds(self) -> int:
        return int(self._session.elapsed(self._clock()))

    @property
    def formatted_elapsed(self) -> str:
        return format_duration(self.elapsed_seconds)

    def set_reporter(self, reporter: ViolationReporter | None) -> None:
        """Replaces the reporter used for violations finalized from now on."""
        self._reporter = reporter

    def add_violation_listener(self, listener: ViolationListener) -> None:
        self._violation_listeners.append(listener)

    def add_tick_listener(self, listener: TickListener) -> None:
        self._tick_listeners.append(listener)

    # ------------------------------------------------------------------
    # User actions
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Starts (or resumes) counting. Clears the violated flag."""
        self._cancel_grace()
        session = self._session
        session.violated = False
        if session.running:
            return
        session.run_started_at = self._clock()
        self._schedule_tick()
        logger.debug("Focus session started at %s", self.formatted_elapsed)

    def stop(self) -> None:
        """Halts counting. Keeps elapsed time and the violated flag."""
        self._cancel_grace()
        self._freeze()
        logger.debug("Focus session stopped at %s", self.formatted_elapsed)

    def clear_violation(self) -> None:
        """Drops the violated flag. Elapsed time and running state are kept."""
        self._session.violated = False

    def reset(self) -> None:
        """Returns to Idle: zero elapsed, no flags, no pending countdown."""
        self._cancel_grace()
        self._cancel_tick()
        self._session = FocusSession()

    # ------------------------------------------------------------------
    # Focus signals
    # ------------------------------------------------------------------

    def focus_lost(self, reason: str) -> None:
        """Arms (or re-arms) the grace countdown. Ignored unless counting."""
        session = self._session
        if not session.running:
            return
        self._cancel_grace()
        loop = asyncio.get_running_loop()
        session.pending_violation = True
        session.pending_reason = reason
        session.violation_deadline = self._clock() + self._grace_period
        self._grace_handle = loop.call_later(self._grace_period, self._finalize_violation)
        logger.debug("Focus lost (%s); grace period armed", reason)

    def focus_regained(self) -> None:
        """Cancels a pending countdown. No violation is recorded."""
        if self._session.pending_violation:
            logger.debug("Focus regained within grace period")
        self._cancel_grace()

    # ------------------------------------------------------------------
    # Reporting
    # ------------------------------------------------------------------

    async def drain(self) -> None:
        """Waits for every in-flight violation report to finish."""
        while self._reports:
            await asyncio.gather(*list(self._reports), return_exceptions=True)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _finalize_violation(self) -> None:
        session = self._session
        self._grace_handle = None
        if not session.pending_violation or not session.running:
            return

        reason = session.pending_reason or "focus lost"
        session.pending_violation = False
        session.violation_deadline = None
        session.pending_reason = None
        self._freeze()
        session.violated = True

        violation = Violation(reason=reason, elapsed_seconds=int(session.accumulated_seconds))
        logger.info("Focus violation (%s) at %s", reason, violation.focus_duration)

        for listener in list(self._violation_listeners):
            try:
                listener(violation)
            except Exception:
                logger.exception("Violation listener failed")

        if self._reporter is not None:
            task = asyncio.get_running_loop().create_task(self._report(self._reporter, violation))
            self._reports.add(task)
            task.add_done_callback(self._reports.discard)

    async def _report(self, reporter: ViolationReporter, violation: Violation) -> None:
        try:
            await reporter(violation)
        except Exception as exc:
            logger.warning("Violation report failed; keeping local state: %s", exc)

    def _freeze(self) -> None:
        """Folds the current span into accumulated time and stops the tick."""
        session = self._session
        if session.run_started_at is not None:
            session.accumulated_seconds = session.elapsed(self._clock())
            session.run_started_at = None
        self._cancel_tick()

    def _cancel_grace(self) -> None:
        if self._grace_handle is not None:
            self._grace_handle.cancel()
            self._grace_handle = None
        session = self._session
        session.pending_violation = False
        session.violation_deadline = None
        session.pending_reason = None

    def _schedule_tick(self) -> None:
        self._cancel_tick()
        loop = asyncio.get_running_loop()
        self._tick_handle = loop.call_later(self._tick_interval, self._tick)

    def _cancel_tick(self) -> None:
        if self._tick_handle is not None:
            self._tick_handle.cancel()
            self._tick_handle = None

    def _tick(self) -> None:
        self._tick_handle = None
        if not self._session.running:
            return
        elapsed = self.elapsed_seconds
        for listener in list(self._tick_listeners):
            try:
                listener(elapsed)
            except Exception:
                logger.exception("Tick listener failed")
        self._schedule_tick()
