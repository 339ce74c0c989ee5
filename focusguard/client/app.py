"""Client controller — headless student focus screen.

Owns everything the student UI shows and does, without rendering any of it:

- status and cached intervention (server-authoritative, locally cached)
- the focus monitor (timer + debounced focus-loss detection)
- status sync (initial fetch, polling while flagged, stale-result discard)
- loading flag, activity log, user alerts
- check-in submission and intervention completion

A UI layer calls the action methods and reads the attributes; platform glue
forwards window/app focus events to focus_lost()/focus_regained() and
realtime ``status_update`` pushes to apply_status_update().

Local status changes are optimistic. The next fetch or push reconciles.

Usage:
    async with StatusApiClient(base_url) as api:
        client = FocusClient(api, "student_123", alert=show_dialog)
        await client.mount()
        client.start_timer()
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from pydantic import ValidationError

from focusguard import rules
from focusguard.client.api import ApiClientError, StatusApiClient
from focusguard.client.monitor import FocusMonitor, MonitorState, Violation
from focusguard.client.sync import StatusSync
from focusguard.schemas import (
    STATUS_NEEDS_INTERVENTION,
    STATUS_NORMAL,
    Intervention,
    StatusSnapshot,
)

logger = logging.getLogger("focusguard.client")

ACTIVITY_LOG_LIMIT = 25

AlertCallback = Callable[[str, str], None]


@dataclass(frozen=True)
class ActivityEntry:
    """One line of the on-screen activity log."""

    message: str
    timestamp: str


def _log_alert(title: str, message: str) -> None:
    logger.warning("%s: %s", title, message)


class FocusClient:
    """Headless controller for one student's focus screen.

    Args:
        api: HTTP client for the status API.
        student_id: The student this client acts for.
        alert: ``alert(title, message)`` for user-facing dialogs. Defaults to
            logging a warning.
        monitor: Pre-built FocusMonitor (tests inject one with a fake clock
            or short grace period). Its reporter is replaced by this client.
        poll_interval: Seconds between status polls while flagged.
        now: Wall-clock source for activity-log timestamps.
    """

    def __init__(
        self,
        api: StatusApiClient,
        student_id: str,
        alert: AlertCallback | None = None,
        monitor: FocusMonitor | None = None,
        poll_interval: float = rules.POLL_INTERVAL_SECONDS,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.api = api
        self.student_id = student_id
        self.status: str = STATUS_NORMAL
        self.intervention: Intervention | None = None
        self.is_loading = False
        self.activity_log: list[ActivityEntry] = []

        self._alert = alert or _log_alert
        self._now = now

        self.monitor = monitor or FocusMonitor()
        self.monitor.set_reporter(self._report_violation)
        self.monitor.add_violation_listener(self._on_violation)

        self.sync = StatusSync(
            self.api_fetch_status,
            on_result=self._apply_snapshot,
            on_error=self._on_sync_error,
            poll_interval=poll_interval,
        )

    # ------------------------------------------------------------------
    # Derived view state
    # ------------------------------------------------------------------

    @property
    def status_text(self) -> str:
        return rules.STATUS_TEXT.get(self.status, "Status updating…")

    @property
    def focus_label(self) -> str:
        return self.monitor.formatted_elapsed

    @property
    def focus_violation(self) -> bool:
        return self.monitor.violated

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def mount(self) -> None:
        """Initial status fetch, with the loading spinner."""
        await self.refresh_status(show_spinner=True)

    async def close(self) -> None:
        """Stops polling and the timer, then waits for in-flight reports."""
        self.sync.stop_polling()
        self.monitor.stop()
        await self.monitor.drain()

    # ------------------------------------------------------------------
    # Status sync
    # ------------------------------------------------------------------

    async def api_fetch_status(self) -> StatusSnapshot:
        return await self.api.get_status(self.student_id)

    async def refresh_status(self, show_spinner: bool = False) -> StatusSnapshot | None:
        """Fetches the latest status; supersedes any fetch in flight."""
        if show_spinner:
            self.is_loading = True
        try:
            return await self.sync.fetch()
        finally:
            if show_spinner:
                self.is_loading = False

    def apply_status_update(self, payload: dict[str, Any]) -> None:
        """Applies a realtime ``status_update`` push.

        The push carries the status and, on assignment, the new intervention.
        A push that moves the student back to ``normal`` clears the cached
        intervention. Fetches still in flight are discarded when they land.
        """
        status = payload.get("status")
        if status not in rules.STATUS_TEXT:
            logger.debug("Ignoring status push with unknown status %r", status)
            return
        intervention = None
        if payload.get("intervention") is not None:
            try:
                intervention = Intervention.model_validate(payload["intervention"])
            except ValidationError as exc:
                logger.warning("Ignoring status push with malformed intervention: %s", exc)
                return

        self.sync.supersede()
        self.status = status
        if intervention is not None:
            self.intervention = intervention
        elif status == STATUS_NORMAL:
            self.intervention = None
        self.add_activity(f"Status update received ({status})")
        self.sync.update_polling(self.status)

    def _apply_snapshot(self, snapshot: StatusSnapshot) -> None:
        self.status = snapshot.student.status
        self.intervention = snapshot.intervention
        self.add_activity("Synced status with server")
        self.sync.update_polling(self.status)

    def _on_sync_error(self, exc: Exception) -> None:
        self.add_activity("Failed to sync status")
        self._alert("Sync failed", "Could not fetch the latest status.")

    # ------------------------------------------------------------------
    # Timer
    # ------------------------------------------------------------------

    def start_timer(self) -> None:
        if self.monitor.state in (MonitorState.RUNNING, MonitorState.GRACE_PENDING):
            return
        self.monitor.start()
        self.add_activity("Focus session started")

    def stop_timer(self) -> None:
        self.monitor.stop()
        self.add_activity(f"Focus stopped at {self.monitor.formatted_elapsed}")

    def reset_timer(self) -> None:
        self.monitor.reset()
        self.add_activity("Timer reset")

    def focus_lost(self, reason: str) -> None:
        """Forwards a blur / hidden / backgrounded signal to the monitor."""
        self.monitor.focus_lost(reason)

    def focus_regained(self) -> None:
        self.monitor.focus_regained()

    def _on_violation(self, violation: Violation) -> None:
        self.status = STATUS_NEEDS_INTERVENTION
        self.intervention = None
        self.add_activity("Focus interrupted")
        self.sync.update_polling(self.status)

    async def _report_violation(self, violation: Violation) -> None:
        try:
            await self.api.report_violation(
                self.student_id,
                violation.focus_minutes,
                violation.focus_duration,
                violation.reason,
            )
        except ApiClientError as exc:
            logger.warning("Failed to report focus violation: %s", exc)
            self.add_activity("Failed to notify mentor")
            return
        self.add_activity("Focus violation reported")
        await self.refresh_status()

    # ------------------------------------------------------------------
    # Check-in and interventions
    # ------------------------------------------------------------------

    async def submit_checkin(self, score_text: str) -> bool:
        """Validates the score locally, submits it, then refreshes status.

        Returns:
            True if the check-in was accepted by the server.
        """
        score = _parse_score(score_text)
        if score is None:
            self._alert(
                "Invalid score",
                f"Score must be {rules.MIN_QUIZ_SCORE}–{rules.MAX_QUIZ_SCORE}",
            )
            return False

        self.is_loading = True
        try:
            elapsed = self.monitor.elapsed_seconds
            response = await self.api.daily_checkin(
                self.student_id,
                score,
                elapsed // 60,
                rules.format_duration(elapsed),
            )
            self.add_activity(f"Daily check-in submitted ({response.get('status', 'sent')})")
            if response.get("warning"):
                logger.info("Check-in warning: %s", response["warning"])
            await self.refresh_status()
            self._alert("Submitted", "Mentor will review soon.")
            return True
        except ApiClientError as exc:
            logger.warning("Daily check-in failed: %s", exc)
            self.add_activity("Check-in failed")
            self._alert("Error", "Could not submit check-in.")
            return False
        finally:
            self.is_loading = False

    async def complete_intervention(self) -> bool:
        """Marks the cached intervention complete. No-op without one.

        Returns:
            True if the server accepted the completion.
        """
        if self.intervention is None:
            return False

        self.is_loading = True
        try:
            await self.api.complete_intervention(self.student_id, self.intervention.id)
            self.add_activity("Remedial task completed")
            self.intervention = None
            self.status = STATUS_NORMAL
            self.monitor.clear_violation()
            self.sync.update_polling(self.status)
            await self.refresh_status()
            return True
        except ApiClientError as exc:
            logger.warning("Failed to complete intervention: %s", exc)
            self.add_activity("Failed to complete task")
            self._alert("Error", "Could not complete the task.")
            return False
        finally:
            self.is_loading = False

    # ------------------------------------------------------------------
    # Activity log
    # ------------------------------------------------------------------

    def add_activity(self, message: str) -> None:
        """Prepends an entry; keeps the newest 25."""
        entry = ActivityEntry(message=message, timestamp=self._now().strftime("%H:%M"))
        self.activity_log = [entry, *self.activity_log][:ACTIVITY_LOG_LIMIT]


def _parse_score(text: str) -> int | None:
    """Parses a score in the allowed range; None for anything else."""
    text = text.strip()
    try:
        value = float(text)
    except ValueError:
        return None
    if not value.is_integer():
        return None
    score = int(value)
    if not rules.MIN_QUIZ_SCORE <= score <= rules.MAX_QUIZ_SCORE:
        return None
    return score
