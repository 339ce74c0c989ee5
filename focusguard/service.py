"""Status service — the only code path that mutates a student's status.

Turns check-ins, focus violations, and intervention lifecycle events into
status transitions, persists them through the StatusStore, notifies the
mentor where the rules call for it, and pushes the new status to the
student's realtime channel.

Failure policy per collaborator:
- Store: errors propagate (StorageError → 500 at the API layer).
- Notifier: never propagates. A skip or a failure becomes a ``warning`` on
  the result; the store write stands.
- Broadcaster: never propagates. Failures are logged; the write stands.

There is no lock across requests. Status writes are last-writer-wins, which
is acceptable with one active session per student.

Consumed by:
- Student API routes (focusguard.api.student)

Tier 2 service: imports from hooks/interfaces (T1), realtime (T2),
rules (T1), schemas (T1), errors (T1).
"""

from __future__ import annotations

import logging

from focusguard import rules
from focusguard.errors import (
    InterventionNotFoundError,
    NotificationError,
    StudentNotFoundError,
)
from focusguard.hooks.interfaces import Notifier, StatusStore
from focusguard.realtime import STATUS_UPDATE_EVENT, Broadcaster
from focusguard.schemas import (
    STATUS_NEEDS_INTERVENTION,
    STATUS_NORMAL,
    STATUS_REMEDIAL,
    EventResult,
    Intervention,
    NotificationResult,
    StatusSnapshot,
    StatusUpdate,
    StudentStatus,
)

logger = logging.getLogger("focusguard.service")


class StatusService:
    """Applies the status rules on top of a store, notifier, and broadcaster.

    Args:
        store: Persistent storage for students, logs, and interventions.
        notifier: Mentor notification hook.
        broadcaster: The process-wide realtime broadcaster.
    """

    def __init__(
        self,
        store: StatusStore,
        notifier: Notifier,
        broadcaster: Broadcaster,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._broadcaster = broadcaster

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_status(self, student_id: str) -> StatusSnapshot:
        """Returns the student row plus the latest pending intervention.

        Raises:
            StudentNotFoundError: If the student does not exist.
        """
        student = await self._store.get_student(student_id)
        if student is None:
            raise StudentNotFoundError(student_id)
        intervention = await self._store.get_pending_intervention(student_id)
        return StatusSnapshot(student=student, intervention=intervention)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def record_checkin(
        self, student_id: str, quiz_score: int, focus_minutes: int
    ) -> EventResult:
        """Logs a check-in and applies the pass/fail rule.

        Pass (score > 7 and focus > 60): status ``normal``, no notification.
        Fail: status ``needs_intervention`` and the mentor is notified.

        Raises:
            StudentNotFoundError: If the student does not exist.
        """
        await self._require_student(student_id)
        outcome = rules.evaluate_checkin(quiz_score, focus_minutes)

        await self._store.append_daily_log(
            student_id, quiz_score, focus_minutes, outcome.log_label
        )
        await self._store.set_student_status(student_id, outcome.student_status)
        logger.info(
            "Check-in for %s: score=%d focus=%d -> %s",
            student_id,
            quiz_score,
            focus_minutes,
            outcome.student_status,
        )

        if outcome.passed:
            self._publish_status(student_id, STATUS_NORMAL)
            return EventResult(
                status=outcome.response_label, student_status=outcome.student_status
            )

        warning = await self._notify(student_id, quiz_score, focus_minutes)
        self._publish_status(student_id, STATUS_NEEDS_INTERVENTION)
        return EventResult(
            status=outcome.response_label,
            student_status=outcome.student_status,
            warning=warning,
        )

    async def record_violation(
        self, student_id: str, focus_minutes: int, reason: str | None = None
    ) -> EventResult:
        """Logs a focus violation. Always sets ``needs_intervention``.

        The audit row carries quiz_score 0 and the reason as its label
        ("cheated" when no reason is given). The mentor is notified with
        quiz_score 0.

        Raises:
            StudentNotFoundError: If the student does not exist.
        """
        await self._require_student(student_id)
        label = reason or rules.DEFAULT_VIOLATION_REASON

        await self._store.append_daily_log(student_id, 0, focus_minutes, label)
        await self._store.set_student_status(student_id, STATUS_NEEDS_INTERVENTION)
        logger.info("Focus violation for %s (%s) after %d min", student_id, label, focus_minutes)

        notification = await self._attempt_notification(student_id, 0, focus_minutes)
        self._publish_status(student_id, STATUS_NEEDS_INTERVENTION)

        if notification is None:
            return EventResult(
                status=rules.VIOLATION_NOTIFY_FAILED,
                student_status=STATUS_NEEDS_INTERVENTION,
                warning=rules.NOTIFY_FAILED_WARNING,
            )
        if notification.skipped:
            return EventResult(
                status=rules.VIOLATION_NOTIFY_SKIPPED,
                student_status=STATUS_NEEDS_INTERVENTION,
                warning=notification.message or rules.NOTIFY_SKIPPED_WARNING,
            )
        return EventResult(
            status=rules.VIOLATION_NOTIFIED, student_status=STATUS_NEEDS_INTERVENTION
        )

    async def assign_intervention(
        self, student_id: str, task_description: str
    ) -> Intervention:
        """Creates a pending intervention and moves the student to ``remedial``.

        The broadcast carries the new intervention so connected clients can
        show the task without a round trip.

        Raises:
            StudentNotFoundError: If the student does not exist.
        """
        await self._require_student(student_id)
        intervention = await self._store.create_intervention(student_id, task_description)
        await self._store.set_student_status(student_id, STATUS_REMEDIAL)
        logger.info("Assigned intervention %d to %s", intervention.id, student_id)

        self._publish_status(student_id, STATUS_REMEDIAL, intervention)
        return intervention

    async def complete_intervention(self, student_id: str, intervention_id: int) -> None:
        """Completes a pending intervention and returns the student to ``normal``.

        Status goes back to ``normal`` even if other pending rows exist — one
        active intervention per student is assumed.

        Raises:
            InterventionNotFoundError: If no pending row matches both ids.
                The student's status is left untouched.
        """
        completed = await self._store.complete_intervention(intervention_id, student_id)
        if not completed:
            raise InterventionNotFoundError(student_id, intervention_id)

        await self._store.set_student_status(student_id, STATUS_NORMAL)
        logger.info("Intervention %d completed by %s", intervention_id, student_id)
        self._publish_status(student_id, STATUS_NORMAL)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _require_student(self, student_id: str) -> None:
        if await self._store.get_student(student_id) is None:
            raise StudentNotFoundError(student_id)

    async def _attempt_notification(
        self, student_id: str, quiz_score: int, focus_minutes: int
    ) -> NotificationResult | None:
        """Calls the notifier; returns None when it raised."""
        try:
            return await self._notifier.notify_mentor(student_id, quiz_score, focus_minutes)
        except NotificationError as exc:
            logger.error("Mentor notification failed for %s: %s", student_id, exc)
            return None

    async def _notify(self, student_id: str, quiz_score: int, focus_minutes: int) -> str | None:
        """Notifies the mentor and reduces the outcome to a response warning."""
        notification = await self._attempt_notification(student_id, quiz_score, focus_minutes)
        if notification is None:
            return rules.NOTIFY_FAILED_WARNING
        if notification.skipped:
            return notification.message or rules.NOTIFY_SKIPPED_WARNING
        return None

    def _publish_status(
        self,
        student_id: str,
        status: StudentStatus,
        intervention: Intervention | None = None,
    ) -> None:
        """Fire-and-forget push of the new status. Never raises."""
        update = StatusUpdate(status=status, intervention=intervention)
        try:
            self._broadcaster.publish(student_id, STATUS_UPDATE_EVENT, update.to_payload())
        except Exception as exc:
            logger.warning("Status broadcast skipped for %s: %s", student_id, exc)
