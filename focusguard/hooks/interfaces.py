"""Hook interfaces — abstract base classes for all swappable services.

These ABCs define the contracts between the status logic and the
infrastructure layer. Each one has a development implementation that lets the
platform run end-to-end without real infrastructure, and the deployment wires
in a production implementation when ready.

Tier 1 leaf module: imports only from abc, typing (stdlib) and
focusguard.schemas (also Tier 1). No project services, no orchestration.

To implement a real service, subclass the relevant ABC and implement every
abstract method. Python will raise TypeError at instantiation if any method
is missing.

Usage:
    from focusguard.hooks.interfaces import StatusStore, Notifier, Subscriber
"""

from abc import ABC, abstractmethod
from typing import Any

from focusguard.schemas import (
    DailyLog,
    Intervention,
    NotificationResult,
    Student,
    StudentStatus,
)


# ---------------------------------------------------------------------------
# Status store (students, daily logs, interventions)
# ---------------------------------------------------------------------------


class StatusStore(ABC):
    """Persistent storage for students, daily logs, and interventions.

    Every write is a single statement — a failure leaves no partial row
    behind. Writes to a student row are last-writer-wins: there is no
    optimistic concurrency token.

    Implementations raise focusguard.errors.StorageError for backend
    failures. Missing rows are reported through return values (None / False),
    never through exceptions — the service decides what "not found" means.
    """

    @abstractmethod
    async def get_student(self, student_id: str) -> Student | None:
        """Looks up a student by id.

        Args:
            student_id: The opaque student identifier.

        Returns:
            The Student if found, None otherwise.
        """
        ...

    @abstractmethod
    async def upsert_student(self, student_id: str, name: str, email: str) -> Student:
        """Creates a student, or updates name/email of an existing one.

        Status of an existing student is left untouched. New students start
        as ``normal``.

        Returns:
            The stored Student.
        """
        ...

    @abstractmethod
    async def set_student_status(
        self, student_id: str, status: StudentStatus
    ) -> Student | None:
        """Sets a student's status and bumps updated_at.

        Returns:
            The updated Student, or None if no such student exists.
        """
        ...

    @abstractmethod
    async def append_daily_log(
        self,
        student_id: str,
        quiz_score: int,
        focus_minutes: int,
        status_label: str,
    ) -> DailyLog:
        """Appends one immutable audit row.

        Returns:
            The stored DailyLog with its assigned id.
        """
        ...

    @abstractmethod
    async def list_daily_logs(self, student_id: str) -> list[DailyLog]:
        """Returns a student's audit rows, oldest first.

        Audit/export use only — the status logic never reads logs back.
        """
        ...

    @abstractmethod
    async def create_intervention(
        self, student_id: str, task_description: str
    ) -> Intervention:
        """Inserts a new pending intervention.

        Returns:
            The stored Intervention with its assigned id.
        """
        ...

    @abstractmethod
    async def complete_intervention(
        self, intervention_id: int, student_id: str
    ) -> bool:
        """Marks a pending intervention completed and stamps completed_at.

        Only matches when both ids agree and the row is still pending.
        Completed rows are immutable.

        Returns:
            True if exactly one row was updated, False otherwise.
        """
        ...

    @abstractmethod
    async def get_pending_intervention(self, student_id: str) -> Intervention | None:
        """Returns the most recently assigned pending intervention, if any."""
        ...


# ---------------------------------------------------------------------------
# Mentor notification
# ---------------------------------------------------------------------------


class Notifier(ABC):
    """Best-effort outbound notification to a mentor.

    A notification that cannot or should not be delivered (no endpoint
    configured, the endpoint rejects the request) returns a result with
    ``skipped=True``. Anything else that goes wrong raises
    focusguard.errors.NotificationError. Callers treat both as warnings.
    """

    @abstractmethod
    async def notify_mentor(
        self, student_id: str, quiz_score: int, focus_minutes: int
    ) -> NotificationResult:
        """Tells the mentor that a student needs attention.

        Args:
            student_id: The student who triggered the notification.
            quiz_score: The reported score (0 for focus violations).
            focus_minutes: The reported focus minutes.

        Returns:
            NotificationResult with success or skipped set.

        Raises:
            NotificationError: On a non-skippable delivery failure.
        """
        ...


# ---------------------------------------------------------------------------
# Realtime subscriber
# ---------------------------------------------------------------------------


class Subscriber(ABC):
    """One connected realtime client, as seen by the broadcaster.

    Transport-neutral: the WebSocket route wraps its socket in an
    implementation; tests use an in-memory recorder.
    """

    @property
    @abstractmethod
    def subscriber_id(self) -> str:
        """Stable identifier for this connection (used in logs)."""
        ...

    @abstractmethod
    async def send(self, event: str, payload: dict[str, Any]) -> None:
        """Delivers one event. Raises on a dead connection."""
        ...
