"""In-memory status store — development stub for StatusStore.

Python dict-backed storage for students, daily logs, and interventions. Data
lives only in memory and is lost on restart. Ids for logs and interventions
come from per-table counters, mirroring SERIAL columns.

For a real database use focusguard.hooks.sql.SqlStatusStore, selected by
setting DATABASE_URL.

Tier 2 service module: imports from focusguard.hooks.interfaces (Tier 1)
and focusguard.schemas (Tier 1).

Usage:
    from focusguard.hooks.database import InMemoryStatusStore

    store = InMemoryStatusStore()
    await store.upsert_student("student_123", "Test Student", "s@example.com")
    await store.set_student_status("student_123", "remedial")
"""

from itertools import count

from focusguard.hooks.interfaces import StatusStore
from focusguard.schemas import (
    DailyLog,
    Intervention,
    Student,
    StudentStatus,
    utcnow,
)


class InMemoryStatusStore(StatusStore):
    """STUB — dict-backed storage, loses data on restart.

    Students are keyed by id. Logs are kept in insertion order; interventions
    are keyed by their integer id.
    """

    def __init__(self) -> None:
        """Initialises empty in-memory tables."""
        self._students: dict[str, Student] = {}
        self._logs: list[DailyLog] = []
        self._interventions: dict[int, Intervention] = {}
        self._log_ids = count(1)
        self._intervention_ids = count(1)

    async def get_student(self, student_id: str) -> Student | None:
        return self._students.get(student_id)

    async def upsert_student(self, student_id: str, name: str, email: str) -> Student:
        existing = self._students.get(student_id)
        if existing is None:
            student = Student(id=student_id, name=name, email=email)
        else:
            student = existing.model_copy(update={"name": name, "email": email})
        self._students[student_id] = student
        return student

    async def set_student_status(
        self, student_id: str, status: StudentStatus
    ) -> Student | None:
        """Replaces the stored row with an updated copy.

        Returns None (and writes nothing) for an unknown student, matching an
        UPDATE that affects zero rows.
        """
        existing = self._students.get(student_id)
        if existing is None:
            return None
        student = existing.model_copy(update={"status": status, "updated_at": utcnow()})
        self._students[student_id] = student
        return student

    async def append_daily_log(
        self,
        student_id: str,
        quiz_score: int,
        focus_minutes: int,
        status_label: str,
    ) -> DailyLog:
        log = DailyLog(
            id=next(self._log_ids),
            student_id=student_id,
            quiz_score=quiz_score,
            focus_minutes=focus_minutes,
            status_label=status_label,
        )
        self._logs.append(log)
        return log

    async def list_daily_logs(self, student_id: str) -> list[DailyLog]:
        return [log for log in self._logs if log.student_id == student_id]

    async def create_intervention(
        self, student_id: str, task_description: str
    ) -> Intervention:
        intervention = Intervention(
            id=next(self._intervention_ids),
            student_id=student_id,
            task_description=task_description,
        )
        self._interventions[intervention.id] = intervention
        return intervention

    async def complete_intervention(
        self, intervention_id: int, student_id: str
    ) -> bool:
        """Completes the row only if both ids match and it is still pending."""
        intervention = self._interventions.get(intervention_id)
        if (
            intervention is None
            or intervention.student_id != student_id
            or intervention.status != "pending"
        ):
            return False
        self._interventions[intervention_id] = intervention.model_copy(
            update={"status": "completed", "completed_at": utcnow()}
        )
        return True

    async def get_pending_intervention(self, student_id: str) -> Intervention | None:
        """Latest assigned_at wins; ties go to the higher id (later insert)."""
        pending = [
            i
            for i in self._interventions.values()
            if i.student_id == student_id and i.status == "pending"
        ]
        if not pending:
            return None
        return max(pending, key=lambda i: (i.assigned_at, i.id))

    def seed_student(
        self,
        student_id: str,
        name: str = "",
        email: str = "",
        status: StudentStatus = "normal",
    ) -> Student:
        """Pre-populates a student synchronously (startup and tests).

        Not part of the StatusStore ABC — this is a stub convenience method.
        Overwrites any existing row with the same id.
        """
        student = Student(id=student_id, name=name, email=email, status=status)
        self._students[student_id] = student
        return student
