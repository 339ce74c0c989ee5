"""Core data models — shared Pydantic types for the FocusGuard platform.

Every student row, audit log entry, intervention, service result, and realtime
push flows through these types. Server and client both import from here, so
the wire shapes stay identical on both ends.

This is a Tier 1 leaf module: it imports only from pydantic and the stdlib.
No project imports allowed — everything else imports from here.

Usage:
    from focusguard.schemas import Student, Intervention, StatusSnapshot
"""

from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

StudentStatus = Literal["normal", "needs_intervention", "remedial"]
InterventionStatus = Literal["pending", "completed"]

STATUS_NORMAL: StudentStatus = "normal"
STATUS_NEEDS_INTERVENTION: StudentStatus = "needs_intervention"
STATUS_REMEDIAL: StudentStatus = "remedial"


def utcnow() -> datetime:
    """Timezone-aware UTC now. Single source for all persisted timestamps."""
    return datetime.now(timezone.utc)


# ---------------------------------------------------------------------------
# Persistent rows
# ---------------------------------------------------------------------------


class Student(BaseModel):
    """One row per student id.

    ``status`` is the sole authoritative field for UI branching. Only the
    status service mutates it — clients never write it directly.
    """

    id: str
    name: str = ""
    email: str = ""
    status: StudentStatus = STATUS_NORMAL
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)


class DailyLog(BaseModel):
    """Append-only audit row written for every check-in and violation.

    Frozen — log rows are immutable once written. ``status_label`` is
    ``on_track``/``needs_intervention`` for check-ins, or the violation reason.
    """

    model_config = ConfigDict(frozen=True)

    id: int
    student_id: str
    quiz_score: int
    focus_minutes: int
    status_label: str
    created_at: datetime = Field(default_factory=utcnow)


class Intervention(BaseModel):
    """A remedial task assigned to a student, tracked to completion."""

    id: int
    student_id: str
    task_description: str
    status: InterventionStatus = "pending"
    assigned_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None


# ---------------------------------------------------------------------------
# Service results
# ---------------------------------------------------------------------------


class StatusSnapshot(BaseModel):
    """Current student row plus the most recent pending intervention."""

    model_config = ConfigDict(frozen=True)

    student: Student
    intervention: Intervention | None = None


class EventResult(BaseModel):
    """Outcome of a check-in or violation report.

    ``status`` is the human-facing label ("On Track", "Pending Mentor
    Review", ...). ``student_status`` is the row status the write produced.
    ``warning`` is set when the mentor notification was skipped or failed.
    """

    model_config = ConfigDict(frozen=True)

    status: str
    student_status: StudentStatus
    warning: str | None = None


class NotificationResult(BaseModel):
    """Outcome of a mentor webhook attempt that did not raise."""

    model_config = ConfigDict(frozen=True)

    success: bool = False
    skipped: bool = False
    status_code: int | None = None
    message: str | None = None


# ---------------------------------------------------------------------------
# Realtime
# ---------------------------------------------------------------------------


class StatusUpdate(BaseModel):
    """Payload of the ``status_update`` realtime event."""

    model_config = ConfigDict(frozen=True)

    status: StudentStatus
    intervention: Intervention | None = None

    def to_payload(self) -> dict[str, Any]:
        """JSON-ready dict; omits the intervention key when there is none."""
        return self.model_dump(mode="json", exclude_none=True)


# ---------------------------------------------------------------------------
# Error envelope
# ---------------------------------------------------------------------------


class ApiError(BaseModel):
    """Error body returned by every failing endpoint.

    code is an uppercase string like "STUDENT_NOT_FOUND" or
    "VALIDATION_ERROR". Not an enum — codes grow with the API.
    """

    model_config = ConfigDict(frozen=True)

    error: str
    code: str
