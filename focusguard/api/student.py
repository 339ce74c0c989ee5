"""Student status API routes — status reads, check-ins, violations, interventions.

Five endpoints that form the client's window into FocusGuard:
- Status: current student row plus the latest pending intervention
- Check-in: quiz score + focus minutes, applies the pass/fail rule
- Violation: focus-loss report from the client timer
- Interventions: assign (mentor side) and complete (student side)

Handlers stay thin: validation happens in the request models, domain errors
(StudentNotFoundError, InterventionNotFoundError, StorageError) propagate to
the exception handlers registered in main.py.

Tier 3 orchestration module: imports from deps (Tier 2), service (Tier 2),
rules (Tier 1), schemas (Tier 1).
"""

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field, model_validator

from focusguard.api.deps import get_status_service
from focusguard.rules import parse_duration_minutes
from focusguard.schemas import EventResult
from focusguard.service import StatusService

router = APIRouter()


# ---------------------------------------------------------------------------
# Request bodies (API-boundary types, local to this module)
# ---------------------------------------------------------------------------


class DailyCheckinRequest(BaseModel):
    """Request body for POST /daily-checkin."""

    student_id: str = Field(min_length=1)
    quiz_score: int
    focus_minutes: int = Field(ge=0)


class AssignInterventionRequest(BaseModel):
    """Request body for POST /assign-intervention."""

    student_id: str = Field(min_length=1)
    task_description: str = Field(min_length=1)


class CompleteInterventionRequest(BaseModel):
    """Request body for POST /complete-intervention."""

    student_id: str = Field(min_length=1)
    intervention_id: int


class ReportCheatRequest(BaseModel):
    """Request body for POST /report-cheat.

    ``focus_minutes`` is authoritative. Timer clients that only know the
    formatted ``MM:SS`` duration may send ``focus_duration`` instead.
    """

    student_id: str = Field(min_length=1)
    focus_minutes: int | None = Field(default=None, ge=0)
    focus_duration: str | None = None
    reason: str | None = None

    @model_validator(mode="after")
    def _resolve_focus_minutes(self) -> "ReportCheatRequest":
        if self.focus_minutes is not None:
            return self
        if self.focus_duration is None:
            raise ValueError("focus_minutes or focus_duration is required")
        self.focus_minutes = parse_duration_minutes(self.focus_duration)
        return self


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _event_response(result: EventResult) -> dict[str, Any]:
    """Public shape of a check-in/violation result: status plus optional warning."""
    response: dict[str, Any] = {"status": result.status}
    if result.warning:
        response["warning"] = result.warning
    return response


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@router.get("/student/{student_id}/status")
async def get_student_status(
    student_id: str,
    service: StatusService = Depends(get_status_service),
) -> dict:
    """Returns ``{student, intervention}``; intervention is null when none pending."""
    snapshot = await service.get_status(student_id)
    return snapshot.model_dump(mode="json")


@router.post("/daily-checkin")
async def daily_checkin(
    body: DailyCheckinRequest,
    service: StatusService = Depends(get_status_service),
) -> dict:
    """Records a check-in. A notification problem shows up as ``warning``."""
    result = await service.record_checkin(
        body.student_id, body.quiz_score, body.focus_minutes
    )
    return _event_response(result)


@router.post("/assign-intervention")
async def assign_intervention(
    body: AssignInterventionRequest,
    service: StatusService = Depends(get_status_service),
) -> dict:
    """Assigns a remedial task and moves the student to ``remedial``."""
    intervention = await service.assign_intervention(
        body.student_id, body.task_description
    )
    return {"success": True, "intervention_id": intervention.id}


@router.post("/complete-intervention")
async def complete_intervention(
    body: CompleteInterventionRequest,
    service: StatusService = Depends(get_status_service),
) -> dict:
    """Completes a pending intervention. 404 when the id pair does not match."""
    await service.complete_intervention(body.student_id, body.intervention_id)
    return {"success": True}


@router.post("/report-cheat")
async def report_cheat(
    body: ReportCheatRequest,
    service: StatusService = Depends(get_status_service),
) -> dict:
    """Records a focus violation reported by the client timer."""
    result = await service.record_violation(
        body.student_id, body.focus_minutes or 0, body.reason
    )
    return _event_response(result)
