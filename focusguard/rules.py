"""Status rules — single source of truth for thresholds, timings, and labels.

Every status decision in the platform resolves through this module. Server
and client both import from here, so the check-in thresholds and the focus
grace period can never drift between the two halves.

The values are fixed policy, not configuration: there is no env var for any
of them.
"""

from dataclasses import dataclass

from focusguard.schemas import (
    STATUS_NEEDS_INTERVENTION,
    STATUS_NORMAL,
    STATUS_REMEDIAL,
    StudentStatus,
)

# ---------------------------------------------------------------------------
# Check-in thresholds (strict: both must be exceeded)
# ---------------------------------------------------------------------------

PASSING_QUIZ_SCORE: int = 7
PASSING_FOCUS_MINUTES: int = 60

# Client-side score entry range, inclusive.
MIN_QUIZ_SCORE: int = 1
MAX_QUIZ_SCORE: int = 10

# ---------------------------------------------------------------------------
# Client timings
# ---------------------------------------------------------------------------

GRACE_PERIOD_SECONDS: float = 3.0
TICK_INTERVAL_SECONDS: float = 1.0
POLL_INTERVAL_SECONDS: float = 10.0

# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------

LOG_LABEL_ON_TRACK = "on_track"
LOG_LABEL_NEEDS_INTERVENTION = "needs_intervention"
DEFAULT_VIOLATION_REASON = "cheated"

CHECKIN_ON_TRACK = "On Track"
CHECKIN_PENDING_REVIEW = "Pending Mentor Review"

VIOLATION_NOTIFIED = "Logged cheat and notified mentor"
VIOLATION_NOTIFY_SKIPPED = "Logged cheat (notification skipped)"
VIOLATION_NOTIFY_FAILED = "Logged cheat (notification may have failed)"

NOTIFY_FAILED_WARNING = "Notification may have failed"
NOTIFY_SKIPPED_WARNING = "Notification skipped"

STATUS_TEXT: dict[str, str] = {
    STATUS_NORMAL: "All clear",
    STATUS_NEEDS_INTERVENTION: "Mentor review pending",
    STATUS_REMEDIAL: "Remedial task assigned",
}

# Statuses that keep the client polling until they clear.
POLLING_STATUSES: frozenset[str] = frozenset({STATUS_NEEDS_INTERVENTION, STATUS_REMEDIAL})


# ---------------------------------------------------------------------------
# Check-in decision
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CheckinOutcome:
    """Everything a check-in write needs, derived from the two inputs."""

    passed: bool
    student_status: StudentStatus
    log_label: str
    response_label: str


def evaluate_checkin(quiz_score: int, focus_minutes: int) -> CheckinOutcome:
    """Applies the check-in rule: pass iff score > 7 and focus > 60 minutes.

    Args:
        quiz_score: The submitted quiz score.
        focus_minutes: Minutes of focused work being reported.

    Returns:
        The CheckinOutcome for a pass or a fail.
    """
    if quiz_score > PASSING_QUIZ_SCORE and focus_minutes > PASSING_FOCUS_MINUTES:
        return CheckinOutcome(
            passed=True,
            student_status=STATUS_NORMAL,
            log_label=LOG_LABEL_ON_TRACK,
            response_label=CHECKIN_ON_TRACK,
        )
    return CheckinOutcome(
        passed=False,
        student_status=STATUS_NEEDS_INTERVENTION,
        log_label=LOG_LABEL_NEEDS_INTERVENTION,
        response_label=CHECKIN_PENDING_REVIEW,
    )


def format_duration(seconds: int) -> str:
    """Formats elapsed seconds as zero-padded ``MM:SS`` (minutes may exceed 99)."""
    minutes, secs = divmod(max(int(seconds), 0), 60)
    return f"{minutes:02d}:{secs:02d}"


def parse_duration_minutes(duration: str) -> int:
    """Parses a ``MM:SS`` (or ``HH:MM:SS``) string into whole minutes.

    Raises:
        ValueError: If the string is not colon-separated non-negative integers.
    """
    parts = duration.strip().split(":")
    if not 2 <= len(parts) <= 3 or not all(p.isdigit() for p in parts):
        raise ValueError(f"Invalid duration: {duration!r}")
    numbers = [int(p) for p in parts]
    if len(numbers) == 3:
        hours, minutes, seconds = numbers
    else:
        hours, (minutes, seconds) = 0, numbers
    return (hours * 3600 + minutes * 60 + seconds) // 60
