"""Domain exceptions — raised by the store, notifier, and status service.

The API layer maps each family to an HTTP status in main.py. Nothing here
knows about HTTP: the same exceptions surface unchanged when the service is
driven directly (tests, scripts).

Tier 1 leaf module: stdlib only.
"""


class FocusGuardError(Exception):
    """Base class for every domain error.

    Attributes:
        code: Uppercase machine-readable error code (e.g. "STUDENT_NOT_FOUND").
        message: Human-readable description, safe to show to a client.
    """

    code = "INTERNAL_ERROR"

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class NotFoundError(FocusGuardError):
    """A referenced row does not exist."""

    code = "NOT_FOUND"


class StudentNotFoundError(NotFoundError):
    code = "STUDENT_NOT_FOUND"

    def __init__(self, student_id: str) -> None:
        self.student_id = student_id
        super().__init__("Student not found")


class InterventionNotFoundError(NotFoundError):
    """No pending intervention matches the (intervention_id, student_id) pair."""

    code = "INTERVENTION_NOT_FOUND"

    def __init__(self, student_id: str, intervention_id: int) -> None:
        self.student_id = student_id
        self.intervention_id = intervention_id
        super().__init__("Intervention not found")


class StorageError(FocusGuardError):
    """The backing store failed. Single-statement writes: no partial state."""

    code = "STORAGE_ERROR"


class NotificationError(FocusGuardError):
    """The mentor webhook failed with a non-4xx error.

    Never reaches an HTTP caller — the status service downgrades it to a
    response warning.

    Attributes:
        status_code: HTTP status from the webhook, None for transport errors.
    """

    code = "NOTIFICATION_FAILED"

    def __init__(self, message: str, status_code: int | None = None) -> None:
        self.status_code = status_code
        super().__init__(message)
