"""Shared test fixtures for the FocusGuard test suite.

Factory-pattern fixtures that return callables accepting **overrides, plus
in-memory fakes for the notifier and realtime subscribers.

Fixtures:
    make_store: Factory for InMemoryStatusStore instances with seeded students
    fake_notifier: Factory for FakeNotifier instances (success/skip/fail)
    make_service: Factory for StatusService over a store, notifier, broadcaster
    recorder: Factory for RecordingSubscriber instances
"""

from itertools import count
from typing import Any

import pytest

from focusguard.errors import NotificationError
from focusguard.hooks.database import InMemoryStatusStore
from focusguard.hooks.interfaces import Notifier, Subscriber
from focusguard.realtime import Broadcaster
from focusguard.schemas import NotificationResult
from focusguard.service import StatusService

STUDENT_ID = "student_123"


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------


class FakeNotifier(Notifier):
    """Records every call; outcome selected by ``mode``.

    Modes: "success", "skip", "fail" (raises NotificationError).
    """

    def __init__(self, mode: str = "success", message: str | None = None) -> None:
        self.mode = mode
        self.message = message
        self.calls: list[tuple[str, int, int]] = []

    async def notify_mentor(
        self, student_id: str, quiz_score: int, focus_minutes: int
    ) -> NotificationResult:
        self.calls.append((student_id, quiz_score, focus_minutes))
        if self.mode == "fail":
            raise NotificationError("webhook down", status_code=502)
        if self.mode == "skip":
            return NotificationResult(skipped=True, status_code=404, message=self.message)
        return NotificationResult(success=True, status_code=200)


class RecordingSubscriber(Subscriber):
    """Keeps every delivered (event, payload) pair. Optionally fails on send."""

    _ids = count(1)

    def __init__(self, fail: bool = False) -> None:
        self._subscriber_id = f"recorder-{next(self._ids)}"
        self.fail = fail
        self.events: list[tuple[str, dict[str, Any]]] = []

    @property
    def subscriber_id(self) -> str:
        return self._subscriber_id

    async def send(self, event: str, payload: dict[str, Any]) -> None:
        if self.fail:
            raise ConnectionError("socket closed")
        self.events.append((event, payload))


# ---------------------------------------------------------------------------
# Store factory
# ---------------------------------------------------------------------------


@pytest.fixture
def make_store():
    """Returns a factory for InMemoryStatusStore instances.

    By default seeds one ``normal`` student (STUDENT_ID). Pass
    ``students={"id": "status", ...}`` to seed a different set.
    """

    def _make(students: dict[str, str] | None = None) -> InMemoryStatusStore:
        store = InMemoryStatusStore()
        for student_id, status in (students or {STUDENT_ID: "normal"}).items():
            store.seed_student(student_id, "Test Student", "student@example.com", status)
        return store

    return _make


# ---------------------------------------------------------------------------
# Notifier factory
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_notifier():
    """Returns a factory for FakeNotifier instances."""

    def _make(**kwargs) -> FakeNotifier:
        return FakeNotifier(**kwargs)

    return _make


# ---------------------------------------------------------------------------
# Service factory
# ---------------------------------------------------------------------------


@pytest.fixture
def make_service(make_store, fake_notifier):
    """Returns a factory for StatusService instances.

    Any collaborator not passed in is built fresh: a seeded in-memory store,
    a succeeding FakeNotifier, and an empty Broadcaster.
    """

    def _make(store=None, notifier=None, broadcaster=None) -> StatusService:
        return StatusService(
            store if store is not None else make_store(),
            notifier if notifier is not None else fake_notifier(),
            broadcaster if broadcaster is not None else Broadcaster(),
        )

    return _make


# ---------------------------------------------------------------------------
# Subscriber factory
# ---------------------------------------------------------------------------


@pytest.fixture
def recorder():
    """Returns a factory for RecordingSubscriber instances."""

    def _make(**kwargs) -> RecordingSubscriber:
        return RecordingSubscriber(**kwargs)

    return _make
