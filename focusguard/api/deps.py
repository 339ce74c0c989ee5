"""Shared FastAPI dependencies — store, notifier, broadcaster, service injection.

Module-level singletons for each service. Route handlers access them via
FastAPI's Depends() system — never by importing implementations directly.
main.create_app() builds the real instances (store selected by DATABASE_URL,
webhook notifier from N8N_WEBHOOK_URL) and assigns them here; tests swap them
through app.dependency_overrides or by reassigning the module attributes.

Tier 2 service module: imports from hooks/* (Tier 2), hooks/interfaces
(Tier 1), realtime (Tier 2), service (Tier 2), config (Tier 2).

Usage:
    from focusguard.api.deps import get_status_service

    @router.get("/something")
    async def do_thing(
        service: StatusService = Depends(get_status_service),
    ): ...
"""

import logging

from fastapi import Depends, HTTPException

from focusguard.config import Settings
from focusguard.hooks.database import InMemoryStatusStore
from focusguard.hooks.interfaces import Notifier, StatusStore
from focusguard.hooks.notifier import WebhookNotifier
from focusguard.hooks.sql import DEMO_STUDENTS, SqlStatusStore
from focusguard.realtime import Broadcaster
from focusguard.schemas import ApiError
from focusguard.service import StatusService

logger = logging.getLogger("focusguard")

# ---------------------------------------------------------------------------
# Service singletons: set by main.create_app() at startup
# ---------------------------------------------------------------------------

_store: StatusStore | None = None
_notifier: Notifier | None = None
_broadcaster: Broadcaster | None = None


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def create_store(settings: Settings) -> StatusStore:
    """Builds the store selected by settings.database_url.

    Empty URL → InMemoryStatusStore (demo students seeded synchronously when
    enabled). Any other URL → SqlStatusStore with schema creation on build.

    Raises:
        StorageError: If the SQL database cannot be initialized.
    """
    if not settings.database_url:
        store = InMemoryStatusStore()
        if settings.seed_demo_students:
            for student_id, name, email in DEMO_STUDENTS:
                store.seed_student(student_id, name, email)
        logger.info("Using in-memory status store")
        return store

    sql_store = SqlStatusStore(settings.database_url)
    sql_store.init_schema(seed=settings.seed_demo_students)
    logger.info("Using SQL status store")
    return sql_store


def create_notifier(settings: Settings) -> Notifier:
    """Builds the mentor webhook notifier from settings."""
    return WebhookNotifier(
        settings.webhook_url, timeout_seconds=settings.webhook_timeout_seconds
    )


# ---------------------------------------------------------------------------
# Dependency providers
# ---------------------------------------------------------------------------


def _unavailable(name: str) -> HTTPException:
    return HTTPException(
        status_code=503,
        detail=ApiError(
            code="SERVICE_UNAVAILABLE",
            error=f"{name} is not yet available. Server is starting up.",
        ).model_dump(),
    )


def get_store() -> StatusStore:
    """Returns the status store singleton.

    Raises HTTPException(503) if startup has not wired it yet.
    """
    if _store is None:
        raise _unavailable("Status store")
    return _store


def get_notifier() -> Notifier:
    """Returns the notifier singleton."""
    if _notifier is None:
        raise _unavailable("Notifier")
    return _notifier


def get_broadcaster() -> Broadcaster:
    """Returns the process-wide realtime broadcaster."""
    if _broadcaster is None:
        raise _unavailable("Realtime broadcaster")
    return _broadcaster


def get_status_service(
    store: StatusStore = Depends(get_store),
    notifier: Notifier = Depends(get_notifier),
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> StatusService:
    """Builds a StatusService per request over the shared singletons.

    The service holds no state of its own, so a fresh instance per request
    costs nothing and keeps overrides of any collaborator effective.
    """
    return StatusService(store, notifier, broadcaster)
