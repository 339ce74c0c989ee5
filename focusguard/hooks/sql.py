"""SQL status store — relational StatusStore backed by SQLAlchemy Core.

Works against any SQLAlchemy URL. The three tables match the production
schema: ``students`` (text primary key), ``daily_logs`` and ``interventions``
(integer primary keys, foreign keys to students).

SQLAlchemy's engine is synchronous; each operation runs in a worker thread via
asyncio.to_thread so the event loop never blocks on the database. Each
operation runs inside its own transaction.

Tier 2 service module: imports from focusguard.hooks.interfaces (Tier 1),
focusguard.schemas (Tier 1) and focusguard.errors (Tier 1).

Usage:
    from focusguard.hooks.sql import SqlStatusStore

    store = SqlStatusStore("sqlite:///focusguard.db")
    store.init_schema(seed=True)
"""

import asyncio
import logging
from collections.abc import Callable, Mapping
from typing import Any, TypeVar

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    insert,
    select,
    update,
)
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import StaticPool

from focusguard.errors import StorageError
from focusguard.hooks.interfaces import StatusStore
from focusguard.schemas import (
    DailyLog,
    Intervention,
    Student,
    StudentStatus,
    utcnow,
)

logger = logging.getLogger("focusguard.store")

T = TypeVar("T")

# Demo rows created by init_schema(seed=True). Re-seeding refreshes name/email.
DEMO_STUDENTS: tuple[tuple[str, str, str], ...] = (
    ("student_123", "Test Student", "student@example.com"),
    ("student-001", "Legacy Student", "legacy.student@example.com"),
    ("student 123", "Requested Student", "student.123@example.com"),
)

metadata = MetaData()

students = Table(
    "students",
    metadata,
    Column("id", Text, primary_key=True),
    Column("name", Text, nullable=False),
    Column("email", Text, nullable=False),
    Column("status", String(32), nullable=False, default="normal"),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

daily_logs = Table(
    "daily_logs",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("student_id", Text, ForeignKey("students.id"), nullable=False),
    Column("quiz_score", Integer, nullable=False),
    Column("focus_minutes", Integer, nullable=False),
    Column("status", Text, nullable=False),
    Column("created_at", DateTime(timezone=True), nullable=False),
)

interventions = Table(
    "interventions",
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("student_id", Text, ForeignKey("students.id"), nullable=False),
    Column("task_description", Text, nullable=False),
    Column("status", String(16), nullable=False, default="pending"),
    Column("assigned_at", DateTime(timezone=True), nullable=False),
    Column("completed_at", DateTime(timezone=True), nullable=True),
)


def _make_engine(database_url: str) -> Engine:
    """Creates an engine; in-memory SQLite shares one connection across threads."""
    if database_url == "sqlite://" or database_url.endswith(":memory:"):
        return create_engine(
            database_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    if database_url.startswith("sqlite"):
        return create_engine(database_url, connect_args={"check_same_thread": False})
    return create_engine(database_url, pool_pre_ping=True)


def _student(row: Mapping[str, Any]) -> Student:
    return Student(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        status=row["status"],
        created_at=row["created_at"],
        updated_at=row["updated_at"],
    )


def _daily_log(row: Mapping[str, Any]) -> DailyLog:
    return DailyLog(
        id=row["id"],
        student_id=row["student_id"],
        quiz_score=row["quiz_score"],
        focus_minutes=row["focus_minutes"],
        status_label=row["status"],
        created_at=row["created_at"],
    )


def _intervention(row: Mapping[str, Any]) -> Intervention:
    return Intervention(
        id=row["id"],
        student_id=row["student_id"],
        task_description=row["task_description"],
        status=row["status"],
        assigned_at=row["assigned_at"],
        completed_at=row["completed_at"],
    )


class SqlStatusStore(StatusStore):
    """StatusStore over a SQLAlchemy engine.

    Args:
        database_url: Any SQLAlchemy URL.
        engine: Pre-built engine (overrides database_url; tests use this).
    """

    def __init__(self, database_url: str = "sqlite://", engine: Engine | None = None) -> None:
        self._engine = engine if engine is not None else _make_engine(database_url)

    # -- Schema ------------------------------------------------------------

    def init_schema(self, seed: bool = False) -> None:
        """Creates missing tables and optionally seeds the demo students.

        Runs in one transaction: either every table (and seed row) exists
        afterward or nothing changed.

        Raises:
            StorageError: If the database cannot be reached or migrated.
        """
        try:
            with self._engine.begin() as conn:
                metadata.create_all(conn)
                if seed:
                    for student_id, name, email in DEMO_STUDENTS:
                        self._upsert_student(conn, student_id, name, email)
        except SQLAlchemyError as exc:
            logger.error("Database initialization failed: %s", exc)
            raise StorageError("Database initialization failed") from exc
        logger.info("Database schema ready (seeded=%s)", seed)

    def dispose(self) -> None:
        """Closes pooled connections."""
        self._engine.dispose()

    # -- Plumbing ----------------------------------------------------------

    async def _run(self, operation: Callable[[Connection], T]) -> T:
        """Runs operation in a worker thread inside its own transaction."""

        def _call() -> T:
            with self._engine.begin() as conn:
                return operation(conn)

        try:
            return await asyncio.to_thread(_call)
        except SQLAlchemyError as exc:
            logger.error("Storage operation failed: %s", exc)
            raise StorageError("Database error") from exc

    # -- Students ----------------------------------------------------------

    async def get_student(self, student_id: str) -> Student | None:
        def _op(conn: Connection) -> Student | None:
            row = conn.execute(
                select(students).where(students.c.id == student_id)
            ).mappings().first()
            return _student(row) if row else None

        return await self._run(_op)

    @staticmethod
    def _upsert_student(conn: Connection, student_id: str, name: str, email: str) -> Student:
        row = conn.execute(
            select(students).where(students.c.id == student_id)
        ).mappings().first()
        now = utcnow()
        if row is None:
            conn.execute(
                insert(students).values(
                    id=student_id,
                    name=name,
                    email=email,
                    status="normal",
                    created_at=now,
                    updated_at=now,
                )
            )
        else:
            conn.execute(
                update(students)
                .where(students.c.id == student_id)
                .values(name=name, email=email)
            )
        stored = conn.execute(
            select(students).where(students.c.id == student_id)
        ).mappings().one()
        return _student(stored)

    async def upsert_student(self, student_id: str, name: str, email: str) -> Student:
        return await self._run(
            lambda conn: self._upsert_student(conn, student_id, name, email)
        )

    async def set_student_status(
        self, student_id: str, status: StudentStatus
    ) -> Student | None:
        def _op(conn: Connection) -> Student | None:
            result = conn.execute(
                update(students)
                .where(students.c.id == student_id)
                .values(status=status, updated_at=utcnow())
            )
            if not result.rowcount:
                return None
            row = conn.execute(
                select(students).where(students.c.id == student_id)
            ).mappings().one()
            return _student(row)

        return await self._run(_op)

    # -- Daily logs --------------------------------------------------------

    async def append_daily_log(
        self,
        student_id: str,
        quiz_score: int,
        focus_minutes: int,
        status_label: str,
    ) -> DailyLog:
        values: dict[str, Any] = {
            "student_id": student_id,
            "quiz_score": quiz_score,
            "focus_minutes": focus_minutes,
            "status": status_label,
            "created_at": utcnow(),
        }

        def _op(conn: Connection) -> DailyLog:
            result = conn.execute(insert(daily_logs).values(**values))
            return _daily_log({"id": result.inserted_primary_key[0], **values})

        return await self._run(_op)

    async def list_daily_logs(self, student_id: str) -> list[DailyLog]:
        def _op(conn: Connection) -> list[DailyLog]:
            rows = conn.execute(
                select(daily_logs)
                .where(daily_logs.c.student_id == student_id)
                .order_by(daily_logs.c.id)
            ).mappings().all()
            return [_daily_log(row) for row in rows]

        return await self._run(_op)

    # -- Interventions -----------------------------------------------------

    async def create_intervention(
        self, student_id: str, task_description: str
    ) -> Intervention:
        values: dict[str, Any] = {
            "student_id": student_id,
            "task_description": task_description,
            "status": "pending",
            "assigned_at": utcnow(),
            "completed_at": None,
        }

        def _op(conn: Connection) -> Intervention:
            result = conn.execute(insert(interventions).values(**values))
            return _intervention({"id": result.inserted_primary_key[0], **values})

        return await self._run(_op)

    async def complete_intervention(
        self, intervention_id: int, student_id: str
    ) -> bool:
        def _op(conn: Connection) -> bool:
            result = conn.execute(
                update(interventions)
                .where(
                    interventions.c.id == intervention_id,
                    interventions.c.student_id == student_id,
                    interventions.c.status == "pending",
                )
                .values(status="completed", completed_at=utcnow())
            )
            return result.rowcount == 1

        return await self._run(_op)

    async def get_pending_intervention(self, student_id: str) -> Intervention | None:
        def _op(conn: Connection) -> Intervention | None:
            row = conn.execute(
                select(interventions)
                .where(
                    interventions.c.student_id == student_id,
                    interventions.c.status == "pending",
                )
                .order_by(interventions.c.assigned_at.desc(), interventions.c.id.desc())
                .limit(1)
            ).mappings().first()
            return _intervention(row) if row else None

        return await self._run(_op)
