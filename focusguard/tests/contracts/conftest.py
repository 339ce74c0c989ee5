"""Fixtures for contract tests — one parameterized fixture per hook interface.

Each fixture yields a fresh implementation instance: the in-memory stub
("stub") and the SQLAlchemy store over in-memory SQLite ("sqlite"). A new
backend (e.g. Postgres) adds a param value and an elif branch.

To test a new implementation against the contracts:
    1. Add your param string (e.g., "postgres") to the params list.
    2. Add an elif branch that yields your implementation instance.
    3. Run: python -m pytest focusguard/tests/contracts/ -v
    All tests should pass. If any fail, your implementation doesn't satisfy
    the contract — read the failing test's docstring for what's expected.

Uses @pytest_asyncio.fixture (not @pytest.fixture) for async fixture support
in strict mode.
"""

import pytest_asyncio

from focusguard.hooks.database import InMemoryStatusStore
from focusguard.hooks.sql import SqlStatusStore

CONTRACT_STUDENT = "student-contract-1"
OTHER_STUDENT = "student-contract-2"


# ---------------------------------------------------------------------------
# Interface fixtures (parameterized over implementations)
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture(params=["stub", "sqlite"])
async def status_store(request):
    """Yields an empty StatusStore implementation."""
    if request.param == "stub":
        yield InMemoryStatusStore()
    elif request.param == "sqlite":
        store = SqlStatusStore("sqlite://")
        store.init_schema()
        yield store
        store.dispose()


# ---------------------------------------------------------------------------
# Helper fixtures (shared test data)
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def seeded_store(status_store):
    """The status_store fixture with two ``normal`` students inserted."""
    await status_store.upsert_student(CONTRACT_STUDENT, "Contract Student", "c1@example.com")
    await status_store.upsert_student(OTHER_STUDENT, "Other Student", "c2@example.com")
    return status_store
