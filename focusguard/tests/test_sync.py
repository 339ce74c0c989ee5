"""Tests for focusguard.client.sync — superseding fetches and polling.

Covers: latest fetch wins (stale results and errors discarded), error
callback for the current fetch, polling starts only for flagged statuses and
stops on ``normal``.

All tests use explicit @pytest.mark.asyncio per strict mode.
"""

import asyncio

import pytest

from focusguard.client.sync import StatusSync
from focusguard.schemas import StatusSnapshot, Student


def _snapshot(status: str) -> StatusSnapshot:
    return StatusSnapshot(student=Student(id="student_123", status=status))


class ScriptedFetcher:
    """Each call waits on its own future, resolved by the test."""

    def __init__(self) -> None:
        self.calls: list[asyncio.Future] = []

    async def __call__(self) -> StatusSnapshot:
        future = asyncio.get_running_loop().create_future()
        self.calls.append(future)
        return await future


class CountingFetcher:
    def __init__(self, status: str = "needs_intervention") -> None:
        self.status = status
        self.count = 0

    async def __call__(self) -> StatusSnapshot:
        self.count += 1
        return _snapshot(self.status)


# ---------------------------------------------------------------------------
# Supersede semantics
# ---------------------------------------------------------------------------


class TestSupersede:
    """Only the most recently issued fetch may apply its result."""

    @pytest.mark.asyncio
    async def test_late_result_from_older_fetch_is_discarded(self) -> None:
        fetcher = ScriptedFetcher()
        applied: list[str] = []
        sync = StatusSync(fetcher, on_result=lambda s: applied.append(s.student.status))

        first = asyncio.create_task(sync.fetch())
        await asyncio.sleep(0)
        second = asyncio.create_task(sync.fetch())
        await asyncio.sleep(0)

        fetcher.calls[1].set_result(_snapshot("remedial"))
        assert (await second).student.status == "remedial"

        fetcher.calls[0].set_result(_snapshot("normal"))
        assert await first is None

        assert applied == ["remedial"]

    @pytest.mark.asyncio
    async def test_error_from_older_fetch_is_discarded(self) -> None:
        fetcher = ScriptedFetcher()
        errors: list[Exception] = []
        applied: list[str] = []
        sync = StatusSync(
            fetcher,
            on_result=lambda s: applied.append(s.student.status),
            on_error=errors.append,
        )

        first = asyncio.create_task(sync.fetch())
        await asyncio.sleep(0)
        second = asyncio.create_task(sync.fetch())
        await asyncio.sleep(0)

        fetcher.calls[0].set_exception(ConnectionError("timeout"))
        fetcher.calls[1].set_result(_snapshot("normal"))
        await asyncio.gather(first, second)

        assert errors == []
        assert applied == ["normal"]

    @pytest.mark.asyncio
    async def test_supersede_discards_pending_fetch(self) -> None:
        fetcher = ScriptedFetcher()
        applied: list[str] = []
        sync = StatusSync(fetcher, on_result=lambda s: applied.append(s.student.status))

        pending = asyncio.create_task(sync.fetch())
        await asyncio.sleep(0)
        sync.supersede()
        fetcher.calls[0].set_result(_snapshot("normal"))

        assert await pending is None
        assert applied == []
        assert len(fetcher.calls) == 1

    @pytest.mark.asyncio
    async def test_current_error_reaches_callback(self) -> None:
        async def failing() -> StatusSnapshot:
            raise ConnectionError("offline")

        errors: list[Exception] = []
        sync = StatusSync(failing, on_result=lambda s: None, on_error=errors.append)

        assert await sync.fetch() is None
        assert len(errors) == 1
        assert isinstance(errors[0], ConnectionError)


# ---------------------------------------------------------------------------
# Polling
# ---------------------------------------------------------------------------


class TestPolling:
    """Poll while needs_intervention/remedial; stop on normal."""

    @pytest.mark.asyncio
    async def test_normal_does_not_poll(self) -> None:
        sync = StatusSync(CountingFetcher(), on_result=lambda s: None, poll_interval=0.01)
        sync.update_polling("normal")
        assert sync.polling is False

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["needs_intervention", "remedial"])
    async def test_flagged_status_polls(self, status: str) -> None:
        fetcher = CountingFetcher(status)
        sync = StatusSync(fetcher, on_result=lambda s: None, poll_interval=0.01)

        sync.update_polling(status)
        await asyncio.sleep(0.05)
        sync.stop_polling()

        assert fetcher.count >= 2

    @pytest.mark.asyncio
    async def test_update_polling_is_idempotent(self) -> None:
        sync = StatusSync(CountingFetcher(), on_result=lambda s: None, poll_interval=0.01)
        sync.update_polling("remedial")
        task = sync._poll_task
        sync.update_polling("needs_intervention")

        assert sync._poll_task is task
        sync.stop_polling()

    @pytest.mark.asyncio
    async def test_normal_result_stops_polling(self) -> None:
        fetcher = CountingFetcher("needs_intervention")
        sync: StatusSync

        def on_result(snapshot: StatusSnapshot) -> None:
            sync.update_polling(snapshot.student.status)

        sync = StatusSync(fetcher, on_result=on_result, poll_interval=0.01)
        sync.update_polling("needs_intervention")
        await asyncio.sleep(0.03)

        fetcher.status = "normal"
        await asyncio.sleep(0.05)
        count_after_normal = fetcher.count
        await asyncio.sleep(0.05)

        assert sync.polling is False
        assert fetcher.count == count_after_normal
