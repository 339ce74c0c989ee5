"""Status sync — superseding fetches plus polling while the student is flagged.

Two rules:
- Latest fetch wins. Every fetch takes a new generation number; a result (or
  error) arriving for an older generation is discarded, so a slow early
  response can never overwrite state set by a later one.
- Poll while flagged. While the local status is ``needs_intervention`` or
  ``remedial`` a background task fetches every poll interval; it stops as
  soon as the status is ``normal``.

The sync knows nothing about UI. Accepted results and errors go to the
callbacks supplied by the owner (the client controller).
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from focusguard.rules import POLL_INTERVAL_SECONDS, POLLING_STATUSES
from focusguard.schemas import StatusSnapshot

logger = logging.getLogger("focusguard.client.sync")

Fetcher = Callable[[], Awaitable[StatusSnapshot]]


class StatusSync:
    """Fetches the student's status with supersede semantics and polls on demand.

    Args:
        fetcher: Async callable returning the current StatusSnapshot.
        on_result: Called with each accepted (non-stale) snapshot.
        on_error: Called with the exception of a failed, non-stale fetch.
        poll_interval: Seconds between polls while flagged.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        on_result: Callable[[StatusSnapshot], None],
        on_error: Callable[[Exception], None] | None = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
    ) -> None:
        self._fetcher = fetcher
        self._on_result = on_result
        self._on_error = on_error
        self._poll_interval = poll_interval
        self._generation = 0
        self._poll_task: asyncio.Task[None] | None = None

    @property
    def polling(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    async def fetch(self) -> StatusSnapshot | None:
        """Issues one fetch, superseding any fetch still in flight.

        Returns:
            The snapshot if it was accepted, None if it failed or was
            superseded before it resolved.
        """
        self._generation += 1
        generation = self._generation
        try:
            snapshot = await self._fetcher()
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if generation != self._generation:
                logger.debug("Discarding error from superseded fetch %d", generation)
                return None
            logger.warning("Status fetch failed: %s", exc)
            if self._on_error is not None:
                self._on_error(exc)
            return None

        if generation != self._generation:
            logger.debug("Discarding superseded fetch %d", generation)
            return None
        self._on_result(snapshot)
        return snapshot

    def supersede(self) -> None:
        """Invalidates every fetch in flight without issuing a new one.

        Used when newer state arrives by another route (a realtime push).
        """
        self._generation += 1

    def update_polling(self, status: str) -> None:
        """Starts polling for a flagged status, stops it for ``normal``."""
        if status in POLLING_STATUSES:
            if not self.polling:
                self._poll_task = asyncio.get_running_loop().create_task(self._poll_loop())
                logger.debug("Polling started (status=%s)", status)
        else:
            self.stop_polling()

    def stop_polling(self) -> None:
        if self._poll_task is not None:
            if not self._poll_task.done():
                self._poll_task.cancel()
                logger.debug("Polling stopped")
            self._poll_task = None

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self._poll_interval)
            await self.fetch()
