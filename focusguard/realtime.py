"""Realtime broadcaster — per-student publish/subscribe channels.

One logical channel per student id. Connections join a channel explicitly
(the client sends its student id after connecting) and leave every channel
implicitly when they disconnect.

Delivery is at-most-once with no replay and no backpressure. ``publish``
schedules one send per subscriber on the running loop and returns at once;
the caller never waits on delivery. A subscriber whose send fails is logged
and dropped from all channels.

The broadcaster knows nothing about payload meaning — the status service
decides what to send.

Exactly one instance per process, built in main.create_app() and handed to
its consumers through focusguard.api.deps.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Any

from starlette.websockets import WebSocket

from focusguard.hooks.interfaces import Subscriber

logger = logging.getLogger("focusguard.realtime")

STATUS_UPDATE_EVENT = "status_update"
JOIN_EVENT = "join_student"


def format_event(event: str, payload: dict[str, Any]) -> dict[str, Any]:
    """Wire shape of a pushed event: ``{"event": ..., "data": ...}``."""
    return {"event": event, "data": payload}


class WebSocketSubscriber(Subscriber):
    """Adapts a Starlette WebSocket to the Subscriber interface."""

    def __init__(self, websocket: WebSocket, subscriber_id: str) -> None:
        self._websocket = websocket
        self._subscriber_id = subscriber_id

    @property
    def subscriber_id(self) -> str:
        return self._subscriber_id

    async def send(self, event: str, payload: dict[str, Any]) -> None:
        await self._websocket.send_json(format_event(event, payload))


class Broadcaster:
    """Fan-out of opaque payloads to every subscriber of a student channel."""

    def __init__(self) -> None:
        self._channels: dict[str, dict[str, Subscriber]] = defaultdict(dict)
        self._pending: set[asyncio.Task[None]] = set()

    # -- Membership --------------------------------------------------------

    def join(self, student_id: str, subscriber: Subscriber) -> None:
        """Adds subscriber to the student's channel. Joining twice is a no-op."""
        self._channels[student_id][subscriber.subscriber_id] = subscriber
        logger.info("Subscriber %s joined channel %s", subscriber.subscriber_id, student_id)

    def leave(self, subscriber: Subscriber) -> None:
        """Removes subscriber from every channel it joined."""
        for student_id in list(self._channels):
            members = self._channels[student_id]
            if members.pop(subscriber.subscriber_id, None) is not None:
                logger.debug("Subscriber %s left channel %s", subscriber.subscriber_id, student_id)
            if not members:
                del self._channels[student_id]

    def subscriber_count(self, student_id: str) -> int:
        members = self._channels.get(student_id)
        return len(members) if members else 0

    # -- Publishing --------------------------------------------------------

    def publish(self, student_id: str, event: str, payload: dict[str, Any]) -> int:
        """Schedules delivery of one event to every subscriber of the channel.

        Must be called from inside a running event loop.

        Args:
            student_id: Channel to publish on.
            event: Event name (e.g. "status_update").
            payload: JSON-serialisable body. Not inspected.

        Returns:
            Number of deliveries scheduled (0 for an empty channel).
        """
        members = list(self._channels.get(student_id, {}).values())
        if not members:
            logger.debug("No subscribers on channel %s for %s", student_id, event)
            return 0

        loop = asyncio.get_running_loop()
        for subscriber in members:
            task = loop.create_task(self._deliver(subscriber, event, payload))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
        return len(members)

    async def _deliver(self, subscriber: Subscriber, event: str, payload: dict[str, Any]) -> None:
        try:
            await subscriber.send(event, payload)
        except Exception as exc:
            logger.warning(
                "Dropping subscriber %s after failed %s delivery: %s",
                subscriber.subscriber_id,
                event,
                exc,
            )
            self.leave(subscriber)

    async def drain(self) -> None:
        """Waits until every scheduled delivery has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
