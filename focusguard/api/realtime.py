"""Realtime WebSocket route — channel membership for status pushes.

Protocol (JSON text frames):
- client → server: ``{"event": "join_student", "student_id": "<id>"}``
- server → client: ``{"event": "status_update", "data": {"status": ..., "intervention"?: ...}}``

A connection may join several channels. Disconnecting leaves all of them.
Unknown or malformed client frames are logged and ignored; the socket stays
open.

Tier 3 orchestration module: imports from deps (Tier 2), realtime (Tier 2).
"""

import json
import logging
from uuid import uuid4

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from focusguard.api.deps import get_broadcaster
from focusguard.realtime import JOIN_EVENT, Broadcaster, WebSocketSubscriber

logger = logging.getLogger("focusguard.realtime")

router = APIRouter()


@router.websocket("/ws")
async def realtime_socket(
    websocket: WebSocket,
    broadcaster: Broadcaster = Depends(get_broadcaster),
) -> None:
    """Accepts a connection and serves join requests until it closes."""
    await websocket.accept()
    subscriber = WebSocketSubscriber(websocket, subscriber_id=uuid4().hex)
    logger.info("Client connected: %s", subscriber.subscriber_id)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except ValueError:
                logger.debug("Ignoring non-JSON frame from %s", subscriber.subscriber_id)
                continue
            if not isinstance(message, dict) or message.get("event") != JOIN_EVENT:
                logger.debug("Ignoring frame from %s: %r", subscriber.subscriber_id, message)
                continue
            student_id = message.get("student_id")
            if not isinstance(student_id, str) or not student_id:
                logger.debug("Join without student_id from %s", subscriber.subscriber_id)
                continue
            broadcaster.join(student_id, subscriber)
    except WebSocketDisconnect:
        logger.info("Client disconnected: %s", subscriber.subscriber_id)
    finally:
        broadcaster.leave(subscriber)
