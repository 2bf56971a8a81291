"""In-process registry of live WebSocket sessions.

Pushes are best effort: the database stays the source of truth and clients
rebuild state from the REST endpoints after a reconnect.
"""

from __future__ import annotations

from collections import defaultdict
from typing import Any

import structlog
from fastapi import WebSocket
from starlette.websockets import WebSocketDisconnect

logger = structlog.get_logger(__name__)

EVENT_NEW_MESSAGE = "receive_message"
EVENT_NEW_MATCH = "new_match"
EVENT_UNMATCHED = "unmatched"
EVENT_MESSAGES_READ = "messages_read"


class ConnectionManager:
    def __init__(self) -> None:
        self._connections: dict[int, set[WebSocket]] = defaultdict(set)

    async def connect(self, user_id: int, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections[user_id].add(websocket)
        logger.info("realtime_connected", user_id=user_id)

    def disconnect(self, user_id: int, websocket: WebSocket) -> None:
        sockets = self._connections.get(user_id)
        if not sockets:
            return
        sockets.discard(websocket)
        if not sockets:
            del self._connections[user_id]
        logger.info("realtime_disconnected", user_id=user_id)

    def is_connected(self, user_id: int) -> bool:
        return bool(self._connections.get(user_id))

    async def deliver(self, user_id: int, event: str, data: dict[str, Any]) -> int:
        """Send ``event`` to every open socket of ``user_id``; return how many got it."""
        delivered = 0
        for websocket in list(self._connections.get(user_id, ())):
            try:
                await websocket.send_json({"event": event, "data": data})
            except (WebSocketDisconnect, RuntimeError):
                logger.warning("realtime_delivery_failed", user_id=user_id, event_name=event)
                self.disconnect(user_id, websocket)
                continue
            delivered += 1
        if delivered:
            logger.debug("realtime_delivered", user_id=user_id, event_name=event)
        return delivered


manager = ConnectionManager()
