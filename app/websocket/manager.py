# =============================================================================
# app/websocket/manager.py - Notification Socket Registry
# =============================================================================
# Tracks open notification sockets per profile. A parent can be connected from
# several devices at once; each gets every event addressed to the profile.
# =============================================================================

import logging
from collections import defaultdict

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionManager:
    """profile_id -> open sockets."""

    def __init__(self):
        self.connections: dict[str, set[WebSocket]] = defaultdict(set)

    async def connect(self, profile_id: str, websocket: WebSocket) -> None:
        await websocket.accept()
        self.connections[profile_id].add(websocket)
        logger.info(f"Socket opened for {profile_id} ({self.get_connection_count()} open)")

    def disconnect(self, profile_id: str, websocket: WebSocket) -> None:
        sockets = self.connections.get(profile_id)
        if sockets is None:
            return
        sockets.discard(websocket)
        if not sockets:
            del self.connections[profile_id]
        logger.info(f"Socket closed for {profile_id} ({self.get_connection_count()} open)")

    async def broadcast(self, profile_id: str, message: dict) -> int:
        """
        Send an event to every socket of one profile.

        Sockets that fail to send are dropped.

        Returns:
            Number of sockets that received the event
        """
        delivered = 0
        for websocket in list(self.connections.get(profile_id, ())):
            try:
                await websocket.send_json(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping dead socket for {profile_id}: {e}")
                self.disconnect(profile_id, websocket)
        return delivered

    async def broadcast_all(self, message: dict) -> int:
        """Send an event to every connected profile (studio announcements)."""
        delivered = 0
        for profile_id in list(self.connections):
            delivered += await self.broadcast(profile_id, message)
        return delivered

    def get_connection_count(self, profile_id: str | None = None) -> int:
        if profile_id is not None:
            return len(self.connections.get(profile_id, ()))
        return sum(len(sockets) for sockets in self.connections.values())

    def get_active_profiles(self) -> list[str]:
        return list(self.connections)


websocket_manager = ConnectionManager()
