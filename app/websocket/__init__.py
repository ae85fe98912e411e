# =============================================================================
# app/websocket/ - Live Notification Updates
# =============================================================================
# - manager.py: open sockets per profile
# - broadcast.py: Redis pub/sub publish + relay into the manager
# - routes.py: /ws/notifications endpoint
# =============================================================================

from app.websocket.broadcast import (
    WEBSOCKET_CHANNEL,
    publish_event,
    publish_notification_created,
    relay_events,
)
from app.websocket.manager import websocket_manager

__all__ = [
    "WEBSOCKET_CHANNEL",
    "publish_event",
    "publish_notification_created",
    "relay_events",
    "websocket_manager",
]
