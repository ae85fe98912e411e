# =============================================================================
# app/websocket/routes.py - Notification Socket Endpoint
# =============================================================================
# ws://host/ws/notifications?token={supabase access token}
#
# Server -> client:
#   {"type": "connected", "profile_id": "..."}
#   {"type": "notification_created", "notification_id": "...", ...}
# Client -> server:
#   "ping" -> "pong" (keepalive)
#
# Close codes: 4001 bad token, 4004 no profile, 4000 server error.
# =============================================================================

import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect
from jose import JWTError

from app.auth.dependencies import decode_token
from app.websocket.manager import websocket_manager
from lib.supabase_client import SupabaseClient, SupabaseClientError

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws/notifications")
async def notifications_websocket(
    websocket: WebSocket,
    token: str = Query(..., description="Supabase access token")
):
    """Live notification events for the caller's profile."""
    try:
        claims = decode_token(token)
    except JWTError as e:
        logger.warning(f"Socket rejected: {e}")
        await websocket.close(code=4001, reason="Invalid token")
        return

    try:
        profile = SupabaseClient.fetch_parent_by_user_id(claims.sub)
    except SupabaseClientError as e:
        logger.error(f"Socket profile lookup failed: {e.message}")
        await websocket.close(code=4000, reason="Server error")
        return

    if not profile:
        await websocket.close(code=4004, reason="Profile not found")
        return

    profile_id = str(profile["id"])
    await websocket_manager.connect(profile_id, websocket)

    try:
        await websocket.send_json({"type": "connected", "profile_id": profile_id})
        while True:
            if await websocket.receive_text() == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        logger.debug(f"Client left for {profile_id}")
    finally:
        websocket_manager.disconnect(profile_id, websocket)


@router.get("/ws/status")
async def websocket_status():
    """Open socket counts."""
    return {
        "total_connections": websocket_manager.get_connection_count(),
        "profile_count": len(websocket_manager.get_active_profiles()),
    }
