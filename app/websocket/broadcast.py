# =============================================================================
# app/websocket/broadcast.py - Redis Event Relay
# =============================================================================
# Notifications are created by API requests and by Celery tasks (reminders),
# so socket events travel through Redis pub/sub:
#
#   publish side (any process):  publish_notification_created(row)
#   relay side (API process):    relay_events(stop) -> websocket_manager
#
# Event payload:
#   {"recipient_id": "<profile id or null>", "type": "notification_created",
#    "notification_id": "...", "notification_type": "...", "priority": "...",
#    "title": "..."}
#
# recipient_id null means a broadcast notification for every parent. Events
# only say that something changed; clients re-fetch over HTTP.
# =============================================================================

import asyncio
import json
import logging
from typing import Any

import redis
import redis.asyncio as aioredis

from app.config import settings
from app.websocket.manager import websocket_manager

logger = logging.getLogger(__name__)

WEBSOCKET_CHANNEL = "tutordesk:websocket:events"


# =============================================================================
# Publishing
# =============================================================================

def publish_event(recipient_id: str | None, event_type: str, data: dict[str, Any]) -> bool:
    """
    Publish a socket event. Never raises; a Redis outage only costs the
    live update.
    """
    message = json.dumps({"recipient_id": recipient_id, "type": event_type, **data}, default=str)
    try:
        redis.from_url(settings.REDIS_URL).publish(WEBSOCKET_CHANNEL, message)
    except redis.RedisError as e:
        logger.error(f"Could not publish {event_type} for {recipient_id or 'all'}: {e}")
        return False

    logger.debug(f"Published {event_type} for {recipient_id or 'all'}")
    return True


def publish_notification_created(notification: dict[str, Any]) -> bool:
    recipient_id = notification.get("recipient_id")
    return publish_event(
        str(recipient_id) if recipient_id else None,
        "notification_created",
        {
            "notification_id": notification.get("id"),
            "notification_type": notification.get("type"),
            "priority": notification.get("priority"),
            "title": notification.get("title"),
        },
    )


# =============================================================================
# Relaying
# =============================================================================

async def relay_event(event: dict) -> int:
    """Deliver one published event to the matching sockets."""
    recipient_id = event.pop("recipient_id", None)
    if recipient_id:
        return await websocket_manager.broadcast(recipient_id, event)
    return await websocket_manager.broadcast_all(event)


async def relay_message(data: str | bytes) -> int:
    """Decode and relay one pub/sub payload; a bad payload is logged and dropped."""
    try:
        event = json.loads(data)
        sent = await relay_event(event)
    except json.JSONDecodeError as e:
        logger.warning(f"Skipping malformed event: {e}")
        return 0
    except Exception as e:
        logger.error(f"Failed to relay event: {e}")
        return 0

    logger.debug(f"Relayed {event.get('type')} to {sent} sockets")
    return sent


async def relay_events(stop: asyncio.Event) -> None:
    """
    Subscribe to the event channel and relay until `stop` is set or the
    task is cancelled. Runs for the lifetime of the API process.
    """
    client = aioredis.from_url(settings.REDIS_URL)
    pubsub = client.pubsub()
    logger.info(f"Relaying {WEBSOCKET_CHANNEL} to notification sockets")

    try:
        await pubsub.subscribe(WEBSOCKET_CHANNEL)
        async for message in pubsub.listen():
            if stop.is_set():
                break
            if message["type"] != "message":
                continue
            await relay_message(message["data"])

    except asyncio.CancelledError:
        logger.info("Event relay cancelled")
    except redis.RedisError as e:
        logger.error(f"Event relay stopped: {e}")
    finally:
        await pubsub.aclose()
        await client.aclose()
