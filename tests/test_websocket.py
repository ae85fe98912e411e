# =============================================================================
# tests/test_websocket.py - Socket Registry and Event Relay
# =============================================================================
# Uses fake sockets; Redis is patched out of publish_event.
#
# Run with: poetry run pytest tests/test_websocket.py -v
# =============================================================================

import asyncio
import json
from unittest.mock import AsyncMock, MagicMock, patch

import redis

from app.websocket import broadcast
from app.websocket.manager import ConnectionManager


def fake_socket(fails: bool = False):
    socket = MagicMock()
    socket.accept = AsyncMock()
    socket.send_json = AsyncMock(side_effect=RuntimeError("closed") if fails else None)
    return socket


class TestConnectionManager:

    def test_broadcast_reaches_every_device(self):
        manager = ConnectionManager()
        phone, laptop = fake_socket(), fake_socket()

        async def scenario():
            await manager.connect("p1", phone)
            await manager.connect("p1", laptop)
            return await manager.broadcast("p1", {"type": "notification_created"})

        assert asyncio.run(scenario()) == 2
        assert manager.get_connection_count("p1") == 2

    def test_dead_socket_dropped(self):
        manager = ConnectionManager()
        alive, dead = fake_socket(), fake_socket(fails=True)

        async def scenario():
            await manager.connect("p1", alive)
            await manager.connect("p1", dead)
            return await manager.broadcast("p1", {"type": "x"})

        assert asyncio.run(scenario()) == 1
        assert manager.get_connection_count() == 1

    def test_disconnect_last_socket_forgets_profile(self):
        manager = ConnectionManager()
        socket = fake_socket()
        asyncio.run(manager.connect("p1", socket))
        manager.disconnect("p1", socket)
        assert manager.get_active_profiles() == []

    def test_unknown_profile(self):
        assert asyncio.run(ConnectionManager().broadcast("nobody", {})) == 0


class TestRelay:

    def test_addressed_event_goes_to_recipient(self):
        manager = ConnectionManager()
        mine, theirs = fake_socket(), fake_socket()

        async def scenario():
            await manager.connect("p1", mine)
            await manager.connect("p2", theirs)
            return await broadcast.relay_event({"recipient_id": "p1", "type": "notification_created"})

        with patch.object(broadcast, "websocket_manager", manager):
            sent = asyncio.run(scenario())

        assert sent == 1
        mine.send_json.assert_awaited_once_with({"type": "notification_created"})
        theirs.send_json.assert_not_awaited()

    def test_broadcast_event_goes_to_everyone(self):
        manager = ConnectionManager()

        async def scenario():
            await manager.connect("p1", fake_socket())
            await manager.connect("p2", fake_socket())
            return await broadcast.relay_event({"recipient_id": None, "type": "notification_created"})

        with patch.object(broadcast, "websocket_manager", manager):
            assert asyncio.run(scenario()) == 2


class TestPublish:

    def test_notification_event_payload(self):
        with patch("app.websocket.broadcast.redis.from_url") as from_url:
            ok = broadcast.publish_notification_created({
                "id": "n1",
                "recipient_id": "p1",
                "type": "payment_due",
                "priority": "high",
                "title": "Payment past due",
            })

        assert ok is True
        channel, message = from_url.return_value.publish.call_args.args
        assert channel == broadcast.WEBSOCKET_CHANNEL
        assert json.loads(message) == {
            "recipient_id": "p1",
            "type": "notification_created",
            "notification_id": "n1",
            "notification_type": "payment_due",
            "priority": "high",
            "title": "Payment past due",
        }

    def test_redis_down_is_reported_not_raised(self):
        with patch("app.websocket.broadcast.redis.from_url") as from_url:
            from_url.return_value.publish.side_effect = redis.ConnectionError("refused")
            assert broadcast.publish_event(None, "notification_created", {}) is False


class TestRelayLoop:

    def test_bad_payload_is_dropped(self):
        with patch.object(broadcast, "websocket_manager", ConnectionManager()):
            assert asyncio.run(broadcast.relay_message(b'["not", "an", "object"]')) == 0
            assert asyncio.run(broadcast.relay_message(b"{not json")) == 0

    def test_relay_survives_bad_payload(self):
        manager = ConnectionManager()
        socket = fake_socket()
        messages = [
            {"type": "subscribe", "data": 1},
            {"type": "message", "data": b"[1, 2]"},
            {"type": "message", "data": json.dumps({"recipient_id": "p1", "type": "notification_created"})},
        ]

        async def listen():
            for message in messages:
                yield message

        pubsub = MagicMock()
        pubsub.subscribe = AsyncMock()
        pubsub.aclose = AsyncMock()
        pubsub.listen = listen
        client = MagicMock()
        client.pubsub.return_value = pubsub
        client.aclose = AsyncMock()

        async def scenario():
            await manager.connect("p1", socket)
            await broadcast.relay_events(asyncio.Event())

        with patch.object(broadcast, "websocket_manager", manager), \
             patch("app.websocket.broadcast.aioredis.from_url", return_value=client):
            asyncio.run(scenario())

        socket.send_json.assert_awaited_once_with({"type": "notification_created"})
        pubsub.aclose.assert_awaited_once()
