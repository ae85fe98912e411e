# =============================================================================
# core/services/notification_service.py - In-App Notifications
# =============================================================================
# Handles notification CRUD, read state and realtime fan-out.
#
# - Direct notifications carry recipient_id and are marked read in place.
# - Broadcasts (recipient_id NULL) go to every parent; each reader's read
#   state is a row in notification_reads.
# - Every insert publishes a notification_created event so connected
#   clients re-fetch.
# =============================================================================

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from lib.supabase_client import SupabaseClient
from lib.utils import normalize_uuid, parse_datetime, utc_now
from app.exceptions import NotificationNotFoundError
from app.websocket.broadcast import publish_notification_created

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 50


class NotificationService:
    """
    Service for notification operations.

    Other services call `notify` for their side-effect notifications; it
    never raises.
    """

    @staticmethod
    def list_notifications(
        profile_id: str | UUID,
        include_broadcasts: bool = True,
        unread_only: bool = False,
        limit: int = DEFAULT_LIMIT,
        now: datetime | None = None,
    ) -> list[dict[str, Any]]:
        """
        List a user's notifications, newest first.

        Args:
            profile_id: The reader's profile id
            include_broadcasts: Include recipient-less broadcasts (parents)
            unread_only: Drop notifications already read
            limit: Maximum rows fetched
            now: Reference time for expiry (defaults to now)

        Returns:
            Notification dicts. Broadcasts get read_at from notification_reads.
        """
        client = SupabaseClient.get_client()
        profile_id_str = normalize_uuid(profile_id)
        now = now or utc_now()

        try:
            query = client.table("notifications").select("*")
            if include_broadcasts:
                query = query.or_(f"recipient_id.eq.{profile_id_str},recipient_id.is.null")
            else:
                query = query.eq("recipient_id", profile_id_str)
            response = query.order("created_at", desc=True).limit(limit).execute()
            rows = response.data or []

        except Exception as e:
            logger.error(f"Failed to list notifications for {profile_id_str}: {e}")
            raise

        rows = [
            r for r in rows
            if not r.get("expires_at") or parse_datetime(r["expires_at"]) > now
        ]

        broadcast_ids = [r["id"] for r in rows if not r.get("recipient_id")]
        if broadcast_ids:
            reads = NotificationService._broadcast_reads(profile_id_str, broadcast_ids)
            for row in rows:
                if not row.get("recipient_id"):
                    row["read_at"] = reads.get(row["id"])

        if unread_only:
            rows = [r for r in rows if not r.get("read_at")]

        logger.debug(f"Listed {len(rows)} notifications for {profile_id_str}")
        return rows

    @staticmethod
    def _broadcast_reads(profile_id: str, notification_ids: list[str]) -> dict[str, str]:
        """notification_id -> read_at for the broadcasts this user has read."""
        client = SupabaseClient.get_client()

        try:
            response = (
                client.table("notification_reads")
                .select("notification_id, read_at")
                .eq("user_id", profile_id)
                .in_("notification_id", notification_ids)
                .execute()
            )
            return {r["notification_id"]: r["read_at"] for r in response.data or []}

        except Exception as e:
            logger.error(f"Failed to fetch broadcast read state: {e}")
            raise

    @staticmethod
    def unread_count(profile_id: str | UUID, include_broadcasts: bool = True) -> int:
        """Number of unread, unexpired notifications."""
        return len(NotificationService.list_notifications(
            profile_id,
            include_broadcasts=include_broadcasts,
            unread_only=True,
            limit=500,
        ))

    @staticmethod
    def get_notification(
        notification_id: str | UUID,
        profile_id: str | UUID | None = None,
    ) -> dict[str, Any]:
        """
        Get a notification visible to the user.

        Raises:
            NotificationNotFoundError: If missing or addressed to someone else
        """
        row = SupabaseClient.fetch_row("notifications", notification_id)
        if not row:
            raise NotificationNotFoundError(str(notification_id))

        recipient = row.get("recipient_id")
        if profile_id and recipient and str(recipient) != str(profile_id):
            raise NotificationNotFoundError(str(notification_id))

        return row

    @staticmethod
    def mark_read(notification_id: str | UUID, profile_id: str | UUID) -> dict[str, Any]:
        """
        Mark one notification read for the user.

        Direct notifications get read_at set; broadcasts get a
        notification_reads row (upserted, so repeating is harmless).
        """
        row = NotificationService.get_notification(notification_id, profile_id)
        read_at = utc_now().isoformat()

        if row.get("recipient_id"):
            if not row.get("read_at"):
                row = SupabaseClient.update_row("notifications", row["id"], {"read_at": read_at}) or row
            return row

        client = SupabaseClient.get_client()
        try:
            client.table("notification_reads").upsert(
                {
                    "notification_id": row["id"],
                    "user_id": normalize_uuid(profile_id),
                    "read_at": read_at,
                },
                on_conflict="notification_id,user_id",
            ).execute()

        except Exception as e:
            logger.error(f"Failed to mark broadcast {row['id']} read: {e}")
            raise

        row["read_at"] = read_at
        return row

    @staticmethod
    def mark_all_read(profile_id: str | UUID, include_broadcasts: bool = True) -> int:
        """
        Mark every unread notification read.

        Returns:
            Number of notifications marked
        """
        unread = NotificationService.list_notifications(
            profile_id,
            include_broadcasts=include_broadcasts,
            unread_only=True,
            limit=500,
        )
        if not unread:
            return 0

        client = SupabaseClient.get_client()
        profile_id_str = normalize_uuid(profile_id)
        read_at = utc_now().isoformat()
        direct_ids = [n["id"] for n in unread if n.get("recipient_id")]
        broadcast_ids = [n["id"] for n in unread if not n.get("recipient_id")]

        try:
            if direct_ids:
                (
                    client.table("notifications")
                    .update({"read_at": read_at})
                    .in_("id", direct_ids)
                    .execute()
                )
            if broadcast_ids:
                client.table("notification_reads").upsert(
                    [
                        {"notification_id": n_id, "user_id": profile_id_str, "read_at": read_at}
                        for n_id in broadcast_ids
                    ],
                    on_conflict="notification_id,user_id",
                ).execute()

        except Exception as e:
            logger.error(f"Failed to mark notifications read for {profile_id_str}: {e}")
            raise

        logger.info(f"Marked {len(unread)} notifications read for {profile_id_str}")
        return len(unread)

    @staticmethod
    def create_notification(
        recipient_id: str | UUID | None,
        notification_type: str,
        title: str,
        message: str,
        priority: str = "normal",
        data: dict[str, Any] | None = None,
        sender_id: str | UUID | None = None,
        action_url: str | None = None,
        expires_at: datetime | None = None,
    ) -> dict[str, Any]:
        """
        Insert a notification and publish a realtime event.

        Args:
            recipient_id: Profile id, or None to broadcast to all parents

        Returns:
            The inserted notification
        """
        row = SupabaseClient.insert_row("notifications", {
            "recipient_id": normalize_uuid(recipient_id) if recipient_id else None,
            "sender_id": normalize_uuid(sender_id) if sender_id else None,
            "type": notification_type,
            "priority": priority,
            "title": title,
            "message": message,
            "data": data or {},
            "action_url": action_url,
            "expires_at": expires_at.isoformat() if expires_at else None,
        })

        logger.info(f"Created {notification_type} notification {row['id']} for {recipient_id or 'all parents'}")
        publish_notification_created(row)
        return row

    @staticmethod
    def notify(
        recipient_id: str | UUID | None,
        notification_type: str,
        title: str,
        message: str,
        **kwargs: Any,
    ) -> dict[str, Any] | None:
        """create_notification for side effects: failures are logged, not raised."""
        try:
            return NotificationService.create_notification(
                recipient_id, notification_type, title, message, **kwargs
            )
        except Exception as e:
            logger.warning(f"Could not create {notification_type} notification for {recipient_id}: {e}")
            return None

    @staticmethod
    def tutor_recipient_id(parent: dict[str, Any] | None) -> str | None:
        """Profile id of the tutor a parent's requests go to."""
        if parent and parent.get("tutor_id"):
            return str(parent["tutor_id"])
        tutor = SupabaseClient.fetch_tutor()
        return str(tutor["id"]) if tutor else None

    @staticmethod
    def send_announcement(
        sender_id: str | UUID,
        title: str,
        message: str,
        priority: str = "normal",
        expires_at: datetime | None = None,
    ) -> dict[str, Any]:
        """Broadcast an announcement to every parent."""
        return NotificationService.create_notification(
            recipient_id=None,
            notification_type="announcement",
            title=title,
            message=message,
            priority=priority,
            sender_id=sender_id,
            expires_at=expires_at,
        )

    @staticmethod
    def delete_notification(notification_id: str | UUID) -> None:
        NotificationService.get_notification(notification_id)
        SupabaseClient.delete_row("notifications", notification_id)
        logger.info(f"Deleted notification {notification_id}")
