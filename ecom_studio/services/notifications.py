"""Notifications - header badge for users, broadcast tools for admins."""

import logging
from datetime import datetime, timedelta, timezone

from ..clients.supabase import SupabaseClient, SupabaseError
from ..errors import ValidationError
from ..models import Notification
from ..utils import parse_timestamp, utc_now_iso

logger = logging.getLogger(__name__)

MAX_MESSAGE_CHARS = 150
# Rows with the same message sent within this window are one broadcast
BROADCAST_WINDOW = timedelta(seconds=60)
# A read notification stays visible in the header this long
READ_VISIBLE_FOR = timedelta(hours=24)


def time_ago(created_at: datetime, now: datetime | None = None) -> str:
    """Relative time label. Example: 90 minutes ago -> "1 hour ago"."""
    now = now or datetime.now(timezone.utc)
    minutes = int((now - created_at).total_seconds() // 60)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes} minute{'s' if minutes > 1 else ''} ago"
    hours = minutes // 60
    if hours < 24:
        return f"{hours} hour{'s' if hours > 1 else ''} ago"
    days = hours // 24
    return f"{days} day{'s' if days > 1 else ''} ago"


class NotificationService:
    """Per-user latest notification and admin broadcasts."""

    def __init__(self, db: SupabaseClient, user_id: str | None = None):
        self.db = db
        self.user_id = user_id

    def latest_for_user(self, now: datetime | None = None) -> Notification | None:
        """Newest notification, or None. Read ones disappear 24h after reading."""
        try:
            row = self.db.select_one(
                "notifications",
                filters={"user_id": self.user_id},
                order="created_at",
                desc=True,
            )
        except SupabaseError as e:
            if e.code == "PGRST116":
                return None
            raise

        notification = Notification.from_row(row)
        if notification.is_read and notification.read_at:
            now = now or datetime.now(timezone.utc)
            if now - parse_timestamp(notification.read_at) > READ_VISIBLE_FOR:
                return None
        return notification

    def has_unread(self) -> bool:
        latest = self.latest_for_user()
        return latest is not None and not latest.is_read

    def mark_latest_read(self) -> Notification | None:
        rows = self.db.select(
            "notifications",
            filters={"user_id": self.user_id, "is_read": False},
            order="created_at",
            desc=True,
            limit=1,
        )
        if not rows:
            return None

        notification = Notification.from_row(rows[0])
        notification.is_read = True
        notification.read_at = utc_now_iso()
        self.db.update(
            "notifications",
            {"is_read": True, "read_at": notification.read_at},
            {"id": notification.id},
        )
        return notification

    def broadcast(self, message: str) -> int:
        """Send `message` to every user. Returns the number of recipients."""
        message = (message or "").strip()
        if not message:
            raise ValidationError("Notification message is empty")
        if len(message) > MAX_MESSAGE_CHARS:
            raise ValidationError(f"Message is too long. Maximum {MAX_MESSAGE_CHARS} characters allowed.")

        users = self.db.select("profiles", "id")
        if not users:
            raise ValidationError("No users found")

        self.db.insert(
            "notifications",
            [{"user_id": u["id"], "message": message, "is_read": False} for u in users],
        )
        logger.info(f"Broadcast notification to {len(users)} users")
        return len(users)

    def list_recent(self, limit: int = 20) -> list[Notification]:
        """Newest 100 rows collapsed into broadcasts (same message within 60s)."""
        rows = self.db.select(
            "notifications",
            "id,message,created_at,user_id",
            order="created_at",
            desc=True,
            limit=100,
        )
        unique: list[Notification] = []
        for row in rows:
            current = Notification.from_row(row)
            created = parse_timestamp(current.created_at)
            if not any(
                n.message == current.message
                and abs(parse_timestamp(n.created_at) - created) < BROADCAST_WINDOW
                for n in unique
            ):
                unique.append(current)
        return unique[:limit] if limit else unique

    def delete(self, notification: Notification) -> int:
        """Delete a broadcast for all users: same message within +-60s. Returns rows removed."""
        created = parse_timestamp(notification.created_at)
        deleted = self.db.delete(
            "notifications",
            {
                "message": notification.message,
                "created_at": [
                    ("gte", (created - BROADCAST_WINDOW).isoformat()),
                    ("lte", (created + BROADCAST_WINDOW).isoformat()),
                ],
            },
        )
        logger.info(f"Deleted {len(deleted)} notification rows")
        return len(deleted)
