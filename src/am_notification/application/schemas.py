"""Pydantic schemas and cursor utilities for am_notification API."""

import base64
import json

from pydantic import BaseModel

from src.am_notification.domain.models import Notification


def cursor_encode(last_id: str) -> str:
    """Encode the last seen notification id into an opaque Base64 cursor string."""
    payload = json.dumps({"id": last_id})
    return base64.b64encode(payload.encode()).decode()


def cursor_decode(cursor: str | None) -> str | None:
    """Decode a cursor string back to the last seen id. Returns None on error."""
    if cursor is None:
        return None
    try:
        payload = json.loads(base64.b64decode(cursor.encode()).decode())
        return str(payload["id"])
    except Exception:
        return None


class NotificationItem(BaseModel):
    id: str
    auction_id: str | None
    type: str
    message: str
    read: bool
    created_at: str | None

    @classmethod
    def from_domain(cls, n: Notification) -> "NotificationItem":
        return cls(
            id=n.id,
            auction_id=n.auction_id,
            type=n.type,
            message=n.message,
            read=n.read,
            created_at=n.created_at.isoformat() if n.created_at else None,
        )


class NotificationListResponse(BaseModel):
    items: list[NotificationItem]
    unread_count: int
    next_cursor: str | None
    has_more: bool


class UnreadCountResponse(BaseModel):
    unread_count: int


class MarkAllReadResponse(BaseModel):
    updated: int
