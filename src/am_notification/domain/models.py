"""Notification domain models — pure dataclasses, no SQLAlchemy dependency."""
from dataclasses import dataclass
from datetime import datetime


@dataclass
class Notification:
    id: str
    user_id: str
    auction_id: str | None
    type: str  # NotificationType value
    message: str
    read: bool
    dedup_key: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class NotificationDraft:
    """A notification derived from a domain event, not yet persisted."""

    user_id: str
    auction_id: str | None
    type: str
    message: str
    dedup_key: str
