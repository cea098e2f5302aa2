from datetime import datetime
from enum import StrEnum

from pydantic import Field

from refkeeper.core.store import DocumentModel
from refkeeper.utils import now

NOTIFICATIONS = "notifications"
REF_TEXT_LIMIT = 60


class NotificationType(StrEnum):
    REPLY = "reply"
    NEW_JOURNAL = "new_journal"
    NEW_RESOLUTION = "new_resolution"
    FOLLOW = "follow"


class Notification(DocumentModel):
    """Derived record telling a user about someone else's activity.

    Never authoritative: deleting notifications cannot break any other record.
    """

    recipient_uid: str
    sender_uid: str
    sender_username: str = "Anonymous"
    sender_photo_url: str | None = None
    type: NotificationType
    ref_id: str  # Post, journal entry or user the notification points at
    ref_text: str = ""
    created_at: datetime = Field(default_factory=now)
    read: bool = False


def snippet(text: str | None) -> str:
    if not text:
        return ""
    if len(text) <= REF_TEXT_LIMIT:
        return text
    return text[:REF_TEXT_LIMIT] + "..."
