import structlog

from refkeeper.core.core import Service
from refkeeper.core.fanout import fan_out
from refkeeper.core.modules.notification.models import NOTIFICATIONS, Notification, NotificationType, snippet
from refkeeper.core.modules.user.models import AuthorRef
from refkeeper.core.store import DocRef
from refkeeper.errors import StoreError

logger = structlog.get_logger(__name__)


class NotificationService(Service):
    """Creates and removes notifications; every write here is best-effort."""

    async def on_start(self) -> None:
        """Create indexes for per-user lookups."""
        await self.store.ensure_index(NOTIFICATIONS, ["recipientUid"])
        await self.store.ensure_index(NOTIFICATIONS, ["senderUid"])

    async def create_notification(
        self, recipient_uid: str, notification_type: NotificationType, sender: AuthorRef, ref_id: str, ref_text: str | None = None
    ) -> Notification | None:
        """Notify a user about activity; skipped for self-notification and on store failure."""
        if recipient_uid == sender.uid:
            return None

        notification = Notification(
            recipient_uid=recipient_uid,
            sender_uid=sender.uid,
            sender_username=sender.username,
            sender_photo_url=sender.photo_url,
            type=notification_type,
            ref_id=ref_id,
            ref_text=snippet(ref_text),
        )
        try:
            await self.store.set(DocRef.of(NOTIFICATIONS, notification.id), notification.to_data())
        except StoreError:
            logger.exception("create_notification_failed", recipient_uid=recipient_uid, type=notification_type)
            return None
        return notification

    async def get_notifications(self, uid: str) -> list[Notification]:
        """Get notifications received by a user, newest first."""
        docs = await self.store.query(NOTIFICATIONS, {"recipientUid": uid})
        notifications = Notification.list_documents(docs)
        return sorted(notifications, key=lambda n: n.created_at, reverse=True)

    async def notification_refs(self, uid: str) -> list[DocRef]:
        """Every notification the user sent or received."""
        received, sent = await fan_out(
            self.store.query(NOTIFICATIONS, {"recipientUid": uid}),
            self.store.query(NOTIFICATIONS, {"senderUid": uid}),
            timeout=self.core.config.query_timeout,
        )
        return list(dict.fromkeys(doc.ref for doc in [*received, *sent]))

    async def delete_for_user(self, uid: str) -> int:
        """Remove every notification sent or received by the user.

        Failures are logged and reported as zero deletions; notifications are
        derived data and never block the caller.
        """
        try:
            deleted = await self.store.delete_all(await self.notification_refs(uid))
        except StoreError:
            logger.exception("notification_cleanup_failed", uid=uid)
            return 0
        logger.debug("notifications_deleted", uid=uid, deleted=deleted)
        return deleted
