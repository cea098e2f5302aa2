"""Tests for notifications."""

from datetime import UTC, datetime

import pytest

from refkeeper.core.modules.notification.models import REF_TEXT_LIMIT, NotificationType, snippet
from refkeeper.core.modules.user.models import AuthorRef


class TestSnippet:
    """Tests for reference text truncation."""

    def test_short_text_unchanged(self):
        assert snippet("hello") == "hello"

    def test_long_text_truncated(self):
        text = "x" * (REF_TEXT_LIMIT + 10)
        assert snippet(text) == "x" * REF_TEXT_LIMIT + "..."

    def test_missing_text(self):
        assert snippet(None) == ""


class TestNotificationService:
    """Tests for NotificationService."""

    @pytest.fixture(autouse=True)
    def setup(self, store, services):
        self.store = store
        self.notifications = services.notification

    @pytest.mark.asyncio
    async def test_self_notification_skipped(self):
        result = await self.notifications.create_notification("a", NotificationType.FOLLOW, AuthorRef(uid="a"), "a")
        assert result is None
        assert self.store.docs == {}

    @pytest.mark.asyncio
    async def test_stored_with_camel_case_fields(self):
        sender = AuthorRef(uid="a", username="alice", photo_url="https://example.com/a.png")
        notification = await self.notifications.create_notification("b", NotificationType.REPLY, sender, "t1", "Hi")
        data = self.store.docs[f"notifications/{notification.id}"]
        assert data["recipientUid"] == "b"
        assert data["senderUsername"] == "alice"
        assert data["senderPhotoUrl"] == "https://example.com/a.png"
        assert data["type"] == "reply"
        assert data["refText"] == "Hi"
        assert data["read"] is False

    @pytest.mark.asyncio
    async def test_write_failure_returns_none(self):
        self.store.failing.add(("write", "notifications"))
        assert await self.notifications.create_notification("b", NotificationType.FOLLOW, AuthorRef(uid="a"), "a") is None

    @pytest.mark.asyncio
    async def test_delete_for_user_removes_sent_and_received(self):
        self.store.add_notification("n1", "a", "b")
        self.store.add_notification("n2", "b", "a")
        self.store.add_notification("n3", "b", "c")
        assert await self.notifications.delete_for_user("a") == 2
        assert self.store.paths_under("notifications") == ["notifications/n3"]

    @pytest.mark.asyncio
    async def test_get_notifications_newest_first(self):
        for notification_id, day in (("old", 1), ("new", 3), ("mid", 2)):
            self.store.add_notification(notification_id, "b", "a")
            self.store.docs[f"notifications/{notification_id}"]["createdAt"] = datetime(2024, 1, day, tzinfo=UTC)
        result = await self.notifications.get_notifications("b")
        assert [n.id for n in result] == ["new", "mid", "old"]
