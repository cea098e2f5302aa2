"""Tests for permission checks in the App facade."""

import pytest

from refkeeper.core.modules.access.models import Identity
from refkeeper.core.modules.orphan.models import OrphanReport
from refkeeper.core.roots import RootKind
from refkeeper.errors import AccessDeniedError, AuthenticationError

OWNER = Identity(uid="owner")
AUTHOR = Identity(uid="author")
STRANGER = Identity(uid="stranger")
ADMIN = Identity(uid="admin", is_admin=True)


class TestIdentify:
    """Tests for resolving the gateway identity."""

    def test_missing_uid_rejected(self, app):
        with pytest.raises(AuthenticationError):
            app.identify(None)
        with pytest.raises(AuthenticationError):
            app.identify("")

    def test_admin_from_config(self, app):
        assert app.identify("admin").is_admin
        assert not app.identify("owner").is_admin


class TestDeletePermissions:
    """Tests for who may delete what."""

    @pytest.fixture(autouse=True)
    def setup(self, app, store):
        for uid in ("owner", "author", "stranger"):
            store.add_user(uid)
        store.add_topic("t1", "owner")
        store.add_comment(RootKind.TOPIC, "t1", "c1", "author")
        store.add_comment(RootKind.TOPIC, "t1", "c2", "stranger", parent_id="c1")
        self.app = app
        self.store = store

    @pytest.mark.asyncio
    async def test_owner_deletes_root(self):
        assert await self.app.delete_root(OWNER, RootKind.TOPIC, "t1") == 2
        assert not self.store.exists("forum_topics/t1")

    @pytest.mark.asyncio
    async def test_admin_deletes_root(self):
        assert await self.app.delete_topic(ADMIN, "t1") == 2

    @pytest.mark.asyncio
    async def test_stranger_cannot_delete_root(self):
        with pytest.raises(AccessDeniedError):
            await self.app.delete_root(STRANGER, RootKind.TOPIC, "t1")
        assert self.store.exists("forum_topics/t1")

    @pytest.mark.asyncio
    async def test_missing_root_is_zero_work(self):
        assert await self.app.delete_root(STRANGER, RootKind.TOPIC, "gone") == 0

    @pytest.mark.asyncio
    async def test_user_root_requires_self_or_admin(self):
        with pytest.raises(AccessDeniedError):
            await self.app.delete_root(STRANGER, RootKind.USER, "owner")
        assert await self.app.delete_root(ADMIN, RootKind.USER, "stranger") >= 0
        assert not self.store.exists("users/stranger")

    @pytest.mark.asyncio
    async def test_delete_own_account(self):
        await self.app.delete_user(AUTHOR, "author")
        assert not self.store.exists("users/author")
        # Only the comment the author wrote goes; the reply to it stays and is shown top-level
        assert self.store.comment_paths() == ["forum_topics/t1/comments/c2"]

    @pytest.mark.asyncio
    @pytest.mark.parametrize("identity", [AUTHOR, OWNER, ADMIN])
    async def test_comment_author_root_owner_and_admin_delete_comment(self, identity):
        assert await self.app.delete_comment(identity, RootKind.TOPIC, "t1", "c1") == 2
        assert self.store.comment_count(RootKind.TOPIC, "t1") == 0

    @pytest.mark.asyncio
    async def test_stranger_cannot_delete_comment(self):
        other = Identity(uid="someone")
        with pytest.raises(AccessDeniedError):
            await self.app.delete_comment(other, RootKind.TOPIC, "t1", "c1")

    @pytest.mark.asyncio
    async def test_missing_comment_is_zero_work(self):
        assert await self.app.delete_comment(STRANGER, RootKind.TOPIC, "t1", "gone") == 0


class TestAdminOperations:
    """Tests for admin-only maintenance."""

    @pytest.mark.asyncio
    async def test_non_admin_rejected(self, app):
        with pytest.raises(AccessDeniedError):
            await app.scan_orphans(OWNER)
        with pytest.raises(AccessDeniedError):
            await app.clean_orphans(OWNER, OrphanReport())
        with pytest.raises(AccessDeniedError):
            await app.reconcile_comment_count(OWNER, RootKind.TOPIC, "t1")

    @pytest.mark.asyncio
    async def test_admin_scan_and_reconcile(self, app, store):
        store.add_topic("t1", "nobody")
        store.add_comment(RootKind.TOPIC, "t1", "c1", "x", bump_counter=False)
        report = await app.scan_orphans(ADMIN)
        assert [r.path for r in report.topics] == ["forum_topics/t1"]
        assert await app.reconcile_comment_count(ADMIN, RootKind.TOPIC, "t1") == 1
