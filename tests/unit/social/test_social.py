"""Tests for mirrored follow edges."""

import pytest

from refkeeper.core.modules.social.models import SocialEdge
from refkeeper.core.store import DocRef
from refkeeper.errors import NotFoundError, ValidationError


class TestSocialEdge:
    """Tests for mapping edges to their mirror documents."""

    def test_refs(self):
        edge = SocialEdge(follower_uid="a", followee_uid="b")
        assert edge.following_ref.path == "users/a/following/b"
        assert edge.followers_ref.path == "users/b/followers/a"

    @pytest.mark.parametrize("path", ["users/a/following/b", "users/b/followers/a"])
    def test_from_either_half(self, path):
        assert SocialEdge.from_ref(DocRef(path=path)) == SocialEdge(follower_uid="a", followee_uid="b")

    @pytest.mark.parametrize("path", ["users/a", "users/a/comments/b", "forum_topics/a/following/b"])
    def test_from_non_edge_rejected(self, path):
        with pytest.raises(ValueError):
            SocialEdge.from_ref(DocRef(path=path))


class TestSocialService:
    """Tests for SocialService."""

    @pytest.fixture(autouse=True)
    def setup(self, store, services):
        store.add_user("a")
        store.add_user("b")
        self.store = store
        self.social = services.social

    @pytest.mark.asyncio
    async def test_follow_writes_both_halves_in_one_batch(self):
        """Test that following creates both mirrors together and notifies the followee."""
        await self.social.follow("a", "b")
        assert self.store.field("users/a/following/b", "uid") == "b"
        assert self.store.field("users/b/followers/a", "uid") == "a"
        assert self.store.commits[0] == 2
        notifications = [self.store.docs[p] for p in self.store.paths_under("notifications")]
        assert [(n["recipientUid"], n["type"]) for n in notifications] == [("b", "follow")]

    @pytest.mark.asyncio
    async def test_follow_self_rejected(self):
        with pytest.raises(ValidationError):
            await self.social.follow("a", "a")

    @pytest.mark.asyncio
    async def test_follow_missing_user_rejected(self):
        with pytest.raises(NotFoundError):
            await self.social.follow("a", "nobody")

    @pytest.mark.asyncio
    async def test_unfollow_removes_both_halves(self):
        self.store.add_edge("a", "b")
        assert await self.social.unfollow("a", "b") == 2
        assert self.store.paths_under("users/a") == []
        assert self.store.paths_under("users/b") == []

    @pytest.mark.asyncio
    async def test_edges_found_from_either_side(self):
        """Test that edges are found even when the half stored under the user is missing."""
        self.store.add_edge("a", "b", following=False)
        self.store.add_edge("b", "a", followers=False)
        edges = await self.social.edges_of("a")
        assert sorted((e.follower_uid, e.followee_uid) for e in edges) == [("a", "b"), ("b", "a")]

    @pytest.mark.asyncio
    async def test_find_half_edges(self):
        self.store.add_edge("a", "b")
        self.store.add_edge("b", "a", following=False)
        assert await self.social.find_half_edges() == [DocRef(path="users/a/followers/b")]
