import structlog

from refkeeper.core.core import Service
from refkeeper.core.fanout import fan_out
from refkeeper.core.modules.notification.models import NotificationType
from refkeeper.core.modules.social.models import FOLLOWERS, FOLLOWING, EdgeHalf, SocialEdge
from refkeeper.core.modules.user.models import AuthorRef
from refkeeper.core.roots import RootKind
from refkeeper.core.store import DocRef, WriteBatch
from refkeeper.errors import NotFoundError, ValidationError
from refkeeper.utils import now

logger = structlog.get_logger(__name__)


class SocialService(Service):
    """Maintains follow edges so both mirror documents exist together or not at all."""

    async def on_start(self) -> None:
        """Create indexes for group lookups by the user on the other end."""
        await self.store.ensure_index(FOLLOWING, ["uid"])
        await self.store.ensure_index(FOLLOWERS, ["uid"])

    async def follow(self, follower_uid: str, followee_uid: str) -> SocialEdge:
        """Write both halves of a follow edge in one batch and notify the followee."""
        if follower_uid == followee_uid:
            raise ValidationError("Cannot follow yourself")
        follower = await self.core.services.user.get_user(follower_uid)
        if await self.core.services.user.find_user(followee_uid) is None:
            raise NotFoundError(f"User '{followee_uid}' not found")

        edge = SocialEdge(follower_uid=follower_uid, followee_uid=followee_uid)
        created_at = now()
        batch = WriteBatch()
        batch.set(edge.following_ref, EdgeHalf(uid=followee_uid, created_at=created_at).model_dump(by_alias=True))
        batch.set(edge.followers_ref, EdgeHalf(uid=follower_uid, created_at=created_at).model_dump(by_alias=True))
        await self.store.commit(batch)

        await self.core.services.notification.create_notification(
            followee_uid, NotificationType.FOLLOW, AuthorRef.from_user(follower), ref_id=follower_uid
        )
        return edge

    async def unfollow(self, follower_uid: str, followee_uid: str) -> int:
        """Delete both halves of a follow edge in one batch; returns documents removed."""
        batch = WriteBatch()
        for ref in SocialEdge(follower_uid=follower_uid, followee_uid=followee_uid).refs:
            batch.delete(ref)
        return await self.store.commit(batch)

    async def edges_of(self, uid: str) -> list[SocialEdge]:
        """Every edge touching the user, found from either side.

        The user's own subcollections are read together with group queries on
        the other users' mirrors, so an edge whose half under this user is
        missing is still found.
        """
        user = RootKind.USER.ref(uid)
        results = await fan_out(
            self.store.query(f"{user.path}/{FOLLOWING}"),
            self.store.query(f"{user.path}/{FOLLOWERS}"),
            self.store.query_group(FOLLOWING, {"uid": uid}),
            self.store.query_group(FOLLOWERS, {"uid": uid}),
            timeout=self.core.config.query_timeout,
        )
        edges = (SocialEdge.from_ref(doc.ref) for docs in results for doc in docs)
        return list({(e.follower_uid, e.followee_uid): e for e in edges}.values())

    async def edge_refs(self, uid: str) -> list[DocRef]:
        """Both mirror documents of every edge touching the user, whether they exist or not."""
        return [ref for edge in await self.edges_of(uid) for ref in edge.refs]

    async def find_half_edges(self) -> list[DocRef]:
        """Mirror documents whose counterpart is missing."""
        following, followers = await fan_out(
            self.store.query_group(FOLLOWING),
            self.store.query_group(FOLLOWERS),
            timeout=self.core.config.query_timeout,
        )
        following_refs = {doc.ref for doc in following}
        followers_refs = {doc.ref for doc in followers}

        half: list[DocRef] = []
        for ref in sorted(following_refs, key=str):
            if SocialEdge.from_ref(ref).followers_ref not in followers_refs:
                half.append(ref)
        for ref in sorted(followers_refs, key=str):
            if SocialEdge.from_ref(ref).following_ref not in following_refs:
                half.append(ref)

        logger.debug("find_half_edges", edges=len(following_refs), half_edges=len(half))
        return half
