from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from refkeeper.config import Config
from refkeeper.core.core import Core
from refkeeper.core.modules.access.models import Identity
from refkeeper.core.modules.comment.models import Comment, CommentNode
from refkeeper.core.modules.orphan.models import CleanupResult, OrphanReport
from refkeeper.core.modules.social.models import SocialEdge
from refkeeper.core.roots import RootKind
from refkeeper.core.store import DocumentStore


class App:
    """Facade for all integrity operations, validates permissions before delegating to Core."""

    def __init__(self, config: Config, store: DocumentStore | None = None) -> None:
        self._core = Core(config, store)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    def identify(self, uid: str | None) -> Identity:
        """Resolve the gateway-verified uid of a request into an identity."""
        return self._core.services.access.identify(uid)

    # === Deletion ===

    async def delete_user(self, identity: Identity, uid: str) -> int:
        """Delete a user account and everything depending on it (the user themself or admin)."""
        self._core.services.access.ensure_self_or_admin(identity, uid)
        return await self._core.services.cascade.delete(RootKind.USER, uid)

    async def delete_root(self, identity: Identity, kind: RootKind, root_id: str) -> int:
        """Delete a root record with its dependents (owner or admin).

        A root that no longer exists is not an error: nothing is removed and 0 is returned.
        """
        if kind is RootKind.USER:
            return await self.delete_user(identity, root_id)
        doc = await self._core.store.get(kind.ref(root_id))
        if doc is None:
            if identity.is_admin:
                # Dependents may still exist without their root
                return await self._core.services.cascade.delete(kind, root_id)
            return 0
        self._core.services.access.ensure_owner_or_admin(identity, kind.owner_of(doc))
        return await self._core.services.cascade.delete(kind, root_id)

    async def delete_topic(self, identity: Identity, topic_id: str) -> int:
        """Delete a forum topic and its replies (author or admin)."""
        return await self.delete_root(identity, RootKind.TOPIC, topic_id)

    async def delete_comment(self, identity: Identity, kind: RootKind, root_id: str, comment_id: str) -> int:
        """Delete a comment and its replies (comment author, root owner or admin)."""
        comment = await self._core.services.comment.find_comment(kind, root_id, comment_id)
        if comment is None and not identity.is_admin:
            return 0
        if comment is not None:
            root_doc = await self._core.store.get(kind.ref(root_id))
            root_owner = kind.owner_of(root_doc) if root_doc else None
            self._core.services.access.ensure_owner_or_admin(identity, comment.author.uid, root_owner)
        return await self._core.services.cascade.delete_comment(kind, root_id, comment_id)

    # === Comments ===

    async def get_comment_thread(self, identity: Identity, kind: RootKind, root_id: str) -> list[CommentNode]:
        """Get the threaded replies of a root (any authenticated user)."""
        del identity  # Any authenticated caller may read threads
        return await self._core.services.comment.get_thread(kind, root_id)

    async def create_comment(
        self, identity: Identity, kind: RootKind, root_id: str, content: str, parent_id: str | None = None
    ) -> Comment:
        """Reply to a root or to one of its comments as the current user."""
        return await self._core.services.comment.create_comment(kind, root_id, identity.uid, content, parent_id)

    # === Social ===

    async def follow_user(self, identity: Identity, uid: str) -> SocialEdge:
        """Follow another user as the current user."""
        return await self._core.services.social.follow(identity.uid, uid)

    async def unfollow_user(self, identity: Identity, uid: str) -> int:
        """Stop following another user as the current user."""
        return await self._core.services.social.unfollow(identity.uid, uid)

    # === Maintenance (admin only) ===

    async def scan_orphans(self, identity: Identity) -> OrphanReport:
        """Scan for orphaned records without changing anything."""
        self._core.services.access.ensure_admin(identity)
        return await self._core.services.orphan.scan()

    async def clean_orphans(self, identity: Identity, report: OrphanReport) -> CleanupResult:
        """Delete the records listed in a scan report."""
        self._core.services.access.ensure_admin(identity)
        return await self._core.services.orphan.clean(report)

    async def reconcile_comment_count(self, identity: Identity, kind: RootKind, root_id: str) -> int:
        """Recompute a root's comment counter from its live comments."""
        self._core.services.access.ensure_admin(identity)
        return await self._core.services.counter.reconcile(kind, root_id)
