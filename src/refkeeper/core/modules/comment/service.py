import structlog

from refkeeper.core.core import Service
from refkeeper.core.fanout import fan_out
from refkeeper.core.modules.comment.models import Comment, CommentNode, RootRef
from refkeeper.core.modules.comment.tree import build_comment_tree
from refkeeper.core.modules.notification.models import NotificationType
from refkeeper.core.modules.user.models import AuthorRef
from refkeeper.core.roots import COMMENTS, RootKind
from refkeeper.core.store import DocRef
from refkeeper.errors import NotFoundError, ValidationError

logger = structlog.get_logger(__name__)

# Author uid locations, current layout first; simulated and legacy comments use the flat field
AUTHOR_FIELDS = ("author.uid", "authorUid")


class CommentService(Service):
    """Manages comments stored in the ``comments`` subcollection of each root."""

    async def on_start(self) -> None:
        """Create indexes for the cross-root author lookup."""
        for field in AUTHOR_FIELDS:
            await self.store.ensure_index(COMMENTS, [field])

    async def list_comments(self, kind: RootKind, root_id: str) -> list[Comment]:
        """Get every comment under a root, nested replies included, oldest first."""
        docs = await self.store.query(kind.comments_path(root_id), order_by="createdAt")
        return Comment.list_documents(docs)

    async def get_thread(self, kind: RootKind, root_id: str) -> list[CommentNode]:
        """Get the comments of a root as threaded replies."""
        return build_comment_tree(await self.list_comments(kind, root_id))

    async def find_comment(self, kind: RootKind, root_id: str, comment_id: str) -> Comment | None:
        doc = await self.store.get(kind.ref(root_id).child(COMMENTS, comment_id))
        return Comment.from_document(doc) if doc else None

    async def author_comment_refs(self, uid: str) -> list[DocRef]:
        """Locate every comment the user wrote, under any root, including roots that no longer exist."""
        results = await fan_out(
            *(self.store.query_group(COMMENTS, {field: uid}) for field in AUTHOR_FIELDS),
            timeout=self.core.config.query_timeout,
        )
        return list(dict.fromkeys(doc.ref for docs in results for doc in docs))

    async def create_comment(
        self, kind: RootKind, root_id: str, author_uid: str, content: str, parent_id: str | None = None
    ) -> Comment:
        """Add a comment or reply to a root, bump its counter and notify the people replied to."""
        if kind is RootKind.USER:
            raise ValidationError("Users cannot be commented on")
        content = content.strip()
        if not content:
            raise ValidationError("Comment must not be empty")

        root_doc = await self.store.get(kind.ref(root_id))
        if root_doc is None:
            raise NotFoundError(f"Root '{kind.ref(root_id)}' not found")
        parent = None
        if parent_id is not None:
            parent = await self.find_comment(kind, root_id, parent_id)
            if parent is None:
                raise NotFoundError(f"Comment '{parent_id}' not found")

        author = AuthorRef.from_user(await self.core.services.user.get_user(author_uid))
        comment = Comment(
            content=content,
            author=author,
            parent_id=parent_id,
            root_ref=RootRef(collection=kind.value, id=root_id),
        )
        await self.store.set(comment.ref, comment.to_data())
        await self.core.services.counter.increment(kind, root_id)

        recipients = [kind.owner_of(root_doc)]
        if parent is not None:
            recipients.append(parent.author.uid)
        for recipient in dict.fromkeys(r for r in recipients if r):
            await self.core.services.notification.create_notification(
                recipient, NotificationType.REPLY, author, ref_id=root_id, ref_text=content
            )

        logger.debug("comment_created", root=str(comment.root_ref.ref), comment_id=comment.id, parent_id=parent_id)
        return comment
