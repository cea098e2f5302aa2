from datetime import datetime
from typing import Self

from pydantic import BaseModel, Field

from refkeeper.core.modules.user.models import AuthorRef
from refkeeper.core.roots import COMMENTS
from refkeeper.core.store import DocRef, Document, DocumentModel
from refkeeper.utils import now


class RootRef(BaseModel):
    """Root record a comment was written under."""

    collection: str = Field(..., description="Collection of the root record")
    id: str = Field(..., description="Id of the root record")

    @property
    def ref(self) -> DocRef:
        return DocRef.of(self.collection, self.id)


class Comment(DocumentModel):
    """Reply stored in the ``comments`` subcollection of its root.

    ``parent_id`` is None for a top-level reply to the root and names another
    comment of the same root for a reply-to-reply.
    """

    content: str
    author: AuthorRef
    created_at: datetime | None = Field(default_factory=now)
    parent_id: str | None = None
    root_ref: RootRef

    @property
    def ref(self) -> DocRef:
        return self.root_ref.ref.child(COMMENTS, self.id)

    @classmethod
    def from_document(cls, doc: Document) -> Self:
        """Load a comment; the root is taken from the storage location, not the stored field."""
        data = dict(doc.data)
        # Missing timestamps stay missing so such comments sort last
        data.setdefault("createdAt", None)
        # Older comments carry a flat authorUid instead of the author map
        if "author" not in data and "authorUid" in data:
            data["author"] = {"uid": data["authorUid"], "username": data.get("authorUsername") or "Anonymous"}
        root = doc.ref.parent
        if root is not None:
            data["rootRef"] = {"collection": root.collection, "id": root.id}
        return cls.model_validate({**data, "id": doc.id})


class CommentNode(BaseModel):
    """Comment with its direct replies, each ordered oldest first."""

    comment: Comment
    replies: list["CommentNode"] = Field(default_factory=list)

    @property
    def size(self) -> int:
        """Number of comments in this thread, the node itself included."""
        return 1 + sum(reply.size for reply in self.replies)
