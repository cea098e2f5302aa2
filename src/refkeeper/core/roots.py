"""Root entity kinds and where their records live."""

from enum import StrEnum

from refkeeper.core.store import DocRef, Document

COMMENTS = "comments"
COMMENT_COUNT_FIELD = "commentCount"


class RootKind(StrEnum):
    """Top-level owned records that comments and other records depend on.

    The value is the name of the collection holding the root documents.
    """

    USER = "users"
    RESOLUTION = "resolutions"
    TOPIC = "forum_topics"
    JOURNAL_ENTRY = "journal_entries"

    @property
    def owner_fields(self) -> tuple[str, ...]:
        """Fields holding the owner's uid; older documents use the legacy names listed last."""
        return OWNER_FIELDS[self]

    def ref(self, root_id: str) -> DocRef:
        return DocRef.of(self.value, root_id)

    def comments_path(self, root_id: str) -> str:
        return f"{self.value}/{root_id}/{COMMENTS}"

    def owner_of(self, doc: Document) -> str | None:
        if self is RootKind.USER:
            return doc.id
        for field in self.owner_fields:
            value = doc.get(field)
            if value:
                return str(value)
        return None

    @classmethod
    def from_collection(cls, collection: str) -> "RootKind | None":
        try:
            return cls(collection)
        except ValueError:
            return None


OWNER_FIELDS: dict[RootKind, tuple[str, ...]] = {
    RootKind.USER: (),
    RootKind.RESOLUTION: ("uid", "userId"),
    RootKind.TOPIC: ("author.uid",),
    RootKind.JOURNAL_ENTRY: ("uid",),
}

# Roots a user owns, in the order a user cascade removes them. Resolutions go first
# because their cascade already takes the journal entries written for them.
OWNED_ROOT_KINDS = (RootKind.RESOLUTION, RootKind.TOPIC, RootKind.JOURNAL_ENTRY)
