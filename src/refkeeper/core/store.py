"""Document store abstraction.

Documents live at slash-separated paths made of alternating collection and
document ids: ``forum_topics/t1`` is a document, ``forum_topics/t1/comments``
is one of its subcollections. A group query spans every subcollection that
shares a name, whatever document it hangs from.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Iterator, Mapping
from typing import Any, Self, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from refkeeper.errors import BatchTooLargeError
from refkeeper.utils import new_id

T = TypeVar("T")


def split_path(path: str) -> list[str]:
    segments = path.split("/")
    if any(not segment for segment in segments):
        raise ValueError(f"Invalid path: '{path}'")
    return segments


def chunked(items: Iterable[T], size: int) -> Iterator[list[T]]:
    """Split items into consecutive lists of at most ``size``, dropping repeats."""
    unique = list(dict.fromkeys(items))
    for start in range(0, len(unique), size):
        yield unique[start : start + size]


def get_field(data: Mapping[str, Any], field_path: str) -> Any:
    """Read a dotted field path (``author.uid``) from nested document data."""
    value: Any = data
    for key in field_path.split("."):
        if not isinstance(value, Mapping) or key not in value:
            return None
        value = value[key]
    return value


class DocRef(BaseModel):
    """Location of a single document."""

    model_config = ConfigDict(frozen=True)

    path: str

    @field_validator("path")
    @classmethod
    def _check_path(cls, value: str) -> str:
        if len(split_path(value)) % 2 != 0:
            raise ValueError(f"Document path needs an even number of segments: '{value}'")
        return value

    @classmethod
    def of(cls, collection: str, doc_id: str) -> Self:
        return cls(path=f"{collection}/{doc_id}")

    @property
    def id(self) -> str:
        return self.path.rsplit("/", 1)[1]

    @property
    def collection(self) -> str:
        """Full path of the collection holding this document."""
        return self.path.rsplit("/", 1)[0]

    @property
    def collection_id(self) -> str:
        """Name of the collection holding this document (last collection segment)."""
        return self.collection.rsplit("/", 1)[-1]

    @property
    def parent(self) -> "DocRef | None":
        """Document one level up in storage, None for top-level documents."""
        if "/" not in self.collection:
            return None
        return DocRef(path=self.collection.rsplit("/", 1)[0])

    def child(self, collection: str, doc_id: str) -> "DocRef":
        return DocRef(path=f"{self.path}/{collection}/{doc_id}")

    def __str__(self) -> str:
        return self.path


class Document(BaseModel):
    """Raw document snapshot returned by the store."""

    ref: DocRef
    data: dict[str, Any] = Field(default_factory=dict)

    @property
    def id(self) -> str:
        return self.ref.id

    def get(self, field_path: str) -> Any:
        return get_field(self.data, field_path)


class DocumentModel(BaseModel):
    """Base for typed records stored as documents with camelCase field names."""

    id: str = Field(default_factory=new_id)

    model_config = ConfigDict(
        populate_by_name=True,
        alias_generator=to_camel,
        json_schema_serialization_defaults_required=True,
    )

    def to_data(self) -> dict[str, Any]:
        """Stored representation; the id is carried by the document path."""
        return self.model_dump(by_alias=True, exclude={"id"})

    @classmethod
    def from_document(cls, doc: Document) -> Self:
        return cls.model_validate({**doc.data, "id": doc.id})

    @classmethod
    def list_documents(cls, docs: Iterable[Document]) -> list[Self]:
        return [cls.from_document(doc) for doc in docs]


class WriteBatch:
    """Writes committed together as one atomic unit."""

    def __init__(self) -> None:
        self.sets: list[tuple[DocRef, dict[str, Any]]] = []
        self.deletes: list[DocRef] = []

    def set(self, ref: DocRef, data: dict[str, Any]) -> None:
        self.sets.append((ref, data))

    def delete(self, ref: DocRef) -> None:
        self.deletes.append(ref)

    def __len__(self) -> int:
        return len(self.sets) + len(self.deletes)


class DocumentStore(ABC):
    """Client for a schemaless document store.

    Implementations translate driver failures into ``StoreError``.
    """

    def __init__(self, max_batch_size: int = 500) -> None:
        self.max_batch_size = max_batch_size

    @abstractmethod
    async def get(self, ref: DocRef) -> Document | None:
        """Point read; None when the document does not exist."""

    @abstractmethod
    async def query(
        self, collection: str, where: Mapping[str, Any] | None = None, order_by: str | None = None
    ) -> list[Document]:
        """Documents of one collection matching every equality filter, optionally sorted ascending."""

    @abstractmethod
    async def query_group(self, name: str, where: Mapping[str, Any] | None = None) -> list[Document]:
        """Documents of every collection called ``name`` matching the equality filters."""

    @abstractmethod
    async def count(self, collection: str, where: Mapping[str, Any] | None = None) -> int:
        """Number of documents in a collection matching the equality filters."""

    @abstractmethod
    async def _apply(self, batch: WriteBatch) -> int:
        """Apply the batch atomically and return the number of documents actually deleted."""

    @abstractmethod
    async def increment(self, ref: DocRef, field: str, delta: int) -> int | None:
        """Atomically add ``delta`` to a numeric field; returns the new value, None if the document is missing."""

    @abstractmethod
    async def update(self, ref: DocRef, fields: Mapping[str, Any]) -> bool:
        """Overwrite fields of an existing document; False if the document is missing."""

    async def set(self, ref: DocRef, data: dict[str, Any]) -> None:
        batch = WriteBatch()
        batch.set(ref, data)
        await self.commit(batch)

    async def ensure_index(self, name: str, keys: list[str]) -> None:
        """Declare a lookup index on every collection called ``name``."""

    async def close(self) -> None:
        """Release client resources."""

    async def commit(self, batch: WriteBatch) -> int:
        if len(batch) > self.max_batch_size:
            raise BatchTooLargeError(f"Batch of {len(batch)} writes exceeds the limit of {self.max_batch_size}")
        if not batch:
            return 0
        return await self._apply(batch)

    async def delete_all(self, refs: Iterable[DocRef]) -> int:
        """Delete documents in as many batches as the size limit requires.

        Each chunk is atomic on its own; there is no atomicity across chunks.
        Returns the number of documents that actually existed.
        """
        deleted = 0
        for chunk in chunked(refs, self.max_batch_size):
            batch = WriteBatch()
            for ref in chunk:
                batch.delete(ref)
            deleted += await self.commit(batch)
        return deleted
