import functools
from collections import defaultdict
from collections.abc import Awaitable, Callable, Mapping
from typing import Any, ParamSpec, TypeVar

from pymongo import AsyncMongoClient, ReturnDocument
from pymongo.asynchronous.client_session import AsyncClientSession
from pymongo.asynchronous.collection import AsyncCollection
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from refkeeper.core.store import DocRef, Document, DocumentStore, WriteBatch, get_field, split_path
from refkeeper.errors import StoreError

# Every logical collection is stored in the MongoDB collection named after its last
# segment. The document path is the _id and the parent document path is kept beside it,
# so a subcollection query filters on PARENT_FIELD and a group query does not.
PARENT_FIELD = "_parent"

P = ParamSpec("P")
R = TypeVar("R")


def translate_errors(func: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
    """Re-raise driver failures as StoreError."""

    @functools.wraps(func)
    async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return await func(*args, **kwargs)
        except PyMongoError as e:
            raise StoreError(str(e)) from e

    return wrapper


def to_document(raw: Mapping[str, Any]) -> Document:
    data = {k: v for k, v in raw.items() if k not in ("_id", PARENT_FIELD)}
    return Document(ref=DocRef(path=raw["_id"]), data=data)


def split_collection(collection: str) -> tuple[str, str]:
    """Return (parent document path, collection name) for a collection path."""
    segments = split_path(collection)
    if len(segments) % 2 != 1:
        raise ValueError(f"Collection path needs an odd number of segments: '{collection}'")
    return "/".join(segments[:-1]), segments[-1]


class MongoDocumentStore(DocumentStore):
    """DocumentStore backed by MongoDB through the asynchronous pymongo driver."""

    def __init__(
        self,
        client: AsyncMongoClient[dict[str, Any]],
        database: AsyncDatabase[dict[str, Any]],
        max_batch_size: int = 500,
        use_transactions: bool = False,
    ) -> None:
        super().__init__(max_batch_size)
        self._client = client
        self._database = database
        self._use_transactions = use_transactions

    def _collection(self, name: str) -> AsyncCollection[dict[str, Any]]:
        return self._database.get_collection(name)

    @translate_errors
    async def get(self, ref: DocRef) -> Document | None:
        raw = await self._collection(ref.collection_id).find_one({"_id": ref.path})
        return to_document(raw) if raw else None

    @translate_errors
    async def query(
        self, collection: str, where: Mapping[str, Any] | None = None, order_by: str | None = None
    ) -> list[Document]:
        parent, name = split_collection(collection)
        cursor = self._collection(name).find({PARENT_FIELD: parent, **(where or {})})
        if order_by:
            cursor = cursor.sort([(order_by, 1), ("_id", 1)])
        return [to_document(raw) async for raw in cursor]

    @translate_errors
    async def query_group(self, name: str, where: Mapping[str, Any] | None = None) -> list[Document]:
        cursor = self._collection(name).find(dict(where or {}))
        return [to_document(raw) async for raw in cursor]

    @translate_errors
    async def count(self, collection: str, where: Mapping[str, Any] | None = None) -> int:
        parent, name = split_collection(collection)
        return await self._collection(name).count_documents({PARENT_FIELD: parent, **(where or {})})

    @translate_errors
    async def _apply(self, batch: WriteBatch) -> int:
        if not self._use_transactions:
            return await self._write(batch, None)
        async with self._client.start_session() as session, await session.start_transaction():
            return await self._write(batch, session)

    async def _write(self, batch: WriteBatch, session: AsyncClientSession | None) -> int:
        for ref, data in batch.sets:
            parent = ref.parent.path if ref.parent else ""
            await self._collection(ref.collection_id).replace_one(
                {"_id": ref.path}, {**data, "_id": ref.path, PARENT_FIELD: parent}, upsert=True, session=session
            )

        paths_by_collection: dict[str, list[str]] = defaultdict(list)
        for ref in batch.deletes:
            paths_by_collection[ref.collection_id].append(ref.path)

        deleted = 0
        for name, paths in paths_by_collection.items():
            result = await self._collection(name).delete_many({"_id": {"$in": paths}}, session=session)
            deleted += result.deleted_count
        return deleted

    @translate_errors
    async def increment(self, ref: DocRef, field: str, delta: int) -> int | None:
        raw = await self._collection(ref.collection_id).find_one_and_update(
            {"_id": ref.path},
            {"$inc": {field: delta}},
            return_document=ReturnDocument.AFTER,
        )
        if raw is None:
            return None
        return int(get_field(raw, field))

    @translate_errors
    async def update(self, ref: DocRef, fields: Mapping[str, Any]) -> bool:
        result = await self._collection(ref.collection_id).update_one({"_id": ref.path}, {"$set": dict(fields)})
        return result.matched_count > 0

    @translate_errors
    async def ensure_index(self, name: str, keys: list[str]) -> None:
        await self._collection(name).create_index([(key, 1) for key in keys])

    async def close(self) -> None:
        await self._client.aclose()
