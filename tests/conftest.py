"""Shared pytest fixtures."""

import asyncio
import copy
from collections.abc import Mapping
from datetime import UTC, datetime, timedelta
from typing import Any

import pytest

from refkeeper.app import App
from refkeeper.config import Config
from refkeeper.core.core import Core
from refkeeper.core.roots import COMMENT_COUNT_FIELD, COMMENTS, RootKind
from refkeeper.core.store import DocRef, Document, DocumentStore, WriteBatch, get_field
from refkeeper.errors import StoreError

BASE_TIME = datetime(2024, 1, 1, tzinfo=UTC)


class MemoryStore(DocumentStore):
    """In-memory document store with seeding helpers and failure injection.

    ``failing`` holds ``(operation, target)`` pairs; an operation on a matching
    target raises StoreError. ``delays`` maps the same pairs to seconds the
    operation sleeps first. Operations are ``get``, ``query``, ``query_group``,
    ``count``, ``write``, ``increment`` and ``update``. Targets are collection
    paths for queries and counts, group names for group queries and collection
    paths of the written document for everything else.
    """

    def __init__(self, max_batch_size: int = 500) -> None:
        super().__init__(max_batch_size)
        self.docs: dict[str, dict[str, Any]] = {}
        self.failing: set[tuple[str, str]] = set()
        self.delays: dict[tuple[str, str], float] = {}
        self.commits: list[int] = []

    async def _check(self, operation: str, target: str) -> None:
        delay = self.delays.get((operation, target))
        if delay:
            await asyncio.sleep(delay)
        if (operation, target) in self.failing:
            raise StoreError(f"Injected failure: {operation} {target}")

    @staticmethod
    def _matches(data: Mapping[str, Any], where: Mapping[str, Any] | None) -> bool:
        return all(get_field(data, key) == value for key, value in (where or {}).items())

    def _snapshot(self, path: str) -> Document:
        return Document(ref=DocRef(path=path), data=copy.deepcopy(self.docs[path]))

    async def get(self, ref: DocRef) -> Document | None:
        await self._check("get", ref.collection)
        return self._snapshot(ref.path) if ref.path in self.docs else None

    async def query(
        self, collection: str, where: Mapping[str, Any] | None = None, order_by: str | None = None
    ) -> list[Document]:
        await self._check("query", collection)
        docs = [
            self._snapshot(path)
            for path, data in self.docs.items()
            if DocRef(path=path).collection == collection and self._matches(data, where)
        ]
        if order_by:
            docs.sort(key=lambda doc: (doc.get(order_by) is None, doc.get(order_by) or 0, doc.ref.path))
        return docs

    async def query_group(self, name: str, where: Mapping[str, Any] | None = None) -> list[Document]:
        await self._check("query_group", name)
        return [
            self._snapshot(path)
            for path, data in self.docs.items()
            if DocRef(path=path).collection_id == name and self._matches(data, where)
        ]

    async def count(self, collection: str, where: Mapping[str, Any] | None = None) -> int:
        await self._check("count", collection)
        return len(await self.query(collection, where))

    async def _apply(self, batch: WriteBatch) -> int:
        for ref, _ in batch.sets:
            await self._check("write", ref.collection)
        for ref in batch.deletes:
            await self._check("write", ref.collection)
        self.commits.append(len(batch))
        for ref, data in batch.sets:
            self.docs[ref.path] = copy.deepcopy(data)
        deleted = 0
        for ref in batch.deletes:
            if self.docs.pop(ref.path, None) is not None:
                deleted += 1
        return deleted

    async def increment(self, ref: DocRef, field: str, delta: int) -> int | None:
        await self._check("increment", ref.collection)
        data = self.docs.get(ref.path)
        if data is None:
            return None
        data[field] = (data.get(field) or 0) + delta
        return data[field]

    async def update(self, ref: DocRef, fields: Mapping[str, Any]) -> bool:
        await self._check("update", ref.collection)
        data = self.docs.get(ref.path)
        if data is None:
            return False
        data.update(fields)
        return True

    # === Seeding and inspection ===

    def put(self, path: str, data: dict[str, Any] | None = None) -> DocRef:
        ref = DocRef(path=path)
        self.docs[ref.path] = data or {}
        return ref

    def add_user(self, uid: str, username: str | None = None) -> DocRef:
        return self.put(f"users/{uid}", {"username": username or uid})

    def add_resolution(self, resolution_id: str, uid: str | None, legacy: bool = False) -> DocRef:
        data: dict[str, Any] = {"title": f"Resolution {resolution_id}", COMMENT_COUNT_FIELD: 0}
        if uid is not None:
            data["userId" if legacy else "uid"] = uid
        return self.put(f"resolutions/{resolution_id}", data)

    def add_topic(self, topic_id: str, uid: str | None) -> DocRef:
        data: dict[str, Any] = {"title": f"Topic {topic_id}", COMMENT_COUNT_FIELD: 0}
        if uid is not None:
            data["author"] = {"uid": uid, "username": uid}
        return self.put(f"forum_topics/{topic_id}", data)

    def add_journal_entry(self, entry_id: str, uid: str, resolution_id: str | None = None) -> DocRef:
        data: dict[str, Any] = {"uid": uid, "content": f"Entry {entry_id}", COMMENT_COUNT_FIELD: 0}
        if resolution_id is not None:
            data["resolutionId"] = resolution_id
        return self.put(f"journal_entries/{entry_id}", data)

    def add_comment(
        self,
        kind: RootKind,
        root_id: str,
        comment_id: str,
        author_uid: str,
        parent_id: str | None = None,
        minute: int = 0,
        legacy: bool = False,
        bump_counter: bool = True,
    ) -> DocRef:
        """Seed a comment and, like the write path does, bump the root's counter when the root exists."""
        data: dict[str, Any] = {
            "content": f"Comment {comment_id}",
            "createdAt": BASE_TIME + timedelta(minutes=minute),
            "parentId": parent_id,
            "rootRef": {"collection": kind.value, "id": root_id},
        }
        if legacy:
            data["authorUid"] = author_uid
        else:
            data["author"] = {"uid": author_uid, "username": author_uid, "photoUrl": None}
        root = self.docs.get(kind.ref(root_id).path)
        if bump_counter and root is not None:
            root[COMMENT_COUNT_FIELD] = root.get(COMMENT_COUNT_FIELD, 0) + 1
        return self.put(f"{kind.comments_path(root_id)}/{comment_id}", data)

    def add_edge(self, follower_uid: str, followee_uid: str, following: bool = True, followers: bool = True) -> None:
        if following:
            self.put(f"users/{follower_uid}/following/{followee_uid}", {"uid": followee_uid, "createdAt": BASE_TIME})
        if followers:
            self.put(f"users/{followee_uid}/followers/{follower_uid}", {"uid": follower_uid, "createdAt": BASE_TIME})

    def add_notification(self, notification_id: str, recipient_uid: str, sender_uid: str) -> DocRef:
        return self.put(
            f"notifications/{notification_id}",
            {"recipientUid": recipient_uid, "senderUid": sender_uid, "type": "reply", "refId": "x", "read": False},
        )

    def exists(self, path: str) -> bool:
        return path in self.docs

    def field(self, path: str, name: str) -> Any:
        return get_field(self.docs[path], name)

    def comment_count(self, kind: RootKind, root_id: str) -> Any:
        return self.docs[kind.ref(root_id).path].get(COMMENT_COUNT_FIELD)

    def paths_under(self, prefix: str) -> list[str]:
        return sorted(path for path in self.docs if path.startswith(prefix + "/"))

    def comment_paths(self) -> list[str]:
        return sorted(path for path in self.docs if DocRef(path=path).collection_id == COMMENTS)


@pytest.fixture
def config():
    """Configuration with one admin and no real database."""
    return Config(database_url="mongodb://localhost:27017/refkeeper_test", admin_uids=["admin"], query_timeout=5.0)


@pytest.fixture
def store():
    """Empty in-memory document store."""
    return MemoryStore()


@pytest.fixture
def core(config, store):
    """Core wired to the in-memory store."""
    return Core(config, store)


@pytest.fixture
def services(core):
    return core.services


@pytest.fixture
def app(config, store):
    """Permission-checking facade over the in-memory store."""
    return App(config, store)
