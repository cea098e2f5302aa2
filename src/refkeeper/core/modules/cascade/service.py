from collections import Counter
from collections.abc import Coroutine
from typing import Any

import structlog

from refkeeper.core.core import Service
from refkeeper.core.fanout import fan_out
from refkeeper.core.modules.cascade.models import CascadeOutcome
from refkeeper.core.modules.comment.tree import collect_descendants
from refkeeper.core.roots import COMMENTS, OWNED_ROOT_KINDS, RootKind
from refkeeper.core.store import DocRef, Document, chunked
from refkeeper.errors import StoreError

logger = structlog.get_logger(__name__)


class CascadeService(Service):
    """Deletes root records together with everything that depends on them.

    The store has no foreign keys and no cross-collection transactions, so
    every dependent is found by query and removed here, children before
    parents: a crash between two batches leaves orphans for the scanner to
    find, never a counter pointing at comments that are gone. Every step is
    idempotent; a failed cascade is retried as a whole by the caller.
    """

    async def on_start(self) -> None:
        """Create indexes for the owner and resolution lookups."""
        for kind in OWNED_ROOT_KINDS:
            for field in kind.owner_fields:
                await self.store.ensure_index(kind.value, [field])
        await self.store.ensure_index(RootKind.JOURNAL_ENTRY.value, ["resolutionId"])

    async def delete(self, kind: RootKind, root_id: str) -> int:
        """Delete a root and all its dependents; returns the number of dependent records removed.

        The root document itself is not counted. Deleting a root that is
        already gone removes nothing and returns 0.
        """
        outcome = await self.cascade(kind, root_id)
        logger.info(
            "cascade_delete_completed",
            kind=kind,
            root_id=root_id,
            deleted=outcome.dependents,
            root_removed=bool(outcome.root_removed),
        )
        return outcome.dependents

    async def cascade(self, kind: RootKind, root_id: str) -> CascadeOutcome:
        """Run the cascade for one root and report the dependents and the root separately."""
        root = kind.ref(root_id)
        log = logger.bind(kind=kind, root_id=root_id)

        (comments,) = await self._enumerate(self.store.query(kind.comments_path(root_id)))
        deleted = await self.store.delete_all(doc.ref for doc in comments)
        log.debug("cascade_comments_deleted", deleted=deleted)

        if kind is RootKind.RESOLUTION:
            (entries,) = await self._enumerate(
                self.store.query(RootKind.JOURNAL_ENTRY.value, {"resolutionId": root_id})
            )
            deleted += await self._cascade_all(RootKind.JOURNAL_ENTRY, entries)

        root_removed = await self.store.delete_all([root])

        if kind is RootKind.USER:
            deleted += await self._delete_user_dependents(root_id)
            deleted += await self._sweep_ghost_comments(root_id)

        return CascadeOutcome(deleted, root_removed)

    async def _cascade_all(self, kind: RootKind, docs: list[Document]) -> int:
        """Cascade each root in turn; every removed root counts as one dependent."""
        deleted = 0
        for doc in docs:
            deleted += (await self.cascade(kind, doc.id)).total
        return deleted

    async def _delete_user_dependents(self, uid: str) -> int:
        """Remove the roots a user owns and every follow edge touching them."""
        owner_queries = [
            self.store.query(kind.value, {field: uid}) for kind in OWNED_ROOT_KINDS for field in kind.owner_fields
        ]
        *owned_results, edge_refs = await self._enumerate(*owner_queries, self.core.services.social.edge_refs(uid))

        owned: dict[RootKind, dict[DocRef, Document]] = {kind: {} for kind in OWNED_ROOT_KINDS}
        for docs in owned_results:
            for doc in docs:
                kind = RootKind(doc.ref.collection)
                owned[kind][doc.ref] = doc

        deleted = 0
        for kind in OWNED_ROOT_KINDS:
            deleted += await self._cascade_all(kind, list(owned[kind].values()))

        edges_deleted = await self.store.delete_all(edge_refs)
        notifications_deleted = await self.core.services.notification.delete_for_user(uid)
        logger.debug(
            "user_dependents_deleted",
            uid=uid,
            owned_roots={kind.value: len(docs) for kind, docs in owned.items()},
            edges=edges_deleted,
            notifications=notifications_deleted,
        )
        return deleted + edges_deleted + notifications_deleted

    async def _sweep_ghost_comments(self, uid: str) -> int:
        """Best-effort removal of the user's comments on roots they do not own.

        Comments go one batch at a time, and each batch is followed by
        lowering the counter of every root it touched by that batch's tally,
        so committed deletions are never left uncounted. A store failure stops
        the sweep and is logged; the comments deleted so far are reported.
        """
        try:
            refs = await self.core.services.comment.author_comment_refs(uid)
        except StoreError:
            logger.exception("ghost_comment_sweep_failed", uid=uid)
            return 0

        deleted = 0
        roots: set[DocRef] = set()
        for chunk in chunked(refs, self.store.max_batch_size):
            try:
                removed = await self.store.delete_all(chunk)
            except StoreError:
                logger.exception("ghost_comment_sweep_failed", uid=uid, deleted=deleted)
                break
            deleted += removed
            tallies = Counter(ref.parent for ref in chunk if ref.parent is not None)
            roots.update(tallies)
            try:
                await self.core.services.counter.decrement_many(tallies)
            except StoreError:
                logger.exception("ghost_comment_counters_unsettled", uid=uid, roots=[str(root) for root in tallies])
        if deleted:
            logger.info("ghost_comments_deleted", uid=uid, deleted=deleted, roots=len(roots))
        return deleted

    async def delete_comment(self, kind: RootKind, root_id: str, comment_id: str) -> int:
        """Delete a comment with all its transitive replies and lower the root's counter.

        Returns the number of comments removed, the comment itself included.
        Replies are found from the root's flat comment list, so replies left
        behind by an earlier partial deletion are removed as well. The counter
        is settled after every committed batch.
        """
        root = kind.ref(root_id)
        (docs,) = await self._enumerate(self.store.query(kind.comments_path(root_id)))
        comment_ids = collect_descendants({doc.id: doc.get("parentId") for doc in docs}, comment_id)
        deleted = 0
        for chunk in chunked((root.child(COMMENTS, cid) for cid in comment_ids), self.store.max_batch_size):
            removed = await self.store.delete_all(chunk)
            if removed:
                await self.core.services.counter.settle(kind, root_id, removed)
            deleted += removed
        logger.info("comment_deleted", kind=kind, root_id=root_id, comment_id=comment_id, deleted=deleted)
        return deleted

    async def _enumerate(self, *queries: Coroutine[Any, Any, Any]) -> list[Any]:
        return await fan_out(*queries, timeout=self.core.config.query_timeout)
