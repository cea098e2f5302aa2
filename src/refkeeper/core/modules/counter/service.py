from collections.abc import Mapping

import structlog

from refkeeper.core.core import Service
from refkeeper.core.fanout import fan_out
from refkeeper.core.roots import COMMENT_COUNT_FIELD, RootKind
from refkeeper.core.store import DocRef
from refkeeper.errors import StoreError

logger = structlog.get_logger(__name__)


class CounterService(Service):
    """Keeps the denormalized ``commentCount`` of root records in step with their comments.

    Deltas are always applied atomically so concurrent deletions do not clobber
    each other; only ``reconcile`` overwrites the stored value.
    """

    async def increment(self, kind: RootKind, root_id: str, n: int = 1) -> int | None:
        """Atomically add n to the root's counter; None if the root does not exist."""
        return await self.store.increment(kind.ref(root_id), COMMENT_COUNT_FIELD, n)

    async def decrement(self, kind: RootKind, root_id: str, n: int) -> int | None:
        """Atomically subtract n from the root's counter and return the new value.

        A missing root is a no-op. A counter that ends up negative had drifted
        before this call and is recomputed from the live comments.
        """
        if n <= 0:
            return None
        value = await self.store.increment(kind.ref(root_id), COMMENT_COUNT_FIELD, -n)
        if value is not None and value < 0:
            logger.warning("comment_count_negative", kind=kind, root_id=root_id, value=value, delta=-n)
            return await self.reconcile(kind, root_id)
        return value

    async def settle(self, kind: RootKind, root_id: str, n: int) -> int | None:
        """Lower the counter after n comments under the root were deleted.

        When the delta cannot be applied the counter is recounted instead, since
        the deleted comments can no longer be found to retry the decrement.
        """
        try:
            return await self.decrement(kind, root_id, n)
        except StoreError:
            logger.warning("comment_count_decrement_failed", kind=kind, root_id=root_id, delta=-n, exc_info=True)
            return await self.reconcile(kind, root_id)

    async def decrement_many(self, tallies: Mapping[DocRef, int]) -> int:
        """Best-effort decrement of several roots at once, keyed by root reference.

        Roots outside the known root collections are skipped. A failure on one
        root is logged and does not stop the others. Returns the number of roots
        whose counter was updated.
        """
        targets = [(kind, ref.id, n) for ref, n in tallies.items() if (kind := RootKind.from_collection(ref.collection))]
        results = await fan_out(
            *(self._decrement_logged(kind, root_id, n) for kind, root_id, n in targets),
            timeout=self.core.config.query_timeout,
        )
        return sum(results)

    async def _decrement_logged(self, kind: RootKind, root_id: str, n: int) -> bool:
        try:
            return await self.settle(kind, root_id, n) is not None
        except StoreError:
            logger.exception("comment_count_settle_failed", kind=kind, root_id=root_id, delta=-n)
            return False

    async def reconcile(self, kind: RootKind, root_id: str) -> int:
        """Recount the live comments under a root and overwrite its counter.

        Safe to run at any time since the value comes from the comment records
        themselves. A missing root is left alone and reported as 0.
        """
        count = await self.store.count(kind.comments_path(root_id))
        updated = await self.store.update(kind.ref(root_id), {COMMENT_COUNT_FIELD: count})
        if not updated:
            logger.debug("reconcile_missing_root", kind=kind, root_id=root_id)
            return 0
        logger.info("comment_count_reconciled", kind=kind, root_id=root_id, value=count)
        return count
