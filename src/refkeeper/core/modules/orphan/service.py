import structlog

from refkeeper.core.core import Service
from refkeeper.core.fanout import fan_out
from refkeeper.core.modules.orphan.models import CleanupResult, OrphanReason, OrphanRecord, OrphanReport
from refkeeper.core.modules.social.models import SocialEdge
from refkeeper.core.roots import COMMENTS, RootKind
from refkeeper.core.store import DocRef
from refkeeper.errors import ValidationError

logger = structlog.get_logger(__name__)


class OrphanService(Service):
    """Finds records whose parent no longer exists and removes them on request.

    Scanning never writes. Concurrent writes during a scan are tolerated and
    handled by running the scan again; nothing here takes a lock. A topic
    deleted after the topic listing but before the comment listing leaves its
    comments looking valid until the next scan.
    """

    async def scan(self) -> OrphanReport:
        """Cross-reference every dependent collection against the records it points at."""
        user_ids = await self.core.services.user.list_user_ids()
        resolutions, topics, entries = await fan_out(
            self.store.query(RootKind.RESOLUTION.value),
            self.store.query(RootKind.TOPIC.value),
            self.store.query(RootKind.JOURNAL_ENTRY.value),
            timeout=self.core.config.query_timeout,
        )
        report = OrphanReport()

        for doc in resolutions:
            if RootKind.RESOLUTION.owner_of(doc) not in user_ids:
                report.resolutions.append(OrphanRecord(path=doc.ref.path, reason=OrphanReason.MISSING_OWNER))

        for doc in topics:
            owner = RootKind.TOPIC.owner_of(doc)
            if owner is None:
                report.topics.append(OrphanRecord(path=doc.ref.path, reason=OrphanReason.MISSING_AUTHOR))
            elif owner not in user_ids:
                report.topics.append(OrphanRecord(path=doc.ref.path, reason=OrphanReason.MISSING_OWNER))

        valid_resolutions = {doc.id for doc in resolutions} - {r.ref.id for r in report.resolutions}
        for doc in entries:
            resolution_id = doc.get("resolutionId")
            if RootKind.JOURNAL_ENTRY.owner_of(doc) not in user_ids:
                report.journal_entries.append(OrphanRecord(path=doc.ref.path, reason=OrphanReason.MISSING_OWNER))
            elif resolution_id and resolution_id not in valid_resolutions:
                report.journal_entries.append(OrphanRecord(path=doc.ref.path, reason=OrphanReason.MISSING_RESOLUTION))

        # Comments are judged against the roots that survived the checks above
        valid_parents: dict[RootKind, set[str]] = {
            RootKind.RESOLUTION: valid_resolutions,
            RootKind.TOPIC: {doc.id for doc in topics} - {r.ref.id for r in report.topics},
            RootKind.JOURNAL_ENTRY: {doc.id for doc in entries} - {r.ref.id for r in report.journal_entries},
        }
        (comments,) = await fan_out(self.store.query_group(COMMENTS), timeout=self.core.config.query_timeout)
        for doc in comments:
            parent = doc.ref.parent
            kind = RootKind.from_collection(parent.collection) if parent else None
            if parent is None or kind not in valid_parents or parent.id not in valid_parents[kind]:
                report.comments.append(OrphanRecord(path=doc.ref.path, reason=OrphanReason.MISSING_PARENT))

        half_edges = await self.core.services.social.find_half_edges()
        report.half_edges = [OrphanRecord(path=ref.path, reason=OrphanReason.MISSING_MIRROR) for ref in half_edges]

        logger.info(
            "orphan_scan_completed",
            users=len(user_ids),
            orphan_resolutions=len(report.resolutions),
            orphan_topics=len(report.topics),
            orphan_journal_entries=len(report.journal_entries),
            orphan_comments=len(report.comments),
            half_edges=len(report.half_edges),
        )
        return report

    async def clean(self, report: OrphanReport) -> CleanupResult:
        """Delete the records listed in a scan report.

        Orphaned roots are removed through the cascade service so their own
        dependents go with them. A half edge is only removed if its mirror is
        still missing, since a follow may have completed since the scan.
        """
        validate_report(report)
        result = CleanupResult()

        for records, kind, attr in (
            (report.resolutions, RootKind.RESOLUTION, "resolutions"),
            (report.topics, RootKind.TOPIC, "topics"),
            (report.journal_entries, RootKind.JOURNAL_ENTRY, "journal_entries"),
        ):
            for record in records:
                outcome = await self.core.services.cascade.cascade(kind, record.ref.id)
                setattr(result, attr, getattr(result, attr) + outcome.root_removed)
                result.dependents += outcome.dependents

        result.comments = await self.store.delete_all(record.ref for record in report.comments)

        stale: list[DocRef] = []
        for record in report.half_edges:
            edge = SocialEdge.from_ref(record.ref)
            mirror = edge.followers_ref if record.ref == edge.following_ref else edge.following_ref
            if await self.store.get(mirror) is None:
                stale.append(record.ref)
        result.half_edges = await self.store.delete_all(stale)

        logger.info("orphan_cleanup_completed", **result.model_dump())
        return result


def validate_report(report: OrphanReport) -> None:
    """Reject a report listing paths outside the category they are filed under."""
    for records, kind in (
        (report.resolutions, RootKind.RESOLUTION),
        (report.topics, RootKind.TOPIC),
        (report.journal_entries, RootKind.JOURNAL_ENTRY),
    ):
        for record in records:
            if record.ref.collection != kind.value:
                raise ValidationError(f"'{record.path}' is not a {kind.value} document")

    for record in report.comments:
        if record.ref.collection_id != COMMENTS or record.ref.parent is None:
            raise ValidationError(f"'{record.path}' is not a comment document")

    for record in report.half_edges:
        try:
            SocialEdge.from_ref(record.ref)
        except ValueError as e:
            raise ValidationError(str(e)) from e
