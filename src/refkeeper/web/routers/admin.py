from fastapi import APIRouter
from pydantic import BaseModel, Field

from refkeeper.core.modules.orphan.models import CleanupResult, OrphanReport
from refkeeper.core.roots import RootKind
from refkeeper.web.deps import AppDep, IdentityDep
from refkeeper.web.openapi import DeletionResult, ErrorResponse

router = APIRouter(prefix="/admin", tags=["admin"])


class ReconcileResult(BaseModel):
    """Counter value after reconciliation."""

    comment_count: int = Field(..., description="Number of live comments under the root")


@router.delete(
    "/users/{uid}",
    summary="Delete user",
    description="Delete a user account and everything depending on it. Only accessible by admin users.",
    operation_id="adminDeleteUser",
    responses={
        200: {"description": "User deleted"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Admin privileges required"},
        503: {"model": ErrorResponse, "description": "Store unavailable, safe to retry"},
    },
)
async def delete_user(uid: str, app: AppDep, identity: IdentityDep) -> DeletionResult:
    return DeletionResult(deleted_count=await app.delete_user(identity, uid))


@router.post(
    "/orphans/scan",
    summary="Scan for orphans",
    description="List records whose owner, author, resolution, parent or mirror is missing. Nothing is modified.",
    operation_id="scanOrphans",
    responses={
        200: {"description": "Orphan report"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Admin privileges required"},
        503: {"model": ErrorResponse, "description": "Store unavailable, safe to retry"},
    },
)
async def scan_orphans(app: AppDep, identity: IdentityDep) -> OrphanReport:
    return await app.scan_orphans(identity)


@router.post(
    "/orphans/clean",
    summary="Clean orphans",
    description="Delete the records listed in a report produced by the scan endpoint.",
    operation_id="cleanOrphans",
    responses={
        200: {"description": "Cleanup counts"},
        400: {"model": ErrorResponse, "description": "Report lists a path under the wrong category"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Admin privileges required"},
        503: {"model": ErrorResponse, "description": "Store unavailable, safe to retry"},
    },
)
async def clean_orphans(report: OrphanReport, app: AppDep, identity: IdentityDep) -> CleanupResult:
    return await app.clean_orphans(identity, report)


@router.post(
    "/roots/{kind}/{root_id}/reconcile",
    summary="Reconcile comment counter",
    description="Recompute a root's comment counter from the comments that actually exist.",
    operation_id="reconcileCommentCount",
    responses={
        200: {"description": "Counter reconciled"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Admin privileges required"},
    },
)
async def reconcile_comment_count(kind: RootKind, root_id: str, app: AppDep, identity: IdentityDep) -> ReconcileResult:
    return ReconcileResult(comment_count=await app.reconcile_comment_count(identity, kind, root_id))
