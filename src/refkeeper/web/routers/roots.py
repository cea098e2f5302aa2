from fastapi import APIRouter

from refkeeper.core.roots import RootKind
from refkeeper.web.deps import AppDep, IdentityDep
from refkeeper.web.openapi import DeletionResult, ErrorResponse

router = APIRouter(tags=["roots"])


@router.delete(
    "/roots/{kind}/{root_id}",
    summary="Delete root",
    description=(
        "Delete a user, resolution, forum topic or journal entry with all its dependents. "
        "Only the owner or an admin may delete. Deleting a root that no longer exists returns 0."
    ),
    operation_id="deleteRoot",
    responses={
        200: {"description": "Root deleted"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not the owner"},
        503: {"model": ErrorResponse, "description": "Store unavailable, safe to retry"},
    },
)
async def delete_root(kind: RootKind, root_id: str, app: AppDep, identity: IdentityDep) -> DeletionResult:
    return DeletionResult(deleted_count=await app.delete_root(identity, kind, root_id))
