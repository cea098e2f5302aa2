from fastapi import APIRouter

from refkeeper.web.deps import AppDep, IdentityDep
from refkeeper.web.openapi import DeletionResult, ErrorResponse

router = APIRouter(tags=["account"])


@router.delete(
    "/account",
    summary="Delete own account",
    description=(
        "Delete the calling user together with everything they own, their follow edges, "
        "their notifications and their comments on other users' content."
    ),
    operation_id="deleteAccount",
    responses={
        200: {"description": "Account deleted"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        503: {"model": ErrorResponse, "description": "Store unavailable, safe to retry"},
    },
)
async def delete_account(app: AppDep, identity: IdentityDep) -> DeletionResult:
    return DeletionResult(deleted_count=await app.delete_user(identity, identity.uid))
