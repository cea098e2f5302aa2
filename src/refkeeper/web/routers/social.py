from fastapi import APIRouter

from refkeeper.core.modules.social.models import SocialEdge
from refkeeper.web.deps import AppDep, IdentityDep
from refkeeper.web.openapi import DeletionResult, ErrorResponse

router = APIRouter(tags=["social"])


@router.put(
    "/following/{uid}",
    summary="Follow user",
    description="Follow another user. Both halves of the edge are written in one batch.",
    operation_id="followUser",
    responses={
        200: {"description": "Now following"},
        400: {"model": ErrorResponse, "description": "Cannot follow yourself"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "User not found"},
    },
)
async def follow_user(uid: str, app: AppDep, identity: IdentityDep) -> SocialEdge:
    return await app.follow_user(identity, uid)


@router.delete(
    "/following/{uid}",
    summary="Unfollow user",
    description="Stop following a user, removing both halves of the edge.",
    operation_id="unfollowUser",
    responses={
        200: {"description": "Edge removed"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def unfollow_user(uid: str, app: AppDep, identity: IdentityDep) -> DeletionResult:
    return DeletionResult(deleted_count=await app.unfollow_user(identity, uid))
