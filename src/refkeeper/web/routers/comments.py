"""Comment-related API endpoints."""

from fastapi import APIRouter
from pydantic import BaseModel, Field

from refkeeper.core.modules.comment.models import Comment, CommentNode
from refkeeper.core.roots import RootKind
from refkeeper.web.deps import AppDep, IdentityDep
from refkeeper.web.openapi import DeletionResult, ErrorResponse

router: APIRouter = APIRouter(tags=["comments"])


class CreateCommentRequest(BaseModel):
    """Request to create a new comment."""

    content: str = Field(..., description="The comment text", min_length=1)
    parent_id: str | None = Field(None, description="Comment being replied to, omitted for a top-level reply")


@router.get(
    "/roots/{kind}/{root_id}/comments",
    summary="Get comment thread",
    description="Get all comments of a root arranged as threaded replies, oldest first.",
    operation_id="getCommentThread",
    responses={
        200: {"description": "Threaded comments"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def get_comment_thread(kind: RootKind, root_id: str, app: AppDep, identity: IdentityDep) -> list[CommentNode]:
    return await app.get_comment_thread(identity, kind, root_id)


@router.post(
    "/roots/{kind}/{root_id}/comments",
    summary="Create comment",
    description="Reply to a root or to one of its comments. The root's comment counter is incremented.",
    operation_id="createComment",
    status_code=201,
    responses={
        201: {"description": "Comment created successfully"},
        400: {"model": ErrorResponse, "description": "Empty comment or root kind without comments"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Root or parent comment not found"},
    },
)
async def create_comment(
    kind: RootKind, root_id: str, request: CreateCommentRequest, app: AppDep, identity: IdentityDep
) -> Comment:
    return await app.create_comment(identity, kind, root_id, request.content, request.parent_id)


@router.delete(
    "/roots/{kind}/{root_id}/comments/{comment_id}",
    summary="Delete comment",
    description=(
        "Delete a comment and all its transitive replies, lowering the root's counter by the number removed. "
        "Allowed for the comment author, the root owner and admins."
    ),
    operation_id="deleteComment",
    responses={
        200: {"description": "Comment deleted"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Neither the author nor the root owner"},
        503: {"model": ErrorResponse, "description": "Store unavailable, safe to retry"},
    },
)
async def delete_comment(
    kind: RootKind, root_id: str, comment_id: str, app: AppDep, identity: IdentityDep
) -> DeletionResult:
    return DeletionResult(deleted_count=await app.delete_comment(identity, kind, root_id, comment_id))
