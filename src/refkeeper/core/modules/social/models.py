from datetime import datetime

from pydantic import BaseModel, Field

from refkeeper.core.roots import RootKind
from refkeeper.core.store import DocRef

FOLLOWING = "following"
FOLLOWERS = "followers"


class SocialEdge(BaseModel):
    """Follow relationship stored as two mirrored documents."""

    follower_uid: str = Field(..., description="User who follows")
    followee_uid: str = Field(..., description="User being followed")

    @property
    def following_ref(self) -> DocRef:
        return RootKind.USER.ref(self.follower_uid).child(FOLLOWING, self.followee_uid)

    @property
    def followers_ref(self) -> DocRef:
        return RootKind.USER.ref(self.followee_uid).child(FOLLOWERS, self.follower_uid)

    @property
    def refs(self) -> tuple[DocRef, DocRef]:
        return self.following_ref, self.followers_ref

    @classmethod
    def from_ref(cls, ref: DocRef) -> "SocialEdge":
        """Edge described by either of its mirror documents."""
        owner = ref.parent
        if owner is None or owner.collection != RootKind.USER.value:
            raise ValueError(f"Not a social edge document: '{ref}'")
        if ref.collection_id == FOLLOWING:
            return cls(follower_uid=owner.id, followee_uid=ref.id)
        if ref.collection_id == FOLLOWERS:
            return cls(follower_uid=ref.id, followee_uid=owner.id)
        raise ValueError(f"Not a social edge document: '{ref}'")


class EdgeHalf(BaseModel):
    """Data stored in each mirror document; uid is the user on the other end."""

    uid: str
    created_at: datetime | None = Field(None, alias="createdAt")

    model_config = {"populate_by_name": True}
