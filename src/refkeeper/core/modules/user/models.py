from datetime import datetime

from pydantic import BaseModel, Field

from refkeeper.core.store import DocumentModel


class User(DocumentModel):
    """User profile document; the id is the authenticated uid."""

    username: str = ""
    display_name: str | None = None
    photo_url: str | None = None
    created_at: datetime | None = None


class AuthorRef(BaseModel):
    """Author identity denormalized onto the records a user writes."""

    uid: str = Field(..., description="Author uid")
    username: str = Field("Anonymous", description="Username at the time of writing")
    photo_url: str | None = Field(None, alias="photoUrl", description="Avatar URL at the time of writing")

    model_config = {"populate_by_name": True}

    @classmethod
    def from_user(cls, user: User) -> "AuthorRef":
        return cls(uid=user.id, username=user.username or "Anonymous", photo_url=user.photo_url)
