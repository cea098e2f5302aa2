from pydantic import BaseModel, Field


class Identity(BaseModel):
    """Caller identity verified by the authenticating gateway."""

    uid: str = Field(..., description="Authenticated user id")
    is_admin: bool = Field(False, description="Whether the caller holds the admin role")
