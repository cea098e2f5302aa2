from datetime import datetime
from enum import StrEnum

from pydantic import BaseModel, Field, computed_field, field_validator

from refkeeper.core.store import DocRef
from refkeeper.utils import now


class OrphanReason(StrEnum):
    MISSING_OWNER = "missing_owner"  # Owner uid names no existing user
    MISSING_AUTHOR = "missing_author"  # Topic carries no author at all
    MISSING_RESOLUTION = "missing_resolution"  # Journal entry points at a missing or orphaned resolution
    MISSING_PARENT = "missing_parent"  # Comment's storage parent is missing or orphaned
    MISSING_MIRROR = "missing_mirror"  # Only one half of a follow edge exists


class OrphanRecord(BaseModel):
    """A record whose parent no longer exists."""

    path: str = Field(..., description="Document path of the orphaned record")
    reason: OrphanReason = Field(..., description="Why the record is considered orphaned")

    @field_validator("path")
    @classmethod
    def _check_path(cls, value: str) -> str:
        DocRef(path=value)
        return value

    @property
    def ref(self) -> DocRef:
        return DocRef(path=self.path)


class OrphanReport(BaseModel):
    """Result of a read-only integrity scan, consumed by an explicit cleanup."""

    resolutions: list[OrphanRecord] = Field(default_factory=list)
    topics: list[OrphanRecord] = Field(default_factory=list)
    journal_entries: list[OrphanRecord] = Field(default_factory=list)
    comments: list[OrphanRecord] = Field(default_factory=list)
    half_edges: list[OrphanRecord] = Field(default_factory=list)
    scanned_at: datetime = Field(default_factory=now)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> int:
        return (
            len(self.resolutions)
            + len(self.topics)
            + len(self.journal_entries)
            + len(self.comments)
            + len(self.half_edges)
        )


class CleanupResult(BaseModel):
    """Records removed by an orphan cleanup, per report category."""

    resolutions: int = Field(0, description="Orphaned resolutions removed")
    topics: int = Field(0, description="Orphaned topics removed")
    journal_entries: int = Field(0, description="Orphaned journal entries removed")
    comments: int = Field(0, description="Ghost comments removed")
    half_edges: int = Field(0, description="Follow edge halves removed")
    dependents: int = Field(0, description="Records removed while cascading the orphaned roots")

    @computed_field  # type: ignore[prop-decorator]
    @property
    def deleted_total(self) -> int:
        return self.resolutions + self.topics + self.journal_entries + self.comments + self.half_edges + self.dependents
