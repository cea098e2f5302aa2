from typing import NamedTuple


class CascadeOutcome(NamedTuple):
    """What one root cascade removed."""

    dependents: int  # Records removed because they depended on the root
    root_removed: int  # 1 if the root document itself existed and was deleted, else 0

    @property
    def total(self) -> int:
        return self.dependents + self.root_removed
