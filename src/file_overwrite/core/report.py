"""Results reported by a commit."""
from dataclasses import dataclass
from enum import Enum


class CommitStatus(Enum):
    """Outcome of ``OverwriteSession.commit``."""

    UNTOUCHED = "untouched"  # nothing was staged, no I/O
    IDENTICAL = "identical"  # staged content equals the file on disk
    UPDATED = "updated"

    def __bool__(self) -> bool:
        return self is not CommitStatus.UNTOUCHED


@dataclass(frozen=True)
class SizeReport:
    """File sizes in bytes before and after the overwrite."""

    old_bytes: int
    new_bytes: int

    @property
    def delta(self) -> int:
        return self.new_bytes - self.old_bytes
