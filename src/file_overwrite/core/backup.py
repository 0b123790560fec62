"""Backup file naming."""
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

# One-second resolution: two backups made within the same second collide.
DEFAULT_SUFFIX_FORMAT = ".%Y%m%d%H%M%S.bak"

Suffix = Union[bool, str, None]


@dataclass(frozen=True)
class BackupPolicy:
    """Where the original file goes when it is overwritten.

    Resolution order: an explicit override passed to ``resolve``, then
    ``explicit_path``, then ``target + suffix`` when the suffix is set
    (``True`` selects the default timestamp suffix), otherwise no backup.
    Resolving never touches the filesystem.
    """

    target: Path
    explicit_path: Optional[Path] = None
    suffix: Suffix = True
    clock: Callable[[], datetime] = field(
        default=datetime.now, repr=False, compare=False
    )

    def __post_init__(self):
        object.__setattr__(self, "target", Path(self.target))
        if self.explicit_path is not None:
            object.__setattr__(self, "explicit_path", Path(self.explicit_path))

    @property
    def enabled(self) -> bool:
        """True if a commit would write a backup."""
        return self.resolve() is not None

    def default_suffix(self) -> str:
        """Timestamped suffix for the current time, e.g. ``.20240101120000.bak``."""
        return self.clock().strftime(DEFAULT_SUFFIX_FORMAT)

    def path_for_suffix(self, suffix: Union[bool, str]) -> Path:
        """Backup path for a suffix; ``True`` means the timestamped default."""
        if suffix is True:
            suffix = self.default_suffix()
        return Path(f"{self.target}{suffix}")

    def resolve(self, explicit: Optional[Union[str, Path]] = None) -> Optional[Path]:
        """Return the backup path, or None if no backup is to be made."""
        if explicit:
            return Path(explicit)
        if self.explicit_path is not None:
            return self.explicit_path
        if self.suffix:
            return self.path_for_suffix(self.suffix)
        return None

    def preview(self, suffix: Suffix) -> Optional[Path]:
        """Backup path the given suffix would produce, ignoring the configured one."""
        if not suffix:
            return None
        return self.path_for_suffix(suffix)

    def with_suffix(self, suffix: Suffix) -> "BackupPolicy":
        return replace(self, suffix=suffix)

    def with_explicit_path(
        self, explicit_path: Optional[Union[str, Path]]
    ) -> "BackupPolicy":
        return replace(
            self, explicit_path=Path(explicit_path) if explicit_path else None
        )
