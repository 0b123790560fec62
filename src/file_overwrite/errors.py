"""Exceptions raised by file_overwrite."""
from pathlib import Path
from typing import Optional, Union


class FileOverwriteError(Exception):
    """Base class for all file_overwrite errors."""


class AlreadyCompletedError(FileOverwriteError, RuntimeError):
    """The session has been committed and can no longer be modified."""

    def __init__(self, path: Union[str, Path], action: str = "modify"):
        self.path = Path(path)
        super().__init__(
            f"Cannot {action}: the overwrite of {self.path} has been already completed."
        )


class InvalidTransformResultError(FileOverwriteError, TypeError):
    """A transform returned something that cannot be used as new content."""

    def __init__(self, operation: str, value: object):
        self.operation = operation
        self.value = value
        super().__init__(
            f"The value returned from the transform in {operation}() has to be "
            f"a string, not {type(value).__name__}"
        )


class MissingBlockError(FileOverwriteError, ValueError):
    """A staging operation that needs a transform was called without one."""

    def __init__(self, operation: str):
        self.operation = operation
        super().__init__(f"A transform function must be given to {operation}()")


class BackupExistsError(FileOverwriteError, FileExistsError):
    """The resolved backup file exists and clobbering is not allowed."""

    def __init__(self, backup_path: Union[str, Path]):
        self.backup_path = Path(backup_path)
        super().__init__(
            f"Backup file {self.backup_path} exists; pass clobber=True to overwrite it"
        )


class RenameFailure(FileOverwriteError, OSError):
    """Moving the staged file onto the target failed after the original moved.

    The original content is safe at ``moved_to`` (the backup or holding
    path) and the new content at ``temp_path``, but ``target_path`` is absent.
    """

    def __init__(
        self,
        temp_path: Union[str, Path],
        target_path: Union[str, Path],
        moved_to: Optional[Union[str, Path]],
    ):
        self.temp_path = Path(temp_path)
        self.target_path = Path(target_path)
        self.moved_to = Path(moved_to) if moved_to is not None else None
        super().__init__(
            f"Process halted! File system error in renaming the temporary file "
            f"{self.temp_path} back to the original {self.target_path} "
            f"(original content is at {self.moved_to})"
        )


class EncodingConversionError(FileOverwriteError, UnicodeError):
    """Decoding or re-encoding the staged content failed."""

    def __init__(self, encoding: Optional[str], reason: str):
        self.encoding = encoding
        self.reason = reason
        super().__init__(f"Encoding conversion with {encoding!r} failed: {reason}")


class TransformAborted(FileOverwriteError):
    """Raise inside a stream callback to discard the modification."""
