"""Back up a file and overwrite it safely, staging the new content first."""

from .core import (
    BackupPolicy,
    CommitStatus,
    MatchEngine,
    MatchResult,
    OverwriteOptions,
    OverwriteSession,
    SessionState,
    SizeReport,
    StreamAction,
    overwrite_each_line,
    overwrite_lines,
    overwrite_stream,
    overwrite_text,
)
from .errors import (
    AlreadyCompletedError,
    BackupExistsError,
    EncodingConversionError,
    FileOverwriteError,
    InvalidTransformResultError,
    MissingBlockError,
    RenameFailure,
    TransformAborted,
)

__version__ = "0.1.0"

__all__ = [
    # Session
    "OverwriteSession",
    "OverwriteOptions",
    "SessionState",
    "StreamAction",
    "CommitStatus",
    "SizeReport",
    "BackupPolicy",
    "MatchEngine",
    "MatchResult",
    # One-shot helpers
    "overwrite_stream",
    "overwrite_text",
    "overwrite_lines",
    "overwrite_each_line",
    # Errors
    "FileOverwriteError",
    "AlreadyCompletedError",
    "InvalidTransformResultError",
    "MissingBlockError",
    "BackupExistsError",
    "RenameFailure",
    "EncodingConversionError",
    "TransformAborted",
]
