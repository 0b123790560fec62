"""Core overwrite modules."""

from .backup import DEFAULT_SUFFIX_FORMAT, BackupPolicy
from .matching import MatchEngine, MatchResult, as_transform, compile_pattern
from .report import CommitStatus, SizeReport
from .safety import StagedTempFile, files_identical, make_temp_path
from .session import (
    OverwriteOptions,
    OverwriteSession,
    StreamAction,
    overwrite_each_line,
    overwrite_lines,
    overwrite_stream,
    overwrite_text,
)
from .stage import (
    BufferStage,
    LineStage,
    ResultKind,
    SessionState,
    StreamStage,
    classify_result,
    split_lines,
)
from .translate import CharTranslator, tr, tr_s

__all__ = [
    # Session
    'OverwriteSession',
    'OverwriteOptions',
    'StreamAction',
    'SessionState',
    'overwrite_stream',
    'overwrite_text',
    'overwrite_lines',
    'overwrite_each_line',

    # Staging
    'BufferStage',
    'LineStage',
    'StreamStage',
    'ResultKind',
    'classify_result',
    'split_lines',

    # Matching
    'MatchEngine',
    'MatchResult',
    'as_transform',
    'compile_pattern',

    # Backup and results
    'BackupPolicy',
    'DEFAULT_SUFFIX_FORMAT',
    'CommitStatus',
    'SizeReport',

    # Safety mechanisms
    'StagedTempFile',
    'files_identical',
    'make_temp_path',

    # Character translation
    'CharTranslator',
    'tr',
    'tr_s',
]
