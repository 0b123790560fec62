"""Backup-and-overwrite controller for a single file.

An ``OverwriteSession`` stages the new content of a file in one of three
modes, then commits it by moving the original out of the way (to a backup
or a disposable holding file) and renaming a temporary file into place.
The target is never left partially written.

Example:
    session = OverwriteSession("a.txt", suffix="~")
    session.sub(r"(li)(n)", lambda m: m[1].upper() + m[2]).gsub("abc", "xyz")
    session.commit()
    session.sizes  # SizeReport(old_bytes=40, new_bytes=40)

A session is a sequential state machine and must not be shared between
threads without external locking.
"""
import codecs
import logging
import os
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Optional, TextIO, Union

from ..errors import (
    AlreadyCompletedError,
    BackupExistsError,
    EncodingConversionError,
    InvalidTransformResultError,
    MissingBlockError,
    RenameFailure,
    TransformAborted,
)
from .backup import BackupPolicy, Suffix
from .matching import MatchEngine, MatchResult, PatternLike, Transform, as_transform
from .report import CommitStatus, SizeReport
from .safety import StagedTempFile, files_identical, make_temp_path, move_file, touch
from .stage import (
    BufferStage,
    ContentStage,
    LineStage,
    ResultKind,
    SessionState,
    StreamStage,
    classify_result,
    coerce_lines,
    coerce_text,
    split_lines,
)
from .translate import tr as translate_tr
from .translate import tr_s as translate_tr_s

logger = logging.getLogger(__name__)

DEFAULT_ENCODING = "utf-8"

_UNSET: Any = object()


def _lookup_codec(encoding: str):
    try:
        codecs.lookup(encoding)
    except LookupError as e:
        raise EncodingConversionError(encoding, str(e)) from e


class StreamAction(Enum):
    """Value a stream callback may return; ABORT discards the modification."""

    CONTINUE = "continue"
    ABORT = "abort"


StreamCallback = Callable[[TextIO, TextIO], Optional[StreamAction]]


@dataclass(frozen=True)
class OverwriteOptions:
    """Snapshot of the settings of a session.

    ``verbose`` is tri-state: None silences warnings, False (default)
    emits warnings only, True also logs what the commit did.
    """

    dry_run: bool = False
    verbose: Optional[bool] = False
    clobber: bool = False
    touch: bool = False
    input_encoding: Optional[str] = None
    output_encoding: Optional[str] = None
    transfer_encoding: Optional[str] = None

    @property
    def read_encoding(self) -> str:
        return self.input_encoding or DEFAULT_ENCODING

    @property
    def write_encoding(self) -> str:
        return self.output_encoding or self.input_encoding or DEFAULT_ENCODING


class OverwriteSession:
    """Stage new content for a file, then back it up and overwrite it.

    Staging modes:
    - stream: ``modify(func)`` passes (reader, writer); not chainable
    - buffer: ``read``, ``each_line``, ``sub``, ``gsub``, ``tr``, ``tr_s``,
      ``replace_with`` work on one string; chainable
    - lines: ``readlines(func)`` works on a list of lines; chainable

    Switching modes while content is staged discards it with a warning and
    starts again from the original file. After ``commit`` the session is
    frozen and every mutation raises ``AlreadyCompletedError``.
    """

    def __init__(
        self,
        file_path: Union[str, Path],
        backup: Optional[Union[str, Path]] = None,
        suffix: Suffix = True,
        dry_run: bool = False,
        verbose: Optional[bool] = False,
        clobber: bool = False,
        touch: bool = False,
        input_encoding: Optional[str] = None,
        output_encoding: Optional[str] = None,
        transfer_encoding: Optional[str] = None,
    ):
        """Initialize an overwrite session.

        Args:
            file_path: File to overwrite
            backup: Explicit backup path; takes precedence over suffix
            suffix: Backup suffix; True for a timestamp suffix, False/None for no backup
            dry_run: Go through the commit without touching the filesystem
            verbose: None for silence, True to log the commit summary
            clobber: Allow overwriting an existing backup file
            touch: Update the timestamp even if the content is unchanged
            input_encoding: Encoding of the original file
            output_encoding: Encoding of the new file (defaults to input_encoding)
            transfer_encoding: Encoding the staged text must be representable in
        """
        self._completed = False
        self.path = Path(file_path)
        self.backup_policy = BackupPolicy(self.path, backup, suffix)
        self.options = OverwriteOptions(
            dry_run=dry_run,
            verbose=verbose,
            clobber=clobber,
            touch=touch,
            input_encoding=input_encoding,
            output_encoding=output_encoding,
            transfer_encoding=transfer_encoding,
        )
        self.last_match: Optional[MatchResult] = None
        self.sizes: Optional[SizeReport] = None
        self._stage: Optional[ContentStage] = None

    def __setattr__(self, name: str, value: Any):
        if self.__dict__.get("_completed"):
            raise AlreadyCompletedError(self.path, f"set {name}")
        super().__setattr__(name, value)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

    def __repr__(self) -> str:
        return f"OverwriteSession({str(self.path)!r}, state={self.state.value})"

    ########################################################
    # State
    ########################################################

    @property
    def state(self) -> SessionState:
        if self._completed:
            return SessionState.COMPLETED
        if self._stage is None:
            return SessionState.FRESH
        return self._stage.mode

    @property
    def is_fresh(self) -> bool:
        return self.state is SessionState.FRESH

    @property
    def is_completed(self) -> bool:
        return self._completed

    @property
    def is_ready(self) -> bool:
        """True if there is staged content waiting to be committed."""
        return not self.is_fresh and not self.is_completed

    @property
    def is_chainable(self) -> Optional[bool]:
        """Whether a further buffer or line operation continues the staged content.

        None when nothing is staged yet.
        """
        state = self.state
        if state is SessionState.FRESH:
            return None
        return state in (SessionState.BUFFER, SessionState.LINES)

    @property
    def temporary_filename(self) -> Optional[str]:
        if isinstance(self._stage, StreamStage):
            return str(self._stage.temp.path)
        return None

    @property
    def backup(self) -> Optional[Path]:
        """Path the original will be backed up to, or None."""
        return self.backup_policy.resolve()

    @backup.setter
    def backup(self, path: Optional[Union[str, Path]]):
        self.backup_policy = self.backup_policy.with_explicit_path(path)

    def preview_backup(self, suffix: Suffix) -> Optional[Path]:
        """Backup path the given suffix would give, without changing anything."""
        return self.backup_policy.preview(suffix)

    def _set_option(self, **changes):
        self.options = replace(self.options, **changes)

    @property
    def verbose(self) -> Optional[bool]:
        return self.options.verbose

    @verbose.setter
    def verbose(self, value: Optional[bool]):
        self._set_option(verbose=value)

    @property
    def input_encoding(self) -> Optional[str]:
        return self.options.input_encoding

    @input_encoding.setter
    def input_encoding(self, value: Optional[str]):
        self._set_option(input_encoding=value)

    @property
    def output_encoding(self) -> Optional[str]:
        return self.options.output_encoding

    @output_encoding.setter
    def output_encoding(self, value: Optional[str]):
        self._set_option(output_encoding=value)

    @property
    def transfer_encoding(self) -> Optional[str]:
        return self.options.transfer_encoding

    @transfer_encoding.setter
    def transfer_encoding(self, value: Optional[str]):
        self._set_option(transfer_encoding=value)

    ########################################################
    # Content inspection
    ########################################################

    def dump(self) -> str:
        """Return the content that would replace the file.

        Once completed, this is the content of the overwritten file.
        """
        if self._stage is not None:
            return self._stage.text()
        if self._completed:
            return self._read_file(self.options.write_encoding)
        return self._read_original()

    def is_empty(self) -> bool:
        return not self.dump()

    def endswith(self, suffix: Union[str, tuple[str, ...]]) -> bool:
        return self.dump().endswith(suffix)

    def is_valid_encoding(self) -> Optional[bool]:
        """True if the current content can be written with the output encoding.

        Returns None once the session is completed.
        """
        if self._completed:
            return None
        try:
            self.dump().encode(self.options.write_encoding)
        except (EncodingConversionError, UnicodeEncodeError, LookupError):
            return False
        return True

    ########################################################
    # Staging internals
    ########################################################

    def _warn(self, message: str):
        if self.options.verbose is not None:
            logger.warning(message)

    def _ensure_active(self, action: str):
        if self._completed:
            raise AlreadyCompletedError(self.path, action)

    def _read_file(self, encoding: str) -> str:
        try:
            with open(self.path, encoding=encoding, newline="") as f:
                return f.read()
        except (UnicodeDecodeError, LookupError) as e:
            raise EncodingConversionError(encoding, str(e)) from e

    def _transcode(self, text: str, encoding: Optional[str] = None) -> str:
        encoding = encoding or self.options.transfer_encoding
        if not encoding:
            return text
        try:
            return text.encode(encoding).decode(encoding)
        except (UnicodeError, LookupError) as e:
            raise EncodingConversionError(encoding, str(e)) from e

    def _read_original(self) -> str:
        return self._transcode(self._read_file(self.options.read_encoding))

    def _discard_stage(self):
        if self._stage is not None:
            self._stage.discard()
            self._stage = None

    def _stage_for(self, mode: SessionState, separator: str = "\n"):
        """Return the buffer or line stage, reading the original if needed."""
        current = self._stage
        if current is not None and current.mode is mode:
            return current

        text = self._read_original()
        if mode is SessionState.LINES:
            stage = LineStage(split_lines(text, separator))
        else:
            stage = BufferStage(text)

        if current is not None:
            self._warn(f"The file ({self.path}) is reread from the beginning.")
            current.discard()
        self._stage = stage
        return stage

    def _buffer(self) -> BufferStage:
        return self._stage_for(SessionState.BUFFER)

    @staticmethod
    def _checked(transform: Transform, operation: str) -> Transform:
        return lambda match: coerce_text(transform(match), operation)

    def _abort(self, reason: str = ""):
        self._warn(f"Modification of {self.path} is discarded. {reason}".rstrip())
        self.reset()

    ########################################################
    # Stream mode
    ########################################################

    def modify(self, func: Optional[StreamCallback] = None) -> "OverwriteSession":
        """Write the new content through a (reader, writer) pair.

        The reader reads the original file and the writer writes to a
        temporary file in the same directory. This always starts from the
        original file, so calling it again replaces the earlier result.

        Return ``StreamAction.ABORT`` or raise ``TransformAborted`` from
        func to discard the modification; any other exception also resets
        the session and is re-raised.

        Args:
            func: Callable taking (reader, writer)

        Returns:
            self
        """
        self._ensure_active("modify")
        if func is None:
            raise MissingBlockError("modify")

        if self._stage is not None:
            self._warn(f"The file ({self.path}) is reread from the beginning.")
        self.reset()

        _lookup_codec(self.options.read_encoding)
        _lookup_codec(self.options.write_encoding)
        temp = StagedTempFile(self.path, self.options.write_encoding)
        self._stage = StreamStage(temp)
        try:
            with open(
                self.path, encoding=self.options.read_encoding, newline=""
            ) as reader, temp.open() as writer:
                action = func(reader, writer)
        except TransformAborted as e:
            self._abort(str(e))
            return self
        except (UnicodeDecodeError, UnicodeEncodeError) as e:
            self.reset()
            raise EncodingConversionError(e.encoding, str(e)) from e
        except Exception:
            self.reset()
            raise

        if action is StreamAction.ABORT:
            self._abort()
        return self

    ########################################################
    # Line-sequence mode
    ########################################################

    def readlines(
        self, func: Optional[Callable[[list[str]], Any]] = None, separator: str = "\n"
    ) -> "OverwriteSession":
        """Transform the content as a list of lines.

        Each line keeps its separator and the lines are joined with
        nothing when written. Returning a list keeps the line mode;
        returning a string switches the session to buffer mode.

        Args:
            func: Callable taking the list of lines
            separator: Line separator used when first splitting the file

        Returns:
            self
        """
        self._ensure_active("readlines")
        if func is None:
            raise MissingBlockError("readlines")

        stage = self._stage_for(SessionState.LINES, separator)
        result = func(list(stage.lines))
        kind = classify_result(result)
        if kind is ResultKind.SEQUENCE:
            stage.lines = coerce_lines(result, "readlines")
        elif kind is ResultKind.TEXT:
            self._stage = BufferStage(result)
        else:
            raise InvalidTransformResultError("readlines", result)
        return self

    ########################################################
    # Buffer mode
    ########################################################

    def read(self, func: Optional[Callable[[str], str]] = None) -> "OverwriteSession":
        """Transform the whole content as a string.

        Without func this only switches the session to buffer mode.
        """
        self._ensure_active("read")
        stage = self._buffer()
        if func is None:
            return self

        result = func(stage.buffer)
        if classify_result(result) is not ResultKind.TEXT:
            raise InvalidTransformResultError("read", result)
        if not result:
            self._warn(f"Empty string returned from the transform in read() for {self.path}")
        stage.buffer = result
        return self

    def replace_with(self, text: str) -> "OverwriteSession":
        """Replace the whole content with text."""
        self._ensure_active("replace_with")
        stage = self._buffer()
        stage.buffer = coerce_text(text, "replace_with")
        return self

    def each_line(
        self, func: Optional[Callable[[str], Any]] = None, separator: str = "\n"
    ) -> "OverwriteSession":
        """Transform the content line by line; each line keeps its separator."""
        self._ensure_active("each_line")
        if func is None:
            raise MissingBlockError("each_line")

        stage = self._buffer()
        stage.buffer = "".join(
            coerce_text(func(line), "each_line")
            for line in split_lines(stage.buffer, separator)
        )
        return self

    def sub(
        self,
        pattern: PatternLike,
        replacement: Optional[Union[str, Transform]] = None,
        max_count: int = 1,
        flags: int = 0,
    ) -> "OverwriteSession":
        """Replace the first match of pattern.

        replacement is a template string (``\\1``, ``\\g<name>``) or a
        callable receiving a MatchResult. The match is kept in
        ``last_match`` (None if nothing matched). A max_count other than 1
        delegates to ``gsub``.
        """
        if max_count != 1:
            return self.gsub(pattern, replacement, max_count=max_count, flags=flags)

        self._ensure_active("sub")
        if replacement is None:
            raise MissingBlockError("sub")

        transform = self._checked(as_transform(replacement), "sub")
        stage = self._buffer()
        stage.buffer, self.last_match = MatchEngine.replace_first(
            stage.buffer, pattern, transform, flags
        )
        return self

    def gsub(
        self,
        pattern: PatternLike,
        replacement: Optional[Union[str, Transform]] = None,
        max_count: int = 0,
        flags: int = 0,
    ) -> "OverwriteSession":
        """Replace matches of pattern from left to right.

        At most max_count matches are replaced (all of them when
        max_count <= 0). ``last_match`` is the last replaced match.
        """
        if max_count == 1:
            return self.sub(pattern, replacement, flags=flags)

        self._ensure_active("gsub")
        if replacement is None:
            raise MissingBlockError("gsub")

        transform = self._checked(as_transform(replacement), "gsub")
        stage = self._buffer()
        stage.buffer, self.last_match = MatchEngine.replace_all(
            stage.buffer, pattern, transform, max_count, flags
        )
        return self

    def tr(self, from_set: str, to_set: str) -> "OverwriteSession":
        """Translate characters, like the ``tr`` command."""
        self._ensure_active("tr")
        stage = self._buffer()
        stage.buffer = translate_tr(stage.buffer, from_set, to_set)
        return self

    def tr_s(self, from_set: str, to_set: str) -> "OverwriteSession":
        """Translate characters and squeeze runs of the same translated character."""
        self._ensure_active("tr_s")
        stage = self._buffer()
        stage.buffer = translate_tr_s(stage.buffer, from_set, to_set)
        return self

    ########################################################
    # Encodings
    ########################################################

    def encode(self, encoding: str) -> str:
        """Set the transfer encoding and pass the staged text through it.

        The setting survives ``reset()``. Content already written in
        stream mode is not affected.
        """
        self._ensure_active("encode")
        _lookup_codec(encoding)
        stage = self._stage
        if isinstance(stage, BufferStage):
            stage.buffer = self._transcode(stage.buffer, encoding)
        elif isinstance(stage, LineStage):
            stage.lines = [self._transcode(line, encoding) for line in stage.lines]
        self._set_option(transfer_encoding=encoding)
        return encoding

    def force_encoding(self, encoding: str) -> str:
        """Set the input encoding and reinterpret the staged text with it.

        The staged text is re-encoded with the previous input encoding and
        decoded again with the new one. The setting survives ``reset()``.
        """
        self._ensure_active("force_encoding")
        _lookup_codec(encoding)
        previous = self.options.read_encoding

        def reinterpret(text: str) -> str:
            try:
                return text.encode(previous).decode(encoding)
            except (UnicodeError, LookupError) as e:
                raise EncodingConversionError(encoding, str(e)) from e

        stage = self._stage
        if isinstance(stage, BufferStage):
            stage.buffer = reinterpret(stage.buffer)
        elif isinstance(stage, LineStage):
            stage.lines = [reinterpret(line) for line in stage.lines]
        self._set_option(input_encoding=encoding)
        return encoding

    ########################################################
    # Reset and commit
    ########################################################

    def reset(self) -> None:
        """Discard all staged content and delete any temporary file."""
        self._ensure_active("reset")
        self._discard_stage()
        logger.debug(f"The modification process of {self.path} is reset.")

    def close(self):
        """Release staged resources; does nothing once completed."""
        if not self._completed:
            self._discard_stage()

    def _complete(self):
        self._stage = None
        self._completed = True

    def _materialize(self) -> StagedTempFile:
        if isinstance(self._stage, StreamStage):
            return self._stage.temp

        temp = StagedTempFile(self.path, self.options.write_encoding)
        try:
            temp.write_text(self._stage.text())
        except Exception:
            temp.discard()
            raise
        return temp

    def commit(
        self,
        backup: Optional[Union[str, Path]] = None,
        suffix: Suffix = _UNSET,
        dry_run: bool = _UNSET,
        verbose: Optional[bool] = _UNSET,
        clobber: bool = _UNSET,
        touch: bool = _UNSET,
        report_sizes: bool = True,
    ) -> CommitStatus:
        """Back up the original and overwrite it with the staged content.

        Keyword arguments override the session settings for this call only.

        Args:
            backup: Explicit backup path for this commit
            suffix: Backup suffix for this commit
            dry_run: Decide and report, but leave the filesystem untouched
            verbose: Verbosity for this commit
            clobber: Allow overwriting an existing backup
            touch: Update the timestamp even when the content is unchanged
            report_sizes: Record ``sizes`` (always recorded when verbose)

        Returns:
            UNTOUCHED if nothing was staged, IDENTICAL if the staged content
            equals the file, UPDATED otherwise

        Raises:
            AlreadyCompletedError: If the session was already committed
            BackupExistsError: If the backup exists and clobber is off
            RenameFailure: If the staged file could not be moved into place
        """
        self._ensure_active("commit")
        overrides = dict(dry_run=dry_run, verbose=verbose, clobber=clobber, touch=touch)
        options = replace(
            self.options, **{k: v for k, v in overrides.items() if v is not _UNSET}
        )
        policy = self.backup_policy
        if suffix is not _UNSET:
            policy = policy.with_suffix(suffix)

        if self._stage is None:
            if options.verbose is not None:
                logger.warning(
                    f"Input file ({self.path}) is not opened, and hence is not modified."
                )
            return CommitStatus.UNTOUCHED

        owned = not isinstance(self._stage, StreamStage)
        temp = self._materialize()
        try:
            return self._replace(temp, options, policy.resolve(backup), report_sizes)
        except RenameFailure:
            raise
        except Exception:
            if owned:
                temp.discard()
            raise

    def _replace(
        self,
        temp: StagedTempFile,
        options: OverwriteOptions,
        backup_path: Optional[Path],
        report_sizes: bool,
    ) -> CommitStatus:
        prefix = "[Dryrun]" if options.dry_run else ""

        sizes = None
        if report_sizes or options.verbose:
            sizes = SizeReport(self.path.stat().st_size, temp.size())
            if sizes.new_bytes == 0 and options.verbose is not None:
                logger.warning(f"The revised file ({self.path}) is empty.")
        if files_identical(temp.path, self.path):
            temp.discard()
            message = f"{prefix}No change in ({self.path})."
            if options.touch:
                mtime = touch(self.path, options.dry_run)
                message = (
                    f"{message[:-1]} but timestamp is updated to "
                    f"{datetime.fromtimestamp(mtime)}."
                )
            if options.verbose:
                logger.info(message)
            self.sizes = sizes
            self._complete()
            return CommitStatus.IDENTICAL

        if backup_path is not None and backup_path.exists():
            if not options.clobber:
                raise BackupExistsError(backup_path)
            if options.verbose:
                logger.warning(f"{prefix}Backup file {backup_path} is overwritten.")

        holding = None
        if backup_path is None and not options.dry_run:
            holding = make_temp_path(self.path)
        moved_to = backup_path or holding

        if moved_to is not None:
            try:
                move_file(self.path, moved_to, options.dry_run)
            except OSError:
                if holding is not None:
                    os.remove(holding)
                raise

        try:
            move_file(temp.path, self.path, options.dry_run)
        except OSError as e:
            temp.release()
            logger.error(
                f"Process halted! File system error in renaming the temporary file "
                f"{temp.path} back to the original {self.path}"
            )
            raise RenameFailure(temp.path, self.path, moved_to) from e

        if options.dry_run:
            temp.discard()
        else:
            temp.release()
        if holding is not None:
            os.remove(holding)

        if options.verbose:
            backup_note = f", Backup: {backup_path}" if backup_path else ""
            logger.info(
                f"{prefix}File {self.path} updated "
                f"(Size: {sizes.old_bytes} => {sizes.new_bytes} bytes{backup_note})"
            )

        self.sizes = sizes
        self._complete()
        return CommitStatus.UPDATED


def overwrite_stream(
    file_path: Union[str, Path], func: StreamCallback, **kwargs
) -> OverwriteSession:
    """Shorthand for ``OverwriteSession(file_path, **kwargs).modify(func).commit()``."""
    session = OverwriteSession(file_path, **kwargs)
    session.modify(func).commit()
    return session


def overwrite_text(
    file_path: Union[str, Path], func: Callable[[str], str], **kwargs
) -> OverwriteSession:
    """Shorthand for ``OverwriteSession(file_path, **kwargs).read(func).commit()``."""
    session = OverwriteSession(file_path, **kwargs)
    session.read(func).commit()
    return session


def overwrite_lines(
    file_path: Union[str, Path],
    func: Callable[[list[str]], Any],
    separator: str = "\n",
    **kwargs,
) -> OverwriteSession:
    session = OverwriteSession(file_path, **kwargs)
    session.readlines(func, separator=separator).commit()
    return session


def overwrite_each_line(
    file_path: Union[str, Path],
    func: Callable[[str], Any],
    separator: str = "\n",
    **kwargs,
) -> OverwriteSession:
    session = OverwriteSession(file_path, **kwargs)
    session.each_line(func, separator=separator).commit()
    return session
