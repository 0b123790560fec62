"""Staged, not yet committed, replacement content."""
import logging
from enum import Enum
from numbers import Number
from typing import Any, Union

from ..errors import InvalidTransformResultError
from .safety import StagedTempFile

logger = logging.getLogger(__name__)


class SessionState(Enum):
    """Which kind of content an overwrite session currently holds."""

    FRESH = "fresh"
    STREAMING = "streaming"
    BUFFER = "buffer"
    LINES = "lines"
    COMPLETED = "completed"


class ResultKind(Enum):
    """Classification of a value returned from a user transform."""

    TEXT = "text"
    SEQUENCE = "sequence"
    UNSUPPORTED = "unsupported"


def classify_result(value: Any) -> ResultKind:
    """Tell whether a whole-content transform returned text or a sequence of lines."""
    if isinstance(value, str):
        return ResultKind.TEXT
    if isinstance(value, (list, tuple)):
        return ResultKind.SEQUENCE
    return ResultKind.UNSUPPORTED


def coerce_text(value: Any, operation: str) -> str:
    """Coerce a per-match or per-line transform result to text.

    None becomes the empty string and numbers are formatted with str().

    Raises:
        InvalidTransformResultError: For anything else that is not a string
    """
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, Number):
        return str(value)
    raise InvalidTransformResultError(operation, value)


def coerce_lines(value: Any, operation: str) -> list[str]:
    """Coerce every element of a line transform result with ``coerce_text``."""
    return [coerce_text(line, operation) for line in value]


def split_lines(text: str, separator: str = "\n") -> list[str]:
    """Split text into lines, each keeping its trailing separator.

    Joining the result with "" reproduces text exactly.
    """
    if not separator:
        raise ValueError("Line separator must not be empty")

    parts = text.split(separator)
    lines = [part + separator for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


class BufferStage:
    """The whole new content as one string; chainable."""

    mode = SessionState.BUFFER

    def __init__(self, text: str):
        self.buffer = text

    def text(self) -> str:
        return self.buffer

    def discard(self):
        self.buffer = ""


class LineStage:
    """The new content as an ordered list of lines; chainable."""

    mode = SessionState.LINES

    def __init__(self, lines: list[str]):
        self.lines = lines

    def text(self) -> str:
        return "".join(self.lines)

    def to_buffer(self) -> BufferStage:
        return BufferStage(self.text())

    def discard(self):
        self.lines = []


class StreamStage:
    """Content already written to a temporary file by a stream callback."""

    mode = SessionState.STREAMING

    def __init__(self, temp: StagedTempFile):
        self.temp = temp

    def text(self) -> str:
        return self.temp.read_text()

    def discard(self):
        self.temp.discard()


ContentStage = Union[BufferStage, LineStage, StreamStage]
