"""Regex match and substitution engine used by the buffer-mode operations."""
import logging
import re
from collections.abc import Callable
from re import Pattern
from typing import Any, Optional, Union

logger = logging.getLogger(__name__)

PatternLike = Union[str, Pattern]


class MatchResult:
    """Read-only view of a single regex match over a buffer.

    Gives a transform everything it needs for group-aware rewriting
    without relying on any global "last match" state.
    """

    __slots__ = ("_match",)

    def __init__(self, match: re.Match):
        self._match = match

    @property
    def full_match(self) -> str:
        return self._match.group(0)

    @property
    def captures(self) -> tuple[Optional[str], ...]:
        """Capture groups in order; ``captures[0]`` is group 1."""
        return self._match.groups()

    @property
    def named(self) -> dict[str, Optional[str]]:
        return self._match.groupdict()

    @property
    def pre_match(self) -> str:
        return self._match.string[: self._match.start()]

    @property
    def post_match(self) -> str:
        return self._match.string[self._match.end() :]

    @property
    def string(self) -> str:
        return self._match.string

    def group(self, *indices: Union[int, str]) -> Any:
        return self._match.group(*indices)

    def __getitem__(self, index: Union[int, str]) -> Optional[str]:
        return self._match.group(index)

    def start(self, group: Union[int, str] = 0) -> int:
        return self._match.start(group)

    def end(self, group: Union[int, str] = 0) -> int:
        return self._match.end(group)

    def span(self, group: Union[int, str] = 0) -> tuple[int, int]:
        return self._match.span(group)

    def expand(self, template: str) -> str:
        """Expand ``\\1`` / ``\\g<name>`` references in template."""
        return self._match.expand(template)

    def __repr__(self) -> str:
        return f"MatchResult({self.full_match!r}, span={self.span()})"


Transform = Callable[[MatchResult], Any]


def compile_pattern(pattern: PatternLike, flags: int = 0) -> Pattern:
    """Compile a pattern string, or return an already compiled pattern."""
    if isinstance(pattern, Pattern):
        if flags:
            raise ValueError("Cannot process flags argument with a compiled pattern")
        return pattern
    return re.compile(pattern, flags)


def as_transform(replacement: Union[str, Transform]) -> Transform:
    """Turn a template string or a callable into a per-match transform."""
    if callable(replacement):
        return replacement
    if isinstance(replacement, str):
        return lambda match: match.expand(replacement)
    raise TypeError(
        f"replacement must be a string or a callable, not {type(replacement).__name__}"
    )


def _as_text(value: Any) -> str:
    # The staging layer rejects anything that is not text-like before here.
    return "" if value is None else value


class MatchEngine:
    """Stateless find / replace-first / replace-all over a text buffer.

    Each replace call returns the new buffer together with the match it
    substituted last, so the caller can keep it as its ``last_match``.
    """

    @staticmethod
    def find_first(
        buffer: str, pattern: PatternLike, flags: int = 0
    ) -> Optional[MatchResult]:
        """Find the first match of pattern in buffer.

        Args:
            buffer: Text to search
            pattern: Regex string or compiled pattern
            flags: Regex flags (only for string patterns)

        Returns:
            MatchResult or None if nothing matched
        """
        match = compile_pattern(pattern, flags).search(buffer)
        return MatchResult(match) if match else None

    @classmethod
    def replace_first(
        cls, buffer: str, pattern: PatternLike, transform: Transform, flags: int = 0
    ) -> tuple[str, Optional[MatchResult]]:
        """Replace the first match with the transform's result.

        Returns:
            Tuple of (new_buffer, match); on no match the buffer is
            returned unchanged with None
        """
        found = cls.find_first(buffer, pattern, flags)
        if found is None:
            return buffer, None

        replacement = _as_text(transform(found))
        return found.pre_match + replacement + found.post_match, found

    @staticmethod
    def replace_all(
        buffer: str,
        pattern: PatternLike,
        transform: Transform,
        max_count: int = 0,
        flags: int = 0,
    ) -> tuple[str, Optional[MatchResult]]:
        """Replace non-overlapping matches from left to right.

        Args:
            buffer: Text to rewrite
            pattern: Regex string or compiled pattern
            transform: Called with each MatchResult, returns replacement text
            max_count: Maximum substitutions; unbounded when <= 0
            flags: Regex flags (only for string patterns)

        Returns:
            Tuple of (new_buffer, last substituted match or None)
        """
        regex = compile_pattern(pattern, flags)
        pieces = []
        position = 0
        last: Optional[MatchResult] = None

        for count, match in enumerate(regex.finditer(buffer), 1):
            last = MatchResult(match)
            pieces.append(buffer[position : match.start()])
            pieces.append(_as_text(transform(last)))
            position = match.end()
            if 0 < max_count <= count:
                break

        if last is None:
            return buffer, None

        pieces.append(buffer[position:])
        logger.debug(f"Substituted {len(pieces) // 2} match(es) of {regex.pattern!r}")
        return "".join(pieces), last
