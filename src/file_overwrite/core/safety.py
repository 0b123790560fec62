"""Temporary files and atomic moves for overwriting a file safely."""
import filecmp
import logging
import os
import tempfile
import weakref
from contextlib import suppress
from pathlib import Path
from typing import TextIO, Union

from ..errors import EncodingConversionError

logger = logging.getLogger(__name__)

TEMP_TAG = "overwrite"


def _remove_quietly(path: str):
    """Remove a file that may already be gone."""
    with suppress(FileNotFoundError):
        os.remove(path)
        logger.debug(f"Removed temporary file {path}")


def make_temp_path(target: Union[str, Path]) -> Path:
    """Create an empty temporary file in the same directory as target.

    Being in the same directory keeps the later rename on one filesystem.
    """
    target = Path(target)
    fd, name = tempfile.mkstemp(
        dir=target.parent,
        prefix=f"{target.name}.{TEMP_TAG}.",
        suffix=".tmp",
    )
    os.close(fd)
    return Path(name)


class StagedTempFile:
    """Temporary file holding staged content next to the target.

    The file is deleted by ``discard()``, or when this object is garbage
    collected, unless ownership was handed over with ``release()``.
    """

    def __init__(self, target: Union[str, Path], encoding: str = "utf-8"):
        """Create the temporary file.

        Args:
            target: File that will eventually be replaced
            encoding: Encoding used when writing text
        """
        self.target = Path(target)
        self.encoding = encoding
        self.path = make_temp_path(self.target)
        self._finalizer = weakref.finalize(self, _remove_quietly, str(self.path))
        logger.debug(f"Created temporary file {self.path} for {self.target}")

    @property
    def alive(self) -> bool:
        """True while the file is still owned (not discarded or released)."""
        return self._finalizer.alive

    def open(self) -> TextIO:
        """Open the file for writing text without newline translation."""
        return open(self.path, "w", encoding=self.encoding, newline="")

    def write_text(self, text: str):
        """Replace the file content with text."""
        try:
            with self.open() as out:
                out.write(text)
        except (UnicodeEncodeError, LookupError) as e:
            raise EncodingConversionError(self.encoding, str(e)) from e

    def read_text(self) -> str:
        try:
            with open(self.path, encoding=self.encoding, newline="") as f:
                return f.read()
        except (UnicodeDecodeError, LookupError) as e:
            raise EncodingConversionError(self.encoding, str(e)) from e

    def size(self) -> int:
        return self.path.stat().st_size

    def discard(self):
        """Delete the file now."""
        self._finalizer()

    def release(self) -> Path:
        """Stop managing the file (it was moved elsewhere) and return its path."""
        self._finalizer.detach()
        return self.path


def files_identical(first: Union[str, Path], second: Union[str, Path]) -> bool:
    """Byte-compare two files."""
    return filecmp.cmp(first, second, shallow=False)


def move_file(source: Union[str, Path], dest: Union[str, Path], dry_run: bool = False):
    """Rename source onto dest in a single filesystem operation."""
    if dry_run:
        logger.debug(f"[Dryrun] mv {source} {dest}")
        return
    os.replace(source, dest)
    logger.debug(f"mv {source} {dest}")


def touch(path: Union[str, Path], dry_run: bool = False) -> float:
    """Set the modification time of path to now and return the new mtime."""
    path = Path(path)
    if not dry_run:
        os.utime(path, None)
    return path.stat().st_mtime
