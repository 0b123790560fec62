"""Basic functionality tests for file_overwrite package."""
import tempfile
from pathlib import Path

import file_overwrite
import pytest
from file_overwrite import (
    CommitStatus,
    FileOverwriteError,
    OverwriteSession,
    overwrite_each_line,
    overwrite_lines,
    overwrite_stream,
    overwrite_text,
)

ORIGINAL = "1 line A\n2 line B\n3 line C\n"


class TestOneShotHelpers:
    """Test the stage-and-commit shorthands."""

    def setup_method(self):
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()
        self.test_file = Path(self.temp_dir) / "a.txt"
        self.test_file.write_bytes(ORIGINAL.encode())

    def teardown_method(self):
        """Clean up test environment."""
        import shutil

        shutil.rmtree(self.temp_dir)

    def test_overwrite_text(self):
        """Test whole-content replacement with a suffix backup."""
        session = overwrite_text(self.test_file, lambda text: text.upper(), suffix="~")

        assert session.is_completed
        assert self.test_file.read_text() == ORIGINAL.upper()
        assert Path(str(self.test_file) + "~").read_text() == ORIGINAL

    def test_overwrite_lines(self):
        """Test appending a line, then prefixing every line."""
        overwrite_lines(self.test_file, lambda lines: lines + ["last\n"], suffix=None)
        overwrite_each_line(self.test_file, lambda line: "XX" + line, suffix=None)

        assert self.test_file.read_text().splitlines()[-1] == "XXlast"
        assert list(Path(self.temp_dir).iterdir()) == [self.test_file]

    def test_overwrite_stream(self):
        """Test wrapping the content through a stream callback."""
        session = overwrite_stream(
            self.test_file,
            lambda reader, writer: writer.write("\n" + reader.read() + "\n"),
            suffix=".bak",
        )

        assert self.test_file.read_text() == "\n" + ORIGINAL + "\n"
        assert session.sizes.delta == 2

    def test_chained_session(self):
        """Test a typical chain of buffer operations."""
        status = (
            OverwriteSession(self.test_file, suffix=None)
            .sub(r"(li)(n)", lambda m: m[1].upper() + m[2])
            .gsub(r"B|C", "X")
            .tr("A", "a")
            .commit()
        )

        assert status is CommitStatus.UPDATED
        assert self.test_file.read_text() == "1 LIne a\n2 line X\n3 line X\n"

    def test_errors_share_a_base_class(self):
        """Test that library errors can be caught together."""
        session = OverwriteSession(self.test_file, suffix=None)
        session.read(lambda text: text + "x").commit()

        with pytest.raises(FileOverwriteError):
            session.reset()

    def test_version(self):
        assert file_overwrite.__version__ == "0.1.0"
