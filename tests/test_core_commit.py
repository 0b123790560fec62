"""Tests for committing staged content to disk."""
import logging
import os
import tempfile
import time
from pathlib import Path

import file_overwrite.core.session as session_module
import pytest
from file_overwrite import (
    BackupExistsError,
    CommitStatus,
    OverwriteSession,
    RenameFailure,
    SessionState,
    SizeReport,
)

ORIGINAL = "1 line A\n2 line B\n3 line C\n"


class TestCommit:
    """Test the backup-then-replace sequence."""

    def setup_method(self) -> None:
        """Set up test environment."""
        self.temp_dir = tempfile.mkdtemp()
        self.test_file = Path(self.temp_dir) / "test.txt"
        self.test_file.write_bytes(ORIGINAL.encode())
        self.old_mtime = time.time() - 86400
        os.utime(self.test_file, (self.old_mtime, self.old_mtime))

    def teardown_method(self) -> None:
        """Clean up test environment."""
        import shutil

        shutil.rmtree(self.temp_dir)

    def listing(self) -> list[str]:
        return sorted(os.listdir(self.temp_dir))

    def append_tekito(self, reader, writer) -> None:
        writer.write(reader.read() + "tekito")

    def test_nothing_staged(self, caplog) -> None:
        """Test that committing a fresh session is a no-op."""
        session = OverwriteSession(self.test_file)
        status = session.commit(verbose=True)

        assert status is CommitStatus.UNTOUCHED
        assert not status
        assert not session.is_completed
        assert "not opened" in caplog.text
        assert self.test_file.read_text() == ORIGINAL
        assert self.test_file.stat().st_mtime == pytest.approx(self.old_mtime)
        assert self.listing() == ["test.txt"]

    def test_identical_content(self) -> None:
        """Test that unchanged content writes no backup and keeps the timestamp."""
        session = OverwriteSession(self.test_file, suffix=".bak")
        status = session.read(lambda text: text).commit()

        assert status is CommitStatus.IDENTICAL
        assert session.is_completed
        assert self.listing() == ["test.txt"]
        assert self.test_file.stat().st_mtime == pytest.approx(self.old_mtime)
        assert session.sizes == SizeReport(27, 27)

    def test_identical_content_with_touch(self, caplog) -> None:
        """Test that touch updates the timestamp but writes no backup."""
        caplog.set_level(logging.INFO, logger="file_overwrite")
        session = OverwriteSession(self.test_file, suffix=".bak", touch=True)
        status = session.modify(self.copy).commit(verbose=True)

        assert status is CommitStatus.IDENTICAL
        assert self.listing() == ["test.txt"]
        assert self.test_file.stat().st_mtime > self.old_mtime + 3600
        assert "timestamp is updated" in caplog.text

    def copy(self, reader, writer) -> None:
        writer.write(reader.read())

    def test_real_commit_with_backup(self) -> None:
        """Test overwriting with a suffix backup."""
        session = OverwriteSession(self.test_file, suffix=".BAK")
        backup = Path(str(self.test_file) + ".BAK")
        assert session.backup == backup

        status = session.modify(self.append_tekito).commit()

        assert status is CommitStatus.UPDATED
        assert self.test_file.read_text() == ORIGINAL + "tekito"
        assert backup.read_text() == ORIGINAL
        assert self.listing() == ["test.txt", "test.txt.BAK"]

        sizes = session.sizes
        assert sizes.delta == len("tekito")
        assert sizes.old_bytes == len(ORIGINAL)
        assert sizes.old_bytes == backup.stat().st_size
        assert sizes.new_bytes == self.test_file.stat().st_size

        assert backup.stat().st_mtime == pytest.approx(self.old_mtime)
        assert self.test_file.stat().st_mtime > self.old_mtime + 3600

        assert session.state is SessionState.COMPLETED
        assert session.backup == backup

    def test_real_commit_without_backup(self, caplog) -> None:
        """Test overwriting without a backup leaves no extra files."""
        caplog.set_level(logging.INFO, logger="file_overwrite")
        session = OverwriteSession(self.test_file, suffix=None)
        session.read(lambda text: text + "tekito").commit(verbose=True)

        assert self.test_file.read_text() == ORIGINAL + "tekito"
        assert self.listing() == ["test.txt"]
        assert "updated (Size: 27 => 33 bytes)" in caplog.text
        assert "Backup" not in caplog.text

    def test_line_mode_round_trip(self) -> None:
        """Test that committed lines are joined with no extra separators."""
        session = OverwriteSession(self.test_file, suffix=None)
        session.readlines(lambda lines: lines + ["last"]).commit()

        assert self.test_file.read_text() == ORIGINAL + "last"
        assert session.sizes.delta == 4

    def test_newlines_preserved(self) -> None:
        """Test that CRLF line endings survive a buffer round trip."""
        self.test_file.write_bytes(b"a\r\nb\r\n")
        OverwriteSession(self.test_file, suffix=None).sub(r"a", "A").commit()
        assert self.test_file.read_bytes() == b"A\r\nb\r\n"

    def test_dry_run(self, caplog) -> None:
        """Test that a dry run reports but does not touch the files."""
        caplog.set_level(logging.INFO, logger="file_overwrite")
        session = OverwriteSession(self.test_file, suffix=".BAK")
        session.modify(self.append_tekito)

        status = session.commit(dry_run=True, verbose=True)

        assert status is CommitStatus.UPDATED
        assert session.is_completed
        assert session.sizes == SizeReport(27, 33)
        assert self.test_file.read_text() == ORIGINAL
        assert self.test_file.stat().st_mtime == pytest.approx(self.old_mtime)
        assert self.listing() == ["test.txt"]
        assert "[Dryrun]File" in caplog.text
        assert "Size: 27 => 33 bytes, Backup:" in caplog.text

    def test_dry_run_without_backup(self) -> None:
        session = OverwriteSession(self.test_file, suffix=None, dry_run=True)
        session.read(lambda text: "new").commit()

        assert self.test_file.read_text() == ORIGINAL
        assert self.listing() == ["test.txt"]

    def test_backup_exists(self) -> None:
        """Test the clobber protection and its override."""
        backup = Path(str(self.test_file) + ".bak")
        backup.write_text("old backup")
        session = OverwriteSession(self.test_file, suffix=".bak")
        session.read(lambda text: "new")

        with pytest.raises(BackupExistsError):
            session.commit()

        assert not session.is_completed
        assert session.state is SessionState.BUFFER
        assert session.sizes is None
        assert self.test_file.read_text() == ORIGINAL
        assert backup.read_text() == "old backup"
        assert self.listing() == ["test.txt", "test.txt.bak"]

        assert session.commit(clobber=True) is CommitStatus.UPDATED
        assert session.sizes == SizeReport(27, 3)
        assert self.test_file.read_text() == "new"
        assert backup.read_text() == ORIGINAL

    def test_backup_exists_stream_mode_keeps_stage(self) -> None:
        """Test that a refused commit keeps the streamed content."""
        Path(str(self.test_file) + "~").write_text("old backup")
        session = OverwriteSession(self.test_file, suffix="~")
        session.modify(self.append_tekito)

        with pytest.raises(BackupExistsError):
            session.commit()

        assert Path(session.temporary_filename).exists()
        session.commit(suffix=None)
        assert self.test_file.read_text() == ORIGINAL + "tekito"
        assert self.listing() == ["test.txt", "test.txt~"]

    def test_clobber_warning(self, caplog) -> None:
        Path(str(self.test_file) + ".bak").write_text("old backup")
        session = OverwriteSession(self.test_file, suffix=".bak", clobber=True)
        session.read(lambda text: "new").commit(verbose=True)
        assert "is overwritten" in caplog.text

    def test_explicit_backup_path(self) -> None:
        """Test backing up to an explicitly named file."""
        backup = Path(self.temp_dir) / "original.txt"
        session = OverwriteSession(self.test_file, backup=backup)
        session.read(lambda text: "new").commit()

        assert backup.read_text() == ORIGINAL
        assert self.test_file.read_text() == "new"

    def test_commit_overrides(self) -> None:
        """Test per-commit backup overrides."""
        session = OverwriteSession(self.test_file)
        session.read(lambda text: "new").commit(suffix=None)
        assert self.listing() == ["test.txt"]

        other = Path(self.temp_dir) / "other.txt"
        session = OverwriteSession(self.test_file, suffix=None)
        session.read(lambda text: "newer").commit(backup=other)
        assert other.read_text() == "new"

    def test_size_reporting_off(self) -> None:
        session = OverwriteSession(self.test_file, suffix=None)
        session.read(lambda text: "new").commit(report_sizes=False)
        assert session.sizes is None

    def test_empty_result_warning(self, caplog) -> None:
        session = OverwriteSession(self.test_file, suffix=None)
        session.replace_with("").commit()

        assert self.test_file.read_bytes() == b""
        assert "is empty" in caplog.text

    def test_rename_failure(self, monkeypatch) -> None:
        """Test that a failed final rename is fatal and leaves recovery context."""
        real_move = session_module.move_file

        def failing_move(source, dest, dry_run=False):
            if Path(dest) == self.test_file:
                raise OSError("simulated rename failure")
            real_move(source, dest, dry_run)

        monkeypatch.setattr(session_module, "move_file", failing_move)
        session = OverwriteSession(self.test_file, suffix=".bak")
        session.read(lambda text: "new")

        with pytest.raises(RenameFailure) as excinfo:
            session.commit()

        error = excinfo.value
        assert isinstance(error, OSError)
        assert error.target_path == self.test_file
        assert error.moved_to == Path(str(self.test_file) + ".bak")
        assert error.moved_to.read_text() == ORIGINAL
        assert error.temp_path.read_text() == "new"
        assert not self.test_file.exists()
        assert session.sizes is None

    def test_failed_backup_move_keeps_target(self, monkeypatch) -> None:
        """Test that a failure moving the original aside changes nothing."""

        def failing_move(source, dest, dry_run=False):
            raise PermissionError("simulated")

        monkeypatch.setattr(session_module, "move_file", failing_move)
        session = OverwriteSession(self.test_file, suffix=None)
        session.read(lambda text: "new")

        with pytest.raises(PermissionError):
            session.commit()

        assert self.test_file.read_text() == ORIGINAL
        assert self.listing() == ["test.txt"]
        assert not session.is_completed
