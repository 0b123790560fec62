#!/usr/bin/env python3
"""Basic usage examples for the file-overwrite library."""

import logging
import os
import tempfile

from file_overwrite import (
    OverwriteSession,
    StreamAction,
    TransformAborted,
    overwrite_lines,
)

CONTENT = "1 line A\n2 line B\n3 line C\n"


def buffer_mode_example():
    """Demonstrate chained string operations with a suffix backup."""
    print("=== Buffer Mode Example ===")

    with tempfile.TemporaryDirectory() as temp_dir:
        path = os.path.join(temp_dir, "a.txt")
        with open(path, "w") as f:
            f.write(CONTENT)

        session = OverwriteSession(path, suffix="~", verbose=True)
        print(f"Backup will be: {session.backup}")

        session.sub(r"(li)(n)", lambda m: m[1].upper() + m[2]).gsub(r"[ABC]$", "x")
        print(f"Last match: {session.last_match}")
        print(f"Staged content:\n{session.dump()}")

        status = session.commit()
        print(f"Commit: {status.value}, sizes: {session.sizes}")
        print(f"Files: {sorted(os.listdir(temp_dir))}")


def stream_mode_example():
    """Demonstrate stream mode, aborting, and a dry run."""
    print("\n=== Stream Mode Example ===")

    with tempfile.TemporaryDirectory() as temp_dir:
        path = os.path.join(temp_dir, "b.txt")
        with open(path, "w") as f:
            f.write(CONTENT)

        session = OverwriteSession(path, suffix=".bak")

        def give_up(reader, writer):
            writer.write(reader.read())
            return StreamAction.ABORT

        session.modify(give_up)
        print(f"After abort, fresh: {session.is_fresh}")

        def stop(reader, writer):
            raise TransformAborted("I stop.")

        session.modify(stop)
        print(f"After TransformAborted, fresh: {session.is_fresh}")

        session.modify(lambda reader, writer: writer.write("\n" + reader.read() + "\n"))
        session.commit(dry_run=True, verbose=True)
        print(f"Dry run completed: {session.is_completed}, sizes: {session.sizes}")


def line_mode_example():
    """Demonstrate line-sequence mode without a backup."""
    print("\n=== Line Mode Example ===")

    with tempfile.TemporaryDirectory() as temp_dir:
        path = os.path.join(temp_dir, "c.txt")
        with open(path, "w") as f:
            f.write(CONTENT)

        overwrite_lines(path, lambda lines: lines + ["last\n"], suffix=None)
        with open(path) as f:
            print(f.read())


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    buffer_mode_example()
    stream_mode_example()
    line_mode_example()
