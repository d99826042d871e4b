"""
Atomic file writing for documentation updates.

Prevents a half-written document on Ctrl+C, disk full or power failure by
writing to a temp file in the same directory and renaming it over the target.
The rename is atomic on POSIX systems.

Usage:
    from drifty.core.atomic_write import atomic_write

    atomic_write(Path("docs/guide.md"), "---\\ndriftwatcher:\\n---\\n# Guide\\n")
"""

import errno
import os
import tempfile
from pathlib import Path

from .errors import AtomicWriteError


def _cleanup(temp_path):
    if temp_path and temp_path.exists():
        try:
            temp_path.unlink()
        except OSError:
            pass


def atomic_write(file_path: Path, content: str, encoding: str = 'utf-8') -> bool:
    """
    Write file atomically.

    Line endings in ``content`` are written as is, so a document read and
    written back unchanged stays byte-identical.

    Args:
        file_path: Path to file to write
        content: Content to write
        encoding: Text encoding (default: utf-8)

    Returns:
        True if write succeeded

    Raises:
        AtomicWriteError: If write fails (with descriptive message)
    """
    file_path = Path(file_path)
    temp_path = None

    try:
        # Same directory keeps the rename on one filesystem
        temp_fd, temp_path_str = tempfile.mkstemp(
            prefix=f".tmp_{file_path.name}_",
            dir=file_path.parent,
            suffix=".tmp"
        )
        temp_path = Path(temp_path_str)

        try:
            with os.fdopen(temp_fd, 'w', encoding=encoding, newline='') as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
        except OSError as e:
            if e.errno == errno.ENOSPC:
                raise AtomicWriteError(
                    f"Disk full: Cannot write to {file_path}. "
                    f"Free up space and try again."
                ) from e
            elif e.errno == errno.EACCES:
                raise AtomicWriteError(
                    f"Permission denied: Cannot write to {file_path}. "
                    f"Check file/directory permissions."
                ) from e
            raise AtomicWriteError(f"Write error for {file_path}: {e}") from e

        # Keep the original file mode
        if file_path.exists():
            try:
                os.chmod(temp_path, file_path.stat().st_mode)
            except OSError:
                pass

        os.replace(temp_path, file_path)
        return True

    except AtomicWriteError:
        _cleanup(temp_path)
        raise

    except OSError as e:
        _cleanup(temp_path)
        raise AtomicWriteError(f"Failed to write {file_path}: {e}") from e
