"""
Content fingerprints for watched files.

All digests are lowercase hex SHA-256. Multi-file digests are computed over
the raw bytes of every file concatenated in sorted path order, so the result
never depends on the order in which a glob or directory walk produced them.

Hidden names (starting with ".") are pruned from directory listings.
"""

import hashlib
import os
from pathlib import Path
from typing import Iterable, List

from .errors import HashingError

CHUNK_SIZE = 64 * 1024


def sort_key(path: Path) -> str:
    """Normalized POSIX path string used to order files before hashing."""
    return Path(os.path.normpath(os.path.abspath(path))).as_posix()


def _feed(hasher, path: Path) -> None:
    try:
        with open(path, 'rb') as f:
            for chunk in iter(lambda: f.read(CHUNK_SIZE), b''):
                hasher.update(chunk)
    except FileNotFoundError as e:
        raise HashingError(path, "file does not exist") from e
    except IsADirectoryError as e:
        raise HashingError(path, "is a directory") from e
    except OSError as e:
        raise HashingError(path, e.strerror or str(e)) from e


def hash_file(path: Path) -> str:
    """
    Hash a single file's contents.

    Raises:
        HashingError: If the file is missing or unreadable
    """
    hasher = hashlib.sha256()
    _feed(hasher, Path(path))
    return hasher.hexdigest()


def hash_files(paths: Iterable[Path]) -> str:
    """
    Hash several files together.

    Inputs are de-duplicated and sorted by ``sort_key`` before their bytes are
    fed to a single SHA-256, so any permutation of the same set gives the
    same digest. A single file hashes exactly like ``hash_file``.

    Raises:
        HashingError: If any file is missing or unreadable
    """
    unique = {sort_key(p): Path(p) for p in paths}
    hasher = hashlib.sha256()
    for key in sorted(unique):
        _feed(hasher, unique[key])
    return hasher.hexdigest()


def collect_files(directory: Path) -> List[Path]:
    """
    Recursively list regular files under a directory, skipping hidden names.

    Raises:
        HashingError: If the directory does not exist or cannot be listed
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise HashingError(directory, "directory does not exist")

    def _raise(err: OSError):
        raise HashingError(Path(err.filename or directory), err.strerror or str(err)) from err

    files: List[Path] = []
    for dirpath, dirnames, filenames in os.walk(directory, onerror=_raise):
        # Prune hidden directories in place so os.walk never descends into them
        dirnames[:] = [d for d in dirnames if not d.startswith('.')]
        for name in filenames:
            if name.startswith('.'):
                continue
            candidate = Path(dirpath) / name
            if candidate.is_file():
                files.append(candidate)

    files.sort(key=sort_key)
    return files


def hash_directory(directory: Path) -> str:
    """
    Hash every visible regular file under a directory.

    An empty directory hashes to the digest of empty input.
    """
    return hash_files(collect_files(directory))


def hash_target(paths: Iterable[Path]) -> str:
    """
    Hash the files behind a resolved target.

    Directories are expanded with ``collect_files``; plain files are used as
    is. The union is hashed with ``hash_files``.
    """
    files: List[Path] = []
    for path in paths:
        path = Path(path)
        if path.is_dir():
            files.extend(collect_files(path))
        else:
            files.append(path)
    return hash_files(files)
