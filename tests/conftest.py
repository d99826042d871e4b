"""
Shared fixtures for the drifty test suite.
"""

import hashlib
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))


def sha256(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def write_doc(path: Path, entries=None, body: str = "# Doc\n", extra: str = "") -> Path:
    """
    Write a documentation file with a driftwatcher block.

    ``entries`` is a list of (path_spec, hash) pairs; a hash of None writes a
    bare entry with no hash. ``entries=None`` writes an empty key.
    """
    lines = ["---\n"]
    if extra:
        lines.append(extra)
    lines.append("driftwatcher:\n")
    for spec, digest in entries or []:
        if digest is None:
            lines.append(f'  - "{spec}":\n')
        else:
            lines.append(f'  - "{spec}": {digest}\n')
    lines.append("---\n")
    lines.append(body)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(''.join(lines), encoding='utf-8')
    return path


@pytest.fixture
def project(tmp_path, monkeypatch):
    """A project root (marked by .git) that is also the working directory."""
    (tmp_path / ".git").mkdir()
    monkeypatch.chdir(tmp_path)
    return tmp_path
