"""
Path resolution for watch entries.

A path spec from frontmatter is anchored either to the directory containing
the documentation file or, with a ``$ROOT/`` prefix, to the project root (the
nearest ancestor holding a repository marker such as ``.git``). Specs with
glob metacharacters are expanded recursively; hidden names are never matched.

Resolution never raises for a bad spec: failures are reported on the returned
``ResolvedTarget`` so the drift engine can classify them.
"""

import glob
import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Optional, Sequence

from .errors import HashingError, NoMatchError, NoProjectRootError
from .hashing import collect_files, sort_key

ROOT_PREFIX = "$ROOT"
DEFAULT_ROOT_MARKERS = (".git",)
GLOB_CHARS = ('*', '?', '[')


class ResolutionFailure(Enum):
    """Why a path spec could not be resolved."""
    NO_PROJECT_ROOT = "no_project_root"
    NO_MATCH = "no_match"
    PATH_MISSING = "path_missing"
    ESCAPES_ROOT = "escapes_root"
    INVALID_PATTERN = "invalid_pattern"

    @property
    def means_gone(self) -> bool:
        """True when the failure means the target used to exist but is gone."""
        return self in (ResolutionFailure.NO_MATCH, ResolutionFailure.PATH_MISSING)


@dataclass
class ResolvedTarget:
    """
    Result of expanding one path spec.

    Attributes:
        path_spec: The spec as written in frontmatter
        matched_paths: Absolute paths, sorted by normalized POSIX string
        is_glob: Whether the spec contained glob metacharacters
        failure: Set when resolution failed
        message: Human-readable detail for failures
    """
    path_spec: str
    matched_paths: List[Path] = field(default_factory=list)
    is_glob: bool = False
    failure: Optional[ResolutionFailure] = None
    message: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.failure is None

    def raise_for_failure(self):
        """Raise the matching taxonomy error if resolution failed."""
        if self.failure is None:
            return
        if self.failure is ResolutionFailure.NO_PROJECT_ROOT:
            raise NoProjectRootError(self.message)
        raise NoMatchError(self.message)


def is_glob_pattern(spec: str) -> bool:
    """Check if a spec contains glob metacharacters."""
    return any(char in spec for char in GLOB_CHARS)


def is_hidden(relative: Path) -> bool:
    """Check if any component of a relative path is hidden ('.' and '..' are not)."""
    return any(
        part.startswith('.') and part not in ('.', '..')
        for part in relative.parts
    )


def _normalize(path: Path) -> Path:
    return Path(os.path.normpath(os.path.abspath(path)))


def find_project_root(
    start: Path,
    markers: Sequence[str] = DEFAULT_ROOT_MARKERS
) -> Optional[Path]:
    """
    Walk upward from ``start`` to the first directory holding a marker.

    Args:
        start: Directory to start from (made absolute against the cwd)
        markers: Names whose presence marks a project root

    Returns:
        The project root, or None if the filesystem root was reached
    """
    current = _normalize(Path(start))
    while True:
        if any((current / marker).exists() for marker in markers):
            return current
        if current.parent == current:
            return None
        current = current.parent


def _expand_glob(anchor: Path, pattern: str) -> List[Path]:
    matches: List[Path] = []
    for match in glob.glob(pattern, root_dir=anchor, recursive=True):
        full = _normalize(anchor / match)
        try:
            relative = Path(os.path.relpath(full, anchor))
        except ValueError:
            # Different drive on Windows
            relative = Path(match)
        if is_hidden(relative):
            continue
        matches.append(full)
    return matches


def _has_files(matches: Sequence[Path]) -> bool:
    """True unless every match is a directory without visible files."""
    for match in matches:
        if not match.is_dir():
            return True
        try:
            if collect_files(match):
                return True
        except HashingError:
            # Unreadable; hashing reports it
            return True
    return False


def resolve(
    path_spec: str,
    document_dir: Path,
    project_root: Optional[Path]
) -> ResolvedTarget:
    """
    Resolve a path spec against its anchor.

    Args:
        path_spec: Literal path, ``$ROOT/``-prefixed path, or glob pattern
        document_dir: Directory containing the documentation file
        project_root: Discovered project root, or None

    Returns:
        ResolvedTarget with sorted absolute paths or a failure
    """
    target = ResolvedTarget(path_spec=path_spec, is_glob=is_glob_pattern(path_spec))

    if not path_spec or not path_spec.strip():
        target.failure = ResolutionFailure.INVALID_PATTERN
        target.message = "Path spec is empty"
        return target

    if path_spec == ROOT_PREFIX or path_spec.startswith(ROOT_PREFIX + "/"):
        if project_root is None:
            target.failure = ResolutionFailure.NO_PROJECT_ROOT
            target.message = (
                f"Could not find project root for '{path_spec}' "
                f"(no repository marker above {document_dir})"
            )
            return target
        anchor = _normalize(project_root)
        relative = path_spec[len(ROOT_PREFIX) + 1:]
        joined = _normalize(anchor / relative)
        try:
            joined.relative_to(anchor)
        except ValueError:
            target.failure = ResolutionFailure.ESCAPES_ROOT
            target.message = f"Path '{path_spec}' escapes project root {anchor}"
            return target
    else:
        anchor = _normalize(document_dir)
        relative = path_spec
        joined = _normalize(anchor / relative)

    if target.is_glob:
        matches = _expand_glob(anchor, relative)
        if not _has_files(matches):
            target.failure = ResolutionFailure.NO_MATCH
            target.message = f"Pattern '{path_spec}' matches no files"
            return target
        target.matched_paths = sorted(set(matches), key=sort_key)
        return target

    if not joined.exists():
        target.failure = ResolutionFailure.PATH_MISSING
        target.message = f"Path '{path_spec}' does not exist"
        return target

    target.matched_paths = [joined]
    return target


class PathResolver:
    """
    Resolves path specs for one documentation file.

    The project root is discovered lazily on first use and cached on this
    instance only.
    """

    def __init__(
        self,
        document_path: Path,
        root_markers: Iterable[str] = DEFAULT_ROOT_MARKERS
    ):
        self.document_path = Path(document_path)
        self.document_dir = _normalize(self.document_path).parent
        self.root_markers = tuple(root_markers)
        self._project_root: Optional[Path] = None
        self._root_searched = False

    @property
    def project_root(self) -> Optional[Path]:
        if not self._root_searched:
            self._project_root = find_project_root(self.document_dir, self.root_markers)
            self._root_searched = True
        return self._project_root

    def resolve(self, path_spec: str) -> ResolvedTarget:
        # Only $ROOT specs need the project root
        needs_root = path_spec == ROOT_PREFIX or path_spec.startswith(ROOT_PREFIX + "/")
        return resolve(
            path_spec,
            self.document_dir,
            self.project_root if needs_root else None
        )
