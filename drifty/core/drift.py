"""
Drift detection across documentation files.

For every watch entry of every documentation file in scope, the engine
resolves the path spec, hashes what it matches and compares the digest with
the stored one:

    stored hash absent                          -> INVALID
    target gone (literal missing, glob empty)   -> MISSING
    unreadable at hash time                     -> MISSING
    other resolution failure                    -> INVALID
    digest equal                                -> CURRENT
    digest differs                              -> DRIFTED

A document that cannot be read or parsed is recorded with its error and the
scan moves on; one broken file never aborts a multi-document scan.
"""

import fnmatch
import logging
import os
from collections import Counter
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Tuple

from .config import DriftyConfig
from .errors import DriftyError, HashingError, ScopeError
from .frontmatter import FrontmatterStore, WatchEntry
from .hashing import hash_target
from .logger import DocumentLogger
from .paths import PathResolver, ResolvedTarget, find_project_root

logger = logging.getLogger(__name__)


class Status(Enum):
    """Drift status of one watch entry."""
    CURRENT = "CURRENT"
    DRIFTED = "DRIFTED"
    MISSING = "MISSING"
    INVALID = "INVALID"

    @property
    def is_problem(self) -> bool:
        """DRIFTED and MISSING fail CI and are actionable in ``check``."""
        return self in (Status.DRIFTED, Status.MISSING)

    def __str__(self) -> str:
        return self.value


@dataclass
class DriftRecord:
    """
    Comparison result for one watch entry.

    Attributes:
        document: Documentation file holding the entry
        index: Position of the entry in the tracking key
        path_spec: Spec as written
        stored_hash: Hash recorded in frontmatter
        status: Classification
        computed_hash: Current digest, when the target could be hashed
        detail: Reason for MISSING/INVALID
    """
    document: Path
    index: int
    path_spec: str
    stored_hash: Optional[str]
    status: Status
    computed_hash: Optional[str] = None
    detail: Optional[str] = None


@dataclass
class DocumentScan:
    """Records for one document, or the error that stopped it."""
    path: Path
    records: List[DriftRecord] = field(default_factory=list)
    error: Optional[str] = None


@dataclass
class ScanResult:
    """Aggregate of a scan, keyed by document path in discovery order."""
    documents: Dict[Path, DocumentScan] = field(default_factory=dict)

    def records(self) -> Iterator[DriftRecord]:
        for doc in self.documents.values():
            yield from doc.records

    def errors(self) -> List[Tuple[Path, str]]:
        return [(doc.path, doc.error) for doc in self.documents.values() if doc.error]

    def eligible(self) -> List[DriftRecord]:
        """Records a user can act on during reconciliation."""
        return [record for record in self.records() if record.status.is_problem]

    def counts(self) -> Dict[Status, int]:
        counter = Counter(record.status for record in self.records())
        return {status: counter.get(status, 0) for status in Status}

    @property
    def has_problems(self) -> bool:
        return any(record.status.is_problem for record in self.records())


def check_entry(
    resolver: PathResolver,
    entry: WatchEntry,
    document: Path,
    index: int
) -> DriftRecord:
    """Classify one watch entry."""
    record = DriftRecord(
        document=document,
        index=index,
        path_spec=entry.path_spec,
        stored_hash=entry.stored_hash,
        status=Status.INVALID,
    )

    if not entry.has_hash:
        record.detail = "no hash recorded"
        return record

    target: ResolvedTarget = resolver.resolve(entry.path_spec)
    if not target.ok:
        record.status = Status.MISSING if target.failure.means_gone else Status.INVALID
        record.detail = target.message
        return record

    try:
        record.computed_hash = hash_target(target.matched_paths)
    except HashingError as e:
        record.status = Status.MISSING
        record.detail = str(e)
        return record

    if record.computed_hash == entry.stored_hash:
        record.status = Status.CURRENT
    else:
        record.status = Status.DRIFTED
    return record


def is_document(path: Path, config: DriftyConfig) -> bool:
    return path.suffix.lower() in config.doc_extensions


def _excluded(relative: str, config: DriftyConfig) -> bool:
    return any(fnmatch.fnmatch(relative, pattern) for pattern in config.exclude)


def discover_documents(scope: Path, config: DriftyConfig) -> List[Path]:
    """
    Find documentation files in a scope.

    Args:
        scope: A documentation file or a directory searched recursively
        config: Extensions and exclude patterns

    Returns:
        Sorted list of documentation files (hidden names skipped)

    Raises:
        ScopeError: If the scope does not exist or is not a documentation file
    """
    scope = Path(scope)

    if scope.is_file():
        if not is_document(scope, config):
            raise ScopeError(f"File is not a markdown file: {scope}")
        return [scope]

    if not scope.exists():
        raise ScopeError(f"Path does not exist: {scope}")

    documents: List[Path] = []
    for dirpath, dirnames, filenames in os.walk(scope):
        base = Path(dirpath)
        dirnames[:] = sorted(
            d for d in dirnames
            if not d.startswith('.')
            and not _excluded((base / d).relative_to(scope).as_posix(), config)
        )
        for name in filenames:
            candidate = base / name
            if name.startswith('.') or not is_document(candidate, config):
                continue
            if _excluded(candidate.relative_to(scope).as_posix(), config):
                continue
            documents.append(candidate)

    documents.sort()
    return documents


class DriftEngine:
    """
    Scans documentation files for drift.

    Usage:
        engine = DriftEngine(config)
        result = engine.scan(Path("docs"))
        for record in result.records():
            print(record.status, record.path_spec)
    """

    def __init__(self, config: Optional[DriftyConfig] = None):
        self.config = config or DriftyConfig()

    def scan_document(self, path: Path) -> Optional[DocumentScan]:
        """
        Scan one document.

        Returns:
            DocumentScan, or None if the document does not use the tracking key
        """
        doc_log = DocumentLogger(path, logger)
        try:
            store = FrontmatterStore.load(path, self.config.tracking_key, self.config.max_file_size)
        except DriftyError as e:
            doc_log.warning(f"Skipping document: {e}", error_code=e.error_code)
            return DocumentScan(path=path, error=str(e))

        if not store.frontmatter.has_tracking_key:
            return None

        resolver = PathResolver(path, self.config.root_markers)
        entries = list(enumerate(store.entries))

        def _check(item):
            index, entry = item
            return check_entry(resolver, entry, path, index)

        if self.config.workers > 1 and len(entries) > 1:
            with ThreadPoolExecutor(max_workers=self.config.workers) as pool:
                records = list(pool.map(_check, entries))
        else:
            records = [_check(item) for item in entries]

        for record in records:
            doc_log.debug(f"{record.status} {record.path_spec}", path_spec=record.path_spec)
        return DocumentScan(path=path, records=records)

    def scan(self, scope: Optional[Path] = None) -> ScanResult:
        """
        Scan a documentation file or directory (default: current directory).

        Raises:
            ScopeError: If the scope does not exist or is not a documentation file
        """
        scope = Path(scope) if scope is not None else Path('.')
        result = ScanResult()
        documents = discover_documents(scope, self.config)
        logger.debug(f"Discovered {len(documents)} document(s) under {scope}")

        for path in documents:
            scanned = self.scan_document(path)
            if scanned is not None:
                result.documents[path] = scanned
        return result

    def scan_project(self, start: Optional[Path] = None) -> ScanResult:
        """
        Scan every document of the project containing ``start``.

        Raises:
            ScopeError: If no project root can be found
        """
        start = Path(start) if start is not None else Path.cwd()
        root = find_project_root(start, self.config.root_markers)
        if root is None:
            raise ScopeError(f"Could not find project root starting from {start}")
        return self.scan(root)
