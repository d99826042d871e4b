"""
YAML frontmatter handling for documentation files.

The frontmatter block sits at the very top of a document between a ``---``
line and the next ``---`` (or ``...``) line. drifty owns a single key in that
block (``driftwatcher`` by default) whose value is a list of one-key mappings::

    ---
    title: Architecture
    driftwatcher:
      - "src/main.rs": 3a7bd3e2360a3d29eea436fcfb7e44c735d117c42d1c1835420b6b9942dd4f1b
      - "$ROOT/lib/**/*.rs": 89e6c98d92887913cadf06b2adb97f26cde4849b826d4e9e6a7b9b1b2c3d4e5f
    ---

Only the lines of the tracking key are ever regenerated. Every other key,
comment and the document body are written back byte-for-byte.
"""

import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple

import yaml

from .atomic_write import atomic_write
from .errors import (
    AlreadyInitializedError,
    DuplicateEntryError,
    FrontmatterParseError,
    HashingError,
    InvalidDocumentError,
    NotInitializedError,
    TargetUnresolvableError,
)
from .hashing import hash_target
from .paths import DEFAULT_ROOT_MARKERS, PathResolver, ResolvedTarget

logger = logging.getLogger(__name__)

DEFAULT_TRACKING_KEY = "driftwatcher"
OPEN_MARKER = "---"
CLOSE_MARKERS = ("---", "...")

# Maximum documentation file size (in bytes) read into memory
MAX_DOCUMENT_SIZE = 10 * 1024 * 1024

_HEX = re.compile(r'[0-9a-f]+')


@dataclass
class WatchEntry:
    """One tracked path spec and the fingerprint recorded for it."""
    path_spec: str
    stored_hash: Optional[str] = None

    @property
    def has_hash(self) -> bool:
        return bool(self.stored_hash)


@dataclass
class DocumentFrontmatter:
    """
    Parsed frontmatter of one document.

    Attributes:
        entries: Watch entries in document order (duplicates allowed)
        raw_other_keys: Every other key of the block, in document order
        has_block: Whether the document starts with a frontmatter block
        has_tracking_key: Whether the block contains the tracking key
    """
    entries: List[WatchEntry] = field(default_factory=list)
    raw_other_keys: Dict[Any, Any] = field(default_factory=dict)
    has_block: bool = False
    has_tracking_key: bool = False


@dataclass
class _Block:
    opening: str
    lines: List[str]
    closing: str
    body: str


def _split_block(text: str) -> Optional[_Block]:
    """Split a document into its frontmatter lines and body, or None."""
    lines = text.splitlines(keepends=True)
    if not lines or lines[0].rstrip() != OPEN_MARKER:
        return None

    for index in range(1, len(lines)):
        if lines[index].rstrip() in CLOSE_MARKERS:
            return _Block(
                opening=lines[0],
                lines=lines[1:index],
                closing=lines[index],
                body=''.join(lines[index + 1:]),
            )

    raise FrontmatterParseError("Frontmatter not closed (missing closing ---)")


def _as_hash(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _as_spec(value: Any, key: str) -> str:
    spec = "" if value is None else str(value)
    if not spec.strip():
        raise FrontmatterParseError(f"'{key}' contains an entry with an empty path")
    return spec


def _entries_from(value: Any, key: str) -> List[WatchEntry]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise FrontmatterParseError(
            f"'{key}' must be a list of path: hash mappings, got {type(value).__name__}"
        )

    entries = []
    for item in value:
        if isinstance(item, dict):
            if not item:
                raise FrontmatterParseError(f"'{key}' contains an empty mapping")
            for spec, stored in item.items():
                entries.append(WatchEntry(_as_spec(spec, key), _as_hash(stored)))
        elif isinstance(item, str):
            # Bare path without a hash
            entries.append(WatchEntry(_as_spec(item, key), None))
        else:
            raise FrontmatterParseError(
                f"'{key}' entries must be path: hash mappings, got {item!r}"
            )
    return entries


def parse(text: str, key: str = DEFAULT_TRACKING_KEY) -> DocumentFrontmatter:
    """
    Parse the frontmatter of a document.

    Args:
        text: Full document text
        key: Tracking key holding the watch entries

    Returns:
        DocumentFrontmatter (empty if the document has no block)

    Raises:
        FrontmatterParseError: If the block is unclosed, not valid YAML,
            not a mapping, or the tracking key has the wrong shape
    """
    block = _split_block(text)
    if block is None:
        return DocumentFrontmatter()

    try:
        data = yaml.safe_load(''.join(block.lines))
    except yaml.YAMLError as e:
        raise FrontmatterParseError(f"Failed to parse YAML frontmatter: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise FrontmatterParseError(
            f"Frontmatter must be a mapping, got {type(data).__name__}"
        )

    other = {k: v for k, v in data.items() if k != key}
    return DocumentFrontmatter(
        entries=_entries_from(data.get(key), key),
        raw_other_keys=other,
        has_block=True,
        has_tracking_key=key in data,
    )


def _newline_of(line: str) -> str:
    return '\r\n' if line.endswith('\r\n') else '\n'


def _find_key_region(lines: List[str], key: str) -> Optional[Tuple[int, int]]:
    """
    Locate the [start, end) line range of a top-level key in block lines.

    The range is taken from the marks of the composed YAML nodes, so comments
    and flow-style values are covered whatever their indentation. Blank and
    comment-only lines after the value are left to whatever follows.

    Raises:
        FrontmatterParseError: If the key does not start its own line
    """
    try:
        root = yaml.compose(''.join(lines))
    except yaml.YAMLError as e:
        raise FrontmatterParseError(f"Failed to parse YAML frontmatter: {e}") from e
    if not isinstance(root, yaml.MappingNode):
        return None

    span = None
    # The last occurrence wins, as it does for safe_load
    for key_node, value_node in root.value:
        if not (isinstance(key_node, yaml.ScalarNode) and key_node.value == key):
            continue
        if root.flow_style or key_node.start_mark.column != 0:
            raise FrontmatterParseError(
                f"Cannot rewrite '{key}': it must start its own line in the frontmatter"
            )
        end_mark = value_node.end_mark
        end = end_mark.line if end_mark.column == 0 else end_mark.line + 1
        span = (key_node.start_mark.line, min(end, len(lines)))

    if span is None:
        return None

    start, end = span
    while end > start + 1:
        tail = lines[end - 1].strip()
        if tail and not tail.startswith('#'):
            break
        end -= 1
    return start, end


def _render_hash(value: str) -> str:
    if _HEX.fullmatch(value) and yaml.safe_load(value) == value:
        return value
    return json.dumps(value)


def _render_region(key: str, entries: Iterable[WatchEntry], newline: str = '\n') -> List[str]:
    lines = [f"{key}:{newline}"]
    for entry in entries:
        spec = json.dumps(entry.path_spec, ensure_ascii=False)
        if entry.stored_hash:
            lines.append(f"  - {spec}: {_render_hash(entry.stored_hash)}{newline}")
        else:
            lines.append(f"  - {spec}:{newline}")
    return lines


def serialize(
    frontmatter: DocumentFrontmatter,
    text: str,
    key: str = DEFAULT_TRACKING_KEY
) -> str:
    """
    Write frontmatter back into the document it was parsed from.

    Returns ``text`` unchanged when neither the entries nor the presence of
    the tracking key changed. Otherwise only the tracking key's lines are
    regenerated; a missing block is inserted at the top of the document and a
    missing key is appended to the end of the block.

    Args:
        frontmatter: Possibly mutated frontmatter
        text: The document text ``frontmatter`` was parsed from
        key: Tracking key

    Returns:
        New document text
    """
    original = parse(text, key)
    write_key = frontmatter.has_tracking_key or bool(frontmatter.entries)
    if original.entries == frontmatter.entries and original.has_tracking_key == write_key:
        return text

    block = _split_block(text)
    if block is None:
        first_line = text.splitlines(keepends=True)[:1]
        newline = _newline_of(first_line[0]) if first_line else '\n'
        region = _render_region(key, frontmatter.entries, newline)
        return OPEN_MARKER + newline + ''.join(region) + OPEN_MARKER + newline + text

    newline = _newline_of(block.opening)
    region = _render_region(key, frontmatter.entries, newline)
    lines = list(block.lines)
    span = _find_key_region(lines, key)
    if span is None:
        if lines and not lines[-1].endswith('\n'):
            lines[-1] += newline
        lines.extend(region)
    else:
        start, end = span
        lines[start:end] = region

    opening = block.opening if block.opening.endswith('\n') else block.opening + newline
    return opening + ''.join(lines) + block.closing + block.body


def init_document(text: str, key: str = DEFAULT_TRACKING_KEY) -> str:
    """
    Add an empty tracking key to a document.

    Raises:
        AlreadyInitializedError: If the tracking key is already present
        FrontmatterParseError: If the existing block cannot be parsed
    """
    frontmatter = parse(text, key)
    if frontmatter.has_tracking_key:
        raise AlreadyInitializedError(f"'{key}' is already initialized")
    frontmatter.has_tracking_key = True
    return serialize(frontmatter, text, key)


def read_document(path: Path, max_size: int = MAX_DOCUMENT_SIZE) -> str:
    """
    Read a documentation file with a size limit.

    Raises:
        InvalidDocumentError: If the file is missing, too large, not UTF-8,
            or unreadable
    """
    path = Path(path)
    if not path.is_file():
        raise InvalidDocumentError(f"Invalid file: {path}")

    try:
        size = path.stat().st_size
        if size > max_size:
            raise InvalidDocumentError(
                f"File too large: {path} is {size:,} bytes (max: {max_size:,} bytes)"
            )
        return path.read_text(encoding='utf-8')
    except UnicodeDecodeError as e:
        raise InvalidDocumentError(f"Cannot read {path}: not valid UTF-8") from e
    except OSError as e:
        raise InvalidDocumentError(f"Cannot read {path}: {e.strerror or e}") from e


class FrontmatterStore:
    """
    In-memory frontmatter of one documentation file.

    Holds the document text it was loaded from so ``render`` can rewrite only
    the tracking key. Entries are addressed by index because a document may
    list the same path spec more than once.
    """

    def __init__(self, path: Path, text: str, key: str = DEFAULT_TRACKING_KEY):
        self.path = Path(path)
        self.key = key
        self.text = text
        self.frontmatter = parse(text, key)

    @classmethod
    def load(
        cls,
        path: Path,
        key: str = DEFAULT_TRACKING_KEY,
        max_size: int = MAX_DOCUMENT_SIZE
    ) -> 'FrontmatterStore':
        """Read and parse a document from disk."""
        return cls(path, read_document(path, max_size), key)

    @property
    def entries(self) -> List[WatchEntry]:
        return self.frontmatter.entries

    @property
    def modified(self) -> bool:
        return self.render() != self.text

    def init(self):
        """Add an empty tracking key (see ``init_document``)."""
        if self.frontmatter.has_tracking_key:
            raise AlreadyInitializedError(
                f"{self.key} already initialized in {self.path}"
            )
        self.frontmatter.has_tracking_key = True

    def append(self, entry: WatchEntry):
        self.frontmatter.entries.append(entry)
        self.frontmatter.has_tracking_key = True

    def _entry_at(self, index: int, path_spec: str) -> WatchEntry:
        if not 0 <= index < len(self.entries) or self.entries[index].path_spec != path_spec:
            raise KeyError(f"Entry '{path_spec}' not found at position {index} in {self.path}")
        return self.entries[index]

    def update_hash(self, index: int, path_spec: str, new_hash: str):
        """
        Replace the stored hash of one entry.

        Raises:
            KeyError: If the entry at ``index`` no longer has ``path_spec``
        """
        self._entry_at(index, path_spec).stored_hash = new_hash

    def remove_entries(self, positions: Iterable[Tuple[int, str]]):
        """
        Remove entries given as (index, path_spec) pairs.

        Raises:
            KeyError: If any entry no longer matches; nothing is removed then
        """
        positions = sorted(set(positions), reverse=True)
        for index, spec in positions:
            self._entry_at(index, spec)
        for index, _ in positions:
            del self.frontmatter.entries[index]

    def render(self) -> str:
        return serialize(self.frontmatter, self.text, self.key)

    def save(self) -> bool:
        """
        Write the document if anything changed.

        Returns:
            True if the file was written

        Raises:
            AtomicWriteError: If the write fails
        """
        rendered = self.render()
        if rendered == self.text:
            return False
        atomic_write(self.path, rendered)
        logger.debug("Wrote %s", self.path, extra={'document': str(self.path), 'operation': 'save'})
        self.text = rendered
        self.frontmatter = parse(rendered, self.key)
        return True


@dataclass
class AddResult:
    """Outcome of ``add_watch``."""
    entry: WatchEntry
    target: ResolvedTarget


def init_file(path: Path, key: str = DEFAULT_TRACKING_KEY, max_size: int = MAX_DOCUMENT_SIZE) -> bool:
    """
    Initialize a documentation file with an empty tracking key.

    Returns:
        True if a new frontmatter block was created, False if the key was
        added to an existing block

    Raises:
        InvalidDocumentError: If the file does not exist or cannot be read
        FrontmatterParseError: If the existing block cannot be parsed
        AlreadyInitializedError: If the key is already present
        AtomicWriteError: If the write fails
    """
    store = FrontmatterStore.load(path, key, max_size)
    created = not store.frontmatter.has_block
    store.init()
    store.save()
    return created


def add_watch(
    path: Path,
    path_spec: str,
    key: str = DEFAULT_TRACKING_KEY,
    root_markers: Iterable[str] = DEFAULT_ROOT_MARKERS,
    max_size: int = MAX_DOCUMENT_SIZE
) -> AddResult:
    """
    Start watching ``path_spec`` from a documentation file.

    The hash is computed immediately and the entry appended to the
    tracking key.

    Raises:
        InvalidDocumentError: If the file does not exist or cannot be read
        FrontmatterParseError: If the block cannot be parsed
        NotInitializedError: If the document has no tracking key
        DuplicateEntryError: If the spec is already watched
        TargetUnresolvableError: If the spec resolves to nothing or cannot be hashed
        AtomicWriteError: If the write fails
    """
    store = FrontmatterStore.load(path, key, max_size)
    if not store.frontmatter.has_tracking_key:
        raise NotInitializedError(
            f"File not initialized. Run 'drifty init {path}' first."
        )
    if any(entry.path_spec == path_spec for entry in store.entries):
        raise DuplicateEntryError(f"Pattern '{path_spec}' already exists in {path}")

    result = add_entry(store.frontmatter, path_spec, PathResolver(path, root_markers))
    store.save()
    return result


def add_entry(
    frontmatter: DocumentFrontmatter,
    path_spec: str,
    resolver: PathResolver
) -> AddResult:
    """
    Resolve and hash ``path_spec``, then append it to ``frontmatter``.

    Raises:
        TargetUnresolvableError: If the spec resolves to nothing or cannot be hashed
    """
    target = resolver.resolve(path_spec)
    if not target.ok:
        raise TargetUnresolvableError(target.message)
    try:
        digest = hash_target(target.matched_paths)
    except HashingError as e:
        raise TargetUnresolvableError(f"Cannot hash '{path_spec}': {e}") from e

    entry = WatchEntry(path_spec, digest)
    frontmatter.entries.append(entry)
    frontmatter.has_tracking_key = True
    return AddResult(entry=entry, target=target)
