"""
Report generation for drift scans.

Provides renderers for:
- Plaintext (terminal-friendly, one line per watch entry)
- JSON (machine-readable)
- YAML (machine-readable)

and the validation pass behind ``drifty validate``, which checks that every
watch entry is well-formed and still points at something on disk.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

import yaml

from .colors import status_label
from .config import DriftyConfig, ValidationResult
from .drift import ScanResult, discover_documents
from .errors import DriftyError
from .frontmatter import FrontmatterStore
from .paths import PathResolver

logger = logging.getLogger(__name__)

EMPTY_MESSAGE = "No driftwatcher entries found."

FORMATS = ('plaintext', 'json', 'yaml')


def _status_map(result: ScanResult) -> Dict[str, Dict[str, str]]:
    """
    Mapping of document path -> path spec -> status token.

    Documents without entries are omitted. A spec listed twice in one
    document keeps the status of its last occurrence.
    """
    report: Dict[str, Dict[str, str]] = {}
    for path, scan in result.documents.items():
        if not scan.records:
            continue
        report[str(path)] = {record.path_spec: str(record.status) for record in scan.records}
    return report


def render_plaintext(result: ScanResult) -> str:
    """
    Render a scan as indented text.

    Format:
        docs/api.md
          CURRENT  src/api.py
          DRIFTED  $ROOT/lib/*.py

    Returns:
        Report text (always ends with a newline)
    """
    documents = sorted(
        (scan for scan in result.documents.values() if scan.records),
        key=lambda scan: str(scan.path)
    )
    if not documents:
        return EMPTY_MESSAGE + "\n"

    lines: List[str] = []
    for scan in documents:
        lines.append(str(scan.path))
        for record in scan.records:
            lines.append(f"  {status_label(str(record.status))} {record.path_spec}")
        lines.append("")
    return "\n".join(lines) + "\n"


def render_json(result: ScanResult) -> str:
    return json.dumps(_status_map(result), indent=2, sort_keys=True) + "\n"


def render_yaml(result: ScanResult) -> str:
    report = _status_map(result)
    if not report:
        return "{}\n"
    return yaml.safe_dump(report, sort_keys=True, default_flow_style=False, allow_unicode=True)


RENDERERS = {
    'plaintext': render_plaintext,
    'json': render_json,
    'yaml': render_yaml,
}


def render(result: ScanResult, fmt: str = 'plaintext') -> str:
    """
    Render a scan in the requested format.

    Raises:
        ValueError: If ``fmt`` is not one of FORMATS
    """
    try:
        renderer = RENDERERS[fmt]
    except KeyError:
        raise ValueError(f"Unknown report format: {fmt} (choose from {', '.join(FORMATS)})")
    return renderer(result)


def summary_line(result: ScanResult) -> str:
    """One-line tally, e.g. ``2 current, 1 drifted, 0 missing, 0 invalid``."""
    counts = result.counts()
    return ", ".join(f"{count} {status.value.lower()}" for status, count in counts.items())


@dataclass
class ScopeValidation(ValidationResult):
    """Validation result for documentation files; ``checked`` counts tracked documents."""
    checked: int = 0


def validate(scope: Optional[Path] = None, config: Optional[DriftyConfig] = None) -> ScopeValidation:
    """
    Check every watch entry in scope without comparing hashes.

    Errors are reported for:
    - documents whose frontmatter cannot be read or parsed
    - entries without a hash
    - literal paths that do not exist
    - glob patterns that match no files
    - any other resolution failure (no project root, escaping the root)

    Warnings are reported for path specs listed twice in one document.

    Raises:
        ScopeError: If the scope does not exist or is not a documentation file
    """
    config = config or DriftyConfig()
    scope = Path(scope) if scope is not None else Path('.')
    result = ScopeValidation()

    for path in discover_documents(scope, config):
        try:
            store = FrontmatterStore.load(path, config.tracking_key, config.max_file_size)
        except DriftyError as e:
            result.errors.append(f"{path}: {e}")
            continue

        if not store.frontmatter.has_tracking_key:
            continue
        result.checked += 1

        resolver = PathResolver(path, config.root_markers)
        seen = set()
        for entry in store.entries:
            if entry.path_spec in seen:
                result.warnings.append(f"{path}: Entry '{entry.path_spec}' is listed more than once")
            seen.add(entry.path_spec)

            if not entry.has_hash:
                result.errors.append(f"{path}: Entry '{entry.path_spec}' has no hash")

            target = resolver.resolve(entry.path_spec)
            if not target.ok:
                result.errors.append(f"{path}: {target.message}")

    logger.debug(
        f"Validated {result.checked} document(s): "
        f"{len(result.errors)} error(s), {len(result.warnings)} warning(s)"
    )
    return result
