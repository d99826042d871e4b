"""
Interactive reconciliation of drifted watch entries.

A ``ReconciliationSession`` holds the DRIFTED and MISSING records of one scan
and walks through a small state machine:

    BROWSING --confirm--> CONFIRMED --apply--> APPLIED
        |                     |
        +------abort----------+--------------> CANCELLED

While browsing, the presenter moves a cursor and toggles selections. Nothing
touches the disk until ``apply``: selected DRIFTED entries get the hash the
scan computed, selected MISSING entries are removed from their document.
"""

import logging
from collections import OrderedDict
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from .config import DriftyConfig
from .drift import DriftRecord, ScanResult, Status
from .errors import DriftyError, SessionStateError
from .frontmatter import FrontmatterStore
from .logger import DocumentLogger

logger = logging.getLogger(__name__)


class SessionState(Enum):
    BROWSING = "browsing"
    CONFIRMED = "confirmed"
    APPLIED = "applied"
    CANCELLED = "cancelled"


@dataclass
class SessionItem:
    """One eligible record and whether the user accepted it."""
    record: DriftRecord
    selected: bool = False

    @property
    def action(self) -> str:
        return "remove" if self.record.status is Status.MISSING else "update"

    @property
    def label(self) -> str:
        return f"{self.record.document}: {self.record.path_spec}"


@dataclass
class ApplyResult:
    """
    Outcome of committing a session.

    Attributes:
        updated: Entries whose hash was replaced
        removed: Entries removed because their target is gone
        written: Documents written to disk
        failures: (document, reason) for every document that could not be
            updated; other documents are unaffected
    """
    updated: int = 0
    removed: int = 0
    written: List[Path] = field(default_factory=list)
    failures: List[Tuple[Path, str]] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class ReconciliationSession:
    """
    Selection state over the eligible records of a scan.

    Usage:
        session = ReconciliationSession(engine.scan(Path("docs")))
        session.select_all()
        session.confirm()
        result = session.apply()
    """

    def __init__(self, scan: ScanResult, config: Optional[DriftyConfig] = None):
        self.config = config or DriftyConfig()
        self.items = [SessionItem(record) for record in scan.eligible()]
        self.display_only = [record for record in scan.records() if not record.status.is_problem]
        self.broken_documents = scan.errors()
        self.cursor = 0
        self.state = SessionState.BROWSING

    def _require(self, *states: SessionState):
        if self.state not in states:
            expected = " or ".join(s.name for s in states)
            raise SessionStateError(
                f"Session is {self.state.name}, expected {expected}"
            )

    @property
    def selected(self) -> List[SessionItem]:
        return [item for item in self.items if item.selected]

    @property
    def current(self) -> Optional[SessionItem]:
        return self.items[self.cursor] if self.items else None

    def move_to(self, index: int):
        """Place the cursor on ``index``, clamped to the item range."""
        self._require(SessionState.BROWSING)
        if self.items:
            self.cursor = max(0, min(index, len(self.items) - 1))

    def move_cursor(self, delta: int):
        self.move_to(self.cursor + delta)

    def toggle(self):
        """Flip the selection of the item under the cursor."""
        self._require(SessionState.BROWSING)
        if self.current is not None:
            self.current.selected = not self.current.selected

    def select_all(self):
        self._require(SessionState.BROWSING)
        for item in self.items:
            item.selected = True

    def select_none(self):
        self._require(SessionState.BROWSING)
        for item in self.items:
            item.selected = False

    def confirm(self, acknowledge_empty: bool = False):
        """
        Finish browsing.

        Raises:
            SessionStateError: If nothing is selected and the empty choice was
                not acknowledged, or if the session is not browsing
        """
        self._require(SessionState.BROWSING)
        if not self.selected and not acknowledge_empty:
            raise SessionStateError("No entries selected")
        self.state = SessionState.CONFIRMED

    def abort(self):
        """Cancel the session. Nothing is written."""
        self._require(SessionState.BROWSING, SessionState.CONFIRMED)
        self.state = SessionState.CANCELLED

    def _grouped(self) -> Dict[Path, List[DriftRecord]]:
        groups: Dict[Path, List[DriftRecord]] = OrderedDict()
        for item in self.selected:
            groups.setdefault(item.record.document, []).append(item.record)
        return groups

    def _apply_document(self, path: Path, records: List[DriftRecord], result: ApplyResult):
        store = FrontmatterStore.load(path, self.config.tracking_key, self.config.max_file_size)

        removals = []
        updated = 0
        for record in records:
            if record.status is Status.MISSING:
                removals.append((record.index, record.path_spec))
            else:
                store.update_hash(record.index, record.path_spec, record.computed_hash)
                updated += 1
        store.remove_entries(removals)

        if store.save():
            result.written.append(path)
        result.updated += updated
        result.removed += len(removals)

    def apply(self) -> ApplyResult:
        """
        Write the selected changes, one document at a time.

        Each document is re-read, its entries located by position and
        checked against the scanned path spec, and written atomically. A
        document that changed since the scan or cannot be written is
        recorded in ``failures`` and left untouched.
        """
        self._require(SessionState.CONFIRMED)
        result = ApplyResult()

        for path, records in self._grouped().items():
            doc_log = DocumentLogger(path, logger)
            try:
                self._apply_document(path, records, result)
            except KeyError as e:
                reason = f"{e.args[0]} (document changed since scan)"
                doc_log.error(reason, operation='apply')
                result.failures.append((path, reason))
            except DriftyError as e:
                doc_log.error(str(e), operation='apply', error_code=e.error_code)
                result.failures.append((path, str(e)))
            else:
                doc_log.info(f"Applied {len(records)} change(s)", operation='apply')

        self.state = SessionState.APPLIED
        return result
