"""
Exception taxonomy for drifty.

Errors scoped to a single watch entry or document are caught by the drift
engine and turned into statuses or per-document errors. Errors scoped to a
command invocation propagate to the CLI, which prints them and exits non-zero.

Each class carries an ``error_code`` understood by the logger
(see ``drifty.core.logger.ERROR_CODES``).
"""

from pathlib import Path
from typing import Optional


class DriftyError(Exception):
    """Base exception for all drifty errors."""
    error_code: Optional[str] = None


class HashingError(DriftyError):
    """A target file or directory is missing or unreadable at hash time."""
    error_code = "DW-IO"

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to read {path}: {reason}")


class FrontmatterParseError(DriftyError):
    """The frontmatter block of a document is not valid structured data."""
    error_code = "DW-PARSE"


class NoProjectRootError(DriftyError):
    """No ancestor directory carries a repository marker."""
    error_code = "DW-ROOT"


class NoMatchError(DriftyError):
    """A path spec resolves to nothing on disk."""
    error_code = "DW-MATCH"


class AlreadyInitializedError(DriftyError):
    """The document already carries the tracking key."""


class NotInitializedError(DriftyError):
    """The document has no tracking key yet."""


class DuplicateEntryError(DriftyError):
    """The path spec is already tracked by the document."""


class InvalidDocumentError(DriftyError):
    """The documentation file does not exist or cannot be read."""
    error_code = "DW-IO"


class TargetUnresolvableError(DriftyError):
    """A path spec passed to ``add`` cannot be resolved or hashed."""
    error_code = "DW-MATCH"


class ScopeError(DriftyError):
    """The scan scope does not exist or is not a documentation file."""
    error_code = "DW-IO"


class SessionStateError(DriftyError):
    """A reconciliation transition was requested from the wrong state."""


class AtomicWriteError(DriftyError):
    """Error during atomic write operation."""
    error_code = "DW-WRITE"
