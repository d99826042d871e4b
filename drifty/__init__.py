"""
drifty - Keep documentation in step with the code it describes.

Documentation files record a content fingerprint of every source file they
describe in YAML frontmatter; drifty reports which of those files changed
since and lets a user accept the new fingerprints.
"""

from drifty.core import (
    DriftEngine,
    DriftRecord,
    ScanResult,
    Status,
    ReconciliationSession,
)

__version__ = "0.1.0"
__license__ = "MIT"

__all__ = [
    "DriftEngine",
    "DriftRecord",
    "ScanResult",
    "Status",
    "ReconciliationSession",
    "__version__",
    "__license__",
]
