"""
drifty core - drift detection between documentation and the code it describes.

Every module depends only on the Python stdlib and PyYAML.
"""

from .errors import (
    DriftyError,
    HashingError,
    FrontmatterParseError,
    NoProjectRootError,
    NoMatchError,
    AlreadyInitializedError,
    NotInitializedError,
    DuplicateEntryError,
    InvalidDocumentError,
    TargetUnresolvableError,
    ScopeError,
    SessionStateError,
    AtomicWriteError,
)
from .hashing import (
    hash_file,
    hash_files,
    hash_directory,
    hash_target,
    collect_files,
)
from .paths import (
    PathResolver,
    ResolvedTarget,
    ResolutionFailure,
    find_project_root,
    resolve,
)
from .frontmatter import (
    WatchEntry,
    DocumentFrontmatter,
    FrontmatterStore,
    parse,
    serialize,
    init_document,
    init_file,
    add_entry,
    add_watch,
)
from .config import (
    ConfigError,
    DriftyConfig,
    ValidationResult,
    load_config,
    load_effective_config,
)
from .drift import (
    Status,
    DriftRecord,
    DocumentScan,
    ScanResult,
    DriftEngine,
    check_entry,
    discover_documents,
)
from .reconcile import (
    SessionState,
    ReconciliationSession,
    ApplyResult,
)
from .reporting import (
    render_plaintext,
    render_json,
    render_yaml,
    validate,
)

__all__ = [
    # Errors
    'DriftyError',
    'HashingError',
    'FrontmatterParseError',
    'NoProjectRootError',
    'NoMatchError',
    'AlreadyInitializedError',
    'NotInitializedError',
    'DuplicateEntryError',
    'InvalidDocumentError',
    'TargetUnresolvableError',
    'ScopeError',
    'SessionStateError',
    'AtomicWriteError',

    # Hashing
    'hash_file',
    'hash_files',
    'hash_directory',
    'hash_target',
    'collect_files',

    # Paths
    'PathResolver',
    'ResolvedTarget',
    'ResolutionFailure',
    'find_project_root',
    'resolve',

    # Frontmatter
    'WatchEntry',
    'DocumentFrontmatter',
    'FrontmatterStore',
    'parse',
    'serialize',
    'init_document',
    'init_file',
    'add_entry',
    'add_watch',

    # Config
    'ConfigError',
    'DriftyConfig',
    'ValidationResult',
    'load_config',
    'load_effective_config',

    # Drift
    'Status',
    'DriftRecord',
    'DocumentScan',
    'ScanResult',
    'DriftEngine',
    'check_entry',
    'discover_documents',

    # Reconciliation
    'SessionState',
    'ReconciliationSession',
    'ApplyResult',

    # Reporting
    'render_plaintext',
    'render_json',
    'render_yaml',
    'validate',
]
