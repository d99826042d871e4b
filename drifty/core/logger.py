"""
Logging for drifty.

Provides structured logging with:
- Console output on stderr (colorized if supported), so JSON and YAML
  reports on stdout stay machine-readable
- File output (JSON lines for parsing)
- Context tracking (document, path spec, operation)
- Error categorization

Usage:
    from drifty.core.logger import setup_logger, DocumentLogger

    logger = setup_logger("drifty", log_file=Path("drifty.log"))
    logger.info("Scanning", extra={"document": "docs/api.md"})

    doc_log = DocumentLogger(Path("docs/api.md"))
    doc_log.warning("Pattern matches no files", path_spec="src/*.rs", error_code="DW-MATCH")
"""

import json
import logging
import sys
from dataclasses import asdict, dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional

ERROR_CODES = {
    "DW-IO": "File missing or unreadable",
    "DW-PARSE": "Malformed frontmatter",
    "DW-ROOT": "Project root not found",
    "DW-MATCH": "Path spec matches nothing",
    "DW-WRITE": "Document write failed",
    "DW-CFG": "Invalid configuration",
}

CONTEXT_FIELDS = ('document', 'path_spec', 'operation', 'error_code')


@dataclass
class LogContext:
    """Context information for log entries."""
    document: Optional[str] = None
    path_spec: Optional[str] = None
    operation: Optional[str] = None
    error_code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict, excluding None values."""
        return {k: v for k, v in asdict(self).items() if v is not None}


class ContextFilter(logging.Filter):
    """Add context information to log records."""

    def __init__(self, default_context: Optional[LogContext] = None):
        super().__init__()
        self.context = default_context or LogContext()

    def filter(self, record: logging.LogRecord) -> bool:
        for key, value in self.context.to_dict().items():
            if not hasattr(record, key):
                setattr(record, key, value)

        for name in CONTEXT_FIELDS:
            if not hasattr(record, name):
                setattr(record, name, None)

        return True


class ColoredFormatter(logging.Formatter):
    """Colorized console formatter."""

    COLORS = {
        'DEBUG': '\033[36m',     # Cyan
        'INFO': '\033[32m',      # Green
        'WARNING': '\033[33m',   # Yellow
        'ERROR': '\033[31m',     # Red
        'CRITICAL': '\033[35m',  # Magenta
        'RESET': '\033[0m',
    }

    def __init__(self, use_colors: bool = True, stream=None):
        super().__init__()
        stream = stream or sys.stderr
        self.use_colors = use_colors and hasattr(stream, 'isatty') and stream.isatty()

    def format(self, record: logging.LogRecord) -> str:
        level = record.levelname
        if self.use_colors:
            parts = [f"{self.COLORS.get(level, '')}{level}{self.COLORS['RESET']}"]
        else:
            parts = [level]

        document = getattr(record, 'document', None)
        path_spec = getattr(record, 'path_spec', None)
        if document and path_spec:
            parts.append(f"({document} -> {path_spec})")
        elif document:
            parts.append(f"({document})")

        parts.append(record.getMessage())

        error_code = getattr(record, 'error_code', None)
        if error_code:
            parts.append(f"[{error_code}: {ERROR_CODES.get(error_code, 'Unknown error')}]")

        return ' '.join(parts)


class JSONFormatter(logging.Formatter):
    """JSON formatter for file logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_entry = {
            'timestamp': datetime.now().isoformat(),
            'level': record.levelname,
            'message': record.getMessage(),
            'logger': record.name,
        }

        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                log_entry[name] = value

        if record.exc_info:
            log_entry['exception'] = self.formatException(record.exc_info)

        return json.dumps(log_entry)


def setup_logger(
    name: str = "drifty",
    log_file: Optional[Path] = None,
    level: int = logging.WARNING,
    console: bool = True,
    use_colors: bool = True
) -> logging.Logger:
    """
    Setup logger with file and console output.

    Child loggers (``drifty.core.drift`` and friends) propagate here.

    Args:
        name: Logger name
        log_file: Path to log file (JSON lines)
        level: Logging level
        console: Enable console output on stderr
        use_colors: Use ANSI colors in console

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)
    logger.setLevel(logging.DEBUG if log_file else level)
    logger.handlers.clear()
    logger.filters.clear()

    context_filter = ContextFilter()

    if console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.addFilter(context_filter)
        console_handler.setFormatter(ColoredFormatter(use_colors))
        logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.addFilter(context_filter)
        file_handler.setFormatter(JSONFormatter())
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = "drifty") -> logging.Logger:
    return logging.getLogger(name)


class DocumentLogger:
    """
    Logger wrapper that tags every message with a documentation file.
    """

    def __init__(self, document: Path, logger: Optional[logging.Logger] = None):
        self.document = str(document)
        self._logger = logger or get_logger()

    def _log(
        self,
        level: int,
        message: str,
        path_spec: Optional[str] = None,
        error_code: Optional[str] = None,
        operation: Optional[str] = None
    ):
        extra = {
            'document': self.document,
            'path_spec': path_spec,
            'error_code': error_code,
            'operation': operation,
        }
        self._logger.log(level, message, extra=extra)

    def debug(self, message: str, **kwargs):
        self._log(logging.DEBUG, message, **kwargs)

    def info(self, message: str, **kwargs):
        self._log(logging.INFO, message, **kwargs)

    def warning(self, message: str, **kwargs):
        self._log(logging.WARNING, message, **kwargs)

    def error(self, message: str, **kwargs):
        self._log(logging.ERROR, message, **kwargs)
