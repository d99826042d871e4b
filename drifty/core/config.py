"""
Project configuration for drifty.

Configuration is optional. When present it lives at the project root as
``.drifty.yaml``, ``.drifty.yml``, ``.drifty.toml`` or ``.drifty.json`` (or is
passed explicitly with ``--config``). Every key has a default:

    tracking_key: driftwatcher
    root_markers: [".git"]
    doc_extensions: [".md", ".markdown"]
    exclude: []
    max_file_size: 10485760
    workers: 1

Validation collects every problem into a ``ValidationResult`` instead of
stopping at the first one, so a user sees all mistakes in a single run.
"""

import json
import logging
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional, Tuple

import yaml

from .errors import DriftyError
from .frontmatter import DEFAULT_TRACKING_KEY, MAX_DOCUMENT_SIZE
from .paths import DEFAULT_ROOT_MARKERS, find_project_root

logger = logging.getLogger(__name__)

CONFIG_FILENAMES = ('.drifty.yaml', '.drifty.yml', '.drifty.toml', '.drifty.json')

# Config files larger than this are rejected outright
MAX_CONFIG_SIZE = 1024 * 1024
MAX_WORKERS = 64

KNOWN_KEYS = {
    'tracking_key',
    'root_markers',
    'doc_extensions',
    'exclude',
    'max_file_size',
    'workers',
}


class ConfigError(DriftyError):
    """Configuration error with context."""
    error_code = "DW-CFG"

    def __init__(self, key: str, message: str, value: Any = None, suggestion: str = None):
        self.key = key
        self.value = value
        self.suggestion = suggestion
        full_message = f"Config error at '{key}': {message}"
        if value is not None:
            full_message += f" (got: {value!r})"
        if suggestion:
            full_message += f". Suggestion: {suggestion}"
        super().__init__(full_message)


@dataclass
class ValidationResult:
    """Collected errors and warnings of a validation pass."""
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def __bool__(self) -> bool:
        return self.is_valid

    def log_warnings(self) -> 'ValidationResult':
        for warning in self.warnings:
            logger.warning(f"Config warning: {warning}")
        return self


@dataclass
class DriftyConfig:
    """Effective configuration."""
    tracking_key: str = DEFAULT_TRACKING_KEY
    root_markers: List[str] = field(default_factory=lambda: list(DEFAULT_ROOT_MARKERS))
    doc_extensions: List[str] = field(default_factory=lambda: ['.md', '.markdown'])
    exclude: List[str] = field(default_factory=list)
    max_file_size: int = MAX_DOCUMENT_SIZE
    workers: int = 1
    source: Optional[Path] = None


def ensure_list(value: Any, key_name: str, warnings: List[str]) -> List[str]:
    """
    Ensure value is a list of strings, converting a lone string to [string].

    Raises:
        ConfigError: If value cannot be converted
    """
    if value is None:
        return []

    if isinstance(value, str):
        warnings.append(
            f"[{key_name}] Expected list but got string '{value}'. "
            f"Converting to single-item list."
        )
        return [value]

    if isinstance(value, list):
        for item in value:
            if not isinstance(item, str) or not item:
                raise ConfigError(key_name, "List items must be non-empty strings", item)
        return value

    raise ConfigError(
        key_name,
        f"Expected list, got {type(value).__name__}",
        value,
        "Use list syntax: [item1, item2]"
    )


def validate_positive_int(value: Any, key_name: str, maximum: Optional[int] = None) -> int:
    """
    Validate a positive integer.

    Raises:
        ConfigError: If value is not an integer, below 1, or above ``maximum``
    """
    if not isinstance(value, int) or isinstance(value, bool):
        raise ConfigError(
            key_name,
            f"Must be an integer, got {type(value).__name__}",
            value
        )
    if value < 1:
        raise ConfigError(key_name, "Must be at least 1", value)
    if maximum is not None and value > maximum:
        raise ConfigError(key_name, f"Must be at most {maximum}", value, f"Decrease to at most {maximum}")
    return value


def _normalize_extension(ext: str) -> str:
    ext = ext.lower()
    return ext if ext.startswith('.') else '.' + ext


def validate_config(data: Any, source: Optional[Path] = None) -> Tuple[DriftyConfig, ValidationResult]:
    """
    Validate raw configuration data.

    Args:
        data: Parsed config file content
        source: Config file path (for reporting)

    Returns:
        (config, result) - ``config`` falls back to defaults for every key
        that failed validation
    """
    result = ValidationResult()
    config = DriftyConfig(source=source)

    if data is None:
        return config, result

    if not isinstance(data, dict):
        result.errors.append(
            f"[config] Configuration must be a mapping, got {type(data).__name__}"
        )
        return config, result

    for key in data:
        if key not in KNOWN_KEYS:
            result.warnings.append(f"[{key}] Unknown key ignored")

    def _check(key, fn):
        if key not in data:
            return
        try:
            setattr(config, key, fn(data[key]))
        except ConfigError as e:
            result.errors.append(str(e))

    def _tracking_key(value):
        if not isinstance(value, str) or not value.strip():
            raise ConfigError('tracking_key', "Must be a non-empty string", value)
        return value.strip()

    def _markers(value):
        markers = ensure_list(value, 'root_markers', result.warnings)
        if not markers:
            raise ConfigError('root_markers', "At least one marker is required", value, "Use ['.git']")
        return markers

    def _extensions(value):
        extensions = ensure_list(value, 'doc_extensions', result.warnings)
        if not extensions:
            raise ConfigError('doc_extensions', "At least one extension is required", value)
        return [_normalize_extension(ext) for ext in extensions]

    _check('tracking_key', _tracking_key)
    _check('root_markers', _markers)
    _check('doc_extensions', _extensions)
    _check('exclude', lambda v: ensure_list(v, 'exclude', result.warnings))
    _check('max_file_size', lambda v: validate_positive_int(v, 'max_file_size'))
    _check('workers', lambda v: validate_positive_int(v, 'workers', MAX_WORKERS))

    return config, result


def _parse_file(config_path: Path) -> Any:
    suffix = config_path.suffix.lower()
    try:
        if suffix in ('.yaml', '.yml'):
            with open(config_path, 'r', encoding='utf-8') as f:
                return yaml.safe_load(f)
        if suffix == '.toml':
            with open(config_path, 'rb') as f:
                data = tomllib.load(f)
            # pyproject-style [tool.drifty] table
            return data.get('tool', {}).get('drifty', data)
        if suffix == '.json':
            with open(config_path, 'r', encoding='utf-8') as f:
                return json.load(f)
    except yaml.YAMLError as e:
        raise ConfigError('config_file', f"YAML parse error: {e}", str(config_path)) from e
    except tomllib.TOMLDecodeError as e:
        raise ConfigError('config_file', f"TOML parse error: {e}", str(config_path)) from e
    except json.JSONDecodeError as e:
        raise ConfigError(
            'config_file', f"JSON parse error at line {e.lineno}: {e.msg}", str(config_path)
        ) from e
    except OSError as e:
        raise ConfigError('config_file', f"Cannot read config: {e}", str(config_path)) from e

    raise ConfigError(
        'config_file',
        f"Unsupported config format: {suffix}",
        str(config_path),
        "Use .yaml, .yml, .toml, or .json"
    )


def load_config(config_path: Path) -> Tuple[DriftyConfig, ValidationResult]:
    """
    Load and validate a configuration file.

    Raises:
        ConfigError: If the file is missing, too large, or cannot be parsed
    """
    config_path = Path(config_path)
    if not config_path.is_file():
        raise ConfigError('config_file', "Config file not found", str(config_path))

    size = config_path.stat().st_size
    if size > MAX_CONFIG_SIZE:
        raise ConfigError(
            'config_file',
            f"Config file too large ({size:,} bytes, max {MAX_CONFIG_SIZE:,})",
            str(config_path)
        )

    return validate_config(_parse_file(config_path), source=config_path)


def find_config_file(start: Path) -> Optional[Path]:
    """Look for a config file at the project root above ``start``."""
    root = find_project_root(start)
    if root is None:
        return None
    for name in CONFIG_FILENAMES:
        candidate = root / name
        if candidate.is_file():
            return candidate
    return None


def load_effective_config(
    config_path: Optional[Path] = None,
    start: Optional[Path] = None
) -> DriftyConfig:
    """
    Load the explicit config file, else the project's, else defaults.

    Raises:
        ConfigError: If the file cannot be loaded or fails validation
    """
    if config_path is None:
        config_path = find_config_file(start or Path.cwd())
        if config_path is None:
            return DriftyConfig()

    config, result = load_config(config_path)
    result.log_warnings()
    if not result.is_valid:
        raise ConfigError(
            'config',
            f"{len(result.errors)} error(s) in {config_path}: " + "; ".join(result.errors)
        )
    logger.debug(f"Loaded config from {config_path}")
    return config
