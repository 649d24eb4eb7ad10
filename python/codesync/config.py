"""
Runtime configuration for codesync.

All durations are in seconds. Every field can be overridden from the
environment with a CODESYNC_ prefix, e.g. CODESYNC_DEBOUNCE_DELAY=0.5 or
CODESYNC_FOLD_NEGATIONS=1.
"""

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Mapping, Optional, get_origin

from codesync.errors import ConfigError
from codesync.ignore_defaults import EXCLUDED_DIRECTORIES, SOURCE_FILE_PATTERNS


ENV_PREFIX = "CODESYNC_"

_TRUE_VALUES = {"1", "true", "yes", "on"}


@dataclass
class IndexConfig:
    """Tuning constants for tracking and synchronization."""

    # Change tracking
    debounce_delay: float = 1.0
    mtime_tolerance: float = 1.0
    index_batch_size: int = 50

    # Background sync
    sync_interval: float = 3.0
    retry_delay: float = 5.0
    max_retries: int = 3

    # Pattern filtering
    include_patterns: list[str] = field(default_factory=lambda: list(SOURCE_FILE_PATTERNS))
    exclude_patterns: list[str] = field(default_factory=lambda: list(EXCLUDED_DIRECTORIES))
    fold_negations: bool = False

    # Collaborators
    api_base_url: str = "http://127.0.0.1:8000"
    upload_timeout: float = 30.0
    state_dir: Path = field(default_factory=lambda: Path.cwd() / ".codesync")

    def __post_init__(self) -> None:
        if self.debounce_delay <= 0 or self.debounce_delay > 10:
            raise ConfigError("debounce_delay must be between 0 and 10 seconds")
        if self.mtime_tolerance < 0:
            raise ConfigError("mtime_tolerance must not be negative")
        if self.index_batch_size < 1:
            raise ConfigError("index_batch_size must be at least 1")
        if self.sync_interval <= 0:
            raise ConfigError("sync_interval must be positive")
        if self.retry_delay < 0:
            raise ConfigError("retry_delay must not be negative")
        if self.max_retries < 0:
            raise ConfigError("max_retries must not be negative")
        self.state_dir = Path(self.state_dir)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "IndexConfig":
        """
        Build a config from CODESYNC_* environment variables.

        Explicit keyword overrides win over the environment. List fields take
        comma-separated values.

        Raises:
            ConfigError: If a variable can't be converted to the field's type
        """
        environ = os.environ if environ is None else environ
        values: dict = {}

        for f in fields(cls):
            raw = environ.get(f"{ENV_PREFIX}{f.name.upper()}")
            if raw is None:
                continue
            values[f.name] = _convert(f.name, f.type, raw)

        values.update(overrides)
        return cls(**values)


def _convert(name: str, type_hint, raw: str):
    try:
        if type_hint is bool:
            return raw.strip().lower() in _TRUE_VALUES
        if type_hint is int:
            return int(raw)
        if type_hint is float:
            return float(raw)
        if type_hint is Path:
            return Path(raw)
        if get_origin(type_hint) is list:
            return [item.strip() for item in raw.split(",") if item.strip()]
    except ValueError as e:
        raise ConfigError(f"Invalid value for {ENV_PREFIX}{name.upper()}: {raw!r}") from e
    return raw
