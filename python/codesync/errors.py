"""
Exception hierarchy for codesync.

Filesystem errors are never raised out of the tracker (they are logged and the
file is skipped), so these types mostly surface at construction time or from
the upload collaborator.
"""

from enum import Enum


class CodesyncError(Exception):
    """Base class for all codesync errors."""


class ConfigError(CodesyncError):
    """Raised when configuration values are invalid."""


class StorageError(CodesyncError):
    """Raised when the persisted key-value store cannot be read or written."""


class UploadErrorKind(Enum):
    """Retry eligibility of a failed upload."""

    TRANSIENT = "transient"  # network, server, timeout - worth retrying
    PERMANENT = "permanent"  # auth, validation - retrying won't help


class UploadError(CodesyncError):
    """
    A failed upload attempt.

    Args:
        message: Human-readable description
        kind: Retry eligibility (None when the source didn't classify it)
    """

    def __init__(self, message: str, kind: UploadErrorKind | None = None):
        super().__init__(message)
        self.kind = kind
