"""
Change tracker type definitions.

- FileEvent enum: event kinds fed to the tracker by watchers and editors
- ChangeResult: outcome of classifying one file
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from codesync.storage.metadata import FileMetadata


class FileEvent(Enum):
    """Events that can trigger classification."""

    CREATED = "created"  # New file added to workspace
    MODIFIED = "modified"  # File content changed on disk or in an editor buffer
    DELETED = "deleted"  # File removed from workspace
    SAVED = "saved"  # Editor save - classified immediately, no debounce


@dataclass
class ChangeResult:
    """Result of classifying a file."""

    changed: bool  # True only if the file entered the pending change set
    metadata: Optional[FileMetadata] = None
    error: Optional[Exception] = None
