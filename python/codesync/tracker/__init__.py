"""
Change tracking for codesync.

ChangeTracker turns file events into debounced content-hash classifications
and keeps the pending change set that SyncCoordinator drains.
"""

from .core import ChangeTracker
from .debouncer import PathDebouncer
from .hashing import compute_content_hash
from .types import ChangeResult, FileEvent

__all__ = [
    "ChangeResult",
    "ChangeTracker",
    "FileEvent",
    "PathDebouncer",
    "compute_content_hash",
]
