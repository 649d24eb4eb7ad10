"""
codesync storage layer.

MetadataStore persists FileMetadata per workspace on top of a key-value
collaborator (MemoryKeyValueStore or SqliteKeyValueStore).
"""

from codesync.errors import StorageError

from .kv import KeyValueStore, MemoryKeyValueStore, SqliteKeyValueStore
from .metadata import FileMetadata, MetadataStore, WorkspaceSyncState

__all__ = [
    "FileMetadata",
    "KeyValueStore",
    "MemoryKeyValueStore",
    "MetadataStore",
    "SqliteKeyValueStore",
    "StorageError",
    "WorkspaceSyncState",
]
