"""
FileMetadata records and the workspace-keyed MetadataStore.

Storage layout in the key-value collaborator:
    fileMetadata_<quoted workspace id>      -> list of FileMetadata dicts
    workspaceMetadata_<quoted workspace id> -> {"lastSync": <epoch seconds>}

Missing keys read as empty. There is no schema versioning: records that don't
deserialize are skipped with a warning.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, replace
from typing import Callable, Optional
from urllib.parse import quote, unquote

from codesync.storage.kv import KeyValueStore

logger = logging.getLogger("codesync.storage")

FILE_METADATA_PREFIX = "fileMetadata"
WORKSPACE_METADATA_PREFIX = "workspaceMetadata"


@dataclass(frozen=True)
class FileMetadata:
    """Change-tracking state of one file."""

    path: str  # Absolute path
    content_hash: str
    last_modified_at: float  # File mtime, epoch seconds
    last_synced_at: Optional[float] = None  # None = never uploaded

    def needs_sync(self, workspace_last_sync: float = 0.0) -> bool:
        """True if never synced, modified after its sync, or after the workspace sync."""
        return (
            self.last_synced_at is None
            or self.last_synced_at < self.last_modified_at
            or workspace_last_sync < self.last_modified_at
        )

    def with_synced(self, synced_at: float) -> "FileMetadata":
        return replace(self, last_synced_at=synced_at)

    def to_dict(self) -> dict:
        return {
            "path": self.path,
            "contentHash": self.content_hash,
            "lastModifiedAt": self.last_modified_at,
            "lastSyncedAt": self.last_synced_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FileMetadata":
        """
        Raises:
            KeyError: If a required key is missing
            TypeError, ValueError: If a value has the wrong type
        """
        last_synced = data.get("lastSyncedAt")
        return cls(
            path=str(data["path"]),
            content_hash=str(data["contentHash"]),
            last_modified_at=float(data["lastModifiedAt"]),
            last_synced_at=float(last_synced) if last_synced is not None else None,
        )


@dataclass(frozen=True)
class WorkspaceSyncState:
    """Per-workspace bookkeeping, refreshed on every metadata write."""

    workspace_id: str
    last_sync_timestamp: float


def file_metadata_key(workspace_id: str) -> str:
    return f"{FILE_METADATA_PREFIX}_{quote(workspace_id, safe='')}"


def workspace_metadata_key(workspace_id: str) -> str:
    return f"{WORKSPACE_METADATA_PREFIX}_{quote(workspace_id, safe='')}"


class MetadataStore:
    """
    Persists FileMetadata keyed by workspace.

    A workspace's record list is decoded from the collaborator once, on first
    use, and kept in memory by path. Writes mutate that cache and then persist
    the whole list. Concurrent writes to one workspace coalesce: a writer that
    finds its change already flushed by an earlier writer returns without
    writing again.
    """

    def __init__(self, kv: KeyValueStore, clock: Callable[[], float] = time.time):
        """
        Args:
            kv: Persisted key-value collaborator
            clock: Time source for the workspace write timestamp
        """
        self._kv = kv
        self._clock = clock
        self._cache: dict[str, dict[str, FileMetadata]] = {}
        self._load_locks: dict[str, asyncio.Lock] = {}
        self._flush_locks: dict[str, asyncio.Lock] = {}
        self._dirty: set[str] = set()
        self._touched: set[str] = set()

    @staticmethod
    def _lock(locks: dict[str, asyncio.Lock], workspace_id: str) -> asyncio.Lock:
        lock = locks.get(workspace_id)
        if lock is None:
            lock = asyncio.Lock()
            locks[workspace_id] = lock
        return lock

    async def _read_records(self, key: str) -> list[FileMetadata]:
        raw = await self._kv.get(key, [])
        records: list[FileMetadata] = []
        for item in raw or []:
            try:
                records.append(FileMetadata.from_dict(item))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning(f"Skipping malformed metadata record under {key}: {e}")
        return records

    async def _records(self, workspace_id: str) -> dict[str, FileMetadata]:
        """The cached records of a workspace, loading them on first use."""
        records = self._cache.get(workspace_id)
        if records is not None:
            return records
        async with self._lock(self._load_locks, workspace_id):
            records = self._cache.get(workspace_id)
            if records is None:
                loaded = await self._read_records(file_metadata_key(workspace_id))
                records = {r.path: r for r in loaded}
                self._cache[workspace_id] = records
        return records

    async def _flush(self, workspace_id: str) -> None:
        """Persist the cached list if a flush since the last change hasn't already."""
        async with self._lock(self._flush_locks, workspace_id):
            if workspace_id not in self._dirty:
                return
            self._dirty.discard(workspace_id)
            touched = workspace_id in self._touched
            self._touched.discard(workspace_id)
            payload = [r.to_dict() for r in self._cache[workspace_id].values()]
            await self._kv.set(file_metadata_key(workspace_id), payload)
            if touched:
                await self._kv.set(workspace_metadata_key(workspace_id), {"lastSync": self._clock()})

    async def save(self, metadata: FileMetadata, workspace_id: str) -> None:
        """Insert or replace a file's record and refresh the workspace timestamp."""
        records = await self._records(workspace_id)
        records[metadata.path] = metadata
        self._dirty.add(workspace_id)
        self._touched.add(workspace_id)
        await self._flush(workspace_id)

    async def get(self, path: str, workspace_id: str) -> Optional[FileMetadata]:
        return (await self._records(workspace_id)).get(path)

    async def get_all(self, workspace_id: str) -> list[FileMetadata]:
        return list((await self._records(workspace_id)).values())

    async def get_all_workspaces(self) -> list[FileMetadata]:
        """Every stored record across all workspaces."""
        workspace_ids = set(self._cache)
        prefix = f"{FILE_METADATA_PREFIX}_"
        for key in await self._kv.keys():
            if key.startswith(prefix):
                workspace_ids.add(unquote(key[len(prefix):]))
        records: list[FileMetadata] = []
        for workspace_id in sorted(workspace_ids):
            records.extend((await self._records(workspace_id)).values())
        return records

    async def delete(self, path: str, workspace_id: str) -> None:
        records = await self._records(workspace_id)
        if records.pop(path, None) is not None:
            self._dirty.add(workspace_id)
            await self._flush(workspace_id)

    async def clear(self, workspace_id: str) -> None:
        """Drop every file record of a workspace."""
        (await self._records(workspace_id)).clear()
        self._dirty.add(workspace_id)
        await self._flush(workspace_id)

    async def get_workspace_last_sync(self, workspace_id: str) -> float:
        state = await self._kv.get(workspace_metadata_key(workspace_id), None)
        if not state:
            return 0.0
        try:
            return float(state.get("lastSync", 0.0))
        except (AttributeError, TypeError, ValueError):
            logger.warning(f"Malformed workspace metadata for {workspace_id}: {state!r}")
            return 0.0

    async def get_workspace_state(self, workspace_id: str) -> WorkspaceSyncState:
        return WorkspaceSyncState(workspace_id, await self.get_workspace_last_sync(workspace_id))

    async def has_changed(self, path: str, content_hash: str, workspace_id: str) -> bool:
        """True if the stored hash differs from content_hash (or nothing is stored)."""
        record = await self.get(path, workspace_id)
        return record is None or record.content_hash != content_hash
