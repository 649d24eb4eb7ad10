"""
ChangeTracker - decides which files changed and which need upload.

Keeps an in-memory mirror of FileMetadata (seeded from MetadataStore), turns
file-system and editor events into debounced classifications, and collects
files needing sync into the pending change set drained by SyncCoordinator.
"""

import asyncio
import logging
import os
import time
from pathlib import Path
from typing import Awaitable, Callable, Optional, Union

from codesync.config import IndexConfig
from codesync.ignore_patterns import PatternFilter
from codesync.storage.metadata import FileMetadata, MetadataStore
from codesync.tracker.debouncer import PathDebouncer
from codesync.tracker.discovery import discover_files
from codesync.tracker.hashing import compute_content_hash, read_file_snapshot
from codesync.tracker.types import ChangeResult, FileEvent

logger = logging.getLogger("codesync.tracker")

ChangeListener = Callable[[list[FileMetadata]], Union[Awaitable[None], None]]


class ChangeTracker:
    """
    Tracks file changes across one or more workspace roots.

    Usage:
    ------
    >>> tracker = ChangeTracker([Path("/repo")], store)
    >>> await tracker.initialize()
    >>> await tracker.handle_event(FileEvent.MODIFIED, Path("/repo/src/a.ts"))
    >>> changed = tracker.check_for_changes()   # drains the pending set
    >>> await tracker.update_last_synced(changed[0].path, synced_at)

    All methods must be called from the event loop thread. The watcher bridges
    its own thread onto the loop before calling handle_event().
    """

    def __init__(
        self,
        workspace_roots: list[Path],
        store: MetadataStore,
        pattern_filter: Optional[PatternFilter] = None,
        config: Optional[IndexConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._config = config or IndexConfig()
        self._filter = pattern_filter or PatternFilter(
            workspace_roots,
            include_patterns=self._config.include_patterns,
            exclude_patterns=self._config.exclude_patterns,
            fold_negations=self._config.fold_negations,
        )
        self._store = store
        self._clock = clock

        # path -> metadata, for every tracked file
        self._files: dict[str, FileMetadata] = {}
        # path -> metadata, files classified as needing sync
        self._pending: dict[str, FileMetadata] = {}
        # Paths being classified right now, and paths that got a request meanwhile
        self._processing: set[str] = set()
        self._recheck: set[str] = set()

        self._listeners: list[ChangeListener] = []
        self._debouncer = PathDebouncer(self._config.debounce_delay, self._on_debounced)

        self._initialized = False
        self._disposed = False

    @property
    def pattern_filter(self) -> PatternFilter:
        return self._filter

    @property
    def workspace_roots(self) -> list[Path]:
        return self._filter.workspace_roots

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def initialize(self) -> int:
        """
        Seed the mirror from the store, then classify every discovered file.

        Returns:
            Number of files that entered the pending change set
        """
        if self._initialized:
            return 0

        await self._load_stored_metadata()
        changed = await self.index_workspace()
        self._initialized = True
        logger.info(
            f"Change tracker ready: {len(self._files)} files tracked, {changed} pending sync"
        )
        return changed

    async def _load_stored_metadata(self) -> None:
        for root in self.workspace_roots:
            workspace_id = str(root)
            for record in await self._store.get_all(workspace_id):
                self._files[record.path] = record
            last_sync = await self._store.get_workspace_last_sync(workspace_id)
            if last_sync:
                logger.info(f"Workspace {workspace_id} last synced at {last_sync:.0f}")
            else:
                logger.info(f"Workspace {workspace_id} has never been synced")
        logger.debug(f"Loaded {len(self._files)} stored metadata records")

    async def index_workspace(self) -> int:
        """
        Classify every file under the workspace roots.

        Files are processed in batches of index_batch_size to bound the number
        of concurrent reads.
        """
        paths = await asyncio.to_thread(discover_files, self._filter)
        batch_size = self._config.index_batch_size
        changed: list[FileMetadata] = []

        for i in range(0, len(paths), batch_size):
            if self._disposed:
                break
            batch = paths[i : i + batch_size]
            results = await asyncio.gather(*(self.check_file(p) for p in batch))
            changed.extend(r.metadata for r in results if r.changed and r.metadata)

        # Stored records whose files vanished while we weren't running
        present = {str(p) for p in paths}
        for path_str in [p for p in self._files if p not in present]:
            if not os.path.exists(path_str):
                await self._forget(path_str)

        if changed:
            await self._notify(changed)
        return len(changed)

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    async def handle_event(self, event_type: FileEvent, path: Path) -> None:
        """
        Entry point for watcher and editor events. Never raises.
        """
        if self._disposed:
            return
        path = Path(path).resolve()

        try:
            if self._filter.is_gitignore(path):
                self._filter.invalidate(path.parent)
                logger.info(f"{path} changed, reloading ignore rules")
                return

            if event_type == FileEvent.DELETED:
                await self.handle_file_delete(path)
            elif event_type == FileEvent.SAVED:
                await self.notify_saved(path)
            else:
                self.notify_changed(path)
        except Exception as e:
            logger.error(f"Error handling {event_type.value} for {path}: {e}", exc_info=True)

    def notify_changed(self, path: Path) -> None:
        """Debounced path: restart the path's timer."""
        path = Path(path).resolve()
        if self._should_skip(path):
            return
        self._debouncer.schedule(path)

    async def notify_saved(self, path: Path) -> ChangeResult:
        """Save path: drop any pending timer and classify now."""
        path = Path(path).resolve()
        self._debouncer.cancel(path)
        return await self._check_and_notify(path)

    async def _on_debounced(self, path: Path) -> None:
        await self._check_and_notify(path)

    async def _check_and_notify(self, path: Path) -> ChangeResult:
        result = await self.check_file(path)
        if result.changed and result.metadata is not None:
            await self._notify([result.metadata])
        return result

    async def handle_file_delete(self, path: Path) -> None:
        """
        Forget a deleted file, or every tracked file under a deleted directory.
        """
        path = Path(path).resolve()
        self._debouncer.cancel(path)

        path_str = str(path)
        prefix = path_str + os.sep
        removed = [p for p in self._files if p == path_str or p.startswith(prefix)]
        for p in removed:
            self._debouncer.cancel(Path(p))
            await self._forget(p)

        if removed:
            logger.debug(f"Deleted {len(removed)} tracked file(s) at {path}")

    async def _forget(self, path_str: str) -> None:
        self._files.pop(path_str, None)
        self._pending.pop(path_str, None)
        workspace_id = self.workspace_for(Path(path_str))
        if workspace_id is None:
            return
        try:
            await self._store.delete(path_str, workspace_id)
        except Exception as e:
            logger.error(f"Failed to delete metadata for {path_str}: {e}")

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def _should_skip(self, path: Path) -> bool:
        if self._filter.is_excluded(path):
            return True
        try:
            return path.is_dir()
        except OSError:
            return True

    async def check_file(self, path: Path) -> ChangeResult:
        """
        Classify one file and update the mirror, the store and the pending set.

        A request for a path that is already being classified doesn't run
        concurrently; it makes the running classification go around once more.
        """
        path = Path(path).resolve()
        if self._should_skip(path):
            return ChangeResult(changed=False)

        path_str = str(path)
        if path_str in self._processing:
            self._recheck.add(path_str)
            return ChangeResult(changed=False)

        self._processing.add(path_str)
        try:
            result = await self._classify(path)
            while path_str in self._recheck and not self._disposed:
                self._recheck.discard(path_str)
                again = await self._classify(path)
                if again.changed or again.error is not None:
                    result = again
            return result
        finally:
            self._processing.discard(path_str)
            self._recheck.discard(path_str)

    async def _classify(self, path: Path) -> ChangeResult:
        path_str = str(path)
        workspace_id = self.workspace_for(path)
        if workspace_id is None:
            return ChangeResult(changed=False)

        try:
            content, mtime = await asyncio.to_thread(read_file_snapshot, path)
        except OSError as e:
            logger.warning(f"Skipping unreadable file {path}: {e}")
            return ChangeResult(changed=False, error=e)

        content_hash = compute_content_hash(content)
        workspace_last_sync = await self._store.get_workspace_last_sync(workspace_id)

        # No await between reading the prior record and writing the new one
        existing = self._files.get(path_str)
        has_changed = (
            existing is None
            or existing.content_hash != content_hash
            or abs(mtime - existing.last_modified_at) > self._config.mtime_tolerance
        )
        if not has_changed:
            return ChangeResult(changed=False)

        metadata = FileMetadata(
            path=path_str,
            content_hash=content_hash,
            last_modified_at=mtime,
            last_synced_at=existing.last_synced_at if existing else None,
        )
        self._files[path_str] = metadata

        needs_sync = metadata.needs_sync(workspace_last_sync)
        if needs_sync:
            self._pending[path_str] = metadata

        try:
            await self._store.save(metadata, workspace_id)
        except Exception as e:
            logger.error(f"Failed to persist metadata for {path_str}: {e}")

        return ChangeResult(changed=needs_sync, metadata=metadata)

    # ------------------------------------------------------------------
    # Sync contract
    # ------------------------------------------------------------------

    def check_for_changes(self) -> list[FileMetadata]:
        """
        Drain the pending change set.

        Synchronous, so the swap can't be interleaved with a
        classification, so anything classified afterwards lands in the next
        drain. Entries acknowledged since they were queued are dropped.
        """
        drained, self._pending = self._pending, {}

        files: list[FileMetadata] = []
        for path_str, queued in drained.items():
            current = self._files.get(path_str)
            if current is None:
                continue
            if current.last_synced_at is not None and current.last_synced_at >= current.last_modified_at:
                if current.content_hash == queued.content_hash:
                    continue
            files.append(current)

        if files:
            logger.debug(f"Drained {len(files)} file(s) needing sync")
        return files

    async def update_last_synced(self, path: str, synced_at: Optional[float] = None) -> None:
        """Stamp a file as uploaded at synced_at (default: now) and persist it."""
        path_str = str(path)
        metadata = self._files.get(path_str)
        if metadata is None:
            logger.warning(f"Cannot mark untracked file as synced: {path_str}")
            return

        workspace_id = self.workspace_for(Path(path_str))
        if workspace_id is None:
            logger.warning(f"No workspace for {path_str}")
            return

        updated = metadata.with_synced(self._clock() if synced_at is None else synced_at)
        self._files[path_str] = updated
        try:
            await self._store.save(updated, workspace_id)
        except Exception as e:
            logger.error(f"Failed to persist sync stamp for {path_str}: {e}")

    # ------------------------------------------------------------------
    # Queries and observers
    # ------------------------------------------------------------------

    def workspace_for(self, path: Path) -> Optional[str]:
        """Workspace id (root path string) containing path."""
        root = self._filter.workspace_root_for(Path(path))
        return str(root) if root is not None else None

    def relative_path(self, path: Path) -> str:
        """Path relative to its workspace root; the path itself if outside."""
        rel = self._filter.relative_path(Path(path))
        return rel if rel is not None else str(path)

    def get_metadata(self, path: Path) -> Optional[FileMetadata]:
        return self._files.get(str(Path(path).resolve()))

    def tracked_file_count(self) -> int:
        return len(self._files)

    def get_all_tracked_files(self) -> list[str]:
        return sorted(self._files)

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def add_listener(self, listener: ChangeListener) -> Callable[[], None]:
        """
        Register a change observer.

        Returns:
            A callable that unregisters the listener
        """
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    async def _notify(self, changed: list[FileMetadata]) -> None:
        for listener in list(self._listeners):
            try:
                result = listener(changed)
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.error(f"Change listener failed: {e}", exc_info=True)

    async def wait_idle(self) -> None:
        """Wait for debounced classifications that already fired."""
        await self._debouncer.wait_idle()

    def dispose(self) -> None:
        """Cancel timers and drop all in-memory state."""
        self._disposed = True
        self._debouncer.cancel_all()
        self._files.clear()
        self._pending.clear()
        self._processing.clear()
        self._recheck.clear()
        self._listeners.clear()
        logger.debug("Change tracker disposed")
