"""
File system watching for the change tracker.

FileWatcher runs a watchdog Observer over every workspace root. Events arrive
on the observer thread and are handed to the asyncio loop with
run_coroutine_threadsafe; the ChangeTracker does debouncing and filtering.
"""

import asyncio
import logging
from pathlib import Path
from typing import Optional

from codesync.tracker.core import ChangeTracker
from codesync.tracker.discovery import walk_tree
from codesync.tracker.types import FileEvent

logger = logging.getLogger("codesync.watcher")


class FileWatcher:
    """
    Watches workspace roots and feeds events to a ChangeTracker.

    Example Usage:
    --------------
    >>> watcher = FileWatcher(tracker)
    >>> watcher.start()        # must be called from the event loop
    >>> # ... events flow into tracker.handle_event() ...
    >>> watcher.stop()
    """

    def __init__(self, tracker: ChangeTracker, workspace_roots: Optional[list[Path]] = None) -> None:
        """
        Args:
        -----
        tracker: Receives every normalized event
        workspace_roots: Directories to watch (default: the tracker's roots)

        Raises:
        -------
        FileNotFoundError: If a root doesn't exist
        ValueError: If a root is not a directory
        """
        roots = [Path(r).resolve() for r in (workspace_roots or tracker.workspace_roots)]
        for root in roots:
            if not root.exists():
                raise FileNotFoundError(f"Workspace path does not exist: {root}")
            if not root.is_dir():
                raise ValueError(f"Workspace path is not a directory: {root}")

        self._tracker = tracker
        self._roots = roots
        self._observer = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    def start(self) -> None:
        """
        Start the observer thread.

        Raises:
        -------
        RuntimeError: If already running or called outside a running loop
        """
        if self.is_running():
            raise RuntimeError("FileWatcher is already running")

        from watchdog.observers import Observer

        from codesync.watcher.handlers import TrackerEventHandler

        self._loop = asyncio.get_running_loop()
        handler = TrackerEventHandler(watcher=self)

        self._observer = Observer()
        for root in self._roots:
            self._observer.schedule(handler, str(root), recursive=True)
            logger.info(f"Watching {root}")
        self._observer.start()

    def stop(self) -> None:
        """Stop the observer and wait for its thread to exit."""
        if self._observer is None:
            return
        self._observer.stop()
        self._observer.join(timeout=5.0)
        self._observer = None
        logger.info("File watcher stopped")

    def is_running(self) -> bool:
        return self._observer is not None and self._observer.is_alive()

    def submit(self, event_type: FileEvent, path: Path, is_directory: bool = False) -> None:
        """Thread-safe: schedule handling of one event on the loop."""
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        asyncio.run_coroutine_threadsafe(self.handle_event(event_type, path, is_directory), loop)

    async def handle_event(self, event_type: FileEvent, path: Path, is_directory: bool = False) -> None:
        """
        Route one event to the tracker.

        Directory deletes forget everything under the directory; directory
        creates (including the destination of a move) enqueue every file in it.
        """
        try:
            if not is_directory or event_type == FileEvent.DELETED:
                await self._tracker.handle_event(event_type, path)
                return

            if not self._tracker.pattern_filter.should_descend(path):
                return
            files = await asyncio.to_thread(
                lambda: list(walk_tree(path, self._tracker.pattern_filter))
            )
            for file_path in files:
                await self._tracker.handle_event(FileEvent.CREATED, file_path)
        except Exception as e:
            # Never let an exception escape into the loop's default handler
            logger.error(f"Error handling watcher event for {path}: {e}", exc_info=True)
