"""
Internal event handler for watchdog file system monitoring.

Runs on watchdog's observer thread and forwards normalized events to the
FileWatcher, which hops them onto the asyncio loop.
"""

import os
from pathlib import Path

from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirMovedEvent,
    FileClosedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
    FileSystemEventHandler,
)

from codesync.tracker.types import FileEvent


class TrackerEventHandler(FileSystemEventHandler):
    """
    Converts raw watchdog events into (FileEvent, path, is_directory) triples.

    - Directory modifications are noise (a child changed) and are dropped
    - Moves become a delete of the source plus a create of the destination
    - A file closed after writing counts as a modification
    """

    def __init__(self, watcher: "FileWatcher") -> None:  # noqa: F821
        super().__init__()
        self.watcher = watcher

    def dispatch(self, event) -> None:
        src = Path(os.fsdecode(event.src_path))

        if isinstance(event, (FileMovedEvent, DirMovedEvent)):
            is_dir = isinstance(event, DirMovedEvent)
            self.watcher.submit(FileEvent.DELETED, src, is_directory=is_dir)
            dest = Path(os.fsdecode(event.dest_path))
            self.watcher.submit(FileEvent.CREATED, dest, is_directory=is_dir)
        elif isinstance(event, FileCreatedEvent):
            self.watcher.submit(FileEvent.CREATED, src)
        elif isinstance(event, (FileModifiedEvent, FileClosedEvent)):
            self.watcher.submit(FileEvent.MODIFIED, src)
        elif isinstance(event, FileDeletedEvent):
            self.watcher.submit(FileEvent.DELETED, src)
        elif isinstance(event, DirCreatedEvent):
            self.watcher.submit(FileEvent.CREATED, src, is_directory=True)
        elif isinstance(event, DirDeletedEvent):
            self.watcher.submit(FileEvent.DELETED, src, is_directory=True)
