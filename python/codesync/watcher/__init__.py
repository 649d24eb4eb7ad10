"""
File system watching for codesync.

Bridges watchdog's observer thread onto the asyncio loop and feeds the
ChangeTracker.
"""

from .core import FileWatcher

__all__ = ["FileWatcher"]
