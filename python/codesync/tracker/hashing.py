"""
Content hashing for change detection.

Provides:
- MD5 digest of a file's text content (cheap, fixed-size, not a security boundary)
- A single read returning both content and mtime
"""

import hashlib
from pathlib import Path


def compute_content_hash(content: str) -> str:
    """Hex MD5 digest of UTF-8 encoded text."""
    return hashlib.md5(content.encode("utf-8")).hexdigest()


def read_file_snapshot(file_path: Path) -> tuple[str, float]:
    """
    Read a file's text content and modification time.

    Blocking - call through asyncio.to_thread from async code.

    Returns:
        (content, mtime in epoch seconds)

    Raises:
        OSError: If the file can't be stat-ed or read (deleted, permissions)
    """
    mtime = file_path.stat().st_mtime
    content = file_path.read_text(encoding="utf-8", errors="replace")
    return content, mtime
