"""
Startup file discovery.

Uses os.walk() with directory pruning so excluded trees (node_modules, .git,
build output) are skipped before descending into them.
"""

import logging
import os
from pathlib import Path
from typing import Iterator

from codesync.ignore_patterns import PatternFilter

logger = logging.getLogger("codesync.tracker")


def walk_tree(top: Path, pattern_filter: PatternFilter) -> Iterator[Path]:
    """
    Yield every tracked file under top (a workspace root or a directory in one).

    Directories are pruned IN-PLACE when the filter says not to descend.
    Symlinked directories are not followed.
    """

    def _on_error(error: OSError) -> None:
        logger.warning(f"Cannot walk {error.filename}: {error.strerror}")

    for root, dirs, files in os.walk(top, onerror=_on_error):
        root_path = Path(root)

        dirs[:] = sorted(d for d in dirs if pattern_filter.should_descend(root_path / d))

        for name in sorted(files):
            file_path = root_path / name
            if not pattern_filter.is_excluded(file_path):
                yield file_path


def discover_files(pattern_filter: PatternFilter) -> list[Path]:
    """
    Enumerate tracked files across every workspace root.

    Blocking - call through asyncio.to_thread from async code.
    """
    found: list[Path] = []
    for workspace_root in pattern_filter.workspace_roots:
        if not workspace_root.is_dir():
            logger.warning(f"Workspace root is not a directory: {workspace_root}")
            continue
        before = len(found)
        found.extend(walk_tree(workspace_root, pattern_filter))
        logger.info(f"Discovered {len(found) - before} files in {workspace_root}")
    return found
