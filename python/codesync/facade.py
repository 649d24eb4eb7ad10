"""
IndexFacade - the one object the rest of the application talks to.

Owns the ChangeTracker, SyncCoordinator, ImportGraphResolver and (optionally)
the FileWatcher, and exposes context assembly plus session sync. Instances
are constructed explicitly; create_default() wires the production pieces.
"""

import asyncio
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Optional, Union

from codesync.config import IndexConfig
from codesync.imports.resolver import ImportGraphResolver
from codesync.languages import detect_language
from codesync.sync.coordinator import SyncCoordinator
from codesync.sync.upload import TokenProvider, UploadResult, no_token
from codesync.tracker.core import ChangeTracker
from codesync.tracker.types import FileEvent

logger = logging.getLogger("codesync.facade")

Closer = Callable[[], Union[Awaitable[None], None]]


@dataclass
class CodeFile:
    path: str  # Absolute
    relative_path: str  # From the workspace root
    content: str
    language: str


@dataclass
class SelectionRange:
    """Inclusive, 1-based line range inside the primary file."""

    start_line: int
    end_line: int

    def __post_init__(self) -> None:
        if self.start_line < 1 or self.end_line < self.start_line:
            raise ValueError(f"Invalid selection: lines {self.start_line}-{self.end_line}")

    def extract(self, content: str) -> str:
        lines = content.splitlines()
        return "\n".join(lines[self.start_line - 1 : self.end_line])


@dataclass
class CodeFileContext:
    primary_file: CodeFile
    imported_files: list[CodeFile] = field(default_factory=list)
    selection: Optional[SelectionRange] = None

    def to_dict(self) -> dict:
        return asdict(self)


def _read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


class IndexFacade:
    """
    Public API for change tracking, background sync and code context.

    Example:
    --------
    >>> facade = IndexFacade.create_default([Path("/repo")], token_provider=get_token)
    >>> await facade.initialize()
    >>> facade.set_session_id("session-123")
    >>> context = await facade.get_context_for_file(Path("/repo/src/main.ts"))
    >>> await facade.dispose()
    """

    def __init__(
        self,
        tracker: ChangeTracker,
        coordinator: SyncCoordinator,
        resolver: Optional[ImportGraphResolver] = None,
        watcher=None,
        closers: Optional[list[Closer]] = None,
    ):
        """
        Args:
            tracker: Change tracker (not yet initialized)
            coordinator: Sync coordinator bound to the same tracker
            resolver: Import resolver (default: one scoped to the tracker's roots)
            watcher: Optional FileWatcher started by initialize()
            closers: Extra cleanup callbacks run by dispose(), in order
        """
        self._tracker = tracker
        self._coordinator = coordinator
        self._resolver = resolver or ImportGraphResolver(tracker.workspace_roots)
        self._watcher = watcher
        self._closers = list(closers or [])
        self._initialized = False
        self._disposed = False

    @classmethod
    def create_default(
        cls,
        workspace_roots: list[Path],
        config: Optional[IndexConfig] = None,
        token_provider: TokenProvider = no_token,
        watch: bool = True,
    ) -> "IndexFacade":
        """
        Wire the production stack: sqlite-backed metadata, httpx uploader,
        watchdog watcher.
        """
        from codesync.storage.kv import SqliteKeyValueStore
        from codesync.storage.metadata import MetadataStore
        from codesync.sync.upload import HttpUploader

        config = config or IndexConfig()
        kv = SqliteKeyValueStore(config.state_dir / "state.db")
        tracker = ChangeTracker(workspace_roots, MetadataStore(kv), config=config)
        uploader = HttpUploader(config.api_base_url, timeout=config.upload_timeout)
        coordinator = SyncCoordinator(tracker, uploader, token_provider, config=config)

        watcher = None
        if watch:
            from codesync.watcher.core import FileWatcher

            watcher = FileWatcher(tracker)

        return cls(tracker, coordinator, watcher=watcher, closers=[uploader.aclose, kv.close])

    @property
    def tracker(self) -> ChangeTracker:
        return self._tracker

    @property
    def coordinator(self) -> SyncCoordinator:
        return self._coordinator

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self, start_background_sync: bool = True) -> None:
        """Index the workspace, then start watching and the sync tick."""
        if self._initialized:
            return
        try:
            await self._tracker.initialize()
        except Exception as e:
            logger.error(f"Error initializing change tracker: {e}", exc_info=True)
            raise

        if self._watcher is not None:
            self._watcher.start()
        if start_background_sync:
            self._coordinator.start()

        self._initialized = True
        logger.info("Index facade initialized")

    async def dispose(self) -> None:
        """Stop watching and syncing, drop tracker state, release resources."""
        if self._disposed:
            return
        self._disposed = True

        if self._watcher is not None:
            self._watcher.stop()
        await self._coordinator.stop()
        self._tracker.dispose()

        for closer in self._closers:
            try:
                result = closer()
                if asyncio.iscoroutine(result):
                    await result
            except Exception as e:
                logger.warning(f"Error during cleanup: {e}")
        logger.info("Index facade disposed")

    # ------------------------------------------------------------------
    # Tracking
    # ------------------------------------------------------------------

    def tracked_file_count(self) -> int:
        return self._tracker.tracked_file_count()

    def get_all_tracked_files(self) -> list[str]:
        return self._tracker.get_all_tracked_files()

    async def notify_file_saved(self, path: Path) -> bool:
        """Editor save hook. Returns True if the file now needs sync."""
        result = await self._tracker.notify_saved(Path(path))
        return result.changed

    async def notify_file_changed(self, path: Path) -> None:
        """Editor buffer change hook (debounced)."""
        await self._tracker.handle_event(FileEvent.MODIFIED, Path(path))

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    def set_session_id(self, session_id: Optional[str]) -> None:
        self._coordinator.set_session_id(session_id)

    async def sync_now(self) -> Optional[UploadResult]:
        return await self._coordinator.sync_now("sync_now")

    async def sync_files_for_session(self, trigger: str, session_id: str) -> Optional[UploadResult]:
        """Sync immediately on behalf of a specific session."""
        return await self._coordinator.sync_now(trigger, session_id)

    # ------------------------------------------------------------------
    # Context assembly
    # ------------------------------------------------------------------

    async def get_context_for_file(
        self,
        path: Path,
        resolve_imports: bool = True,
        max_depth: int = 1,
        content: Optional[str] = None,
        selection: Optional[SelectionRange] = None,
    ) -> Optional[CodeFileContext]:
        """
        Build a context for path and (optionally) the files it imports.

        Args:
            path: Primary file
            resolve_imports: Attach imported files
            max_depth: Import levels to follow (1 = direct imports only,
                0 = just the primary file)
            content: Unsaved editor buffer to use instead of the file on disk
            selection: Range of interest in the primary file

        Returns:
            None if the file is outside every workspace or can't be read
        """
        primary_path = Path(path).resolve()
        if self._tracker.workspace_for(primary_path) is None:
            logger.warning(f"File {primary_path} is not in a workspace folder")
            return None

        try:
            if content is None:
                content = await asyncio.to_thread(_read_text, primary_path)
        except OSError as e:
            logger.error(f"Error reading {primary_path}: {e}")
            return None

        primary = self._code_file(primary_path, content)
        context = CodeFileContext(primary_file=primary, selection=selection)

        if resolve_imports and max_depth > 0:
            await self._resolve_recursively(context, primary, {primary.path}, max_depth)
        return context

    async def get_context_for_selection(
        self,
        path: Path,
        start_line: int,
        end_line: int,
        resolve_imports: bool = True,
        max_depth: int = 1,
        content: Optional[str] = None,
    ) -> Optional[CodeFileContext]:
        """
        Like get_context_for_file(), with a 1-based inclusive line range.

        Raises:
            ValueError: If the range is invalid
        """
        selection = SelectionRange(start_line, end_line)
        return await self.get_context_for_file(
            path, resolve_imports, max_depth, content=content, selection=selection
        )

    async def _resolve_recursively(
        self,
        context: CodeFileContext,
        file: CodeFile,
        visited: set[str],
        depth_remaining: int,
    ) -> None:
        import_paths = self._resolver.resolve_imports(Path(file.path), file.content, file.language)

        for import_path in import_paths:
            if import_path in visited:
                continue
            visited.add(import_path)

            try:
                imported_content = await asyncio.to_thread(_read_text, Path(import_path))
            except OSError as e:
                logger.warning(f"Error processing import {import_path}: {e}")
                continue

            imported = self._code_file(Path(import_path), imported_content)
            context.imported_files.append(imported)

            if depth_remaining > 1:
                await self._resolve_recursively(context, imported, visited, depth_remaining - 1)

    def _code_file(self, path: Path, content: str) -> CodeFile:
        return CodeFile(
            path=str(path),
            relative_path=self._tracker.relative_path(path),
            content=content,
            language=detect_language(path),
        )
