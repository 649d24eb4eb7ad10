"""
SyncCoordinator - drains the tracker and uploads changed files.

State machine:

    IDLE -> SYNCING -> IDLE                 (nothing to do, success, or dropped)
                    -> RETRYING -> SYNCING  (retryable failure, retries left)

A periodic tick and explicit sync_now() calls share one entry point guarded
by is_syncing, so at most one attempt runs at a time. A failed batch is held
by the coordinator and re-sent on retry together with anything drained since.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Callable, Optional

from codesync.config import IndexConfig
from codesync.errors import UploadError, UploadErrorKind
from codesync.storage.metadata import FileMetadata
from codesync.sync.upload import TokenProvider, Uploader, UploadResult, load_upload_files, no_token
from codesync.tracker.core import ChangeTracker

logger = logging.getLogger("codesync.sync")

RETRYABLE_MARKERS = ("network", "server", "timeout")


class SyncState(Enum):
    IDLE = "idle"
    SYNCING = "syncing"
    RETRYING = "retrying"  # Waiting for the retry timer


def is_retryable(message: Optional[str], kind: Optional[UploadErrorKind] = None) -> bool:
    """
    Decide whether a failed upload is worth retrying.

    A typed kind from the uploader wins. Untyped failures fall back to looking
    for "network", "server" or "timeout" in the message.
    """
    if kind is not None:
        return kind == UploadErrorKind.TRANSIENT
    text = (message or "").lower()
    return any(marker in text for marker in RETRYABLE_MARKERS)


class SyncCoordinator:
    """
    Background uploader for one tracker.

    Usage:
    ------
    >>> coordinator = SyncCoordinator(tracker, HttpUploader(url), token_provider)
    >>> coordinator.set_session_id("session-123")
    >>> coordinator.start()               # periodic tick every sync_interval
    >>> await coordinator.sync_now()      # or sync explicitly
    >>> await coordinator.stop()
    """

    def __init__(
        self,
        tracker: ChangeTracker,
        uploader: Uploader,
        token_provider: TokenProvider = no_token,
        config: Optional[IndexConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._tracker = tracker
        self._uploader = uploader
        self._token_provider = token_provider
        self._config = config or IndexConfig()
        self._clock = clock

        self._session_id: Optional[str] = None
        self._state = SyncState.IDLE
        self._is_syncing = False
        self._retry_count = 0
        self._retry_batch: list[FileMetadata] = []
        self._retry_handle: Optional[asyncio.TimerHandle] = None

        self._last_result: Optional[UploadResult] = None
        self._dropped_batches = 0

        self._tick_task: Optional[asyncio.Task] = None
        self._tasks: set[asyncio.Task] = set()

    # ------------------------------------------------------------------
    # Observation
    # ------------------------------------------------------------------

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def is_syncing(self) -> bool:
        return self._is_syncing

    @property
    def session_id(self) -> Optional[str]:
        return self._session_id

    @property
    def retry_count(self) -> int:
        return self._retry_count

    @property
    def last_result(self) -> Optional[UploadResult]:
        return self._last_result

    @property
    def dropped_batches(self) -> int:
        return self._dropped_batches

    def set_session_id(self, session_id: Optional[str]) -> None:
        self._session_id = session_id or None
        logger.debug(f"Sync session set to {self._session_id}")

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def start(self) -> None:
        """Start the periodic tick. Must be called from the event loop."""
        if self._tick_task is not None and not self._tick_task.done():
            return
        self._tick_task = asyncio.create_task(self._tick_loop())
        logger.info(f"Background sync started (every {self._config.sync_interval}s)")

    async def stop(self) -> None:
        """Cancel the tick and any pending retry. In-flight uploads finish on their own."""
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None
        self._retry_batch = []
        self._retry_count = 0
        if self._state == SyncState.RETRYING:
            self._state = SyncState.IDLE

        if self._tick_task is not None:
            self._tick_task.cancel()
            try:
                await self._tick_task
            except asyncio.CancelledError:
                pass
            self._tick_task = None
            logger.info("Background sync stopped")

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self._config.sync_interval)
            if self._is_syncing or self._state == SyncState.RETRYING or not self._session_id:
                logger.debug(
                    f"Skipping background sync: state={self._state.value}, session={self._session_id}"
                )
                continue
            self._spawn(self.sync_now("tick"))

    def _spawn(self, coro) -> None:
        task = asyncio.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _schedule_retry(self, trigger: str, session_id: str) -> None:
        loop = asyncio.get_running_loop()

        def _fire() -> None:
            self._retry_handle = None
            self._spawn(self.sync_now(f"{trigger}:retry", session_id))

        self._retry_handle = loop.call_later(self._config.retry_delay, _fire)

    async def wait_idle(self, poll_interval: float = 0.01) -> None:
        """Wait until no attempt is running and no retry is scheduled."""
        while self._tasks or self._retry_handle is not None:
            if self._tasks:
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
            else:
                await asyncio.sleep(poll_interval)

    # ------------------------------------------------------------------
    # Sync attempt
    # ------------------------------------------------------------------

    async def sync_now(self, trigger: str = "manual", session_id: Optional[str] = None) -> Optional[UploadResult]:
        """
        Run one sync attempt.

        Returns:
            The upload result, or None when skipped (no session, already
            syncing, nothing to upload)
        """
        session_id = session_id or self._session_id
        if not session_id:
            logger.debug(f"No session id, skipping sync from {trigger}")
            return None
        if self._is_syncing:
            logger.debug("Sync already in progress, skipping")
            return None

        # An explicit attempt replaces a pending retry timer
        if self._retry_handle is not None:
            self._retry_handle.cancel()
            self._retry_handle = None

        self._is_syncing = True
        self._state = SyncState.SYNCING
        try:
            return await self._attempt(trigger, session_id)
        except Exception as e:
            logger.error(f"[Background Sync] Unexpected error: {e}", exc_info=True)
            return None
        finally:
            self._is_syncing = False
            if self._state == SyncState.SYNCING:
                self._state = SyncState.IDLE

    async def _attempt(self, trigger: str, session_id: str) -> Optional[UploadResult]:
        batch = self._merge(self._retry_batch, self._tracker.check_for_changes())
        self._retry_batch = []
        logger.debug(f"[Background Sync] Found {len(batch)} files that need sync from {trigger}")

        if not batch:
            self._retry_count = 0
            return None

        # One timestamp for the whole batch, taken before any file is read
        batch_started = self._clock()
        try:
            files = await load_upload_files(
                (m.path for m in batch), self._tracker.relative_path
            )
            result = await self._upload(session_id, files) if files else None
        except UploadError as e:
            result = UploadResult.failed(str(e), e.kind)
        except Exception as e:
            result = UploadResult.failed(str(e))

        if result is None:
            # Only empty or unreadable files: nothing the backend could index
            logger.info(f"[Background Sync] No uploadable content in {len(batch)} files, marking synced")
            await self._mark_synced(batch, batch_started)
            self._retry_count = 0
            return None

        self._last_result = result

        if result.success:
            await self._mark_synced(batch, batch_started)
            elapsed = self._clock() - batch_started
            logger.info(f"[Background Sync] Successfully uploaded {len(batch)} files in {elapsed:.2f}s")
            self._retry_count = 0
            return result

        logger.error(f"[Background Sync] Upload failed: {result.error}")
        retryable = is_retryable(result.error, result.error_kind)

        if retryable and self._retry_count < self._config.max_retries:
            self._retry_count += 1
            self._retry_batch = batch
            self._state = SyncState.RETRYING
            logger.info(
                f"[Background Sync] Retrying sync (attempt {self._retry_count}/{self._config.max_retries}) "
                f"in {self._config.retry_delay}s"
            )
            self._schedule_retry(trigger, session_id)
        else:
            if retryable:
                logger.error("[Background Sync] Max retry attempts reached, giving up")
            else:
                logger.warning("[Background Sync] Not retrying due to non-retryable error")
            logger.error(f"[Background Sync] Dropped batch of {len(batch)} files")
            self._dropped_batches += 1
            self._retry_count = 0

        return result

    async def _upload(self, session_id: str, files: list) -> UploadResult:
        token = await self._token_provider()
        if not token:
            raise UploadError("Token info not found", UploadErrorKind.PERMANENT)
        return await self._uploader.upload(session_id, token, files)

    async def _mark_synced(self, batch: list[FileMetadata], synced_at: float) -> None:
        for metadata in batch:
            await self._tracker.update_last_synced(metadata.path, synced_at)

    @staticmethod
    def _merge(first: list[FileMetadata], second: list[FileMetadata]) -> list[FileMetadata]:
        """Union by path; later entries win."""
        merged: dict[str, FileMetadata] = {}
        for metadata in (*first, *second):
            merged[metadata.path] = metadata
        return list(merged.values())
