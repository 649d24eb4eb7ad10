"""
Per-path event debouncing.

This module provides the PathDebouncer class: every path gets its own timer,
and only the trailing event inside the quiet window fires the callback.
"""

import asyncio
import logging
from pathlib import Path
from typing import Awaitable, Callable, Optional, Union

logger = logging.getLogger("codesync.tracker")

DebounceCallback = Callable[[Path], Union[Awaitable[None], None]]


class PathDebouncer:
    """
    Timer-per-path debouncer.

    Behavior:
    ---------
    Every schedule() for a path cancels that path's pending timer and starts a
    new one. Different paths never delay each other.

    Example:
    --------
    a.ts modified at t=0ms
    a.ts modified at t=300ms    } Timer restarted each time
    a.ts modified at t=600ms    }
    b.ts modified at t=700ms      (independent timer)
    -> a.ts fires at t=1600ms, b.ts at t=1700ms
    """

    def __init__(
        self,
        delay: float,
        callback: DebounceCallback,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        """
        Args:
        -----
        delay: Quiet period in seconds
        callback: Called with the path once its timer fires (sync or async)
        loop: Event loop for timers (default: the running loop at first schedule)

        Raises:
        -------
        ValueError: If delay is negative
        """
        if delay < 0:
            raise ValueError("delay must be >= 0")

        self._delay = delay
        self._callback = callback
        self._loop = loop

        self._timers: dict[Path, asyncio.TimerHandle] = {}
        # Fired callbacks still running; kept referenced until done
        self._inflight: set[asyncio.Task] = set()

    @property
    def delay(self) -> float:
        return self._delay

    def schedule(self, path: Path) -> None:
        """Start (or restart) the timer for path."""
        if self._loop is None:
            self._loop = asyncio.get_running_loop()

        existing = self._timers.pop(path, None)
        if existing is not None:
            existing.cancel()

        self._timers[path] = self._loop.call_later(self._delay, self._fire, path)

    def cancel(self, path: Path) -> bool:
        """Cancel path's pending timer. Returns True if one was pending."""
        handle = self._timers.pop(path, None)
        if handle is None:
            return False
        handle.cancel()
        return True

    def cancel_all(self) -> None:
        """Cancel every pending timer. Callbacks already running are left alone."""
        for handle in self._timers.values():
            handle.cancel()
        self._timers.clear()

    def is_pending(self, path: Path) -> bool:
        return path in self._timers

    @property
    def pending_count(self) -> int:
        return len(self._timers)

    async def wait_idle(self) -> None:
        """Wait until every fired callback has finished."""
        while self._inflight:
            await asyncio.gather(*list(self._inflight), return_exceptions=True)

    def _fire(self, path: Path) -> None:
        self._timers.pop(path, None)
        task = self._loop.create_task(self._run(path))
        self._inflight.add(task)
        task.add_done_callback(self._inflight.discard)

    async def _run(self, path: Path) -> None:
        try:
            result = self._callback(path)
            if asyncio.iscoroutine(result):
                await result
        except Exception as e:
            # Log error but don't raise (keep watching)
            logger.error(f"Error in debounce callback for {path}: {e}", exc_info=True)
