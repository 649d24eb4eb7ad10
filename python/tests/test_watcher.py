"""
Tests for the watchdog bridge: event normalization, directory handling and
the observer lifecycle.
"""

import asyncio

import pytest
from pathlib import Path
from unittest.mock import AsyncMock, Mock, call

from watchdog.events import (
    DirCreatedEvent,
    DirDeletedEvent,
    DirModifiedEvent,
    DirMovedEvent,
    FileClosedEvent,
    FileCreatedEvent,
    FileDeletedEvent,
    FileModifiedEvent,
    FileMovedEvent,
)

from codesync.tracker import FileEvent
from codesync.watcher import FileWatcher
from codesync.watcher.handlers import TrackerEventHandler


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def fake_watcher():
    return Mock()


@pytest.fixture
def handler(fake_watcher):
    return TrackerEventHandler(watcher=fake_watcher)


@pytest.fixture
def watcher(tracker):
    """FileWatcher (not started) whose tracker records events instead of handling them."""
    tracker.handle_event = AsyncMock()
    return FileWatcher(tracker)


# ============================================================================
# EVENT NORMALIZATION
# ============================================================================


@pytest.mark.parametrize(
    "event, expected",
    [
        (FileCreatedEvent("/ws/a.ts"), call(FileEvent.CREATED, Path("/ws/a.ts"))),
        (FileModifiedEvent("/ws/a.ts"), call(FileEvent.MODIFIED, Path("/ws/a.ts"))),
        (FileClosedEvent("/ws/a.ts"), call(FileEvent.MODIFIED, Path("/ws/a.ts"))),
        (FileDeletedEvent("/ws/a.ts"), call(FileEvent.DELETED, Path("/ws/a.ts"))),
        (
            DirCreatedEvent("/ws/src"),
            call(FileEvent.CREATED, Path("/ws/src"), is_directory=True),
        ),
        (
            DirDeletedEvent("/ws/src"),
            call(FileEvent.DELETED, Path("/ws/src"), is_directory=True),
        ),
    ],
)
def test_handler_maps_events(handler, fake_watcher, event, expected):
    handler.dispatch(event)
    assert fake_watcher.submit.call_args_list == [expected]


def test_file_move_is_delete_plus_create(handler, fake_watcher):
    handler.dispatch(FileMovedEvent("/ws/old.ts", "/ws/new.ts"))

    assert fake_watcher.submit.call_args_list == [
        call(FileEvent.DELETED, Path("/ws/old.ts"), is_directory=False),
        call(FileEvent.CREATED, Path("/ws/new.ts"), is_directory=False),
    ]


def test_directory_move_is_delete_plus_create(handler, fake_watcher):
    handler.dispatch(DirMovedEvent("/ws/old", "/ws/new"))

    assert fake_watcher.submit.call_args_list == [
        call(FileEvent.DELETED, Path("/ws/old"), is_directory=True),
        call(FileEvent.CREATED, Path("/ws/new"), is_directory=True),
    ]


def test_directory_modification_is_ignored(handler, fake_watcher):
    handler.dispatch(DirModifiedEvent("/ws/src"))
    fake_watcher.submit.assert_not_called()


# ============================================================================
# ROUTING
# ============================================================================


def test_watcher_rejects_missing_root(tracker, tmp_path):
    with pytest.raises(FileNotFoundError):
        FileWatcher(tracker, [tmp_path / "nope"])


def test_watcher_rejects_file_root(tracker, tmp_path):
    file_root = tmp_path / "file.txt"
    file_root.write_text("")
    with pytest.raises(ValueError):
        FileWatcher(tracker, [file_root])


@pytest.mark.asyncio
async def test_file_event_forwarded(watcher, tracker, make_file):
    a = make_file("src/a.ts")
    await watcher.handle_event(FileEvent.MODIFIED, a)
    tracker.handle_event.assert_awaited_once_with(FileEvent.MODIFIED, a)


@pytest.mark.asyncio
async def test_directory_delete_forwarded_once(watcher, tracker, temp_workspace):
    await watcher.handle_event(FileEvent.DELETED, temp_workspace / "src", is_directory=True)
    tracker.handle_event.assert_awaited_once_with(FileEvent.DELETED, temp_workspace / "src")


@pytest.mark.asyncio
async def test_directory_create_enqueues_contained_files(watcher, tracker, make_file, temp_workspace):
    a = make_file("moved/a.ts")
    b = make_file("moved/nested/b.py", "x = 1\n")
    make_file("moved/node_modules/pkg/index.js")
    make_file("moved/notes.md", "# notes")

    await watcher.handle_event(FileEvent.CREATED, temp_workspace / "moved", is_directory=True)

    forwarded = sorted(c.args[1] for c in tracker.handle_event.await_args_list)
    assert forwarded == sorted([a, b])
    assert all(c.args[0] == FileEvent.CREATED for c in tracker.handle_event.await_args_list)


@pytest.mark.asyncio
async def test_excluded_directory_create_is_ignored(watcher, tracker, make_file, temp_workspace):
    make_file("node_modules/pkg/index.js")
    await watcher.handle_event(FileEvent.CREATED, temp_workspace / "node_modules", is_directory=True)
    tracker.handle_event.assert_not_awaited()


@pytest.mark.asyncio
async def test_tracker_errors_do_not_escape(watcher, tracker, make_file):
    tracker.handle_event.side_effect = RuntimeError("boom")
    await watcher.handle_event(FileEvent.MODIFIED, make_file("a.ts"))


def test_submit_before_start_is_dropped(watcher, tracker, make_file):
    watcher.submit(FileEvent.MODIFIED, make_file("a.ts"))
    tracker.handle_event.assert_not_called()


# ============================================================================
# OBSERVER LIFECYCLE
# ============================================================================


@pytest.mark.asyncio
async def test_start_and_stop(tracker):
    watcher = FileWatcher(tracker)
    assert not watcher.is_running()

    watcher.start()
    assert watcher.is_running()
    with pytest.raises(RuntimeError):
        watcher.start()

    watcher.stop()
    assert not watcher.is_running()
    watcher.stop()


@pytest.mark.slow
@pytest.mark.asyncio
async def test_real_file_write_reaches_tracker(tracker, temp_workspace):
    """Test: a file written on disk ends up tracked and pending sync."""
    await tracker.initialize()
    watcher = FileWatcher(tracker)
    watcher.start()
    try:
        target = temp_workspace / "live.ts"
        target.write_text("export const live = true;\n")

        for _ in range(100):
            if tracker.get_metadata(target) is not None:
                break
            await asyncio.sleep(0.05)
    finally:
        watcher.stop()

    assert tracker.get_metadata(target) is not None
    assert [m.path for m in tracker.check_for_changes()] == [str(target)]
