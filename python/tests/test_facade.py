"""
IndexFacade tests: context assembly, session sync and lifecycle.
"""

import pytest
from unittest.mock import AsyncMock, Mock

from codesync.facade import CodeFileContext, IndexFacade, SelectionRange
from tests.fixtures.sync import FakeUploader


@pytest.fixture
def uploader():
    return FakeUploader()


@pytest.fixture
def facade(tracker, make_coordinator, uploader):
    return IndexFacade(tracker, make_coordinator(uploader))


@pytest.fixture
def import_chain(make_file):
    """a.ts -> b.ts -> c.ts"""
    a = make_file("src/a.ts", "import { b } from './b';\nexport const a = b;\n")
    b = make_file("src/b.ts", "import { c } from './c';\nexport const b = c;\n")
    c = make_file("src/c.ts", "export const c = 1;\n")
    return a, b, c


# ============================================================================
# CONTEXT
# ============================================================================


@pytest.mark.asyncio
async def test_context_direct_imports(facade, import_chain):
    a, b, _ = import_chain

    context = await facade.get_context_for_file(a)

    assert context.primary_file.path == str(a)
    assert context.primary_file.relative_path == "src/a.ts"
    assert context.primary_file.language == "typescript"
    assert [f.path for f in context.imported_files] == [str(b)]
    assert context.imported_files[0].content.startswith("import { c }")


@pytest.mark.asyncio
async def test_context_follows_depth(facade, import_chain):
    a, b, c = import_chain

    context = await facade.get_context_for_file(a, max_depth=2)
    assert [f.path for f in context.imported_files] == [str(b), str(c)]


@pytest.mark.asyncio
async def test_context_depth_zero_or_disabled(facade, import_chain):
    a, _, _ = import_chain

    assert (await facade.get_context_for_file(a, max_depth=0)).imported_files == []
    assert (await facade.get_context_for_file(a, resolve_imports=False)).imported_files == []


@pytest.mark.asyncio
async def test_context_cycle_visits_each_file_once(facade, make_file):
    a = make_file("a.ts", "import './b';\n")
    b = make_file("b.ts", "import './a';\nimport './c';\n")
    c = make_file("c.ts", "import './b';\n")

    context = await facade.get_context_for_file(a, max_depth=10)

    assert [f.path for f in context.imported_files] == [str(b), str(c)]


@pytest.mark.asyncio
async def test_context_uses_unsaved_content(facade, make_file):
    a = make_file("a.ts", "export const a = 1;\n")
    helper = make_file("helper.ts")

    context = await facade.get_context_for_file(a, content="import './helper';\n")

    assert context.primary_file.content == "import './helper';\n"
    assert [f.path for f in context.imported_files] == [str(helper)]


@pytest.mark.asyncio
async def test_context_outside_workspace_is_none(facade, tmp_path):
    outside = tmp_path / "elsewhere.ts"
    outside.write_text("export {}")
    assert await facade.get_context_for_file(outside) is None


@pytest.mark.asyncio
async def test_context_unreadable_file_is_none(facade, temp_workspace):
    assert await facade.get_context_for_file(temp_workspace / "missing.ts") is None


@pytest.mark.asyncio
async def test_context_for_selection(facade, make_file):
    a = make_file("a.py", "import os\n\ndef main():\n    return 1\n")

    context = await facade.get_context_for_selection(a, 3, 4)

    assert context.selection == SelectionRange(3, 4)
    assert context.selection.extract(context.primary_file.content) == "def main():\n    return 1"
    assert context.imported_files == []


@pytest.mark.asyncio
async def test_context_for_invalid_selection(facade, make_file):
    a = make_file("a.py", "x = 1\n")
    with pytest.raises(ValueError):
        await facade.get_context_for_selection(a, 5, 2)


def test_context_to_dict(make_file):
    from codesync.facade import CodeFile

    context = CodeFileContext(CodeFile("/w/a.ts", "a.ts", "x", "typescript"))
    assert context.to_dict() == {
        "primary_file": {
            "path": "/w/a.ts",
            "relative_path": "a.ts",
            "content": "x",
            "language": "typescript",
        },
        "imported_files": [],
        "selection": None,
    }


# ============================================================================
# TRACKING AND SYNC
# ============================================================================


@pytest.mark.asyncio
async def test_initialize_and_sync_now(facade, make_file, uploader):
    make_file("src/a.ts")
    make_file("src/b.py", "x = 1\n")

    await facade.initialize(start_background_sync=False)
    assert facade.is_initialized
    assert facade.tracked_file_count() == 2

    result = await facade.sync_now()

    assert result.success is True
    assert sorted(f.path for f in uploader.calls[0][2]) == ["src/a.ts", "src/b.py"]
    await facade.dispose()


@pytest.mark.asyncio
async def test_sync_files_for_session(facade, make_file, uploader):
    make_file("src/a.ts")
    await facade.initialize(start_background_sync=False)

    await facade.sync_files_for_session("chat_request", "session-42")

    assert uploader.calls[0][0] == "session-42"
    await facade.dispose()


@pytest.mark.asyncio
async def test_notify_file_saved(facade, make_file):
    a = make_file("src/a.ts")
    await facade.initialize(start_background_sync=False)
    facade.tracker.check_for_changes()

    assert await facade.notify_file_saved(a) is False
    a.write_text("export const changed = true;\n")
    assert await facade.notify_file_saved(a) is True
    await facade.dispose()


@pytest.mark.asyncio
async def test_dispose_stops_everything_and_runs_closers(tracker, make_coordinator, uploader):
    watcher = Mock()
    sync_closer = Mock()
    async_closer = AsyncMock()
    failing_closer = Mock(side_effect=RuntimeError("already closed"))
    facade = IndexFacade(
        tracker,
        make_coordinator(uploader),
        watcher=watcher,
        closers=[failing_closer, sync_closer, async_closer],
    )

    await facade.initialize()
    watcher.start.assert_called_once()

    await facade.dispose()
    await facade.dispose()

    watcher.stop.assert_called_once()
    sync_closer.assert_called_once()
    async_closer.assert_awaited_once()
    assert tracker.tracked_file_count() == 0


def test_create_default_wires_production_stack(temp_workspace, fast_config):
    from codesync.storage.kv import SqliteKeyValueStore
    from codesync.sync.upload import HttpUploader
    from codesync.watcher.core import FileWatcher

    facade = IndexFacade.create_default([temp_workspace], config=fast_config)

    assert isinstance(facade._watcher, FileWatcher)
    assert isinstance(facade.coordinator._uploader, HttpUploader)
    assert isinstance(facade.tracker._store._kv, SqliteKeyValueStore)
    assert (fast_config.state_dir / "state.db").exists()
    facade._closers[-1]()
