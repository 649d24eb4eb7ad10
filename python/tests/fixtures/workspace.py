"""
Workspace fixtures for tracker, facade and watcher tests.
"""
import pytest
from pathlib import Path


@pytest.fixture
def temp_workspace(tmp_path):
    """Create temporary workspace directory (resolved, like tracked roots)."""
    workspace = tmp_path / "workspace"
    workspace.mkdir()
    return workspace.resolve()


@pytest.fixture
def make_file(temp_workspace):
    """Factory: write a file relative to the workspace and return its path."""
    def _make(rel_path: str, content: str = "export const x = 1;\n") -> Path:
        file_path = temp_workspace / rel_path
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content)
        return file_path
    return _make


@pytest.fixture
def kv_store():
    from codesync.storage import MemoryKeyValueStore
    return MemoryKeyValueStore()


@pytest.fixture
def metadata_store(kv_store):
    from codesync.storage import MetadataStore
    return MetadataStore(kv_store)


@pytest.fixture
def fast_config(tmp_path):
    """Config with short timers so tests don't wait seconds."""
    from codesync.config import IndexConfig
    return IndexConfig(
        debounce_delay=0.1,
        sync_interval=0.05,
        retry_delay=0,
        state_dir=tmp_path / "state",
    )


@pytest.fixture
def tracker(temp_workspace, metadata_store, fast_config):
    """ChangeTracker over temp_workspace (not initialized)."""
    from codesync.tracker import ChangeTracker
    t = ChangeTracker([temp_workspace], metadata_store, config=fast_config)
    yield t
    t.dispose()
