"""
Sync fixtures for test_sync_coordinator.py and test_facade.py.
"""
import pytest
from unittest.mock import AsyncMock


class FakeUploader:
    """Uploader double: records calls, replays scripted results."""

    def __init__(self, results=None):
        self.calls = []
        self._results = list(results or [])

    async def upload(self, session_id, auth_token, files):
        from codesync.sync import UploadResult

        self.calls.append((session_id, auth_token, list(files)))
        if self._results:
            result = self._results.pop(0)
        else:
            result = UploadResult.ok(len(files))
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def fake_uploader():
    return FakeUploader()


@pytest.fixture
def token_provider():
    return AsyncMock(return_value="token-123")


@pytest.fixture
def make_coordinator(tracker, token_provider, fast_config):
    """Factory: SyncCoordinator over the tracker fixture with a given uploader."""
    from codesync.sync import SyncCoordinator

    def _make(uploader, **kwargs):
        kwargs.setdefault("config", fast_config)
        kwargs.setdefault("token_provider", token_provider)
        coordinator = SyncCoordinator(tracker, uploader, **kwargs)
        coordinator.set_session_id("session-1")
        return coordinator

    return _make
