# tests/conftest.py

from datetime import datetime, timedelta, timezone

import pytest

from snips.core.lifecycle import LifecycleManager
from snips.core.store import SnippetStore
from snips.core.undo_manager import UndoManager


class FakeClock:
    """A clock that moves forward one minute every time it is read."""

    def __init__(self, start: datetime = datetime(2025, 9, 10, 12, 0, tzinfo=timezone.utc)):
        self.current = start

    def __call__(self) -> datetime:
        self.current = self.current + timedelta(minutes=1)
        return self.current


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def store(tmp_path):
    """An empty store backed by a file in a temporary directory."""
    snippet_store = SnippetStore(tmp_path / "snips.json")
    snippet_store.load()
    return snippet_store


@pytest.fixture
def undo_manager():
    return UndoManager()


@pytest.fixture
def manager(store, undo_manager, clock):
    return LifecycleManager(store, undo_manager, clock=clock)
