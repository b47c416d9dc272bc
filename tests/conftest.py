"""
Shared fixtures for the platform tests
"""

from datetime import datetime, timedelta, timezone

import pytest

from infrastructure.storage.blob_store import BlobStore
from services.store_service.record_store import RecordStore

START = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)


class FrozenClock:
    """Callable clock that only moves when told to"""

    def __init__(self, now: datetime = START):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)


@pytest.fixture
def clock():
    return FrozenClock()


@pytest.fixture
def blob_store():
    store = BlobStore(":memory:")
    yield store
    store.close()


@pytest.fixture
def store(blob_store, clock):
    return RecordStore(blob_store, clock=clock)


@pytest.fixture
def empty_store(blob_store, clock):
    """Record store that starts with no bundled data"""
    return RecordStore(blob_store, clock=clock, seed_defaults=False)
