import fnmatch
from unittest.mock import AsyncMock, Mock

import pytest

from curlbot.services.booksy_service import BooksyError, BookingCatalog
from curlbot.services.media_store import MediaStore
from curlbot.services.session_store import SessionStore


class FakeRedis:
    """In-memory stand-in for the redis.asyncio client."""

    def __init__(self):
        self.data = {}
        self.ttls = {}

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ex=None):
        self.data[key] = value
        self.ttls[key] = ex
        return True

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def exists(self, *keys):
        return sum(1 for key in keys if key in self.data)

    async def scan_iter(self, match=None, count=None):
        for key in list(self.data):
            if match is None or fnmatch.fnmatchcase(key, match):
                yield key


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def store(fake_redis):
    return SessionStore(fake_redis, ttl_seconds=60)


@pytest.fixture
def media_store(tmp_path):
    return MediaStore(tmp_path / "media")


@pytest.fixture
def booksy_client():
    """Booksy client whose API is unreachable unless a test says otherwise."""
    client = Mock()
    client.business_id = 155582
    client.fetch_business = AsyncMock(side_effect=BooksyError("Booksy API error: 503"))
    return client


@pytest.fixture
def catalog(booksy_client, store):
    return BookingCatalog(booksy_client, store)


@pytest.fixture
def client(store, media_store, catalog):
    from fastapi.testclient import TestClient

    from curlbot.main import app
    from curlbot.services.booksy_service import get_booking_catalog
    from curlbot.services.media_store import get_media_store
    from curlbot.services.session_store import get_session_store

    app.dependency_overrides[get_session_store] = lambda: store
    app.dependency_overrides[get_media_store] = lambda: media_store
    app.dependency_overrides[get_booking_catalog] = lambda: catalog
    yield TestClient(app)
    app.dependency_overrides.clear()
