from contextlib import ExitStack

import mongomock
import pytest
from fastapi.testclient import TestClient

from config import Settings
from database import Store
from main import create_app


@pytest.fixture
def settings():
    return Settings(_env_file=None, MONGO_URL="mongodb://test", DATABASE_NAME="youtube_test")


@pytest.fixture
def store(settings):
    client = mongomock.MongoClient()
    return Store(client=client, db=client[settings.DATABASE_NAME])


@pytest.fixture
def make_client(settings, store):
    """Start service apps against the shared in-memory store."""
    with ExitStack() as stack:

        def _make(service):
            return stack.enter_context(TestClient(create_app(service, settings, store)))

        yield _make
