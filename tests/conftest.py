"""
Pytest configuration and shared fixtures.

Every storage fixture gets its own temporary database file; connections are
opened per operation so an in-memory database would not persist.
"""
import os
import shutil
import sqlite3
import tempfile

import pytest
from fastapi.testclient import TestClient

from tasksync.adapters import HttpxClientAdapter
from tasksync.api.app import create_app
from tasksync.storage.api_storage import APIStorage
from tasksync.storage.sqlite_storage import SQLiteStorage
from tasksync.tasks.models import to_db_timestamp

TEST_SERVER_URI = "http://testserver"


@pytest.fixture
def temp_dir():
    """Temporary directory removed after the test."""
    path = tempfile.mkdtemp()
    yield path
    shutil.rmtree(path, ignore_errors=True)


def _new_storage(directory, name):
    return SQLiteStorage(os.path.join(directory, name))


@pytest.fixture
def storage(temp_dir):
    """Fresh SQLite task storage."""
    return _new_storage(temp_dir, "tasks.db")


@pytest.fixture
def local_storage(temp_dir):
    return _new_storage(temp_dir, "local.db")


@pytest.fixture
def remote_storage(temp_dir):
    return _new_storage(temp_dir, "remote.db")


@pytest.fixture
def server_storage(temp_dir):
    """SQLite storage exposed by the test server."""
    return _new_storage(temp_dir, "server.db")


@pytest.fixture
def app(server_storage):
    return create_app(server_storage)


@pytest.fixture
def client(app):
    """FastAPI test client for the server."""
    return TestClient(app)


@pytest.fixture
def api_storage(client):
    """Remote backend talking to the test server in-process."""
    storage = APIStorage(TEST_SERVER_URI, client=HttpxClientAdapter(client=client))
    yield storage
    storage.close()


@pytest.fixture
def set_modified():
    """Overwrite modified_utc of a stored task, bypassing the storage API."""

    def _set_modified(storage, ulid, value):
        conn = sqlite3.connect(storage.adapter.path)
        try:
            conn.execute(
                "UPDATE tasks SET modified_utc = ? WHERE ulid = ?",
                (to_db_timestamp(value), ulid),
            )
            conn.commit()
        finally:
            conn.close()

    return _set_modified
