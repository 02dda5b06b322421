"""Shared pytest fixtures for all tests."""

import os

import pytest
from fastapi.testclient import TestClient

from objectstore.memory_store import InMemoryObjectStore
from uploader.config import Config
from uploadserver import config as server_config
from uploadserver import service_locator
from uploadserver.orphan_log import OrphanLog


@pytest.fixture
def temp_config_dir(tmp_path):
    """
    Create temporary config directory.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to temporary .reelpress directory
    """
    config_dir = tmp_path / '.reelpress'
    config_dir.mkdir()
    return config_dir


@pytest.fixture
def temp_config(temp_config_dir):
    """
    Create temporary config instance.

    Returns:
        Config instance with temp config file
    """
    return Config(temp_config_dir / 'config.json')


@pytest.fixture
def memory_store():
    """Fresh in-memory bucket."""
    return InMemoryObjectStore('videos', public_base_url='http://testserver')


@pytest.fixture
def orphan_log(tmp_path):
    """Orphan log in a temporary directory."""
    return OrphanLog(str(tmp_path / 'orphaned_objects.json'))


@pytest.fixture
def api_client(memory_store, orphan_log, monkeypatch):
    """
    FastAPI test client wired to an in-memory store.

    Startup events are not run, so the background cleaner stays idle.
    """
    from uploadserver.main import app

    monkeypatch.setattr(server_config, 'CLEANUP_RETRY_BASE_DELAY', 0)
    service_locator.set_object_store(memory_store)
    service_locator.set_orphan_log(orphan_log)
    yield TestClient(app)
    service_locator.set_object_store(None)
    service_locator.set_orphan_log(None)


@pytest.fixture
def sample_video(tmp_path):
    """
    Create a small multi-chunk file of random bytes.

    Returns:
        Path to a 9 MiB + 123 byte file (3 chunks)
    """
    file_path = tmp_path / 'clip.mp4'
    size = 9 * 1024 * 1024 + 123
    file_path.write_bytes(os.urandom(size))
    return file_path
