import pytest
from fastapi.testclient import TestClient

from drm_backend.main import create_app
from drm_backend.utils.settings_store import SettingsStore

from tests.samples import make_env


@pytest.fixture
def env():
    return make_env()


@pytest.fixture
def store():
    return SettingsStore()


@pytest.fixture
def client(env, store):
    return TestClient(create_app(env, store))


@pytest.fixture
def make_client():
    """Build a client with custom environment overrides."""
    def _make(**overrides):
        return TestClient(create_app(make_env(**overrides), SettingsStore()))
    return _make
