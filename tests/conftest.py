"""
Test configuration and utilities.

Provides common test fixtures and mocks for the test suite. Service
dependencies of the app are overridden for every test: a fresh in-memory
catalog, an upload directory under tmp_path and a mocked resolver.
"""

from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from api.dependencies import get_catalog, get_intake, get_resolver
from api.main import app
from core.identity import SkinResolver
from core.skins import InMemorySkinCatalog, SkinFileStorage, SkinIntake
from core.utils.exceptions import ProfileNotFoundError
from tests.skin_test_utils import MAX_UPLOAD_BYTES, make_png


@pytest.fixture
def png_bytes():
    return make_png()


@pytest.fixture
def upload_dir(tmp_path):
    return tmp_path / "uploads"


@pytest.fixture
def catalog():
    return InMemorySkinCatalog()


@pytest.fixture
def storage(upload_dir):
    return SkinFileStorage(str(upload_dir), "/uploads")


@pytest.fixture
def intake(storage, catalog):
    return SkinIntake(storage, catalog, max_size_bytes=MAX_UPLOAD_BYTES)


@pytest.fixture
def mock_session():
    """A requests.Session stand-in; set .get.side_effect per test"""
    session = Mock()
    session.get = Mock()
    return session


@pytest.fixture
def mock_resolver():
    """Resolver whose resolve() result is set per test"""
    resolver = Mock(spec=SkinResolver)
    resolver.resolve = Mock(return_value=(None, ProfileNotFoundError()))
    return resolver


@pytest.fixture(scope="function", autouse=True)
def override_dependencies(catalog, intake, mock_resolver):
    """Point the app at per-test services"""
    app.dependency_overrides[get_catalog] = lambda: catalog
    app.dependency_overrides[get_intake] = lambda: intake
    app.dependency_overrides[get_resolver] = lambda: mock_resolver

    yield

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
def test_client():
    """Create a test client with mocked dependencies"""
    return TestClient(app)


def pytest_configure(config):
    """Configure pytest with custom markers"""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "api: marks tests as API tests")
