import pytest
from dbadapter.cache import Cache
from dbadapter.connection import ConnectionManager, set_manager


@pytest.fixture(autouse=True)
def clear_caches():
    """Clear all caches before and after each test to ensure test isolation."""
    Cache.get_instance().clear_all()
    yield
    Cache.get_instance().clear_all()


@pytest.fixture(autouse=True)
def reset_default_manager():
    """Give each test a fresh default connection manager."""
    previous = set_manager(ConnectionManager())
    yield
    set_manager(previous)


pytest_plugins = [
    'tests.fixtures.mocks',
]
