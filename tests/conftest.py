"""Root pytest configuration for testregistry tests."""
import pytest

from testregistry.settings import Settings

from .fakes.fake_registry import FakeContainer, FakeRegistryAPI
# Import fixtures to make them available
from .fixtures.registry_container import registry_container


# Configure pytest markers
def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (requires Docker)"
    )
    config.addinivalue_line(
        "markers",
        "slow: mark test as slow (may take significant time)"
    )


@pytest.fixture(autouse=True)
def test_env(monkeypatch):
    """Keep TESTREGISTRY_* variables from the caller's shell out of unit tests."""
    for key in ("TESTREGISTRY_IMAGE", "TESTREGISTRY_STARTUP_TIMEOUT", "TESTREGISTRY_WAIT_TIMEOUT",
                "TESTREGISTRY_POLL_INTERVAL", "TESTREGISTRY_POLL_INTERVAL_MAX",
                "TESTREGISTRY_HTTP_TIMEOUT"):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def settings():
    """Settings with short timeouts so failing waits end quickly."""
    return Settings(
        startup_timeout_s=1.0,
        wait_timeout_s=0.5,
        poll_interval_s=0.01,
        poll_interval_max_s=0.05,
        http_timeout_s=0.5,
    )


@pytest.fixture
def registry_api():
    """In-memory v2 registry API."""
    return FakeRegistryAPI()


@pytest.fixture
def fake_container():
    """Container handle publishing the registry on localhost:32768."""
    return FakeContainer()
