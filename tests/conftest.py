"""Pytest configuration and shared fixtures."""
import pytest

from recordstate import InMemoryTransport, set_default_transport
import recordstate.config as config_module

from fixture_models import Profile


@pytest.fixture(autouse=True)
def reset_record_config():
    """Restore module-level configuration after each test."""
    # Store original values
    original_config = config_module._record_config
    original_transport = config_module._default_transport

    yield

    # Restore original values after test
    config_module._record_config = original_config
    config_module._default_transport = original_transport


@pytest.fixture
def transport():
    """Provide an in-memory transport installed as the default."""
    transport = InMemoryTransport()
    set_default_transport(transport)
    return transport


@pytest.fixture
def deferred_transport():
    """Provide an in-memory transport whose requests complete on flush()."""
    transport = InMemoryTransport(deferred=True)
    set_default_transport(transport)
    return transport


@pytest.fixture
def profile():
    """Provide a profile with settings and two addresses."""
    return Profile({
        "name": "Ada",
        "settings": {"notifications": False},
        "addresses": [
            {"street": "1 Main St", "city": "Oslo", "zip": "0150"},
            {"street": "2 High St", "city": "Bergen", "zip": "5003"},
        ],
    })
