"""
Shared pytest configuration for all tests.
Provides a form controller wired to mocked device capabilities.
"""
from datetime import datetime, timezone
from unittest.mock import AsyncMock, Mock

import pytest
from fastapi.testclient import TestClient

from accident_log.main import app
from accident_log.services.form_controller import AccidentFormController, get_controller
from accident_log.services.records import AccidentRegistry


@pytest.fixture
def fake_device():
    """Device double implementing every capability the controller uses."""
    device = Mock()
    device.request = AsyncMock(return_value=None)
    device.pulse = AsyncMock(return_value=None)
    device.capture = AsyncMock(return_value=None)
    device.get_current_location = AsyncMock(return_value=None)
    device.select_date = AsyncMock(return_value=None)
    return device


@pytest.fixture
def registry():
    return AccidentRegistry()


@pytest.fixture
def controller(registry, fake_device):
    return AccidentFormController(
        registry=registry,
        permissions=fake_device,
        camera=fake_device,
        locator=fake_device,
        haptics=fake_device,
        date_picker=fake_device,
    )


@pytest.fixture
def client(controller):
    """Test client with the form controller dependency overridden."""
    app.dependency_overrides[get_controller] = lambda: controller
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def accident_date():
    return datetime(2024, 3, 15, tzinfo=timezone.utc)
