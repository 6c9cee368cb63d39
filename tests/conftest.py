import random
from unittest.mock import MagicMock, patch

import pytest

from flood_mitigation.core.config import settings
from flood_mitigation.simulation.profiles import FLOOD_PROFILE, PURE_SENSOR_PROFILE


@pytest.fixture
def mock_settings(monkeypatch):
    """Fixture for mocking application settings."""
    monkeypatch.setattr(settings, "telegram_bot_token", "123456:TEST-TOKEN")
    monkeypatch.setattr(settings, "telegram_api_url", "https://telegram.test")
    monkeypatch.setattr(settings, "twilio_account_sid", "AC_test_sid")
    monkeypatch.setattr(settings, "twilio_auth_token", "test_auth_token")
    monkeypatch.setattr(settings, "twilio_phone_number", "whatsapp:+14155238886")
    monkeypatch.setattr(settings, "twilio_api_url", "https://twilio.test/2010-04-01")
    return settings


@pytest.fixture(autouse=True)
def disable_background_components(monkeypatch):
    """Never start the simulator or the MQTT consumer during tests."""
    monkeypatch.setattr(settings, "simulator_enabled", False)
    monkeypatch.setattr(settings, "consumer_enabled", False)
    monkeypatch.setattr(settings, "alert_telegram_chat_id", None)


@pytest.fixture
def flood_profile():
    return FLOOD_PROFILE


@pytest.fixture
def pure_sensor_profile():
    return PURE_SENSOR_PROFILE


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def mock_transport():
    transport = MagicMock()
    transport.publish.return_value = True
    return transport


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "api: Mark tests as API tests")
    config.addinivalue_line("markers", "core: Mark tests as Core tests")
    config.addinivalue_line("markers", "services: Mark tests as Service tests")
    config.addinivalue_line("markers", "simulation: Mark tests as Simulation tests")
    config.addinivalue_line("markers", "v1: Mark tests as V1 API tests")


def pytest_collection_modifyitems(items):
    """Add markers based on directory structure."""
    for item in items:
        path = str(item.fspath)

        if "test_api" in path:
            item.add_marker("api")
            item.add_marker("v1")

        if "test_core" in path:
            item.add_marker("core")

        if "test_services" in path:
            item.add_marker("services")

        if "test_simulation" in path:
            item.add_marker("simulation")


@pytest.fixture
def client():
    """
    Test client with the background components disabled.
    Components are attached to ``app.state`` by the individual tests.
    """
    from fastapi.testclient import TestClient

    from flood_mitigation.main import app

    with patch("flood_mitigation.main.MQTTClient"), TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
