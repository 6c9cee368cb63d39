import json

import pytest

from flood_mitigation.core.config import settings
from flood_mitigation.services.dashboard_consumer import DashboardConsumer

PREFIX = settings.api_prefix


@pytest.fixture
def consumer(client):
    consumer = DashboardConsumer(window_size=5)
    client.app.state.consumer = consumer
    return consumer


def _publish_sensor(consumer, water_level):
    consumer.handle_message(
        settings.sensor_topic,
        json.dumps(
            {"waterLevel": water_level, "flowRate": 9.0, "rainfall": 0, "riskLevel": "LOW"}
        ).encode(),
    )


def test_dashboard_without_consumer_is_503(client):
    assert client.get(f"{PREFIX}/dashboard/latest").status_code == 503


def test_latest_before_any_message(client, consumer):
    response = client.get(f"{PREFIX}/dashboard/latest")
    assert response.status_code == 200
    assert response.json() == {"sensor": None, "weather": None, "prediction": None}


def test_latest_and_history(client, consumer):
    for level in (10, 11, 12):
        _publish_sensor(consumer, level)

    latest = client.get(f"{PREFIX}/dashboard/latest").json()
    assert latest["sensor"]["waterLevel"] == 12

    history = client.get(f"{PREFIX}/dashboard/history").json()
    assert history["count"] == 3
    assert [item["waterLevel"] for item in history["items"]] == [10, 11, 12]

    limited = client.get(f"{PREFIX}/dashboard/history", params={"limit": 2}).json()
    assert [item["waterLevel"] for item in limited["items"]] == [11, 12]


def test_history_limit_must_be_positive(client, consumer):
    assert client.get(f"{PREFIX}/dashboard/history", params={"limit": 0}).status_code == 422


def test_status(client, consumer):
    _publish_sensor(consumer, 10)
    consumer.handle_message(settings.sensor_topic, b"garbage")

    data = client.get(f"{PREFIX}/dashboard/status").json()
    assert data["connected"] is False
    assert data["messages_received"] == 1
    assert data["messages_dropped"] == 1
    assert data["window_size"] == 5
