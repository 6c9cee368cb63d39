from typing import Optional

from fastapi import APIRouter, Depends, Query

from flood_mitigation.api import deps
from flood_mitigation.services.dashboard_consumer import DashboardConsumer
from flood_mitigation.services.mqtt_client import MQTTClient

router = APIRouter()


@router.get("/status")
def dashboard_status(
    consumer: DashboardConsumer = Depends(deps.get_consumer),
    client: Optional[MQTTClient] = Depends(deps.get_consumer_client),
):
    """
    Broker connection state and message counters.
    """
    return consumer.status(connected=bool(client and client.connected))


@router.get("/latest")
def dashboard_latest(consumer: DashboardConsumer = Depends(deps.get_consumer)):
    """
    Latest sensor, weather and prediction messages (null until received).
    """
    return consumer.latest()


@router.get("/history")
def dashboard_history(
    limit: Optional[int] = Query(None, ge=1),
    consumer: DashboardConsumer = Depends(deps.get_consumer),
):
    """
    Trailing window of sensor readings, oldest first.
    """
    items = consumer.history()
    if limit is not None:
        items = items[-limit:]
    return {"count": len(items), "items": [item.to_payload() for item in items]}
