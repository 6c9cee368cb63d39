"""
Dashboard consumer: keeps the latest message of each channel and a trailing
window of sensor readings for charting.
"""

import asyncio
import json
import logging
from collections import deque
from datetime import datetime
from typing import Any, Deque, Dict, List, Optional, Set

from pydantic import ValidationError

from flood_mitigation.core.config import settings
from flood_mitigation.schemas.messages import (
    FloodPrediction,
    SensorReading,
    WeatherReading,
    utc_now,
)
from flood_mitigation.services.alert_evaluator import AlertEvaluator

logger = logging.getLogger(__name__)


class DashboardConsumer:
    """
    Read-only view of the three channels.

    Malformed messages are dropped with a warning; ``handle_message`` never
    raises for bad input.
    """

    def __init__(
        self,
        sensor_topic: str = None,
        weather_topic: str = None,
        prediction_topic: str = None,
        window_size: int = None,
        alert_evaluator: Optional[AlertEvaluator] = None,
    ):
        self.sensor_topic = sensor_topic or settings.sensor_topic
        self.weather_topic = weather_topic or settings.weather_topic
        self.prediction_topic = prediction_topic or settings.prediction_topic
        self.window_size = window_size or settings.dashboard_window_size
        self.alert_evaluator = alert_evaluator

        self.sensor: Optional[SensorReading] = None
        self.weather: Optional[WeatherReading] = None
        self.prediction: Optional[FloodPrediction] = None
        self.last_message_at: Optional[datetime] = None
        self.received = 0
        self.dropped = 0
        self._history: Deque[SensorReading] = deque(maxlen=self.window_size)
        self._alert_tasks: Set[asyncio.Task] = set()

        self._parsers = {
            self.sensor_topic: (SensorReading, self._on_sensor),
            self.weather_topic: (WeatherReading, self._on_weather),
            self.prediction_topic: (FloodPrediction, self._on_prediction),
        }

    @property
    def topics(self) -> List[str]:
        return list(self._parsers)

    def handle_message(self, topic: str, payload: bytes) -> None:
        entry = self._parsers.get(topic)
        if entry is None:
            logger.debug(f"Ignoring message on unexpected topic {topic}")
            return

        model, apply = entry
        try:
            data = json.loads(payload)
            message = model.model_validate(data)
        except (ValueError, ValidationError) as e:
            # json.JSONDecodeError and UnicodeDecodeError are ValueErrors
            self.dropped += 1
            logger.warning(f"Dropping malformed message on {topic}: {e}")
            return

        self.received += 1
        self.last_message_at = utc_now()
        apply(message)

    def _on_sensor(self, message: SensorReading) -> None:
        self.sensor = message
        self._history.append(message)

    def _on_weather(self, message: WeatherReading) -> None:
        self.weather = message

    def _on_prediction(self, message: FloodPrediction) -> None:
        self.prediction = message
        if self.alert_evaluator is None:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.alert_evaluator.evaluate_prediction(message)
            return
        # Delivery runs off the loop; keep a reference until the task finishes.
        task = loop.create_task(self.alert_evaluator.evaluate_prediction_async(message))
        self._alert_tasks.add(task)
        task.add_done_callback(self._alert_tasks.discard)

    def history(self) -> List[SensorReading]:
        """Sensor readings, oldest first."""
        return list(self._history)

    def latest(self) -> Dict[str, Any]:
        return {
            "sensor": self.sensor.to_payload() if self.sensor else None,
            "weather": self.weather.to_payload() if self.weather else None,
            "prediction": self.prediction.to_payload() if self.prediction else None,
        }

    def status(self, connected: bool) -> Dict[str, Any]:
        return {
            "connected": connected,
            "last_message_at": self.last_message_at,
            "messages_received": self.received,
            "messages_dropped": self.dropped,
            "window_size": self.window_size,
            "points": len(self._history),
        }
