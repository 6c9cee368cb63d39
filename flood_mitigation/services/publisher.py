"""
Simulation runner: advances the generator and publishes sensor, weather and
prediction messages on three independent timers.

All timers run on one asyncio event loop, so the shared state is only ever
touched by one callback at a time.
"""

import asyncio
import logging
import random
from dataclasses import replace
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol

from flood_mitigation.core.config import settings
from flood_mitigation.schemas.messages import (
    FloodPrediction,
    SensorReading,
    WeatherReading,
)
from flood_mitigation.simulation.generator import (
    ScenarioMode,
    SimulationState,
    advance,
    initial_state,
    weather_condition,
)
from flood_mitigation.simulation.prediction import predict
from flood_mitigation.simulation.profiles import DeploymentProfile
from flood_mitigation.simulation.risk import RiskLevel, classify

logger = logging.getLogger(__name__)


class Transport(Protocol):
    def publish(self, topic: str, payload: Any) -> bool: ...


# --- Message builders ---


def wire_water_level(state: SimulationState) -> float:
    """Water level as published; risk is classified from this value."""
    return round(state.water_level, 2)


def build_sensor_message(
    state: SimulationState, profile: DeploymentProfile, device_id: str = None
) -> SensorReading:
    water_level = wire_water_level(state)
    return SensorReading(
        device_id=device_id,
        water_level=water_level,
        flow_rate=round(state.flow_rate, 2),
        rainfall=round(state.rainfall, 1),
        risk_level=classify(water_level, profile),
    )


def build_weather_message(state: SimulationState, device_id: str = None) -> WeatherReading:
    return WeatherReading(
        device_id=device_id,
        temperature=round(state.temperature, 1),
        humidity=round(state.humidity, 1),
        rainfall=round(state.rainfall, 1),
        condition=weather_condition(state.rainfall),
    )


def build_prediction_message(
    state: SimulationState, profile: DeploymentProfile, device_id: str = None
) -> FloodPrediction:
    return predict(
        state.water_level,
        state.flow_rate,
        state.rainfall,
        classify(wire_water_level(state), profile),
        profile,
        device_id=device_id,
    )


# --- Runner ---


class SimulationRunner:
    """
    Owns the simulator state and the three publish timers.
    """

    def __init__(
        self,
        transport: Transport,
        profile: DeploymentProfile,
        mode: ScenarioMode = ScenarioMode.NORMAL,
        rng: Optional[random.Random] = None,
        device_id: Optional[str] = None,
        sensor_interval: float = None,
        weather_interval: float = None,
        prediction_interval: float = None,
    ):
        self.transport = transport
        self.profile = profile
        self.mode = ScenarioMode(mode)
        self.rng = rng or random.Random()
        self.device_id = device_id
        self.state = initial_state()

        self.sensor_interval = sensor_interval or settings.sensor_interval_seconds
        self.weather_interval = weather_interval or settings.weather_interval_seconds
        self.prediction_interval = (
            prediction_interval or settings.prediction_interval_seconds
        )

        self.last_sensor: Optional[SensorReading] = None
        self.last_weather: Optional[WeatherReading] = None
        self.last_prediction: Optional[FloodPrediction] = None
        self._tasks: List[asyncio.Task] = []

    # --- Scenario control ---

    def set_mode(self, mode: ScenarioMode) -> None:
        mode = ScenarioMode(mode)
        if mode == ScenarioMode.FLOOD and self.mode != ScenarioMode.FLOOD:
            self.state = replace(self.state, step=0)
        logger.info(f"Scenario mode: {self.mode.value} -> {mode.value}")
        self.mode = mode

    def reset(self) -> None:
        logger.info("Resetting simulation to normal conditions")
        self.mode = ScenarioMode.NORMAL
        self.state = initial_state()

    @property
    def risk_level(self) -> RiskLevel:
        return classify(wire_water_level(self.state), self.profile)

    def snapshot(self) -> Dict[str, Any]:
        return {
            "profile": self.profile.name,
            "mode": self.mode.value,
            "running": self.running,
            "risk_level": self.risk_level.value,
            "state": self.state.as_dict(),
            "intervals": {
                "sensor": self.sensor_interval,
                "weather": self.weather_interval if self.profile.simulate_weather else None,
                "prediction": self.prediction_interval,
            },
        }

    # --- Timer callbacks ---

    def tick_sensor(self) -> SensorReading:
        self.state = advance(self.state, self.mode, self.profile, self.rng)
        message = build_sensor_message(self.state, self.profile, self.device_id)
        self.transport.publish(settings.sensor_topic, message)
        self.last_sensor = message

        status = "FLOOD SIM" if self.mode == ScenarioMode.FLOOD else self.mode.value.upper()
        logger.info(
            f"{status} | Water: {message.water_level}cm | "
            f"Flow: {message.flow_rate}L/min | Risk: {message.risk_level.value}"
        )
        return message

    def tick_weather(self) -> WeatherReading:
        message = build_weather_message(self.state, self.device_id)
        self.transport.publish(settings.weather_topic, message)
        self.last_weather = message
        logger.debug(
            f"Weather | {message.temperature}C | {message.humidity}% | "
            f"{message.rainfall}mm/h ({message.condition.value})"
        )
        return message

    def tick_prediction(self) -> FloodPrediction:
        message = build_prediction_message(self.state, self.profile, self.device_id)
        self.transport.publish(settings.prediction_topic, message)
        self.last_prediction = message
        logger.debug(
            f"Prediction | {message.risk_level.value} | score {message.risk_score}"
        )
        return message

    # --- Timer loops ---

    async def _every(self, period: float, callback: Callable[[], Any]) -> None:
        while True:
            await asyncio.sleep(period)
            try:
                callback()
            except Exception as e:
                logger.error(f"{callback.__name__} failed: {e}", exc_info=True)

    @property
    def running(self) -> bool:
        return any(not task.done() for task in self._tasks)

    def start(self) -> None:
        """Schedule the timers on the running event loop."""
        if self.running:
            return
        timers = [(self.sensor_interval, self.tick_sensor)]
        if self.profile.simulate_weather:
            timers.append((self.weather_interval, self.tick_weather))
        timers.append((self.prediction_interval, self.tick_prediction))

        self._tasks = [
            asyncio.create_task(self._every(period, callback), name=callback.__name__)
            for period, callback in timers
        ]
        logger.info(
            f"Simulation started (profile={self.profile.name}, mode={self.mode.value})"
        )

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        logger.info("Simulation stopped")

    async def run(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """Run until ``stop_event`` is set (or forever)."""
        self.start()
        waiter: Awaitable = (stop_event or asyncio.Event()).wait()
        try:
            await waiter
        finally:
            await self.stop()
