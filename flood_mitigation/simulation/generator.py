"""
Synthetic sensor and weather generator.

``advance`` is a pure function of the previous state, the scenario mode, the
profile and a ``random.Random``; seeding the random source makes a run
reproducible.
"""

import math
import random
from dataclasses import asdict, dataclass, replace
from enum import Enum
from typing import Optional, Tuple

from flood_mitigation.schemas.messages import WeatherCondition
from flood_mitigation.simulation.profiles import DeploymentProfile

TEMPERATURE_BAND = (22.0, 35.0)
HUMIDITY_BAND = (40.0, 95.0)
RAINFALL_MAX = 25.0

BASE_TEMPERATURE = 27.0
DIURNAL_AMPLITUDE = 4.0
MINUTES_PER_DAY = 1440
# One tick advances the simulated clock by five minutes.
MINUTES_PER_TICK = 5


class ScenarioMode(str, Enum):
    NORMAL = "normal"
    FLOOD = "flood"
    HEAVY_RAIN = "heavy_rain"
    SUNNY = "sunny"

    @classmethod
    def _missing_(cls, value):
        # "FLOOD", "Heavy-Rain" and " sunny " name the same modes
        if isinstance(value, str):
            key = value.strip().lower().replace("-", "_")
            for member in cls:
                if member.value == key:
                    return member
        return None


@dataclass(frozen=True)
class SimulationState:
    water_level: float = 15.0
    flow_rate: float = 8.0
    rainfall: float = 0.0
    temperature: float = 27.0
    humidity: float = 65.0
    step: int = 0
    weather_cycle: int = 0

    def as_dict(self) -> dict:
        return asdict(self)


def initial_state() -> SimulationState:
    return SimulationState()


def clamp(value: float, band: Tuple[float, float]) -> float:
    low, high = band
    return max(low, min(high, value))


def jitter(rng: random.Random, spread: float) -> float:
    """Symmetric noise in [-spread/2, spread/2]."""
    return (rng.random() - 0.5) * spread


def weather_condition(rainfall: float) -> WeatherCondition:
    if rainfall > 5:
        return WeatherCondition.RAINY
    if rainfall > 0:
        return WeatherCondition.DRIZZLE
    return WeatherCondition.CLEAR


def _drift_sensors(
    state: SimulationState, profile: DeploymentProfile, rng: random.Random
) -> Tuple[float, float]:
    water = clamp(state.water_level + jitter(rng, 1.0), profile.normal_water_band)
    flow = clamp(state.flow_rate + jitter(rng, 0.5), profile.normal_flow_band)
    return water, flow


def _ramp_sensors(
    step: int, profile: DeploymentProfile, rng: random.Random
) -> Tuple[float, float]:
    water_ramp = profile.flood_water
    flow_ramp = profile.flood_flow
    water = min(water_ramp.cap, water_ramp.base + step * water_ramp.rate)
    flow = min(flow_ramp.cap, flow_ramp.base + step * flow_ramp.rate)
    water = clamp(water + jitter(rng, 2.0), (0.0, water_ramp.cap))
    flow = clamp(flow + jitter(rng, 1.0), (0.0, flow_ramp.cap))
    return water, flow


def _simulate_weather(
    state: SimulationState, cycle: int, rng: random.Random
) -> Tuple[float, float, float]:
    time_of_day = (cycle * MINUTES_PER_TICK) % MINUTES_PER_DAY
    variation = math.sin(time_of_day / MINUTES_PER_DAY * 2 * math.pi) * DIURNAL_AMPLITUDE
    temperature = clamp(
        BASE_TEMPERATURE + variation + jitter(rng, 2.0), TEMPERATURE_BAND
    )

    humidity = 85 - (temperature - BASE_TEMPERATURE) * 2 + jitter(rng, 10.0)
    humidity = clamp(humidity, HUMIDITY_BAND)

    rain_chance = rng.random() * 100
    if humidity > 80 and rain_chance < 25:
        rainfall = rng.random() * 15
    elif rain_chance < 10:
        rainfall = rng.random() * 5
    else:
        rainfall = max(0.0, state.rainfall - 0.5)

    return temperature, humidity, rainfall


def advance(
    state: SimulationState,
    mode: ScenarioMode,
    profile: DeploymentProfile,
    rng: Optional[random.Random] = None,
) -> SimulationState:
    """Return the state one tick after ``state`` under ``mode``."""
    rng = rng or random.Random()
    mode = ScenarioMode(mode)

    if mode == ScenarioMode.FLOOD:
        step = state.step + 1
        water, flow = _ramp_sensors(step, profile, rng)
    else:
        step = 0
        water, flow = _drift_sensors(state, profile, rng)

    temperature, humidity, rainfall = state.temperature, state.humidity, state.rainfall
    cycle = state.weather_cycle
    if profile.simulate_weather:
        cycle += 1
        temperature, humidity, rainfall = _simulate_weather(state, cycle, rng)

        if mode == ScenarioMode.HEAVY_RAIN:
            rainfall = 15 + rng.random() * 10
            humidity = 90 + rng.random() * 5
        elif mode == ScenarioMode.SUNNY:
            rainfall = 0.0
            humidity = 50 + rng.random() * 15
            temperature = 30 + rng.random() * 3

    rain_ramp = profile.flood_rain
    if (
        mode == ScenarioMode.FLOOD
        and profile.weights.rain > 0
        and step > profile.rain_warmup_steps
    ):
        rainfall = min(rain_ramp.cap, rainfall + step * rain_ramp.rate)

    return replace(
        state,
        water_level=water,
        flow_rate=flow,
        rainfall=clamp(rainfall, (0.0, RAINFALL_MAX)),
        temperature=temperature,
        humidity=humidity,
        step=step,
        weather_cycle=cycle,
    )
