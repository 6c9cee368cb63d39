"""
Deployment profiles.

A profile bundles every tunable constant of the simulator, the risk
classifier and the prediction engine. Two profiles ship:

- ``flood``: 80 cm scale with weather simulation, bands 60/40/20 (inclusive).
- ``pure_sensor``: water level and flow rate only, bands 35/25/18 (strict).
"""

from typing import Dict, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

from flood_mitigation.core.exceptions import ConfigurationException


class RiskThresholds(BaseModel):
    """Water level bands (cm), evaluated high to low."""

    model_config = ConfigDict(frozen=True)

    critical: float
    high: float
    medium: float
    inclusive: bool = True

    @model_validator(mode="after")
    def check_order(self):
        if not (self.critical > self.high > self.medium >= 0):
            raise ValueError("thresholds must satisfy critical > high > medium >= 0")
        return self


class FactorWeights(BaseModel):
    model_config = ConfigDict(frozen=True)

    water: float = Field(ge=0)
    flow: float = Field(ge=0)
    rain: float = Field(ge=0)

    @model_validator(mode="after")
    def check_sum(self):
        if abs(self.water + self.flow + self.rain - 1.0) > 1e-9:
            raise ValueError("factor weights must sum to 1")
        return self


class FactorCeilings(BaseModel):
    """Reading at which a factor saturates at 100."""

    model_config = ConfigDict(frozen=True)

    water: float = Field(gt=0)
    flow: float = Field(gt=0)
    rain: float = Field(gt=0)


class Ramp(BaseModel):
    """Linear flood ramp: ``min(cap, base + step * rate)``."""

    model_config = ConfigDict(frozen=True)

    base: float
    rate: float
    cap: float


class DeploymentProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    thresholds: RiskThresholds
    weights: FactorWeights
    ceilings: FactorCeilings

    normal_water_band: Tuple[float, float] = (5.0, 25.0)
    normal_flow_band: Tuple[float, float] = (3.0, 15.0)
    flood_water: Ramp
    flood_flow: Ramp
    flood_rain: Ramp = Ramp(base=0.0, rate=0.8, cap=25.0)
    rain_warmup_steps: int = 5

    simulate_weather: bool = True

    @property
    def max_water_level(self) -> float:
        return max(self.normal_water_band[1], self.flood_water.cap)

    @property
    def max_flow_rate(self) -> float:
        return max(self.normal_flow_band[1], self.flood_flow.cap)


FLOOD_PROFILE = DeploymentProfile(
    name="flood",
    thresholds=RiskThresholds(critical=60, high=40, medium=20, inclusive=True),
    weights=FactorWeights(water=0.4, flow=0.3, rain=0.3),
    ceilings=FactorCeilings(water=60, flow=30, rain=20),
    flood_water=Ramp(base=15.0, rate=2.5, cap=80.0),
    flood_flow=Ramp(base=8.0, rate=1.5, cap=35.0),
)

PURE_SENSOR_PROFILE = DeploymentProfile(
    name="pure_sensor",
    thresholds=RiskThresholds(critical=35, high=25, medium=18, inclusive=False),
    weights=FactorWeights(water=0.7, flow=0.3, rain=0.0),
    ceilings=FactorCeilings(water=40, flow=30, rain=20),
    flood_water=Ramp(base=15.0, rate=1.5, cap=50.0),
    flood_flow=Ramp(base=8.0, rate=1.0, cap=40.0),
    simulate_weather=False,
)

PROFILES: Dict[str, DeploymentProfile] = {
    FLOOD_PROFILE.name: FLOOD_PROFILE,
    PURE_SENSOR_PROFILE.name: PURE_SENSOR_PROFILE,
}


def get_profile(name: str) -> DeploymentProfile:
    """Look up a profile by name (case-insensitive, ``-`` and ``_`` equivalent)."""
    key = (name or "").strip().lower().replace("-", "_")
    try:
        return PROFILES[key]
    except KeyError:
        raise ConfigurationException(
            f"Unknown deployment profile '{name}'",
            {"available": sorted(PROFILES)},
        )
