"""
Wire schema for the three MQTT channels.

Payloads are JSON objects with camelCase keys, e.g.::

    {"timestamp": "...", "waterLevel": 18.4, "flowRate": 9.1,
     "rainfall": 0.0, "riskLevel": "LOW", "floodRisk": "LOW"}
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from flood_mitigation.simulation.risk import RiskLevel


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class WeatherCondition(str, Enum):
    CLEAR = "clear"
    DRIZZLE = "drizzle"
    RAINY = "rainy"


class MessageBase(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    timestamp: datetime = Field(default_factory=utc_now)
    device_id: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready dict with camelCase keys, absent optionals dropped."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class SensorReading(MessageBase):
    water_level: float = Field(..., ge=0, description="Water level (cm)")
    flow_rate: float = Field(..., ge=0, description="Flow rate (L/min)")
    rainfall: float = Field(0.0, ge=0, description="Rainfall (mm/h)")
    risk_level: RiskLevel
    # Same value as risk_level; older dashboard builds read this key.
    flood_risk: Optional[RiskLevel] = None

    @model_validator(mode="before")
    @classmethod
    def fill_risk_aliases(cls, data: Any) -> Any:
        if isinstance(data, dict):
            data = dict(data)
            level = data.get("riskLevel", data.get("risk_level"))
            flood = data.get("floodRisk", data.get("flood_risk"))
            if level is None and flood is not None:
                data["riskLevel"] = flood
            elif flood is None and level is not None:
                data["floodRisk"] = level
        return data


class WeatherReading(MessageBase):
    temperature: float = Field(..., description="Air temperature (degC)")
    humidity: float = Field(..., ge=0, le=100, description="Relative humidity (%)")
    rainfall: float = Field(..., ge=0, description="Rainfall (mm/h)")
    condition: WeatherCondition


class PredictionFactors(BaseModel):
    """Per-input contribution, each normalised to 0-100."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    water_level: float = Field(..., ge=0, le=100)
    flow_rate: float = Field(..., ge=0, le=100)
    rainfall: float = Field(0.0, ge=0, le=100)


class FloodPrediction(MessageBase):
    risk_level: RiskLevel
    risk_score: float = Field(..., ge=0, le=100)
    probability: Optional[float] = Field(None, ge=0, le=1)
    time_to_flood: Optional[float] = Field(None, ge=0, description="Minutes")
    recommendation: str
    factors: Optional[PredictionFactors] = None

    @model_validator(mode="before")
    @classmethod
    def score_from_probability(cls, data: Any) -> Any:
        # The oldest simulator only sends "probability" (as a 0-1 fraction).
        if isinstance(data, dict):
            score = data.get("riskScore", data.get("risk_score"))
            probability = data.get("probability")
            if score is None and isinstance(probability, (int, float)):
                data = dict(data)
                if probability > 1:
                    data["riskScore"] = probability
                    data["probability"] = round(probability / 100, 2)
                else:
                    data["riskScore"] = probability * 100
        return data
