from typing import Dict, Optional

from pydantic import BaseModel, Field

from flood_mitigation.simulation.generator import ScenarioMode


class ScenarioRequest(BaseModel):
    mode: ScenarioMode = Field(..., description="normal, flood, heavy_rain or sunny")


class SimulationStateRead(BaseModel):
    water_level: float
    flow_rate: float
    rainfall: float
    temperature: float
    humidity: float
    step: int
    weather_cycle: int


class SimulationStatus(BaseModel):
    profile: str
    mode: ScenarioMode
    running: bool
    risk_level: str
    state: SimulationStateRead
    intervals: Dict[str, Optional[float]]
