"""
Flood prediction: weighted risk score plus a recommendation keyed by risk level.
"""

from datetime import datetime
from typing import Dict, NamedTuple, Optional

from flood_mitigation.schemas.messages import FloodPrediction, PredictionFactors, utc_now
from flood_mitigation.simulation.profiles import DeploymentProfile
from flood_mitigation.simulation.risk import RiskLevel


class Recommendation(NamedTuple):
    text: str
    time_to_flood: Optional[int]  # minutes


RECOMMENDATIONS: Dict[RiskLevel, Recommendation] = {
    RiskLevel.CRITICAL: Recommendation(
        "IMMEDIATE EVACUATION REQUIRED! Flood imminent within 15 minutes.", 15
    ),
    RiskLevel.HIGH: Recommendation(
        "HIGH FLOOD RISK! Prepare for evacuation. Monitor conditions closely.", 45
    ),
    RiskLevel.MEDIUM: Recommendation(
        "Moderate flood risk. Stay alert and avoid low-lying areas.", None
    ),
    RiskLevel.LOW: Recommendation("Conditions normal. Continue monitoring.", None),
}


def factor(value: float, ceiling: float) -> float:
    """Normalise a reading against its ceiling onto 0-100."""
    return min(max(value, 0.0) / ceiling, 1.0) * 100


def risk_factors(
    water_level: float, flow_rate: float, rainfall: float, profile: DeploymentProfile
) -> PredictionFactors:
    ceilings = profile.ceilings
    return PredictionFactors(
        water_level=factor(water_level, ceilings.water),
        flow_rate=factor(flow_rate, ceilings.flow),
        rainfall=factor(rainfall, ceilings.rain),
    )


def risk_score(factors: PredictionFactors, profile: DeploymentProfile) -> float:
    weights = profile.weights
    score = (
        weights.water * factors.water_level
        + weights.flow * factors.flow_rate
        + weights.rain * factors.rainfall
    )
    return min(max(score, 0.0), 100.0)


def predict(
    water_level: float,
    flow_rate: float,
    rainfall: float,
    risk_level: RiskLevel,
    profile: DeploymentProfile,
    timestamp: Optional[datetime] = None,
    device_id: Optional[str] = None,
) -> FloodPrediction:
    """
    Build a prediction from the current readings.

    The score only depends on the readings and the profile; recommendation and
    time to flood only depend on ``risk_level``.
    """
    factors = risk_factors(water_level, flow_rate, rainfall, profile)
    score = round(risk_score(factors, profile), 1)
    recommendation = RECOMMENDATIONS[risk_level]

    return FloodPrediction(
        timestamp=timestamp or utc_now(),
        device_id=device_id,
        risk_level=risk_level,
        risk_score=score,
        probability=round(score / 100, 2),
        time_to_flood=recommendation.time_to_flood,
        recommendation=recommendation.text,
        factors=PredictionFactors(
            water_level=round(factors.water_level, 1),
            flow_rate=round(factors.flow_rate, 1),
            rainfall=round(factors.rainfall, 1),
        ),
    )
