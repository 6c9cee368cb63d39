"""
Threshold-based flood risk classification.
"""

from enum import Enum

from flood_mitigation.simulation.profiles import DeploymentProfile, RiskThresholds


class RiskLevel(str, Enum):
    """Flood risk levels, totally ordered by severity."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]

    # str already defines the rich comparisons (alphabetical), so each one
    # is overridden to compare by severity instead.
    def __lt__(self, other):
        if isinstance(other, RiskLevel):
            return self.severity < other.severity
        return NotImplemented

    def __le__(self, other):
        if isinstance(other, RiskLevel):
            return self.severity <= other.severity
        return NotImplemented

    def __gt__(self, other):
        if isinstance(other, RiskLevel):
            return self.severity > other.severity
        return NotImplemented

    def __ge__(self, other):
        if isinstance(other, RiskLevel):
            return self.severity >= other.severity
        return NotImplemented

    def __str__(self) -> str:
        return self.value


_SEVERITY = {
    RiskLevel.LOW: 0,
    RiskLevel.MEDIUM: 1,
    RiskLevel.HIGH: 2,
    RiskLevel.CRITICAL: 3,
}


def _at_or_above(value: float, threshold: float, inclusive: bool) -> bool:
    return value >= threshold if inclusive else value > threshold


def classify_with(water_level: float, thresholds: RiskThresholds) -> RiskLevel:
    bands = (
        (thresholds.critical, RiskLevel.CRITICAL),
        (thresholds.high, RiskLevel.HIGH),
        (thresholds.medium, RiskLevel.MEDIUM),
    )
    for threshold, level in bands:
        if _at_or_above(water_level, threshold, thresholds.inclusive):
            return level
    return RiskLevel.LOW


def classify(water_level: float, profile: DeploymentProfile) -> RiskLevel:
    """
    Map a water level (cm) to a risk level using the profile's bands.

    Bands are checked from CRITICAL down; the first one reached wins.
    """
    return classify_with(water_level, profile.thresholds)
