from typing import Optional

from fastapi import APIRouter, Depends

from flood_mitigation.api import deps
from flood_mitigation.core.config import settings
from flood_mitigation.schemas.notifications import AlertHistory
from flood_mitigation.services.alert_evaluator import AlertEvaluator

router = APIRouter()


@router.get("/history", response_model=AlertHistory)
def alert_history(
    evaluator: Optional[AlertEvaluator] = Depends(deps.get_alert_evaluator),
):
    """
    Automatic alert configuration and the most recent alert attempts.
    """
    if evaluator is None:
        return AlertHistory(
            enabled=False,
            recipient=None,
            cooldown_minutes=settings.alert_cooldown_minutes,
            critical_only=settings.critical_alert_only,
            alerts=[],
        )
    return evaluator.describe()
