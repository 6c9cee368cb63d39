import asyncio
import logging
import time
from collections import deque
from typing import Callable, Deque, List, Optional

from flood_mitigation.core.exceptions import AppException
from flood_mitigation.schemas.messages import FloodPrediction
from flood_mitigation.schemas.notifications import AlertHistory, AlertRecord
from flood_mitigation.simulation.risk import RiskLevel

logger = logging.getLogger(__name__)

HISTORY_SIZE = 5


def format_alert_message(prediction: FloodPrediction) -> str:
    """Markdown text for a flood alert."""
    lines = [
        f"🚨 *FLOOD ALERT: {prediction.risk_level.value}*",
        "",
        f"⚠️ Risk Score: {prediction.risk_score:.1f}/100",
    ]
    if prediction.time_to_flood is not None:
        lines.append(f"⏱️ Estimated time to flood: {prediction.time_to_flood:.0f} minutes")
    if prediction.factors is not None:
        lines.extend(
            [
                "",
                "📊 *Factors:*",
                f"💧 Water Level: {prediction.factors.water_level:.1f}",
                f"🌊 Flow Rate: {prediction.factors.flow_rate:.1f}",
                f"🌧️ Rainfall: {prediction.factors.rainfall:.1f}",
            ]
        )
    lines.extend(
        [
            "",
            f"📢 {prediction.recommendation}",
            f"🕒 Time: {prediction.timestamp.strftime('%Y-%m-%d %H:%M:%S')} UTC",
        ]
    )
    return "\n".join(lines)


class AlertEvaluator:
    """
    Evaluates predictions and sends a notification when flood risk is high.

    - HIGH and CRITICAL trigger an alert (only CRITICAL with ``critical_only``).
    - One alert per cooldown window; an escalation above the last alerted
      level is sent immediately. ``cooldown_minutes=0`` disables throttling.
    """

    def __init__(
        self,
        notifier,
        recipient: Optional[str],
        cooldown_minutes: float = 10,
        critical_only: bool = False,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.notifier = notifier
        self.recipient = recipient
        self.cooldown_seconds = max(cooldown_minutes, 0) * 60
        self.critical_only = critical_only
        self._clock = clock
        self._last_sent_at: Optional[float] = None
        self._last_level: Optional[RiskLevel] = None
        self._history: Deque[AlertRecord] = deque(maxlen=HISTORY_SIZE)
        self._sending = False

    @property
    def enabled(self) -> bool:
        return bool(self.recipient) and getattr(self.notifier, "configured", True)

    @property
    def minimum_level(self) -> RiskLevel:
        return RiskLevel.CRITICAL if self.critical_only else RiskLevel.HIGH

    def should_alert(self, level: RiskLevel) -> bool:
        if level < self.minimum_level:
            return False
        if self._last_sent_at is None or self.cooldown_seconds == 0:
            return True
        if self._last_level is not None and level > self._last_level:
            return True
        return self._clock() - self._last_sent_at >= self.cooldown_seconds

    def _alert_text(self, prediction: FloodPrediction) -> Optional[str]:
        if self._sending:
            logger.debug("Alert delivery in progress, skipping prediction")
            return None
        if not self.enabled or not self.should_alert(prediction.risk_level):
            return None
        return format_alert_message(prediction)

    def _record_failure(
        self, prediction: FloodPrediction, text: str, error: AppException
    ) -> bool:
        level = prediction.risk_level.value
        logger.error(f"Failed to send {level} alert: {error.message}")
        self._history.appendleft(
            AlertRecord(level=level, message=text, status="failed", error=error.message)
        )
        return False

    def _record_success(self, prediction: FloodPrediction, text: str, result) -> bool:
        level = prediction.risk_level.value
        self._last_sent_at = self._clock()
        self._last_level = prediction.risk_level
        self._history.appendleft(AlertRecord(level=level, message=text, status="sent"))
        logger.info(f"{level} alert sent (message id {result.message_id})")
        return True

    def evaluate_prediction(self, prediction: FloodPrediction) -> bool:
        """
        Send an alert for ``prediction`` if it qualifies.

        Returns True when a notification was delivered. Delivery failures are
        logged and recorded in the history, never raised. Blocks for the
        duration of the HTTP call; use ``evaluate_prediction_async`` on an
        event loop.
        """
        text = self._alert_text(prediction)
        if text is None:
            return False
        try:
            result = self.notifier.send(self.recipient, text)
        except AppException as e:
            return self._record_failure(prediction, text, e)
        return self._record_success(prediction, text, result)

    async def evaluate_prediction_async(self, prediction: FloodPrediction) -> bool:
        """
        Same as ``evaluate_prediction`` with the HTTP call run in a worker thread.

        Cooldown and history are updated on the event loop. Predictions that
        arrive while a delivery is in flight are skipped.
        """
        text = self._alert_text(prediction)
        if text is None:
            return False
        self._sending = True
        try:
            result = await asyncio.to_thread(self.notifier.send, self.recipient, text)
        except AppException as e:
            return self._record_failure(prediction, text, e)
        finally:
            self._sending = False
        return self._record_success(prediction, text, result)

    def history(self) -> List[AlertRecord]:
        return list(self._history)

    def describe(self) -> AlertHistory:
        return AlertHistory(
            enabled=self.enabled,
            recipient=self.recipient,
            cooldown_minutes=self.cooldown_seconds / 60,
            critical_only=self.critical_only,
            alerts=self.history(),
        )
