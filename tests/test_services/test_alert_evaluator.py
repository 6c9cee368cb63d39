import asyncio
import threading
from unittest.mock import MagicMock, patch

import pytest

from flood_mitigation.core.exceptions import RateLimitException
from flood_mitigation.schemas.notifications import NotificationResult
from flood_mitigation.services.alert_evaluator import AlertEvaluator, format_alert_message
from flood_mitigation.services.notification_service import TelegramNotifier
from flood_mitigation.simulation.prediction import predict
from flood_mitigation.simulation.profiles import FLOOD_PROFILE
from flood_mitigation.simulation.risk import RiskLevel


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def _prediction(level):
    readings = {
        RiskLevel.LOW: (10, 5, 0),
        RiskLevel.MEDIUM: (25, 10, 2),
        RiskLevel.HIGH: (45, 20, 10),
        RiskLevel.CRITICAL: (65, 30, 20),
    }
    return predict(*readings[level], level, FLOOD_PROFILE)


@pytest.fixture
def notifier():
    notifier = MagicMock()
    notifier.configured = True
    notifier.send.return_value = NotificationResult(channel="telegram", message_id="1")
    return notifier


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def evaluator(notifier, clock):
    return AlertEvaluator(notifier, "123456", cooldown_minutes=10, clock=clock)


def test_low_and_medium_do_not_alert(evaluator, notifier):
    assert evaluator.evaluate_prediction(_prediction(RiskLevel.LOW)) is False
    assert evaluator.evaluate_prediction(_prediction(RiskLevel.MEDIUM)) is False
    notifier.send.assert_not_called()


def test_high_alert_is_sent(evaluator, notifier):
    assert evaluator.evaluate_prediction(_prediction(RiskLevel.HIGH)) is True

    recipient, text = notifier.send.call_args[0]
    assert recipient == "123456"
    assert "FLOOD ALERT: HIGH" in text
    assert evaluator.history()[0].status == "sent"


def test_cooldown_suppresses_repeats(evaluator, notifier, clock):
    evaluator.evaluate_prediction(_prediction(RiskLevel.HIGH))
    clock.now += 5 * 60
    assert evaluator.evaluate_prediction(_prediction(RiskLevel.HIGH)) is False

    clock.now += 5 * 60
    assert evaluator.evaluate_prediction(_prediction(RiskLevel.HIGH)) is True
    assert notifier.send.call_count == 2


def test_escalation_bypasses_cooldown(evaluator, notifier, clock):
    evaluator.evaluate_prediction(_prediction(RiskLevel.HIGH))
    clock.now += 60
    assert evaluator.evaluate_prediction(_prediction(RiskLevel.CRITICAL)) is True
    clock.now += 60
    assert evaluator.evaluate_prediction(_prediction(RiskLevel.CRITICAL)) is False
    assert notifier.send.call_count == 2


def test_zero_cooldown_disables_throttling(notifier, clock):
    evaluator = AlertEvaluator(notifier, "123456", cooldown_minutes=0, clock=clock)
    for _ in range(3):
        assert evaluator.evaluate_prediction(_prediction(RiskLevel.HIGH)) is True


def test_critical_only(notifier, clock):
    evaluator = AlertEvaluator(notifier, "123456", critical_only=True, clock=clock)
    assert evaluator.minimum_level == RiskLevel.CRITICAL
    assert evaluator.evaluate_prediction(_prediction(RiskLevel.HIGH)) is False
    assert evaluator.evaluate_prediction(_prediction(RiskLevel.CRITICAL)) is True


def test_disabled_without_recipient_or_credentials(notifier):
    assert AlertEvaluator(notifier, None).enabled is False

    notifier.configured = False
    evaluator = AlertEvaluator(notifier, "123456")
    assert evaluator.enabled is False
    assert evaluator.evaluate_prediction(_prediction(RiskLevel.CRITICAL)) is False
    notifier.send.assert_not_called()


def test_failed_delivery_is_recorded_not_raised(evaluator, notifier):
    notifier.send.side_effect = RateLimitException("Too many requests.")

    assert evaluator.evaluate_prediction(_prediction(RiskLevel.CRITICAL)) is False
    record = evaluator.history()[0]
    assert record.status == "failed"
    assert record.error == "Too many requests."

    # a failed attempt does not start the cooldown
    notifier.send.side_effect = None
    assert evaluator.evaluate_prediction(_prediction(RiskLevel.CRITICAL)) is True


def test_history_keeps_five_newest(notifier, clock):
    evaluator = AlertEvaluator(notifier, "123456", cooldown_minutes=0, clock=clock)
    for _ in range(7):
        evaluator.evaluate_prediction(_prediction(RiskLevel.HIGH))
    evaluator.evaluate_prediction(_prediction(RiskLevel.CRITICAL))

    history = evaluator.history()
    assert len(history) == 5
    assert history[0].level == "CRITICAL"


def test_describe(evaluator):
    described = evaluator.describe()
    assert described.enabled is True
    assert described.cooldown_minutes == 10
    assert described.alerts == []


def test_format_alert_message():
    text = format_alert_message(_prediction(RiskLevel.CRITICAL))
    assert "*FLOOD ALERT: CRITICAL*" in text
    assert "Risk Score: 100.0/100" in text
    assert "15 minutes" in text
    assert "IMMEDIATE EVACUATION REQUIRED!" in text

    low = format_alert_message(_prediction(RiskLevel.LOW))
    assert "time to flood" not in low


@pytest.mark.asyncio
async def test_async_evaluation_sends_off_the_loop(evaluator, notifier):
    assert await evaluator.evaluate_prediction_async(_prediction(RiskLevel.HIGH)) is True
    assert evaluator.history()[0].status == "sent"
    assert await evaluator.evaluate_prediction_async(_prediction(RiskLevel.HIGH)) is False
    assert notifier.send.call_count == 1


@pytest.mark.asyncio
async def test_async_evaluation_skips_while_delivery_in_flight(notifier, clock):
    evaluator = AlertEvaluator(notifier, "123456", cooldown_minutes=0, clock=clock)
    gate = threading.Event()

    def blocking_send(recipient, text):
        gate.wait(2)
        return NotificationResult(channel="telegram", message_id="2")

    notifier.send.side_effect = blocking_send

    first = asyncio.create_task(
        evaluator.evaluate_prediction_async(_prediction(RiskLevel.CRITICAL))
    )
    await asyncio.sleep(0.05)
    assert await evaluator.evaluate_prediction_async(_prediction(RiskLevel.CRITICAL)) is False

    gate.set()
    assert await first is True
    assert notifier.send.call_count == 1
    assert await evaluator.evaluate_prediction_async(_prediction(RiskLevel.CRITICAL)) is True


@pytest.mark.asyncio
async def test_async_evaluation_records_failure(evaluator, notifier):
    notifier.send.side_effect = RateLimitException("Too many requests.")
    assert await evaluator.evaluate_prediction_async(_prediction(RiskLevel.CRITICAL)) is False
    assert evaluator.history()[0].status == "failed"


@patch("flood_mitigation.services.notification_service.requests.post")
def test_unexpected_provider_body_is_recorded_not_raised(mock_post, mock_settings, clock):
    response = MagicMock(status_code=200, ok=True)
    response.json.return_value = ["not", "an", "object"]
    mock_post.return_value = response
    evaluator = AlertEvaluator(TelegramNotifier(), "123456", clock=clock)

    assert evaluator.evaluate_prediction(_prediction(RiskLevel.CRITICAL)) is False
    record = evaluator.history()[0]
    assert record.status == "failed"
    assert record.error == "Invalid response from Telegram API"
