"""
API dependencies: access to the background components held on ``app.state``.
"""

from typing import Optional

from fastapi import Request

from flood_mitigation.core.exceptions import ServiceUnavailableException
from flood_mitigation.services.alert_evaluator import AlertEvaluator
from flood_mitigation.services.dashboard_consumer import DashboardConsumer
from flood_mitigation.services.mqtt_client import MQTTClient
from flood_mitigation.services.notification_service import (
    TelegramNotifier,
    WhatsAppNotifier,
)
from flood_mitigation.services.publisher import SimulationRunner


def get_runner(request: Request) -> SimulationRunner:
    runner = getattr(request.app.state, "runner", None)
    if runner is None:
        raise ServiceUnavailableException("Simulator is not running")
    return runner


def get_consumer(request: Request) -> DashboardConsumer:
    consumer = getattr(request.app.state, "consumer", None)
    if consumer is None:
        raise ServiceUnavailableException("Dashboard consumer is not running")
    return consumer


def get_consumer_client(request: Request) -> Optional[MQTTClient]:
    return getattr(request.app.state, "consumer_client", None)


def get_alert_evaluator(request: Request) -> Optional[AlertEvaluator]:
    return getattr(request.app.state, "alert_evaluator", None)


def get_telegram_notifier() -> TelegramNotifier:
    return TelegramNotifier()


def get_whatsapp_notifier() -> WhatsAppNotifier:
    return WhatsAppNotifier()
