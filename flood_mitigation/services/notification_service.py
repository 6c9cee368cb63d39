"""
Outbound notification relays (Telegram Bot API and Twilio WhatsApp).

Each ``send`` performs exactly one HTTP request. Failures are raised as
NotificationException subclasses with a message meant for humans; nothing is
retried.
"""

import logging
from typing import Any, Dict, Optional

import requests
from requests.auth import HTTPBasicAuth

from flood_mitigation.core.config import settings
from flood_mitigation.core.exceptions import (
    ConfigurationException,
    NotificationException,
    RateLimitException,
    RecipientUnreachableException,
    UnauthorizedCredentialException,
    ValidationException,
)
from flood_mitigation.schemas.notifications import NotificationResult

logger = logging.getLogger(__name__)

# Twilio error codes, see https://www.twilio.com/docs/api/errors
TWILIO_AUTH_ERRORS = {20003}
TWILIO_RATE_LIMIT_ERRORS = {20429}
TWILIO_UNREACHABLE_ERRORS = {21211, 21408, 21610, 21614, 63003, 63016}


def _require(recipient: Optional[str], message: Optional[str], what: str) -> None:
    if not recipient or not message:
        raise ValidationException(f"{what} and message are required")


def _parse_json(response: requests.Response, provider: str) -> Dict[str, Any]:
    try:
        data = response.json()
    except ValueError:
        data = None
    if not isinstance(data, dict):
        logger.error(
            f"{provider} returned a non-JSON-object response "
            f"(status {response.status_code})"
        )
        raise NotificationException(
            f"Invalid response from {provider} API",
            {"status_code": response.status_code},
        )
    return data


class TelegramNotifier:
    """Send messages through the Telegram Bot API."""

    channel = "telegram"

    def __init__(self, bot_token: str = None, api_url: str = None, timeout: int = None):
        self.bot_token = bot_token if bot_token is not None else settings.telegram_bot_token
        self.api_url = (api_url or settings.telegram_api_url).rstrip("/")
        self.timeout = timeout or settings.notification_timeout

    @property
    def configured(self) -> bool:
        return bool(self.bot_token)

    def send(self, chat_id: str, message: str) -> NotificationResult:
        if not self.configured:
            logger.error("TELEGRAM_BOT_TOKEN is missing")
            raise ConfigurationException(
                "Telegram Bot Token not configured. Please set TELEGRAM_BOT_TOKEN."
            )
        _require(chat_id, message, "Chat ID")

        url = f"{self.api_url}/bot{self.bot_token}/sendMessage"
        body = {
            "chat_id": chat_id,
            "text": message,
            "parse_mode": "Markdown",
            "disable_web_page_preview": True,
        }
        logger.info(f"Sending Telegram message to chat {chat_id} ({len(message)} chars)")

        try:
            response = requests.post(url, json=body, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"Telegram request failed: {e}")
            raise NotificationException(f"Telegram request failed: {e}")

        data = _parse_json(response, "Telegram")
        if response.ok and data.get("ok"):
            result = data.get("result") or {}
            message_id = result.get("message_id")
            logger.info(f"Telegram message sent: {message_id}")
            return NotificationResult(
                channel=self.channel,
                message_id=str(message_id) if message_id is not None else None,
                recipient=str((result.get("chat") or {}).get("id", chat_id)),
                status="sent",
            )

        raise self._error_from(data, response.status_code)

    def _error_from(self, data: Dict[str, Any], status_code: int) -> NotificationException:
        code = data.get("error_code", status_code)
        description = data.get("description") or "Failed to send Telegram message"
        details = {"error_code": code, "original_error": description}
        logger.error(f"Telegram API error {code}: {description}")

        lowered = description.lower()
        if code == 401:
            return UnauthorizedCredentialException(
                "Unauthorized. Please check your Telegram bot token.", details
            )
        if code == 429:
            return RateLimitException(
                "Too many requests. Please wait a moment before trying again.", details
            )
        if "chat not found" in lowered:
            return RecipientUnreachableException(
                "Chat not found. Start a conversation with the bot first by "
                "sending it any message.",
                details,
            )
        if "bot was blocked" in lowered or code == 403:
            return RecipientUnreachableException(
                "Bot was blocked by user. Unblock the bot and send /start.", details
            )
        return NotificationException(description, details)


class WhatsAppNotifier:
    """Send WhatsApp messages through the Twilio Messages API."""

    channel = "whatsapp"

    def __init__(
        self,
        account_sid: str = None,
        auth_token: str = None,
        from_number: str = None,
        api_url: str = None,
        timeout: int = None,
    ):
        self.account_sid = (
            account_sid if account_sid is not None else settings.twilio_account_sid
        )
        self.auth_token = auth_token if auth_token is not None else settings.twilio_auth_token
        self.from_number = from_number or settings.twilio_phone_number
        self.api_url = (api_url or settings.twilio_api_url).rstrip("/")
        self.timeout = timeout or settings.notification_timeout

    @property
    def configured(self) -> bool:
        return bool(self.account_sid and self.auth_token)

    @staticmethod
    def format_recipient(to: str) -> str:
        to = to.strip()
        return to if to.startswith("whatsapp:") else f"whatsapp:{to}"

    def send(self, to: str, message: str) -> NotificationResult:
        if not self.configured:
            logger.error("Twilio credentials are missing")
            raise ConfigurationException("Twilio credentials not configured")
        _require(to, message, "Phone number")

        recipient = self.format_recipient(to)
        url = f"{self.api_url}/Accounts/{self.account_sid}/Messages.json"
        logger.info(f"Sending WhatsApp message to {recipient}")

        try:
            response = requests.post(
                url,
                data={"From": self.from_number, "To": recipient, "Body": message},
                auth=HTTPBasicAuth(self.account_sid, self.auth_token),
                timeout=self.timeout,
            )
        except requests.exceptions.RequestException as e:
            logger.error(f"Twilio request failed: {e}")
            raise NotificationException(f"Twilio request failed: {e}")

        data = _parse_json(response, "Twilio")
        if response.ok:
            logger.info(f"WhatsApp message sent successfully: {data.get('sid')}")
            return NotificationResult(
                channel=self.channel,
                message_id=data.get("sid"),
                recipient=recipient,
                status=data.get("status"),
            )

        raise self._error_from(data, response.status_code)

    def _error_from(self, data: Dict[str, Any], status_code: int) -> NotificationException:
        code = data.get("code")
        description = data.get("message") or "Failed to send WhatsApp message"
        details = {"error_code": code, "status_code": status_code}
        logger.error(f"Twilio API error {code}: {description}")

        if status_code == 401 or code in TWILIO_AUTH_ERRORS:
            return UnauthorizedCredentialException(
                "Unauthorized. Please check your Twilio account SID and auth token.",
                details,
            )
        if status_code == 429 or code in TWILIO_RATE_LIMIT_ERRORS:
            return RateLimitException(
                "Too many requests. Please wait a moment before trying again.", details
            )
        if code in TWILIO_UNREACHABLE_ERRORS:
            return RecipientUnreachableException(description, details)
        return NotificationException(description, details)
