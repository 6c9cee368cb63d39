from unittest.mock import MagicMock, patch

import pytest
import requests

from flood_mitigation.core.exceptions import (
    ConfigurationException,
    NotificationException,
    RateLimitException,
    RecipientUnreachableException,
    UnauthorizedCredentialException,
    ValidationException,
)
from flood_mitigation.services.notification_service import (
    TelegramNotifier,
    WhatsAppNotifier,
)


def _response(status_code, body=None, ok=None):
    response = MagicMock()
    response.status_code = status_code
    response.ok = status_code < 400 if ok is None else ok
    if isinstance(body, Exception):
        response.json.side_effect = body
    else:
        response.json.return_value = body
    return response


class TestTelegramNotifier:
    @pytest.fixture
    def notifier(self, mock_settings):
        return TelegramNotifier()

    @patch("flood_mitigation.services.notification_service.requests.post")
    def test_send_success(self, mock_post, notifier):
        mock_post.return_value = _response(
            200, {"ok": True, "result": {"message_id": 77, "chat": {"id": 123456}}}
        )

        result = notifier.send("123456", "*Flood* alert")

        assert result.success is True
        assert result.message_id == "77"
        assert result.recipient == "123456"
        assert result.status == "sent"

        url = mock_post.call_args[0][0]
        body = mock_post.call_args[1]["json"]
        assert url == "https://telegram.test/bot123456:TEST-TOKEN/sendMessage"
        assert body == {
            "chat_id": "123456",
            "text": "*Flood* alert",
            "parse_mode": "Markdown",
            "disable_web_page_preview": True,
        }
        assert mock_post.call_args[1]["timeout"] == 10

    @patch("flood_mitigation.services.notification_service.requests.post")
    def test_missing_token_fails_before_request(self, mock_post):
        notifier = TelegramNotifier(bot_token="")
        with pytest.raises(ConfigurationException):
            notifier.send("123456", "hello")
        mock_post.assert_not_called()

    @patch("flood_mitigation.services.notification_service.requests.post")
    def test_missing_recipient(self, mock_post, notifier):
        with pytest.raises(ValidationException):
            notifier.send("", "hello")
        mock_post.assert_not_called()

    @pytest.mark.parametrize(
        "status_code,body,expected",
        [
            (
                401,
                {"ok": False, "error_code": 401, "description": "Unauthorized"},
                UnauthorizedCredentialException,
            ),
            (
                429,
                {"ok": False, "error_code": 429, "description": "Too Many Requests"},
                RateLimitException,
            ),
            (
                400,
                {"ok": False, "error_code": 400, "description": "Bad Request: chat not found"},
                RecipientUnreachableException,
            ),
            (
                403,
                {
                    "ok": False,
                    "error_code": 403,
                    "description": "Forbidden: bot was blocked by the user",
                },
                RecipientUnreachableException,
            ),
            (
                400,
                {"ok": False, "error_code": 400, "description": "Bad Request: message is too long"},
                NotificationException,
            ),
        ],
    )
    @patch("flood_mitigation.services.notification_service.requests.post")
    def test_error_taxonomy(self, mock_post, notifier, status_code, body, expected):
        mock_post.return_value = _response(status_code, body)
        with pytest.raises(expected) as exc_info:
            notifier.send("123456", "hello")
        assert type(exc_info.value) is expected
        assert exc_info.value.details["error_code"] == status_code

    @patch("flood_mitigation.services.notification_service.requests.post")
    def test_chat_not_found_message_explains_fix(self, mock_post, notifier):
        mock_post.return_value = _response(
            400, {"ok": False, "error_code": 400, "description": "Bad Request: chat not found"}
        )
        with pytest.raises(RecipientUnreachableException) as exc_info:
            notifier.send("999", "hello")
        assert "Start a conversation" in exc_info.value.message

    @patch("flood_mitigation.services.notification_service.requests.post")
    def test_network_error(self, mock_post, notifier):
        mock_post.side_effect = requests.exceptions.ConnectionError("unreachable")
        with pytest.raises(NotificationException) as exc_info:
            notifier.send("123456", "hello")
        assert "unreachable" in exc_info.value.message

    @patch("flood_mitigation.services.notification_service.requests.post")
    def test_non_json_response(self, mock_post, notifier):
        mock_post.return_value = _response(502, ValueError("no json"))
        with pytest.raises(NotificationException) as exc_info:
            notifier.send("123456", "hello")
        assert exc_info.value.message == "Invalid response from Telegram API"

    @pytest.mark.parametrize("body", [["ok"], "ok", None, 42])
    @patch("flood_mitigation.services.notification_service.requests.post")
    def test_non_object_json_body(self, mock_post, notifier, body):
        mock_post.return_value = _response(200, body)
        with pytest.raises(NotificationException) as exc_info:
            notifier.send("123456", "hello")
        assert type(exc_info.value) is NotificationException
        assert exc_info.value.message == "Invalid response from Telegram API"


class TestWhatsAppNotifier:
    @pytest.fixture
    def notifier(self, mock_settings):
        return WhatsAppNotifier()

    @pytest.mark.parametrize(
        "to,expected",
        [
            ("+6281234567890", "whatsapp:+6281234567890"),
            ("whatsapp:+6281234567890", "whatsapp:+6281234567890"),
            (" +15551234567 ", "whatsapp:+15551234567"),
        ],
    )
    def test_format_recipient(self, to, expected):
        assert WhatsAppNotifier.format_recipient(to) == expected

    @patch("flood_mitigation.services.notification_service.requests.post")
    def test_send_success(self, mock_post, notifier):
        mock_post.return_value = _response(201, {"sid": "SM123", "status": "queued"})

        result = notifier.send("+6281234567890", "Flood alert")

        assert result.message_id == "SM123"
        assert result.status == "queued"
        assert result.recipient == "whatsapp:+6281234567890"

        url = mock_post.call_args[0][0]
        kwargs = mock_post.call_args[1]
        assert url == "https://twilio.test/2010-04-01/Accounts/AC_test_sid/Messages.json"
        assert kwargs["data"] == {
            "From": "whatsapp:+14155238886",
            "To": "whatsapp:+6281234567890",
            "Body": "Flood alert",
        }
        assert kwargs["auth"].username == "AC_test_sid"
        assert kwargs["auth"].password == "test_auth_token"

    @patch("flood_mitigation.services.notification_service.requests.post")
    def test_missing_credentials(self, mock_post):
        notifier = WhatsAppNotifier(account_sid="", auth_token="")
        with pytest.raises(ConfigurationException):
            notifier.send("+6281234567890", "hello")
        mock_post.assert_not_called()

    @pytest.mark.parametrize(
        "status_code,body,expected",
        [
            (401, {"code": 20003, "message": "Authenticate"}, UnauthorizedCredentialException),
            (429, {"code": 20429, "message": "Too Many Requests"}, RateLimitException),
            (
                400,
                {"code": 63016, "message": "Outside the allowed window"},
                RecipientUnreachableException,
            ),
            (
                400,
                {"code": 21211, "message": "Invalid 'To' Phone Number"},
                RecipientUnreachableException,
            ),
            (500, {"code": 20500, "message": "Internal Server Error"}, NotificationException),
        ],
    )
    @patch("flood_mitigation.services.notification_service.requests.post")
    def test_error_taxonomy(self, mock_post, notifier, status_code, body, expected):
        mock_post.return_value = _response(status_code, body)
        with pytest.raises(expected) as exc_info:
            notifier.send("+6281234567890", "hello")
        assert type(exc_info.value) is expected

    @patch("flood_mitigation.services.notification_service.requests.post")
    def test_non_object_json_error_body(self, mock_post, notifier):
        mock_post.return_value = _response(400, ["error"])
        with pytest.raises(NotificationException) as exc_info:
            notifier.send("+6281234567890", "hello")
        assert exc_info.value.message == "Invalid response from Twilio API"
